from __future__ import annotations

from fastapi import FastAPI


def register_api_routers(app: FastAPI) -> None:
    from portfolio_site.api.routes import blog, dashboard, stock_prices

    app.include_router(stock_prices.router, prefix="/api", tags=["stock-prices"])
    app.include_router(dashboard.router, prefix="/api", tags=["dashboard"])
    app.include_router(blog.router, prefix="/api", tags=["blog"])


__all__ = ["register_api_routers"]
