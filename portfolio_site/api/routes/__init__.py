from __future__ import annotations

from portfolio_site.api.routes import blog, dashboard, stock_prices

__all__ = [
    "stock_prices",
    "dashboard",
    "blog",
]
