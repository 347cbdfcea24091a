from __future__ import annotations

import logging

from fastapi import APIRouter, Depends, Query, Response
from fastapi.responses import JSONResponse

from portfolio_site.api.deps import get_app_settings, get_fixture_store, get_yahoo_client
from portfolio_site.config.settings import AppSettings
from portfolio_site.core.fixtures import FixtureStore
from portfolio_site.core.yahoo_client import YahooClient
from portfolio_site.services.stock_prices import TickerBatchError, fetch_stock_prices, parse_tickers

logger = logging.getLogger(__name__)

router = APIRouter()

CACHE_CONTROL = "public, s-maxage=60, stale-while-revalidate=300"
CORS_HEADERS = {
    "Access-Control-Allow-Origin": "*",
    "Access-Control-Allow-Methods": "GET, OPTIONS",
    "Access-Control-Allow-Headers": "Content-Type",
}


@router.get("/stock-prices")
async def get_stock_prices(
    tickers: str | None = Query(None, description="Comma-separated tickers, e.g. AAPL,MSFT"),
    settings: AppSettings = Depends(get_app_settings),
    store: FixtureStore = Depends(get_fixture_store),
    client: YahooClient = Depends(get_yahoo_client),
) -> JSONResponse:
    try:
        symbols = parse_tickers(tickers, settings.max_tickers)
    except TickerBatchError as e:
        return JSONResponse({"error": str(e)}, status_code=400)

    try:
        result = await fetch_stock_prices(symbols, client, store)
    except Exception as e:
        logger.exception("Stock prices API error")
        return JSONResponse(
            {"error": "Internal server error", "message": str(e) or "Unknown error"},
            status_code=500,
        )

    return JSONResponse(
        result.model_dump(mode="json", by_alias=True, exclude_none=True),
        headers={"Cache-Control": CACHE_CONTROL},
    )


@router.options("/stock-prices")
async def stock_prices_options() -> Response:
    return Response(status_code=200, headers=CORS_HEADERS)
