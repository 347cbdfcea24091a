from __future__ import annotations

import asyncio
import logging
from datetime import datetime, timedelta, timezone
from typing import Any

from portfolio_site.core.fixtures import FixtureStore
from portfolio_site.core.models import (
    Fy2Estimates,
    RevenueGrowthInputs,
    StockPriceData,
    StockPricesResponse,
    StockPricesSummary,
)
from portfolio_site.core.ratios import compute_valuation, growth_pct, ratio_change_pct
from portfolio_site.core.yahoo_client import UpstreamQuoteError, closes_from_chart, quote_point_from_chart

logger = logging.getLogger(__name__)

MAX_TICKERS = 20
RECENT_WINDOW = timedelta(days=2)
HISTORY_WINDOW = timedelta(days=30)


class TickerBatchError(ValueError):
    """Ticker list missing or outside the accepted batch size."""


def parse_tickers(raw: str | None, max_tickers: int = MAX_TICKERS) -> list[str]:
    if raw is None or not raw.strip():
        raise TickerBatchError("Tickers parameter is required")
    tickers = [item.strip().upper() for item in raw.split(",") if item.strip()]
    if not tickers or len(tickers) > max_tickers:
        raise TickerBatchError(f"Please provide 1-{max_tickers} valid tickers")
    return tickers


def _failure(ticker: str, message: str, now: datetime) -> StockPriceData:
    return StockPriceData(
        ticker=ticker,
        price=0.0,
        change_percent=0.0,
        change=0.0,
        market_cap=None,
        currency="USD",
        last_updated=now.isoformat(),
        success=False,
        error=message,
    )


def _unwrap(ticker: str, label: str, value: Any) -> Any:
    if isinstance(value, BaseException):
        logger.warning("Failed to fetch %s for %s: %s", label, ticker, value)
        return None
    return value


async def fetch_stock_price(
    ticker: str,
    client: Any,
    store: FixtureStore,
    now: datetime | None = None,
) -> StockPriceData:
    """Quote plus fixture-derived ratios for one ticker. Never raises."""
    now = now or datetime.now(timezone.utc)
    now_epoch = int(now.timestamp())
    today = now.date()

    try:
        (
            current,
            recent,
            history,
            shares,
            net_debt,
            estimates,
            growth,
        ) = await asyncio.gather(
            client.get_chart(ticker),
            client.get_chart(
                ticker,
                period1=int((now - RECENT_WINDOW).timestamp()),
                period2=now_epoch,
                interval="1d",
            ),
            client.get_chart(
                ticker,
                period1=int((now - HISTORY_WINDOW).timestamp()),
                period2=now_epoch,
                interval="1d",
            ),
            store.read_shares_outstanding(ticker),
            store.read_net_debt(ticker),
            store.read_fy2_estimates(ticker, today),
            store.read_revenue_growth_inputs(ticker, today),
            return_exceptions=True,
        )

        if isinstance(current, BaseException):
            raise current
        quote = quote_point_from_chart(current)
        if quote.price is None:
            raise UpstreamQuoteError("No current price available")
        price = quote.price

        yesterday_close = None
        today_change_pct = None
        recent = _unwrap(ticker, "2-day window", recent)
        if recent is not None:
            closes = closes_from_chart(recent)
            if closes:
                yesterday_close = closes[-2] if len(closes) > 1 else closes[0]
                today_change_pct = ratio_change_pct(price, yesterday_close)

        t30d_price = None
        t30d_change_pct = None
        history = _unwrap(ticker, "30-day window", history)
        if history is not None:
            closes = closes_from_chart(history)
            if closes:
                t30d_price = closes[0]
                t30d_change_pct = growth_pct(price, t30d_price)

        shares = _unwrap(ticker, "shares outstanding", shares)
        net_debt = _unwrap(ticker, "net debt", net_debt)
        estimates: Fy2Estimates | None = _unwrap(ticker, "analyst estimates", estimates)
        growth: RevenueGrowthInputs | None = _unwrap(ticker, "revenue growth inputs", growth)

        valuation = compute_valuation(price, shares, net_debt, estimates, growth)

        return StockPriceData(
            ticker=ticker,
            price=price,
            change_percent=today_change_pct if today_change_pct is not None else (quote.change_percent or 0.0),
            change=quote.change or 0.0,
            market_cap=quote.market_cap,
            currency=quote.currency or "USD",
            last_updated=now.isoformat(),
            success=True,
            t30d_change_percent=t30d_change_pct,
            t30d_price=t30d_price,
            yesterday_close=yesterday_close,
            shares_outstanding=shares,
            net_debt=net_debt,
            fy2_revenue=estimates.fy2_revenue if estimates else None,
            fy2_ebitda=estimates.fy2_ebitda if estimates else None,
            fy2_eps=estimates.fy2_eps if estimates else None,
            current_fy_revenue=growth.current_fy_revenue if growth else None,
            last_fy_revenue=growth.last_fy_revenue if growth else None,
            **valuation,
        )
    except Exception as e:
        logger.error("Error fetching data for %s: %s", ticker, e)
        return _failure(ticker, str(e) or type(e).__name__, now)


async def fetch_stock_prices(
    tickers: list[str],
    client: Any,
    store: FixtureStore,
    now: datetime | None = None,
) -> StockPricesResponse:
    now = now or datetime.now(timezone.utc)
    results = await asyncio.gather(*(fetch_stock_price(t, client, store, now) for t in tickers))
    successful = sum(1 for r in results if r.success)
    return StockPricesResponse(
        data=list(results),
        summary=StockPricesSummary(
            total=len(tickers),
            successful=successful,
            failed=len(results) - successful,
            timestamp=datetime.now(timezone.utc).isoformat(),
        ),
    )
