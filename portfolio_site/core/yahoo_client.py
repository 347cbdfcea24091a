from __future__ import annotations

import asyncio
import logging
import math
from typing import Any, Dict, List, Optional

import httpx

from portfolio_site.core.models import QuotePoint

logger = logging.getLogger(__name__)

DEFAULT_CHART_URL = "https://query1.finance.yahoo.com/v8/finance/chart"


class UpstreamQuoteError(Exception):
    """Raised when a chart request fails or returns an unusable payload."""


def _to_float(value: Any) -> Optional[float]:
    if value in (None, "", "NA", "N/A", "-"):
        return None
    try:
        out = float(value)
        if not math.isfinite(out):  # NaN and Infinity guard
            return None
        return out
    except (TypeError, ValueError):
        return None


class YahooClient:
    def __init__(
        self,
        base_url: str = DEFAULT_CHART_URL,
        timeout_seconds: float = 10.0,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ):
        self.base_url = base_url.rstrip("/")
        self.timeout = timeout_seconds
        self.client: Optional[httpx.AsyncClient] = None
        self._transport = transport

    async def initialize(self):
        if self.client:
            return

        headers = {
            "User-Agent": "Mozilla/5.0 (Windows NT 10.0; Win64; x64) AppleWebKit/537.36",
            "Accept": "application/json",
        }

        self.client = httpx.AsyncClient(
            http2=self._transport is None,
            timeout=self.timeout,
            headers=headers,
            follow_redirects=True,
            trust_env=False,
            transport=self._transport,
            limits=httpx.Limits(max_connections=50, max_keepalive_connections=20),
        )

    async def close(self):
        if self.client:
            await self.client.aclose()
            self.client = None

    async def _ensure_client(self):
        if not self.client:
            await self.initialize()

    async def get_chart(
        self,
        symbol: str,
        period1: Optional[int] = None,
        period2: Optional[int] = None,
        interval: Optional[str] = None,
    ) -> Dict[str, Any]:
        """
        Fetch the first chart result for ``symbol``.

        Without a window the upstream returns the current session snapshot;
        ``period1``/``period2`` are epoch seconds.
        """
        await self._ensure_client()

        params: Dict[str, Any] = {}
        if period1 is not None:
            params["period1"] = period1
        if period2 is not None:
            params["period2"] = period2
        if interval:
            params["interval"] = interval

        try:
            # Caps the whole call; the client timeout only bounds each connect or read.
            response = await asyncio.wait_for(
                self.client.get(f"{self.base_url}/{symbol}", params=params or None),
                timeout=self.timeout,
            )
        except (asyncio.TimeoutError, httpx.TimeoutException) as e:
            raise UpstreamQuoteError(f"Request timed out after {self.timeout:g}s") from e
        except httpx.HTTPError as e:
            raise UpstreamQuoteError(f"Request failed: {e}") from e

        if response.status_code < 200 or response.status_code >= 300:
            raise UpstreamQuoteError(f"HTTP {response.status_code}: {response.reason_phrase}")

        try:
            data = response.json()
        except ValueError as e:
            raise UpstreamQuoteError("Malformed chart payload") from e

        chart = data.get("chart") if isinstance(data, dict) else None
        if not isinstance(chart, dict):
            raise UpstreamQuoteError("Malformed chart payload")

        error = chart.get("error")
        if error:
            if isinstance(error, dict):
                raise UpstreamQuoteError(str(error.get("description") or error.get("code") or "Upstream error"))
            raise UpstreamQuoteError(str(error))

        results = chart.get("result") or []
        if not results or not isinstance(results[0], dict):
            raise UpstreamQuoteError("No current data available")
        return results[0]


def quote_point_from_chart(result: Dict[str, Any]) -> QuotePoint:
    meta = result.get("meta") if isinstance(result.get("meta"), dict) else {}
    epoch = meta.get("regularMarketTime")
    return QuotePoint(
        price=_to_float(meta.get("regularMarketPrice")),
        change_percent=_to_float(meta.get("regularMarketChangePercent")),
        change=_to_float(meta.get("regularMarketChange")),
        market_cap=_to_float(meta.get("marketCap")),
        currency=meta.get("currency") or None,
        timestamp=int(epoch) if isinstance(epoch, (int, float)) and epoch > 0 else None,
    )


def closes_from_chart(result: Dict[str, Any]) -> List[float]:
    """Daily closes in chronological order, skipping null sessions."""
    indicators = result.get("indicators") if isinstance(result.get("indicators"), dict) else {}
    quotes = indicators.get("quote") or []
    if not quotes or not isinstance(quotes[0], dict):
        return []
    closes = quotes[0].get("close") or []
    out: List[float] = []
    for value in closes:
        val = _to_float(value)
        if val is not None:
            out.append(val)
    return out
