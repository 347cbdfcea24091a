"""Read-only access to the per-ticker JSON fixtures under the public directory.

Layout (same files the browser fetches directly)::

    stock_data/{TICKER}_quarterly_data.json            {"ticker", "quarterly_data": [...], "data_summary": {...}}
    balance_sheet_data/{TICKER}_balance_sheet_quarter.json   [{"date", "netDebt", ...}, ...]
    analyst_estimates_data/{TICKER}_analyst_estimates.json   [{"date", "fetch_timestamp", "revenueAvg", ...}, ...]

Every read goes to disk; nothing is cached between requests. A missing or
unparseable file is logged and reported as absent rather than raised, so a
single broken fixture only degrades the metrics that depend on it. Records are
ordered by date here instead of trusting their position in the file.
"""
from __future__ import annotations

import asyncio
import json
import logging
import re
from datetime import date, datetime, timezone
from pathlib import Path
from typing import Any

from pydantic import ValidationError

from portfolio_site.core.models import (
    AnalystEstimate,
    BalanceSheetFact,
    CompanyFixture,
    DataSummary,
    Fy2Estimates,
    QuarterlyFundamental,
    RevenueGrowthInputs,
)

logger = logging.getLogger(__name__)

TICKER_RE = re.compile(r"^\^?[A-Z0-9][A-Z0-9._=\-]{0,24}$")

QUARTERLY_DIR = "stock_data"
BALANCE_SHEET_DIR = "balance_sheet_data"
ANALYST_ESTIMATES_DIR = "analyst_estimates_data"


def _validate_records(model: Any, rows: Any, source: Path) -> list[Any]:
    if not isinstance(rows, list):
        logger.warning("Fixture %s is not a list of records", source)
        return []
    out = []
    for idx, row in enumerate(rows):
        try:
            out.append(model.model_validate(row))
        except ValidationError as exc:
            logger.warning("Skipping malformed record %d in %s: %s", idx, source, exc.errors()[:1])
    return out


def _fetched_at(est: AnalystEstimate) -> datetime | None:
    ts = est.fetch_timestamp
    if ts is None:
        return None
    return ts if ts.tzinfo is not None else ts.replace(tzinfo=timezone.utc)


def latest_estimates_by_fiscal_year(estimates: list[AnalystEstimate]) -> list[AnalystEstimate]:
    """Keep the most recently fetched estimate per fiscal-year end, oldest fiscal year first."""
    by_fy: dict[date, AnalystEstimate] = {}
    for est in estimates:
        current = by_fy.get(est.date)
        if current is None:
            by_fy[est.date] = est
            continue
        fetched, held = _fetched_at(est), _fetched_at(current)
        if fetched is not None and (held is None or fetched > held):
            by_fy[est.date] = est
    return [by_fy[fy] for fy in sorted(by_fy)]


def select_fy2(estimates: list[AnalystEstimate], today: date) -> AnalystEstimate | None:
    """Second fiscal year ending after ``today``; falls back to the latest fiscal year on file."""
    ordered = latest_estimates_by_fiscal_year(estimates)
    if not ordered:
        return None
    future = [est for est in ordered if est.date > today]
    if len(future) >= 2:
        return future[1]
    return ordered[-1]


def select_current_and_last_fy(
    estimates: list[AnalystEstimate], today: date
) -> tuple[AnalystEstimate | None, AnalystEstimate | None]:
    ordered = latest_estimates_by_fiscal_year(estimates)
    for idx, est in enumerate(ordered):
        if est.date > today:
            return est, (ordered[idx - 1] if idx > 0 else None)
    return None, None


class FixtureStore:
    def __init__(self, public_dir: Path):
        self.public_dir = Path(public_dir)

    def _path(self, folder: str, ticker: str, suffix: str) -> Path | None:
        symbol = ticker.strip().upper()
        if not TICKER_RE.match(symbol):
            logger.warning("Refusing fixture lookup for invalid ticker %r", ticker)
            return None
        return self.public_dir / folder / f"{symbol}_{suffix}.json"

    def _read_json(self, path: Path | None) -> Any:
        if path is None:
            return None
        try:
            return json.loads(path.read_text(encoding="utf-8"))
        except FileNotFoundError:
            logger.warning("Fixture not found: %s", path)
        except (OSError, ValueError) as exc:
            logger.warning("Failed to read fixture %s: %s", path, exc)
        return None

    # --- Raw fixtures ---

    def load_company(self, ticker: str) -> CompanyFixture | None:
        path = self._path(QUARTERLY_DIR, ticker, "quarterly_data")
        payload = self._read_json(path)
        if not isinstance(payload, dict):
            return None
        records = _validate_records(QuarterlyFundamental, payload.get("quarterly_data") or [], path)
        records.sort(key=lambda r: r.date, reverse=True)
        summary_raw = payload.get("data_summary")
        try:
            summary = DataSummary.model_validate(summary_raw) if isinstance(summary_raw, dict) else DataSummary()
        except ValidationError:
            summary = DataSummary()
        return CompanyFixture(
            ticker=str(payload.get("ticker") or ticker).upper(),
            quarterly_data=records,
            data_summary=summary,
        )

    def load_balance_sheet(self, ticker: str) -> list[BalanceSheetFact]:
        path = self._path(BALANCE_SHEET_DIR, ticker, "balance_sheet_quarter")
        payload = self._read_json(path)
        if payload is None:
            return []
        records = _validate_records(BalanceSheetFact, payload, path)
        records.sort(key=lambda r: r.date, reverse=True)
        return records

    def load_analyst_estimates(self, ticker: str) -> list[AnalystEstimate]:
        path = self._path(ANALYST_ESTIMATES_DIR, ticker, "analyst_estimates")
        payload = self._read_json(path)
        if payload is None:
            return []
        return _validate_records(AnalystEstimate, payload, path)

    # --- Derived lookups used by the quote aggregator ---

    def shares_outstanding(self, ticker: str) -> float | None:
        company = self.load_company(ticker)
        if company is None or not company.quarterly_data:
            return None
        return company.quarterly_data[0].weighted_average_shs_out_dil or None

    def net_debt(self, ticker: str) -> float | None:
        records = self.load_balance_sheet(ticker)
        if not records:
            return None
        return records[0].net_debt

    def fy2_estimates(self, ticker: str, today: date) -> Fy2Estimates | None:
        fy2 = select_fy2(self.load_analyst_estimates(ticker), today)
        if fy2 is None:
            return None
        return Fy2Estimates(fy2_revenue=fy2.revenue_avg, fy2_ebitda=fy2.ebitda_avg, fy2_eps=fy2.eps_avg)

    def revenue_growth_inputs(self, ticker: str, today: date) -> RevenueGrowthInputs | None:
        estimates = self.load_analyst_estimates(ticker)
        if not estimates:
            return None
        current, last = select_current_and_last_fy(estimates, today)
        return RevenueGrowthInputs(
            current_fy_revenue=current.revenue_avg if current else None,
            last_fy_revenue=last.revenue_avg if last else None,
        )

    # --- Async wrappers; file I/O runs off the event loop ---

    async def read_company(self, ticker: str) -> CompanyFixture | None:
        return await asyncio.to_thread(self.load_company, ticker)

    async def read_shares_outstanding(self, ticker: str) -> float | None:
        return await asyncio.to_thread(self.shares_outstanding, ticker)

    async def read_net_debt(self, ticker: str) -> float | None:
        return await asyncio.to_thread(self.net_debt, ticker)

    async def read_fy2_estimates(self, ticker: str, today: date) -> Fy2Estimates | None:
        return await asyncio.to_thread(self.fy2_estimates, ticker, today)

    async def read_revenue_growth_inputs(self, ticker: str, today: date) -> RevenueGrowthInputs | None:
        return await asyncio.to_thread(self.revenue_growth_inputs, ticker, today)
