from __future__ import annotations

import math
from typing import Iterable, Sequence

import numpy as np

from portfolio_site.core.models import QuarterlyFundamental
from portfolio_site.core.quarters import CalendarQuarter, match_calendar_quarter
from portfolio_site.core.ratios import growth_pct, safe_div

DEFAULT_RANGE: tuple[int, int] = (0, 100)
TUKEY_K = 1.5
COVERAGE_PADDING = 0.05


def _pct(value: float | None) -> float | None:
    return value * 100.0 if value is not None else None


def gross_margin(record: QuarterlyFundamental | None) -> float | None:
    if record is None:
        return None
    return _pct(safe_div(record.gross_profit, record.revenue))


def ebitda_margin(record: QuarterlyFundamental | None) -> float | None:
    if record is None:
        return None
    return _pct(safe_div(record.ebitda, record.revenue))


def margin_change(current: float | None, previous: float | None) -> float | None:
    """Difference in percentage points."""
    if current is None or previous is None:
        return None
    out = current - previous
    return out if math.isfinite(out) else None


def yoy_revenue_growth(records: Sequence[QuarterlyFundamental] | None, label: str) -> float | None:
    """Revenue at calendar quarter ``label`` against the same calendar quarter a year earlier."""
    current = match_calendar_quarter(records, label)
    if current is None:
        return None
    year_ago = match_calendar_quarter(records, CalendarQuarter.parse(label).year_ago().label)
    if year_ago is None:
        return None
    return growth_pct(current.revenue, year_ago.revenue)


def yoy_margin_change(records: Sequence[QuarterlyFundamental] | None, label: str, kind: str) -> float | None:
    margin_fn = gross_margin if kind == "gross" else ebitda_margin
    current = match_calendar_quarter(records, label)
    if current is None:
        return None
    year_ago = match_calendar_quarter(records, CalendarQuarter.parse(label).year_ago().label)
    if year_ago is None:
        return None
    return margin_change(margin_fn(current), margin_fn(year_ago))


def yoy_growth_change(
    records: Sequence[QuarterlyFundamental] | None, label: str, previous_label: str
) -> float | None:
    """Change in YoY revenue growth between two calendar quarters, in percentage points."""
    current = yoy_revenue_growth(records, label)
    previous = yoy_revenue_growth(records, previous_label)
    return margin_change(current, previous)


def outlier_aware_range(values: Iterable[float | None], padding: float = 0.1) -> tuple[int, int]:
    """
    Axis bounds that are not dominated by extreme values.

    With more than two points, values outside the Tukey fences
    ``[Q1 - 1.5*IQR, Q3 + 1.5*IQR]`` are ignored when choosing the bounds, the
    retained span is padded by ``padding`` and then widened so the 10th and
    90th percentile points (capped at the fences) stay visible. Bounds are
    rounded outward.
    """
    arr = np.array([v for v in values if v is not None and math.isfinite(v)], dtype=float)
    if arr.size == 0:
        return DEFAULT_RANGE
    if arr.size <= 2:
        lo, hi = float(arr.min()), float(arr.max())
        span = hi - lo
        return math.floor(lo - span * padding), math.ceil(hi + span * padding)

    ordered = np.sort(arr)
    n = ordered.size
    q1 = float(ordered[int(n * 0.25)])
    q3 = float(ordered[int(n * 0.75)])
    iqr = q3 - q1
    lower_fence = q1 - TUKEY_K * iqr
    upper_fence = q3 + TUKEY_K * iqr

    kept = ordered[(ordered >= lower_fence) & (ordered <= upper_fence)]
    if kept.size == 0:
        return math.floor(q1 - iqr * padding), math.ceil(q3 + iqr * padding)

    kept_min, kept_max = float(kept.min()), float(kept.max())
    span = kept_max - kept_min
    # On small samples p10/p90 can land on an outlier; keep them inside the fences.
    p10 = max(float(ordered[int(n * 0.1)]), lower_fence)
    p90 = min(float(ordered[int(n * 0.9)]), upper_fence)
    lo = min(kept_min - span * padding, p10 - span * COVERAGE_PADDING)
    hi = max(kept_max + span * padding, p90 + span * COVERAGE_PADDING)
    return math.floor(lo), math.ceil(hi)


def clip_to_range(value: float | None, bounds: tuple[int, int]) -> float | None:
    if value is None:
        return None
    lo, hi = bounds
    return max(float(lo), min(float(hi), value))


def format_market_cap(market_cap: float | None) -> str | None:
    """Whole billions with thousands separators, e.g. ``$3,412B``."""
    if market_cap is None or not math.isfinite(market_cap):
        return None
    return f"${round(market_cap / 1e9):,}B"


def change_type(value: float | None) -> str:
    if value is None:
        return "neutral"
    return "positive" if value >= 0 else "negative"
