from __future__ import annotations

import math
from typing import Any

from portfolio_site.core.models import Fy2Estimates, RevenueGrowthInputs


def _num(value: Any) -> float | None:
    if isinstance(value, bool) or value is None:
        return None
    try:
        out = float(value)
    except (TypeError, ValueError):
        return None
    return out if math.isfinite(out) else None


def safe_div(n: Any, d: Any) -> float | None:
    n_f = _num(n)
    d_f = _num(d)
    if n_f is None or d_f is None or d_f == 0:
        return None
    out = n_f / d_f
    return out if math.isfinite(out) else None


def ratio_change_pct(current: Any, base: Any) -> float | None:
    """``(current / base - 1) * 100``; used for day-over-day and FY revenue growth."""
    ratio = safe_div(current, base)
    return (ratio - 1.0) * 100.0 if ratio is not None else None


def growth_pct(current: Any, previous: Any) -> float | None:
    """``(current - previous) / previous * 100``; used for 30-day, YoY and QoQ deltas."""
    cur = _num(current)
    if cur is None:
        return None
    prev = _num(previous)
    if prev is None:
        return None
    delta = safe_div(cur - prev, prev)
    return delta * 100.0 if delta is not None else None


def compute_valuation(
    price: Any,
    shares_outstanding: Any,
    net_debt: Any,
    estimates: Fy2Estimates | None,
    growth: RevenueGrowthInputs | None,
) -> dict[str, float | None]:
    out: dict[str, float | None] = {
        "market_cap_calculated": None,
        "enterprise_value": None,
        "ev_fy2_revenue": None,
        "ev_fy2_ebitda": None,
        "pe_ratio": None,
        "revenue_growth_percent": None,
    }
    px = _num(price)
    shares = _num(shares_outstanding)
    debt = _num(net_debt)

    if px and shares:
        out["market_cap_calculated"] = px * shares
    if out["market_cap_calculated"] is not None and debt is not None:
        out["enterprise_value"] = out["market_cap_calculated"] + debt

    if estimates is not None:
        ev = out["enterprise_value"]
        if ev is not None:
            out["ev_fy2_revenue"] = safe_div(ev, estimates.fy2_revenue)
            out["ev_fy2_ebitda"] = safe_div(ev, estimates.fy2_ebitda)
        if px:
            out["pe_ratio"] = safe_div(px, estimates.fy2_eps)

    if growth is not None:
        out["revenue_growth_percent"] = ratio_change_pct(growth.current_fy_revenue, growth.last_fy_revenue)
    return out
