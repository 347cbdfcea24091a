from __future__ import annotations

import pytest

from portfolio_site.core.metrics import (
    change_type,
    clip_to_range,
    ebitda_margin,
    format_market_cap,
    gross_margin,
    outlier_aware_range,
    yoy_growth_change,
    yoy_margin_change,
    yoy_revenue_growth,
)
from portfolio_site.core.models import Fy2Estimates, QuarterlyFundamental, RevenueGrowthInputs
from portfolio_site.core.ratios import compute_valuation, growth_pct, ratio_change_pct, safe_div
from portfolio_site.tests.mocks.mock_fixtures import quarter


def _record(revenue: float, gross: float, ebitda: float, label: str = "2024-Q3", day: str = "2024-09-30"):
    return QuarterlyFundamental.model_validate(quarter(label, day, revenue, gross, ebitda))


HISTORY = [
    QuarterlyFundamental.model_validate(quarter("FY25-Q1", "2024-09-28", 120.0, 60.0, 30.0)),
    QuarterlyFundamental.model_validate(quarter("FY24-Q4", "2024-06-29", 110.0, 50.0, 22.0)),
    QuarterlyFundamental.model_validate(quarter("FY24-Q1", "2023-09-30", 100.0, 40.0, 25.0)),
    QuarterlyFundamental.model_validate(quarter("FY23-Q4", "2023-07-01", 100.0, 40.0, 20.0)),
]


def test_margins_are_percent_of_revenue() -> None:
    record = _record(100.0, 40.0, 25.0)
    assert gross_margin(record) == pytest.approx(40.0)
    assert ebitda_margin(record) == pytest.approx(25.0)


def test_margins_undefined_without_revenue() -> None:
    record = _record(0.0, 40.0, 25.0)
    assert gross_margin(record) is None
    assert ebitda_margin(record) is None
    assert gross_margin(None) is None


def test_yoy_revenue_growth_matches_calendar_quarters() -> None:
    assert yoy_revenue_growth(HISTORY, "2024-Q3") == pytest.approx(20.0)
    assert yoy_revenue_growth(HISTORY, "2024-Q2") == pytest.approx(10.0)
    assert yoy_revenue_growth(HISTORY, "2023-Q3") is None
    assert yoy_revenue_growth([], "2024-Q3") is None


def test_yoy_margin_change_in_points() -> None:
    assert yoy_margin_change(HISTORY, "2024-Q3", "gross") == pytest.approx(10.0)
    assert yoy_margin_change(HISTORY, "2024-Q3", "ebitda") == pytest.approx(0.0)


def test_yoy_growth_change_between_quarters() -> None:
    assert yoy_growth_change(HISTORY, "2024-Q3", "2024-Q2") == pytest.approx(10.0)
    assert yoy_growth_change(HISTORY, "2024-Q3", "2023-Q3") is None


def test_outlier_does_not_set_axis_bound() -> None:
    lo, hi = outlier_aware_range([1.0, 2.0, 3.0, 4.0, 100.0])
    assert (lo, hi) == (0, 8)
    assert hi < 100


def test_outlier_range_covers_inliers_with_padding() -> None:
    values = [10.0, 12.0, 14.0, 15.0, 18.0, 20.0]
    lo, hi = outlier_aware_range(values, padding=0.1)
    assert lo <= 10 and hi >= 20
    assert isinstance(lo, int) and isinstance(hi, int)


def test_outlier_range_small_samples() -> None:
    assert outlier_aware_range([10.0, 20.0]) == (9, 21)
    assert outlier_aware_range([5.0]) == (5, 5)
    assert outlier_aware_range([]) == (0, 100)
    assert outlier_aware_range([None, float("nan")]) == (0, 100)


def test_clip_keeps_value_inside_bounds() -> None:
    assert clip_to_range(150.0, (0, 100)) == 100.0
    assert clip_to_range(-3.0, (0, 100)) == 0.0
    assert clip_to_range(42.5, (0, 100)) == 42.5
    assert clip_to_range(None, (0, 100)) is None


def test_format_market_cap() -> None:
    assert format_market_cap(3.4121e12) == "$3,412B"
    assert format_market_cap(None) is None


def test_change_type() -> None:
    assert change_type(0.0) == "positive"
    assert change_type(-0.1) == "negative"
    assert change_type(None) == "neutral"


def test_ratio_helpers() -> None:
    assert safe_div(1, 0) is None
    assert safe_div(None, 2) is None
    assert growth_pct(100, 80) == pytest.approx(25.0)
    assert growth_pct(5, 0) is None
    assert ratio_change_pct(105, 100) == pytest.approx(5.0)


def test_valuation_treats_zero_net_debt_as_known() -> None:
    out = compute_valuation(50.0, 1_000_000, 0, Fy2Estimates(fy2_revenue=25e6), None)
    assert out["market_cap_calculated"] == pytest.approx(50e6)
    assert out["enterprise_value"] == pytest.approx(50e6)
    assert out["ev_fy2_revenue"] == pytest.approx(2.0)


def test_pe_ratio_does_not_need_enterprise_value() -> None:
    out = compute_valuation(60.0, None, None, Fy2Estimates(fy2_eps=3.0), None)
    assert out["enterprise_value"] is None
    assert out["ev_fy2_revenue"] is None
    assert out["pe_ratio"] == pytest.approx(20.0)


def test_revenue_growth_needs_both_fiscal_years() -> None:
    assert compute_valuation(1.0, None, None, None, RevenueGrowthInputs(current_fy_revenue=110.0, last_fy_revenue=100.0))[
        "revenue_growth_percent"
    ] == pytest.approx(10.0)
    assert compute_valuation(1.0, None, None, None, RevenueGrowthInputs(current_fy_revenue=110.0))[
        "revenue_growth_percent"
    ] is None
