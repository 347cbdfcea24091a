from __future__ import annotations

import asyncio
from datetime import date

import pytest

from portfolio_site.config.catalog import DEFAULT_PALETTE, build_catalog
from portfolio_site.core.fixtures import FixtureStore
from portfolio_site.core.models import AxisRanges, ChartPoint, CompanyFixture, QuarterlyFundamental, QuarterMetrics
from portfolio_site.core.quarters import calendar_quarter_end, trailing_calendar_quarters
from portfolio_site.services.dashboard import (
    build_comparison,
    clip_chart_data,
    company_kpis,
    sort_tickers_by_growth,
)
from portfolio_site.tests.mocks.mock_fixtures import quarter
from portfolio_site.tests.mocks.mock_yahoo import MockYahooClient, chart_result

TODAY = date(2025, 2, 10)
CATALOG = build_catalog(companies={"AAA": "Alpha Corp", "BBB": "Beta Inc."}, groups={"Pair": ["AAA", "BBB"]})


def _growing(ticker: str, growth: float) -> dict:
    rows = []
    for idx, label in enumerate(trailing_calendar_quarters(TODAY)):
        revenue = 100.0 * (1 + growth) ** (idx // 4)
        rows.append(quarter(label, calendar_quarter_end(label).isoformat(), revenue, revenue * 0.5, revenue * 0.2))
    return {"ticker": ticker, "quarterly_data": rows}


def test_comparison_from_fixtures_only(public_dir, write_fixture) -> None:  # noqa: ANN001
    write_fixture("stock_data", "AAA", _growing("AAA", 0.1))
    write_fixture("stock_data", "BBB", _growing("BBB", 0.3))

    result = asyncio.run(build_comparison(["AAA", "BBB", "MISSING"], FixtureStore(public_dir), CATALOG, TODAY))

    assert result.quarters == trailing_calendar_quarters(TODAY)
    assert result.sorted_tickers == ["BBB", "AAA", "MISSING"]
    assert result.colors == {"AAA": DEFAULT_PALETTE[0], "BBB": DEFAULT_PALETTE[1], "MISSING": DEFAULT_PALETTE[2]}
    assert result.prices is None

    latest = result.chart_data[-1]
    assert set(latest.tickers) == {"AAA", "BBB"}
    assert latest.tickers["AAA"].yoy_growth_actual == pytest.approx(10.0)
    assert latest.tickers["BBB"].gross_margin_actual == pytest.approx(50.0)
    # No year-ago record in the first four quarters.
    assert result.chart_data[0].tickers["AAA"].yoy_growth is None

    lo, hi = result.axis_ranges.yoy_growth
    assert lo <= 10 and hi >= 30

    rows = {row.ticker: row for row in result.table}
    assert [row.ticker for row in result.table] == ["BBB", "AAA", "MISSING"]
    assert rows["AAA"].company == "Alpha Corp"
    assert rows["AAA"].price_today is None
    assert rows["AAA"].gross_margin.reported == pytest.approx(50.0)
    assert rows["AAA"].gross_margin.yoy == pytest.approx(0.0)
    assert rows["MISSING"].company == "MISSING"
    assert rows["MISSING"].gross_margin.reported is None


def test_comparison_with_live_quotes(public_dir, write_fixture) -> None:  # noqa: ANN001
    write_fixture("stock_data", "AAA", _growing("AAA", 0.1))
    fake = MockYahooClient(
        {
            ("AAA", "current"): chart_result(10.0),
            ("AAA", "recent"): chart_result(10.0, [8.0, 9.0]),
            ("AAA", "history"): chart_result(10.0, [5.0]),
        }
    )
    result = asyncio.run(
        build_comparison(["AAA", "BBB"], FixtureStore(public_dir), CATALOG, TODAY, client=fake, group_name="Pair")
    )
    assert result.group_name == "Pair"
    assert result.prices.successful == 1
    assert result.prices.failed == 1
    rows = {row.ticker: row for row in result.table}
    assert rows["AAA"].price_today == 10.0
    assert rows["AAA"].price_change_today_percent == pytest.approx(25.0)
    assert rows["AAA"].t30d_price_change_percent == pytest.approx(100.0)
    # Failed quote leaves the live columns empty.
    assert rows["BBB"].price_today is None


def test_sort_keeps_input_order_without_quarters() -> None:
    assert sort_tickers_by_growth({}, ["B", "A"], ["2024-Q1"]) == ["B", "A"]
    assert sort_tickers_by_growth({"A": None}, ["B", "A"], []) == ["B", "A"]


def test_clipping_keeps_actual_values() -> None:
    metrics = QuarterMetrics(
        yoy_growth=300.0,
        gross_margin=120.0,
        ebitda_margin=-40.0,
        yoy_growth_actual=300.0,
        gross_margin_actual=120.0,
        ebitda_margin_actual=-40.0,
    )
    points = [ChartPoint(quarter="2024-Q4", tickers={"AAA": metrics})]
    ranges = AxisRanges(yoy_growth=(0, 50), gross_margin=(0, 100), ebitda_margin=(-10, 30))

    clip_chart_data(points, ranges)

    clipped = points[0].tickers["AAA"]
    assert clipped.yoy_growth == 50.0
    assert clipped.yoy_growth_actual == 300.0
    assert clipped.ebitda_margin == -10.0
    assert clipped.ebitda_margin_actual == -40.0
    assert clipped.gross_margin == 120.0


def test_company_kpis() -> None:
    records = [
        quarter("2024-Q4", "2024-12-31", 2e9, 1e9, 0.5e9, eps=1.5),
        quarter("2024-Q3", "2024-09-30", 1.6e9, 0.72e9, 0.4e9, eps=1.2),
        quarter("2023-Q4", "2023-12-31", 1.6e9, 0.7e9, 0.3e9, eps=1.0),
    ]
    company = CompanyFixture(
        ticker="AAA",
        quarterly_data=[QuarterlyFundamental.model_validate(r) for r in records],
        data_summary={"earliest_quarter": "2023-Q4", "latest_quarter": "2024-Q4"},
    )

    kpis = company_kpis(company, CATALOG)

    assert kpis.company == "Alpha Corp"
    assert kpis.latest_quarter == "2024-Q4"
    assert kpis.earliest_quarter == "2023-Q4"
    assert kpis.revenue_billions.value == pytest.approx(2.0)
    assert kpis.revenue_billions.change == pytest.approx(25.0)
    assert kpis.revenue_billions.change_type == "positive"
    assert kpis.gross_margin.value == pytest.approx(50.0)
    assert kpis.gross_margin.change == pytest.approx(5.0)
    assert kpis.ebitda_margin.value == pytest.approx(25.0)
    assert kpis.eps.change == pytest.approx(25.0)
    assert [p.quarter for p in kpis.chart_data] == ["2023-Q4", "2024-Q3", "2024-Q4"]
    assert kpis.chart_data[-1].yoy_growth == pytest.approx(25.0)
    assert kpis.chart_data[0].yoy_growth is None
