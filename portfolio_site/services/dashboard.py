"""Comparison charts, tables and per-company KPIs for the financial dashboard."""
from __future__ import annotations

import asyncio
import logging
from datetime import date
from typing import Any, Mapping

from portfolio_site.config.catalog import CompanyCatalog
from portfolio_site.core.fixtures import FixtureStore
from portfolio_site.core.metrics import (
    change_type,
    clip_to_range,
    ebitda_margin,
    format_market_cap,
    gross_margin,
    margin_change,
    outlier_aware_range,
    yoy_growth_change,
    yoy_margin_change,
    yoy_revenue_growth,
)
from portfolio_site.core.models import (
    AxisRanges,
    ChartPoint,
    CompanyChartPoint,
    CompanyFixture,
    CompanyKpis,
    ComparisonResponse,
    ComparisonRow,
    KpiValue,
    MarginSnapshot,
    QuarterMetrics,
    StockPriceData,
)
from portfolio_site.core.quarters import CalendarQuarter, match_calendar_quarter, valid_calendar_quarters
from portfolio_site.core.ratios import growth_pct
from portfolio_site.services.stock_prices import fetch_stock_prices

logger = logging.getLogger(__name__)

YOY_AXIS_PADDING = 0.15
MARGIN_AXIS_PADDING = 0.1
COMPANY_CHART_QUARTERS = 5

Companies = Mapping[str, CompanyFixture | None]


async def load_companies(store: FixtureStore, tickers: list[str]) -> dict[str, CompanyFixture | None]:
    fixtures = await asyncio.gather(*(store.read_company(t) for t in tickers))
    return dict(zip(tickers, fixtures))


def build_chart_data(companies: Companies, tickers: list[str], quarters: list[str]) -> list[ChartPoint]:
    """One point per calendar quarter carrying each ticker's unclipped metrics."""
    points: list[ChartPoint] = []
    for idx, label in enumerate(quarters):
        point = ChartPoint(quarter=label)
        previous_label = quarters[idx - 1] if idx > 0 else None
        for ticker in tickers:
            company = companies.get(ticker)
            if company is None:
                continue
            records = company.quarterly_data
            matched = match_calendar_quarter(records, label)
            if matched is None:
                continue
            yoy = yoy_revenue_growth(records, label)
            gross = gross_margin(matched)
            ebitda = ebitda_margin(matched)
            point.tickers[ticker] = QuarterMetrics(
                yoy_growth=yoy,
                gross_margin=gross,
                ebitda_margin=ebitda,
                yoy_growth_actual=yoy,
                gross_margin_actual=gross,
                ebitda_margin_actual=ebitda,
                yoy_growth_change=yoy_growth_change(records, label, previous_label) if previous_label else None,
                gross_margin_yoy_change=yoy_margin_change(records, label, "gross"),
                ebitda_margin_yoy_change=yoy_margin_change(records, label, "ebitda"),
            )
        points.append(point)
    return points


def compute_axis_ranges(points: list[ChartPoint]) -> AxisRanges:
    metrics = [m for p in points for m in p.tickers.values()]
    return AxisRanges(
        yoy_growth=outlier_aware_range((m.yoy_growth_actual for m in metrics), YOY_AXIS_PADDING),
        gross_margin=outlier_aware_range((m.gross_margin_actual for m in metrics), MARGIN_AXIS_PADDING),
        ebitda_margin=outlier_aware_range((m.ebitda_margin_actual for m in metrics), MARGIN_AXIS_PADDING),
    )


def clip_chart_data(points: list[ChartPoint], ranges: AxisRanges) -> list[ChartPoint]:
    """Clip plotted values to the axis; ``*_actual`` keeps the real number for labels.

    Gross margin is left unclipped.
    """
    for point in points:
        for metrics in point.tickers.values():
            metrics.yoy_growth = clip_to_range(metrics.yoy_growth_actual, ranges.yoy_growth)
            metrics.ebitda_margin = clip_to_range(metrics.ebitda_margin_actual, ranges.ebitda_margin)
    return points


def latest_yoy_growth(company: CompanyFixture | None, quarters: list[str]) -> float | None:
    if company is None or not quarters:
        return None
    return yoy_revenue_growth(company.quarterly_data, quarters[-1])


def sort_tickers_by_growth(companies: Companies, tickers: list[str], quarters: list[str]) -> list[str]:
    """Highest latest-quarter YoY revenue growth first; missing growth ranks as 0."""
    if not quarters or not any(companies.get(t) is not None for t in tickers):
        return list(tickers)
    growth = {t: latest_yoy_growth(companies.get(t), quarters) or 0.0 for t in tickers}
    return sorted(tickers, key=lambda t: growth[t], reverse=True)


def build_table(
    companies: Companies,
    tickers: list[str],
    quarters: list[str],
    prices: Mapping[str, StockPriceData],
    catalog: CompanyCatalog,
) -> list[ComparisonRow]:
    latest_label = quarters[-1] if quarters else None
    rows: list[ComparisonRow] = []
    for ticker in tickers:
        quote = prices.get(ticker)
        live = quote if quote is not None and quote.success else None
        row = ComparisonRow(
            ticker=ticker,
            company=catalog.company_name(ticker),
            price_today=live.price if live else None,
            price_change_today_percent=live.change_percent if live else None,
            t30d_price_change_percent=live.t30d_change_percent if live else None,
            market_cap=format_market_cap(live.market_cap_calculated) if live else None,
            ev_fy2_revenue=live.ev_fy2_revenue if live else None,
            ev_fy2_ebitda=live.ev_fy2_ebitda if live else None,
            pe_ratio=live.pe_ratio if live else None,
            revenue_growth=live.revenue_growth_percent if live else None,
        )
        company = companies.get(ticker)
        if company is not None and latest_label is not None:
            records = company.quarterly_data
            latest = match_calendar_quarter(records, latest_label)
            if latest is not None:
                year_ago = match_calendar_quarter(records, CalendarQuarter.parse(latest_label).year_ago().label)
                gross_now, ebitda_now = gross_margin(latest), ebitda_margin(latest)
                row.gross_margin = MarginSnapshot(
                    reported=gross_now,
                    yoy=margin_change(gross_now, gross_margin(year_ago)),
                )
                row.ebitda_margin = MarginSnapshot(
                    reported=ebitda_now,
                    yoy=margin_change(ebitda_now, ebitda_margin(year_ago)),
                )
        rows.append(row)
    return rows


async def build_comparison(
    tickers: list[str],
    store: FixtureStore,
    catalog: CompanyCatalog,
    today: date,
    client: Any = None,
    group_name: str | None = None,
) -> ComparisonResponse:
    """Chart series, axis ranges and table for a ticker group.

    Live quotes are fetched alongside the fixtures when ``client`` is given;
    without it the table carries fixture-derived columns only.
    """
    if client is not None:
        companies, price_batch = await asyncio.gather(
            load_companies(store, tickers),
            fetch_stock_prices(tickers, client, store),
        )
        prices = {row.ticker: row for row in price_batch.data}
        price_summary = price_batch.summary
    else:
        companies = await load_companies(store, tickers)
        prices, price_summary = {}, None

    missing = [t for t, c in companies.items() if c is None]
    if missing:
        logger.warning("No quarterly fixtures for %s", ", ".join(missing))

    quarters = valid_calendar_quarters(companies, tickers, today)
    ordered = sort_tickers_by_growth(companies, tickers, quarters)
    points = build_chart_data(companies, ordered, quarters)
    ranges = compute_axis_ranges(points)
    clip_chart_data(points, ranges)
    return ComparisonResponse(
        group_name=group_name,
        tickers=list(tickers),
        sorted_tickers=ordered,
        colors=catalog.ticker_colors(list(tickers)),
        quarters=quarters,
        chart_data=points,
        axis_ranges=ranges,
        table=build_table(companies, ordered, quarters, prices, catalog),
        prices=price_summary,
    )


def company_kpis(company: CompanyFixture, catalog: CompanyCatalog) -> CompanyKpis:
    """Headline figures for the latest fiscal quarter plus a short trailing series."""
    records = company.quarterly_data
    latest = records[0] if records else None
    previous = records[1] if len(records) > 1 else None

    revenue = KpiValue()
    gross = KpiValue()
    ebitda = KpiValue()
    eps = KpiValue()
    if latest is not None:
        revenue_change = growth_pct(latest.revenue, previous.revenue) if previous else None
        revenue = KpiValue(
            value=latest.revenue / 1e9 if latest.revenue is not None else None,
            change=revenue_change,
            change_type=change_type(revenue_change),
        )
        gross_now = gross_margin(latest)
        gross_change = margin_change(gross_now, gross_margin(previous)) if previous else None
        gross = KpiValue(value=gross_now, change=gross_change, change_type=change_type(gross_change))
        ebitda = KpiValue(value=ebitda_margin(latest))
        eps_change = growth_pct(latest.eps, previous.eps) if previous else None
        eps = KpiValue(value=latest.eps, change=eps_change, change_type=change_type(eps_change))

    by_label = {r.quarter_label: r for r in records}
    chronological = sorted(records, key=lambda r: r.date)
    series: list[CompanyChartPoint] = []
    for record in chronological[-COMPANY_CHART_QUARTERS:]:
        yoy = None
        try:
            year_ago = by_label.get(CalendarQuarter.parse(record.quarter_label).year_ago().label)
        except ValueError:
            year_ago = None
        if year_ago is not None:
            yoy = growth_pct(record.revenue, year_ago.revenue)
        series.append(
            CompanyChartPoint(
                quarter=record.quarter_label,
                yoy_growth=yoy,
                gross_margin=gross_margin(record),
                ebitda_margin=ebitda_margin(record),
            )
        )

    return CompanyKpis(
        ticker=company.ticker,
        company=catalog.company_name(company.ticker),
        color=catalog.ticker_colors([company.ticker]).get(company.ticker),
        latest_quarter=latest.quarter_label if latest else None,
        earliest_quarter=company.data_summary.earliest_quarter,
        revenue_billions=revenue,
        gross_margin=gross,
        ebitda_margin=ebitda,
        eps=eps,
        chart_data=series,
    )
