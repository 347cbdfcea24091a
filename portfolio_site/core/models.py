from __future__ import annotations

import datetime as dt
from typing import Literal

from pydantic import AliasChoices, BaseModel, ConfigDict, Field
from pydantic.alias_generators import to_camel


class CamelModel(BaseModel):
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)


# --- Upstream quote ---


class QuotePoint(CamelModel):
    price: float | None = None
    change_percent: float | None = None
    change: float | None = None
    market_cap: float | None = None
    currency: str | None = None
    timestamp: int | None = None


# --- Local fixtures ---


class QuarterlyFundamental(CamelModel):
    quarter_label: str = Field(validation_alias=AliasChoices("quarter_label", "quarterLabel"))
    date: dt.date
    revenue: float | None = None
    gross_profit: float | None = None
    ebitda: float | None = None
    net_income: float | None = None
    eps: float | None = None
    weighted_average_shs_out_dil: float | None = None


class DataSummary(BaseModel):
    earliest_quarter: str | None = None
    latest_quarter: str | None = None


class CompanyFixture(BaseModel):
    ticker: str
    quarterly_data: list[QuarterlyFundamental] = Field(default_factory=list)
    data_summary: DataSummary = Field(default_factory=DataSummary)


class BalanceSheetFact(CamelModel):
    date: dt.date
    net_debt: float | None = None


class AnalystEstimate(CamelModel):
    date: dt.date
    fetch_timestamp: dt.datetime | None = Field(
        default=None,
        validation_alias=AliasChoices("fetch_timestamp", "fetchTimestamp"),
    )
    revenue_avg: float | None = None
    ebitda_avg: float | None = None
    eps_avg: float | None = None


class Fy2Estimates(BaseModel):
    fy2_revenue: float | None = None
    fy2_ebitda: float | None = None
    fy2_eps: float | None = None


class RevenueGrowthInputs(BaseModel):
    current_fy_revenue: float | None = None
    last_fy_revenue: float | None = None


# --- /api/stock-prices ---


class StockPriceData(CamelModel):
    ticker: str
    price: float = 0.0
    change_percent: float = 0.0
    change: float = 0.0
    market_cap: float | None = None
    currency: str = "USD"
    last_updated: str
    success: bool
    error: str | None = None
    # Explicit aliases; to_camel would capitalise the letter after the digit.
    t30d_change_percent: float | None = Field(default=None, alias="t30dChangePercent")
    t30d_price: float | None = Field(default=None, alias="t30dPrice")
    yesterday_close: float | None = None
    market_cap_calculated: float | None = None
    enterprise_value: float | None = None
    shares_outstanding: float | None = None
    net_debt: float | None = None
    fy2_revenue: float | None = None
    fy2_ebitda: float | None = None
    fy2_eps: float | None = None
    current_fy_revenue: float | None = None
    last_fy_revenue: float | None = None
    ev_fy2_revenue: float | None = None
    ev_fy2_ebitda: float | None = None
    pe_ratio: float | None = None
    revenue_growth_percent: float | None = None


class StockPricesSummary(CamelModel):
    total: int
    successful: int
    failed: int
    timestamp: str


class StockPricesResponse(CamelModel):
    data: list[StockPriceData]
    summary: StockPricesSummary


# --- Dashboard ---


class QuarterMetrics(CamelModel):
    yoy_growth: float | None = None
    gross_margin: float | None = None
    ebitda_margin: float | None = None
    yoy_growth_actual: float | None = None
    gross_margin_actual: float | None = None
    ebitda_margin_actual: float | None = None
    yoy_growth_change: float | None = None
    gross_margin_yoy_change: float | None = None
    ebitda_margin_yoy_change: float | None = None


class ChartPoint(CamelModel):
    quarter: str
    tickers: dict[str, QuarterMetrics] = Field(default_factory=dict)


class AxisRanges(CamelModel):
    yoy_growth: tuple[int, int]
    gross_margin: tuple[int, int]
    ebitda_margin: tuple[int, int]


class MarginSnapshot(CamelModel):
    reported: float | None = None
    yoy: float | None = None


class ComparisonRow(CamelModel):
    ticker: str
    company: str
    price_today: float | None = None
    price_change_today_percent: float | None = None
    t30d_price_change_percent: float | None = Field(default=None, alias="t30dPriceChangePercent")
    market_cap: str | None = None
    ev_fy2_revenue: float | None = None
    ev_fy2_ebitda: float | None = None
    pe_ratio: float | None = None
    revenue_growth: float | None = None
    gross_margin: MarginSnapshot = Field(default_factory=MarginSnapshot)
    ebitda_margin: MarginSnapshot = Field(default_factory=MarginSnapshot)


class ComparisonResponse(CamelModel):
    group_name: str | None = None
    tickers: list[str]
    sorted_tickers: list[str]
    colors: dict[str, str]
    quarters: list[str]
    chart_data: list[ChartPoint]
    axis_ranges: AxisRanges
    table: list[ComparisonRow]
    prices: StockPricesSummary | None = None


ChangeType = Literal["positive", "negative", "neutral"]


class KpiValue(CamelModel):
    value: float | None = None
    change: float | None = None
    change_type: ChangeType = "neutral"


class CompanyChartPoint(CamelModel):
    quarter: str
    yoy_growth: float | None = None
    gross_margin: float | None = None
    ebitda_margin: float | None = None


class CompanyKpis(CamelModel):
    ticker: str
    company: str
    color: str | None = None
    latest_quarter: str | None = None
    earliest_quarter: str | None = None
    revenue_billions: KpiValue
    gross_margin: KpiValue
    ebitda_margin: KpiValue
    eps: KpiValue
    chart_data: list[CompanyChartPoint] = Field(default_factory=list)


class TickerGroup(CamelModel):
    name: str
    tickers: list[str]


class CatalogResponse(CamelModel):
    groups: list[TickerGroup]
    companies: dict[str, str]


# --- Blog ---


class BlogPost(BaseModel):
    id: str
    title: str | None = None
    date: str | None = None
    description: str | None = None
    tags: list[str] = Field(default_factory=list)
    content: str | None = None
