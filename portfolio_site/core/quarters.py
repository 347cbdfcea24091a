"""Map irregular fiscal quarter-end dates onto a shared calendar-quarter axis."""
from __future__ import annotations

import re
from datetime import date, timedelta
from typing import Iterable, Mapping, NamedTuple, Sequence

from portfolio_site.core.models import CompanyFixture, QuarterlyFundamental

MATCH_TOLERANCE = timedelta(days=30)
TRAILING_QUARTERS = 8

_LABEL_RE = re.compile(r"^(\d{4})-Q([1-4])$")
_QUARTER_END = {1: (3, 31), 2: (6, 30), 3: (9, 30), 4: (12, 31)}


class CalendarQuarter(NamedTuple):
    year: int
    quarter: int

    @property
    def label(self) -> str:
        return f"{self.year}-Q{self.quarter}"

    @property
    def end_date(self) -> date:
        month, day = _QUARTER_END[self.quarter]
        return date(self.year, month, day)

    def previous(self) -> "CalendarQuarter":
        if self.quarter == 1:
            return CalendarQuarter(self.year - 1, 4)
        return CalendarQuarter(self.year, self.quarter - 1)

    def year_ago(self) -> "CalendarQuarter":
        return CalendarQuarter(self.year - 1, self.quarter)

    @classmethod
    def parse(cls, label: str) -> "CalendarQuarter":
        m = _LABEL_RE.match(label.strip())
        if not m:
            raise ValueError(f"Invalid calendar quarter: {label!r}")
        return cls(int(m.group(1)), int(m.group(2)))

    @classmethod
    def containing(cls, day: date) -> "CalendarQuarter":
        return cls(day.year, (day.month - 1) // 3 + 1)


def calendar_quarter_end(label: str) -> date:
    return CalendarQuarter.parse(label).end_date


def previous_year_quarter(label: str) -> str:
    return CalendarQuarter.parse(label).year_ago().label


def trailing_calendar_quarters(today: date, count: int = TRAILING_QUARTERS) -> list[str]:
    """``count`` quarter labels, oldest first, ending with the quarter containing ``today``."""
    quarters: list[str] = []
    cq = CalendarQuarter.containing(today)
    for _ in range(count):
        quarters.append(cq.label)
        cq = cq.previous()
    quarters.reverse()
    return quarters


def find_closest_quarter(
    records: Sequence[QuarterlyFundamental] | None,
    target: date,
    tolerance: timedelta = MATCH_TOLERANCE,
) -> QuarterlyFundamental | None:
    """Record nearest to ``target``, or None when nothing lies within ``tolerance``.

    Equal distances keep the first record encountered.
    """
    if not records:
        return None
    closest = records[0]
    min_diff = abs(closest.date - target)
    for record in records:
        diff = abs(record.date - target)
        if diff < min_diff:
            min_diff = diff
            closest = record
    return closest if min_diff <= tolerance else None


def match_calendar_quarter(
    records: Sequence[QuarterlyFundamental] | None, label: str
) -> QuarterlyFundamental | None:
    return find_closest_quarter(records, calendar_quarter_end(label))


def valid_calendar_quarters(
    companies: Mapping[str, CompanyFixture | None],
    tickers: Iterable[str],
    today: date,
) -> list[str]:
    """Trailing quarters for which at least one of ``tickers`` has a matching record."""
    ticker_list = list(tickers)
    out: list[str] = []
    for label in trailing_calendar_quarters(today):
        target = calendar_quarter_end(label)
        for ticker in ticker_list:
            company = companies.get(ticker)
            if company is None:
                continue
            if find_closest_quarter(company.quarterly_data, target) is not None:
                out.append(label)
                break
    return out
