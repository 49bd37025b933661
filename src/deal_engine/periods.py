"""
Period Calculator

Period counts, labels, spreadsheet serial dates and the annual-rate divisor
for each model granularity.
"""
from __future__ import annotations

import calendar
import math
from dataclasses import dataclass
from datetime import date, timedelta
from typing import Optional

from deal_engine.models import Granularity


SERIAL_EPOCH = date(1899, 12, 30)

_DAYS_PER_PERIOD = {
    Granularity.DAILY: 1,
    Granularity.MONTHLY: 30,
    Granularity.QUARTERLY: 90,
    Granularity.YEARLY: 365,
}

_PERIODS_PER_YEAR = {
    Granularity.DAILY: 365,
    Granularity.MONTHLY: 12,
    Granularity.QUARTERLY: 4,
    Granularity.YEARLY: 1,
}

DEFAULT_PERIOD_CAPS: dict[Granularity, Optional[int]] = {
    Granularity.DAILY: 1000,
    Granularity.MONTHLY: None,
    Granularity.QUARTERLY: None,
    Granularity.YEARLY: None,
}


@dataclass(frozen=True)
class Period:
    """One model period (index 0 is the first operating period)."""
    index: int
    label: str
    serial_date: int
    start: date


def period_divisor(granularity: Granularity) -> int:
    """Number of periods per year, used to scale an annual rate."""
    return _PERIODS_PER_YEAR[Granularity(granularity)]


def to_serial_date(value: date) -> int:
    """Spreadsheet serial date (1900 date system)."""
    return (value - SERIAL_EPOCH).days


def _add_months(value: date, months: int) -> date:
    month_index = value.month - 1 + months
    year = value.year + month_index // 12
    month = month_index % 12 + 1
    day = min(value.day, calendar.monthrange(year, month)[1])
    return date(year, month, day)


def period_date(start: date, index: int, granularity: Granularity) -> date:
    """First day of period ``index`` counted from ``start``."""
    granularity = Granularity(granularity)
    if granularity == Granularity.DAILY:
        return start + timedelta(days=index)
    if granularity == Granularity.MONTHLY:
        return _add_months(start, index)
    if granularity == Granularity.QUARTERLY:
        return _add_months(start, index * 3)
    return _add_months(start, index * 12)


def period_label(start: date, index: int, granularity: Granularity) -> str:
    """Header text for a period, e.g. ``Jan 5``, ``Jan 2025``, ``Q1 2025``, ``2025``."""
    granularity = Granularity(granularity)
    when = period_date(start, index, granularity)
    if granularity == Granularity.DAILY:
        return f"{calendar.month_abbr[when.month]} {when.day}"
    if granularity == Granularity.MONTHLY:
        return f"{calendar.month_abbr[when.month]} {when.year}"
    if granularity == Granularity.QUARTERLY:
        return f"Q{(when.month - 1) // 3 + 1} {when.year}"
    return str(when.year)


def period_as_serial_date(start: date, index: int, granularity: Granularity) -> int:
    return to_serial_date(period_date(start, index, granularity))


class PeriodCalculator:
    """Period arithmetic with configurable per-granularity caps."""

    def __init__(self, caps: Optional[dict[Granularity, Optional[int]]] = None):
        self.caps = dict(DEFAULT_PERIOD_CAPS)
        if caps:
            self.caps.update({Granularity(k): v for k, v in caps.items()})

    def count_periods(self, start: date, end: date, granularity: Granularity) -> int:
        """
        Number of periods between two dates.

        Elapsed days are divided by the period length in days and rounded up,
        then capped to bound sheet size.
        """
        granularity = Granularity(granularity)
        days = abs((end - start).days)
        count = math.ceil(days / _DAYS_PER_PERIOD[granularity])
        cap = self.caps.get(granularity)
        if cap is not None:
            count = min(count, cap)
        return count

    @staticmethod
    def labels(start: date, count: int, granularity: Granularity) -> list[str]:
        """Header labels for operating periods 1..count."""
        return [period_label(start, i, granularity) for i in range(count)]

    def periods(self, start: date, end: date, granularity: Granularity) -> list[Period]:
        count = self.count_periods(start, end, granularity)
        return [
            Period(
                index=i,
                label=period_label(start, i, granularity),
                serial_date=period_as_serial_date(start, i, granularity),
                start=period_date(start, i, granularity),
            )
            for i in range(count)
        ]
