"""Period calculator — calendar month boundaries in UTC."""

import calendar
import re
from dataclasses import dataclass
from datetime import date, datetime, timezone
from typing import Optional

import pytz

from fulfillment.config import get_settings
from fulfillment.core.exceptions import InvalidPeriod

settings = get_settings()

PERIOD_PATTERN = re.compile(r"^(\d{4})-(\d{2})$")


@dataclass(frozen=True)
class BillingPeriod:
    year: int
    month: int
    start: datetime
    end: datetime  # inclusive, last microsecond of the month
    days_in_month: int

    @property
    def label(self) -> str:
        return f"{self.year:04d}-{self.month:02d}"

    @property
    def first_day(self) -> date:
        return self.start.date()

    @property
    def last_day(self) -> date:
        return self.end.date()

    def contains(self, day: date) -> bool:
        return self.first_day <= day <= self.last_day


def calculate_period(year: int, month: int) -> BillingPeriod:
    """Return the UTC interval of a calendar month."""
    if not isinstance(year, int) or not isinstance(month, int) or isinstance(month, bool):
        raise InvalidPeriod(details={"year": year, "month": month})
    if not 1 <= month <= 12:
        raise InvalidPeriod(f"Mês inválido: {month}. Use valores entre 1 e 12.", {"year": year, "month": month})
    if not 1 <= year <= 9999:
        raise InvalidPeriod(f"Ano inválido: {year}.", {"year": year, "month": month})

    days_in_month = calendar.monthrange(year, month)[1]
    start = datetime(year, month, 1, tzinfo=timezone.utc)
    end = datetime(year, month, days_in_month, 23, 59, 59, 999999, tzinfo=timezone.utc)
    return BillingPeriod(year, month, start, end, days_in_month)


def parse_period(value: str) -> BillingPeriod:
    """Parse a YYYY-MM label."""
    match = PERIOD_PATTERN.match(value or "")
    if not match:
        raise InvalidPeriod(f"Período inválido: {value!r}. Use o formato YYYY-MM.", {"period": value})
    return calculate_period(int(match.group(1)), int(match.group(2)))


def due_date(period: BillingPeriod, day: Optional[int] = None) -> date:
    """Due date falls on a fixed day of the month after the period."""
    day = day or settings.INVOICE_DUE_DAY
    if period.month == 12:
        year, month = period.year + 1, 1
    else:
        year, month = period.year, period.month + 1
    return date(year, month, min(day, calendar.monthrange(year, month)[1]))


def current_period(now: Optional[datetime] = None) -> str:
    """Current YYYY-MM in the configured local timezone."""
    tz = pytz.timezone(settings.TIMEZONE)
    now = now.astimezone(tz) if now else datetime.now(tz)
    return f"{now.year:04d}-{now.month:02d}"
