"""Reporting period calculation, labels and spreadsheet date parsing."""

from __future__ import annotations

import logging
import re
from dataclasses import dataclass
from datetime import date, datetime, time, timedelta
from typing import Callable, Iterable

from hostelpulse.config import get_section
from hostelpulse.errors import PeriodError
from hostelpulse.records import Booking

logger = logging.getLogger(__name__)

MONTH_ABBR = ("Jan", "Feb", "Mar", "Apr", "May", "Jun", "Jul", "Aug", "Sep", "Oct", "Nov", "Dec")

# Day zero of the 1900 date system as used by spreadsheet exports
EXCEL_EPOCH = datetime(1899, 12, 30)

_DMY_RE = re.compile(r"^(\d{1,2})/(\d{1,2})/(\d{4})$")


@dataclass(frozen=True)
class PeriodConfig:
    type: str = "week"
    week_start_day: int = 1  # 0 = Sunday ... 6 = Saturday
    week_length: int = 7

    @classmethod
    def from_settings(cls) -> PeriodConfig:
        section = get_section("period")
        return cls(
            type=section.get("type", "week"),
            week_start_day=int(section.get("week_start_day", 1)),
            week_length=int(section.get("week_length", 7)),
        )


@dataclass(frozen=True)
class Period:
    start: datetime
    end: datetime

    @property
    def label(self) -> str:
        return format_label(self.start, self.end)


def _to_datetime(value: date | datetime) -> datetime:
    if isinstance(value, datetime):
        return value
    return datetime.combine(value, time.min)


def _week_period(value: datetime, config: PeriodConfig) -> Period:
    # Sunday is 0, matching week_start_day
    day_of_week = (value.weekday() + 1) % 7
    diff = -((day_of_week - config.week_start_day) % 7)
    start = datetime.combine((value + timedelta(days=diff)).date(), time.min)
    end = datetime.combine(
        (start + timedelta(days=config.week_length - 1)).date(),
        time(23, 59, 59, 999000),
    )
    return Period(start=start, end=end)


# Period calculators by config.type. Register month/custom here.
PERIOD_CALCULATORS: dict[str, Callable[[datetime, PeriodConfig], Period]] = {
    "week": _week_period,
}


def period_for(value: date | datetime, config: PeriodConfig | None = None) -> Period:
    """Return the period containing ``value``."""
    config = config or PeriodConfig.from_settings()
    calculator = PERIOD_CALCULATORS.get(config.type)
    if calculator is None:
        raise PeriodError(f"Unsupported period type: {config.type!r}")
    if not 0 <= config.week_start_day <= 6 or config.week_length < 1:
        raise PeriodError(
            f"Invalid period config: week_start_day={config.week_start_day}, "
            f"week_length={config.week_length}"
        )
    return calculator(_to_datetime(value), config)


def format_label(start: date | datetime, end: date | datetime) -> str:
    """Render ``"16 Dec 2024 - 22 Dec 2024"``."""
    def fmt(d: date | datetime) -> str:
        return f"{d.day} {MONTH_ABBR[d.month - 1]} {d.year}"

    return f"{fmt(start)} - {fmt(end)}"


def parse_sheet_date(value: object) -> date | None:
    """Parse a date cell from a spreadsheet, pasted table or API payload.

    Accepts spreadsheet serial numbers, date/datetime objects, ``D/M/YYYY``,
    ``YYYY-MM-DD`` and ``YYYY-MM-DD HH:MM:SS``. Anything else gives None.
    """
    if value is None or isinstance(value, bool):
        return None
    if isinstance(value, datetime):
        return value.date()
    if isinstance(value, date):
        return value
    if isinstance(value, (int, float)):
        if value <= 0:
            return None
        return (EXCEL_EPOCH + timedelta(days=float(value))).date()

    text = str(value).strip()
    if not text:
        return None
    match = _DMY_RE.match(text)
    if match:
        day, month, year = (int(g) for g in match.groups())
        try:
            return date(year, month, day)
        except ValueError:
            return None
    for fmt in ("%Y-%m-%d %H:%M:%S", "%Y-%m-%d"):
        try:
            return datetime.strptime(text, fmt).date()
        except ValueError:
            continue
    return None


def lead_time_days(booking_date: date | None, checkin_date: date | None) -> int | None:
    """Whole days between booking creation and check-in. May be negative."""
    if booking_date is None or checkin_date is None:
        return None
    return (checkin_date - booking_date).days


def detect_week(bookings: Iterable[Booking], config: PeriodConfig | None = None) -> Period | None:
    """Period containing the earliest booking date, or None if there are no dates."""
    dates = sorted(b.booking_date for b in bookings if b.booking_date is not None)
    if not dates:
        return None
    return period_for(dates[0], config)


def validate_week_match(
    bookings: Iterable[Booking], expected_label: str, config: PeriodConfig | None = None
) -> list[str]:
    """Warn when the bookings look like they belong to a different week."""
    detected = detect_week(bookings, config)
    warnings: list[str] = []
    if detected and expected_label and detected.label != expected_label:
        warnings.append(
            f"Data appears to be from {detected.label} but you selected {expected_label}"
        )
        logger.warning("Week mismatch: detected %s, selected %s", detected.label, expected_label)
    return warnings
