"""Persist the week series so it survives restarts."""

from __future__ import annotations

import logging
from collections.abc import Callable
from datetime import datetime

from sqlalchemy.orm import Session

from hostelpulse.database import get_session
from hostelpulse.models.weekly_report import WeeklyReport
from hostelpulse.records import Booking, HostelMetrics, WeekRecord

logger = logging.getLogger(__name__)

_METRIC_FIELDS = (
    "total_count",
    "cancelled_count",
    "valid_count",
    "gross_revenue",
    "net_revenue",
    "total_tax",
    "adr",
    "long_stay_count",
    "monthly_stay_count",
    "avg_lead_time_days",
)


def _metrics_from_row(row: WeeklyReport) -> HostelMetrics:
    metrics = HostelMetrics(**{name: getattr(row, name) for name in _METRIC_FIELDS})
    metrics.bookings = [Booking.from_dict(b) for b in row.bookings or []]
    return metrics


class WeeklyReportStore:
    """One row per (week, hostel). ``save`` upserts; other hostels of the week are untouched."""

    def __init__(self, session_factory: Callable[[], Session] = get_session) -> None:
        self._session_factory = session_factory

    def save(self, week: WeekRecord) -> int:
        """Upsert every hostel of ``week``. Returns the number of rows written."""
        session = self._session_factory()
        try:
            existing = {
                row.hostel_name: row
                for row in session.query(WeeklyReport)
                .filter(WeeklyReport.period_label == week.period_label)
                .all()
            }
            for hostel, metrics in week.hostels.items():
                row = existing.get(hostel)
                if row is None:
                    row = WeeklyReport(period_label=week.period_label, hostel_name=hostel)
                    session.add(row)
                row.period_start = week.period_start
                row.period_end = week.period_end
                for name in _METRIC_FIELDS:
                    setattr(row, name, getattr(metrics, name))
                row.bookings = [b.to_dict() for b in metrics.bookings]
            session.commit()
            logger.info("Saved %d hostel reports for %s", len(week.hostels), week.period_label)
            return len(week.hostels)
        except Exception:
            session.rollback()
            raise
        finally:
            session.close()

    def load(self, start: datetime | None = None, end: datetime | None = None) -> list[WeekRecord]:
        """Rebuild the series, optionally limited to weeks starting within ``[start, end]``."""
        session = self._session_factory()
        try:
            query = session.query(WeeklyReport)
            if start is not None:
                query = query.filter(WeeklyReport.period_start >= start)
            if end is not None:
                query = query.filter(WeeklyReport.period_start <= end)
            rows = query.order_by(WeeklyReport.period_start, WeeklyReport.id).all()

            weeks: dict[str, WeekRecord] = {}
            for row in rows:
                week = weeks.get(row.period_label)
                if week is None:
                    week = weeks[row.period_label] = WeekRecord(
                        period_label=row.period_label,
                        period_start=row.period_start,
                        period_end=row.period_end,
                    )
                week.hostels[row.hostel_name] = _metrics_from_row(row)
            logger.info("Loaded %d weeks from storage", len(weeks))
            return list(weeks.values())
        finally:
            session.close()


class NullStore:
    """Store that keeps nothing. Used when persistence is switched off."""

    def save(self, week: WeekRecord) -> int:
        return 0

    def load(self, start: datetime | None = None, end: datetime | None = None) -> list[WeekRecord]:
        return []
