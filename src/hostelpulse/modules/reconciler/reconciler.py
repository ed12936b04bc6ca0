"""Merge newly computed weeks into the chronological week series."""

from __future__ import annotations

import logging
from dataclasses import dataclass, field

from hostelpulse.records import HostelMetrics, WeekRecord

logger = logging.getLogger(__name__)

APPENDED = "appended"
MERGED = "merged"
CONFIRMATION_REQUIRED = "confirmation_required"


@dataclass(frozen=True)
class HostelSnapshot:
    name: str
    total_count: int
    valid_count: int


@dataclass
class WeekCollision:
    period_label: str
    existing: list[HostelSnapshot] = field(default_factory=list)
    overlapping: list[str] = field(default_factory=list)


@dataclass
class ReconcileOutcome:
    status: str
    series: list[WeekRecord]
    collision: WeekCollision | None = None

    @property
    def applied(self) -> bool:
        return self.status != CONFIRMATION_REQUIRED


def sort_series(series: list[WeekRecord]) -> list[WeekRecord]:
    return sorted(series, key=lambda w: w.period_start)


def find_week(series: list[WeekRecord], period_label: str) -> WeekRecord | None:
    for week in series:
        if week.period_label == period_label:
            return week
    return None


def find_collision(series: list[WeekRecord], week: WeekRecord) -> WeekCollision | None:
    """Describe what an import of ``week`` would overwrite, or None if nothing.

    Only hostels already stored for the same label count; adding a new hostel
    to an existing week is not a collision.
    """
    existing = find_week(series, week.period_label)
    if existing is None:
        return None
    overlapping = [name for name in week.hostels if name in existing.hostels]
    if not overlapping:
        return None
    return WeekCollision(
        period_label=week.period_label,
        existing=[
            HostelSnapshot(name=name, total_count=m.total_count, valid_count=m.valid_count)
            for name, m in existing.hostels.items()
        ],
        overlapping=overlapping,
    )


def reconcile(series: list[WeekRecord], week: WeekRecord, confirmed: bool = False) -> ReconcileOutcome:
    """Merge ``week`` into ``series`` and return the new sorted series.

    Hostels in ``week`` replace stored ones key by key; hostels it doesn't
    mention are left untouched. Overwriting requires ``confirmed``. The input
    list is not modified.
    """
    collision = find_collision(series, week)
    if collision is not None and not confirmed:
        logger.info(
            "Week %s already has data for %s; confirmation required",
            week.period_label, ", ".join(collision.overlapping),
        )
        return ReconcileOutcome(status=CONFIRMATION_REQUIRED, series=list(series), collision=collision)

    existing = find_week(series, week.period_label)
    if existing is None:
        logger.info("Adding week %s (%d hostels)", week.period_label, len(week.hostels))
        new_week = WeekRecord(
            period_label=week.period_label,
            period_start=week.period_start,
            period_end=week.period_end,
            hostels=dict(week.hostels),
        )
        return ReconcileOutcome(status=APPENDED, series=sort_series([*series, new_week]), collision=collision)

    logger.info("Merging %s into week %s", ", ".join(week.hostels), week.period_label)
    merged = WeekRecord(
        period_label=existing.period_label,
        period_start=existing.period_start,
        period_end=existing.period_end,
        hostels={**existing.hostels, **week.hostels},
    )
    new_series = [merged if w is existing else w for w in series]
    return ReconcileOutcome(status=MERGED, series=sort_series(new_series), collision=collision)


def replace_hostel_metrics(
    series: list[WeekRecord], period_label: str, hostel: str, metrics: HostelMetrics
) -> None:
    """Swap one hostel's metrics in place. Used for incremental enrichment updates."""
    week = find_week(series, period_label)
    if week is None:
        raise KeyError(f"Week {period_label!r} not in series")
    week.hostels[hostel] = metrics
