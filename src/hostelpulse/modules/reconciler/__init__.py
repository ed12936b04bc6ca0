from hostelpulse.modules.reconciler.reconciler import (
    APPENDED,
    CONFIRMATION_REQUIRED,
    MERGED,
    HostelSnapshot,
    ReconcileOutcome,
    WeekCollision,
    find_collision,
    find_week,
    reconcile,
    replace_hostel_metrics,
    sort_series,
)

__all__ = [
    "APPENDED",
    "CONFIRMATION_REQUIRED",
    "MERGED",
    "HostelSnapshot",
    "ReconcileOutcome",
    "WeekCollision",
    "find_collision",
    "find_week",
    "reconcile",
    "replace_hostel_metrics",
    "sort_series",
]
