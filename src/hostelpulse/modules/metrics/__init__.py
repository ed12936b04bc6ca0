from hostelpulse.modules.metrics.aggregator import (
    LONG_STAY_NIGHTS,
    MONTHLY_STAY_NIGHTS,
    MetricChange,
    aggregate,
    metric_change,
    week_over_week,
)

__all__ = [
    "LONG_STAY_NIGHTS",
    "MONTHLY_STAY_NIGHTS",
    "MetricChange",
    "aggregate",
    "metric_change",
    "week_over_week",
]
