from hostelpulse.modules.period.engine import (
    Period,
    PeriodConfig,
    detect_week,
    format_label,
    lead_time_days,
    parse_sheet_date,
    period_for,
    validate_week_match,
)

__all__ = [
    "Period",
    "PeriodConfig",
    "detect_week",
    "format_label",
    "lead_time_days",
    "parse_sheet_date",
    "period_for",
    "validate_week_match",
]
