"""Database models."""

from hostelpulse.models.weekly_report import WeeklyReport

__all__ = ["WeeklyReport"]
