"""Persisted per-week, per-hostel metrics."""

from __future__ import annotations

from datetime import datetime, timezone

from sqlalchemy import JSON, DateTime, Float, Integer, String, UniqueConstraint
from sqlalchemy.orm import Mapped, mapped_column

from hostelpulse.database import Base


class WeeklyReport(Base):
    __tablename__ = "weekly_reports"
    __table_args__ = (UniqueConstraint("period_label", "hostel_name", name="uq_week_hostel"),)

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    period_label: Mapped[str] = mapped_column(String(50), nullable=False, index=True)
    period_start: Mapped[datetime] = mapped_column(DateTime, nullable=False, index=True)
    period_end: Mapped[datetime] = mapped_column(DateTime, nullable=False)
    hostel_name: Mapped[str] = mapped_column(String(100), nullable=False)
    total_count: Mapped[int] = mapped_column(Integer, default=0)
    cancelled_count: Mapped[int] = mapped_column(Integer, default=0)
    valid_count: Mapped[int] = mapped_column(Integer, default=0)
    gross_revenue: Mapped[float] = mapped_column(Float, default=0.0)
    net_revenue: Mapped[float] = mapped_column(Float, default=0.0)
    total_tax: Mapped[float] = mapped_column(Float, default=0.0)
    adr: Mapped[float] = mapped_column(Float, default=0.0)
    long_stay_count: Mapped[int] = mapped_column(Integer, default=0)
    monthly_stay_count: Mapped[int] = mapped_column(Integer, default=0)
    avg_lead_time_days: Mapped[float] = mapped_column(Float, default=0.0)
    bookings: Mapped[list] = mapped_column(JSON, default=list)  # Booking.to_dict() rows
    updated_at: Mapped[datetime] = mapped_column(
        DateTime, default=lambda: datetime.now(timezone.utc), onupdate=lambda: datetime.now(timezone.utc)
    )

    def __repr__(self) -> str:
        return f"<WeeklyReport {self.period_label} {self.hostel_name!r} total={self.total_count}>"
