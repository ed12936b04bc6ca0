"""Per-property booking metrics and week-over-week changes."""

from __future__ import annotations

from dataclasses import dataclass
from typing import Iterable

from hostelpulse.records import Booking, HostelMetrics, WeekRecord

LONG_STAY_NIGHTS = 7
MONTHLY_STAY_NIGHTS = 28


@dataclass(frozen=True)
class MetricChange:
    change: float
    percentage: int
    is_new: bool


def _revenue_parts(booking: Booking) -> tuple[float, float, float]:
    """(gross, net, tax) contributed by one booking: all enriched or all gross."""
    if booking.is_enriched:
        return booking.net_price + booking.tax_amount, booking.net_price, booking.tax_amount
    return booking.gross_price or 0.0, 0.0, 0.0


def aggregate(bookings: Iterable[Booking]) -> HostelMetrics:
    """Summarize one property's bookings for one period."""
    bookings = list(bookings)
    valid = [b for b in bookings if not b.is_cancelled]

    long_stay = [b for b in valid if b.nights is not None and b.nights >= LONG_STAY_NIGHTS]
    monthly = [b for b in long_stay if b.nights >= MONTHLY_STAY_NIGHTS]

    gross = net = tax = 0.0
    for b in valid:
        g, n, t = _revenue_parts(b)
        gross += g
        net += n
        tax += t

    total_nights = sum(max(b.nights or 0, 1) for b in valid)
    lead_times = [b.lead_time_days for b in valid if b.lead_time_days is not None]

    return HostelMetrics(
        total_count=len(bookings),
        cancelled_count=len(bookings) - len(valid),
        valid_count=len(valid),
        gross_revenue=gross,
        net_revenue=net,
        total_tax=tax,
        adr=gross / total_nights if total_nights > 0 else 0.0,
        long_stay_count=len(long_stay),
        monthly_stay_count=len(monthly),
        avg_lead_time_days=sum(lead_times) / len(lead_times) if lead_times else 0.0,
        bookings=bookings,
    )


def metric_change(current: float, previous: float | None) -> MetricChange:
    if not previous:
        return MetricChange(change=current, percentage=100 if current > 0 else 0, is_new=True)
    change = current - previous
    return MetricChange(change=change, percentage=round(change / previous * 100), is_new=False)


def week_over_week(series: list[WeekRecord], index: int, hostel: str, metric: str) -> MetricChange:
    """Change of ``metric`` for ``hostel`` between week ``index`` and the week before it."""
    if index == 0:
        return MetricChange(change=0, percentage=0, is_new=True)

    def value(week: WeekRecord) -> float:
        metrics = week.hostels.get(hostel)
        return getattr(metrics, metric) if metrics is not None else 0

    return metric_change(value(series[index]), value(series[index - 1]))
