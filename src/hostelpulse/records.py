"""Canonical in-memory records shared by every pipeline stage."""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import date, datetime
from typing import Any

from hostelpulse.config import get_direct_booking_markers


def is_cancelled(status: str | None) -> bool:
    return "cancel" in (status or "").lower()


def is_direct_booking(source: str | None, markers: list[str] | None = None) -> bool:
    """True when the booking came through the property's own website."""
    source_lower = (source or "").lower()
    return any(marker in source_lower for marker in (markers or get_direct_booking_markers()))


def _iso(value: date | datetime | None) -> str | None:
    return value.isoformat() if value is not None else None


@dataclass
class Booking:
    booking_date: date
    checkin_date: date
    checkout_date: date | None = None
    reservation_id: str | None = None
    nights: int | None = None
    status: str = ""
    source: str = ""
    gross_price: float = 0.0
    net_price: float | None = None
    tax_amount: float | None = None
    lead_time_days: int | None = None
    origin: str = "api"  # spreadsheet, paste, api
    enriched_at: datetime | None = None

    @property
    def is_cancelled(self) -> bool:
        return is_cancelled(self.status)

    @property
    def is_enriched(self) -> bool:
        return self.net_price is not None and self.tax_amount is not None

    def apply_pricing(self, net_price: float, tax_amount: float, total: float, enriched_at: datetime) -> None:
        """Set enriched pricing. Only the enrichment job calls this."""
        self.net_price = net_price
        self.tax_amount = tax_amount
        if total > 0:
            self.gross_price = total
        self.enriched_at = enriched_at

    def to_dict(self) -> dict[str, Any]:
        return {
            "reservation_id": self.reservation_id,
            "booking_date": _iso(self.booking_date),
            "checkin_date": _iso(self.checkin_date),
            "checkout_date": _iso(self.checkout_date),
            "nights": self.nights,
            "status": self.status,
            "source": self.source,
            "gross_price": self.gross_price,
            "net_price": self.net_price,
            "tax_amount": self.tax_amount,
            "lead_time_days": self.lead_time_days,
            "origin": self.origin,
            "enriched_at": _iso(self.enriched_at),
        }

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> Booking:
        checkout = data.get("checkout_date")
        enriched_at = data.get("enriched_at")
        return cls(
            reservation_id=data.get("reservation_id"),
            booking_date=date.fromisoformat(data["booking_date"]),
            checkin_date=date.fromisoformat(data["checkin_date"]),
            checkout_date=date.fromisoformat(checkout) if checkout else None,
            nights=data.get("nights"),
            status=data.get("status") or "",
            source=data.get("source") or "",
            gross_price=float(data.get("gross_price") or 0.0),
            net_price=data.get("net_price"),
            tax_amount=data.get("tax_amount"),
            lead_time_days=data.get("lead_time_days"),
            origin=data.get("origin") or "api",
            enriched_at=datetime.fromisoformat(enriched_at) if enriched_at else None,
        )


@dataclass
class HostelMetrics:
    total_count: int = 0
    cancelled_count: int = 0
    valid_count: int = 0
    gross_revenue: float = 0.0
    net_revenue: float = 0.0
    total_tax: float = 0.0
    adr: float = 0.0
    long_stay_count: int = 0
    monthly_stay_count: int = 0
    avg_lead_time_days: float = 0.0
    bookings: list[Booking] = field(default_factory=list)

    def to_dict(self, include_bookings: bool = True) -> dict[str, Any]:
        data: dict[str, Any] = {
            "total_count": self.total_count,
            "cancelled_count": self.cancelled_count,
            "valid_count": self.valid_count,
            "gross_revenue": round(self.gross_revenue, 2),
            "net_revenue": round(self.net_revenue, 2),
            "total_tax": round(self.total_tax, 2),
            "adr": round(self.adr, 2),
            "long_stay_count": self.long_stay_count,
            "monthly_stay_count": self.monthly_stay_count,
            "avg_lead_time_days": round(self.avg_lead_time_days, 1),
        }
        if include_bookings:
            data["bookings"] = [b.to_dict() for b in self.bookings]
        return data


@dataclass
class WeekRecord:
    period_label: str
    period_start: datetime
    period_end: datetime
    hostels: dict[str, HostelMetrics] = field(default_factory=dict)

    def to_dict(self, include_bookings: bool = False) -> dict[str, Any]:
        return {
            "period_label": self.period_label,
            "period_start": self.period_start.isoformat(),
            "period_end": self.period_end.isoformat(),
            "hostels": {
                name: metrics.to_dict(include_bookings=include_bookings)
                for name, metrics in self.hostels.items()
            },
        }
