"""Cloudbeds API payloads → canonical bookings and pricing detail."""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Any

from hostelpulse.errors import ParseError
from hostelpulse.modules.normalizers.common import ParseResult, parse_price
from hostelpulse.modules.period.engine import lead_time_days, parse_sheet_date
from hostelpulse.records import Booking, is_direct_booking

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class PricingDetail:
    total: float
    net_price: float
    tax_amount: float


def _required_date(record: dict[str, Any], key: str):
    parsed = parse_sheet_date(record[key])
    if parsed is None:
        raise ValueError(f"invalid {key}: {record[key]!r}")
    return parsed


def transform_reservation(record: dict[str, Any]) -> Booking:
    """Map one getReservations record. Raises on missing or malformed fields."""
    # dateCreated carries a time; only the date part counts for lead time
    created = _required_date(record, "dateCreated")
    start = _required_date(record, "startDate")
    end = _required_date(record, "endDate")

    return Booking(
        reservation_id=str(record["reservationID"]),
        booking_date=created,
        checkin_date=start,
        checkout_date=end,
        nights=max(0, (end - start).days),
        status=str(record.get("status") or ""),
        source=str(record.get("sourceName") or ""),
        gross_price=parse_price(record.get("balance")),
        lead_time_days=lead_time_days(created, start),
        origin="api",
    )


def normalize_reservations(records: list[dict[str, Any]]) -> ParseResult:
    """Transform a page of API records, dropping the ones that fail to map."""
    result = ParseResult()
    sources: set[str] = set()

    for record in records:
        try:
            booking = transform_reservation(record)
        except (KeyError, TypeError, ValueError, AttributeError) as exc:
            reservation_id = record.get("reservationID", "unknown") if isinstance(record, dict) else "unknown"
            logger.warning("Dropping malformed reservation %s: %s", reservation_id, exc)
            result.skipped += 1
            continue

        sources.add(booking.source)
        if not is_direct_booking(booking.source):
            result.filtered += 1
            continue
        result.bookings.append(booking)

    logger.info(
        "API: %d direct bookings of %d records (sources: %s)",
        len(result.bookings), len(records), sorted(sources),
    )
    return result


def _optional_amount(value: Any) -> float | None:
    if value is None or (isinstance(value, str) and not value.strip()):
        return None
    try:
        return float(value)
    except (TypeError, ValueError):
        return None


def extract_pricing(detail: dict[str, Any]) -> PricingDetail:
    """Pull total, net and tax out of a getReservation payload."""
    breakdown = detail.get("balanceDetailed") or {}
    net_price = _optional_amount(breakdown.get("subTotal"))
    tax_amount = _optional_amount(breakdown.get("taxesFees"))
    if net_price is None or tax_amount is None:
        raise ParseError(
            f"Reservation {detail.get('reservationID', 'unknown')} has no net/tax breakdown"
        )
    return PricingDetail(
        total=_optional_amount(detail.get("total")) or 0.0,
        net_price=net_price,
        tax_amount=tax_amount,
    )
