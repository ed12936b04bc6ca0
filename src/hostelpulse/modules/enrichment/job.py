"""Per-booking net price / tax backfill for bookings fetched without pricing detail."""

from __future__ import annotations

import asyncio
import logging
import time
from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Awaitable, Callable

from hostelpulse.config import get_properties, get_section
from hostelpulse.errors import HostelPulseError
from hostelpulse.events import Event, EventBus, EventType, event_bus
from hostelpulse.modules.cloudbeds.client import CloudbedsClient
from hostelpulse.modules.metrics.aggregator import aggregate
from hostelpulse.modules.normalizers.remote import extract_pricing
from hostelpulse.modules.reconciler.reconciler import find_week, replace_hostel_metrics
from hostelpulse.progress import ERROR, LOADING, SUCCESS, JobProgress
from hostelpulse.records import Booking, WeekRecord

logger = logging.getLogger(__name__)

Sleep = Callable[[float], Awaitable[None]]


@dataclass(frozen=True)
class EnrichmentTarget:
    period_label: str
    hostel: str
    property_id: str
    reservation_id: str

    @property
    def key(self) -> str:
        return f"{self.period_label}/{self.hostel}/{self.reservation_id}"


@dataclass
class EnrichmentResult:
    succeeded: list[str] = field(default_factory=list)
    failed: dict[str, str] = field(default_factory=dict)
    cancelled: bool = False
    progress: JobProgress | None = None

    def summary(self) -> str:
        text = f"{len(self.succeeded)} bookings enriched"
        if self.failed:
            text += f", {len(self.failed)} failed"
        if self.cancelled:
            text += " (cancelled)"
        return text


def find_candidates(series: list[WeekRecord], properties: dict[str, str]) -> list[EnrichmentTarget]:
    """Bookings with an external id, no enriched pricing yet, and a known property id."""
    targets: list[EnrichmentTarget] = []
    seen: set[tuple[str, str, str]] = set()
    for week in series:
        for hostel, metrics in week.hostels.items():
            property_id = properties.get(hostel)
            if not property_id:
                continue
            for booking in metrics.bookings:
                if not booking.reservation_id or booking.is_enriched:
                    continue
                ident = (week.period_label, hostel, booking.reservation_id)
                if ident in seen:
                    continue
                seen.add(ident)
                targets.append(EnrichmentTarget(
                    period_label=week.period_label,
                    hostel=hostel,
                    property_id=property_id,
                    reservation_id=booking.reservation_id,
                ))
    return targets


class EnrichmentJob:
    """Walks the series and fetches pricing detail for every candidate booking.

    Calls are strictly sequential with ``delay_seconds`` between them. Each
    success is written into the series right away. ``cancel()`` takes effect
    at the next iteration.
    """

    def __init__(
        self,
        client: CloudbedsClient,
        series: list[WeekRecord],
        properties: dict[str, str] | None = None,
        *,
        delay_seconds: float | None = None,
        bus: EventBus | None = None,
        sleep: Sleep = asyncio.sleep,
    ) -> None:
        self._client = client
        self._series = series
        self._properties = properties if properties is not None else get_properties()
        self._delay = float(
            delay_seconds if delay_seconds is not None else get_section("enrichment").get("delay_seconds", 10)
        )
        self._bus = bus or event_bus
        self._sleep = sleep
        self._cancelled = False
        self.progress: JobProgress | None = None

    @property
    def cancelled(self) -> bool:
        return self._cancelled

    def cancel(self) -> None:
        logger.info("Enrichment cancellation requested")
        self._cancelled = True

    def _publish_progress(self) -> None:
        if self.progress is not None:
            self._bus.publish(Event(
                event_type=EventType.ENRICHMENT_PROGRESS,
                data={"progress": self.progress.snapshot()},
            ))

    def _locate(self, target: EnrichmentTarget) -> list[Booking]:
        """Every un-enriched booking carrying the target id (multi-room rows share one)."""
        # Look the bookings up again: the week may have been re-imported meanwhile
        week = find_week(self._series, target.period_label)
        metrics = week.hostels.get(target.hostel) if week else None
        if metrics is None:
            return []
        return [
            b for b in metrics.bookings
            if b.reservation_id == target.reservation_id and not b.is_enriched
        ]

    async def _enrich_one(self, target: EnrichmentTarget) -> None:
        detail = await self._client.get_reservation(target.property_id, target.reservation_id)
        pricing = extract_pricing(detail)

        bookings = self._locate(target)
        if not bookings:
            logger.warning("Booking %s left the series during enrichment; skipping update", target.key)
            return
        # The detail covers the whole reservation; rows sharing the id split it evenly
        share = len(bookings)
        enriched_at = datetime.now(timezone.utc)
        for booking in bookings:
            booking.apply_pricing(
                net_price=pricing.net_price / share,
                tax_amount=pricing.tax_amount / share,
                total=pricing.total / share,
                enriched_at=enriched_at,
            )
        week = find_week(self._series, target.period_label)
        replace_hostel_metrics(
            self._series, target.period_label, target.hostel, aggregate(week.hostels[target.hostel].bookings)
        )
        self._bus.publish(Event(
            event_type=EventType.BOOKING_ENRICHED,
            data={
                "period_label": target.period_label,
                "hostel": target.hostel,
                "reservation_id": target.reservation_id,
                "net_price": pricing.net_price,
                "tax_amount": pricing.tax_amount,
            },
        ))

    async def run(self) -> EnrichmentResult:
        targets = find_candidates(self._series, self._properties)
        self.progress = JobProgress.for_keys([t.key for t in targets])
        result = EnrichmentResult()
        if not targets:
            logger.info("Nothing to enrich")
        else:
            logger.info("Enriching %d bookings", len(targets))
        self._publish_progress()

        for i, target in enumerate(targets):
            if self._cancelled:
                logger.info("Enrichment cancelled after %d/%d bookings", i, len(targets))
                result.cancelled = True
                break

            item = self.progress.item(target.key)
            item.status = LOADING
            self.progress.current = i + 1
            self._publish_progress()

            started = time.monotonic()
            try:
                await self._enrich_one(target)
            except HostelPulseError as exc:
                item.status, item.error = ERROR, exc.message
                result.failed[target.key] = exc.message
                logger.warning("[%d/%d] %s failed: %s", i + 1, len(targets), target.key, exc.message)
            except Exception as exc:
                item.status, item.error = ERROR, str(exc)
                result.failed[target.key] = str(exc)
                logger.exception("[%d/%d] %s failed unexpectedly", i + 1, len(targets), target.key)
            else:
                item.status = SUCCESS
                result.succeeded.append(target.key)
            finally:
                item.elapsed_seconds = time.monotonic() - started
                self._publish_progress()

            if i < len(targets) - 1 and not self._cancelled:
                await self._sleep(self._delay)

        result.progress = self.progress.snapshot()
        logger.info("Enrichment finished: %s", result.summary())
        self._bus.publish(Event(
            event_type=EventType.ENRICHMENT_COMPLETED,
            data={
                "succeeded": len(result.succeeded),
                "failed": dict(result.failed),
                "cancelled": result.cancelled,
            },
        ))
        self.progress = None
        return result
