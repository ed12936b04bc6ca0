"""Sequential multi-property fetch of one week's reservations."""

from __future__ import annotations

import asyncio
import logging
import time
from dataclasses import dataclass, field
from typing import Awaitable, Callable

from hostelpulse.config import get_properties, get_section
from hostelpulse.errors import HostelPulseError
from hostelpulse.events import Event, EventBus, EventType, event_bus
from hostelpulse.modules.cloudbeds.client import CloudbedsClient
from hostelpulse.modules.metrics.aggregator import aggregate
from hostelpulse.modules.normalizers.common import ParseResult
from hostelpulse.modules.normalizers.remote import normalize_reservations
from hostelpulse.modules.period.engine import Period
from hostelpulse.progress import ERROR, LOADING, SUCCESS, JobProgress
from hostelpulse.records import HostelMetrics

logger = logging.getLogger(__name__)

Sleep = Callable[[float], Awaitable[None]]


@dataclass
class BatchFetchResult:
    period: Period
    succeeded: dict[str, HostelMetrics] = field(default_factory=dict)
    failed: dict[str, str] = field(default_factory=dict)
    skipped: dict[str, int] = field(default_factory=dict)
    filtered: dict[str, int] = field(default_factory=dict)
    cancelled: bool = False
    progress: JobProgress | None = None

    def summary(self) -> str:
        total = self.progress.total if self.progress else len(self.succeeded) + len(self.failed)
        text = f"{len(self.succeeded)}/{total} properties fetched for {self.period.label}"
        if self.failed:
            reasons = "; ".join(f"{name}: {reason}" for name, reason in self.failed.items())
            text += f", {len(self.failed)} failed ({reasons})"
        if self.cancelled:
            text += ", cancelled"
        return text


class BatchFetchOrchestrator:
    """Fetches one period for many properties, one request at a time.

    A property that fails is recorded and skipped; the rest still run.
    Create one orchestrator per run.
    """

    def __init__(
        self,
        client: CloudbedsClient,
        properties: dict[str, str] | None = None,
        *,
        delay_seconds: float | None = None,
        clear_delay_seconds: float | None = None,
        bus: EventBus | None = None,
        sleep: Sleep = asyncio.sleep,
    ) -> None:
        config = get_section("batch_fetch")
        self._client = client
        self._properties = properties if properties is not None else get_properties()
        self._delay = float(delay_seconds if delay_seconds is not None else config.get("delay_seconds", 0.5))
        self._clear_delay = float(
            clear_delay_seconds if clear_delay_seconds is not None else config.get("progress_clear_seconds", 2)
        )
        self._bus = bus or event_bus
        self._sleep = sleep
        self._cancelled = False
        self.progress: JobProgress | None = None
        self.clear_task: asyncio.Task | None = None

    @property
    def cancelled(self) -> bool:
        return self._cancelled

    def cancel(self) -> None:
        """Stop before the next property. The request in flight is allowed to finish."""
        logger.info("Batch fetch cancellation requested")
        self._cancelled = True

    def _publish_progress(self) -> None:
        if self.progress is not None:
            self._bus.publish(Event(
                event_type=EventType.BATCH_PROGRESS,
                data={"progress": self.progress.snapshot()},
            ))

    async def _fetch_one(self, property_id: str, period: Period) -> ParseResult:
        records = await self._client.get_reservations(property_id, period.start.date(), period.end.date())
        return normalize_reservations(records)

    async def run(self, period: Period) -> BatchFetchResult:
        names = list(self._properties)
        self.progress = JobProgress.for_keys(names)
        result = BatchFetchResult(period=period)
        logger.info("Batch fetch of %d properties for %s", len(names), period.label)
        self._publish_progress()

        for i, name in enumerate(names):
            if self._cancelled:
                logger.info("Batch fetch cancelled after %d/%d properties", i, len(names))
                result.cancelled = True
                break

            item = self.progress.item(name)
            item.status = LOADING
            self.progress.current = i + 1
            self._publish_progress()

            started = time.monotonic()
            try:
                parsed = await self._fetch_one(self._properties[name], period)
            except HostelPulseError as exc:
                item.status, item.error = ERROR, exc.message
                result.failed[name] = exc.message
                logger.warning("[%d/%d] %s failed: %s", i + 1, len(names), name, exc.message)
            except Exception as exc:
                item.status, item.error = ERROR, str(exc)
                result.failed[name] = str(exc)
                logger.exception("[%d/%d] %s failed unexpectedly", i + 1, len(names), name)
            else:
                metrics = aggregate(parsed.bookings)
                item.status = SUCCESS
                item.booking_count = metrics.total_count
                item.skipped, item.filtered = parsed.skipped, parsed.filtered
                result.succeeded[name] = metrics
                result.skipped[name] = parsed.skipped
                result.filtered[name] = parsed.filtered
                logger.info(
                    "[%d/%d] %s: %d bookings, %d skipped, %d non-direct",
                    i + 1, len(names), name, metrics.total_count, parsed.skipped, parsed.filtered,
                )
            finally:
                item.elapsed_seconds = time.monotonic() - started
                self._publish_progress()

            if item.status == SUCCESS and i < len(names) - 1:
                await self._sleep(self._delay)

        result.progress = self.progress.snapshot()
        logger.info("Batch fetch finished: %s", result.summary())
        self._bus.publish(Event(
            event_type=EventType.BATCH_COMPLETED,
            data={
                "period_label": period.label,
                "succeeded": list(result.succeeded),
                "failed": dict(result.failed),
                "skipped": dict(result.skipped),
                "cancelled": result.cancelled,
            },
        ))
        self.clear_task = asyncio.get_running_loop().create_task(self._clear_progress_later())
        return result

    async def _clear_progress_later(self) -> None:
        """Keep the final state visible for a moment, then drop it."""
        await self._sleep(self._clear_delay)
        self.progress = None
        self._bus.publish(Event(event_type=EventType.PROGRESS_CLEARED, data={"job": "batch_fetch"}))
