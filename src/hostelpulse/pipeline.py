"""Headless analytics session: import, fetch, enrich, summarize and persist the week series."""

from __future__ import annotations

import asyncio
import logging
from collections.abc import Callable, Iterable
from dataclasses import dataclass, field
from datetime import date, datetime
from pathlib import Path
from typing import Any

from sqlalchemy.exc import SQLAlchemyError

from hostelpulse.config import get_properties
from hostelpulse.errors import ClassificationError, ParseError, PeriodError, ReconciliationConflict
from hostelpulse.events import Event, EventBus, EventType, event_bus
from hostelpulse.modules.batch import BatchFetchOrchestrator, BatchFetchResult
from hostelpulse.modules.cloudbeds import CloudbedsClient
from hostelpulse.modules.enrichment import EnrichmentJob, EnrichmentResult
from hostelpulse.modules.metrics import aggregate
from hostelpulse.modules.normalizers import (
    detect_property,
    parse_pasted_table,
    parse_spreadsheet_rows,
    read_workbook_rows,
)
from hostelpulse.modules.period import Period, detect_week, period_for, validate_week_match
from hostelpulse.modules.reconciler import WeekCollision, find_collision, find_week, reconcile
from hostelpulse.modules.storage import NullStore
from hostelpulse.modules.summary import NarrativeSummarizer, SummaryResult
from hostelpulse.records import Booking, HostelMetrics, WeekRecord

logger = logging.getLogger(__name__)

WORKBOOK_SUFFIXES = (".xlsx", ".xlsm")


@dataclass
class ImportReport:
    period_label: str
    hostels: list[str]
    booking_count: int
    status: str
    skipped: int = 0
    filtered: int = 0
    warnings: list[str] = field(default_factory=list)


class AnalyticsSession:
    """Owns the in-memory week series and runs every pipeline operation against it.

    ``series`` is a single list object for the lifetime of the session; jobs
    that hold a reference to it see every later import.
    """

    def __init__(
        self,
        series: list[WeekRecord] | None = None,
        store: Any = None,
        client_factory: Callable[[], CloudbedsClient] | None = None,
        summarizer: NarrativeSummarizer | None = None,
        bus: EventBus | None = None,
        properties: dict[str, str] | None = None,
        sleep: Callable[[float], Any] = asyncio.sleep,
    ) -> None:
        self.series: list[WeekRecord] = list(series or [])
        self._store = store if store is not None else NullStore()
        self._client_factory = client_factory or CloudbedsClient
        self._summarizer = summarizer
        self._bus = bus or event_bus
        self._properties = properties if properties is not None else get_properties()
        self._sleep = sleep
        self.batch: BatchFetchOrchestrator | None = None
        self.enrichment: EnrichmentJob | None = None

    # --- Period / reconciliation helpers ---

    def _resolve_period(self, bookings: Iterable[Booking], week_start: date | datetime | None) -> Period:
        if week_start is not None:
            return period_for(week_start)
        period = detect_week(bookings)
        if period is None:
            raise PeriodError()
        return period

    def check_collision(self, week: WeekRecord) -> WeekCollision | None:
        return find_collision(self.series, week)

    def _apply(self, week: WeekRecord, confirm: bool) -> str:
        outcome = reconcile(self.series, week, confirmed=confirm)
        if not outcome.applied:
            raise ReconciliationConflict(outcome.collision)
        self.series[:] = outcome.series
        self._bus.publish(Event(
            event_type=EventType.WEEK_RECONCILED,
            data={
                "period_label": week.period_label,
                "hostels": list(week.hostels),
                "status": outcome.status,
            },
        ))
        stored = find_week(self.series, week.period_label)
        if stored is not None:
            self._persist(stored)
        return outcome.status

    def _persist(self, week: WeekRecord) -> None:
        try:
            self._store.save(week)
        except SQLAlchemyError:
            logger.exception("Failed to persist week %s; keeping it in memory only", week.period_label)

    # --- Imports ---

    def import_spreadsheet(
        self,
        rows: list[list[Any]],
        hostel: str,
        week_start: date | datetime | None = None,
        confirm: bool = False,
    ) -> ImportReport:
        """Import one hostel's spreadsheet rows (header first) into its week."""
        parsed = parse_spreadsheet_rows(rows)
        period = self._resolve_period(parsed.bookings, week_start)
        warnings = validate_week_match(parsed.bookings, period.label) if week_start is not None else []
        week = WeekRecord(
            period_label=period.label,
            period_start=period.start,
            period_end=period.end,
            hostels={hostel: aggregate(parsed.bookings)},
        )
        status = self._apply(week, confirm)
        return ImportReport(
            period_label=period.label,
            hostels=[hostel],
            booking_count=len(parsed.bookings),
            status=status,
            skipped=parsed.skipped,
            filtered=parsed.filtered,
            warnings=warnings,
        )

    def import_workbooks(
        self,
        paths: Iterable[str | Path],
        week_start: date | datetime | None = None,
        confirm: bool = False,
    ) -> ImportReport:
        """Import a set of workbooks, one per hostel, named after the file stem, into one week."""
        workbooks = [Path(p) for p in paths if Path(p).suffix.lower() in WORKBOOK_SUFFIXES]
        if not workbooks:
            raise ParseError("No Excel files found")

        hostels: dict[str, HostelMetrics] = {}
        skipped = filtered = 0
        for path in workbooks:
            # One unusable workbook aborts the batch before anything is merged
            try:
                parsed = parse_spreadsheet_rows(read_workbook_rows(path))
            except ParseError as exc:
                raise ParseError(f"{path.name}: {exc.message}") from exc
            hostels[path.stem] = aggregate(parsed.bookings)
            skipped += parsed.skipped
            filtered += parsed.filtered
            logger.info("Workbook %s: %d direct bookings", path.name, len(parsed.bookings))

        all_bookings = [b for metrics in hostels.values() for b in metrics.bookings]
        period = self._resolve_period(all_bookings, week_start)
        warnings = validate_week_match(all_bookings, period.label) if week_start is not None else []
        week = WeekRecord(
            period_label=period.label,
            period_start=period.start,
            period_end=period.end,
            hostels=hostels,
        )
        status = self._apply(week, confirm)
        return ImportReport(
            period_label=period.label,
            hostels=list(hostels),
            booking_count=len(all_bookings),
            status=status,
            skipped=skipped,
            filtered=filtered,
            warnings=warnings,
        )

    def import_pasted(
        self,
        text: str,
        hostel: str | None = None,
        week_start: date | datetime | None = None,
        confirm: bool = False,
    ) -> ImportReport:
        """Import a pasted reservations table. The property is detected from the data first."""
        name = detect_property(text, self._properties) or hostel
        if not name:
            raise ClassificationError()

        parsed = parse_pasted_table(text)
        period = self._resolve_period(parsed.bookings, week_start)
        warnings = validate_week_match(parsed.bookings, period.label) if week_start is not None else []
        week = WeekRecord(
            period_label=period.label,
            period_start=period.start,
            period_end=period.end,
            hostels={name: aggregate(parsed.bookings)},
        )
        status = self._apply(week, confirm)
        return ImportReport(
            period_label=period.label,
            hostels=[name],
            booking_count=len(parsed.bookings),
            status=status,
            skipped=parsed.skipped,
            filtered=parsed.filtered,
            warnings=warnings,
        )

    # --- Remote jobs ---

    def _select_properties(self, hostels: Iterable[str] | None) -> dict[str, str]:
        if hostels is None:
            return dict(self._properties)
        selected: dict[str, str] = {}
        for name in hostels:
            if name not in self._properties:
                raise ClassificationError(f"Unknown property: {name}")
            selected[name] = self._properties[name]
        return selected

    async def fetch_week(
        self,
        week_start: date | datetime,
        hostels: Iterable[str] | None = None,
        confirm: bool = False,
    ) -> BatchFetchResult:
        """Fetch one week for the given hostels (all configured by default) and merge the successes."""
        period = period_for(week_start)
        properties = self._select_properties(hostels)

        # Refuse before spending any API calls
        planned = WeekRecord(
            period_label=period.label,
            period_start=period.start,
            period_end=period.end,
            hostels={name: HostelMetrics() for name in properties},
        )
        collision = self.check_collision(planned)
        if collision is not None and not confirm:
            raise ReconciliationConflict(collision)

        async with self._client_factory() as client:
            self.batch = BatchFetchOrchestrator(client, properties, bus=self._bus, sleep=self._sleep)
            result = await self.batch.run(period)

        if result.succeeded:
            week = WeekRecord(
                period_label=period.label,
                period_start=period.start,
                period_end=period.end,
                hostels=dict(result.succeeded),
            )
            self._apply(week, confirm=True)
        else:
            logger.warning("Batch fetch for %s returned no data; series unchanged", period.label)
        return result

    def cancel_fetch(self) -> bool:
        if self.batch is None:
            return False
        self.batch.cancel()
        return True

    async def enrich(self) -> EnrichmentResult:
        """Backfill net price and tax for every fetched booking still missing them."""
        async with self._client_factory() as client:
            self.enrichment = EnrichmentJob(
                client, self.series, self._properties, bus=self._bus, sleep=self._sleep
            )
            try:
                result = await self.enrichment.run()
            finally:
                self.enrichment = None

        if result.succeeded:
            touched = {key.split("/", 1)[0] for key in result.succeeded}
            for week in self.series:
                if week.period_label in touched:
                    self._persist(week)
        return result

    def cancel_enrichment(self) -> bool:
        if self.enrichment is None:
            return False
        self.enrichment.cancel()
        return True

    async def summarize(self) -> SummaryResult:
        if self._summarizer is None:
            self._summarizer = NarrativeSummarizer()
        return await self._summarizer.summarize(self.series)

    # --- Persistence ---

    def load(self, start: datetime | None = None, end: datetime | None = None) -> int:
        """Merge stored weeks into the series. Hostels already in memory are kept."""
        try:
            stored = self._store.load(start, end)
        except SQLAlchemyError:
            logger.exception("Failed to load stored weeks")
            return 0

        loaded = 0
        for week in stored:
            existing = find_week(self.series, week.period_label)
            if existing is not None:
                week.hostels = {k: v for k, v in week.hostels.items() if k not in existing.hostels}
                if not week.hostels:
                    continue
            self.series[:] = reconcile(self.series, week, confirmed=True).series
            loaded += 1
        logger.info("Merged %d stored weeks into the series", loaded)
        return loaded
