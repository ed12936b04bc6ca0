"""Integration tests for the analytics session."""

import asyncio
from datetime import date, datetime
from unittest.mock import patch

import pytest
from openpyxl import Workbook
from sqlalchemy.exc import OperationalError

from hostelpulse.errors import AuthError, ClassificationError, ParseError, ReconciliationConflict
from hostelpulse.events import EventType
from hostelpulse.modules.reconciler import APPENDED, MERGED
from hostelpulse.modules.storage import WeeklyReportStore
from hostelpulse.modules.summary import SummaryResult
from hostelpulse.pipeline import AnalyticsSession

WEEK_LABEL = "16 Dec 2024 - 22 Dec 2024"


class FakeCloudbeds:
    """Stands in for CloudbedsClient: bulk list plus per-reservation detail."""

    def __init__(self, reservations, details=None, failing=()):
        self.reservations = reservations
        self.details = details or {}
        self.failing = set(failing)
        self.list_calls = []
        self.detail_calls = []

    async def __aenter__(self):
        return self

    async def __aexit__(self, *exc_info):
        return None

    async def get_reservations(self, property_id, start, end):
        self.list_calls.append(property_id)
        if property_id in self.failing:
            raise AuthError()
        return self.reservations

    async def get_reservation(self, property_id, reservation_id):
        self.detail_calls.append(reservation_id)
        return self.details[reservation_id]


@pytest.fixture
def fake_client(api_reservations):
    details = {
        rid: {"total": total, "balanceDetailed": {"subTotal": total - 10, "taxesFees": 10}}
        for rid, total in (("9001", 350.0), ("9002", 1240.0), ("9003", 90.0))
    }
    return FakeCloudbeds(api_reservations, details)


@pytest.fixture
def session(properties, event_bus, fake_sleep, fake_client):
    return AnalyticsSession(
        properties=properties,
        bus=event_bus,
        sleep=fake_sleep,
        client_factory=lambda: fake_client,
    )


def _spreadsheet_rows():
    row = [None] * 36
    row[23], row[25], row[27], row[32], row[33], row[35] = 45646, 7, 350, 45642, "Sitio web", "Confirmada"
    cancelled = list(row)
    cancelled[25], cancelled[27], cancelled[35] = 2, 80, "Cancelada"
    return [["header"] * 36, row, cancelled]


# --- Imports ---

def test_import_pasted_detects_property_and_week(session, paste_text, event_bus):
    reconciled = []
    event_bus.subscribe(EventType.WEEK_RECONCILED, reconciled.append)

    report = session.import_pasted(paste_text)

    assert report.period_label == WEEK_LABEL
    assert report.hostels == ["Flamingo"]
    assert report.booking_count == 2
    assert report.filtered == 1
    assert report.status == APPENDED
    metrics = session.series[0].hostels["Flamingo"]
    assert metrics.adr == 50.0
    assert metrics.cancelled_count == 1
    assert reconciled[0].data["hostels"] == ["Flamingo"]


def test_import_pasted_needs_a_property(session):
    text = "\t".join(["", "R1", "G", "D", "16/12/2024", "", "20/12/2024", "22/12/2024", "2", "50", "ok", "Website"])
    with pytest.raises(ClassificationError):
        session.import_pasted(text)

    report = session.import_pasted(text, hostel="Arena")
    assert report.hostels == ["Arena"]


def test_import_pasted_html_by_property_id(session, paste_html):
    report = session.import_pasted(paste_html, hostel="Arena")
    # The id in the pasted data beats the manual choice
    assert report.hostels == ["Puerto"]
    assert session.series[0].hostels["Puerto"].valid_count == 2


def test_selected_week_mismatch_warns(session, paste_text):
    report = session.import_pasted(paste_text, week_start=date(2024, 12, 24))
    assert report.period_label == "23 Dec 2024 - 29 Dec 2024"
    assert len(report.warnings) == 1


def test_import_spreadsheet(session):
    report = session.import_spreadsheet(_spreadsheet_rows(), "Arena")

    assert report.period_label == WEEK_LABEL
    assert report.booking_count == 2
    assert session.series[0].hostels["Arena"].adr == 50.0


def test_spreadsheet_with_no_direct_bookings_keeps_existing_metrics(session):
    session.import_spreadsheet(_spreadsheet_rows(), "Arena")
    ota_only = [["header"] * 36, [None] * 33 + ["Booking.com", None, "ok"]]

    with pytest.raises(ParseError):
        session.import_spreadsheet(ota_only, "Arena")
    with pytest.raises(ParseError):
        session.import_spreadsheet(ota_only, "Arena", week_start=date(2024, 12, 18), confirm=True)

    assert session.series[0].hostels["Arena"].total_count == 2


def test_import_workbooks_rejects_batch_with_empty_workbook(session, tmp_path):
    paths = []
    for name, rows in (("Arena", _spreadsheet_rows()), ("Duque", [["header"] * 36])):
        wb = Workbook()
        ws = wb.active
        for row in rows:
            ws.append(row)
        path = tmp_path / f"{name}.xlsx"
        wb.save(path)
        paths.append(path)

    with pytest.raises(ParseError, match="Duque.xlsx"):
        session.import_workbooks(paths, week_start=date(2024, 12, 18))
    assert session.series == []



def test_import_workbooks_names_hostels_after_files(session, tmp_path):
    paths = []
    for name in ("Arena", "Duque"):
        wb = Workbook()
        ws = wb.active
        for row in _spreadsheet_rows():
            ws.append(row)
        path = tmp_path / f"{name}.xlsx"
        wb.save(path)
        paths.append(path)
    paths.append(tmp_path / "notes.txt")

    report = session.import_workbooks(paths)

    assert report.hostels == ["Arena", "Duque"]
    assert report.booking_count == 4
    assert set(session.series[0].hostels) == {"Arena", "Duque"}


def test_import_workbooks_without_excel_files(session, tmp_path):
    with pytest.raises(ParseError):
        session.import_workbooks([tmp_path / "notes.txt"])


def test_reimport_needs_confirmation(session, paste_text):
    session.import_pasted(paste_text)

    with pytest.raises(ReconciliationConflict) as exc_info:
        session.import_pasted(paste_text)
    assert exc_info.value.collision.overlapping == ["Flamingo"]

    report = session.import_pasted(paste_text, confirm=True)
    assert report.status == MERGED
    assert len(session.series) == 1


# --- Remote jobs ---

def test_fetch_week_merges_successes_only(session, fake_client):
    fake_client.failing = {"316328"}

    result = asyncio.run(session.fetch_week(date(2024, 12, 18)))

    assert set(result.failed) == {"Puerto"}
    week = session.series[0]
    assert week.period_label == WEEK_LABEL
    assert set(week.hostels) == {"Flamingo", "Arena"}
    assert week.hostels["Arena"].total_count == 3


def test_fetch_week_checks_collision_before_calling_api(session, fake_client, paste_text):
    session.import_pasted(paste_text)

    with pytest.raises(ReconciliationConflict):
        asyncio.run(session.fetch_week(date(2024, 12, 18)))
    assert fake_client.list_calls == []

    # A hostel not yet in the week is fine
    asyncio.run(session.fetch_week(date(2024, 12, 18), hostels=["Arena"]))
    assert fake_client.list_calls == ["315588"]
    assert set(session.series[0].hostels) == {"Flamingo", "Arena"}


def test_fetch_week_unknown_hostel(session):
    with pytest.raises(ClassificationError):
        asyncio.run(session.fetch_week(date(2024, 12, 18), hostels=["Nowhere"]))


def test_enrich_after_fetch(session, fake_client):
    asyncio.run(session.fetch_week(date(2024, 12, 18), hostels=["Arena"]))

    result = asyncio.run(session.enrich())

    assert sorted(result.succeeded) == [f"{WEEK_LABEL}/Arena/{rid}" for rid in ("9001", "9002", "9003")]
    arena = session.series[0].hostels["Arena"]
    assert arena.total_tax == 20.0  # cancelled 9003 does not count
    assert arena.net_revenue == 340.0 + 1230.0
    assert session.enrichment is None

    again = asyncio.run(session.enrich())
    assert again.succeeded == []
    assert len(fake_client.detail_calls) == 3


def test_cancel_without_running_job(session):
    assert session.cancel_enrichment() is False
    assert session.cancel_fetch() is False


def test_summarize_delegates(session):
    class StubSummarizer:
        async def summarize(self, series):
            return SummaryResult(text=f"{len(series)} weeks")

    session._summarizer = StubSummarizer()
    assert asyncio.run(session.summarize()).text == "0 weeks"


# --- Persistence ---

def test_imports_are_written_behind_and_reloaded(session_factory, properties, event_bus, paste_text):
    store = WeeklyReportStore(session_factory)
    first = AnalyticsSession(store=store, properties=properties, bus=event_bus)
    first.import_pasted(paste_text)

    second = AnalyticsSession(store=store, properties=properties, bus=event_bus)
    assert second.load() == 1
    assert second.series[0].period_label == WEEK_LABEL
    assert second.series[0].hostels["Flamingo"].adr == 50.0


def test_load_keeps_in_memory_hostels(session_factory, properties, event_bus, paste_text, paste_html):
    store = WeeklyReportStore(session_factory)
    AnalyticsSession(store=store, properties=properties, bus=event_bus).import_pasted(paste_text)

    current = AnalyticsSession(properties=properties, bus=event_bus)
    current.import_pasted(paste_text, week_start=date(2024, 12, 16))
    current.series[0].hostels["Flamingo"].adr = 1.0
    current.import_pasted(paste_html)

    assert current.load(start=datetime(2024, 12, 1)) == 0
    assert current.series[0].hostels["Flamingo"].adr == 1.0


def test_storage_failure_keeps_series(properties, event_bus, paste_text):
    class BrokenStore:
        def save(self, week):
            raise OperationalError("INSERT", {}, Exception("disk full"))

        def load(self, start=None, end=None):
            raise OperationalError("SELECT", {}, Exception("disk full"))

    session = AnalyticsSession(store=BrokenStore(), properties=properties, bus=event_bus)
    session.import_pasted(paste_text)

    assert session.series[0].hostels["Flamingo"].valid_count == 1
    assert session.load() == 0


def test_default_client_factory_is_cloudbeds(properties, event_bus):
    with patch("hostelpulse.pipeline.CloudbedsClient") as client_cls:
        session = AnalyticsSession(properties=properties, bus=event_bus)
    assert session._client_factory is client_cls
