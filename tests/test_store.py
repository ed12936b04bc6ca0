"""Tests for persisting the week series."""

from datetime import date, datetime, timezone

from hostelpulse.models.weekly_report import WeeklyReport
from hostelpulse.modules.metrics import aggregate
from hostelpulse.modules.storage import NullStore, WeeklyReportStore


def test_save_and_load_round_trip(session_factory, make_booking, make_week):
    booking = make_booking(
        reservation_id="9001", net_price=90.0, tax_amount=10.0,
        enriched_at=datetime(2024, 12, 23, 9, 0, tzinfo=timezone.utc),
    )
    week = make_week(date(2024, 12, 16), {"Arena": aggregate([booking, make_booking(reservation_id="9002")])})
    store = WeeklyReportStore(session_factory)

    assert store.save(week) == 1
    loaded = store.load()

    assert len(loaded) == 1
    assert loaded[0].period_label == "16 Dec 2024 - 22 Dec 2024"
    arena = loaded[0].hostels["Arena"]
    assert arena.total_count == 2
    assert arena.gross_revenue == week.hostels["Arena"].gross_revenue
    assert arena.bookings[0].reservation_id == "9001"
    assert arena.bookings[0].is_enriched
    assert arena.bookings[0].checkin_date == date(2024, 12, 20)


def test_save_upserts_per_hostel(session_factory, db_session, make_booking, make_week):
    store = WeeklyReportStore(session_factory)
    store.save(make_week(date(2024, 12, 16), {"Arena": aggregate([make_booking()]), "Duque": aggregate([])}))
    store.save(make_week(date(2024, 12, 16), {
        "Arena": aggregate([make_booking(), make_booking(reservation_id="R2")]),
    }))

    rows = db_session.query(WeeklyReport).order_by(WeeklyReport.hostel_name).all()
    assert [(r.hostel_name, r.total_count) for r in rows] == [("Arena", 2), ("Duque", 0)]


def test_load_filters_by_week_start(session_factory, make_booking, make_week):
    store = WeeklyReportStore(session_factory)
    for day in (date(2024, 12, 2), date(2024, 12, 9), date(2024, 12, 16)):
        store.save(make_week(day, {"Arena": aggregate([make_booking()])}))

    loaded = store.load(start=datetime(2024, 12, 9), end=datetime(2024, 12, 16))
    assert [w.period_start.day for w in loaded] == [9, 16]


def test_null_store():
    store = NullStore()
    assert store.load() == []


def test_init_db_creates_report_table():
    from sqlalchemy import inspect

    from hostelpulse.database import engine, init_db

    init_db()
    assert inspect(engine).has_table("weekly_reports")
