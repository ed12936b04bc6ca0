"""Tests for the metrics aggregator and week-over-week changes."""

from datetime import date

import pytest

from hostelpulse.modules.metrics import aggregate, metric_change, week_over_week


def test_empty_input_gives_zero_metrics():
    metrics = aggregate([])
    assert metrics.total_count == 0
    assert metrics.gross_revenue == 0.0
    assert metrics.adr == 0.0
    assert metrics.avg_lead_time_days == 0.0


def test_cancelled_booking_counts_but_earns_nothing(make_booking):
    bookings = [
        make_booking(reservation_id="A", nights=7, gross_price=350.0, status="Confirmed", lead_time_days=4),
        make_booking(reservation_id="B", nights=2, gross_price=80.0, status="Cancelled", lead_time_days=1),
    ]
    metrics = aggregate(bookings)

    assert metrics.total_count == 2
    assert metrics.cancelled_count == 1
    assert metrics.valid_count == 1
    assert metrics.gross_revenue == 350.0
    assert metrics.adr == 50.0
    assert metrics.long_stay_count == 1
    assert metrics.monthly_stay_count == 0
    assert metrics.avg_lead_time_days == 4.0


def test_zero_or_missing_nights_count_as_one_for_adr(make_booking):
    bookings = [
        make_booking(reservation_id="A", nights=0, gross_price=40.0),
        make_booking(reservation_id="B", nights=None, gross_price=60.0),
    ]
    metrics = aggregate(bookings)
    assert metrics.adr == 50.0
    assert metrics.long_stay_count == 0


def test_negative_nights_count_as_one_for_adr(make_booking):
    bookings = [
        make_booking(reservation_id="A", nights=-3, gross_price=100.0),
        make_booking(reservation_id="B", nights=5, gross_price=100.0),
    ]
    assert aggregate(bookings).adr == pytest.approx(200.0 / 6)


def test_monthly_is_subset_of_long_stay(make_booking):
    bookings = [
        make_booking(reservation_id="A", nights=6),
        make_booking(reservation_id="B", nights=7),
        make_booking(reservation_id="C", nights=28),
        make_booking(reservation_id="D", nights=40, status="cancelled"),
    ]
    metrics = aggregate(bookings)
    assert metrics.long_stay_count == 2
    assert metrics.monthly_stay_count == 1
    assert metrics.monthly_stay_count <= metrics.long_stay_count


def test_lead_time_average_ignores_unknown(make_booking):
    bookings = [
        make_booking(reservation_id="A", lead_time_days=10),
        make_booking(reservation_id="B", lead_time_days=-2),
        make_booking(reservation_id="C", lead_time_days=None),
    ]
    assert aggregate(bookings).avg_lead_time_days == 4.0


def test_enriched_booking_uses_net_plus_tax(make_booking):
    enriched = make_booking(reservation_id="A", nights=2, gross_price=0.0, net_price=90.0, tax_amount=10.0)
    plain = make_booking(reservation_id="B", nights=2, gross_price=100.0)
    metrics = aggregate([enriched, plain])

    assert metrics.gross_revenue == 200.0
    assert metrics.net_revenue == 90.0
    assert metrics.total_tax == 10.0
    assert metrics.adr == 50.0


def test_counts_add_up(make_booking):
    bookings = [make_booking(reservation_id=str(i), status="cancelled" if i % 3 == 0 else "ok") for i in range(10)]
    metrics = aggregate(bookings)
    assert metrics.cancelled_count + metrics.valid_count == metrics.total_count


def test_metric_change():
    change = metric_change(150.0, 100.0)
    assert change.change == 50.0
    assert change.percentage == 50
    assert not change.is_new

    new = metric_change(10.0, 0)
    assert new.is_new
    assert new.percentage == 100


def test_week_over_week(make_booking, make_week):
    week1 = make_week(date(2024, 12, 9), {"Arena": aggregate([make_booking(gross_price=100.0)])})
    week2 = make_week(date(2024, 12, 16), {
        "Arena": aggregate([make_booking(gross_price=100.0), make_booking(reservation_id="R2", gross_price=50.0)]),
        "Duque": aggregate([make_booking()]),
    })
    series = [week1, week2]

    arena = week_over_week(series, 1, "Arena", "gross_revenue")
    assert arena.change == pytest.approx(50.0)
    assert arena.percentage == 50

    duque = week_over_week(series, 1, "Duque", "total_count")
    assert duque.is_new

    assert week_over_week(series, 0, "Arena", "gross_revenue").is_new
