"""Shared test fixtures."""

from __future__ import annotations

import json
import os
from datetime import date, datetime
from pathlib import Path

import pytest
from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker

# Set test environment before importing app modules
os.environ["DATABASE_URL"] = "sqlite://"  # In-memory DB for tests

from hostelpulse.database import Base
from hostelpulse.events import EventBus
from hostelpulse.modules.period import period_for
from hostelpulse.records import Booking, WeekRecord

# Import all models to register them
import hostelpulse.models.weekly_report  # noqa: F401


FIXTURES_DIR = Path(__file__).parent / "fixtures"

PROPERTIES = {"Flamingo": "6733", "Puerto": "316328", "Arena": "315588"}


@pytest.fixture
def db_engine():
    """Fresh in-memory database for each test."""
    engine = create_engine("sqlite://", echo=False)
    Base.metadata.create_all(engine)
    yield engine
    engine.dispose()


@pytest.fixture
def session_factory(db_engine):
    return sessionmaker(bind=db_engine, expire_on_commit=False)


@pytest.fixture
def db_session(session_factory):
    session = session_factory()
    yield session
    session.close()


@pytest.fixture
def event_bus():
    """Create a fresh event bus for each test."""
    return EventBus()


@pytest.fixture
def properties() -> dict[str, str]:
    return dict(PROPERTIES)


@pytest.fixture
def paste_text() -> str:
    return (FIXTURES_DIR / "paste_flamingo.txt").read_text()


@pytest.fixture
def paste_html() -> str:
    return (FIXTURES_DIR / "paste_puerto.html").read_text()


@pytest.fixture
def api_reservations() -> list[dict]:
    return json.loads((FIXTURES_DIR / "reservations.json").read_text())


@pytest.fixture
def api_detail() -> dict:
    return json.loads((FIXTURES_DIR / "reservation_detail.json").read_text())


def _make_booking(**overrides) -> Booking:
    values = {
        "reservation_id": "R1",
        "booking_date": date(2024, 12, 16),
        "checkin_date": date(2024, 12, 20),
        "checkout_date": date(2024, 12, 23),
        "nights": 3,
        "status": "Confirmed",
        "source": "Website",
        "gross_price": 150.0,
        "lead_time_days": 4,
    }
    values.update(overrides)
    return Booking(**values)


def _make_week(day: date, hostels: dict | None = None) -> WeekRecord:
    period = period_for(day)
    return WeekRecord(
        period_label=period.label,
        period_start=period.start,
        period_end=period.end,
        hostels=dict(hostels or {}),
    )


class FakeSleep:
    """Records requested delays instead of sleeping."""

    def __init__(self) -> None:
        self.calls: list[float] = []

    async def __call__(self, seconds: float) -> None:
        self.calls.append(seconds)


@pytest.fixture
def fake_sleep() -> FakeSleep:
    return FakeSleep()


@pytest.fixture
def week_start() -> datetime:
    return datetime(2024, 12, 18)


@pytest.fixture
def make_booking():
    """Factory for a valid direct booking in the week of 16 Dec 2024."""
    return _make_booking


@pytest.fixture
def make_week():
    """Factory for the WeekRecord containing a given day."""
    return _make_week
