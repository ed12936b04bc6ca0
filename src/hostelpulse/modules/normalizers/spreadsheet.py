"""Reservations spreadsheet export → canonical bookings."""

from __future__ import annotations

import logging
from datetime import timedelta
from pathlib import Path
from typing import Any

from openpyxl import load_workbook

from hostelpulse.config import get_section
from hostelpulse.errors import ParseError
from hostelpulse.modules.normalizers.common import ParseResult, cell, cell_text, parse_int, parse_price
from hostelpulse.modules.period.engine import lead_time_days, parse_sheet_date
from hostelpulse.records import Booking, is_direct_booking

logger = logging.getLogger(__name__)

DEFAULT_COLUMNS = {
    "arrival_date": 23,
    "nights": 25,
    "price": 27,
    "booking_date": 32,
    "source": 33,
    "status": 35,
}


def spreadsheet_columns() -> dict[str, int]:
    """Column offsets from config.yaml, falling back to the standard export layout."""
    configured = get_section("spreadsheet").get("columns") or {}
    return {**DEFAULT_COLUMNS, **configured}


def read_workbook_rows(path: str | Path) -> list[list[Any]]:
    """Read the first sheet of an .xlsx file as a list of row lists."""
    wb = load_workbook(path, read_only=True, data_only=True)
    try:
        ws = wb.worksheets[0]
        return [list(row) for row in ws.iter_rows(values_only=True)]
    finally:
        wb.close()


def parse_spreadsheet_rows(rows: list[list[Any]], columns: dict[str, int] | None = None) -> ParseResult:
    """Normalize spreadsheet rows into direct bookings.

    The first row is the header. Empty rows are ignored, rows whose arrival or
    creation date can't be parsed are skipped and counted. Raises ParseError
    when no direct booking survives.
    """
    if not rows or len(rows) < 2:
        raise ParseError("Spreadsheet has no data rows")

    cols = columns or spreadsheet_columns()
    result = ParseResult()

    for row in rows[1:]:
        if not row or all(v is None or str(v).strip() == "" for v in row):
            continue

        source = cell_text(row, cols["source"])
        if not is_direct_booking(source):
            result.filtered += 1
            continue

        booking_date = parse_sheet_date(cell(row, cols["booking_date"]))
        arrival = parse_sheet_date(cell(row, cols["arrival_date"]))
        if booking_date is None or arrival is None:
            result.skipped += 1
            continue

        nights = parse_int(cell(row, cols["nights"]))
        if nights is not None and nights < 0:
            nights = None
        reservation_id = cell_text(row, cols.get("reservation_id")) or None

        result.bookings.append(Booking(
            reservation_id=reservation_id,
            booking_date=booking_date,
            checkin_date=arrival,
            checkout_date=arrival + timedelta(days=nights) if nights is not None else None,
            nights=nights,
            status=cell_text(row, cols["status"]),
            source=source,
            gross_price=parse_price(cell(row, cols["price"])),
            lead_time_days=lead_time_days(booking_date, arrival),
            origin="spreadsheet",
        ))

    logger.info(
        "Spreadsheet: %d direct bookings, %d skipped, %d non-direct",
        len(result.bookings), result.skipped, result.filtered,
    )
    if not result.bookings:
        raise ParseError("No valid reservations found in the spreadsheet")
    return result
