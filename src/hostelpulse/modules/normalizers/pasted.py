"""Copy-pasted reservations table (HTML markup or tab-separated text) → bookings."""

from __future__ import annotations

import logging

from parsel import Selector

from hostelpulse.config import get_section
from hostelpulse.errors import ParseError
from hostelpulse.modules.normalizers.common import ParseResult, cell_text, parse_int, parse_price
from hostelpulse.modules.period.engine import lead_time_days, parse_sheet_date
from hostelpulse.records import Booking, is_direct_booking

logger = logging.getLogger(__name__)

DEFAULT_COLUMNS = {
    "reservation_id": 1,
    "booking_date": 4,
    "checkin_date": 6,
    "checkout_date": 7,
    "nights": 8,
    "price": 9,
    "status": 10,
    "source": 11,
}
DEFAULT_MIN_CELLS = 10


def is_markup(text: str) -> bool:
    return "<table" in text or "<tr" in text


def _markup_rows(text: str) -> list[list[str]]:
    sel = Selector(text=text)
    rows = []
    for tr in sel.css("tr"):
        cells = [
            " ".join(t.strip() for t in td.css("*::text").getall() if t.strip())
            for td in tr.css("td")
        ]
        rows.append(cells)
    return rows


def _text_rows(text: str) -> list[list[str]]:
    return [line.split("\t") for line in text.splitlines() if line.strip()]


def _row_to_booking(cells: list[str], cols: dict[str, int]) -> Booking | None:
    reservation_id = cell_text(cells, cols["reservation_id"])
    booking_date = parse_sheet_date(cell_text(cells, cols["booking_date"]))
    checkin = parse_sheet_date(cell_text(cells, cols["checkin_date"]))
    if not reservation_id or booking_date is None or checkin is None:
        return None

    checkout = parse_sheet_date(cell_text(cells, cols["checkout_date"]))
    nights = parse_int(cell_text(cells, cols["nights"]))
    if nights is not None and nights < 0:
        nights = None
    if nights is None and checkout is not None:
        nights = max(0, (checkout - checkin).days)

    return Booking(
        reservation_id=reservation_id,
        booking_date=booking_date,
        checkin_date=checkin,
        checkout_date=checkout,
        nights=nights,
        status=cell_text(cells, cols["status"]),
        source=cell_text(cells, cols["source"]),
        gross_price=parse_price(cell_text(cells, cols["price"])),
        lead_time_days=lead_time_days(booking_date, checkin),
        origin="paste",
    )


def parse_pasted_table(
    text: str, columns: dict[str, int] | None = None, min_cells: int | None = None
) -> ParseResult:
    """Parse pasted reservations, keeping direct bookings only.

    Header rows, short rows and rows without an id or dates are skipped and
    counted. Raises ParseError when nothing usable is left.
    """
    section = get_section("pasted_table")
    cols = columns or {**DEFAULT_COLUMNS, **(section.get("columns") or {})}
    min_cells = min_cells or int(section.get("min_cells", DEFAULT_MIN_CELLS))

    rows = _markup_rows(text) if is_markup(text) else _text_rows(text)
    result = ParseResult()

    for cells in rows:
        if len(cells) < min_cells:
            result.skipped += 1
            continue
        booking = _row_to_booking(cells, cols)
        if booking is None:
            result.skipped += 1
            continue
        if not is_direct_booking(booking.source):
            result.filtered += 1
            continue
        result.bookings.append(booking)

    logger.info(
        "Pasted table: %d direct bookings, %d skipped, %d non-direct",
        len(result.bookings), result.skipped, result.filtered,
    )
    if not result.bookings:
        raise ParseError("No valid reservations found in the pasted data")
    return result
