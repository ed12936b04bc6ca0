"""Helpers shared by the source adapters."""

from __future__ import annotations

import re
from dataclasses import dataclass, field

from hostelpulse.records import Booking

_CURRENCY_RE = re.compile(r"[^\d,.\-]")


@dataclass
class ParseResult:
    bookings: list[Booking] = field(default_factory=list)
    skipped: int = 0  # malformed rows
    filtered: int = 0  # well-formed rows that are not direct bookings


def parse_price(value: object) -> float:
    """Parse a price cell: ``17.5``, ``"€17,00"``, ``"1.234,50 €"``, ``"1,234.50"``.

    Blank or unparseable values give 0.0.
    """
    if value is None or isinstance(value, bool):
        return 0.0
    if isinstance(value, (int, float)):
        return float(value)
    text = _CURRENCY_RE.sub("", str(value))
    if not text or text in ("-", ".", ","):
        return 0.0
    if "," in text and "." in text:
        # Whichever separator comes last is the decimal one
        if text.rfind(",") > text.rfind("."):
            text = text.replace(".", "").replace(",", ".")
        else:
            text = text.replace(",", "")
    elif "," in text:
        text = text.replace(",", ".")
    try:
        return float(text)
    except ValueError:
        return 0.0


def parse_int(value: object) -> int | None:
    """Leading-integer parse (``"7"``, ``"7.0"``, ``7``). Blank or garbage gives None."""
    if value is None or isinstance(value, bool):
        return None
    if isinstance(value, (int, float)):
        return int(value)
    match = re.match(r"\s*(-?\d+)", str(value))
    return int(match.group(1)) if match else None


def cell(row: list, index: int | None) -> object:
    """Return ``row[index]`` or None when the row is too short."""
    if index is None or index >= len(row):
        return None
    return row[index]


def cell_text(row: list, index: int | None) -> str:
    value = cell(row, index)
    return str(value).strip() if value is not None else ""
