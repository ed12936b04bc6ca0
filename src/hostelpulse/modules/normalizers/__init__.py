from hostelpulse.modules.normalizers.common import ParseResult, parse_price
from hostelpulse.modules.normalizers.detector import detect_property
from hostelpulse.modules.normalizers.pasted import parse_pasted_table
from hostelpulse.modules.normalizers.remote import (
    PricingDetail,
    extract_pricing,
    normalize_reservations,
)
from hostelpulse.modules.normalizers.spreadsheet import parse_spreadsheet_rows, read_workbook_rows

__all__ = [
    "ParseResult",
    "PricingDetail",
    "detect_property",
    "extract_pricing",
    "normalize_reservations",
    "parse_pasted_table",
    "parse_price",
    "parse_spreadsheet_rows",
    "read_workbook_rows",
]
