"""
XML codec and parsers for Tally responses.

- base: envelope building, parsing, tag lookup and value helpers
- masters: company list
- transactions: voucher register rows
"""

from .base import (
    ParsedDocument,
    ParseFailure,
    build_request,
    parse_envelope,
    get_first_tag_value,
    sanitize_xml,
    parse_tally_date,
    parse_float,
)
from .masters import parse_companies
from .transactions import parse_vouchers

__all__ = [
    "ParsedDocument",
    "ParseFailure",
    "build_request",
    "parse_envelope",
    "get_first_tag_value",
    "sanitize_xml",
    "parse_tally_date",
    "parse_float",
    "parse_companies",
    "parse_vouchers",
]
