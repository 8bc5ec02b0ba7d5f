"""Utility functions for stmtkit."""

from stmtkit.utils.amount_parser import parse_amount, format_amount
from stmtkit.utils.date_parser import parse_short_date, parse_iso_date, parse_dotted_date

__all__ = [
    "parse_amount",
    "format_amount",
    "parse_short_date",
    "parse_iso_date",
    "parse_dotted_date",
]
