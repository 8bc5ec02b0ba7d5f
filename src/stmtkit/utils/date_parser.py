"""Date parsing utilities for statement formats."""

import re
from datetime import datetime

from dateutil import parser as date_parser

from stmtkit.domain.entities import Date
from stmtkit.domain.errors import ParseError, invalid_date

# Two-digit years above the pivot belong to the 1900s, the rest to the 2000s
CENTURY_PIVOT = 50

_SHORT_DATE_RE = re.compile(r"[0-9]{6}")
_ISO_DATE_RE = re.compile(r"([0-9]{4})-([0-9]{2})-([0-9]{2})")
_DOTTED_DATE_RE = re.compile(r"([0-9]{2})\.([0-9]{2})\.([0-9]{4})")


def expand_year(two_digit_year: int) -> int:
    """Expand a two-digit year using the century pivot."""
    if two_digit_year > CENTURY_PIVOT:
        return 1900 + two_digit_year
    return 2000 + two_digit_year


def build_date(year: int, month: int, day: int, source: str) -> Date:
    """Build a Date after range-checking month and day.

    Raises:
        ParseError: If month or day is out of range
    """
    if not 1 <= month <= 12:
        raise ParseError(invalid_date(source, f"month {month} out of range"))
    if not 1 <= day <= 31:
        raise ParseError(invalid_date(source, f"day {day} out of range"))
    return Date(year, month, day)


def parse_short_date(date_str: str) -> Date:
    """Parse a ``YYMMDD`` date.

    Args:
        date_str: Six-digit date string

    Returns:
        Date with the century resolved by the pivot (51 -> 1951, 50 -> 2050)

    Raises:
        ParseError: If the string is not six digits or out of range
    """
    if not _SHORT_DATE_RE.fullmatch(date_str or ""):
        raise ParseError(invalid_date(date_str, "expected YYMMDD"))
    year = expand_year(int(date_str[0:2]))
    return build_date(year, int(date_str[2:4]), int(date_str[4:6]), date_str)


def format_short_date(value: Date) -> str:
    """Render a Date as ``YYMMDD``."""
    return f"{value.year % 100:02d}{value.month:02d}{value.day:02d}"


def parse_iso_date(date_str: str) -> Date:
    """Parse a bare ``YYYY-MM-DD`` date.

    Raises:
        ParseError: If the string is not in ISO date form
    """
    text = (date_str or "").strip()
    match = _ISO_DATE_RE.fullmatch(text)
    if match is None:
        raise ParseError(invalid_date(text, "expected YYYY-MM-DD"))
    year, month, day = (int(part) for part in match.groups())
    return build_date(year, month, day, text)


def is_dotted_date(date_str: str) -> bool:
    """Return True if the string is shaped like ``DD.MM.YYYY``."""
    return _DOTTED_DATE_RE.fullmatch(date_str or "") is not None


def parse_dotted_date(date_str: str) -> Date:
    """Parse a ``DD.MM.YYYY`` date.

    Raises:
        ParseError: If the string is not in dotted form
    """
    text = (date_str or "").strip()
    match = _DOTTED_DATE_RE.fullmatch(text)
    if match is None:
        raise ParseError(invalid_date(text, "expected DD.MM.YYYY"))
    day, month, year = (int(part) for part in match.groups())
    return build_date(year, month, day, text)


def format_dotted_date(value: Date) -> str:
    """Render a Date as ``DD.MM.YYYY``."""
    return f"{value.day:02d}.{value.month:02d}.{value.year:04d}"


def find_dotted_dates(text: str) -> list[Date]:
    """Return every valid ``DD.MM.YYYY`` date found in free text, in order."""
    dates = []
    for match in _DOTTED_DATE_RE.finditer(text):
        try:
            dates.append(parse_dotted_date(match.group(0)))
        except ParseError:
            continue
    return dates


def parse_timestamp(timestamp_str: str) -> datetime:
    """Parse an ISO 8601 date-time such as ``2024-01-01T10:30:00+01:00``.

    Raises:
        ParseError: If the string is not an ISO 8601 timestamp
    """
    try:
        return date_parser.isoparse((timestamp_str or "").strip())
    except (ValueError, OverflowError) as e:
        raise ParseError(invalid_date(timestamp_str, str(e))) from e


def format_timestamp(value: datetime) -> str:
    """Render a datetime as ``YYYY-MM-DDTHH:MM:SS`` (offset kept when aware)."""
    return value.replace(microsecond=0).isoformat()
