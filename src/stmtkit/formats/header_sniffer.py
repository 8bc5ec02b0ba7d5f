"""Account and organization detection in the free-form bank CSV header."""

import re
from dataclasses import dataclass
from typing import Optional, Sequence

from stmtkit.domain.entities import UNKNOWN_ACCOUNT, Date
from stmtkit.formats.csv_fields import split_fields
from stmtkit.utils.date_parser import find_dotted_dates

UNKNOWN_ORGANIZATION = "Неизвестно"

# Settlement account classes: commercial orgs, non-profits, sole proprietors
ACCOUNT_PREFIXES = ("40702", "40703", "40817")
LEGAL_ENTITY_MARKERS = ("ООО", "ИП", "АО")

HEADER_SCAN_LINES = 10
FALLBACK_ACCOUNT_LINE = 5

_ACCOUNT_NUMBER_RE = re.compile(r"[0-9]{20}")


@dataclass(frozen=True)
class HeaderInfo:
    """What could be recovered from the header lines."""

    account_number: str = UNKNOWN_ACCOUNT
    organization: str = UNKNOWN_ORGANIZATION
    period_start: Optional[Date] = None
    period_end: Optional[Date] = None


def _tokens(line: str) -> list[str]:
    return [token.strip('"') for token in split_fields(line)]


def _account_token(line: str) -> Optional[str]:
    for token in _tokens(line):
        if _ACCOUNT_NUMBER_RE.fullmatch(token):
            return token
    return None


def _organization_token(line: str) -> Optional[str]:
    for token in _tokens(line):
        if any(marker in token for marker in LEGAL_ENTITY_MARKERS):
            return token
    return None


def sniff_header(lines: Sequence[str]) -> HeaderInfo:
    """Recover account number, organization and period from header lines.

    The first match wins for both the account and the organization. When no
    line with a settlement-account prefix yields a 20-digit token, line
    index 5 is re-scanned without the prefix requirement.

    Args:
        lines: Physical lines of the file (only the first ten are examined)

    Returns:
        HeaderInfo with sentinels for anything not found
    """
    head = list(lines[:HEADER_SCAN_LINES])
    account_number = None
    organization = None

    for line in head:
        if account_number is None and any(prefix in line for prefix in ACCOUNT_PREFIXES):
            account_number = _account_token(line)
        if organization is None and any(marker in line for marker in LEGAL_ENTITY_MARKERS):
            organization = _organization_token(line)

    if account_number is None and len(lines) > FALLBACK_ACCOUNT_LINE:
        account_number = _account_token(lines[FALLBACK_ACCOUNT_LINE])

    dates = find_dotted_dates("\n".join(head))
    return HeaderInfo(
        account_number=account_number or UNKNOWN_ACCOUNT,
        organization=organization or UNKNOWN_ORGANIZATION,
        period_start=dates[0] if dates else None,
        period_end=dates[-1] if dates else None,
    )
