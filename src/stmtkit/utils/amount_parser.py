"""Amount parsing utilities."""

import re

from stmtkit.domain.errors import ParseError, invalid_amount

I64_MAX = 2**63 - 1

_DIGITS_RE = re.compile(r"[0-9]*")


def parse_amount(amount_str: str) -> int:
    """Parse a decimal amount string into integer minor units.

    Handles various formats:
    - "123.45" -> 12345
    - "123,45" -> 12345
    - "123" -> 12300
    - "-5,5" -> -550
    - "1.999" -> 199 (fraction truncated to two digits, never rounded)

    Args:
        amount_str: Amount string with at most one decimal separator

    Returns:
        Amount in minor units

    Raises:
        ParseError: If the string is empty, not numeric, or overflows 64 bits
    """
    if amount_str is None or not amount_str.strip():
        raise ParseError("Empty amount string")

    text = amount_str.strip()

    is_negative = False
    if text[0] in "+-":
        is_negative = text[0] == "-"
        text = text[1:]

    normalized = text.replace(",", ".")
    if normalized.count(".") > 1:
        raise ParseError(invalid_amount(amount_str, "more than one decimal separator"))

    whole_str, _, frac_str = normalized.partition(".")
    if not whole_str and not frac_str:
        raise ParseError(invalid_amount(amount_str, "no digits"))
    if not _DIGITS_RE.fullmatch(whole_str) or not _DIGITS_RE.fullmatch(frac_str):
        raise ParseError(invalid_amount(amount_str, "unexpected characters"))

    whole = int(whole_str) if whole_str else 0
    frac = int((frac_str + "00")[:2])

    # Python ints never wrap, so the 64-bit bound is checked explicitly
    if whole > (I64_MAX - frac) // 100:
        raise ParseError(invalid_amount(amount_str, "overflow"))

    amount = whole * 100 + frac
    return -amount if is_negative else amount


def format_amount(amount: int, separator: str = ".") -> str:
    """Render minor units with exactly two fraction digits.

    Args:
        amount: Amount in minor units
        separator: Decimal separator to emit

    Returns:
        Formatted amount, e.g. 6500 -> "65.00"
    """
    sign = "-" if amount < 0 else ""
    whole, frac = divmod(abs(amount), 100)
    return f"{sign}{whole}{separator}{frac:02d}"
