"""Shared statement error messages and error types."""


class StatementError(ValueError):
    """Base class for everything stmtkit raises about a statement.

    Catch this to handle any parse, conversion or I/O failure at once; the
    CLI does so to print a single error line. It is also a ValueError.
    """


class StatementIOError(StatementError):
    """Reading or writing statement content failed.

    The underlying transport error is kept as ``__cause__``.
    """


class ParseError(StatementError):
    """Malformed value at a known location."""


class InvalidFormatError(StatementError):
    """Document-level structural marker missing or nothing parseable."""


class MissingFieldError(StatementError):
    """Mandatory element absent."""

    def __init__(self, field: str):
        super().__init__(missing_field(field))
        self.field = field


class UnsupportedConversionError(StatementError):
    """Requested format pair cannot be converted."""


class ValidationError(StatementError):
    """Invalid input or failed model invariant."""


def missing_field(field: str) -> str:
    """Return message for a missing mandatory field."""
    return f"Missing mandatory field: {field}"


def conversion_not_supported(source: str, target: str) -> str:
    """Return message for an unsupported format pair."""
    return f"Conversion from {source} to {target} is not supported"


def unknown_format(name: str, known: list[str]) -> str:
    """Return message for an unrecognized format name."""
    return f"Unknown statement format '{name}'. Must be one of: {', '.join(known)}"


def invalid_amount(amount_str: str, reason: str) -> str:
    """Return message for an amount that could not be parsed."""
    return f"Could not parse amount '{amount_str}': {reason}"


def invalid_date(date_str: str, reason: str) -> str:
    """Return message for a date that could not be parsed."""
    return f"Could not parse date '{date_str}': {reason}"
