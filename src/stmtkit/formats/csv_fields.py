"""Quote-aware field handling for bank CSV records.

Bank exports quote text fragments inside a cell (``ООО "Ромашка, плюс"``),
so a quote toggles quoting wherever it appears, not only at the start of a
field. Record assembly in :mod:`stmtkit.formats.bank_csv` counts quotes the
same way.
"""

QUOTE = '"'
DELIMITER = ","


def split_fields(record: str) -> list[str]:
    """Split one logical CSV record into trimmed fields.

    Any ``"`` switches quote state and is dropped; ``""`` inside quotes is a
    literal quote. A comma splits fields only outside quotes. The record may
    span several physical lines when a quoted part contains newlines.

    Args:
        record: Raw record text

    Returns:
        List of field values with surrounding whitespace removed
    """
    fields = []
    current: list[str] = []
    in_quotes = False
    i = 0
    while i < len(record):
        ch = record[i]
        if ch == QUOTE:
            if in_quotes and record[i + 1:i + 2] == QUOTE:
                current.append(QUOTE)
                i += 2
                continue
            in_quotes = not in_quotes
        elif ch == DELIMITER and not in_quotes:
            fields.append("".join(current).strip())
            current = []
        else:
            current.append(ch)
        i += 1
    fields.append("".join(current).strip())
    return fields


def has_unbalanced_quotes(text: str) -> bool:
    """Return True if the text holds an odd number of quote characters."""
    return text.count(QUOTE) % 2 == 1


def quote_field(value: str) -> str:
    """Quote a value for output when it contains a comma, quote or newline."""
    if any(ch in value for ch in ',"\n\r'):
        return QUOTE + value.replace(QUOTE, QUOTE * 2) + QUOTE
    return value


def join_fields(values: list[str]) -> str:
    """Join values into one CSV line, quoting where needed."""
    return DELIMITER.join(quote_field(value) for value in values)
