"""Format-dispatching parse and write entry points."""

import logging
from typing import Iterable, Optional

from stmtkit.domain.entities import Statement, StatementFormat
from stmtkit.domain.errors import InvalidFormatError
from stmtkit.formats.bank_csv import BankCsvStatement, write_bank_csv
from stmtkit.formats.camt053 import Camt053Statement
from stmtkit.formats.diagnostics import Diagnostics
from stmtkit.formats.mt940 import Mt940Statement, write_mt940

logger = logging.getLogger(__name__)


def parse_statements(
    content: str, fmt: StatementFormat, diagnostics: Optional[Diagnostics] = None
) -> list[Statement]:
    """Parse content in the given format into canonical statements.

    Args:
        content: Document text
        fmt: Wire format of the content
        diagnostics: Optional collector for skipped items

    Returns:
        Statements in document order; MT940 may yield several

    Raises:
        StatementError: If the document cannot be parsed
    """
    if fmt is StatementFormat.MT940:
        return [record.to_statement() for record in Mt940Statement.parse(content, diagnostics)]
    if fmt is StatementFormat.CAMT053:
        return [Camt053Statement.parse(content, diagnostics).to_statement()]
    return [BankCsvStatement.parse(content, diagnostics).to_statement()]


def parse_statement(
    content: str, fmt: StatementFormat, diagnostics: Optional[Diagnostics] = None
) -> Statement:
    """Parse content and return its first statement.

    Raises:
        InvalidFormatError: If the document holds no statement
    """
    statements = parse_statements(content, fmt, diagnostics)
    if not statements:
        raise InvalidFormatError(f"No {fmt.label} statement found")
    if len(statements) > 1:
        logger.info("Document holds %d statements; using the first", len(statements))
    return statements[0]


def write_statements(statements: Iterable[Statement], fmt: StatementFormat) -> str:
    """Serialize canonical statements in the given format.

    CAMT.053 documents are concatenated, one per statement.
    """
    statements = list(statements)
    if fmt is StatementFormat.MT940:
        return write_mt940(Mt940Statement.from_statement(s) for s in statements)
    if fmt is StatementFormat.CAMT053:
        return "".join(Camt053Statement.from_statement(s).write() for s in statements)
    return write_bank_csv(BankCsvStatement.from_statement(s) for s in statements)


def write_statement(statement: Statement, fmt: StatementFormat) -> str:
    """Serialize a single canonical statement."""
    return write_statements([statement], fmt)
