"""Bank CSV export codec.

The export starts with a free-form header (organization, account, period),
followed by data rows from line 12 and a footer with totals. Data rows are
wide (20+ columns) and quoted fields may span several physical lines.
"""

import logging
import re
from dataclasses import dataclass
from typing import Iterable, Optional

from stmtkit.domain.entities import (
    Account,
    Amount,
    Balance,
    Counterparty,
    Date,
    Statement,
    Transaction,
)
from stmtkit.domain.errors import InvalidFormatError, MissingFieldError, ParseError, StatementError
from stmtkit.formats.csv_fields import has_unbalanced_quotes, join_fields, split_fields
from stmtkit.formats.diagnostics import Diagnostics
from stmtkit.formats.header_sniffer import HeaderInfo, sniff_header
from stmtkit.utils.amount_parser import format_amount, parse_amount
from stmtkit.utils.date_parser import format_dotted_date, is_dotted_date, parse_dotted_date

logger = logging.getLogger(__name__)

CURRENCY = "RUB"

MIN_LINES = 12
DATA_START_LINE = 12
MIN_ROW_FIELDS = 20

OUTPUT_HEADER = (
    "Дата",
    "Счет дебета",
    "Счет кредита",
    "Сумма дебета",
    "Сумма кредита",
    "№ документа",
    "Банк",
    "Назначение платежа",
)

FOOTER_MARKERS = (
    "Количество операций",
    "Входящий остаток",
    "Исходящий остаток",
    "Итого оборотов",
)

# Column positions in the bank's export
COL_DATE = 1
COL_DEBIT_ACCOUNT = 4
COL_CREDIT_ACCOUNT = 8
COL_DEBIT_AMOUNT = 9
COL_CREDIT_AMOUNT = 13
COL_DOCUMENT_NUMBER = 14
COL_BANK_INFO = 17
COL_DESCRIPTION = 20

_BIK_RE = re.compile(r"БИК\s*([0-9]+)")
BIK_LENGTH = 9


@dataclass(frozen=True)
class BankCsvTransaction:
    """One data row."""

    date: Date
    debit_account: Optional[str] = None
    credit_account: Optional[str] = None
    debit_amount: Optional[int] = None
    credit_amount: Optional[int] = None
    document_number: str = ""
    bank_info: str = ""
    description: str = ""

    @property
    def is_credit(self) -> bool:
        return bool(self.credit_amount)

    @property
    def amount(self) -> int:
        if self.is_credit:
            return self.credit_amount
        return self.debit_amount or 0

    @classmethod
    def parse(cls, record: str) -> "BankCsvTransaction":
        """Parse one logical record.

        Raises:
            ParseError: If the record is too short, or an amount or the date is malformed
        """
        fields = split_fields(record)
        if len(fields) < MIN_ROW_FIELDS:
            raise ParseError(
                f"Not enough fields in record: {len(fields)} (expected at least {MIN_ROW_FIELDS})"
            )

        debit_amount = _parse_amount_field(fields[COL_DEBIT_AMOUNT])
        credit_amount = _parse_amount_field(fields[COL_CREDIT_AMOUNT])
        if debit_amount is None and credit_amount is None:
            raise ParseError("Missing both debit and credit amounts")

        return cls(
            date=parse_dotted_date(fields[COL_DATE]),
            debit_account=_first_line(fields[COL_DEBIT_ACCOUNT]),
            credit_account=_first_line(fields[COL_CREDIT_ACCOUNT]),
            debit_amount=debit_amount,
            credit_amount=credit_amount,
            document_number=fields[COL_DOCUMENT_NUMBER],
            bank_info=fields[COL_BANK_INFO],
            description=fields[COL_DESCRIPTION] if len(fields) > COL_DESCRIPTION else "",
        )

    def render(self) -> str:
        return join_fields(
            [
                format_dotted_date(self.date),
                self.debit_account or "",
                self.credit_account or "",
                format_amount(self.debit_amount) if self.debit_amount is not None else "",
                format_amount(self.credit_amount) if self.credit_amount is not None else "",
                self.document_number,
                self.bank_info,
                self.description,
            ]
        )

    @property
    def bank_code(self) -> Optional[str]:
        return extract_bik(self.bank_info)


@dataclass(frozen=True)
class BankCsvStatement:
    """A bank CSV export: header facts plus data rows."""

    account_number: str
    organization: str
    currency: str = CURRENCY
    transactions: tuple[BankCsvTransaction, ...] = ()
    period_start: Optional[Date] = None
    period_end: Optional[Date] = None

    @classmethod
    def parse(cls, content: str, diagnostics: Optional[Diagnostics] = None) -> "BankCsvStatement":
        """Parse a bank CSV export.

        Args:
            content: File content
            diagnostics: Optional collector for skipped rows

        Returns:
            Parsed statement

        Raises:
            InvalidFormatError: If the file is shorter than the fixed header
        """
        diagnostics = diagnostics if diagnostics is not None else Diagnostics(logger)
        lines = content.splitlines()
        if len(lines) < MIN_LINES:
            raise InvalidFormatError(
                f"CSV file too short: {len(lines)} lines (expected at least {MIN_LINES})"
            )

        header = sniff_header(lines)
        transactions = []

        for line_num, record in _iter_records(lines, DATA_START_LINE):
            try:
                transactions.append(BankCsvTransaction.parse(record))
            except StatementError as e:
                diagnostics.warn(f"Line {line_num}: skipped: {e}", logger)

        logger.debug(
            "Parsed CSV statement for account %s: %d transactions",
            header.account_number,
            len(transactions),
        )
        return cls.from_header(header, transactions)

    @classmethod
    def from_header(
        cls, header: HeaderInfo, transactions: Iterable[BankCsvTransaction]
    ) -> "BankCsvStatement":
        return cls(
            account_number=header.account_number,
            organization=header.organization,
            transactions=tuple(transactions),
            period_start=header.period_start,
            period_end=header.period_end,
        )

    def write(self) -> str:
        """Serialize as a flat CSV with the fixed 8-column header."""
        return write_bank_csv([self])

    def to_statement(self) -> Statement:
        """Map onto the canonical model.

        Balances are synthesized: zero opening, and a closing balance equal to
        the running total of the rows.

        Raises:
            MissingFieldError: If there are no rows and no period to date the balances
        """
        running = 0
        transactions = []
        for row in self.transactions:
            running += row.amount if row.is_credit else -row.amount
            transactions.append(
                Transaction(
                    date=row.date,
                    amount=Amount(row.amount, self.currency),
                    is_credit=row.is_credit,
                    reference=row.document_number or None,
                    description=row.description,
                    counterparty=Counterparty(
                        account=row.debit_account if row.is_credit else row.credit_account,
                        bank_code=row.bank_code,
                        bank_name=row.bank_info or None,
                    ),
                )
            )

        opening_date = transactions[0].date if transactions else self.period_start
        closing_date = transactions[-1].date if transactions else self.period_end
        if opening_date is None or closing_date is None:
            raise MissingFieldError("statement period")

        return Statement(
            account=Account(
                number=self.account_number,
                currency=self.currency,
                name=self.organization,
            ),
            opening_balance=Balance(
                amount=Amount(0, self.currency),
                date=opening_date,
                is_credit=True,
                synthesized=True,
            ),
            closing_balance=Balance(
                amount=Amount(abs(running), self.currency),
                date=closing_date,
                is_credit=running >= 0,
                synthesized=True,
            ),
            transactions=tuple(transactions),
        )

    @classmethod
    def from_statement(cls, statement: Statement) -> "BankCsvStatement":
        """Flatten a canonical statement into CSV rows.

        Our account sits on the credit side of an incoming payment and on the
        debit side of an outgoing one.
        """
        rows = []
        for tx in statement.transactions:
            party = tx.counterparty or Counterparty()
            own = statement.account.number
            rows.append(
                BankCsvTransaction(
                    date=tx.date,
                    debit_account=party.account if tx.is_credit else own,
                    credit_account=own if tx.is_credit else party.account,
                    debit_amount=None if tx.is_credit else tx.amount.value,
                    credit_amount=tx.amount.value if tx.is_credit else None,
                    document_number=tx.reference or "",
                    bank_info=party.bank_name or party.bank_code or "",
                    description=tx.description,
                )
            )
        return cls(
            account_number=statement.account.number,
            organization=statement.account.name or statement.account.owner or "",
            currency=statement.account.currency,
            transactions=tuple(rows),
            period_start=statement.opening_balance.date,
            period_end=statement.closing_balance.date,
        )


def write_bank_csv(statements: Iterable[BankCsvStatement]) -> str:
    """Serialize statements as one flat CSV with a single header row."""
    lines = [join_fields(list(OUTPUT_HEADER))]
    for statement in statements:
        lines.extend(row.render() for row in statement.transactions)
    return "\n".join(lines) + "\n"


def extract_bik(bank_info: str) -> Optional[str]:
    """Return the 9-digit bank identification code following ``БИК``."""
    match = _BIK_RE.search(bank_info or "")
    if match is None or len(match.group(1)) != BIK_LENGTH:
        return None
    return match.group(1)


def is_footer_line(line: str) -> bool:
    return any(marker in line for marker in FOOTER_MARKERS)


def _iter_records(lines: list[str], start: int) -> Iterable[tuple[int, str]]:
    """Yield (1-based line number, logical record) for each data row.

    A row starts where the second field is a ``DD.MM.YYYY`` date and grows by
    whole physical lines until its quotes balance.
    """
    i = start
    while i < len(lines):
        line = lines[i]
        if not line.strip() or is_footer_line(line):
            i += 1
            continue

        parts = line.split(",")
        if len(parts) < 2 or not is_dotted_date(parts[COL_DATE].strip().strip('"')):
            i += 1
            continue

        record = line
        j = i + 1
        while j < len(lines) and has_unbalanced_quotes(record):
            record += "\n" + lines[j]
            j += 1
        yield i + 1, record
        i = j


def _first_line(value: str) -> Optional[str]:
    if not value:
        return None
    return value.splitlines()[0].strip() or None


def _parse_amount_field(value: str) -> Optional[int]:
    """Parse an amount cell; blank means absent.

    Raises:
        ParseError: If the cell is not a decimal amount
    """
    cleaned = value.replace(" ", "").replace("\u00a0", "")
    if not cleaned:
        return None
    amount = parse_amount(cleaned)
    if amount < 0:
        raise ParseError(f"Negative amount '{value}' in a directional column")
    return amount
