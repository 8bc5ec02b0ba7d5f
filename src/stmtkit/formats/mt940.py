"""MT940 (SWIFT tagged-text) statement codec."""

import logging
import re
import textwrap
from dataclasses import dataclass, field
from typing import Iterable, Optional

from stmtkit.domain.entities import (
    UNKNOWN_ACCOUNT,
    Account,
    Amount,
    Balance,
    Counterparty,
    Date,
    Statement,
    Transaction,
)
from stmtkit.domain.errors import InvalidFormatError, MissingFieldError, ParseError, StatementError
from stmtkit.formats.diagnostics import Diagnostics
from stmtkit.utils.amount_parser import format_amount, parse_amount
from stmtkit.utils.date_parser import build_date, format_short_date, parse_short_date

logger = logging.getLogger(__name__)

BLOCK_OPEN = "{4:"
BLOCK_CLOSE = "-}"
DOCUMENT_HEADER = "{1:F01BANKXXXX0000000000}{2:O940BANKXXXXN}{3:}{4:"
DOCUMENT_TRAILER = "-}{5:}"

CREDIT = "C"
DEBIT = "D"
REVERSAL_MARK = "R"

# Final and intermediate balance variants
FINAL = "F"
INTERMEDIATE = "M"

TRANSACTION_TYPE_TRANSFER = "NTRF"

# Line budget for :86: free text
DETAILS_WRAP_WIDTH = 65

_TAG_RE = re.compile(r"^:(\d{2}[A-Z]?):(.*)$")
_IBAN_RE = re.compile(r"[A-Z]{2}[0-9]{2}[A-Z0-9]{10,30}")


@dataclass(frozen=True)
class Mt940Balance:
    """Balance field (:60F:/:60M:/:62F:/:62M:)."""

    credit_debit: str
    date: Date
    currency: str
    amount: int
    variant: str = FINAL

    @property
    def is_credit(self) -> bool:
        return self.credit_debit == CREDIT

    @classmethod
    def parse(cls, value: str, variant: str = FINAL) -> "Mt940Balance":
        """Parse the fixed-width balance value that follows the tag.

        Layout: direction (1), YYMMDD (6), currency (3), amount with ``,``.

        Raises:
            ParseError: If the value does not follow the layout
        """
        value = value.strip()
        if len(value) < 11:
            raise ParseError(f"Malformed balance: '{value}'")
        credit_debit = value[0]
        if credit_debit not in (CREDIT, DEBIT):
            raise ParseError(f"Invalid balance direction '{credit_debit}' in '{value}'")
        amount = parse_amount(value[10:])
        if amount < 0:
            raise ParseError(f"Negative balance amount in '{value}'")
        return cls(
            credit_debit=credit_debit,
            date=parse_short_date(value[1:7]),
            currency=value[7:10],
            amount=amount,
            variant=variant,
        )

    def render(self, tag_number: str) -> str:
        return (
            f":{tag_number}{self.variant}:{self.credit_debit}{format_short_date(self.date)}"
            f"{self.currency}{format_amount(self.amount, ',')}"
        )


@dataclass(frozen=True)
class Mt940Transaction:
    """Statement line (:61:) with its information field (:86:)."""

    date: Date
    credit_debit: str
    amount: int
    value_date: Optional[Date] = None
    transaction_type: str = TRANSACTION_TYPE_TRANSFER
    reference: Optional[str] = None
    customer_reference: Optional[str] = None
    supplementary: str = ""
    details: str = ""
    is_reversal: bool = False

    @property
    def is_credit(self) -> bool:
        return self.credit_debit == CREDIT

    def counterparty(self) -> Optional[Counterparty]:
        """Best-effort other party: name from the free text, account from the references."""
        if not (self.details or self.supplementary):
            return None
        return Counterparty(
            name=self.supplementary or self.details,
            account=self.customer_reference or self.reference,
        )

    @classmethod
    def parse(cls, line: str, details: str = "", supplementary: str = "") -> "Mt940Transaction":
        """Parse a :61: header line.

        Layout: value date YYMMDD, optional entry date MMDD (its year follows
        the value date, rolling over at a year end), direction,
        optional reversal mark, amount, 4-char type code, optional customer
        reference, optional ``//`` bank reference.

        Raises:
            ParseError: If the line does not follow the layout
        """
        line = line.strip()
        if len(line) < 12:
            raise ParseError(f"Transaction line too short: '{line}'")

        value_date = parse_short_date(line[0:6])
        pos = 6
        entry_date = value_date
        if _is_digits(line[6:8]):
            if not _is_digits(line[8:10]):
                raise ParseError(f"Malformed entry date in '{line}'")
            entry_month = int(line[6:8])
            entry_date = build_date(
                _entry_year(value_date, entry_month), entry_month, int(line[8:10]), line[6:10]
            )
            pos = 10

        credit_debit = line[pos:pos + 1]
        if credit_debit not in (CREDIT, DEBIT):
            raise ParseError(f"Invalid transaction direction '{credit_debit}' in '{line}'")
        pos += 1

        is_reversal = line[pos:pos + 1] == REVERSAL_MARK
        if is_reversal:
            pos += 1

        amount_end = pos
        while amount_end < len(line) and not line[amount_end].isalpha():
            amount_end += 1
        amount = parse_amount(line[pos:amount_end])
        if amount < 0:
            raise ParseError(f"Negative transaction amount in '{line}'")

        transaction_type = line[amount_end:amount_end + 4]
        rest = line[amount_end + 4:]
        customer_reference, separator, reference = rest.partition("//")

        return cls(
            date=entry_date,
            value_date=value_date,
            credit_debit=credit_debit,
            amount=amount,
            transaction_type=transaction_type,
            reference=(reference.strip() or None) if separator else None,
            customer_reference=customer_reference.strip() or None,
            supplementary=supplementary,
            details=details,
            is_reversal=is_reversal,
        )

    def render_lines(self) -> list[str]:
        value_date = self.value_date or self.date
        header = (
            f":61:{format_short_date(value_date)}{self.date.month:02d}{self.date.day:02d}"
            f"{self.credit_debit}{REVERSAL_MARK if self.is_reversal else ''}"
            f"{format_amount(self.amount, ',')}{self.transaction_type}"
            f"{self.customer_reference or ''}"
        )
        if self.reference:
            header += f"//{self.reference}"
        lines = [header]
        if self.supplementary:
            lines.append(self.supplementary)
        wrapped = textwrap.wrap(self.details, width=DETAILS_WRAP_WIDTH, break_on_hyphens=False)
        if wrapped:
            lines.append(f":86:{wrapped[0]}")
            lines.extend(wrapped[1:])
        return lines


@dataclass(frozen=True)
class Mt940Statement:
    """One MT940 record (the content of a ``{4:`` block)."""

    reference: str
    account_id: str
    opening_balance: Mt940Balance
    closing_balance: Mt940Balance
    statement_number: str = ""
    transactions: tuple[Mt940Transaction, ...] = field(default_factory=tuple)

    @classmethod
    def parse(
        cls, content: str, diagnostics: Optional[Diagnostics] = None
    ) -> list["Mt940Statement"]:
        """Parse every record in an MT940 document.

        Rejected records are reported through diagnostics and skipped.

        Args:
            content: Document text
            diagnostics: Optional collector for skipped records and lines

        Returns:
            Parsed records in document order

        Raises:
            InvalidFormatError: If no record could be parsed
        """
        diagnostics = diagnostics if diagnostics is not None else Diagnostics(logger)
        statements = []
        blocks = content.split(BLOCK_OPEN)[1:]

        for number, block in enumerate(blocks, start=1):
            end = block.find(BLOCK_CLOSE)
            record = block if end < 0 else block[:end]
            try:
                statements.append(cls.parse_record(record, diagnostics))
            except StatementError as e:
                diagnostics.warn(f"Record {number}: skipped: {e}", logger)

        if not statements:
            raise InvalidFormatError("No valid MT940 statement found")

        logger.debug("Parsed %d MT940 record(s)", len(statements))
        return statements

    @classmethod
    def parse_record(
        cls, content: str, diagnostics: Optional[Diagnostics] = None
    ) -> "Mt940Statement":
        """Parse a single record in one pass over its lines.

        Raises:
            MissingFieldError: If :20:, :25:, :60a: or :62a: is absent
            ParseError: If a balance is malformed
        """
        diagnostics = diagnostics if diagnostics is not None else Diagnostics(logger)
        reference = None
        account_id = None
        statement_number = ""
        opening_balance = None
        closing_balance = None
        transactions = []

        # State of the :61: being assembled
        tx_line: Optional[str] = None
        details: list[str] = []
        supplementary: list[str] = []
        owner: Optional[str] = None

        def flush_transaction():
            if tx_line is None:
                return
            try:
                transactions.append(
                    Mt940Transaction.parse(tx_line, " ".join(details), " ".join(supplementary))
                )
            except StatementError as e:
                diagnostics.warn(f"Skipping transaction line '{tx_line}': {e}", logger)

        for raw_line in content.splitlines():
            line = raw_line.rstrip()
            match = _TAG_RE.match(line)

            if match is None:
                text = line.strip()
                if not text:
                    continue
                if owner == "86":
                    details.append(text)
                elif owner == "61":
                    supplementary.append(text)
                continue

            tag, value = match.groups()
            owner = tag

            if tag == "20":
                reference = value.strip()
            elif tag == "25":
                account_id = value.strip()
            elif tag == "28C":
                statement_number = value.strip()
            elif tag in ("60F", "60M"):
                flush_transaction()
                tx_line = None
                opening_balance = Mt940Balance.parse(value, variant=tag[-1])
            elif tag in ("62F", "62M"):
                flush_transaction()
                tx_line = None
                closing_balance = Mt940Balance.parse(value, variant=tag[-1])
            elif tag == "61":
                flush_transaction()
                tx_line = value.strip()
                details = []
                supplementary = []
            elif tag == "86":
                if tx_line is not None and not details:
                    details = [value.strip()] if value.strip() else []
                else:
                    # :86: outside a statement line carries no transaction
                    owner = None
            else:
                flush_transaction()
                tx_line = None

        flush_transaction()

        if not reference:
            raise MissingFieldError(":20:")
        if not account_id:
            raise MissingFieldError(":25:")
        if opening_balance is None:
            raise MissingFieldError(":60F: or :60M:")
        if closing_balance is None:
            raise MissingFieldError(":62F: or :62M:")

        return cls(
            reference=reference,
            account_id=account_id,
            statement_number=statement_number,
            opening_balance=opening_balance,
            closing_balance=closing_balance,
            transactions=tuple(transactions),
        )

    def write(self) -> str:
        """Serialize this record as a complete MT940 message."""
        lines = [
            DOCUMENT_HEADER,
            f":20:{self.reference}",
            f":25:{self.account_id}",
            f":28C:{self.statement_number}",
            self.opening_balance.render("60"),
        ]
        for transaction in self.transactions:
            lines.extend(transaction.render_lines())
        lines.append(self.closing_balance.render("62"))
        lines.append(DOCUMENT_TRAILER)
        return "\n".join(lines) + "\n"

    @property
    def currency(self) -> str:
        return self.opening_balance.currency

    def to_statement(self) -> Statement:
        """Map this record onto the canonical model."""
        account = Account(
            iban=self.account_id if looks_like_iban(self.account_id) else None,
            number=self.account_id or UNKNOWN_ACCOUNT,
            currency=self.currency,
        )
        transactions = []
        for tx in self.transactions:
            transactions.append(
                Transaction(
                    date=tx.date,
                    value_date=tx.value_date,
                    amount=Amount(tx.amount, self.currency),
                    is_credit=tx.is_credit,
                    reference=tx.reference,
                    description=tx.details,
                    counterparty=tx.counterparty(),
                )
            )
        return Statement(
            account=account,
            opening_balance=_to_balance(self.opening_balance),
            closing_balance=_to_balance(self.closing_balance),
            transactions=tuple(transactions),
            statement_number=self.statement_number or None,
            reference=self.reference,
        )

    @classmethod
    def from_statement(cls, statement: Statement) -> "Mt940Statement":
        """Build an MT940 record from a canonical statement."""
        transactions = tuple(
            Mt940Transaction(
                date=tx.date,
                value_date=tx.value_date,
                credit_debit=CREDIT if tx.is_credit else DEBIT,
                amount=tx.amount.value,
                reference=tx.reference,
                details=_single_line(tx.description),
            )
            for tx in statement.transactions
        )
        return cls(
            reference=statement.reference or statement.statement_number or statement.account.number,
            account_id=statement.account.iban or statement.account.number,
            statement_number=statement.statement_number or "",
            opening_balance=_from_balance(statement.opening_balance),
            closing_balance=_from_balance(statement.closing_balance),
            transactions=transactions,
        )


def write_mt940(statements: Iterable[Mt940Statement]) -> str:
    """Serialize records as consecutive MT940 messages."""
    return "".join(statement.write() for statement in statements)


def looks_like_iban(account_id: str) -> bool:
    return _IBAN_RE.fullmatch(account_id or "") is not None


def _single_line(text: str) -> str:
    return " ".join(text.split())


def _to_balance(balance: Mt940Balance) -> Balance:
    return Balance(
        amount=Amount(balance.amount, balance.currency),
        date=balance.date,
        is_credit=balance.is_credit,
    )


def _from_balance(balance: Balance) -> Mt940Balance:
    return Mt940Balance(
        credit_debit=CREDIT if balance.is_credit else DEBIT,
        date=balance.date,
        currency=balance.amount.currency,
        amount=balance.amount.value,
    )


def _entry_year(value_date: Date, entry_month: int) -> int:
    """Year of an ``MMDD`` entry date, which lies within months of the value date.

    A value date in December booked in January belongs to the next year, and
    the reverse to the previous one.
    """
    if entry_month - value_date.month > 6:
        return value_date.year - 1
    if value_date.month - entry_month > 6:
        return value_date.year + 1
    return value_date.year


def _is_digits(text: str) -> bool:
    return len(text) > 0 and all("0" <= ch <= "9" for ch in text)
