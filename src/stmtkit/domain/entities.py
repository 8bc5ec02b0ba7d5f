"""Canonical statement entities for stmtkit.

These are pure data classes shared by every format codec. Each codec parses
its own native representation and maps it onto these types; writers and the
reconciliation engine only ever read them. Amounts are integer minor units and
always non-negative: direction is carried by a separate ``is_credit`` flag.
"""

from dataclasses import dataclass
from datetime import date as dt_date
from decimal import Decimal
from enum import Enum
from typing import Optional

from stmtkit.domain.errors import ValidationError, unknown_format

UNKNOWN_ACCOUNT = "UNKNOWN"

I64_MAX = 2**63 - 1


@dataclass(frozen=True, order=True)
class Date:
    """Calendar date as read from a statement.

    No calendar validation happens here; parsers check ranges.
    """

    year: int
    month: int
    day: int

    @classmethod
    def from_date(cls, value: dt_date) -> "Date":
        return cls(value.year, value.month, value.day)

    def to_date(self) -> dt_date:
        """Convert to ``datetime.date``, raising ValueError for impossible dates."""
        return dt_date(self.year, self.month, self.day)

    def __str__(self) -> str:
        return f"{self.year:04d}-{self.month:02d}-{self.day:02d}"


@dataclass(frozen=True)
class Amount:
    """Money magnitude in minor units (cents, kopecks) with a currency code."""

    value: int
    currency: str

    def __post_init__(self):
        if isinstance(self.value, bool) or not isinstance(self.value, int):
            raise ValidationError(
                f"Amount value must be an integer number of minor units, got {self.value!r}"
            )
        if self.value < 0:
            raise ValidationError(
                f"Amount value must be a non-negative magnitude, got {self.value}"
            )
        if self.value > I64_MAX:
            raise ValidationError(f"Amount value {self.value} exceeds 64-bit range")

    def as_decimal(self) -> Decimal:
        """Return the amount in major units, e.g. 12345 -> Decimal('123.45')."""
        return Decimal(self.value).scaleb(-2)

    def __str__(self) -> str:
        return f"{self.as_decimal():.2f} {self.currency}"


@dataclass(frozen=True)
class Account:
    """Statement account."""

    number: str
    currency: str
    iban: Optional[str] = None
    name: Optional[str] = None
    owner: Optional[str] = None


@dataclass(frozen=True)
class Balance:
    """Account balance at a date.

    ``synthesized`` is set when the source document carried no such balance
    and the value was computed or defaulted by the codec.
    """

    amount: Amount
    date: Date
    is_credit: bool
    synthesized: bool = False

    @property
    def signed_value(self) -> int:
        return self.amount.value if self.is_credit else -self.amount.value


@dataclass(frozen=True)
class Counterparty:
    """Other side of a transaction; any subset of fields may be absent."""

    name: Optional[str] = None
    account: Optional[str] = None
    bank_code: Optional[str] = None
    bank_name: Optional[str] = None

    @property
    def is_empty(self) -> bool:
        return not any((self.name, self.account, self.bank_code, self.bank_name))


@dataclass(frozen=True)
class Transaction:
    """Booked statement line."""

    date: Date
    amount: Amount
    is_credit: bool
    description: str = ""
    value_date: Optional[Date] = None
    reference: Optional[str] = None
    counterparty: Optional[Counterparty] = None

    @property
    def signed_value(self) -> int:
        return self.amount.value if self.is_credit else -self.amount.value


@dataclass(frozen=True)
class Statement:
    """Bank statement in canonical form.

    Transaction order is document order and is significant for matching and
    round-trip fidelity.
    """

    account: Account
    opening_balance: Balance
    closing_balance: Balance
    transactions: tuple[Transaction, ...] = ()
    statement_number: Optional[str] = None
    reference: Optional[str] = None

    def __post_init__(self):
        # Accept any sequence but store an immutable tuple
        if not isinstance(self.transactions, tuple):
            object.__setattr__(self, "transactions", tuple(self.transactions))

    @property
    def transaction_count(self) -> int:
        return len(self.transactions)

    @property
    def total_credits(self) -> int:
        return sum(t.amount.value for t in self.transactions if t.is_credit)

    @property
    def total_debits(self) -> int:
        return sum(t.amount.value for t in self.transactions if not t.is_credit)


class StatementFormat(Enum):
    """Supported statement wire formats."""

    MT940 = "mt940"
    CAMT053 = "camt053"
    CSV = "csv"

    @classmethod
    def parse(cls, name: str) -> "StatementFormat":
        """Resolve a format from a case-insensitive short name or alias.

        Raises:
            ValidationError: If the name is not a recognized alias
        """
        key = (name or "").strip().lower()
        fmt = _FORMAT_ALIASES.get(key)
        if fmt is None:
            raise ValidationError(unknown_format(name, sorted(_FORMAT_ALIASES)))
        return fmt

    @property
    def label(self) -> str:
        return _FORMAT_LABELS[self]


_FORMAT_ALIASES = {
    "mt940": StatementFormat.MT940,
    "mt-940": StatementFormat.MT940,
    "swift": StatementFormat.MT940,
    "camt053": StatementFormat.CAMT053,
    "camt.053": StatementFormat.CAMT053,
    "camt": StatementFormat.CAMT053,
    "xml": StatementFormat.CAMT053,
    "csv": StatementFormat.CSV,
}

_FORMAT_LABELS = {
    StatementFormat.MT940: "MT940",
    StatementFormat.CAMT053: "CAMT.053",
    StatementFormat.CSV: "CSV",
}
