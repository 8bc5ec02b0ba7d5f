"""Domain layer for stmtkit.

Services live in their own modules (``statement_io``, ``converter``,
``reconciliation``) and are imported from there; they depend on the format
codecs, which in turn depend on the entities exported here.
"""

from stmtkit.domain.entities import (
    Account,
    Amount,
    Balance,
    Counterparty,
    Date,
    Statement,
    StatementFormat,
    Transaction,
)
from stmtkit.domain.errors import StatementError

__all__ = [
    "Account",
    "Amount",
    "Balance",
    "Counterparty",
    "Date",
    "Statement",
    "StatementError",
    "StatementFormat",
    "Transaction",
]
