"""Wire format codecs for stmtkit."""

from stmtkit.formats.bank_csv import BankCsvStatement, BankCsvTransaction, write_bank_csv
from stmtkit.formats.camt053 import Camt053Statement
from stmtkit.formats.diagnostics import Diagnostics
from stmtkit.formats.mt940 import Mt940Statement, write_mt940

__all__ = [
    "BankCsvStatement",
    "BankCsvTransaction",
    "Camt053Statement",
    "Diagnostics",
    "Mt940Statement",
    "write_bank_csv",
    "write_mt940",
]
