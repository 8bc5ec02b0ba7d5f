"""Cross-format statement conversion service."""

import logging
from datetime import UTC, datetime
from typing import Optional

from stmtkit.domain.entities import UNKNOWN_ACCOUNT, StatementFormat
from stmtkit.domain.errors import (
    MissingFieldError,
    UnsupportedConversionError,
    conversion_not_supported,
)
from stmtkit.domain.statement_io import parse_statements, write_statements
from stmtkit.formats.camt053 import (
    BALANCE_TYPE_CLOSING,
    BALANCE_TYPE_OPENING,
    CREDIT_INDICATOR,
    DEBIT_INDICATOR,
    END_TO_END_NOT_PROVIDED,
    OPENING_BALANCE_TYPES,
    Camt053Account,
    Camt053Balance,
    Camt053Entry,
    Camt053Statement,
    Camt053TransactionDetails,
)
from stmtkit.formats.diagnostics import Diagnostics
from stmtkit.formats.mt940 import (
    CREDIT,
    DEBIT,
    TRANSACTION_TYPE_TRANSFER,
    Mt940Balance,
    Mt940Statement,
    Mt940Transaction,
    looks_like_iban,
    write_mt940,
)
from stmtkit.utils.date_parser import format_timestamp

logger = logging.getLogger(__name__)

MT940_MESSAGE_PREFIX = "MT940-"


class ConversionService:
    """Service for converting statement documents between formats."""

    def __init__(self, created_at: Optional[datetime] = None):
        """Initialize conversion service.

        Args:
            created_at: Creation time stamped on generated CAMT.053 documents
                (default: time of conversion)
        """
        self.created_at = created_at

    def convert(
        self,
        content: str,
        source: StatementFormat,
        target: StatementFormat,
        diagnostics: Optional[Diagnostics] = None,
    ) -> str:
        """Convert a document from one format to another.

        Args:
            content: Source document text
            source: Format of the content
            target: Desired output format
            diagnostics: Optional collector for items skipped while parsing

        Returns:
            Serialized document in the target format; the content itself when
            source and target are the same

        Raises:
            UnsupportedConversionError: If the target cannot be produced from the source
            StatementError: If the source cannot be parsed
        """
        if source is target:
            logger.info("Source and target are both %s; passing content through", source.label)
            return content

        if source is StatementFormat.CSV:
            raise UnsupportedConversionError(conversion_not_supported(source.label, target.label))

        diagnostics = diagnostics if diagnostics is not None else Diagnostics(logger)

        if source is StatementFormat.MT940 and target is StatementFormat.CAMT053:
            records = Mt940Statement.parse(content, diagnostics)
            output = "".join(
                mt940_to_camt053(record, self.created_at).write() for record in records
            )
            count = len(records)
        elif source is StatementFormat.CAMT053 and target is StatementFormat.MT940:
            camt = Camt053Statement.parse(content, diagnostics)
            output = write_mt940([camt053_to_mt940(camt)])
            count = 1
        else:
            statements = parse_statements(content, source, diagnostics)
            output = write_statements(statements, target)
            count = len(statements)

        logger.info(
            "Converted %d %s statement(s) to %s (%d warning(s))",
            count,
            source.label,
            target.label,
            len(diagnostics.warnings),
        )
        return output


def mt940_to_camt053(mt940: Mt940Statement, created_at: Optional[datetime] = None) -> Camt053Statement:
    """Map an MT940 record directly onto a CAMT.053 statement.

    Args:
        mt940: Parsed MT940 record
        created_at: Creation time for the group header (default: now, UTC)

    Returns:
        CAMT.053 statement with OPBD/CLBD balances and one entry per line
    """
    currency = mt940.currency
    account = Camt053Account(
        iban=mt940.account_id if looks_like_iban(mt940.account_id) else None,
        other_id=None if looks_like_iban(mt940.account_id) else mt940.account_id,
        currency=currency,
    )

    entries = []
    for index, tx in enumerate(mt940.transactions, start=1):
        party = tx.counterparty()
        party_name = party.name if party else None
        party_account = party.account if party else None
        details = Camt053TransactionDetails(
            end_to_end_id=END_TO_END_NOT_PROVIDED,
            transaction_id=tx.reference,
            amount=tx.amount,
            currency=currency,
            debtor_name=party_name if tx.is_credit else None,
            debtor_account=party_account if tx.is_credit else None,
            creditor_name=None if tx.is_credit else party_name,
            creditor_account=None if tx.is_credit else party_account,
            remittance_info=(tx.details,) if tx.details else (),
        )
        entries.append(
            Camt053Entry(
                entry_ref=str(index),
                amount=tx.amount,
                currency=currency,
                credit_debit=_indicator(tx.credit_debit),
                booking_date=tx.date,
                value_date=tx.value_date,
                account_servicer_ref=tx.reference,
                transaction_details=(details,),
            )
        )

    return Camt053Statement(
        message_id=f"{MT940_MESSAGE_PREFIX}{mt940.reference}",
        creation_date_time=format_timestamp(created_at or datetime.now(UTC)),
        statement_id=mt940.statement_number or mt940.reference,
        account=account,
        balances=(
            _camt_balance(BALANCE_TYPE_OPENING, mt940.opening_balance),
            _camt_balance(BALANCE_TYPE_CLOSING, mt940.closing_balance),
        ),
        entries=tuple(entries),
    )


def camt053_to_mt940(camt: Camt053Statement) -> Mt940Statement:
    """Map a CAMT.053 statement directly onto an MT940 record.

    Raises:
        MissingFieldError: If the opening (OPBD/PRCD) or closing (CLBD) balance is absent
    """
    opening = camt.find_balance(*OPENING_BALANCE_TYPES)
    if opening is None:
        raise MissingFieldError("opening balance (OPBD)")
    closing = camt.find_balance(BALANCE_TYPE_CLOSING)
    if closing is None:
        raise MissingFieldError("closing balance (CLBD)")

    transactions = []
    for entry in camt.entries:
        reference = entry.account_servicer_ref
        details = ""
        if entry.transaction_details:
            tx_details = entry.transaction_details[0]
            reference = tx_details.transaction_id or entry.account_servicer_ref
            parts = [
                tx_details.debtor_name,
                tx_details.creditor_name,
                tx_details.debtor_account,
                tx_details.creditor_account,
                *tx_details.remittance_info,
            ]
            details = " ".join(part for part in parts if part)
        transactions.append(
            Mt940Transaction(
                date=entry.booking_date,
                value_date=entry.value_date,
                credit_debit=CREDIT if entry.is_credit else DEBIT,
                amount=entry.amount,
                transaction_type=TRANSACTION_TYPE_TRANSFER,
                reference=reference,
                details=details or (entry.additional_info or ""),
            )
        )

    reference = camt.message_id
    if reference.startswith(MT940_MESSAGE_PREFIX):
        reference = reference[len(MT940_MESSAGE_PREFIX):]

    return Mt940Statement(
        reference=reference,
        account_id=camt.account.identifier or UNKNOWN_ACCOUNT,
        statement_number=camt.statement_id,
        opening_balance=_mt940_balance(opening),
        closing_balance=_mt940_balance(closing),
        transactions=tuple(transactions),
    )


def _indicator(credit_debit: str) -> str:
    return CREDIT_INDICATOR if credit_debit == CREDIT else DEBIT_INDICATOR


def _camt_balance(balance_type: str, balance: Mt940Balance) -> Camt053Balance:
    return Camt053Balance(
        balance_type=balance_type,
        amount=balance.amount,
        currency=balance.currency,
        credit_debit=_indicator(balance.credit_debit),
        date=balance.date,
    )


def _mt940_balance(balance: Camt053Balance) -> Mt940Balance:
    return Mt940Balance(
        credit_debit=CREDIT if balance.is_credit else DEBIT,
        date=balance.date,
        currency=balance.currency,
        amount=balance.amount,
    )
