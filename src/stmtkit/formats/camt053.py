"""CAMT.053 (ISO 20022 bank-to-customer statement) codec.

Only the subset of elements needed to represent a bank statement is read or
written. Parsing locates elements with the substring helpers in
:mod:`stmtkit.formats.markup`; it is not a general XML parser.
"""

import logging
from dataclasses import dataclass
from datetime import UTC, datetime
from typing import Optional

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
from stmtkit.domain.errors import (
    InvalidFormatError,
    MissingFieldError,
    ParseError,
    StatementError,
)
from stmtkit.formats.diagnostics import Diagnostics
from stmtkit.formats.markup import (
    DEFAULT_CURRENCY,
    MarkupWriter,
    amount_with_currency,
    element_block,
    find_element,
    iter_blocks,
    non_empty_value,
    unescape,
)
from stmtkit.formats.mt940 import looks_like_iban
from stmtkit.utils.amount_parser import format_amount
from stmtkit.utils.date_parser import format_timestamp, parse_iso_date, parse_timestamp

logger = logging.getLogger(__name__)

NAMESPACE = "urn:iso:std:iso:20022:tech:xsd:camt.053.001.02"

ROOT_MARKER = "<BkToCstmrStmt>"
STATEMENT_OPEN = "<Stmt>"
STATEMENT_CLOSE = "</Stmt>"

BALANCE_TYPE_OPENING = "OPBD"
BALANCE_TYPE_PREVIOUSLY_CLOSED = "PRCD"
BALANCE_TYPE_CLOSING = "CLBD"
OPENING_BALANCE_TYPES = (BALANCE_TYPE_OPENING, BALANCE_TYPE_PREVIOUSLY_CLOSED)

CREDIT_INDICATOR = "CRDT"
DEBIT_INDICATOR = "DBIT"

STATUS_BOOKED = "BOOK"
END_TO_END_NOT_PROVIDED = "NOTPROVIDED"


@dataclass(frozen=True)
class Camt053Account:
    """Account block (<Acct>)."""

    currency: str = DEFAULT_CURRENCY
    iban: Optional[str] = None
    other_id: Optional[str] = None
    name: Optional[str] = None
    owner_name: Optional[str] = None

    @property
    def identifier(self) -> Optional[str]:
        return self.iban or self.other_id


@dataclass(frozen=True)
class Camt053Balance:
    """Balance block (<Bal>)."""

    balance_type: str
    amount: int
    currency: str
    credit_debit: str
    date: Date

    @property
    def is_credit(self) -> bool:
        return self.credit_debit == CREDIT_INDICATOR


@dataclass(frozen=True)
class Camt053TransactionDetails:
    """Transaction details block (<TxDtls>)."""

    end_to_end_id: Optional[str] = None
    transaction_id: Optional[str] = None
    amount: Optional[int] = None
    currency: Optional[str] = None
    debtor_name: Optional[str] = None
    debtor_account: Optional[str] = None
    debtor_bank_code: Optional[str] = None
    debtor_bank_name: Optional[str] = None
    creditor_name: Optional[str] = None
    creditor_account: Optional[str] = None
    creditor_bank_code: Optional[str] = None
    creditor_bank_name: Optional[str] = None
    remittance_info: tuple[str, ...] = ()

    def counterparty(self, is_credit: bool) -> Optional[Counterparty]:
        """Return the other party: the debtor of a credit, the creditor of a debit."""
        if is_credit:
            party = Counterparty(
                name=self.debtor_name,
                account=self.debtor_account,
                bank_code=self.debtor_bank_code,
                bank_name=self.debtor_bank_name,
            )
        else:
            party = Counterparty(
                name=self.creditor_name,
                account=self.creditor_account,
                bank_code=self.creditor_bank_code,
                bank_name=self.creditor_bank_name,
            )
        return None if party.is_empty else party


@dataclass(frozen=True)
class Camt053Entry:
    """Entry block (<Ntry>)."""

    amount: int
    currency: str
    credit_debit: str
    booking_date: Date
    entry_ref: Optional[str] = None
    status: str = STATUS_BOOKED
    value_date: Optional[Date] = None
    account_servicer_ref: Optional[str] = None
    additional_info: Optional[str] = None
    transaction_details: tuple[Camt053TransactionDetails, ...] = ()

    @property
    def is_credit(self) -> bool:
        return self.credit_debit == CREDIT_INDICATOR


@dataclass(frozen=True)
class Camt053Statement:
    """Single <Stmt> of a CAMT.053 document together with its group header."""

    message_id: str
    creation_date_time: str
    statement_id: str
    account: Camt053Account
    balances: tuple[Camt053Balance, ...] = ()
    entries: tuple[Camt053Entry, ...] = ()

    @property
    def created_at(self) -> datetime:
        """Creation time parsed from CreDtTm.

        Raises:
            ParseError: If CreDtTm is not an ISO 8601 timestamp
        """
        return parse_timestamp(self.creation_date_time)

    def find_balance(self, *balance_types: str) -> Optional[Camt053Balance]:
        """Return the first balance whose type is among ``balance_types``, by priority."""
        for balance_type in balance_types:
            for balance in self.balances:
                if balance.balance_type == balance_type:
                    return balance
        return None

    @classmethod
    def parse(cls, content: str, diagnostics: Optional[Diagnostics] = None) -> "Camt053Statement":
        """Parse a CAMT.053 document.

        Malformed balances and entries are reported through diagnostics and
        skipped; structural and mandatory-field problems are fatal.

        Raises:
            InvalidFormatError: If the root or statement markers are missing
            MissingFieldError: If MsgId, CreDtTm or the statement Id is missing
        """
        diagnostics = diagnostics if diagnostics is not None else Diagnostics(logger)
        content = content.strip()

        if ROOT_MARKER not in content:
            raise InvalidFormatError("BkToCstmrStmt element not found")

        message_id = non_empty_value(content, "MsgId")
        if message_id is None:
            raise MissingFieldError("MsgId")
        creation_date_time = non_empty_value(content, "CreDtTm")
        if creation_date_time is None:
            raise MissingFieldError("CreDtTm")

        stmt_start = content.find(STATEMENT_OPEN)
        if stmt_start < 0:
            raise InvalidFormatError("Stmt element not found")
        stmt_end = content.find(STATEMENT_CLOSE, stmt_start)
        if stmt_end < 0:
            raise InvalidFormatError("Stmt closing tag not found")
        stmt_content = content[stmt_start + len(STATEMENT_OPEN):stmt_end]

        statement_id = non_empty_value(_statement_header(stmt_content), "Id")
        if statement_id is None:
            raise MissingFieldError("Stmt/Id")

        balances = []
        for number, block in enumerate(iter_blocks(stmt_content, "Bal"), start=1):
            try:
                balances.append(_parse_balance(block))
            except StatementError as e:
                diagnostics.warn(f"Balance {number}: skipped: {e}", logger)

        entries = []
        for number, block in enumerate(iter_blocks(stmt_content, "Ntry"), start=1):
            try:
                entries.append(_parse_entry(block, diagnostics))
            except StatementError as e:
                diagnostics.warn(f"Entry {number}: skipped: {e}", logger)

        logger.debug(
            "Parsed CAMT.053 statement %s: %d balances, %d entries",
            statement_id,
            len(balances),
            len(entries),
        )
        return cls(
            message_id=message_id,
            creation_date_time=creation_date_time,
            statement_id=statement_id,
            account=_parse_account(stmt_content),
            balances=tuple(balances),
            entries=tuple(entries),
        )

    def write(self) -> str:
        """Serialize as a complete CAMT.053 document."""
        writer = MarkupWriter()
        writer.raw('<?xml version="1.0" encoding="UTF-8"?>')
        with writer.element("Document", {"xmlns": NAMESPACE}):
            with writer.element("BkToCstmrStmt"):
                with writer.element("GrpHdr"):
                    writer.leaf("MsgId", self.message_id)
                    writer.leaf("CreDtTm", self.creation_date_time)
                with writer.element("Stmt"):
                    writer.leaf("Id", self.statement_id)
                    _write_account(writer, self.account)
                    for balance in self.balances:
                        _write_balance(writer, balance)
                    for entry in self.entries:
                        _write_entry(writer, entry)
        return writer.render()

    def to_statement(self) -> Statement:
        """Map onto the canonical model.

        Missing opening or closing balances are synthesized as zero credit
        balances dated on the creation date.
        """
        account = Account(
            iban=self.account.iban,
            number=self.account.identifier or UNKNOWN_ACCOUNT,
            currency=self.account.currency,
            name=self.account.name,
            owner=self.account.owner_name,
        )

        opening = self.find_balance(*OPENING_BALANCE_TYPES)
        closing = self.find_balance(BALANCE_TYPE_CLOSING)
        fallback_date = None
        if opening is None or closing is None:
            fallback_date = Date.from_date(self.created_at.date())
            logger.warning(
                "Statement %s lacks an opening or closing balance; using zero on %s",
                self.statement_id,
                fallback_date,
            )

        transactions = []
        for entry in self.entries:
            details = entry.transaction_details[0] if entry.transaction_details else None
            description = ""
            counterparty = None
            if details is not None:
                description = " ".join(details.remittance_info)
                counterparty = details.counterparty(entry.is_credit)
            if not description and entry.additional_info:
                description = entry.additional_info
            transactions.append(
                Transaction(
                    date=entry.booking_date,
                    value_date=entry.value_date,
                    amount=Amount(entry.amount, entry.currency),
                    is_credit=entry.is_credit,
                    reference=entry.account_servicer_ref,
                    description=description,
                    counterparty=counterparty,
                )
            )

        return Statement(
            account=account,
            opening_balance=_to_balance(opening, self.account.currency, fallback_date),
            closing_balance=_to_balance(closing, self.account.currency, fallback_date),
            transactions=tuple(transactions),
            statement_number=self.statement_id,
            reference=self.message_id,
        )

    @classmethod
    def from_statement(
        cls, statement: Statement, created_at: Optional[datetime] = None
    ) -> "Camt053Statement":
        """Build a CAMT.053 statement from a canonical statement.

        Args:
            statement: Canonical statement
            created_at: Creation time for the group header (default: now, UTC)
        """
        created_at = created_at or datetime.now(UTC)
        account = Camt053Account(
            iban=statement.account.iban,
            other_id=None if statement.account.iban else statement.account.number,
            currency=statement.account.currency,
            name=statement.account.name,
            owner_name=statement.account.owner,
        )
        balances = (
            _from_balance(BALANCE_TYPE_OPENING, statement.opening_balance),
            _from_balance(BALANCE_TYPE_CLOSING, statement.closing_balance),
        )
        entries = []
        for index, tx in enumerate(statement.transactions, start=1):
            party = tx.counterparty or Counterparty()
            # The counterparty pays a credit and receives a debit
            side = "debtor" if tx.is_credit else "creditor"
            details = Camt053TransactionDetails(
                end_to_end_id=END_TO_END_NOT_PROVIDED,
                transaction_id=tx.reference,
                amount=tx.amount.value,
                currency=tx.amount.currency,
                remittance_info=(tx.description,) if tx.description else (),
                **{
                    f"{side}_name": party.name,
                    f"{side}_account": party.account,
                    f"{side}_bank_code": party.bank_code,
                    f"{side}_bank_name": party.bank_name,
                },
            )
            entries.append(
                Camt053Entry(
                    entry_ref=str(index),
                    amount=tx.amount.value,
                    currency=tx.amount.currency,
                    credit_debit=CREDIT_INDICATOR if tx.is_credit else DEBIT_INDICATOR,
                    booking_date=tx.date,
                    value_date=tx.value_date,
                    account_servicer_ref=tx.reference,
                    transaction_details=(details,),
                )
            )
        return cls(
            message_id=statement.reference or f"STMT-{statement.account.number}",
            creation_date_time=format_timestamp(created_at),
            statement_id=statement.statement_number or statement.reference or "1",
            account=account,
            balances=balances,
            entries=tuple(entries),
        )


def _statement_header(stmt_content: str) -> str:
    """Slice the statement content before its first child block."""
    cut = len(stmt_content)
    for marker in ("<Acct>", "<Bal>", "<Ntry>"):
        pos = stmt_content.find(marker)
        if 0 <= pos < cut:
            cut = pos
    return stmt_content[:cut]


def parse_date_element(content: str) -> Date:
    """Parse the first date element, unwrapping nested ``<Dt>`` wrappers.

    Falls back to ``<DtTm>`` when no ``<Dt>`` is present.

    Raises:
        MissingFieldError: If neither Dt nor DtTm is present
        ParseError: If the date text is malformed
    """
    date_str = element_block(content, "Dt")
    if date_str is None:
        timestamp = non_empty_value(content, "DtTm")
        if timestamp is None:
            raise MissingFieldError("Dt")
        return Date.from_date(parse_timestamp(timestamp).date())

    # The block ends at the first </Dt>, which closes the innermost wrapper
    nested = date_str.rfind("<Dt>")
    if nested >= 0:
        date_str = date_str[nested + len("<Dt>"):]

    return parse_iso_date(date_str)


def _parse_account(stmt_content: str) -> Camt053Account:
    acct = element_block(stmt_content, "Acct")
    if acct is None:
        return Camt053Account()
    owner = element_block(acct, "Ownr")
    # Nm, Ccy and Othr/Id of the account itself sit outside Ownr and Svcr
    own_level = _without_elements(acct, "Ownr", "Svcr")
    other = element_block(own_level, "Othr")
    return Camt053Account(
        iban=non_empty_value(own_level, "IBAN"),
        other_id=non_empty_value(other, "Id") if other is not None else None,
        currency=non_empty_value(own_level, "Ccy") or DEFAULT_CURRENCY,
        name=non_empty_value(own_level, "Nm"),
        owner_name=non_empty_value(owner, "Nm") if owner is not None else None,
    )


def _without_elements(content: str, *tags: str) -> str:
    """Cut the first element of each tag, open and close tags included."""
    for tag in tags:
        element = find_element(content, tag)
        if element is not None:
            content = content[:element.start] + content[element.end:]
    return content


def _parse_credit_debit(content: str) -> str:
    indicator = non_empty_value(content, "CdtDbtInd") or CREDIT_INDICATOR
    if indicator not in (CREDIT_INDICATOR, DEBIT_INDICATOR):
        raise ParseError(f"Invalid credit/debit indicator '{indicator}'")
    return indicator


def _parse_non_negative_amount(content: str) -> tuple[int, str]:
    amount, currency = amount_with_currency(content)
    if amount < 0:
        raise ParseError(f"Negative amount {amount} with separate credit/debit indicator")
    return amount, currency


def _parse_balance(content: str) -> Camt053Balance:
    tp = element_block(content, "Tp") or ""
    balance_type = non_empty_value(tp, "Cd") or non_empty_value(tp, "Prtry") or ""
    amount, currency = _parse_non_negative_amount(content)
    return Camt053Balance(
        balance_type=balance_type,
        amount=amount,
        currency=currency,
        credit_debit=_parse_credit_debit(content),
        date=parse_date_element(content),
    )


def _parse_entry(content: str, diagnostics: Diagnostics) -> Camt053Entry:
    details_pos = content.find("<NtryDtls")
    header = content if details_pos < 0 else content[:details_pos]

    amount, currency = _parse_non_negative_amount(header)

    booking = element_block(header, "BookgDt")
    if booking is None:
        raise MissingFieldError("BookgDt")
    booking_date = parse_date_element(booking)

    value_date = None
    value_block = element_block(header, "ValDt")
    if value_block is not None:
        try:
            value_date = parse_date_element(value_block)
        except StatementError as e:
            diagnostics.warn(f"Dropping malformed value date: {e}", logger)

    details = tuple(
        _parse_transaction_details(block) for block in iter_blocks(content, "TxDtls")
    )
    return Camt053Entry(
        entry_ref=non_empty_value(header, "NtryRef"),
        amount=amount,
        currency=currency,
        credit_debit=_parse_credit_debit(header),
        status=non_empty_value(header, "Sts") or STATUS_BOOKED,
        booking_date=booking_date,
        value_date=value_date,
        account_servicer_ref=non_empty_value(header, "AcctSvcrRef"),
        additional_info=non_empty_value(header, "AddtlNtryInf"),
        transaction_details=details,
    )


def _parse_transaction_details(content: str) -> Camt053TransactionDetails:
    amount = currency = None
    amount_block = element_block(content, "AmtDtls")
    if amount_block is not None:
        try:
            amount, currency = _parse_non_negative_amount(amount_block)
        except StatementError:
            logger.debug("Ignoring unreadable AmtDtls amount")

    refs = element_block(content, "Refs") or ""
    debtor_name, debtor_account = _parse_party(content, "Dbtr")
    creditor_name, creditor_account = _parse_party(content, "Cdtr")
    debtor_bank_code, debtor_bank_name = _parse_agent(content, "DbtrAgt")
    creditor_bank_code, creditor_bank_name = _parse_agent(content, "CdtrAgt")

    remittance = element_block(content, "RmtInf") or ""
    remittance_info = tuple(
        unescape(line.strip()) for line in iter_blocks(remittance, "Ustrd") if line.strip()
    )
    return Camt053TransactionDetails(
        end_to_end_id=non_empty_value(refs, "EndToEndId"),
        transaction_id=non_empty_value(refs, "TxId"),
        amount=amount,
        currency=currency,
        debtor_name=debtor_name,
        debtor_account=debtor_account,
        debtor_bank_code=debtor_bank_code,
        debtor_bank_name=debtor_bank_name,
        creditor_name=creditor_name,
        creditor_account=creditor_account,
        creditor_bank_code=creditor_bank_code,
        creditor_bank_name=creditor_bank_name,
        remittance_info=remittance_info,
    )


def _parse_account_id(content: Optional[str]) -> Optional[str]:
    if content is None:
        return None
    iban = non_empty_value(content, "IBAN")
    if iban is not None:
        return iban
    other = element_block(content, "Othr")
    return non_empty_value(other, "Id") if other is not None else None


def _parse_party(content: str, party_tag: str) -> tuple[Optional[str], Optional[str]]:
    """Return (name, account) of the debtor or creditor.

    The name sits inside ``<Dbtr>``/``<Cdtr>``; the account in the sibling
    ``<DbtrAcct>``/``<CdtrAcct>``.
    """
    party = element_block(content, party_tag)
    name = non_empty_value(party, "Nm") if party is not None else None
    account = _parse_account_id(element_block(content, f"{party_tag}Acct"))
    return name, account


def _parse_agent(content: str, agent_tag: str) -> tuple[Optional[str], Optional[str]]:
    agent = element_block(content, agent_tag)
    if agent is None:
        return None, None
    code = non_empty_value(agent, "BIC") or non_empty_value(agent, "BICFI")
    return code, non_empty_value(agent, "Nm")


def _to_balance(
    balance: Optional[Camt053Balance], currency: str, fallback_date: Optional[Date]
) -> Balance:
    if balance is None:
        return Balance(
            amount=Amount(0, currency),
            date=fallback_date,
            is_credit=True,
            synthesized=True,
        )
    return Balance(
        amount=Amount(balance.amount, balance.currency),
        date=balance.date,
        is_credit=balance.is_credit,
    )


def _from_balance(balance_type: str, balance: Balance) -> Camt053Balance:
    return Camt053Balance(
        balance_type=balance_type,
        amount=balance.amount.value,
        currency=balance.amount.currency,
        credit_debit=CREDIT_INDICATOR if balance.is_credit else DEBIT_INDICATOR,
        date=balance.date,
    )


def _write_account_id(writer: MarkupWriter, account_id: str) -> None:
    with writer.element("Id"):
        if looks_like_iban(account_id):
            writer.leaf("IBAN", account_id)
        else:
            with writer.element("Othr"):
                writer.leaf("Id", account_id)


def _write_date(writer: MarkupWriter, tag: str, value: Date) -> None:
    with writer.element(tag):
        writer.leaf("Dt", str(value))


def _write_account(writer: MarkupWriter, account: Camt053Account) -> None:
    with writer.element("Acct"):
        with writer.element("Id"):
            if account.iban:
                writer.leaf("IBAN", account.iban)
            else:
                with writer.element("Othr"):
                    writer.leaf("Id", account.other_id or UNKNOWN_ACCOUNT)
        writer.leaf("Ccy", account.currency)
        writer.leaf("Nm", account.name)
        if account.owner_name:
            with writer.element("Ownr"):
                writer.leaf("Nm", account.owner_name)


def _write_balance(writer: MarkupWriter, balance: Camt053Balance) -> None:
    with writer.element("Bal"):
        with writer.element("Tp"):
            with writer.element("CdOrPrtry"):
                writer.leaf("Cd", balance.balance_type)
        writer.leaf("Amt", format_amount(balance.amount), {"Ccy": balance.currency})
        writer.leaf("CdtDbtInd", balance.credit_debit)
        _write_date(writer, "Dt", balance.date)


def _write_entry(writer: MarkupWriter, entry: Camt053Entry) -> None:
    with writer.element("Ntry"):
        writer.leaf("NtryRef", entry.entry_ref)
        writer.leaf("Amt", format_amount(entry.amount), {"Ccy": entry.currency})
        writer.leaf("CdtDbtInd", entry.credit_debit)
        writer.leaf("Sts", entry.status)
        _write_date(writer, "BookgDt", entry.booking_date)
        if entry.value_date is not None:
            _write_date(writer, "ValDt", entry.value_date)
        writer.leaf("AcctSvcrRef", entry.account_servicer_ref)
        writer.leaf("AddtlNtryInf", entry.additional_info)
        if entry.transaction_details:
            with writer.element("NtryDtls"):
                for details in entry.transaction_details:
                    _write_transaction_details(writer, details)


def _write_party(
    writer: MarkupWriter, party_tag: str, name: Optional[str], account: Optional[str]
) -> None:
    if name:
        with writer.element(party_tag):
            writer.leaf("Nm", name)
    if account:
        with writer.element(f"{party_tag}Acct"):
            _write_account_id(writer, account)


def _write_agent(
    writer: MarkupWriter, agent_tag: str, code: Optional[str], name: Optional[str]
) -> None:
    if not (code or name):
        return
    with writer.element(agent_tag):
        with writer.element("FinInstnId"):
            writer.leaf("BIC", code)
            writer.leaf("Nm", name)


def _write_transaction_details(writer: MarkupWriter, details: Camt053TransactionDetails) -> None:
    with writer.element("TxDtls"):
        with writer.element("Refs"):
            writer.leaf("EndToEndId", details.end_to_end_id)
            writer.leaf("TxId", details.transaction_id)
        if details.amount is not None and details.currency:
            with writer.element("AmtDtls"):
                with writer.element("TxAmt"):
                    writer.leaf("Amt", format_amount(details.amount), {"Ccy": details.currency})
        if any((details.debtor_name, details.debtor_account,
                details.creditor_name, details.creditor_account)):
            with writer.element("RltdPties"):
                _write_party(writer, "Dbtr", details.debtor_name, details.debtor_account)
                _write_party(writer, "Cdtr", details.creditor_name, details.creditor_account)
        if any((details.debtor_bank_code, details.debtor_bank_name,
                details.creditor_bank_code, details.creditor_bank_name)):
            with writer.element("RltdAgts"):
                _write_agent(writer, "DbtrAgt", details.debtor_bank_code, details.debtor_bank_name)
                _write_agent(writer, "CdtrAgt", details.creditor_bank_code, details.creditor_bank_name)
        if details.remittance_info:
            with writer.element("RmtInf"):
                for line in details.remittance_info:
                    writer.leaf("Ustrd", line)
