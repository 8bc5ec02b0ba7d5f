"""Shared pytest fixtures for stmtkit tests."""

from datetime import datetime
from pathlib import Path

import pytest

from stmtkit.domain.entities import (
    Account,
    Amount,
    Balance,
    Counterparty,
    Date,
    Statement,
    Transaction,
)
from stmtkit.formats.diagnostics import Diagnostics

SAMPLE_MT940 = """{1:F01ASNBNL21XXXX0000000000}{2:O940ASNBNL21XXXXN}{3:}{4:
:20:0000000000
:25:NL81ASNB9999999999
:28C:1/1
:60F:C200101EUR444,29
:61:2001010101D65,00NOVBNL47INGB9999999999
hr gjlm paulissen
:86:NL47INGB9999999999 hr gjlm paulissen

Betaling sieraden



:62F:C200101EUR379,29
-}{5:}
"""

SAMPLE_CAMT053 = """<?xml version="1.0" encoding="UTF-8"?>
<Document xmlns="urn:iso:std:iso:20022:tech:xsd:camt.053.001.02">
<BkToCstmrStmt>
<GrpHdr>
<MsgId>SAMPLE001</MsgId>
<CreDtTm>2024-01-01T00:00:00</CreDtTm>
</GrpHdr>
<Stmt>
<Id>STMT001</Id>
<Acct>
<Id>
<IBAN>DK8030000001234567</IBAN>
</Id>
<Ccy>DKK</Ccy>
<Nm>Sample Account</Nm>
</Acct>
<Bal>
<Tp>
<CdOrPrtry>
<Cd>OPBD</Cd>
</CdOrPrtry>
</Tp>
<Amt Ccy="DKK">10000.00</Amt>
<CdtDbtInd>CRDT</CdtDbtInd>
<Dt>
<Dt>2024-01-01</Dt>
</Dt>
</Bal>
<Bal>
<Tp>
<CdOrPrtry>
<Cd>CLBD</Cd>
</CdOrPrtry>
</Tp>
<Amt Ccy="DKK">10591.15</Amt>
<CdtDbtInd>CRDT</CdtDbtInd>
<Dt>
<Dt>2024-01-31</Dt>
</Dt>
</Bal>
<Ntry>
<Amt Ccy="DKK">591.15</Amt>
<CdtDbtInd>CRDT</CdtDbtInd>
<BookgDt>
<Dt>2024-01-15</Dt>
</BookgDt>
<NtryDtls>
<TxDtls>
<Refs>
<EndToEndId>E2E001</EndToEndId>
</Refs>
<RmtInf>
<Ustrd>Payment for invoice</Ustrd>
</RmtInf>
</TxDtls>
</NtryDtls>
</Ntry>
</Stmt>
</BkToCstmrStmt>
</Document>
"""

OWN_ACCOUNT = "40702810900000012345"

CSV_HEADER_LINES = [
    ",Сбербанк Бизнес Онлайн,,,,,",
    ",Выписка сформирована в 10:00,,,,,",
    f",Выписка операций по лицевому счету,,,,{OWN_ACCOUNT},",
    ",ООО Ромашка,,,,,",
    ",за период с 01.01.2024 по 31.01.2024,,,,,",
    ",Российский рубль,,,,,",
    ",,,,,,",
    ",Дата проводки,,,Счет,,,,,Сумма по дебету,,,,Сумма по кредиту,№ документа",
    ",,,,Дебет,,,,Кредит,,,,,,",
    ",,,,,,",
    ",,,,,,",
    ",1,2,3,4,5,6,7,8,9,10,11,12,13,14,15,16,17,18,19,20",
]


def _quote(value: str) -> str:
    if any(ch in value for ch in ',"\n'):
        return '"' + value.replace('"', '""') + '"'
    return value


def csv_row(
    date: str,
    debit_account: str = "",
    credit_account: str = "",
    debit_amount: str = "",
    credit_amount: str = "",
    document_number: str = "",
    bank_info: str = "",
    description: str = "",
    width: int = 22,
) -> str:
    """Build one bank export data row with values at their column positions."""
    fields = [""] * width
    fields[1] = date
    fields[4] = debit_account
    fields[8] = credit_account
    fields[9] = debit_amount
    fields[13] = credit_amount
    fields[14] = document_number
    fields[17] = bank_info
    if width > 20:
        fields[20] = description
    return ",".join(_quote(field) for field in fields)


def build_bank_csv(rows: list[str], footer: bool = True) -> str:
    lines = list(CSV_HEADER_LINES) + rows
    if footer:
        lines += [
            ",Количество операций,2,,,,",
            ",Входящий остаток,0,,,,",
            ",Исходящий остаток,500.50,,,,",
        ]
    return "\n".join(lines) + "\n"


SAMPLE_CSV = build_bank_csv(
    [
        csv_row(
            "15.01.2024",
            debit_account=OWN_ACCOUNT,
            credit_account="40702810100000000001\nООО Поставщик\nИНН 7700000000",
            debit_amount="1 500,00",
            document_number="123",
            bank_info="БИК 044525225 ПАО СБЕРБАНК",
            description='Оплата по счету 15, "без НДС"',
        ),
        csv_row(
            "16.01.2024",
            debit_account="40817810500000000002",
            credit_account=OWN_ACCOUNT,
            credit_amount="2 000,50",
            document_number="124",
            bank_info="БИК 044525974 АО ТИНЬКОФФ БАНК",
            description="Возврат средств",
        ),
    ]
)


@pytest.fixture
def sample_mt940():
    """MT940 document with one record and one debit line."""
    return SAMPLE_MT940


@pytest.fixture
def sample_camt053():
    """CAMT.053 document with opening/closing balances and one credit entry."""
    return SAMPLE_CAMT053


@pytest.fixture
def sample_csv():
    """Bank CSV export with one debit and one credit row."""
    return SAMPLE_CSV


@pytest.fixture
def diagnostics():
    """Create a fresh warning collector."""
    return Diagnostics()


@pytest.fixture
def created_at():
    """Fixed creation time for generated CAMT.053 documents."""
    return datetime(2024, 2, 1, 12, 0, 0)


@pytest.fixture
def sample_statement():
    """Canonical statement with a credit and a debit."""
    return Statement(
        account=Account(number="NL81ASNB9999999999", currency="EUR", iban="NL81ASNB9999999999"),
        opening_balance=Balance(Amount(100000, "EUR"), Date(2024, 1, 1), is_credit=True),
        closing_balance=Balance(Amount(112500, "EUR"), Date(2024, 1, 31), is_credit=True),
        transactions=[
            Transaction(
                date=Date(2024, 1, 10),
                amount=Amount(25000, "EUR"),
                is_credit=True,
                description="Invoice 42",
                reference="REF001",
                counterparty=Counterparty(name="Acme BV", account="NL47INGB9999999999"),
            ),
            Transaction(
                date=Date(2024, 1, 20),
                amount=Amount(12500, "EUR"),
                is_credit=False,
                description="Office rent",
                reference="REF002",
                counterparty=Counterparty(name="Landlord", account="NL12RABO0123456789"),
            ),
        ],
        statement_number="1/1",
        reference="STMT0001",
    )


@pytest.fixture
def cli_runner():
    """Create a Click CLI test runner."""
    from click.testing import CliRunner

    return CliRunner()


@pytest.fixture
def fixtures_dir():
    """Return the path to the test fixtures directory."""
    return Path(__file__).parent / "fixtures"
