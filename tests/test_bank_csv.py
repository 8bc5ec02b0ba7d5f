"""Tests for the bank CSV codec and header sniffing."""

import pytest

from conftest import CSV_HEADER_LINES, OWN_ACCOUNT, build_bank_csv, csv_row
from stmtkit.domain.entities import UNKNOWN_ACCOUNT, Date
from stmtkit.domain.errors import InvalidFormatError, MissingFieldError
from stmtkit.formats.bank_csv import (
    OUTPUT_HEADER,
    BankCsvStatement,
    BankCsvTransaction,
    extract_bik,
    write_bank_csv,
)
from stmtkit.formats.csv_fields import has_unbalanced_quotes, quote_field, split_fields
from stmtkit.formats.header_sniffer import UNKNOWN_ORGANIZATION, sniff_header


def test_split_fields_quotes():
    """Test quote-aware splitting."""
    assert split_fields('a, "b,c" ,"say ""hi"""') == ["a", "b,c", 'say "hi"']


def test_split_fields_multiline():
    """Test a quoted field spanning lines."""
    assert split_fields('1,"x\ny",2') == ["1", "x\ny", "2"]


def test_split_fields_quotes_inside_a_cell():
    """Test that quotes opening mid-cell protect commas and newlines."""
    assert split_fields('a,ООО "Ромашка, плюс",c') == ["a", "ООО Ромашка, плюс", "c"]
    assert split_fields('a,ООО "Ромашка\nплюс",c') == ["a", "ООО Ромашка\nплюс", "c"]


def test_row_with_quoted_comma_inside_account_cell(diagnostics):
    """Test that a quoted name with a comma does not shift later columns."""
    row = csv_row(
        "15.01.2024",
        debit_account=OWN_ACCOUNT,
        credit_account="COUNTERPARTY",
        debit_amount="100.00",
        document_number="7",
    ).replace("COUNTERPARTY", 'ООО "Поставщик, филиал"')

    stmt = BankCsvStatement.parse(build_bank_csv([row]), diagnostics)

    (tx,) = stmt.transactions
    assert tx.credit_account == "ООО Поставщик, филиал"
    assert tx.debit_amount == 10000
    assert tx.document_number == "7"
    assert diagnostics.warnings == []


def test_row_with_newline_quoted_inside_account_cell(diagnostics):
    """Test a record whose quoted newline starts mid-cell."""
    row = csv_row(
        "15.01.2024",
        debit_account=OWN_ACCOUNT,
        credit_account="COUNTERPARTY",
        debit_amount="100.00",
        document_number="8",
    ).replace("COUNTERPARTY", 'ООО "Поставщик\nфилиал"')

    stmt = BankCsvStatement.parse(build_bank_csv([row]), diagnostics)

    (tx,) = stmt.transactions
    assert tx.credit_account == "ООО Поставщик"
    assert tx.document_number == "8"
    assert diagnostics.warnings == []


def test_quote_helpers():
    """Test quote counting and output quoting."""
    assert has_unbalanced_quotes('a,"b')
    assert not has_unbalanced_quotes('a,"b"')
    assert quote_field("plain") == "plain"
    assert quote_field('a,"b"') == '"a,""b"""'


def test_sniff_header():
    """Test account, organization and period detection."""
    info = sniff_header(CSV_HEADER_LINES)

    assert info.account_number == OWN_ACCOUNT
    assert info.organization == "ООО Ромашка"
    assert info.period_start == Date(2024, 1, 1)
    assert info.period_end == Date(2024, 1, 31)


def test_sniff_header_first_match_wins():
    """Test that the first matching account and organization are kept."""
    lines = [
        ",ИП Иванов,,",
        ",счет,40817810000000000001,,",
        ",ООО Другая,40702810000000000002,",
    ]

    info = sniff_header(lines)

    assert info.account_number == "40817810000000000001"
    assert info.organization == "ИП Иванов"


def test_sniff_header_fallback_line():
    """Test the line-5 fallback for accounts without a known prefix."""
    lines = ["", "", "", "", "", ",Счет,30101810400000000225,", ""]

    info = sniff_header(lines)

    assert info.account_number == "30101810400000000225"
    assert info.organization == UNKNOWN_ORGANIZATION
    assert info.period_start is None


def test_sniff_header_nothing_found():
    """Test the sentinels."""
    info = sniff_header(["header"] * 12)

    assert info.account_number == UNKNOWN_ACCOUNT
    assert info.organization == UNKNOWN_ORGANIZATION


def test_extract_bik():
    """Test bank identification code extraction."""
    assert extract_bik("БИК 044525225 ПАО СБЕРБАНК") == "044525225"
    assert extract_bik("БИК044525225") == "044525225"
    assert extract_bik("БИК 12345") is None
    assert extract_bik("ПАО СБЕРБАНК") is None


def test_parse_sample(sample_csv):
    """Test parsing the sample export."""
    stmt = BankCsvStatement.parse(sample_csv)

    assert stmt.account_number == OWN_ACCOUNT
    assert stmt.organization == "ООО Ромашка"
    assert stmt.currency == "RUB"
    assert len(stmt.transactions) == 2

    debit, credit = stmt.transactions
    assert debit.date == Date(2024, 1, 15)
    assert debit.debit_amount == 150000
    assert debit.credit_amount is None
    assert debit.credit_account == "40702810100000000001"
    assert debit.description == 'Оплата по счету 15, "без НДС"'
    assert not debit.is_credit
    assert credit.credit_amount == 200050
    assert credit.is_credit
    assert credit.document_number == "124"


def test_to_statement(sample_csv):
    """Test mapping onto the canonical model with synthesized balances."""
    statement = BankCsvStatement.parse(sample_csv).to_statement()

    assert statement.account.number == OWN_ACCOUNT
    assert statement.account.name == "ООО Ромашка"

    debit, credit = statement.transactions
    assert debit.amount.value == 150000
    assert not debit.is_credit
    assert debit.reference == "123"
    assert debit.counterparty.account == "40702810100000000001"
    assert debit.counterparty.bank_code == "044525225"
    assert credit.counterparty.account == "40817810500000000002"
    assert credit.counterparty.bank_code == "044525974"
    assert credit.counterparty.bank_name == "БИК 044525974 АО ТИНЬКОФФ БАНК"

    assert statement.opening_balance.amount.value == 0
    assert statement.opening_balance.date == Date(2024, 1, 15)
    assert statement.opening_balance.synthesized
    assert statement.closing_balance.amount.value == 50050
    assert statement.closing_balance.is_credit
    assert statement.closing_balance.date == Date(2024, 1, 16)
    assert statement.closing_balance.synthesized


def test_negative_running_total():
    """Test a closing balance that ends up on the debit side."""
    content = build_bank_csv(
        [csv_row("10.01.2024", debit_account=OWN_ACCOUNT, debit_amount="10.00")]
    )

    closing = BankCsvStatement.parse(content).to_statement().closing_balance

    assert closing.amount.value == 1000
    assert not closing.is_credit


def test_bad_rows_are_skipped(diagnostics):
    """Test that short rows and rows without amounts are reported."""
    content = build_bank_csv(
        [
            ",10.01.2024,,,,,,,,1.00,,",
            csv_row("11.01.2024", document_number="9"),
            csv_row("12.01.2024", debit_amount="1,2,3"),
            csv_row("13.01.2024", credit_amount="5.00"),
        ]
    )

    stmt = BankCsvStatement.parse(content, diagnostics)

    assert [t.date for t in stmt.transactions] == [Date(2024, 1, 13)]
    assert len(diagnostics.warnings) == 3
    assert "Not enough fields" in diagnostics.warnings[0]
    assert "Missing both debit and credit" in diagnostics.warnings[1]


def test_row_without_description_column():
    """Test that the description is optional beyond column 20."""
    content = build_bank_csv([csv_row("13.01.2024", credit_amount="5.00", width=20)])

    assert BankCsvStatement.parse(content).transactions[0].description == ""


def test_non_data_lines_are_ignored(sample_csv):
    """Test that footers and lines without a date in column 1 are skipped quietly."""
    content = sample_csv + ",Итого оборотов,1500.00,2000.50,,\n,some trailer,,\n"

    stmt = BankCsvStatement.parse(content)

    assert len(stmt.transactions) == 2


def test_too_short():
    """Test that a file shorter than the header is rejected."""
    with pytest.raises(InvalidFormatError):
        BankCsvStatement.parse("a\nb\nc\n")


def test_empty_statement_uses_header_period():
    """Test balance dates from the header period when there are no rows."""
    statement = BankCsvStatement.parse(build_bank_csv([])).to_statement()

    assert statement.transaction_count == 0
    assert statement.opening_balance.date == Date(2024, 1, 1)
    assert statement.closing_balance.date == Date(2024, 1, 31)


def test_empty_statement_without_period():
    """Test that balances cannot be dated without rows or period."""
    with pytest.raises(MissingFieldError):
        BankCsvStatement(account_number="X", organization="Y").to_statement()


def test_write(sample_csv):
    """Test the flat 8-column output."""
    written = BankCsvStatement.parse(sample_csv).write()
    lines = written.splitlines()

    assert lines[0] == ",".join(OUTPUT_HEADER)
    assert lines[1] == (
        f'15.01.2024,{OWN_ACCOUNT},40702810100000000001,1500.00,,123,'
        'БИК 044525225 ПАО СБЕРБАНК,"Оплата по счету 15, ""без НДС"""'
    )
    assert lines[2].startswith("16.01.2024,40817810500000000002,")
    assert split_fields(lines[2])[4] == "2000.50"


def test_from_statement(sample_statement):
    """Test flattening a canonical statement."""
    csv_statement = BankCsvStatement.from_statement(sample_statement)

    credit, debit = csv_statement.transactions
    assert credit.credit_account == "NL81ASNB9999999999"
    assert credit.debit_account == "NL47INGB9999999999"
    assert credit.credit_amount == 25000
    assert debit.debit_account == "NL81ASNB9999999999"
    assert debit.debit_amount == 12500
    assert debit.document_number == "REF002"


def test_write_bank_csv_single_header(sample_statement):
    """Test several statements under one header row."""
    rows = BankCsvStatement.from_statement(sample_statement)

    written = write_bank_csv([rows, rows])

    assert written.count("Назначение платежа") == 1
    assert len(written.splitlines()) == 5


def test_render_row():
    """Test rendering of an individual row."""
    row = BankCsvTransaction(date=Date(2024, 1, 5), credit_amount=5, description="x")

    assert row.render() == "05.01.2024,,,,0.05,,,x"
