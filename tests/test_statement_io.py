"""Tests for format-dispatching parse and write."""

from stmtkit.domain.entities import Date, StatementFormat
from stmtkit.domain.statement_io import (
    parse_statement,
    parse_statements,
    write_statement,
    write_statements,
)


def test_parse_each_format(sample_mt940, sample_camt053, sample_csv):
    """Test that every format yields canonical statements."""
    mt940 = parse_statements(sample_mt940, StatementFormat.MT940)
    camt = parse_statements(sample_camt053, StatementFormat.CAMT053)
    csv = parse_statements(sample_csv, StatementFormat.CSV)

    assert [s.account.number for s in mt940] == ["NL81ASNB9999999999"]
    assert [s.account.number for s in camt] == ["DK8030000001234567"]
    assert [s.account.number for s in csv] == ["40702810900000012345"]


def test_parse_statement_takes_first_record(sample_mt940):
    """Test that the first of several MT940 records is used."""
    second = sample_mt940.replace(":20:0000000000", ":20:0000000001")

    statement = parse_statement(sample_mt940 + second, StatementFormat.MT940)

    assert statement.reference == "0000000000"


def test_parse_passes_diagnostics(sample_mt940, diagnostics):
    """Test that skipped items reach the caller's collector."""
    content = sample_mt940.replace(":61:2001010101D65,00", ":61:2001010101X65,00")

    statement = parse_statement(content, StatementFormat.MT940, diagnostics)

    assert statement.transaction_count == 0
    assert len(diagnostics.warnings) == 1


def test_write_statement_mt940(sample_statement):
    """Test writing a single statement as MT940."""
    text = write_statement(sample_statement, StatementFormat.MT940)

    assert ":20:STMT0001" in text
    assert ":60F:C240101EUR1000,00" in text
    assert ":62F:C240131EUR1125,00" in text


def test_write_statements_camt_one_document_each(sample_statement):
    """Test that CAMT.053 output holds one document per statement."""
    text = write_statements([sample_statement, sample_statement], StatementFormat.CAMT053)

    assert text.count("<?xml") == 2
    assert text.count("<Stmt>") == 2


def test_write_statements_csv_single_header(sample_statement):
    """Test that CSV output shares one header row."""
    text = write_statements([sample_statement, sample_statement], StatementFormat.CSV)

    assert len(text.splitlines()) == 5


def test_canonical_round_trip_mt940(sample_statement):
    """Test that MT940 keeps what the canonical model carries."""
    text = write_statement(sample_statement, StatementFormat.MT940)

    parsed = parse_statement(text, StatementFormat.MT940)

    assert parsed.opening_balance == sample_statement.opening_balance
    assert parsed.closing_balance == sample_statement.closing_balance
    assert [t.amount for t in parsed.transactions] == [
        t.amount for t in sample_statement.transactions
    ]
    assert [t.reference for t in parsed.transactions] == ["REF001", "REF002"]
    assert parsed.transactions[0].date == Date(2024, 1, 10)
