"""Tests for transaction reconciliation."""

from stmtkit.domain.entities import Account, Amount, Balance, Date, Statement, Transaction
from stmtkit.domain.reconciliation import (
    SCORE_AMOUNT,
    SCORE_DATE,
    SCORE_DESCRIPTION,
    SCORE_DIRECTION,
    SCORE_REFERENCE,
    ReconciliationService,
    match_score,
    percent,
    transactions_match,
)

EXACT = SCORE_DATE + SCORE_AMOUNT + SCORE_DIRECTION


def make_tx(day, value, is_credit=True, reference=None, description=""):
    return Transaction(
        date=Date(2024, 3, day),
        amount=Amount(value, "EUR"),
        is_credit=is_credit,
        reference=reference,
        description=description,
    )


def make_statement(*transactions):
    balance = Balance(Amount(0, "EUR"), Date(2024, 3, 1), is_credit=True)
    return Statement(
        account=Account(number="ACC", currency="EUR"),
        opening_balance=balance,
        closing_balance=balance,
        transactions=transactions,
    )


def test_transactions_match():
    """Test the exact-match predicate."""
    assert transactions_match(make_tx(1, 100), make_tx(1, 100, reference="X"))
    assert not transactions_match(make_tx(1, 100), make_tx(2, 100))
    assert not transactions_match(make_tx(1, 100), make_tx(1, 101))
    assert not transactions_match(make_tx(1, 100), make_tx(1, 100, is_credit=False))


def test_transactions_match_ignores_currency():
    """Test that only the magnitude is compared."""
    usd = Transaction(date=Date(2024, 3, 1), amount=Amount(100, "USD"), is_credit=True)

    assert transactions_match(make_tx(1, 100), usd)


def test_match_score():
    """Test score components."""
    assert match_score(make_tx(1, 100), make_tx(1, 100)) == EXACT
    assert match_score(
        make_tx(1, 100, reference="R1", description="Invoice 42"),
        make_tx(1, 100, reference="R1", description="Payment Invoice 42 March"),
    ) == EXACT + SCORE_REFERENCE + SCORE_DESCRIPTION
    assert match_score(make_tx(1, 100), make_tx(2, 100, is_credit=False)) == SCORE_AMOUNT


def test_match_score_ignores_empty_text():
    """Test that missing references and descriptions never score."""
    assert match_score(make_tx(1, 100, reference=""), make_tx(1, 100, reference="")) == EXACT
    assert match_score(make_tx(1, 100, description=""), make_tx(1, 100, description="x")) == EXACT


def test_percent():
    """Test percentage with a zero total."""
    assert percent(1, 4) == 25.0
    assert percent(0, 0) == 0.0


def test_reconcile_all_matched():
    """Test two statements with the same transactions in different order."""
    first = make_statement(make_tx(1, 100), make_tx(2, 200, is_credit=False))
    second = make_statement(make_tx(2, 200, is_credit=False), make_tx(1, 100))

    result = ReconciliationService().reconcile(first, second)

    assert result.matched == ((0, 1), (1, 0))
    assert result.scores == (EXACT, EXACT)
    assert result.is_clean
    assert result.matched_percent_first == 100.0
    assert result.matched_percent_second == 100.0


def test_reconcile_prefers_reference_match():
    """Test that a candidate with the same reference wins over an earlier one."""
    first = make_statement(make_tx(1, 100, reference="R2"))
    second = make_statement(make_tx(1, 100, reference="R1"), make_tx(1, 100, reference="R2"))

    result = ReconciliationService().reconcile(first, second)

    assert result.matched == ((0, 1),)
    assert result.scores == (EXACT + SCORE_REFERENCE,)
    assert result.only_in_second == (0,)
    assert not result.is_clean


def test_reconcile_tie_takes_earliest_candidate():
    """Test that equally good candidates are claimed in document order."""
    first = make_statement(make_tx(1, 100), make_tx(1, 100))
    second = make_statement(make_tx(1, 100), make_tx(1, 100), make_tx(1, 100))

    result = ReconciliationService().reconcile(first, second)

    assert result.matched == ((0, 0), (1, 1))
    assert result.only_in_second == (2,)


def test_reconcile_claims_are_final():
    """Test that an earlier transaction keeps a candidate a later one would score higher."""
    first = make_statement(make_tx(1, 100), make_tx(1, 100, reference="R1"))
    second = make_statement(make_tx(1, 100, reference="R1"))

    result = ReconciliationService().reconcile(first, second)

    assert result.matched == ((0, 0),)
    assert result.only_in_first == (1,)


def test_reconcile_leftovers_and_percentages():
    """Test unmatched transactions on both sides."""
    first = make_statement(make_tx(1, 100), make_tx(5, 500), make_tx(6, 600), make_tx(7, 700))
    second = make_statement(make_tx(1, 100), make_tx(5, 500, is_credit=False))

    result = ReconciliationService().reconcile(first, second)

    assert result.matched == ((0, 0),)
    assert result.only_in_first == (1, 2, 3)
    assert result.only_in_second == (1,)
    assert result.first_total == 4
    assert result.second_total == 2
    assert result.matched_percent_first == 25.0
    assert result.matched_percent_second == 50.0


def test_reconcile_empty_statements():
    """Test that empty statements reconcile cleanly with zero percentages."""
    result = ReconciliationService().reconcile(make_statement(), make_statement())

    assert result.matched == ()
    assert result.is_clean
    assert result.matched_percent_first == 0.0


def test_reconcile_is_deterministic():
    """Test that repeated runs agree."""
    first = make_statement(make_tx(1, 100, reference="A"), make_tx(1, 100), make_tx(2, 100))
    second = make_statement(make_tx(1, 100), make_tx(2, 100), make_tx(1, 100, reference="A"))
    service = ReconciliationService()

    assert service.reconcile(first, second) == service.reconcile(first, second)
