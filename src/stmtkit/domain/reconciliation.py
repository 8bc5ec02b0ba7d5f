"""Transaction matching between two statements."""

import logging
from dataclasses import dataclass

from stmtkit.domain.entities import Statement, Transaction

logger = logging.getLogger(__name__)

SCORE_DATE = 10
SCORE_AMOUNT = 10
SCORE_DIRECTION = 5
SCORE_REFERENCE = 15
SCORE_DESCRIPTION = 5


def transactions_match(first: Transaction, second: Transaction) -> bool:
    """Return True if date, magnitude and direction are all equal."""
    return (
        first.date == second.date
        and first.amount.value == second.amount.value
        and first.is_credit == second.is_credit
    )


def match_score(first: Transaction, second: Transaction) -> int:
    """Score how alike two transactions are; higher is better.

    Equal references and overlapping descriptions break ties between
    candidates that already match exactly.
    """
    score = 0
    if first.date == second.date:
        score += SCORE_DATE
    if first.amount.value == second.amount.value:
        score += SCORE_AMOUNT
    if first.is_credit == second.is_credit:
        score += SCORE_DIRECTION
    if first.reference and second.reference and first.reference == second.reference:
        score += SCORE_REFERENCE
    if (
        first.description
        and second.description
        and (first.description in second.description or second.description in first.description)
    ):
        score += SCORE_DESCRIPTION
    return score


def percent(part: int, total: int) -> float:
    """Return part as a percentage of total, or 0.0 when total is zero."""
    if total == 0:
        return 0.0
    return part / total * 100.0


@dataclass(frozen=True)
class ReconciliationResult:
    """Outcome of matching two statements' transactions.

    Indices refer to positions in each statement's transaction tuple.
    """

    matched: tuple[tuple[int, int], ...]
    scores: tuple[int, ...]
    only_in_first: tuple[int, ...]
    only_in_second: tuple[int, ...]
    first_total: int
    second_total: int

    @property
    def matched_percent_first(self) -> float:
        return percent(len(self.matched), self.first_total)

    @property
    def matched_percent_second(self) -> float:
        return percent(len(self.matched), self.second_total)

    @property
    def is_clean(self) -> bool:
        """True when every transaction on both sides found a partner."""
        return not self.only_in_first and not self.only_in_second


class ReconciliationService:
    """Greedy one-to-one matcher for statement transactions."""

    def reconcile(self, first: Statement, second: Statement) -> ReconciliationResult:
        """Pair transactions of ``first`` with transactions of ``second``.

        Transactions of the first statement are visited in order; each claims
        the highest-scoring unclaimed exact candidate, the earliest one on a
        tie. Claimed candidates are never reconsidered.

        Args:
            first: Statement whose order drives matching
            second: Statement supplying candidates

        Returns:
            ReconciliationResult with pairs, scores and leftovers of both sides
        """
        claimed = [False] * len(second.transactions)
        matched = []
        scores = []
        only_in_first = []

        for i, tx in enumerate(first.transactions):
            best_index = None
            best_score = -1
            for j, candidate in enumerate(second.transactions):
                if claimed[j] or not transactions_match(tx, candidate):
                    continue
                score = match_score(tx, candidate)
                if score > best_score:
                    best_index, best_score = j, score

            if best_index is None:
                only_in_first.append(i)
                continue
            claimed[best_index] = True
            matched.append((i, best_index))
            scores.append(best_score)

        only_in_second = [j for j, used in enumerate(claimed) if not used]

        logger.info(
            "Matched %d of %d/%d transactions (%d only in first, %d only in second)",
            len(matched),
            len(first.transactions),
            len(second.transactions),
            len(only_in_first),
            len(only_in_second),
        )
        return ReconciliationResult(
            matched=tuple(matched),
            scores=tuple(scores),
            only_in_first=tuple(only_in_first),
            only_in_second=tuple(only_in_second),
            first_total=len(first.transactions),
            second_total=len(second.transactions),
        )
