"""
Batch entry points for k-th most frequent element queries.

Every query is validated before it reaches the index.  A single invalid
query aborts the whole batch: the error propagates to the caller and no
partial result list is returned.
"""
import logging

from frequency_tree import (
    FrequencyQueryError,
    RangeFrequencyIndex,
    as_sequence,
    rank_table,
    table_of,
)

logger = logging.getLogger(__name__)


class InvalidRangeError(FrequencyQueryError):
    """Raised when left/right fall outside the sequence or are out of order."""

    def __init__(self, left, right):
        self.left = left
        self.right = right
        super().__init__(f"Invalid range: [{left}, {right}]")


class InvalidRankError(FrequencyQueryError):
    """Raised when k is not a positive rank."""

    def __init__(self, k):
        self.k = k
        super().__init__(f"Invalid k value: {k}")


class RankExceedsDistinctCountError(FrequencyQueryError):
    """
    Raised when k is larger than the number of distinct elements present
    in the exact queried range.

    Attributes:
        k: The requested rank.
        distinct: Distinct elements actually present in [left, right].
        left, right: The queried range.
    """

    def __init__(self, k, distinct, left, right):
        self.k = k
        self.distinct = distinct
        self.left = left
        self.right = right
        super().__init__(
            f"k ({k}) exceeds number of distinct elements ({distinct}) "
            f"in range [{left}, {right}]"
        )


def _check_bounds(left, right, k, n):
    if left < 0 or right >= n or left > right:
        raise InvalidRangeError(left, right)
    if k <= 0:
        raise InvalidRankError(k)


def validate_query(index: RangeFrequencyIndex, left: int, right: int, k: int):
    """
    Check one (left, right, k) triple against a built index.
    Returns the ranking (elements, counts) of the range, so the caller can
    pick the k-th entry without merging the range a second time.
    """
    _check_bounds(left, right, k, len(index))
    ranking, counts = index.ranking(left, right)
    if k > len(ranking):
        raise RankExceedsDistinctCountError(k, len(ranking), left, right)
    return ranking, counts


def answer_query(index: RangeFrequencyIndex, left: int, right: int, k: int) -> int:
    """Validate one query and answer it from a single ranking of its range."""
    ranking, _ = validate_query(index, left, right, k)
    return int(ranking[k - 1])


def _run_batch(queries, answer_one):
    results = []
    for pos, (left, right, k) in enumerate(queries):
        try:
            results.append(answer_one(left, right, k))
        except FrequencyQueryError as err:
            logger.warning("batch aborted at query #%d (%s, %s, %s): %s",
                           pos, left, right, k, err)
            raise
    logger.debug("answered %d queries", len(results))
    return results


def answer_all(sequence, queries, leaf_size: int = 1) -> list:
    """
    Build a RangeFrequencyIndex over `sequence` and answer every
    (left, right, k) in `queries`, in order.

    Raises EmptyInputError for an empty sequence, and InvalidRangeError,
    InvalidRankError or RankExceedsDistinctCountError for the first
    invalid query.
    """
    index = RangeFrequencyIndex(sequence, leaf_size=leaf_size)
    return _run_batch(queries, lambda left, right, k: answer_query(index, left, right, k))


def naive_answer_all(sequence, queries) -> list:
    """
    Same contract as answer_all, but every query scans and sorts its range
    directly.  O(m log m) per query; kept as a reference.
    """
    seq = as_sequence(sequence)

    def answer_one(left, right, k):
        _check_bounds(left, right, k, len(seq))
        ranking, _ = rank_table(*table_of(seq[left:right + 1]))
        if k > len(ranking):
            raise RankExceedsDistinctCountError(k, len(ranking), left, right)
        return int(ranking[k - 1])

    return _run_batch(queries, answer_one)
