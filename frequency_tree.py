import logging
import time

import numpy as np

logger = logging.getLogger(__name__)

# Result of a rank lookup when the range holds fewer than k distinct elements.
NO_SUCH_RANK = None

_EMPTY = np.empty(0, dtype=np.int64)
_EMPTY.flags.writeable = False


class FrequencyQueryError(ValueError):
    """Base class for every input error raised by the frequency index."""


class EmptyInputError(FrequencyQueryError):
    def __init__(self):
        super().__init__("Input array cannot be empty")


def as_sequence(sequence) -> np.ndarray:
    """
    Copy `sequence` into a read-only 1-d int64 array.
    Raises EmptyInputError before anything else is inspected.
    """
    seq = np.asarray(sequence)
    if seq.size == 0:
        raise EmptyInputError()
    if seq.ndim != 1 or seq.dtype.kind not in "iu":
        raise TypeError(
            f"sequence must be a flat list of integers, got dtype={seq.dtype} ndim={seq.ndim}"
        )
    if seq.dtype.kind == "u" and seq.max() > np.iinfo(np.int64).max:
        raise TypeError(
            f"sequence values must fit in int64, got maximum {seq.max()}"
        )
    seq = seq.astype(np.int64, copy=True)
    seq.flags.writeable = False
    return seq


#------------------------------------------------------------------------------
# Frequency tables  (values ascending & distinct, counts aligned)
#------------------------------------------------------------------------------

def table_of(block):
    """Frequency table of a contiguous block of the sequence, by direct count."""
    values, counts = np.unique(block, return_counts=True)
    return values.astype(np.int64, copy=False), counts.astype(np.int64, copy=False)


def merge_tables(*tables):
    """
    Sum frequency tables (values, counts) keyed by element.
    The tables may overlap in elements; the result is again ascending.
    """
    if not tables:
        return _EMPTY, _EMPTY
    if len(tables) == 1:
        return tables[0]
    values = np.concatenate([v for v, _ in tables])
    counts = np.concatenate([c for _, c in tables])
    merged, inverse = np.unique(values, return_inverse=True)
    totals = np.zeros(len(merged), dtype=np.int64)
    np.add.at(totals, inverse.ravel(), counts)
    return merged, totals


def rank_table(values, counts):
    """Order a table by (count descending, value ascending)."""
    order = np.lexsort((values, -counts))      # last key is primary
    return values[order], counts[order]


#------------------------------------------------------------------------------
# TreeNode
#------------------------------------------------------------------------------

class TreeNode:
    """
    Covers sequence positions [start .. end] (inclusive).
      values, counts         : frequency table of the range
      ranking, ranked_counts : same elements by (count desc, value asc)
    All four arrays are read-only once the node exists.
    """
    __slots__ = ("start", "end", "values", "counts", "ranking", "ranked_counts")

    def __init__(self, start: int, end: int, values, counts):
        self.start = start
        self.end   = end
        self.values = values
        self.counts = counts
        self.ranking, self.ranked_counts = rank_table(values, counts)
        for arr in (self.values, self.counts, self.ranking, self.ranked_counts):
            arr.flags.writeable = False

    @property
    def size(self) -> int:
        return self.end - self.start + 1

    def inside(self, left: int, right: int) -> bool:
        """True when [start .. end] lies within [left .. right]."""
        return left <= self.start and self.end <= right

    def kth(self, k: int):
        """(element, count) ranked k-th in this node, or None."""
        if k < 1 or k > len(self.ranking):
            return None
        return int(self.ranking[k - 1]), int(self.ranked_counts[k - 1])

    def __repr__(self):
        return f"TreeNode([{self.start}, {self.end}], distinct={len(self.values)})"


#------------------------------------------------------------------------------
# RangeFrequencyIndex
#------------------------------------------------------------------------------

class RangeFrequencyIndex:
    """
    Static segment tree answering "k-th most frequent element in
    seq[left..right]" queries.

    Every node stores the frequency table of its range and the ranking
    derived from it, so a range that decomposes into a single node is
    answered from the precomputed ranking.  Any other range is the union of
    O(log n) maximal fully-contained nodes; their tables are merged once
    and ranked.  The merge costs O(d log d) with d the sum of the
    fragments' distinct counts, never more than the range length.

    Ties in count are broken by the smaller element.  The index is
    immutable after construction; queries never write, so a built index
    may be shared between threads.
    """
    def __init__(self, sequence, leaf_size: int = 1):
        # ------------------------------------------------------------
        # 0. raw data
        # ------------------------------------------------------------
        self.seq = as_sequence(sequence)
        self.n   = len(self.seq)
        if leaf_size < 1:
            raise ValueError(f"leaf_size must be positive, got {leaf_size}")
        self.leaf_size = leaf_size

        # ------------------------------------------------------------
        # 1. arena: node i has children 2i and 2i+1, root is 1
        # ------------------------------------------------------------
        leaves = -(-self.n // leaf_size)
        self.depth = (leaves - 1).bit_length()
        self.nodes = [None] * (2 << self.depth)
        self.num_nodes = 0

        t0 = time.perf_counter()
        self._build(1, 0, self.n - 1)
        logger.debug(
            "built frequency index: n=%d nodes=%d depth=%d leaf_size=%d in %.3fs",
            self.n, self.num_nodes, self.depth, leaf_size, time.perf_counter() - t0,
        )

    def _build(self, node: int, start: int, end: int):
        if end - start + 1 <= self.leaf_size:
            values, counts = table_of(self.seq[start:end + 1])
        else:
            mid = (start + end) // 2
            self._build(2 * node,     start,   mid)
            self._build(2 * node + 1, mid + 1, end)
            left, right = self.nodes[2 * node], self.nodes[2 * node + 1]
            values, counts = merge_tables((left.values, left.counts),
                                          (right.values, right.counts))
        self.nodes[node] = TreeNode(start, end, values, counts)
        self.num_nodes += 1

    def __len__(self):
        return self.n

    @property
    def root(self) -> TreeNode:
        return self.nodes[1]

    def is_leaf(self, node: int) -> bool:
        return self.nodes[node].size <= self.leaf_size

    # ================================================================
    # Range decomposition
    # ================================================================
    def _locate(self, left: int, right: int) -> int:
        """
        Descend from the root while [left..right] lies inside one child.
        Returns the lowest node whose range covers the query.
        """
        node = 1
        while not self.is_leaf(node):
            tn = self.nodes[node]
            if tn.inside(left, right):
                break
            mid = (tn.start + tn.end) // 2
            if right <= mid:
                node = 2 * node
            elif left > mid:
                node = 2 * node + 1
            else:
                break
        return node

    def _collect(self, node: int, left: int, right: int, fragments: list):
        """
        Append the frequency contributions of positions [left..right]
        inside `node`.  Membership is by index, never by element value.
        """
        tn = self.nodes[node]
        # no overlap
        if tn.end < left or tn.start > right:
            return
        # fully contained
        if tn.inside(left, right):
            fragments.append((tn.values, tn.counts))
            return
        # partial overlap at a leaf: count only the overlapped positions
        if self.is_leaf(node):
            lo, hi = max(left, tn.start), min(right, tn.end)
            fragments.append(table_of(self.seq[lo:hi + 1]))
            return
        self._collect(2 * node,     left, right, fragments)
        self._collect(2 * node + 1, left, right, fragments)

    def _merged(self, node: int, left: int, right: int):
        """Merge the contributions of [left..right] below `node` in one pass."""
        fragments = []
        self._collect(node, left, right, fragments)
        return merge_tables(*fragments)

    def _table(self, left: int, right: int):
        """Frequency table (values, counts) of seq[left..right]."""
        node = self._locate(left, right)
        tn = self.nodes[node]
        if tn.inside(left, right):
            return tn.values, tn.counts
        return self._merged(node, left, right)

    def _ranked(self, left: int, right: int):
        """Ranking (elements, counts) of seq[left..right]."""
        node = self._locate(left, right)
        tn = self.nodes[node]
        if tn.inside(left, right):
            return tn.ranking, tn.ranked_counts
        return rank_table(*self._merged(node, left, right))

    # ================================================================
    # Queries  (arguments assumed validated: 0 <= left <= right < n)
    # ================================================================
    def query(self, left: int, right: int, k: int):
        """k-th most frequent element of seq[left..right], or NO_SUCH_RANK."""
        hit = self.query_with_frequency(left, right, k)
        return NO_SUCH_RANK if hit is None else hit[0]

    def query_with_frequency(self, left: int, right: int, k: int):
        """(element, count) ranked k-th in seq[left..right], or None."""
        node = self._locate(left, right)
        tn = self.nodes[node]
        # fully contained: answer from the precomputed ranking
        if tn.inside(left, right):
            return tn.kth(k)
        ranking, counts = rank_table(*self._merged(node, left, right))
        if k < 1 or k > len(ranking):
            return None
        return int(ranking[k - 1]), int(counts[k - 1])

    def ranking(self, left: int, right: int):
        """
        All distinct elements of seq[left..right] in rank order, with their
        counts.  Returned arrays are read-only when they come straight
        from a node.
        """
        return self._ranked(left, right)

    def distinct_count(self, left: int, right: int) -> int:
        return len(self._table(left, right)[0])

    def frequency(self, left: int, right: int, element: int) -> int:
        """Occurrences of `element` in seq[left..right]."""
        values, counts = self._table(left, right)
        i = np.searchsorted(values, element)
        if i < len(values) and values[i] == element:
            return int(counts[i])
        return 0

    def _query_naive(self, left: int, right: int, k: int):
        """Scan, tally and sort seq[left..right] in O(m log m) time."""
        ranking, _ = rank_table(*table_of(self.seq[left:right + 1]))
        if k < 1 or k > len(ranking):
            return NO_SUCH_RANK
        return int(ranking[k - 1])


def build(sequence, leaf_size: int = 1) -> RangeFrequencyIndex:
    """Build the index over `sequence`; raises EmptyInputError if it is empty."""
    return RangeFrequencyIndex(sequence, leaf_size=leaf_size)
