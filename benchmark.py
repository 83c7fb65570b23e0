#!/usr/bin/env python3
import time
import random
import argparse
import resource
import numpy as np
import pandas as pd

from frequency_tree import RangeFrequencyIndex

def make_random_sequence(length: int, alphabet: int, rng) -> np.ndarray:
    """
    Random integers in [0, alphabet), skewed so a few values dominate
    (the interesting case for frequency ranks).
    """
    weights = 1.0 / np.arange(1, alphabet + 1)
    weights /= weights.sum()
    return rng.choice(alphabet, size=length, p=weights)


def make_queries(index: RangeFrequencyIndex, num_ops: int):
    """Random valid (left, right, k) triples: k never exceeds the distinct count."""
    n = len(index)
    qs = []
    while len(qs) < num_ops:
        i, j = sorted((random.randrange(n), random.randrange(n)))
        distinct = index.distinct_count(i, j)
        qs.append((i, j, random.randint(1, min(distinct, 100))))
    return qs


def benchmark(length: int, num_ops: int, alphabet: int, leaf_size: int, rng):
    seq = make_random_sequence(length, alphabet, rng)

    # measure build
    mem0 = resource.getrusage(resource.RUSAGE_SELF).ru_maxrss
    t0_wall = time.perf_counter()
    t0_cpu = time.process_time()
    index = RangeFrequencyIndex(seq, leaf_size=leaf_size)
    build_wall = time.perf_counter() - t0_wall
    build_cpu  = time.process_time() - t0_cpu
    mem1 = resource.getrusage(resource.RUSAGE_SELF).ru_maxrss

    qs = make_queries(index, num_ops)

    # warmup
    for q in qs[:5]:
        index.query(*q)
        index._query_naive(*q)

    def measure(fn):
        times = []
        for q in qs:
            start = time.perf_counter()
            fn(*q)
            times.append(time.perf_counter() - start)
        return sum(times) / len(times)

    mismatches = sum(index.query(*q) != index._query_naive(*q) for q in qs)

    return {
        "n":            length,
        "alphabet":     alphabet,
        "leaf_size":    leaf_size,
        "nodes":        index.num_nodes,
        "build_wall_s": build_wall,
        "build_cpu_s":  build_cpu,
        "build_rss_kb": mem1 - mem0,
        "query_s":      measure(index.query),
        "naive_s":      measure(index._query_naive),
        "mismatches":   mismatches,
    }


def main():
    parser = argparse.ArgumentParser(description="Benchmark RangeFrequencyIndex")
    parser.add_argument(
        "--length", "-n", type=int, nargs="+", required=True,
        help="Sequence lengths to test"
    )
    parser.add_argument(
        "--queries", "-q", type=int, default=5000,
        help="Number of random queries per sequence"
    )
    parser.add_argument(
        "--alphabet", "-a", type=int, default=1000,
        help="Number of distinct values the sequence draws from"
    )
    parser.add_argument(
        "--leaf-size", "-b", type=int, default=1,
        help="Positions covered by one leaf of the tree"
    )
    parser.add_argument("--seed", type=int, default=42)

    args = parser.parse_args()

    random.seed(args.seed)
    rng = np.random.default_rng(args.seed)
    all_results = []
    for length in args.length:
        all_results.append(
            benchmark(length, args.queries, args.alphabet, args.leaf_size, rng)
        )

    df = pd.DataFrame(all_results)
    print(df.to_string(index=False))


if __name__ == "__main__":
    main()


# chmod +x benchmark.py
# /usr/bin/time -v python3 benchmark.py --length 10000 50000 100000 --queries 10000
