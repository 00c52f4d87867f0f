#!/usr/bin/env python3
"""Benchmark index rebuild and fuzzy search latency on a directory tree.

Usage:
    uv run python scripts/benchmark.py --root ~/src --queries main test readme
"""

import argparse
import sys
import time
from pathlib import Path

# Add the src directory to the path for imports
sys.path.insert(0, str(Path(__file__).parent.parent / "src"))

DEFAULT_QUERIES = ["main", "readme", "test", "config", "init", "png", "lock"]


def format_time(seconds: float) -> str:
    """Format time in human readable format."""
    if seconds < 1:
        return f"{seconds * 1000:.1f}ms"
    return f"{seconds:.2f}s"


def benchmark_queries(index, queries: list[str], repeat: int, limit: int) -> list[dict]:
    results = []
    for query in queries:
        timings = []
        matched = 0
        for _ in range(repeat):
            start = time.perf_counter()
            outcome = index.search(query, limit)
            timings.append(time.perf_counter() - start)
            matched = len(outcome.results)
        results.append(
            {
                "query": query,
                "avg": sum(timings) / len(timings),
                "best": min(timings),
                "results": matched,
            }
        )
    return results


def print_results_table(files: int, rebuild_time: float, results: list[dict]):
    print("\n" + "=" * 60)
    print(f"SEARCH BENCHMARK ({files} files, rebuild {format_time(rebuild_time)})")
    print("=" * 60)
    print(f"{'Query':<24} {'Avg':>10} {'Best':>10} {'Results':>10}")
    print("-" * 60)
    for r in results:
        print(
            f"{r['query']:<24} "
            f"{format_time(r['avg']):>10} "
            f"{format_time(r['best']):>10} "
            f"{r['results']:>10}"
        )
    print("=" * 60)


def main():
    parser = argparse.ArgumentParser(description="Benchmark quickfile search on a directory")
    parser.add_argument("--root", "-r", type=Path, required=True, help="Directory to index")
    parser.add_argument(
        "--queries", "-q", nargs="+", default=DEFAULT_QUERIES, help="Queries to run"
    )
    parser.add_argument("--repeat", type=int, default=5, help="Runs per query (default: 5)")
    parser.add_argument("--limit", type=int, default=100, help="Result limit (default: 100)")
    parser.add_argument("--lister", default="fd", help="File listing command (default: fd)")
    args = parser.parse_args()

    if not args.root.is_dir():
        print(f"Error: Root is not a directory: {args.root}")
        sys.exit(1)

    from functools import partial

    from quickfile.errors import IndexRebuildError
    from quickfile.index.file_index import FileIndex
    from quickfile.index.lister import list_files

    index = FileIndex(root=args.root, lister=partial(list_files, command=args.lister))

    print(f"Indexing {args.root}...", end=" ", flush=True)
    start = time.perf_counter()
    try:
        files = index.update()
    except IndexRebuildError as e:
        print(f"\nError: {e}")
        sys.exit(1)
    rebuild_time = time.perf_counter() - start
    print(format_time(rebuild_time))

    results = benchmark_queries(index, args.queries, args.repeat, args.limit)
    print_results_table(files, rebuild_time, results)


if __name__ == "__main__":
    main()
