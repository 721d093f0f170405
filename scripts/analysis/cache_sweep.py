#!/usr/bin/env python3
"""Sweep instruction-cache index bits and measure miss rate / CPI impact.

Usage:
    python scripts/analysis/cache_sweep.py traces/example.trace
    python scripts/analysis/cache_sweep.py prog.trace --index 4 5 6 7 --block-size 2
    python scripts/analysis/cache_sweep.py prog.trace --ways 1 2 4
"""

import argparse

from plcsim import Cache, Config, Environment, Stats, read_trace

INDEX_BITS = [3, 4, 5, 6, 7]


def main():
    ap = argparse.ArgumentParser(description=__doc__, formatter_class=argparse.RawDescriptionHelpFormatter)
    ap.add_argument("traces", nargs="+", help="Instruction traces to run")
    ap.add_argument("--index", type=int, nargs="+", default=INDEX_BITS, help="Index bits to sweep")
    ap.add_argument("--block-size", type=int, default=1, help="Block size in words (default: 1)")
    ap.add_argument("--ways", type=int, nargs="+", default=[1], help="Associativities to sweep")
    ap.add_argument("--limit", type=int, default=None, help="Instruction limit")
    args = ap.parse_args()

    for trace in args.traces:
        instructions = read_trace(trace)
        rows = {}
        for ways in args.ways:
            for index_bits in args.index:
                cache = Cache(index_bits=index_bits, block_size=args.block_size, ways=ways)
                if cache.size_bits > Config().max_cache_size:
                    print(f"  {trace} i{index_bits}/w{ways}: skipped ({cache.size_bits} bits)")
                    continue
                label = f"i{index_bits}/w{ways}"
                print(f"  {trace} {label}...", flush=True)
                result = Environment(trace=trace, config=Config(cache=cache), limit=args.limit).run(
                    instructions=instructions
                )
                s = result.stats
                rows[label] = Stats({
                    "size_bits": cache.size_bits,
                    "cycles": s["cycles"],
                    "cpi": s["cpi"],
                    "ic_hits": s["icache_hits"],
                    "ic_misses": s["icache_misses"],
                    "ic_miss%": s["icache_miss_rate"] * 100,
                })
        print(Stats.tabulate(rows, title=f"{trace} I-cache sweep ({args.block_size}-word blocks)"))
        print()


if __name__ == "__main__":
    main()
