#!/usr/bin/env python3
"""Compare static branch prediction policies and their CPI impact.

Usage:
    python scripts/analysis/branch_predict.py traces/example.trace
    python scripts/analysis/branch_predict.py prog.trace --index 5 --ways 2
"""

import argparse

from plcsim import BranchPredictor, Cache, Config, Environment, Stats, read_trace

PREDICTORS = {
    "NotTaken": BranchPredictor.NotTaken,
    "Taken": BranchPredictor.Taken,
}


def main():
    ap = argparse.ArgumentParser(description=__doc__, formatter_class=argparse.RawDescriptionHelpFormatter)
    ap.add_argument("traces", nargs="+", help="Instruction traces to run")
    ap.add_argument("--index", type=int, default=7, help="Cache index bits (default: 7)")
    ap.add_argument("--block-size", type=int, default=1, help="Block size in words (default: 1)")
    ap.add_argument("--ways", type=int, default=1, help="Associativity (default: 1)")
    ap.add_argument("--limit", type=int, default=None, help="Instruction limit")
    args = ap.parse_args()

    cache = Cache(index_bits=args.index, block_size=args.block_size, ways=args.ways)
    for trace in args.traces:
        instructions = read_trace(trace)
        rows = {}
        for bp_name, bp_cls in PREDICTORS.items():
            print(f"  {trace} {bp_name}...", flush=True)
            config = Config(cache=cache, branch_predictor=bp_cls())
            result = Environment(trace=trace, config=config, limit=args.limit).run(
                instructions=instructions
            )
            s = result.stats
            rows[bp_name] = Stats({
                "cycles": s["cycles"],
                "cpi": s["cpi"],
                "bp_acc%": s["branch_accuracy_pct"],
                "mispred": s["branch_mispredictions"],
                "correct": s["branch_correct"],
            })
        print(Stats.tabulate(rows, title=f"{trace} {config.cache!r}"))
        print()


if __name__ == "__main__":
    main()
