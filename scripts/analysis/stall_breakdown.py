#!/usr/bin/env python3
"""Show pipeline stall breakdown (memory, control, data) across the sweep configurations.

Usage:
    python scripts/analysis/stall_breakdown.py traces/example.trace
    python scripts/analysis/stall_breakdown.py prog.trace --penalty 20
"""

import argparse

from plcsim import SWEEP_CONFIGS, Config, Stats, read_trace, run_sweep


def main():
    ap = argparse.ArgumentParser(description=__doc__, formatter_class=argparse.RawDescriptionHelpFormatter)
    ap.add_argument("traces", nargs="+", help="Instruction traces to run")
    ap.add_argument("--penalty", type=int, default=None, help="Cache miss penalty in cycles")
    ap.add_argument("--limit", type=int, default=None, help="Instruction limit")
    args = ap.parse_args()

    configs = SWEEP_CONFIGS
    if args.penalty is not None:
        configs = [
            Config(cache=c.cache, branch_predictor=c.branch_predictor, miss_penalty=args.penalty)
            for c in SWEEP_CONFIGS
        ]

    for trace in args.traces:
        results = run_sweep(trace, configs=configs, instructions=read_trace(trace), limit=args.limit, verbose=True)
        rows = {}
        for label, result in results.items():
            s = result.stats
            rows[label] = Stats({
                "cycles": s["cycles"],
                "cpi": s["cpi"],
                "stalls_mem": s["stalls_mem"],
                "stalls_ctrl": s["stalls_control"],
                "stalls_data": s["stalls_data"],
            })
        print(Stats.tabulate(rows, title=trace))
        print()


if __name__ == "__main__":
    main()
