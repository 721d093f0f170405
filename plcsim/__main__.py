"""
CLI entry point for plcsim.

Invoked by the ``plcsim`` console script installed by pip, or directly via
``python -m plcsim``.

Usage::

    plcsim <trace> [--index N --block-size N --ways N --bp 0|1]   Single run
    plcsim -pa <trace>                                            18-config sweep
    plcsim <trace> --config <config.py>                           Config from file
"""

import argparse
import json
import logging
import sys

from .config import Config
from .errors import ConfigurationError, SimulationError
from .stats import _SECTIONS
from .types import BranchPredictor, Cache, _parse_count

# ── Helpers ──────────────────────────────────────────────────────────────────


def _apply_cli_overrides(sim, args) -> None:
    """Apply CLI flags that override config-file settings."""
    base = sim._config_obj if sim._config_obj is not None else Config()
    cache = base.cache
    sim._config_obj = Config(
        cache=Cache(
            index_bits=args.index if args.index is not None else cache.index_bits,
            block_size=args.block_size if args.block_size is not None else cache.block_size,
            ways=args.ways if args.ways is not None else cache.ways,
        ),
        branch_predictor=(
            BranchPredictor.from_value(args.bp)
            if args.bp is not None
            else base.branch_predictor
        ),
        miss_penalty=args.penalty if args.penalty is not None else base.miss_penalty,
        max_cache_size=base.max_cache_size,
        trace=base.trace or args.trace,
    )


def _write_json(path: str, payload) -> None:
    with open(path, "w") as f:
        json.dump(payload, f, indent=2)


def _run_single(args, stats_sections) -> None:
    from .objects import Simulator

    sim = Simulator().quiet(args.quiet)
    if args.config:
        sim = sim.config(args.config)
    _apply_cli_overrides(sim, args)
    stats = sim.trace(args.trace_file).limit(args.limit).run()

    if stats_sections is not None:
        print()
        stats.print_sections(stats_sections)
    if args.output_stats:
        _write_json(
            args.output_stats,
            {
                "trace": args.trace_file,
                "config": sim._config_obj.to_dict(),
                "stats": dict(stats),
            },
        )


def _run_sweep(args) -> None:
    from .experiment import SWEEP_CONFIGS, best_result, run_sweep
    from .stats import instruction_mix_table, sweep_table

    configs = None
    if args.penalty is not None or args.trace:
        configs = [
            Config(
                cache=c.cache,
                branch_predictor=c.branch_predictor,
                miss_penalty=args.penalty if args.penalty is not None else c.miss_penalty,
                trace=args.trace,
            )
            for c in SWEEP_CONFIGS
        ]

    results = run_sweep(args.pa, configs=configs, limit=args.limit, verbose=not args.quiet)
    print()
    print(sweep_table(results, best=best_result(results)))
    print()
    first = next(iter(results.values()))
    print(instruction_mix_table(first.stats))
    if args.output_stats:
        _write_json(args.output_stats, {name: r.to_dict() for name, r in results.items()})


# ── Main ─────────────────────────────────────────────────────────────────────


def build_parser() -> argparse.ArgumentParser:
    from importlib.metadata import version as _meta_version

    parser = argparse.ArgumentParser(
        prog="plcsim",
        description="Instruction pipeline and cache simulator",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog=(
            "examples:\n"
            "  plcsim prog.trace                            7 index bits, 1-word blocks, direct mapped\n"
            "  plcsim prog.trace --index 5 --ways 4 --bp 1   4-way, predict taken\n"
            "  plcsim -pa prog.trace                        run the 18-config sweep\n"
            "  plcsim prog.trace --trace 2> pipeline.log    dump the pipeline every cycle\n"
        ),
    )

    parser.add_argument(
        "--version",
        action="version",
        version=f"plcsim {_meta_version('plcsim')}",
    )

    # Input selection
    parser.add_argument("trace_file", nargs="?", metavar="TRACE", help="instruction trace")
    parser.add_argument(
        "-pa",
        "--performance-analysis",
        dest="pa",
        metavar="TRACE",
        help="run the performance analysis sweep over TRACE",
    )

    # Configuration
    parser.add_argument("--config", metavar="FILE", help="Python config file")
    parser.add_argument("--index", type=int, metavar="BITS", default=None, help="cache index bits")
    parser.add_argument(
        "--block-size", type=int, metavar="WORDS", default=None, help="block size in words"
    )
    parser.add_argument("--ways", type=int, metavar="N", default=None, help="associativity")
    parser.add_argument(
        "--bp",
        choices=["0", "1", "not-taken", "taken"],
        default=None,
        metavar="POLICY",
        help="branch prediction: 0/not-taken or 1/taken",
    )
    parser.add_argument(
        "--penalty", type=int, metavar="N", default=None, help="cache miss penalty in cycles"
    )

    # Simulation
    parser.add_argument(
        "--limit",
        metavar="N",
        type=_parse_count,
        default=None,
        help="max trace instructions to simulate (supports K/M, e.g. 20K)",
    )
    parser.add_argument(
        "--trace",
        action="store_true",
        default=False,
        help="log cache hits/misses, retirements and the pipeline every cycle to stderr",
    )
    parser.add_argument(
        "-q", "--quiet", action="store_true", default=False, help="suppress progress messages"
    )

    # Stats control
    parser.add_argument(
        "--stats",
        nargs="?",
        const="all",
        default="all",
        metavar="SECTIONS",
        help="stats sections to print (comma-separated: cache,pipeline,branch,instruction_mix)",
    )
    parser.add_argument(
        "--no-stats", action="store_true", default=False, help="suppress stats output"
    )
    parser.add_argument(
        "--output-stats",
        metavar="FILE",
        default=None,
        help="write stats as JSON to FILE",
    )
    return parser


def main(argv=None) -> None:
    parser = build_parser()
    args = parser.parse_args(argv)

    if args.pa and args.trace_file:
        parser.error("give the trace either positionally or with -pa, not both")
    if not args.pa and not args.trace_file:
        parser.error("no trace file specified\nusage: plcsim <trace> [options]")
    if args.pa:
        fixed = [
            flag
            for flag, value in (
                ("--config", args.config),
                ("--index", args.index),
                ("--block-size", args.block_size),
                ("--ways", args.ways),
                ("--bp", args.bp),
            )
            if value is not None
        ]
        if fixed:
            parser.error(f"{', '.join(fixed)} cannot be combined with -pa (the sweep geometry is fixed)")

    if args.no_stats:
        stats_sections = None
    elif args.stats and args.stats != "all":
        stats_sections = [s.strip() for s in args.stats.split(",")]
        unknown = [s for s in stats_sections if s not in _SECTIONS]
        if unknown:
            parser.error(
                f"unknown stats section(s): {', '.join(unknown)} "
                f"(expected one of {', '.join(_SECTIONS)})"
            )
    else:
        stats_sections = []  # empty = all sections

    if args.trace:
        logging.basicConfig(level=logging.DEBUG, format="%(message)s", stream=sys.stderr)

    try:
        if args.pa:
            _run_sweep(args)
        else:
            _run_single(args, stats_sections)
    except (SimulationError, OSError, ValueError) as e:
        if isinstance(e, ConfigurationError) and not args.quiet:
            print("[Simulator] Configuration rejected.", file=sys.stderr)
        print(f"error: {e}", file=sys.stderr)
        sys.exit(1)


if __name__ == "__main__":
    main()
