"""
Simulation statistics: the live counters and their read-out.

Provides ``Statistics`` (the mutable accumulator the engines write to),
``Stats`` (dict subclass) with ``.query(pattern)`` for filtering and
``.compare(other)`` for two-way comparison, a top-level ``compare()`` for
multi-config result tables, and the sweep and instruction-mix tables.
"""

from __future__ import annotations

import re
import sys
from typing import Any, Dict, List, Optional, Sequence

from .isa import InstructionKind


def _ratio(num: float, den: float) -> float:
    return num / den if den else 0.0


class Statistics:
    """
    Running counters for one simulation run.

    Written by the instruction cache (accesses/hits/misses) and the pipeline
    (cycles, retirements, branches, stalls, instruction mix). A new instance
    is created for every simulation, so nothing carries over between runs.
    """

    def __init__(self):
        # Instruction cache
        self.accesses = 0
        self.hits = 0
        self.misses = 0

        # Pipeline
        self.cycles = 0
        self.instructions = 0
        self.branches = 0
        self.correct_predictions = 0
        self.stalls_control = 0
        self.stalls_data = 0
        self.stalls_mem = 0

        self.inst_counts: Dict[InstructionKind, int] = {k: 0 for k in InstructionKind}

    def count_instruction(self, kind: InstructionKind) -> None:
        self.inst_counts[kind] += 1

    @property
    def miss_rate(self) -> float:
        return _ratio(self.misses, self.accesses)

    @property
    def cpi(self) -> float:
        return _ratio(self.cycles, self.instructions)

    def snapshot(self) -> Stats:
        """Return a ``Stats`` read-out with derived rates (zero when undefined)."""
        data: Dict[str, Any] = {
            "icache_accesses": self.accesses,
            "icache_hits": self.hits,
            "icache_misses": self.misses,
            "icache_miss_rate": self.miss_rate,
            "cycles": self.cycles,
            "instructions_retired": self.instructions,
            "cpi": self.cpi,
            "ipc": _ratio(self.instructions, self.cycles),
            "branches": self.branches,
            "branch_correct": self.correct_predictions,
            "branch_mispredictions": self.branches - self.correct_predictions,
            "branch_accuracy_pct": 100.0 * _ratio(self.correct_predictions, self.branches),
            "stalls_control": self.stalls_control,
            "stalls_data": self.stalls_data,
            "stalls_mem": self.stalls_mem,
        }
        for kind in InstructionKind:
            data[f"inst_{_MIX_NAMES[kind]}"] = self.inst_counts[kind]
        data["inst_total"] = sum(self.inst_counts.values())
        return Stats(data)

    def __repr__(self) -> str:
        return (
            f"Statistics(cycles={self.cycles}, instructions={self.instructions}, "
            f"accesses={self.accesses}, misses={self.misses})"
        )


_MIX_NAMES = {
    InstructionKind.RTYPE: "rtype",
    InstructionKind.STORE: "store",
    InstructionKind.LOAD: "load",
    InstructionKind.BRANCH: "branch",
    InstructionKind.JUMP: "jump",
    InstructionKind.SYSCALL: "syscall",
    InstructionKind.NOP: "nop",
}


class Stats(dict):
    """
    Dict-like simulation statistics with querying and comparison.

    Keys: icache_accesses, icache_hits, icache_misses, icache_miss_rate, cycles,
    instructions_retired, cpi, ipc, branches, branch_correct,
    branch_mispredictions, branch_accuracy_pct, stalls_control, stalls_data,
    stalls_mem, inst_rtype, inst_load, inst_store, inst_branch, inst_jump,
    inst_syscall, inst_nop, inst_total.

    Example::

        result.stats["cpi"]
        result.stats.query("miss")
        result.stats.query("^inst_")
    """

    def __init__(self, data: Dict[str, Any]):
        super().__init__(data)

    def query(self, pattern: str) -> Stats:
        """Search for statistics matching *pattern* (case-insensitive regex or substring)."""
        matches = {}
        try:
            regex = re.compile(pattern, re.IGNORECASE)
        except re.error:
            regex = None

        for key, value in self.items():
            if regex:
                if regex.search(key):
                    matches[key] = value
            elif pattern.lower() in key.lower():
                matches[key] = value

        return Stats(matches)

    def compare(self, other: Stats, file=None) -> None:
        """Print a two-column comparison table (self vs other)."""
        if file is None:
            file = sys.stdout
        all_keys = sorted(set(self) | set(other))
        if not all_keys:
            print("(no stats to compare)", file=file)
            return
        rows = []
        for key in all_keys:
            v_self = self.get(key, "—")
            v_other = other.get(key, "—")
            diff = ""
            if isinstance(v_self, (int, float)) and isinstance(v_other, (int, float)):
                d = v_other - v_self
                diff = f"{d:+.4f}" if isinstance(d, float) else f"{d:+,}"
            rows.append([key, _fmt(v_self), _fmt(v_other), diff])
        print(_format_table(["metric", "self", "other", "diff"], rows), file=file)

    @staticmethod
    def tabulate(rows: Dict[str, Dict[str, Any]], title: str = "") -> str:
        """Render ``{row_name: {column: value}}`` as a table, one row per entry."""
        if not rows:
            return "(no rows)"
        columns: List[str] = []
        for values in rows.values():
            for key in values:
                if key not in columns:
                    columns.append(key)
        body = [
            [name] + [_fmt(values.get(c, "—")) for c in columns]
            for name, values in rows.items()
        ]
        table = _format_table([""] + columns, body)
        return f"{title}\n{table}" if title else table

    def print_sections(self, sections: Optional[Sequence[str]] = None, file=None) -> None:
        """Print report sections; ``None`` or empty means all of them."""
        if file is None:
            file = sys.stdout
        names = list(sections) if sections else list(_SECTIONS)
        for name in names:
            if name not in _SECTIONS:
                raise ValueError(
                    f"Unknown stats section {name!r} (expected one of {', '.join(_SECTIONS)})"
                )
            print(_SECTIONS[name](self), file=file)

    def __repr__(self) -> str:
        if not self:
            return "Stats({})"
        max_key_len = max(len(k) for k in self.keys())
        lines = []
        for key, value in sorted(self.items()):
            lines.append(f"{key:<{max_key_len}} : {value}")
        return "\n".join(lines)


# ── Report sections ──────────────────────────────────────────────────────────


def _cache_section(s: Stats) -> str:
    return "\n".join(
        [
            "Cache Performance",
            f"\t Number of Cache Accesses is {s['icache_accesses']}",
            f"\t Number of Cache Misses is {s['icache_misses']}",
            f"\t Number of Cache Hits is {s['icache_hits']}",
            f"\t Cache Miss Rate is {s['icache_miss_rate']:f}",
            "",
        ]
    )


def _pipeline_section(s: Stats) -> str:
    return "\n".join(
        [
            "Pipeline Performance",
            f"\t Total Cycles is {s['cycles']}",
            f"\t Total Instructions is {s['instructions_retired']}",
            f"\t Stall Cycles (control/data/memory) is "
            f"{s['stalls_control']}/{s['stalls_data']}/{s['stalls_mem']}",
            f"\t CPI is {s['cpi']:f}",
            "",
        ]
    )


def _branch_section(s: Stats) -> str:
    return "\n".join(
        [
            "Branch Prediction",
            f"\t Total Branch Instructions is {s['branches']}",
            f"\t Total Correct Branch Predictions is {s['branch_correct']}",
            f"\t Accuracy is {s['branch_accuracy_pct']:.2f}%",
            "",
        ]
    )


_SECTIONS = {
    "cache": _cache_section,
    "pipeline": _pipeline_section,
    "branch": _branch_section,
    "instruction_mix": lambda s: instruction_mix_table(s) + "\n",
}


def instruction_mix_table(stats: Stats) -> str:
    """Count and share of each instruction kind."""
    total = stats.get("inst_total", 0)
    rows = []
    for kind in InstructionKind:
        name = _MIX_NAMES[kind]
        count = stats.get(f"inst_{name}", 0)
        rows.append([name, f"{count:,}", f"{100.0 * _ratio(count, total):.3f}%"])
    return "Instruction Statistics\n" + _format_table(
        ["instruction", "count", "percent"], rows
    )


# ── Formatting helpers ───────────────────────────────────────────────────────


def _fmt(v) -> str:
    if isinstance(v, float):
        return f"{v:.4f}"
    if isinstance(v, int):
        return f"{v:,}"
    return str(v)


_RATE_METRICS = {"cpi", "ipc", "icache_miss_rate", "branch_accuracy_pct"}
_COUNT_METRICS = {
    "cycles",
    "instructions_retired",
    "icache_accesses",
    "icache_hits",
    "icache_misses",
    "branches",
    "branch_correct",
    "branch_mispredictions",
    "stalls_control",
    "stalls_data",
    "stalls_mem",
}
_LOWER_IS_BETTER = {"cpi", "icache_miss_rate", "cycles"}


def _format_table(
    headers: List[str], rows: List[List[str]], align: Optional[List[str]] = None
) -> str:
    """Render an ASCII table. align: list of '<' or '>' per column."""
    ncols = len(headers)
    if align is None:
        align = ["<"] + [">"] * (ncols - 1)
    widths = [len(h) for h in headers]
    for row in rows:
        for i, cell in enumerate(row):
            if i < ncols:
                widths[i] = max(widths[i], len(cell))
    parts = []
    hdr = "  ".join(f"{headers[i]:{align[i]}{widths[i]}}" for i in range(ncols))
    parts.append(hdr)
    parts.append("  ".join("-" * widths[i] for i in range(ncols)))
    for row in rows:
        line = "  ".join(
            f"{row[i]:{align[i]}{widths[i]}}" if i < len(row) else " " * widths[i]
            for i in range(ncols)
        )
        parts.append(line.rstrip())
    return "\n".join(parts)


def sweep_table(results: Dict[str, Any], best: Optional[str] = None) -> str:
    """
    Render sweep results one configuration per row, marking *best*.

    Args:
        results: ``dict[str, Result]`` keyed by config label.
        best: Label of the row to mark with ``<-- best``.
    """
    headers = ["cache size", "block size", "associativity", "branch prediction",
               "CPI", "cache miss rate", ""]
    rows: List[List[str]] = []
    for name, r in results.items():
        cache = r.config.cache
        rows.append(
            [
                str(cache.index_bits),
                str(cache.block_size),
                str(cache.ways),
                str(r.config.branch_predictor._to_dict_value()),
                f"{r.stats['cpi']:.6f}",
                f"{r.stats['icache_miss_rate']:.6f}",
                "<-- best" if name == best else "",
            ]
        )
    align = [">", ">", ">", ">", ">", ">", "<"]
    return "Simulation Performance analysis\n" + _format_table(headers, rows, align)


def compare(
    results: Dict[str, Any],
    *,
    metrics: Optional[List[str]] = None,
    baseline: Optional[str] = None,
    file=None,
) -> None:
    """
    Print a comparison table for experiment results, one column per config.

    Args:
        results: ``dict[str, Result]`` keyed by config name.
        metrics: Specific metric names to show. If None, shows a default set.
        baseline: Config name to normalize against (shows improvement ratios).
    """
    if file is None:
        file = sys.stdout
    config_names = list(results.keys())
    if not config_names:
        print("(no results to compare)", file=file)
        return

    all_stat_keys = set()
    for r in results.values():
        all_stat_keys.update(r.stats.keys())
    if metrics is not None:
        show_metrics = [m for m in metrics if m in all_stat_keys]
    else:
        show_metrics = sorted(all_stat_keys & (_RATE_METRICS | _COUNT_METRICS))

    headers = ["metric"] + config_names
    rows: List[List[str]] = []
    for m in show_metrics:
        rows.append([m] + [_fmt(results[c].stats.get(m, "—")) for c in config_names])

    if baseline is not None and baseline in results:
        base_stats = results[baseline].stats
        rows.append([""] * len(headers))
        rows.append(["— improvement vs " + baseline] + [""] * len(config_names))
        for m in show_metrics:
            if m not in _RATE_METRICS and m != "cycles":
                continue
            row = [m]
            bv = base_stats.get(m, 0)
            for cfg_name in config_names:
                v = results[cfg_name].stats.get(m, 0)
                if m in _LOWER_IS_BETTER:
                    num, den = bv, v
                else:
                    num, den = v, bv
                row.append(f"{num / den:.3f}x" if den else "—")
            rows.append(row)

    print(_format_table(headers, rows), file=file)
