import io

import pytest

from plcsim import Result, Stats, compare
from plcsim.isa import InstructionKind
from plcsim.stats import Statistics, instruction_mix_table, sweep_table
from plcsim.experiment import SWEEP_CONFIGS


def _stats(**counters):
    s = Statistics()
    for key, value in counters.items():
        setattr(s, key, value)
    return s.snapshot()


def test_snapshot_derives_rates():
    stats = _stats(accesses=10, hits=6, misses=4, cycles=30, instructions=12,
                   branches=4, correct_predictions=3)
    assert stats["icache_miss_rate"] == pytest.approx(0.4)
    assert stats["cpi"] == pytest.approx(2.5)
    assert stats["ipc"] == pytest.approx(0.4)
    assert stats["branch_mispredictions"] == 1
    assert stats["branch_accuracy_pct"] == pytest.approx(75.0)


def test_snapshot_of_fresh_counters_is_all_zero():
    stats = Statistics().snapshot()
    assert all(value == 0 for value in stats.values())


def test_instruction_counts_by_kind():
    s = Statistics()
    s.count_instruction(InstructionKind.LOAD)
    s.count_instruction(InstructionKind.LOAD)
    s.count_instruction(InstructionKind.JUMP)
    stats = s.snapshot()
    assert stats["inst_load"] == 2
    assert stats["inst_jump"] == 1
    assert stats["inst_total"] == 3


def test_query_by_regex_and_substring():
    stats = _stats(misses=3)
    assert set(stats.query("^icache_")) == {
        "icache_accesses",
        "icache_hits",
        "icache_misses",
        "icache_miss_rate",
    }
    assert "stalls_mem" in stats.query("STALLS")
    assert stats.query("[unclosed") == Stats({})


def test_instruction_mix_table_handles_zero_total():
    table = instruction_mix_table(Statistics().snapshot())
    assert "Instruction Statistics" in table
    assert "0.000%" in table
    for name in ("rtype", "load", "store", "branch", "jump", "syscall", "nop"):
        assert name in table


def test_instruction_mix_percentages():
    s = Statistics()
    for kind in (InstructionKind.RTYPE, InstructionKind.RTYPE, InstructionKind.NOP,
                 InstructionKind.STORE):
        s.count_instruction(kind)
    table = instruction_mix_table(s.snapshot())
    assert "50.000%" in table
    assert "25.000%" in table


def test_print_sections():
    out = io.StringIO()
    _stats(accesses=2, misses=1, hits=1, cycles=7, instructions=2).print_sections(
        ["cache", "pipeline"], file=out
    )
    text = out.getvalue()
    assert "Cache Miss Rate is 0.500000" in text
    assert "CPI is 3.500000" in text
    assert "Branch Prediction" not in text


def test_print_sections_rejects_unknown_name():
    with pytest.raises(ValueError):
        Statistics().snapshot().print_sections(["memory"], file=io.StringIO())


def test_sweep_table_marks_best():
    results = {
        c.label(): Result(stats=_stats(cycles=10 + i, instructions=5), config=c)
        for i, c in enumerate(SWEEP_CONFIGS[:3])
    }
    table = sweep_table(results, best=SWEEP_CONFIGS[1].label())
    lines = table.splitlines()
    assert lines[0] == "Simulation Performance analysis"
    assert len(lines) == 3 + 3
    assert lines[4].endswith("<-- best")
    assert "<-- best" not in lines[3] and "<-- best" not in lines[5]


def test_tabulate_and_compare():
    a = _stats(cycles=20, instructions=10)
    b = _stats(cycles=15, instructions=10)
    table = Stats.tabulate({"a": {"cpi": a["cpi"]}, "b": {"cpi": b["cpi"]}}, title="cpi")
    assert table.splitlines()[0] == "cpi"
    assert "2.0000" in table and "1.5000" in table

    out = io.StringIO()
    compare(
        {"a": Result(stats=a), "b": Result(stats=b)},
        metrics=["cpi", "cycles"],
        baseline="a",
        file=out,
    )
    text = out.getvalue()
    assert "improvement vs a" in text
    assert "1.333x" in text


def test_two_way_compare_shows_differences():
    out = io.StringIO()
    Stats({"cycles": 10}).compare(Stats({"cycles": 12}), file=out)
    assert "+2" in out.getvalue()
