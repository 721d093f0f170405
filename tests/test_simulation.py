import pytest

from plcsim import (
    SWEEP_CONFIGS,
    BranchPredictor,
    Cache,
    Config,
    ConfigurationError,
    Environment,
    Result,
    Simulation,
    Simulator,
    Stats,
    best_result,
    parse_line,
    read_trace,
    run_experiment,
    run_sweep,
    simulate,
)


def _trace(*lines):
    return [parse_line(line) for line in lines]


# ── Fetch miss penalty ───────────────────────────────────────────────────────


def test_empty_trace_reports_zero_rates():
    stats = Simulation().finalize()
    assert stats["cycles"] == 0
    assert stats["instructions_retired"] == 0
    assert stats["cpi"] == 0.0
    assert stats["icache_miss_rate"] == 0.0
    assert stats["branch_accuracy_pct"] == 0.0


def test_cold_miss_burns_penalty_minus_one_cycles():
    sim = Simulation()
    hit = sim.step(parse_line("00400000 nop"))

    assert hit is False
    assert sim.cycles == 10
    assert sim.stats.stalls_mem == 9

    stats = sim.finalize()
    assert stats["cycles"] == 15
    assert stats["cpi"] == 15.0
    assert stats["icache_misses"] == 1


def test_hit_costs_a_single_cycle(two_word_config):
    stats = simulate(_trace("00400000 nop", "00400004 nop"), two_word_config)
    assert (stats["icache_misses"], stats["icache_hits"]) == (1, 1)
    assert stats["cycles"] == 10 + 1 + 5
    assert stats["instructions_retired"] == 2


def test_miss_penalty_is_configurable():
    config = Config(miss_penalty=1)
    stats = simulate(_trace("00400000 nop", "00400004 nop"), config)
    assert stats["icache_misses"] == 2
    assert stats["stalls_mem"] == 0
    assert stats["cycles"] == 2 + 5


def test_invalid_miss_penalty():
    with pytest.raises(ConfigurationError):
        Config(miss_penalty=0)


def test_oversized_config_fails_before_simulating():
    with pytest.raises(ConfigurationError):
        Simulation(Config(cache=Cache(index_bits=10)))


def test_step_after_finalize_is_rejected():
    sim = Simulation()
    sim.finalize()
    with pytest.raises(RuntimeError):
        sim.step(parse_line("00400000 nop"))


def test_instruction_mix_counts_every_kind(example_trace):
    instructions = read_trace(example_trace)
    stats = simulate(instructions)
    assert stats["inst_total"] == len(instructions)
    assert stats["inst_load"] == 4
    assert stats["inst_store"] == 1
    assert stats["inst_branch"] == 2
    assert stats["inst_syscall"] == 1
    assert stats["inst_nop"] == 1
    assert stats["instructions_retired"] == len(instructions)


def test_limit_stops_early(example_trace):
    result = Environment(trace=example_trace, limit=5).run()
    assert result.stats["instructions_retired"] == 5
    assert result.trace == example_trace


# ── Experiments and sweep ────────────────────────────────────────────────────


def test_sweep_has_eighteen_distinct_configs():
    assert len(SWEEP_CONFIGS) == 18
    assert len({c.label() for c in SWEEP_CONFIGS}) == 18
    assert SWEEP_CONFIGS[0].label() == "i7-b1-w1-NT"
    assert SWEEP_CONFIGS[9].label() == "i7-b1-w1-T"
    assert all(not c.predict_taken for c in SWEEP_CONFIGS[:9])
    assert all(c.predict_taken for c in SWEEP_CONFIGS[9:])


def test_sweep_runs_every_config_from_a_clean_state(example_trace):
    results = run_sweep(example_trace)
    instructions = read_trace(example_trace)

    assert list(results) == [c.label() for c in SWEEP_CONFIGS]
    for result in results.values():
        assert result.stats["instructions_retired"] == len(instructions)
        assert result.stats["icache_accesses"] == len(instructions)

    again = run_experiment(Environment(trace=example_trace, config=SWEEP_CONFIGS[0]))
    assert dict(again.stats) == dict(results[SWEEP_CONFIGS[0].label()].stats)


def test_larger_blocks_reduce_misses_on_sequential_code(write_trace):
    lines = [f"{0x00400000 + 4 * i:08x} nop" for i in range(32)]
    path = write_trace(lines)
    one_word = Environment(path, Config(cache=Cache(index_bits=6, block_size=1))).run()
    four_word = Environment(path, Config(cache=Cache(index_bits=6, block_size=4))).run()
    assert one_word.stats["icache_misses"] == 32
    assert four_word.stats["icache_misses"] < one_word.stats["icache_misses"]
    assert four_word.stats["cpi"] < one_word.stats["cpi"]


def test_best_result_picks_lowest_score_first_on_ties():
    def result(cpi, miss_rate):
        return Result(stats=Stats({"cpi": cpi, "icache_miss_rate": miss_rate}))

    results = {
        "a": result(2.0, 0.5),
        "b": result(1.5, 0.25),
        "c": result(1.5, 0.25),
    }
    assert best_result(results) == "b"
    assert best_result({}) is None


def test_result_to_dict_is_json_ready(example_trace):
    result = Environment(trace=example_trace).run()
    data = result.to_dict()
    assert data["config"]["cache"]["index_bits"] == 7
    assert data["config"]["branch_predictor"] == 0
    assert data["stats"]["cycles"] == result.stats["cycles"]


# ── Simulator fluent API and config files ────────────────────────────────────


def test_simulator_uses_config_file(tmp_path, example_trace):
    cfg_file = tmp_path / "fast.py"
    cfg_file.write_text(
        "from plcsim import Cache, Config, BranchPredictor\n"
        "def fast():\n"
        "    return Config(cache=Cache(index_bits=5, block_size=2, ways=2),\n"
        "                  branch_predictor=BranchPredictor.Taken())\n"
    )
    sim = Simulator().quiet().config(str(cfg_file))
    assert sim._config_obj.cache == Cache(index_bits=5, block_size=2, ways=2)
    assert sim._config_obj.branch_predictor == BranchPredictor.Taken()

    stats = sim.trace(example_trace).run()
    assert stats["instructions_retired"] == len(read_trace(example_trace))


def test_config_file_without_entry_point(tmp_path):
    cfg_file = tmp_path / "empty.py"
    cfg_file.write_text("x = 1\n")
    with pytest.raises(ConfigurationError, match="entry point"):
        Simulator().quiet().config(str(cfg_file))


def test_missing_config_file(tmp_path):
    with pytest.raises(ConfigurationError):
        Simulator().quiet().config(str(tmp_path / "nope.py"))


def test_simulator_requires_a_trace():
    with pytest.raises(ValueError):
        Simulator().quiet().run()


@pytest.mark.parametrize(
    "value,taken",
    [(0, False), (1, True), ("taken", True), ("not-taken", False), (True, True)],
)
def test_branch_predictor_from_value(value, taken):
    assert BranchPredictor.from_value(value).predict_taken is taken


def test_branch_predictor_rejects_other_values():
    with pytest.raises(ConfigurationError):
        BranchPredictor.from_value(2)
    with pytest.raises(ConfigurationError):
        BranchPredictor.from_value("sometimes")
