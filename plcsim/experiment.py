"""
Reproducible experiment API for cache/pipeline studies.

Provides:
- Environment: Immutable description of a run (trace path, config).
- Result: Structured result with stats and wall time.
- SWEEP_CONFIGS / run_sweep / best_result: the fixed performance-analysis sweep.
"""

from __future__ import annotations

import time
from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional, Sequence

from .config import Config, _config_to_dict
from .objects import Simulation, print_config
from .stats import Stats
from .trace import Instruction, read_trace
from .types import BranchPredictor, Cache


@dataclass
class Result:
    """Structured result of a single run."""

    stats: Stats = field(default_factory=lambda: Stats({}))
    """All stats as a Stats object."""

    config: Config = field(default_factory=Config)
    """Configuration the run used."""

    wall_time_sec: float = 0.0
    """Wall-clock time of the run in seconds."""

    trace: str = ""
    """Trace path (from Environment)."""

    @property
    def score(self) -> float:
        """Ranking key for sweeps: CPI plus miss rate, lower is better."""
        return self.stats.get("cpi", 0.0) + self.stats.get("icache_miss_rate", 0.0)

    def to_dict(self) -> Dict[str, Any]:
        """JSON-serializable dict for saving and comparison."""
        return {
            "trace": self.trace,
            "config": _config_to_dict(self.config),
            "wall_time_sec": self.wall_time_sec,
            "stats": dict(self.stats),
        }


@dataclass(frozen=True)
class Environment:
    """Immutable description of a simulation run for reproducibility."""

    trace: str
    """Path to the instruction trace."""

    config: Optional[Config] = None
    """If None, uses Config() defaults."""

    limit: Optional[int] = None
    """Stop after this many trace instructions. ``None`` means the whole trace."""

    def get_config(self) -> Config:
        return self.config if self.config is not None else Config()

    def run(
        self,
        instructions: Optional[Sequence[Instruction]] = None,
        verbose: bool = False,
    ) -> Result:
        """
        Run the simulation and return a :class:`Result`.

        Args:
            instructions: Already-parsed trace; read from ``self.trace`` if None.
            verbose: Print the cache configuration banner first.

        Example::

            env = Environment(trace="traces/example.trace")
            result = env.run()
            print(result.stats["cpi"], result.stats["icache_miss_rate"])
        """
        config = self.get_config()
        t0 = time.perf_counter()
        sim = Simulation(config)
        if verbose:
            print_config(config)
        if instructions is None:
            instructions = read_trace(self.trace)
        sim.run(instructions, limit=self.limit)
        stats = sim.finalize()
        return Result(
            stats=stats,
            config=config,
            wall_time_sec=time.perf_counter() - t0,
            trace=self.trace,
        )


def run_experiment(
    env: Environment,
    instructions: Optional[Sequence[Instruction]] = None,
    verbose: bool = False,
) -> Result:
    """Run one simulation described by *env*."""
    return env.run(instructions=instructions, verbose=verbose)


# ── Performance-analysis sweep ───────────────────────────────────────────────

_SWEEP_GEOMETRIES = [
    (7, 1, 1),
    (6, 1, 2),
    (6, 2, 1),
    (6, 4, 1),
    (5, 1, 4),
    (5, 2, 2),
    (5, 4, 2),
    (4, 2, 4),
    (4, 4, 4),
]

SWEEP_CONFIGS: List[Config] = [
    Config(
        cache=Cache(index_bits=i, block_size=b, ways=w),
        branch_predictor=bp,
    )
    for bp in (BranchPredictor.NotTaken(), BranchPredictor.Taken())
    for (i, b, w) in _SWEEP_GEOMETRIES
]
"""The 18 fixed configurations: nine geometries, not-taken first, then taken."""


def run_sweep(
    trace: str,
    configs: Optional[Sequence[Config]] = None,
    instructions: Optional[Sequence[Instruction]] = None,
    limit: Optional[int] = None,
    verbose: bool = False,
) -> Dict[str, Result]:
    """
    Run *trace* under every configuration, in order.

    The trace is parsed once and replayed on a fresh simulation for each
    configuration. Results are keyed by ``Config.label()``.
    """
    if configs is None:
        configs = SWEEP_CONFIGS
    if instructions is None:
        instructions = read_trace(trace)
    results: Dict[str, Result] = {}
    for config in configs:
        if verbose:
            print(f"  {trace} {config.label()}...", flush=True)
        env = Environment(trace=trace, config=config, limit=limit)
        results[config.label()] = env.run(instructions=instructions)
    return results


def best_result(results: Dict[str, Result]) -> Optional[str]:
    """Label of the lowest-scoring result; the first one wins ties."""
    best = None
    for name, result in results.items():
        if best is None or result.score < results[best].score:
            best = name
    return best
