"""
Simulation objects and high-level run API.

Provides:
- Simulation: one run's context (instruction cache, pipeline, counters).
- Simulator: Fluent API (config/with_config/trace/run).
- simulate: Replay parsed instructions against a config and return Stats.
"""

from __future__ import annotations

import importlib.util
import logging
import os
import sys
from typing import Iterable, Optional

from .cache import InstructionCache
from .config import Config
from .errors import ConfigurationError
from .pipeline import Pipeline
from .stats import Statistics, Stats
from .trace import Instruction, read_trace

log = logging.getLogger(__name__)


class Simulation:
    """
    State for one simulation run.

    Owns the instruction cache, the pipeline and the shared ``Statistics``.
    A sweep builds one per configuration and drops it after reading the
    final stats.

    Properties:
        cycles: Cycles simulated so far
        stats: Live counters (``Statistics``)

    Methods:
        step(instruction): Fetch through the cache, then insert into the pipeline
        run(instructions, limit): Step through many instructions
        finalize(): Drain the pipeline and return ``Stats``
    """

    def __init__(self, config: Optional[Config] = None):
        self.config = config if config is not None else Config()
        self.stats = Statistics()
        self.icache = InstructionCache(
            self.config.cache, self.stats, max_size=self.config.max_cache_size
        )
        self.pipeline = Pipeline(
            predict_taken=self.config.predict_taken,
            stats=self.stats,
            trace=self.config.trace,
        )
        self._finalized = False

    @property
    def cycles(self) -> int:
        return self.stats.cycles

    def step(self, instruction: Instruction) -> bool:
        """Process one instruction. Returns True if its fetch hit in the cache."""
        if self._finalized:
            raise RuntimeError("Simulation already finalized")
        hit = self.icache.lookup_and_update(instruction.address)
        if not hit:
            # The dispatch below advances once more, so the miss costs
            # miss_penalty cycles in total. Branch and hazard stalls during
            # these cycles overlap with the miss.
            burn = self.config.miss_penalty - 1
            for _ in range(burn):
                self.pipeline.advance_one_cycle()
            self.stats.stalls_mem += burn
        self.pipeline.dispatch(instruction)
        return hit

    def run(self, instructions: Iterable[Instruction], limit: Optional[int] = None) -> int:
        """Step through *instructions* (at most *limit*). Returns how many were stepped."""
        count = 0
        for instruction in instructions:
            if limit is not None and count >= limit:
                break
            self.step(instruction)
            count += 1
        return count

    def finalize(self) -> Stats:
        """Drain the pipeline so every in-flight instruction retires."""
        stats = self.pipeline.finalize()
        self._finalized = True
        return stats

    def __repr__(self) -> str:
        return f"Simulation({self.config!r}, cycles={self.cycles})"


def simulate(
    instructions: Iterable[Instruction],
    config: Optional[Config] = None,
    limit: Optional[int] = None,
) -> Stats:
    """Replay *instructions* on a fresh ``Simulation`` and return its final stats."""
    sim = Simulation(config)
    sim.run(instructions, limit=limit)
    return sim.finalize()


def print_config(config: Config, file=None) -> None:
    """Print the cache configuration banner."""
    if file is None:
        file = sys.stdout
    c = config.cache
    print("Cache Configuration", file=file)
    print(f"   Index: {c.index_bits} bits or {c.num_sets} lines", file=file)
    print(f"   BlockSize: {c.block_size}", file=file)
    print(f"   Associativity: {c.ways}", file=file)
    print(f"   BlockOffSetBits: {c.block_offset_bits}", file=file)
    print(f"   CacheSize: {c.size_bits}", file=file)


def load_config_file(path: str) -> Config:
    """
    Load a ``Config`` from a Python file.

    The module may define a function named after the file (``fast.py`` ->
    ``fast()``), a ``config`` variable or callable, or ``get_config()``.
    """
    if not os.path.exists(path):
        raise ConfigurationError(f"Config file {path} not found")

    spec = importlib.util.spec_from_file_location("custom_config", path)
    if spec is None or spec.loader is None:
        raise ConfigurationError(f"Cannot load config file {path}")
    mod = importlib.util.module_from_spec(spec)
    spec.loader.exec_module(mod)

    name = os.path.splitext(os.path.basename(path))[0]
    if callable(getattr(mod, name, None)):
        cfg = getattr(mod, name)()
    elif hasattr(mod, "config"):
        c = getattr(mod, "config")
        cfg = c() if callable(c) else c
    elif hasattr(mod, "get_config"):
        cfg = getattr(mod, "get_config")()
    else:
        raise ConfigurationError(
            f"Could not find config entry point in {path}. "
            f"Expected function '{name}' or 'get_config' or variable 'config'."
        )
    if not isinstance(cfg, Config):
        raise ConfigurationError(
            f"Config entry point in {path} returned {type(cfg).__name__}, expected Config"
        )
    return cfg


class Simulator:
    """Fluent API for configuring and running the simulator.

    Example::

        stats = Simulator().with_config(cfg).trace("traces/example.trace").run()
    """

    def __init__(self):
        self._config_path: Optional[str] = None
        self._trace_path: Optional[str] = None
        self._config_obj: Optional[Config] = None
        self._limit: Optional[int] = None
        self._verbose = True

    def with_config(self, config: Config) -> Simulator:
        """Set the configuration directly."""
        self._config_obj = config
        return self

    def config(self, path: str) -> Simulator:
        """Load configuration from a Python file."""
        self._config_path = path
        self._config_obj = load_config_file(path)
        if self._verbose:
            print(f"[Simulator] Loaded config from {path}")
        return self

    def trace(self, path: str) -> Simulator:
        self._trace_path = path
        return self

    def limit(self, n: Optional[int]) -> Simulator:
        """Stop after *n* trace instructions."""
        self._limit = n
        return self

    def quiet(self, quiet: bool = True) -> Simulator:
        self._verbose = not quiet
        return self

    def run(self) -> Stats:
        """Build the simulation from config, replay the trace and return stats."""
        if self._trace_path is None:
            raise ValueError("No trace specified; call .trace(path) first")
        if self._config_obj is None:
            if self._verbose:
                print("[Simulator] No config loaded, using defaults.")
            self._config_obj = Config()

        sim = Simulation(self._config_obj)
        if self._verbose:
            print_config(self._config_obj)
            print(f"[Simulator] Loading trace: {self._trace_path}")
        instructions = read_trace(self._trace_path)
        sim.run(instructions, limit=self._limit)
        stats = sim.finalize()
        log.info(
            "%s: %d cycles, %d instructions",
            self._config_obj.label(),
            stats["cycles"],
            stats["instructions_retired"],
        )
        return stats
