"""
plcsim: instruction pipeline + cache simulator Python API.

A trace-driven, cycle-level model of a 5-stage pipeline fed by a
set-associative instruction cache:
1. **Configuration:** ``Config``, ``Cache``, ``BranchPredictor``.
2. **Execution:** ``Simulation``, ``Simulator``, ``simulate``.
3. **Experiments:** ``Environment``, ``Result``, ``run_experiment``, ``run_sweep``.
4. **Statistics:** ``Stats``, ``compare``.
5. **Traces and ISA:** ``read_trace``, ``parse_line``, ``Opcode``, ``reg``.
"""

from importlib.metadata import version as _metadata_version

from .cache import AddressDecoder, InstructionCache
from .config import Config
from .errors import ConfigurationError, SimulationError, TraceParseError
from .experiment import (
    SWEEP_CONFIGS,
    Environment,
    Result,
    best_result,
    run_experiment,
    run_sweep,
)
from .isa import InstructionKind, Opcode, reg, reg_name
from .objects import Simulation, Simulator, simulate
from .pipeline import Pipeline, Stage
from .stats import Stats, compare
from .trace import Instruction, parse_line, read_trace
from .types import BranchPredictor, Cache

__version__ = _metadata_version("plcsim")


def version() -> str:
    """Return the installed plcsim version string."""
    return __version__


__all__ = [
    "__version__",
    "version",
    "Config",
    "BranchPredictor",
    "Cache",
    "AddressDecoder",
    "InstructionCache",
    "Pipeline",
    "Stage",
    "Simulation",
    "Simulator",
    "simulate",
    "Environment",
    "Result",
    "run_experiment",
    "run_sweep",
    "best_result",
    "SWEEP_CONFIGS",
    "Stats",
    "compare",
    "Instruction",
    "parse_line",
    "read_trace",
    "InstructionKind",
    "Opcode",
    "reg",
    "reg_name",
    "SimulationError",
    "ConfigurationError",
    "TraceParseError",
]
