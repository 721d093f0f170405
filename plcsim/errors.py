"""
Exception types raised by the simulator.

Library code raises these; the CLI is the only place that turns them into a
process exit status.
"""

from __future__ import annotations

from typing import Optional


class SimulationError(Exception):
    """Base class for all plcsim errors."""


class ConfigurationError(SimulationError, ValueError):
    """Invalid or oversized cache/pipeline configuration."""


class TraceParseError(SimulationError, ValueError):
    """A trace line could not be parsed."""

    def __init__(self, message: str, line_no: Optional[int] = None, line: str = ""):
        self.line_no = line_no
        self.line = line
        if line_no is not None:
            message = f"line {line_no}: {message}"
        super().__init__(message)
