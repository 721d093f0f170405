"""
Namespace types for simulator configuration.

Provides structured, Pythonic alternatives to raw numeric flags:
- BranchPredictor: NotTaken, Taken (static prediction policies)
- Cache: instruction cache geometry with derived sizes
"""

from __future__ import annotations

import math
import re
from typing import Any, Dict

from .errors import ConfigurationError


def _parse_count(s) -> int:
    """Parse a count like '500', '20K', '5M' into an int. Ints pass through."""
    if isinstance(s, int):
        return s
    if not isinstance(s, str):
        raise TypeError(f"Expected str or int, got {type(s).__name__}")
    m = re.fullmatch(r"(\d+)\s*([KMG]?)", s.strip(), re.IGNORECASE)
    if not m:
        raise ValueError(f"Cannot parse count: {s!r} (expected e.g. '500', '20K', '5M')")
    mult = {"": 1, "K": 1_000, "M": 1_000_000, "G": 1_000_000_000}
    return int(m.group(1)) * mult[m.group(2).upper()]


# ── Branch Predictor ─────────────────────────────────────────────────────────


class BranchPredictor:
    """Namespace for static branch prediction policies."""

    class NotTaken:
        predict_taken = False

        def _to_dict_value(self) -> int:
            return 0

        def __eq__(self, other) -> bool:
            return isinstance(other, BranchPredictor.NotTaken)

        def __hash__(self) -> int:
            return hash("NotTaken")

        def __repr__(self) -> str:
            return "BranchPredictor.NotTaken()"

    class Taken:
        predict_taken = True

        def _to_dict_value(self) -> int:
            return 1

        def __eq__(self, other) -> bool:
            return isinstance(other, BranchPredictor.Taken)

        def __hash__(self) -> int:
            return hash("Taken")

        def __repr__(self) -> str:
            return "BranchPredictor.Taken()"

    @staticmethod
    def from_value(value):
        """Build a predictor from ``0``/``1``, a bool, or a name like ``"taken"``."""
        if isinstance(value, (BranchPredictor.NotTaken, BranchPredictor.Taken)):
            return value
        if isinstance(value, str):
            key = value.strip().lower().replace("_", "-")
            names = {
                "0": False,
                "not-taken": False,
                "nottaken": False,
                "1": True,
                "taken": True,
            }
            if key not in names:
                raise ConfigurationError(f"Unknown branch prediction policy: {value!r}")
            value = names[key]
        if value in (0, 1):
            return BranchPredictor.Taken() if value else BranchPredictor.NotTaken()
        raise ConfigurationError(
            f"Branch prediction must be 0 (not taken) or 1 (taken), got {value!r}"
        )


# ── Cache ────────────────────────────────────────────────────────────────────


class Cache:
    """
    Instruction cache geometry.

    Args:
        index_bits: Number of index bits; the cache has ``2**index_bits`` sets.
        block_size: Block size in 32-bit words.
        ways: Associativity (lines per set).
    """

    def __init__(self, index_bits: int = 7, block_size: int = 1, ways: int = 1):
        if index_bits < 0:
            raise ConfigurationError(f"index_bits must be >= 0, got {index_bits}")
        if block_size < 1:
            raise ConfigurationError(f"block_size must be >= 1, got {block_size}")
        if ways < 1:
            raise ConfigurationError(f"ways must be >= 1, got {ways}")
        self.index_bits = index_bits
        self.block_size = block_size
        self.ways = ways

    @property
    def num_sets(self) -> int:
        return 1 << self.index_bits

    @property
    def block_offset_bits(self) -> int:
        return math.ceil(self.block_size * 4 / 2)

    @property
    def line_bits(self) -> int:
        """Storage per line: data bits, tag bits and the valid bit."""
        return 32 * self.block_size + 33 - self.index_bits - self.block_offset_bits

    @property
    def size_bits(self) -> int:
        return self.ways * self.num_sets * self.line_bits

    def _to_cache_dict(self) -> Dict[str, Any]:
        return {
            "index_bits": self.index_bits,
            "block_size": self.block_size,
            "ways": self.ways,
            "sets": self.num_sets,
            "block_offset_bits": self.block_offset_bits,
            "size_bits": self.size_bits,
        }

    def __eq__(self, other) -> bool:
        if not isinstance(other, Cache):
            return NotImplemented
        return (self.index_bits, self.block_size, self.ways) == (
            other.index_bits,
            other.block_size,
            other.ways,
        )

    def __hash__(self) -> int:
        return hash((self.index_bits, self.block_size, self.ways))

    def __repr__(self) -> str:
        return (
            f"Cache(index_bits={self.index_bits}, block_size={self.block_size}, "
            f"ways={self.ways})"
        )
