"""
Flat simulator configuration.

A single ``Config`` class holds every knob of one simulation run: the
instruction cache geometry, the static branch prediction policy and the
fetch miss penalty. ``to_dict()`` produces a plain dict for logging and
JSON export.
"""

from __future__ import annotations

from typing import Any, Dict, Optional

from .errors import ConfigurationError
from .types import BranchPredictor, Cache

MISS_PENALTY = 10
"""Cycles charged for an instruction cache miss."""

MAX_CACHE_SIZE = 10240
"""Capacity ceiling for the instruction cache, in bits (data + tag + valid)."""


class Config:
    """
    Full simulator configuration with flat parameter access.

    Example::

        from plcsim import Config, Cache, BranchPredictor

        cfg = Config(
            cache=Cache(index_bits=5, block_size=2, ways=2),
            branch_predictor=BranchPredictor.Taken(),
        )

    ``trace=True`` emits a pipeline dump per instruction on the
    ``plcsim.pipeline`` logger at DEBUG level. Nothing is printed unless the
    caller configures logging (``plcsim --trace`` does this on stderr).
    """

    def __init__(
        self,
        cache: Optional[Cache] = None,
        branch_predictor=None,
        miss_penalty: int = MISS_PENALTY,
        max_cache_size: int = MAX_CACHE_SIZE,
        trace: bool = False,
    ):
        self.cache = cache if cache is not None else Cache()
        self.branch_predictor = BranchPredictor.from_value(
            branch_predictor if branch_predictor is not None else 0
        )
        if miss_penalty < 1:
            raise ConfigurationError(f"miss_penalty must be >= 1, got {miss_penalty}")
        self.miss_penalty = miss_penalty
        self.max_cache_size = max_cache_size
        self.trace = trace

    @property
    def predict_taken(self) -> bool:
        return self.branch_predictor.predict_taken

    def label(self) -> str:
        """Short name used as a row/column key in sweep results."""
        c = self.cache
        bp = "T" if self.predict_taken else "NT"
        return f"i{c.index_bits}-b{c.block_size}-w{c.ways}-{bp}"

    def to_dict(self) -> Dict[str, Any]:
        return {
            "cache": self.cache._to_cache_dict(),
            "branch_predictor": self.branch_predictor._to_dict_value(),
            "miss_penalty": self.miss_penalty,
            "max_cache_size": self.max_cache_size,
            "trace": self.trace,
        }

    def __repr__(self) -> str:
        parts = [
            f"cache={self.cache!r}",
            f"branch_predictor={self.branch_predictor!r}",
            f"miss_penalty={self.miss_penalty}",
        ]
        if self.max_cache_size != MAX_CACHE_SIZE:
            parts.append(f"max_cache_size={self.max_cache_size}")
        if self.trace:
            parts.append("trace=True")
        return f"Config({', '.join(parts)})"


def _config_to_dict(config) -> Dict[str, Any]:
    """Normalize config to a dict. Accepts Config or plain dict."""
    if hasattr(config, "to_dict") and callable(getattr(config, "to_dict")):
        return config.to_dict()
    if isinstance(config, dict):
        return config
    raise TypeError("config must be Config or dict")
