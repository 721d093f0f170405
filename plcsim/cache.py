"""
Set-associative instruction cache with age-counter LRU replacement.

Provides:
- AddressDecoder: splits a 32-bit address into tag, index and block offset.
- CacheLine / CacheSet: per-way state and the set-level LRU bookkeeping.
- InstructionCache: lookup, hit/miss accounting and replacement.
"""

from __future__ import annotations

import logging
from typing import List, Optional, Tuple

from .config import MAX_CACHE_SIZE
from .errors import ConfigurationError
from .stats import Statistics
from .types import Cache

log = logging.getLogger(__name__)

ADDRESS_MASK = 0xFFFF_FFFF


class AddressDecoder:
    """Address field extraction for a fixed cache geometry."""

    def __init__(self, index_bits: int, block_size: int):
        geometry = Cache(index_bits=index_bits, block_size=block_size)
        self.index_bits = index_bits
        self.block_offset_bits = geometry.block_offset_bits
        self.index_mask = (1 << index_bits) - 1
        self.offset_mask = (1 << self.block_offset_bits) - 1
        self.tag_shift = index_bits + self.block_offset_bits

    @classmethod
    def for_cache(cls, cache: Cache) -> AddressDecoder:
        return cls(cache.index_bits, cache.block_size)

    def index(self, address: int) -> int:
        return ((address & ADDRESS_MASK) >> self.block_offset_bits) & self.index_mask

    def tag(self, address: int) -> int:
        return (address & ADDRESS_MASK) >> self.tag_shift

    def offset(self, address: int) -> int:
        return address & self.offset_mask

    def decode(self, address: int) -> Tuple[int, int, int]:
        """Return ``(tag, index, offset)`` for *address*."""
        return self.tag(address), self.index(address), self.offset(address)

    def compose(self, tag: int, index: int, offset: int = 0) -> int:
        """Inverse of ``decode``."""
        return (tag << self.tag_shift) | (index << self.block_offset_bits) | offset

    def __repr__(self) -> str:
        return (
            f"AddressDecoder(index_bits={self.index_bits}, "
            f"block_offset_bits={self.block_offset_bits})"
        )


class CacheLine:
    __slots__ = ("valid", "tag", "age")

    def __init__(self):
        self.valid = False
        self.tag = 0
        self.age = 0

    def __repr__(self) -> str:
        if not self.valid:
            return "CacheLine(invalid)"
        return f"CacheLine(tag={self.tag:#x}, age={self.age})"


class CacheSet:
    """One set of ``ways`` lines.

    ``age`` on a line counts accesses to other valid lines of the set since
    that line was last touched; the highest age is the least recently used.
    """

    def __init__(self, ways: int):
        self.lines: List[CacheLine] = [CacheLine() for _ in range(ways)]

    def find(self, tag: int) -> Optional[int]:
        """Way holding *tag*, or None."""
        for way, line in enumerate(self.lines):
            if line.valid and line.tag == tag:
                return way
        return None

    def victim(self) -> int:
        """First invalid way, else the first way with the highest age."""
        for way, line in enumerate(self.lines):
            if not line.valid:
                return way
        return max(range(len(self.lines)), key=lambda way: self.lines[way].age)

    def touch(self, way: int) -> None:
        """Make *way* the most recently used line."""
        for i, line in enumerate(self.lines):
            if i == way:
                line.age = 0
            elif line.valid:
                line.age += 1

    def fill(self, tag: int) -> int:
        """Install *tag* in the victim way and return that way."""
        way = self.victim()
        line = self.lines[way]
        line.tag = tag
        line.valid = True
        self.touch(way)
        return way

    @property
    def valid_tags(self) -> List[int]:
        return [line.tag for line in self.lines if line.valid]

    def __repr__(self) -> str:
        return f"CacheSet({self.lines!r})"


class InstructionCache:
    """
    Instruction cache for one simulation run.

    Geometry is fixed for the life of the instance. Construction fails with
    ``ConfigurationError`` when the geometry's storage exceeds *max_size* bits.

    Example::

        stats = Statistics()
        icache = InstructionCache(Cache(index_bits=5, block_size=2, ways=2), stats)
        icache.lookup_and_update(0x0040_0000)   # False: cold miss
        icache.lookup_and_update(0x0040_0004)   # True: same block
    """

    def __init__(
        self,
        geometry: Cache,
        stats: Optional[Statistics] = None,
        max_size: int = MAX_CACHE_SIZE,
    ):
        if geometry.size_bits > max_size:
            raise ConfigurationError(
                f"Cache too big: {geometry!r} needs {geometry.size_bits} bits, "
                f"greater than MAX SIZE of {max_size}"
            )
        self.geometry = geometry
        self.decoder = AddressDecoder.for_cache(geometry)
        self.stats = stats if stats is not None else Statistics()
        self.sets: List[CacheSet] = [CacheSet(geometry.ways) for _ in range(geometry.num_sets)]

    def lookup_and_update(self, address: int) -> bool:
        """Access *address*; returns True on a hit. Misses fill the line."""
        tag, index, _ = self.decoder.decode(address)
        cache_set = self.sets[index]

        way = cache_set.find(tag)
        hit = way is not None
        if hit:
            self.stats.hits += 1
            cache_set.touch(way)
        else:
            self.stats.misses += 1
            way = cache_set.fill(tag)

        self.stats.accesses += 1
        if log.isEnabledFor(logging.DEBUG):
            log.debug(
                "INST %s:\t Address %#x (set %d, way %d, tag %#x)",
                "HIT" if hit else "MISS",
                address,
                index,
                way,
                tag,
            )
        return hit

    def __repr__(self) -> str:
        return f"InstructionCache({self.geometry!r})"
