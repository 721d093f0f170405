import random

import pytest

from plcsim import AddressDecoder, Cache, ConfigurationError, InstructionCache, SWEEP_CONFIGS
from plcsim.cache import CacheSet
from plcsim.stats import Statistics


def _tag_address(tag, index=0, decoder=None):
    return decoder.compose(tag, index) if decoder else tag << 2


# ── Address decoding ─────────────────────────────────────────────────────────


def test_block_offset_bits_follow_block_size():
    assert Cache(block_size=1).block_offset_bits == 2
    assert Cache(block_size=2).block_offset_bits == 4
    assert Cache(block_size=4).block_offset_bits == 8


def test_decoder_fields_direct_mapped():
    d = AddressDecoder(index_bits=2, block_size=1)
    assert d.decode(0x00) == (0, 0, 0)
    assert d.decode(0x04) == (0, 1, 0)
    assert d.decode(0x10) == (1, 0, 0)
    assert d.decode(0x13) == (1, 0, 3)


def test_index_uses_exactly_index_bits():
    d = AddressDecoder(index_bits=3, block_size=1)
    address = 0b1_111_00
    assert d.index(address) == 0b111
    assert d.tag(address) == 0b1


@pytest.mark.parametrize(
    "index_bits,block_size", [(0, 1), (2, 1), (4, 2), (5, 4), (6, 1), (7, 1), (10, 3)]
)
def test_address_partition_has_no_overlap_or_gap(index_bits, block_size):
    d = AddressDecoder(index_bits, block_size)
    rng = random.Random(index_bits * 31 + block_size)
    for _ in range(500):
        address = rng.getrandbits(32)
        tag, index, offset = d.decode(address)
        assert index < (1 << index_bits)
        assert offset < (1 << d.block_offset_bits)
        assert tag < (1 << (32 - d.tag_shift))
        assert d.compose(tag, index, offset) == address


# ── Lookup ───────────────────────────────────────────────────────────────────


def test_direct_mapped_conflicting_addresses_all_miss():
    icache = InstructionCache(Cache(index_bits=2, block_size=1, ways=1))
    d = icache.decoder
    assert d.index(0x00) == d.index(0x10) == 0
    assert d.tag(0x00) != d.tag(0x10)

    results = [icache.lookup_and_update(a) for a in (0x00, 0x10, 0x00)]

    assert results == [False, False, False]
    assert icache.stats.accesses == 3
    assert icache.stats.misses == 3
    assert icache.stats.hits == 0


def test_direct_mapped_distinct_indices_revisit_hits():
    icache = InstructionCache(Cache(index_bits=2, block_size=1, ways=1))
    assert icache.decoder.index(0x00) == 0
    assert icache.decoder.index(0x04) == 1

    results = [icache.lookup_and_update(a) for a in (0x00, 0x04, 0x00)]

    assert results == [False, False, True]
    assert (icache.stats.accesses, icache.stats.misses, icache.stats.hits) == (3, 2, 1)


def test_same_block_hits_after_first_fetch():
    icache = InstructionCache(Cache(index_bits=4, block_size=2, ways=1))
    assert icache.lookup_and_update(0x0040_0000) is False
    assert icache.lookup_and_update(0x0040_0004) is True
    assert icache.lookup_and_update(0x0040_000C) is True


def test_two_way_set_holds_conflicting_tags():
    icache = InstructionCache(Cache(index_bits=2, block_size=1, ways=2))
    assert [icache.lookup_and_update(a) for a in (0x00, 0x10, 0x00, 0x10)] == [
        False,
        False,
        True,
        True,
    ]


# ── LRU ──────────────────────────────────────────────────────────────────────


def test_miss_evicts_oldest_line():
    icache = InstructionCache(Cache(index_bits=0, block_size=1, ways=4))
    cache_set = icache.sets[0]
    for tag in range(4):
        icache.lookup_and_update(_tag_address(tag))
    assert [line.age for line in cache_set.lines] == [3, 2, 1, 0]

    icache.lookup_and_update(_tag_address(4))
    assert cache_set.valid_tags == [4, 1, 2, 3]
    assert [line.age for line in cache_set.lines] == [0, 3, 2, 1]

    icache.lookup_and_update(_tag_address(1))  # hit
    assert [line.age for line in cache_set.lines] == [1, 0, 3, 2]

    icache.lookup_and_update(_tag_address(5))
    assert cache_set.valid_tags == [4, 1, 5, 3]


def test_hit_resets_age_and_ages_other_valid_lines():
    icache = InstructionCache(Cache(index_bits=0, block_size=1, ways=4))
    cache_set = icache.sets[0]
    for tag in (7, 8, 9):
        icache.lookup_and_update(_tag_address(tag))
    before = [line.age for line in cache_set.lines]

    assert icache.lookup_and_update(_tag_address(8)) is True

    after = [line.age for line in cache_set.lines]
    assert after[1] == 0
    assert after[0] == before[0] + 1
    assert after[2] == before[2] + 1
    assert after[3] == before[3] == 0  # invalid line untouched
    assert not cache_set.lines[3].valid


def test_victim_prefers_empty_way():
    cache_set = CacheSet(3)
    cache_set.lines[0].valid = True
    cache_set.lines[0].age = 9
    assert cache_set.victim() == 1


def test_victim_tie_goes_to_first_way():
    cache_set = CacheSet(4)
    for line, age in zip(cache_set.lines, [2, 5, 5, 1]):
        line.valid = True
        line.age = age
    assert cache_set.victim() == 1


def test_set_invariants_hold_under_random_accesses():
    geometry = Cache(index_bits=3, block_size=1, ways=2)
    icache = InstructionCache(geometry)
    rng = random.Random(1234)
    pool = [rng.getrandbits(16) & ~0x3 for _ in range(64)]
    for _ in range(2000):
        icache.lookup_and_update(rng.choice(pool))

    for cache_set in icache.sets:
        tags = cache_set.valid_tags
        assert len(tags) <= geometry.ways
        assert len(set(tags)) == len(tags)
    stats = icache.stats
    assert stats.accesses == 2000
    assert stats.hits + stats.misses == stats.accesses


# ── Geometry ─────────────────────────────────────────────────────────────────


def test_oversized_cache_is_rejected():
    geometry = Cache(index_bits=10, block_size=1, ways=1)
    assert geometry.size_bits == 1024 * 53
    with pytest.raises(ConfigurationError, match="Cache too big"):
        InstructionCache(geometry)


def test_capacity_limit_is_configurable():
    geometry = Cache(index_bits=2, block_size=1, ways=1)
    assert geometry.size_bits == 4 * 61
    InstructionCache(geometry, max_size=244)
    with pytest.raises(ConfigurationError):
        InstructionCache(geometry, max_size=243)


def test_every_sweep_geometry_fits():
    for config in SWEEP_CONFIGS:
        InstructionCache(config.cache, Statistics(), max_size=config.max_cache_size)


@pytest.mark.parametrize(
    "kwargs", [{"index_bits": -1}, {"block_size": 0}, {"ways": 0}]
)
def test_invalid_geometry(kwargs):
    with pytest.raises(ConfigurationError):
        Cache(**kwargs)
