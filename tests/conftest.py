import os

import pytest

from plcsim import Cache, Config

REPO_ROOT = os.path.dirname(os.path.dirname(os.path.abspath(__file__)))
EXAMPLE_TRACE = os.path.join(REPO_ROOT, "traces", "example.trace")


@pytest.fixture
def write_trace(tmp_path):
    """Write trace lines to a file and return its path."""

    def _write(lines, name="prog.trace"):
        path = tmp_path / name
        path.write_text("\n".join(lines) + ("\n" if lines else ""))
        return str(path)

    return _write


@pytest.fixture
def example_trace():
    return EXAMPLE_TRACE


@pytest.fixture
def two_word_config():
    """16 sets of 2-word (16-byte) blocks, direct mapped."""
    return Config(cache=Cache(index_bits=4, block_size=2, ways=1))
