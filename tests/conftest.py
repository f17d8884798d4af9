"""Shared toy vocabularies and encodings."""

import os

import pytest

from harmonytok import HarmonyEncoding, SpecialTokenRegistry, VocabularyTable


def pytest_collection_modifyitems(config, items):
    """Skip network tests unless explicitly enabled."""
    if os.environ.get("HARMONYTOK_NETWORK_TESTS") == "1":
        return
    skip = pytest.mark.skip(reason="set HARMONYTOK_NETWORK_TESTS=1 to run")
    for item in items:
        if "network" in item.keywords:
            item.add_marker(skip)


# Vocabularies
# ---------------------------------------------------------------------------


@pytest.fixture
def toy_vocab():
    """Return the four-letter vocabulary with merges he, ll, hel."""
    return VocabularyTable.from_merges(
        {0: b"h", 1: b"e", 2: b"l", 3: b"o"},
        {(0, 1): 10, (2, 2): 11, (10, 2): 12},
    )


# merged entries appended after the 256 single bytes, lowest rank first
BYTE_MERGES = (
    b"he",
    b"ll",
    b"hel",
    b"or",
    b" w",
    b" wor",
    b"ld",
    b" wor" + b"ld",
    b"lo",
    b"\xc3\xa9",
    b"\xe6\x97",
)


@pytest.fixture
def byte_vocab():
    """Return a vocabulary covering every byte plus a few merges."""
    entries = [(bytes([b]), None) for b in range(256)]
    entries += [(seq, rank) for rank, seq in enumerate(BYTE_MERGES)]
    return VocabularyTable.from_ranks(entries)


# Encodings
# ---------------------------------------------------------------------------


@pytest.fixture
def encoding(byte_vocab):
    """Return a harmony encoding over the byte vocabulary."""
    return HarmonyEncoding(
        byte_vocab, SpecialTokenRegistry.harmony(), name="toy", drop_special=False
    )
