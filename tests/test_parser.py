"""Unit tests for StreamableParser incremental encoding."""

import pytest

from harmonytok import (
    HarmonyEncoding,
    ParserState,
    SegmentPattern,
    SpecialTokenRegistry,
    StreamableParser,
    TextSegmenter,
    TokenizationError,
)

SAMPLES = [
    "hello world",
    "don't stop, we'll see",
    "héllo wörld 日本語",
    "a  \n\n  b   c",
    "1234567 !!?? ok",
    "trailing spaces   ",
]


@pytest.fixture
def parser(encoding):
    """Return a fresh parser over the toy harmony encoding."""
    return StreamableParser(encoding)


def _stream(parser: StreamableParser, chunks: list[bytes]) -> list[int]:
    tokens: list[int] = []
    for chunk in chunks:
        tokens.extend(parser.feed(chunk))
    tokens.extend(parser.flush())
    return tokens


# Streaming equivalence
# ---------------------------------------------------------------------------


@pytest.mark.parametrize("text", SAMPLES)
def test_two_way_splits_match_one_shot(encoding, text):
    """Every split point, including inside a character, gives one-shot tokens."""
    data = text.encode("utf-8")
    expected = encoding.encode_bytes(data)
    for i in range(len(data) + 1):
        assert _stream(StreamableParser(encoding), [data[:i], data[i:]]) == expected


@pytest.mark.parametrize("pattern", list(SegmentPattern), ids=lambda pat: pat.name.lower())
@pytest.mark.parametrize("text", SAMPLES)
def test_byte_at_a_time_matches_one_shot(byte_vocab, pattern, text):
    """Feeding single bytes gives one-shot tokens under every built-in pattern."""
    enc = HarmonyEncoding(
        byte_vocab,
        SpecialTokenRegistry.harmony(),
        TextSegmenter(pattern.value),
        drop_special=False,
    )
    data = text.encode("utf-8")
    chunks = [data[i : i + 1] for i in range(len(data))]
    assert _stream(StreamableParser(enc), chunks) == enc.encode_bytes(data)


def test_three_way_splits_match_one_shot(encoding):
    """Every pair of split points gives one-shot tokens."""
    data = "we'll héllo  world".encode("utf-8")
    expected = encoding.encode_bytes(data)
    for i in range(len(data) + 1):
        for j in range(i, len(data) + 1):
            chunks = [data[:i], data[i:j], data[j:]]
            assert _stream(StreamableParser(encoding), chunks) == expected


def test_long_open_chunk_is_not_rescanned_every_feed(parser, encoding, monkeypatch):
    """A chunk that keeps growing is rescanned a logarithmic number of times."""
    scans = 0
    scan = encoding.segmenter.scan

    def counting_scan(text):
        nonlocal scans
        scans += 1
        return scan(text)

    monkeypatch.setattr(encoding.segmenter, "scan", counting_scan)
    data = b"ACGT" * 4000
    tokens: list[int] = []
    for i in range(0, len(data), 16):
        tokens += parser.feed(data[i : i + 16])
    assert tokens == []
    assert scans < 20

    tokens += parser.feed(b" and more text")
    assert tokens == encoding.encode_plain("ACGT" * 4000 + " and more")
    assert tokens + parser.flush() == encoding.encode_bytes(data + b" and more text")


def test_feed_emits_before_flush(parser, encoding):
    """Tokens whose chunk can no longer change are emitted immediately."""
    tokens = parser.feed(b"hello world and more")
    assert tokens == encoding.encode_plain("hello world and")
    assert parser.has_pending()


# State
# ---------------------------------------------------------------------------


def test_new_parser_is_idle(parser):
    """A fresh parser holds nothing."""
    assert not parser.has_pending()
    assert parser.state == ParserState()
    assert not parser.state.extendable


def test_partial_character_is_pending(parser):
    """An unfinished UTF-8 sequence is held back."""
    assert parser.feed("日".encode("utf-8")[:2]) == []
    assert parser.has_pending()
    assert parser.state.pending == b"\xe6\x97"


def test_counters_track_progress(parser, encoding):
    """Counters add up to the whole stream after flush."""
    data = b"hello world again"
    tokens = parser.feed(data) + parser.flush()
    state = parser.state
    assert state.bytes_consumed == len(data)
    assert state.tokens_emitted == len(tokens)
    assert not state.extendable


def test_state_is_a_copy(parser):
    """Mutating the returned state does not touch the parser."""
    parser.feed(b"abc")
    state = parser.state
    state.pending = b""
    assert parser.has_pending()


def test_flush_empty(parser):
    """Flushing with nothing buffered yields nothing."""
    assert parser.flush() == []


def test_parser_reusable_after_flush(parser, encoding):
    """A flushed parser starts a new stream."""
    _stream(parser, [b"first stream"])
    assert _stream(parser, [b"second"]) == encoding.encode_plain("second")


# Reset
# ---------------------------------------------------------------------------


def test_reset_discards_buffer(parser):
    """reset drops pending bytes and counters."""
    parser.feed(b"hello wor")
    parser.reset()
    assert not parser.has_pending()
    assert parser.state == ParserState()


def test_reset_is_idempotent(parser):
    """Resetting twice equals resetting once."""
    parser.feed(b"abc")
    parser.reset()
    once = parser.state
    parser.reset()
    assert parser.state == once


def test_reset_then_stream_matches_fresh(parser, encoding):
    """A reset parser behaves like a new one."""
    parser.feed(b"garbage \xe6")
    parser.reset()
    assert _stream(parser, [b"hello ", b"world"]) == encoding.encode_plain("hello world")


# Errors
# ---------------------------------------------------------------------------


def test_invalid_byte_raises_and_keeps_state(parser):
    """An impossible UTF-8 byte raises and leaves the buffer untouched."""
    parser.feed(b"hello w")
    before = parser.state
    with pytest.raises(TokenizationError):
        parser.feed(b"\xff")
    assert parser.state == before


@pytest.mark.parametrize("chunk", [5, "text", None, [104, 105]])
def test_non_bytes_chunk_raises(parser, chunk):
    """Only bytes-like chunks are accepted."""
    with pytest.raises(TokenizationError):
        parser.feed(chunk)
    assert parser.state == ParserState()


def test_bytes_like_chunks_accepted(parser, encoding):
    """bytearray and memoryview chunks are fed like bytes."""
    tokens = parser.feed(bytearray(b"hello ")) + parser.feed(memoryview(b"world"))
    assert tokens + parser.flush() == encoding.encode_plain("hello world")


def test_invalid_continuation_raises(parser):
    """A lead byte followed by a non-continuation byte is rejected."""
    with pytest.raises(TokenizationError):
        parser.feed(b"\xe6(")


def test_recovers_after_error(parser, encoding):
    """Valid input after a rejected chunk continues the stream."""
    parser.feed(b"hello ")
    with pytest.raises(TokenizationError):
        parser.feed(b"\xc3\x28")
    assert parser.feed(b"world") + parser.flush() == encoding.encode_plain("hello world")


def test_flush_incomplete_character_raises(parser):
    """Ending the stream inside a character is invalid input."""
    parser.feed(b"ok \xe6\x97")
    before = parser.state
    with pytest.raises(TokenizationError):
        parser.flush()
    assert parser.state == before
