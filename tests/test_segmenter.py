"""Unit tests for TextSegmenter chunking, patterns and stable boundaries."""

import pytest

from harmonytok import PatternError, SegmentPattern, TextSegmenter, TokenizationError, get_pattern, list_patterns


@pytest.fixture
def segmenter():
    """Return a segmenter with the default o200k pattern."""
    return TextSegmenter()


# Segmentation
# ---------------------------------------------------------------------------


def test_segment_words_and_spaces(segmenter):
    """Words take their leading space."""
    assert list(segmenter.segment("hello world")) == ["hello", " world"]


def test_segment_contraction(segmenter):
    """Contractions stay attached to their word."""
    assert list(segmenter.segment("don't stop")) == ["don't", " stop"]


def test_segment_numbers_in_groups_of_three(segmenter):
    """Digit runs split into groups of at most three."""
    assert list(segmenter.segment("12345")) == ["123", "45"]


def test_segment_covers_text(segmenter):
    """Chunks concatenate back to the input."""
    text = "Hi!  How's it going?\n\n  Fine, thanks 42 times…"
    assert "".join(segmenter.segment(text)) == text


def test_segment_is_restartable(segmenter):
    """Segmenting the same text twice gives the same chunks."""
    text = "one two three"
    assert list(segmenter.segment(text)) == list(segmenter.segment(text))


def test_segment_empty(segmenter):
    """Empty text has no chunks."""
    assert list(segmenter.segment("")) == []


def test_segment_bytes_are_utf8(segmenter):
    """Byte chunks are the UTF-8 encoding of text chunks."""
    assert list(segmenter.segment_bytes("héllo")) == ["héllo".encode("utf-8")]


def test_lone_surrogate_raises(segmenter):
    """Text that cannot be UTF-8 encoded is invalid input."""
    with pytest.raises(TokenizationError):
        list(segmenter.segment_bytes("a\ud800b"))


def test_uncovered_text_raises():
    """A custom pattern that skips text is reported, not silently dropped."""
    seg = TextSegmenter(r"[a-z]+")
    with pytest.raises(TokenizationError) as exc_info:
        list(seg.segment("ab cd"))
    assert exc_info.value.position == 2


# Patterns
# ---------------------------------------------------------------------------


def test_invalid_pattern_raises():
    """Patterns that do not compile raise PatternError."""
    with pytest.raises(PatternError):
        TextSegmenter(r"(unclosed")


def test_negative_lookahead_raises():
    """Lookahead must be non-negative."""
    with pytest.raises(PatternError):
        TextSegmenter(lookahead=-1)


def test_get_pattern_by_name():
    """Built-in patterns resolve case-insensitively."""
    assert get_pattern("o200k") == SegmentPattern.O200K.value
    assert get_pattern("CL100K") == SegmentPattern.CL100K.value


def test_get_pattern_unknown_raises():
    """Unknown pattern names raise PatternError."""
    with pytest.raises(PatternError):
        get_pattern("nope")


def test_list_patterns():
    """Every built-in pattern is listed."""
    assert set(list_patterns()) == {"gpt2", "cl100k", "o200k", "llama3"}


@pytest.mark.parametrize("name", ["gpt2", "cl100k", "o200k", "llama3"])
def test_builtin_patterns_cover_text(name):
    """Each built-in pattern covers mixed text without gaps."""
    seg = TextSegmenter(get_pattern(name))
    text = "It's 2024!\n\tCafé   naïve  日本語 ok"
    assert "".join(seg.segment(text)) == text


# Stable boundary
# ---------------------------------------------------------------------------


def test_stable_boundary_short_text_is_unstable(segmenter):
    """Nothing is stable without enough text after it."""
    assert segmenter.stable_boundary("hello") == 0
    assert segmenter.stable_boundary("") == 0


def test_stable_boundary_word_followed_by_text(segmenter):
    """A word followed by enough characters is stable."""
    assert segmenter.stable_boundary("hello world") == len("hello")


def test_stable_boundary_waits_for_contraction(segmenter):
    """A word before an apostrophe stays open until the suffix is decided."""
    assert segmenter.stable_boundary("don'") == 0


def test_stable_boundary_trailing_whitespace_run(segmenter):
    """A whitespace run reaching the end of text is never stable."""
    text = "hi there          "
    assert segmenter.stable_boundary(text) == len("hi there")


def test_stable_boundary_prefix_segments_unchanged(segmenter):
    """Chunks before the boundary survive any continuation."""
    text = "the quick brown fox"
    boundary = segmenter.stable_boundary(text)
    assert boundary > 0
    for tail in ["", "es", "'s", "   ", "\n\n", "123", "!?"]:
        whole = list(segmenter.segment(text + tail))
        head = list(segmenter.segment(text[:boundary]))
        assert whole[: len(head)] == head


def test_stable_boundary_zero_lookahead():
    """With no lookahead, every chunk holding non-whitespace is stable."""
    seg = TextSegmenter(lookahead=0)
    assert seg.stable_boundary("ab cd") == len("ab cd")


def test_scan_reports_open_last_chunk(segmenter):
    """scan flags an unstable chunk that runs to the end of the text."""
    assert segmenter.scan("hello world") == (len("hello"), True)
    assert segmenter.scan("hi there          ") == (len("hi there"), True)


def test_scan_unstable_chunk_before_end(segmenter):
    """An unstable chunk followed by other text is not open."""
    assert segmenter.scan("hi there!") == (len("hi"), False)


def test_reaches_end(segmenter):
    """reaches_end is true only when the first chunk spans the whole text."""
    assert segmenter.reaches_end("ACGTACGT")
    assert not segmenter.reaches_end("ACGT and")
