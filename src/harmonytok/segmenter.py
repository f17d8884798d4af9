"""Pre-tokenization: split text into chunks that BPE never merges across."""

import logging
from collections.abc import Iterator
from typing import Final

import regex as re

from .errors import PatternError, TokenizationError
from .pattern import SegmentPattern

# characters that may be examined past the end of a non-whitespace chunk
# by the built-in patterns (contraction suffixes such as "'ll")
DEFAULT_LOOKAHEAD: Final[int] = 4

_NON_SPACE: Final[re.Pattern[str]] = re.compile(r"\S")

log = logging.getLogger(__name__)


class TextSegmenter:
    """
    Split text into pre-token chunks with a fixed regex pattern.

    Segmentation is a pure function of its input: iterating twice over the
    same text yields the same chunks.
    """

    def __init__(
        self, pattern: str | None = None, *, lookahead: int = DEFAULT_LOOKAHEAD
    ) -> None:
        """
        :param pattern: Regex source; defaults to the o200k pattern.
        :param lookahead: Number of characters past a chunk that the pattern
            may inspect before settling on it; see :meth:`stable_boundary`.
        :raises PatternError: If the pattern does not compile or lookahead is negative.
        """
        self.pat: str = pattern if pattern is not None else SegmentPattern.O200K.value
        self.compiled_pat: re.Pattern[str] = _compile_pattern(self.pat)
        if lookahead < 0:
            raise PatternError("lookahead must be non-negative", pattern=self.pat)
        self.lookahead = lookahead
        log.debug(f"compiled segmentation pattern (lookahead {lookahead})")

    def spans(self, text: str) -> Iterator[tuple[int, int]]:
        """
        Yield ``(start, end)`` character offsets of each chunk.

        :raises TokenizationError: If part of the text matches no rule.
        """
        pos = 0
        for m in self.compiled_pat.finditer(text):
            start, end = m.span()
            if start != pos:
                raise TokenizationError(
                    "text not covered by segmentation pattern",
                    position=pos,
                    input_text=text,
                )
            # empty matches carry no text
            if start == end:
                continue
            yield start, end
            pos = end

        if pos != len(text):
            raise TokenizationError(
                "text not covered by segmentation pattern",
                position=pos,
                input_text=text,
            )

    def segment(self, text: str) -> Iterator[str]:
        """Lazily yield the text chunks of ``text`` in order."""
        for start, end in self.spans(text):
            yield text[start:end]

    def segment_bytes(self, text: str) -> Iterator[bytes]:
        """
        Lazily yield the UTF-8 encoding of each chunk.

        :raises TokenizationError: If a chunk holds a lone surrogate.
        """
        for start, end in self.spans(text):
            try:
                yield text[start:end].encode("utf-8")
            except UnicodeEncodeError as e:
                raise TokenizationError(
                    "text is not encodable as UTF-8",
                    position=start + e.start,
                    input_text=text,
                ) from e

    def stable_boundary(self, text: str) -> int:
        """
        Return the end offset of the longest run of leading chunks that no
        appended text can change.

        A chunk is stable when at least ``lookahead`` characters follow it
        and, if it starts with whitespace, the whitespace run it starts in
        ends before the text does (whitespace rules scan the whole run).
        Chunks after the first unstable one are unstable as well.
        """
        return self.scan(text)[0]

    def scan(self, text: str) -> tuple[int, bool]:
        """
        Return :meth:`stable_boundary` and whether the first unstable chunk
        runs to the very end of ``text``, i.e. may keep growing.
        """
        n = len(text)
        boundary = 0
        for start, end in self.spans(text):
            if n - end < self.lookahead:
                return boundary, end == n
            if not _NON_SPACE.match(text, start) and _NON_SPACE.search(text, start) is None:
                return boundary, end == n
            boundary = end
        return boundary, False

    def reaches_end(self, text: str) -> bool:
        """Whether the chunk starting at the beginning of ``text`` covers all of it."""
        m = self.compiled_pat.match(text)
        return m is not None and m.end() == len(text)

    def __repr__(self) -> str:
        return f"{self.__class__.__name__}(pattern={self.pat[:24]!r}..., lookahead={self.lookahead})"


def _compile_pattern(pattern: str) -> re.Pattern:
    """
    Compile and validate a regex pattern.

    :param pattern: Regex pattern string to compile.
    :return: Compiled regex pattern.
    :raises PatternError: If pattern is invalid.
    """
    try:
        return re.compile(pattern)
    except re.error as e:
        raise PatternError("invalid regex pattern", pattern=pattern, regex_err=e) from e
