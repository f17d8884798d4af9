"""Incremental encoding of a byte stream."""

import codecs
import logging
from dataclasses import dataclass, field
from typing import Final

from .encoding import HarmonyEncoding
from .errors import TokenizationError
from .types import Token

# characters kept from the end of the buffer to check whether new input
# extends the chunk that is still open
_TAIL_CHARS: Final[int] = 16

log = logging.getLogger(__name__)


@dataclass(slots=True)
class ParserState:
    """Snapshot of a stream: held-back bytes and running counters."""

    pending: bytes = b""
    bytes_consumed: int = 0
    tokens_emitted: int = 0

    @property
    def extendable(self) -> bool:
        """True while held-back bytes may still merge with later input."""
        return bool(self.pending)


@dataclass(slots=True)
class _Buffer:
    raw: list[bytes] = field(default_factory=list)
    text: list[str] = field(default_factory=list)
    # bytes of an unfinished trailing character, also counted in raw
    partial: bytes = b""
    n_bytes: int = 0
    n_chars: int = 0
    tail: str = ""
    # buffered characters when the last scan ended inside a chunk reaching
    # the end of the text; 0 when no chunk was left open
    open_chars: int = 0
    bytes_consumed: int = 0
    tokens_emitted: int = 0


class StreamableParser:
    """
    Encode a byte stream chunk by chunk.

    Tokens are emitted once no later input can change them; the rest of the
    stream is held back until more bytes arrive or :meth:`flush` ends it. For
    any split of a byte string ``data`` into chunks::

        sum((p.feed(c) for c in chunks), []) + p.flush() == enc.encode_bytes(data)

    While one chunk keeps growing (a long run of letters or digits), the
    buffer is rescanned only when the new input may close it or the buffer
    has doubled since the last scan, so streaming stays linear in the input.

    One parser serves one stream; the encoding it wraps may be shared.
    """

    def __init__(self, encoding: HarmonyEncoding) -> None:
        self.encoding = encoding
        self._buf = _Buffer()

    @property
    def state(self) -> ParserState:
        """A snapshot of the current stream state."""
        buf = self._buf
        return ParserState(
            pending=b"".join(buf.raw),
            bytes_consumed=buf.bytes_consumed,
            tokens_emitted=buf.tokens_emitted,
        )

    def feed(self, chunk: bytes) -> list[Token]:
        """
        Append ``chunk`` and return the tokens that became final.

        Bytes of an unfinished UTF-8 character and text whose segmentation
        could still change stay buffered. On error nothing is consumed.

        :raises TokenizationError: If ``chunk`` is not bytes-like, if the
            buffered bytes cannot be valid UTF-8 whatever follows, or if they
            hold a byte the vocabulary lacks.
        """
        if not isinstance(chunk, (bytes, bytearray, memoryview)):
            raise TokenizationError(f"expected bytes, got {type(chunk).__name__}")
        chunk = bytes(chunk)

        buf = self._buf
        decoded, partial = self._decode(
            buf.partial + chunk, final=False, offset=buf.n_bytes - len(buf.partial)
        )

        if self._keeps_open(buf, decoded):
            buf.raw.append(chunk)
            buf.text.append(decoded)
            buf.partial = partial
            buf.n_bytes += len(chunk)
            buf.n_chars += len(decoded)
            buf.tail = (buf.tail + decoded)[-_TAIL_CHARS:]
            return []

        text = "".join(buf.text) + decoded
        boundary, still_open = self.encoding.segmenter.scan(text)
        if boundary == 0:
            tokens: list[Token] = []
            used = 0
        else:
            stable = text[:boundary]
            tokens = self.encoding.encode_plain(stable)
            used = len(stable.encode("utf-8"))

        raw = b"".join(buf.raw) + chunk
        rest = text[boundary:]
        self._buf = _Buffer(
            raw=[raw[used:]] if len(raw) > used else [],
            text=[rest] if rest else [],
            partial=partial,
            n_bytes=len(raw) - used,
            n_chars=len(rest),
            tail=rest[-_TAIL_CHARS:],
            open_chars=len(rest) if still_open else 0,
            bytes_consumed=buf.bytes_consumed + used,
            tokens_emitted=buf.tokens_emitted + len(tokens),
        )
        return tokens

    def has_pending(self) -> bool:
        """Whether any fed bytes are still waiting to be tokenized."""
        return self._buf.n_bytes > 0

    def flush(self) -> list[Token]:
        """
        End the stream and return the tokens of everything still buffered.

        The parser is ready for a new stream afterwards; counters keep
        running until :meth:`reset`.

        :raises TokenizationError: If the stream ends inside a UTF-8 character.
        """
        buf = self._buf
        last, _ = self._decode(
            buf.partial, final=True, offset=buf.n_bytes - len(buf.partial)
        )
        tokens = self.encoding.encode_plain("".join(buf.text) + last)

        log.debug(f"flushed {buf.n_bytes} bytes into {len(tokens)} tokens")
        self._buf = _Buffer(
            bytes_consumed=buf.bytes_consumed + buf.n_bytes,
            tokens_emitted=buf.tokens_emitted + len(tokens),
        )
        return tokens

    def reset(self) -> None:
        """Discard buffered bytes and clear the counters."""
        self._buf = _Buffer()

    def _keeps_open(self, buf: _Buffer, decoded: str) -> bool:
        # no new characters: the boundary cannot have moved
        if not decoded:
            return True
        if not buf.open_chars or buf.n_chars + len(decoded) >= 2 * buf.open_chars:
            return False
        return self.encoding.segmenter.reaches_end(buf.tail + decoded)

    def _decode(self, data: bytes, *, final: bool, offset: int) -> tuple[str, bytes]:
        # a fresh decoder each time: data always starts on a character boundary
        decoder = codecs.getincrementaldecoder("utf-8")()
        try:
            text = decoder.decode(data, final=final)
        except UnicodeDecodeError as e:
            reason = "incomplete UTF-8 character at end of stream" if final else "invalid UTF-8 in stream"
            raise TokenizationError(
                reason,
                position=self._buf.bytes_consumed + offset + e.start,
                input_text=data,
            ) from e
        return text, decoder.getstate()[0]

    def __repr__(self) -> str:
        return (
            f"<{self.__class__.__name__} {self.encoding.name!r} "
            f"pending={self._buf.n_bytes}>"
        )
