"""
Result-value boundary for embedding hosts.

Every fallible call returns a :class:`HarmonyResult` instead of raising, so a
host can hand tokens or a classified error straight back to its caller.
Handles are ordinary Python objects released by the garbage collector.
"""

import functools
import logging
from collections.abc import Callable
from dataclasses import dataclass, field
from enum import Enum

from .encoding import HarmonyEncoding
from .errors import HarmonyTokError, SpecialTokenError, TokenizationError, UnknownTokenError
from .factory import get_encoding
from .parser import StreamableParser
from .types import Token

log = logging.getLogger(__name__)


class ErrorKind(str, Enum):
    """Classification of a failed call."""

    INVALID_INPUT = "invalid_input"
    UNKNOWN_TOKEN = "unknown_token"
    ALLOCATION_FAILURE = "allocation_failure"
    MISCONFIGURATION = "misconfiguration"


@dataclass(frozen=True, slots=True)
class HarmonyResult:
    """Outcome of a bridge call: tokens on success, a message and kind otherwise."""

    success: bool
    tokens: list[Token] = field(default_factory=list)
    error_message: str | None = None
    error_kind: ErrorKind | None = None

    @classmethod
    def ok(cls, tokens: list[Token]) -> "HarmonyResult":
        return cls(success=True, tokens=tokens)

    @classmethod
    def fail(cls, kind: ErrorKind, message: str) -> "HarmonyResult":
        return cls(success=False, error_message=message, error_kind=kind)


def _error_kind(err: Exception) -> ErrorKind:
    match err:
        case UnknownTokenError():
            return ErrorKind.UNKNOWN_TOKEN
        case TokenizationError() | SpecialTokenError():
            return ErrorKind.INVALID_INPUT
        case MemoryError():
            return ErrorKind.ALLOCATION_FAILURE
        # ConfigurationError, VocabularyError, ModelLoadError, PatternError, StrategyError
        case _:
            return ErrorKind.MISCONFIGURATION


def _as_result(func: Callable[..., list[Token]]) -> Callable[..., HarmonyResult]:
    """Wrap a token-returning call so library errors come back as values."""

    @functools.wraps(func)
    def wrapper(*args, **kwargs) -> HarmonyResult:
        try:
            tokens = func(*args, **kwargs)
        except (HarmonyTokError, MemoryError) as e:
            kind = _error_kind(e)
            log.debug(f"{func.__name__} failed ({kind.value}): {e}")
            return HarmonyResult.fail(kind, str(e) or type(e).__name__)
        return HarmonyResult.ok(tokens)

    return wrapper


# Handles
# ===================================================================================


def new_encoding(name: str = "o200k_harmony") -> HarmonyEncoding:
    """
    Return a shared encoding handle.

    :raises ModelLoadError: If the name is unknown or its ranks cannot be loaded.
    """
    return get_encoding(name)


def new_parser(encoding: HarmonyEncoding) -> StreamableParser:
    """Return a fresh parser bound to ``encoding``."""
    return StreamableParser(encoding)


# ===================================================================================


# Encoding calls
# ===================================================================================


@_as_result
def encode_plain(encoding: HarmonyEncoding, text: str) -> list[Token]:
    return encoding.encode_plain(text)


@_as_result
def render_prompt(
    encoding: HarmonyEncoding,
    system: str | None,
    user: str,
    assistant_prefix: str | None = None,
) -> list[Token]:
    return encoding.render_prompt(system, user, assistant_prefix)


@_as_result
def stop_tokens(encoding: HarmonyEncoding) -> list[Token]:
    """Stop token ids in ascending order."""
    return sorted(encoding.stop_tokens())


@_as_result
def stop_tokens_for_assistant_actions(encoding: HarmonyEncoding) -> list[Token]:
    """Assistant action stop ids (stop tokens plus ``<|end|>``) in ascending order."""
    return sorted(encoding.stop_tokens_for_assistant_actions())


def decode(encoding: HarmonyEncoding, tokens: list[Token]) -> str:
    """Decode without failing; unknown ids appear as U+FFFD."""
    return encoding.decode(tokens, on_unknown="replace")


# ===================================================================================


# Parser calls
# ===================================================================================


@_as_result
def parser_feed(parser: StreamableParser, chunk: bytes) -> list[Token]:
    return parser.feed(chunk)


@_as_result
def parser_flush(parser: StreamableParser) -> list[Token]:
    return parser.flush()


def parser_has_pending(parser: StreamableParser) -> bool:
    return parser.has_pending()


def parser_reset(parser: StreamableParser) -> None:
    parser.reset()


# ===================================================================================
