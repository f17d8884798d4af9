"""Custom exception hierarchy for harmonytok tokenization errors."""

import regex as re

from .types import Token


class HarmonyTokError(Exception):
    """Base exception for all harmonytok errors."""


class SpecialTokenError(HarmonyTokError):
    """Raised when special token handling fails."""

    def __init__(self, message: str, *, found_tokens: set[str] | None = None) -> None:
        """Initialize with optional found_tokens that get appended to the message."""
        if found_tokens:
            message = f"{message} (found: {', '.join(sorted(found_tokens))})"
        super().__init__(message)
        self.found_tokens = found_tokens


class TokenizationError(HarmonyTokError):
    """Raised when input cannot be tokenized (malformed bytes, uncovered text)."""

    def __init__(
        self,
        message: str,
        *,
        position: int | None = None,
        input_text: str | bytes | None = None,
    ) -> None:
        if position is not None:
            message = f"{message} (position: {position})"
        super().__init__(message)
        self.position = position
        self.input_text = input_text


class VocabularyError(HarmonyTokError):
    """Raised when vocabulary operations fail."""

    def __init__(
        self,
        message: str,
        *,
        vocab_size: int | None = None,
        invalid_tok: Token | None = None,
    ) -> None:
        """Initialize with optional token and vocab_size that get appended to the message."""
        extra = " "
        if vocab_size is not None:
            extra += f"(vocab size: {vocab_size}) "
        # decoding: token not in vocab
        if invalid_tok is not None:
            extra += f"(invalid token: {invalid_tok}) "
        super().__init__((message + extra).rstrip())
        self.vocab_size = vocab_size
        self.invalid_tok = invalid_tok


class UnknownTokenError(VocabularyError):
    """Raised when a token id has no vocabulary or special token entry."""


class ConfigurationError(HarmonyTokError):
    """Raised when an encoding is asked to act on a registry it was never given."""


class ModelLoadError(HarmonyTokError):
    """Raised when loading a vocabulary or a named encoding fails."""

    def __init__(
        self,
        message: str,
        *,
        model_path: str | None = None,
        available: list[str] | None = None,
    ) -> None:
        extra = " "
        if model_path:
            extra += f"(path: {model_path}) "
        if available is not None:
            extra += f"(available: {available}) "
        super().__init__((message + extra).rstrip())
        self.model_path = model_path
        self.available = available


class PatternError(HarmonyTokError):
    """Raised when compiling and/or validating regex patterns."""

    def __init__(
        self,
        message: str,
        *,
        pattern: str | None = None,
        regex_err: re.error | None = None,
    ) -> None:
        """
        Initialize PatternError with pattern details.

        Args:
            message: Error message.
            pattern: The regex pattern that failed.
            regex_err: The underlying regex error from the regex library.
        """
        extra = " "
        if pattern:
            extra += f"(pattern: {pattern!r}) "
        if regex_err:
            extra += f"(reason: {regex_err}) "
        super().__init__((message + extra).rstrip())
        self.pattern = pattern
        self.regex_err = regex_err


class StrategyError(HarmonyTokError):
    """Raised when strategy operations fail."""

    def __init__(
        self,
        message: str,
        *,
        invalid_name: str | None = None,
        available_strats: list[str] | None = None,
    ) -> None:
        extra = " "
        if invalid_name:
            extra += f"(available: {available_strats}) (got {invalid_name}) "
        super().__init__((message + extra).rstrip())
        self.invalid_name = invalid_name
        self.available_strats = available_strats
