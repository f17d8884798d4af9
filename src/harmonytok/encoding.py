"""
Harmony encoding: plain text encoding, chat prompt rendering and decoding.
"""

import logging
import os
from enum import Enum
from typing import Final, Literal

import regex as re

from .bpe import BpeCore
from .errors import ConfigurationError, TokenizationError, VocabularyError
from .segmenter import TextSegmenter
from .special import END, MESSAGE, START, SpecialToken, SpecialTokenRegistry, TokenCategory
from .strategy import SpecialTokenStrategy
from .types import Token
from .vocab import VocabularyTable

# "1" makes decode drop special tokens unless told otherwise
DROP_SPECIAL_ENV: Final[str] = "HARMONYTOK_DROP_SPECIAL"

REPLACEMENT_CHAR: Final[str] = "�"

log = logging.getLogger(__name__)


class Role(str, Enum):
    """Author of a chat message."""

    SYSTEM = "system"
    DEVELOPER = "developer"
    USER = "user"
    ASSISTANT = "assistant"
    TOOL = "tool"


def _drop_special_default() -> bool:
    return os.environ.get(DROP_SPECIAL_ENV, "").strip() == "1"


class HarmonyEncoding:
    """
    Vocabulary, special tokens and segmentation rules bundled together.

    Nothing is mutated after construction, so one instance can be shared by
    any number of threads and streaming parsers.
    """

    def __init__(
        self,
        vocab: VocabularyTable,
        specials: SpecialTokenRegistry,
        segmenter: TextSegmenter | None = None,
        *,
        name: str = "custom",
        drop_special: bool | None = None,
    ) -> None:
        """
        :param vocab: Ordinary tokens and merge ranks.
        :param specials: Special tokens; ids must lie outside ``vocab``.
        :param segmenter: Pre-tokenizer, defaults to the o200k pattern.
        :param name: Label used in logs and reprs.
        :param drop_special: Default for :meth:`decode`; falls back to the
            ``HARMONYTOK_DROP_SPECIAL`` environment variable.
        :raises VocabularyError: If a special token id is also an ordinary token.
        """
        for sp in specials:
            if sp.token in vocab:
                raise VocabularyError(
                    f"special token {sp.name} overlaps with vocabulary",
                    invalid_tok=sp.token,
                )

        self.name = name
        self.vocab = vocab
        self.specials = specials
        self.segmenter = segmenter if segmenter is not None else TextSegmenter()
        self.bpe = BpeCore(vocab)
        self.drop_special = (
            _drop_special_default() if drop_special is None else drop_special
        )

        log.debug(
            f"encoding {name!r}: {vocab.size} ordinary tokens, {len(specials)} special tokens"
        )

    # encoding
    # ---------------------------------------------------------------------

    def encode_plain(self, text: str) -> list[Token]:
        """
        Encode text without recognising any special tokens.

        :raises TokenizationError: If the text holds bytes the vocabulary
            cannot represent, or text the segmentation pattern does not cover.
        """
        tokens: list[Token] = []
        encode_chunk = self.bpe.encode
        for chunk in self.segmenter.segment_bytes(text):
            tokens.extend(encode_chunk(chunk))
        return tokens

    def encode_bytes(self, data: bytes) -> list[Token]:
        """
        Encode UTF-8 bytes as :meth:`encode_plain` would encode their text.

        :raises TokenizationError: If ``data`` is not valid UTF-8.
        """
        try:
            text = data.decode("utf-8")
        except UnicodeDecodeError as e:
            raise TokenizationError(
                "input is not valid UTF-8", position=e.start, input_text=data
            ) from e
        return self.encode_plain(text)

    def encode(
        self, text: str, strategy: SpecialTokenStrategy | None = None
    ) -> list[Token]:
        """
        Encode text, mapping special token names selected by ``strategy``.

        With no strategy this is :meth:`encode_plain`.

        :raises SpecialTokenError: If the strategy rejects the text.
        """
        if strategy is None:
            return self.encode_plain(text)

        selected = strategy.select(text, self.specials)
        if not selected:
            return self.encode_plain(text)

        # longest names first so a name that prefixes another cannot shadow it
        names = sorted(selected, key=len, reverse=True)
        # the capturing group keeps the matched names in the split result
        special_pat = "(" + "|".join(re.escape(name) for name in names) + ")"

        tokens: list[Token] = []
        for part in re.split(special_pat, text):
            if part in selected:
                tokens.append(selected[part])
            elif part:
                tokens.extend(self.encode_plain(part))
        return tokens

    # prompt rendering
    # ---------------------------------------------------------------------

    def render_message(
        self, role: Role | str, content: str, *, close: bool = True
    ) -> list[Token]:
        """
        Render one message: ``<|start|>{role}<|message|>{content}<|end|>``.

        :param close: Append ``<|end|>``; open messages await continuation.
        :raises ConfigurationError: If the framing tokens are not registered.
        """
        header = role.value if isinstance(role, Role) else role
        tokens = [self.specials.token(START)]
        tokens.extend(self.encode_plain(header))
        tokens.append(self.specials.token(MESSAGE))
        tokens.extend(self.encode_plain(content))
        if close:
            tokens.append(self.specials.token(END))
        return tokens

    def render_prompt(
        self,
        system: str | None,
        user: str,
        assistant_prefix: str | None = None,
    ) -> list[Token]:
        """
        Render a system, user, assistant conversation ready for generation.

        The system and user messages are closed with ``<|end|>``; the
        assistant message is left open so generation continues it. Empty
        segments still produce their framing tokens.

        :param system: System message body; ``None`` omits the message.
        :param user: User message body.
        :param assistant_prefix: Start of the assistant reply; ``None`` means empty.
        :raises ConfigurationError: If the framing tokens are not registered.
        """
        tokens: list[Token] = []
        if system is not None:
            tokens.extend(self.render_message(Role.SYSTEM, system))
        tokens.extend(self.render_message(Role.USER, user))
        tokens.extend(
            self.render_message(Role.ASSISTANT, assistant_prefix or "", close=False)
        )
        return tokens

    # decoding
    # ---------------------------------------------------------------------

    def decode_bytes(
        self,
        tokens: list[Token],
        *,
        drop_special: bool | None = None,
        on_unknown: Literal["raise", "replace"] = "raise",
    ) -> bytes:
        """
        Concatenate token bytes; special tokens contribute their name.

        :param drop_special: Skip special tokens; defaults to the encoding setting.
        :param on_unknown: "replace" renders unknown ids as U+FFFD instead of raising.
        :raises UnknownTokenError: On an unknown id when ``on_unknown="raise"``.
        """
        drop = self.drop_special if drop_special is None else drop_special
        out: list[bytes] = []
        run: list[Token] = []

        for tok in tokens:
            sp = self.specials.lookup(tok)
            if sp is None and (on_unknown == "raise" or tok in self.vocab):
                run.append(tok)
                continue
            if run:
                out.append(self.bpe.decode_bytes(run))
                run = []
            match sp:
                case None:
                    out.append(REPLACEMENT_CHAR.encode("utf-8"))
                case SpecialToken() if drop:
                    pass
                case SpecialToken(name=name):
                    out.append(name.encode("utf-8"))

        if run:
            out.append(self.bpe.decode_bytes(run))
        return b"".join(out)

    def decode(
        self,
        tokens: list[Token],
        *,
        drop_special: bool | None = None,
        on_unknown: Literal["raise", "replace"] = "raise",
    ) -> str:
        """
        Decode tokens into text.

        Byte content that is not valid UTF-8 is replaced with U+FFFD, so
        decoding partial generations never fails.

        :raises UnknownTokenError: On an unknown id when ``on_unknown="raise"``.
        """
        data = self.decode_bytes(tokens, drop_special=drop_special, on_unknown=on_unknown)
        return data.decode("utf-8", errors="replace")

    # special tokens
    # ---------------------------------------------------------------------

    def stop_tokens(self) -> set[Token]:
        """
        Return every special token that ends generation.

        :raises ConfigurationError: If the registry holds no stop tokens.
        """
        stops = {sp.token for sp in self.specials.in_category(TokenCategory.STOP)}
        if not stops:
            raise ConfigurationError(f"encoding {self.name!r} has no stop tokens registered")
        return stops

    def stop_tokens_for_assistant_actions(self) -> set[Token]:
        """
        Return the stop set used while sampling an assistant action.

        An action message ends at ``<|end|>`` as well as at every stop token.

        :raises ConfigurationError: If the registry holds no stop tokens or
            no ``<|end|>`` token.
        """
        return self.stop_tokens() | {self.specials.token(END)}

    def special_token(self, name: str) -> Token:
        """Return the id of a registered special token."""
        return self.specials.token(name)

    def is_special(self, tok: Token) -> bool:
        return tok in self.specials

    @property
    def n_vocab(self) -> int:
        """One past the largest ordinary or special token id."""
        top = max((sp.token for sp in self.specials), default=-1)
        return max(self.vocab.max_token, top) + 1

    def __repr__(self) -> str:
        return f"<{self.__class__.__name__} {self.name!r}>"
