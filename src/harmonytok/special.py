"""Registry of special tokens living outside the merge space."""

import logging
from collections.abc import Iterable, Iterator
from dataclasses import dataclass
from enum import Enum
from typing import Final

from .errors import ConfigurationError, SpecialTokenError
from .types import Token

log = logging.getLogger(__name__)


class TokenCategory(str, Enum):
    """What a special token is used for."""

    ROLE_DELIMITER = "role-delimiter"
    STOP = "stop"
    CONTROL = "control"
    RESERVED = "reserved"


@dataclass(frozen=True, slots=True)
class SpecialToken:
    """A named token with a reserved id."""

    name: str
    token: Token
    category: TokenCategory


# message framing used by render_prompt
START: Final[str] = "<|start|>"
MESSAGE: Final[str] = "<|message|>"
END: Final[str] = "<|end|>"
CHANNEL: Final[str] = "<|channel|>"

# GPT-OSS harmony layout on top of o200k_base (199998 ordinary tokens)
HARMONY_SPECIAL_TOKENS: Final[tuple[SpecialToken, ...]] = (
    SpecialToken("<|startoftext|>", 199998, TokenCategory.CONTROL),
    SpecialToken("<|endoftext|>", 199999, TokenCategory.STOP),
    SpecialToken("<|untrusted|>", 200000, TokenCategory.CONTROL),
    SpecialToken("<|endofuntrusted|>", 200001, TokenCategory.CONTROL),
    SpecialToken("<|return|>", 200002, TokenCategory.STOP),
    SpecialToken("<|constrain|>", 200003, TokenCategory.CONTROL),
    SpecialToken("<|reserved_200004|>", 200004, TokenCategory.RESERVED),
    SpecialToken(CHANNEL, 200005, TokenCategory.ROLE_DELIMITER),
    SpecialToken(START, 200006, TokenCategory.ROLE_DELIMITER),
    SpecialToken(END, 200007, TokenCategory.ROLE_DELIMITER),
    SpecialToken(MESSAGE, 200008, TokenCategory.ROLE_DELIMITER),
    SpecialToken("<|reserved_200009|>", 200009, TokenCategory.RESERVED),
    SpecialToken("<|reserved_200010|>", 200010, TokenCategory.RESERVED),
    SpecialToken("<|reserved_200011|>", 200011, TokenCategory.RESERVED),
    SpecialToken("<|call|>", 200012, TokenCategory.STOP),
    SpecialToken("<|refusal|>", 200013, TokenCategory.CONTROL),
)


class SpecialTokenRegistry:
    """
    Immutable set of special tokens, addressable by name and by id.

    Names and ids must both be unique within one registry.
    """

    __slots__ = ("_by_name", "_by_token")

    def __init__(self, tokens: Iterable[SpecialToken]) -> None:
        """
        :raises SpecialTokenError: If two entries share a name or an id.
        """
        by_name: dict[str, SpecialToken] = {}
        by_token: dict[Token, SpecialToken] = {}
        for sp in tokens:
            if sp.name in by_name:
                raise SpecialTokenError("duplicate special token name", found_tokens={sp.name})
            if sp.token in by_token:
                raise SpecialTokenError(
                    "duplicate token ids", found_tokens={sp.name, by_token[sp.token].name}
                )
            by_name[sp.name] = sp
            by_token[sp.token] = sp
        self._by_name = by_name
        self._by_token = by_token
        log.debug(f"registered {len(by_name)} special tokens")

    @classmethod
    def harmony(cls) -> "SpecialTokenRegistry":
        """Return the registry of the harmony chat format."""
        return cls(HARMONY_SPECIAL_TOKENS)

    def get(self, name: str) -> SpecialToken | None:
        """Return the special token registered under ``name``."""
        return self._by_name.get(name)

    def token(self, name: str) -> Token:
        """
        Return the id registered under ``name``.

        :raises ConfigurationError: If no such token was registered.
        """
        sp = self._by_name.get(name)
        if sp is None:
            raise ConfigurationError(f"special token {name!r} is not registered")
        return sp.token

    def lookup(self, tok: Token) -> SpecialToken | None:
        """Return the special token with id ``tok``, if any."""
        return self._by_token.get(tok)

    def in_category(self, category: TokenCategory) -> list[SpecialToken]:
        """Return all tokens of one category, ordered by id."""
        return sorted(
            (sp for sp in self._by_name.values() if sp.category is category),
            key=lambda sp: sp.token,
        )

    def as_dict(self) -> dict[str, Token]:
        """Return a ``name -> id`` mapping."""
        return {name: sp.token for name, sp in self._by_name.items()}

    @property
    def tokens(self) -> frozenset[Token]:
        return frozenset(self._by_token)

    def __contains__(self, tok: object) -> bool:
        return tok in self._by_token

    def __iter__(self) -> Iterator[SpecialToken]:
        return iter(sorted(self._by_token.values(), key=lambda sp: sp.token))

    def __len__(self) -> int:
        return len(self._by_token)

    def __repr__(self) -> str:
        return f"{self.__class__.__name__}({len(self)} tokens)"
