"""Policies for special token text found inside ordinary input."""

import logging
from abc import ABC, abstractmethod
from collections.abc import Iterable
from typing import Final, Literal, overload

from typing_extensions import override

from .errors import SpecialTokenError, StrategyError
from .special import SpecialTokenRegistry, TokenCategory
from .types import Token

log = logging.getLogger(__name__)


class SpecialTokenStrategy(ABC):
    """Decides which special token names are recognised while encoding text."""

    @abstractmethod
    def select(self, text: str, registry: SpecialTokenRegistry) -> dict[str, Token]:
        """Return the ``name -> id`` pairs to split ``text`` on."""


class AllowAllStrategy(SpecialTokenStrategy):
    """Recognise every registered special token."""

    @override
    def select(self, text: str, registry: SpecialTokenRegistry) -> dict[str, Token]:
        if not len(registry):
            log.warning("no special tokens registered")
        return registry.as_dict()


class AllowNoneStrategy(SpecialTokenStrategy):
    """Encode special token text as ordinary text."""

    @override
    def select(self, text: str, registry: SpecialTokenRegistry) -> dict[str, Token]:
        if _found_in(text, registry.as_dict()):
            log.warning("special token text found in input, encoding it as plain text")
        return {}


class AllowNoneRaiseStrategy(SpecialTokenStrategy):
    """Reject input that contains special token text."""

    @override
    def select(self, text: str, registry: SpecialTokenRegistry) -> dict[str, Token]:
        found = _found_in(text, registry.as_dict())
        if found:
            raise SpecialTokenError(
                "special tokens found in text but not allowed", found_tokens=found
            )
        return {}


class AllowCustomStrategy(SpecialTokenStrategy):
    """Recognise only a named subset; the rest is encoded as text."""

    def __init__(self, allowed_subset: Iterable[str]) -> None:
        super().__init__()
        self.allowed_subset = frozenset(allowed_subset)

    @override
    def select(self, text: str, registry: SpecialTokenRegistry) -> dict[str, Token]:
        """
        :raises SpecialTokenError: If the subset names an unregistered token.
        """
        registered = registry.as_dict()
        unknown = {name for name in self.allowed_subset if name not in registered}
        if unknown:
            raise SpecialTokenError("unknown special tokens allowed", found_tokens=unknown)
        return {name: tok for name, tok in registered.items() if name in self.allowed_subset}


class AllowCategoryStrategy(SpecialTokenStrategy):
    """Recognise the special tokens of the given categories."""

    def __init__(self, categories: Iterable[TokenCategory]) -> None:
        super().__init__()
        self.categories = frozenset(categories)

    @override
    def select(self, text: str, registry: SpecialTokenRegistry) -> dict[str, Token]:
        return {sp.name: sp.token for sp in registry if sp.category in self.categories}


def _found_in(text: str, names: Iterable[str]) -> set[str]:
    return {name for name in names if name in text}


StrategyName = Literal["all", "none", "none-raise", "custom", "category"]

_SPECIAL_TOKEN_STRATEGIES: Final[dict[str, type[SpecialTokenStrategy]]] = {
    "all": AllowAllStrategy,
    "none": AllowNoneStrategy,
    "none-raise": AllowNoneRaiseStrategy,
    "custom": AllowCustomStrategy,
    "category": AllowCategoryStrategy,
}


def list_strategies() -> list[str]:
    """Return available special token strategy names."""
    return list(_SPECIAL_TOKEN_STRATEGIES.keys())


@overload
def get_strategy(
    name: Literal["all", "none", "none-raise"],
) -> SpecialTokenStrategy: ...


@overload
def get_strategy(
    name: Literal["custom"], allowed_subset: Iterable[str]
) -> AllowCustomStrategy: ...


@overload
def get_strategy(
    name: Literal["category"], *, categories: Iterable[TokenCategory]
) -> AllowCategoryStrategy: ...


def get_strategy(
    name: StrategyName = "none-raise",
    allowed_subset: Iterable[str] | None = None,
    *,
    categories: Iterable[TokenCategory] | None = None,
) -> SpecialTokenStrategy:
    """
    Create a special token strategy by name.

    :param name: "all", "none", "none-raise", "custom" or "category".
    :param allowed_subset: Required for "custom"; token names recognised while encoding.
    :param categories: Required for "category"; token categories recognised while encoding.
    :raises StrategyError: If name is unknown or its required argument is missing.

    .. code-block:: python

        strategy = get_strategy("none-raise")
        strategy = get_strategy("custom", allowed_subset={"<|endoftext|>"})
        strategy = get_strategy("category", categories={TokenCategory.ROLE_DELIMITER})
    """
    if name not in _SPECIAL_TOKEN_STRATEGIES:
        raise StrategyError(
            "unknown strategy name",
            invalid_name=name,
            available_strats=list_strategies(),
        )

    match name:
        case "custom":
            if allowed_subset is None:
                raise StrategyError("allowed_subset is required for custom strategy")
            return AllowCustomStrategy(allowed_subset)
        case "category":
            if categories is None:
                raise StrategyError("categories are required for category strategy")
            return AllowCategoryStrategy(categories)
        case _:
            return _SPECIAL_TOKEN_STRATEGIES[name]()


__all__ = [
    "StrategyName",
    "SpecialTokenStrategy",
    "AllowAllStrategy",
    "AllowNoneStrategy",
    "AllowNoneRaiseStrategy",
    "AllowCustomStrategy",
    "AllowCategoryStrategy",
    "list_strategies",
    "get_strategy",
]
