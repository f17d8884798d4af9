"""harmonytok: BPE tokenization and harmony chat prompt rendering."""

from .encoding import HarmonyEncoding, Role
from .errors import (
    ConfigurationError,
    HarmonyTokError,
    ModelLoadError,
    PatternError,
    SpecialTokenError,
    StrategyError,
    TokenizationError,
    UnknownTokenError,
    VocabularyError,
)
from .factory import get_encoding, list_encodings, load_tiktoken_file, load_vocabulary
from .parser import ParserState, StreamableParser
from .pattern import SegmentPattern, get_pattern, list_patterns
from .segmenter import TextSegmenter
from .special import SpecialToken, SpecialTokenRegistry, TokenCategory
from .strategy import (
    AllowAllStrategy,
    AllowCategoryStrategy,
    AllowCustomStrategy,
    AllowNoneRaiseStrategy,
    AllowNoneStrategy,
    SpecialTokenStrategy,
    get_strategy,
    list_strategies,
)
from .vocab import VocabularyTable

from importlib.metadata import PackageNotFoundError, version

try:
    __version__ = version("harmonytok")
except PackageNotFoundError:
    __version__ = "dev"

__all__ = [
    "HarmonyEncoding",
    "Role",
    "StreamableParser",
    "ParserState",
    "VocabularyTable",
    "SpecialToken",
    "SpecialTokenRegistry",
    "TokenCategory",
    "TextSegmenter",
    "SegmentPattern",
    "SpecialTokenStrategy",
    "AllowAllStrategy",
    "AllowNoneStrategy",
    "AllowNoneRaiseStrategy",
    "AllowCustomStrategy",
    "AllowCategoryStrategy",
    "HarmonyTokError",
    "TokenizationError",
    "VocabularyError",
    "UnknownTokenError",
    "SpecialTokenError",
    "ConfigurationError",
    "ModelLoadError",
    "PatternError",
    "StrategyError",
    "get_encoding",
    "list_encodings",
    "load_vocabulary",
    "load_tiktoken_file",
    "get_strategy",
    "list_strategies",
    "get_pattern",
    "list_patterns",
]
