"""Factory functions for loading vocabularies and named encodings."""

import functools
import logging
from dataclasses import dataclass
from pathlib import Path
from typing import Final, Literal

from tiktoken.load import load_tiktoken_bpe
from tiktoken_ext import openai_public

from ._decorators import measure_time
from .encoding import HarmonyEncoding
from .errors import ModelLoadError
from .pattern import SegmentPattern
from .segmenter import TextSegmenter
from .special import SpecialTokenRegistry
from .vocab import VocabularyTable

log = logging.getLogger(__name__)


# Vocabulary loaders
# ===================================================================================


@measure_time
def load_vocabulary(name: str) -> VocabularyTable:
    """
    Load the merge ranks of a tiktoken base encoding.

    Ranks are fetched by tiktoken and cached under ``TIKTOKEN_CACHE_DIR``.

    :param name: tiktoken encoding name, e.g. "o200k_base".
    :return: Vocabulary whose token ids equal the tiktoken ranks.
    :raises ModelLoadError: If the encoding is unknown or cannot be fetched.
    """
    constructor = openai_public.ENCODING_CONSTRUCTORS.get(name)
    if constructor is None:
        raise ModelLoadError(
            f"unknown tiktoken encoding {name!r}",
            available=sorted(openai_public.ENCODING_CONSTRUCTORS),
        )

    try:
        params = constructor()
    except (ValueError, OSError) as e:
        raise ModelLoadError(f"could not load tiktoken encoding {name!r}: {e}") from e

    vocab = VocabularyTable.from_mergeable_ranks(params["mergeable_ranks"])
    log.info(f"loaded {vocab.size} tokens from tiktoken encoding {name!r}")
    return vocab


@measure_time
def load_tiktoken_file(path: str | Path) -> VocabularyTable:
    """
    Load a vocabulary from a ``.tiktoken`` file (base64 bytes and rank per line).

    :raises ModelLoadError: If the file is missing or malformed.
    """
    path = Path(path)
    if not path.exists():
        raise ModelLoadError("vocabulary file does not exist", model_path=str(path))

    try:
        ranks = load_tiktoken_bpe(str(path))
    except (ValueError, OSError) as e:
        raise ModelLoadError(f"malformed vocabulary file: {e}", model_path=str(path)) from e

    vocab = VocabularyTable.from_mergeable_ranks(ranks)
    log.info(f"loaded {vocab.size} tokens from {path}")
    return vocab


# ===================================================================================


# Encoding factory
# ===================================================================================

EncodingName = Literal["o200k_harmony"]


@dataclass(frozen=True, slots=True)
class _EncodingSpec:
    base: str
    pattern: SegmentPattern


_ENCODINGS: Final[dict[str, _EncodingSpec]] = {
    "o200k_harmony": _EncodingSpec(base="o200k_base", pattern=SegmentPattern.O200K),
}


def list_encodings() -> list[str]:
    """Return names accepted by :func:`get_encoding`."""
    return list(_ENCODINGS.keys())


@functools.cache
def get_encoding(name: EncodingName = "o200k_harmony") -> HarmonyEncoding:
    """
    Build a named encoding; repeated calls return the same instance.

    :param name: Encoding name, see :func:`list_encodings`.
    :raises ModelLoadError: If the name is unknown or its ranks cannot be loaded.

    .. code-block:: python

        enc = get_encoding("o200k_harmony")
        prompt = enc.render_prompt("You are helpful.", "Hi!")
    """
    if name not in _ENCODINGS:
        raise ModelLoadError(f"unknown encoding {name!r}", available=list_encodings())

    spec = _ENCODINGS[name]
    return HarmonyEncoding(
        load_vocabulary(spec.base),
        SpecialTokenRegistry.harmony(),
        TextSegmenter(spec.pattern.value),
        name=name,
    )


# ===================================================================================
