"""
Reference Byte Pair Encoding (BPE) operations.
"""

from typing_extensions import deprecated

from .errors import TokenizationError
from .types import Token
from .vocab import VocabularyTable


@deprecated(
    "Reference implementation for documentation only. Use `BpeCore.encode()` for production."
)
def slow_bpe_encode(chunk: bytes, vocab: VocabularyTable) -> list[Token]:
    """
    Encode a chunk by rescanning every adjacent pair before each merge.

    Naive algorithm: O(n²) per chunk, since every merge is preceded by a
    full scan of the current token sequence to find the lowest ranked pair.
    ``BpeCore.encode`` produces the same result in O(n log n) using a heap.

    Kept as an executable statement of the merge order: lowest rank first,
    leftmost pair on ties, one merge at a time.

    :param chunk: Bytes of a single segment.
    :param vocab: Vocabulary providing byte tokens and pair ranks.
    :return: Token sequence for the chunk.
    """
    tokens: list[Token] = []
    for pos, value in enumerate(chunk):
        tok = vocab.byte_token(value)
        if tok is None:
            raise TokenizationError(
                f"byte 0x{value:02x} has no token in the vocabulary", position=pos
            )
        tokens.append(tok)

    while len(tokens) >= 2:
        best: tuple[int, int, Token] | None = None
        for i, (tok0, tok1) in enumerate(zip(tokens, tokens[1:])):
            merged = vocab.merge(tok0, tok1)
            # strict comparison keeps the leftmost pair on equal ranks
            if merged is not None and (best is None or merged[0] < best[0]):
                best = (merged[0], i, merged[1])
        # no pair to merge
        if best is None:
            break
        _, i, new_tok = best
        tokens[i : i + 2] = [new_tok]

    return tokens
