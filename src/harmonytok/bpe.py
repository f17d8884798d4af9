"""
Byte pair encoding over a fixed vocabulary.
"""

import heapq

from typing_extensions import TypeAliasType

from .errors import TokenizationError
from .types import Rank, Token
from .vocab import VocabularyTable


# heap entry: merge rank, left position, left token, right token, merged token
_Candidate = TypeAliasType("_Candidate", tuple[Rank, int, Token, Token, Token])


class BpeCore:
    """
    Chunk-level BPE encoder and decoder bound to one vocabulary.

    Holds no mutable state, so one instance can serve any number of callers.
    """

    __slots__ = ("vocab",)

    def __init__(self, vocab: VocabularyTable) -> None:
        self.vocab = vocab

    def encode(self, chunk: bytes) -> list[Token]:
        """
        Encode one pre-tokenized chunk.

        Starts from single-byte tokens and repeatedly fuses the adjacent pair
        with the lowest merge rank until no adjacent pair has a rank. Ties on
        rank go to the leftmost pair. Runs in O(n log n): candidate pairs sit
        in a heap keyed by ``(rank, position)`` over a linked list of parts,
        and entries made stale by an earlier merge are skipped when popped.

        :param chunk: Bytes of a single segment.
        :returns: Token sequence for the chunk.
        :raises TokenizationError: If a byte has no single-byte token.
        """
        vocab = self.vocab
        parts: list[Token] = []
        for pos, value in enumerate(chunk):
            tok = vocab.byte_token(value)
            if tok is None:
                raise TokenizationError(
                    f"byte 0x{value:02x} has no token in the vocabulary",
                    position=pos,
                    input_text=chunk,
                )
            parts.append(tok)

        n = len(parts)
        if n < 2:
            return parts

        # linked list over input positions; -1 marks either end
        nxt = list(range(1, n + 1))
        nxt[-1] = -1
        prv = list(range(-1, n - 1))
        alive = [True] * n

        heap: list[_Candidate] = []
        for pos in range(n - 1):
            merged = vocab.merge(parts[pos], parts[pos + 1])
            if merged is not None:
                heap.append((merged[0], pos, parts[pos], parts[pos + 1], merged[1]))
        heapq.heapify(heap)

        while heap:
            _, left, left_tok, right_tok, new_tok = heapq.heappop(heap)
            right = nxt[left]
            # stale: the pair was consumed or rewritten by an earlier merge
            if (
                not alive[left]
                or right == -1
                or parts[left] != left_tok
                or parts[right] != right_tok
            ):
                continue

            # fuse right into left
            parts[left] = new_tok
            alive[right] = False
            after = nxt[right]
            nxt[left] = after
            if after != -1:
                prv[after] = left

            # the merge created up to two new adjacencies
            before = prv[left]
            if before != -1:
                merged = vocab.merge(parts[before], new_tok)
                if merged is not None:
                    heapq.heappush(
                        heap, (merged[0], before, parts[before], new_tok, merged[1])
                    )
            if after != -1:
                merged = vocab.merge(new_tok, parts[after])
                if merged is not None:
                    heapq.heappush(
                        heap, (merged[0], left, new_tok, parts[after], merged[1])
                    )

        # position 0 is never the right side of a merge, so it heads the list
        tokens: list[Token] = []
        pos = 0
        while pos != -1:
            tokens.append(parts[pos])
            pos = nxt[pos]
        return tokens

    def decode_bytes(self, tokens: list[Token]) -> bytes:
        """
        Concatenate the byte sequences of ``tokens``.

        :raises UnknownTokenError: If any token has no vocabulary entry.
        """
        lookup = self.vocab.lookup_bytes
        return b"".join(lookup(tok) for tok in tokens)

    def decode(self, tokens: list[Token]) -> str:
        """
        Decode tokens into text.

        Invalid UTF-8 (e.g. a character split across a truncated sequence) is
        replaced with U+FFFD instead of failing.

        :raises UnknownTokenError: If any token has no vocabulary entry.
        """
        return self.decode_bytes(tokens).decode("utf-8", errors="replace")
