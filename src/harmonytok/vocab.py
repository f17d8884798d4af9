"""
Immutable vocabulary table mapping token ids to byte sequences and merge ranks.
"""

import logging
from collections.abc import Iterable, Mapping
from pathlib import Path
from typing import Final

from ._sanitise import render_bytes
from .errors import UnknownTokenError, VocabularyError
from .types import Rank, RankTable, Token, TokenBytes, TokenPair, Vocabulary

VOCAB_SUFFIX: Final[str] = ".vocab"

log = logging.getLogger(__name__)


class VocabularyTable:
    """
    Bidirectional token <-> bytes mapping plus pairwise merge ranks.

    The rank of an adjacent pair ``(a, b)`` is the rank of the entry whose
    bytes are ``bytes(a) + bytes(b)``; that entry is the token the pair fuses
    into. Entries without a rank (usually the single bytes) are only ever
    produced directly from input bytes, never by a merge.

    A table is never mutated after construction and can be shared freely.
    """

    __slots__ = ("_id_to_bytes", "_bytes_to_id", "_ranks", "_byte_tokens")

    def __init__(
        self,
        tokens: Mapping[Token, TokenBytes],
        ranks: Mapping[TokenBytes, Rank] | None = None,
    ) -> None:
        """
        Build a table from explicit ids and ranks.

        :param tokens: Token id -> byte sequence.
        :param ranks: Byte sequence -> merge rank; lower merges first.
        :raises VocabularyError: On negative ids, empty or duplicate byte
            sequences, or ranks for byte sequences with no token.
        """
        id_to_bytes: Vocabulary = {}
        bytes_to_id: dict[TokenBytes, Token] = {}
        for tok, raw in tokens.items():
            seq = bytes(raw)
            if tok < 0:
                raise VocabularyError("token ids must be non-negative", invalid_tok=tok)
            if not seq:
                raise VocabularyError("empty byte sequence", invalid_tok=tok)
            if seq in bytes_to_id:
                raise VocabularyError(
                    f"duplicate byte sequence {render_bytes(seq, limit=32)!r}", invalid_tok=tok
                )
            id_to_bytes[tok] = seq
            bytes_to_id[seq] = tok

        rank_table: RankTable = {}
        for seq, rank in (ranks or {}).items():
            if seq not in bytes_to_id:
                raise VocabularyError(
                    f"rank given for unknown byte sequence {render_bytes(seq, limit=32)!r}"
                )
            rank_table[bytes(seq)] = rank

        self._id_to_bytes = id_to_bytes
        self._bytes_to_id = bytes_to_id
        self._ranks = rank_table
        # byte value -> single byte token, resolved once for the encode hot path
        self._byte_tokens: tuple[Token | None, ...] = tuple(
            bytes_to_id.get(bytes([b])) for b in range(256)
        )

        log.debug(
            f"built vocabulary with {len(id_to_bytes)} tokens and {len(rank_table)} ranked entries"
        )

    @classmethod
    def from_ranks(
        cls, entries: Iterable[tuple[TokenBytes, Rank | None]]
    ) -> "VocabularyTable":
        """
        Build a table from an ordered ``(bytes, rank)`` list.

        Token ids follow insertion order. A ``None`` rank marks an entry that
        takes part in no merge.
        """
        tokens: Vocabulary = {}
        ranks: RankTable = {}
        for tok, (seq, rank) in enumerate(entries):
            tokens[tok] = seq
            if rank is not None:
                ranks[seq] = rank
        return cls(tokens, ranks)

    @classmethod
    def from_merges(
        cls,
        base: Mapping[Token, TokenBytes],
        merges: Mapping[TokenPair, Token],
    ) -> "VocabularyTable":
        """
        Build a table from base tokens and an ordered merge list.

        Merges are ranked by their position in ``merges``, so earlier-learned
        merges fuse first. Child tokens must exist before their parent.

        :param base: Token id -> bytes for the unmerged tokens.
        :param merges: ``(left, right) -> merged token`` in merge order.
        :raises VocabularyError: If a merge references an unknown child token.
        """
        tokens: Vocabulary = dict(base)
        ranks: RankTable = {}
        for rank, ((tok0, tok1), mtok) in enumerate(merges.items()):
            if tok0 not in tokens or tok1 not in tokens:
                raise VocabularyError(
                    f"merge {rank} references a token defined after it",
                    invalid_tok=tok0 if tok0 not in tokens else tok1,
                )
            if mtok in tokens:
                raise VocabularyError("merged token id already in use", invalid_tok=mtok)
            tokens[mtok] = tokens[tok0] + tokens[tok1]
            ranks[tokens[mtok]] = rank
        return cls(tokens, ranks)

    @classmethod
    def from_mergeable_ranks(cls, mergeable_ranks: Mapping[TokenBytes, Rank]) -> "VocabularyTable":
        """
        Build a table from a tiktoken-style ``bytes -> rank`` mapping.

        The rank doubles as the token id, as in tiktoken rank files.
        """
        return cls({rank: seq for seq, rank in mergeable_ranks.items()}, mergeable_ranks)

    def lookup_id(self, seq: TokenBytes) -> Token | None:
        """Return the token for an exact byte sequence, or ``None``."""
        return self._bytes_to_id.get(seq)

    def lookup_bytes(self, tok: Token) -> TokenBytes:
        """
        Return the byte sequence of a token.

        :raises UnknownTokenError: If ``tok`` has no entry.
        """
        try:
            return self._id_to_bytes[tok]
        except KeyError:
            raise UnknownTokenError(
                "token not found in vocabulary", invalid_tok=tok
            ) from None

    def byte_token(self, value: int) -> Token | None:
        """Return the single-byte token for byte ``value``, or ``None``."""
        return self._byte_tokens[value]

    def merge(self, tok0: Token, tok1: Token) -> tuple[Rank, Token] | None:
        """Return ``(rank, merged token)`` for an adjacent pair, or ``None``."""
        seq = self._id_to_bytes[tok0] + self._id_to_bytes[tok1]
        rank = self._ranks.get(seq)
        if rank is None:
            return None
        return rank, self._bytes_to_id[seq]

    def rank(self, tok0: Token, tok1: Token) -> Rank | None:
        """
        Return the merge rank of an adjacent pair, ``None`` meaning no merge.

        :raises UnknownTokenError: If either token has no entry.
        """
        merged = self.merge(self._checked(tok0), self._checked(tok1))
        return None if merged is None else merged[0]

    def describe(self, tok: Token) -> str:
        """Return a printable rendering of a token's bytes."""
        return render_bytes(self.lookup_bytes(tok))

    @property
    def size(self) -> int:
        """Number of ordinary tokens."""
        return len(self._id_to_bytes)

    @property
    def max_token(self) -> Token:
        """Largest ordinary token id (-1 for an empty table)."""
        return max(self._id_to_bytes, default=-1)

    def __len__(self) -> int:
        return len(self._id_to_bytes)

    def __contains__(self, tok: object) -> bool:
        return tok in self._id_to_bytes

    def __iter__(self):
        return iter(self._id_to_bytes)

    def save_vocab(self, file_prefix: str) -> Path:
        """
        Persist human-readable token representations to a .vocab file.

        Each line shows the token id, its rank when it has one, and the token
        bytes decoded with control characters escaped.
        """
        vocab_path = Path(file_prefix).with_suffix(VOCAB_SUFFIX)
        vocab_path.parent.mkdir(parents=True, exist_ok=True)

        log.debug(f"saving vocab to {vocab_path}")

        with vocab_path.open("w", encoding="utf-8", newline="\n") as f:
            for tok in sorted(self._id_to_bytes):
                seq = self._id_to_bytes[tok]
                rank = self._ranks.get(seq)
                if rank is None:
                    f.write(f"[{tok}] {render_bytes(seq)}\n")
                else:
                    f.write(f"[{tok}] (rank {rank}) {render_bytes(seq)}\n")
        return vocab_path

    def _checked(self, tok: Token) -> Token:
        if tok not in self._id_to_bytes:
            raise UnknownTokenError("token not found in vocabulary", invalid_tok=tok)
        return tok

    def __repr__(self) -> str:
        return f"{self.__class__.__name__}(size={self.size}, ranked={len(self._ranks)})"
