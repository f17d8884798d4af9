"""
Core types for tokenization.
"""

from typing_extensions import TypeAliasType

Token = TypeAliasType("Token", int)
TokenBytes = TypeAliasType("TokenBytes", bytes)
TokenPair = TypeAliasType("TokenPair", tuple[Token, Token])
Rank = TypeAliasType("Rank", int)
RankTable = TypeAliasType("RankTable", dict[TokenBytes, Rank])
Vocabulary = TypeAliasType("Vocabulary", dict[Token, TokenBytes])
