#!/usr/bin/env python3
"""
Node Features - ISA Flags

Bitmap over the fixed vocabulary of instruction-set extensions that the
engine publishes as ISA:: features. The enumeration order is both the bit
index and the render order; new tokens go at the end.
"""

from dataclasses import dataclass
from enum import IntEnum
from typing import Iterator, List


class IsaToken(IntEnum):
    """ISA extension bit indices."""

    SSE = 0
    SSE2 = 1
    SSSE3 = 2
    SSE4_1 = 3
    SSE4_2 = 4
    AVX = 5
    AVX2 = 6
    AVX512F = 7         # Foundation
    AVX512DQ = 8        # Double and quad words
    AVX512CD = 9        # Conflict detection
    AVX512BW = 10       # Byte and word
    AVX512VL = 11       # Vector length
    AVX512_VNNI = 12    # Vector neural network instructions

    @property
    def token(self) -> str:
        """Spelling used in the cpuinfo flags line."""
        return self.name.lower()

    @property
    def mask(self) -> int:
        return 1 << self.value


# Separators accepted between tokens of the flags line
TOKEN_DELIMITERS = " \t"


def split_tokens(text: str) -> List[str]:
    """Split a flags line on spaces and tabs only."""
    for delimiter in TOKEN_DELIMITERS[1:]:
        text = text.replace(delimiter, TOKEN_DELIMITERS[0])
    return [tok for tok in text.split(TOKEN_DELIMITERS[0]) if tok]


@dataclass
class IsaFlagSet:
    """Set of IsaToken values stored as a bitmap."""

    bits: int = 0

    @classmethod
    def from_text(cls, text: str) -> "IsaFlagSet":
        """Build a flag set from a cpuinfo flags value."""
        flags = cls()
        flags.rebuild(text)
        return flags

    @classmethod
    def from_tokens(cls, *tokens: IsaToken) -> "IsaFlagSet":
        flags = cls()
        for token in tokens:
            flags.bits |= token.mask
        return flags

    def rebuild(self, text: str) -> bool:
        """
        Replace the flag state with the tokens found in text.

        Only whole tokens count: "sse4_2xyz" does not set SSE4_2.
        """
        present = set(split_tokens(text))
        self.bits = 0
        for token in IsaToken:
            if token.token in present:
                self.bits |= token.mask
        return True

    def clear(self) -> None:
        self.bits = 0

    def __contains__(self, token: IsaToken) -> bool:
        return bool(self.bits & token.mask)

    def __iter__(self) -> Iterator[IsaToken]:
        """Set tokens in enumeration order."""
        return (token for token in IsaToken if token in self)

    def __len__(self) -> int:
        return sum(1 for _ in self)

    def __bool__(self) -> bool:
        return self.bits != 0

    def tokens(self) -> List[str]:
        """cpuinfo spellings of the set tokens, in enumeration order."""
        return [token.token for token in self]
