#!/usr/bin/env python3
"""
Node Features - Cache Size Normalizer

Turns a human-readable size such as "46080 KB", "512K" or "8 MB" into a
whole number of kilobytes.
"""

import math
import re
from typing import Optional

from .line_reader import WHITESPACE_CHARS

# Leading number as accepted by strtod(), minus inf/nan/hex forms
_NUMBER_RE = re.compile(r"[ \t\n\v\f\r]*([+-]?(?:[0-9]+\.?[0-9]*|\.[0-9]+)(?:[eE][+-]?[0-9]+)?)")

# Applied cumulatively: a unit scales by its own multiplier and every
# multiplier before it.
UNIT_LADDER = (
    ("K", 1.0),
    ("M", 1024.0),
    ("G", 1024.0),
)

BYTE_UNIT = "B"
BYTES_PER_KB = 1024.0


def parse_cache_size(text: str) -> Optional[int]:
    """
    Parse a cache size into kilobytes.

    The number may be followed by optional whitespace and one unit letter
    (K, M, G or B, any case). After a K/M/G unit only a trailing "B" or the
    end of the string may follow. A bare number is taken as kilobytes.

    Args:
        text: cpuinfo "cache size" value

    Returns:
        Kilobytes (fraction truncated), or None if text is not a size
    """
    match = _NUMBER_RE.match(text)
    if not match:
        return None

    value = float(match.group(1))
    if value < 0 or not math.isfinite(value):
        return None

    rest = text[match.end():].lstrip(WHITESPACE_CHARS)
    unit = rest[:1].upper()

    if unit == BYTE_UNIT:
        value /= BYTES_PER_KB
    else:
        scale = 1.0
        for letter, multiplier in UNIT_LADDER:
            scale *= multiplier
            if unit == letter:
                value *= scale
                rest = rest[1:]
                break

    if rest[:1].upper() not in ("", BYTE_UNIT):
        return None
    if not math.isfinite(value):
        return None
    return int(value)
