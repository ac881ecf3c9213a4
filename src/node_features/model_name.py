#!/usr/bin/env python3
"""
Node Features - Model Name Normalizer

The cpuinfo "model name" field is verbose, e.g.

    Intel(R) Xeon(R) CPU E5-2695 v4 @ 2.10GHz
    Intel(R) Xeon(R) Gold 6148 CPU @ 2.40GHz
    AMD EPYC 7502 32-Core Processor

and the part worth publishing is the model number. This module reduces
the string to a compact token ("E5-2695_v4", "Gold_6148", "EPYC_7502")
assuming the model matches

    (Gold |EPYC )?[A-Z0-9][A-Z-]*[0-9][A-Z0-9-]*( v[0-9]+)?

The heuristic was tuned on Intel Xeon and AMD EPYC parts.
"""

import re
from typing import Optional

# Family names kept in front of the model number. Checked in order;
# the first one found in the string is the only one tried.
FAMILY_LEADINS = ("Gold ", "EPYC ")

_MODEL_CORE = r"[A-Za-z0-9][A-Za-z-]*[0-9][A-Za-z0-9-]*"
_MODEL_RE = re.compile(_MODEL_CORE)
_MODEL_VERSIONED_RE = re.compile(_MODEL_CORE + r"(?: v[0-9]+)?")


def _find_family_model(text: str) -> Optional[str]:
    for leadin in FAMILY_LEADINS:
        start = text.find(leadin)
        if start < 0:
            continue
        match = _MODEL_RE.match(text, start + len(leadin))
        if match:
            return text[start:match.end()]
        # Only the first leadin present is considered
        return None
    return None


def normalize_model_name(text: str) -> Optional[str]:
    """
    Extract the compact model token from a model name.

    A "Gold " or "EPYC " family leadin is tried first and kept in the
    result; failing that, the first model-like word anywhere in the string
    is used, along with a " v<digits>" revision if one follows.

    Args:
        text: cpuinfo "model name" value

    Returns:
        Model token with spaces replaced by underscores, or None
    """
    model = _find_family_model(text)
    if model is None:
        match = _MODEL_VERSIONED_RE.search(text)
        if not match:
            return None
        model = match.group(0)
    return model.replace(" ", "_")
