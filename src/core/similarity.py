# src/core/similarity.py — v3
"""Character-level string similarity for metadata reconciliation.

Normalized edit distance: score = 1 - levenshtein(a, b) / max(len(a), len(b)).
Slug-style ids and human titles differ mostly in punctuation and casing,
which normalize_name() removes before scoring.
"""

from __future__ import annotations

import re

from catalog_ingest.keys.codec import strip_diacritics

_APOSTROPHES_RE = re.compile(r"['’]")
_NON_ALNUM_RE = re.compile(r"[^a-z0-9]+")


def normalize_name(text: str) -> str:
    """Lowercase, drop apostrophes, collapse punctuation runs to one space."""
    lowered = _APOSTROPHES_RE.sub("", strip_diacritics(text).lower())
    return _NON_ALNUM_RE.sub(" ", lowered).strip()


def levenshtein(a: str, b: str) -> int:
    """Classic edit distance, unit cost for insert/delete/substitute."""
    if a == b:
        return 0
    if len(a) < len(b):
        a, b = b, a
    if not b:
        return len(a)

    previous = list(range(len(b) + 1))
    for i, ca in enumerate(a, start=1):
        current = [i]
        for j, cb in enumerate(b, start=1):
            cost = 0 if ca == cb else 1
            current.append(min(
                previous[j] + 1,
                current[j - 1] + 1,
                previous[j - 1] + cost,
            ))
        previous = current
    return previous[-1]


def similarity(a: str, b: str) -> float:
    """Normalized similarity in [0, 1]; identical strings score 1.0."""
    longest = max(len(a), len(b))
    if longest == 0:
        return 1.0
    return 1.0 - levenshtein(a, b) / longest
