"""Keyword extraction shared by indexing and querying.

Both sides must normalise text identically or keyword search silently loses
recall, so there is exactly one implementation.
"""

from __future__ import annotations

import re

_PUNCTUATION_RE = re.compile(r"[.,!?;:]")
_MIN_LENGTH = 3


def extract_keywords(text: str) -> frozenset[str]:
    """Lower-case, strip ``. , ! ? ; :``, split on whitespace, keep tokens longer than 2."""
    cleaned = _PUNCTUATION_RE.sub("", text.lower())
    return frozenset(tok for tok in cleaned.split() if len(tok) >= _MIN_LENGTH)


def ordered_keywords(text: str) -> list[str]:
    """Like extract_keywords() but in first-occurrence order.

    Used for queries, where truncation to a maximum count must be predictable.
    """
    cleaned = _PUNCTUATION_RE.sub("", text.lower())
    return list(dict.fromkeys(tok for tok in cleaned.split() if len(tok) >= _MIN_LENGTH))
