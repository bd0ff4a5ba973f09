# timegrid/fuzzy.py
from __future__ import annotations

import math
import re
import unicodedata
from typing import List, Optional

_WS_RE = re.compile(r"\s+")

NO_MATCH = math.inf


def normalize_text(value: Optional[str]) -> str:
    """Lowercase, strip diacritics and collapse whitespace."""
    if not value:
        return ""
    decomposed = unicodedata.normalize("NFD", str(value))
    stripped = "".join(ch for ch in decomposed if not unicodedata.combining(ch))
    return _WS_RE.sub(" ", stripped.lower()).strip()


def tokenize(query: str) -> List[str]:
    return [tok for tok in _WS_RE.split(query or "") if tok]


def subsequence_score(text: str, token: str) -> float:
    """Total gap consumed matching `token` as an ordered subsequence of `text`.

    Greedy leftmost match per character; NO_MATCH if some character is missing.
    """
    if not token:
        return NO_MATCH
    score = 0
    position = 0
    for ch in token:
        index = text.find(ch, position)
        if index == -1:
            return NO_MATCH
        score += index - position
        position = index + 1
    return score


def fuzzy_score(text: str, query: str) -> float:
    """Sum of per-token subsequence scores; NO_MATCH if any token fails."""
    tokens = tokenize(query)
    if not tokens:
        return NO_MATCH
    total = 0.0
    for tok in tokens:
        s = subsequence_score(text, tok)
        if s == NO_MATCH:
            return NO_MATCH
        total += s
    return total
