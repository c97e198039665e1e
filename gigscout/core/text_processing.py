from __future__ import annotations

import re
import unicodedata
from functools import lru_cache
from typing import Iterable, List, Pattern

# NOTE: Shared text primitives for detectors, dimension scorers and the
# recommendation filter. Everything downstream matches against the output
# of scoring_text(), so normalization lives in exactly one place.


def normalize_text(text: str) -> str:
    """
    Deterministic normalization before matching.

    Goals:
    - stable across platforms
    - remove unicode quirks (smart quotes, non-breaking spaces)
    - collapse whitespace
    """
    if not text:
        return ""
    t = unicodedata.normalize("NFKC", text)
    # Common whitespace normalization (NBSP)
    t = t.replace("\u00a0", " ")
    # Normalize common unicode dashes to '-'
    t = re.sub(r"[‐-―]", "-", t)
    # Smart quotes -> ASCII
    t = t.replace("\u2019", "'").replace("\u2018", "'")
    t = t.replace("\u201c", '"').replace("\u201d", '"')
    # Collapse whitespace
    t = " ".join(t.split())
    return t


def scoring_text(title: str, description: str) -> str:
    """Lowercased title + description, the haystack for keyword rules."""
    return normalize_text(f"{title or ''} {description or ''}").lower()


def pad(text: str) -> str:
    """
    Surround with single spaces so space-wrapped keywords (" ghl ") also
    match at the very start or end of the text.
    """
    return f" {text} "


@lru_cache(maxsize=1024)
def word_pattern(phrase: str) -> Pattern[str]:
    return re.compile(r"\b" + re.escape(phrase.lower()) + r"\b")


def contains_word(text: str, phrase: str) -> bool:
    """Whole-word (or whole-phrase) match on lowercased text."""
    if not phrase:
        return False
    return word_pattern(phrase).search(text) is not None


def count_word(text: str, word: str) -> int:
    if not word:
        return 0
    return len(word_pattern(word).findall(text))


def matched_phrases(text: str, phrases: Iterable[str]) -> List[str]:
    """Substring hits in declaration order, each phrase reported once."""
    out: List[str] = []
    for p in phrases:
        if p and p in text and p not in out:
            out.append(p)
    return out
