"""Utility functions for SceneState library."""

from __future__ import annotations

import re
from functools import lru_cache
from typing import Iterable, List, Tuple


_WS_RE = re.compile(r"\s+")
_NON_LETTER_RE = re.compile(r"[^a-z]+")
_SENTENCE_END_RE = re.compile(r"[.!?\n]")


def normalize_text(text: str) -> str:
    """Normalize text for comparison by lowercasing and collapsing whitespace.

    Args:
        text: Text to normalize

    Returns:
        Normalized text
    """
    return _WS_RE.sub(" ", (text or "").strip()).lower()


def normalize_key(text: str) -> str:
    """Lowercase and strip everything that is not a letter.

    Examples:
        >>> normalize_key("Clear Skies!")
        'clearskies'
    """
    return _NON_LETTER_RE.sub("", (text or "").lower())


def build_alternation(words: Iterable[str]) -> str:
    """Regex alternation of escaped words, longest first.

    Longest-first ordering keeps "coffee shop" from losing to "shop".
    """
    ordered = sorted(set(words), key=lambda w: (-len(w), w))
    return "|".join(_phrase_pattern(w) for w in ordered)


def _phrase_pattern(phrase: str) -> str:
    # Allow any run of whitespace between the words of a multi-word phrase
    return r"\s+".join(re.escape(part) for part in phrase.split())


def word_pattern(words: Iterable[str]) -> re.Pattern:
    """Case-insensitive whole-word pattern matching any of the phrases."""
    return re.compile(r"\b(?:" + build_alternation(words) + r")\b", re.IGNORECASE)


def context_window(text: str, start: int, end: int, before: int, after: int) -> str:
    """Return the text around [start, end) clipped at sentence boundaries.

    The window reaches ``before`` characters back and ``after`` characters
    forward but never crosses a sentence terminator.
    """
    left = text[max(0, start - before):start]
    ends = list(_SENTENCE_END_RE.finditer(left))
    if ends:
        left = left[ends[-1].end():]

    right = text[end:end + after]
    m = _SENTENCE_END_RE.search(right)
    if m:
        right = right[:m.start()]

    return f"{left} {right}"


@lru_cache(maxsize=8)
def negation_pattern(markers: Tuple[str, ...]) -> re.Pattern:
    """Whole-word pattern for negation markers, any "n't" contraction included."""
    alternation = build_alternation(markers).replace("'", "['’]")
    return re.compile(r"\b(?:" + alternation + r"|[a-z]+n['’]t)\b", re.IGNORECASE)


def is_negated(
    text: str,
    start: int,
    end: int,
    markers: Tuple[str, ...],
    before: int,
    after: int,
) -> bool:
    """True if a negation marker sits in the window around [start, end)."""
    window = context_window(text, start, end, before, after)
    return negation_pattern(markers).search(window) is not None


def word_offsets(text: str) -> List[re.Match]:
    """Word tokens of text with their offsets."""
    return list(re.finditer(r"[A-Za-z][A-Za-z'’-]*", text))
