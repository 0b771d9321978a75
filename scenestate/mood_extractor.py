"""Mood extraction.

Two strategies feed :func:`choose_best`:

* explicit phrases ("I feel nervous", "she felt so tired") resolved through
  the normalization cascade, scored flat;
* a scan for canonical mood words anywhere in the text, scored by the mood's
  intensity so that "anxious" outranks "okay".

A mood whose blacklist matches anywhere in the text ("Happy birthday!") is
dropped from the vocabulary scan entirely.
"""

from __future__ import annotations

import logging
import re
from functools import lru_cache
from typing import Dict, List, Optional, Tuple

from .lexicon import Lexicon, get_lexicon
from .scoring import DEFAULT_WEIGHTS, ScoringWeights, choose_best, clamp_score
from .types import Candidate
from .utils import is_negated, word_pattern

logger = logging.getLogger("scenestate.mood")


_PHRASE_RE = re.compile(
    r"\b(?:i\s+am|i['’]m|im|i\s+feel|i\s+felt|i\s+was|feel(?:s|ing)?|felt)\s+"
    r"(?:(?:feeling|so|really)\s+)?"
    r"([A-Za-z'’\-]+(?:\s+[A-Za-z'’\-]+){0,3})",
    re.IGNORECASE,
)
_WORD_RE = re.compile(r"[A-Za-z'’\-]+")

# Longest multi-word mood tried after an explicit phrase
_MAX_PHRASE_WORDS = 3


@lru_cache(maxsize=8)
def _vocabulary_pattern(lexicon: Lexicon) -> re.Pattern:
    return word_pattern(lexicon.moods)


@lru_cache(maxsize=8)
def _blacklist_patterns(lexicon: Lexicon) -> Dict[str, Tuple[re.Pattern, ...]]:
    return {
        mood: tuple(re.compile(p, re.IGNORECASE) for p in patterns)
        for mood, patterns in lexicon.mood_blacklist.items()
    }


def _blacklisted_spans(text: str, lexicon: Lexicon) -> Dict[str, List[Tuple[int, int]]]:
    spans: Dict[str, List[Tuple[int, int]]] = {}
    for mood, patterns in _blacklist_patterns(lexicon).items():
        for pattern in patterns:
            for m in pattern.finditer(text):
                spans.setdefault(mood, []).append((m.start(), m.end()))
    return spans


def _overlaps(start: int, end: int, spans: List[Tuple[int, int]]) -> bool:
    return any(s < end and start < e for s, e in spans)


def phrase_candidates(
    text: str,
    lexicon: Lexicon,
    weights: ScoringWeights,
    blacklisted: Optional[Dict[str, List[Tuple[int, int]]]] = None,
) -> List[Candidate]:
    """Moods named right after "I feel", "I'm", "felt" and friends."""
    if blacklisted is None:
        blacklisted = _blacklisted_spans(text, lexicon)
    candidates: List[Candidate] = []

    for m in _PHRASE_RE.finditer(text):
        words = list(_WORD_RE.finditer(m.group(1)))
        while words and words[0].group(0).lower() in lexicon.intensifiers:
            words.pop(0)
        if not words:
            continue

        offset = m.start(1)
        for n in range(min(_MAX_PHRASE_WORDS, len(words)), 0, -1):
            phrase = " ".join(w.group(0) for w in words[:n])
            canonical = lexicon.resolve_mood(phrase)
            if canonical is None:
                continue
            start = offset + words[0].start()
            end = offset + words[n - 1].end()
            if is_negated(text, start, end, lexicon.negation_markers,
                          weights.negation_before, weights.negation_after):
                logger.debug(f"Negated mood phrase: {phrase!r}")
            elif _overlaps(start, end, blacklisted.get(canonical, [])):
                logger.debug(f"Blacklisted mood phrase: {phrase!r}")
            else:
                candidates.append(Candidate(canonical, weights.mood_phrase, start, end, "phrase"))
            break

    return candidates


def vocabulary_candidates(
    text: str,
    lexicon: Lexicon,
    weights: ScoringWeights,
    blacklisted: Optional[Dict[str, List[Tuple[int, int]]]] = None,
) -> List[Candidate]:
    """Canonical mood words in text order, scored by intensity."""
    if blacklisted is None:
        blacklisted = _blacklisted_spans(text, lexicon)
    candidates: List[Candidate] = []

    for m in _vocabulary_pattern(lexicon).finditer(text):
        canonical = lexicon.resolve_mood(m.group(0))
        if canonical is None or canonical in blacklisted:
            continue
        if is_negated(text, m.start(), m.end(), lexicon.negation_markers,
                      weights.negation_before, weights.negation_after):
            continue
        intensity = lexicon.mood_intensity_for(canonical)
        score = clamp_score(weights.mood_vocabulary + (intensity - 0.5) * weights.mood_intensity_scale)
        candidates.append(Candidate(canonical, score, m.start(), m.end(), "vocabulary"))

    return candidates


def mood_candidates(
    text: str,
    lexicon: Optional[Lexicon] = None,
    weights: ScoringWeights = DEFAULT_WEIGHTS,
) -> List[Candidate]:
    lex = lexicon or get_lexicon()
    blacklisted = _blacklisted_spans(text, lex)
    if blacklisted:
        logger.debug(f"Blacklisted moods: {sorted(blacklisted)}")
    return (
        phrase_candidates(text, lex, weights, blacklisted)
        + vocabulary_candidates(text, lex, weights, blacklisted)
    )


def extract_mood(
    text: str,
    lexicon: Optional[Lexicon] = None,
    weights: ScoringWeights = DEFAULT_WEIGHTS,
) -> Optional[Candidate]:
    """Best canonical mood in text, or None.

    Args:
        text: Narrative text
        lexicon: Vocabulary tables, the bundled ones by default
        weights: Scoring weights

    Returns:
        Winning candidate whose value is a canonical mood
    """
    if not text or not text.strip():
        return None
    return choose_best(mood_candidates(text, lexicon, weights), weights.min_score)
