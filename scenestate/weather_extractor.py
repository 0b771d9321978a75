"""Weather extraction.

Phrase strategy: "it's pouring", "the sky was overcast", "the room was warm".
Anchored strategy: any weather word, but only when a weather anchor such as
"outside" or "sky" is within a few words. Storm-like words count as their own
anchor, so "a storm rolled in" needs no context while "I have a cold" yields
nothing.
"""

from __future__ import annotations

import logging
import re
from functools import lru_cache
from typing import List, Optional

from .lexicon import Lexicon, get_lexicon
from .scoring import DEFAULT_WEIGHTS, ScoringWeights, choose_best
from .types import Candidate
from .utils import is_negated, normalize_text, word_offsets, word_pattern

logger = logging.getLogger("scenestate.weather")


_PHRASE_RE = re.compile(
    r"\b(?:it['’]s|it\s+(?:is|was|feels|felt|seems|seemed|got|gets|turned)"
    r"|the\s+weather\s+(?:is|was|feels|felt|turned)"
    r"|(?:the\s+)?sk(?:y|ies)\s+(?:is|are|was|were|looked|looks|turned)"
    r"|the\s+(?:air|day|night|morning|afternoon|evening|room|wind|weather)\s+"
    r"(?:is|was|felt|feels|grew|turned|seemed))\s+"
    r"([a-z'’\-]+(?:\s+[a-z'’\-]+){0,2})",
    re.IGNORECASE,
)
_WORD_RE = re.compile(r"[A-Za-z'’\-]+")

# "It's clear that ..." is not about the sky
_EXTRAPOSITION = frozenset({"that", "to", "why", "how", "what", "whether", "if", "who", "when"})


@lru_cache(maxsize=8)
def _vocabulary_pattern(lexicon: Lexicon) -> re.Pattern:
    return word_pattern(tuple(lexicon.weather_terms) + tuple(lexicon.weather_synonyms))


def _negated(text: str, start: int, end: int, lexicon: Lexicon, weights: ScoringWeights) -> bool:
    return is_negated(text, start, end, lexicon.negation_markers,
                      weights.negation_before, weights.negation_after)


def phrase_candidates(text: str, lexicon: Lexicon, weights: ScoringWeights) -> List[Candidate]:
    candidates: List[Candidate] = []
    for m in _PHRASE_RE.finditer(text):
        words = list(_WORD_RE.finditer(m.group(1)))
        offset = m.start(1)

        spans = [(i, i + 2) for i in range(len(words) - 1)] + [(i, i + 1) for i in range(len(words))]
        for i, j in spans:
            phrase = " ".join(w.group(0) for w in words[i:j])
            canonical = lexicon.resolve_weather(phrase)
            if canonical is None:
                continue
            if j < len(words) and words[j].group(0).lower() in _EXTRAPOSITION:
                continue
            start, end = offset + words[i].start(), offset + words[j - 1].end()
            if _negated(text, start, end, lexicon, weights):
                continue
            candidates.append(Candidate(canonical, weights.weather_phrase, start, end, "phrase"))
            break

    return candidates


def anchored_candidates(text: str, lexicon: Lexicon, weights: ScoringWeights) -> List[Candidate]:
    """Weather words with an anchor within ``weather_anchor_window`` words."""
    tokens = word_offsets(text)
    window = weights.weather_anchor_window
    candidates: List[Candidate] = []

    for m in _vocabulary_pattern(lexicon).finditer(text):
        surface = normalize_text(m.group(0))
        canonical = lexicon.resolve_weather(surface)
        if canonical is None or _negated(text, m.start(), m.end(), lexicon, weights):
            continue

        if surface not in lexicon.self_anchored_weather:
            inside = [i for i, t in enumerate(tokens) if t.start() < m.end() and m.start() < t.end()]
            if not inside:
                continue
            first, last = inside[0], inside[-1]
            nearby = tokens[max(0, first - window):first] + tokens[last + 1:last + 1 + window]
            if not any(t.group(0).lower() in lexicon.weather_anchors for t in nearby):
                continue

        candidates.append(Candidate(canonical, weights.weather_anchored, m.start(), m.end(), "anchored"))

    return candidates


def weather_candidates(
    text: str,
    lexicon: Optional[Lexicon] = None,
    weights: ScoringWeights = DEFAULT_WEIGHTS,
) -> List[Candidate]:
    lex = lexicon or get_lexicon()
    return phrase_candidates(text, lex, weights) + anchored_candidates(text, lex, weights)


def extract_weather(
    text: str,
    lexicon: Optional[Lexicon] = None,
    weights: ScoringWeights = DEFAULT_WEIGHTS,
) -> Optional[Candidate]:
    """Best canonical weather term in text, or None."""
    if not text or not text.strip():
        return None
    best = choose_best(weather_candidates(text, lexicon, weights), weights.min_score)
    if best is not None:
        logger.debug(f"Weather {best.value!r} via {best.strategy}")
    return best
