"""Candidate selection and the scoring constants shared by the extractors.

The weights were tuned by hand against narrative chat text. They are kept as
named fields so callers can override them without touching the extractors.
"""

from __future__ import annotations

from dataclasses import dataclass, fields, replace
from typing import Any, Iterable, Mapping, Optional

from .types import Candidate


MIN_SCORE = 0.6


@dataclass(frozen=True)
class ScoringWeights:
    """Base scores, boosts, penalties and windows for every strategy."""

    min_score: float = MIN_SCORE

    # Place
    place_known_noun: float = 0.70
    place_proper_noun: float = 0.90
    place_quoted: float = 0.85
    place_generic_preposition: float = 0.60
    place_destination: float = 0.80
    place_ambiguous_determiner: float = 0.50
    place_ambiguous_preposition: float = 0.50
    place_ambiguous_verb: float = 0.45
    place_proper_boost: float = 0.10
    place_descriptor_boost: float = 0.05
    place_generic_penalty: float = 0.50

    # Mood
    mood_phrase: float = 0.85
    mood_vocabulary: float = 0.65
    mood_intensity_scale: float = 0.30

    # Weather
    weather_phrase: float = 0.80
    weather_anchored: float = 0.60
    weather_anchor_window: int = 5

    # Negation window, in characters around the match
    negation_before: int = 16
    negation_after: int = 5

    def with_overrides(self, overrides: Mapping[str, Any]) -> "ScoringWeights":
        """Copy with the named fields replaced.

        Values are converted to the field's type, so ``"0.7"`` from a JSON
        file is accepted for a float weight.

        Raises:
            KeyError: If a name is not a scoring weight
            ValueError: If a value is not a number of the right kind
        """
        known = {f.name for f in fields(self)}
        unknown = [name for name in overrides if name not in known]
        if unknown:
            raise KeyError(f"Unknown scoring weight(s): {', '.join(sorted(unknown))}")
        return replace(self, **{
            name: _coerce_weight(name, value, type(getattr(self, name)))
            for name, value in overrides.items()
        })


def _coerce_weight(name: str, value: Any, kind: type) -> Any:
    if isinstance(value, bool) or not isinstance(value, (int, float, str)):
        raise ValueError(f"Scoring weight {name!r} must be a number, got {value!r}")
    try:
        number = float(value)
    except ValueError:
        raise ValueError(f"Scoring weight {name!r} must be a number, got {value!r}")
    if kind is int:
        if not number.is_integer():
            raise ValueError(f"Scoring weight {name!r} must be a whole number, got {value!r}")
        return int(number)
    return number


DEFAULT_WEIGHTS = ScoringWeights()


def clamp_score(score: float) -> float:
    # Rounded so that 0.45 + 0.10 + 0.05 compares equal to 0.60
    return round(max(0.0, min(1.0, score)), 4)


def choose_best(candidates: Iterable[Candidate], min_score: float = MIN_SCORE) -> Optional[Candidate]:
    """Pick the highest-scoring candidate if it clears the threshold.

    Ties go to the candidate generated first.

    Args:
        candidates: Pooled candidates in generation order
        min_score: Minimum acceptable score

    Returns:
        The winning candidate, or None if there is none or it scores too low
    """
    best: Optional[Candidate] = None
    for candidate in candidates:
        if best is None or candidate.score > best.score:
            best = candidate
    if best is None or best.score < min_score:
        return None
    return best
