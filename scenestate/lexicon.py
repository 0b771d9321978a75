"""Vocabulary and affect tables used by the heuristic extractors.

The tables ship as JSON in ``scenestate/data`` and are loaded once into an
immutable :class:`Lexicon`. Everything that needs vocabulary takes a lexicon
argument (defaulting to :func:`get_lexicon`) so tests can build their own.

Normalization cascade for moods and weather terms:
    1. exact canonical match
    2. exact synonym match
    3. normalized-key canonical match ("Clear-Skies" -> "clearskies")
    4. normalized-key synonym match
"""

from __future__ import annotations

import json
import os
from dataclasses import dataclass
from functools import lru_cache
from types import MappingProxyType
from typing import Dict, FrozenSet, List, Mapping, Optional, Tuple

from .types import MoodAxes, MoodFeatures, NEUTRAL_AXES
from .utils import normalize_key, normalize_text


# ── Data loading ──────────────────────────────────────────────────────────────

_DATA_DIR = os.path.join(os.path.dirname(__file__), "data")


def _load_json(filename: str) -> dict:
    path = os.path.join(_DATA_DIR, filename)
    with open(path, "r", encoding="utf-8") as f:
        return json.load(f)


# ── Function-word tables ──────────────────────────────────────────────────────

NEGATION_MARKERS = (
    "no longer", "not", "never", "without", "hardly", "cannot", "nor", "ain't", "isn't",
    "wasn't", "aren't", "weren't", "don't", "doesn't", "didn't", "won't", "can't", "couldn't",
)

DETERMINERS = ("the", "my", "our", "his", "her", "their", "a", "an", "this", "that", "your", "its")

LOCATION_PREPOSITIONS = ("at", "in", "inside", "outside", "by", "near", "around", "on")

# Used by the free-text preposition strategy only
GENERIC_PREPOSITIONS = LOCATION_PREPOSITIONS + ("behind", "beside", "under", "over", "between")

DESTINATION_PREPOSITIONS = ("to", "towards", "toward", "into", "through")

MOTION_VERBS = (
    "arrive", "arrived", "arrives", "arriving", "leave", "left", "leaves", "leaving",
    "walk", "walked", "walks", "walking", "drive", "drove", "drives", "driving",
    "go", "goes", "went", "going", "head", "headed", "heads", "heading",
    "enter", "entered", "enters", "entering", "exit", "exited", "exits", "exiting",
)

TEMPORAL_FILLERS = (
    "now", "today", "tonight", "tomorrow", "yesterday", "soon", "later", "again", "already",
    "this morning", "this afternoon", "this evening", "this night",
    "right now", "for now", "for a while",
)

INTENSIFIERS = (
    "a", "bit", "little", "so", "very", "really", "quite", "pretty", "rather", "somewhat", "kind",
    "kinda", "sort", "sorta", "of", "too", "extremely", "incredibly", "super", "totally",
    "completely", "utterly", "just", "still", "more", "most", "even", "all", "feeling", "getting",
    "becoming", "growing", "bitterly", "fairly", "awfully", "terribly", "unusually",
)


@dataclass(frozen=True, eq=False)
class Lexicon:
    """Immutable vocabulary tables.

    Compares by identity so it can key ``lru_cache``-compiled patterns.
    """
    moods: Tuple[str, ...]
    mood_synonyms: Mapping[str, str]
    mood_intensity: Mapping[str, float]
    mood_axes: Mapping[str, MoodAxes]
    mood_blacklist: Mapping[str, Tuple[str, ...]]
    place_nouns: Tuple[str, ...]
    ambiguous_place_nouns: Tuple[str, ...]
    generic_places: FrozenSet[str]
    place_descriptors: FrozenSet[str]
    non_place_leads: FrozenSet[str]
    non_place_proper: FrozenSet[str]
    weather_terms: Tuple[str, ...]
    weather_synonyms: Mapping[str, str]
    weather_anchors: FrozenSet[str]
    self_anchored_weather: FrozenSet[str]
    negation_markers: Tuple[str, ...] = NEGATION_MARKERS
    determiners: Tuple[str, ...] = DETERMINERS
    location_prepositions: Tuple[str, ...] = LOCATION_PREPOSITIONS
    generic_prepositions: Tuple[str, ...] = GENERIC_PREPOSITIONS
    destination_prepositions: Tuple[str, ...] = DESTINATION_PREPOSITIONS
    motion_verbs: Tuple[str, ...] = MOTION_VERBS
    temporal_fillers: Tuple[str, ...] = TEMPORAL_FILLERS
    intensifiers: FrozenSet[str] = frozenset(INTENSIFIERS)
    non_place_heads: FrozenSet[str] = frozenset()

    def resolve_mood(self, token: str) -> Optional[str]:
        return _resolve(token, _resolution_tables(self, "mood"))

    def resolve_weather(self, token: str) -> Optional[str]:
        return _resolve(token, _resolution_tables(self, "weather"))

    def mood_intensity_for(self, canonical: str) -> float:
        return self.mood_intensity.get(normalize_key(canonical), 0.5)

    def mood_axes_for(self, canonical: str) -> MoodAxes:
        return self.mood_axes.get(normalize_key(canonical), NEUTRAL_AXES)


_Tables = Tuple[Dict[str, str], Dict[str, str], Dict[str, str], Dict[str, str]]


def _resolve(token: str, tables: _Tables) -> Optional[str]:
    if not token:
        return None
    exact_canon, exact_syn, key_canon, key_syn = tables

    text = normalize_text(token)
    if text in exact_canon:
        return exact_canon[text]
    if text in exact_syn:
        return exact_syn[text]

    key = normalize_key(token)
    if not key:
        return None
    if key in key_canon:
        return key_canon[key]
    return key_syn.get(key)


@lru_cache(maxsize=16)
def _resolution_tables(lexicon: Lexicon, kind: str) -> _Tables:
    if kind == "mood":
        canonical, synonyms = lexicon.moods, lexicon.mood_synonyms
    else:
        canonical, synonyms = lexicon.weather_terms, lexicon.weather_synonyms
    exact_canon = {c.lower(): c for c in canonical}
    exact_syn = {s.lower(): target for s, target in synonyms.items()}
    key_canon = {normalize_key(c): c for c in canonical}
    key_syn = {normalize_key(s): target for s, target in synonyms.items()}
    return exact_canon, exact_syn, key_canon, key_syn


def _unique(words) -> Tuple[str, ...]:
    seen = []
    for w in words:
        w = normalize_text(w)
        if w and w not in seen:
            seen.append(w)
    return tuple(seen)


def _flatten(categories: Mapping[str, List[str]]) -> Tuple[str, ...]:
    return _unique(w for key, words in categories.items() if not key.startswith("_") for w in words)


def build_lexicon(moods: dict, weather: dict, places: dict) -> Lexicon:
    """Build a Lexicon from the three raw JSON tables."""
    mood_axes = {
        normalize_key(mood): MoodAxes(*values) for mood, values in moods.get("axes", {}).items()
    }
    mood_intensity = {
        normalize_key(mood): float(value) for mood, value in moods.get("intensity", {}).items()
    }
    blacklist = {mood: tuple(patterns) for mood, patterns in moods.get("blacklist", {}).items()}

    return Lexicon(
        moods=_unique(moods["canonical"]),
        mood_synonyms=MappingProxyType(dict(moods.get("synonyms", {}))),
        mood_intensity=MappingProxyType(mood_intensity),
        mood_axes=MappingProxyType(mood_axes),
        mood_blacklist=MappingProxyType(blacklist),
        place_nouns=_flatten(places["place_nouns"]),
        ambiguous_place_nouns=_flatten(places["ambiguous_place_nouns"]),
        generic_places=frozenset(_unique(places.get("generic_places", []))),
        place_descriptors=frozenset(_unique(places.get("place_descriptors", []))),
        non_place_leads=frozenset(_unique(places.get("non_place_leads", []))),
        non_place_proper=frozenset(places.get("non_place_proper", [])),
        non_place_heads=frozenset(_unique(places.get("non_place_heads", []))),
        weather_terms=_unique(weather["canonical"]),
        weather_synonyms=MappingProxyType(dict(weather.get("synonyms", {}))),
        weather_anchors=frozenset(_unique(weather.get("anchors", []))),
        self_anchored_weather=frozenset(_unique(weather.get("self_anchored", []))),
    )


@lru_cache(maxsize=1)
def get_lexicon() -> Lexicon:
    """Load the bundled tables once per process."""
    return build_lexicon(
        _load_json("moods.json"),
        _load_json("weather.json"),
        _load_json("places.json"),
    )


# ── Public normalization API ──────────────────────────────────────────────────

def normalize_mood_token(token: str, lexicon: Optional[Lexicon] = None) -> Optional[str]:
    """Resolve a token or phrase to a canonical mood, or None.

    Examples:
        >>> normalize_mood_token("Thrilled")
        'excited'
        >>> normalize_mood_token("in-love")
        'in love'
    """
    return (lexicon or get_lexicon()).resolve_mood(token)


def normalize_weather_token(token: str, lexicon: Optional[Lexicon] = None) -> Optional[str]:
    """Resolve a token or phrase to a canonical weather term, or None."""
    return (lexicon or get_lexicon()).resolve_weather(token)


def get_mood_features(token: str, lexicon: Optional[Lexicon] = None) -> MoodFeatures:
    """Canonical mood, intensity and affect axes for any input.

    Never raises: unresolved or non-string input yields
    ``MoodFeatures(None, 0.5, NEUTRAL_AXES)``.
    """
    lex = lexicon or get_lexicon()
    canonical = lex.resolve_mood(token) if isinstance(token, str) else None
    if canonical is None:
        return MoodFeatures(canonical=None, intensity=0.5, axes=NEUTRAL_AXES)
    return MoodFeatures(
        canonical=canonical,
        intensity=lex.mood_intensity_for(canonical),
        axes=lex.mood_axes_for(canonical),
    )


def validate_lexicon(lexicon: Optional[Lexicon] = None) -> List[str]:
    """List lexicon defects such as dangling synonyms.

    Returns:
        Human-readable problems; empty when the tables are consistent
    """
    lex = lexicon or get_lexicon()
    problems: List[str] = []

    mood_keys = {normalize_key(m) for m in lex.moods}
    for synonym, target in lex.mood_synonyms.items():
        if lex.resolve_mood(target) not in lex.moods:
            problems.append(f"mood synonym {synonym!r} -> {target!r} is not canonical")
    for key in lex.mood_intensity:
        if key not in mood_keys:
            problems.append(f"mood intensity key {key!r} is not canonical")
    for key in lex.mood_axes:
        if key not in mood_keys:
            problems.append(f"mood axes key {key!r} is not canonical")
    for mood in lex.mood_blacklist:
        if mood not in lex.moods:
            problems.append(f"mood blacklist key {mood!r} is not canonical")

    for synonym, target in lex.weather_synonyms.items():
        if lex.resolve_weather(target) not in lex.weather_terms:
            problems.append(f"weather synonym {synonym!r} -> {target!r} is not canonical")
    vocabulary = set(lex.weather_terms) | {normalize_text(s) for s in lex.weather_synonyms}
    for term in lex.self_anchored_weather:
        if term not in vocabulary:
            problems.append(f"self-anchored weather term {term!r} is not in the vocabulary")

    overlap = set(lex.place_nouns) & set(lex.ambiguous_place_nouns)
    for noun in sorted(overlap):
        problems.append(f"place noun {noun!r} is both canonical and ambiguous")

    return problems
