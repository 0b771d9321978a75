"""Tests for candidate selection and scoring weights."""

import pytest
from scenestate import DEFAULT_WEIGHTS, Candidate, ScoringWeights, choose_best
from scenestate.scoring import MIN_SCORE, clamp_score


def test_highest_score_wins():
    best = choose_best([Candidate("a", 0.7), Candidate("b", 0.9), Candidate("c", 0.8)])
    assert best.value == "b"


def test_first_candidate_wins_ties():
    best = choose_best([Candidate("first", 0.8), Candidate("second", 0.8)])
    assert best.value == "first"


def test_empty_is_none():
    assert choose_best([]) is None


def test_below_threshold_is_none():
    assert choose_best([Candidate("weak", 0.59)]) is None


def test_threshold_is_inclusive():
    assert choose_best([Candidate("edge", 0.6)]).value == "edge"


def test_custom_threshold():
    assert choose_best([Candidate("x", 0.7)], min_score=0.75) is None


def test_accepts_generators():
    best = choose_best(Candidate(v, s) for v, s in [("a", 0.65), ("b", 0.61)])
    assert best.value == "a"


def test_clamp_score():
    assert clamp_score(1.3) == 1.0
    assert clamp_score(-0.2) == 0.0
    # Floating point sums land exactly on the threshold
    assert clamp_score(0.45 + 0.10 + 0.05) == MIN_SCORE


def test_default_weights():
    assert DEFAULT_WEIGHTS.min_score == 0.6
    assert DEFAULT_WEIGHTS.place_proper_noun == 0.90
    assert DEFAULT_WEIGHTS.negation_before == 16
    assert DEFAULT_WEIGHTS.weather_anchor_window == 5


def test_with_overrides_returns_copy():
    weights = DEFAULT_WEIGHTS.with_overrides({"min_score": 0.7, "mood_phrase": 0.9})
    assert weights.min_score == 0.7
    assert weights.mood_phrase == 0.9
    assert DEFAULT_WEIGHTS.min_score == 0.6


def test_with_overrides_rejects_unknown_names():
    with pytest.raises(KeyError):
        DEFAULT_WEIGHTS.with_overrides({"no_such_weight": 1.0})


def test_weights_are_frozen():
    with pytest.raises(Exception):
        ScoringWeights().min_score = 0.1


def test_with_overrides_converts_numeric_strings():
    weights = DEFAULT_WEIGHTS.with_overrides({"min_score": "0.7", "weather_anchor_window": 3.0})
    assert weights.min_score == 0.7
    assert isinstance(weights.min_score, float)
    assert weights.weather_anchor_window == 3
    assert isinstance(weights.weather_anchor_window, int)


@pytest.mark.parametrize("overrides", [
    {"min_score": "high"},
    {"min_score": None},
    {"min_score": True},
    {"mood_phrase": [0.9]},
    {"weather_anchor_window": 2.5},
])
def test_with_overrides_rejects_bad_values(overrides):
    with pytest.raises(ValueError):
        DEFAULT_WEIGHTS.with_overrides(overrides)
