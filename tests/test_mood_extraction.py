"""Tests for mood extraction."""

from scenestate.lexicon import get_lexicon
from scenestate.mood_extractor import extract_mood, mood_candidates, vocabulary_candidates
from scenestate.scoring import DEFAULT_WEIGHTS


def _mood(text):
    best = extract_mood(text)
    return best.value if best else None


def test_explicit_feeling_phrase():
    best = extract_mood("I'm feeling a bit anxious about the storm.")
    assert best.value == "anxious"
    assert best.strategy == "phrase"
    assert best.score == 0.85


def test_phrase_resolves_synonym():
    assert _mood("Honestly, I feel thrilled.") == "excited"


def test_phrase_multiword_mood():
    assert _mood("I'm in love with this city") == "in love"


def test_phrase_allows_low_intensity_mood():
    """Test explicit 'I'm fine' is kept even though 'fine' is weak."""
    assert _mood("I'm fine, thanks.") == "fine"


def test_vocabulary_scan():
    assert _mood("She smiled, happy at last.") == "happy"


def test_intensity_breaks_vocabulary_ties():
    """Test 'hopeful' (0.55) outranks 'tired' (0.40)."""
    assert _mood("We wandered through the Grand Library, tired but hopeful.") == "hopeful"


def test_low_intensity_vocabulary_is_below_threshold():
    assert _mood("Everything is fine.") is None


def test_vocabulary_scores():
    found = vocabulary_candidates("She seemed anxious, or maybe just okay.", get_lexicon(), DEFAULT_WEIGHTS)
    scores = {c.value: c.score for c in found}
    assert scores["anxious"] == 0.71
    assert scores["okay"] < 0.6


class TestNegation:
    def test_not(self):
        assert _mood("I'm not happy today") is None

    def test_contraction(self):
        assert _mood("She wasn't angry.") is None

    def test_no_longer(self):
        assert _mood("He was no longer scared.") is None

    def test_negation_does_not_cross_sentences(self):
        assert _mood("I did not sleep. Calm settled over the house, tense and waiting.") == "tense"


class TestBlacklist:
    def test_happy_birthday_poisons_vocabulary(self):
        assert _mood("He was happy. Happy birthday!") is None

    def test_content_of(self):
        assert _mood("The content of the letter was short.") is None

    def test_explicit_phrase_survives_elsewhere(self):
        assert _mood("Happy birthday! I feel happy.") == "happy"

    def test_other_moods_unaffected(self):
        assert _mood("Happy hour was loud and I was nervous.") == "nervous"


def test_empty_text():
    assert extract_mood("") is None


def test_candidates_have_spans():
    text = "I'm feeling a bit anxious."
    candidates = mood_candidates(text)
    assert candidates
    for c in candidates:
        assert text[c.start:c.end].lower() == "anxious"
