"""Integration tests for SceneState extraction."""

import asyncio
from datetime import datetime

import pytest
from scenestate import (
    ExtractionResult,
    HeuristicExtractor,
    ParsedDate,
    SceneState,
    diff_states,
    extract,
    summarize_diffs,
)


NOW = datetime(2026, 10, 19, 15, 0)


class KeywordParser:
    """Date parser fake that understands 'tomorrow' and 'tonight' only."""

    def search(self, text, reference):
        lowered = text.lower()
        if "tomorrow" in lowered:
            start = lowered.index("tomorrow")
            return [ParsedDate("tomorrow", reference.replace(day=reference.day + 1), start=start)]
        if "tonight" in lowered:
            start = lowered.index("tonight")
            return [ParsedDate("tonight", reference.replace(hour=20), start=start)]
        return []


class BrokenParser:
    def search(self, text, reference):
        raise RuntimeError("parser exploded")


@pytest.fixture
def extractor():
    return HeuristicExtractor(date_parser=KeywordParser())


def test_cafe_meeting(extractor):
    patch = extractor.extract("Let's meet tomorrow evening at the cafe.", now=NOW)
    assert patch["place"] == "the cafe"
    assert patch["date_time"] == "Oct 20, 2026"
    assert "mood" not in patch


def test_anxious_storm(extractor):
    patch = extractor.extract("I'm feeling a bit anxious about the storm rolling in tonight.", now=NOW)
    assert patch["mood"] == "anxious"
    assert patch["weather"] == "storm"
    assert patch["date_time"]
    assert "place" not in patch


def test_grand_library(extractor):
    patch = extractor.extract("We wandered through the Grand Library, tired but hopeful.", now=NOW)
    assert "Grand Library" in patch["place"]
    assert patch["mood"] in ("tired", "hopeful")


def test_tense_warm_room(extractor):
    patch = extractor.extract("The mood was tense, but the room was warm.", now=NOW)
    assert patch == {"mood": "tense", "weather": "warm"}


def test_datetime_granularity(extractor):
    patch = extractor.extract("Let's meet tomorrow evening at the cafe.", granularity="datetime", now=NOW)
    assert patch["date_time"] == "Oct 20, 2026, 07 PM"


def test_granularity_default_from_instance():
    extractor = HeuristicExtractor(granularity="datetime", date_parser=KeywordParser())
    patch = extractor.extract("We leave tonight.", now=NOW)
    assert patch["date_time"] == "Oct 19, 2026, 10 PM"


def test_invalid_granularity(extractor):
    with pytest.raises(ValueError):
        extractor.extract("tomorrow", granularity="hourly")
    with pytest.raises(ValueError):
        HeuristicExtractor(granularity="weekly")


def test_empty_text(extractor):
    assert extractor.extract("") == {}
    assert extractor.extract("   \n") == {}


def test_nothing_found(extractor):
    assert extractor.extract("Okay.", now=NOW) == {}


def test_deterministic(extractor):
    text = "I'm feeling a bit anxious about the storm rolling in tonight."
    assert extractor.extract(text, now=NOW) == extractor.extract(text, now=NOW)


def test_patch_values_are_non_empty_strings(extractor):
    patch = extractor.extract("We wandered through the Grand Library, tired but hopeful.", now=NOW)
    assert all(isinstance(v, str) and v for v in patch.values())


def test_field_failure_is_isolated():
    extractor = HeuristicExtractor(date_parser=BrokenParser())
    patch = extractor.extract("I'm feeling a bit anxious about the storm rolling in tonight.", now=NOW)
    assert "date_time" not in patch
    assert patch["mood"] == "anxious"


def test_strategy_failure_is_isolated(extractor, monkeypatch):
    def boom(*args, **kwargs):
        raise ValueError("bad pattern")

    monkeypatch.setattr("scenestate.extractor.extract_place", boom)
    patch = extractor.extract("Let's meet tomorrow evening at the cafe.", now=NOW)
    assert "place" not in patch
    assert patch["date_time"] == "Oct 20, 2026"


def test_extract_with_meta(extractor):
    text = "I'm feeling a bit anxious about the storm rolling in tonight."
    result = extractor.extract_with_meta(text, now=NOW)
    assert isinstance(result, ExtractionResult)
    assert result.confidences["mood"] == 0.85
    assert result.confidences["weather"] == 0.6
    assert result.confidences["date_time"] == 0.9
    assert result.spans["mood"].text == "anxious"
    assert result.spans["weather"].text == "storm"
    assert set(result.confidences) == set(result.patch)


def test_previous_state_is_accepted(extractor):
    previous = SceneState(place="the docks", mood="calm")
    patch = extractor.extract("The mood was tense, but the room was warm.", previous, now=NOW)
    assert patch["mood"] == "tense"


def test_aextract(extractor):
    patch = asyncio.run(extractor.aextract("The mood was tense, but the room was warm.", now=NOW))
    assert patch == {"mood": "tense", "weather": "warm"}


def test_merge_and_summarize(extractor):
    previous = SceneState(place="the docks", mood="calm")
    patch = extractor.extract("The mood was tense, but the room was warm.", previous, now=NOW)
    summary = summarize_diffs(diff_states(previous, previous.updated(patch)))
    assert summary == 'mood: "calm" → "tense"\nweather: "" → "warm"'


def test_module_level_extract():
    """Default extractor with the real date parser."""
    pytest.importorskip("dateparser")
    assert extract("The mood was tense, but the room was warm.") == {"mood": "tense", "weather": "warm"}
