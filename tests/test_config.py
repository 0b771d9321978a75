"""Tests for configuration loading."""

import json

import pytest
from scenestate import HeuristicExtractor
from scenestate.config import CONFIG_FILENAME, ExtractionConfig, load_config
from scenestate.scoring import DEFAULT_WEIGHTS


class NoDates:
    def search(self, text, reference):
        return []


@pytest.fixture
def dirs(tmp_path, monkeypatch):
    home = tmp_path / "home"
    work = tmp_path / "work"
    home.mkdir()
    work.mkdir()
    monkeypatch.setenv("HOME", str(home))
    monkeypatch.chdir(work)
    return home, work


def _write(directory, data):
    path = directory / CONFIG_FILENAME
    path.write_text(data if isinstance(data, str) else json.dumps(data), encoding="utf-8")
    return path


def test_defaults(dirs):
    config = load_config(environ={})
    assert config == ExtractionConfig()
    assert config.strategy == "heuristic"
    assert config.timeout_ms == 1500
    assert config.weights is DEFAULT_WEIGHTS


def test_local_file_overrides_home(dirs):
    home, work = dirs
    _write(home, {"strategy": "endpoint", "endpoint": "http://home.test", "timeout_ms": 900})
    _write(work, {"endpoint": "http://work.test"})
    config = load_config(environ={})
    assert config.strategy == "endpoint"
    assert config.endpoint == "http://work.test"
    assert config.timeout_ms == 900


def test_explicit_path_replaces_local(dirs, tmp_path):
    _, work = dirs
    _write(work, {"granularity": "datetime"})
    explicit = tmp_path / "custom.json"
    explicit.write_text(json.dumps({"api_model": "tiny"}), encoding="utf-8")
    config = load_config(str(explicit), environ={})
    assert config.api_model == "tiny"
    assert config.granularity == "date"


def test_environment_wins(dirs):
    _, work = dirs
    _write(work, {"strategy": "endpoint", "endpoint": "http://file.test"})
    env = {"SCENESTATE_STRATEGY": "api", "SCENESTATE_TIMEOUT_MS": "2500", "SCENESTATE_GRANULARITY": "datetime"}
    config = load_config(environ=env)
    assert config.strategy == "api"
    assert config.endpoint == "http://file.test"
    assert config.timeout_ms == 2500
    assert config.granularity == "datetime"


def test_empty_env_values_are_ignored(dirs):
    assert load_config(environ={"SCENESTATE_STRATEGY": ""}).strategy == "heuristic"


def test_weight_overrides(dirs):
    _, work = dirs
    _write(work, {"weights": {"min_score": 0.7, "not_a_weight": 1.0}})
    config = load_config(environ={})
    assert config.weights.min_score == 0.7
    assert DEFAULT_WEIGHTS.min_score != 0.7


def test_unreadable_file_is_skipped(dirs):
    _, work = dirs
    _write(work, "{not json")
    assert load_config(environ={}) == ExtractionConfig()


def test_non_object_file_is_skipped(dirs):
    _, work = dirs
    _write(work, ["endpoint"])
    assert load_config(environ={}).strategy == "heuristic"


def test_unknown_keys_are_ignored(dirs):
    _, work = dirs
    _write(work, {"strategy": "llm", "colour": "blue"})
    assert load_config(environ={}).strategy == "llm"


@pytest.mark.parametrize("env", [
    {"SCENESTATE_STRATEGY": "magic"},
    {"SCENESTATE_GRANULARITY": "weekly"},
    {"SCENESTATE_TIMEOUT_MS": "soon"},
    {"SCENESTATE_TIMEOUT_MS": "0"},
])
def test_invalid_values_raise(dirs, env):
    with pytest.raises(ValueError):
        load_config(environ=env)


def test_string_weight_is_converted(dirs):
    _, work = dirs
    _write(work, {"weights": {"min_score": "0.7"}})
    config = load_config(environ={})
    assert config.weights.min_score == 0.7


def test_string_weight_keeps_extraction_working(dirs):
    _, work = dirs
    _write(work, {"weights": {"min_score": "0.6"}})
    extractor = HeuristicExtractor(weights=load_config(environ={}).weights, date_parser=NoDates())
    patch = extractor.extract("Let's meet at the cafe. It's cold outside. I'm feeling anxious.")
    assert patch["place"] == "the cafe"
    assert patch["mood"] == "anxious"
    assert patch["weather"] == "cold"


@pytest.mark.parametrize("value", ["high", None, [0.7], {"x": 1}])
def test_invalid_weight_value_raises(dirs, value):
    _, work = dirs
    _write(work, {"weights": {"min_score": value}})
    with pytest.raises(ValueError):
        load_config(environ={})
