"""Tests for the remote classifier extractors and their fallback."""

import asyncio
import json
from types import SimpleNamespace

import httpx
import pytest
from scenestate import (
    ApiExtractor,
    EndpointExtractor,
    ExtractionConfig,
    HeuristicExtractor,
    SceneState,
    build_extractor,
)
from scenestate.remote_extractor import _RemoteExtractor, _parse_llm_json, patch_from_body


ENDPOINT = "http://classifier.test/classify"
TEXT = "The mood was tense, but the room was warm."
HEURISTIC_PATCH = {"mood": "tense", "weather": "warm"}


class NoDates:
    def search(self, text, reference):
        return []


@pytest.fixture
def fallback():
    return HeuristicExtractor(date_parser=NoDates())


def _endpoint(handler, fallback, timeout_ms=1500):
    return EndpointExtractor(ENDPOINT, timeout_ms=timeout_ms, fallback=fallback, transport=httpx.MockTransport(handler))


# ── Response parsing ──────────────────────────────────────────────────────────

class TestPatchFromBody:
    def test_copies_known_fields(self):
        body = {"dateTime": "Oct 20, 2026", "place": "the inn", "confidence": 0.9, "mood": ""}
        assert patch_from_body(body) == {"date_time": "Oct 20, 2026", "place": "the inn"}

    def test_legacy_aliases(self):
        body = {"inRoleplayDateTime": "Oct 21, 2026", "sceneNotes": "candles lit"}
        assert patch_from_body(body) == {"date_time": "Oct 21, 2026", "notes": "candles lit"}

    def test_non_string_values_are_dropped(self):
        assert patch_from_body({"mood": 3, "weather": None}) == {}

    def test_empty_object(self):
        assert patch_from_body({}) == {}

    @pytest.mark.parametrize("body", [[], "rain", 42, None])
    def test_not_an_object(self, body):
        assert patch_from_body(body) is None


class TestParseLlmJson:
    def test_plain(self):
        assert _parse_llm_json('{"mood": "calm"}') == {"mood": "calm"}

    def test_fenced(self):
        raw = 'Here you go:\n```json\n{"weather": "rain"}\n```'
        assert _parse_llm_json(raw) == {"weather": "rain"}

    def test_trailing_comma(self):
        assert _parse_llm_json('{"place": "the docks",}') == {"place": "the docks"}

    def test_skips_braces_that_are_not_json(self):
        assert _parse_llm_json('use {placeholders} then {"mood": "calm"}') == {"mood": "calm"}

    def test_first_object_wins(self):
        assert _parse_llm_json('{"mood": "calm"} {"mood": "tense"}') == {"mood": "calm"}

    def test_nested_braces(self):
        assert _parse_llm_json('noise {"a": {"b": 1}} more') == {"a": {"b": 1}}

    @pytest.mark.parametrize("raw", ["", "no json here", '{"unterminated": 1', None])
    def test_unrecoverable(self, raw):
        assert _parse_llm_json(raw) is None


# ── Remote extractor base ─────────────────────────────────────────────────────

class TestRemoteExtractorBase:
    def test_cannot_instantiate_without_request_methods(self):
        with pytest.raises(TypeError):
            _RemoteExtractor()

    def test_subclass_gets_fallback_plumbing(self, fallback):
        class Offline(_RemoteExtractor):
            def request_patch(self, text, previous_state=None):
                return None

            async def arequest_patch(self, text, previous_state=None, cancel=None):
                return None

        extractor = Offline(fallback=fallback)
        assert extractor.extract(TEXT) == HEURISTIC_PATCH
        assert asyncio.run(extractor.aextract(TEXT)) == HEURISTIC_PATCH


# ── EndpointExtractor ─────────────────────────────────────────────────────────

class TestEndpointExtractor:
    def test_success_returns_remote_fields(self, fallback):
        seen = {}

        def handler(request):
            seen["body"] = json.loads(request.content)
            return httpx.Response(200, json={"place": "the lighthouse", "mood": "wistful"})

        extractor = _endpoint(handler, fallback)
        previous = SceneState(place="the docks", date_time="Oct 19, 2026")
        assert extractor.extract(TEXT, previous) == {"place": "the lighthouse", "mood": "wistful"}
        assert seen["body"]["text"] == TEXT
        assert seen["body"]["previousState"]["place"] == "the docks"
        assert seen["body"]["previousState"]["dateTime"] == "Oct 19, 2026"

    def test_empty_object_is_a_valid_answer(self, fallback):
        extractor = _endpoint(lambda request: httpx.Response(200, json={}), fallback)
        assert extractor.extract(TEXT) == {}

    def test_server_error_falls_back(self, fallback):
        extractor = _endpoint(lambda request: httpx.Response(500, text="oops"), fallback)
        assert extractor.extract(TEXT) == HEURISTIC_PATCH

    def test_invalid_json_falls_back(self, fallback):
        extractor = _endpoint(lambda request: httpx.Response(200, text="not json"), fallback)
        assert extractor.extract(TEXT) == HEURISTIC_PATCH

    def test_non_object_body_falls_back(self, fallback):
        extractor = _endpoint(lambda request: httpx.Response(200, json=["rain"]), fallback)
        assert extractor.extract(TEXT) == HEURISTIC_PATCH

    def test_timeout_falls_back(self, fallback):
        def handler(request):
            raise httpx.ReadTimeout("too slow", request=request)

        assert _endpoint(handler, fallback).extract(TEXT) == HEURISTIC_PATCH

    def test_connection_error_falls_back(self, fallback):
        def handler(request):
            raise httpx.ConnectError("refused", request=request)

        assert _endpoint(handler, fallback).extract(TEXT) == HEURISTIC_PATCH

    def test_fallback_meta_keeps_confidences(self, fallback):
        extractor = _endpoint(lambda request: httpx.Response(503), fallback)
        result = extractor.extract_with_meta(TEXT)
        assert result.patch == HEURISTIC_PATCH
        assert result.confidences["mood"] > 0

    def test_remote_meta_has_no_confidences(self, fallback):
        extractor = _endpoint(lambda request: httpx.Response(200, json={"mood": "calm"}), fallback)
        result = extractor.extract_with_meta(TEXT)
        assert result.patch == {"mood": "calm"}
        assert result.confidences == {}

    def test_empty_text_skips_the_call(self, fallback):
        def handler(request):
            raise AssertionError("should not be called")

        assert _endpoint(handler, fallback).extract("  ") == {}


class TestEndpointExtractorAsync:
    def test_success(self, fallback):
        async def handler(request):
            return httpx.Response(200, json={"weather": "fog"})

        extractor = _endpoint(handler, fallback)
        assert asyncio.run(extractor.aextract(TEXT)) == {"weather": "fog"}

    def test_slow_classifier_times_out(self, fallback):
        async def handler(request):
            await asyncio.sleep(2)
            return httpx.Response(200, json={"weather": "fog"})

        extractor = _endpoint(handler, fallback, timeout_ms=50)
        assert asyncio.run(extractor.aextract(TEXT)) == HEURISTIC_PATCH

    def test_cancel_abandons_the_call(self, fallback):
        async def handler(request):
            await asyncio.sleep(5)
            return httpx.Response(200, json={"weather": "fog"})

        extractor = _endpoint(handler, fallback, timeout_ms=10000)

        async def run():
            cancel = asyncio.Event()
            cancel.set()
            return await extractor.aextract(TEXT, cancel=cancel)

        assert asyncio.run(run()) == HEURISTIC_PATCH

    def test_error_status_falls_back(self, fallback):
        async def handler(request):
            return httpx.Response(502)

        extractor = _endpoint(handler, fallback)
        assert asyncio.run(extractor.aextract(TEXT)) == HEURISTIC_PATCH


# ── ApiExtractor ──────────────────────────────────────────────────────────────

def _fake_client(content=None, error=None):
    calls = []

    def create(**kwargs):
        calls.append(kwargs)
        if error:
            raise error
        message = SimpleNamespace(content=content)
        return SimpleNamespace(choices=[SimpleNamespace(message=message)])

    client = SimpleNamespace(chat=SimpleNamespace(completions=SimpleNamespace(create=create)))
    return client, calls


class TestApiExtractor:
    def test_success(self, fallback):
        client, calls = _fake_client('```json\n{"mood": "wistful", "dateTime": "Oct 20, 2026"}\n```')
        extractor = ApiExtractor(model="test-model", fallback=fallback, client=client)
        assert extractor.extract(TEXT, SceneState(mood="calm")) == {"mood": "wistful", "date_time": "Oct 20, 2026"}
        assert calls[0]["model"] == "test-model"
        prompt = calls[0]["messages"][1]["content"]
        assert TEXT in prompt
        assert '"mood": "calm"' in prompt

    def test_client_error_falls_back(self, fallback):
        client, _ = _fake_client(error=RuntimeError("rate limited"))
        extractor = ApiExtractor(fallback=fallback, client=client)
        assert extractor.extract(TEXT) == HEURISTIC_PATCH

    def test_unparseable_reply_falls_back(self, fallback):
        client, _ = _fake_client("I think the mood is tense.")
        extractor = ApiExtractor(fallback=fallback, client=client)
        assert extractor.extract(TEXT) == HEURISTIC_PATCH

    def test_async(self, fallback):
        client, _ = _fake_client('{"place": "the inn"}')
        extractor = ApiExtractor(fallback=fallback, client=client)
        assert asyncio.run(extractor.aextract(TEXT)) == {"place": "the inn"}


# ── build_extractor ───────────────────────────────────────────────────────────

class TestBuildExtractor:
    def test_default_is_heuristic(self):
        assert isinstance(build_extractor(), HeuristicExtractor)

    def test_endpoint(self):
        extractor = build_extractor(ExtractionConfig(strategy="endpoint", endpoint=ENDPOINT, timeout_ms=900))
        assert isinstance(extractor, EndpointExtractor)
        assert extractor.endpoint == ENDPOINT
        assert extractor.timeout_ms == 900

    def test_llm_alias(self):
        extractor = build_extractor(ExtractionConfig(strategy="llm", endpoint=ENDPOINT))
        assert isinstance(extractor, EndpointExtractor)

    def test_endpoint_without_url_uses_heuristics(self):
        assert isinstance(build_extractor(ExtractionConfig(strategy="endpoint")), HeuristicExtractor)

    def test_api(self):
        config = ExtractionConfig(strategy="api", api_model="small-model", api_base_url="http://llm.test/v1")
        extractor = build_extractor(config, api_key="sk-test")
        assert isinstance(extractor, ApiExtractor)
        assert extractor.model == "small-model"
        assert extractor.base_url == "http://llm.test/v1"

    def test_granularity_is_passed_to_fallback(self):
        extractor = build_extractor(ExtractionConfig(strategy="endpoint", endpoint=ENDPOINT, granularity="datetime"))
        assert extractor.fallback.granularity == "datetime"
