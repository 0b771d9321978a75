"""Remote classifier extractors with heuristic fallback.

Two alternatives to the heuristic pass, sharing its interface:

    EndpointExtractor   POST {"text", "previousState"} to an HTTP classifier (httpx)
    ApiExtractor        ask an OpenAI-compatible chat-completions API (openai, optional)

Both return the classifier's fields verbatim when the call succeeds, and the
heuristic patch when it times out, is cancelled, errors or answers with
anything but a JSON object.

Usage:
    from scenestate.remote_extractor import EndpointExtractor

    extractor = EndpointExtractor("http://localhost:8000/classify", timeout_ms=1200)
    patch = extractor.extract("The rain hammered the windows of the inn.")
"""

from __future__ import annotations

import abc
import asyncio
import json
import logging
import re
import time
from datetime import datetime
from typing import Any, Dict, Optional

import httpx

from .config import ExtractionConfig
from .extractor import HeuristicExtractor, Patch, PreviousState
from .types import FIELD_ALIASES, ExtractionResult, SceneState

logger = logging.getLogger("scenestate.remote")

# Calls slower than this are logged at info level
SLOW_CALL_MS = 1000


# ── System prompt for the API classifier ──────────────────────────────────────
EXTRACTION_PROMPT = """Read the roleplay message below and report the current scene state. Return ONLY a JSON object with any of these keys:

dateTime: in-story date and/or time, e.g. "Oct 20, 2026" or "Oct 20, 2026, 07 PM"
place: where the scene takes place, e.g. "the Grand Library"
mood: one or two words, e.g. "anxious", "hopeful"
weather: one or two words, e.g. "storm", "clear skies"

Rules:
- Only report what the message states or clearly implies
- If someone says "I'm not X", do NOT report X
- Omit keys you are unsure about
- If nothing applies, return {}
- Return ONLY the JSON, no explanation

Previous state: """


def _wire_state(previous_state: PreviousState) -> Dict[str, str]:
    state = previous_state if isinstance(previous_state, SceneState) else SceneState.from_dict(previous_state)
    return {
        "dateTime": state.date_time,
        "place": state.place,
        "mood": state.mood,
        "weather": state.weather,
        "notes": state.notes,
    }


_FENCE_RE = re.compile(r"```(?:json)?\s*(.*?)```", re.DOTALL)
_TRAILING_COMMA_RE = re.compile(r",\s*([}\]])")


def _parse_llm_json(raw: str) -> Optional[dict]:
    """First JSON object in model output.

    Code fences are unwrapped and trailing commas tolerated; any text
    around the object is ignored.

    Returns:
        The parsed object, or None if the output holds no object
    """
    text = (raw or "").strip()
    fenced = _FENCE_RE.search(text)
    if fenced:
        text = fenced.group(1)

    decoder = json.JSONDecoder()
    for attempt in (text, _TRAILING_COMMA_RE.sub(r"\1", text)):
        start = attempt.find("{")
        while start != -1:
            try:
                obj, _ = decoder.raw_decode(attempt, start)
            except json.JSONDecodeError:
                obj = None
            if isinstance(obj, dict):
                return obj
            start = attempt.find("{", start + 1)
    return None


def patch_from_body(body: Any) -> Optional[Patch]:
    """Copy the recognized string fields of a classifier response.

    Returns:
        The patch (possibly empty), or None if body is not a JSON object
    """
    if not isinstance(body, dict):
        return None
    patch: Patch = {}
    for key, value in body.items():
        name = FIELD_ALIASES.get(key)
        if name and isinstance(value, str) and value.strip() and name not in patch:
            patch[name] = value
    return patch


class _RemoteExtractor(abc.ABC):
    """Shared fallback plumbing; subclasses implement the two request methods.

    Both return the classifier's patch, or None when the call failed and
    the heuristic fallback should answer instead.
    """

    def __init__(self, timeout_ms: int = 1500, fallback: Optional[HeuristicExtractor] = None):
        self.timeout_ms = timeout_ms
        self.fallback = fallback or HeuristicExtractor()

    @property
    def timeout_s(self) -> float:
        return self.timeout_ms / 1000.0

    @abc.abstractmethod
    def request_patch(self, text: str, previous_state: PreviousState = None) -> Optional[Patch]:
        """One synchronous classifier call."""

    @abc.abstractmethod
    async def arequest_patch(
        self,
        text: str,
        previous_state: PreviousState = None,
        cancel: Optional[asyncio.Event] = None,
    ) -> Optional[Patch]:
        """One classifier call bounded by the timeout and ``cancel``."""

    def extract(
        self,
        text: str,
        previous_state: PreviousState = None,
        granularity: Optional[str] = None,
        now: Optional[datetime] = None,
    ) -> Patch:
        if not text or not text.strip():
            return {}
        patch = self.request_patch(text, previous_state)
        if patch is None:
            logger.debug("Remote classifier unavailable, using heuristics")
            return self.fallback.extract(text, previous_state, granularity, now)
        return patch

    def extract_with_meta(
        self,
        text: str,
        previous_state: PreviousState = None,
        granularity: Optional[str] = None,
        now: Optional[datetime] = None,
    ) -> ExtractionResult:
        """Remote patches carry no confidences or spans; the fallback's do."""
        if not text or not text.strip():
            return ExtractionResult()
        patch = self.request_patch(text, previous_state)
        if patch is None:
            return self.fallback.extract_with_meta(text, previous_state, granularity, now)
        return ExtractionResult(patch=patch)

    async def aextract(
        self,
        text: str,
        previous_state: PreviousState = None,
        granularity: Optional[str] = None,
        now: Optional[datetime] = None,
        cancel: Optional[asyncio.Event] = None,
    ) -> Patch:
        """Async extraction; ``cancel`` abandons the remote call early."""
        if not text or not text.strip():
            return {}
        patch = await self.arequest_patch(text, previous_state, cancel)
        if patch is None:
            return await self.fallback.aextract(text, previous_state, granularity, now)
        return patch

    async def _bounded(self, coro, cancel: Optional[asyncio.Event]) -> Optional[Patch]:
        """Await coro under the timeout, giving up if cancel is set first."""
        task = asyncio.ensure_future(coro)
        waiters = {task}
        cancel_task = None
        if cancel is not None:
            cancel_task = asyncio.ensure_future(cancel.wait())
            waiters.add(cancel_task)

        try:
            done, _ = await asyncio.wait(waiters, timeout=self.timeout_s, return_when=asyncio.FIRST_COMPLETED)
        finally:
            if cancel_task is not None:
                cancel_task.cancel()

        if task not in done:
            task.cancel()
            reason = "cancelled" if cancel is not None and cancel.is_set() else f"timed out after {self.timeout_ms}ms"
            logger.warning(f"Remote classifier {reason}")
            return None
        return task.result()


class EndpointExtractor(_RemoteExtractor):
    """Classifier behind an HTTP endpoint.

    Args:
        endpoint: URL receiving ``{"text", "previousState"}`` as JSON
        timeout_ms: Time limit for one call
        fallback: Heuristic extractor used when the call fails
        transport: Optional httpx transport (tests use ``httpx.MockTransport``)
    """

    def __init__(
        self,
        endpoint: str,
        timeout_ms: int = 1500,
        fallback: Optional[HeuristicExtractor] = None,
        transport: Optional[httpx.BaseTransport] = None,
    ):
        super().__init__(timeout_ms, fallback)
        self.endpoint = endpoint
        self.transport = transport

    def _payload(self, text: str, previous_state: PreviousState) -> Dict[str, Any]:
        return {"text": text, "previousState": _wire_state(previous_state)}

    def _read_response(self, response: httpx.Response) -> Optional[Patch]:
        if not response.is_success:
            logger.warning(f"Classifier returned HTTP {response.status_code}")
            return None
        try:
            body = response.json()
        except ValueError as e:
            logger.warning(f"Classifier returned invalid JSON: {e}")
            return None
        patch = patch_from_body(body)
        if patch is None:
            logger.warning("Classifier response is not a JSON object")
        return patch

    def request_patch(self, text: str, previous_state: PreviousState = None) -> Optional[Patch]:
        """One synchronous classifier call; None on any failure."""
        t0 = time.time()
        try:
            with httpx.Client(timeout=self.timeout_s, transport=self.transport) as client:
                response = client.post(self.endpoint, json=self._payload(text, previous_state))
        except httpx.TimeoutException:
            logger.warning(f"Classifier timed out after {self.timeout_ms}ms")
            return None
        except httpx.HTTPError as e:
            logger.warning(f"Classifier request failed: {e}")
            return None

        elapsed_ms = (time.time() - t0) * 1000
        if elapsed_ms > SLOW_CALL_MS:
            logger.info(f"Classifier call took {elapsed_ms:.0f}ms")
        return self._read_response(response)

    async def _post(self, text: str, previous_state: PreviousState) -> Optional[Patch]:
        transport = self.transport if isinstance(self.transport, httpx.AsyncBaseTransport) else None
        try:
            async with httpx.AsyncClient(timeout=self.timeout_s, transport=transport) as client:
                response = await client.post(self.endpoint, json=self._payload(text, previous_state))
        except httpx.TimeoutException:
            logger.warning(f"Classifier timed out after {self.timeout_ms}ms")
            return None
        except httpx.HTTPError as e:
            logger.warning(f"Classifier request failed: {e}")
            return None
        return self._read_response(response)

    async def arequest_patch(
        self,
        text: str,
        previous_state: PreviousState = None,
        cancel: Optional[asyncio.Event] = None,
    ) -> Optional[Patch]:
        return await self._bounded(self._post(text, previous_state), cancel)


class ApiExtractor(_RemoteExtractor):
    """Classifier backed by an OpenAI-compatible chat-completions API.

    The ``openai`` package is only imported when no client is supplied.
    """

    def __init__(
        self,
        model: str = "gpt-4o-mini",
        api_key: Optional[str] = None,
        base_url: Optional[str] = None,
        timeout_ms: int = 5000,
        fallback: Optional[HeuristicExtractor] = None,
        client=None,
    ):
        super().__init__(timeout_ms, fallback)
        self.model = model
        self.api_key = api_key
        self.base_url = base_url
        self._client = client

    def _get_client(self):
        """Lazy-load the API client."""
        if self._client is not None:
            return self._client
        try:
            from openai import OpenAI
            self._client = OpenAI(api_key=self.api_key, base_url=self.base_url, timeout=self.timeout_s)
        except Exception as e:
            logger.warning(f"Failed to initialize API client: {e}")
            return None
        return self._client

    def request_patch(self, text: str, previous_state: PreviousState = None) -> Optional[Patch]:
        client = self._get_client()
        if client is None:
            return None

        prompt = EXTRACTION_PROMPT + json.dumps(_wire_state(previous_state)) + f'\n\nMessage: "{text}"\n'
        try:
            response = client.chat.completions.create(
                model=self.model,
                messages=[
                    {"role": "system", "content": "You track scene state in stories and return JSON only. No explanation."},
                    {"role": "user", "content": prompt},
                ],
                max_tokens=200,
                temperature=0.0,
            )
            raw = response.choices[0].message.content or ""
        except Exception as e:
            logger.warning(f"API extraction failed: {e}")
            return None

        patch = patch_from_body(_parse_llm_json(raw))
        if patch is None:
            logger.warning("API response did not contain a JSON object")
        return patch

    async def arequest_patch(
        self,
        text: str,
        previous_state: PreviousState = None,
        cancel: Optional[asyncio.Event] = None,
    ) -> Optional[Patch]:
        loop = asyncio.get_running_loop()
        call = loop.run_in_executor(None, self.request_patch, text, previous_state)
        return await self._bounded(call, cancel)


def build_extractor(config: Optional[ExtractionConfig] = None, api_key: Optional[str] = None):
    """Construct the extractor selected by ``config.strategy``.

    Args:
        config: Effective configuration (default: built-in defaults)
        api_key: Key for the api strategy (default: the openai client's own lookup)

    Returns:
        HeuristicExtractor, EndpointExtractor or ApiExtractor
    """
    config = config or ExtractionConfig()
    heuristic = HeuristicExtractor(granularity=config.granularity, weights=config.weights)

    if config.strategy in ("endpoint", "llm"):
        if not config.endpoint:
            logger.warning(f"Strategy {config.strategy!r} has no endpoint configured, using heuristics")
            return heuristic
        return EndpointExtractor(config.endpoint, timeout_ms=config.timeout_ms, fallback=heuristic)

    if config.strategy == "api":
        return ApiExtractor(
            model=config.api_model,
            api_key=api_key,
            base_url=config.api_base_url,
            timeout_ms=config.timeout_ms,
            fallback=heuristic,
        )

    return heuristic
