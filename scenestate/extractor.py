"""Heuristic scene-state extraction: the main entry point.

Usage:
    from scenestate import extract

    patch = extract("Let's meet tomorrow evening at the cafe.")
    # -> {"date_time": "Oct 20, 2026", "place": "the cafe"}

Each field extractor runs independently behind its own failure boundary, so a
bug in one strategy costs that field only.
"""

from __future__ import annotations

import asyncio
import logging
import time
from datetime import datetime
from typing import Callable, Dict, Mapping, Optional, Union

from .datetime_extractor import extract_datetime, validate_granularity
from .lexicon import Lexicon, get_lexicon
from .mood_extractor import extract_mood
from .place_extractor import extract_place
from .scoring import DEFAULT_WEIGHTS, ScoringWeights
from .types import Candidate, ExtractionResult, SceneState, Span
from .weather_extractor import extract_weather

logger = logging.getLogger("scenestate.extractor")

Patch = Dict[str, str]
PreviousState = Union[SceneState, Mapping[str, str], None]


class HeuristicExtractor:
    """Deterministic pattern-based extractor.

    Args:
        granularity: Default date granularity, "date" or "datetime"
        weights: Scoring weights shared by the field extractors
        date_parser: Object with ``search(text, reference)``; dateparser by default
        lexicon: Vocabulary tables; the bundled ones by default
    """

    def __init__(
        self,
        granularity: str = "date",
        weights: ScoringWeights = DEFAULT_WEIGHTS,
        date_parser=None,
        lexicon: Optional[Lexicon] = None,
    ):
        self.granularity = validate_granularity(granularity)
        self.weights = weights
        self.date_parser = date_parser
        self._lexicon = lexicon

    @property
    def lexicon(self) -> Lexicon:
        return self._lexicon or get_lexicon()

    def _fields(self, text: str, granularity: str, now: Optional[datetime]) -> Dict[str, Callable[[], Optional[Candidate]]]:
        lexicon, weights = self.lexicon, self.weights
        return {
            "date_time": lambda: extract_datetime(text, granularity, now, self.date_parser),
            "place": lambda: extract_place(text, lexicon, weights),
            "mood": lambda: extract_mood(text, lexicon, weights),
            "weather": lambda: extract_weather(text, lexicon, weights),
        }

    def extract_with_meta(
        self,
        text: str,
        previous_state: PreviousState = None,
        granularity: Optional[str] = None,
        now: Optional[datetime] = None,
    ) -> ExtractionResult:
        """Extract a patch together with per-field confidence and source span.

        Args:
            text: Narrative text to scan
            previous_state: Ignored by the heuristic pass; accepted for
                interface parity with the remote extractors
            granularity: Overrides the instance default
            now: Reference instant for relative dates

        Returns:
            ExtractionResult; fields without a confident value are absent
        """
        granularity = validate_granularity(granularity or self.granularity)
        result = ExtractionResult()
        if not text or not text.strip():
            return result

        t0 = time.time()
        for name, run in self._fields(text, granularity, now).items():
            try:
                candidate = run()
            except Exception as e:
                logger.warning(f"{name} extraction failed: {e}")
                continue
            if candidate is None or not candidate.value:
                continue
            result.patch[name] = candidate.value
            result.confidences[name] = candidate.score
            if candidate.start >= 0:
                result.spans[name] = Span(candidate.start, candidate.end, text[candidate.start:candidate.end])

        elapsed_ms = (time.time() - t0) * 1000
        logger.debug(f"Extracted {sorted(result.patch)} in {elapsed_ms:.1f}ms")
        return result

    def extract(
        self,
        text: str,
        previous_state: PreviousState = None,
        granularity: Optional[str] = None,
        now: Optional[datetime] = None,
    ) -> Patch:
        """Extract a patch of the fields found in text."""
        return self.extract_with_meta(text, previous_state, granularity, now).patch

    async def aextract(
        self,
        text: str,
        previous_state: PreviousState = None,
        granularity: Optional[str] = None,
        now: Optional[datetime] = None,
    ) -> Patch:
        """Async variant; the synchronous pass runs in a worker thread."""
        loop = asyncio.get_running_loop()
        return await loop.run_in_executor(
            None, lambda: self.extract(text, previous_state, granularity, now)
        )


_default_extractor: Optional[HeuristicExtractor] = None


def _get_default_extractor() -> HeuristicExtractor:
    global _default_extractor
    if _default_extractor is None:
        _default_extractor = HeuristicExtractor()
    return _default_extractor


def extract(
    text: str,
    previous_state: PreviousState = None,
    granularity: str = "date",
    now: Optional[datetime] = None,
) -> Patch:
    """Extract a scene-state patch from text with the default heuristic extractor.

    Args:
        text: Narrative text
        previous_state: Current scene state, for interface parity
        granularity: "date" or "datetime"
        now: Reference instant for relative dates (default: now)

    Returns:
        Dict with any of date_time, place, mood, weather
    """
    return _get_default_extractor().extract(text, previous_state, granularity, now)


def extract_with_meta(
    text: str,
    previous_state: PreviousState = None,
    granularity: str = "date",
    now: Optional[datetime] = None,
) -> ExtractionResult:
    return _get_default_extractor().extract_with_meta(text, previous_state, granularity, now)
