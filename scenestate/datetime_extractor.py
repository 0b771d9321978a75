"""In-story date/time extraction.

Natural-language parsing is delegated to a date parser object exposing
``search(text, reference) -> List[ParsedDate]``. :class:`DateparserBackend`
is the default and wraps the ``dateparser`` library; tests pass a fake.

When the parser finds nothing, a few coarse fallbacks still produce a value:
"7ish", "around 8pm", a bare "tomorrow" and a bare "tonight".
"""

from __future__ import annotations

import logging
import re
from dataclasses import dataclass
from datetime import datetime, timedelta
from typing import List, Optional

from .types import Candidate, GRANULARITIES

logger = logging.getLogger("scenestate.datetime")


DATE_FORMAT = "%b %d, %Y"
DATETIME_FORMAT = "%b %d, %Y, %I %p"

PARSER_CONFIDENCE = 0.9
FALLBACK_CONFIDENCE = 0.6


@dataclass
class ParsedDate:
    """One date expression found by the parser.

    Attributes:
        text: The matched fragment
        value: Resolved datetime
        hour_certain: Whether the fragment states the hour explicitly
        start: Offset of the fragment in the source text (-1 if unknown)
    """
    text: str
    value: datetime
    hour_certain: bool = False
    start: int = -1


# ── Parser backend ────────────────────────────────────────────────────────────

# "may" and "march" are ordinary words; they only count next to a digit
_TEMPORAL_CUE_RE = re.compile(
    r"\d|\b(?:monday|tuesday|wednesday|thursday|friday|saturday|sunday"
    r"|january|february|april|june|july|august|september|october|november|december"
    r"|today|tomorrow|yesterday|tonight|noon|midnight|morning|afternoon|evening|night"
    r"|hours?|minutes?|weeks?|months?|years?|weekends?|ago|next|last|later|am|pm)\b",
    re.IGNORECASE,
)

_HOUR_CERTAIN_RE = re.compile(
    r"\d{1,2}:\d{2}|\d{1,2}\s*(?:am|pm|a\.m\.|p\.m\.)|\bnoon\b|\bmidnight\b|o['’]clock|\bhours?\b|\bminutes?\b",
    re.IGNORECASE,
)

# "an hour", "a few minutes", "2 weeks": how long, not when
_BARE_DURATION_RE = re.compile(
    r"^(?:an?\s+)?(?:(?:few|couple(?:\s+of)?|several|one|two|three|four|five|six|seven|eight|nine|ten|\d+)\s*)?"
    r"(?:hours?|hrs?|minutes?|mins?|seconds?|days?|weeks?|months?|years?)\b"
    r"(?!.*\b(?:ago|later|before|after|from now)\b)",
    re.IGNORECASE,
)


class DateparserBackend:
    """Date parser backed by ``dateparser.search.search_dates``."""

    def __init__(self, languages=("en",), prefer_dates_from: str = "future"):
        self.languages = list(languages)
        self.prefer_dates_from = prefer_dates_from

    def search(self, text: str, reference: datetime) -> List[ParsedDate]:
        from dateparser.search import search_dates

        settings = {
            "RELATIVE_BASE": reference,
            "PREFER_DATES_FROM": self.prefer_dates_from,
            "RETURN_AS_TIMEZONE_AWARE": False,
        }
        try:
            found = search_dates(text, languages=self.languages, settings=settings)
        except Exception as e:
            logger.warning(f"Date parsing failed: {e}")
            return []

        results: List[ParsedDate] = []
        cursor = 0
        for fragment, value in found or []:
            start = text.find(fragment, cursor)
            if start >= 0:
                cursor = start + len(fragment)
            if not _TEMPORAL_CUE_RE.search(fragment):
                logger.debug(f"Ignoring date fragment without temporal cue: {fragment!r}")
                continue
            if _BARE_DURATION_RE.match(fragment.strip()):
                logger.debug(f"Ignoring duration fragment: {fragment!r}")
                continue
            results.append(ParsedDate(
                text=fragment,
                value=value,
                hour_certain=bool(_HOUR_CERTAIN_RE.search(fragment)),
                start=start,
            ))
        return results


_default_parser: Optional[DateparserBackend] = None


def get_default_parser() -> DateparserBackend:
    global _default_parser
    if _default_parser is None:
        _default_parser = DateparserBackend()
    return _default_parser


# ── Formatting and day-part hours ─────────────────────────────────────────────

def validate_granularity(granularity: str) -> str:
    if granularity not in GRANULARITIES:
        raise ValueError(f"granularity must be one of {GRANULARITIES}, got {granularity!r}")
    return granularity


def format_datetime(value: datetime, granularity: str = "date") -> str:
    """Render a datetime at the requested granularity.

    Examples:
        >>> format_datetime(datetime(2026, 10, 20, 19, 45), "date")
        'Oct 20, 2026'
        >>> format_datetime(datetime(2026, 10, 20, 19, 45), "datetime")
        'Oct 20, 2026, 07 PM'
    """
    validate_granularity(granularity)
    if granularity == "date":
        return value.strftime(DATE_FORMAT)
    return value.replace(minute=0, second=0, microsecond=0).strftime(DATETIME_FORMAT)


_DAY_PARTS = (
    (re.compile(r"\b(?:morning|sunrise|dawn)\b"), 9),
    (re.compile(r"\bnoon\b"), 12),
    (re.compile(r"\bafternoon\b"), 15),
    (re.compile(r"\b(?:evening|sunset|dusk)\b"), 19),
    (re.compile(r"\bmidnight\b"), 0),
    (re.compile(r"\b(?:night|tonight)\b"), 22),
)


def default_hour_from_text(text: str) -> Optional[int]:
    """Hour implied by a day-part keyword, or None."""
    lowered = text.lower()
    for pattern, hour in _DAY_PARTS:
        if pattern.search(lowered):
            return hour
    return None


# ── Fallbacks ─────────────────────────────────────────────────────────────────

_ISH_RE = re.compile(r"\b(?:around\s+|about\s+)?(\d{1,2})(?:\s*(am|pm))?\s*ish\b", re.IGNORECASE)
_MERIDIEM_RE = re.compile(r"\b(?:around\s+|about\s+)?(\d{1,2})\s*(am|pm)\b", re.IGNORECASE)
_TOMORROW_RE = re.compile(r"\btomorrow\b", re.IGNORECASE)
_TONIGHT_RE = re.compile(r"\btonight\b", re.IGNORECASE)


def _clock_hour(hour: int, meridiem: Optional[str]) -> Optional[int]:
    if meridiem:
        if not 1 <= hour <= 12:
            return None
        return hour % 12 + (12 if meridiem.lower() == "pm" else 0)
    return hour if 0 <= hour <= 23 else None


def fallback_datetime(text: str, reference: datetime) -> Optional[Candidate]:
    """Coarse guesses for phrases the parser missed."""
    m = _ISH_RE.search(text) or _MERIDIEM_RE.search(text)
    if m:
        hour = _clock_hour(int(m.group(1)), m.group(2))
        if hour is not None:
            value = reference.replace(hour=hour, minute=0, second=0, microsecond=0)
            return Candidate(value.isoformat(), FALLBACK_CONFIDENCE, m.start(), m.end(), "clock_hour")

    m = _TOMORROW_RE.search(text)
    if m:
        value = reference + timedelta(days=1)
        hour = default_hour_from_text(text)
        if hour is not None:
            value = value.replace(hour=hour, minute=0, second=0, microsecond=0)
        return Candidate(value.isoformat(), FALLBACK_CONFIDENCE, m.start(), m.end(), "tomorrow")

    m = _TONIGHT_RE.search(text)
    if m:
        value = reference.replace(hour=22, minute=0, second=0, microsecond=0)
        return Candidate(value.isoformat(), FALLBACK_CONFIDENCE, m.start(), m.end(), "tonight")

    return None


# ── Extraction ────────────────────────────────────────────────────────────────

def resolve_datetime(
    text: str,
    granularity: str = "date",
    reference: Optional[datetime] = None,
    parser=None,
) -> Optional[Candidate]:
    """Resolve the first date expression in text.

    Args:
        text: Narrative text
        granularity: "date" or "datetime"
        reference: Instant relative expressions resolve against, now by default
        parser: Date parser, :class:`DateparserBackend` by default

    Returns:
        Candidate whose value is the ISO datetime, or None
    """
    validate_granularity(granularity)
    reference = reference or datetime.now()
    parser = parser or get_default_parser()

    results = parser.search(text, reference)
    if results:
        first = results[0]
        value = first.value
        if granularity == "datetime" and not first.hour_certain:
            hour = default_hour_from_text(text)
            if hour is not None:
                value = value.replace(hour=hour, minute=0, second=0, microsecond=0)
        end = first.start + len(first.text) if first.start >= 0 else -1
        return Candidate(value.isoformat(), PARSER_CONFIDENCE, first.start, end, "parser")

    candidate = fallback_datetime(text, reference)
    if candidate is not None:
        logger.debug(f"Date fallback {candidate.strategy!r} matched")
    return candidate


def extract_datetime(
    text: str,
    granularity: str = "date",
    reference: Optional[datetime] = None,
    parser=None,
) -> Optional[Candidate]:
    """Like :func:`resolve_datetime`, with the value rendered for display."""
    if not text or not text.strip():
        validate_granularity(granularity)
        return None
    candidate = resolve_datetime(text, granularity, reference, parser)
    if candidate is None:
        return None
    value = datetime.fromisoformat(candidate.value)
    return Candidate(
        value=format_datetime(value, granularity),
        score=candidate.score,
        start=candidate.start,
        end=candidate.end,
        strategy=candidate.strategy,
    )
