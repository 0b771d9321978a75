"""SceneState - Heuristic scene-state extraction for narrative text.

Scan a chat or roleplay message and get a patch of what it says about the
scene: in-story date/time, place, mood and weather. Deterministic, no model
required; a remote classifier can be plugged in with heuristic fallback.

Example:
    >>> from scenestate import extract, diff_states, summarize_diffs
    >>>
    >>> patch = extract("I'm feeling a bit anxious about the storm rolling in.")
    >>> print(patch)  # {"mood": "anxious", "weather": "storm"}
    >>>
    >>> diff = diff_states({"mood": "calm"}, patch)
    >>> print(summarize_diffs(diff))
"""

__version__ = "0.1.0"

from .types import (
    SceneState,
    Candidate,
    MoodAxes,
    MoodFeatures,
    FieldDiff,
    Span,
    ExtractionResult,
    NEUTRAL_AXES,
)
from .scoring import ScoringWeights, DEFAULT_WEIGHTS, choose_best
from .lexicon import (
    Lexicon,
    get_lexicon,
    normalize_mood_token,
    normalize_weather_token,
    get_mood_features,
    validate_lexicon,
)
from .utils import normalize_key
from .datetime_extractor import DateparserBackend, ParsedDate, format_datetime
from .differ import diff_states, summarize_diffs
from .extractor import HeuristicExtractor, extract, extract_with_meta
from .config import ExtractionConfig, load_config
from .remote_extractor import EndpointExtractor, ApiExtractor, build_extractor

__all__ = [
    "SceneState",
    "Candidate",
    "MoodAxes",
    "MoodFeatures",
    "FieldDiff",
    "Span",
    "ExtractionResult",
    "NEUTRAL_AXES",
    "ScoringWeights",
    "DEFAULT_WEIGHTS",
    "choose_best",
    "Lexicon",
    "get_lexicon",
    "normalize_key",
    "normalize_mood_token",
    "normalize_weather_token",
    "get_mood_features",
    "validate_lexicon",
    "DateparserBackend",
    "ParsedDate",
    "format_datetime",
    "diff_states",
    "summarize_diffs",
    "HeuristicExtractor",
    "extract",
    "extract_with_meta",
    "ExtractionConfig",
    "load_config",
    "EndpointExtractor",
    "ApiExtractor",
    "build_extractor",
]
