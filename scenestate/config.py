"""Extraction configuration.

Sources, lowest to highest precedence:
    - built-in defaults
    - ~/.scenestate_config.json
    - ./.scenestate_config.json (or an explicit path)
    - environment: SCENESTATE_STRATEGY, SCENESTATE_ENDPOINT, SCENESTATE_TIMEOUT_MS,
      SCENESTATE_GRANULARITY, SCENESTATE_API_MODEL, SCENESTATE_API_BASE_URL

Example .scenestate_config.json:
    {
        "strategy": "endpoint",
        "endpoint": "http://localhost:8000/classify",
        "timeout_ms": 1200,
        "weights": {"min_score": 0.65}
    }
"""

from __future__ import annotations

import json
import logging
import os
from dataclasses import dataclass, field, fields
from typing import Any, Dict, List, Mapping, Optional

from .scoring import DEFAULT_WEIGHTS, ScoringWeights
from .types import GRANULARITIES

logger = logging.getLogger("scenestate.config")

CONFIG_FILENAME = ".scenestate_config.json"

# "llm" is the older name of the endpoint strategy
STRATEGIES = ("heuristic", "endpoint", "llm", "api")

_ENV_KEYS = {
    "SCENESTATE_STRATEGY": "strategy",
    "SCENESTATE_ENDPOINT": "endpoint",
    "SCENESTATE_TIMEOUT_MS": "timeout_ms",
    "SCENESTATE_GRANULARITY": "granularity",
    "SCENESTATE_API_MODEL": "api_model",
    "SCENESTATE_API_BASE_URL": "api_base_url",
}


@dataclass
class ExtractionConfig:
    strategy: str = "heuristic"
    endpoint: str = ""
    timeout_ms: int = 1500
    granularity: str = "date"
    api_model: str = "gpt-4o-mini"
    api_base_url: Optional[str] = None
    weights: ScoringWeights = field(default=DEFAULT_WEIGHTS)

    def validate(self) -> "ExtractionConfig":
        if self.strategy not in STRATEGIES:
            raise ValueError(f"strategy must be one of {STRATEGIES}, got {self.strategy!r}")
        if self.granularity not in GRANULARITIES:
            raise ValueError(f"granularity must be one of {GRANULARITIES}, got {self.granularity!r}")
        if self.timeout_ms <= 0:
            raise ValueError(f"timeout_ms must be positive, got {self.timeout_ms}")
        return self


def _config_paths(path: Optional[str]) -> List[str]:
    home = os.path.join(os.path.expanduser("~"), CONFIG_FILENAME)
    local = path or os.path.join(os.getcwd(), CONFIG_FILENAME)
    # Later entries win
    return [home] if os.path.abspath(home) == os.path.abspath(local) else [home, local]


def _read_file(path: str) -> Dict[str, Any]:
    if not os.path.exists(path):
        return {}
    try:
        with open(path, encoding="utf-8") as f:
            data = json.load(f)
    except (OSError, json.JSONDecodeError) as e:
        logger.warning(f"Skipping unreadable config {path}: {e}")
        return {}
    if not isinstance(data, dict):
        logger.warning(f"Skipping config {path}: top level is not an object")
        return {}
    return data


def _apply_weights(weights: ScoringWeights, overrides: Mapping[str, Any]) -> ScoringWeights:
    known = {f.name for f in fields(ScoringWeights)}
    valid = {k: v for k, v in overrides.items() if k in known}
    for name in sorted(set(overrides) - known):
        logger.warning(f"Ignoring unknown scoring weight {name!r}")
    return weights.with_overrides(valid)


def load_config(path: Optional[str] = None, environ: Optional[Mapping[str, str]] = None) -> ExtractionConfig:
    """Build the effective configuration.

    Args:
        path: Explicit config file, replacing ./.scenestate_config.json
        environ: Environment mapping (default: os.environ)

    Returns:
        Validated ExtractionConfig

    Raises:
        ValueError: If a strategy, granularity, timeout or weight value is invalid
    """
    env = os.environ if environ is None else environ
    merged: Dict[str, Any] = {}
    weight_overrides: Dict[str, Any] = {}

    for config_path in _config_paths(path):
        data = _read_file(config_path)
        weights = data.pop("weights", None)
        if isinstance(weights, dict):
            weight_overrides.update(weights)
        merged.update({k: v for k, v in data.items() if k in _ENV_KEYS.values()})

    for env_key, name in _ENV_KEYS.items():
        if env.get(env_key):
            merged[name] = env[env_key]

    if "timeout_ms" in merged:
        try:
            merged["timeout_ms"] = int(merged["timeout_ms"])
        except (TypeError, ValueError):
            raise ValueError(f"timeout_ms must be an integer, got {merged['timeout_ms']!r}")

    config = ExtractionConfig(**merged)
    if weight_overrides:
        config.weights = _apply_weights(config.weights, weight_overrides)
    return config.validate()
