"""SceneState MCP Server — exposes scene extraction tools via Model Context Protocol.

Usage:
    scenestate-mcp
    scenestate-mcp --strategy endpoint --endpoint http://localhost:8000/classify

    # Or via Python:
    python -m scenestate_mcp.server --verbose
"""

import argparse
import json
import logging
from datetime import datetime
from typing import Any, Dict, Optional

from mcp.server import FastMCP

from scenestate import (
    ExtractionConfig,
    SceneState,
    build_extractor,
    diff_states,
    get_mood_features,
    load_config,
    summarize_diffs,
)

logger = logging.getLogger("scenestate-mcp")

# Global state
_config: Optional[ExtractionConfig] = None
_extractor = None

# Create the FastMCP server
mcp = FastMCP(
    "scenestate",
    instructions=(
        "SceneState tracks the scene of a story or roleplay: in-story date/time, "
        "place, mood and weather. Call scene_extract with each new message and the "
        "current state (JSON) to get a patch of what changed. "
        "Use scene_diff to summarize changes between two states, and mood_features "
        "to map a mood word to its canonical form, intensity and affect axes."
    ),
)


def _get_config() -> ExtractionConfig:
    global _config
    if _config is None:
        _config = load_config()
    return _config


def _get_extractor():
    global _extractor
    if _extractor is None:
        _extractor = build_extractor(_get_config())
    return _extractor


def _parse_state(raw: str) -> SceneState:
    """Parse a JSON object string into a SceneState; empty input is an empty state."""
    if not raw or not raw.strip():
        return SceneState()
    data = json.loads(raw)
    if not isinstance(data, dict):
        raise ValueError("state must be a JSON object")
    return SceneState.from_dict(data)


def _diff_to_dict(previous: SceneState, current: SceneState) -> Dict[str, Any]:
    diff = diff_states(previous, current)
    return {
        "changed": {name: d.to_dict() for name, d in diff.items()},
        "summary": summarize_diffs(diff),
    }


@mcp.tool()
def scene_extract(
    text: str,
    previous_state: str = "",
    granularity: str = "date",
    now: str = "",
) -> str:
    """Extract a scene-state patch from a narrative message.

    Only fields the message gives evidence for appear in the patch; merge
    them into your current state.

    Args:
        text: The message to scan (e.g. "We ducked into the old inn as the storm broke.")
        previous_state: Current state as a JSON object with any of
            dateTime, place, mood, weather, notes. Leave empty if unknown.
        granularity: "date" (Oct 20, 2026) or "datetime" (Oct 20, 2026, 07 PM)
        now: Reference instant for relative dates, ISO 8601. Defaults to now.
    """
    try:
        previous = _parse_state(previous_state)
        reference = datetime.fromisoformat(now) if now else None
        result = _get_extractor().extract_with_meta(text, previous, granularity, reference)
    except ValueError as e:
        return json.dumps({"error": str(e)}, indent=2)

    current = previous.updated(result.patch)
    output = {
        "patch": result.patch,
        "confidences": result.confidences,
        "state": current.to_dict(),
        **_diff_to_dict(previous, current),
    }
    return json.dumps(output, indent=2)


@mcp.tool()
def scene_diff(previous_state: str, current_state: str) -> str:
    """Summarize what changed between two scene states.

    Args:
        previous_state: Earlier state as a JSON object
        current_state: Later state as a JSON object
    """
    try:
        previous = _parse_state(previous_state)
        current = _parse_state(current_state)
    except ValueError as e:
        return json.dumps({"error": str(e)}, indent=2)
    return json.dumps(_diff_to_dict(previous, current), indent=2)


@mcp.tool()
def mood_features(token: str) -> str:
    """Map a mood word or phrase to canonical mood, intensity and affect axes.

    Args:
        token: Mood word, e.g. "thrilled" or "on edge"
    """
    return json.dumps(get_mood_features(token).to_dict(), indent=2)


def main():
    """Entry point for the scenestate-mcp command."""
    parser = argparse.ArgumentParser(description="SceneState MCP Server")
    parser.add_argument(
        "--config",
        help="Path to a .scenestate_config.json file (default: ./ then ~/)",
    )
    parser.add_argument(
        "--strategy",
        choices=["heuristic", "endpoint", "llm", "api"],
        help="Extraction strategy, overriding the config file",
    )
    parser.add_argument("--endpoint", help="Classifier endpoint for the endpoint strategy")
    parser.add_argument(
        "--verbose", "-v",
        action="store_true",
        help="Enable verbose logging",
    )
    args = parser.parse_args()

    if args.verbose:
        logging.basicConfig(level=logging.DEBUG)
    else:
        logging.basicConfig(level=logging.WARNING)

    global _config, _extractor
    _config = load_config(args.config)
    if args.strategy:
        _config.strategy = args.strategy
    if args.endpoint:
        _config.endpoint = args.endpoint
    _config.validate()
    _extractor = build_extractor(_config)
    logger.info(f"SceneState MCP server started with strategy={_config.strategy}")

    # Run via stdio (standard for MCP)
    mcp.run(transport="stdio")


if __name__ == "__main__":
    main()
