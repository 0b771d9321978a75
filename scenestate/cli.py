"""SceneState CLI: extract scene state from text on the command line.

Usage:
    scenestate extract "Let's meet tomorrow evening at the cafe."
    scenestate extract "It's pouring outside" --previous state.json --meta
    scenestate diff before.json after.json
    scenestate mood thrilled
    scenestate version
"""

import argparse
import json
import logging
import sys
import time
from datetime import datetime
from typing import Any, Dict

from . import __version__
from .config import load_config
from .differ import diff_states, summarize_diffs
from .lexicon import get_mood_features
from .remote_extractor import build_extractor
from .types import GRANULARITIES, SceneState


def _load_state(path: str) -> SceneState:
    """Load a scene state from a JSON file.

    Accepts python field names (``date_time``) as well as the wire names
    (``dateTime``, ``inRoleplayDateTime``, ``sceneNotes``).
    """
    with open(path, "r", encoding="utf-8") as f:
        data = json.load(f)
    if not isinstance(data, dict):
        raise ValueError(f"{path}: expected a JSON object")
    return SceneState.from_dict(data)


def cmd_extract(args: argparse.Namespace) -> int:
    """Extract a patch from text and print it."""
    config = load_config(args.config)
    if args.strategy:
        config.strategy = args.strategy
    if args.endpoint:
        config.endpoint = args.endpoint
    if args.granularity:
        config.granularity = args.granularity
    config.validate()

    previous = _load_state(args.previous) if args.previous else SceneState()
    now = datetime.fromisoformat(args.now) if args.now else None
    extractor = build_extractor(config)

    t0 = time.perf_counter()
    result = extractor.extract_with_meta(args.text, previous, config.granularity, now)
    elapsed_ms = (time.perf_counter() - t0) * 1000

    if not args.meta:
        print(json.dumps(result.patch, indent=2))
        return 0

    updated = previous.updated(result.patch)
    output: Dict[str, Any] = {
        "patch": result.patch,
        "confidences": result.confidences,
        "spans": {
            name: {"start": s.start, "end": s.end, "text": s.text}
            for name, s in result.spans.items()
        },
        "state": updated.to_dict(),
        "changes": summarize_diffs(diff_states(previous, updated)),
        "latency_ms": round(elapsed_ms, 2),
    }
    print(json.dumps(output, indent=2))
    return 0


def cmd_diff(args: argparse.Namespace) -> int:
    """Print the changes between two state files."""
    print(summarize_diffs(diff_states(_load_state(args.previous), _load_state(args.current))))
    return 0


def cmd_mood(args: argparse.Namespace) -> int:
    """Print canonical mood, intensity and affect axes for a token."""
    features = get_mood_features(args.token)
    print(json.dumps(features.to_dict(), indent=2))
    return 0 if features.canonical else 1


def cmd_version(_args: argparse.Namespace) -> int:
    """Print the version."""
    print(f"scenestate {__version__}")
    return 0


def main() -> None:
    parser = argparse.ArgumentParser(
        prog="scenestate",
        description="SceneState — heuristic scene-state extraction for narrative text",
    )
    parser.add_argument("--verbose", "-v", action="store_true", help="Enable debug logging")
    sub = parser.add_subparsers(dest="command")

    # scenestate extract
    p_extract = sub.add_parser("extract", help="Extract a scene-state patch from text")
    p_extract.add_argument("text", help="The narrative text to scan")
    p_extract.add_argument("--previous", "-p", help="Path to a JSON file with the current scene state")
    p_extract.add_argument("--granularity", "-g", choices=GRANULARITIES, help="Date granularity")
    p_extract.add_argument("--now", help="Reference instant for relative dates (ISO 8601)")
    p_extract.add_argument(
        "--strategy",
        choices=["heuristic", "endpoint", "llm", "api"],
        help="Extraction strategy (default: from config, else heuristic)",
    )
    p_extract.add_argument("--endpoint", help="Classifier endpoint URL for the endpoint strategy")
    p_extract.add_argument("--config", help="Path to a .scenestate_config.json file")
    p_extract.add_argument(
        "--meta",
        action="store_true",
        default=False,
        help="Also print confidences, spans and the resulting state changes",
    )
    p_extract.set_defaults(func=cmd_extract)

    # scenestate diff
    p_diff = sub.add_parser("diff", help="Summarize changes between two state files")
    p_diff.add_argument("previous", help="JSON file with the earlier state")
    p_diff.add_argument("current", help="JSON file with the later state")
    p_diff.set_defaults(func=cmd_diff)

    # scenestate mood
    p_mood = sub.add_parser("mood", help="Show mood features for a token")
    p_mood.add_argument("token", help="Mood word or phrase")
    p_mood.set_defaults(func=cmd_mood)

    # scenestate version
    p_version = sub.add_parser("version", help="Show version")
    p_version.set_defaults(func=cmd_version)

    args = parser.parse_args()
    logging.basicConfig(
        level=logging.DEBUG if args.verbose else logging.WARNING,
        format="%(asctime)s %(name)s %(levelname)s %(message)s",
        stream=sys.stderr,
    )
    if not args.command:
        parser.print_help()
        sys.exit(0)

    try:
        sys.exit(args.func(args))
    except (OSError, ValueError) as e:
        print(f"Error: {e}", file=sys.stderr)
        sys.exit(1)


if __name__ == "__main__":
    main()
