"""Latency benchmark for SceneState extraction.

Measures per-call latency across scenarios:
- Short message, all four fields present
- Long multi-paragraph message
- Each field extractor on its own
- Mood normalization only

The date parser is replaced by a no-op so the numbers reflect the pattern
strategies; ``--with-dateparser`` measures the full pipeline.

Usage:
    python -m benchmarks.latency
    python benchmarks/latency.py --with-dateparser
"""

import argparse
import json
import statistics
import time
from typing import Dict, List

from scenestate import HeuristicExtractor, get_lexicon, normalize_mood_token
from scenestate.mood_extractor import extract_mood
from scenestate.place_extractor import extract_place
from scenestate.weather_extractor import extract_weather


SHORT_TEXT = "I'm feeling a bit anxious about the storm rolling in tonight at the Grand Library."

LONG_TEXT = " ".join([
    "We wandered through the Grand Library, tired but hopeful, as rain streaked the tall windows.",
    "The mood was tense, but the room was warm and smelled of old paper.",
    "Tomorrow evening we would meet at the cafe near the harbor, if the weather held.",
    "She wasn't happy about it. Happy birthday, he said anyway, and the air outside turned cold.",
] * 5)


class _NoDates:
    def search(self, text, reference):
        return []


def _timed(fn, iterations: int = 1000) -> Dict[str, float]:
    """Run fn() `iterations` times and return latency stats in ms."""
    times: List[float] = []
    for _ in range(iterations):
        t0 = time.perf_counter()
        fn()
        elapsed = (time.perf_counter() - t0) * 1000
        times.append(elapsed)

    times.sort()
    return {
        "mean_ms": round(statistics.mean(times), 3),
        "median_ms": round(statistics.median(times), 3),
        "p95_ms": round(times[int(len(times) * 0.95)], 3),
        "p99_ms": round(times[int(len(times) * 0.99)], 3),
        "min_ms": round(times[0], 3),
        "max_ms": round(times[-1], 3),
        "iterations": iterations,
    }


def main():
    parser = argparse.ArgumentParser(description="SceneState latency benchmark")
    parser.add_argument("--with-dateparser", action="store_true", help="Include dateparser in the pipeline")
    parser.add_argument("--iterations", type=int, default=1000)
    parser.add_argument("--output", default="benchmarks/latency_results.json")
    args = parser.parse_args()

    print("SceneState Latency Benchmark")
    print("=" * 50)
    print()

    lexicon = get_lexicon()
    extractor = HeuristicExtractor(date_parser=None if args.with_dateparser else _NoDates())
    n = args.iterations

    benchmarks = {
        "extract_short": lambda: extractor.extract(SHORT_TEXT),
        "extract_long": lambda: extractor.extract(LONG_TEXT),
        "place_only": lambda: extract_place(LONG_TEXT, lexicon),
        "mood_only": lambda: extract_mood(LONG_TEXT, lexicon),
        "weather_only": lambda: extract_weather(LONG_TEXT, lexicon),
        "normalize_mood": lambda: normalize_mood_token("On-Edge", lexicon),
    }

    results: Dict[str, Dict[str, float]] = {}
    for name, fn in benchmarks.items():
        iterations = n if name != "extract_long" else max(1, n // 5)
        print(f"Running: {name} × {iterations} ...")
        r = _timed(fn, iterations)
        results[name] = r
        print(f"  mean={r['mean_ms']:.3f}ms  p95={r['p95_ms']:.3f}ms  p99={r['p99_ms']:.3f}ms")

    print()
    print("=" * 50)
    print(f"Summary (dateparser={'on' if args.with_dateparser else 'off'}):")
    print()
    for name, r in results.items():
        print(f"  {name:30s}  mean={r['mean_ms']:7.3f}ms  p95={r['p95_ms']:7.3f}ms")

    with open(args.output, "w") as f:
        json.dump(results, f, indent=2)
    print(f"\nResults saved to {args.output}")


if __name__ == "__main__":
    main()
