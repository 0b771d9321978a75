"""Field-by-field comparison of two scene states."""

from __future__ import annotations

from typing import Any, Dict, Mapping, Optional, Union

from .types import FieldDiff, SceneState, STATE_FIELDS

StateLike = Union[SceneState, Mapping[str, Any], None]


def _as_state(state: StateLike) -> SceneState:
    if isinstance(state, SceneState):
        return state
    return SceneState.from_dict(state)


def _field(state: SceneState, name: str) -> str:
    value: Optional[str] = getattr(state, name)
    return value or ""


def diff_states(prev: StateLike, next: StateLike) -> Dict[str, FieldDiff]:
    """Changed fields between two states, in field declaration order.

    Args:
        prev: Earlier state (SceneState or mapping)
        next: Later state (SceneState or mapping)

    Returns:
        Mapping of field name to FieldDiff; empty when nothing changed
    """
    before, after = _as_state(prev), _as_state(next)
    diff: Dict[str, FieldDiff] = {}
    for name in STATE_FIELDS:
        old, new = _field(before, name), _field(after, name)
        if old != new:
            diff[name] = FieldDiff(from_value=old, to_value=new)
    return diff


def summarize_diffs(diff: Mapping[str, FieldDiff]) -> str:
    """Human-readable summary, one line per changed field.

    Examples:
        >>> summarize_diffs({"mood": FieldDiff("calm", "tense")})
        'mood: "calm" → "tense"'
        >>> summarize_diffs({})
        'No changes.'
    """
    if not diff:
        return "No changes."
    ordered = [name for name in STATE_FIELDS if name in diff]
    ordered += [name for name in diff if name not in STATE_FIELDS]
    return "\n".join(
        f'{name}: "{diff[name].from_value}" → "{diff[name].to_value}"' for name in ordered
    )
