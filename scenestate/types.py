"""Type definitions for SceneState library."""

from dataclasses import dataclass, field, fields, replace
from typing import Any, Dict, Mapping, Optional


# Field order is also the order used by diff_states / summarize_diffs
STATE_FIELDS = ("date_time", "place", "mood", "weather", "notes")

# Wire and legacy key names accepted by SceneState.from_dict and remote payloads
FIELD_ALIASES = {
    "date_time": "date_time",
    "dateTime": "date_time",
    "inRoleplayDateTime": "date_time",
    "place": "place",
    "mood": "mood",
    "weather": "weather",
    "notes": "notes",
    "sceneNotes": "notes",
}

GRANULARITIES = ("date", "datetime")


@dataclass
class SceneState:
    """The current known facts about a scene.

    Attributes:
        date_time: In-story date/time, already rendered as text
        place: Where the scene takes place
        mood: Canonical mood term
        weather: Canonical weather term
        notes: Free-form scene notes
    """
    date_time: str = ""
    place: str = ""
    mood: str = ""
    weather: str = ""
    notes: str = ""

    @classmethod
    def from_dict(cls, data: Optional[Mapping[str, Any]]) -> "SceneState":
        """Build a state from a mapping, ignoring unknown keys and non-strings."""
        state = cls()
        if not data:
            return state
        for key, value in data.items():
            name = FIELD_ALIASES.get(key)
            if name and isinstance(value, str):
                setattr(state, name, value)
        return state

    def to_dict(self) -> Dict[str, str]:
        return {f.name: getattr(self, f.name) for f in fields(self)}

    def updated(self, patch: Mapping[str, str]) -> "SceneState":
        """Return a copy with the patch fields applied."""
        changes = {k: v for k, v in patch.items() if k in STATE_FIELDS}
        return replace(self, **changes)


@dataclass
class Candidate:
    """A hypothesized field value before selection.

    Attributes:
        value: The proposed field value
        score: Confidence between 0.0 and 1.0
        start: Offset of the match in the source text (-1 if unknown)
        end: End offset of the match (-1 if unknown)
        strategy: Name of the strategy that produced the candidate
    """
    value: str
    score: float
    start: int = -1
    end: int = -1
    strategy: str = ""


@dataclass(frozen=True)
class MoodAxes:
    """Four-dimensional affect summary of a canonical mood."""
    valence: float = 0.0
    arousal: float = 0.5
    dominance: float = 0.0
    attachment: float = 0.0


NEUTRAL_AXES = MoodAxes(valence=0.0, arousal=0.5, dominance=0.0, attachment=0.0)


@dataclass(frozen=True)
class MoodFeatures:
    """Mood normalization result with intensity and affect axes."""
    canonical: Optional[str]
    intensity: float
    axes: MoodAxes

    def to_dict(self) -> Dict[str, Any]:
        return {
            "canonical": self.canonical,
            "intensity": self.intensity,
            "axes": {
                "valence": self.axes.valence,
                "arousal": self.axes.arousal,
                "dominance": self.axes.dominance,
                "attachment": self.axes.attachment,
            },
        }


@dataclass(frozen=True)
class FieldDiff:
    """Change of one state field between two snapshots."""
    from_value: str
    to_value: str

    def to_dict(self) -> Dict[str, str]:
        return {"from": self.from_value, "to": self.to_value}


@dataclass(frozen=True)
class Span:
    """Location of the text that produced a field value."""
    start: int
    end: int
    text: str


@dataclass
class ExtractionResult:
    """Patch plus diagnostics from one extraction pass.

    Attributes:
        patch: Only the fields the extractor is confident about
        confidences: Winning score per extracted field
        spans: Source span of the winning match per extracted field
    """
    patch: Dict[str, str] = field(default_factory=dict)
    confidences: Dict[str, float] = field(default_factory=dict)
    spans: Dict[str, Span] = field(default_factory=dict)
