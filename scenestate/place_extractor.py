"""Place extraction from narrative text.

Strategies each return scored candidates; all of them are pooled and a single
winner is chosen with :func:`choose_best`:

    1. known place nouns ("the cafe", "the Grand Library")        0.70
    2. proper noun after a location preposition ("at The Ritz")   0.90
    3. quoted name after a location preposition                   0.85
    4. preposition + free-text span ("near the old mill")         0.60
    5. ambiguous nouns with context ("into the room")         0.45-0.50
    6. capitalized destination ("headed to Riverside")            0.80

Every candidate is then boosted for proper-noun tokens and locational
adjectives, and pushed below the threshold when it is generic ("the area",
"here", a short lowercase word).
"""

from __future__ import annotations

import logging
import re
from functools import lru_cache
from typing import Callable, Dict, FrozenSet, List, Optional

from .lexicon import Lexicon, get_lexicon
from .scoring import DEFAULT_WEIGHTS, ScoringWeights, choose_best, clamp_score
from .types import Candidate
from .utils import build_alternation, normalize_text

logger = logging.getLogger("scenestate.place")


_CAP = r"[A-Z][\w'’\-]+"
_CAP3 = r"[A-Z][\w'’\-]{2,}"
_NAME_CONNECTOR = r"(?:of|the|de|del|la|le|du|von|van|and|&)"

# A free-text span ends where a new clause starts
_CLAUSE_CUT_RE = re.compile(
    r"\s+(?:and|but|or|while|when|where|with|because|as|so|then|until|before|after|to|for|"
    r"who|which|that|if|since|though|although|i|we|he|she|they|you|it)\b",
    re.IGNORECASE,
)

_PROPER_STOPWORDS = frozenset({
    "the", "a", "an", "my", "our", "his", "her", "their", "this", "that", "your", "its",
    "i", "we", "he", "she", "they", "it", "you", "of", "and", "de", "del", "la", "le",
    "du", "von", "van",
})

_EXTRA_DESTINATION_VERBS = (
    "came", "come", "comes", "coming", "ran", "run", "runs", "flew", "fly", "flies",
    "moved", "move", "moves", "traveled", "travelled", "travel", "returned", "return",
    "sailed", "rode", "ride", "hurried", "rushed", "wandered", "strolled", "stepped",
    "ventured", "marched", "climbed", "back", "way", "trip", "journey", "welcome",
)

_TOKEN_RE = re.compile(r"[\w'’\-]+")


@lru_cache(maxsize=8)
def _patterns(lexicon: Lexicon) -> Dict[str, re.Pattern]:
    dets = "|".join(lexicon.determiners)
    loc_preps = "|".join(lexicon.location_prepositions)
    generic_preps = "|".join(lexicon.generic_prepositions)
    dest_preps = "|".join(lexicon.destination_prepositions)
    verbs = "|".join(lexicon.motion_verbs)
    dest_verbs = "|".join(lexicon.motion_verbs + _EXTRA_DESTINATION_VERBS)
    ambiguous = build_alternation(lexicon.ambiguous_place_nouns)
    descriptor = rf"(?!(?:{dets}|{generic_preps})\b)[\w'’\-]+\s+"
    name = rf"{_CAP}(?:\s+(?:{_NAME_CONNECTOR}\s+)*{_CAP})*"

    return {
        "known": re.compile(r"\b(?:" + build_alternation(lexicon.place_nouns) + r")\b", re.IGNORECASE),
        "caps_before": re.compile(r"(?:[A-Z][\w'’\-]*\s+){1,3}$"),
        "det_before": re.compile(rf"\b(?:{dets})\s+$", re.IGNORECASE),
        "proper": re.compile(rf"\b(?i:{loc_preps})\s+((?:(?i:{dets})\s+)?{name})"),
        "quoted": re.compile(
            rf"\b(?:{loc_preps})\s+[\"“‘']([^\"”’'\n]{{2,60}})[\"”’']", re.IGNORECASE
        ),
        "generic": re.compile(
            rf"(?=\b(?:{generic_preps})\s+(?:(?:{dets})\s+)?([^\n.,;:!?\"“”()\[\]]{{3,60}}))",
            re.IGNORECASE,
        ),
        "ambiguous_det": re.compile(
            rf"\b((?:{dets})\s+(?:{descriptor}){{0,3}}?(?:{ambiguous}))\b", re.IGNORECASE
        ),
        "ambiguous_prep": re.compile(
            rf"\b(?:{loc_preps})\s+((?:(?:{dets})\s+)?(?:{descriptor}){{0,3}}?(?:{ambiguous}))\b",
            re.IGNORECASE,
        ),
        "ambiguous_verb": re.compile(
            rf"\b(?:{verbs})\b(?:\s+[\w'’\-]+){{0,3}}?\s+"
            rf"(?:(?:to|at|into|toward|towards|from|past|through)\s+)?"
            rf"((?:(?:{dets})\s+)?(?:{descriptor}){{0,3}}?(?:{ambiguous}))\b",
            re.IGNORECASE,
        ),
        "destination": re.compile(
            rf"\b(?i:{dest_verbs})\b(?:\s+[\w'’\-]+){{0,2}}?\s+(?i:{dest_preps})\s+"
            rf"((?:(?i:the)\s+)?{_CAP3}(?:\s+(?:of\s+(?:the\s+)?)?{_CAP3}){{0,3}})"
        ),
        "prep_cut": re.compile(rf"\s+(?:{generic_preps})\b", re.IGNORECASE),
        "fillers": re.compile(
            r"(?:^|\s+)(?:" + build_alternation(lexicon.temporal_fillers) + r")\s*$", re.IGNORECASE
        ),
    }


@lru_cache(maxsize=8)
def _known_nouns(lexicon: Lexicon) -> FrozenSet[str]:
    return frozenset(lexicon.place_nouns)


def _clean(value: str) -> str:
    return value.strip().strip("\"'“”‘’").strip()


def _is_calendar_name(value: str, lexicon: Lexicon) -> bool:
    tokens = [t for t in _TOKEN_RE.findall(value) if t.lower() not in _PROPER_STOPWORDS]
    names = [re.sub(r"['’]s$", "", t) for t in tokens]
    return bool(names) and all(n in lexicon.non_place_proper for n in names)


def _is_proper_token(token: str, lexicon: Lexicon) -> bool:
    """Capitalized name-like token; weekdays, months and the like don't count."""
    if not token[0].isupper() or token.lower() in _PROPER_STOPWORDS:
        return False
    return re.sub(r"['’]s$", "", token) not in lexicon.non_place_proper


# ── Strategies ────────────────────────────────────────────────────────────────

def known_noun_candidates(text: str, lexicon: Lexicon, weights: ScoringWeights) -> List[Candidate]:
    """Known place nouns, widened over capitalized modifiers and a determiner."""
    pats = _patterns(lexicon)
    candidates: List[Candidate] = []
    for m in pats["known"].finditer(text):
        start, end = m.start(), m.end()

        caps = pats["caps_before"].search(text[:start])
        if caps:
            kept_start = None
            for tok in _TOKEN_RE.finditer(caps.group(0)):
                if tok.group(0).lower() in _PROPER_STOPWORDS:
                    kept_start = None
                elif kept_start is None:
                    kept_start = caps.start() + tok.start()
            if kept_start is not None:
                start = kept_start

        det = pats["det_before"].search(text[max(0, start - 8):start])
        if det:
            start = max(0, start - 8) + det.start()

        candidates.append(Candidate(
            value=text[start:end],
            score=weights.place_known_noun,
            start=start,
            end=end,
            strategy="known_noun",
        ))
    return candidates


def proper_noun_candidates(text: str, lexicon: Lexicon, weights: ScoringWeights) -> List[Candidate]:
    """Capitalized names right after at/in/near/...: "at The Grand Library"."""
    candidates: List[Candidate] = []
    for m in _patterns(lexicon)["proper"].finditer(text):
        value = m.group(1)
        if _is_calendar_name(value, lexicon):
            continue
        candidates.append(Candidate(value, weights.place_proper_noun, m.start(1), m.end(1), "proper_noun"))
    return candidates


def quoted_candidates(text: str, lexicon: Lexicon, weights: ScoringWeights) -> List[Candidate]:
    candidates: List[Candidate] = []
    for m in _patterns(lexicon)["quoted"].finditer(text):
        value = _clean(m.group(1))
        if value:
            candidates.append(Candidate(value, weights.place_quoted, m.start(1), m.end(1), "quoted"))
    return candidates


def preposition_span_candidates(text: str, lexicon: Lexicon, weights: ScoringWeights) -> List[Candidate]:
    """Free text after a preposition, cut at the next clause and trimmed of time words."""
    pats = _patterns(lexicon)
    candidates: List[Candidate] = []
    for m in pats["generic"].finditer(text):
        span = m.group(1)
        start = m.start(1)

        cuts = [c.start() for c in (_CLAUSE_CUT_RE.search(span), pats["prep_cut"].search(span)) if c]
        if cuts:
            span = span[:min(cuts)]
        elif len(span) == 60 and m.end(1) < len(text) and text[m.end(1)].isalnum():
            # Drop the word the length limit sliced in half
            span = span.rsplit(" ", 1)[0]

        previous = None
        while previous != span:
            previous = span
            span = pats["fillers"].sub("", span)
        span = span.rstrip()

        words = span.split()
        if len(span) < 3 or not words:
            continue
        lead = words[0].lower()
        if lead[0].isdigit() or lead in lexicon.non_place_leads or _is_calendar_name(span, lexicon):
            continue
        # "in a good mood", "in a hurry"
        if words[-1].lower() in lexicon.non_place_heads:
            continue

        candidates.append(Candidate(
            value=span,
            score=weights.place_generic_preposition,
            start=start,
            end=start + len(span),
            strategy="preposition_span",
        ))
    return candidates


def ambiguous_noun_candidates(text: str, lexicon: Lexicon, weights: ScoringWeights) -> List[Candidate]:
    """Context-dependent nouns ("room", "hall") next to a determiner, preposition or motion verb."""
    pats = _patterns(lexicon)
    candidates: List[Candidate] = []
    for key, score, strategy in (
        ("ambiguous_det", weights.place_ambiguous_determiner, "ambiguous_determiner"),
        ("ambiguous_prep", weights.place_ambiguous_preposition, "ambiguous_preposition"),
        ("ambiguous_verb", weights.place_ambiguous_verb, "ambiguous_verb"),
    ):
        for m in pats[key].finditer(text):
            candidates.append(Candidate(m.group(1), score, m.start(1), m.end(1), strategy))
    return candidates


def destination_candidates(text: str, lexicon: Lexicon, weights: ScoringWeights) -> List[Candidate]:
    """Capitalized destination after a motion verb: "we headed to Riverside"."""
    candidates: List[Candidate] = []
    for m in _patterns(lexicon)["destination"].finditer(text):
        value = m.group(1)
        if _is_calendar_name(value, lexicon):
            continue
        candidates.append(Candidate(value, weights.place_destination, m.start(1), m.end(1), "destination"))
    return candidates


PlaceStrategy = Callable[[str, Lexicon, ScoringWeights], List[Candidate]]

PLACE_STRATEGIES: List[PlaceStrategy] = [
    known_noun_candidates,
    proper_noun_candidates,
    quoted_candidates,
    preposition_span_candidates,
    ambiguous_noun_candidates,
    destination_candidates,
]


# ── Scoring adjustments ───────────────────────────────────────────────────────

def is_generic_place(value: str, lexicon: Optional[Lexicon] = None) -> bool:
    """True for values too vague to be a place: "the area", "here", "table".

    Examples:
        >>> is_generic_place("the area")
        True
        >>> is_generic_place("the cafe")
        False
    """
    lex = lexicon or get_lexicon()
    raw = _clean(value)
    words = normalize_text(re.sub(r"[^\w\s'’\-]", " ", raw)).split()
    while words and words[0] in lex.determiners:
        words.pop(0)
    core = " ".join(words)

    if not core:
        return True
    if core in lex.generic_places or core in lex.ambiguous_place_nouns:
        return True
    if " " not in raw and len(raw) <= 5 and not raw[:1].isupper() and core not in _known_nouns(lex):
        return True
    return False


def adjust_place_score(candidate: Candidate, lexicon: Lexicon, weights: ScoringWeights) -> Candidate:
    """Apply proper-noun and descriptor boosts and the genericness penalty."""
    score = candidate.score
    tokens = _TOKEN_RE.findall(candidate.value)

    if any(_is_proper_token(t, lexicon) for t in tokens):
        score += weights.place_proper_boost
    if any(t.lower() in lexicon.place_descriptors for t in tokens):
        score += weights.place_descriptor_boost
    if is_generic_place(candidate.value, lexicon):
        score -= weights.place_generic_penalty

    return Candidate(
        value=_clean(candidate.value),
        score=clamp_score(score),
        start=candidate.start,
        end=candidate.end,
        strategy=candidate.strategy,
    )


def place_candidates(
    text: str,
    lexicon: Optional[Lexicon] = None,
    weights: ScoringWeights = DEFAULT_WEIGHTS,
) -> List[Candidate]:
    """All scored place candidates in generation order."""
    lex = lexicon or get_lexicon()
    pooled: List[Candidate] = []
    for strategy in PLACE_STRATEGIES:
        found = strategy(text, lex, weights)
        if found:
            logger.debug(f"{strategy.__name__}: {[c.value for c in found]}")
        pooled.extend(found)
    return [adjust_place_score(c, lex, weights) for c in pooled if _clean(c.value)]


def extract_place(
    text: str,
    lexicon: Optional[Lexicon] = None,
    weights: ScoringWeights = DEFAULT_WEIGHTS,
) -> Optional[Candidate]:
    """Best place candidate in text, or None.

    The genericness test runs once more on the winner so that a
    context-dependent noun which barely cleared the threshold is dropped.
    """
    if not text or not text.strip():
        return None
    lex = lexicon or get_lexicon()
    best = choose_best(place_candidates(text, lex, weights), weights.min_score)
    if best is None or is_generic_place(best.value, lex):
        return None
    return best
