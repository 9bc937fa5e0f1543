"""
similarity.py

Fidelity scoring between Cortex frames.

calculate_semantic_similarity(a, b) -> float in [0, 1]

    - 0.0 when the frame types differ
    - structural : Jaccard index of the key sets (discriminant included)
    - content    : mean per-key score over the shared attributes
    - penalty    : (|union| - |intersection|) / |union| * 0.8

    score = clamp(structural * 0.3 + content * 0.7 - penalty)

The score is reflexive (sim(a, a) == 1.0) and symmetric.

calculate_semantic_integrity(original, processed) blends similarity with
entity/concept preservation to bound the information lost by a transform.
"""

import logging
import re
from typing import Any, Set

from .canonical import canonical_json
from .frame import DISCRIMINANT, Frame

logger = logging.getLogger(__name__)

STOP_WORDS = frozenset({
    "the", "a", "an", "and", "or", "but", "in", "on", "at", "to", "for", "of",
    "with", "by", "is", "are", "was", "were", "be", "been", "have", "has",
    "had", "do", "does", "did", "will", "would", "could", "should", "may",
    "might", "must",
})

INTEGRITY_FALLBACK = 0.85

_ENTITY_RE = re.compile(r"entity_\w+|concept_\w+")
_QUOTED_RE = re.compile(r'"[^"]+"')
_CONCEPT_RE = re.compile(r':\s*"([^"]*)"')
_CONCEPT_ROLES = ("action", "target", "aspect", "context")


def _clamp(value: float) -> float:
    return max(0.0, min(1.0, value))


# ==========================================
# STRING METRICS
# ==========================================

def levenshtein_distance(a: str, b: str) -> int:
    if len(a) < len(b):
        a, b = b, a
    previous = list(range(len(b) + 1))
    for i, ca in enumerate(a, 1):
        current = [i]
        for j, cb in enumerate(b, 1):
            current.append(min(
                previous[j] + 1,
                current[j - 1] + 1,
                previous[j - 1] + (ca != cb),
            ))
        previous = current
    return previous[-1]


def levenshtein_similarity(a: str, b: str) -> float:
    longest = max(len(a), len(b))
    if longest == 0:
        return 1.0
    return 1.0 - levenshtein_distance(a, b) / longest


def jaccard_similarity(a: str, b: str) -> float:
    tokens_a, tokens_b = set(a.split()), set(b.split())
    union = tokens_a | tokens_b
    if not union:
        return 1.0
    return len(tokens_a & tokens_b) / len(union)


def _keywords(text: str) -> Set[str]:
    return {w for w in text.lower().split() if len(w) > 2 and w not in STOP_WORDS}


def keyword_overlap(a: str, b: str) -> float:
    kw_a, kw_b = _keywords(a), _keywords(b)
    if not kw_a and not kw_b:
        return 1.0
    if not kw_a or not kw_b:
        return 0.0
    return len(kw_a & kw_b) / len(kw_a | kw_b)


def string_similarity(a: str, b: str) -> float:
    if a == b:
        return 1.0
    if not a or not b:
        return 0.0

    norm_a, norm_b = a.lower().strip(), b.lower().strip()
    if norm_a == norm_b:
        return 0.95

    return (
        jaccard_similarity(norm_a, norm_b) * 0.3
        + levenshtein_similarity(norm_a, norm_b) * 0.2
        + keyword_overlap(norm_a, norm_b) * 0.5
    )


# ==========================================
# FRAME SIMILARITY
# ==========================================

def _same_value(a: Any, b: Any) -> bool:
    """Equality that also requires matching types, so 1 and True differ."""
    if type(a) is not type(b):
        return False
    if isinstance(a, tuple):
        return len(a) == len(b) and all(_same_value(x, y) for x, y in zip(a, b))
    if isinstance(a, Frame):
        return (
            a.frame_type == b.frame_type
            and set(a.keys()) == set(b.keys())
            and all(_same_value(a[k], b[k]) for k in a)
        )
    return a == b


def _value_similarity(a: Any, b: Any) -> float:
    if _same_value(a, b):
        return 1.0
    if isinstance(a, str) and isinstance(b, str):
        return string_similarity(a, b)
    if isinstance(a, Frame) and isinstance(b, Frame):
        return calculate_semantic_similarity(a, b)
    return 0.0


def calculate_semantic_similarity(a: Frame, b: Frame) -> float:
    if a.frame_type != b.frame_type:
        return 0.0
    if _same_value(a, b):
        return 1.0

    keys_a, keys_b = set(a.keys_with_discriminant()), set(b.keys_with_discriminant())
    shared = keys_a & keys_b
    union = keys_a | keys_b

    structural = len(shared) / len(union)

    # Sorted so that sim(a, b) and sim(b, a) sum in the same order
    compared = sorted(shared - {DISCRIMINANT})
    if compared:
        content = sum(_value_similarity(a[k], b[k]) for k in compared) / len(compared)
    else:
        content = 0.0

    penalty = (len(union) - len(shared)) / len(union) * 0.8
    return _clamp(structural * 0.3 + content * 0.7 - penalty)


# ==========================================
# SEMANTIC INTEGRITY
# ==========================================

def extract_entities(frame: Frame) -> Set[str]:
    """entity_*/concept_* identifiers and quoted strings found in the frame."""
    text = canonical_json(frame.to_dict())
    return set(_ENTITY_RE.findall(text)) | set(_QUOTED_RE.findall(text))


def extract_concepts(frame: Frame) -> Set[str]:
    concepts: Set[str] = set()
    for role in _CONCEPT_ROLES:
        value = frame.get(role)
        if isinstance(value, str):
            concepts.add(value)

    text = canonical_json(frame.to_dict())
    concepts.update(c for c in _CONCEPT_RE.findall(text) if len(c) > 2)
    return concepts


def _preservation(original: Set[str], processed: Set[str]) -> float:
    if not original:
        return 1.0
    return len(original & processed) / len(original)


def calculate_semantic_integrity(original: Frame, processed: Frame) -> float:
    """
    0.4 * similarity + 0.3 * entity preservation + 0.2 * concept preservation
    + 0.1 * frame type match, clamped to [0, 1].

    Returns INTEGRITY_FALLBACK when the score cannot be computed.
    """
    try:
        similarity = calculate_semantic_similarity(original, processed)
        entities = _preservation(extract_entities(original), extract_entities(processed))
        concepts = _preservation(extract_concepts(original), extract_concepts(processed))
        type_match = 1.0 if original.frame_type == processed.frame_type else 0.0
    except (TypeError, ValueError) as e:
        logger.error(
            "Failed to calculate semantic integrity",
            extra={"context": {"error": str(e)}},
        )
        return INTEGRITY_FALLBACK

    return _clamp(similarity * 0.4 + entities * 0.3 + concepts * 0.2 + type_match * 0.1)

