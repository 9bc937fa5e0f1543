"""
cortex_validator.py

Structural and semantic validation for Cortex frames.

validate_frame() never raises for a malformed frame: problems are reported as
errors (which make the frame invalid) or warnings (advisory). It checks:

    1. per-frame-type required / recommended roles
    2. nested frames, recursively (paths prefixed 'key.' or 'key[i].')
    3. that every reference resolves against the frame's own attributes
    4. a complexity score (>= 1.0)

If is_valid is False, callers MUST treat the frame as rejected.
"""

import re
from dataclasses import dataclass, field
from typing import Any, Callable, Dict, List, Optional

from .frame import Frame
from .references import extract_references, is_valid_reference

_ITEM_KEY_RE = re.compile(r"^item_(\d+)$")


@dataclass
class ValidationIssue:
    code: str
    message: str
    path: str
    suggestion: Optional[str] = None

    def prefixed(self, prefix: str) -> "ValidationIssue":
        return ValidationIssue(self.code, self.message, f"{prefix}.{self.path}", self.suggestion)

    def to_dict(self) -> Dict[str, Any]:
        out = {"code": self.code, "message": self.message, "path": self.path}
        if self.suggestion:
            out["suggestion"] = self.suggestion
        return out


@dataclass
class ValidationResult:
    frame_type: str
    errors: List[ValidationIssue] = field(default_factory=list)
    warnings: List[ValidationIssue] = field(default_factory=list)
    complexity: float = 1.0

    @property
    def is_valid(self) -> bool:
        return not self.errors

    def to_dict(self) -> Dict[str, Any]:
        return {
            "isValid": self.is_valid,
            "errors": [e.to_dict() for e in self.errors],
            "warnings": [w.to_dict() for w in self.warnings],
            "frameType": self.frame_type,
            "complexity": self.complexity,
        }


def _present(frame: Frame, key: str) -> bool:
    value = frame.get(key)
    return value is not None and value != "" and value != ()


# ==========================================
# PER-TYPE RULES
# ==========================================

def _check_query(frame, errors, warnings):
    if not any(_present(frame, k) for k in ("target", "question", "task")):
        warnings.append(ValidationIssue(
            "INCOMPLETE_QUERY",
            "Query frame should have target, question, or task defined",
            "query",
            "Add target, question, or task property",
        ))


def _check_answer(frame, errors, warnings):
    if not any(_present(frame, k) for k in ("content", "summary", "for_task")):
        warnings.append(ValidationIssue(
            "EMPTY_ANSWER",
            "Answer frame should have content, summary, or for_task defined",
            "answer",
            "Add content, summary, or for_task property",
        ))


def _check_event(frame, errors, warnings):
    if not _present(frame, "action"):
        errors.append(ValidationIssue("MISSING_ACTION", "Event frame must have an action property", "action"))


def _check_state(frame, errors, warnings):
    if not _present(frame, "entity"):
        errors.append(ValidationIssue("MISSING_ENTITY", "State frame must have an entity property", "entity"))


def _check_entity(frame, errors, warnings):
    if not any(_present(frame, k) for k in ("name", "title", "type")):
        warnings.append(ValidationIssue(
            "UNIDENTIFIED_ENTITY",
            "Entity frame should have name, title, or type defined",
            "entity",
            "Add name, title, or type property",
        ))


def _check_list(frame, errors, warnings):
    numbers = sorted(int(m.group(1)) for m in (_ITEM_KEY_RE.match(k) for k in frame) if m)
    if not numbers:
        warnings.append(ValidationIssue(
            "EMPTY_LIST",
            "List frame has no items",
            "list",
            "Add item_1, item_2, etc. properties",
        ))
        return
    if numbers != list(range(1, len(numbers) + 1)):
        warnings.append(ValidationIssue(
            "NON_SEQUENTIAL_ITEMS",
            "List items should be numbered sequentially starting from 1",
            "list",
            "Renumber items as item_1, item_2, item_3, etc.",
        ))


def _check_error(frame, errors, warnings):
    if not _present(frame, "code"):
        errors.append(ValidationIssue("MISSING_ERROR_CODE", "Error frame must have a code property", "code"))
    if not _present(frame, "message"):
        errors.append(ValidationIssue("MISSING_ERROR_MESSAGE", "Error frame must have a message property", "message"))


_RULES: Dict[str, Callable[[Frame, List[ValidationIssue], List[ValidationIssue]], None]] = {
    "query": _check_query,
    "answer": _check_answer,
    "event": _check_event,
    "state": _check_state,
    "entity": _check_entity,
    "list": _check_list,
    "error": _check_error,
}


# ==========================================
# PUBLIC API
# ==========================================

def validate_frame(frame: Frame) -> ValidationResult:
    """Validate a frame and every frame nested inside it."""
    errors: List[ValidationIssue] = []
    warnings: List[ValidationIssue] = []

    rule = _RULES.get(frame.frame_type)
    if rule is None:
        errors.append(ValidationIssue(
            "INVALID_FRAME_TYPE",
            f"Unknown frame type: {frame.frame_type}",
            "frameType",
        ))
    else:
        rule(frame, errors, warnings)

    _validate_nested(frame, errors, warnings)
    _validate_references(frame, errors, warnings)

    return ValidationResult(
        frame_type=frame.frame_type,
        errors=errors,
        warnings=warnings,
        complexity=calculate_complexity(frame),
    )


def _validate_nested(frame: Frame, errors, warnings):
    for key, value in frame.items():
        if isinstance(value, Frame):
            _merge_nested(validate_frame(value), key, errors, warnings)
        elif isinstance(value, tuple):
            for index, item in enumerate(value):
                if isinstance(item, Frame):
                    _merge_nested(validate_frame(item), f"{key}[{index}]", errors, warnings)


def _merge_nested(result: ValidationResult, prefix: str, errors, warnings):
    errors.extend(e.prefixed(prefix) for e in result.errors)
    warnings.extend(w.prefixed(prefix) for w in result.warnings)


def _validate_references(frame: Frame, errors, warnings):
    # Nested frames validate their own references in _validate_nested
    for ref in extract_references(frame, include_nested=False):
        if not is_valid_reference(ref, frame):
            errors.append(ValidationIssue(
                "INVALID_REFERENCE",
                f"Reference {ref} cannot be resolved in current context",
                "reference",
            ))
            warnings.append(ValidationIssue(
                "REFERENCE_WARNING",
                f"Reference {ref} may cause runtime issues",
                "reference",
                "Consider validating reference resolution before use",
            ))


def calculate_complexity(frame: Frame) -> float:
    """
    1.0 base, +0.5 per attribute, plus the nested frame's own complexity or
    0.2 per array element. Rounded to one decimal.
    """
    return round(_raw_complexity(frame), 1)


def _raw_complexity(frame: Frame) -> float:
    complexity = 1.0
    for value in frame.values():
        complexity += 0.5
        if isinstance(value, Frame):
            complexity += _raw_complexity(value)
        elif isinstance(value, tuple):
            complexity += len(value) * 0.2
    return complexity
