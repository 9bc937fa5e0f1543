"""
analysis.py

Inspection helpers for Cortex frames: content hash, one-line description,
indented pretty-print and a combined FrameAnalysis report.
"""

from dataclasses import dataclass, field
from typing import Any, Dict, List

from .canonical import content_hash
from .cortex_validator import ValidationResult, validate_frame
from .frame import Frame
from .references import extract_references
from .serializer import serialize_frame


def frame_hash(frame: Frame) -> str:
    """Deterministic content hash of the frame's canonical serialization."""
    return content_hash(serialize_frame(frame))


def _count_items(frame: Frame) -> int:
    return sum(1 for key in frame if key.startswith("item_"))


def describe_frame(frame: Frame) -> str:
    ft = frame.frame_type
    get = frame.get

    if ft == "query":
        return f"Query requesting {get('action') or 'information'} about {get('target') or 'unknown target'}"
    if ft == "answer":
        return f"Answer providing {'summary' if get('summary') else 'information'} for query"
    if ft == "event":
        return f"Event describing {get('action') or 'unknown action'} by {get('agent') or 'unknown agent'}"
    if ft == "state":
        properties = get("properties")
        count = len(properties) if isinstance(properties, tuple) else 0
        return f"State describing {get('entity') or 'unknown entity'} with {count} properties"
    if ft == "entity":
        return f"Entity {get('name') or get('title') or 'unnamed'} of type {get('type') or 'unknown'}"
    if ft == "list":
        return f"List containing {_count_items(frame)} items"
    if ft == "error":
        return f"Error {get('code') or 'UNKNOWN'}: {get('message') or 'No message'}"
    return f"Unknown frame type: {ft}"


def _format_scalar(value: Any) -> str:
    if isinstance(value, bool):
        return "true" if value else "false"
    if isinstance(value, str):
        return f'"{value}"'
    return str(value)


def prettify_frame(frame: Frame, indent: int = 0) -> str:
    """
    Multi-line debug rendering. Not notation: arrays are summarized by length
    and the output is not meant to be reparsed.
    """
    spaces = "  " * indent
    lines = [f"{spaces}({frame.frame_type}:"]
    for key, value in frame.items():
        if isinstance(value, Frame):
            lines.append(f"{spaces}  {key}:")
            lines.append(prettify_frame(value, indent + 2))
        elif isinstance(value, tuple):
            lines.append(f"{spaces}  {key}: [{len(value)} items]")
        else:
            lines.append(f"{spaces}  {key}: {_format_scalar(value)}")
    lines.append(f"{spaces})")
    return "\n".join(lines)


@dataclass
class FrameAnalysis:
    frame_type: str
    is_valid: bool
    complexity: float
    error_count: int
    warning_count: int
    reference_count: int
    hash: str
    description: str
    serialized_size: int
    validation: ValidationResult
    references: List[str] = field(default_factory=list)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "frameType": self.frame_type,
            "isValid": self.is_valid,
            "complexity": self.complexity,
            "errorCount": self.error_count,
            "warningCount": self.warning_count,
            "referenceCount": self.reference_count,
            "hash": self.hash,
            "description": self.description,
            "serializedSize": self.serialized_size,
            "validation": self.validation.to_dict(),
            "references": list(self.references),
        }


def analyze_frame(frame: Frame) -> FrameAnalysis:
    validation = validate_frame(frame)
    references = extract_references(frame)
    serialized = serialize_frame(frame)
    return FrameAnalysis(
        frame_type=frame.frame_type,
        is_valid=validation.is_valid,
        complexity=validation.complexity,
        error_count=len(validation.errors),
        warning_count=len(validation.warnings),
        reference_count=len(references),
        hash=content_hash(serialized),
        description=describe_frame(frame),
        serialized_size=len(serialized),
        validation=validation,
        references=references,
    )
