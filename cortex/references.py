"""
references.py

$path references inside Cortex frames.

A reference is a string value starting with '$' whose path points at another
value reachable from the *same* frame's own attributes:

    $target            -> frame['target']
    $sub.action        -> frame['sub']['action']      (sub is a nested frame)
    $items[0]          -> frame['items'][0]
    $items.0           -> frame['items'][0]

A reference never reaches into a sibling or enclosing frame: references that
sit inside a nested frame resolve against that nested frame.
"""

import re
from collections.abc import Mapping
from typing import Any, List, Optional, Sequence, Tuple, Union

from .errors import ReferenceNotFound
from .frame import REFERENCE_PREFIX, Frame, is_reference

_SEGMENT_RE = re.compile(r"\[(\d+)\]|([^.\[\]]+)")

PathSegment = Union[str, int]


def parse_reference_path(reference: str) -> Optional[Tuple[PathSegment, ...]]:
    """
    Split '$a.b[0]' into ('a', 'b', 0). Returns None for anything that is
    not a well-formed reference.
    """
    if not is_reference(reference):
        return None
    path = reference[len(REFERENCE_PREFIX):]
    if not path:
        return None

    segments: List[PathSegment] = []
    consumed = 0
    for m in _SEGMENT_RE.finditer(path):
        gap = path[consumed:m.start()]
        if gap not in ("", "."):
            return None
        index, key = m.group(1), m.group(2)
        segments.append(int(index) if index is not None else key)
        consumed = m.end()
    if consumed != len(path) or not segments:
        return None
    return tuple(segments)


def resolve_reference(reference: str, context: Any) -> Any:
    """
    Resolve a reference against a context (a Frame or any mapping).

    Returns None, never raises, as soon as a path segment is absent.
    """
    segments = parse_reference_path(reference)
    if segments is None:
        return None

    current = context
    for seg in segments:
        if isinstance(seg, str) and isinstance(current, Mapping):
            if seg not in current:
                return None
            current = current[seg]
        elif isinstance(current, Sequence) and not isinstance(current, str):
            if isinstance(seg, str):
                if not seg.isdigit():
                    return None
                seg = int(seg)
            if seg >= len(current):
                return None
            current = current[seg]
        else:
            return None
        if current is None:
            return None
    return current


def is_valid_reference(reference: str, context: Any) -> bool:
    return resolve_reference(reference, context) is not None


def extract_references(frame: Frame, include_nested: bool = True) -> List[str]:
    """
    Collect every reference string in a frame, depth first, deduplicated in
    order of first appearance.

    include_nested=False stops at nested frames, returning only the
    references that resolve against `frame` itself.
    """
    found: List[str] = []
    seen = set()

    def traverse(value: Any, is_root: bool = False):
        if is_reference(value):
            if value not in seen:
                seen.add(value)
                found.append(value)
        elif isinstance(value, Frame):
            if not is_root and not include_nested:
                return
            for nested in value.values():
                if nested is not None:
                    traverse(nested)
        elif isinstance(value, tuple):
            for item in value:
                traverse(item)

    traverse(frame, is_root=True)
    return found


def resolve_all_references(frame: Frame, strict: bool = False) -> Frame:
    """
    Return a new frame with every resolvable reference replaced by its value.

    Unresolvable references are left in place unless strict=True, in which
    case ReferenceNotFound is raised. Resolved values are not re-resolved,
    so reference chains ($a -> "$b") stop after one step.
    """
    def substitute(value: Any, owner: Frame) -> Any:
        if is_reference(value):
            resolved = resolve_reference(value, owner)
            if resolved is None:
                if strict:
                    raise ReferenceNotFound(value, context={"frame_type": owner.frame_type})
                return value
            return resolved
        if isinstance(value, Frame):
            return rebuild(value)
        if isinstance(value, tuple):
            return tuple(substitute(item, owner) for item in value)
        return value

    def rebuild(current: Frame) -> Frame:
        return Frame(
            current.frame_type,
            {key: substitute(value, current) for key, value in current.items()},
        )

    return rebuild(frame)
