"""
frame.py

Cortex Frame model
------------------

A Frame is a typed node: a closed discriminant (`frame_type`) plus an
insertion-ordered, open bag of named attributes. Attribute values are:

    str | int | float | bool | Reference ($path str) | tuple[Value, ...] | Frame

Frames are immutable. Lists handed to the constructor are frozen into tuples
and dicts carrying a "frameType" key are turned into nested Frames, so two
frames built different ways but holding the same structure compare equal.
Transformations (compression, reference resolution) build new frames.
"""

from __future__ import annotations

from collections.abc import Mapping
from types import MappingProxyType
from typing import Any, Dict, Iterator, Optional, Tuple, Union

from .errors import InvalidStructure

DISCRIMINANT = "frameType"

FRAME_TYPES: Tuple[str, ...] = ("query", "answer", "event", "state", "entity", "list", "error")

# Default role names per frame type, used by positional notation and to split
# well-known roles from custom ones.
FRAME_ROLES: Dict[str, Tuple[str, ...]] = {
    "query": ("action", "agent", "target", "object", "time", "location", "method"),
    "event": ("action", "agent", "target", "object", "time", "location", "status"),
    "state": ("entity", "property", "value", "time", "location", "status"),
    "entity": ("name", "type", "properties", "location", "status"),
    "list": ("item_1", "item_2", "item_3", "item_4", "item_5"),
    "answer": ("content", "summary", "for_task", "confidence", "source"),
    "error": ("code", "message", "context", "severity", "timestamp"),
}

REFERENCE_PREFIX = "$"

Value = Union[str, int, float, bool, Tuple[Any, ...], "Frame"]


def is_reference(value: Any) -> bool:
    return isinstance(value, str) and value.startswith(REFERENCE_PREFIX)


def is_frame(value: Any) -> bool:
    return isinstance(value, Frame)


def default_role(frame_type: str, index: int) -> str:
    """Role name for the index-th (0-based) positional token."""
    roles = FRAME_ROLES.get(frame_type, ())
    if index < len(roles):
        return roles[index]
    return f"property_{index + 1}"


def freeze_value(value: Any) -> Any:
    """
    Recursively freeze a raw Python value into a frame value.

    - list/tuple -> tuple (recursively frozen)
    - dict with "frameType" -> Frame
    - Frame, str, int, float, bool, None -> unchanged
    """
    if value is None or isinstance(value, (Frame, str, bool, int, float)):
        return value
    if isinstance(value, (list, tuple)):
        return tuple(freeze_value(v) for v in value)
    if isinstance(value, Mapping) and DISCRIMINANT in value:
        return Frame.from_dict(value)
    raise InvalidStructure(
        f"Unsupported attribute value type: {type(value).__name__}",
        context={"value": repr(value)},
    )


def thaw_value(value: Any) -> Any:
    """Convert a frozen frame value back to plain dicts/lists."""
    if isinstance(value, Frame):
        return value.to_dict()
    if isinstance(value, tuple):
        return [thaw_value(v) for v in value]
    return value


class Frame(Mapping):
    """
    Immutable Cortex frame. Behaves as a read-only mapping over its
    attributes (the discriminant is exposed as `frame_type`, not as a key).
    """

    __slots__ = ("_frame_type", "_attributes")

    def __init__(self, frame_type: str, attributes: Optional[Mapping] = None, **roles: Any):
        merged: Dict[str, Any] = {}
        for source in (attributes or {}), roles:
            for key, value in source.items():
                if key == DISCRIMINANT:
                    continue
                merged[str(key)] = freeze_value(value)
        object.__setattr__(self, "_frame_type", frame_type)
        object.__setattr__(self, "_attributes", MappingProxyType(merged))

    def __setattr__(self, name, value):
        raise AttributeError("Frame is immutable")

    # --- Mapping protocol ---

    def __getitem__(self, key: str) -> Any:
        return self._attributes[key]

    def __iter__(self) -> Iterator[str]:
        return iter(self._attributes)

    def __len__(self) -> int:
        return len(self._attributes)

    def __eq__(self, other):
        if not isinstance(other, Frame):
            return NotImplemented
        return self._frame_type == other._frame_type and dict(self._attributes) == dict(other._attributes)

    __hash__ = None

    def __repr__(self):
        return f"Frame({self._frame_type!r}, {dict(self._attributes)!r})"

    # --- Accessors ---

    @property
    def frame_type(self) -> str:
        return self._frame_type

    @property
    def attributes(self) -> Mapping:
        return self._attributes

    @property
    def known_roles(self) -> Dict[str, Any]:
        """Attributes whose names appear in this frame type's role table."""
        roles = FRAME_ROLES.get(self._frame_type, ())
        return {k: v for k, v in self._attributes.items() if k in roles}

    @property
    def extra(self) -> Dict[str, Any]:
        """Frame-specific custom roles, in insertion order."""
        roles = FRAME_ROLES.get(self._frame_type, ())
        return {k: v for k, v in self._attributes.items() if k not in roles}

    def keys_with_discriminant(self) -> Tuple[str, ...]:
        return (DISCRIMINANT,) + tuple(self._attributes)

    # --- Derivation (frames are never mutated) ---

    def with_attributes(self, updates: Optional[Mapping] = None, **roles: Any) -> "Frame":
        """New frame with attributes added or overwritten (existing order kept)."""
        merged = dict(self._attributes)
        merged.update(updates or {})
        merged.update(roles)
        return Frame(self._frame_type, merged)

    def without(self, *keys: str) -> "Frame":
        return Frame(self._frame_type, {k: v for k, v in self._attributes.items() if k not in keys})

    # --- Plain-data conversion ---

    def to_dict(self) -> Dict[str, Any]:
        out: Dict[str, Any] = {DISCRIMINANT: self._frame_type}
        for key, value in self._attributes.items():
            out[key] = thaw_value(value)
        return out

    @classmethod
    def from_dict(cls, data: Mapping) -> "Frame":
        if DISCRIMINANT not in data:
            raise InvalidStructure("Frame dict must have a frameType key", context={"keys": list(data)})
        return cls(data[DISCRIMINANT], data)
