"""
serializer.py

Canonical serializer: the deterministic inverse of cortex_parser.

    Frame('query', {'action': 'action_get', 'target': 'concept_document'})
    -> "(query action:action_get target:concept_document)"

Attributes are emitted in their insertion order; undefined (None) values are
skipped. Because the serialized text is the basis of content-hash cache keys,
structurally identical frames always serialize identically.
"""

import math
import re
from decimal import Decimal
from typing import Any

from .cortex_parser import NUMBER_RE
from .errors import CortexError, InvalidStructure
from .frame import FRAME_TYPES, Frame, is_reference

# Characters that force quoting of a plain string
_QUOTE_TRIGGERS = (" ", ":", "(", ")", "[", "]", '"', "\\", ",")
_SAFE_REFERENCE_RE = re.compile(r"^\$[A-Za-z0-9_.\-\[\]]*$")
_ROLE_KEY_RE = re.compile(r'^(?!.*//)[^\s()\[\]"\\:,]+$')


def needs_quotes(value: str) -> bool:
    """
    A string is quoted when it contains a space, colon, paren or bracket, and
    additionally whenever its bare form would not reparse to the same string
    (empty, other whitespace, quote/backslash/comma, comment marker, or text
    that looks like a number or boolean).
    """
    if value == "":
        return True
    if any(ch in value for ch in _QUOTE_TRIGGERS):
        return True
    if any(ch.isspace() for ch in value) or "//" in value:
        return True
    if NUMBER_RE.fullmatch(value) or value in ("true", "false"):
        return True
    return False


def quote(value: str) -> str:
    escaped = value.replace("\\", "\\\\").replace('"', '\\"')
    return f'"{escaped}"'


def _format_number(value: Any) -> str:
    if isinstance(value, int):
        return str(value)
    if not math.isfinite(value):
        raise InvalidStructure(f"Cannot serialize non-finite number: {value}", stage="decoding")
    text = repr(value)
    if "e" in text or "E" in text:
        text = format(Decimal(text), "f")
    return text


def serialize_value(value: Any) -> str:
    if isinstance(value, Frame):
        return serialize_frame(value)

    if isinstance(value, bool):
        return "true" if value else "false"

    if isinstance(value, (int, float)):
        return _format_number(value)

    if isinstance(value, str):
        if is_reference(value) and _SAFE_REFERENCE_RE.match(value):
            return value
        return quote(value) if needs_quotes(value) else value

    if isinstance(value, (tuple, list)):
        if any(item is None for item in value):
            raise InvalidStructure("Arrays cannot hold undefined elements", stage="decoding")
        return "[" + ", ".join(serialize_value(item) for item in value) + "]"

    raise InvalidStructure(
        f"Unsupported value type for serialization: {type(value).__name__}",
        stage="decoding",
        context={"value": repr(value)},
    )


def serialize_frame(frame: Frame) -> str:
    """
    Serialize a Frame to notation text.

    Raises:
        InvalidStructure: if the frame holds a value the notation cannot carry.
    """
    if not isinstance(frame, Frame):
        raise InvalidStructure(
            f"Expected a Frame, got {type(frame).__name__}",
            stage="decoding",
        )
    if frame.frame_type not in FRAME_TYPES:
        raise InvalidStructure(
            f"Frame type cannot be written in notation: {frame.frame_type!r}",
            stage="decoding",
            context={"frame_type": frame.frame_type, "valid_types": list(FRAME_TYPES)},
        )
    try:
        parts = [frame.frame_type]
        for key, value in frame.items():
            if value is None:
                continue
            if not _ROLE_KEY_RE.match(key):
                raise InvalidStructure(
                    f"Role name cannot be written in notation: {key!r}",
                    stage="decoding",
                    context={"role": key},
                )
            parts.append(f"{key}:{serialize_value(value)}")
        return "(" + " ".join(parts) + ")"
    except CortexError:
        raise
    except Exception as e:
        raise InvalidStructure(
            f"Failed to serialize Cortex frame: {e}",
            stage="decoding",
            context={"frame": frame.to_dict()},
        ) from e
