"""
compression.py

Structural compression of Cortex frames. compress_frame() returns a new frame
and never changes meaning-bearing values, only how they are laid out:

    - undefined values and empty arrays are dropped
    - query frames keep a single action* role (a value containing '_primary'
      wins, otherwise the first) and fold more than two target*/object*
      roles into one `target_list` array
    - list frames drop duplicate items and renumber them item_1..item_N

Nested frames (directly or inside arrays) are compressed recursively.
"""

from typing import Any, Dict, List

from .frame import Frame

PRIMARY_MARKER = "_primary"
ITEM_PREFIX = "item_"


def _is_empty(value: Any) -> bool:
    return value is None or value == ()


def _compress_value(value: Any) -> Any:
    if isinstance(value, Frame):
        return compress_frame(value)
    if isinstance(value, tuple):
        return tuple(_compress_value(v) for v in value)
    return value


def compress_frame(frame: Frame) -> Frame:
    attributes = {
        key: _compress_value(value)
        for key, value in frame.items()
        if not _is_empty(value)
    }

    if frame.frame_type == "query":
        attributes = _merge_related_roles(attributes)
    elif frame.frame_type == "list":
        attributes = _dedupe_list_items(attributes)

    return Frame(frame.frame_type, attributes)


def _merge_related_roles(attributes: Dict[str, Any]) -> Dict[str, Any]:
    actions = [k for k in attributes if k.startswith("action")]
    targets = [k for k in attributes if k.startswith("target") or k.startswith("object")]

    if len(actions) > 1:
        primary = next(
            (k for k in actions if isinstance(attributes[k], str) and PRIMARY_MARKER in attributes[k]),
            actions[0],
        )
        attributes = {k: v for k, v in attributes.items() if k not in actions or k == primary}

    if len(targets) > 2:
        folded = tuple(attributes[k] for k in targets if attributes[k])
        attributes = {k: v for k, v in attributes.items() if k not in targets}
        attributes["target_list"] = folded

    return attributes


def _dedupe_list_items(attributes: Dict[str, Any]) -> Dict[str, Any]:
    item_keys = [k for k in attributes if k.startswith(ITEM_PREFIX)]
    values = [attributes[k] for k in item_keys]

    # Frames are unhashable, so uniqueness is checked by equality (and type,
    # so that 1 and True stay distinct)
    unique: List[Any] = []
    for value in values:
        if not any(type(u) is type(value) and u == value for u in unique):
            unique.append(value)

    if len(unique) == len(values):
        return attributes

    kept = {k: v for k, v in attributes.items() if k not in item_keys}
    for index, value in enumerate(unique, 1):
        kept[f"{ITEM_PREFIX}{index}"] = value
    return kept
