"""
cortex_parser.py

Cortex notation parser
----------------------

Turns notation text into Frame trees:

    (query: action:action_get target:concept_document)
    -> Frame('query', {'action': 'action_get', 'target': 'concept_document'})

Two body grammars are auto-detected per frame:

    explicit   : role:value pairs, or the legacy two-token form `role: value`
    positional : bare values assigned to the frame type's default roles
                 (FRAME_ROLES), then property_N

The frame is explicit as soon as one body token carries a depth-zero role
colon. Colons inside nested frames, arrays or quotes do not count.

Any malformation raises InvalidStructure; there is no partial result.
"""

import re
from typing import Any, Dict, List

from .canonical import canonicalize_notation
from .errors import CortexError, InvalidStructure
from .frame import FRAME_TYPES, REFERENCE_PREFIX, Frame, default_role
from .tokenize import split_array_items, tokenize

NUMBER_RE = re.compile(r"-?\d+(\.\d+)?")
_QUOTED_RE = re.compile(r'"((?:[^"\\]|\\[\s\S])*)"')
_ESCAPE_RE = re.compile(r"\\([\s\S])")
# Role prefix: leading run without nesting/quote/escape chars, ended by ':'
_ROLE_RE = re.compile(r'^([^()\[\]"\\:]*):')
_BARE_ROLE_RE = re.compile(r'^[^()\[\]"\\:,]+$')


def unescape(text: str) -> str:
    return _ESCAPE_RE.sub(r"\1", text)


def parse_frame_type(token: str) -> str:
    """Validate the frame-type keyword; a trailing ':' is allowed."""
    clean = token[:-1] if token.endswith(":") else token
    if clean in FRAME_TYPES:
        return clean
    raise InvalidStructure(
        f"Invalid frame type: {token} (cleaned: {clean})",
        context={"token": token, "valid_types": list(FRAME_TYPES)},
    )


def has_role_colon(token: str) -> bool:
    return _ROLE_RE.match(token) is not None


def parse_cortex_string(cortex_string: str) -> Frame:
    """
    Parse a Cortex notation string into a Frame.

    Raises:
        InvalidStructure: on any structural problem (missing outer parens,
        unbalanced nesting, unknown frame type, missing role value, ...).
    """
    if not isinstance(cortex_string, str):
        raise InvalidStructure(
            f"Cortex input must be a string, got {type(cortex_string).__name__}",
        )

    cleaned = canonicalize_notation(cortex_string)
    if not cleaned.startswith("(") or not cleaned.endswith(")"):
        raise InvalidStructure(
            "Cortex string must be wrapped in parentheses",
            context={"cortex_string": cortex_string},
        )

    try:
        tokens = tokenize(cleaned[1:-1])
        if not tokens:
            raise InvalidStructure("Empty Cortex structure", context={"cortex_string": cortex_string})

        frame_type = parse_frame_type(tokens[0])
        body = tokens[1:]

        if any(has_role_colon(tok) for tok in body):
            attributes = _parse_explicit_roles(body)
        else:
            attributes = _infer_roles(body, frame_type)

        return Frame(frame_type, attributes)
    except CortexError:
        raise
    except Exception as e:
        raise InvalidStructure(
            f"Failed to parse Cortex string: {e}",
            context={"cortex_string": cortex_string},
        ) from e


def _parse_explicit_roles(tokens: List[str]) -> Dict[str, Any]:
    attributes: Dict[str, Any] = {}
    i = 0
    while i < len(tokens):
        tok = tokens[i]
        m = _ROLE_RE.match(tok)
        if m:
            role = m.group(1).strip()
            value_text = tok[m.end():]
            if not role:
                raise InvalidStructure(
                    f'Invalid role:value format at token {i + 1}: "{tok}"',
                    context={"token": tok, "index": i + 1},
                )
            if not value_text:
                # Legacy form: "role:" followed by the value token
                value_text = _next_value_token(tokens, i, role)
                i += 1
        else:
            # Legacy form: bare role followed by the value token
            if not _BARE_ROLE_RE.match(tok):
                raise InvalidStructure(
                    f'Expected a role name at token {i + 1}: "{tok}"',
                    context={"token": tok, "index": i + 1},
                )
            role = tok
            value_text = _next_value_token(tokens, i, role)
            i += 1

        attributes[role] = parse_value(value_text)
        i += 1
    return attributes


def _next_value_token(tokens: List[str], i: int, role: str) -> str:
    if i + 1 >= len(tokens) or has_role_colon(tokens[i + 1]):
        raise InvalidStructure(
            f"Missing value for role {role} at token {i + 1}",
            context={"role": role, "index": i + 1},
        )
    return tokens[i + 1]


def _infer_roles(tokens: List[str], frame_type: str) -> Dict[str, Any]:
    return {default_role(frame_type, index): parse_value(tok) for index, tok in enumerate(tokens)}


def parse_value(token: str) -> Any:
    """
    Parse one value token (longest structure first):

        (...)        nested frame
        [...]        array, split on top-level commas
        "..."        string literal (escapes removed)
        -12 / 3.5    number
        true/false   boolean
        $path        reference, kept verbatim (resolved later, never here)
        other        raw string (escapes removed)
    """
    text = token.strip()
    if not text:
        raise InvalidStructure("Empty value token", context={"token": token})

    if text.startswith("(") and text.endswith(")"):
        return parse_cortex_string(text)

    if text.startswith("[") and text.endswith("]"):
        return tuple(parse_value(item) for item in split_array_items(text[1:-1]))

    m = _QUOTED_RE.fullmatch(text)
    if m:
        return unescape(m.group(1))

    if NUMBER_RE.fullmatch(text):
        return float(text) if "." in text else int(text)

    if text == "true" or text == "false":
        return text == "true"

    if text.startswith(REFERENCE_PREFIX):
        return text

    return unescape(text)
