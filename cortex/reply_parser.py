"""
reply_parser.py

Turns a model's free-text reply back into a Frame. Never raises.

Shapes tried in order:

    1. embedded notation      "... (answer: content:"x") ..."
                              a non-answer frame becomes the content of an
                              answer frame with type structured_response
    2. code payload           code_[...] or a ``` fenced block
                              -> answer with type code_response
    3. fallback               answer with the raw text as content,
                              type natural_language_response, parseError true

The outcome says whether the reply parsed cleanly (issue is None) or was
salvaged by the fallback.
"""

import logging
import re
from dataclasses import dataclass
from typing import Any, Optional

from .cortex_parser import parse_cortex_string
from .errors import CortexError, InvalidStructure
from .frame import FRAME_TYPES, Frame
from .tokenize import leading_group

logger = logging.getLogger(__name__)

STRUCTURED_RESPONSE = "structured_response"
CODE_RESPONSE = "code_response"
NATURAL_LANGUAGE_RESPONSE = "natural_language_response"

_FRAME_START_RE = re.compile(r"\((?:%s)\b" % "|".join(FRAME_TYPES))
_CODE_PAYLOAD_RE = re.compile(r"code_\[(.*)\]", re.DOTALL)
_FENCED_RE = re.compile(r"```[\w+-]*\n?(.*?)```", re.DOTALL)


@dataclass
class ParseIssue:
    kind: str  # "no_structure" | "malformed_notation"
    message: str


@dataclass
class ReplyParseOutcome:
    frame: Frame
    issue: Optional[ParseIssue] = None

    @property
    def ok(self) -> bool:
        return self.issue is None


def _find_embedded_frame(text: str):
    """First parseable notation frame in text, plus the last parse error seen."""
    last_error = None
    for m in _FRAME_START_RE.finditer(text):
        candidate = leading_group(text[m.start():])
        if not candidate:
            continue
        try:
            return parse_cortex_string(candidate), None
        except CortexError as e:
            last_error = e
        except RecursionError:
            last_error = InvalidStructure("Nesting too deep in embedded frame")
    return None, last_error


def _find_code_payload(text: str) -> Optional[str]:
    m = _CODE_PAYLOAD_RE.search(text)
    if m:
        return m.group(1).strip()
    m = _FENCED_RE.search(text)
    if m:
        return m.group(1).strip()
    return None


def fallback_frame(text: str) -> Frame:
    return Frame("answer", content=text, type=NATURAL_LANGUAGE_RESPONSE, parseError=True)


def parse_model_reply(text: Any) -> ReplyParseOutcome:
    if text is None:
        text = ""
    elif not isinstance(text, str):
        text = str(text)

    frame, error = _find_embedded_frame(text)
    if frame is not None:
        if frame.frame_type == "answer":
            return ReplyParseOutcome(frame)
        return ReplyParseOutcome(Frame("answer", content=frame, type=STRUCTURED_RESPONSE))

    code = _find_code_payload(text)
    if code is not None:
        return ReplyParseOutcome(Frame("answer", content=code, type=CODE_RESPONSE))

    if error is not None:
        issue = ParseIssue("malformed_notation", error.message)
    else:
        issue = ParseIssue("no_structure", "Reply contains no recognizable structure")

    logger.warning(
        "Model reply fell back to natural language",
        extra={"context": {"issue": issue.kind, "length": len(text)}},
    )
    return ReplyParseOutcome(fallback_frame(text), issue)
