"""
cortex/canonical.py - Shared Canonicalization Logic
"""
import hashlib
import json
import re
from typing import Any

# Escaped pair | quoted string | // comment to end of line
_COMMENT_RE = re.compile(r'\\.|"(?:[^"\\]|\\.)*"|//[^\n]*', flags=re.DOTALL)
# Escaped pair | quoted string | whitespace run
_WHITESPACE_RE = re.compile(r'\\.|"(?:[^"\\]|\\.)*"|\s+', flags=re.DOTALL)


def strip_comments(text: str) -> str:
    """
    Remove `//` line comments. Quoted strings and escaped characters are
    left alone, so "http://host" survives.
    """
    def _drop_comment(m):
        token = m.group(0)
        return "" if token.startswith("//") else token

    return _COMMENT_RE.sub(_drop_comment, text)


def collapse_whitespace(text: str) -> str:
    """Collapse whitespace runs outside quoted strings to a single space."""
    def _collapse(m):
        token = m.group(0)
        if token.startswith('"') or token.startswith("\\"):
            return token
        return " "

    return _WHITESPACE_RE.sub(_collapse, text).strip()


def canonicalize_notation(text: str) -> str:
    """
    Canonicalize Cortex notation text before tokenizing.

    Rules:
        - Strip // comments.
        - Collapse whitespace runs (outside quotes) to single ASCII space.
        - Strip leading/trailing whitespace.

    Ensures notation differing only in layout tokenizes identically. String
    contents are never rewritten, so quoted text keeps its exact code points.
    """
    if text is None:
        return ""

    return collapse_whitespace(strip_comments(text))


def canonical_json(obj: Any) -> str:
    """
    Canonical JSON serialization:
        - sorted keys
        - no whitespace separation
        - ensure_ascii=True
        - reject NaN/Infinity (allow_nan=False)

    Values json cannot encode natively fall back to str().
    """
    return json.dumps(
        obj,
        sort_keys=True,
        separators=(",", ":"),
        ensure_ascii=True,
        allow_nan=False,
        default=str,
    )


def content_hash(text: str, length: int = 16) -> str:
    """SHA-256 hex digest of UTF-8 text, truncated to `length` hex chars."""
    return hashlib.sha256(text.encode("utf-8")).hexdigest()[:length]
