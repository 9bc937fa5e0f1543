"""
cortex/tokenize.py

Lexical layer for Cortex notation.

Two small PEG grammars (Arpeggio) share the same lexical pieces:

    frame_body  : tokens separated by depth-zero, unquoted, unescaped whitespace
    array_body  : items separated by depth-zero, unquoted, unescaped commas

Nesting is tracked by the grammar itself: a parenthesized or bracketed group
is matched as one balanced unit, a quoted string as one unit (so spaces and
commas inside it never split), and a backslash escapes exactly one character.
Anything unbalanced fails to match and surfaces as InvalidStructure.
"""

import threading
from typing import List

from arpeggio import EOF, NoMatch, NonTerminal, OneOrMore, Optional, ParserPython, ZeroOrMore
from arpeggio import RegExMatch as _

from .errors import InvalidStructure

# ==========================================
# 1. SHARED LEXICAL PIECES
# ==========================================

def escaped():
    return _(r'\\[\s\S]')


def quoted():
    return _(r'"(?:[^"\\]|\\[\s\S])*"')


def group_text():
    # Anything inside a group that does not open/close nesting or start a quote/escape
    return _(r'[^()\[\]"\\]+')


def paren_group():
    return "(", ZeroOrMore([paren_group, bracket_group, quoted, escaped, group_text]), ")"


def bracket_group():
    return "[", ZeroOrMore([paren_group, bracket_group, quoted, escaped, group_text]), "]"


# ==========================================
# 2. FRAME BODY (whitespace separated)
# ==========================================

def chunk():
    return _(r'[^\s()\[\]"\\]+')


def token():
    return OneOrMore([paren_group, bracket_group, quoted, escaped, chunk])


def separator():
    return _(r'\s+')


def frame_body():
    return Optional(separator), ZeroOrMore(token, Optional(separator)), EOF


# ==========================================
# 3. ARRAY BODY (comma separated)
# ==========================================

def item_chunk():
    return _(r'[^,()\[\]"\\]+')


def item():
    return OneOrMore([paren_group, bracket_group, quoted, escaped, item_chunk])


def array_body():
    return Optional(item), ZeroOrMore(",", Optional(item)), EOF


# ==========================================
# 4. PARSER INSTANCES
# ==========================================
# Arpeggio parser objects keep per-parse state, so access is serialized.
_PARSER_LOCK = threading.Lock()
_BODY_PARSER = None
_ARRAY_PARSER = None
_GROUP_PARSER = None


def _get_parsers():
    global _BODY_PARSER, _ARRAY_PARSER, _GROUP_PARSER
    with _PARSER_LOCK:
        if _BODY_PARSER is None:
            _BODY_PARSER = ParserPython(frame_body, skipws=False)
            _ARRAY_PARSER = ParserPython(array_body, skipws=False)
            _GROUP_PARSER = ParserPython(paren_group, skipws=False)
    return _BODY_PARSER, _ARRAY_PARSER


def _collect(node, rule_name: str) -> List[str]:
    """Flat text of every `rule_name` node, without descending into matches."""
    if node.rule_name == rule_name:
        return [node.flat_str()]
    if isinstance(node, NonTerminal):
        found = []
        for child in node:
            found.extend(_collect(child, rule_name))
        return found
    return []


def _parse(parser, text: str, what: str):
    try:
        with _PARSER_LOCK:
            return parser.parse(text)
    except NoMatch as e:
        raise InvalidStructure(
            f"Unbalanced or malformed {what}: {e}",
            context={"text": text, "position": getattr(e, "position", None)},
        )
    except RecursionError:
        raise InvalidStructure(
            f"Nesting too deep in {what}",
            context={"length": len(text)},
        )


def tokenize(content: str) -> List[str]:
    """
    Split the inside of a frame into tokens.

    Example:
        'query: action:get target:(entity: name:"a b")'
        -> ['query:', 'action:get', 'target:(entity: name:"a b")']
    """
    if not content or not content.strip():
        return []
    body_parser, _array_parser = _get_parsers()
    tree = _parse(body_parser, content, "frame body")
    return _collect(tree, "token")


def split_array_items(content: str) -> List[str]:
    """
    Split the inside of an array literal on depth-zero commas.
    Items are returned stripped; an empty array yields [].
    """
    if not content or not content.strip():
        return []
    _body_parser, array_parser = _get_parsers()
    tree = _parse(array_parser, content, "array")
    items = [piece.strip() for piece in _collect(tree, "item")]
    commas = _count_top_level_commas(tree)
    if len(items) != commas + 1 or any(not piece for piece in items):
        raise InvalidStructure("Empty array element", context={"text": content})
    return items


def _count_top_level_commas(tree) -> int:
    # Direct "," terminals of array_body and of its ZeroOrMore sequences
    count = 0
    for child in tree:
        if child.rule_name == "item":
            continue
        if isinstance(child, NonTerminal):
            count += _count_top_level_commas(child)
        elif child.flat_str() == ",":
            count += 1
    return count


def leading_group(text: str) -> str:
    """
    Return the balanced parenthesized group that `text` starts with, or ""
    when it does not start with one or nests too deeply to match. Trailing
    text is ignored.

    Example:
        '(answer: content:"x") and more' -> '(answer: content:"x")'
    """
    if not text.startswith("("):
        return ""
    _get_parsers()
    try:
        with _PARSER_LOCK:
            tree = _GROUP_PARSER.parse(text)
        return tree.flat_str()
    except (NoMatch, RecursionError):
        return ""
