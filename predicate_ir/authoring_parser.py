"""
authoring_parser.py

PEG parser for the authoring form (JSON text).

The front end emits one JSON document per compiled predicate. We parse it
with an arpeggio grammar rather than ``json.loads`` so that every value
keeps the line/column it came from; the translator uses those positions to
point at the offending node when a document is rejected.

Parsed values are ``Located`` wrappers:

    object -> Located(value={key: Located, ...})   (insertion ordered)
    array  -> Located(value=[Located, ...])
    scalar -> Located(value=str | int | float | bool | None)
"""

from __future__ import annotations

import json
import threading
from dataclasses import dataclass, field
from typing import Any, Dict, Optional, Tuple

from arpeggio import EOF, NoMatch, Optional as Opt, ParserPython, PTNodeVisitor, ZeroOrMore
from arpeggio import RegExMatch as _
from arpeggio import visit_parse_tree

from .config import DEBUG_ENABLED
from .errors import AuthoringSyntaxError, DocumentTooLarge, DuplicateName


def _debug_print(*args, **kwargs):
    """Print only if debug is enabled."""
    if DEBUG_ENABLED:
        print(*args, **kwargs)


@dataclass(frozen=True)
class Located:
    """A JSON value plus the 1-based line/column where it starts."""

    value: Any
    line: Optional[int] = field(default=None, compare=False)
    column: Optional[int] = field(default=None, compare=False)

    @property
    def position(self) -> Tuple[Optional[int], Optional[int]]:
        return self.line, self.column

    def plain(self) -> Any:
        """Strip positions, giving back ordinary JSON-like Python values."""
        if isinstance(self.value, dict):
            return {k: v.plain() for k, v in self.value.items()}
        if isinstance(self.value, list):
            return [v.plain() for v in self.value]
        return self.value


def locate(obj: Any) -> Located:
    """Wrap already-loaded JSON-like values (no positions)."""
    if isinstance(obj, Located):
        return obj
    if isinstance(obj, dict):
        return Located({k: locate(v) for k, v in obj.items()})
    if isinstance(obj, (list, tuple)):
        return Located([locate(v) for v in obj])
    return Located(obj)


# ==========================================
# 1. GRAMMAR
# ==========================================


def json_string():
    return _(r'"(?:[^"\\\x00-\x1f]|\\(?:["\\/bfnrt]|u[0-9a-fA-F]{4}))*"')


def json_number():
    return _(r'-?(?:0|[1-9][0-9]*)(?:\.[0-9]+)?(?:[eE][+-]?[0-9]+)?')


def json_true():
    return _(r'true\b')


def json_false():
    return _(r'false\b')


def json_null():
    return _(r'null\b')


def json_member():
    return json_string, ":", json_value


def json_object():
    return "{", Opt(json_member, ZeroOrMore(",", json_member)), "}"


def json_array():
    return "[", Opt(json_value, ZeroOrMore(",", json_value)), "]"


def json_value():
    return [json_object, json_array, json_string, json_number, json_true, json_false, json_null]


def document():
    return json_value, EOF


# ==========================================
# 2. VISITOR
# ==========================================


@dataclass(frozen=True)
class _Member:
    key: Located
    value: Located


def _flatten(children):
    """Collect Located / _Member results through anonymous repetition nodes."""
    for c in children:
        if isinstance(c, (Located, _Member)):
            yield c
        elif isinstance(c, (list, tuple)):
            yield from _flatten(c)


class AuthoringVisitor(PTNodeVisitor):
    """Builds Located values from the parse tree."""

    def __init__(self, parser, **kwargs):
        super().__init__(**kwargs)
        self.parser = parser

    def _at(self, node, value) -> Located:
        line, col = self.parser.pos_to_linecol(node.position)
        return Located(value, line, col)

    def visit_json_string(self, node, children):
        return self._at(node, json.loads(node.value))

    def visit_json_number(self, node, children):
        text = node.value
        if any(c in text for c in ".eE"):
            return self._at(node, float(text))
        try:
            value = int(text)
        except ValueError:
            # interpreter cap on int() digit count
            line, col = self.parser.pos_to_linecol(node.position)
            raise DocumentTooLarge(
                f"integer literal of {len(text)} digit(s) is too long", line=line, column=col
            ) from None
        return self._at(node, value)

    def visit_json_true(self, node, children):
        return self._at(node, True)

    def visit_json_false(self, node, children):
        return self._at(node, False)

    def visit_json_null(self, node, children):
        return self._at(node, None)

    def visit_json_member(self, node, children):
        located = [c for c in _flatten(children) if isinstance(c, Located)]
        return _Member(located[0], located[1])

    def visit_json_object(self, node, children):
        members: Dict[str, Located] = {}
        for m in _flatten(children):
            if not isinstance(m, _Member):
                continue
            key = m.key.value
            if key in members:
                raise DuplicateName(
                    f"duplicate field {key!r}", path=key, line=m.key.line, column=m.key.column
                )
            members[key] = m.value
        return self._at(node, members)

    def visit_json_array(self, node, children):
        return self._at(node, list(_flatten(children)))

    def visit_json_value(self, node, children):
        return next(_flatten(children))

    def visit_document(self, node, children):
        return next(_flatten(children))

    def visit__default__(self, node, children):
        # Terminals (punctuation) give their text, anonymous sequences their list.
        if not children and hasattr(node, "value"):
            return node.value
        return children


# ==========================================
# 3. PARSER INSTANCE
# ==========================================
# One grammar instance per process. Arpeggio parsers keep per-parse state,
# so parses are serialized.

_PARSER = None
_PARSER_LOCK = threading.Lock()


def _get_or_create_parser() -> ParserPython:
    global _PARSER
    with _PARSER_LOCK:
        if _PARSER is None:
            _PARSER = ParserPython(document, reduce_tree=False)
    return _PARSER


def parse_document(text: str) -> Located:
    """
    Parse authoring text into Located values.

    Raises AuthoringSyntaxError (with line/column) on malformed text and
    DuplicateName on a repeated object key.
    """
    if isinstance(text, (bytes, bytearray)):
        try:
            text = bytes(text).decode("utf-8")
        except UnicodeDecodeError as e:
            raise AuthoringSyntaxError(f"document is not valid UTF-8: {e}") from None
    parser = _get_or_create_parser()
    with _PARSER_LOCK:
        try:
            tree = parser.parse(text)
        except NoMatch as e:
            line, col = parser.pos_to_linecol(e.position)
            raise AuthoringSyntaxError(
                f"malformed authoring document: {e}", line=line, column=col
            ) from None
        result = visit_parse_tree(tree, AuthoringVisitor(parser))
    _debug_print(f"DEBUG parse_document: {len(text)} char(s) parsed")
    return result
