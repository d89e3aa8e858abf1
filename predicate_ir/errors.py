"""
errors.py

Error taxonomy for predicate-ir
-------------------------------

Every fault is detected eagerly and aborts the whole document. Errors carry
the field path of the offending node (authoring field names, e.g.
``contracts[0].inputs[2].inputIndex``) and, when the fault was found while
translating source text, the line/column of that node.

    Structural / tag : UnknownTag, TagShapeMismatch, MissingField,
                       TypeMismatch, UnknownField
    Addressing       : OutOfRangeIndex, UnboundPlaceholder, InvalidCallTarget
    Shape            : MalformedConnectiveArity, DuplicateName
    Codec            : TruncatedInput, TrailingBytes, NonCanonicalEncoding
    Authoring text   : AuthoringSyntaxError, DocumentTooLarge
"""

from __future__ import annotations

from typing import Any, Dict, Optional


class IRError(Exception):
    """Base class for predicate-ir validation and codec errors."""

    kind = "IRError"
    code = "ERR_IR"

    def __init__(
        self,
        message: str,
        *,
        path: str = "",
        line: Optional[int] = None,
        column: Optional[int] = None,
    ):
        self.message = message
        self.path = path
        self.line = line
        self.column = column
        super().__init__(message)

    @property
    def located(self) -> bool:
        return self.line is not None

    def locate(self, line: Optional[int], column: Optional[int]) -> "IRError":
        """Attach a source position unless one is already known."""
        if self.line is None and line is not None:
            self.line = line
            self.column = column
        return self

    def under(self, prefix: str) -> "IRError":
        """Re-root the error path below ``prefix`` (a node's own path)."""
        if prefix:
            if not self.path:
                self.path = prefix
            elif self.path.startswith("["):
                self.path = prefix + self.path
            else:
                self.path = f"{prefix}.{self.path}"
        return self

    def to_dict(self) -> Dict[str, Any]:
        return {
            "kind": self.kind,
            "code": self.code,
            "message": self.message,
            "path": self.path,
            "line": self.line,
            "column": self.column,
        }

    def __str__(self) -> str:
        where = ""
        if self.path:
            where += f" at {self.path}"
        if self.line is not None:
            where += f" (line {self.line}, column {self.column})"
        return f"[{self.code}] {self.message}{where}"


# -------------------------------------------------------------------------
# Structural / tag errors
# -------------------------------------------------------------------------


class UnknownTag(IRError):
    """A tag string or wire discriminant is not part of the closed registry."""

    kind = "UnknownTag"
    code = "ERR_UNKNOWN_TAG"


class TagShapeMismatch(IRError):
    """A node's stored tag does not match the shape expected at its position."""

    kind = "TagShapeMismatch"
    code = "ERR_TAG_SHAPE_MISMATCH"


class MissingField(IRError):
    kind = "MissingField"
    code = "ERR_MISSING_FIELD"


class TypeMismatch(IRError):
    kind = "TypeMismatch"
    code = "ERR_TYPE_MISMATCH"


class UnknownField(IRError):
    """Raised only when the translator runs with reject_unknown_fields."""

    kind = "UnknownField"
    code = "ERR_UNKNOWN_FIELD"


# -------------------------------------------------------------------------
# Addressing errors
# -------------------------------------------------------------------------


class OutOfRangeIndex(IRError):
    kind = "OutOfRangeIndex"
    code = "ERR_OUT_OF_RANGE_INDEX"


class UnboundPlaceholder(IRError):
    """A variable reference names no binding of an enclosing quantifier."""

    kind = "UnboundPlaceholder"
    code = "ERR_UNBOUND_PLACEHOLDER"


class InvalidCallTarget(IRError):
    kind = "InvalidCallTarget"
    code = "ERR_INVALID_CALL_TARGET"


# -------------------------------------------------------------------------
# Shape errors
# -------------------------------------------------------------------------


class MalformedConnectiveArity(IRError):
    kind = "MalformedConnectiveArity"
    code = "ERR_MALFORMED_CONNECTIVE_ARITY"


class DuplicateName(IRError):
    kind = "DuplicateName"
    code = "ERR_DUPLICATE_NAME"


# -------------------------------------------------------------------------
# Codec errors
# -------------------------------------------------------------------------


class TruncatedInput(IRError):
    kind = "TruncatedInput"
    code = "ERR_TRUNCATED_INPUT"


class TrailingBytes(IRError):
    kind = "TrailingBytes"
    code = "ERR_TRAILING_BYTES"


class NonCanonicalEncoding(IRError):
    """
    The bytes describe a value, but not in its single canonical form
    (non-minimal compact length, boolean or option byte other than 0/1).
    """

    kind = "NonCanonicalEncoding"
    code = "ERR_NON_CANONICAL_ENCODING"


# -------------------------------------------------------------------------
# Authoring text errors
# -------------------------------------------------------------------------


class AuthoringSyntaxError(IRError):
    kind = "AuthoringSyntaxError"
    code = "ERR_SYNTAX"


class DocumentTooLarge(IRError):
    """Raised when a document exceeds the configured size or nesting limit."""

    kind = "DocumentTooLarge"
    code = "ERR_DOCUMENT_TOO_LARGE"


ERROR_KINDS = {
    cls.kind: cls
    for cls in (
        UnknownTag,
        TagShapeMismatch,
        MissingField,
        TypeMismatch,
        UnknownField,
        OutOfRangeIndex,
        UnboundPlaceholder,
        InvalidCallTarget,
        MalformedConnectiveArity,
        DuplicateName,
        TruncatedInput,
        TrailingBytes,
        NonCanonicalEncoding,
        AuthoringSyntaxError,
        DocumentTooLarge,
    )
}
