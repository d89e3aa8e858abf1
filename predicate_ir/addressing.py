"""
addressing.py

Static well-formedness of input addresses.

A CompiledInput never carries a value; it says where the evaluator will find
one (a declared constant, a label, a positional parameter of the current
contract, a variable bound by an enclosing quantifier, or the whole input
tuple), optionally refined by a descent path of i8 selectors. These checks
only decide whether an address is legal given the static structure. What
the address resolves to is the evaluator's business.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import AbstractSet, FrozenSet, Iterable, Sequence

from .errors import OutOfRangeIndex, TypeMismatch, UnboundPlaceholder

U8_MAX = 0xFF
I8_MIN = -0x80
I8_MAX = 0x7F


def _is_int(value) -> bool:
    return isinstance(value, int) and not isinstance(value, bool)


def validate_input_index(idx, *, path: str = "") -> int:
    """inputIndex travels as a u8 on the wire."""
    if not _is_int(idx):
        raise TypeMismatch(f"input index must be an integer, got {type(idx).__name__}", path=path)
    if idx < 0 or idx > U8_MAX:
        raise TypeMismatch(f"input index {idx} does not fit in an unsigned byte", path=path)
    return idx


def validate_normal_input(contract, idx: int, *, path: str = "") -> None:
    """
    Check a positional reference against the parameters of its contract.

    ``contract`` is anything with ``input_defs`` (a Contract or a
    CompiledPredicate when checking propertyInputs).
    """
    arity = len(contract.input_defs)
    if idx >= arity:
        raise OutOfRangeIndex(
            f"input index {idx} out of range for {arity} input definition(s)",
            path=path,
        )


def validate_variable_input(bindings: AbstractSet[bytes], name: bytes, *, path: str = "") -> None:
    if name not in bindings:
        shown = name.decode("utf-8", "replace")
        raise UnboundPlaceholder(
            f"variable {shown!r} is not bound by any enclosing quantifier",
            path=path,
        )


def validate_children_path(path_selectors: Sequence[int], *, path: str = "") -> tuple:
    """
    Descent paths are opaque selector sequences; only the selector range is
    checked here. Negative selectors are legal and left to the evaluator.
    """
    for i, sel in enumerate(path_selectors):
        if not _is_int(sel):
            raise TypeMismatch(
                f"descent selector must be an integer, got {type(sel).__name__}",
                path=f"{path}[{i}]",
            )
        if sel < I8_MIN or sel > I8_MAX:
            raise OutOfRangeIndex(
                f"descent selector {sel} outside [{I8_MIN}, {I8_MAX}]",
                path=f"{path}[{i}]",
            )
    return tuple(path_selectors)


@dataclass(frozen=True)
class Scope:
    """Variable names visible at a position inside a contract body."""

    names: FrozenSet[bytes] = frozenset()

    @classmethod
    def of(cls, names: Iterable[bytes]) -> "Scope":
        return cls(frozenset(names))

    def bind(self, name: bytes) -> "Scope":
        return Scope(self.names | {name})

    def __contains__(self, name) -> bool:
        return name in self.names

    def check(self, name: bytes, *, path: str = "") -> None:
        validate_variable_input(self.names, name, path=path)
