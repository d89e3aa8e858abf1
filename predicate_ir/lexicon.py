"""
predicate-ir Symbol Lexicon (Single Source of Truth)

This module defines every closed symbol of the IR together with its wire
index and its authoring-form string. The model, the codec and the translator
MUST import from this module so that tags, discriminants and tag strings stay
aligned.

Wire indexes are the declaration order of each enum and are part of the
binary contract: never reorder, never insert in the middle.
"""

from enum import IntEnum
from typing import Dict, Type, TypeVar

from .errors import UnknownTag

E = TypeVar("E", bound=IntEnum)


class NodeTag(IntEnum):
    """Self-describing tag carried by every structural node."""

    CompiledPredicate = 0
    IntermediateCompiledPredicate = 1
    AtomicProposition = 2
    AtomicPredicateCall = 3
    InputPredicateCall = 4
    VariablePredicateCall = 5
    CompiledPredicateCall = 6
    CompiledInput = 7  # reserved umbrella symbol, never on a concrete node
    ConstantInput = 8
    LabelInput = 9
    NormalInput = 10
    VariableInput = 11
    SelfInput = 12


class VarKind(IntEnum):
    Address = 0
    Bytes = 1


class LogicalConnective(IntEnum):
    And = 0
    ForAllSuchThat = 1
    Not = 2
    Or = 3
    ThereExistsSuchThat = 4


# Variant discriminants of the polymorphic slots (wire order).
PREDICATE_CALL_VARIANTS = (
    NodeTag.AtomicPredicateCall,
    NodeTag.InputPredicateCall,
    NodeTag.VariablePredicateCall,
    NodeTag.CompiledPredicateCall,
)

COMPILED_INPUT_VARIANTS = (
    NodeTag.ConstantInput,
    NodeTag.LabelInput,
    NodeTag.NormalInput,
    NodeTag.VariableInput,
    NodeTag.SelfInput,
)

# Contract input entries: proposition or named placeholder.
ENTRY_PROPOSITION = 0
ENTRY_PLACEHOLDER = 1

QUANTIFIERS = {LogicalConnective.ForAllSuchThat, LogicalConnective.ThereExistsSuchThat}
JUNCTIONS = {LogicalConnective.And, LogicalConnective.Or}

# Authoring strings. Tags and connectives use the symbol name verbatim;
# constant kinds are lowercase.
VAR_KIND_NAMES: Dict[VarKind, str] = {
    VarKind.Address: "address",
    VarKind.Bytes: "bytes",
}

_BY_NAME: Dict[type, Dict[str, IntEnum]] = {
    NodeTag: {t.name: t for t in NodeTag},
    LogicalConnective: {c.name: c for c in LogicalConnective},
    VarKind: {name: k for k, name in VAR_KIND_NAMES.items()},
}


def symbol_name(symbol: IntEnum) -> str:
    """Authoring-form string of a closed symbol."""
    if isinstance(symbol, VarKind):
        return VAR_KIND_NAMES[symbol]
    return symbol.name


def symbol_from_name(enum_cls: Type[E], name: str, *, path: str = "") -> E:
    """Map an authoring string to its symbol, raising UnknownTag otherwise."""
    try:
        return _BY_NAME[enum_cls][name]  # type: ignore[return-value]
    except KeyError:
        raise UnknownTag(
            f"unknown {enum_cls.__name__} {name!r}", path=path
        ) from None


def symbol_from_index(enum_cls: Type[E], index: int, *, path: str = "") -> E:
    """Map a wire index to its symbol, raising UnknownTag otherwise."""
    try:
        return enum_cls(index)
    except ValueError:
        raise UnknownTag(
            f"unknown {enum_cls.__name__} index {index}", path=path
        ) from None
