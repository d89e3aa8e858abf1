"""
model.py

Compiled predicate IR (immutable data model)
--------------------------------------------

    CompiledPredicate
      ├── contracts: Contract*          (one decomposed clause each)
      │     ├── inputs: (AtomicProposition | Placeholder)*
      │     │     └── AtomicProposition
      │     │           ├── predicate: PredicateCall
      │     │           └── inputs: CompiledInput*
      │     └── property_inputs: NormalInput*
      └── constants: ConstantVariable*  (optional)

Every structural node stores its NodeTag. The tag is checked in
``__post_init__`` so a node can never exist with a tag that disagrees with
its shape. Textual fields are opaque ``bytes``; ``str`` arguments are
accepted and stored as UTF-8. Sequences are frozen to tuples.

Ownership is strictly a tree. Placeholders and calls refer to other
contracts by name only.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Dict, NamedTuple, Optional, Tuple, Union

from .addressing import validate_children_path, validate_input_index
from .errors import (
    DuplicateName,
    InvalidCallTarget,
    MalformedConnectiveArity,
    MissingField,
    TagShapeMismatch,
    TypeMismatch,
)
from .lexicon import (
    JUNCTIONS,
    QUANTIFIERS,
    LogicalConnective,
    NodeTag,
    VarKind,
    symbol_from_index,
)


# -------------------------------------------------------------------------
# Helpers
# -------------------------------------------------------------------------


def _set(obj, name, value):
    object.__setattr__(obj, name, value)


def _blob(value, field_name: str) -> bytes:
    if isinstance(value, (bytes, bytearray)):
        return bytes(value)
    if isinstance(value, str):
        try:
            return value.encode("utf-8")
        except UnicodeEncodeError:
            raise TypeMismatch("text is not valid Unicode", path=field_name) from None
    raise TypeMismatch(
        f"expected bytes or str, got {type(value).__name__}", path=field_name
    )


def _blobs(values, field_name: str) -> Tuple[bytes, ...]:
    if isinstance(values, (str, bytes)):
        raise TypeMismatch("expected a sequence of names", path=field_name)
    return tuple(_blob(v, f"{field_name}[{i}]") for i, v in enumerate(values))


def _check_tag(node, expected: NodeTag) -> None:
    tag = node.tag
    if not isinstance(tag, NodeTag):
        tag = symbol_from_index(NodeTag, tag, path="type")
        _set(node, "tag", tag)
    if tag is not expected:
        raise TagShapeMismatch(
            f"{type(node).__name__} carries tag {tag.name}, expected {expected.name}",
            path="type",
        )


def _check_children(node) -> None:
    _set(node, "children", validate_children_path(tuple(node.children), path="children"))


# -------------------------------------------------------------------------
# Compiled inputs (addresses)
# -------------------------------------------------------------------------


@dataclass(frozen=True)
class ConstantInput:
    """A predicate-level declared constant, looked up by name."""

    name: bytes
    tag: NodeTag = field(default=NodeTag.ConstantInput, kw_only=True)

    def __post_init__(self):
        _check_tag(self, NodeTag.ConstantInput)
        _set(self, "name", _blob(self.name, "name"))


@dataclass(frozen=True)
class LabelInput:
    """An opaque label (e.g. a storage-key template) the evaluator resolves."""

    label: bytes
    tag: NodeTag = field(default=NodeTag.LabelInput, kw_only=True)

    def __post_init__(self):
        _check_tag(self, NodeTag.LabelInput)
        _set(self, "label", _blob(self.label, "label"))


@dataclass(frozen=True)
class NormalInput:
    """
    The ``input_index``-th parameter of the current contract, then descend
    through ``children``. For example ``inputs[0].inputs[1]`` of the parent
    property is ``NormalInput(0, (1,))``.
    """

    input_index: int
    children: Tuple[int, ...] = ()
    tag: NodeTag = field(default=NodeTag.NormalInput, kw_only=True)

    def __post_init__(self):
        _check_tag(self, NodeTag.NormalInput)
        validate_input_index(self.input_index, path="inputIndex")
        _check_children(self)


@dataclass(frozen=True)
class VariableInput:
    placeholder: bytes
    children: Tuple[int, ...] = ()
    tag: NodeTag = field(default=NodeTag.VariableInput, kw_only=True)

    def __post_init__(self):
        _check_tag(self, NodeTag.VariableInput)
        _set(self, "placeholder", _blob(self.placeholder, "placeholder"))
        _check_children(self)


@dataclass(frozen=True)
class SelfInput:
    children: Tuple[int, ...] = ()
    tag: NodeTag = field(default=NodeTag.SelfInput, kw_only=True)

    def __post_init__(self):
        _check_tag(self, NodeTag.SelfInput)
        _check_children(self)


CompiledInput = Union[ConstantInput, LabelInput, NormalInput, VariableInput, SelfInput]

COMPILED_INPUT_TYPES = (ConstantInput, LabelInput, NormalInput, VariableInput, SelfInput)


# -------------------------------------------------------------------------
# Predicate calls
# -------------------------------------------------------------------------


@dataclass(frozen=True)
class AtomicPredicateCall:
    """Call a native predicate by name, e.g. ``IsValidSignature()``."""

    source: bytes
    tag: NodeTag = field(default=NodeTag.AtomicPredicateCall, kw_only=True)

    def __post_init__(self):
        _check_tag(self, NodeTag.AtomicPredicateCall)
        _set(self, "source", _blob(self.source, "source"))


@dataclass(frozen=True)
class InputPredicateCall:
    """Call the predicate held by a parameter, e.g. ``a()`` in ``def Foo(a) := a()``."""

    source: NormalInput
    tag: NodeTag = field(default=NodeTag.InputPredicateCall, kw_only=True)

    def __post_init__(self):
        _check_tag(self, NodeTag.InputPredicateCall)
        if not isinstance(self.source, NormalInput):
            raise InvalidCallTarget(
                f"call target must be a NormalInput, got {type(self.source).__name__}",
                path="source",
            )


@dataclass(frozen=True)
class VariablePredicateCall:
    """Call the predicate bound in the current scope, e.g. ``su()`` in ``with SU(a) as su {su()}``."""

    tag: NodeTag = field(default=NodeTag.VariablePredicateCall, kw_only=True)

    def __post_init__(self):
        _check_tag(self, NodeTag.VariablePredicateCall)


@dataclass(frozen=True)
class CompiledPredicateCall:
    """Call another compiled predicate by name (dynamic linking)."""

    source: bytes
    tag: NodeTag = field(default=NodeTag.CompiledPredicateCall, kw_only=True)

    def __post_init__(self):
        _check_tag(self, NodeTag.CompiledPredicateCall)
        _set(self, "source", _blob(self.source, "source"))


PredicateCall = Union[
    AtomicPredicateCall, InputPredicateCall, VariablePredicateCall, CompiledPredicateCall
]

PREDICATE_CALL_TYPES = (
    AtomicPredicateCall,
    InputPredicateCall,
    VariablePredicateCall,
    CompiledPredicateCall,
)


# -------------------------------------------------------------------------
# Propositions and contracts
# -------------------------------------------------------------------------


@dataclass(frozen=True)
class AtomicProposition:
    predicate: PredicateCall
    inputs: Tuple[CompiledInput, ...] = ()
    is_compiled: Optional[bool] = None
    tag: NodeTag = field(default=NodeTag.AtomicProposition, kw_only=True)

    def __post_init__(self):
        _check_tag(self, NodeTag.AtomicProposition)
        if not isinstance(self.predicate, PREDICATE_CALL_TYPES):
            raise TypeMismatch(
                f"predicate must be a PredicateCall, got {type(self.predicate).__name__}",
                path="predicate",
            )
        inputs = tuple(self.inputs)
        for i, item in enumerate(inputs):
            if not isinstance(item, COMPILED_INPUT_TYPES):
                raise TypeMismatch(
                    f"expected a CompiledInput, got {type(item).__name__}",
                    path=f"inputs[{i}]",
                )
        _set(self, "inputs", inputs)
        if self.is_compiled is not None and not isinstance(self.is_compiled, bool):
            raise TypeMismatch("isCompiled must be a boolean", path="isCompiled")


@dataclass(frozen=True)
class Placeholder:
    """Named reference to another contract, a collection or a bound variable."""

    name: bytes

    def __post_init__(self):
        _set(self, "name", _blob(self.name, "name"))


ContractEntry = Union[AtomicProposition, Placeholder]


class QuantifierShape(NamedTuple):
    collection: Placeholder
    variable: Placeholder
    body: ContractEntry


class NegationShape(NamedTuple):
    body: ContractEntry


class JunctionShape(NamedTuple):
    bodies: Tuple[ContractEntry, ...]


ContractShape = Union[QuantifierShape, NegationShape, JunctionShape]


def _entry(value, index: int) -> ContractEntry:
    if isinstance(value, (AtomicProposition, Placeholder)):
        return value
    if isinstance(value, (str, bytes, bytearray)):
        return Placeholder(value)
    raise TypeMismatch(
        f"contract input must be a proposition or placeholder, got {type(value).__name__}",
        path=f"inputs[{index}]",
    )


def shape_for(connective: LogicalConnective, inputs: Tuple[ContractEntry, ...]) -> ContractShape:
    """Read ``inputs`` as the fixed shape its connective demands."""
    n = len(inputs)
    if connective in QUANTIFIERS:
        if n != 3:
            raise MalformedConnectiveArity(
                f"{connective.name} takes [collection, variable, body], got {n} input(s)",
                path="inputs",
            )
        for i in (0, 1):
            if not isinstance(inputs[i], Placeholder):
                raise MalformedConnectiveArity(
                    f"{connective.name} slot {i} must be a placeholder",
                    path=f"inputs[{i}]",
                )
        return QuantifierShape(*inputs)
    if connective is LogicalConnective.Not:
        if n != 1:
            raise MalformedConnectiveArity(
                f"Not takes exactly one input, got {n}", path="inputs"
            )
        return NegationShape(inputs[0])
    if connective not in JUNCTIONS or n < 2:
        raise MalformedConnectiveArity(
            f"{connective.name} takes at least two inputs, got {n}", path="inputs"
        )
    return JunctionShape(inputs)


@dataclass(frozen=True)
class Contract:
    """
    One decomposed clause (IntermediateCompiledPredicate).

    For ``for a in B() {Foo(a) and Bar(a)}`` both ``for a in B() {...}`` and
    ``Foo(a) and Bar(a)`` become contracts. ``inputs`` holds only atomic
    propositions and placeholders; its layout is fixed by ``connective``
    and exposed as ``shape``.
    """

    name: bytes
    original_predicate_name: bytes
    connective: LogicalConnective
    input_defs: Tuple[bytes, ...]
    inputs: Tuple[ContractEntry, ...]
    property_inputs: Tuple[NormalInput, ...] = ()
    tag: NodeTag = field(default=NodeTag.IntermediateCompiledPredicate, kw_only=True)

    def __post_init__(self):
        _check_tag(self, NodeTag.IntermediateCompiledPredicate)
        _set(self, "name", _blob(self.name, "name"))
        _set(self, "original_predicate_name",
             _blob(self.original_predicate_name, "originalPredicateName"))
        if not isinstance(self.connective, LogicalConnective):
            _set(self, "connective",
                 symbol_from_index(LogicalConnective, self.connective, path="connective"))
        _set(self, "input_defs", _blobs(self.input_defs, "inputDefs"))
        inputs = tuple(_entry(v, i) for i, v in enumerate(self.inputs))
        _set(self, "inputs", inputs)
        props = tuple(self.property_inputs)
        for i, item in enumerate(props):
            if not isinstance(item, NormalInput):
                raise TagShapeMismatch(
                    f"property input must be a NormalInput, got {type(item).__name__}",
                    path=f"propertyInputs[{i}]",
                )
        _set(self, "property_inputs", props)
        shape_for(self.connective, inputs)

    @property
    def shape(self) -> ContractShape:
        return shape_for(self.connective, self.inputs)

    @property
    def bound_variable(self) -> Optional[bytes]:
        """Variable this contract binds for its body, if it is a quantifier."""
        if self.connective in QUANTIFIERS:
            return self.inputs[1].name
        return None

    def bodies(self) -> Tuple[Tuple[int, ContractEntry], ...]:
        """(index, entry) pairs of the slots that hold clause bodies."""
        if self.connective in QUANTIFIERS:
            return ((2, self.inputs[2]),)
        return tuple(enumerate(self.inputs))


@dataclass(frozen=True)
class ConstantVariable:
    var_type: VarKind
    name: bytes

    def __post_init__(self):
        if not isinstance(self.var_type, VarKind):
            _set(self, "var_type", symbol_from_index(VarKind, self.var_type, path="varType"))
        _set(self, "name", _blob(self.name, "name"))


def _check_unique(names, field_name: str) -> None:
    seen = set()
    for i, name in enumerate(names):
        if name in seen:
            shown = name.decode("utf-8", "replace")
            raise DuplicateName(f"duplicate name {shown!r}", path=f"{field_name}[{i}].name")
        seen.add(name)


@dataclass(frozen=True)
class CompiledPredicate:
    """Top-level compiled property: its clauses plus the entry point."""

    name: bytes
    input_defs: Tuple[bytes, ...]
    contracts: Tuple[Contract, ...]
    constants: Optional[Tuple[ConstantVariable, ...]] = None
    entry_point: bytes = b""
    tag: NodeTag = field(default=NodeTag.CompiledPredicate, kw_only=True)

    def __post_init__(self):
        _check_tag(self, NodeTag.CompiledPredicate)
        _set(self, "name", _blob(self.name, "name"))
        _set(self, "input_defs", _blobs(self.input_defs, "inputDefs"))
        contracts = tuple(self.contracts)
        for i, c in enumerate(contracts):
            if not isinstance(c, Contract):
                raise TypeMismatch(
                    f"expected a Contract, got {type(c).__name__}", path=f"contracts[{i}]"
                )
        _set(self, "contracts", contracts)
        _check_unique([c.name for c in contracts], "contracts")
        if self.constants is not None:
            constants = tuple(self.constants)
            for i, c in enumerate(constants):
                if not isinstance(c, ConstantVariable):
                    raise TypeMismatch(
                        f"expected a ConstantVariable, got {type(c).__name__}",
                        path=f"constants[{i}]",
                    )
            _set(self, "constants", constants)
            _check_unique([c.name for c in constants], "constants")
        _set(self, "entry_point", _blob(self.entry_point, "entryPoint"))
        if not self.entry_point:
            raise MissingField("entryPoint must be non-empty", path="entryPoint")

    def contract_index(self) -> Dict[bytes, Contract]:
        """Name -> contract lookup table used to follow placeholders and calls."""
        return {c.name: c for c in self.contracts}

    def contract(self, name) -> Optional[Contract]:
        return self.contract_index().get(_blob(name, "name"))
