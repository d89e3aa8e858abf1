"""
codec.py

Canonical binary codec (SCALE layout)
-------------------------------------

Wire rules:
    - closed symbols and variant discriminants: one byte, the lexicon index
    - u8 / i8: one byte (i8 two's complement); bool: 0x00 / 0x01
    - Option<T>: 0x00 for absent, 0x01 followed by T
    - byte blobs and sequences: compact length prefix, then the items
    - struct fields in declared order, node tag first

Compact integers (little endian, low two bits select the mode):
    0b00  single byte,  value < 2**6
    0b01  two bytes,    value < 2**14
    0b10  four bytes,   value < 2**30
    0b11  big integer:  upper six bits = byte count - 4, then the bytes

Only the minimal form of every value is accepted on decode, so a byte string
decodes to at most one instance and re-encodes to the same bytes.
"""

from __future__ import annotations

import struct
from typing import Callable, Dict, List, Tuple, Type

from .config import DEBUG_ENABLED
from .errors import (
    IRError,
    NonCanonicalEncoding,
    TagShapeMismatch,
    TrailingBytes,
    TruncatedInput,
    TypeMismatch,
    UnknownTag,
)
from .ir_validator import validate_predicate
from .lexicon import (
    COMPILED_INPUT_VARIANTS,
    ENTRY_PLACEHOLDER,
    ENTRY_PROPOSITION,
    PREDICATE_CALL_VARIANTS,
    LogicalConnective,
    NodeTag,
    VarKind,
    symbol_from_index,
)
from .model import (
    AtomicPredicateCall,
    AtomicProposition,
    CompiledPredicate,
    CompiledPredicateCall,
    ConstantInput,
    ConstantVariable,
    Contract,
    InputPredicateCall,
    LabelInput,
    NormalInput,
    Placeholder,
    SelfInput,
    VariableInput,
    VariablePredicateCall,
)


def _debug_print(*args, **kwargs):
    """Print only if debug is enabled."""
    if DEBUG_ENABLED:
        print(*args, **kwargs)


_SINGLE_MAX = 1 << 6
_TWO_MAX = 1 << 14
_FOUR_MAX = 1 << 30
_BIG_MAX_BYTES = 4 + 63
_TAG_VALUES = {t.value for t in NodeTag}


def _build(cls, path: str, *args, **kwargs):
    try:
        return cls(*args, **kwargs)
    except IRError as e:
        raise e.under(path)


def _sub(path: str, suffix: str) -> str:
    if not path or suffix.startswith("["):
        return path + suffix
    return f"{path}.{suffix}"


# ==========================================
# 1. COMPACT INTEGERS
# ==========================================


def encode_compact(n: int) -> bytes:
    if n < 0:
        raise TypeMismatch(f"compact integers are unsigned, got {n}")
    if n < _SINGLE_MAX:
        return bytes([n << 2])
    if n < _TWO_MAX:
        return struct.pack("<H", (n << 2) | 0b01)
    if n < _FOUR_MAX:
        return struct.pack("<I", (n << 2) | 0b10)
    size = max(4, (n.bit_length() + 7) // 8)
    if size > _BIG_MAX_BYTES:
        raise TypeMismatch(f"integer {n} too large for compact encoding")
    return bytes([((size - 4) << 2) | 0b11]) + n.to_bytes(size, "little")


def decode_compact(data: bytes) -> int:
    reader = _Reader(data)
    n = reader.compact()
    reader.finish()
    return n


# ==========================================
# 2. WRITER
# ==========================================


class _Writer:
    def __init__(self):
        self.buf = bytearray()

    def u8(self, value: int) -> None:
        self.buf.append(value)

    def i8(self, value: int) -> None:
        self.buf.extend(struct.pack("<b", value))

    def boolean(self, value: bool) -> None:
        self.buf.append(1 if value else 0)

    def compact(self, n: int) -> None:
        self.buf.extend(encode_compact(n))

    def blob(self, value: bytes) -> None:
        self.compact(len(value))
        self.buf.extend(value)

    def seq(self, items, write_item: Callable) -> None:
        self.compact(len(items))
        for item in items:
            write_item(item)

    # --- nodes --------------------------------------------------------

    def children(self, selectors) -> None:
        self.seq(selectors, self.i8)

    def normal_input(self, node: NormalInput) -> None:
        self.u8(node.tag)
        self.u8(node.input_index)
        self.children(node.children)

    def compiled_input(self, node) -> None:
        self.u8(COMPILED_INPUT_VARIANTS.index(node.tag))
        if isinstance(node, NormalInput):
            self.normal_input(node)
            return
        self.u8(node.tag)
        if isinstance(node, ConstantInput):
            self.blob(node.name)
        elif isinstance(node, LabelInput):
            self.blob(node.label)
        elif isinstance(node, VariableInput):
            self.blob(node.placeholder)
            self.children(node.children)
        else:
            self.children(node.children)

    def predicate_call(self, node) -> None:
        self.u8(PREDICATE_CALL_VARIANTS.index(node.tag))
        self.u8(node.tag)
        if isinstance(node, InputPredicateCall):
            self.normal_input(node.source)
        elif isinstance(node, (AtomicPredicateCall, CompiledPredicateCall)):
            self.blob(node.source)

    def proposition(self, node: AtomicProposition) -> None:
        self.u8(node.tag)
        self.predicate_call(node.predicate)
        self.seq(node.inputs, self.compiled_input)
        if node.is_compiled is None:
            self.u8(0)
        else:
            self.u8(1)
            self.boolean(node.is_compiled)

    def entry(self, node) -> None:
        if isinstance(node, Placeholder):
            self.u8(ENTRY_PLACEHOLDER)
            self.blob(node.name)
        else:
            self.u8(ENTRY_PROPOSITION)
            self.proposition(node)

    def contract(self, node: Contract) -> None:
        self.u8(node.tag)
        self.blob(node.name)
        self.blob(node.original_predicate_name)
        self.u8(node.connective)
        self.seq(node.input_defs, self.blob)
        self.seq(node.inputs, self.entry)
        self.seq(node.property_inputs, self.normal_input)

    def constant_variable(self, node: ConstantVariable) -> None:
        self.u8(node.var_type)
        self.blob(node.name)

    def predicate(self, node: CompiledPredicate) -> None:
        self.u8(node.tag)
        self.blob(node.name)
        self.seq(node.input_defs, self.blob)
        self.seq(node.contracts, self.contract)
        if node.constants is None:
            self.u8(0)
        else:
            self.u8(1)
            self.seq(node.constants, self.constant_variable)
        self.blob(node.entry_point)


# ==========================================
# 3. READER
# ==========================================


class _Reader:
    def __init__(self, data: bytes):
        if not isinstance(data, (bytes, bytearray, memoryview)):
            raise TypeMismatch(f"expected bytes, got {type(data).__name__}")
        self.data = bytes(data)
        self.pos = 0

    def take(self, n: int, path: str = "") -> bytes:
        end = self.pos + n
        if end > len(self.data):
            raise TruncatedInput(
                f"needed {n} byte(s) at offset {self.pos}, "
                f"{len(self.data) - self.pos} left",
                path=path,
            )
        chunk = self.data[self.pos:end]
        self.pos = end
        return chunk

    def finish(self) -> None:
        if self.pos != len(self.data):
            raise TrailingBytes(
                f"{len(self.data) - self.pos} unused byte(s) after offset {self.pos}"
            )

    def u8(self, path: str = "") -> int:
        return self.take(1, path)[0]

    def i8(self, path: str = "") -> int:
        return struct.unpack("<b", self.take(1, path))[0]

    def flag(self, what: str, path: str = "") -> bool:
        at = self.pos
        b = self.u8(path)
        if b > 1:
            raise NonCanonicalEncoding(f"{what} byte {b:#04x} at offset {at}", path=path)
        return b == 1

    def compact(self, path: str = "") -> int:
        at = self.pos
        first = self.u8(path)
        mode = first & 0b11
        if mode == 0b00:
            return first >> 2
        if mode == 0b01:
            n = struct.unpack("<H", bytes([first]) + self.take(1, path))[0] >> 2
            minimum = _SINGLE_MAX
        elif mode == 0b10:
            n = struct.unpack("<I", bytes([first]) + self.take(3, path))[0] >> 2
            minimum = _TWO_MAX
        else:
            size = (first >> 2) + 4
            raw = self.take(size, path)
            n = int.from_bytes(raw, "little")
            if raw[-1] == 0:
                raise NonCanonicalEncoding(
                    f"compact integer at offset {at} has a zero high byte", path=path
                )
            minimum = _FOUR_MAX
        if n < minimum:
            raise NonCanonicalEncoding(
                f"compact integer {n} at offset {at} is not minimally encoded", path=path
            )
        return n

    def blob(self, path: str = "") -> bytes:
        n = self.compact(path)
        return self.take(n, path)

    def seq(self, read_item: Callable[[str], object], path: str = "") -> list:
        n = self.compact(path)
        # every item occupies at least one byte
        if n > len(self.data) - self.pos:
            raise TruncatedInput(
                f"sequence of {n} item(s) at offset {self.pos} exceeds remaining input",
                path=path,
            )
        return [read_item(f"{path}[{i}]") for i in range(n)]

    def tag(self, expected: NodeTag, path: str = "") -> NodeTag:
        at = self.pos
        found = self.u8(path)
        if found != expected:
            shown = NodeTag(found).name if found in _TAG_VALUES else f"#{found}"
            raise TagShapeMismatch(
                f"found tag {shown} at offset {at}, expected {expected.name}",
                path=_sub(path, "type"),
            )
        return expected

    # --- nodes --------------------------------------------------------

    def children(self, path: str) -> List[int]:
        return self.seq(self.i8, _sub(path, "children"))

    def normal_input(self, path: str = "") -> NormalInput:
        self.tag(NodeTag.NormalInput, path)
        idx = self.u8(_sub(path, "inputIndex"))
        return _build(NormalInput, path, idx, self.children(path))

    def compiled_input(self, path: str = "") -> object:
        variant = _variant(self, COMPILED_INPUT_VARIANTS, path)
        if variant is NodeTag.NormalInput:
            return self.normal_input(path)
        self.tag(variant, path)
        if variant is NodeTag.ConstantInput:
            return _build(ConstantInput, path, self.blob(_sub(path, "name")))
        if variant is NodeTag.LabelInput:
            return _build(LabelInput, path, self.blob(_sub(path, "label")))
        if variant is NodeTag.VariableInput:
            name = self.blob(_sub(path, "placeholder"))
            return _build(VariableInput, path, name, self.children(path))
        return _build(SelfInput, path, self.children(path))

    def predicate_call(self, path: str = "") -> object:
        variant = _variant(self, PREDICATE_CALL_VARIANTS, path)
        self.tag(variant, path)
        if variant is NodeTag.AtomicPredicateCall:
            return _build(AtomicPredicateCall, path, self.blob(_sub(path, "source")))
        if variant is NodeTag.InputPredicateCall:
            return _build(InputPredicateCall, path, self.normal_input(_sub(path, "source")))
        if variant is NodeTag.VariablePredicateCall:
            return _build(VariablePredicateCall, path)
        return _build(CompiledPredicateCall, path, self.blob(_sub(path, "source")))

    def proposition(self, path: str = "") -> AtomicProposition:
        self.tag(NodeTag.AtomicProposition, path)
        call = self.predicate_call(_sub(path, "predicate"))
        inputs = self.seq(self.compiled_input, _sub(path, "inputs"))
        is_compiled = None
        if self.flag("option", _sub(path, "isCompiled")):
            is_compiled = self.flag("bool", _sub(path, "isCompiled"))
        return _build(AtomicProposition, path, call, inputs, is_compiled)

    def entry(self, path: str = "") -> object:
        at = self.pos
        variant = self.u8(path)
        if variant == ENTRY_PROPOSITION:
            return self.proposition(path)
        if variant == ENTRY_PLACEHOLDER:
            return _build(Placeholder, path, self.blob(path))
        raise UnknownTag(
            f"contract input variant {variant} at offset {at} is neither proposition nor placeholder",
            path=path,
        )

    def contract(self, path: str = "") -> Contract:
        self.tag(NodeTag.IntermediateCompiledPredicate, path)
        name = self.blob(_sub(path, "name"))
        original = self.blob(_sub(path, "originalPredicateName"))
        connective = symbol_from_index(
            LogicalConnective, self.u8(_sub(path, "connective")), path=_sub(path, "connective")
        )
        input_defs = self.seq(self.blob, _sub(path, "inputDefs"))
        inputs = self.seq(self.entry, _sub(path, "inputs"))
        property_inputs = self.seq(self.normal_input, _sub(path, "propertyInputs"))
        return _build(Contract, path, name, original, connective, input_defs, inputs, property_inputs)

    def constant_variable(self, path: str = "") -> ConstantVariable:
        var_type = symbol_from_index(VarKind, self.u8(_sub(path, "varType")), path=_sub(path, "varType"))
        return _build(ConstantVariable, path, var_type, self.blob(_sub(path, "name")))

    def predicate(self, path: str = "") -> CompiledPredicate:
        self.tag(NodeTag.CompiledPredicate, path)
        name = self.blob(_sub(path, "name"))
        input_defs = self.seq(self.blob, _sub(path, "inputDefs"))
        contracts = self.seq(self.contract, _sub(path, "contracts"))
        constants = None
        if self.flag("option", _sub(path, "constants")):
            constants = self.seq(self.constant_variable, _sub(path, "constants"))
        entry_point = self.blob(_sub(path, "entryPoint"))
        return _build(
            CompiledPredicate, path, name, input_defs, contracts,
            constants=constants, entry_point=entry_point,
        )


def _variant(reader: _Reader, variants: Tuple[NodeTag, ...], path: str) -> NodeTag:
    index = reader.u8(path)
    if index >= len(variants):
        raise UnknownTag(f"unknown variant index {index} at offset {reader.pos - 1}", path=path)
    return variants[index]


# ==========================================
# 4. PUBLIC API
# ==========================================

_WRITERS: Dict[type, Callable[[_Writer], Callable]] = {
    CompiledPredicate: lambda w: w.predicate,
    Contract: lambda w: w.contract,
    AtomicProposition: lambda w: w.proposition,
    ConstantVariable: lambda w: w.constant_variable,
    NormalInput: lambda w: w.normal_input,
}

_READERS: Dict[type, Callable[[_Reader], Callable]] = {
    CompiledPredicate: lambda r: r.predicate,
    Contract: lambda r: r.contract,
    AtomicProposition: lambda r: r.proposition,
    ConstantVariable: lambda r: r.constant_variable,
    NormalInput: lambda r: r.normal_input,
}


def encode(node) -> bytes:
    """
    Canonical bytes of a model node.

    Struct-typed nodes (predicate, contract, proposition, constant,
    NormalInput) encode as their struct. Other compiled inputs and predicate
    calls only exist inside a polymorphic slot and encode with their variant
    discriminant, as ``encode_compiled_input`` / ``encode_predicate_call``.
    """
    w = _Writer()
    writer = _WRITERS.get(type(node))
    if writer is not None:
        writer(w)(node)
    elif isinstance(node, (ConstantInput, LabelInput, VariableInput, SelfInput)):
        w.compiled_input(node)
    elif isinstance(node, (AtomicPredicateCall, InputPredicateCall, VariablePredicateCall, CompiledPredicateCall)):
        w.predicate_call(node)
    else:
        raise TypeMismatch(f"cannot encode {type(node).__name__}")
    return bytes(w.buf)


def decode(data: bytes, node_type: Type = CompiledPredicate):
    """Decode exactly one ``node_type`` node; every byte must be consumed."""
    reader_for = _READERS.get(node_type)
    if reader_for is None:
        raise TypeMismatch(f"cannot decode {getattr(node_type, '__name__', node_type)}")
    r = _Reader(data)
    node = reader_for(r)()
    r.finish()
    return node


def encode_compiled_input(node) -> bytes:
    w = _Writer()
    w.compiled_input(node)
    return bytes(w.buf)


def decode_compiled_input(data: bytes):
    r = _Reader(data)
    node = r.compiled_input()
    r.finish()
    return node


def encode_predicate_call(node) -> bytes:
    w = _Writer()
    w.predicate_call(node)
    return bytes(w.buf)


def decode_predicate_call(data: bytes):
    r = _Reader(data)
    node = r.predicate_call()
    r.finish()
    return node


def encode_predicate(predicate: CompiledPredicate, *, validate: bool = True) -> bytes:
    if validate:
        validate_predicate(predicate)
    return encode(predicate)


def decode_predicate(data: bytes, *, validate: bool = True) -> CompiledPredicate:
    """
    Decode a compiled predicate as received from the compiler side.

    With ``validate`` the addressing checks of ir_validator run as well, so a
    successfully decoded predicate is as trustworthy as a translated one.
    """
    predicate = decode(data, CompiledPredicate)
    if validate:
        validate_predicate(predicate)
    _debug_print(f"DEBUG decode_predicate: {len(data)} byte(s) -> {predicate.name!r}")
    return predicate
