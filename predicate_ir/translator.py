"""
translator.py

Authoring form <-> canonical model
----------------------------------

The compiler front end emits a loosely typed JSON document per predicate:
string tags for closed symbols, named fields in any order, optional fields
that may be omitted. ``translate_*`` lowers such a document into the
immutable model, checking on the way:

    1. tag strings map to closed symbols            (UnknownTag)
    2. tags match the shape expected at the slot    (TagShapeMismatch, InvalidCallTarget)
    3. fields are present and of the right type     (MissingField, TypeMismatch)
    4. node invariants                              (MalformedConnectiveArity, DuplicateName, ...)
    5. addressing against the enclosing structure   (OutOfRangeIndex, UnboundPlaceholder)

The first fault aborts the whole document. Every error carries the field
path and, for text input, the line/column of the node at fault.

``to_authoring`` is the reverse projection used for tooling; evaluation
never depends on it.
"""

from __future__ import annotations

import json
from typing import Any, Callable, Dict, Iterable, List, Optional, Tuple

from .addressing import Scope, validate_normal_input, validate_variable_input
from .authoring_parser import Located, locate, parse_document
from .canonical import canonical_json
from .config import DEBUG_ENABLED, TranslatorConfig
from .errors import (
    DocumentTooLarge,
    InvalidCallTarget,
    IRError,
    MissingField,
    TagShapeMismatch,
    TypeMismatch,
    UnknownField,
)
from .ir_validator import validate_contract, validate_predicate, validate_proposition
from .lexicon import (
    COMPILED_INPUT_VARIANTS,
    PREDICATE_CALL_VARIANTS,
    LogicalConnective,
    NodeTag,
    VarKind,
    symbol_from_name,
    symbol_name,
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


# Fields each node kind understands (authoring names).
FIELDS: Dict[NodeTag, Tuple[str, ...]] = {
    NodeTag.CompiledPredicate: ("type", "name", "inputDefs", "contracts", "constants", "entryPoint"),
    NodeTag.IntermediateCompiledPredicate: (
        "type", "name", "originalPredicateName", "connective", "inputDefs", "inputs", "propertyInputs",
    ),
    NodeTag.AtomicProposition: ("type", "predicate", "inputs", "isCompiled"),
    NodeTag.AtomicPredicateCall: ("type", "source"),
    NodeTag.InputPredicateCall: ("type", "source"),
    NodeTag.VariablePredicateCall: ("type",),
    NodeTag.CompiledPredicateCall: ("type", "source"),
    NodeTag.ConstantInput: ("type", "name"),
    NodeTag.LabelInput: ("type", "label"),
    NodeTag.NormalInput: ("type", "inputIndex", "children"),
    NodeTag.VariableInput: ("type", "placeholder", "children"),
    NodeTag.SelfInput: ("type", "children"),
}
CONSTANT_VARIABLE_FIELDS = ("varType", "name")


def _sub(path: str, suffix: str) -> str:
    if not path or suffix.startswith("["):
        return path + suffix
    return f"{path}.{suffix}"


def _parent_paths(path: str) -> Iterable[str]:
    """``a.b[2].c`` -> ``a.b[2].c``, ``a.b[2]``, ``a.b``, ``a``, ``""``."""
    while True:
        yield path
        if not path:
            return
        cut = max(path.rfind("."), path.rfind("["))
        path = path[:cut] if cut > 0 else ""


def _depth(loc: Located) -> int:
    deepest = 0
    stack = [(loc, 1)]
    while stack:
        node, d = stack.pop()
        deepest = max(deepest, d)
        if isinstance(node.value, dict):
            stack.extend((v, d + 1) for v in node.value.values())
        elif isinstance(node.value, list):
            stack.extend((v, d + 1) for v in node.value)
    return deepest


# ==========================================
# 1. LOWERING
# ==========================================


class _Lowering:
    """One translation run: field checks plus a path -> position table."""

    def __init__(self, config: TranslatorConfig):
        self.config = config
        self.positions: Dict[str, Tuple[Optional[int], Optional[int]]] = {}

    # --- error placement ---------------------------------------------

    def record(self, path: str, loc: Located) -> None:
        if loc.line is not None:
            self.positions[path] = loc.position

    def place(self, err: IRError) -> IRError:
        """Attach the source position of the nearest recorded node."""
        if err.line is None:
            for candidate in _parent_paths(err.path):
                if candidate in self.positions:
                    err.locate(*self.positions[candidate])
                    break
        return err

    def fail(self, cls, message: str, path: str, loc: Optional[Located] = None) -> IRError:
        err = cls(message, path=path)
        if loc is not None:
            err.locate(loc.line, loc.column)
        return self.place(err)

    def build(self, cls, path: str, *args, **kwargs):
        try:
            return cls(*args, **kwargs)
        except IRError as e:
            raise self.place(e.under(path))

    # --- JSON shape ----------------------------------------------------

    def obj(self, loc: Located, path: str, allowed: Tuple[str, ...] = ()) -> Dict[str, Located]:
        self.record(path, loc)
        if not isinstance(loc.value, dict):
            raise self.fail(TypeMismatch, f"expected an object, got {_json_type(loc.value)}", path, loc)
        fields = loc.value
        for key, value in fields.items():
            self.record(_sub(path, key), value)
        if self.config.reject_unknown_fields and allowed:
            for key, value in fields.items():
                if key not in allowed:
                    raise self.fail(UnknownField, f"unknown field {key!r}", _sub(path, key), value)
        return fields

    def required(self, fields: Dict[str, Located], key: str, path: str, owner: Located) -> Located:
        value = fields.get(key)
        if value is None:
            raise self.fail(MissingField, f"missing field {key!r}", _sub(path, key), owner)
        return value

    def optional(self, fields: Dict[str, Located], key: str) -> Optional[Located]:
        value = fields.get(key)
        if value is None or value.value is None:
            return None
        return value

    def string(self, loc: Located, path: str) -> str:
        if not isinstance(loc.value, str):
            raise self.fail(TypeMismatch, f"expected a string, got {_json_type(loc.value)}", path, loc)
        return loc.value

    def blob(self, loc: Located, path: str) -> bytes:
        return self.utf8(self.string(loc, path), path, loc)

    def utf8(self, text: str, path: str, loc: Located) -> bytes:
        try:
            return text.encode("utf-8")
        except UnicodeEncodeError:
            # lone surrogates are valid JSON escapes but not UTF-8 text
            raise self.fail(TypeMismatch, "string is not valid Unicode text", path, loc) from None

    def integer(self, loc: Located, path: str) -> int:
        v = loc.value
        if not isinstance(v, int) or isinstance(v, bool):
            raise self.fail(TypeMismatch, f"expected an integer, got {_json_type(v)}", path, loc)
        return v

    def boolean(self, loc: Located, path: str) -> bool:
        if not isinstance(loc.value, bool):
            raise self.fail(TypeMismatch, f"expected a boolean, got {_json_type(loc.value)}", path, loc)
        return loc.value

    def array(self, loc: Located, path: str) -> List[Located]:
        self.record(path, loc)
        if not isinstance(loc.value, list):
            raise self.fail(TypeMismatch, f"expected an array, got {_json_type(loc.value)}", path, loc)
        for i, item in enumerate(loc.value):
            self.record(f"{path}[{i}]", item)
        return loc.value

    def items(self, loc: Located, path: str, lower: Callable[[Located, str], Any]) -> list:
        return [lower(item, f"{path}[{i}]") for i, item in enumerate(self.array(loc, path))]

    def symbol(self, enum_cls, loc: Located, path: str):
        name = self.string(loc, path)
        try:
            return symbol_from_name(enum_cls, name, path=path)
        except IRError as e:
            raise self.place(e.locate(loc.line, loc.column))

    def tag(self, fields: Dict[str, Located], path: str, owner: Located) -> NodeTag:
        loc = self.required(fields, "type", path, owner)
        return self.symbol(NodeTag, loc, _sub(path, "type"))

    def expect_tag(self, fields, expected: NodeTag, path: str, owner: Located) -> None:
        tag = self.tag(fields, path, owner)
        if tag is not expected:
            raise self.fail(
                TagShapeMismatch,
                f"expected a {expected.name} node, got {tag.name}",
                _sub(path, "type"),
                fields["type"],
            )

    # --- compiled inputs -----------------------------------------------

    def children(self, fields, path: str) -> List[int]:
        loc = self.optional(fields, "children")
        if loc is None:
            return []
        return self.items(loc, _sub(path, "children"), self.integer)

    def normal_input(self, loc: Located, path: str, *, call_target: bool = False) -> NormalInput:
        fields = self.obj(loc, path, FIELDS[NodeTag.NormalInput])
        tag = self.tag(fields, path, loc)
        if tag is not NodeTag.NormalInput:
            cls = InvalidCallTarget if call_target else TagShapeMismatch
            raise self.fail(cls, f"expected a NormalInput, got {tag.name}", _sub(path, "type"), fields["type"])
        idx_path = _sub(path, "inputIndex")
        idx = self.integer(self.required(fields, "inputIndex", path, loc), idx_path)
        return self.build(NormalInput, path, idx, self.children(fields, path))

    def compiled_input(self, loc: Located, path: str):
        fields = self.obj(loc, path)
        tag = self.tag(fields, path, loc)
        if tag not in COMPILED_INPUT_VARIANTS:
            raise self.fail(
                TagShapeMismatch, f"{tag.name} is not a compiled input", _sub(path, "type"), fields["type"]
            )
        if tag is NodeTag.NormalInput:
            return self.normal_input(loc, path)
        self.obj(loc, path, FIELDS[tag])
        if tag is NodeTag.ConstantInput:
            name = self.blob(self.required(fields, "name", path, loc), _sub(path, "name"))
            return self.build(ConstantInput, path, name)
        if tag is NodeTag.LabelInput:
            label = self.blob(self.required(fields, "label", path, loc), _sub(path, "label"))
            return self.build(LabelInput, path, label)
        if tag is NodeTag.VariableInput:
            name = self.blob(self.required(fields, "placeholder", path, loc), _sub(path, "placeholder"))
            return self.build(VariableInput, path, name, self.children(fields, path))
        return self.build(SelfInput, path, self.children(fields, path))

    # --- calls and propositions ----------------------------------------

    def predicate_call(self, loc: Located, path: str):
        fields = self.obj(loc, path)
        tag = self.tag(fields, path, loc)
        if tag not in PREDICATE_CALL_VARIANTS:
            raise self.fail(
                TagShapeMismatch, f"{tag.name} is not a predicate call", _sub(path, "type"), fields["type"]
            )
        self.obj(loc, path, FIELDS[tag])
        if tag is NodeTag.VariablePredicateCall:
            return self.build(VariablePredicateCall, path)
        source = self.required(fields, "source", path, loc)
        source_path = _sub(path, "source")
        if tag is NodeTag.InputPredicateCall:
            if not isinstance(source.value, dict):
                raise self.fail(
                    InvalidCallTarget, "call target must be a NormalInput object", source_path, source
                )
            return self.build(InputPredicateCall, path, self.normal_input(source, source_path, call_target=True))
        cls = AtomicPredicateCall if tag is NodeTag.AtomicPredicateCall else CompiledPredicateCall
        return self.build(cls, path, self.blob(source, source_path))

    def proposition(self, loc: Located, path: str) -> AtomicProposition:
        fields = self.obj(loc, path, FIELDS[NodeTag.AtomicProposition])
        self.expect_tag(fields, NodeTag.AtomicProposition, path, loc)
        call = self.predicate_call(self.required(fields, "predicate", path, loc), _sub(path, "predicate"))
        inputs = self.items(self.required(fields, "inputs", path, loc), _sub(path, "inputs"), self.compiled_input)
        is_compiled = None
        flag = self.optional(fields, "isCompiled")
        if flag is not None:
            is_compiled = self.boolean(flag, _sub(path, "isCompiled"))
        return self.build(AtomicProposition, path, call, inputs, is_compiled)

    def contract_entry(self, loc: Located, path: str):
        self.record(path, loc)
        if isinstance(loc.value, str):
            return self.build(Placeholder, path, self.utf8(loc.value, path, loc))
        if isinstance(loc.value, dict):
            return self.proposition(loc, path)
        raise self.fail(
            TypeMismatch,
            f"contract input must be a placeholder string or a proposition, got {_json_type(loc.value)}",
            path,
            loc,
        )

    # --- contracts and predicates --------------------------------------

    def contract(self, loc: Located, path: str) -> Contract:
        fields = self.obj(loc, path, FIELDS[NodeTag.IntermediateCompiledPredicate])
        self.expect_tag(fields, NodeTag.IntermediateCompiledPredicate, path, loc)
        name = self.blob(self.required(fields, "name", path, loc), _sub(path, "name"))
        original = self.blob(
            self.required(fields, "originalPredicateName", path, loc), _sub(path, "originalPredicateName")
        )
        connective = self.symbol(
            LogicalConnective, self.required(fields, "connective", path, loc), _sub(path, "connective")
        )
        input_defs = self.items(self.required(fields, "inputDefs", path, loc), _sub(path, "inputDefs"), self.blob)
        inputs = self.items(self.required(fields, "inputs", path, loc), _sub(path, "inputs"), self.contract_entry)
        property_inputs = []
        props = self.optional(fields, "propertyInputs")
        if props is not None:
            property_inputs = self.items(props, _sub(path, "propertyInputs"), self.normal_input)
        return self.build(Contract, path, name, original, connective, input_defs, inputs, property_inputs)

    def constant_variable(self, loc: Located, path: str) -> ConstantVariable:
        fields = self.obj(loc, path, CONSTANT_VARIABLE_FIELDS)
        var_type = self.symbol(VarKind, self.required(fields, "varType", path, loc), _sub(path, "varType"))
        name = self.blob(self.required(fields, "name", path, loc), _sub(path, "name"))
        return self.build(ConstantVariable, path, var_type, name)

    def predicate(self, loc: Located, path: str) -> CompiledPredicate:
        fields = self.obj(loc, path, FIELDS[NodeTag.CompiledPredicate])
        self.expect_tag(fields, NodeTag.CompiledPredicate, path, loc)
        name = self.blob(self.required(fields, "name", path, loc), _sub(path, "name"))
        input_defs = self.items(self.required(fields, "inputDefs", path, loc), _sub(path, "inputDefs"), self.blob)
        contracts = self.items(self.required(fields, "contracts", path, loc), _sub(path, "contracts"), self.contract)
        constants = None
        consts = self.optional(fields, "constants")
        if consts is not None:
            constants = self.items(consts, _sub(path, "constants"), self.constant_variable)
        entry_point = self.blob(self.required(fields, "entryPoint", path, loc), _sub(path, "entryPoint"))
        return self.build(
            CompiledPredicate, path, name, input_defs, contracts,
            constants=constants, entry_point=entry_point,
        )

    def checked(self, check: Callable, *args, **kwargs):
        """Run a validator, placing its error in the source text."""
        try:
            return check(*args, **kwargs)
        except IRError as e:
            raise self.place(e)


def _json_type(value: Any) -> str:
    if value is None:
        return "null"
    if isinstance(value, bool):
        return "boolean"
    if isinstance(value, (int, float)):
        return "number"
    if isinstance(value, str):
        return "string"
    if isinstance(value, list):
        return "array"
    return "object"


def _load(doc, config: TranslatorConfig) -> Located:
    """Accept authoring text (str/bytes), Located values or plain JSON-like objects."""
    if isinstance(doc, (str, bytes, bytearray)):
        size = len(doc.encode("utf-8", "surrogatepass")) if isinstance(doc, str) else len(doc)
        if size > config.max_document_bytes:
            raise DocumentTooLarge(
                f"document of {size} byte(s) exceeds limit of {config.max_document_bytes}"
            )
        try:
            loc = parse_document(doc)
        except RecursionError:
            raise DocumentTooLarge("document nesting too deep to parse") from None
    else:
        loc = locate(doc)
    depth = _depth(loc)
    if depth > config.max_depth:
        raise DocumentTooLarge(f"document nesting depth {depth} exceeds limit of {config.max_depth}")
    return loc


# ==========================================
# 2. PUBLIC API
# ==========================================


def translate_predicate(doc, *, config: Optional[TranslatorConfig] = None) -> CompiledPredicate:
    """
    Lower a whole authoring document into a validated CompiledPredicate.

    ``doc`` is JSON text (str or UTF-8 bytes) or an already-loaded object.
    """
    config = config or TranslatorConfig.from_env()
    lowering = _Lowering(config)
    predicate = lowering.predicate(_load(doc, config), "")
    report = lowering.checked(validate_predicate, predicate)
    _debug_print(
        f"DEBUG translate_predicate: {predicate.name!r} -> "
        f"{len(predicate.contracts)} contract(s), bindings={report.bindings}"
    )
    return predicate


def translate_contract(
    doc,
    *,
    scope: Iterable[bytes] = (),
    owner: Optional[CompiledPredicate] = None,
    config: Optional[TranslatorConfig] = None,
) -> Contract:
    """
    Lower a single contract. ``scope`` lists variables bound by enclosing
    quantifiers; ``owner`` enables the propertyInputs bounds check.
    """
    config = config or TranslatorConfig.from_env()
    lowering = _Lowering(config)
    contract = lowering.contract(_load(doc, config), "")
    lowering.checked(validate_contract, contract, Scope.of(_names(scope)), owner=owner)
    return contract


def translate_proposition(
    doc,
    *,
    contract: Optional[Contract] = None,
    scope: Iterable[bytes] = (),
    config: Optional[TranslatorConfig] = None,
) -> AtomicProposition:
    """Lower a proposition; addresses are checked when ``contract`` is given."""
    config = config or TranslatorConfig.from_env()
    lowering = _Lowering(config)
    prop = lowering.proposition(_load(doc, config), "")
    if contract is not None:
        lowering.checked(validate_proposition, prop, contract, Scope.of(_names(scope)))
    return prop


def translate_predicate_call(doc, *, config: Optional[TranslatorConfig] = None):
    config = config or TranslatorConfig.from_env()
    return _Lowering(config).predicate_call(_load(doc, config), "")


def translate_compiled_input(
    doc,
    *,
    contract=None,
    scope: Optional[Iterable[bytes]] = None,
    config: Optional[TranslatorConfig] = None,
):
    """
    Lower one compiled input.

    With ``contract`` (anything exposing ``input_defs``) a NormalInput is
    bounds-checked; with ``scope`` a VariableInput must name a bound variable.
    """
    config = config or TranslatorConfig.from_env()
    lowering = _Lowering(config)
    item = lowering.compiled_input(_load(doc, config), "")
    if contract is not None and isinstance(item, NormalInput):
        lowering.checked(validate_normal_input, contract, item.input_index, path="inputIndex")
    if scope is not None and isinstance(item, VariableInput):
        lowering.checked(validate_variable_input, frozenset(_names(scope)), item.placeholder, path="placeholder")
    return item


def translate_constant_variable(doc, *, config: Optional[TranslatorConfig] = None) -> ConstantVariable:
    config = config or TranslatorConfig.from_env()
    return _Lowering(config).constant_variable(_load(doc, config), "")


def translate_connective(doc, *, config: Optional[TranslatorConfig] = None) -> LogicalConnective:
    """``'"ThereExistsSuchThat"'`` -> LogicalConnective.ThereExistsSuchThat"""
    config = config or TranslatorConfig.from_env()
    return _Lowering(config).symbol(LogicalConnective, _load(doc, config), "")


def _names(names: Iterable) -> List[bytes]:
    return [n.encode("utf-8") if isinstance(n, str) else bytes(n) for n in names]


# ==========================================
# 3. REVERSE PROJECTION
# ==========================================


def _text(value: bytes, path: str) -> str:
    try:
        return value.decode("utf-8")
    except UnicodeDecodeError:
        raise TypeMismatch("field is not valid UTF-8 text", path=path) from None


def to_authoring(node, path: str = "") -> Any:
    """
    Project a model node back to its authoring form (plain dicts, lists,
    strings, ints). Optional fields are omitted when absent.
    """
    if isinstance(node, LogicalConnective):
        return symbol_name(node)
    if isinstance(node, Placeholder):
        return _text(node.name, path)
    if isinstance(node, ConstantVariable):
        return {"varType": symbol_name(node.var_type), "name": _text(node.name, _sub(path, "name"))}

    out: Dict[str, Any] = {"type": symbol_name(node.tag)}
    if isinstance(node, CompiledPredicate):
        out["name"] = _text(node.name, _sub(path, "name"))
        out["inputDefs"] = [_text(d, f"{_sub(path, 'inputDefs')}[{i}]") for i, d in enumerate(node.input_defs)]
        out["contracts"] = [to_authoring(c, f"{_sub(path, 'contracts')}[{i}]") for i, c in enumerate(node.contracts)]
        if node.constants is not None:
            out["constants"] = [
                to_authoring(c, f"{_sub(path, 'constants')}[{i}]") for i, c in enumerate(node.constants)
            ]
        out["entryPoint"] = _text(node.entry_point, _sub(path, "entryPoint"))
    elif isinstance(node, Contract):
        out["name"] = _text(node.name, _sub(path, "name"))
        out["originalPredicateName"] = _text(node.original_predicate_name, _sub(path, "originalPredicateName"))
        out["connective"] = symbol_name(node.connective)
        out["inputDefs"] = [_text(d, f"{_sub(path, 'inputDefs')}[{i}]") for i, d in enumerate(node.input_defs)]
        out["inputs"] = [to_authoring(e, f"{_sub(path, 'inputs')}[{i}]") for i, e in enumerate(node.inputs)]
        out["propertyInputs"] = [
            to_authoring(p, f"{_sub(path, 'propertyInputs')}[{i}]") for i, p in enumerate(node.property_inputs)
        ]
    elif isinstance(node, AtomicProposition):
        out["predicate"] = to_authoring(node.predicate, _sub(path, "predicate"))
        out["inputs"] = [to_authoring(x, f"{_sub(path, 'inputs')}[{i}]") for i, x in enumerate(node.inputs)]
        if node.is_compiled is not None:
            out["isCompiled"] = node.is_compiled
    elif isinstance(node, InputPredicateCall):
        out["source"] = to_authoring(node.source, _sub(path, "source"))
    elif isinstance(node, (AtomicPredicateCall, CompiledPredicateCall)):
        out["source"] = _text(node.source, _sub(path, "source"))
    elif isinstance(node, VariablePredicateCall):
        pass
    elif isinstance(node, ConstantInput):
        out["name"] = _text(node.name, _sub(path, "name"))
    elif isinstance(node, LabelInput):
        out["label"] = _text(node.label, _sub(path, "label"))
    elif isinstance(node, NormalInput):
        out["inputIndex"] = node.input_index
        out["children"] = list(node.children)
    elif isinstance(node, VariableInput):
        out["placeholder"] = _text(node.placeholder, _sub(path, "placeholder"))
        out["children"] = list(node.children)
    elif isinstance(node, SelfInput):
        out["children"] = list(node.children)
    else:
        raise TypeMismatch(f"cannot project {type(node).__name__}", path=path)
    return out


def dumps_authoring(node, *, indent: Optional[int] = 2, canonical: bool = False) -> str:
    """
    Authoring text of a node. Pretty by default, for diagnostics; with
    ``canonical`` the sorted, compact form used for diffing compiler output.
    """
    if canonical:
        return canonical_json(to_authoring(node))
    return json.dumps(to_authoring(node), indent=indent, ensure_ascii=False)
