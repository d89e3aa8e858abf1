"""
ir_validator.py

Context-dependent validation of a compiled predicate.

Node constructors already guarantee everything a node can check about
itself (tags, connective shape, unique names, selector ranges). This module
checks what needs the surrounding structure:

- positional references (NormalInput, InputPredicateCall sources) stay
  within the parameters of their contract;
- propertyInputs stay within the parameters of the owning predicate;
- variable references (VariableInput) name a binding of an enclosing
  quantifier.

Enclosure: contract A encloses contract B when one of A's bodies names B,
either as a placeholder body or as the source of a call. A quantifier's
binding is visible in its own body slot and in every contract that body
(transitively) encloses; never in its collection or binding slots.

Placeholders that do not resolve inside the predicate are legal; they are
resolved by the evaluator's external convention.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Dict, FrozenSet, Optional, Set

from .addressing import Scope, validate_normal_input, validate_variable_input
from .config import DEBUG_ENABLED
from .model import (
    AtomicPredicateCall,
    AtomicProposition,
    CompiledPredicate,
    CompiledPredicateCall,
    Contract,
    ContractEntry,
    InputPredicateCall,
    NormalInput,
    Placeholder,
    VariableInput,
)


def _debug_print(*args, **kwargs):
    """Print only if debug is enabled."""
    if DEBUG_ENABLED:
        print(*args, **kwargs)


@dataclass(frozen=True)
class ValidationReport:
    """
    Outcome of a successful validation.

    scopes:   contract name -> variables visible inside its bodies
    bindings: contract name -> variable the contract binds (quantifiers only)
    """

    scopes: Dict[bytes, FrozenSet[bytes]]
    bindings: Dict[bytes, bytes]

    def scope_of(self, contract_name: bytes) -> FrozenSet[bytes]:
        return self.scopes.get(contract_name, frozenset())


def referenced_contract(entry: ContractEntry) -> Optional[bytes]:
    """Name a body refers to, if it refers to a clause by name at all."""
    if isinstance(entry, Placeholder):
        return entry.name
    call = entry.predicate
    if isinstance(call, (AtomicPredicateCall, CompiledPredicateCall)):
        return call.source
    return None


def enclosure_edges(predicate: CompiledPredicate) -> Dict[bytes, Set[bytes]]:
    index = predicate.contract_index()
    edges: Dict[bytes, Set[bytes]] = {c.name: set() for c in predicate.contracts}
    for contract in predicate.contracts:
        for _, body in contract.bodies():
            target = referenced_contract(body)
            if target is not None and target in index:
                edges[contract.name].add(target)
    return edges


def inherited_scopes(predicate: CompiledPredicate) -> Dict[bytes, FrozenSet[bytes]]:
    """
    Variables each contract inherits from the quantifiers enclosing it.

    Computed as a fixpoint over the enclosure graph so mutually referencing
    clauses terminate.
    """
    edges = enclosure_edges(predicate)
    inherited: Dict[bytes, FrozenSet[bytes]] = {c.name: frozenset() for c in predicate.contracts}
    changed = True
    while changed:
        changed = False
        for contract in predicate.contracts:
            exported = inherited[contract.name]
            if contract.bound_variable is not None:
                exported = exported | {contract.bound_variable}
            for child in edges[contract.name]:
                merged = inherited[child] | exported
                if merged != inherited[child]:
                    inherited[child] = merged
                    changed = True
    return inherited


def _join(path: str, suffix: str) -> str:
    if not path:
        return suffix
    if suffix.startswith("["):
        return path + suffix
    return f"{path}.{suffix}"


def validate_compiled_input(item, contract: Contract, scope: Scope, *, path: str = "") -> None:
    if isinstance(item, NormalInput):
        validate_normal_input(contract, item.input_index, path=_join(path, "inputIndex"))
    elif isinstance(item, VariableInput):
        validate_variable_input(scope.names, item.placeholder, path=_join(path, "placeholder"))


def validate_proposition(prop: AtomicProposition, contract: Contract, scope: Scope, *, path: str = "") -> None:
    call = prop.predicate
    if isinstance(call, InputPredicateCall):
        validate_normal_input(
            contract, call.source.input_index, path=_join(path, "predicate.source.inputIndex")
        )
    for i, item in enumerate(prop.inputs):
        validate_compiled_input(item, contract, scope, path=_join(path, f"inputs[{i}]"))


def validate_contract(
    contract: Contract,
    inherited: Scope = Scope(),
    *,
    owner: Optional[CompiledPredicate] = None,
    path: str = "",
) -> Scope:
    """
    Validate one contract given the variables it inherits.

    Returns the scope its bodies see. ``owner`` is needed to check
    propertyInputs, which address the owning predicate's parameters.
    """
    scope = inherited
    if contract.bound_variable is not None:
        scope = scope.bind(contract.bound_variable)
    for i, body in contract.bodies():
        if isinstance(body, AtomicProposition):
            validate_proposition(body, contract, scope, path=_join(path, f"inputs[{i}]"))
    if owner is not None:
        for i, prop_input in enumerate(contract.property_inputs):
            validate_normal_input(
                owner, prop_input.input_index, path=_join(path, f"propertyInputs[{i}].inputIndex")
            )
    return scope


def validate_predicate(predicate: CompiledPredicate, *, path: str = "") -> ValidationReport:
    """
    Run every structural check that needs more than a single node.

    Raises the first IRError found; returns a ValidationReport otherwise.
    """
    inherited = inherited_scopes(predicate)
    scopes: Dict[bytes, FrozenSet[bytes]] = {}
    bindings: Dict[bytes, bytes] = {}
    for i, contract in enumerate(predicate.contracts):
        seen = validate_contract(
            contract,
            Scope(inherited[contract.name]),
            owner=predicate,
            path=_join(path, f"contracts[{i}]"),
        )
        scopes[contract.name] = seen.names
        if contract.bound_variable is not None:
            bindings[contract.name] = contract.bound_variable
    _debug_print(
        f"DEBUG validate_predicate: {predicate.name!r} ok, "
        f"{len(predicate.contracts)} contract(s), bindings={bindings}"
    )
    return ValidationReport(scopes=scopes, bindings=bindings)
