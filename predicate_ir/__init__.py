"""
predicate-ir - Compiled predicate intermediate representation.

Public API:
- translate_predicate / to_authoring: authoring JSON <-> validated model
- encode_predicate / decode_predicate: canonical binary codec
- validate_predicate: addressing and scope checks over a whole predicate
- model classes (CompiledPredicate, Contract, AtomicProposition, ...)
"""

from .codec import decode, decode_predicate, encode, encode_predicate
from .canonical import canonical_json, predicate_hash
from .config import TranslatorConfig
from .errors import IRError
from .ir_validator import ValidationReport, validate_predicate
from .lexicon import LogicalConnective, NodeTag, VarKind
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
from .translator import dumps_authoring, to_authoring, translate_predicate

# Derive version from package metadata
try:
    from importlib.metadata import version
    __version__ = version("predicate-ir")
except Exception:
    __version__ = "0.1.0"

__all__ = [
    "AtomicPredicateCall",
    "AtomicProposition",
    "CompiledPredicate",
    "CompiledPredicateCall",
    "ConstantInput",
    "ConstantVariable",
    "Contract",
    "InputPredicateCall",
    "IRError",
    "LabelInput",
    "LogicalConnective",
    "NodeTag",
    "NormalInput",
    "Placeholder",
    "SelfInput",
    "TranslatorConfig",
    "ValidationReport",
    "VarKind",
    "VariableInput",
    "VariablePredicateCall",
    "canonical_json",
    "decode",
    "decode_predicate",
    "dumps_authoring",
    "encode",
    "encode_predicate",
    "predicate_hash",
    "to_authoring",
    "translate_predicate",
    "validate_predicate",
]
