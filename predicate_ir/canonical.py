"""
predicate_ir/canonical.py - Shared canonicalization helpers
"""
import hashlib
import json
from typing import Any

from .codec import encode


def _check_no_floats(obj: Any):
    if isinstance(obj, float):
        raise ValueError("Floats never occur in the authoring form of a compiled predicate.")
    elif isinstance(obj, dict):
        for v in obj.values():
            _check_no_floats(v)
    elif isinstance(obj, (list, tuple)):
        for v in obj:
            _check_no_floats(v)


def canonical_json(obj: Any) -> str:
    """
    Canonical JSON text of an authoring-form projection:
        - sorted keys
        - no whitespace separation
        - ensure_ascii=True
        - floats rejected (the IR only carries integers)

    Two structurally equal predicates always give the same text, which makes
    it suitable for diffing compiler output.
    """
    _check_no_floats(obj)
    return json.dumps(obj, sort_keys=True, separators=(",", ":"), ensure_ascii=True, allow_nan=False)


def predicate_hash(predicate) -> str:
    """
    SHA-256 hex digest of the canonical binary encoding.

    A stable identifier for a compiled predicate: any compliant encoder
    yields the same bytes, so compiler and verifier agree on the hash.
    """
    return hashlib.sha256(encode(predicate)).hexdigest()
