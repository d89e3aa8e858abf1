"""
config.py

Runtime configuration for predicate-ir.

Defaults live here as module constants. Translations called without an
explicit config read ``TranslatorConfig.from_env()``, so a deployment can
override them without code changes:

    PREDICATE_IR_DEBUG=1                  trace translation / decoding on stdout
    PREDICATE_IR_MAX_DEPTH=64             max nesting of an authoring document
    PREDICATE_IR_MAX_DOCUMENT_BYTES=...   max size of an authoring document
    PREDICATE_IR_STRICT_FIELDS=1          reject unknown authoring fields
"""

import os
from dataclasses import dataclass

# ==========================================
# DEBUGGING INSTRUMENTATION
# ==========================================
# Disabled by default. Enable with: PREDICATE_IR_DEBUG=1
DEBUG_ENABLED = os.getenv("PREDICATE_IR_DEBUG", "0") == "1"

# ==========================================
# LIMITS
# ==========================================
# A compiled predicate nests at most
# predicate > contracts > contract > inputs > proposition > inputs > input > children,
# so a generous depth still stops pathological documents early.
DEFAULT_MAX_DEPTH = 64

# 1 MiB of authoring text per predicate.
DEFAULT_MAX_DOCUMENT_BYTES = 1024 * 1024


def _env_int(name: str, default: int) -> int:
    raw = os.getenv(name)
    if raw is None or raw.strip() == "":
        return default
    try:
        return int(raw)
    except ValueError:
        raise ValueError(f"{name} must be an integer, got {raw!r}") from None


@dataclass(frozen=True)
class TranslatorConfig:
    """
    Options for the authoring-form translator.

    reject_unknown_fields: unknown object keys raise UnknownField instead of
                           being ignored.
    max_depth:             deepest allowed JSON nesting (DocumentTooLarge).
    max_document_bytes:    largest allowed UTF-8 document (DocumentTooLarge).
    """

    reject_unknown_fields: bool = False
    max_depth: int = DEFAULT_MAX_DEPTH
    max_document_bytes: int = DEFAULT_MAX_DOCUMENT_BYTES

    @classmethod
    def from_env(cls) -> "TranslatorConfig":
        return cls(
            reject_unknown_fields=os.getenv("PREDICATE_IR_STRICT_FIELDS", "0") == "1",
            max_depth=_env_int("PREDICATE_IR_MAX_DEPTH", DEFAULT_MAX_DEPTH),
            max_document_bytes=_env_int(
                "PREDICATE_IR_MAX_DOCUMENT_BYTES", DEFAULT_MAX_DOCUMENT_BYTES
            ),
        )
