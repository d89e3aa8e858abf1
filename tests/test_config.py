import json

import pytest

from predicate_ir.config import (
    DEFAULT_MAX_DEPTH,
    DEFAULT_MAX_DOCUMENT_BYTES,
    TranslatorConfig,
)
from predicate_ir.errors import DocumentTooLarge, UnknownField
from predicate_ir.translator import translate_predicate

from ir_samples import ownership


def test_defaults(monkeypatch):
    for name in ("PREDICATE_IR_STRICT_FIELDS", "PREDICATE_IR_MAX_DEPTH", "PREDICATE_IR_MAX_DOCUMENT_BYTES"):
        monkeypatch.delenv(name, raising=False)
    config = TranslatorConfig.from_env()
    assert config == TranslatorConfig()
    assert config.max_depth == DEFAULT_MAX_DEPTH
    assert config.max_document_bytes == DEFAULT_MAX_DOCUMENT_BYTES
    assert config.reject_unknown_fields is False


def test_overrides(monkeypatch):
    monkeypatch.setenv("PREDICATE_IR_STRICT_FIELDS", "1")
    monkeypatch.setenv("PREDICATE_IR_MAX_DEPTH", "12")
    monkeypatch.setenv("PREDICATE_IR_MAX_DOCUMENT_BYTES", " ")
    config = TranslatorConfig.from_env()
    assert config.reject_unknown_fields is True
    assert config.max_depth == 12
    assert config.max_document_bytes == DEFAULT_MAX_DOCUMENT_BYTES


def test_bad_integer(monkeypatch):
    monkeypatch.setenv("PREDICATE_IR_MAX_DEPTH", "deep")
    with pytest.raises(ValueError, match="PREDICATE_IR_MAX_DEPTH"):
        TranslatorConfig.from_env()


def test_translation_reads_environment(monkeypatch):
    monkeypatch.setenv("PREDICATE_IR_STRICT_FIELDS", "1")
    doc = ownership()
    doc["comment"] = "emitted by ovm-compiler"
    with pytest.raises(UnknownField) as exc:
        translate_predicate(doc)
    assert exc.value.path == "comment"

    monkeypatch.delenv("PREDICATE_IR_STRICT_FIELDS")
    translate_predicate(doc)


def test_environment_limits_apply(monkeypatch):
    monkeypatch.setenv("PREDICATE_IR_MAX_DEPTH", "4")
    with pytest.raises(DocumentTooLarge):
        translate_predicate(ownership())
    monkeypatch.setenv("PREDICATE_IR_MAX_DEPTH", "64")
    monkeypatch.setenv("PREDICATE_IR_MAX_DOCUMENT_BYTES", "50")
    with pytest.raises(DocumentTooLarge):
        translate_predicate(json.dumps(ownership()))


def test_explicit_config_wins(monkeypatch):
    monkeypatch.setenv("PREDICATE_IR_STRICT_FIELDS", "1")
    doc = ownership()
    doc["comment"] = "x"
    translate_predicate(doc, config=TranslatorConfig())
