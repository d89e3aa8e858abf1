import sys

import pytest

from predicate_ir.authoring_parser import Located, locate, parse_document
from predicate_ir.errors import AuthoringSyntaxError, DocumentTooLarge, DuplicateName


def test_scalars_and_positions():
    doc = parse_document('{\n  "a": 1,\n  "b": [true, null, "x"]\n}')
    assert doc.position == (1, 1)
    a = doc.value["a"]
    assert a.value == 1 and a.line == 2
    b = doc.value["b"]
    assert b.line == 3
    assert [item.value for item in b.value] == [True, None, "x"]


def test_plain_strips_positions():
    text = '{"type": "SelfInput", "children": [0, -1]}'
    assert parse_document(text).plain() == {"type": "SelfInput", "children": [0, -1]}


def test_string_escapes():
    doc = parse_document(r'"a\"b\\cé\n"')
    assert doc.value == 'a"b\\cé\n'


def test_numbers():
    assert parse_document("-12").value == -12
    assert isinstance(parse_document("1.5").value, float)
    assert isinstance(parse_document("1e3").value, float)


def test_bytes_input():
    assert parse_document(b'["v0"]').plain() == ["v0"]
    with pytest.raises(AuthoringSyntaxError):
        parse_document(b'"\xff"')


def test_located_equality_ignores_position():
    assert Located(1, 3, 4) == Located(1)
    assert locate({"k": [1]}) == parse_document('{"k": [1]}')


@pytest.mark.parametrize("text", [
    '{"type": }',
    '{"a": 1,}',
    "[1 2]",
    "'single'",
    '{"a": 1} trailing',
    "",
])
def test_syntax_errors(text):
    with pytest.raises(AuthoringSyntaxError) as exc:
        parse_document(text)
    assert exc.value.line is not None


def test_syntax_error_line():
    with pytest.raises(AuthoringSyntaxError) as exc:
        parse_document('{\n  "type":\n}')
    assert exc.value.line == 3
    assert exc.value.code == "ERR_SYNTAX"


def test_duplicate_key():
    with pytest.raises(DuplicateName) as exc:
        parse_document('{"a": 1, "a": 2}')
    assert exc.value.path == "a"
    assert exc.value.column == 10


@pytest.mark.skipif(not hasattr(sys, "get_int_max_str_digits"), reason="no int digit cap")
def test_overlong_integer_literal():
    with pytest.raises(DocumentTooLarge) as exc:
        parse_document('[\n 1' + "0" * 5000 + "]")
    assert exc.value.line == 2


def test_surrogate_escape_survives_parsing():
    assert parse_document(r'"\ud800"').value == "\ud800"
