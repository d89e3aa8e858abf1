from predicate_ir.errors import (
    ERROR_KINDS,
    IRError,
    MissingField,
    OutOfRangeIndex,
    TruncatedInput,
)


def test_every_kind_is_registered():
    for name, cls in ERROR_KINDS.items():
        assert cls.kind == name
        assert issubclass(cls, IRError)
        assert cls.code.startswith("ERR_")
    assert len({cls.code for cls in ERROR_KINDS.values()}) == len(ERROR_KINDS)


def test_under_reroots_paths():
    err = OutOfRangeIndex("index 3 out of range", path="inputs[0].inputIndex")
    err.under("contracts[1]")
    assert err.path == "contracts[1].inputs[0].inputIndex"
    assert MissingField("x", path="[2]").under("inputs").path == "inputs[2]"
    assert MissingField("x").under("name").path == "name"


def test_first_position_wins():
    err = MissingField("missing field 'name'", path="name")
    err.locate(4, 2).locate(9, 9)
    assert (err.line, err.column) == (4, 2)
    assert err.located


def test_to_dict_and_str():
    err = TruncatedInput("needed 1 byte(s)", path="contracts[0].name")
    d = err.to_dict()
    assert d["kind"] == "TruncatedInput"
    assert d["code"] == "ERR_TRUNCATED_INPUT"
    assert d["line"] is None
    assert str(err) == "[ERR_TRUNCATED_INPUT] needed 1 byte(s) at contracts[0].name"
