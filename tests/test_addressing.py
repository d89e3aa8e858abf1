import pytest

from predicate_ir.addressing import (
    Scope,
    validate_children_path,
    validate_input_index,
    validate_normal_input,
    validate_variable_input,
)
from predicate_ir.errors import OutOfRangeIndex, TypeMismatch, UnboundPlaceholder
from predicate_ir.lexicon import LogicalConnective
from predicate_ir.model import AtomicPredicateCall, AtomicProposition, Contract


def _contract(arity):
    defs = [f"p{i}" for i in range(arity)]
    return Contract("C", "C", LogicalConnective.Not, defs, [AtomicProposition(AtomicPredicateCall("F"))])


@pytest.mark.parametrize("arity", [1, 2, 3, 7])
def test_last_index_is_in_range(arity):
    validate_normal_input(_contract(arity), arity - 1)


@pytest.mark.parametrize("arity", [0, 1, 3])
def test_index_equal_to_arity_is_out_of_range(arity):
    with pytest.raises(OutOfRangeIndex) as exc:
        validate_normal_input(_contract(arity), arity, path="inputs[0].inputIndex")
    assert exc.value.path == "inputs[0].inputIndex"
    assert exc.value.code == "ERR_OUT_OF_RANGE_INDEX"


def test_variable_must_be_bound():
    validate_variable_input({b"v0", b"v1"}, b"v1")
    with pytest.raises(UnboundPlaceholder) as exc:
        validate_variable_input({b"v0"}, b"v2", path="placeholder")
    assert "v2" in exc.value.message


def test_scope_bind_is_persistent():
    outer = Scope.of([b"a"])
    inner = outer.bind(b"b")
    assert b"b" in inner and b"a" in inner
    assert b"b" not in outer
    inner.check(b"a")
    with pytest.raises(UnboundPlaceholder):
        outer.check(b"b")


def test_children_path_range():
    assert validate_children_path([]) == ()
    assert validate_children_path([0, -1, 127, -128]) == (0, -1, 127, -128)
    with pytest.raises(OutOfRangeIndex) as exc:
        validate_children_path([1, -129], path="children")
    assert exc.value.path == "children[1]"
    with pytest.raises(TypeMismatch):
        validate_children_path([1.5])


def test_input_index_domain():
    assert validate_input_index(0) == 0
    assert validate_input_index(255) == 255
    for bad in (-1, 256, "2", None, False):
        with pytest.raises(TypeMismatch):
            validate_input_index(bad)
