import dataclasses
import unittest

from predicate_ir.errors import (
    DuplicateName,
    InvalidCallTarget,
    MalformedConnectiveArity,
    MissingField,
    OutOfRangeIndex,
    TagShapeMismatch,
    TypeMismatch,
    UnknownTag,
)
from predicate_ir.lexicon import LogicalConnective, NodeTag, VarKind
from predicate_ir.model import (
    AtomicPredicateCall,
    AtomicProposition,
    CompiledPredicate,
    ConstantVariable,
    Contract,
    InputPredicateCall,
    JunctionShape,
    NegationShape,
    NormalInput,
    Placeholder,
    QuantifierShape,
    SelfInput,
    VariableInput,
)


def _prop(source="IsValid", *inputs):
    return AtomicProposition(AtomicPredicateCall(source), inputs)


def _contract(connective, inputs, name="C"):
    return Contract(name, "Orig", connective, ["a", "b"], inputs)


class TestNodeTags(unittest.TestCase):
    def test_default_tag_matches_shape(self):
        self.assertIs(NormalInput(0).tag, NodeTag.NormalInput)
        self.assertIs(_prop().tag, NodeTag.AtomicProposition)

    def test_wrong_tag_is_rejected(self):
        with self.assertRaises(TagShapeMismatch) as ctx:
            NormalInput(0, tag=NodeTag.SelfInput)
        self.assertEqual(ctx.exception.path, "type")

        with self.assertRaises(TagShapeMismatch):
            AtomicPredicateCall("IsValidSignature", tag=NodeTag.CompiledPredicateCall)

    def test_integer_tag_is_normalized(self):
        node = SelfInput((1,), tag=12)
        self.assertIs(node.tag, NodeTag.SelfInput)
        with self.assertRaises(UnknownTag):
            SelfInput((), tag=42)

    def test_umbrella_tag_never_fits_a_node(self):
        with self.assertRaises(TagShapeMismatch):
            VariableInput("v0", tag=NodeTag.CompiledInput)


class TestFieldCoercion(unittest.TestCase):
    def test_text_fields_become_bytes(self):
        call = AtomicPredicateCall("IsValidSignature")
        self.assertEqual(call.source, b"IsValidSignature")
        self.assertEqual(VariableInput(b"v0").placeholder, b"v0")

    def test_sequences_are_frozen(self):
        node = NormalInput(1, [0, -1])
        self.assertEqual(node.children, (0, -1))
        with self.assertRaises(dataclasses.FrozenInstanceError):
            node.input_index = 2

    def test_non_text_rejected(self):
        with self.assertRaises(TypeMismatch):
            AtomicPredicateCall(42)

    def test_input_index_is_a_byte(self):
        NormalInput(255)
        with self.assertRaises(TypeMismatch):
            NormalInput(256)
        with self.assertRaises(TypeMismatch):
            NormalInput(-1)
        with self.assertRaises(TypeMismatch):
            NormalInput(True)

    def test_children_selectors_are_signed_bytes(self):
        NormalInput(0, (-128, 127))
        with self.assertRaises(OutOfRangeIndex) as ctx:
            NormalInput(0, (0, 128))
        self.assertEqual(ctx.exception.path, "children[1]")


class TestCalls(unittest.TestCase):
    def test_input_call_requires_normal_input(self):
        call = InputPredicateCall(NormalInput(0))
        self.assertEqual(call.source.input_index, 0)
        with self.assertRaises(InvalidCallTarget):
            InputPredicateCall(SelfInput())
        with self.assertRaises(InvalidCallTarget):
            InputPredicateCall(VariableInput("p"))

    def test_proposition_inputs_must_be_addresses(self):
        with self.assertRaises(TypeMismatch) as ctx:
            AtomicProposition(AtomicPredicateCall("F"), [NormalInput(0), "v0"])
        self.assertEqual(ctx.exception.path, "inputs[1]")

    def test_is_compiled_is_optional_bool(self):
        self.assertIsNone(_prop().is_compiled)
        self.assertNotEqual(
            AtomicProposition(AtomicPredicateCall("F"), (), False),
            AtomicProposition(AtomicPredicateCall("F"), (), None),
        )
        with self.assertRaises(TypeMismatch):
            AtomicProposition(AtomicPredicateCall("F"), (), 1)


class TestConnectiveShape(unittest.TestCase):
    def test_and_needs_two_bodies(self):
        with self.assertRaises(MalformedConnectiveArity):
            _contract(LogicalConnective.And, [_prop()])
        c = _contract(LogicalConnective.And, [_prop("A"), _prop("B")])
        self.assertIsInstance(c.shape, JunctionShape)
        self.assertEqual(len(c.shape.bodies), 2)

    def test_or_accepts_many_bodies(self):
        c = _contract(LogicalConnective.Or, [_prop("A"), _prop("B"), "OtherClause"])
        self.assertEqual(c.inputs[2], Placeholder(b"OtherClause"))

    def test_not_takes_exactly_one(self):
        self.assertIsInstance(_contract(LogicalConnective.Not, [_prop()]).shape, NegationShape)
        with self.assertRaises(MalformedConnectiveArity):
            _contract(LogicalConnective.Not, [_prop(), _prop()])
        with self.assertRaises(MalformedConnectiveArity):
            _contract(LogicalConnective.Not, [])

    def test_quantifier_layout(self):
        c = _contract(LogicalConnective.ThereExistsSuchThat, ["collection", "v0", _prop()])
        shape = c.shape
        self.assertIsInstance(shape, QuantifierShape)
        self.assertEqual(shape.collection.name, b"collection")
        self.assertEqual(c.bound_variable, b"v0")
        self.assertEqual(c.bodies(), ((2, shape.body),))

    def test_quantifier_slots_must_be_placeholders(self):
        with self.assertRaises(MalformedConnectiveArity) as ctx:
            _contract(LogicalConnective.ForAllSuchThat, ["collection", _prop(), _prop()])
        self.assertEqual(ctx.exception.path, "inputs[1]")
        with self.assertRaises(MalformedConnectiveArity):
            _contract(LogicalConnective.ForAllSuchThat, ["collection", "v0"])

    def test_non_quantifier_binds_nothing(self):
        c = _contract(LogicalConnective.And, [_prop("A"), _prop("B")])
        self.assertIsNone(c.bound_variable)

    def test_connective_from_index(self):
        c = Contract("C", "O", 2, [], [_prop()])
        self.assertIs(c.connective, LogicalConnective.Not)

    def test_property_inputs_are_normal_inputs(self):
        with self.assertRaises(TagShapeMismatch):
            Contract("C", "O", LogicalConnective.Not, [], [_prop()], [SelfInput()])


class TestCompiledPredicate(unittest.TestCase):
    def _predicate(self, contracts, constants=None, entry_point="A"):
        return CompiledPredicate("P", ["x"], contracts, constants, entry_point)

    def test_contract_names_unique(self):
        a = _contract(LogicalConnective.Not, [_prop()], name="A")
        with self.assertRaises(DuplicateName) as ctx:
            self._predicate([a, a])
        self.assertEqual(ctx.exception.path, "contracts[1].name")

    def test_constant_names_unique(self):
        consts = [ConstantVariable(VarKind.Bytes, "k"), ConstantVariable(VarKind.Address, "k")]
        with self.assertRaises(DuplicateName):
            self._predicate([], consts)

    def test_entry_point_required(self):
        with self.assertRaises(MissingField):
            self._predicate([], entry_point="")

    def test_contract_lookup_by_name(self):
        a = _contract(LogicalConnective.Not, [_prop()], name="A")
        p = self._predicate([a])
        self.assertIs(p.contract("A"), a)
        self.assertIsNone(p.contract("B"))

    def test_constants_absent_vs_empty(self):
        self.assertNotEqual(self._predicate([], None), self._predicate([], []))


if __name__ == "__main__":
    unittest.main()
