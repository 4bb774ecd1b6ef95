"""Tests for immutable OO-MDP states."""

import unittest

from oomdp.errors import DomainViolation, SchemaError
from oomdp.schema import BOOLEAN_DOMAIN, Schema
from oomdp.state import ObjectInstance, State


def _schema():
    return Schema.from_description({
        "classes": {
            "taxi": {"x": range(5), "y": range(5)},
            "passenger": {"x": range(5), "y": range(5),
                          "in_taxi": BOOLEAN_DOMAIN},
        },
    })


class TestState(unittest.TestCase):
    """Construction, access and structural identity."""

    def setUp(self):
        self.schema = _schema()
        self.state = State.from_attribute_map(self.schema, {
            1: ("passenger", {"x": 0, "y": 0, "in_taxi": False}),
            0: ("taxi", {"x": 2, "y": 3}),
        })

    def test_get(self):
        self.assertEqual(self.state.get(0, "x"), 2)
        self.assertEqual(self.state.get(1, "in_taxi"), False)

    def test_objects_in_id_order(self):
        self.assertEqual(self.state.ids, (0, 1))
        self.assertEqual([o.class_name for o in self.state.objects()],
                         ["taxi", "passenger"])

    def test_objects_of_class(self):
        taxis = list(self.state.objects_of_class("taxi"))
        self.assertEqual(len(taxis), 1)
        self.assertEqual(taxis[0].oid, 0)

    def test_structural_equality(self):
        other = State.from_attribute_map(self.schema, {
            0: ("taxi", {"y": 3, "x": 2}),
            1: ("passenger", {"in_taxi": False, "x": 0, "y": 0}),
        })
        self.assertEqual(self.state, other)
        self.assertEqual(hash(self.state), hash(other))
        self.assertEqual(self.state.digest(), other.digest())

    def test_with_values_returns_new_state(self):
        moved = self.state.with_values({(0, "x"): 1})
        self.assertEqual(moved.get(0, "x"), 1)
        self.assertEqual(self.state.get(0, "x"), 2)
        self.assertNotEqual(moved, self.state)
        self.assertNotEqual(moved.digest(), self.state.digest())

    def test_digest_is_stable(self):
        # SHA-1 hex of the canonical key, independent of the hash seed
        self.assertEqual(len(self.state.digest()), 40)
        self.assertEqual(self.state.digest(), self.state.digest())

    def test_out_of_domain_value(self):
        with self.assertRaises(DomainViolation):
            State.from_attribute_map(self.schema, {0: ("taxi", {"x": 5, "y": 0})})

    def test_missing_attribute(self):
        with self.assertRaises(SchemaError):
            State.from_attribute_map(self.schema, {0: ("taxi", {"x": 1})})

    def test_duplicate_ids(self):
        a = ObjectInstance(0, "taxi", (("x", 0), ("y", 0)))
        with self.assertRaises(ValueError):
            State([a, a])

    def test_validate_reports_witness(self):
        bad = self.state.with_values({(0, "y"): 9})
        with self.assertRaises(DomainViolation) as ctx:
            bad.validate(self.schema, witness=self.state)
        self.assertIs(ctx.exception.witness, self.state)


if __name__ == "__main__":
    unittest.main()
