"""Tests for propositions, conditions and the relation evaluator."""

import unittest

from oomdp.errors import SchemaError
from oomdp.relations import Condition, Literal, Proposition, RelationEvaluator
from oomdp.schema import Schema
from oomdp.worlds.taxi_env import make_environment


def _lit(name, args, value=True):
    return Literal(Proposition(name, args), value)


class TestCondition(unittest.TestCase):
    """Canonical conjunctions of literals."""

    def test_canonical_order(self):
        a = Condition([_lit("touch_w", (0, 3)), _lit("on", (0, 1), False)])
        b = Condition([_lit("on", (0, 1), False), _lit("touch_w", (0, 3))])
        self.assertEqual(a, b)
        self.assertEqual(hash(a), hash(b))
        self.assertEqual(a.literals[0].proposition.relation, "on")

    def test_contradiction_rejected(self):
        with self.assertRaises(ValueError):
            Condition([_lit("on", (0, 1)), _lit("on", (0, 1), False)])

    def test_intersection_keeps_agreeing_literals(self):
        a = Condition([_lit("touch_w", (0, 3)), _lit("on", (0, 1), False)])
        b = Condition([_lit("touch_w", (0, 3)), _lit("on", (0, 1), True)])
        self.assertEqual(a.intersect(b), Condition([_lit("touch_w", (0, 3))]))

    def test_holds_in(self):
        sig = Condition([_lit("touch_w", (0, 3)), _lit("on", (0, 1), False)])
        self.assertTrue(Condition().holds_in(sig))
        self.assertTrue(Condition([_lit("touch_w", (0, 3))]).holds_in(sig))
        self.assertFalse(Condition([_lit("on", (0, 1))]).holds_in(sig))

    def test_restrict(self):
        sig = Condition([_lit("touch_w", (0, 3)), _lit("in_taxi", (1,))])
        self.assertEqual(sig.restrict(1), Condition([_lit("in_taxi", (1,))]))

    def test_str(self):
        self.assertEqual(str(Condition()), "⊤")
        self.assertEqual(str(Condition([_lit("on", (0, 1), False)])), "¬on(0, 1)")


class TestRelationEvaluator(unittest.TestCase):
    """Grounding the Taxi relations."""

    def setUp(self):
        self.env = make_environment(seed=0)
        self.evaluator = RelationEvaluator(self.env.schema)

    def test_requires_frozen_schema(self):
        schema = Schema()
        schema.declare_class("taxi", [("x", range(2))])
        with self.assertRaises(SchemaError):
            RelationEvaluator(schema)

    def test_proposition_order(self):
        state = self.env.make_state((0, 0), "R", "G")
        names = [(lit.proposition.relation, lit.proposition.args)
                 for lit in self.evaluator.signature(state)]
        self.assertEqual(names, sorted(names))
        self.assertEqual(len(names), 7)

    def test_corner_propositions(self):
        state = self.env.make_state((0, 0), "R", "G")
        props = [str(p) for p in self.evaluator.propositions(state)]
        self.assertEqual(props, ["on(0, 1)", "touch_n(0, 3)", "touch_w(0, 3)"])

    def test_internal_wall(self):
        # wall between x=1 and x=2 on rows 0 and 1
        state = self.env.make_state((1, 1), "R", "G")
        self.assertTrue(self.evaluator.holds(state, Proposition("touch_e", (0, 3))))
        state = self.env.make_state((1, 2), "R", "G")
        self.assertFalse(self.evaluator.holds(state, Proposition("touch_e", (0, 3))))

    def test_in_taxi_and_destination(self):
        state = self.env.make_state((4, 0), "R", "G", in_taxi=True)
        props = [str(p) for p in self.evaluator.propositions(state)]
        self.assertIn("in_taxi(1)", props)
        self.assertIn("on(0, 2)", props)
        self.assertNotIn("on(0, 1)", props)

    def test_signature_is_pure(self):
        a = self.env.make_state((2, 2), "Y", "B")
        b = self.env.make_state((2, 2), "Y", "B")
        self.assertEqual(self.evaluator.signature(a), self.evaluator.signature(b))


if __name__ == "__main__":
    unittest.main()
