"""Tests for the Taxi environment."""

import random
import unittest

from oomdp.errors import EpisodeNotStarted, IllegalAction, OOMDPError, SchemaError
from oomdp.worlds.taxi_env import (DESTINATION, PASSENGER, TAXI, Action,
                                   TaxiConfig, TaxiLayout, TaxiWorld,
                                   get_layout, make_environment,
                                   register_layout)


class TestAction(unittest.TestCase):
    """Test action mechanics."""

    def test_action_deltas(self):
        self.assertEqual(Action.NORTH.delta(), (0, -1))
        self.assertEqual(Action.SOUTH.delta(), (0, 1))
        self.assertEqual(Action.EAST.delta(), (1, 0))
        self.assertEqual(Action.WEST.delta(), (-1, 0))
        self.assertEqual(Action.PICKUP.delta(), (0, 0))

    def test_all_actions(self):
        self.assertEqual(len(Action.all()), 6)
        self.assertEqual(Action.all()[0], Action.NORTH)

    def test_parse(self):
        self.assertEqual(Action.parse("West"), Action.WEST)
        self.assertEqual(Action.parse("dropoff"), Action.DROPOFF)
        with self.assertRaises(IllegalAction):
            Action.parse("Teleport")
        with self.assertRaises(IllegalAction):
            Action.parse(3)


class TestLayout(unittest.TestCase):
    """Parsing ASCII maps."""

    def test_standard_layout(self):
        layout = get_layout("standard")
        self.assertEqual((layout.cols, layout.rows), (5, 5))
        self.assertEqual(layout.stops,
                         {"R": (0, 0), "G": (4, 0), "Y": (0, 4), "B": (3, 4)})
        self.assertEqual(layout.walls,
                         {(1, 0), (1, 1), (0, 3), (0, 4), (2, 3), (2, 4)})

    def test_walls_block_both_sides(self):
        layout = get_layout("standard")
        self.assertTrue(layout.is_blocked(1, 0, Action.EAST))
        self.assertTrue(layout.is_blocked(2, 0, Action.WEST))
        self.assertFalse(layout.is_blocked(1, 2, Action.EAST))

    def test_custom_layout(self):
        layout = register_layout(TaxiLayout.from_string("tiny", """
            +-----+
            |R| :G|
            | : : |
            +-----+
        """))
        self.assertEqual((layout.cols, layout.rows), (3, 2))
        self.assertTrue(layout.is_blocked(0, 0, Action.EAST))
        env = TaxiWorld(TaxiConfig(layout="tiny"), rng=random.Random(0))
        state = env.reset()
        self.assertIn((state.get(PASSENGER, "x"), state.get(PASSENGER, "y")),
                      [(0, 0), (2, 0)])

    def test_malformed_layout(self):
        with self.assertRaises(SchemaError):
            TaxiLayout.from_string("bad", "+--+\n|R :|\n| :|\n+--+")
        with self.assertRaises(SchemaError):
            get_layout("nowhere")


class TestTaxiWorld(unittest.TestCase):
    """Test basic Taxi mechanics."""

    def setUp(self):
        self.env = make_environment(seed=7)

    def test_reset(self):
        state = self.env.reset()
        stops = set(self.env.layout.stops.values())
        passenger = (state.get(PASSENGER, "x"), state.get(PASSENGER, "y"))
        destination = (state.get(DESTINATION, "x"), state.get(DESTINATION, "y"))
        self.assertIn(passenger, stops)
        self.assertIn(destination, stops)
        self.assertNotEqual(passenger, destination)
        self.assertFalse(state.get(PASSENGER, "in_taxi"))

    def test_step_before_reset(self):
        env = make_environment(seed=0)
        with self.assertRaises(EpisodeNotStarted):
            env.step(Action.NORTH)
        self.assertTrue(issubclass(EpisodeNotStarted, OOMDPError))
        env.reset()
        env.step("North")
        self.assertEqual(env.steps, 1)

    def test_seed_fixes_starts(self):
        a = make_environment(seed=3)
        b = make_environment(seed=3)
        self.assertEqual([a.reset() for _ in range(5)], [b.reset() for _ in range(5)])

    def test_move(self):
        self.env.reset_to((2, 2), "R", "G")
        state, reward, terminal = self.env.step(Action.NORTH)
        self.assertEqual(state.get(TAXI, "y"), 1)
        self.assertEqual(reward, -1.0)
        self.assertFalse(terminal)

    def test_wall_collision(self):
        start = self.env.reset_to((1, 0), "R", "G")
        state, reward, terminal = self.env.step(Action.EAST)
        self.assertEqual(state, start)
        self.assertEqual(reward, -1.0)

    def test_boundary_collision(self):
        start = self.env.reset_to((0, 0), "R", "G")
        state, reward, _ = self.env.step(Action.NORTH)
        self.assertEqual(state, start)
        self.assertEqual(reward, -1.0)

    def test_illegal_pickup(self):
        start = self.env.reset_to((2, 2), "R", "G")
        state, reward, terminal = self.env.step(Action.PICKUP)
        self.assertEqual(state, start)
        self.assertEqual(reward, -10.0)
        self.assertFalse(terminal)

    def test_pickup_then_deliver(self):
        self.env.reset_to((4, 0), "G", "B")
        state, reward, _ = self.env.step("Pickup")
        self.assertTrue(state.get(PASSENGER, "in_taxi"))
        self.assertEqual(reward, -1.0)
        for action in ["South", "South", "West", "South", "South"]:
            state, reward, terminal = self.env.step(action)
        self.assertEqual((state.get(TAXI, "x"), state.get(TAXI, "y")), (3, 4))
        state, reward, terminal = self.env.step(Action.DROPOFF)
        self.assertEqual(reward, 20.0)
        self.assertTrue(terminal)
        self.assertFalse(state.get(PASSENGER, "in_taxi"))
        # passenger position is the pickup stop throughout
        self.assertEqual((state.get(PASSENGER, "x"), state.get(PASSENGER, "y")), (4, 0))

    def test_dropoff_elsewhere_is_illegal(self):
        start = self.env.reset_to((0, 0), "R", "G", in_taxi=True)
        state, reward, terminal = self.env.step(Action.DROPOFF)
        self.assertEqual(state, start)
        self.assertEqual(reward, -10.0)
        self.assertFalse(terminal)

    def test_step_after_terminal(self):
        self.env.reset_to((4, 0), "R", "G", in_taxi=True)
        self.env.step(Action.DROPOFF)
        state, reward, terminal = self.env.step(Action.NORTH)
        self.assertEqual(reward, 0.0)
        self.assertTrue(terminal)
        self.assertEqual(self.env.steps, 1)

    def test_illegal_action(self):
        self.env.reset()
        with self.assertRaises(IllegalAction):
            self.env.step("Fly")

    def test_max_steps(self):
        env = TaxiWorld(TaxiConfig(max_steps=3), rng=random.Random(0))
        env.reset_to((0, 0), "R", "G")
        for _ in range(3):
            env.step(Action.NORTH)
        self.assertTrue(env.truncated)
        self.assertTrue(env.done)
        self.assertFalse(env.terminal)

    def test_transition_is_pure(self):
        start = self.env.reset_to((2, 2), "Y", "B")
        self.env.transition(start, Action.WEST)
        self.assertEqual(self.env.state, start)
        self.assertEqual(self.env.steps, 0)


if __name__ == "__main__":
    unittest.main()
