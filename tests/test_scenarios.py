"""End-to-end Taxi scenarios and whole-system properties."""

import unittest

from oomdp.agent import Agent, AgentConfig, Probe
from oomdp.doormax import make_learner
from oomdp.effect_model import EntryStatus
from oomdp.effects import EffectKind
from oomdp.planner import make_planner
from oomdp.relations import Literal, Proposition
from oomdp.rewards import RewardTable
from oomdp.worlds.taxi_env import (PASSENGER, TAXI, Action, make_environment)

TOUCH_W = Proposition("touch_w", (0, 3))


class TestSingleStepScenarios(unittest.TestCase):
    """Wall bumps, pickups and the first learned hypotheses."""

    def setUp(self):
        self.env = make_environment(seed=0)
        self.learner = make_learner(self.env.schema, actions=Action.all())

    def test_move_against_wall(self):
        start = self.env.reset_to((0, 0), "R", "G")
        state, reward, terminal = self.env.step(Action.WEST)
        self.assertEqual((state.get(TAXI, "x"), state.get(TAXI, "y")), (0, 0))
        self.assertEqual(reward, -1.0)
        self.assertFalse(terminal)
        self.learner.observe(start, Action.WEST, state, reward)

        start = self.env.reset_to((1, 0), "R", "G")
        state, reward, _ = self.env.step(Action.WEST)
        self.assertEqual((state.get(TAXI, "x"), state.get(TAXI, "y")), (0, 0))
        self.learner.observe(start, Action.WEST, state, reward)

        add = self.learner.model.get(Action.WEST, "taxi", "x", EffectKind.ASSIGNMENT_ADD)
        self.assertEqual(add.value, -1)
        self.assertIn(Literal(TOUCH_W, False), add.precondition[0])
        stay = self.learner.model.get(Action.WEST, "taxi", "x", EffectKind.NO_CHANGE)
        self.assertIn(Literal(TOUCH_W, True), stay.precondition[0])

    def test_pickup_success(self):
        self.env.reset_to((0, 0), "R", "G")
        state, reward, terminal = self.env.step(Action.PICKUP)
        self.assertEqual(reward, -1.0)
        self.assertTrue(state.get(PASSENGER, "in_taxi"))
        self.assertEqual((state.get(PASSENGER, "x"), state.get(PASSENGER, "y")), (0, 0))
        self.assertFalse(terminal)

    def test_pickup_failure(self):
        start = self.env.reset_to((2, 2), "R", "G")
        state, reward, _ = self.env.step(Action.PICKUP)
        self.assertEqual(reward, -10.0)
        self.assertEqual(state, start)

    def test_delivery(self):
        self.env.reset_to((4, 0), "R", "G", in_taxi=True)
        _, reward, terminal = self.env.step(Action.DROPOFF)
        self.assertEqual(reward, 20.0)
        self.assertTrue(terminal)

    def test_conflicting_constants_overload(self):
        # (2,2) and (3,2) have identical signatures
        for x in (2, 3):
            start = self.env.make_state((x, 2), "R", "G")
            state, reward, _ = self.env.transition(start, Action.WEST)
            self.learner.observe(start, Action.WEST, state, reward)
        const = self.learner.model.get(Action.WEST, "taxi", "x", EffectKind.SET_CONSTANT)
        add = self.learner.model.get(Action.WEST, "taxi", "x", EffectKind.ASSIGNMENT_ADD)
        stay = self.learner.model.get(Action.WEST, "taxi", "x", EffectKind.NO_CHANGE)
        self.assertEqual(const.status, EntryStatus.OVERLOADED)
        self.assertEqual(add.status, EntryStatus.CANDIDATE)
        self.assertFalse(stay.status.dead)


class TestOptimisticExploration(unittest.TestCase):
    """An empty model makes every action worth trying, lowest index first."""

    def test_every_action_tried_in_order(self):
        env = make_environment(seed=0)
        learner = make_learner(env.schema, actions=Action.all())
        rewards = RewardTable(learner.evaluator)
        planner = make_planner(learner, rewards)
        start = env.make_state((2, 2), "R", "G")

        for expected in Action.all():
            self.assertFalse(learner.known(start, expected))
            action = planner.act(start)
            self.assertEqual(action, expected)
            next_state, reward, terminal = env.transition(start, action)
            learner.observe(start, action, next_state, reward)
            rewards.record(start, action, reward, terminal)
            planner.update()
            self.assertTrue(learner.known(start, action))

    def test_agent_tries_every_action_from_start(self):
        agent = Agent(make_environment(seed=0))
        start = agent.env.make_state((2, 2), "R", "G")
        log = agent.run_episode(start=start, max_steps=200)
        tried = [action for state, action in zip(log.states, log.actions) if state == start]
        self.assertEqual(tried[0], Action.NORTH)
        self.assertEqual(set(tried), set(Action.all()))


class TestLearnedPolicy(unittest.TestCase):
    """After exploration the greedy policy is optimal."""

    def test_optimal_episode_after_training(self):
        agent = Agent(config=AgentConfig(seed=0))
        start = agent.env.make_state((2, 2), "Y", "B")
        result = agent.train(total_steps=5000, probes=[Probe(start, max_steps=13)])
        self.assertTrue(result.solved, result.summary())

        log = agent.attempt(start, max_steps=50)
        self.assertTrue(log.terminal)
        self.assertEqual(log.steps, 13)
        self.assertEqual(log.total_reward, 8.0)
        self.assertEqual(log.actions[-1], Action.DROPOFF)


class TestSystemProperties(unittest.TestCase):
    """Determinism, monotone learning and domain safety over real runs."""

    def _run(self, seed, steps=300):
        agent = Agent(config=AgentConfig(seed=seed, max_episode_steps=60))
        result = agent.train(total_steps=steps)
        return agent, result

    def test_determinism(self):
        a, ra = self._run(seed=11)
        b, rb = self._run(seed=11)
        self.assertEqual([e.states for e in ra.episodes], [e.states for e in rb.episodes])
        self.assertEqual([e.actions for e in ra.episodes], [e.actions for e in rb.episodes])
        self.assertEqual(a.learner.model.snapshot(), b.learner.model.snapshot())
        self.assertEqual(a.planner.q_table(), b.planner.q_table())

    def test_dead_records_never_revive(self):
        agent = Agent(config=AgentConfig(seed=4, max_episode_steps=60))
        dead = set()
        agent.env.reset()
        for _ in range(400):
            _, _, _, terminal = agent.step()
            for rec in agent.learner.model.records():
                if rec.key in dead:
                    self.assertTrue(rec.status.dead, rec)
                elif rec.status.dead:
                    dead.add(rec.key)
            if terminal or agent.env.steps >= 60:
                agent.env.reset()
        self.assertTrue(dead)

    def test_precondition_only_shrinks(self):
        env = make_environment(seed=0)
        learner = make_learner(env.schema, actions=Action.all())
        previous = None
        for taxi, passenger, destination in [((2, 2), "R", "G"), ((4, 2), "R", "G"),
                                             ((4, 3), "B", "G"), ((4, 4), "Y", "R"),
                                             ((1, 2), "G", "R")]:
            start = env.make_state(taxi, passenger, destination)
            state, reward, _ = env.transition(start, Action.WEST)
            learner.observe(start, Action.WEST, state, reward)
            add = learner.model.get(Action.WEST, "taxi", "x", EffectKind.ASSIGNMENT_ADD)
            self.assertEqual(len(add.precondition), 1)
            current = add.precondition[0]
            if previous is not None:
                self.assertTrue(current.issubset(previous))
            previous = current
        self.assertIn(Literal(TOUCH_W, False), previous)

    def test_reachable_values_stay_in_domain(self):
        agent, result = self._run(seed=8, steps=200)
        for episode in result.episodes:
            for state in episode.states:
                state.validate(agent.env.schema)


if __name__ == "__main__":
    unittest.main()
