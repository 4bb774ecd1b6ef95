"""
Agent loop — act, observe, learn, replan.

The agent wires an environment to a DOORmax learner, a reward table and
an optimistic planner, and runs the loop:

    s → a = argmax Q(s, ·) → (s', r, terminal) = env.step(a)
      → learner.observe(s, a, s', r) → rewards.record(s, a, r, terminal)
      → planner.update()

Because unknown (state, action) pairs look maximally rewarding, the same
greedy rule explores while the model is incomplete and exploits once it
is not. ``train`` runs episodes until a step budget is spent or, when
probes are given, until every probe start state is solved by a greedy
attempt.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Hashable, List, Optional, Sequence

import numpy as np

from oomdp.doormax import DoormaxLearner, LearnerConfig
from oomdp.planner import PlannerConfig, ValueIterationPlanner
from oomdp.rewards import RewardTable
from oomdp.state import State
from oomdp.utils import StepBudget, consume
from oomdp.worlds.taxi_env import Action, TaxiWorld, make_environment


@dataclass
class AgentConfig:
    """Configuration for the agent loop."""
    gamma: float = 0.95
    r_max: Optional[float] = None        # None = the environment's best reward
    tol: float = 1e-3
    max_iters: int = 20000
    prefer_no_change: bool = True
    condition_scope: str = "state"
    max_episode_steps: int = 200         # truncate longer episodes
    generalize_rewards: bool = True
    seed: Optional[int] = None


@dataclass
class EpisodeLog:
    """Record of a single episode."""
    steps: int
    total_reward: float
    terminal: bool
    truncated: bool
    actions: List[Hashable]
    states: List[State]


@dataclass
class Probe:
    """A start state the agent must be able to solve greedily."""
    state: State
    max_steps: int = 50


@dataclass
class TrainingResult:
    """Result of a training session."""
    steps_used: int
    solved: bool
    episodes: List[EpisodeLog]
    learner: DoormaxLearner
    probe_logs: List[EpisodeLog] = field(default_factory=list)

    def summary(self) -> str:
        lines = [
            "═" * 55,
            "  DOORmax agent — Training Result",
            "═" * 55,
            f"  Probes solved:     {'Yes' if self.solved else 'No'}",
            f"  Steps used:        {self.steps_used}",
            f"  Episodes:          {len(self.episodes)}",
            f"  Transitions:       {self.learner.num_transitions_observed}",
            f"  Live hypotheses:   {len(self.learner.model.live_records())}",
            "",
        ]
        if self.episodes:
            rewards = [e.total_reward for e in self.episodes]
            finished = [e for e in self.episodes if e.terminal]
            lines.append(f"  Avg reward:        {np.mean(rewards):.2f}")
            lines.append(f"  Delivered:         {len(finished)}/{len(self.episodes)} episodes")
            if finished:
                lines.append(f"  Avg episode:       {np.mean([e.steps for e in finished]):.1f} steps")
        for i, log in enumerate(self.probe_logs):
            mark = "✓" if log.terminal else "✗"
            lines.append(f"  Probe {i}: {mark} steps={log.steps} return={log.total_reward:.1f}")
        lines.append("═" * 55)
        return "\n".join(lines)


class Agent:
    """
    A model-based agent for an OO-MDP environment.

    Owns the learner, reward table and planner; the environment is
    borrowed.
    """

    def __init__(self, env: Optional[TaxiWorld] = None,
                 config: Optional[AgentConfig] = None):
        self.config = config or AgentConfig()
        self.env = env if env is not None else make_environment(self.config.seed)
        c = self.config
        self.learner = DoormaxLearner(
            self.env.schema, actions=self.env.actions,
            config=LearnerConfig(prefer_no_change=c.prefer_no_change,
                                 condition_scope=c.condition_scope),
            action_parser=Action.parse,
        )
        self.rewards = RewardTable(self.learner.evaluator,
                                   generalize=c.generalize_rewards)
        r_max = c.r_max if c.r_max is not None else self.env.max_reward
        self.planner = ValueIterationPlanner(
            self.learner, self.rewards,
            PlannerConfig(gamma=c.gamma, r_max=r_max, tol=c.tol,
                          max_iters=c.max_iters),
            actions=self.env.actions,
        )
        self.total_steps = 0

    def step(self, learn: bool = True,
             budget: Optional[StepBudget] = None):
        """One act → env.step (→ learn) cycle. Returns (action, s', r, terminal)."""
        consume(budget)
        state = self.env.state
        action = self.planner.act(state)
        next_state, reward, terminal = self.env.step(action)
        if learn:
            self.learner.observe(state, action, next_state, reward)
            self.rewards.record(state, action, reward, terminal)
            self.planner.update()
            self.total_steps += 1
        return action, next_state, reward, terminal

    def run_episode(self, start: Optional[State] = None, learn: bool = True,
                    max_steps: Optional[int] = None,
                    budget: Optional[StepBudget] = None) -> EpisodeLog:
        """Run until terminal or truncation, from ``start`` or a random reset."""
        if start is None:
            state = self.env.reset()
        else:
            state = self.env.begin(start)
        limit = max_steps if max_steps is not None else self.config.max_episode_steps
        states = [state]
        actions: List[Hashable] = []
        total = 0.0
        terminal = False
        while not terminal and len(actions) < limit and not self.env.truncated:
            action, state, reward, terminal = self.step(learn, budget)
            actions.append(action)
            states.append(state)
            total += reward
        return EpisodeLog(
            steps=len(actions),
            total_reward=total,
            terminal=terminal,
            truncated=not terminal,
            actions=actions,
            states=states,
        )

    def attempt(self, start: State, max_steps: int = 50) -> EpisodeLog:
        """Greedy rollout without learning."""
        return self.run_episode(start, learn=False, max_steps=max_steps)

    def _probes_solved(self, probes: Sequence[Probe]) -> List[EpisodeLog]:
        return [self.attempt(p.state, p.max_steps) for p in probes]

    def train(self, total_steps: int = 5000,
              probes: Optional[Sequence[Probe]] = None,
              verbose: bool = False,
              budget: Optional[StepBudget] = None) -> TrainingResult:
        """
        Learn over episodes until ``total_steps`` environment steps.

        With ``probes``, stop as soon as every probe is solved by a greedy
        attempt after an episode. Raises ``Cancelled`` if ``budget`` runs
        out first.
        """
        session = StepBudget(total_steps)
        episodes: List[EpisodeLog] = []
        probe_logs: List[EpisodeLog] = []
        solved = False
        start = self.total_steps

        while not session.exhausted:
            limit = min(self.config.max_episode_steps, session.remaining)
            log = self.run_episode(max_steps=limit, budget=budget)
            session.consume(log.steps)
            episodes.append(log)

            if verbose and len(episodes) % 5 == 0:
                mark = "✓" if log.terminal else "✗"
                print(
                    f"  [ep {len(episodes):4d}] {mark} "
                    f"steps={log.steps:3d}  "
                    f"reward={log.total_reward:7.1f}  "
                    f"states={len(self.planner):4d}  "
                    f"hypotheses={len(self.learner.model.live_records()):3d}"
                )

            if probes:
                probe_logs = self._probes_solved(probes)
                if all(p.terminal for p in probe_logs):
                    solved = True
                    if verbose:
                        print(f"  [ep {len(episodes)}] All {len(probes)} probes solved.")
                    break

        return TrainingResult(
            steps_used=self.total_steps - start,
            solved=solved,
            episodes=episodes,
            learner=self.learner,
            probe_logs=probe_logs,
        )
