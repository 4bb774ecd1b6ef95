"""
Planner — R-Max-style value iteration over the learner's imagined MDP.

For every tracked state s and action a the planner caches an imagined
outcome:

- known (learner predicts s' and the reward table knows r):
  Q(s, a) = r + γ·V(s'), or just r if the outcome is terminal
- unknown: Q(s, a) = R_max + γ·V(s), an optimistic self-loop

States enter the value table lazily, when the agent asks about them or
when a known outcome predicts them, with the optimistic value
R_max / (1 − γ). A predecessor map (outcome state → states whose cached
outcomes lead there) lets ``update`` re-sweep only what changed:
whenever the learner or the reward table revises an action, that
action's outcomes are refreshed, and changed states plus their
predecessors are backed up in FIFO order until no value moves by more
than ``tol`` or ``max_iters`` backups have run.

Action selection is ``argmax`` over Q in action enumeration order; ties
go to the lowest index.
"""

from __future__ import annotations

from collections import deque
from dataclasses import dataclass
from typing import Any, Deque, Dict, Hashable, List, Optional, Sequence, Tuple

import numpy as np

from oomdp.doormax import DoormaxLearner
from oomdp.rewards import RewardTable
from oomdp.state import State
from oomdp.utils import StepBudget, consume

Outcome = Optional[Tuple[State, float, bool]]

_UNSET: Any = object()


@dataclass
class PlannerConfig:
    """Configuration for the value-iteration planner."""
    gamma: float = 0.95
    r_max: float = 20.0
    tol: float = 1e-3
    max_iters: int = 20000   # Bellman backups per planning tick

    def __post_init__(self) -> None:
        if not 0.0 <= self.gamma < 1.0:
            raise ValueError(f"gamma must be in [0, 1), got {self.gamma}")
        if self.tol <= 0:
            raise ValueError("tol must be positive")
        if self.max_iters < 1:
            raise ValueError("max_iters must be at least 1")


class ValueIterationPlanner:
    """Incremental optimistic value iteration."""

    def __init__(self, learner: DoormaxLearner, reward_table: RewardTable,
                 config: Optional[PlannerConfig] = None,
                 actions: Optional[Sequence[Hashable]] = None):
        self.learner = learner
        self.rewards = reward_table
        self.config = config or PlannerConfig()
        if actions is None:
            actions = learner.actions
        if not actions:
            raise ValueError("the planner needs a non-empty action set")
        self.actions: List[Hashable] = list(actions)

        self.values: Dict[State, float] = {}
        self._outcomes: Dict[State, List[Outcome]] = {}
        self._preds: Dict[State, Dict[State, int]] = {}
        self._seen: List[Tuple[int, int]] = [(0, 0)] * len(self.actions)
        self._pending: Deque[State] = deque()
        self._dirty: Deque[State] = deque()
        self._queued: Dict[State, None] = {}
        self.backups = 0

    @property
    def optimistic_value(self) -> float:
        return self.config.r_max / (1.0 - self.config.gamma)

    # -- bookkeeping ---------------------------------------------------------

    def track(self, state: State) -> bool:
        """Add ``state`` to the value table. Returns False if already there."""
        if state in self.values:
            return False
        self.values[state] = self.optimistic_value
        self._outcomes[state] = [_UNSET] * len(self.actions)
        self._preds.setdefault(state, {})
        self._pending.append(state)
        return True

    def _link(self, source: State, outcome: Outcome, delta: int) -> None:
        if outcome is None:
            target = source
        elif outcome[2]:
            return  # terminal outcomes do not depend on any value
        else:
            target = outcome[0]
        links = self._preds.setdefault(target, {})
        count = links.get(source, 0) + delta
        if count > 0:
            links[source] = count
        else:
            links.pop(source, None)

    def _enqueue(self, state: State) -> None:
        if state not in self._queued:
            self._queued[state] = None
            self._dirty.append(state)

    def _refresh(self, state: State, index: int) -> None:
        action = self.actions[index]
        outcome: Outcome = None
        entry = self.rewards.lookup(state, action)
        if entry is not None:
            next_state = self.learner.predict(state, action)
            if next_state is not None:
                outcome = (next_state, entry.reward, entry.terminal)

        old = self._outcomes[state][index]
        if old is not _UNSET and old == outcome:
            return
        if old is not _UNSET:
            self._link(state, old, -1)
        self._link(state, outcome, +1)
        self._outcomes[state][index] = outcome
        if outcome is not None and not outcome[2]:
            self.track(outcome[0])
        self._enqueue(state)

    def _expand(self) -> None:
        while self._pending:
            state = self._pending.popleft()
            for index in range(len(self.actions)):
                self._refresh(state, index)

    def _refresh_stale(self) -> None:
        for index, action in enumerate(self.actions):
            current = (self.learner.revision(action), self.rewards.revision(action))
            if current == self._seen[index]:
                continue
            self._seen[index] = current
            for state in list(self._outcomes):
                if self._outcomes[state][index] is not _UNSET:
                    self._refresh(state, index)

    # -- values --------------------------------------------------------------

    def q_values(self, state: State) -> np.ndarray:
        """Q(state, ·) in action order. ``state`` must be tracked."""
        gamma = self.config.gamma
        v = self.values[state]
        q = np.empty(len(self.actions))
        for i, outcome in enumerate(self._outcomes[state]):
            if outcome is None or outcome is _UNSET:
                q[i] = self.config.r_max + gamma * v
            else:
                next_state, reward, terminal = outcome
                q[i] = reward if terminal else reward + gamma * self.values[next_state]
        return q

    def _backup(self, state: State) -> float:
        """Bellman backup of one state. Returns the absolute change."""
        new = float(np.max(self.q_values(state)))
        delta = abs(new - self.values[state])
        self.values[state] = new
        return delta

    def update(self, budget: Optional[StepBudget] = None) -> int:
        """
        Bring the value table up to date with the learner and reward table.

        Returns the number of backups performed.
        """
        self._refresh_stale()
        self._expand()
        tol = self.config.tol
        iters = 0
        while self._dirty and iters < self.config.max_iters:
            consume(budget)
            state = self._dirty.popleft()
            del self._queued[state]
            iters += 1
            new = float(np.max(self.q_values(state)))
            if abs(new - self.values[state]) <= tol:
                continue
            self.values[state] = new
            for pred in self._preds.get(state, {}):
                self._enqueue(pred)
        self.backups += iters
        return iters

    def solve(self, budget: Optional[StepBudget] = None) -> int:
        """
        Full sweeps over every tracked state until the largest change is
        within ``tol`` (or ``max_iters`` sweeps). Returns the sweep count.
        """
        self._refresh_stale()
        self._expand()
        sweeps = 0
        while sweeps < self.config.max_iters:
            sweeps += 1
            residual = 0.0
            for state in self.values:
                consume(budget)
                residual = max(residual, self._backup(state))
            self.backups += len(self.values)
            if residual <= self.config.tol:
                break
        self._dirty.clear()
        self._queued.clear()
        return sweeps

    def act(self, state: State, budget: Optional[StepBudget] = None) -> Hashable:
        """Greedy action for ``state``, lowest action index on ties."""
        self.track(state)
        self.update(budget)
        return self.actions[int(np.argmax(self.q_values(state)))]

    def value(self, state: State) -> float:
        return self.values.get(state, self.optimistic_value)

    def q_table(self) -> Dict[str, Tuple[float, ...]]:
        """Q-values for every tracked state, keyed by stable state digest."""
        return {s.digest(): tuple(float(q) for q in self.q_values(s))
                for s in self.values}

    def __len__(self) -> int:
        return len(self.values)


def make_planner(learner: DoormaxLearner, reward_table: RewardTable,
                 gamma: float = 0.95, r_max: float = 20.0, tol: float = 1e-3,
                 max_iters: int = 20000,
                 actions: Optional[Sequence[Hashable]] = None) -> ValueIterationPlanner:
    config = PlannerConfig(gamma=gamma, r_max=r_max, tol=tol, max_iters=max_iters)
    return ValueIterationPlanner(learner, reward_table, config, actions=actions)
