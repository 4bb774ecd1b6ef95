"""
Reward table — observed rewards and terminal flags per (state, action).

The exact table keeps the last observed outcome for each (s, a). With
``generalize`` on, outcomes are also filed under (a, condition signature
of s) and answer lookups for states never tried directly, for as long as
that key has never seen two different outcomes.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Dict, Hashable, Optional, Tuple

from oomdp.relations import Condition, RelationEvaluator
from oomdp.state import State


@dataclass(frozen=True)
class RewardEntry:
    reward: float
    terminal: bool


class RewardTable:
    """Tabulated reward model used by the planner."""

    def __init__(self, evaluator: Optional[RelationEvaluator] = None,
                 generalize: bool = True):
        if generalize and evaluator is None:
            raise ValueError("generalising rewards needs a relation evaluator")
        self.evaluator = evaluator
        self.generalize = generalize
        self._exact: Dict[Tuple[State, Hashable], RewardEntry] = {}
        self._general: Dict[Tuple[Hashable, Condition], RewardEntry] = {}
        self._conflicts: Dict[Tuple[Hashable, Condition], None] = {}
        self._revisions: Dict[Hashable, int] = {}

    def record(self, state: State, action: Hashable, reward: float,
               terminal: bool = False) -> bool:
        """Store an observed outcome. Returns True if any lookup may change."""
        entry = RewardEntry(float(reward), bool(terminal))
        changed = self._exact.get((state, action)) != entry
        self._exact[(state, action)] = entry

        if self.generalize:
            key = (action, self.evaluator.signature(state))
            if key not in self._conflicts:
                previous = self._general.get(key)
                if previous is None:
                    self._general[key] = entry
                    changed = True
                elif previous != entry:
                    del self._general[key]
                    self._conflicts[key] = None
                    changed = True

        if changed:
            self._revisions[action] = self.revision(action) + 1
        return changed

    def lookup(self, state: State, action: Hashable) -> Optional[RewardEntry]:
        entry = self._exact.get((state, action))
        if entry is not None or not self.generalize:
            return entry
        return self._general.get((action, self.evaluator.signature(state)))

    def known(self, state: State, action: Hashable) -> bool:
        return self.lookup(state, action) is not None

    def revision(self, action: Hashable) -> int:
        return self._revisions.get(action, 0)

    def __len__(self) -> int:
        return len(self._exact)
