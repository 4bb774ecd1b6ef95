"""
DOORmax learner — induces an OO-MDP transition model from observations.

Each observed transition (s, a, s', r) is broken down attribute by
attribute: for every object o and attribute k, every effect kind the
schema admits for k is asked whether it explains the change from
``s.get(o, k)`` to ``s'.get(o, k)``. The answer becomes a positive or a
negative example, under the condition signature of s, for that
(a, class(o), k, κ) record of the ``EffectModel``.

Prediction runs the other way: for each (o, k) the live records whose
precondition holds are applied. If they all agree the attribute's next
value is known; if none applies or two disagree the whole prediction is
unknown (``None``), which the planner treats optimistically.

Learning is monotone: a record that becomes overloaded or refuted never
predicts again.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Any, Callable, Dict, Hashable, List, Optional, Sequence, Tuple

from oomdp.effect_model import EffectModel, EntryStatus
from oomdp.errors import DomainViolation, IllegalAction
from oomdp.relations import Condition, RelationEvaluator
from oomdp.schema import Schema
from oomdp.state import State
from oomdp.utils import StepBudget, consume


@dataclass
class LearnerConfig:
    """Configuration for the DOORmax learner."""
    prefer_no_change: bool = True    # credit unchanged values to NoChange only
    condition_scope: str = "state"   # "state" or "object"

    def __post_init__(self) -> None:
        if self.condition_scope not in ("state", "object"):
            raise ValueError(
                f"condition_scope must be 'state' or 'object', got {self.condition_scope!r}"
            )


@dataclass
class Transition:
    """A single observed transition."""
    state: State
    action: Hashable
    next_state: State
    reward: Optional[float] = None


class DoormaxLearner:
    """
    Learns per-attribute effects with propositional preconditions.

    The learner owns the relation evaluator for its (frozen) schema and
    the effect model. Actions pass through ``action_parser`` (identity by
    default) before anything else, so symbols and enum members name the
    same record. ``revision(a)`` counts prediction-relevant model
    changes for action ``a``, so that a planner can tell when its cached
    transitions went stale.
    """

    def __init__(self, schema: Schema, actions: Optional[Sequence[Hashable]] = None,
                 config: Optional[LearnerConfig] = None,
                 action_parser: Optional[Callable[[Any], Hashable]] = None):
        self.schema = schema
        self.action_parser = action_parser
        self.config = config or LearnerConfig()
        self.evaluator = RelationEvaluator(schema)
        self.actions: Optional[List[Hashable]] = list(actions) if actions is not None else None
        self.model = EffectModel(prefer_no_change=self.config.prefer_no_change)
        self.transitions: List[Transition] = []
        self._revisions: Dict[Hashable, int] = {}
        self._cache: Dict[Tuple[State, Hashable], Tuple[int, Optional[State]]] = {}

    # -- helpers -------------------------------------------------------------

    def _check_action(self, action: Any) -> Hashable:
        if self.action_parser is not None:
            action = self.action_parser(action)
        if self.actions is not None and action not in self.actions:
            raise IllegalAction(action)
        return action

    def condition(self, state: State, oid: int) -> Condition:
        """The condition under which effects on object ``oid`` are learned."""
        signature = self.evaluator.signature(state)
        if self.config.condition_scope == "object":
            return signature.restrict(oid)
        return signature

    def revision(self, action: Hashable) -> int:
        if self.action_parser is not None:
            action = self.action_parser(action)
        return self._revisions.get(action, 0)

    # -- learning ------------------------------------------------------------

    def observe(self, state: State, action: Hashable, next_state: State,
                reward: Optional[float] = None,
                budget: Optional[StepBudget] = None) -> bool:
        """
        Record a transition and update the effect model.

        Returns True if any prediction-relevant hypothesis changed.
        """
        consume(budget)
        action = self._check_action(action)
        if state.ids != next_state.ids or any(
                state.class_of(oid) != next_state.class_of(oid) for oid in state.ids):
            raise DomainViolation(
                "Observed transition changes the set of objects or their classes",
                witness=next_state,
            )
        state.validate(self.schema)
        next_state.validate(self.schema)

        self.transitions.append(Transition(state, action, next_state, reward))

        changed = False
        for obj in state.objects():
            condition = self.condition(state, obj.oid)
            obj_cls = self.schema.get_class(obj.class_name)
            for attr in obj_cls.attributes:
                changed |= self.model.update(
                    action, obj.class_name, attr.name, attr.effect_kinds,
                    obj[attr.name], next_state.get(obj.oid, attr.name), condition,
                )
        if changed:
            self._revisions[action] = self.revision(action) + 1
        return changed

    # -- prediction ----------------------------------------------------------

    def predict(self, state: State, action: Hashable) -> Optional[State]:
        """The predicted next state, or None if the model does not know."""
        action = self._check_action(action)
        key = (state, action)
        revision = self.revision(action)
        cached = self._cache.get(key)
        if cached is not None and cached[0] == revision:
            return cached[1]
        result = self._predict(state, action)
        self._cache[key] = (revision, result)
        return result

    def _predict(self, state: State, action: Hashable) -> Optional[State]:
        changes: Dict[Tuple[int, str], Any] = {}
        for obj in state.objects():
            condition = self.condition(state, obj.oid)
            obj_cls = self.schema.get_class(obj.class_name)
            for attr in obj_cls.attributes:
                old = obj[attr.name]
                records = self.model.candidates(
                    action, obj.class_name, attr.name, attr.effect_kinds, condition)
                if not records:
                    return None
                outcomes = [(rec, rec.effect.apply(old)) for rec in records]
                new = outcomes[0][1]
                if any(value != new or type(value) is not type(new)
                       for _, value in outcomes[1:]):
                    return None
                if not attr.contains(new):
                    raise DomainViolation(
                        f"Predicted {obj.class_name}#{obj.oid}.{attr.name}={new!r} "
                        f"is outside its domain",
                        entry=outcomes[0][0].key,
                        witness=state,
                    )
                if new != old or type(new) is not type(old):
                    changes[(obj.oid, attr.name)] = new
        return state.with_values(changes)

    def known(self, state: State, action: Hashable) -> bool:
        return self.predict(state, action) is not None

    # -- reporting -----------------------------------------------------------

    @property
    def num_transitions_observed(self) -> int:
        return len(self.transitions)

    def summary(self) -> str:
        model = self.model
        lines = [
            "═" * 60,
            "  DOORmax learner",
            "═" * 60,
            f"  Transitions observed: {self.num_transitions_observed}",
            f"  Condition scope:      {self.config.condition_scope}",
            f"  Live hypotheses:      {len(model.live_records())}",
            f"  Overloaded:           {model.count(EntryStatus.OVERLOADED)}",
            f"  Refuted:              {model.count(EntryStatus.REFUTED)}",
            "═" * 60,
        ]
        return "\n".join(lines)


def make_learner(schema: Schema, actions: Optional[Sequence[Hashable]] = None,
                 config: Optional[LearnerConfig] = None,
                 action_parser: Optional[Callable[[Any], Hashable]] = None) -> DoormaxLearner:
    """A fresh learner for a frozen schema."""
    return DoormaxLearner(schema, actions=actions, config=config,
                          action_parser=action_parser)
