"""
Relation evaluator — the propositional abstraction of a state.

Grounding every schema relation over every matching tuple of object ids
yields the proposition space of a state. The evaluator reports:

- ``propositions(state)``: the propositions that hold, in lexicographic
  (relation-name, argument-ids) order
- ``signature(state)``: the full truth assignment over the proposition
  space, as a ``Condition`` of positive and negated literals

Conditions are canonicalised against the proposition order, so that the
intersection of two conjunctions is an ordered-set intersection.
"""

from __future__ import annotations

from dataclasses import dataclass
from itertools import product
from typing import Dict, FrozenSet, Iterable, Iterator, List, Optional, Tuple

from oomdp.errors import SchemaError
from oomdp.schema import Relation, Schema
from oomdp.state import State


@dataclass(frozen=True, order=True)
class Proposition:
    """A relation applied to a specific tuple of object ids."""
    relation: str
    args: Tuple[int, ...]

    def mentions(self, oid: int) -> bool:
        return oid in self.args

    def __str__(self) -> str:
        return f"{self.relation}({', '.join(str(a) for a in self.args)})"


@dataclass(frozen=True, order=True)
class Literal:
    """A proposition with a required truth value."""
    proposition: Proposition
    value: bool

    def __str__(self) -> str:
        return str(self.proposition) if self.value else f"¬{self.proposition}"


class Condition:
    """
    A conjunction of literals, kept sorted in canonical order.

    A state's signature is the special case that assigns every proposition
    of the state. ``c.holds_in(signature)`` is set inclusion.
    """

    __slots__ = ("literals", "_set", "_hash")

    def __init__(self, literals: Iterable[Literal] = ()):
        unique = sorted(set(literals))
        seen: Dict[Proposition, bool] = {}
        for lit in unique:
            if seen.get(lit.proposition, lit.value) != lit.value:
                raise ValueError(f"Contradictory literals for {lit.proposition}")
            seen[lit.proposition] = lit.value
        self.literals: Tuple[Literal, ...] = tuple(unique)
        self._set: FrozenSet[Literal] = frozenset(unique)
        self._hash = hash(self.literals)

    @classmethod
    def from_pairs(cls, pairs: Iterable[Tuple[Proposition, bool]]) -> Condition:
        return cls(Literal(p, bool(v)) for p, v in pairs)

    def holds_in(self, signature: Condition) -> bool:
        return self._set <= signature._set

    def intersect(self, other: Condition) -> Condition:
        """Literals agreeing on both sign and argument."""
        return Condition(self._set & other._set)

    def restrict(self, oid: int) -> Condition:
        """Only the literals whose proposition mentions ``oid``."""
        return Condition(lit for lit in self.literals if lit.proposition.mentions(oid))

    def issubset(self, other: Condition) -> bool:
        return self._set <= other._set

    def value_of(self, proposition: Proposition) -> Optional[bool]:
        for lit in self.literals:
            if lit.proposition == proposition:
                return lit.value
        return None

    def true_propositions(self) -> Tuple[Proposition, ...]:
        return tuple(lit.proposition for lit in self.literals if lit.value)

    def __contains__(self, literal: object) -> bool:
        return literal in self._set

    def __iter__(self) -> Iterator[Literal]:
        return iter(self.literals)

    def __len__(self) -> int:
        return len(self.literals)

    def __eq__(self, other: object) -> bool:
        if not isinstance(other, Condition):
            return NotImplemented
        return self.literals == other.literals

    def __hash__(self) -> int:
        return self._hash

    def __lt__(self, other: Condition) -> bool:
        return self.literals < other.literals

    def __str__(self) -> str:
        if not self.literals:
            return "⊤"
        return " ∧ ".join(str(lit) for lit in self.literals)

    def __repr__(self) -> str:
        return f"Condition({self})"


class RelationEvaluator:
    """
    Grounds the relations of a frozen schema and evaluates them on states.

    Evaluation is total and deterministic; signatures are cached per state.
    """

    def __init__(self, schema: Schema, cache_size: int = 4096):
        if not schema.frozen:
            raise SchemaError("RelationEvaluator needs a frozen schema")
        self.schema = schema
        self.cache_size = cache_size
        self._signatures: Dict[State, Condition] = {}

    def groundings(self, state: State) -> List[Tuple[Relation, Tuple[int, ...]]]:
        """Every (relation, argument ids) pair, in proposition order."""
        result = []
        for relation in self.schema.relations:
            pools = [[o.oid for o in state.objects_of_class(c)]
                     for c in relation.classes]
            for args in product(*pools):
                if len(set(args)) != len(args):
                    continue
                result.append((relation, tuple(args)))
        result.sort(key=lambda item: (item[0].name, item[1]))
        return result

    def evaluate(self, relation: Relation, state: State,
                 args: Tuple[int, ...]) -> bool:
        return bool(relation.predicate(*(state.object(a) for a in args)))

    def holds(self, state: State, proposition: Proposition) -> bool:
        return self.signature(state).value_of(proposition) is True

    def signature(self, state: State) -> Condition:
        cached = self._signatures.get(state)
        if cached is not None:
            return cached
        literals = [
            Literal(Proposition(rel.name, args), self.evaluate(rel, state, args))
            for rel, args in self.groundings(state)
        ]
        signature = Condition(literals)
        if len(self._signatures) >= self.cache_size:
            del self._signatures[next(iter(self._signatures))]
        self._signatures[state] = signature
        return signature

    def propositions(self, state: State) -> Tuple[Proposition, ...]:
        """The propositions true in ``state``, lexicographically ordered."""
        return self.signature(state).true_propositions()
