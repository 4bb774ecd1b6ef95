"""
Effect model — the per-(action, class, attribute, kind) hypothesis table.

For every key ``(a, c, k, κ)`` the model keeps one ``EffectRecord``:

- the single effect value of kind κ seen so far (DOORmax assumes at most
  one effect of each kind per (a, c, k))
- the learned precondition, an antichain of condition conjunctions
- the positive and negative example conditions that shaped it
- a status: unseen → candidate → confirmed (once the precondition has
  generalised at least once), or the terminal states
  overloaded (two different values) and refuted (the same condition seen
  both explained and unexplained)

Preconditions generalise by intersection. A positive example is merged
into the first disjunct whose intersection with it still excludes every
negative example; otherwise it opens a new disjunct. A negative example
drops the disjuncts it satisfies, and the positives they covered are
re-inserted against the enlarged negative set.

Dead records never come back. Everything is kept in insertion-ordered
dicts so that two identical observation streams build identical tables.
"""

from __future__ import annotations

from enum import Enum
from typing import Any, Dict, Hashable, Iterable, Iterator, List, Optional, Tuple

from oomdp.effects import Effect, EffectKind, explain
from oomdp.relations import Condition

EntryKey = Tuple[Hashable, str, str, EffectKind]


class EntryStatus(Enum):
    UNSEEN = "unseen"
    CANDIDATE = "candidate"
    CONFIRMED = "confirmed"
    OVERLOADED = "overloaded"
    REFUTED = "refuted"

    @property
    def live(self) -> bool:
        return self in (EntryStatus.CANDIDATE, EntryStatus.CONFIRMED)

    @property
    def dead(self) -> bool:
        return self in (EntryStatus.OVERLOADED, EntryStatus.REFUTED)


def _same_value(a: Any, b: Any) -> bool:
    return type(a) is type(b) and a == b


class EffectRecord:
    """One (action, class, attribute, kind) hypothesis."""

    def __init__(self, key: EntryKey):
        self.key = key
        self.status = EntryStatus.UNSEEN
        self.value: Any = None
        self.generalizations = 0
        self._disjuncts: List[Condition] = []
        self._positives: Dict[Condition, None] = {}
        self._negatives: Dict[Condition, None] = {}

    @property
    def kind(self) -> EffectKind:
        return self.key[3]

    @property
    def effect(self) -> Optional[Effect]:
        if self.status == EntryStatus.UNSEEN:
            return None
        if self.kind == EffectKind.NO_CHANGE:
            return Effect(self.kind)
        return Effect(self.kind, self.value)

    @property
    def precondition(self) -> Tuple[Condition, ...]:
        """Disjuncts of the learned precondition, in insertion order."""
        return tuple(self._disjuncts)

    @property
    def positives(self) -> Tuple[Condition, ...]:
        return tuple(self._positives)

    @property
    def negatives(self) -> Tuple[Condition, ...]:
        return tuple(self._negatives)

    def applies(self, condition: Condition) -> bool:
        """True if the record is live and some disjunct holds in ``condition``."""
        if not self.status.live:
            return False
        return any(d.holds_in(condition) for d in self._disjuncts)

    # -- learning ------------------------------------------------------------

    def add_positive(self, value: Any, condition: Condition) -> bool:
        """
        The kind explained an observation with ``value`` under ``condition``.

        Returns True if the record changed in a way that can alter
        predictions.
        """
        if self.status.dead:
            return False
        if condition in self._negatives:
            self.status = EntryStatus.REFUTED
            return True
        if self.status == EntryStatus.UNSEEN:
            self.value = value
            self._positives[condition] = None
            self._disjuncts = [condition]
            self.status = EntryStatus.CANDIDATE
            return True
        if not _same_value(value, self.value):
            self.status = EntryStatus.OVERLOADED
            return True
        if condition in self._positives:
            return False

        self._positives[condition] = None
        before = tuple(self._disjuncts)
        self._insert(condition)
        promoted = False
        if self.generalizations > 0 and self.status != EntryStatus.CONFIRMED:
            self.status = EntryStatus.CONFIRMED
            promoted = True
        return promoted or tuple(self._disjuncts) != before

    def add_negative(self, condition: Condition) -> bool:
        """The kind failed to explain an observation made under ``condition``."""
        if self.status.dead or condition in self._negatives:
            return False
        self._negatives[condition] = None
        if condition in self._positives:
            self.status = EntryStatus.REFUTED
            return True
        if self.status == EntryStatus.UNSEEN:
            return False

        kept = [d for d in self._disjuncts if not d.holds_in(condition)]
        if len(kept) == len(self._disjuncts):
            return False
        self._disjuncts = kept
        for positive in self._positives:
            if not any(d.holds_in(positive) for d in self._disjuncts):
                self._insert(positive)
        return True

    def _covers_negative(self, condition: Condition) -> bool:
        return any(condition.holds_in(n) for n in self._negatives)

    def _insert(self, condition: Condition) -> None:
        if any(d.holds_in(condition) for d in self._disjuncts):
            return
        for i, disjunct in enumerate(self._disjuncts):
            merged = disjunct.intersect(condition)
            if self._covers_negative(merged):
                continue
            # drop disjuncts the generalised one now subsumes
            self._disjuncts = [
                merged if j == i else d
                for j, d in enumerate(self._disjuncts)
                if j == i or not merged.holds_in(d)
            ]
            self.generalizations += 1
            return
        self._disjuncts.append(condition)

    # -- reporting -----------------------------------------------------------

    def snapshot(self) -> Tuple:
        return (self.key, self.status, self.value, tuple(self._disjuncts),
                tuple(self._positives), tuple(self._negatives))

    def describe(self) -> str:
        action, class_name, attribute, _ = self.key
        pre = " ∨ ".join(f"({d})" for d in self._disjuncts) or "⊥"
        return f"{action} {class_name}.{attribute} {self.effect} if {pre}"

    def __repr__(self) -> str:
        return f"EffectRecord({self.key}, {self.status.value}, value={self.value!r})"


class EffectModel:
    """
    The table of effect records, created lazily as keys are observed.

    ``update`` feeds one (object, attribute) observation to every
    admissible kind; ``candidates`` answers which live records apply in a
    given condition.
    """

    def __init__(self, prefer_no_change: bool = True):
        self.prefer_no_change = prefer_no_change
        self._records: Dict[EntryKey, EffectRecord] = {}

    def record(self, action: Hashable, class_name: str, attribute: str,
               kind: EffectKind) -> EffectRecord:
        """Get the record for a key, creating an unseen one if needed."""
        key = (action, class_name, attribute, EffectKind(kind))
        rec = self._records.get(key)
        if rec is None:
            rec = EffectRecord(key)
            self._records[key] = rec
        return rec

    def get(self, action: Hashable, class_name: str, attribute: str,
            kind: EffectKind) -> Optional[EffectRecord]:
        return self._records.get((action, class_name, attribute, EffectKind(kind)))

    def update(self, action: Hashable, class_name: str, attribute: str,
               kinds: Iterable[EffectKind], old: Any, new: Any,
               condition: Condition) -> bool:
        """Apply one observed change to every admissible kind."""
        changed = False
        for kind in kinds:
            rec = self.record(action, class_name, attribute, kind)
            effect = explain(kind, old, new, self.prefer_no_change)
            if effect is not None:
                changed |= rec.add_positive(effect.value, condition)
            else:
                changed |= rec.add_negative(condition)
        return changed

    def candidates(self, action: Hashable, class_name: str, attribute: str,
                   kinds: Iterable[EffectKind],
                   condition: Condition) -> List[EffectRecord]:
        """Live records for (a, c, k) whose precondition holds, in kind order."""
        found = []
        for kind in kinds:
            rec = self._records.get((action, class_name, attribute, kind))
            if rec is not None and rec.applies(condition):
                found.append(rec)
        return found

    def records(self) -> Iterator[EffectRecord]:
        return iter(self._records.values())

    def live_records(self) -> List[EffectRecord]:
        return [r for r in self._records.values() if r.status.live]

    def count(self, status: EntryStatus) -> int:
        return sum(1 for r in self._records.values() if r.status == status)

    def snapshot(self) -> Tuple:
        """Full, comparable contents of the table."""
        return tuple(r.snapshot() for r in self._records.values())

    def __len__(self) -> int:
        return len(self._records)

    def summary(self) -> str:
        lines = [
            "═" * 60,
            "  Effect model",
            "═" * 60,
            f"  Records:      {len(self._records)}",
        ]
        for status in EntryStatus:
            lines.append(f"  {status.value + ':':13s} {self.count(status)}")
        lines.append("")
        lines.append("  Live hypotheses:")
        for rec in self.live_records():
            if rec.kind == EffectKind.NO_CHANGE and not any(len(d) for d in rec.precondition):
                continue  # unconditional NoChange is the uninteresting default
            lines.append(f"    [{rec.status.value:9s}] {rec.describe()}")
        lines.append("═" * 60)
        return "\n".join(lines)
