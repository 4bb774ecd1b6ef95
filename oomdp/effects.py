"""
Effect kinds — the atomic attribute changes a learned model can express.

Each kind has:
- An ``explain`` operator: given the old and new attribute value, return
  the effect value that accounts for the change, or None
- An ``apply`` operator: given an old value and an effect value, return
  the new value
- A symbol for pretty-printing hypotheses

The kind set is closed. Which kinds an attribute admits is decided when
the schema is declared (see ``default_kinds``).
"""

from __future__ import annotations

from dataclasses import dataclass
from enum import IntEnum
from typing import Any, Callable, Dict, Optional, Sequence, Tuple


class EffectKind(IntEnum):
    """Closed set of effect kinds, in canonical order."""
    NO_CHANGE = 0
    SET_CONSTANT = 1
    ASSIGNMENT_ADD = 2
    ASSIGNMENT_MULTIPLY = 3

    def __str__(self) -> str:
        return EFFECT_OPERATORS[self].name


@dataclass(frozen=True, slots=True)
class EffectOperator:
    """Explain/apply pair for one effect kind."""

    kind: EffectKind
    name: str
    explain: Callable[[Any, Any], Optional[Any]]
    apply: Callable[[Any, Any], Any]
    symbol: str

    def __repr__(self) -> str:
        return f"EffectOperator({self.name})"


@dataclass(frozen=True)
class Effect:
    """A kind paired with its value, e.g. AssignmentAdd(-1)."""
    kind: EffectKind
    value: Any = None

    def apply(self, old: Any) -> Any:
        return EFFECT_OPERATORS[self.kind].apply(old, self.value)

    def __str__(self) -> str:
        op = EFFECT_OPERATORS[self.kind]
        if self.kind == EffectKind.NO_CHANGE:
            return op.name
        return f"{op.name}({self.value!r})"


# ---------------------------------------------------------------------------
# Kind-specific operators
# ---------------------------------------------------------------------------

def _is_number(value: Any) -> bool:
    return isinstance(value, (int, float)) and not isinstance(value, bool)


def _explain_no_change(old: Any, new: Any) -> Optional[Any]:
    return True if old == new else None


def _explain_set_constant(old: Any, new: Any) -> Optional[Any]:
    return new


def _explain_add(old: Any, new: Any) -> Optional[Any]:
    if not (_is_number(old) and _is_number(new)):
        return None
    return new - old


def _explain_multiply(old: Any, new: Any) -> Optional[Any]:
    if not (_is_number(old) and _is_number(new)) or old == 0:
        return None
    if isinstance(old, int) and isinstance(new, int):
        if new % old != 0:
            return None
        return new // old
    return new / old


_NO_CHANGE = EffectOperator(EffectKind.NO_CHANGE, "NoChange",
                            _explain_no_change, lambda old, _: old, "=")
_SET_CONSTANT = EffectOperator(EffectKind.SET_CONSTANT, "SetConstant",
                               _explain_set_constant, lambda _, v: v, ":=")
_ASSIGNMENT_ADD = EffectOperator(EffectKind.ASSIGNMENT_ADD, "AssignmentAdd",
                                 _explain_add, lambda old, v: old + v, "+=")
_ASSIGNMENT_MULTIPLY = EffectOperator(EffectKind.ASSIGNMENT_MULTIPLY,
                                      "AssignmentMultiply",
                                      _explain_multiply,
                                      lambda old, v: old * v, "*=")

EFFECT_OPERATORS: Dict[EffectKind, EffectOperator] = {
    EffectKind.NO_CHANGE: _NO_CHANGE,
    EffectKind.SET_CONSTANT: _SET_CONSTANT,
    EffectKind.ASSIGNMENT_ADD: _ASSIGNMENT_ADD,
    EffectKind.ASSIGNMENT_MULTIPLY: _ASSIGNMENT_MULTIPLY,
}


def explain(kind: EffectKind, old: Any, new: Any,
            prefer_no_change: bool = True) -> Optional[Effect]:
    """
    Return the effect of ``kind`` that turns ``old`` into ``new``.

    With ``prefer_no_change`` an unchanged value is credited to NoChange
    alone: SetConstant(old), AssignmentAdd(0) and AssignmentMultiply(1)
    are then treated as not explaining the observation.
    """
    if prefer_no_change and old == new and kind != EffectKind.NO_CHANGE:
        return None
    value = EFFECT_OPERATORS[kind].explain(old, new)
    if value is None:
        return None
    if kind == EffectKind.NO_CHANGE:
        return Effect(kind)
    return Effect(kind, value)


def default_kinds(domain: Sequence[Any]) -> Tuple[EffectKind, ...]:
    """Admissible kinds for a domain: arithmetic kinds need numbers."""
    if domain and all(_is_number(v) for v in domain):
        return (EffectKind.NO_CHANGE, EffectKind.SET_CONSTANT,
                EffectKind.ASSIGNMENT_ADD)
    return (EffectKind.NO_CHANGE, EffectKind.SET_CONSTANT)
