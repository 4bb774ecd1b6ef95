"""
Small shared helpers: cooperative cancellation and stable hashing.
"""

from __future__ import annotations

import hashlib
from typing import Any, Optional

from oomdp.errors import Cancelled


class StepBudget:
    """
    A monotonically decreasing step budget owned by the caller.

    Public entry points call ``consume()`` before doing a unit of work;
    once the budget is exhausted ``Cancelled`` is raised and the work is
    not started.
    """

    def __init__(self, steps: int):
        if steps < 0:
            raise ValueError("budget must be non-negative")
        self.initial = steps
        self.remaining = steps

    @property
    def exhausted(self) -> bool:
        return self.remaining <= 0

    def consume(self, n: int = 1) -> None:
        if self.remaining < n:
            self.remaining = 0
            raise Cancelled(f"step budget of {self.initial} exhausted")
        self.remaining -= n

    def __repr__(self) -> str:
        return f"StepBudget({self.remaining}/{self.initial})"


def consume(budget: Optional[StepBudget], n: int = 1) -> None:
    """Consume from an optional budget (``None`` means unlimited)."""
    if budget is not None:
        budget.consume(n)


def stable_digest(value: Any) -> str:
    """
    SHA-1 of ``repr(value)``.

    Only meaningful for values built from ints, bools, strings and tuples,
    whose repr does not depend on the interpreter's hash seed.
    """
    return hashlib.sha1(repr(value).encode("utf-8")).hexdigest()
