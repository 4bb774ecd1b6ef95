"""
Error kinds raised by the OO-MDP core.

Construction-time problems (bad schema declarations) abort immediately.
Illegal runtime inputs are reported to the immediate caller. Internal
invariant violations carry enough context to diagnose the offending
effect-model entry.
"""

from __future__ import annotations

from typing import Any, Optional, Tuple


class OOMDPError(Exception):
    """Base class for every error raised by this package."""


class SchemaError(OOMDPError):
    """A malformed class, attribute or relation declaration."""


class IllegalAction(OOMDPError):
    """An action symbol outside the closed action set."""

    def __init__(self, action: Any):
        super().__init__(f"Illegal action: {action!r}")
        self.action = action


class DomainViolation(OOMDPError):
    """
    An attribute value left its declared domain.

    ``entry`` is the (action, class, attribute, kind) key that produced the
    value, when a learned effect is to blame, and ``witness`` is the state
    the effect was applied to.
    """

    def __init__(self, message: str,
                 entry: Optional[Tuple[Any, str, str, Any]] = None,
                 witness: Any = None):
        details = message
        if entry is not None:
            details += f" [entry={entry}]"
        if witness is not None:
            details += f" [witness={witness!r}]"
        super().__init__(details)
        self.entry = entry
        self.witness = witness


class Cancelled(OOMDPError):
    """A caller-owned step budget ran out. Recoverable."""


class EpisodeNotStarted(OOMDPError):
    """``step`` was called before any episode was begun."""
