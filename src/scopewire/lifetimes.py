from __future__ import annotations

from enum import Enum


class Lifetime(Enum):
    """Defines how long a resolved instance lives and which scope owns it.

    Members are ordered from the shortest to the longest lived one. A dependency
    is *captive* when it is shorter lived than the instance it is injected into.
    """

    TRANSIENT = 0
    """A new instance is created on every resolution and owned by the requesting scope."""

    SCOPED = 1
    """One instance per scope, owned by that scope."""

    SCOPED_SINGLETON = 2
    """One instance per scope subtree, owned by the scope that created it.

    Resolution walks from the requesting scope up to the root and reuses the first
    cached instance found; otherwise the instance is created and cached in the
    requesting scope.
    """

    SINGLETON = 3
    """One instance per container, owned by the root scope."""

    @property
    def rank(self) -> int:
        return self.value


def is_captive(owner: Lifetime, dependency: Lifetime) -> bool:
    """Return True when ``dependency`` would be held captive by an ``owner`` instance."""
    return dependency.rank < owner.rank
