from __future__ import annotations

import logging
from collections.abc import Callable
from dataclasses import dataclass
from enum import Enum
from typing import TYPE_CHECKING, Any

from scopewire.exceptions import OwnedDependencyDisposalError

if TYPE_CHECKING:
    from scopewire.scope import Scope

logger = logging.getLogger(__name__)


class DisposalKind(Enum):
    """Select what happens to an owned instance when its scope is disposed."""

    DEFAULT = "default"
    """Call the instance's ``close()`` method. Instances without one are not tracked."""

    RENOUNCE_OWNERSHIP = "renounce_ownership"
    """Never track the instance, the caller stays responsible for it."""

    CALLBACK = "callback"
    """Call a user supplied callback with the instance instead of ``close()``."""


@dataclass(frozen=True, slots=True)
class DisposalStrategy:
    """Disposal behavior attached to a registration."""

    kind: DisposalKind = DisposalKind.DEFAULT
    callback: Callable[[Any], None] | None = None

    @classmethod
    def default(cls) -> DisposalStrategy:
        return cls(DisposalKind.DEFAULT)

    @classmethod
    def renounce_ownership(cls) -> DisposalStrategy:
        return cls(DisposalKind.RENOUNCE_OWNERSHIP)

    @classmethod
    def use_callback(cls, callback: Callable[[Any], None]) -> DisposalStrategy:
        return cls(DisposalKind.CALLBACK, callback)

    def tracks(self, instance: Any) -> bool:
        """Return True when a scope has to remember ``instance`` for disposal."""
        if self.kind is DisposalKind.RENOUNCE_OWNERSHIP:
            return False
        if self.kind is DisposalKind.CALLBACK:
            return True
        return callable(getattr(instance, "close", None))

    def dispose(self, instance: Any) -> None:
        if self.callback is not None:
            self.callback(instance)
        elif self.kind is DisposalKind.DEFAULT:
            instance.close()


class OwnedInstances:
    """Instances owned by a single scope, disposed in reverse registration order."""

    __slots__ = ("_entries",)

    def __init__(self) -> None:
        self._entries: list[tuple[Any, DisposalStrategy]] = []

    def __len__(self) -> int:
        return len(self._entries)

    def add(self, instance: Any, strategy: DisposalStrategy) -> None:
        if strategy.tracks(instance):
            self._entries.append((instance, strategy))

    def dispose_all(self, scope: Scope) -> list[OwnedDependencyDisposalError]:
        """Dispose every owned instance and return the collected failures."""
        entries, self._entries = self._entries, []
        errors: list[OwnedDependencyDisposalError] = []
        for instance, strategy in reversed(entries):
            try:
                strategy.dispose(instance)
            except Exception as error:  # noqa: BLE001
                logger.warning(
                    "Disposal of %s owned by %r failed: %s",
                    type(instance).__qualname__,
                    scope,
                    error,
                )
                errors.append(OwnedDependencyDisposalError(scope, error))
        return errors
