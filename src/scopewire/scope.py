from __future__ import annotations

import logging
import threading
from collections.abc import Hashable
from types import TracebackType
from typing import TYPE_CHECKING, Any, TypeVar

from typing_extensions import Self

from scopewire.disposal import OwnedInstances
from scopewire.exceptions import NamedDependencyScopeCreationError, ObjectDisposedError
from scopewire.locator import Locator

if TYPE_CHECKING:
    from scopewire.container import Container

T = TypeVar("T")

logger = logging.getLogger(__name__)


class Scope:
    """A node of a container's scope tree.

    The root scope is created with the container. Child scopes are created with
    ``begin_scope`` and own the scoped instances, scoped singletons and transient
    instances resolved through them. Disposing a scope disposes its children
    first, then the instances it owns.

    Examples:
        .. code-block:: python

            with container.root_scope.begin_scope("request") as scope:
                handler = scope.resolve(RequestHandler)

    """

    __slots__ = (
        "_children",
        "_creation_locks",
        "_container",
        "_instances",
        "_is_disposed",
        "_keyed_locators",
        "_level",
        "_name",
        "_owned",
        "_parent",
        "_thread_id",
        "locator",
    )

    def __init__(self, container: Container, parent: Scope | None, name: str | None = None) -> None:
        self._container = container
        self._parent = parent
        self._name = name
        self._level = 0 if parent is None else parent._level + 1
        self._thread_id = threading.get_ident()
        self._children: list[Scope] = []
        self._instances: dict[int, Any] = {}
        self._creation_locks: dict[int, threading.Lock] = {}
        self._owned = OwnedInstances()
        self._keyed_locators: dict[Hashable, Locator] = {}
        self._is_disposed = False
        self.locator = Locator(self)

    def __repr__(self) -> str:
        if self._parent is None:
            return "Scope [root]"
        if self._name is None:
            return f"Scope [level: {self._level}, thread: {self._thread_id}]"
        return f"Scope [level: {self._level}, name: '{self._name}', thread: {self._thread_id}]"

    def __enter__(self) -> Self:
        return self

    def __exit__(
        self,
        exc_type: type[BaseException] | None,
        exc_val: BaseException | None,
        exc_tb: TracebackType | None,
    ) -> None:
        self.dispose()

    @property
    def container(self) -> Container:
        return self._container

    @property
    def parent_scope(self) -> Scope | None:
        return self._parent

    @property
    def name(self) -> str | None:
        return self._name

    @property
    def level(self) -> int:
        return self._level

    @property
    def is_root(self) -> bool:
        return self._parent is None

    @property
    def is_disposed(self) -> bool:
        return self._is_disposed

    @property
    def thread_id(self) -> int:
        """Identifier of the thread that created the scope, kept for diagnostics."""
        return self._thread_id

    def begin_scope(self, name: str | None = None) -> Scope:
        """Create a child scope, optionally named.

        Raises:
            NamedDependencyScopeCreationError: If a live scope already uses ``name``.
            ObjectDisposedError: If this scope is disposed.

        """
        container = self._container
        with container._lock.read():
            self._ensure_not_disposed()
            with container._mutation_lock:
                if name is not None and name in container._named_scopes:
                    raise NamedDependencyScopeCreationError(self, name)
                child = Scope(container, self, name)
                self._children.append(child)
                if name is not None:
                    container._named_scopes[name] = child
        logger.debug("Began %r from %r", child, self)
        return child

    def get_keyed_locator(self, key: Hashable | None) -> Locator:
        """Get the locator of ``key``, the same instance for equal keys.

        A None key returns the unkeyed ``locator``.
        """
        self._ensure_not_disposed()
        if key is None:
            return self.locator
        locator = self._keyed_locators.get(key)
        if locator is not None:
            return locator

        with self._container._lock.read():
            self._ensure_not_disposed()
            with self._container._mutation_lock:
                return self._keyed_locators.setdefault(key, Locator(self, key))

    def get_children(self) -> list[Scope]:
        """Get live child scopes in creation order."""
        with self._container._mutation_lock:
            return list(self._children)

    def resolve(self, service_type: type[T]) -> T:
        return self.locator.resolve(service_type)

    def try_resolve(self, service_type: type[T], default: Any = None) -> T | Any:
        return self.locator.try_resolve(service_type, default)

    def dispose(self) -> None:
        """Dispose the scope subtree, then the owned instances of each scope.

        Disposing an already disposed scope does nothing.

        Raises:
            OwnedDependenciesDisposalAggregateError: If any owned instance of the
                subtree failed to dispose. Raised after every disposal attempt.
            LockRecursionError: If called while the current thread is resolving.

        """
        self._container._dispose_scope(self)

    def _get_creation_lock(self, resolver_id: int) -> threading.Lock:
        """Get or create the lock serializing instance creation of a resolver in this scope.

        Uses double-checked locking to minimize lock contention.
        """
        lock = self._creation_locks.get(resolver_id)
        if lock is None:
            with self._container._mutation_lock:
                lock = self._creation_locks.setdefault(resolver_id, threading.Lock())
        return lock

    def _ensure_not_disposed(self) -> None:
        if self._is_disposed:
            raise ObjectDisposedError(self)
