from __future__ import annotations

from collections.abc import Hashable
from typing import TYPE_CHECKING, Any, TypeVar, overload

from scopewire.bindings import is_range_type
from scopewire.exceptions import InvalidDependencyCastError, MissingDependencyError
from scopewire.resolvers import MISSING, ensure_instance

if TYPE_CHECKING:
    from scopewire.lifetimes import Lifetime
    from scopewire.scope import Scope

T = TypeVar("T")
D = TypeVar("D")


class Locator:
    """Resolve dependencies of a single key against a scope.

    The unkeyed locator of a scope is ``scope.locator``; keyed locators come
    from ``scope.get_keyed_locator(key)`` and see only the registrations made
    for that key. All locators share the scope tree and lifetime caches.
    """

    __slots__ = ("_key", "_scope")

    def __init__(self, scope: Scope, key: Hashable | None = None) -> None:
        self._scope = scope
        self._key = key

    def __repr__(self) -> str:
        if self._key is None:
            return f"Locator({self._scope!r})"
        return f"Locator({self._scope!r}, key={self._key!r})"

    @property
    def scope(self) -> Scope:
        return self._scope

    @property
    def key(self) -> Hashable | None:
        return self._key

    @overload
    def resolve(self, service_type: type[T]) -> T: ...

    @overload
    def resolve(self, service_type: Any) -> Any: ...

    def resolve(self, service_type: Any) -> Any:
        """Resolve an instance of ``service_type``.

        Raises:
            MissingDependencyError: If ``service_type`` has no registration and
                is not a range type.
            InvalidDependencyCastError: If the created object is not an instance
                of ``service_type``.
            CircularDependencyError: If resolution re-enters itself.
            ObjectDisposedError: If the scope is disposed.

        """
        instance = self._resolve(service_type)
        if instance is MISSING:
            raise MissingDependencyError(service_type)
        return ensure_instance(instance, service_type)

    @overload
    def try_resolve(self, service_type: type[T]) -> T | None: ...

    @overload
    def try_resolve(self, service_type: type[T], default: D) -> T | D: ...

    def try_resolve(self, service_type: Any, default: Any = None) -> Any:
        """Resolve ``service_type`` or return ``default`` when it is not registered.

        A missing registration of ``service_type`` itself or a created object of
        the wrong type produce ``default``. Errors raised while building the
        object graph propagate.
        """
        instance = self._resolve(service_type)
        if instance is MISSING:
            return default
        try:
            return ensure_instance(instance, service_type)
        except InvalidDependencyCastError:
            return default

    def can_resolve(self, service_type: Any) -> bool:
        """Return True when ``service_type`` can be resolved without a missing registration."""
        container = self._scope.container
        if container.is_builtin_type(service_type) or is_range_type(service_type):
            return True
        return container.table.find(service_type, self._key) is not None

    def get_resolvable_types(self) -> list[Any]:
        """Get every type resolvable by this locator.

        The list holds the built-in container and scope types, the registered
        service types and ``Sequence[T]`` for every ``T`` with range elements.
        It is empty once the scope is disposed.
        """
        scope = self._scope
        with scope.container._lock.read():
            if scope.is_disposed:
                return []
            return scope.container.get_resolvable_types(self._key)

    def try_get_lifetime(self, service_type: Any) -> Lifetime | None:
        """Get the lifetime of a registered type, None for unregistered and range types."""
        scope = self._scope
        with scope.container._lock.read():
            if scope.is_disposed:
                return None
            return scope.container.find_lifetime(service_type, self._key)

    def _resolve(self, service_type: Any) -> Any:
        scope = self._scope
        container = scope.container
        with container._lock.read():
            scope._ensure_not_disposed()
            builtin = container.resolve_builtin(service_type, scope)
            if builtin is not MISSING:
                return builtin
            resolver = container.find_resolver(service_type, self._key)
            if resolver is None:
                return MISSING
            return resolver.resolve(scope)
