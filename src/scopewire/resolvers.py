"""Runtime resolvers for registrations.

Every registration is turned into one resolver when it is first needed. A
resolver runs the cycle guard and the ``on_resolving`` callback, then applies
its lifetime policy to decide whether a cached instance is reused or a new one
is created.
"""

from __future__ import annotations

import itertools
from collections.abc import Callable, Hashable, Sequence
from typing import TYPE_CHECKING, Any, ClassVar

from scopewire._internal.type_checks import runtime_check_target
from scopewire.disposal import DisposalStrategy
from scopewire.exceptions import InvalidDependencyCastError
from scopewire.lifetimes import Lifetime
from scopewire.resolution_stack import guard

if TYPE_CHECKING:
    from scopewire.registrations import OnCreatedCallback, OnResolvingCallback
    from scopewire.scope import Scope

InstanceFactory = Callable[["Scope"], Any]

EMPTY_RANGE: tuple[Any, ...] = ()
MISSING: Any = object()


def ensure_instance(instance: Any, service_type: Any) -> Any:
    """Return ``instance`` or raise ``InvalidDependencyCastError`` for a class mismatch."""
    target = runtime_check_target(service_type)
    if target is not None and not isinstance(instance, target):
        raise InvalidDependencyCastError(service_type, type(instance))
    return instance


class Resolver:
    """Base class of lifetime specific resolvers."""

    ID_COUNTER: ClassVar[itertools.count[int]] = itertools.count(1)

    __slots__ = (
        "_create",
        "_disposal_strategy",
        "_on_created",
        "_on_resolving",
        "id",
        "implementor_type",
        "key",
        "lifetime",
        "service_type",
    )

    lifetime_kind: ClassVar[Lifetime]

    def __init__(
        self,
        *,
        service_type: Any,
        implementor_type: Any,
        key: Hashable | None,
        create: InstanceFactory,
        on_resolving: OnResolvingCallback | None = None,
        on_created: OnCreatedCallback | None = None,
        disposal_strategy: DisposalStrategy | None = None,
    ) -> None:
        self.id = next(Resolver.ID_COUNTER)
        self.service_type = service_type
        self.implementor_type = implementor_type
        self.key = key
        self.lifetime = self.lifetime_kind
        self._create = create
        self._on_resolving = on_resolving
        self._on_created = on_created
        self._disposal_strategy = disposal_strategy or DisposalStrategy.default()

    def __repr__(self) -> str:
        return (
            f"{type(self).__name__}(id={self.id}, service_type={self.service_type!r}, "
            f"key={self.key!r})"
        )

    def resolve(self, scope: Scope) -> Any:
        with guard(self.id, self.service_type, self.implementor_type):
            if self._on_resolving is not None:
                self._on_resolving(self.service_type, scope)
            return self.get_or_create(scope)

    def get_or_create(self, scope: Scope) -> Any:
        raise NotImplementedError

    def _create_instance(self, scope: Scope, owner: Scope, *, cache: bool) -> Any:
        """Create an instance, then commit it to ``owner``.

        The owned list and the instance cache are only touched once creation and
        ``on_created`` have succeeded.
        """
        instance = self._create(scope)
        if self._on_created is not None:
            self._on_created(instance, self.service_type, scope)
        with scope.container._mutation_lock:
            owner._owned.add(instance, self._disposal_strategy)
            if cache:
                owner._instances[self.id] = instance
        return instance


class TransientResolver(Resolver):
    """New instance on every call, owned by the requesting scope."""

    __slots__ = ()
    lifetime_kind = Lifetime.TRANSIENT

    def get_or_create(self, scope: Scope) -> Any:
        return self._create_instance(scope, scope, cache=False)


class ScopedResolver(Resolver):
    """One instance per requesting scope."""

    __slots__ = ()
    lifetime_kind = Lifetime.SCOPED

    def get_or_create(self, scope: Scope) -> Any:
        instance = scope._instances.get(self.id, MISSING)
        if instance is not MISSING:
            return instance

        with scope._get_creation_lock(self.id):
            instance = scope._instances.get(self.id, MISSING)
            if instance is MISSING:
                instance = self._create_instance(scope, scope, cache=True)
        return instance


class ScopedSingletonResolver(Resolver):
    """One instance per scope subtree, pinned to the scope that created it."""

    __slots__ = ()
    lifetime_kind = Lifetime.SCOPED_SINGLETON

    def get_or_create(self, scope: Scope) -> Any:
        instance = self._find_in_ancestors(scope)
        if instance is not MISSING:
            return instance

        with scope._get_creation_lock(self.id):
            instance = self._find_in_ancestors(scope)
            if instance is MISSING:
                instance = self._create_instance(scope, scope, cache=True)
        return instance

    def _find_in_ancestors(self, scope: Scope) -> Any:
        current: Scope | None = scope
        while current is not None:
            instance = current._instances.get(self.id, MISSING)
            if instance is not MISSING:
                return instance
            current = current.parent_scope
        return MISSING


class SingletonResolver(Resolver):
    """One instance per container, owned by the root scope."""

    __slots__ = ()
    lifetime_kind = Lifetime.SINGLETON

    def get_or_create(self, scope: Scope) -> Any:
        root = scope.container.root_scope
        instance = root._instances.get(self.id, MISSING)
        if instance is not MISSING:
            return instance

        with root._get_creation_lock(self.id):
            instance = root._instances.get(self.id, MISSING)
            if instance is MISSING:
                instance = self._create_instance(scope, root, cache=True)
        return instance


_RESOLVER_TYPES: dict[Lifetime, type[Resolver]] = {
    Lifetime.TRANSIENT: TransientResolver,
    Lifetime.SCOPED: ScopedResolver,
    Lifetime.SCOPED_SINGLETON: ScopedSingletonResolver,
    Lifetime.SINGLETON: SingletonResolver,
}


def create_resolver(lifetime: Lifetime, **kwargs: Any) -> Resolver:
    """Create the resolver class matching ``lifetime``."""
    return _RESOLVER_TYPES[lifetime](**kwargs)


class ForwardingResolver:
    """Registration that resolves through a shared implementor group resolver.

    The group resolver owns the cache, so every registration forwarding to it
    observes the same instance. The forwarding registration keeps its own
    ``on_resolving`` callback.
    """

    __slots__ = ("_on_resolving", "_target", "id", "key", "service_type")

    def __init__(
        self,
        *,
        service_type: Any,
        key: Hashable | None,
        target: Resolver,
        on_resolving: OnResolvingCallback | None = None,
    ) -> None:
        self.id = next(Resolver.ID_COUNTER)
        self.service_type = service_type
        self.key = key
        self._target = target
        self._on_resolving = on_resolving

    @property
    def lifetime(self) -> Lifetime:
        return self._target.lifetime

    @property
    def implementor_type(self) -> Any:
        return self._target.implementor_type

    @property
    def target(self) -> Resolver:
        return self._target

    def resolve(self, scope: Scope) -> Any:
        with guard(self._target.id, self.service_type, self._target.implementor_type):
            if self._on_resolving is not None:
                self._on_resolving(self.service_type, scope)
            return self._target.get_or_create(scope)


class RangeResolver:
    """Build a ``Sequence[T]`` from every range element resolver of ``T``."""

    __slots__ = ("_elements", "_on_resolving", "element_type", "id", "key", "service_type")

    def __init__(
        self,
        *,
        service_type: Any,
        element_type: Any,
        key: Hashable | None,
        elements: Sequence[Resolver | ForwardingResolver],
        on_resolving: OnResolvingCallback | None = None,
    ) -> None:
        self.id = next(Resolver.ID_COUNTER)
        self.service_type = service_type
        self.element_type = element_type
        self.key = key
        self._elements = tuple(elements)
        self._on_resolving = on_resolving

    @property
    def implementor_type(self) -> Any:
        return self.service_type

    def resolve(self, scope: Scope) -> tuple[Any, ...]:
        with guard(self.id, self.service_type, self.service_type):
            if self._on_resolving is not None:
                self._on_resolving(self.service_type, scope)
            if not self._elements:
                return EMPTY_RANGE
            return tuple(
                ensure_instance(element.resolve(scope), self.element_type)
                for element in self._elements
            )


AnyResolver = Resolver | ForwardingResolver | RangeResolver
