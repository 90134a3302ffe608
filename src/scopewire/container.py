from __future__ import annotations

import logging
import threading
from collections.abc import Hashable
from types import TracebackType
from typing import Any, TypeVar

from typing_extensions import Self

from scopewire.binder import ConstructorInstanceFactory
from scopewire.bindings import BindingExtractor, range_element_type, range_type_of
from scopewire.exceptions import (
    DependencyScopeNotFoundError,
    OwnedDependenciesDisposalAggregateError,
    OwnedDependencyDisposalError,
)
from scopewire.lifetimes import Lifetime
from scopewire.locator import Locator
from scopewire.locking import ReaderWriterLock
from scopewire.registrations import (
    ConstructorSource,
    FactorySource,
    Registration,
    RegistrationTable,
    SharedImplementorSource,
)
from scopewire.resolvers import (
    MISSING,
    AnyResolver,
    ForwardingResolver,
    InstanceFactory,
    RangeResolver,
    Resolver,
    create_resolver,
)
from scopewire.scope import Scope

T = TypeVar("T")

logger = logging.getLogger(__name__)


class Container:
    """Resolve object graphs from a finalized registration table.

    The container owns the root scope, the resolvers built from registrations,
    the shared implementor groups and the registry of named scopes. Disposing
    the container disposes the root scope and with it every scope of the tree.

    Examples:
        .. code-block:: python

            builder = ContainerBuilder()
            builder.add_concrete(SqlRepository, provides=Repository, lifetime=Lifetime.SCOPED)
            container = builder.build()

            with container.root_scope.begin_scope() as scope:
                repository = scope.resolve(Repository)

    """

    __slots__ = (
        "_extractor",
        "_lock",
        "_mutation_lock",
        "_named_scopes",
        "_registration_resolvers",
        "_resolvers",
        "_root_scope",
        "_shared_resolvers",
        "_table",
    )

    def __init__(self, table: RegistrationTable | None = None) -> None:
        self._table = table if table is not None else RegistrationTable()
        self._lock = ReaderWriterLock()
        self._mutation_lock = threading.RLock()
        self._extractor = BindingExtractor()
        self._resolvers: dict[tuple[Any, Hashable | None], AnyResolver] = {}
        self._registration_resolvers: dict[int, Resolver | ForwardingResolver] = {}
        self._shared_resolvers: dict[tuple[type, Hashable | None, Lifetime], Resolver] = {}
        self._named_scopes: dict[str, Scope] = {}
        self._root_scope = Scope(self, None)
        logger.info(
            "Container built: registrations=%d keys=%d",
            len(self._table),
            len(self._table.keys),
        )

    def __repr__(self) -> str:
        return f"Container(registrations={len(self._table)}, disposed={self.is_disposed})"

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
    def table(self) -> RegistrationTable:
        return self._table

    @property
    def root_scope(self) -> Scope:
        return self._root_scope

    @property
    def locator(self) -> Locator:
        return self._root_scope.locator

    @property
    def is_disposed(self) -> bool:
        return self._root_scope.is_disposed

    def resolve(self, service_type: type[T]) -> T:
        return self._root_scope.locator.resolve(service_type)

    def try_resolve(self, service_type: type[T], default: Any = None) -> T | Any:
        return self._root_scope.locator.try_resolve(service_type, default)

    def try_get_scope(self, name: str) -> Scope | None:
        """Get the live scope named ``name``, or None."""
        with self._mutation_lock:
            return self._named_scopes.get(name)

    def get_scope(self, name: str) -> Scope:
        """Get the live scope named ``name``.

        Raises:
            DependencyScopeNotFoundError: If no live scope has that name.

        """
        scope = self.try_get_scope(name)
        if scope is None:
            raise DependencyScopeNotFoundError(name)
        return scope

    def dispose(self) -> None:
        """Dispose the root scope, every child scope and all owned instances."""
        self._dispose_scope(self._root_scope)

    def is_builtin_type(self, service_type: Any) -> bool:
        return service_type is Container or service_type is Scope

    def resolve_builtin(self, service_type: Any, scope: Scope) -> Any:
        if service_type is Container:
            return self
        if service_type is Scope:
            return scope
        return MISSING

    def find_lifetime(self, dependency_type: Any, key: Hashable | None) -> Lifetime | None:
        """Get the lifetime of a registered or built-in type, None otherwise."""
        if dependency_type is Container:
            return Lifetime.SINGLETON
        if dependency_type is Scope:
            return Lifetime.SCOPED_SINGLETON
        registration = self._table.find(dependency_type, key)
        if registration is None:
            return None
        return registration.lifetime

    def get_resolvable_types(self, key: Hashable | None) -> list[Any]:
        types: list[Any] = [Container, Scope]
        types.extend(self._table.service_types(key))
        for element_type in self._table.range_element_types(key):
            range_type = range_type_of(element_type)
            if range_type not in types:
                types.append(range_type)
        return types

    def find_resolver(self, service_type: Any, key: Hashable | None) -> AnyResolver | None:
        """Get the resolver of ``service_type``, building it on first use."""
        resolver = self._resolvers.get((service_type, key))
        if resolver is not None:
            return resolver

        with self._mutation_lock:
            resolver = self._resolvers.get((service_type, key))
            if resolver is None:
                resolver = self._build_resolver(service_type, key)
                if resolver is None:
                    return None
                self._resolvers[service_type, key] = resolver
        return resolver

    def _build_resolver(self, service_type: Any, key: Hashable | None) -> AnyResolver | None:
        registration = self._table.find(service_type, key)
        if registration is not None:
            return self._get_registration_resolver(registration)

        element_type = range_element_type(service_type)
        if element_type is None:
            return None

        elements = [
            self._get_registration_resolver(member)
            for member in self._table.range_members(element_type, key)
        ]
        logger.debug(
            "Synthesized range resolver of %r with %d element(s)",
            service_type,
            len(elements),
        )
        return RangeResolver(
            service_type=service_type,
            element_type=element_type,
            key=key,
            elements=elements,
            on_resolving=self._table.range_on_resolving(element_type, key),
        )

    def _get_registration_resolver(
        self,
        registration: Registration,
    ) -> Resolver | ForwardingResolver:
        resolver = self._registration_resolvers.get(registration.slot)
        if resolver is not None:
            return resolver

        source = registration.source
        if isinstance(source, SharedImplementorSource):
            resolver = ForwardingResolver(
                service_type=registration.service_type,
                key=registration.key,
                target=self._get_shared_resolver(
                    source.implementor_type,
                    registration.key,
                    registration.lifetime,
                ),
                on_resolving=registration.on_resolving,
            )
        else:
            resolver = create_resolver(
                registration.lifetime,
                service_type=registration.service_type,
                implementor_type=registration.implementor_type,
                key=registration.key,
                create=self._create_instance_factory(
                    source,
                    registration.lifetime,
                    registration.key,
                ),
                on_resolving=registration.on_resolving,
                on_created=registration.on_created,
                disposal_strategy=registration.disposal_strategy,
            )
        self._registration_resolvers[registration.slot] = resolver
        return resolver

    def _get_shared_resolver(
        self,
        implementor_type: type,
        key: Hashable | None,
        lifetime: Lifetime,
    ) -> Resolver:
        group = (implementor_type, key, lifetime)
        resolver = self._shared_resolvers.get(group)
        if resolver is not None:
            return resolver

        definition = self._table.shared_implementor(implementor_type, key)
        resolver = create_resolver(
            lifetime,
            service_type=implementor_type,
            implementor_type=implementor_type,
            key=key,
            create=self._create_instance_factory(definition.source, lifetime, key),
            on_created=definition.on_created,
            disposal_strategy=definition.disposal_strategy,
        )
        self._shared_resolvers[group] = resolver
        return resolver

    def _create_instance_factory(
        self,
        source: FactorySource | ConstructorSource,
        lifetime: Lifetime,
        key: Hashable | None,
    ) -> InstanceFactory:
        if isinstance(source, FactorySource):
            return source.factory
        return ConstructorInstanceFactory(
            implementor_type=source.implementor_type,
            lifetime=lifetime,
            key=key,
            extractor=self._extractor,
            catalog=self,
            constructor=source.constructor,
            overrides=source.overrides,
        )

    def _dispose_scope(self, scope: Scope) -> None:
        with self._lock.write():
            if scope.is_disposed:
                return
            with self._mutation_lock:
                errors = self._dispose_subtree(scope)
                parent = scope.parent_scope
                if parent is not None:
                    parent._children.remove(scope)
                if scope.is_root:
                    self._resolvers.clear()
                    self._registration_resolvers.clear()
                    self._shared_resolvers.clear()

        logger.debug("Disposed %r with %d disposal error(s)", scope, len(errors))
        if errors:
            raise OwnedDependenciesDisposalAggregateError(scope, errors)

    def _dispose_subtree(self, scope: Scope) -> list[OwnedDependencyDisposalError]:
        errors: list[OwnedDependencyDisposalError] = []
        for child in scope._children:
            errors.extend(self._dispose_subtree(child))
        scope._children.clear()

        scope._is_disposed = True
        if scope.name is not None and self._named_scopes.get(scope.name) is scope:
            del self._named_scopes[scope.name]
        scope._keyed_locators.clear()
        errors.extend(scope._owned.dispose_all(scope))
        scope._instances.clear()
        scope._creation_locks.clear()
        return errors
