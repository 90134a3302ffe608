from __future__ import annotations

import logging
from collections.abc import Callable, Hashable, Iterable
from typing import TYPE_CHECKING, Any, Literal

from scopewire.bindings import InjectionOverride
from scopewire.container import Container
from scopewire.disposal import DisposalStrategy
from scopewire.exceptions import InvalidRegistrationError
from scopewire.lifetimes import Lifetime
from scopewire.registrations import (
    ConstructorSource,
    FactorySource,
    OnCreatedCallback,
    OnResolvingCallback,
    Registration,
    RegistrationKey,
    RegistrationTable,
    SharedImplementorDefinition,
    SharedImplementorSource,
)
from scopewire.validators import RegistrationValidator

if TYPE_CHECKING:
    from scopewire.scope import Scope

logger = logging.getLogger(__name__)


class ContainerBuilder:
    """Collect registrations and build a ``Container`` from them.

    Args:
        default_lifetime: Lifetime used by registrations that do not pass one.
        default_disposal_strategy: Disposal strategy used by registrations that
            do not pass one. Defaults to calling ``close()`` on owned instances.

    Examples:
        .. code-block:: python

            builder = ContainerBuilder(default_lifetime=Lifetime.SCOPED)
            builder.add_concrete(SqlRepository, provides=Repository)
            builder.add_factory(lambda scope: Settings.from_env(), provides=Settings,
                                lifetime=Lifetime.SINGLETON)
            container = builder.build()

    """

    def __init__(
        self,
        *,
        default_lifetime: Lifetime = Lifetime.TRANSIENT,
        default_disposal_strategy: DisposalStrategy | None = None,
    ) -> None:
        self._validator = RegistrationValidator()
        self._validator.validate_lifetime(default_lifetime)
        self._default_lifetime = default_lifetime
        self._default_disposal_strategy = default_disposal_strategy or DisposalStrategy.default()
        self._registrations: list[Registration] = []
        self._shared_implementors: dict[RegistrationKey, SharedImplementorDefinition] = {}
        self._range_callbacks: dict[RegistrationKey, OnResolvingCallback] = {}

    @property
    def registrations(self) -> tuple[Registration, ...]:
        return tuple(self._registrations)

    def add_factory(
        self,
        factory: Callable[[Scope], Any],
        *,
        provides: Any,
        lifetime: Lifetime | Literal["from_builder"] = "from_builder",
        key: Hashable | None = None,
        include_in_range: bool = True,
        on_resolving: OnResolvingCallback | None = None,
        on_created: OnCreatedCallback | None = None,
        disposal_strategy: DisposalStrategy | Literal["from_builder"] = "from_builder",
    ) -> None:
        """Register a factory called with the resolving scope.

        Args:
            factory: Callable receiving the resolving ``Scope`` and returning the
                instance.
            provides: Dependency key produced by the factory.
            lifetime: Lifetime, or ``"from_builder"`` to use the builder default.
            key: Keyed locator namespace, None for the unkeyed locator.
            include_in_range: Whether ``Sequence[provides]`` ranges contain this
                registration.
            on_resolving: Called with ``(provides, scope)`` on every resolution.
            on_created: Called with ``(instance, provides, scope)`` once per
                created instance.
            disposal_strategy: How owned instances are disposed, or
                ``"from_builder"`` to use the builder default.

        Raises:
            InvalidRegistrationError: If ``factory`` is not callable.

        """
        self._validator.validate_factory(factory)
        self._add(
            Registration(
                service_type=provides,
                lifetime=self._resolve_lifetime(lifetime),
                source=FactorySource(factory),
                key=key,
                on_resolving=on_resolving,
                on_created=on_created,
                disposal_strategy=self._resolve_disposal(disposal_strategy),
                include_in_range=include_in_range,
            ),
        )

    def add_concrete(
        self,
        concrete_type: type[Any],
        *,
        provides: Any | Literal["infer"] = "infer",
        lifetime: Lifetime | Literal["from_builder"] = "from_builder",
        key: Hashable | None = None,
        constructor: Callable[..., Any] | None = None,
        overrides: Iterable[InjectionOverride] = (),
        include_in_range: bool = True,
        on_resolving: OnResolvingCallback | None = None,
        on_created: OnCreatedCallback | None = None,
        disposal_strategy: DisposalStrategy | Literal["from_builder"] = "from_builder",
    ) -> None:
        """Register a concrete type built through one of its constructors.

        Candidate constructors are the class itself and every classmethod
        decorated with ``injection_constructor``. Without an explicit
        ``constructor`` the best scored candidate is used.

        Args:
            concrete_type: Concrete class to instantiate.
            provides: Dependency key produced by this registration. ``"infer"``
                uses ``concrete_type`` directly.
            lifetime: Lifetime, or ``"from_builder"`` to use the builder default.
            key: Keyed locator namespace, None for the unkeyed locator.
            constructor: Explicit constructor, the class itself or one of its
                classmethods.
            overrides: Replacements for the default lookup of matching
                parameters and injection slots.
            include_in_range: Whether ``Sequence[provides]`` ranges contain this
                registration.
            on_resolving: Called with ``(provides, scope)`` on every resolution.
            on_created: Called with ``(instance, provides, scope)`` once per
                created instance.
            disposal_strategy: How owned instances are disposed, or
                ``"from_builder"`` to use the builder default.

        Raises:
            InvalidRegistrationError: If ``concrete_type`` is not an instantiable
                class or does not provide ``provides``.

        Examples:
            .. code-block:: python

                builder.add_concrete(SqlRepository, provides=Repository, lifetime=Lifetime.SCOPED)

        """
        self._validator.validate_concrete_type(concrete_type)
        if provides == "infer":
            provides = concrete_type
        self._validator.validate_provides(concrete_type, provides)
        if constructor is not None:
            self._validator.validate_factory(constructor)
        self._add(
            Registration(
                service_type=provides,
                lifetime=self._resolve_lifetime(lifetime),
                source=ConstructorSource(concrete_type, constructor, tuple(overrides)),
                key=key,
                on_resolving=on_resolving,
                on_created=on_created,
                disposal_strategy=self._resolve_disposal(disposal_strategy),
                include_in_range=include_in_range,
            ),
        )

    def add_instance(
        self,
        instance: Any,
        *,
        provides: Any | Literal["infer"] = "infer",
        key: Hashable | None = None,
        include_in_range: bool = True,
    ) -> None:
        """Register an existing object as a singleton the container does not own."""
        if provides == "infer":
            provides = type(instance)
        self._add(
            Registration(
                service_type=provides,
                lifetime=Lifetime.SINGLETON,
                source=FactorySource(lambda _: instance),
                key=key,
                disposal_strategy=DisposalStrategy.renounce_ownership(),
                include_in_range=include_in_range,
            ),
        )

    def add_shared_implementor(
        self,
        implementor_type: type[Any],
        *,
        key: Hashable | None = None,
        factory: Callable[[Scope], Any] | None = None,
        constructor: Callable[..., Any] | None = None,
        overrides: Iterable[InjectionOverride] = (),
        on_created: OnCreatedCallback | None = None,
        disposal_strategy: DisposalStrategy | Literal["from_builder"] = "from_builder",
    ) -> None:
        """Define how a shared implementor is built.

        Registrations added with ``add_shared`` for the same implementor, key
        and lifetime share one instance cache. Without a definition the
        implementor is built through implicit constructor selection.

        Raises:
            InvalidRegistrationError: If both ``factory`` and ``constructor``
                are passed, or the implementor is not an instantiable class.

        """
        self._validator.validate_concrete_type(implementor_type)
        if factory is not None and (constructor is not None or overrides):
            msg = "Shared implementor accepts either 'factory' or constructor options."
            raise InvalidRegistrationError(msg)

        source: FactorySource | ConstructorSource
        if factory is not None:
            self._validator.validate_factory(factory)
            source = FactorySource(factory)
        else:
            source = ConstructorSource(implementor_type, constructor, tuple(overrides))

        self._shared_implementors[implementor_type, key] = SharedImplementorDefinition(
            implementor_type=implementor_type,
            source=source,
            key=key,
            on_created=on_created,
            disposal_strategy=self._resolve_disposal(disposal_strategy),
        )

    def add_shared(
        self,
        provides: Any,
        implementor_type: type[Any],
        *,
        lifetime: Lifetime | Literal["from_builder"] = "from_builder",
        key: Hashable | None = None,
        include_in_range: bool = True,
        on_resolving: OnResolvingCallback | None = None,
    ) -> None:
        """Register ``provides`` as served by the shared ``implementor_type``.

        Raises:
            InvalidRegistrationError: If the implementor does not provide
                ``provides``.

        """
        self._validator.validate_concrete_type(implementor_type)
        self._validator.validate_provides(implementor_type, provides)
        self._add(
            Registration(
                service_type=provides,
                lifetime=self._resolve_lifetime(lifetime),
                source=SharedImplementorSource(implementor_type),
                key=key,
                on_resolving=on_resolving,
                include_in_range=include_in_range,
            ),
        )

    def set_range_on_resolving(
        self,
        element_type: Any,
        callback: OnResolvingCallback,
        *,
        key: Hashable | None = None,
    ) -> None:
        """Call ``callback(Sequence[element_type], scope)`` on every range resolution."""
        self._validator.validate_factory(callback)
        self._range_callbacks[element_type, key] = callback

    def build_table(self) -> RegistrationTable:
        return RegistrationTable(
            self._registrations,
            self._shared_implementors.values(),
            self._range_callbacks,
        )

    def build(self) -> Container:
        return Container(self.build_table())

    def _add(self, registration: Registration) -> None:
        self._registrations.append(registration)
        logger.debug(
            "Registered %r: lifetime=%s key=%r",
            registration.service_type,
            registration.lifetime.name,
            registration.key,
        )

    def _resolve_lifetime(self, lifetime: Lifetime | Literal["from_builder"]) -> Lifetime:
        if lifetime == "from_builder":
            return self._default_lifetime
        self._validator.validate_lifetime(lifetime)
        return lifetime

    def _resolve_disposal(
        self,
        strategy: DisposalStrategy | Literal["from_builder"],
    ) -> DisposalStrategy:
        if strategy == "from_builder":
            return self._default_disposal_strategy
        return strategy
