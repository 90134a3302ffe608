from __future__ import annotations

import itertools
from collections.abc import Callable, Hashable, Iterable, Mapping
from dataclasses import dataclass, field
from typing import TYPE_CHECKING, Any, ClassVar, Union

from scopewire.bindings import InjectionOverride
from scopewire.disposal import DisposalStrategy
from scopewire.lifetimes import Lifetime

if TYPE_CHECKING:
    from scopewire.scope import Scope

OnResolvingCallback = Callable[[Any, "Scope"], None]
"""Called with ``(service_type, scope)`` on every resolution."""

OnCreatedCallback = Callable[[Any, Any, "Scope"], None]
"""Called with ``(instance, service_type, scope)`` once per created instance."""


@dataclass(frozen=True, slots=True)
class FactorySource:
    """Build instances by calling ``factory(scope)``."""

    factory: Callable[[Scope], Any]


@dataclass(frozen=True, slots=True)
class ConstructorSource:
    """Build instances through a bound constructor of ``implementor_type``.

    ``constructor`` selects the constructor explicitly; when it is None every
    candidate constructor of the implementor is scored and the best one wins.
    """

    implementor_type: type
    constructor: Callable[..., Any] | None = None
    overrides: tuple[InjectionOverride, ...] = ()


@dataclass(frozen=True, slots=True)
class SharedImplementorSource:
    """Forward creation to the shared implementor group of ``implementor_type``."""

    implementor_type: type


DependencySource = Union[FactorySource, ConstructorSource, SharedImplementorSource]


@dataclass(frozen=True, slots=True, kw_only=True)
class Registration:
    """A single ``service_type`` registration of a container."""

    SLOT_COUNTER: ClassVar[itertools.count[int]] = itertools.count()

    service_type: Any
    """Dependency key requested from locators."""

    lifetime: Lifetime
    """Lifetime policy of the registration."""

    source: DependencySource
    """How instances are built."""

    key: Hashable | None = None
    """Keyed locator namespace the registration belongs to, None for the unkeyed one."""

    on_resolving: OnResolvingCallback | None = None
    on_created: OnCreatedCallback | None = None
    disposal_strategy: DisposalStrategy = field(default_factory=DisposalStrategy.default)

    include_in_range: bool = True
    """Whether the registration is an element of ``Sequence[service_type]`` ranges."""

    slot: int = field(default_factory=lambda: next(Registration.SLOT_COUNTER))
    """Unique, increasing registration number."""

    @property
    def implementor_type(self) -> Any:
        if isinstance(self.source, (ConstructorSource, SharedImplementorSource)):
            return self.source.implementor_type
        return self.service_type


@dataclass(frozen=True, slots=True, kw_only=True)
class SharedImplementorDefinition:
    """How a shared implementor is built, common to every lifetime group of it."""

    implementor_type: type
    source: FactorySource | ConstructorSource
    key: Hashable | None = None
    on_created: OnCreatedCallback | None = None
    disposal_strategy: DisposalStrategy = field(default_factory=DisposalStrategy.default)


RegistrationKey = tuple[Any, Union[Hashable, None]]


class RegistrationTable:
    """Read-only lookup tables over registrations, built once per container."""

    def __init__(
        self,
        registrations: Iterable[Registration] = (),
        shared_implementors: Iterable[SharedImplementorDefinition] = (),
        range_callbacks: Mapping[RegistrationKey, OnResolvingCallback] | None = None,
    ) -> None:
        self._registrations = tuple(sorted(registrations, key=lambda r: r.slot))
        self._by_key: dict[RegistrationKey, list[Registration]] = {}
        for registration in self._registrations:
            self._by_key.setdefault(
                (registration.service_type, registration.key),
                [],
            ).append(registration)

        self._shared_implementors: dict[RegistrationKey, SharedImplementorDefinition] = {
            (definition.implementor_type, definition.key): definition
            for definition in shared_implementors
        }
        self._range_callbacks = dict(range_callbacks or {})

    def __len__(self) -> int:
        return len(self._registrations)

    @property
    def keys(self) -> frozenset[Hashable | None]:
        return frozenset(registration.key for registration in self._registrations)

    def find(self, service_type: Any, key: Hashable | None = None) -> Registration | None:
        """Get the registration that wins single resolution of ``service_type``."""
        registrations = self._by_key.get((service_type, key))
        if not registrations:
            return None
        return registrations[-1]

    def range_members(
        self,
        element_type: Any,
        key: Hashable | None = None,
    ) -> tuple[Registration, ...]:
        """Get the range elements of ``element_type`` in registration order."""
        registrations = self._by_key.get((element_type, key), ())
        return tuple(r for r in registrations if r.include_in_range)

    def service_types(self, key: Hashable | None = None) -> list[Any]:
        """Get registered service types of ``key``, in first registration order."""
        return list(dict.fromkeys(r.service_type for r in self._registrations if r.key == key))

    def range_element_types(self, key: Hashable | None = None) -> list[Any]:
        """Get element types of ``key`` with at least one range element."""
        return list(
            dict.fromkeys(
                r.service_type
                for r in self._registrations
                if r.key == key and r.include_in_range
            ),
        )

    def shared_implementor(
        self,
        implementor_type: type,
        key: Hashable | None = None,
    ) -> SharedImplementorDefinition:
        """Get how ``implementor_type`` is built, defaulting to implicit constructor binding."""
        definition = self._shared_implementors.get((implementor_type, key))
        if definition is None:
            definition = SharedImplementorDefinition(
                implementor_type=implementor_type,
                source=ConstructorSource(implementor_type),
                key=key,
            )
        return definition

    def range_on_resolving(
        self,
        element_type: Any,
        key: Hashable | None = None,
    ) -> OnResolvingCallback | None:
        return self._range_callbacks.get((element_type, key))
