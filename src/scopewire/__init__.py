from scopewire.bindings import InjectionOverride, InjectionPoint
from scopewire.builder import ContainerBuilder
from scopewire.container import Container
from scopewire.disposal import DisposalKind, DisposalStrategy
from scopewire.exceptions import (
    BindingExtractionError,
    CircularDependencyError,
    DependencyScopeNotFoundError,
    InvalidDependencyCastError,
    InvalidRegistrationError,
    LockRecursionError,
    MissingDependencyError,
    NamedDependencyScopeCreationError,
    ObjectDisposedError,
    OwnedDependenciesDisposalAggregateError,
    OwnedDependencyDisposalError,
    ScopeWireError,
)
from scopewire.lifetimes import Lifetime
from scopewire.locator import Locator
from scopewire.markers import Injected, Maybe, injection_constructor
from scopewire.registrations import RegistrationTable
from scopewire.scope import Scope

__all__ = [
    "BindingExtractionError",
    "CircularDependencyError",
    "Container",
    "ContainerBuilder",
    "DependencyScopeNotFoundError",
    "DisposalKind",
    "DisposalStrategy",
    "Injected",
    "InjectionOverride",
    "InjectionPoint",
    "InvalidDependencyCastError",
    "InvalidRegistrationError",
    "Lifetime",
    "Locator",
    "LockRecursionError",
    "Maybe",
    "MissingDependencyError",
    "NamedDependencyScopeCreationError",
    "ObjectDisposedError",
    "OwnedDependenciesDisposalAggregateError",
    "OwnedDependencyDisposalError",
    "RegistrationTable",
    "Scope",
    "ScopeWireError",
    "injection_constructor",
]
