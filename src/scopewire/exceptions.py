from __future__ import annotations

from typing import TYPE_CHECKING, Any

if TYPE_CHECKING:
    from scopewire.scope import Scope


def _type_name(value: Any) -> str:
    if isinstance(value, type):
        return value.__qualname__
    return repr(value)


class ScopeWireError(Exception):
    """Represent a base class for all scopewire failures.

    Catch this type when you want to handle any scopewire error path without
    matching each concrete exception class individually.
    """


class InvalidRegistrationError(ScopeWireError):
    """Signal an invalid registration passed to ``ContainerBuilder``.

    Raised by ``add_factory``, ``add_concrete``, ``add_shared`` and
    ``add_shared_implementor`` when the arguments cannot describe a buildable
    dependency.

    Typical fixes include passing a callable factory, passing a class as the
    implementor and making sure the implementor is a subclass of the provided
    class.
    """


class BindingExtractionError(ScopeWireError):
    """Signal that constructor or slot metadata cannot be extracted.

    Raised while building the binding of an implementor type, most often when a
    type hint refers to a name that is not importable at runtime.
    """

    def __init__(self, target: Any, error: Exception) -> None:
        self.target = target
        self.error = error
        super().__init__(f"Failed to extract bindings of '{_type_name(target)}': {error}")


class MissingDependencyError(ScopeWireError):
    """Signal that a requested dependency has no registration.

    Raised by ``resolve`` for unregistered, non-range types and by implicit
    constructor selection when no candidate constructor is eligible.

    Typical fixes include registering the dependency for the key used by the
    locator, or marking the parameter as optional with ``Maybe[...]``.
    """

    def __init__(self, dependency_type: Any) -> None:
        self.dependency_type = dependency_type
        super().__init__(f"Dependency of type '{_type_name(dependency_type)}' is missing.")


class InvalidDependencyCastError(ScopeWireError):
    """Signal that a resolved object does not match the requested type.

    Raised by ``resolve`` when a factory returns an object that is not an
    instance of the dependency type it is registered for.
    """

    def __init__(self, dependency_type: Any, actual_type: type) -> None:
        self.dependency_type = dependency_type
        self.actual_type = actual_type
        super().__init__(
            f"Cannot cast resolved object of type '{_type_name(actual_type)}' "
            f"to expected dependency type '{_type_name(dependency_type)}'.",
        )


class CircularDependencyError(ScopeWireError):
    """Signal a circular dependency reference.

    The error raised at the detection point has no ``inner`` error. Every
    resolver frame between the detection point and the caller wraps the error it
    received, so the length of the ``inner`` chain equals the depth of the
    resolution call stack that formed the cycle.
    """

    def __init__(
        self,
        dependency_type: Any,
        implementor_type: Any,
        inner: CircularDependencyError | None = None,
    ) -> None:
        self.dependency_type = dependency_type
        self.implementor_type = implementor_type
        self.inner = inner
        super().__init__(
            f"Detected circular dependency reference during '{_type_name(dependency_type)}' "
            f"resolution using '{_type_name(implementor_type)}' implementor.",
        )

    def iter_chain(self) -> list[CircularDependencyError]:
        """Return this error followed by every nested ``inner`` error."""
        chain: list[CircularDependencyError] = []
        current: CircularDependencyError | None = self
        while current is not None:
            chain.append(current)
            current = current.inner
        return chain


class NamedDependencyScopeCreationError(ScopeWireError):
    """Signal an attempt to begin a named scope whose name is already taken.

    Names are unique among live scopes of a container. A name becomes available
    again once the scope holding it is disposed.
    """

    def __init__(self, scope: Scope, name: str) -> None:
        self.scope = scope
        self.name = name
        super().__init__(
            f"Could not begin a named scope from {scope!r} because scope with name "
            f"'{name}' already exists.",
        )


class DependencyScopeNotFoundError(ScopeWireError):
    """Signal that ``Container.get_scope`` found no live scope with a name."""

    def __init__(self, name: str) -> None:
        self.name = name
        super().__init__(f"Scope with name '{name}' does not exist.")


class ObjectDisposedError(ScopeWireError):
    """Signal an operation on a disposed scope, locator or container."""

    def __init__(self, target: Any) -> None:
        self.target = target
        super().__init__(f"{target!r} is disposed.")


class LockRecursionError(ScopeWireError):
    """Signal an exclusive lock request from a thread that already holds the lock.

    Raised when a scope or the container is disposed from inside a factory,
    constructor or callback that runs as part of a resolution.
    """


class OwnedDependencyDisposalError(ScopeWireError):
    """Wrap an exception thrown by an owned dependency while it was disposed."""

    def __init__(self, scope: Scope, inner: BaseException) -> None:
        self.scope = scope
        self.inner = inner
        super().__init__(
            f"Dependency owned by {scope!r} has thrown an exception during its disposal.",
        )
        self.__cause__ = inner


class OwnedDependenciesDisposalAggregateError(ScopeWireError):
    """Collect every disposal failure of a disposed scope subtree.

    Raised once by ``Scope.dispose`` and ``Container.dispose`` after every scope
    in the subtree and every owned instance were given a chance to dispose.
    """

    def __init__(self, scope: Scope, errors: list[OwnedDependencyDisposalError]) -> None:
        self.scope = scope
        self.errors = tuple(errors)
        super().__init__(
            f"Some owned dependencies have thrown exceptions during {scope!r} disposal.",
        )
