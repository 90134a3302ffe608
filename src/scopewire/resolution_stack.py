from __future__ import annotations

from collections.abc import Iterator
from contextlib import contextmanager
from contextvars import ContextVar
from typing import Any

from scopewire.exceptions import CircularDependencyError

# Identifiers of resolvers currently running in this call tree. The value is
# never mutated in place, so copied contexts and other threads see their own.
_resolving: ContextVar[frozenset[int]] = ContextVar("scopewire_resolving", default=frozenset())


def is_resolving(guard_id: int) -> bool:
    return guard_id in _resolving.get()


@contextmanager
def guard(guard_id: int, dependency_type: Any, implementor_type: Any) -> Iterator[None]:
    """Mark a resolver as running for the duration of the ``with`` block.

    Re-entering a resolver that is already running raises
    ``CircularDependencyError`` without an inner error. A
    ``CircularDependencyError`` leaving the block is wrapped once more, so every
    frame of the cycle adds exactly one level to the error chain.
    """
    resolving = _resolving.get()
    if guard_id in resolving:
        raise CircularDependencyError(dependency_type, implementor_type)

    token = _resolving.set(resolving | {guard_id})
    try:
        yield
    except CircularDependencyError as error:
        raise CircularDependencyError(dependency_type, implementor_type, error) from error
    finally:
        _resolving.reset(token)
