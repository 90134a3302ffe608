from __future__ import annotations

import types
from typing import Annotated, Any, get_args, get_origin

from typing_extensions import TypeGuard


def is_runtime_class(candidate: object) -> TypeGuard[type[Any]]:
    """Return true when candidate is a runtime class safe for class-only operations.

    Args:
        candidate: Value being checked for eligibility or runtime type constraints.

    """
    return isinstance(candidate, type) and not isinstance(candidate, types.GenericAlias)


def runtime_check_target(service_type: Any) -> type[Any] | None:
    """Return the class ``isinstance`` checks against for ``service_type``, if any.

    ``Annotated`` keys are checked against their inner type and parameterized
    generics against their origin. Keys without a runtime class, such as
    ``NewType`` aliases, strings and protocols that are not runtime checkable,
    return None.
    """
    if get_origin(service_type) is Annotated:
        service_type = get_args(service_type)[0]
    origin = get_origin(service_type)
    if origin is not None:
        service_type = origin
    if not is_runtime_class(service_type):
        return None
    if getattr(service_type, "_is_protocol", False) and not getattr(
        service_type,
        "_is_runtime_protocol",
        False,
    ):
        return None
    return service_type


def is_assignable(implementor: Any, service_type: Any) -> bool:
    """Return False only when both sides are classes and ``implementor`` is not a subclass."""
    target = runtime_check_target(service_type)
    if target is None or not is_runtime_class(implementor):
        return True
    if getattr(target, "_is_protocol", False):
        # runtime protocols only support issubclass for method-only members
        return True
    return issubclass(implementor, target)


__all__ = ["is_assignable", "is_runtime_class", "runtime_check_target"]
