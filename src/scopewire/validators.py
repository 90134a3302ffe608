from __future__ import annotations

import inspect
from typing import Any

from scopewire._internal.type_checks import is_assignable
from scopewire.exceptions import InvalidRegistrationError
from scopewire.lifetimes import Lifetime


class RegistrationValidator:
    """Validates registrations before they are added to a builder."""

    def validate_concrete_type(self, concrete_type: object) -> None:
        """Validate that a concrete implementor is instantiable."""
        if not inspect.isclass(concrete_type):
            msg = f"Concrete implementor must be a class, got {concrete_type!r}."
            raise InvalidRegistrationError(msg)

        if inspect.isabstract(concrete_type):
            msg = f"Concrete implementor '{concrete_type.__qualname__}' cannot be abstract."
            raise InvalidRegistrationError(msg)

    def validate_factory(self, factory: object) -> None:
        if not callable(factory):
            msg = f"Factory must be callable, got {factory!r}."
            raise InvalidRegistrationError(msg)

    def validate_provides(self, implementor: Any, provides: Any) -> None:
        """Validate that ``implementor`` instances can be returned for ``provides``."""
        if not is_assignable(implementor, provides):
            msg = (
                f"Implementor '{implementor.__qualname__}' does not provide "
                f"{getattr(provides, '__qualname__', repr(provides))}."
            )
            raise InvalidRegistrationError(msg)

    def validate_lifetime(self, lifetime: object) -> None:
        if not isinstance(lifetime, Lifetime):
            msg = f"Lifetime must be a Lifetime member, got {lifetime!r}."
            raise InvalidRegistrationError(msg)
