from __future__ import annotations

import dataclasses
import inspect
import logging
from collections.abc import Callable, Collection, Hashable, Iterable, Sequence
from dataclasses import dataclass
from enum import Enum
from typing import TYPE_CHECKING, Any, get_args, get_origin, get_type_hints

from scopewire.exceptions import BindingExtractionError, InvalidRegistrationError
from scopewire.markers import (
    is_injected_annotation,
    is_injection_constructor,
    is_maybe_annotation,
    strip_injected_annotation,
    strip_maybe_annotation,
)

if TYPE_CHECKING:
    from scopewire.scope import Scope

logger = logging.getLogger(__name__)

_RANGE_ORIGINS = frozenset({Sequence, Collection, Iterable})
_TUPLE_RANGE_ARGS = 2


class _Unannotated:
    def __repr__(self) -> str:
        return "<unannotated>"


UNANNOTATED: Any = _Unannotated()


class InjectionPointKind(Enum):
    PARAMETER = "parameter"
    SLOT = "slot"


@dataclass(frozen=True, slots=True)
class InjectionPoint:
    """A constructor parameter or an injection slot of an implementor type."""

    name: str
    dependency_type: Any
    kind: InjectionPointKind = InjectionPointKind.PARAMETER
    is_optional: bool = False
    has_default: bool = False
    positional_only: bool = False
    default: Any = None

    @property
    def is_annotated(self) -> bool:
        return self.dependency_type is not UNANNOTATED

    @property
    def may_stay_unresolved(self) -> bool:
        return self.is_optional or self.has_default


@dataclass(frozen=True, slots=True)
class ConstructorBinding:
    """A callable able to create an implementor, with its ordered parameters."""

    target: Callable[..., Any]
    parameters: tuple[InjectionPoint, ...]

    @property
    def name(self) -> str:
        return getattr(self.target, "__qualname__", repr(self.target))


@dataclass(frozen=True, slots=True)
class ImplementorBinding:
    """Every candidate constructor and injection slot of an implementor type."""

    implementor_type: type
    constructors: tuple[ConstructorBinding, ...]
    slots: tuple[InjectionPoint, ...]


@dataclass(frozen=True, slots=True)
class InjectionOverride:
    """Replace the default lookup of matching injection points.

    Exactly one of ``factory`` (called with the resolving scope) or
    ``implementor`` (resolved instead of the declared type, through the keyed
    locator of ``key`` when given) must be set.
    """

    predicate: Callable[[InjectionPoint], bool]
    factory: Callable[[Scope], Any] | None = None
    implementor: Any = None
    key: Hashable | None = None

    def __post_init__(self) -> None:
        if (self.factory is None) == (self.implementor is None):
            msg = "Injection override requires exactly one of 'factory' or 'implementor'."
            raise InvalidRegistrationError(msg)

    @classmethod
    def for_name(
        cls,
        name: str,
        *,
        factory: Callable[[Scope], Any] | None = None,
        implementor: Any = None,
        key: Hashable | None = None,
    ) -> InjectionOverride:
        return cls(lambda point: point.name == name, factory, implementor, key)

    @classmethod
    def for_type(
        cls,
        dependency_type: Any,
        *,
        factory: Callable[[Scope], Any] | None = None,
        implementor: Any = None,
        key: Hashable | None = None,
    ) -> InjectionOverride:
        return cls(
            lambda point: point.dependency_type == dependency_type,
            factory,
            implementor,
            key,
        )

    def matches(self, point: InjectionPoint) -> bool:
        return bool(self.predicate(point))


def range_element_type(service_type: Any) -> Any | None:
    """Return ``U`` when ``service_type`` is a sequence of ``U``, otherwise None."""
    origin = get_origin(service_type)
    args = get_args(service_type)
    if origin in _RANGE_ORIGINS and len(args) == 1:
        return args[0]
    if origin is tuple and len(args) == _TUPLE_RANGE_ARGS and args[1] is Ellipsis:
        return args[0]
    return None


def is_range_type(service_type: Any) -> bool:
    return range_element_type(service_type) is not None


def range_type_of(element_type: Any) -> Any:
    """Return the canonical range key for ``element_type``."""
    return Sequence[element_type]


class BindingExtractor:
    """Extract constructor and injection slot metadata from implementor types."""

    def __init__(self) -> None:
        self._bindings_cache: dict[type, ImplementorBinding] = {}
        self._constructors_cache: dict[Any, ConstructorBinding] = {}

    def get_binding(self, implementor_type: type) -> ImplementorBinding:
        """Get every candidate constructor and slot of ``implementor_type``."""
        cached = self._bindings_cache.get(implementor_type)
        if cached is not None:
            return cached

        constructors = [self.get_constructor_binding(implementor_type)]
        for attribute in vars(implementor_type).values():
            if isinstance(attribute, classmethod) and is_injection_constructor(attribute.__func__):
                bound = attribute.__get__(None, implementor_type)
                constructors.append(self.get_constructor_binding(bound))

        result = ImplementorBinding(
            implementor_type=implementor_type,
            constructors=tuple(constructors),
            slots=self._get_slots(implementor_type),
        )
        self._bindings_cache[implementor_type] = result
        logger.debug(
            "Extracted binding of %s: constructors=%d slots=%d",
            implementor_type.__qualname__,
            len(result.constructors),
            len(result.slots),
        )
        return result

    def get_constructor_binding(self, target: Callable[..., Any]) -> ConstructorBinding:
        """Get the parameters of a class (its ``__init__``) or of a constructor callable."""
        cache_key = _constructor_cache_key(target)
        cached = self._constructors_cache.get(cache_key)
        if cached is not None:
            return cached

        if isinstance(target, type):
            parameters = self._get_class_parameters(target)
        else:
            parameters = self._get_callable_parameters(target)

        result = ConstructorBinding(target=target, parameters=parameters)
        self._constructors_cache[cache_key] = result
        return result

    def _get_class_parameters(self, cls: type) -> tuple[InjectionPoint, ...]:
        init_func = cls.__init__  # type: ignore[misc]
        if init_func is object.__init__:
            return ()

        try:
            signature = inspect.signature(init_func)
        except (ValueError, TypeError):
            return ()

        if dataclasses.is_dataclass(cls):
            type_hints = self._get_type_hints(cls, cls)
        else:
            type_hints = self._get_type_hints(init_func, cls)

        parameters = list(signature.parameters.values())[1:]
        return self._build_parameters(parameters, type_hints)

    def _get_callable_parameters(self, target: Callable[..., Any]) -> tuple[InjectionPoint, ...]:
        try:
            signature = inspect.signature(target)
        except (ValueError, TypeError) as e:
            raise BindingExtractionError(target, e) from e

        func = inspect.unwrap(getattr(target, "__func__", target))
        type_hints = self._get_type_hints(func, target)
        return self._build_parameters(list(signature.parameters.values()), type_hints)

    def _get_slots(self, cls: type) -> tuple[InjectionPoint, ...]:
        type_hints = self._get_type_hints(cls, cls)
        slots = []
        for name, hint in type_hints.items():
            if not is_injected_annotation(hint):
                continue
            hint = strip_injected_annotation(hint)
            is_optional = is_maybe_annotation(hint)
            slots.append(
                InjectionPoint(
                    name=name,
                    dependency_type=strip_maybe_annotation(hint),
                    kind=InjectionPointKind.SLOT,
                    is_optional=is_optional,
                    has_default=any(name in vars(base) for base in cls.__mro__),
                ),
            )
        return tuple(slots)

    @staticmethod
    def _build_parameters(
        parameters: list[inspect.Parameter],
        type_hints: dict[str, Any],
    ) -> tuple[InjectionPoint, ...]:
        result = []
        for parameter in parameters:
            if parameter.kind in (inspect.Parameter.VAR_POSITIONAL, inspect.Parameter.VAR_KEYWORD):
                continue
            hint = type_hints.get(parameter.name, UNANNOTATED)
            result.append(
                InjectionPoint(
                    name=parameter.name,
                    dependency_type=strip_maybe_annotation(hint),
                    is_optional=is_maybe_annotation(hint),
                    has_default=parameter.default is not inspect.Parameter.empty,
                    positional_only=parameter.kind is inspect.Parameter.POSITIONAL_ONLY,
                    default=(
                        None if parameter.default is inspect.Parameter.empty else parameter.default
                    ),
                ),
            )
        return tuple(result)

    @staticmethod
    def _get_type_hints(obj: Any, target: Any) -> dict[str, Any]:
        try:
            return get_type_hints(obj, include_extras=True)
        except (TypeError, NameError) as e:
            raise BindingExtractionError(target, e) from e


def _constructor_cache_key(target: Callable[..., Any]) -> Any:
    # bound classmethods are recreated on every attribute access
    func = getattr(target, "__func__", None)
    owner = getattr(target, "__self__", None)
    if func is not None and owner is not None:
        return (owner, func)
    return target
