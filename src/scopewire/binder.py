from __future__ import annotations

import logging
from collections.abc import Callable, Hashable
from typing import TYPE_CHECKING, Any, Protocol

from scopewire._internal.type_checks import is_assignable
from scopewire.bindings import (
    BindingExtractor,
    ConstructorBinding,
    InjectionOverride,
    InjectionPoint,
    is_range_type,
)
from scopewire.exceptions import MissingDependencyError
from scopewire.lifetimes import Lifetime, is_captive

if TYPE_CHECKING:
    from scopewire.scope import Scope

logger = logging.getLogger(__name__)

_BASE_SCORE = 1
_FACTORY_OVERRIDE_SCORE = 3
_IMPLEMENTOR_OVERRIDE_SCORE = 1
_AVAILABLE_SCORE = 2
_CAPTIVE_SCORE = 0
_SKIPPABLE_SCORE = 1

_SKIP: Any = object()


class DependencyCatalog(Protocol):
    """Answers which dependencies are registered, used to score constructors."""

    def find_lifetime(self, dependency_type: Any, key: Hashable | None) -> Lifetime | None:
        """Return the lifetime of a registered dependency, None when it is not registered."""
        ...


class ConstructorInstanceFactory:
    """Create implementor instances through a bound constructor and injection slots.

    With an explicit constructor only that constructor is used. Otherwise every
    candidate constructor is scored once, the first time an instance is needed:

    * each constructor starts with a score of 1;
    * a parameter matched by a factory override adds 3;
    * a parameter matched by an implementor override adds 1 and is then scored
      like a dependency on that implementor;
    * a registered dependency adds 2, or 0 when it would be held captive;
    * a dependency that is not registered adds 1 when it is optional, has a
      default value or is a range, and makes the constructor ineligible
      otherwise.

    Eligible constructors without captive dependencies are preferred over the
    ones holding any. Among them the highest score wins, ties go to the one
    with more parameters and then to the first declared one.
    """

    __slots__ = (
        "_binding",
        "_catalog",
        "_explicit",
        "_key",
        "_lifetime",
        "_overrides",
        "_selected",
        "implementor_type",
    )

    def __init__(
        self,
        *,
        implementor_type: type,
        lifetime: Lifetime,
        key: Hashable | None,
        extractor: BindingExtractor,
        catalog: DependencyCatalog,
        constructor: Callable[..., Any] | None = None,
        overrides: tuple[InjectionOverride, ...] = (),
    ) -> None:
        self.implementor_type = implementor_type
        self._lifetime = lifetime
        self._key = key
        self._catalog = catalog
        self._overrides = overrides
        self._binding = extractor.get_binding(implementor_type)
        self._explicit = (
            extractor.get_constructor_binding(constructor) if constructor is not None else None
        )
        self._selected: ConstructorBinding | None = self._explicit

    def __call__(self, scope: Scope) -> Any:
        constructor = self._selected
        if constructor is None:
            constructor = self._selected = self.select_constructor()

        args: list[Any] = []
        kwargs: dict[str, Any] = {}
        for point in constructor.parameters:
            value = self._resolve_point(point, scope)
            if value is _SKIP:
                if point.positional_only:
                    args.append(point.default)
                continue
            if point.positional_only:
                args.append(value)
            else:
                kwargs[point.name] = value

        instance = constructor.target(*args, **kwargs)

        for slot in self._binding.slots:
            value = self._resolve_point(slot, scope)
            if value is not _SKIP:
                setattr(instance, slot.name, value)
        return instance

    def select_constructor(self) -> ConstructorBinding:
        """Return the best scored eligible constructor of the implementor type."""
        if self._explicit is not None:
            return self._explicit

        best: ConstructorBinding | None = None
        best_rank: tuple[bool, int, int] = (False, 0, 0)
        fewest_missing: list[InjectionPoint] = []
        for constructor in self._binding.constructors:
            score, captives, missing = self._score(constructor)
            if missing:
                if not fewest_missing or len(missing) < len(fewest_missing):
                    fewest_missing = missing
                continue
            rank = (not captives, score, len(constructor.parameters))
            if best is None or rank > best_rank:
                best, best_rank = constructor, rank

        if best is None:
            raise MissingDependencyError(fewest_missing[0].dependency_type)

        logger.debug(
            "Selected constructor %s of %s with score %d",
            best.name,
            self.implementor_type.__qualname__,
            best_rank[1],
        )
        return best

    def _score(
        self,
        constructor: ConstructorBinding,
    ) -> tuple[int, int, list[InjectionPoint]]:
        score = _BASE_SCORE
        captives = 0
        missing: list[InjectionPoint] = []
        for point in constructor.parameters:
            override = self._find_override(point)
            dependency_type, key = point.dependency_type, self._key
            if override is not None:
                if override.factory is not None:
                    score += _FACTORY_OVERRIDE_SCORE
                    continue
                if not is_assignable(override.implementor, point.dependency_type):
                    missing.append(point)
                    continue
                score += _IMPLEMENTOR_OVERRIDE_SCORE
                dependency_type = override.implementor
                key = self._key if override.key is None else override.key

            lifetime = None
            if override is not None or point.is_annotated:
                lifetime = self._catalog.find_lifetime(dependency_type, key)
            if lifetime is not None:
                if is_captive(self._lifetime, lifetime):
                    score += _CAPTIVE_SCORE
                    captives += 1
                else:
                    score += _AVAILABLE_SCORE
            elif point.may_stay_unresolved or is_range_type(dependency_type):
                score += _SKIPPABLE_SCORE
            else:
                missing.append(point)
        return score, captives, missing

    def _find_override(self, point: InjectionPoint) -> InjectionOverride | None:
        for override in self._overrides:
            if override.matches(point):
                return override
        return None

    def _resolve_point(self, point: InjectionPoint, scope: Scope) -> Any:
        override = self._find_override(point)
        if override is not None and override.factory is not None:
            return override.factory(scope)

        dependency_type, key = point.dependency_type, self._key
        if override is not None:
            dependency_type = override.implementor
            key = self._key if override.key is None else override.key

        locator = scope.get_keyed_locator(key)
        has_type = override is not None or point.is_annotated
        if point.may_stay_unresolved and not (has_type and locator.can_resolve(dependency_type)):
            if point.has_default:
                return _SKIP
            return None
        if not has_type:
            raise MissingDependencyError(dependency_type)
        return locator.resolve(dependency_type)
