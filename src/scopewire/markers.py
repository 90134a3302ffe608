from __future__ import annotations

from collections.abc import Callable
from typing import TYPE_CHECKING, Annotated, Any, TypeVar, Union, get_args, get_origin

T = TypeVar("T")
F = TypeVar("F", bound=Callable[..., Any])
_ANNOTATED_MARKER_MIN_ARGS = 2
_CONSTRUCTOR_FLAG = "__scopewire_constructor__"


class InjectedMarker:
    """Marker that turns a class-level annotation into an injection slot."""

    def __repr__(self) -> str:
        return "InjectedMarker()"


class MaybeMarker:
    """Marker that indicates a dependency is optional and may stay unresolved."""

    def __repr__(self) -> str:
        return "MaybeMarker()"


if TYPE_CHECKING:
    Injected = Union[T, T]  # noqa: UP007,PYI016
    """Mark a class attribute as an injection slot.

    At runtime ``Injected[T]`` becomes ``Annotated[T, InjectedMarker()]``.
    """

    Maybe = Union[T, T]  # noqa: UP007,PYI016
    """Mark a dependency as explicitly optional.

    At runtime ``Maybe[T]`` becomes ``Annotated[T, MaybeMarker()]``.
    """

else:

    class Injected:
        """Mark a class attribute as an injection slot.

        Slots are assigned after the constructor returns, using the same lookup
        rules as constructor parameters. Combine with ``Maybe`` for slots that
        may stay unassigned.

        Examples:
            .. code-block:: python

                class Handler:
                    repository: Injected[Repository]
                    cache: Injected[Maybe[Cache]]

        """

        def __class_getitem__(cls, item: T) -> Annotated[T, InjectedMarker]:
            return _append_marker(item, InjectedMarker())

    class Maybe:
        """Mark a dependency as explicitly optional.

        At runtime ``Maybe[T]`` resolves to ``Annotated[T, MaybeMarker()]``. An
        optional parameter that cannot be resolved keeps its default value, or
        receives ``None`` when it has none.
        """

        def __class_getitem__(cls, item: T) -> Annotated[T, MaybeMarker]:
            return _append_marker(item, MaybeMarker())


def injection_constructor(func: F) -> F:
    """Mark a classmethod as an alternative constructor for implicit selection.

    Apply it below ``@classmethod``. The class itself stays a candidate too.

    Examples:
        .. code-block:: python

            class Client:
                def __init__(self, settings: Settings) -> None: ...

                @classmethod
                @injection_constructor
                def with_session(cls, settings: Settings, session: Session) -> Client: ...

    """
    setattr(func, _CONSTRUCTOR_FLAG, True)
    return func


def is_injection_constructor(func: Any) -> bool:
    """Return True when ``func`` was decorated with ``injection_constructor``."""
    return bool(getattr(func, _CONSTRUCTOR_FLAG, False))


def is_maybe_annotation(annotation: Any) -> bool:
    """Return True when annotation is Annotated[..., MaybeMarker()]."""
    return _has_marker(annotation, MaybeMarker)


def is_injected_annotation(annotation: Any) -> bool:
    """Return True when annotation is Annotated[..., InjectedMarker()]."""
    return _has_marker(annotation, InjectedMarker)


def strip_maybe_annotation(annotation: Any) -> Any:
    """Strip Maybe marker while preserving non-maybe Annotated metadata."""
    return _strip_marker(annotation, MaybeMarker)


def strip_injected_annotation(annotation: Any) -> Any:
    """Strip Injected marker while preserving non-injected Annotated metadata."""
    return _strip_marker(annotation, InjectedMarker)


def _has_marker(annotation: Any, marker_type: type) -> bool:
    if get_origin(annotation) is not Annotated:
        return False
    annotation_args = get_args(annotation)
    if len(annotation_args) < _ANNOTATED_MARKER_MIN_ARGS:
        return False
    return any(isinstance(item, marker_type) for item in annotation_args[1:])


def _strip_marker(annotation: Any, marker_type: type) -> Any:
    if not _has_marker(annotation, marker_type):
        return annotation
    annotation_args = get_args(annotation)
    inner = annotation_args[0]
    metadata = tuple(item for item in annotation_args[1:] if not isinstance(item, marker_type))
    if not metadata:
        return inner
    return build_annotated_key((inner, *metadata))


def _append_marker(item: Any, marker: object) -> Any:
    if get_origin(item) is Annotated:
        args = get_args(item)
        return build_annotated_key((args[0], *args[1:], marker))
    return build_annotated_key((item, marker))


def build_annotated_key(params: tuple[object, ...]) -> Any:
    """Return Annotated[...] with a pre-built params tuple (Py 3.10+ compatible)."""
    try:
        return Annotated.__class_getitem__(params)  # type: ignore[attr-defined]
    except AttributeError:
        return Annotated.__getitem__(params)  # type: ignore[attr-defined]
