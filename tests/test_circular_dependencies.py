"""Tests for circular dependency detection."""

import contextvars
import threading
from typing import Any

import pytest

from scopewire.builder import ContainerBuilder
from scopewire.exceptions import CircularDependencyError
from scopewire.lifetimes import Lifetime
from scopewire.resolution_stack import guard, is_resolving
from scopewire.scope import Scope


class Foo:
    def __init__(self, bar: "Bar") -> None:
        self.bar = bar


class Bar:
    def __init__(self, qux: "Qux") -> None:
        self.qux = qux


class Qux:
    def __init__(self, implementor: "Implementor") -> None:
        self.implementor = implementor


class Implementor:
    def __init__(self, foo: Foo) -> None:
        self.foo = foo


class IFoo:
    pass


class IBar:
    pass


class SharedImplementor(IFoo, IBar):
    def __init__(self, bar: IBar) -> None:
        self.bar = bar


class TestSelfCycle:
    @pytest.mark.parametrize("lifetime", list(Lifetime))
    def test_factory_resolving_itself_raises_two_level_chain(
        self,
        builder: ContainerBuilder,
        lifetime: Lifetime,
    ) -> None:
        builder.add_factory(lambda scope: scope.resolve(Foo), provides=Foo, lifetime=lifetime)
        container = builder.build()

        with pytest.raises(CircularDependencyError) as exc_info:
            container.resolve(Foo)

        error = exc_info.value
        assert error.dependency_type is Foo
        assert error.implementor_type is Foo
        assert error.inner is not None
        assert error.inner.dependency_type is Foo
        assert error.inner.implementor_type is Foo
        assert error.inner.inner is None
        assert error.__cause__ is error.inner

    def test_message_names_dependency_and_implementor(self, builder: ContainerBuilder) -> None:
        builder.add_factory(lambda scope: scope.resolve(Foo), provides=Foo)
        container = builder.build()

        with pytest.raises(CircularDependencyError) as exc_info:
            container.resolve(Foo)

        assert "circular dependency reference during 'Foo' resolution" in str(exc_info.value)


class TestLongCycle:
    @pytest.mark.parametrize(
        ("requested", "expected_chain"),
        [
            (Qux, [Qux, Implementor, Foo, Bar, Qux]),
            (Implementor, [Implementor, Foo, Bar, Qux, Implementor]),
            (Foo, [Foo, Bar, Qux, Implementor, Foo]),
            (Bar, [Bar, Qux, Implementor, Foo, Bar]),
        ],
    )
    def test_four_type_cycle_raises_five_nested_errors(
        self,
        builder: ContainerBuilder,
        requested: type,
        expected_chain: list[type],
    ) -> None:
        for service_type in (Foo, Bar, Qux, Implementor):
            builder.add_concrete(service_type)
        container = builder.build()

        with pytest.raises(CircularDependencyError) as exc_info:
            container.resolve(requested)

        chain = exc_info.value.iter_chain()
        assert [error.dependency_type for error in chain] == expected_chain
        assert chain[-1].inner is None

    def test_cycle_through_shared_implementor_is_detected(self, builder: ContainerBuilder) -> None:
        builder.add_shared(IFoo, SharedImplementor, lifetime=Lifetime.SINGLETON)
        builder.add_shared(IBar, SharedImplementor, lifetime=Lifetime.SINGLETON)
        container = builder.build()

        with pytest.raises(CircularDependencyError) as exc_info:
            container.resolve(IFoo)

        chain = exc_info.value.iter_chain()
        assert [error.dependency_type for error in chain] == [IFoo, IBar]
        assert all(error.implementor_type is SharedImplementor for error in chain)


class TestCallbackCycle:
    def test_on_resolving_reentering_cached_type_is_detected(
        self,
        builder: ContainerBuilder,
    ) -> None:
        calls: list[Any] = []

        def on_resolving(service_type: Any, scope: Scope) -> None:
            calls.append(service_type)
            if len(calls) == 2:
                scope.resolve(Foo)

        builder.add_factory(
            lambda scope: object.__new__(Foo),
            provides=Foo,
            lifetime=Lifetime.SINGLETON,
            on_resolving=on_resolving,
        )
        container = builder.build()
        container.resolve(Foo)

        with pytest.raises(CircularDependencyError) as exc_info:
            container.resolve(Foo)

        assert len(exc_info.value.iter_chain()) == 2

    def test_guard_is_released_after_cycle(self, builder: ContainerBuilder) -> None:
        attempts: list[int] = []

        def factory(scope: Scope) -> Foo:
            attempts.append(1)
            if len(attempts) == 1:
                scope.resolve(Foo)
            return object.__new__(Foo)

        builder.add_factory(factory, provides=Foo)
        container = builder.build()

        with pytest.raises(CircularDependencyError):
            container.resolve(Foo)

        assert isinstance(container.resolve(Foo), Foo)


class TestNonCycleErrors:
    def test_other_errors_propagate_unwrapped(self, builder: ContainerBuilder) -> None:
        def failing(scope: Scope) -> Bar:
            msg = "broken"
            raise RuntimeError(msg)

        builder.add_factory(lambda scope: Foo(scope.resolve(Bar)), provides=Foo)
        builder.add_factory(failing, provides=Bar)
        container = builder.build()

        with pytest.raises(RuntimeError, match="broken"):
            container.resolve(Foo)


class TestResolvingContext:
    def test_copied_contexts_track_running_resolvers_independently(self) -> None:
        entered = threading.Event()
        release = threading.Event()

        def hold() -> None:
            with guard(2, IBar, IBar):
                entered.set()
                release.wait(5)

        with guard(1, IFoo, IFoo):
            first = contextvars.copy_context()
            second = contextvars.copy_context()

        thread = threading.Thread(target=first.run, args=(hold,))
        thread.start()
        try:
            assert entered.wait(5)
            assert not second.run(is_resolving, 2)
            assert not is_resolving(2)
        finally:
            release.set()
            thread.join(5)

        assert second.run(is_resolving, 1)
        assert not is_resolving(1)
