"""Tests for shared implementor groups."""

from collections.abc import Sequence
from typing import Any

from scopewire.builder import ContainerBuilder
from scopewire.disposal import DisposalStrategy
from scopewire.lifetimes import Lifetime
from scopewire.scope import Scope


class IFoo:
    pass


class IBar:
    pass


class IQux:
    pass


class Implementor(IFoo, IBar, IQux):
    def close(self) -> None:
        self.closed = True


class TestSharedImplementors:
    def test_registrations_with_same_lifetime_share_instance(
        self,
        builder: ContainerBuilder,
    ) -> None:
        created: list[Implementor] = []

        def factory(scope: Scope) -> Implementor:
            instance = Implementor()
            created.append(instance)
            return instance

        builder.add_shared_implementor(Implementor, factory=factory)
        builder.add_shared(IFoo, Implementor, lifetime=Lifetime.SINGLETON)
        builder.add_shared(IBar, Implementor, lifetime=Lifetime.SINGLETON)
        builder.add_shared(IQux, Implementor, lifetime=Lifetime.SCOPED)
        container = builder.build()

        foo = container.resolve(IFoo)
        bar = container.resolve(IBar)
        qux = container.resolve(IQux)

        assert foo is bar
        assert qux is not foo
        assert len(created) == 2

    def test_implicit_definition_uses_constructor_binding(self, builder: ContainerBuilder) -> None:
        builder.add_shared(IFoo, Implementor, lifetime=Lifetime.SCOPED)
        builder.add_shared(IBar, Implementor, lifetime=Lifetime.SCOPED)
        container = builder.build()
        scope = container.root_scope.begin_scope()

        assert scope.resolve(IFoo) is scope.resolve(IBar)
        assert isinstance(scope.resolve(IFoo), Implementor)

    def test_keys_create_separate_groups(self, builder: ContainerBuilder) -> None:
        builder.add_shared(IFoo, Implementor, lifetime=Lifetime.SINGLETON)
        builder.add_shared(IFoo, Implementor, lifetime=Lifetime.SINGLETON, key="other")
        container = builder.build()

        keyed = container.root_scope.get_keyed_locator("other")

        assert container.resolve(IFoo) is not keyed.resolve(IFoo)

    def test_each_registration_keeps_its_own_on_resolving(self, builder: ContainerBuilder) -> None:
        resolving: list[Any] = []
        builder.add_shared(
            IFoo,
            Implementor,
            lifetime=Lifetime.SINGLETON,
            on_resolving=lambda service_type, scope: resolving.append(service_type),
        )
        builder.add_shared(IBar, Implementor, lifetime=Lifetime.SINGLETON)
        container = builder.build()

        container.resolve(IFoo)
        container.resolve(IBar)
        container.resolve(IFoo)

        assert resolving == [IFoo, IFoo]

    def test_on_created_of_definition_runs_once_per_group_instance(
        self,
        builder: ContainerBuilder,
    ) -> None:
        created: list[tuple[Any, Any]] = []
        builder.add_shared_implementor(
            Implementor,
            on_created=lambda instance, service_type, scope: created.append(
                (instance, service_type),
            ),
        )
        builder.add_shared(IFoo, Implementor, lifetime=Lifetime.SINGLETON)
        builder.add_shared(IBar, Implementor, lifetime=Lifetime.SINGLETON)
        container = builder.build()

        instance = container.resolve(IFoo)
        container.resolve(IBar)

        assert created == [(instance, Implementor)]

    def test_shared_instance_is_disposed_once(self, builder: ContainerBuilder) -> None:
        closed: list[Implementor] = []
        builder.add_shared_implementor(
            Implementor,
            disposal_strategy=DisposalStrategy.use_callback(closed.append),
        )
        builder.add_shared(IFoo, Implementor, lifetime=Lifetime.SINGLETON)
        builder.add_shared(IBar, Implementor, lifetime=Lifetime.SINGLETON)
        container = builder.build()
        instance = container.resolve(IFoo)
        container.resolve(IBar)

        container.dispose()

        assert closed == [instance]

    def test_shared_registrations_take_part_in_ranges(self, builder: ContainerBuilder) -> None:
        builder.add_shared(IFoo, Implementor, lifetime=Lifetime.SINGLETON)
        builder.add_shared(IFoo, Implementor, lifetime=Lifetime.TRANSIENT)
        container = builder.build()

        singleton, transient = container.resolve(Sequence[IFoo])

        assert singleton is container.resolve(Sequence[IFoo])[0]
        assert transient is not singleton

