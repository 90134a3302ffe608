"""Tests for the scope tree, named scopes and keyed locators."""

import threading

import pytest

from scopewire.builder import ContainerBuilder
from scopewire.container import Container
from scopewire.exceptions import (
    DependencyScopeNotFoundError,
    NamedDependencyScopeCreationError,
    ObjectDisposedError,
)
from scopewire.locator import Locator


@pytest.fixture()
def container(builder: ContainerBuilder) -> Container:
    return builder.build()


class TestScopeTree:
    def test_root_scope_properties(self, container: Container) -> None:
        root = container.root_scope

        assert root.is_root
        assert root.level == 0
        assert root.parent_scope is None
        assert root.name is None
        assert root.container is container
        assert not root.is_disposed

    def test_child_scope_properties(self, container: Container) -> None:
        child = container.root_scope.begin_scope("child")
        grandchild = child.begin_scope()

        assert not child.is_root
        assert child.level == 1
        assert child.parent_scope is container.root_scope
        assert child.name == "child"
        assert grandchild.level == 2
        assert grandchild.parent_scope is child
        assert child.thread_id == threading.get_ident()

    def test_children_are_listed_in_creation_order(self, container: Container) -> None:
        root = container.root_scope
        first = root.begin_scope()
        second = root.begin_scope()
        third = root.begin_scope()

        assert root.get_children() == [first, second, third]

        second.dispose()

        assert root.get_children() == [first, third]

    def test_scope_is_a_context_manager(self, container: Container) -> None:
        with container.root_scope.begin_scope() as scope:
            assert not scope.is_disposed

        assert scope.is_disposed
        assert container.root_scope.get_children() == []

    def test_repr(self, container: Container) -> None:
        root = container.root_scope
        child = root.begin_scope()
        named = root.begin_scope("worker")
        thread_id = threading.get_ident()

        assert repr(root) == "Scope [root]"
        assert repr(child) == f"Scope [level: 1, thread: {thread_id}]"
        assert repr(named) == f"Scope [level: 1, name: 'worker', thread: {thread_id}]"


class TestNamedScopes:
    def test_get_scope_returns_live_named_scope(self, container: Container) -> None:
        scope = container.root_scope.begin_scope().begin_scope("deep")

        assert container.get_scope("deep") is scope
        assert container.try_get_scope("deep") is scope

    def test_missing_scope(self, container: Container) -> None:
        assert container.try_get_scope("missing") is None

        with pytest.raises(DependencyScopeNotFoundError) as exc_info:
            container.get_scope("missing")

        assert exc_info.value.name == "missing"

    def test_duplicate_live_name_raises(self, container: Container) -> None:
        root = container.root_scope
        root.begin_scope("request")
        other = root.begin_scope()

        with pytest.raises(NamedDependencyScopeCreationError) as exc_info:
            other.begin_scope("request")

        assert exc_info.value.name == "request"
        assert exc_info.value.scope is other
        assert other.get_children() == []

    def test_disposed_scope_frees_its_name(self, container: Container) -> None:
        first = container.root_scope.begin_scope("request")
        first.dispose()

        second = container.root_scope.begin_scope("request")

        assert second is not first
        assert container.get_scope("request") is second

    def test_disposing_parent_frees_names_of_descendants(self, container: Container) -> None:
        parent = container.root_scope.begin_scope()
        parent.begin_scope("nested")

        parent.dispose()

        assert container.try_get_scope("nested") is None


class TestKeyedLocators:
    def test_same_key_returns_same_locator(self, container: Container) -> None:
        scope = container.root_scope

        first = scope.get_keyed_locator("tenant")
        second = scope.get_keyed_locator("tenant")

        assert first is second
        assert isinstance(first, Locator)
        assert first.key == "tenant"
        assert first.scope is scope

    def test_none_key_returns_unkeyed_locator(self, container: Container) -> None:
        scope = container.root_scope

        assert scope.get_keyed_locator(None) is scope.locator
        assert scope.locator.key is None

    def test_keyed_registrations_are_isolated(self, builder: ContainerBuilder) -> None:
        builder.add_factory(lambda scope: "tenant", provides=str, key="tenant")
        builder.add_factory(lambda scope: "default", provides=str)
        container = builder.build()

        assert container.root_scope.get_keyed_locator("tenant").resolve(str) == "tenant"
        assert container.resolve(str) == "default"


class TestDisposedScope:
    def test_operations_on_disposed_scope_raise(self, container: Container) -> None:
        scope = container.root_scope.begin_scope()
        locator = scope.locator
        scope.dispose()

        with pytest.raises(ObjectDisposedError):
            scope.resolve(Container)
        with pytest.raises(ObjectDisposedError):
            locator.resolve(Container)
        with pytest.raises(ObjectDisposedError):
            scope.begin_scope()
        with pytest.raises(ObjectDisposedError):
            scope.get_keyed_locator("key")

    def test_disposing_twice_is_a_noop(self, container: Container) -> None:
        scope = container.root_scope.begin_scope()

        scope.dispose()
        scope.dispose()

        assert scope.is_disposed

    def test_container_dispose_disposes_whole_tree(self, container: Container) -> None:
        child = container.root_scope.begin_scope()
        grandchild = child.begin_scope()

        container.dispose()
        container.dispose()

        assert container.is_disposed
        assert child.is_disposed
        assert grandchild.is_disposed

    def test_container_is_a_context_manager(self, builder: ContainerBuilder) -> None:
        with builder.build() as container:
            scope = container.root_scope.begin_scope()

        assert scope.is_disposed
        assert container.is_disposed
