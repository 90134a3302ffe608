"""Shared pytest fixtures for scopewire tests."""

import pytest

from scopewire.bindings import BindingExtractor
from scopewire.builder import ContainerBuilder
from scopewire.lifetimes import Lifetime


@pytest.fixture()
def builder() -> ContainerBuilder:
    """Builder with transient registrations by default."""
    return ContainerBuilder()


@pytest.fixture()
def builder_scoped() -> ContainerBuilder:
    """Builder with scoped registrations by default."""
    return ContainerBuilder(default_lifetime=Lifetime.SCOPED)


@pytest.fixture()
def binding_extractor() -> BindingExtractor:
    """BindingExtractor instance."""
    return BindingExtractor()
