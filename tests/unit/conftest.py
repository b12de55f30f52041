"""
Unit test conftest.py - Component-specific fixtures.

This module provides provider state that several unit test modules share:
role definitions and groups that name lookups resolve against.
"""

import pytest

from azure_secrets_core.schemas import ADGroup, RoleDefinition


@pytest.fixture
def reader_role(provider) -> RoleDefinition:
    return provider.add_role_definition("Reader")


@pytest.fixture
def contributor_role(provider) -> RoleDefinition:
    return provider.add_role_definition("Contributor")


@pytest.fixture
def ops_group(provider) -> ADGroup:
    return provider.add_group("ops")
