"""
Integration test configuration.

Wires the backend to database-backed configuration storage and the in-memory
provider, so a whole credential lifecycle runs without network access.
"""

import uuid

import pytest

from azure_secrets_core.backend import AzureSecretBackend
from azure_secrets_core.constants import EnvironmentVariable
from azure_secrets_core.repositories import DatabaseConfigStorage
from azure_secrets_core.schemas import ConfigUpdate
from azure_secrets_core.services import ConfigService, CredentialService
from tests.fixtures.factories import SUBSCRIPTION_ID, TENANT_ID


@pytest.fixture(autouse=True)
def no_azure_environment(monkeypatch):
    """Stored configuration is the only source of connection settings."""
    for variable in EnvironmentVariable:
        if variable.name.startswith("AZURE_"):
            monkeypatch.delenv(variable.value, raising=False)


@pytest.fixture
def db_backend(clean_db, provider, retrier) -> AzureSecretBackend:
    return AzureSecretBackend(
        storage=DatabaseConfigStorage(clean_db),
        provider_factory=lambda settings: provider,
        retrier=retrier,
    )


@pytest.fixture
def db_config_service(db_backend) -> ConfigService:
    service = ConfigService(db_backend)
    service.write(
        ConfigUpdate(
            subscription_id=SUBSCRIPTION_ID,
            tenant_id=TENANT_ID,
            client_id=str(uuid.uuid4()),
            client_secret="root-secret",
        )
    )
    return service


@pytest.fixture
def lifecycle(db_backend, db_config_service) -> CredentialService:
    return CredentialService(db_backend, db_config_service)
