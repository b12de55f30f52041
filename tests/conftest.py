"""
Shared test fixtures.

This module provides database setup, the in-memory provider, a retry engine
that never sleeps, and ready-wired client, backend and services.
"""

import random
import uuid
from typing import List

import pytest

from azure_secrets_core.backend import AzureSecretBackend
from azure_secrets_core.client import AzureClient
from azure_secrets_core.client_settings import ClientSettings, PluginEnvironment
from azure_secrets_core.config import reset_config
from azure_secrets_core.constants import EnvironmentVariable
from azure_secrets_core.context.request_context import RequestContext
from azure_secrets_core.db import DatabaseConfig, DatabaseManager
from azure_secrets_core.db.db_config import Base, init_db
from azure_secrets_core.environments import PUBLIC_CLOUD
from azure_secrets_core.exceptions import clear_correlation_id
from azure_secrets_core.providers.memory_provider import InMemoryAzureProvider
from azure_secrets_core.repositories.config_repository import InMemoryConfigStorage
from azure_secrets_core.retry import Retrier
from azure_secrets_core.schemas.config_schemas import ConfigUpdate
from azure_secrets_core.services.config_service import ConfigService
from azure_secrets_core.services.credential_service import CredentialService
from azure_secrets_core.utils.logger import reset_logging
from tests.fixtures.factories import SUBSCRIPTION_ID, TENANT_ID, ConfigEntryFactory


class RecordingWait:
    """Retry wait that records requested delays instead of sleeping."""

    def __init__(self):
        self.delays: List[float] = []

    def __call__(self, ctx: RequestContext, seconds: float) -> bool:
        self.delays.append(seconds)
        return ctx.done()


@pytest.fixture(autouse=True)
def reset_globals():
    """Fresh configuration, logger and correlation ID for every test."""
    reset_config()
    reset_logging()
    clear_correlation_id()
    yield
    reset_config()
    reset_logging()
    clear_correlation_id()


# ==================== DATABASE ====================


@pytest.fixture(scope="session")
def db_config() -> DatabaseConfig:
    """Create SQLite in-memory database configuration for testing."""
    return DatabaseConfig(db_type="sqlite", database=":memory:", echo=False)


@pytest.fixture(scope="session")
def db_manager(db_config: DatabaseConfig) -> DatabaseManager:
    """Create and initialize database manager with all models."""
    manager = DatabaseManager(db_config)
    init_db(manager)
    yield manager
    manager.close()


@pytest.fixture(scope="function")
def clean_db(db_manager: DatabaseManager) -> DatabaseManager:
    """Database manager with empty tables."""
    Base.metadata.create_all(db_manager.engine)
    yield db_manager
    db_manager.close_session()
    Base.metadata.drop_all(db_manager.engine)


# ==================== CORE COMPONENTS ====================


@pytest.fixture
def ctx() -> RequestContext:
    return RequestContext.background()


@pytest.fixture
def recording_wait() -> RecordingWait:
    return RecordingWait()


@pytest.fixture
def retrier(recording_wait: RecordingWait) -> Retrier:
    """Deterministic retry engine that never sleeps."""
    return Retrier(rng=random.Random(42), wait=recording_wait)


@pytest.fixture
def provider() -> InMemoryAzureProvider:
    return InMemoryAzureProvider()


@pytest.fixture
def settings() -> ClientSettings:
    return ClientSettings(
        subscription_id=SUBSCRIPTION_ID,
        tenant_id=TENANT_ID,
        client_id=str(uuid.uuid4()),
        client_secret="root-secret",
        environment=PUBLIC_CLOUD,
        plugin_env=PluginEnvironment(host_version="1.15.0"),
    )


@pytest.fixture
def client(provider: InMemoryAzureProvider, settings: ClientSettings, retrier: Retrier) -> AzureClient:
    return AzureClient(provider=provider, settings=settings, retrier=retrier)


@pytest.fixture
def storage() -> InMemoryConfigStorage:
    return InMemoryConfigStorage()


@pytest.fixture
def backend(
    storage: InMemoryConfigStorage, provider: InMemoryAzureProvider, retrier: Retrier
) -> AzureSecretBackend:
    """Backend whose clients all share the in-memory provider."""
    return AzureSecretBackend(
        storage=storage,
        provider_factory=lambda settings: provider,
        retrier=retrier,
    )


@pytest.fixture
def config_service(backend: AzureSecretBackend) -> ConfigService:
    return ConfigService(backend)


@pytest.fixture
def configured(config_service: ConfigService, monkeypatch) -> ConfigService:
    """Config service with subscription and tenant stored, and no Azure env vars."""
    for variable in (
        EnvironmentVariable.AZURE_SUBSCRIPTION_ID,
        EnvironmentVariable.AZURE_TENANT_ID,
        EnvironmentVariable.AZURE_CLIENT_ID,
        EnvironmentVariable.AZURE_CLIENT_SECRET,
        EnvironmentVariable.AZURE_ENVIRONMENT,
    ):
        monkeypatch.delenv(variable.value, raising=False)

    config_service.write(
        ConfigUpdate(
            subscription_id=SUBSCRIPTION_ID,
            tenant_id=TENANT_ID,
            client_id=str(uuid.uuid4()),
            client_secret="root-secret",
        )
    )
    return config_service


@pytest.fixture
def credential_service(backend: AzureSecretBackend, configured: ConfigService) -> CredentialService:
    return CredentialService(backend, configured)


@pytest.fixture
def db_session(clean_db: DatabaseManager):
    """Session bound to the SQLAlchemy factories."""
    session = clean_db.get_session()
    ConfigEntryFactory._meta.sqlalchemy_session = session
    yield session
    session.rollback()
    ConfigEntryFactory._meta.sqlalchemy_session = None
