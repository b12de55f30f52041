"""Tests for the cached client lifecycle."""

import threading
from datetime import datetime, timedelta, timezone

import pytest

from azure_secrets_core.backend import AzureSecretBackend
from azure_secrets_core.constants import EnvironmentVariable
from azure_secrets_core.exceptions import ConfigurationError
from azure_secrets_core.schemas import ConfigUpdate


class FakeClock:
    def __init__(self):
        self.now = datetime(2024, 1, 1, tzinfo=timezone.utc)

    def __call__(self):
        return self.now

    def advance(self, **kwargs):
        self.now += timedelta(**kwargs)


@pytest.fixture
def clock():
    return FakeClock()


@pytest.fixture
def clocked_backend(storage, provider, retrier, clock):
    return AzureSecretBackend(
        storage=storage,
        provider_factory=lambda settings: provider,
        retrier=retrier,
        lifetime_seconds=1800,
        clock=clock,
    )


class TestGetClient:
    def test_client_is_cached(self, backend, configured, ctx):
        first = backend.get_client(ctx)

        assert backend.get_client(ctx) is first

    def test_client_is_rebuilt_after_lifetime(self, clocked_backend, storage, monkeypatch, ctx, clock):
        monkeypatch.setenv(EnvironmentVariable.AZURE_SUBSCRIPTION_ID.value, "sub")
        monkeypatch.setenv(EnvironmentVariable.AZURE_TENANT_ID.value, "tenant")

        first = clocked_backend.get_client(ctx)
        clock.advance(minutes=29)
        assert clocked_backend.get_client(ctx) is first

        clock.advance(minutes=1)
        second = clocked_backend.get_client(ctx)

        assert second is not first
        assert second.expiration == clock.now + timedelta(minutes=30)
        assert first.valid() is False

    def test_reset_forces_rebuild(self, backend, configured, ctx):
        first = backend.get_client(ctx)

        backend.reset()

        assert backend.get_client(ctx) is not first

    def test_config_write_rebuilds_client(self, backend, configured, ctx):
        first = backend.get_client(ctx)

        configured.write(ConfigUpdate(client_secret="rotated"))
        second = backend.get_client(ctx)

        assert second is not first
        assert second.settings.client_secret == "rotated"
        assert first.settings.client_secret == "root-secret"

    def test_missing_configuration(self, backend, monkeypatch, ctx):
        monkeypatch.delenv(EnvironmentVariable.AZURE_SUBSCRIPTION_ID.value, raising=False)
        monkeypatch.delenv(EnvironmentVariable.AZURE_TENANT_ID.value, raising=False)

        with pytest.raises(ConfigurationError, match="subscription_id is required"):
            backend.get_client(ctx)

    def test_settings_snapshot_is_passed_to_factory(self, storage, configured, ctx, provider, retrier):
        seen = []

        def factory(settings):
            seen.append(settings)
            return provider

        backend = AzureSecretBackend(storage=storage, provider_factory=factory, retrier=retrier)
        client = backend.get_client(ctx)

        assert seen == [client.settings]

    def test_concurrent_callers_share_one_build(self, storage, configured, ctx, provider, retrier):
        builds = []

        def factory(settings):
            builds.append(settings)
            return provider

        backend = AzureSecretBackend(storage=storage, provider_factory=factory, retrier=retrier)
        clients = []
        threads = [
            threading.Thread(target=lambda: clients.append(backend.get_client(ctx)))
            for _ in range(8)
        ]
        for thread in threads:
            thread.start()
        for thread in threads:
            thread.join()

        assert len(builds) == 1
        assert len({id(c) for c in clients}) == 1

    def test_lifetime_defaults_to_app_config(self, storage):
        assert AzureSecretBackend(storage=storage).lifetime_seconds == 30 * 60
