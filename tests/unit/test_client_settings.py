"""Tests for environment lookup and connection settings resolution."""

from unittest.mock import Mock

import pytest

from azure_secrets_core.client_settings import (
    PluginEnvironment,
    StaticSystemView,
    get_client_settings,
)
from azure_secrets_core.environments import (
    CHINA_CLOUD,
    PUBLIC_CLOUD,
    US_GOVERNMENT_CLOUD,
    environment_from_name,
)
from azure_secrets_core.exceptions import ConfigurationError
from tests.fixtures.factories import SUBSCRIPTION_ID, TENANT_ID, AzureConfigFactory


class TestEnvironmentFromName:
    """Test cloud environment lookup."""

    @pytest.mark.parametrize(
        "name, expected",
        [
            ("AZUREPUBLICCLOUD", PUBLIC_CLOUD),
            ("AzurePublicCloud", PUBLIC_CLOUD),
            ("azurechinacloud", CHINA_CLOUD),
            ("AzureUSGovernmentCloud", US_GOVERNMENT_CLOUD),
        ],
    )
    def test_known_names(self, name, expected):
        assert environment_from_name(name) is expected

    def test_unknown_name(self):
        with pytest.raises(ConfigurationError, match="no cloud environment matching"):
            environment_from_name("MarsCloud")

    def test_scopes(self):
        assert PUBLIC_CLOUD.graph_scope == "https://graph.windows.net/.default"
        assert PUBLIC_CLOUD.resource_manager_scope == "https://management.azure.com/.default"


class TestGetClientSettings:
    """Test env > stored > default precedence."""

    def test_stored_configuration_is_used(self, ctx):
        config = AzureConfigFactory(client_id="stored-client", client_secret="stored-secret")

        settings = get_client_settings(ctx, config, StaticSystemView(), environ={})

        assert settings.subscription_id == SUBSCRIPTION_ID
        assert settings.tenant_id == TENANT_ID
        assert settings.client_id == "stored-client"
        assert settings.client_secret == "stored-secret"
        assert settings.environment is PUBLIC_CLOUD

    def test_environment_variables_take_precedence(self, ctx):
        config = AzureConfigFactory(environment="AzurePublicCloud")
        environ = {
            "AZURE_SUBSCRIPTION_ID": "env-subscription",
            "AZURE_TENANT_ID": "env-tenant",
            "AZURE_CLIENT_ID": "env-client",
            "AZURE_CLIENT_SECRET": "env-secret",
            "AZURE_ENVIRONMENT": "AzureChinaCloud",
        }

        settings = get_client_settings(ctx, config, StaticSystemView(), environ=environ)

        assert settings.subscription_id == "env-subscription"
        assert settings.tenant_id == "env-tenant"
        assert settings.client_id == "env-client"
        assert settings.client_secret == "env-secret"
        assert settings.environment is CHINA_CLOUD

    def test_environment_only_configuration(self, ctx):
        environ = {"AZURE_SUBSCRIPTION_ID": SUBSCRIPTION_ID, "AZURE_TENANT_ID": TENANT_ID}

        settings = get_client_settings(ctx, None, StaticSystemView(), environ=environ)

        assert settings.subscription_id == SUBSCRIPTION_ID
        assert settings.client_id == ""

    def test_missing_subscription_id(self, ctx):
        config = AzureConfigFactory(subscription_id="")

        with pytest.raises(ConfigurationError, match="subscription_id is required"):
            get_client_settings(ctx, config, StaticSystemView(), environ={})

    def test_missing_tenant_id(self, ctx):
        config = AzureConfigFactory(tenant_id="")

        with pytest.raises(ConfigurationError, match="tenant_id is required"):
            get_client_settings(ctx, config, StaticSystemView(), environ={})

    def test_unknown_environment(self, ctx):
        config = AzureConfigFactory(environment="NotACloud")

        with pytest.raises(ConfigurationError):
            get_client_settings(ctx, config, StaticSystemView(), environ={})

    def test_plugin_environment_is_captured(self, ctx):
        plugin_env = PluginEnvironment(host_version="1.15.0", plugin_version="v0.1.0")

        settings = get_client_settings(
            ctx, AzureConfigFactory(), StaticSystemView(plugin_env), environ={}
        )

        assert settings.plugin_env == plugin_env

    def test_plugin_environment_failure_is_propagated(self, ctx):
        system_view = Mock()
        system_view.plugin_env.side_effect = RuntimeError("host unavailable")

        with pytest.raises(ConfigurationError, match="error loading plugin environment") as exc_info:
            get_client_settings(ctx, AzureConfigFactory(), system_view, environ={})

        assert isinstance(exc_info.value.cause, RuntimeError)

    def test_settings_are_immutable(self, ctx):
        settings = get_client_settings(ctx, AzureConfigFactory(), StaticSystemView(), environ={})

        with pytest.raises(ValueError):
            settings.tenant_id = "other"

    def test_secret_is_not_in_repr(self, ctx):
        config = AzureConfigFactory(client_secret="very-secret")

        settings = get_client_settings(ctx, config, StaticSystemView(), environ={})

        assert "very-secret" not in repr(settings)
