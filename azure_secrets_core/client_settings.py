"""
Resolution of the connection settings a client is built from.

Each field comes from the environment first, then from the stored
configuration. Only the cloud environment name has a default.
"""

import os
from typing import Mapping, Optional, Protocol

from pydantic import BaseModel, ConfigDict, Field

from .constants import DEFAULT_ENVIRONMENT_NAME, EnvironmentVariable
from .context.request_context import RequestContext
from .environments import AzureEnvironment, environment_from_name
from .exceptions import ConfigurationError
from .schemas.config_schemas import AzureConfig


class PluginEnvironment(BaseModel):
    """Metadata about the host process, kept for diagnostics."""

    model_config = ConfigDict(frozen=True)

    host_version: str = ""
    plugin_version: str = ""


class SystemView(Protocol):
    """What the resolver needs from the hosting process."""

    def plugin_env(self, ctx: RequestContext) -> PluginEnvironment: ...


class StaticSystemView:
    """SystemView returning a fixed PluginEnvironment."""

    def __init__(self, plugin_env: Optional[PluginEnvironment] = None):
        self._plugin_env = plugin_env or PluginEnvironment()

    def plugin_env(self, ctx: RequestContext) -> PluginEnvironment:
        return self._plugin_env


class ClientSettings(BaseModel):
    """Immutable settings snapshot of one client."""

    model_config = ConfigDict(frozen=True)

    subscription_id: str
    tenant_id: str
    client_id: str = ""
    client_secret: str = Field(default="", repr=False)
    environment: AzureEnvironment
    plugin_env: PluginEnvironment = Field(default_factory=PluginEnvironment)


def _resolve(
    environ: Mapping[str, str], variable: EnvironmentVariable, stored: str, default: str = ""
) -> str:
    value = environ.get(variable.value)
    if value:
        return value
    if stored:
        return stored
    return default


def get_client_settings(
    ctx: RequestContext,
    config: Optional[AzureConfig],
    system_view: SystemView,
    environ: Optional[Mapping[str, str]] = None,
) -> ClientSettings:
    """
    Build a settings snapshot from the environment and stored configuration.

    Args:
        ctx: Request context passed to the system view
        config: Stored configuration, or None when unconfigured
        system_view: Source of plugin environment metadata
        environ: Environment mapping (default: ``os.environ``)

    Raises:
        ConfigurationError: If subscription or tenant ID is missing, the
            environment name is unknown, or plugin metadata cannot be loaded
    """
    environ = os.environ if environ is None else environ
    config = config or AzureConfig()

    subscription_id = _resolve(
        environ, EnvironmentVariable.AZURE_SUBSCRIPTION_ID, config.subscription_id
    )
    if not subscription_id:
        raise ConfigurationError("subscription_id is required")

    tenant_id = _resolve(environ, EnvironmentVariable.AZURE_TENANT_ID, config.tenant_id)
    if not tenant_id:
        raise ConfigurationError("tenant_id is required")

    client_id = _resolve(environ, EnvironmentVariable.AZURE_CLIENT_ID, config.client_id)
    client_secret = _resolve(
        environ, EnvironmentVariable.AZURE_CLIENT_SECRET, config.client_secret
    )
    environment_name = _resolve(
        environ, EnvironmentVariable.AZURE_ENVIRONMENT, config.environment, DEFAULT_ENVIRONMENT_NAME
    )
    environment = environment_from_name(environment_name)

    try:
        plugin_env = system_view.plugin_env(ctx)
    except Exception as e:
        raise ConfigurationError("error loading plugin environment", cause=e) from e

    return ClientSettings(
        subscription_id=subscription_id,
        tenant_id=tenant_id,
        client_id=client_id,
        client_secret=client_secret,
        environment=environment,
        plugin_env=plugin_env,
    )
