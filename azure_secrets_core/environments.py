"""
Catalogue of Azure cloud environments.

Environment names are matched case-insensitively, so ``AzurePublicCloud`` and
``AZUREPUBLICCLOUD`` resolve to the same descriptor.
"""

from typing import Dict

from pydantic import BaseModel, ConfigDict

from .exceptions import ConfigurationError


class AzureEnvironment(BaseModel):
    """Endpoints of one Azure cloud."""

    model_config = ConfigDict(frozen=True)

    name: str
    active_directory_endpoint: str
    graph_endpoint: str
    resource_manager_endpoint: str

    @property
    def graph_scope(self) -> str:
        return f"{self.graph_endpoint}.default"

    @property
    def resource_manager_scope(self) -> str:
        return f"{self.resource_manager_endpoint}.default"


PUBLIC_CLOUD = AzureEnvironment(
    name="AzurePublicCloud",
    active_directory_endpoint="https://login.microsoftonline.com/",
    graph_endpoint="https://graph.windows.net/",
    resource_manager_endpoint="https://management.azure.com/",
)

CHINA_CLOUD = AzureEnvironment(
    name="AzureChinaCloud",
    active_directory_endpoint="https://login.chinacloudapi.cn/",
    graph_endpoint="https://graph.chinacloudapi.cn/",
    resource_manager_endpoint="https://management.chinacloudapi.cn/",
)

US_GOVERNMENT_CLOUD = AzureEnvironment(
    name="AzureUSGovernmentCloud",
    active_directory_endpoint="https://login.microsoftonline.us/",
    graph_endpoint="https://graph.windows.net/",
    resource_manager_endpoint="https://management.usgovcloudapi.net/",
)

GERMAN_CLOUD = AzureEnvironment(
    name="AzureGermanCloud",
    active_directory_endpoint="https://login.microsoftonline.de/",
    graph_endpoint="https://graph.cloudapi.de/",
    resource_manager_endpoint="https://management.microsoftazure.de/",
)

ENVIRONMENTS: Dict[str, AzureEnvironment] = {
    env.name.upper(): env for env in (PUBLIC_CLOUD, CHINA_CLOUD, US_GOVERNMENT_CLOUD, GERMAN_CLOUD)
}


def environment_from_name(name: str) -> AzureEnvironment:
    """
    Look up an environment descriptor by name.

    Raises:
        ConfigurationError: If no environment matches
    """
    env = ENVIRONMENTS.get(name.strip().upper())
    if env is None:
        raise ConfigurationError(
            f'there is no cloud environment matching the name "{name}"',
            environment=name,
        )
    return env
