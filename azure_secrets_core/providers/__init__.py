"""Azure AD and Azure RBAC provider implementations."""

from .azure_provider import AzureGraphRbacProvider, classify_arm_error, classify_graph_error
from .base_provider import AzureProvider
from .memory_provider import InMemoryAzureProvider

__all__ = [
    "AzureProvider",
    "AzureGraphRbacProvider",
    "InMemoryAzureProvider",
    "classify_arm_error",
    "classify_graph_error",
]
