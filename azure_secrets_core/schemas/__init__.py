"""Pydantic schemas for provider objects, configuration and issued credentials."""

from .azure_schemas import (
    ADGroup,
    Application,
    ApplicationCreateParameters,
    AzureGroup,
    AzureRole,
    PasswordCredential,
    RoleAssignment,
    RoleAssignmentCreateParameters,
    RoleDefinition,
    ServicePrincipal,
    ServicePrincipalCreateParameters,
)
from .config_schemas import AzureConfig, ConfigRead, ConfigUpdate, parse_duration_seconds
from .credential_schemas import CredentialInternalData, IssuedCredential, RoleEntry, RootRotation

__all__ = [
    "ADGroup",
    "Application",
    "ApplicationCreateParameters",
    "AzureGroup",
    "AzureRole",
    "PasswordCredential",
    "RoleAssignment",
    "RoleAssignmentCreateParameters",
    "RoleDefinition",
    "ServicePrincipal",
    "ServicePrincipalCreateParameters",
    "AzureConfig",
    "ConfigRead",
    "ConfigUpdate",
    "parse_duration_seconds",
    "CredentialInternalData",
    "IssuedCredential",
    "RoleEntry",
    "RootRotation",
]
