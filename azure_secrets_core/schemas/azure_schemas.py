"""
Pydantic models for the Azure AD and Azure RBAC objects the client works with.

These are the shapes exchanged with ``AzureProvider`` implementations; the
production adapter maps them to and from the REST payloads.
"""

from datetime import datetime, timedelta
from typing import List, Optional

from pydantic import BaseModel, ConfigDict, Field


class AzureModel(BaseModel):
    """Base for provider objects."""

    model_config = ConfigDict(populate_by_name=True, validate_assignment=True)


class PasswordCredential(AzureModel):
    """A time-bounded secret attached to an application or service principal."""

    key_id: str = Field(..., description="UUID identifying the credential")
    start_date: datetime = Field(..., description="UTC start of validity")
    end_date: datetime = Field(..., description="UTC end of validity")
    value: Optional[str] = Field(
        default=None, repr=False, description="Plaintext secret; only present on writes"
    )

    @property
    def duration(self) -> timedelta:
        return self.end_date - self.start_date


class ApplicationCreateParameters(AzureModel):
    display_name: str
    homepage: str
    identifier_uris: List[str]
    available_to_other_tenants: bool = False


class Application(AzureModel):
    """An Azure AD application registration."""

    object_id: str
    app_id: str
    display_name: str
    homepage: Optional[str] = None
    identifier_uris: List[str] = Field(default_factory=list)
    password_credentials: List[PasswordCredential] = Field(default_factory=list)


class ServicePrincipalCreateParameters(AzureModel):
    app_id: str
    account_enabled: bool = True
    password_credentials: List[PasswordCredential] = Field(default_factory=list)


class ServicePrincipal(AzureModel):
    """The authenticatable identity bound to an application."""

    object_id: str
    app_id: str
    account_enabled: bool = True
    password_credentials: List[PasswordCredential] = Field(default_factory=list)


class RoleAssignmentCreateParameters(AzureModel):
    role_definition_id: str
    principal_id: str


class RoleAssignment(AzureModel):
    """A grant of a role definition to a principal at a scope."""

    id: str = Field(..., description="Fully qualified assignment ID, used for deletion")
    name: str
    scope: str
    role_definition_id: str
    principal_id: str


class RoleDefinition(AzureModel):
    id: str
    name: str
    role_name: str
    scope: Optional[str] = None
    description: Optional[str] = None


class ADGroup(AzureModel):
    object_id: str
    display_name: str


class AzureRole(AzureModel):
    """A role requested for issued credentials."""

    role_name: Optional[str] = None
    role_id: Optional[str] = None
    scope: str


class AzureGroup(AzureModel):
    """A group requested for issued credentials."""

    group_name: Optional[str] = None
    object_id: Optional[str] = None
