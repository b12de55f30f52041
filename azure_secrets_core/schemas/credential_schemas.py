"""
Schemas for issuing and revoking service principal credentials.
"""

from typing import List, Optional

from pydantic import BaseModel, ConfigDict, Field, model_validator

from .azure_schemas import AzureGroup, AzureRole


class RoleEntry(BaseModel):
    """
    One kind of credential callers can request.

    Either ``application_object_id`` names an existing application (credentials
    are extra passwords on it), or ``azure_roles`` / ``azure_groups`` describe
    the authorization attached to a freshly created service principal.
    """

    model_config = ConfigDict(extra="forbid")

    name: str
    azure_roles: List[AzureRole] = Field(default_factory=list)
    azure_groups: List[AzureGroup] = Field(default_factory=list)
    application_object_id: Optional[str] = None
    application_id: Optional[str] = None
    ttl: int = Field(default=0, ge=0, description="Default lease, seconds")
    max_ttl: int = Field(default=0, ge=0, description="Maximum lease, seconds")

    @property
    def is_static(self) -> bool:
        return bool(self.application_object_id)

    @model_validator(mode="after")
    def check_role_entry(self) -> "RoleEntry":
        if self.is_static and (self.azure_roles or self.azure_groups):
            raise ValueError(
                "application_object_id cannot be combined with azure_roles or azure_groups"
            )
        if self.is_static and not self.application_id:
            raise ValueError("application_id is required with application_object_id")
        if not self.is_static and not (self.azure_roles or self.azure_groups):
            raise ValueError(
                "either application_object_id or at least one role or group is required"
            )
        if self.max_ttl and self.ttl > self.max_ttl:
            raise ValueError("ttl > max_ttl")
        return self


class CredentialInternalData(BaseModel):
    """What revocation needs to tear down an issued credential."""

    role_name: str
    app_object_id: str
    sp_object_id: Optional[str] = None
    key_id: Optional[str] = None
    role_assignment_ids: List[str] = Field(default_factory=list)
    group_membership_ids: List[str] = Field(default_factory=list)
    static: bool = False


class IssuedCredential(BaseModel):
    """
    A newly issued credential.

    ``client_secret`` is observable only here; afterwards the credential can
    only be removed by key ID.
    """

    client_id: str
    client_secret: str = Field(repr=False)
    key_id: str
    lease_seconds: int
    internal: CredentialInternalData


class RootRotation(BaseModel):
    """Result of rotating the backend's own client secret."""

    key_id: str
    lease_seconds: int
