"""
Capability interface for the Azure AD and Azure RBAC operations the client uses.

Implementations raise ``ProviderError`` for every failure, tagged with a
``ProviderErrorReason``. The tag is the only thing retry predicates look at,
so implementations own the mapping from raw service errors to reasons.
"""

from abc import ABC, abstractmethod
from typing import List, Optional

from ..context.request_context import RequestContext
from ..schemas.azure_schemas import (
    ADGroup,
    Application,
    ApplicationCreateParameters,
    PasswordCredential,
    RoleAssignment,
    RoleAssignmentCreateParameters,
    RoleDefinition,
    ServicePrincipal,
    ServicePrincipalCreateParameters,
)


class AzureProvider(ABC):
    """Low-level provider surface consumed by ``AzureClient``."""

    # Applications and service principals (Azure AD)

    @abstractmethod
    def create_application(
        self, ctx: RequestContext, parameters: ApplicationCreateParameters
    ) -> Application:
        pass

    @abstractmethod
    def create_service_principal(
        self, ctx: RequestContext, parameters: ServicePrincipalCreateParameters
    ) -> ServicePrincipal:
        """Raises APPLICATION_NOT_VISIBLE while the application has not propagated."""

    @abstractmethod
    def list_application_password_credentials(
        self, ctx: RequestContext, app_object_id: str
    ) -> List[PasswordCredential]:
        pass

    @abstractmethod
    def update_application_password_credentials(
        self, ctx: RequestContext, app_object_id: str, credentials: List[PasswordCredential]
    ) -> None:
        """Replaces the whole credential list. Raises OBJECT_SIZE_LIMIT when it is too large."""

    @abstractmethod
    def delete_application(self, ctx: RequestContext, app_object_id: str) -> None:
        """Raises a ProviderError with ``http_status == 404`` if the application is gone."""

    # Role assignments (Azure RBAC)

    @abstractmethod
    def create_role_assignment(
        self,
        ctx: RequestContext,
        scope: str,
        role_assignment_name: str,
        parameters: RoleAssignmentCreateParameters,
    ) -> RoleAssignment:
        """Raises PRINCIPAL_NOT_FOUND while the principal has not propagated."""

    @abstractmethod
    def delete_role_assignment_by_id(
        self, ctx: RequestContext, role_assignment_id: str
    ) -> Optional[RoleAssignment]:
        pass

    @abstractmethod
    def list_roles(self, ctx: RequestContext, scope: str, filter: str) -> List[RoleDefinition]:
        pass

    # Groups (Azure AD)

    @abstractmethod
    def add_group_member(self, ctx: RequestContext, group_object_id: str, member_url: str) -> None:
        """Raises RESOURCE_NOT_FOUND while the member has not propagated."""

    @abstractmethod
    def remove_group_member(
        self, ctx: RequestContext, member_object_id: str, group_object_id: str
    ) -> None:
        pass

    @abstractmethod
    def list_groups(self, ctx: RequestContext, filter: str) -> List[ADGroup]:
        pass
