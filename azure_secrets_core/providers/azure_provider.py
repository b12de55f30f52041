"""
Production AzureProvider backed by Azure AD Graph and Azure Resource Manager.

Directory objects (applications, service principals, password credentials,
group memberships) go through the Azure AD Graph REST API, api-version 1.6,
using an azure-core ``PipelineClient``. Role definitions and assignments go
through ``azure-mgmt-authorization``.

Raw service errors are classified here, once, into ``ProviderErrorReason``
values. Callers never inspect message text.
"""

from typing import Any, Dict, List, Optional

from azure.core import PipelineClient
from azure.core.credentials import TokenCredential
from azure.core.exceptions import AzureError, HttpResponseError
from azure.core.pipeline.policies import (
    BearerTokenCredentialPolicy,
    HeadersPolicy,
    RetryPolicy,
    UserAgentPolicy,
)
from azure.core.rest import HttpRequest
from azure.identity import ClientSecretCredential, DefaultAzureCredential
from azure.mgmt.authorization import AuthorizationManagementClient
from azure.mgmt.authorization.models import (
    RoleAssignmentCreateParameters as ArmRoleAssignmentCreateParameters,
)

from ..client_settings import ClientSettings
from ..context.request_context import RequestContext
from ..exceptions import ProviderError, ProviderErrorReason
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
from ..utils.logger import get_logger
from .base_provider import AzureProvider

GRAPH_API_VERSION = "1.6"
USER_AGENT = "azure-secrets-core"

# Graph responses that only differ from a terminal 400 by their message text
_APPLICATION_NOT_VISIBLE_TEXT = "does not reference a valid application object"
_OBJECT_SIZE_LIMIT_TEXT = "size of the object has exceeded its limit"

_GRAPH_RESOURCE_NOT_FOUND = "Request_ResourceNotFound"
_ARM_PRINCIPAL_NOT_FOUND = "PrincipalNotFound"


def _graph_error_details(error: HttpResponseError) -> Dict[str, str]:
    """Extract ``code`` and ``message`` from an Azure AD Graph error body."""
    try:
        body = error.response.json() if error.response is not None else {}
    except ValueError:
        body = {}
    odata = body.get("odata.error", {}) if isinstance(body, dict) else {}
    message = odata.get("message", {})
    if isinstance(message, dict):
        message = message.get("value", "")
    return {"code": odata.get("code", ""), "message": message or str(error.message or "")}


def classify_graph_error(error: HttpResponseError) -> ProviderErrorReason:
    details = _graph_error_details(error)
    if _APPLICATION_NOT_VISIBLE_TEXT in details["message"]:
        return ProviderErrorReason.APPLICATION_NOT_VISIBLE
    if _OBJECT_SIZE_LIMIT_TEXT in details["message"]:
        return ProviderErrorReason.OBJECT_SIZE_LIMIT
    if details["code"] == _GRAPH_RESOURCE_NOT_FOUND:
        return ProviderErrorReason.RESOURCE_NOT_FOUND
    if error.status_code == 404:
        return ProviderErrorReason.NOT_FOUND
    return ProviderErrorReason.OTHER


def classify_arm_error(error: HttpResponseError) -> ProviderErrorReason:
    code = getattr(error.error, "code", None) if error.error is not None else None
    if code == _ARM_PRINCIPAL_NOT_FOUND:
        return ProviderErrorReason.PRINCIPAL_NOT_FOUND
    if error.status_code == 404:
        return ProviderErrorReason.NOT_FOUND
    return ProviderErrorReason.OTHER


def _provider_error(error: AzureError, reason: ProviderErrorReason, operation: str) -> ProviderError:
    status = getattr(error, "status_code", None)
    message = error.message if isinstance(error, HttpResponseError) else str(error)
    return ProviderError(
        f"{operation}: {message}",
        reason=reason,
        http_status=status,
        cause=error,
        operation=operation,
    )


def _password_credential_to_graph(credential: PasswordCredential) -> Dict[str, Any]:
    body = {
        "keyId": credential.key_id,
        "startDate": credential.start_date.isoformat(),
        "endDate": credential.end_date.isoformat(),
    }
    if credential.value is not None:
        body["value"] = credential.value
    return body


def _password_credential_from_graph(body: Dict[str, Any]) -> PasswordCredential:
    return PasswordCredential(
        key_id=body["keyId"],
        start_date=body["startDate"],
        end_date=body["endDate"],
    )


def build_credential(settings: ClientSettings) -> TokenCredential:
    """Client-secret credential when configured, otherwise the ambient Azure identity."""
    authority = settings.environment.active_directory_endpoint
    if settings.client_id and settings.client_secret:
        return ClientSecretCredential(
            tenant_id=settings.tenant_id,
            client_id=settings.client_id,
            client_secret=settings.client_secret,
            authority=authority,
        )
    return DefaultAzureCredential(authority=authority)


class AzureGraphRbacProvider(AzureProvider):
    """Talks to Azure AD Graph and Azure RBAC for one settings snapshot."""

    def __init__(
        self,
        settings: ClientSettings,
        credential: Optional[TokenCredential] = None,
        graph_client: Optional[PipelineClient] = None,
        authorization_client: Optional[AuthorizationManagementClient] = None,
    ):
        self.settings = settings
        self.logger = get_logger()
        credential = credential or build_credential(settings)

        env = settings.environment
        self.graph_client = graph_client or PipelineClient(
            base_url=env.graph_endpoint,
            policies=[
                HeadersPolicy(),
                UserAgentPolicy(base_user_agent=USER_AGENT),
                RetryPolicy(),
                BearerTokenCredentialPolicy(credential, env.graph_scope),
            ],
        )
        self.authorization_client = authorization_client or AuthorizationManagementClient(
            credential,
            settings.subscription_id,
            base_url=env.resource_manager_endpoint,
            credential_scopes=[env.resource_manager_scope],
        )

    # ==================== GRAPH TRANSPORT ====================

    def _graph(
        self,
        operation: str,
        method: str,
        path: str,
        json: Optional[Dict[str, Any]] = None,
        params: Optional[Dict[str, str]] = None,
    ) -> Optional[Dict[str, Any]]:
        request = HttpRequest(
            method,
            f"{self.settings.tenant_id}/{path}",
            params={"api-version": GRAPH_API_VERSION, **(params or {})},
            json=json,
        )
        try:
            response = self.graph_client.send_request(request)
            response.raise_for_status()
        except HttpResponseError as e:
            raise _provider_error(e, classify_graph_error(e), operation) from e
        except AzureError as e:
            raise _provider_error(e, ProviderErrorReason.OTHER, operation) from e

        if response.status_code == 204 or not response.content:
            return None
        return response.json()

    # ==================== APPLICATIONS ====================

    def create_application(
        self, ctx: RequestContext, parameters: ApplicationCreateParameters
    ) -> Application:
        body = self._graph(
            "create_application",
            "POST",
            "applications",
            json={
                "availableToOtherTenants": parameters.available_to_other_tenants,
                "displayName": parameters.display_name,
                "homepage": parameters.homepage,
                "identifierUris": parameters.identifier_uris,
            },
        )
        return Application(
            object_id=body["objectId"],
            app_id=body["appId"],
            display_name=body["displayName"],
            homepage=body.get("homepage"),
            identifier_uris=body.get("identifierUris") or [],
        )

    def create_service_principal(
        self, ctx: RequestContext, parameters: ServicePrincipalCreateParameters
    ) -> ServicePrincipal:
        body = self._graph(
            "create_service_principal",
            "POST",
            "servicePrincipals",
            json={
                "appId": parameters.app_id,
                "accountEnabled": parameters.account_enabled,
                "passwordCredentials": [
                    _password_credential_to_graph(c) for c in parameters.password_credentials
                ],
            },
        )
        return ServicePrincipal(
            object_id=body["objectId"],
            app_id=body["appId"],
            account_enabled=body.get("accountEnabled", True),
            password_credentials=[
                _password_credential_from_graph(c) for c in body.get("passwordCredentials") or []
            ],
        )

    def list_application_password_credentials(
        self, ctx: RequestContext, app_object_id: str
    ) -> List[PasswordCredential]:
        body = self._graph(
            "list_application_password_credentials",
            "GET",
            f"applications/{app_object_id}/passwordCredentials",
        )
        return [_password_credential_from_graph(c) for c in (body or {}).get("value") or []]

    def update_application_password_credentials(
        self, ctx: RequestContext, app_object_id: str, credentials: List[PasswordCredential]
    ) -> None:
        self._graph(
            "update_application_password_credentials",
            "PATCH",
            f"applications/{app_object_id}/passwordCredentials",
            json={"value": [_password_credential_to_graph(c) for c in credentials]},
        )

    def delete_application(self, ctx: RequestContext, app_object_id: str) -> None:
        self._graph("delete_application", "DELETE", f"applications/{app_object_id}")

    # ==================== GROUPS ====================

    def add_group_member(self, ctx: RequestContext, group_object_id: str, member_url: str) -> None:
        self._graph(
            "add_group_member",
            "POST",
            f"groups/{group_object_id}/$links/members",
            json={"url": member_url},
        )

    def remove_group_member(
        self, ctx: RequestContext, member_object_id: str, group_object_id: str
    ) -> None:
        self._graph(
            "remove_group_member",
            "DELETE",
            f"groups/{group_object_id}/$links/members/{member_object_id}",
        )

    def list_groups(self, ctx: RequestContext, filter: str) -> List[ADGroup]:
        body = self._graph("list_groups", "GET", "groups", params={"$filter": filter})
        return [
            ADGroup(object_id=g["objectId"], display_name=g["displayName"])
            for g in (body or {}).get("value") or []
        ]

    # ==================== ROLE ASSIGNMENTS ====================

    def create_role_assignment(
        self,
        ctx: RequestContext,
        scope: str,
        role_assignment_name: str,
        parameters: RoleAssignmentCreateParameters,
    ) -> RoleAssignment:
        try:
            result = self.authorization_client.role_assignments.create(
                scope,
                role_assignment_name,
                ArmRoleAssignmentCreateParameters(
                    role_definition_id=parameters.role_definition_id,
                    principal_id=parameters.principal_id,
                ),
            )
        except HttpResponseError as e:
            raise _provider_error(e, classify_arm_error(e), "create_role_assignment") from e
        except AzureError as e:
            raise _provider_error(e, ProviderErrorReason.OTHER, "create_role_assignment") from e

        return RoleAssignment(
            id=result.id,
            name=result.name,
            scope=result.scope or scope,
            role_definition_id=result.role_definition_id,
            principal_id=result.principal_id,
        )

    def delete_role_assignment_by_id(
        self, ctx: RequestContext, role_assignment_id: str
    ) -> Optional[RoleAssignment]:
        try:
            result = self.authorization_client.role_assignments.delete_by_id(role_assignment_id)
        except HttpResponseError as e:
            raise _provider_error(e, classify_arm_error(e), "delete_role_assignment_by_id") from e
        except AzureError as e:
            raise _provider_error(e, ProviderErrorReason.OTHER, "delete_role_assignment_by_id") from e

        if result is None:
            return None
        return RoleAssignment(
            id=result.id,
            name=result.name,
            scope=result.scope,
            role_definition_id=result.role_definition_id,
            principal_id=result.principal_id,
        )

    def list_roles(self, ctx: RequestContext, scope: str, filter: str) -> List[RoleDefinition]:
        try:
            definitions = list(
                self.authorization_client.role_definitions.list(scope, filter=filter)
            )
        except HttpResponseError as e:
            raise _provider_error(e, classify_arm_error(e), "list_roles") from e
        except AzureError as e:
            raise _provider_error(e, ProviderErrorReason.OTHER, "list_roles") from e

        return [
            RoleDefinition(
                id=d.id,
                name=d.name,
                role_name=d.role_name,
                scope=scope,
                description=d.description,
            )
            for d in definitions
        ]
