"""
In-memory AzureProvider with deterministic behavior and error injection.

Objects live in dictionaries; nothing leaves the process. Errors can be queued
per operation with ``inject_error`` or ``inject_transient`` to reproduce
propagation lag and partial failures without network access.
"""

import re
import threading
import uuid
from collections import defaultdict, deque
from typing import Deque, Dict, List, Optional, Set

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
from .base_provider import AzureProvider

# Reason a freshly created dependency is reported missing, per operation
_LAG_REASONS = {
    "create_service_principal": ProviderErrorReason.APPLICATION_NOT_VISIBLE,
    "create_role_assignment": ProviderErrorReason.PRINCIPAL_NOT_FOUND,
    "add_group_member": ProviderErrorReason.RESOURCE_NOT_FOUND,
}


def _filter_value(filter: str, field: str) -> Optional[str]:
    match = re.fullmatch(rf"\s*{field} eq '(.*)'\s*", filter)
    return match.group(1) if match else None


def _stored(credential: PasswordCredential) -> PasswordCredential:
    # Like the real directory, only metadata is kept; the plaintext is never readable.
    return credential.model_copy(update={"value": None})


class InMemoryAzureProvider(AzureProvider):
    """Dictionary-backed provider used for tests and local development."""

    def __init__(self, max_password_credentials: Optional[int] = None):
        """
        Args:
            max_password_credentials: Size limit of an application's credential
                list; exceeding it raises OBJECT_SIZE_LIMIT
        """
        self.max_password_credentials = max_password_credentials

        self.applications: Dict[str, Application] = {}
        self.service_principals: Dict[str, ServicePrincipal] = {}
        self.role_assignments: Dict[str, RoleAssignment] = {}
        self.role_definitions: List[RoleDefinition] = []
        self.groups: Dict[str, ADGroup] = {}
        self.group_members: Dict[str, Set[str]] = defaultdict(set)

        self.calls: List[str] = []
        self._pending_errors: Dict[str, Deque[Exception]] = defaultdict(deque)
        self._lock = threading.RLock()

    # ==================== TEST CONTROLS ====================

    def inject_error(self, operation: str, error: Exception, times: int = 1) -> None:
        """Make the next ``times`` calls of ``operation`` raise ``error``."""
        with self._lock:
            for _ in range(times):
                self._pending_errors[operation].append(error)

    def inject_transient(self, operation: str, times: int = 1) -> None:
        """Simulate propagation lag for the next ``times`` calls of ``operation``."""
        reason = _LAG_REASONS[operation]
        self.inject_error(
            operation,
            ProviderError(f"{operation}: object not yet visible", reason=reason, http_status=404),
            times,
        )

    def add_role_definition(self, role_name: str, scope: str = "/") -> RoleDefinition:
        name = str(uuid.uuid4())
        role = RoleDefinition(
            id=f"/providers/Microsoft.Authorization/roleDefinitions/{name}",
            name=name,
            role_name=role_name,
            scope=scope,
        )
        with self._lock:
            self.role_definitions.append(role)
        return role

    def add_group(self, display_name: str) -> ADGroup:
        group = ADGroup(object_id=str(uuid.uuid4()), display_name=display_name)
        with self._lock:
            self.groups[group.object_id] = group
        return group

    def call_count(self, operation: str) -> int:
        return self.calls.count(operation)

    def _enter(self, operation: str) -> None:
        self.calls.append(operation)
        pending = self._pending_errors.get(operation)
        if pending:
            raise pending.popleft()

    def _application(self, app_object_id: str) -> Application:
        app = self.applications.get(app_object_id)
        if app is None:
            raise ProviderError(
                f"application {app_object_id} does not exist",
                reason=ProviderErrorReason.NOT_FOUND,
                http_status=404,
            )
        return app

    # ==================== APPLICATIONS ====================

    def create_application(
        self, ctx: RequestContext, parameters: ApplicationCreateParameters
    ) -> Application:
        with self._lock:
            self._enter("create_application")
            app = Application(
                object_id=str(uuid.uuid4()),
                app_id=str(uuid.uuid4()),
                display_name=parameters.display_name,
                homepage=parameters.homepage,
                identifier_uris=list(parameters.identifier_uris),
            )
            self.applications[app.object_id] = app
            return app.model_copy(deep=True)

    def create_service_principal(
        self, ctx: RequestContext, parameters: ServicePrincipalCreateParameters
    ) -> ServicePrincipal:
        with self._lock:
            self._enter("create_service_principal")
            if not any(app.app_id == parameters.app_id for app in self.applications.values()):
                raise ProviderError(
                    f"The appId '{parameters.app_id}' of the service principal does not "
                    "reference a valid application object.",
                    reason=ProviderErrorReason.APPLICATION_NOT_VISIBLE,
                    http_status=400,
                )
            principal = ServicePrincipal(
                object_id=str(uuid.uuid4()),
                app_id=parameters.app_id,
                account_enabled=parameters.account_enabled,
                password_credentials=[_stored(c) for c in parameters.password_credentials],
            )
            self.service_principals[principal.object_id] = principal
            return principal.model_copy(deep=True)

    def list_application_password_credentials(
        self, ctx: RequestContext, app_object_id: str
    ) -> List[PasswordCredential]:
        with self._lock:
            self._enter("list_application_password_credentials")
            app = self._application(app_object_id)
            return [c.model_copy() for c in app.password_credentials]

    def update_application_password_credentials(
        self, ctx: RequestContext, app_object_id: str, credentials: List[PasswordCredential]
    ) -> None:
        with self._lock:
            self._enter("update_application_password_credentials")
            app = self._application(app_object_id)

            key_ids = [c.key_id for c in credentials]
            if len(set(key_ids)) != len(key_ids):
                raise ProviderError(
                    "Another object with the same value for property keyId already exists.",
                    http_status=400,
                )
            if (
                self.max_password_credentials is not None
                and len(credentials) > self.max_password_credentials
            ):
                raise ProviderError(
                    "The size of the object has exceeded its limit. "
                    "Please reduce the number of values and retry your request.",
                    reason=ProviderErrorReason.OBJECT_SIZE_LIMIT,
                    http_status=400,
                )
            app.password_credentials = [_stored(c) for c in credentials]

    def delete_application(self, ctx: RequestContext, app_object_id: str) -> None:
        with self._lock:
            self._enter("delete_application")
            self._application(app_object_id)
            app = self.applications.pop(app_object_id)
            for object_id, principal in list(self.service_principals.items()):
                if principal.app_id == app.app_id:
                    del self.service_principals[object_id]

    # ==================== ROLE ASSIGNMENTS ====================

    def create_role_assignment(
        self,
        ctx: RequestContext,
        scope: str,
        role_assignment_name: str,
        parameters: RoleAssignmentCreateParameters,
    ) -> RoleAssignment:
        with self._lock:
            self._enter("create_role_assignment")
            if parameters.principal_id not in self.service_principals:
                raise ProviderError(
                    f"Principal {parameters.principal_id} does not exist in the directory.",
                    reason=ProviderErrorReason.PRINCIPAL_NOT_FOUND,
                    http_status=400,
                )
            assignment = RoleAssignment(
                id=f"{scope.rstrip('/')}/providers/Microsoft.Authorization/roleAssignments/"
                f"{role_assignment_name}",
                name=role_assignment_name,
                scope=scope,
                role_definition_id=parameters.role_definition_id,
                principal_id=parameters.principal_id,
            )
            if assignment.id in self.role_assignments:
                raise ProviderError(
                    "The role assignment already exists.", http_status=409
                )
            self.role_assignments[assignment.id] = assignment
            return assignment.model_copy()

    def delete_role_assignment_by_id(
        self, ctx: RequestContext, role_assignment_id: str
    ) -> Optional[RoleAssignment]:
        with self._lock:
            self._enter("delete_role_assignment_by_id")
            return self.role_assignments.pop(role_assignment_id, None)

    def list_roles(self, ctx: RequestContext, scope: str, filter: str) -> List[RoleDefinition]:
        with self._lock:
            self._enter("list_roles")
            role_name = _filter_value(filter, "roleName")
            return [
                r.model_copy()
                for r in self.role_definitions
                if role_name is None or r.role_name == role_name
            ]

    # ==================== GROUPS ====================

    def add_group_member(self, ctx: RequestContext, group_object_id: str, member_url: str) -> None:
        with self._lock:
            self._enter("add_group_member")
            member_object_id = member_url.rsplit("/", 1)[-1]
            if group_object_id not in self.groups or member_object_id not in self.service_principals:
                raise ProviderError(
                    f"Resource '{member_object_id}' does not exist or one of its queried "
                    "reference-property objects are not present.",
                    reason=ProviderErrorReason.RESOURCE_NOT_FOUND,
                    http_status=404,
                )
            self.group_members[group_object_id].add(member_object_id)

    def remove_group_member(
        self, ctx: RequestContext, member_object_id: str, group_object_id: str
    ) -> None:
        with self._lock:
            self._enter("remove_group_member")
            members = self.group_members.get(group_object_id)
            if not members or member_object_id not in members:
                raise ProviderError(
                    f"Resource '{member_object_id}' does not exist in group '{group_object_id}'.",
                    reason=ProviderErrorReason.RESOURCE_NOT_FOUND,
                    http_status=404,
                )
            members.discard(member_object_id)

    def list_groups(self, ctx: RequestContext, filter: str) -> List[ADGroup]:
        with self._lock:
            self._enter("list_groups")
            display_name = _filter_value(filter, "displayName")
            return [
                g.model_copy()
                for g in self.groups.values()
                if display_name is None or g.display_name == display_name
            ]
