"""
Service for issuing, revoking and rotating Azure credentials.

Dynamic credentials get their own application and service principal, with the
role's Azure roles and groups attached. Static credentials are extra passwords
on an existing application. Provisioning stops at the first failure and undoes
what it created; revocation attempts every step and reports all failures.
"""

from datetime import timedelta
from typing import List, Optional, Sequence

from ..backend import AzureSecretBackend
from ..client import AzureClient
from ..config import get_config
from ..context.operation_context import operation
from ..context.request_context import RequestContext
from ..exceptions import BaseError, MultiError, ValidationError, aggregate, validation_failed
from ..schemas.azure_schemas import AzureGroup, AzureRole
from ..schemas.config_schemas import AzureConfig
from ..schemas.credential_schemas import (
    CredentialInternalData,
    IssuedCredential,
    RoleEntry,
    RootRotation,
)
from ..utils.logger import get_logger
from .config_service import ConfigService


class CredentialService:
    """
    Service for the credential lifecycle.

    This service provides:
    - Issuing dynamic and static credentials for a role entry
    - Revocation that attempts every teardown step
    - Rotation of the backend's own client secret
    - Resolution of role and group names to Azure IDs
    """

    def __init__(self, backend: AzureSecretBackend, config_service: ConfigService):
        self.backend = backend
        self.config_service = config_service
        self.logger = get_logger()

    def lease_seconds(self, role: RoleEntry, config: AzureConfig, ttl: Optional[int] = None) -> int:
        """
        Lease for a credential of ``role``.

        The requested TTL wins, then the role's, then the configured default,
        then the built-in default. Non-zero maximums of the role and the
        configuration cap the result.
        """
        if ttl is not None and ttl < 0:
            raise validation_failed("ttl", ttl, "ttl < 0")

        lease = ttl or role.ttl or config.ttl or get_config().client.default_lease_seconds
        caps = [cap for cap in (role.max_ttl, config.max_ttl) if cap > 0]
        if caps:
            lease = min([lease, *caps])
        return lease

    # ==================== RESOLUTION ====================

    @operation()
    def resolve_roles(self, ctx: RequestContext, roles: Sequence[AzureRole]) -> List[AzureRole]:
        """
        Fill in missing role definition IDs by role name.

        Raises:
            ValidationError: If a name matches no role or more than one
        """
        client = self.backend.get_client(ctx)
        resolved = []
        for role in roles:
            if role.role_id:
                resolved.append(role)
                continue

            matches = client.find_roles(ctx, role.role_name or "")
            if not matches:
                raise ValidationError(
                    f"no role found for role_name: '{role.role_name}'", field="role_name"
                )
            if len(matches) > 1:
                raise ValidationError(
                    f"multiple matches found for role_name: '{role.role_name}'. "
                    "Specify role by ID instead.",
                    field="role_name",
                )
            resolved.append(role.model_copy(update={"role_id": matches[0].id}))
        return resolved

    @operation()
    def resolve_groups(
        self, ctx: RequestContext, groups: Sequence[AzureGroup]
    ) -> List[AzureGroup]:
        """
        Fill in missing group object IDs by display name.

        Raises:
            ValidationError: If a name matches no group or more than one
        """
        client = self.backend.get_client(ctx)
        resolved = []
        for group in groups:
            if group.object_id:
                resolved.append(group)
                continue

            matches = client.find_groups(ctx, group.group_name or "")
            if not matches:
                raise ValidationError(
                    f"no group found for group_name: '{group.group_name}'", field="group_name"
                )
            if len(matches) > 1:
                raise ValidationError(
                    f"multiple matches found for group_name: '{group.group_name}'. "
                    "Specify group by object ID instead.",
                    field="group_name",
                )
            resolved.append(group.model_copy(update={"object_id": matches[0].object_id}))
        return resolved

    # ==================== ISSUE ====================

    @operation()
    def issue(
        self, ctx: RequestContext, role: RoleEntry, ttl: Optional[int] = None
    ) -> IssuedCredential:
        """
        Issue a credential for ``role``.

        Args:
            ctx: Request context bounding any retries
            role: The role entry to issue for
            ttl: Requested lease in seconds

        Returns:
            The credential; its secret is not retrievable again
        """
        config = self.config_service.get() or AzureConfig()
        lease = self.lease_seconds(role, config, ttl)
        duration = timedelta(seconds=lease)
        client = self.backend.get_client(ctx)

        if role.is_static:
            key_id, password = client.add_app_password(ctx, role.application_object_id, duration)
            return IssuedCredential(
                client_id=role.application_id,
                client_secret=password,
                key_id=key_id,
                lease_seconds=lease,
                internal=CredentialInternalData(
                    role_name=role.name,
                    app_object_id=role.application_object_id,
                    key_id=key_id,
                    static=True,
                ),
            )

        roles = self.resolve_roles(ctx, role.azure_roles)
        groups = self.resolve_groups(ctx, role.azure_groups)

        app = client.create_app(ctx)
        internal = CredentialInternalData(role_name=role.name, app_object_id=app.object_id)

        try:
            principal, password = client.create_service_principal(ctx, app, duration)
            internal.sp_object_id = principal.object_id
            internal.key_id = principal.password_credentials[0].key_id

            # One at a time so a failure leaves a record of what to undo
            for azure_role in roles:
                internal.role_assignment_ids.extend(client.assign_roles(ctx, principal, [azure_role]))
            for group in groups:
                client.add_group_memberships(ctx, principal, [group])
                internal.group_membership_ids.append(group.object_id)
        except BaseError:
            self._rollback(ctx, client, internal)
            raise

        self.logger.info(
            "Issued credential",
            extra={
                "role_name": role.name,
                "app_id": app.app_id,
                "key_id": internal.key_id,
                "lease_seconds": lease,
            },
        )
        return IssuedCredential(
            client_id=app.app_id,
            client_secret=password,
            key_id=internal.key_id,
            lease_seconds=lease,
            internal=internal,
        )

    def _rollback(
        self, ctx: RequestContext, client: AzureClient, internal: CredentialInternalData
    ) -> None:
        try:
            self._teardown(ctx, client, internal)
        except BaseError as e:
            self.logger.warning(
                "Rollback of partially issued credential failed",
                extra={"app_object_id": internal.app_object_id, "error_id": e.error_id},
            )

    # ==================== REVOKE ====================

    @operation()
    def revoke(self, ctx: RequestContext, internal: CredentialInternalData) -> None:
        """
        Tear down an issued credential.

        Raises:
            MultiError: Listing every teardown step that failed
        """
        client = self.backend.get_client(ctx)
        self._teardown(ctx, client, internal)

    def _teardown(
        self, ctx: RequestContext, client: AzureClient, internal: CredentialInternalData
    ) -> None:
        if internal.static:
            if internal.key_id:
                client.delete_app_password(ctx, internal.app_object_id, internal.key_id)
            return

        errors: List[Exception] = []

        steps = []
        if internal.sp_object_id and internal.group_membership_ids:
            steps.append(
                lambda: client.remove_group_memberships(
                    ctx, internal.sp_object_id, internal.group_membership_ids
                )
            )
        if internal.role_assignment_ids:
            steps.append(lambda: client.unassign_roles(ctx, internal.role_assignment_ids))
        steps.append(lambda: client.delete_app(ctx, internal.app_object_id))

        for step in steps:
            try:
                step()
            except MultiError as e:
                errors.extend(e.errors)
            except BaseError as e:
                errors.append(e)

        failure = aggregate(errors, operation="revoke", app_object_id=internal.app_object_id)
        if failure is not None:
            raise failure

    # ==================== ROOT ROTATION ====================

    @operation()
    def rotate_root(
        self, ctx: RequestContext, app_object_id: str, duration: timedelta
    ) -> RootRotation:
        """
        Replace the backend's own application credentials with a new password.

        The new secret is persisted to the configuration, so the next client
        built authenticates with it.
        """
        if duration.total_seconds() <= 0:
            raise validation_failed("duration", duration, "must be positive")

        client = self.backend.get_client(ctx)
        key_id, password = client.update_root_password(ctx, app_object_id, duration)
        self.config_service.update_client_secret(password)

        self.logger.info(
            "Rotated root credential", extra={"app_object_id": app_object_id, "key_id": key_id}
        )
        return RootRotation(key_id=key_id, lease_seconds=int(duration.total_seconds()))
