"""
Credential client: the provider operations issued credentials are built from.

Provisioning steps that depend on a just-created object (service principal on
its application, role assignments and group memberships on the principal)
retry while the provider reports the object as not yet visible. Every other
provider failure ends the step. Teardown of role assignments and group
memberships attempts every item and reports all failures together.
"""

import uuid
from datetime import datetime, timedelta, timezone
from typing import Callable, List, Optional, Sequence, Tuple

from .client_settings import ClientSettings
from .constants import APP_NAME_PREFIX, KEY_ID_MARKER, Timeouts
from .context.operation_context import operation
from .context.request_context import RequestContext
from .exceptions import (
    BaseError,
    MaxPasswordsReachedError,
    ProviderError,
    ProviderErrorReason,
    ServiceError,
    ValidationError,
    aggregate,
)
from .passwords import Passwords
from .providers.base_provider import AzureProvider
from .retry import Attempt, Retrier
from .schemas.azure_schemas import (
    ADGroup,
    Application,
    ApplicationCreateParameters,
    AzureGroup,
    AzureRole,
    PasswordCredential,
    RoleAssignmentCreateParameters,
    RoleDefinition,
    ServicePrincipal,
    ServicePrincipalCreateParameters,
)
from .utils.logger import get_logger

Clock = Callable[[], datetime]


def utc_now() -> datetime:
    return datetime.now(timezone.utc)


def generate_key_id() -> str:
    """A random UUID whose three leading bytes are the ``ffffff`` marker."""
    return KEY_ID_MARKER + str(uuid.uuid4())[len(KEY_ID_MARKER):]


def _wrap(message: str, error: BaseError, operation_name: str) -> ServiceError:
    return ServiceError(f"{message}: {error.message}", operation=operation_name, cause=error)


def _absorbing(reason: ProviderErrorReason, call: Callable[[], object]) -> Callable[[], Attempt]:
    """Adapt ``call`` for the retrier, treating ``reason`` as not-yet-done."""

    def attempt() -> Attempt:
        try:
            return call(), True, None
        except ProviderError as e:
            if e.reason == reason:
                return None, False, None
            return None, True, e

    return attempt


class AzureClient:
    """
    Provider handle bound to one settings snapshot, valid for a fixed lifetime.

    Instances are never mutated after construction; a configuration change
    builds a new client instead.
    """

    def __init__(
        self,
        provider: AzureProvider,
        settings: ClientSettings,
        passwords: Optional[Passwords] = None,
        lifetime_seconds: float = Timeouts.CLIENT_LIFETIME,
        retrier: Optional[Retrier] = None,
        clock: Clock = utc_now,
    ):
        self.provider = provider
        self.settings = settings
        self.passwords = passwords or Passwords()
        self.retrier = retrier or Retrier()
        self._clock = clock
        self.expiration = clock() + timedelta(seconds=lifetime_seconds)
        self.logger = get_logger()

    def valid(self) -> bool:
        return self._clock() < self.expiration

    def _new_password_credential(
        self, ctx: RequestContext, duration: timedelta
    ) -> Tuple[PasswordCredential, str]:
        password = self.passwords.generate(ctx)
        now = self._clock()
        credential = PasswordCredential(
            key_id=generate_key_id(),
            start_date=now,
            end_date=now + duration,
            value=password,
        )
        return credential, password

    # ==================== APPLICATIONS ====================

    @operation()
    def create_app(self, ctx: RequestContext) -> Application:
        """Create an application with a unique ``vault-`` prefixed display name."""
        name = f"{APP_NAME_PREFIX}{uuid.uuid4()}"
        url = f"https://{name}"
        return self.provider.create_application(
            ctx,
            ApplicationCreateParameters(
                display_name=name,
                homepage=url,
                identifier_uris=[url],
                available_to_other_tenants=False,
            ),
        )

    @operation()
    def create_service_principal(
        self, ctx: RequestContext, app: Application, duration: timedelta
    ) -> Tuple[ServicePrincipal, str]:
        """
        Create a service principal for ``app`` holding a new password.

        Retries while the application has not propagated yet.

        Returns:
            The service principal, listing the new credential's metadata, and
            the plaintext password
        """
        credential, password = self._new_password_credential(ctx, duration)
        parameters = ServicePrincipalCreateParameters(
            app_id=app.app_id,
            account_enabled=True,
            password_credentials=[credential],
        )

        try:
            principal = self.retrier(
                ctx,
                _absorbing(
                    ProviderErrorReason.APPLICATION_NOT_VISIBLE,
                    lambda: self.provider.create_service_principal(ctx, parameters),
                ),
            )
        except BaseError as e:
            raise _wrap("error creating service principal", e, "create_service_principal") from e

        if not principal.password_credentials:
            principal = principal.model_copy(
                update={"password_credentials": [credential.model_copy(update={"value": None})]}
            )
        return principal, password

    @operation()
    def add_app_password(
        self, ctx: RequestContext, app_object_id: str, duration: timedelta
    ) -> Tuple[str, str]:
        """
        Append a new password to the application's existing credentials.

        Returns:
            The new key ID and plaintext password

        Raises:
            MaxPasswordsReachedError: If the application holds no more credentials
        """
        credential, password = self._new_password_credential(ctx, duration)

        try:
            credentials = self.provider.list_application_password_credentials(ctx, app_object_id)
        except ProviderError as e:
            raise _wrap("error fetching credentials", e, "add_app_password") from e

        credentials.append(credential)

        try:
            self.provider.update_application_password_credentials(ctx, app_object_id, credentials)
        except ProviderError as e:
            if e.reason == ProviderErrorReason.OBJECT_SIZE_LIMIT:
                raise MaxPasswordsReachedError(cause=e, app_object_id=app_object_id) from e
            raise _wrap("error updating credentials", e, "add_app_password") from e

        return credential.key_id, password

    @operation()
    def update_root_password(
        self, ctx: RequestContext, app_object_id: str, duration: timedelta
    ) -> Tuple[str, str]:
        """
        Replace every credential of the application with one new password.

        Returns:
            The new key ID and plaintext password
        """
        credential, password = self._new_password_credential(ctx, duration)

        try:
            self.provider.update_application_password_credentials(ctx, app_object_id, [credential])
        except ProviderError as e:
            raise _wrap("error updating credentials", e, "update_root_password") from e

        return credential.key_id, password

    @operation()
    def delete_app_password(self, ctx: RequestContext, app_object_id: str, key_id: str) -> None:
        """Remove the credential with ``key_id``. A missing key is not an error."""
        try:
            credentials = self.provider.list_application_password_credentials(ctx, app_object_id)
        except ProviderError as e:
            raise _wrap("error fetching credentials", e, "delete_app_password") from e

        for i, credential in enumerate(credentials):
            if credential.key_id == key_id:
                credentials[i] = credentials[-1]
                credentials.pop()
                break
        else:
            return

        try:
            self.provider.update_application_password_credentials(ctx, app_object_id, credentials)
        except ProviderError as e:
            raise _wrap("error updating credentials", e, "delete_app_password") from e

    @operation()
    def delete_app(self, ctx: RequestContext, app_object_id: str) -> None:
        """Delete the application. An application that is already gone is not an error."""
        try:
            self.provider.delete_application(ctx, app_object_id)
        except ProviderError as e:
            if e.http_status == 404:
                self.logger.debug(
                    "Application already deleted", extra={"app_object_id": app_object_id}
                )
                return
            raise

    # ==================== ROLE ASSIGNMENTS ====================

    @operation()
    def assign_roles(
        self, ctx: RequestContext, principal: ServicePrincipal, roles: Sequence[AzureRole]
    ) -> List[str]:
        """
        Assign each role to the principal, in order.

        Retries while the principal has not propagated. Stops at the first
        other failure without undoing earlier assignments.

        Returns:
            IDs of the created role assignments
        """
        ids: List[str] = []

        for role in roles:
            name = str(uuid.uuid4())
            parameters = RoleAssignmentCreateParameters(
                role_definition_id=role.role_id,
                principal_id=principal.object_id,
            )

            def create(scope=role.scope, name=name, parameters=parameters):
                return self.provider.create_role_assignment(ctx, scope, name, parameters)

            try:
                assignment = self.retrier(
                    ctx, _absorbing(ProviderErrorReason.PRINCIPAL_NOT_FOUND, create)
                )
            except BaseError as e:
                raise _wrap("error while assigning roles", e, "assign_roles").add_context(
                    role_name=role.role_name, scope=role.scope
                ) from e

            ids.append(assignment.id)

        return ids

    @operation()
    def unassign_roles(self, ctx: RequestContext, role_assignment_ids: Sequence[str]) -> None:
        """
        Delete every role assignment, attempting all of them.

        Raises:
            MultiError: Listing each deletion that failed
        """
        errors: List[Exception] = []
        for assignment_id in role_assignment_ids:
            try:
                self.provider.delete_role_assignment_by_id(ctx, assignment_id)
            except ProviderError as e:
                errors.append(_wrap("error unassigning role", e, "unassign_roles"))

        failure = aggregate(errors, operation="unassign_roles")
        if failure is not None:
            raise failure

    @operation()
    def find_roles(self, ctx: RequestContext, role_name: str) -> List[RoleDefinition]:
        """Role definitions in the subscription whose name is ``role_name``."""
        return self.provider.list_roles(
            ctx,
            f"subscriptions/{self.settings.subscription_id}",
            f"roleName eq '{role_name}'",
        )

    # ==================== GROUPS ====================

    def _member_url(self, principal_object_id: str) -> str:
        return (
            f"{self.settings.environment.graph_endpoint}{self.settings.tenant_id}"
            f"/directoryObjects/{principal_object_id}"
        )

    @operation()
    def add_group_memberships(
        self, ctx: RequestContext, principal: ServicePrincipal, groups: Sequence[AzureGroup]
    ) -> None:
        """
        Add the principal to each group, in order.

        Retries while the principal has not propagated. Stops at the first
        other failure without undoing earlier memberships.
        """
        member_url = self._member_url(principal.object_id)

        for group_id in group_object_ids(groups):

            def add(group_id=group_id):
                self.provider.add_group_member(ctx, group_id, member_url)

            try:
                self.retrier(ctx, _absorbing(ProviderErrorReason.RESOURCE_NOT_FOUND, add))
            except BaseError as e:
                raise _wrap(
                    "error while adding group membership", e, "add_group_memberships"
                ).add_context(group_object_id=group_id) from e

    @operation()
    def remove_group_memberships(
        self, ctx: RequestContext, principal_object_id: str, group_ids: Sequence[str]
    ) -> None:
        """
        Remove the principal from every group, attempting all of them.

        Raises:
            MultiError: Listing each removal that failed
        """
        errors: List[Exception] = []
        for group_id in group_ids:
            try:
                self.provider.remove_group_member(ctx, principal_object_id, group_id)
            except ProviderError as e:
                errors.append(_wrap("error removing group membership", e, "remove_group_memberships"))

        failure = aggregate(errors, operation="remove_group_memberships")
        if failure is not None:
            raise failure

    @operation()
    def find_groups(self, ctx: RequestContext, group_name: str) -> List[ADGroup]:
        """Groups whose display name is ``group_name``."""
        return self.provider.list_groups(ctx, f"displayName eq '{group_name}'")


def group_object_ids(groups: Sequence[AzureGroup]) -> List[str]:
    """
    Object IDs of ``groups``, in order.

    Raises:
        ValidationError: If a group has not been resolved to an object ID
    """
    ids: List[str] = []
    for group in groups:
        if not group.object_id:
            raise ValidationError(
                f"group '{group.group_name}' has no object ID", field="object_id"
            )
        ids.append(group.object_id)
    return ids


def is_valid(client: Optional[AzureClient]) -> bool:
    """True if ``client`` exists and has not outlived its lifetime."""
    return client is not None and client.valid()
