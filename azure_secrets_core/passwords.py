"""
Password generation for new credentials.

Passwords come from a named password policy when one is configured and the
host supplies a policy generator; otherwise a random base62 string is used.
"""

import secrets
import string
from typing import Callable, Optional

from .constants import PASSWORD_LENGTH
from .context.request_context import RequestContext
from .exceptions import ServiceError

PolicyGenerator = Callable[[RequestContext, str], str]

_BASE62 = string.ascii_letters + string.digits


def random_base62(length: int = PASSWORD_LENGTH) -> str:
    return "".join(secrets.choice(_BASE62) for _ in range(length))


class Passwords:
    """Generates passwords, through a policy generator when one is configured."""

    def __init__(
        self,
        policy_name: Optional[str] = None,
        policy_generator: Optional[PolicyGenerator] = None,
    ):
        self.policy_name = policy_name
        self.policy_generator = policy_generator

    def generate(self, ctx: RequestContext) -> str:
        if not self.policy_name:
            return random_base62()

        if self.policy_generator is None:
            raise ServiceError(
                f"password policy '{self.policy_name}' is set but no policy generator is available",
                operation="generate_password",
            )

        try:
            return self.policy_generator(ctx, self.policy_name)
        except ServiceError:
            raise
        except Exception as e:
            raise ServiceError(
                f"unable to generate password from policy '{self.policy_name}': {e}",
                operation="generate_password",
                cause=e,
            ) from e
