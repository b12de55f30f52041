"""
Reading and writing the backend configuration.

Writes merge the supplied fields onto the stored record and are validated as a
whole; every problem with a write is reported at once and nothing is persisted
unless the write is entirely valid.
"""

import re
import threading
from typing import List, Optional

from ..backend import AzureSecretBackend
from ..context.operation_context import operation
from ..environments import environment_from_name
from ..exceptions import ConfigurationError, ConfigValidationError
from ..repositories.config_repository import ConfigRepository
from ..schemas.config_schemas import AzureConfig, ConfigRead, ConfigUpdate
from ..utils.logger import get_logger


_UUID_PATTERN = re.compile(
    r"^[0-9a-fA-F]{8}-[0-9a-fA-F]{4}-[0-9a-fA-F]{4}-[0-9a-fA-F]{4}-[0-9a-fA-F]{12}$"
)


def _uuid_error(field: str, value: str) -> Optional[str]:
    """Only the canonical 36 character dashed form is accepted."""
    if len(value) != 36:
        return f"{field} format error: uuid string is wrong length"
    if not _UUID_PATTERN.match(value):
        return f"{field} format error: uuid is improperly formatted"
    return None


class ConfigService:
    """Configuration state: unconfigured until the first successful write."""

    def __init__(self, backend: AzureSecretBackend):
        self.backend = backend
        self.repository: ConfigRepository = backend.repository
        self._lock = threading.Lock()
        self.logger = get_logger()

    def exists(self) -> bool:
        return self.repository.exists()

    def get(self) -> Optional[AzureConfig]:
        """The full stored record, secret included, for internal use."""
        return self.repository.get()

    @operation()
    def read(self) -> Optional[ConfigRead]:
        """The stored configuration without its client secret, or None if unconfigured."""
        config = self.repository.get()
        if config is None:
            return None
        return ConfigRead.from_config(config)

    @operation()
    def write(self, update: ConfigUpdate) -> AzureConfig:
        """
        Merge ``update`` onto the stored configuration and persist it.

        Only fields present in the update are changed. The cached client is
        dropped after a successful write.

        Returns:
            The persisted configuration

        Raises:
            ConfigValidationError: Listing every validation failure of the write
        """
        supplied = update.model_fields_set
        errors: List[str] = []

        with self._lock:
            config = self.repository.get() or AzureConfig()

            if "subscription_id" in supplied:
                error = _uuid_error("subscription_id", update.subscription_id or "")
                if error:
                    errors.append(error)
                else:
                    config.subscription_id = update.subscription_id

            if "tenant_id" in supplied:
                error = _uuid_error("tenant_id", update.tenant_id or "")
                if error:
                    errors.append(error)
                else:
                    config.tenant_id = update.tenant_id

            if "environment" in supplied:
                try:
                    environment_from_name(update.environment or "")
                except ConfigurationError as e:
                    errors.append(e.message)
                else:
                    config.environment = update.environment

            for field in ("resource", "client_id", "client_secret", "ttl", "max_ttl"):
                if field in supplied:
                    value = getattr(update, field)
                    if value is None:
                        value = AzureConfig.model_fields[field].default
                    setattr(config, field, value)

            if config.ttl < 0:
                errors.append("ttl < 0")
            if config.max_ttl < 0:
                errors.append("max_ttl < 0")
            if config.ttl > config.max_ttl and config.max_ttl != 0:
                errors.append("ttl > max_ttl")

            if errors:
                raise ConfigValidationError(errors)

            self.repository.save(config)
            self.backend.reset()

        self.logger.info(
            "Configuration updated", extra={"fields": ",".join(sorted(supplied))}
        )
        return config

    @operation()
    def update_client_secret(self, client_secret: str) -> None:
        """Persist a new client secret and drop the cached client."""
        with self._lock:
            config = self.repository.get() or AzureConfig()
            config.client_secret = client_secret
            self.repository.save(config)
            self.backend.reset()
