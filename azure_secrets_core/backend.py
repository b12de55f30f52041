"""
Lifecycle of the cached credential client.

A client is built from the current settings on first use and reused until its
fixed lifetime runs out. Rebuilding replaces the cached reference; callers
holding the previous client keep using it unaffected.
"""

import threading
from typing import Callable, Optional

from .client import AzureClient, Clock, is_valid, utc_now
from .client_settings import ClientSettings, StaticSystemView, SystemView, get_client_settings
from .config import get_config
from .context.request_context import RequestContext
from .passwords import Passwords
from .providers.azure_provider import AzureGraphRbacProvider
from .providers.base_provider import AzureProvider
from .repositories.config_repository import ConfigRepository, ConfigStorage
from .retry import Retrier
from .utils.logger import get_logger

ProviderFactory = Callable[[ClientSettings], AzureProvider]


def default_provider_factory(settings: ClientSettings) -> AzureProvider:
    return AzureGraphRbacProvider(settings)


class AzureSecretBackend:
    """Owns configuration storage and the cached ``AzureClient``."""

    def __init__(
        self,
        storage: ConfigStorage,
        system_view: Optional[SystemView] = None,
        provider_factory: ProviderFactory = default_provider_factory,
        passwords: Optional[Passwords] = None,
        retrier: Optional[Retrier] = None,
        lifetime_seconds: Optional[float] = None,
        clock: Clock = utc_now,
    ):
        """
        Args:
            storage: Where the configuration record lives
            system_view: Host metadata source (default: empty metadata)
            provider_factory: Builds a provider for a settings snapshot
            passwords: Password generator handed to every client
            retrier: Retry engine handed to every client
            lifetime_seconds: Client lifetime (default: from config)
            clock: UTC time source
        """
        client_config = get_config().client

        self.storage = storage
        self.repository = ConfigRepository(storage)
        self.system_view = system_view or StaticSystemView()
        self.provider_factory = provider_factory
        self.passwords = passwords or Passwords()
        self.retrier = retrier or Retrier(timeout=client_config.retry_timeout_seconds)
        self.lifetime_seconds = (
            lifetime_seconds if lifetime_seconds is not None else client_config.lifetime_seconds
        )
        self.clock = clock

        self._client: Optional[AzureClient] = None
        self._lock = threading.Lock()
        self.logger = get_logger()

    def get_client(self, ctx: RequestContext) -> AzureClient:
        """
        Return the cached client, building a new one if it is missing or expired.

        Raises:
            ConfigurationError: If the settings cannot be resolved
        """
        client = self._client
        if is_valid(client):
            return client

        with self._lock:
            if is_valid(self._client):
                return self._client

            settings = get_client_settings(ctx, self.repository.get(), self.system_view)
            client = AzureClient(
                provider=self.provider_factory(settings),
                settings=settings,
                passwords=self.passwords,
                lifetime_seconds=self.lifetime_seconds,
                retrier=self.retrier,
                clock=self.clock,
            )
            self._client = client

        self.logger.info(
            "Built Azure client",
            extra={
                "subscription_id": settings.subscription_id,
                "tenant_id": settings.tenant_id,
                "environment": settings.environment.name,
                "expiration": client.expiration.isoformat(),
            },
        )
        return client

    def reset(self) -> None:
        """Drop the cached client so the next request rebuilds it."""
        with self._lock:
            self._client = None
