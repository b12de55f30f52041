"""Service layer: configuration and credential lifecycle."""

from .config_service import ConfigService
from .credential_service import CredentialService

__all__ = ["ConfigService", "CredentialService"]
