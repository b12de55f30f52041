"""Repository layer for data access."""

from .config_repository import (
    ConfigRepository,
    ConfigStorage,
    DatabaseConfigStorage,
    InMemoryConfigStorage,
)

__all__ = [
    "ConfigRepository",
    "ConfigStorage",
    "DatabaseConfigStorage",
    "InMemoryConfigStorage",
]
