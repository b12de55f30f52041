"""SQLAlchemy models and connection management for configuration storage."""

from .db_base import JSON, TimestampMixin, utc_now
from .db_config import (
    Base,
    DatabaseConfig,
    DatabaseManager,
    get_app_database_config,
    import_all_models,
    init_db,
)
from .db_config_models import ConfigEntry

__all__ = [
    "Base",
    "JSON",
    "TimestampMixin",
    "utc_now",
    "DatabaseConfig",
    "DatabaseManager",
    "get_app_database_config",
    "import_all_models",
    "init_db",
    "ConfigEntry",
]
