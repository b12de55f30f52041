"""
Persistence of the backend configuration record.

``ConfigStorage`` is a key/value store of JSON documents. ``ConfigRepository``
maps the ``config`` key to and from ``AzureConfig``.
"""

from abc import ABC, abstractmethod
from typing import Any, Dict, Optional

from pydantic import ValidationError as PydanticValidationError
from sqlalchemy.exc import SQLAlchemyError

from ..constants import StorageKey
from ..db.db_config import DatabaseManager, get_app_database_config, init_db
from ..db.db_config_models import ConfigEntry
from ..exceptions import ErrorCode, RepositoryError
from ..schemas.config_schemas import AzureConfig
from ..utils.json_utils import dumps, loads
from ..utils.logger import get_logger


class ConfigStorage(ABC):
    """Key/value storage of JSON documents."""

    @abstractmethod
    def get(self, key: str) -> Optional[Dict[str, Any]]:
        pass

    @abstractmethod
    def put(self, key: str, value: Dict[str, Any]) -> None:
        pass

    @abstractmethod
    def delete(self, key: str) -> None:
        pass


class InMemoryConfigStorage(ConfigStorage):
    """Process-local storage. Documents are copied through JSON on the way in and out."""

    def __init__(self):
        self._entries: Dict[str, str] = {}

    def get(self, key: str) -> Optional[Dict[str, Any]]:
        raw = self._entries.get(key)
        return None if raw is None else loads(raw)

    def put(self, key: str, value: Dict[str, Any]) -> None:
        self._entries[key] = dumps(value)

    def delete(self, key: str) -> None:
        self._entries.pop(key, None)


class DatabaseConfigStorage(ConfigStorage):
    """Storage in the ``config_entry`` table."""

    def __init__(self, db_manager: DatabaseManager):
        self.db_manager = db_manager
        self.logger = get_logger()

    @classmethod
    def from_app_config(cls) -> "DatabaseConfigStorage":
        """Storage on the database named by the application config, tables created."""
        db_manager = DatabaseManager(get_app_database_config())
        init_db(db_manager)
        return cls(db_manager)

    def get(self, key: str) -> Optional[Dict[str, Any]]:
        session = self.db_manager.get_session()
        try:
            entry = session.get(ConfigEntry, key)
            return None if entry is None else dict(entry.value)
        except SQLAlchemyError as e:
            raise RepositoryError(
                f"Failed to read storage entry: {key}", cause=e, storage_key=key
            ) from e
        finally:
            self.db_manager.close_session(session)

    def put(self, key: str, value: Dict[str, Any]) -> None:
        session = self.db_manager.get_session()
        try:
            entry = session.get(ConfigEntry, key)
            if entry is None:
                session.add(ConfigEntry(key=key, value=value))
            else:
                entry.value = value
            session.commit()
        except SQLAlchemyError as e:
            session.rollback()
            raise RepositoryError(
                f"Failed to write storage entry: {key}", cause=e, storage_key=key
            ) from e
        finally:
            self.db_manager.close_session(session)

        self.logger.debug("Stored storage entry", extra={"storage_key": key})

    def delete(self, key: str) -> None:
        session = self.db_manager.get_session()
        try:
            entry = session.get(ConfigEntry, key)
            if entry is not None:
                session.delete(entry)
                session.commit()
        except SQLAlchemyError as e:
            session.rollback()
            raise RepositoryError(
                f"Failed to delete storage entry: {key}", cause=e, storage_key=key
            ) from e
        finally:
            self.db_manager.close_session(session)


class ConfigRepository:
    """Reads and writes the configuration record."""

    def __init__(self, storage: ConfigStorage, key: str = StorageKey.CONFIG.value):
        self.storage = storage
        self.key = key

    def exists(self) -> bool:
        return self.storage.get(self.key) is not None

    def get(self) -> Optional[AzureConfig]:
        """The stored configuration, or None when nothing is stored."""
        document = self.storage.get(self.key)
        if document is None:
            return None
        try:
            return AzureConfig.model_validate(document)
        except PydanticValidationError as e:
            raise RepositoryError(
                "Stored configuration is invalid",
                error_code=ErrorCode.INVALID_FORMAT,
                cause=e,
                storage_key=self.key,
            ) from e

    def save(self, config: AzureConfig) -> None:
        self.storage.put(self.key, config.model_dump())
