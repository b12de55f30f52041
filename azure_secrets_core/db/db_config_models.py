"""
Storage model for persisted backend records.

One row per key; the value is the JSON document for that key.
"""

from sqlalchemy import Column, String

from .db_base import JSON, TimestampMixin
from .db_config import Base


class ConfigEntry(Base, TimestampMixin):
    """A JSON document stored under a unique key."""

    __tablename__ = "config_entry"

    key = Column(String(100), primary_key=True)
    value = Column(JSON, nullable=False)
