"""
Pydantic schemas for the persisted backend configuration record.

The record is stored as a single JSON document. ``ConfigUpdate`` carries a
partial write: only the fields the caller supplied are merged onto the stored
record, everything else is left untouched.
"""

import re
from typing import Any, Optional

from pydantic import BaseModel, ConfigDict, Field, field_validator

_DURATION_PART = re.compile(r"(\d+)([smhd])")
_UNIT_SECONDS = {"s": 1, "m": 60, "h": 3600, "d": 86400}


def parse_duration_seconds(value: Any) -> int:
    """
    Parse a TTL given as seconds or as a duration string such as ``"1h30m"``.

    Raises:
        ValueError: If the value is neither an integer nor a duration string
    """
    if isinstance(value, bool):
        raise ValueError(f"invalid duration: {value!r}")
    if isinstance(value, (int, float)):
        return int(value)
    if isinstance(value, str):
        text = value.strip()
        if re.fullmatch(r"-?\d+", text):
            return int(text)
        if text and _DURATION_PART.sub("", text) == "":
            return sum(int(n) * _UNIT_SECONDS[unit] for n, unit in _DURATION_PART.findall(text))
    raise ValueError(f"invalid duration: {value!r}")


class AzureConfig(BaseModel):
    """The stored configuration record."""

    model_config = ConfigDict(validate_assignment=True)

    subscription_id: str = ""
    tenant_id: str = ""
    client_id: str = ""
    client_secret: str = Field(default="", repr=False)
    ttl: int = Field(default=0, description="Default lease for generated credentials, seconds")
    max_ttl: int = Field(default=0, description="Maximum lease for generated credentials, seconds")
    resource: str = ""
    environment: str = ""


class ConfigUpdate(BaseModel):
    """A partial configuration write. Unset fields are not touched."""

    model_config = ConfigDict(extra="forbid")

    subscription_id: Optional[str] = None
    tenant_id: Optional[str] = None
    client_id: Optional[str] = None
    client_secret: Optional[str] = Field(default=None, repr=False)
    ttl: Optional[int] = None
    max_ttl: Optional[int] = None
    resource: Optional[str] = None
    environment: Optional[str] = None

    # client_secret is stored exactly as given
    @field_validator(
        "subscription_id", "tenant_id", "client_id", "resource", "environment", mode="before"
    )
    @classmethod
    def strip_whitespace(cls, v):
        return v.strip() if isinstance(v, str) else v

    @field_validator("ttl", "max_ttl", mode="before")
    @classmethod
    def parse_ttl(cls, v):
        if v is None:
            return v
        return parse_duration_seconds(v)


class ConfigRead(BaseModel):
    """What a configuration read exposes: every field except the client secret."""

    subscription_id: str
    tenant_id: str
    client_id: str
    ttl: int
    max_ttl: int
    resource: str
    environment: str

    @classmethod
    def from_config(cls, config: AzureConfig) -> "ConfigRead":
        return cls.model_validate(config.model_dump(exclude={"client_secret"}))
