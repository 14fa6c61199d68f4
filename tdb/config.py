# config.py
"""
Load and validate the `tdb.toml` config file.

Example:

    [Servers]
    PROD = "db1.example.com"
    TEST = { url = "db2.example.com", port = 14330 }

    [Staff]
    LoginUserId = "jdoe"
    PIN = "1234"
    FirstName = "Jane"
    LastName = "Doe"
    NTUserName = "CORP\\jdoe"
    EmailAddress = "jdoe@example.com"
    SSOUserId = "jdoe@example.com"

    [StaffBadges]
    BadgeData = "0000"

Servers are either a bare host string (port 1433) or a table with `url` and an
optional `port`. The Staff and StaffBadges sections reject unknown keys.
"""

import logging
import os
import tomllib
from dataclasses import dataclass
from pathlib import Path
from typing import Dict, Iterator, List, Optional, Union

from pydantic import BaseModel, ConfigDict, Field, ValidationError

from .errors import ConfigError, ServerNotFoundError

logger = logging.getLogger(__name__)

DEFAULT_CONFIG_FILE = "tdb.toml"
DEFAULT_PORT = 1433


def default_port() -> int:
    """The default port for SQL Server."""
    return DEFAULT_PORT


class ServerTable(BaseModel):
    model_config = ConfigDict(frozen=True, extra="forbid")

    url: str
    port: int = Field(default=DEFAULT_PORT, ge=1, le=65535)


class Staff(BaseModel):
    model_config = ConfigDict(frozen=True, extra="forbid", populate_by_name=True)

    login_user_id: str = Field(alias="LoginUserId")
    pin: str = Field(alias="PIN")
    first_name: str = Field(alias="FirstName")
    last_name: str = Field(alias="LastName")
    nt_username: str = Field(alias="NTUserName")
    email_address: str = Field(alias="EmailAddress")
    sso_user_id: str = Field(alias="SSOUserId")


class StaffBadges(BaseModel):
    model_config = ConfigDict(frozen=True, extra="forbid", populate_by_name=True)

    login_user_id: Optional[str] = Field(default=None, alias="LoginUserId")
    badge_data: str = Field(alias="BadgeData")


class Config(BaseModel):
    """A `tdb` config file. Read-only once loaded."""

    model_config = ConfigDict(frozen=True, populate_by_name=True)

    servers: Dict[str, Union[str, ServerTable]] = Field(alias="Servers")
    staff: Staff = Field(alias="Staff")
    staff_badges: StaffBadges = Field(alias="StaffBadges")


@dataclass(frozen=True)
class ServerEntry:
    name: str
    host: str
    port: int = DEFAULT_PORT

    @property
    def address(self) -> str:
        return f"{self.host},{self.port}"


def _to_entry(name: str, raw: Union[str, ServerTable]) -> ServerEntry:
    if isinstance(raw, ServerTable):
        return ServerEntry(name=name, host=raw.url, port=raw.port)
    return ServerEntry(name=name, host=raw, port=default_port())


class ServerRegistry:
    """Named server entries with their ports resolved."""

    def __init__(self, entries: Dict[str, ServerEntry]) -> None:
        self._entries = dict(entries)

    @classmethod
    def from_config(cls, cfg: Config) -> "ServerRegistry":
        return cls({name: _to_entry(name, raw) for name, raw in cfg.servers.items()})

    def resolve(self, name: str) -> ServerEntry:
        entry = self._entries.get(name)
        if entry is None:
            available = ", ".join(sorted(self._entries)) or "(none)"
            raise ServerNotFoundError(f"Unknown server '{name}'. Configured servers: {available}")
        return entry

    def names(self) -> List[str]:
        return list(self._entries)

    def __iter__(self) -> Iterator[ServerEntry]:
        return iter(self._entries.values())

    def __len__(self) -> int:
        return len(self._entries)

    def __contains__(self, name: object) -> bool:
        return name in self._entries


def config_path(explicit: Optional[str] = None) -> Path:
    """Pick the config file: explicit path, then $TDB_CONFIG, then ./tdb.toml."""
    return Path(explicit or os.getenv("TDB_CONFIG") or DEFAULT_CONFIG_FILE)


def parse_config(text: str, source: str = "<string>") -> Config:
    try:
        raw = tomllib.loads(text)
    except tomllib.TOMLDecodeError as e:
        raise ConfigError(f"Failed to parse TOML in {source}: {e}") from e

    try:
        cfg = Config.model_validate(raw)
    except ValidationError as e:
        raise ConfigError(f"Invalid config {source}: {e}") from e

    # Staff metadata holds a PIN; log server names only.
    logger.debug("servers=%s", ", ".join(cfg.servers))
    return cfg


def load_config(path: Union[str, Path, None] = None) -> Config:
    p = config_path(str(path) if path is not None else None)
    if not p.exists():
        raise ConfigError(f"Config file not found: {p}")

    try:
        text = p.read_text(encoding="utf-8")
    except (OSError, UnicodeDecodeError) as e:
        raise ConfigError(f"Failed to read config file {p}: {e}") from e

    logger.debug("file.len()=%d", len(text))
    cfg = parse_config(text, source=str(p))
    logger.info("%s loaded", p)
    return cfg
