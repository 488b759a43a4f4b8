"""Configuration management for wallet-login."""

from __future__ import annotations

import sys
from pathlib import Path
from typing import Literal

from pydantic import field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

if sys.version_info >= (3, 11):
    import tomllib
else:
    import tomli as tomllib


class APIConfig(BaseSettings):
    """API server configuration."""

    model_config = SettingsConfigDict(env_prefix="API_")

    listen_host: str = "127.0.0.1"
    listen_port: int = 8001


class AuthConfig(BaseSettings):
    """Handshake configuration."""

    model_config = SettingsConfigDict(env_prefix="AUTH_")

    # Lifetime of an issued challenge nonce (0 = never expires)
    nonce_ttl_seconds: int = 300

    # Lifetime of a session token
    session_ttl_seconds: int = 86400

    @field_validator("nonce_ttl_seconds")
    @classmethod
    def validate_nonce_ttl(cls, v: int) -> int:
        if v < 0:
            raise ValueError("nonce_ttl_seconds must not be negative")
        if v > 86400:
            raise ValueError("nonce_ttl_seconds must be at most 86400")
        return v

    @field_validator("session_ttl_seconds")
    @classmethod
    def validate_session_ttl(cls, v: int) -> int:
        if v < 60:
            raise ValueError("session_ttl_seconds must be at least 60")
        if v > 2592000:
            raise ValueError("session_ttl_seconds must be at most 2592000 (30 days)")
        return v


class DatabaseConfig(BaseSettings):
    """Account storage configuration."""

    model_config = SettingsConfigDict(env_prefix="DB_")

    backend: Literal["memory", "sqlite"] = "memory"
    path: Path = Path("/var/lib/wallet-login/accounts.db")


class Config(BaseSettings):
    """Main configuration container."""

    api: APIConfig = APIConfig()
    auth: AuthConfig = AuthConfig()
    database: DatabaseConfig = DatabaseConfig()

    @classmethod
    def from_toml(cls, path: Path) -> "Config":
        """Load configuration from TOML file."""
        if not path.exists():
            return cls()

        with open(path, "rb") as f:
            data = tomllib.load(f)

        return cls(
            api=APIConfig(**data.get("api", {})),
            auth=AuthConfig(**data.get("auth", {})),
            database=DatabaseConfig(**data.get("database", {})),
        )


# Default config path
DEFAULT_CONFIG_PATH = Path("/etc/wallet-login/config.toml")


def load_config(path: Path | None = None) -> Config:
    """Load configuration from file or defaults."""
    config_path = path or DEFAULT_CONFIG_PATH
    return Config.from_toml(config_path)
