"""Configuration management for HWLink.

Centralises environment variable loading and validation logic while keeping the
public API intentionally simple.
"""

from __future__ import annotations

import os
import re
import warnings
from typing import Any, Mapping, Optional, TypedDict

_TRUTHY_VALUES = {"1", "true", "yes", "on"}
_HEX_SECRET = re.compile(r"[0-9a-fA-F]{64}")


class AppConfig(TypedDict):
    """Typed representation of the application's configuration."""

    WORLD_NAME: str
    SECRET_KEY: str
    DEBUG_COMMANDS: bool
    FLASK_SECRET_KEY: Optional[str]
    FLASK_ENV: str
    STORAGE_BACKEND: str
    DATABASE_URL: Optional[str]
    REDIS_HOST: str
    REDIS_PORT: int
    REDIS_PASSWORD: Optional[str]
    REDIS_DB: int
    REDIS_URL: Optional[str]
    SOCKETIO_CORS: str
    SOCKETIO_ASYNC_MODE: str
    RATE_LIMIT_ENABLED: bool
    RATE_LIMIT_DEFAULT: str
    LOG_LEVEL: str
    APP_NAME: str
    APP_VERSION: str
    APP_HOST: str
    APP_PORT: int


def _get_env_bool(name: str, default: bool) -> bool:
    """Return an environment variable as a boolean."""

    raw_value = os.getenv(name)
    if raw_value is None:
        return default
    return raw_value.strip().lower() in _TRUTHY_VALUES


def _get_env_int(name: str, default: int) -> int:
    """Return an environment variable as an integer, raising on invalid input."""

    raw_value = os.getenv(name)
    if raw_value is None or raw_value == "":
        return default

    try:
        return int(raw_value)
    except ValueError as exc:
        raise ValueError(f"Environment variable {name} must be an integer (got {raw_value!r})") from exc


def get_config() -> AppConfig:
    """Load application configuration from environment variables."""

    return {
        # Link authority
        "WORLD_NAME": os.getenv("HWLINK_WORLD_NAME", "").strip(),
        "SECRET_KEY": os.getenv("HWLINK_SECRET_KEY", "").strip(),
        "DEBUG_COMMANDS": _get_env_bool("HWLINK_DEBUG_COMMANDS", False),
        # Flask
        "FLASK_SECRET_KEY": os.getenv("FLASK_SECRET_KEY"),
        "FLASK_ENV": os.getenv("FLASK_ENV", "development"),
        # Storage: "memory" keeps everything in-process, "database" uses SQLAlchemy + Redis
        "STORAGE_BACKEND": os.getenv("STORAGE_BACKEND", "database").strip().lower(),
        "DATABASE_URL": os.getenv("DATABASE_URL"),
        "REDIS_HOST": os.getenv("REDIS_HOST", "localhost"),
        "REDIS_PORT": _get_env_int("REDIS_PORT", 6379),
        "REDIS_PASSWORD": os.getenv("REDIS_PASSWORD"),
        "REDIS_DB": _get_env_int("REDIS_DB", 0),
        "REDIS_URL": os.getenv("REDIS_URL") or os.getenv("REDIS_DSN"),
        # SocketIO
        "SOCKETIO_CORS": os.getenv("SOCKETIO_CORS", "*"),
        "SOCKETIO_ASYNC_MODE": os.getenv("SOCKETIO_ASYNC_MODE", "threading"),
        # Rate limiting (HTTP routes)
        "RATE_LIMIT_ENABLED": _get_env_bool("RATE_LIMIT_ENABLED", True),
        "RATE_LIMIT_DEFAULT": os.getenv("RATE_LIMIT_DEFAULT", "100/hour"),
        # Logging
        "LOG_LEVEL": os.getenv("LOG_LEVEL", "INFO"),
        # Application Settings
        "APP_NAME": os.getenv("APP_NAME", "HWLink"),
        "APP_VERSION": os.getenv("APP_VERSION", "1.0.0"),
        "APP_HOST": os.getenv("APP_HOST", "0.0.0.0"),
        "APP_PORT": _get_env_int("APP_PORT", 5000),
    }


def is_link_configured(config: Mapping[str, Any]) -> bool:
    """Return True when both the world name and secret key are set."""

    world = str(config.get("WORLD_NAME") or "").strip()
    secret = str(config.get("SECRET_KEY") or "").strip()
    return bool(world) and bool(secret)


def validate_config(config: Mapping[str, Any]) -> bool:
    """Validate critical configuration values.

    Args:
        config: Configuration mapping to validate.

    Returns:
        True if configuration is valid, raises ValueError otherwise.
    """

    if config.get("STORAGE_BACKEND") not in (None, "memory", "database"):
        raise ValueError(f"⚠️  Unknown STORAGE_BACKEND {config.get('STORAGE_BACKEND')!r}")

    if config.get("FLASK_ENV") == "production":
        if not config.get("FLASK_SECRET_KEY"):
            raise ValueError("⚠️  FLASK_SECRET_KEY must be set for production!")

        if config.get("DEBUG_COMMANDS"):
            raise ValueError("⚠️  HWLINK_DEBUG_COMMANDS must be disabled for production!")

        secret = str(config.get("SECRET_KEY") or "")
        if secret and not _HEX_SECRET.fullmatch(secret):
            raise ValueError("⚠️  HWLINK_SECRET_KEY must be a 64-character hex string for production!")

        if config.get("STORAGE_BACKEND") == "memory":
            warnings.warn(
                "⚠️  STORAGE_BACKEND=memory - used codes will not be shared between instances!",
                stacklevel=2,
            )

        if not config.get("REDIS_URL") and not config.get("REDIS_PASSWORD"):
            warnings.warn("⚠️  REDIS_PASSWORD not set - Redis will be unprotected!", stacklevel=2)

    return True
