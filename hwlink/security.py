"""Security helpers for configuring Flask in production."""
from __future__ import annotations

import logging
from typing import Any, Mapping

from flask import Flask
from flask_limiter import Limiter
from flask_limiter.util import get_remote_address
from werkzeug.middleware.proxy_fix import ProxyFix

logger = logging.getLogger(__name__)

# Blueprints decorate routes with this at import time; init_security binds it to the app.
limiter = Limiter(key_func=get_remote_address)

LOG_FORMAT = (
    "{\"level\":\"%(levelname)s\",\"msg\":\"%(message)s\",\"name\":\"%(name)s\",\"path\":\"%(pathname)s\","
    "\"lineno\":%(lineno)d}"
)


def _as_bool(value: Any, default: bool = False) -> bool:
    if value is None:
        return default
    if isinstance(value, bool):
        return value
    return str(value).lower() in {"1", "true", "yes", "on"}


def _build_redis_uri(cfg: Mapping[str, Any]) -> str:
    if cfg.get("REDIS_URL"):
        return str(cfg["REDIS_URL"])

    host = cfg.get("REDIS_HOST", "127.0.0.1")
    port = cfg.get("REDIS_PORT", 6379)
    db = cfg.get("REDIS_DB", 0)
    password = cfg.get("REDIS_PASSWORD")
    if password:
        return f"redis://:{password}@{host}:{port}/{db}"
    return f"redis://{host}:{port}/{db}"


def configure_logging(cfg: Mapping[str, Any]) -> None:
    log_level = str(cfg.get("LOG_LEVEL", "INFO")).upper()
    level = getattr(logging, log_level, logging.INFO)
    root_logger = logging.getLogger()
    root_logger.setLevel(level)
    if not any(isinstance(handler, logging.StreamHandler) for handler in root_logger.handlers):
        handler = logging.StreamHandler()
        handler.setFormatter(logging.Formatter(LOG_FORMAT))
        root_logger.addHandler(handler)


def init_security(app: Flask, cfg: Mapping[str, Any]) -> Limiter:
    """Initialise proxy handling, rate limiting on HTTP routes, and logging."""

    # Respect reverse proxy headers for TLS detection and client IP extraction.
    app.wsgi_app = ProxyFix(app.wsgi_app, x_for=1, x_proto=1)  # type: ignore[assignment]

    enabled = _as_bool(cfg.get("RATE_LIMIT_ENABLED"), True)
    app.config["RATELIMIT_ENABLED"] = enabled
    app.config["RATELIMIT_DEFAULT"] = cfg.get("RATE_LIMIT_DEFAULT") or "100/hour"
    app.config["RATELIMIT_STRATEGY"] = "fixed-window"
    app.config["RATELIMIT_STORAGE_URI"] = _build_redis_uri(cfg) if cfg.get("REDIS_URL") else "memory://"
    # A Redis outage must not take the health endpoints down with it
    app.config["RATELIMIT_SWALLOW_ERRORS"] = True
    limiter.init_app(app)

    if not enabled:
        logger.warning("Rate limiting disabled (RATE_LIMIT_ENABLED=false)")

    configure_logging(cfg)
    return limiter
