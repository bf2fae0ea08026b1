"""
Application Factory for HWLink

Implements the Flask application factory pattern with:
- Storage initialization (SQLAlchemy + Redis, or in-memory)
- Link authority and Socket.IO transport wiring
- Blueprint and CLI registration
- JSON error handling
"""

import atexit
import logging
from typing import Any, Mapping, Optional, Tuple

from flask import Flask, jsonify
from flask_socketio import SocketIO

from hwlink.audit_logger import init_audit_logger
from hwlink.authority import LinkAuthority
from hwlink.config import get_config, validate_config
from hwlink.ledger import UsedCodeLedger
from hwlink.players import PlayerRegistry
from hwlink.security import init_security
from hwlink.sockets import register_link_handlers, register_presence_handlers
from hwlink.storage import MemoryStorage

logger = logging.getLogger(__name__)

VALID_ASYNC_MODES = {"eventlet", "gevent", "gevent_uwsgi", "threading"}


def _resolve_socketio_async_mode(preferred: Optional[str] = None) -> str:
    """Return a supported async_mode for Flask-SocketIO.

    If the requested mode is unavailable (e.g., eventlet not installed),
    fall back to the threading backend.
    """

    preferred_mode = (preferred or "").strip() or "threading"

    if preferred_mode not in VALID_ASYNC_MODES:
        logger.warning("Invalid SOCKETIO_ASYNC_MODE '%s', defaulting to threading", preferred_mode)
        return "threading"

    if preferred_mode == "threading":
        return preferred_mode

    try:
        module_name = preferred_mode if preferred_mode != "gevent_uwsgi" else "gevent"
        __import__(module_name)
        return preferred_mode
    except ImportError:
        logger.warning(
            "SOCKETIO_ASYNC_MODE '%s' requested but dependency missing; using threading",
            preferred_mode,
        )
        return "threading"


def init_storage(cfg: Mapping[str, Any]) -> Tuple[Any, Optional[Any]]:
    """
    Build the storage backend.

    Returns:
        (storage, ledger_store). ``ledger_store`` is None when no shared store
        could be initialised, which puts the used code ledger in degraded mode.
    """
    backend = cfg.get("STORAGE_BACKEND", "database")

    if backend == "memory":
        storage = MemoryStorage()
        return storage, storage

    from hwlink.database import close_all, init_all
    from hwlink.db_storage import DatabaseStorage

    try:
        init_all(cfg)
    except Exception as e:
        logger.error(f"❌ Database initialization failed: {e}")
        logger.warning("Falling back to in-memory storage; used codes are not shared between instances")
        return MemoryStorage(), None

    atexit.register(close_all)
    storage = DatabaseStorage(cfg.get("WORLD_NAME") or "default")
    return storage, storage


def create_app(config_override: Optional[Mapping[str, Any]] = None) -> Tuple[Flask, SocketIO]:
    """
    Create and configure the Flask application and its SocketIO server.

    Args:
        config_override: Optional configuration values layered over the environment

    Returns:
        (app, socketio)
    """
    app = Flask(__name__)

    cfg = dict(get_config())
    if config_override:
        cfg.update(config_override)
    validate_config(cfg)
    app.config["APP_CONFIG"] = cfg

    app.secret_key = cfg.get("FLASK_SECRET_KEY")

    init_security(app, cfg)
    init_audit_logger()

    storage, ledger_store = init_storage(cfg)
    players = PlayerRegistry()
    ledger = UsedCodeLedger(ledger_store)
    authority = LinkAuthority(cfg, storage, players, ledger)

    if authority.enabled:
        ledger.load()

    app.extensions["hwlink"] = {
        "authority": authority,
        "players": players,
        "storage": storage,
    }

    socketio = SocketIO(
        app,
        cors_allowed_origins=cfg.get("SOCKETIO_CORS", "*"),
        async_mode=_resolve_socketio_async_mode(cfg.get("SOCKETIO_ASYNC_MODE")),
    )

    @socketio.on_error_default
    def default_error_handler(e):
        """Handle SocketIO errors."""
        logger.error(f"SocketIO error: {e}", exc_info=True)

    register_presence_handlers(socketio, players)
    register_link_handlers(socketio, authority, players, debug_commands=bool(cfg.get("DEBUG_COMMANDS")))

    register_blueprints(app)
    register_error_handlers(app)

    from hwlink.cli import register_cli

    register_cli(app)

    logger.info("🚀 Application factory completed successfully")
    return app, socketio


def register_blueprints(app: Flask) -> None:
    """Register all application blueprints."""

    from hwlink.blueprints.admin import admin_bp

    app.register_blueprint(admin_bp)


def register_error_handlers(app: Flask) -> None:
    """Register global error handlers."""

    @app.errorhandler(400)
    def bad_request(e):
        return jsonify({"error": "bad_request", "message": str(e)}), 400

    @app.errorhandler(404)
    def not_found(e):
        return jsonify({"error": "not_found", "message": "Resource not found"}), 404

    @app.errorhandler(429)
    def rate_limit_exceeded(e):
        return jsonify({"error": "rate_limit_exceeded", "message": str(e)}), 429

    @app.errorhandler(500)
    def internal_error(e):
        logger.error(f"Internal server error: {e}", exc_info=True)
        return jsonify({"error": "internal_error", "message": "An unexpected error occurred"}), 500
