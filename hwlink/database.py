"""
Database connection and session management for HWLink.

PostgreSQL (or SQLite for development) through SQLAlchemy, plus an optional
Redis client used as a shared cache.
"""

import logging
from contextlib import contextmanager
from typing import Any, Generator, Mapping, Optional

import redis
from sqlalchemy import create_engine, text
from sqlalchemy.orm import Session, scoped_session, sessionmaker
from sqlalchemy.pool import StaticPool

from hwlink.models import Base

logger = logging.getLogger(__name__)

# Global database engine and session factory
_engine = None
_SessionFactory = None
_redis_client = None

DEFAULT_DATABASE_URL = "sqlite:///hwlink.db"


def get_database_url(config: Mapping[str, Any]) -> str:
    """
    Get database URL from configuration.

    Returns:
        Database connection URL
    """
    return config.get("DATABASE_URL") or DEFAULT_DATABASE_URL


def _redacted(db_url: str) -> str:
    return db_url.split("@")[1] if "@" in db_url else db_url


def init_database(config: Mapping[str, Any], echo: bool = False, create_tables: bool = False) -> None:
    """
    Initialize database engine and session factory.

    Args:
        config: Application configuration
        echo: If True, log all SQL statements
        create_tables: If True, create all tables (SQLite is always created)
    """
    global _engine, _SessionFactory

    if _engine is not None:
        logger.warning("Database already initialized")
        return

    db_url = get_database_url(config)
    engine_kwargs = {"echo": echo, "pool_pre_ping": True}

    if db_url.startswith("sqlite"):
        engine_kwargs["connect_args"] = {"check_same_thread": False}
        if ":memory:" in db_url or db_url in ("sqlite://", "sqlite:///"):
            # One shared connection, otherwise every checkout sees an empty database
            engine_kwargs["poolclass"] = StaticPool
        create_tables = True
    else:
        engine_kwargs.update({"pool_size": 10, "max_overflow": 20, "pool_recycle": 3600})

    _engine = create_engine(db_url, **engine_kwargs)
    _SessionFactory = scoped_session(sessionmaker(bind=_engine))

    if create_tables:
        Base.metadata.create_all(_engine)

    logger.info(f"Database initialized: {_redacted(db_url)}")


def ensure_tables() -> None:
    if _engine is None:
        raise RuntimeError("Database not initialized. Call init_database() first.")
    Base.metadata.create_all(_engine)


def get_session() -> Session:
    """
    Get a database session.

    Raises:
        RuntimeError: If database not initialized
    """
    if _SessionFactory is None:
        raise RuntimeError("Database not initialized. Call init_database() first.")

    return _SessionFactory()


@contextmanager
def session_scope() -> Generator[Session, None, None]:
    """
    Provide a transactional scope for database operations.

    Usage:
        with session_scope() as session:
            row = session.query(PlayerVariable).filter_by(player_id=player_id).first()
            # Automatically commits on success, rolls back on error
    """
    session = get_session()
    try:
        yield session
        session.commit()
    except Exception as e:
        session.rollback()
        logger.error(f"Database transaction failed: {e}")
        raise
    finally:
        session.close()


def close_database() -> None:
    global _engine, _SessionFactory

    if _SessionFactory:
        _SessionFactory.remove()
        _SessionFactory = None

    if _engine:
        _engine.dispose()
        _engine = None

    logger.info("Database connections closed")


def check_database_health() -> dict:
    try:
        with session_scope() as session:
            session.execute(text("SELECT 1"))

        return {"status": "healthy", "connected": True}
    except Exception as e:
        logger.error(f"Database health check failed: {e}")
        return {"status": "unhealthy", "connected": False, "error": str(e)}


# ============================================================================
# Redis Connection Management
# ============================================================================


def init_redis(config: Mapping[str, Any]) -> None:
    """
    Initialize Redis connection for the shared world variable cache.

    Redis is optional: on failure the client stays ``None`` and callers fall
    back to the database.
    """
    global _redis_client

    if _redis_client is not None:
        logger.warning("Redis already initialized")
        return

    redis_url = config.get("REDIS_URL")
    redis_host = config.get("REDIS_HOST", "localhost")
    redis_port = config.get("REDIS_PORT", 6379)

    try:
        if redis_url:
            _redis_client = redis.Redis.from_url(
                redis_url,
                decode_responses=True,
                socket_connect_timeout=5,
                socket_timeout=5,
            )
        else:
            _redis_client = redis.Redis(
                host=redis_host,
                port=redis_port,
                password=config.get("REDIS_PASSWORD"),
                db=config.get("REDIS_DB", 0),
                decode_responses=True,  # Return strings instead of bytes
                socket_connect_timeout=5,
                socket_timeout=5,
                health_check_interval=30,
            )

        # Test connection
        _redis_client.ping()

        logger.info(f"Redis initialized: {redis_url or f'{redis_host}:{redis_port}'}")
    except Exception as e:
        logger.error(f"Failed to initialize Redis: {e}")
        logger.warning("Continuing without Redis cache; world variables are read from the database")
        _redis_client = None


def get_redis() -> Optional[redis.Redis]:
    """Get Redis client instance, or None if not available."""
    return _redis_client


def close_redis() -> None:
    global _redis_client

    if _redis_client:
        _redis_client.close()
        _redis_client = None
        logger.info("Redis connection closed")


def check_redis_health() -> dict:
    if _redis_client is None:
        return {"status": "unavailable", "connected": False, "error": "Redis not initialized"}

    try:
        _redis_client.ping()
        info = _redis_client.info()

        return {
            "status": "healthy",
            "connected": True,
            "version": info.get("redis_version"),
            "uptime_seconds": info.get("uptime_in_seconds"),
        }
    except Exception as e:
        logger.error(f"Redis health check failed: {e}")
        return {"status": "unhealthy", "connected": False, "error": str(e)}


# ============================================================================
# Initialization Helper
# ============================================================================


def init_all(config: Mapping[str, Any], echo: bool = False, create_tables: bool = False) -> None:
    """Initialize both database and Redis."""
    init_database(config, echo=echo, create_tables=create_tables)
    init_redis(config)

    logger.info("All database connections initialized")


def close_all() -> None:
    close_database()
    close_redis()

    logger.info("All database connections closed")


def get_health_status() -> dict:
    return {"database": check_database_health(), "redis": check_redis_health()}
