"""
Database-backed storage for HWLink - Production version.

Replaces the in-memory ``hwlink.storage`` with PostgreSQL persistence, using
Redis as a write-through cache for world variables so every instance of the
world reads the same state cheaply.
"""

import json
import logging
from typing import Any, Dict, Optional

from sqlalchemy.exc import SQLAlchemyError

from hwlink.database import get_redis, session_scope
from hwlink.errors import StorageError, StorageUnavailableError
from hwlink.models import PlayerVariable, WorldVariable, utc_now

logger = logging.getLogger(__name__)


class DatabaseStorage:
    """``PersistentStorage`` over SQLAlchemy with an optional Redis cache."""

    def __init__(self, world_name: str):
        self.world_name = world_name

    def _cache_key(self, key: str) -> str:
        return f"hwlink:{self.world_name}:{key}"

    # ========================================================================
    # Player variables
    # ========================================================================

    def get_player_variable(self, player_id: int, key: str) -> Optional[int]:
        """
        Read a per-player integer variable.

        Returns:
            Stored value or None when the player has never had it set
        """
        try:
            with session_scope() as session:
                row = (
                    session.query(PlayerVariable)
                    .filter_by(world=self.world_name, player_id=player_id, key=key)
                    .first()
                )
                return row.value if row else None
        except RuntimeError as e:
            raise StorageUnavailableError(str(e)) from e
        except SQLAlchemyError as e:
            raise StorageError(f"Failed to read {key} for player {player_id}: {e}") from e

    def set_player_variable(self, player_id: int, key: str, value: int) -> None:
        try:
            with session_scope() as session:
                row = (
                    session.query(PlayerVariable)
                    .filter_by(world=self.world_name, player_id=player_id, key=key)
                    .first()
                )
                if row:
                    row.value = int(value)
                    row.updated_at = utc_now()
                else:
                    session.add(
                        PlayerVariable(world=self.world_name, player_id=player_id, key=key, value=int(value))
                    )
        except RuntimeError as e:
            raise StorageUnavailableError(str(e)) from e
        except SQLAlchemyError as e:
            raise StorageError(f"Failed to write {key} for player {player_id}: {e}") from e

    # ========================================================================
    # World variables (Redis cache + database)
    # ========================================================================

    def fetch_world_variable(self, key: str) -> Any:
        """
        Read a world variable (try Redis first, fallback to database).
        """
        redis_client = get_redis()
        if redis_client:
            try:
                data = redis_client.get(self._cache_key(key))
                if data is not None:
                    return json.loads(data)
            except Exception as e:
                logger.error(f"Redis world variable retrieval failed: {e}")

        try:
            with session_scope() as session:
                row = session.query(WorldVariable).filter_by(world=self.world_name, key=key).first()
                value = row.value if row else None
        except RuntimeError as e:
            raise StorageUnavailableError(str(e)) from e
        except SQLAlchemyError as e:
            raise StorageError(f"Failed to read world variable {key}: {e}") from e

        if redis_client and value is not None:
            try:
                redis_client.set(self._cache_key(key), json.dumps(value))
            except Exception as e:
                logger.error(f"Redis world variable caching failed: {e}")

        return value

    def set_world_variable(self, key: str, value: Any) -> None:
        """
        Replace a world variable in the database, then refresh the Redis copy.
        """
        try:
            with session_scope() as session:
                row = session.query(WorldVariable).filter_by(world=self.world_name, key=key).first()
                if row:
                    row.value = value
                    row.updated_at = utc_now()
                else:
                    session.add(WorldVariable(world=self.world_name, key=key, value=value))
        except RuntimeError as e:
            raise StorageUnavailableError(str(e)) from e
        except SQLAlchemyError as e:
            raise StorageError(f"Failed to write world variable {key}: {e}") from e

        redis_client = get_redis()
        if redis_client:
            try:
                redis_client.set(self._cache_key(key), json.dumps(value))
            except Exception as e:
                # A stale cache entry would hide this write from other instances
                logger.error(f"Redis world variable update failed: {e}")
                try:
                    redis_client.delete(self._cache_key(key))
                except Exception:
                    logger.error("Redis world variable invalidation failed", exc_info=True)

    def describe(self) -> Dict[str, Any]:
        from hwlink.database import get_health_status

        health = get_health_status()
        status = "healthy" if health["database"]["status"] == "healthy" else "unhealthy"
        return {"status": status, "backend": "database", "shared": True, **health}
