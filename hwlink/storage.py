"""In-memory storage backend for tests and local development.

This module provides a minimal storage layer that mirrors the interface of
``hwlink.db_storage`` but keeps everything in Python dictionaries.  The test
suite relies on it to avoid the need for external services like PostgreSQL or
Redis.  Nothing stored here is shared between processes, so replay protection
is local to one instance when this backend is used.
"""

from __future__ import annotations

import copy
from typing import Any, Dict, Optional, Protocol, Tuple


class PersistentStorage(Protocol):
    """Key-value contract the link authority needs from its host.

    Player variables are scoped to one player; world variables are shared by
    every instance of the world.
    """

    def get_player_variable(self, player_id: int, key: str) -> Optional[int]: ...

    def set_player_variable(self, player_id: int, key: str, value: int) -> None: ...

    def fetch_world_variable(self, key: str) -> Any: ...

    def set_world_variable(self, key: str, value: Any) -> None: ...


class MemoryStorage:
    """Dictionary-backed ``PersistentStorage``.

    Values are deep-copied on the way in and out so callers can never mutate
    stored state by holding on to a reference.
    """

    def __init__(self) -> None:
        self.player_variables: Dict[Tuple[int, str], int] = {}
        self.world_variables: Dict[str, Any] = {}

    def reset(self) -> None:
        """Drop everything. The tests call this during setup to ensure a clean state."""
        self.player_variables.clear()
        self.world_variables.clear()

    def get_player_variable(self, player_id: int, key: str) -> Optional[int]:
        return self.player_variables.get((player_id, key))

    def set_player_variable(self, player_id: int, key: str, value: int) -> None:
        self.player_variables[(player_id, key)] = int(value)

    def fetch_world_variable(self, key: str) -> Any:
        return copy.deepcopy(self.world_variables.get(key))

    def set_world_variable(self, key: str, value: Any) -> None:
        self.world_variables[key] = copy.deepcopy(value)

    def describe(self) -> Dict[str, Any]:
        return {"status": "healthy", "backend": "memory", "shared": False}
