"""Registry of players currently connected to this instance."""

import threading
from dataclasses import dataclass, field
from typing import Dict, List, Optional, Set


@dataclass
class ConnectedPlayer:
    id: int
    name: str
    sids: Set[str] = field(default_factory=set)


class PlayerRegistry:
    """Tracks which sockets belong to which player.

    A player may hold several sockets (reconnects, multiple tabs); it stays
    connected until the last one leaves.
    """

    def __init__(self):
        self._lock = threading.RLock()
        self._players: Dict[int, ConnectedPlayer] = {}
        self._by_sid: Dict[str, int] = {}

    def join(self, player_id: int, name: str, sid: str) -> ConnectedPlayer:
        with self._lock:
            previous = self._by_sid.get(sid)
            if previous is not None and previous != player_id:
                self.leave(sid)

            player = self._players.get(player_id)
            if player is None:
                player = ConnectedPlayer(id=player_id, name=name)
                self._players[player_id] = player
            elif name:
                player.name = name

            player.sids.add(sid)
            self._by_sid[sid] = player_id
            return player

    def leave(self, sid: str) -> Optional[ConnectedPlayer]:
        """Drop a socket; returns the player if this was their last one."""
        with self._lock:
            player_id = self._by_sid.pop(sid, None)
            if player_id is None:
                return None

            player = self._players.get(player_id)
            if player is None:
                return None

            player.sids.discard(sid)
            if player.sids:
                return None

            return self._players.pop(player_id)

    def find(self, player_id: int) -> Optional[ConnectedPlayer]:
        with self._lock:
            return self._players.get(player_id)

    def sids_for(self, player_id: int) -> List[str]:
        with self._lock:
            player = self._players.get(player_id)
            return sorted(player.sids) if player else []

    def all(self) -> List[ConnectedPlayer]:
        with self._lock:
            return list(self._players.values())

    def __len__(self) -> int:
        with self._lock:
            return len(self._players)
