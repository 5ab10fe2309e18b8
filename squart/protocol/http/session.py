from __future__ import annotations

import threading
import uuid
from collections import OrderedDict
from typing import Optional

from ...engine.game import Game


DEFAULT_MAX_SESSIONS = 1024


class InMemorySessionStore:
    """Thread-safe in-memory store of game sessions.

    Sessions are kept in creation order; once ``max_sessions`` is exceeded the
    oldest ones are dropped. Nothing survives a process restart.
    """

    def __init__(self, max_sessions: int = DEFAULT_MAX_SESSIONS) -> None:
        if max_sessions < 1:
            raise ValueError("max_sessions must be >= 1")
        self.max_sessions = max_sessions
        self._lock = threading.RLock()
        self._games: "OrderedDict[str, Game]" = OrderedDict()

    def __len__(self) -> int:
        with self._lock:
            return len(self._games)

    def create(self, game: Optional[Game] = None) -> str:
        """Store ``game`` (a default game if omitted) and return its ``game_id``."""
        gid = uuid.uuid4().hex
        with self._lock:
            self._games[gid] = game if game is not None else Game.new()
            while len(self._games) > self.max_sessions:
                self._games.popitem(last=False)
        return gid

    def get(self, game_id: str) -> Optional[Game]:
        with self._lock:
            return self._games.get(game_id)

    def set(self, game_id: str, game: Game) -> None:
        with self._lock:
            if game_id not in self._games:
                raise KeyError(game_id)
            self._games[game_id] = game

    def delete(self, game_id: str) -> bool:
        with self._lock:
            return self._games.pop(game_id, None) is not None
