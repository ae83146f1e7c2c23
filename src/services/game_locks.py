"""One lock per game id: all writes (and reads) of a game are serialized, different games never wait on each other."""

import threading
from contextlib import contextmanager
from typing import Iterator
from uuid import UUID


class GameLocks:
    """
    Registry of per-game locks.

    A lock only lives while somebody holds or waits for it: the last user removes it again,
    so unknown or finished games leave nothing behind.
    """

    def __init__(self) -> None:
        self._guard = threading.Lock()
        self._locks: dict[UUID, threading.Lock] = {}
        self._users: dict[UUID, int] = {}

    def __len__(self) -> int:
        with self._guard:
            return len(self._locks)

    @contextmanager
    def hold(self, game_id: UUID) -> Iterator[None]:
        with self._guard:
            lock = self._locks.setdefault(game_id, threading.Lock())
            self._users[game_id] = self._users.get(game_id, 0) + 1
        try:
            with lock:
                yield
        finally:
            with self._guard:
                self._users[game_id] -= 1
                if self._users[game_id] == 0:
                    del self._users[game_id]
                    del self._locks[game_id]
