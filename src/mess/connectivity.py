"""Flood fill used to decide if a player's tiles form one orthogonally connected group"""

from collections import deque
from typing import Iterable

from src.mess.position import Position


def is_connected(positions: Iterable[Position]) -> bool:
    """
    Breadth-first search from an arbitrary tile.
    ----

    * no tiles: not connected
    * a single tile: connected
    * otherwise: connected iff every tile is reached. Diagonal contact does not count.
    """
    members = set(positions)
    if not members:
        return False

    start = next(iter(members))
    visited = {start}
    queue = deque([start])
    while queue:
        current = queue.popleft()
        for neighbor in current.orthogonal_neighbors():
            if neighbor in members and neighbor not in visited:
                visited.add(neighbor)
                queue.append(neighbor)

    return len(visited) == len(members)
