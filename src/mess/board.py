"""The shared board: a sparse mapping from cell to tile (there is no dense grid)"""

import math
from dataclasses import dataclass
from typing import Iterable, Optional, Self
from uuid import UUID

from src.core.models import TileModel
from src.core.shared_types import Location
from src.mess.position import Position


def _scan_rank(d_row: int, d_col: int) -> tuple[int, float]:
    """
    Tie breaker between cells at the same distance.
    Straight steps (right, down, left, up) come before diagonals, each group clockwise starting from the right.
    """
    is_diagonal = 0 if d_row == 0 or d_col == 0 else 1
    angle = math.atan2(d_row, d_col) % (2 * math.pi)
    return is_diagonal, angle


@dataclass
class Board:
    position: dict[Position, TileModel]

    @classmethod
    def from_tiles(cls, tiles: Iterable[TileModel]) -> Self:
        position: dict[Position, TileModel] = {}
        for tile in tiles:
            if (
                tile.location == Location.BOARD
                and tile.board_row is not None
                and tile.board_col is not None
            ):
                position[Position(tile.board_row, tile.board_col)] = tile
        return cls(position)

    def tile_at(self, cell: Position) -> Optional[TileModel]:
        return self.position.get(cell)

    def is_occupied(self, cell: Position) -> bool:
        return cell in self.position

    def tiles(self) -> list[TileModel]:
        return list(self.position.values())

    def tiles_owned_by(self, player_id: UUID) -> list[TileModel]:
        return [tile for tile in self.position.values() if tile.owner_player_id == player_id]

    def place(self, tile: TileModel, cell: Position) -> None:
        """Put the tile on the cell (the caller makes sure the cell is free)."""
        self.lift(tile)
        tile.location = Location.BOARD
        tile.board_row = cell.row
        tile.board_col = cell.col
        self.position[cell] = tile

    def lift(self, tile: TileModel) -> None:
        """Take the tile off the board, if it is on it."""
        for cell, occupant in list(self.position.items()):
            if occupant.id == tile.id:
                del self.position[cell]

    def nearest_empty(
        self, target: Position, ignore: Optional[UUID] = None
    ) -> Position:
        """
        Closest free cell around `target`
        ----

        Search grows ring by ring (8-connected). The smallest euclidean distance wins, ties are broken by _scan_rank.
        A cell in ring r+1 can be closer than a corner of ring r, so keep searching until the ring radius alone
        is further away than the best candidate.
        `ignore` is a tile that is about to leave its cell, so that cell counts as free.
        """
        best: Optional[tuple[int, tuple[int, float], Position]] = None
        radius = 1
        while best is None or radius * radius <= best[0]:
            for d_row in range(-radius, radius + 1):
                for d_col in range(-radius, radius + 1):
                    if max(abs(d_row), abs(d_col)) != radius:
                        continue
                    cell = target.shifted(d_row, d_col)
                    if not cell.is_within_bounds():
                        continue
                    occupant = self.tile_at(cell)
                    if occupant is not None and occupant.id != ignore:
                        continue
                    candidate = (d_row * d_row + d_col * d_col, _scan_rank(d_row, d_col), cell)
                    if best is None or candidate[:2] < best[:2]:
                        best = candidate
            radius += 1
        return best[2]
