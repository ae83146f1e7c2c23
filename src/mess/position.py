"""
A cell on the (unbounded) board

(placed in its own module as multiple other modules need to import it)
"""

from __future__ import annotations

from dataclasses import dataclass

# The board has no real edge. Only reject coordinates nobody could reach by dragging.
MAX_COORDINATE = 10_000

# right, down, left, up
ORTHOGONAL_STEPS: list[tuple[int, int]] = [(0, 1), (1, 0), (0, -1), (-1, 0)]


@dataclass(frozen=True, order=True)
class Position:
    row: int
    col: int

    def shifted(self, d_row: int, d_col: int) -> Position:
        return Position(self.row + d_row, self.col + d_col)

    def orthogonal_neighbors(self) -> list[Position]:
        return [self.shifted(d_row, d_col) for d_row, d_col in ORTHOGONAL_STEPS]

    def is_within_bounds(self) -> bool:
        return abs(self.row) <= MAX_COORDINATE and abs(self.col) <= MAX_COORDINATE
