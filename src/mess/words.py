"""
Word detection on the board.

A word is a maximal run of 2+ adjacent tiles along a row or a column. Crossing words share tiles.
"""

from dataclasses import dataclass, field
from typing import Iterable
from uuid import UUID

from src.core.models import CompletedWordModel, TileModel
from src.core.shared_types import Direction
from src.mess.board import Board
from src.mess.position import Position

MIN_WORD_LENGTH = 2

# step that extends a run in the given direction
STEP: dict[Direction, tuple[int, int]] = {
    Direction.HORIZONTAL: (0, 1),
    Direction.VERTICAL: (1, 0),
}


@dataclass(frozen=True)
class DetectedWord:
    word: str
    direction: Direction
    start_row: int
    start_col: int
    tile_ids: tuple[UUID, ...] = field(default_factory=tuple)

    @property
    def length(self) -> int:
        return len(self.tile_ids)

    @property
    def key(self) -> tuple[str, int, int, Direction]:
        """What makes a word 'the same word' between two scans of the board."""
        return (self.word, self.start_row, self.start_col, self.direction)


def detect_words(tiles: Iterable[TileModel]) -> list[DetectedWord]:
    """
    Scan the sparse board for words.
    ----

    Only cells that hold a tile are visited: a run starts at an occupied cell whose predecessor along the axis is
    empty, and grows while the next cell is occupied. Horizontal words come first (row by row), then vertical
    words (column by column).
    """
    board = Board.from_tiles(tiles)
    words: list[DetectedWord] = []
    for direction in (Direction.HORIZONTAL, Direction.VERTICAL):
        d_row, d_col = STEP[direction]
        starts = [
            cell
            for cell in board.position
            if not board.is_occupied(cell.shifted(-d_row, -d_col))
        ]
        sort_key = (
            (lambda c: (c.row, c.col))
            if direction == Direction.HORIZONTAL
            else (lambda c: (c.col, c.row))
        )
        for start in sorted(starts, key=sort_key):
            run = _collect_run(board, start, d_row, d_col)
            if len(run) >= MIN_WORD_LENGTH:
                words.append(
                    DetectedWord(
                        word="".join(tile.letter for tile in run),
                        direction=direction,
                        start_row=start.row,
                        start_col=start.col,
                        tile_ids=tuple(tile.id for tile in run),
                    )
                )
    return words


def _collect_run(board: Board, start: Position, d_row: int, d_col: int) -> list[TileModel]:
    run: list[TileModel] = []
    cell = start
    while (tile := board.tile_at(cell)) is not None:
        run.append(tile)
        cell = cell.shifted(d_row, d_col)
    return run


def find_new_words(
    current: Iterable[DetectedWord], history: Iterable[CompletedWordModel]
) -> list[DetectedWord]:
    """Words on the board that are not in the history yet (same text, start and direction)."""
    known = {
        (record.word, record.start_row, record.start_col, record.direction)
        for record in history
    }
    return [word for word in current if word.key not in known]
