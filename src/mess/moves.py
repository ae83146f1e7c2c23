"""Where a tile can be moved to"""

from dataclasses import dataclass

from src.core.exceptions import ValidationError
from src.mess.position import MAX_COORDINATE, Position
from src.mess.rack import clamp_slot


@dataclass(frozen=True)
class BoardTarget:
    row: int
    col: int

    @property
    def cell(self) -> Position:
        return Position(self.row, self.col)

    def validate(self) -> None:
        if not self.cell.is_within_bounds():
            raise ValidationError(
                f"Board cell ({self.row}, {self.col}) is outside the playable area (|row|, |col| <= {MAX_COORDINATE})."
            )


@dataclass(frozen=True)
class RackTarget:
    slot: int

    @property
    def visible_slot(self) -> int:
        """Any integer is accepted, it lands in the nearest visible slot."""
        return clamp_slot(self.slot)


Destination = BoardTarget | RackTarget
