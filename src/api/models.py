"""Requests and Response models"""

from datetime import datetime
from typing import Annotated, Any, Literal, Optional, Union
from uuid import UUID

from pydantic import BaseModel, ConfigDict, Field, field_validator

from src.core.exceptions import ValidationError
from src.core.shared_types import Direction, Location, SenderType, Status
from src.mess.game import MAX_PIECE_COUNT, MIN_PIECE_COUNT

JOIN_CODE_LENGTH = 6
HIDDEN_TILE = "hidden"


def _required_name(value: str) -> str:
    if not value or not value.strip():
        raise ValidationError("Display name is required.")
    return value.strip()


def _join_code(value: str) -> str:
    code = value.strip().upper()
    if len(code) != JOIN_CODE_LENGTH or not code.isalnum():
        raise ValidationError(f"Cannot interpret {value!r} as a join code.")
    return code


# --- REQUEST MODELS ---
class GameSettingsRequest(BaseModel):
    piece_count: Optional[int] = None
    timer_enabled: bool = False
    timer_duration: int = 15

    @field_validator("piece_count")
    @classmethod
    def validate_piece_count(cls, value: Optional[int]) -> Optional[int]:
        if value is not None and not MIN_PIECE_COUNT <= value <= MAX_PIECE_COUNT:
            raise ValidationError(
                f"Piece count must be between {MIN_PIECE_COUNT} and {MAX_PIECE_COUNT}, got {value}."
            )
        return value

    @field_validator("timer_duration")
    @classmethod
    def validate_timer_duration(cls, value: int) -> int:
        if value <= 0:
            raise ValidationError("Timer duration must be a positive number of minutes.")
        return value


class CreateGameRequest(BaseModel):
    display_name: str
    color: Optional[str] = None
    character: Optional[dict[str, Any]] = None
    settings: GameSettingsRequest = Field(default_factory=GameSettingsRequest)

    @field_validator("display_name")
    @classmethod
    def validate_display_name(cls, value: str) -> str:
        return _required_name(value)


class JoinGameBody(BaseModel):
    display_name: str
    color: Optional[str] = None
    character: Optional[dict[str, Any]] = None

    @field_validator("display_name")
    @classmethod
    def validate_display_name(cls, value: str) -> str:
        return _required_name(value)


class JoinGameRequest(JoinGameBody):
    join_code: str

    @field_validator("join_code")
    @classmethod
    def validate_join_code(cls, value: str) -> str:
        return _join_code(value)


class PlayerActionBody(BaseModel):
    player_id: UUID


class PlayerActionRequest(PlayerActionBody):
    """start / split (mess it up) / claim-round / stuck / finish all only need to know who asks, for which game."""

    game_id: UUID


class BoardDestination(BaseModel):
    location: Literal["board"] = "board"
    row: int
    col: int


class RackDestination(BaseModel):
    location: Literal["rack"] = "rack"
    slot: int = 0


Destination = Annotated[
    Union[BoardDestination, RackDestination], Field(discriminator="location")
]


class MoveTileBody(BaseModel):
    player_id: UUID
    tile_id: UUID
    destination: Destination


class MoveTileRequest(MoveTileBody):
    game_id: UUID


class GetStateRequest(BaseModel):
    join_code: str
    player_id: Optional[UUID] = None

    @field_validator("join_code")
    @classmethod
    def validate_join_code(cls, value: str) -> str:
        return _join_code(value)


class FinalStatsRequest(BaseModel):
    game_id: UUID


class ValidateWordsRequest(BaseModel):
    words: list[str]


# --- RESPONSE MODELS ---
class JoinedGameResponse(BaseModel):
    game_id: UUID
    player_id: UUID
    join_code: str


class ActionResponse(BaseModel):
    success: bool = True


class MoveTileResponse(ActionResponse):
    new_words: list[str] = []
    displaced_tile_id: Optional[UUID] = None


class MessItUpResponse(ActionResponse):
    points_awarded: int
    new_words: list[str]
    tiles_remaining: int
    game_finished: bool


class ClaimRoundResponse(ActionResponse):
    round_winner_id: UUID
    claimed: bool


class StuckResponse(ActionResponse):
    tiles_drawn: int


class PlayerStatsView(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    player_id: UUID
    player_name: str
    color: str
    character: dict[str, Any]
    total_points: int
    word_count: int
    total_letters: int
    mess_count: int
    stuck_count: int
    longest_word: str
    total_vowels: int
    total_consonants: int


class FinishGameResponse(ActionResponse):
    winner_id: UUID
    stats: list[PlayerStatsView]


class FinalStatsResponse(BaseModel):
    game_id: UUID
    stats: list[PlayerStatsView]


class ValidateWordsResponse(BaseModel):
    results: dict[str, bool]


class GameSettingsView(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    piece_count: int
    timer_enabled: bool
    timer_duration: int


class GameView(BaseModel):
    id: UUID
    join_code: str
    creator_id: UUID
    status: Status
    max_players: int
    tiles_in_bag: int
    total_tiles_initial: int
    current_round_winner_id: Optional[UUID]
    is_final_round: bool
    winner_id: Optional[UUID]
    settings: GameSettingsView
    timer_started_at: Optional[datetime]
    timer_ends_at: Optional[datetime]
    version: int


class PlayerView(BaseModel):
    id: UUID
    display_name: str
    is_creator: bool
    is_active: bool
    color: str
    character: dict[str, Any]
    mess_bonus_count: int
    stuck_penalty_count: int
    # own rack: tile ids, other racks: one HIDDEN_TILE per tile
    rack: list[str]


class TileView(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: UUID
    letter: str
    value: int
    location: Location
    owner_player_id: Optional[UUID]
    board_row: Optional[int]
    board_col: Optional[int]
    last_moved_by_player_id: Optional[UUID]


class CompletedWordView(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    word: str
    player_id: UUID
    direction: Direction
    start_row: int
    start_col: int
    length: int
    tile_ids: list[UUID]


class ChatMessageView(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: UUID
    sender_type: SenderType
    sender_player_id: Optional[UUID]
    content: str
    metadata: dict[str, Any]
    created_at: datetime


class ScoreView(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    player_id: UUID
    word_count: int
    total_letters: int
    total_points: int
    stuck_penalty: int
    mess_bonus: int


class GameStateResponse(BaseModel):
    game: GameView
    players: list[PlayerView]
    tiles: list[TileView]
    completed_words: list[CompletedWordView]
    chat_messages: list[ChatMessageView]
    scores: list[ScoreView]
