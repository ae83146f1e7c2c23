"""
Boundary layer data model(s).

These objects can be used to communicate with the Service.
Hence, both the API layer (higher) and domain/db layers (lower) will use model(s) defined here to send to/receive from the Service
(Decouples the data model specific to the DB layer, API layer, or domain layer from the information needed to send across boundaries)
"""

from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Any, Optional
from uuid import UUID

from src.core.shared_types import Direction, Location, SenderType, Status


def utc_now() -> datetime:
    return datetime.now(timezone.utc)


@dataclass
class GameSettingsModel:
    piece_count: int = 100
    timer_enabled: bool = False
    timer_duration: int = 15  # minutes, advisory only


@dataclass
class TileModel:
    """
    A letter tile that has left the bag.

    For rack tiles `board_col` holds the rack slot and `board_row` is None.
    """

    id: UUID
    letter: str
    value: int
    location: Location
    owner_player_id: Optional[UUID]
    board_row: Optional[int] = None
    board_col: Optional[int] = None
    last_moved_by_player_id: Optional[UUID] = None
    dealt_to_player_id: Optional[UUID] = None


@dataclass
class PlayerModel:
    id: UUID
    display_name: str
    is_creator: bool
    color: str
    is_active: bool = True
    character: dict[str, Any] = field(default_factory=dict)
    mess_bonus_count: int = 0
    stuck_penalty_count: int = 0
    scored_words: list[str] = field(default_factory=list)


@dataclass
class CompletedWordModel:
    """History record written the first time a word shows up on the board."""

    id: UUID
    player_id: UUID
    word: str
    direction: Direction
    start_row: int
    start_col: int
    length: int
    tile_ids: list[UUID] = field(default_factory=list)
    created_at: datetime = field(default_factory=utc_now)


@dataclass
class ChatMessageModel:
    id: UUID
    sender_type: SenderType
    content: str
    sender_player_id: Optional[UUID] = None
    metadata: dict[str, Any] = field(default_factory=dict)
    created_at: datetime = field(default_factory=utc_now)


@dataclass
class PlayerStatsModel:
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


@dataclass
class GameModel:
    """Transport-safe representation of a game used between API, Service, DB, and Game layers."""

    id: UUID
    join_code: str
    creator_id: UUID
    status: Status
    max_players: int
    letter_bag: list[str]
    total_tiles_initial: int
    settings: GameSettingsModel
    players: list[PlayerModel] = field(default_factory=list)
    tiles: list[TileModel] = field(default_factory=list)
    completed_words: list[CompletedWordModel] = field(default_factory=list)
    current_round_winner_id: Optional[UUID] = None
    is_final_round: bool = False
    winner_id: Optional[UUID] = None
    final_stats: Optional[list[PlayerStatsModel]] = None
    timer_started_at: Optional[datetime] = None
    timer_ends_at: Optional[datetime] = None
    created_at: datetime = field(default_factory=utc_now)
    version: int = 0
