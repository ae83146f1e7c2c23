"""
The Game class is the entrypoint into the domain layer for the service layer.
It owns the players, tiles and bag of one game and implements every rule of a round:
moving tiles, detecting completed words, MESS IT UP (round completion + redistribution), being stuck and finishing.

The Game never does I/O. Dictionary lookups come in through the WordChecker protocol and everything worth telling
the players is collected as GameEvents for the service to publish.
"""

from copy import deepcopy
from dataclasses import dataclass, field
from datetime import datetime, timedelta, timezone
from typing import Any, Callable, Iterable, Optional, Protocol, Self
from uuid import UUID, uuid4

from src.core.exceptions import (
    ConflictError,
    ForbiddenError,
    GameFinishedError,
    GameFullError,
    InvalidStateError,
    NotFoundError,
    ValidationError,
)
from src.core.models import (
    CompletedWordModel,
    GameModel,
    GameSettingsModel,
    PlayerModel,
    PlayerStatsModel,
    TileModel,
)
from src.core.shared_types import EventKind, Location, Status
from src.mess.board import Board
from src.mess.connectivity import is_connected
from src.mess.events import GameEvent
from src.mess.letter_bag import LetterBag, letter_value
from src.mess.moves import BoardTarget, Destination, RackTarget
from src.mess.position import Position
from src.mess.rack import first_free_slot, shift_insert
from src.mess.scoring import MESS_BONUS, WORD_POINTS, final_statistics, rank_by_points, rank_by_words
from src.mess.words import DetectedWord, detect_words, find_new_words

INITIAL_TILES = 4
MESS_TILES = 2
STUCK_TILES = 2
DEFAULT_MAX_PLAYERS = 8
MIN_PIECE_COUNT = 1
MAX_PIECE_COUNT = 1000
COMMENT_WORD_LENGTH = 6

PLAYER_COLORS = [
    "#E05243",  # red
    "#2D9CDB",  # blue
    "#27AE60",  # green
    "#9B51E0",  # purple
    "#F2994A",  # orange
    "#EB5757",  # pink
    "#16A085",  # teal
    "#8E44AD",  # deep purple
    "#2980B9",  # dark blue
    "#C0392B",  # dark red
]

STATUS_ORDER = [Status.WAITING, Status.IN_PROGRESS, Status.FINISHED]


class WordChecker(Protocol):
    """Just the part of the dictionary the game needs: the strict (authoritative) verdict for a batch of words."""

    def validate_all(self, words: Iterable[str]) -> dict[str, bool]: ...


@dataclass
class MoveResult:
    new_words: list[DetectedWord]
    displaced_tile_id: Optional[UUID] = None


@dataclass
class MessResult:
    points_awarded: int
    new_words: list[str]
    tiles_dealt: dict[UUID, int]
    tiles_remaining: int
    game_finished: bool


def player_color(index: int) -> str:
    return PLAYER_COLORS[index % len(PLAYER_COLORS)]


def _clean_name(display_name: str) -> str:
    name = (display_name or "").strip()
    if not name:
        raise ValidationError("Display name is required.")
    return name


@dataclass
class Game:
    # --- DOMAIN LAYER API CALLED BY SERVICE---

    id: UUID
    join_code: str
    creator_id: UUID
    status: Status
    max_players: int
    bag: LetterBag
    total_tiles_initial: int
    settings: GameSettingsModel
    players: list[PlayerModel]
    tiles: list[TileModel]
    completed_words: list[CompletedWordModel]
    current_round_winner_id: Optional[UUID] = None
    is_final_round: bool = False
    winner_id: Optional[UUID] = None
    final_stats: Optional[list[PlayerStatsModel]] = None
    timer_started_at: Optional[datetime] = None
    timer_ends_at: Optional[datetime] = None
    created_at: datetime = field(default_factory=lambda: datetime.now(timezone.utc))
    version: int = 0
    events: list[GameEvent] = field(default_factory=list)

    @classmethod
    def from_model(cls, model: GameModel) -> Self:
        """Work on a private copy, so a rejected operation never touches the stored model."""
        model = deepcopy(model)
        return cls(
            id=model.id,
            join_code=model.join_code,
            creator_id=model.creator_id,
            status=Status(model.status),
            max_players=model.max_players,
            bag=LetterBag(model.letter_bag),
            total_tiles_initial=model.total_tiles_initial,
            settings=model.settings,
            players=model.players,
            tiles=model.tiles,
            completed_words=model.completed_words,
            current_round_winner_id=model.current_round_winner_id,
            is_final_round=model.is_final_round,
            winner_id=model.winner_id,
            final_stats=model.final_stats,
            timer_started_at=model.timer_started_at,
            timer_ends_at=model.timer_ends_at,
            created_at=model.created_at,
            version=model.version,
        )

    def to_model(self) -> GameModel:
        """Encode back into a format the Service layer uses"""
        return GameModel(
            id=self.id,
            join_code=self.join_code,
            creator_id=self.creator_id,
            status=self.status,
            max_players=self.max_players,
            letter_bag=list(self.bag.letters),
            total_tiles_initial=self.total_tiles_initial,
            settings=self.settings,
            players=self.players,
            tiles=self.tiles,
            completed_words=self.completed_words,
            current_round_winner_id=self.current_round_winner_id,
            is_final_round=self.is_final_round,
            winner_id=self.winner_id,
            final_stats=self.final_stats,
            timer_started_at=self.timer_started_at,
            timer_ends_at=self.timer_ends_at,
            created_at=self.created_at,
            version=self.version,
        )

    @classmethod
    def new_game(
        cls,
        display_name: str,
        join_code: str,
        settings: Optional[GameSettingsModel] = None,
        color: Optional[str] = None,
        character: Optional[dict[str, Any]] = None,
        max_players: int = DEFAULT_MAX_PLAYERS,
        letter_bag: Optional[LetterBag] = None,
    ) -> Self:
        """
        Create a game waiting for players, with the creator already holding 4 tiles.
        ----

        The bag is scaled to `settings.piece_count` unless a bag is supplied.
        """
        name = _clean_name(display_name)
        settings = settings or GameSettingsModel()
        if not MIN_PIECE_COUNT <= settings.piece_count <= MAX_PIECE_COUNT:
            raise ValidationError(
                f"Piece count must be between {MIN_PIECE_COUNT} and {MAX_PIECE_COUNT}, got {settings.piece_count}."
            )

        bag = letter_bag if letter_bag is not None else LetterBag.scaled(settings.piece_count)
        creator = PlayerModel(
            id=uuid4(),
            display_name=name,
            is_creator=True,
            color=color or player_color(0),
            character=character or {},
        )
        game = cls(
            id=uuid4(),
            join_code=join_code,
            creator_id=creator.id,
            status=Status.WAITING,
            max_players=max_players,
            bag=bag,
            total_tiles_initial=len(bag),
            settings=settings,
            players=[creator],
            tiles=[],
            completed_words=[],
        )
        game._deal(creator, INITIAL_TILES)
        return game

    @property
    def creator(self) -> PlayerModel:
        return self.player(self.creator_id)

    @property
    def board(self) -> Board:
        return Board.from_tiles(self.tiles)

    def player(self, player_id: UUID) -> PlayerModel:
        for player in self.players:
            if player.id == player_id:
                return player
        raise NotFoundError(f"Player {player_id} is not part of this game.")

    def tile(self, tile_id: UUID) -> TileModel:
        for tile in self.tiles:
            if tile.id == tile_id:
                return tile
        raise NotFoundError(f"Tile {tile_id} does not exist in this game.")

    def rack_tiles(self, player_id: UUID) -> list[TileModel]:
        """Tiles on the player's rack, ordered by slot."""
        return sorted(
            (
                tile
                for tile in self.tiles
                if tile.location == Location.RACK and tile.owner_player_id == player_id
            ),
            key=lambda tile: tile.board_col if tile.board_col is not None else 0,
        )

    def drain_events(self) -> list[GameEvent]:
        events, self.events = self.events, []
        return events

    # --- OPERATIONS ---
    def register_player(
        self,
        display_name: str,
        color: Optional[str] = None,
        character: Optional[dict[str, Any]] = None,
    ) -> PlayerModel:
        """
        Add a player.
        ----

        Joining a game that already started deals the newcomer (up to) 4 tiles straight away.
        Joining a waiting game leaves the rack empty until the creator starts the game.
        """
        name = _clean_name(display_name)
        if self.status == Status.FINISHED:
            raise GameFinishedError("Game has already finished.")
        if len(self.players) >= self.max_players:
            raise GameFullError(f"Game is full ({self.max_players} players).")

        player = PlayerModel(
            id=uuid4(),
            display_name=name,
            is_creator=False,
            color=color or player_color(len(self.players)),
            character=character or {},
        )
        self.players.append(player)
        if self.status == Status.IN_PROGRESS:
            self._deal(player, INITIAL_TILES)
            self._check_bag_empty()

        self._emit(
            EventKind.PLAYER_JOINED,
            f"{player.display_name} joined the game",
            {"player_id": str(player.id)},
        )
        return player

    def start(self, player_id: UUID) -> None:
        """Creator starts the game: everybody without tiles gets 4."""
        player = self.player(player_id)
        if not player.is_creator:
            raise ForbiddenError("Only the creator can start the game.")
        if self.status != Status.WAITING:
            raise InvalidStateError(f"Game has already started. status: {self.status}")

        for other in self.players:
            if not any(tile.owner_player_id == other.id for tile in self.tiles):
                self._deal(other, INITIAL_TILES)
            other.is_active = True

        if self.settings.timer_enabled:
            self.timer_started_at = datetime.now(timezone.utc)
            self.timer_ends_at = self.timer_started_at + timedelta(
                minutes=self.settings.timer_duration
            )

        self._change_status(Status.IN_PROGRESS)
        self._check_bag_empty()
        self._emit(
            EventKind.GAME_STARTED,
            f"Game started! Each player gets {INITIAL_TILES} tiles.",
        )

    def move_tile(self, player_id: UUID, tile_id: UUID, destination: Destination) -> MoveResult:
        """
        Move a tile onto the board or onto the player's own rack.
        ----

        1. the game must be in progress, the player and tile must exist
        2. racks are private: a tile on someone else's rack cannot be touched
        3. board: an occupant of the target cell is nudged to the nearest free cell
        4. rack: shift-insert into the visible slot of the target
        5. after a board move, words that are new to the history get recorded
        """
        self._assert_in_progress()
        player = self.player(player_id)
        tile = self.tile(tile_id)
        if isinstance(destination, BoardTarget):
            destination.validate()

        if (
            tile.location == Location.RACK
            and tile.owner_player_id is not None
            and tile.owner_player_id != player.id
        ):
            raise ForbiddenError("You cannot move a tile from another player's rack.")

        if isinstance(destination, BoardTarget):
            displaced = self._move_to_board(player, tile, destination.cell)
            new_words = self._record_new_words(player)
            return MoveResult(new_words=new_words, displaced_tile_id=displaced)

        if isinstance(destination, RackTarget):
            self._move_to_rack(player, tile, destination.visible_slot)
            return MoveResult(new_words=[])

        raise ValidationError(f"Unknown destination: {destination!r}")

    def claim_round(self, player_id: UUID) -> UUID:
        """Reserve the round for the player, unless somebody already did. Returns whoever holds the round."""
        self._assert_in_progress()
        self.player(player_id)
        if self.current_round_winner_id is None:
            self.current_round_winner_id = player_id
        return self.current_round_winner_id

    def mess_it_up(self, player_id: UUID, checker: WordChecker) -> MessResult:
        """
        Complete the round.
        ----

        Preconditions (checked in this order, cheapest first):
        1. game in progress
        2. round not claimed by somebody else
        3. empty rack
        4. at least one tile on the board
        5. the player's board tiles are connected
        6. every word on the whole board is valid

        Then: bank the bonus and new words, release the round, deal new tiles and finish the game when the bag ran dry.
        """
        self._assert_in_progress()
        player = self.player(player_id)

        if (
            self.current_round_winner_id is not None
            and self.current_round_winner_id != player_id
        ):
            raise ConflictError(
                "Another player has already won this round!",
                {"round_winner_id": str(self.current_round_winner_id)},
            )
        if self.rack_tiles(player_id):
            raise ConflictError("Your rack must be empty to MESS IT UP!")

        board = self.board
        own_tiles = board.tiles_owned_by(player_id)
        if not own_tiles:
            raise ConflictError("You must have tiles on the board!")

        own_cells = [cell for cell, tile in board.position.items() if tile.owner_player_id == player_id]
        if not is_connected(own_cells):
            raise ConflictError("All your tiles must be connected!")

        words = detect_words(board.tiles())
        verdicts = checker.validate_all({word.word for word in words})
        invalid = sorted(word for word, valid in verdicts.items() if not valid)
        if invalid:
            raise ConflictError(
                f"Invalid words on board: {', '.join(invalid)}",
                {"invalid_words": invalid},
            )

        # bank words that contain at least one of the player's tiles
        own_ids = {tile.id for tile in own_tiles}
        banked = set(player.scored_words)
        new_words: list[str] = []
        for word in words:
            text = word.word.upper()
            if text in banked or own_ids.isdisjoint(word.tile_ids):
                continue
            banked.add(text)
            new_words.append(text)
            player.scored_words.append(text)

        points = MESS_BONUS + WORD_POINTS * len(new_words)
        player.mess_bonus_count += 1
        self.current_round_winner_id = None

        dealt = self._redistribute(player)
        self._emit(
            EventKind.SPLIT,
            f"{player.display_name} used MESS IT UP! (+{points} points). "
            f"Everyone gets {MESS_TILES} new tiles. {len(self.bag)} tiles remaining.",
            {"player_id": str(player.id), "word_points": WORD_POINTS * len(new_words), "new_words": new_words},
            commentary={"player_name": player.display_name},
        )

        finished = False
        if self.bag.is_empty:
            self.is_final_round = True
            self._finish(rank_by_points, by_points=True)
            finished = True

        return MessResult(
            points_awarded=points,
            new_words=new_words,
            tiles_dealt=dealt,
            tiles_remaining=len(self.bag),
            game_finished=finished,
        )

    def stuck(self, player_id: UUID) -> int:
        """Draw (up to) 2 tiles at a 5 point penalty. Returns how many tiles were drawn."""
        self._assert_in_progress()
        player = self.player(player_id)
        if self.bag.is_empty:
            raise ConflictError("No tiles left in the bag!")

        drawn = self._deal(player, STUCK_TILES)
        player.stuck_penalty_count += 1
        self._check_bag_empty()
        self._emit(
            EventKind.STUCK,
            f"{player.display_name} is stuck! Drew {len(drawn)} new tiles (-5 points).",
            {"player_id": str(player.id), "tiles_drawn": len(drawn)},
        )
        return len(drawn)

    def finish(self, player_id: UUID) -> list[PlayerStatsModel]:
        """Explicit end of the game, once the bag and every rack are empty. Returns the ranked statistics."""
        self._assert_in_progress()
        self.player(player_id)
        racks_empty = not any(tile.location == Location.RACK for tile in self.tiles)
        if not self.bag.is_empty or not racks_empty:
            raise ConflictError(
                "Game can only finish when bag is empty and all racks are empty.",
                {"tiles_in_bag": len(self.bag), "racks_empty": racks_empty},
            )
        return self._finish(rank_by_words, by_points=False)

    def statistics(self) -> list[PlayerStatsModel]:
        return final_statistics(self.players, self.tiles, self.completed_words)

    # -- PRIVATE HELPERS ---
    def _assert_in_progress(self) -> None:
        if self.status == Status.FINISHED:
            raise GameFinishedError("Game has already finished.")
        if self.status != Status.IN_PROGRESS:
            raise InvalidStateError(f"Game is not in progress. status: {self.status}")

    def _change_status(self, new_status: Status) -> None:
        """status only moves forward: waiting -> in_progress -> finished"""
        if STATUS_ORDER.index(new_status) < STATUS_ORDER.index(self.status):
            raise InvalidStateError(f"Cannot go back from {self.status} to {new_status}.")
        self.status = new_status

    def _check_bag_empty(self) -> None:
        if self.status == Status.IN_PROGRESS and self.bag.is_empty:
            self.is_final_round = True

    def _emit(
        self,
        kind: EventKind,
        content: str,
        metadata: Optional[dict[str, Any]] = None,
        commentary: Optional[dict[str, Any]] = None,
    ) -> None:
        event_metadata = {"type": kind.value, **(metadata or {})}
        self.events.append(GameEvent(kind, content, event_metadata, commentary))

    def _deal(self, player: PlayerModel, amount: int) -> list[TileModel]:
        """Draw up to `amount` letters into the first free rack slots of the player."""
        occupied = [
            tile.board_col
            for tile in self.rack_tiles(player.id)
            if tile.board_col is not None
        ]
        dealt: list[TileModel] = []
        for letter in self.bag.draw(amount):
            slot = first_free_slot(occupied)
            occupied.append(slot)
            tile = TileModel(
                id=uuid4(),
                letter=letter,
                value=letter_value(letter),
                location=Location.RACK,
                owner_player_id=player.id,
                board_row=None,
                board_col=slot,
                last_moved_by_player_id=player.id,
                dealt_to_player_id=player.id,
            )
            self.tiles.append(tile)
            dealt.append(tile)
        return dealt

    def _move_to_board(self, player: PlayerModel, tile: TileModel, target: Position) -> Optional[UUID]:
        """Place the tile, nudging an occupant aside. Returns the id of the nudged tile (if any)."""
        board = self.board
        displaced_id: Optional[UUID] = None
        occupant = board.tile_at(target)
        if occupant is not None and occupant.id != tile.id:
            free_cell = board.nearest_empty(target, ignore=tile.id)
            board.lift(tile)
            board.place(occupant, free_cell)
            occupant.last_moved_by_player_id = player.id
            displaced_id = occupant.id

        board.place(tile, target)
        tile.owner_player_id = player.id
        tile.last_moved_by_player_id = player.id
        return displaced_id

    def _move_to_rack(self, player: PlayerModel, tile: TileModel, slot: int) -> None:
        rack = {
            other.board_col: other.id
            for other in self.rack_tiles(player.id)
            if other.id != tile.id and other.board_col is not None
        }
        for tile_id, new_slot in shift_insert(rack, slot).items():
            self.tile(tile_id).board_col = new_slot

        tile.location = Location.RACK
        tile.board_row = None
        tile.board_col = slot
        tile.owner_player_id = player.id
        tile.last_moved_by_player_id = player.id

    def _record_new_words(self, player: PlayerModel) -> list[DetectedWord]:
        """
        Diff the board against the history. Running this twice on the same board records nothing the second time.
        """
        new_words = find_new_words(detect_words(self.tiles), self.completed_words)
        for word in new_words:
            self.completed_words.append(
                CompletedWordModel(
                    id=uuid4(),
                    player_id=player.id,
                    word=word.word,
                    direction=word.direction,
                    start_row=word.start_row,
                    start_col=word.start_col,
                    length=word.length,
                    tile_ids=list(word.tile_ids),
                )
            )
            self._emit(
                EventKind.WORD_COMPLETED,
                f'{player.display_name} completed "{word.word}"!',
                {"word": word.word, "player_id": str(player.id)},
                commentary=(
                    {"player_name": player.display_name, "word": word.word}
                    if word.length >= COMMENT_WORD_LENGTH
                    else None
                ),
            )
        return new_words

    def _redistribution_plan(self, trigger: PlayerModel) -> dict[UUID, int]:
        """
        How many tiles each active player receives after MESS IT UP.
        ----

        Enough tiles: 2 for everybody.
        Scarcity: the trigger gets up to 2 first, then the others get 1 each (in join order), then a second one each.
        """
        active = [player for player in self.players if player.is_active]
        available = len(self.bag)
        if not active:
            return {}
        if available >= MESS_TILES * len(active):
            return {player.id: MESS_TILES for player in active}

        plan = {player.id: 0 for player in active}
        plan[trigger.id] = min(MESS_TILES, available)
        remaining = available - plan[trigger.id]
        others = [player for player in active if player.id != trigger.id]
        for _ in range(MESS_TILES):
            for other in others:
                if remaining == 0:
                    return plan
                plan[other.id] += 1
                remaining -= 1
        return plan

    def _redistribute(self, trigger: PlayerModel) -> dict[UUID, int]:
        plan = self._redistribution_plan(trigger)
        dealt: dict[UUID, int] = {}
        for player in self.players:
            amount = plan.get(player.id, 0)
            if amount:
                dealt[player.id] = len(self._deal(player, amount))
        return dealt

    def _finish(
        self,
        ranking: Callable[[list[PlayerStatsModel]], list[PlayerStatsModel]],
        by_points: bool,
    ) -> list[PlayerStatsModel]:
        ranked = ranking(self.statistics())
        winner = ranked[0]
        self.winner_id = winner.player_id
        self.final_stats = ranked
        self.current_round_winner_id = None
        self._change_status(Status.FINISHED)

        headline = (
            f"{winner.total_points} points" if by_points else f"{winner.word_count} words"
        )
        self._emit(
            EventKind.GAME_FINISHED,
            f"Game finished! {winner.player_name} wins with {headline}!",
            {
                "winner_id": str(winner.player_id),
                "scores": [
                    {"player_id": str(s.player_id), "total_points": s.total_points, "word_count": s.word_count}
                    for s in ranked
                ],
            },
            commentary={
                "winner_name": winner.player_name,
                "scores": [{"name": s.player_name, "word_count": s.word_count} for s in ranked],
            },
        )
        return ranked
