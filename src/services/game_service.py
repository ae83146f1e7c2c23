"""Orchestration of communication from API router to business logic and persistence layers (and the reverse direction)."""

import logging
import secrets
from typing import Callable, Optional, Protocol, TypeVar
from uuid import UUID, uuid4

from src.api.models import (
    HIDDEN_TILE,
    JOIN_CODE_LENGTH,
    ActionResponse,
    BoardDestination,
    ChatMessageView,
    ClaimRoundResponse,
    CompletedWordView,
    CreateGameRequest,
    FinalStatsRequest,
    FinalStatsResponse,
    FinishGameResponse,
    GameSettingsView,
    GameStateResponse,
    GameView,
    GetStateRequest,
    JoinedGameResponse,
    JoinGameRequest,
    MessItUpResponse,
    MoveTileRequest,
    MoveTileResponse,
    PlayerActionRequest,
    PlayerStatsView,
    PlayerView,
    RackDestination,
    ScoreView,
    StuckResponse,
    TileView,
    ValidateWordsRequest,
    ValidateWordsResponse,
)
from src.core.config import config
from src.core.exceptions import ConflictError, NotFoundError, RepositoryError, StaleGameError
from src.core.models import ChatMessageModel, GameModel, GameSettingsModel
from src.core.shared_types import Location, SenderType
from src.db.repository import GameRepository
from src.mess.events import GameEvent
from src.mess.game import Game, WordChecker
from src.mess.moves import BoardTarget, Destination, RackTarget
from src.mess.scoring import player_score
from src.services.commentary import CannedCommentator, Commentator
from src.services.game_locks import GameLocks

logger = logging.getLogger(__name__)

T = TypeVar("T")

JOIN_CODE_ALPHABET = "ABCDEFGHJKLMNPQRSTUVWXYZ23456789"
JOIN_CODE_ATTEMPTS = 10


class Dictionary(WordChecker, Protocol):
    """Strict verdicts for the game (WordChecker) + lenient verdicts for previews."""

    def preview_all(self, words: list[str]) -> dict[str, bool]: ...


def generate_join_code() -> str:
    return "".join(secrets.choice(JOIN_CODE_ALPHABET) for _ in range(JOIN_CODE_LENGTH))


class GameService:
    """Orchestration of layers for the word game."""

    def __init__(
        self,
        repository: GameRepository,
        dictionary: Dictionary,
        locks: GameLocks,
        commentator: Optional[Commentator] = None,
        max_retries: int = config.MAX_UPDATE_RETRIES,
    ) -> None:
        self.repo = repository
        self.dictionary = dictionary
        self.locks = locks
        self.commentator = commentator or CannedCommentator()
        self.max_retries = max_retries

    # -- API routes logic ---
    def create_game(self, request: CreateGameRequest) -> JoinedGameResponse:
        """First player creates a game and gets the join code to share."""
        settings = GameSettingsModel(
            piece_count=request.settings.piece_count or config.DEFAULT_PIECE_COUNT,
            timer_enabled=request.settings.timer_enabled,
            timer_duration=request.settings.timer_duration,
        )

        for _ in range(JOIN_CODE_ATTEMPTS):
            join_code = generate_join_code()
            if self.repo.find_game_id(join_code) is not None:
                continue
            game = Game.new_game(
                display_name=request.display_name,
                join_code=join_code,
                settings=settings,
                color=request.color,
                character=request.character,
                max_players=config.MAX_PLAYERS,
            )
            try:
                stored = self.repo.create_game(game.to_model())
            except RepositoryError as error:
                logger.warning("Could not store new game with join code %s: %s", join_code, error)
                continue

            logger.info("Game %s created, join code %s", stored.id, stored.join_code)
            return JoinedGameResponse(
                game_id=stored.id, player_id=stored.creator_id, join_code=stored.join_code
            )

        raise RepositoryError("Could not allocate a unique join code.")

    def join_game(self, request: JoinGameRequest) -> JoinedGameResponse:
        """Another player joins with the join code."""
        game_id = self._resolve_join_code(request.join_code)
        player = self._apply(
            game_id,
            lambda game: game.register_player(
                request.display_name, request.color, request.character
            ),
        )
        logger.info("Player %s joined game %s", player.id, game_id)
        return JoinedGameResponse(game_id=game_id, player_id=player.id, join_code=request.join_code)

    def start_game(self, request: PlayerActionRequest) -> ActionResponse:
        self._apply(request.game_id, lambda game: game.start(request.player_id))
        logger.info("Game %s started", request.game_id)
        return ActionResponse()

    def move_tile(self, request: MoveTileRequest) -> MoveTileResponse:
        destination = self._to_destination(request.destination)
        result = self._apply(
            request.game_id,
            lambda game: game.move_tile(request.player_id, request.tile_id, destination),
        )
        return MoveTileResponse(
            new_words=[word.word for word in result.new_words],
            displaced_tile_id=result.displaced_tile_id,
        )

    def mess_it_up(self, request: PlayerActionRequest) -> MessItUpResponse:
        """Round completion. The dictionary check runs with the strict (failure = invalid) verdicts."""
        result = self._apply(
            request.game_id,
            lambda game: game.mess_it_up(request.player_id, self.dictionary),
        )
        logger.info(
            "Player %s messed it up in game %s (+%s points, %s tiles left)",
            request.player_id,
            request.game_id,
            result.points_awarded,
            result.tiles_remaining,
        )
        if result.game_finished:
            logger.info("Game %s finished: bag is empty", request.game_id)
        return MessItUpResponse(
            points_awarded=result.points_awarded,
            new_words=result.new_words,
            tiles_remaining=result.tiles_remaining,
            game_finished=result.game_finished,
        )

    def claim_round(self, request: PlayerActionRequest) -> ClaimRoundResponse:
        """Compare-and-set of the round lock: only the first claimant wins, later claims change nothing."""
        winner_id = self._apply(request.game_id, lambda game: game.claim_round(request.player_id))
        return ClaimRoundResponse(round_winner_id=winner_id, claimed=winner_id == request.player_id)

    def stuck(self, request: PlayerActionRequest) -> StuckResponse:
        drawn = self._apply(request.game_id, lambda game: game.stuck(request.player_id))
        logger.info("Player %s is stuck in game %s, drew %s tiles", request.player_id, request.game_id, drawn)
        return StuckResponse(tiles_drawn=drawn)

    def finish_game(self, request: PlayerActionRequest) -> FinishGameResponse:
        ranked = self._apply(request.game_id, lambda game: game.finish(request.player_id))
        logger.info("Game %s finished, winner %s", request.game_id, ranked[0].player_id)
        return FinishGameResponse(
            winner_id=ranked[0].player_id,
            stats=[PlayerStatsView.model_validate(stats) for stats in ranked],
        )

    def get_game_state(self, request: GetStateRequest) -> GameStateResponse:
        """
        Retrieve current game state.
        ----
        Used in "polling" loop by the frontend. Other players' racks are redacted.
        """
        game_id = self._resolve_join_code(request.join_code)
        with self.locks.hold(game_id):
            model = self._fetch_game(game_id)
            chat = self.repo.get_chat(game_id)
        return self._create_state_response(model, chat, request.player_id)

    def get_final_stats(self, request: FinalStatsRequest) -> FinalStatsResponse:
        with self.locks.hold(request.game_id):
            model = self._fetch_game(request.game_id)
        if model.final_stats is None:
            raise NotFoundError(f"Final statistics for game {request.game_id} not found.")
        return FinalStatsResponse(
            game_id=model.id,
            stats=[PlayerStatsView.model_validate(stats) for stats in model.final_stats],
        )

    def validate_words(self, request: ValidateWordsRequest) -> ValidateWordsResponse:
        """Preview for clients: an unreachable dictionary does not turn words red."""
        return ValidateWordsResponse(results=self.dictionary.preview_all(request.words))

    # -- Internal helpers --
    def _apply(self, game_id: UUID, operation: Callable[[Game], T]) -> T:
        """
        Run one operation on a game
        ----

        1. hold the lock of this game (one writer per game in this process)
        2. load a fresh copy, apply the operation, store it with a version check
        3. another process got there first? Reload and try again
        4. publish what happened (chat / commentary) once the new state is stored

        A raised GameError leaves the stored game untouched: nothing is written.
        """
        with self.locks.hold(game_id):
            for attempt in range(1, self.max_retries + 1):
                game = Game.from_model(self._fetch_game(game_id))
                result = operation(game)
                try:
                    self.repo.update_game(game.to_model())
                except StaleGameError as error:
                    logger.warning("Attempt %s on game %s lost a race: %s", attempt, game_id, error)
                    continue
                self._publish(game_id, game.drain_events())
                return result

        raise ConflictError(
            f"Game {game_id} is being changed by other requests, please retry."
        )

    def _publish(self, game_id: UUID, events: list[GameEvent]) -> None:
        """Best effort: a failing commentator or chat log never undoes the game update."""
        messages: list[ChatMessageModel] = []
        for event in events:
            messages.append(
                ChatMessageModel(
                    id=uuid4(),
                    sender_type=SenderType.SYSTEM,
                    content=event.content,
                    metadata=event.metadata,
                )
            )
            if event.commentary is None:
                continue
            try:
                comment = self.commentator.comment(event.kind, event.commentary)
            except Exception:
                logger.exception("Commentary for %s in game %s failed", event.kind, game_id)
                continue
            messages.append(
                ChatMessageModel(
                    id=uuid4(),
                    sender_type=SenderType.AI,
                    content=comment,
                    metadata={"type": "ai_comment", "event": event.kind.value},
                )
            )

        if not messages:
            return
        try:
            self.repo.append_chat(game_id, messages)
        except Exception:
            logger.exception("Could not append %s chat messages to game %s", len(messages), game_id)

    def _to_destination(self, destination: BoardDestination | RackDestination) -> Destination:
        if isinstance(destination, BoardDestination):
            return BoardTarget(destination.row, destination.col)
        return RackTarget(destination.slot)

    def _resolve_join_code(self, join_code: str) -> UUID:
        game_id = self.repo.find_game_id(join_code.upper())
        if game_id is None:
            raise NotFoundError(f"Game with join code {join_code!r} not found.")
        return game_id

    def _fetch_game(self, game_id: UUID) -> GameModel:
        """Attempt to find the game in the repository and raise error if it fails."""
        game_model = self.repo.get_game(game_id)
        if game_model is None:
            raise NotFoundError(f"Game with {game_id=} not found.")
        return game_model

    def _create_state_response(
        self,
        model: GameModel,
        chat: list[ChatMessageModel],
        requesting_player_id: Optional[UUID],
    ) -> GameStateResponse:
        """Convert info in GameModel to a GameStateResponse as seen by the requesting player."""
        racks: dict[UUID, list[str]] = {player.id: [] for player in model.players}
        visible_tiles = []
        for tile in sorted(model.tiles, key=lambda t: (t.location, t.board_col or 0)):
            if tile.location == Location.BOARD:
                visible_tiles.append(TileView.model_validate(tile))
            elif tile.location == Location.RACK and tile.owner_player_id in racks:
                if tile.owner_player_id == requesting_player_id:
                    racks[tile.owner_player_id].append(str(tile.id))
                    visible_tiles.append(TileView.model_validate(tile))
                else:
                    racks[tile.owner_player_id].append(HIDDEN_TILE)

        players = [
            PlayerView(
                id=player.id,
                display_name=player.display_name,
                is_creator=player.is_creator,
                is_active=player.is_active,
                color=player.color,
                character=player.character,
                mess_bonus_count=player.mess_bonus_count,
                stuck_penalty_count=player.stuck_penalty_count,
                rack=racks[player.id],
            )
            for player in model.players
        ]
        game = GameView(
            id=model.id,
            join_code=model.join_code,
            creator_id=model.creator_id,
            status=model.status,
            max_players=model.max_players,
            tiles_in_bag=len(model.letter_bag),
            total_tiles_initial=model.total_tiles_initial,
            current_round_winner_id=model.current_round_winner_id,
            is_final_round=model.is_final_round,
            winner_id=model.winner_id,
            settings=GameSettingsView.model_validate(model.settings),
            timer_started_at=model.timer_started_at,
            timer_ends_at=model.timer_ends_at,
            version=model.version,
        )
        return GameStateResponse(
            game=game,
            players=players,
            tiles=visible_tiles,
            completed_words=[CompletedWordView.model_validate(w) for w in model.completed_words],
            chat_messages=[ChatMessageView.model_validate(m) for m in chat],
            scores=[
                ScoreView.model_validate(player_score(player, model.completed_words))
                for player in model.players
            ],
        )
