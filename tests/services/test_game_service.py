"""Unit tests for src/services/game_service.py"""

import threading
from copy import deepcopy
from typing import Iterable, Iterator
from unittest.mock import Mock, patch
from uuid import UUID, uuid4

import pytest

from src.api.models import (
    HIDDEN_TILE,
    BoardDestination,
    CreateGameRequest,
    FinalStatsRequest,
    GetStateRequest,
    JoinGameRequest,
    MoveTileRequest,
    PlayerActionRequest,
    RackDestination,
    ValidateWordsRequest,
)
from src.core.exceptions import (
    ConflictError,
    ForbiddenError,
    GameError,
    NotFoundError,
    RepositoryError,
    StaleGameError,
)
from src.core.models import ChatMessageModel, GameModel
from src.core.shared_types import Location, SenderType, Status
from src.mess.letter_bag import LetterBag
from src.services.game_locks import GameLocks
from src.services.game_service import JOIN_CODE_ALPHABET, GameService

# popped from the end: the creator draws C, A, T, S, the second player S, D, I, R
BAG = list("ONEERIDSSTAC")


# --- MOCK DEPENDENCIES ----
class MockRepository:
    """Mock the GameRepository using dictionaries of game models (with the same version check as the SQL one)."""

    def __init__(self) -> None:
        self._games: dict[UUID, GameModel] = {}
        self._codes: dict[str, UUID] = {}
        self._chat: dict[UUID, list[ChatMessageModel]] = {}
        # number of upcoming updates that pretend another process wrote first
        self.stale_writes = 0

    def get_game(self, game_id: UUID) -> GameModel | None:
        game = self._games.get(game_id)
        return deepcopy(game) if game else None

    def find_game_id(self, join_code: str) -> UUID | None:
        return self._codes.get(join_code.upper())

    def create_game(self, game: GameModel) -> GameModel:
        if game.join_code in self._codes:
            raise RepositoryError(f"Join code {game.join_code} is already in use.")
        game = deepcopy(game)
        game.version = 0
        self._games[game.id] = game
        self._codes[game.join_code] = game.id
        self._chat[game.id] = []
        return deepcopy(game)

    def update_game(self, game: GameModel) -> GameModel | None:
        stored = self._games.get(game.id)
        if stored is None:
            return None
        if self.stale_writes > 0:
            self.stale_writes -= 1
            raise StaleGameError("Simulated concurrent update.")
        if stored.version != game.version:
            raise StaleGameError(f"Version {game.version} is outdated.")
        game = deepcopy(game)
        game.version += 1
        self._games[game.id] = game
        return deepcopy(game)

    def append_chat(self, game_id: UUID, messages: list[ChatMessageModel]) -> None:
        self._chat.setdefault(game_id, []).extend(messages)

    def get_chat(self, game_id: UUID) -> list[ChatMessageModel]:
        return list(self._chat.get(game_id, []))

    def clear(self) -> None:
        """Clear the repository (useful in between tests)"""
        self._games.clear()
        self._codes.clear()
        self._chat.clear()


class StubDictionary:
    """Every word is valid unless listed in `invalid`."""

    def __init__(self, invalid: Iterable[str] = ()) -> None:
        self.invalid = {word.upper() for word in invalid}

    def validate_all(self, words: Iterable[str]) -> dict[str, bool]:
        return {word.upper(): word.upper() not in self.invalid for word in words}

    def preview_all(self, words: Iterable[str]) -> dict[str, bool]:
        return {word.upper(): True for word in words}


@pytest.fixture
def mock_repository() -> Iterator[MockRepository]:
    """Ensures to clear the repository between tests"""
    repo = MockRepository()
    try:
        yield repo
    finally:
        repo.clear()


@pytest.fixture
def service(mock_repository: MockRepository) -> GameService:
    return GameService(mock_repository, StubDictionary(), GameLocks(), max_retries=3)


@pytest.fixture
def fixed_bag() -> Iterator[None]:
    with patch(
        "src.mess.game.LetterBag.scaled",
        side_effect=lambda *args, **kwargs: LetterBag(list(BAG)),
    ):
        yield


def create_and_join(service: GameService) -> tuple[UUID, str, UUID, UUID]:
    """Ada creates (and starts) a game, Bob joins. Returns game id, join code, Ada's id and Bob's id."""
    created = service.create_game(CreateGameRequest(display_name="Ada"))
    service.start_game(
        PlayerActionRequest(game_id=created.game_id, player_id=created.player_id)
    )
    joined = service.join_game(
        JoinGameRequest(join_code=created.join_code.lower(), display_name="Bob")
    )
    return created.game_id, created.join_code, created.player_id, joined.player_id


def rack_of(repo: MockRepository, game_id: UUID, player_id: UUID) -> dict[str, UUID]:
    game = repo.get_game(game_id)
    assert game is not None
    return {
        tile.letter: tile.id
        for tile in game.tiles
        if tile.location == Location.RACK and tile.owner_player_id == player_id
    }


def spell_cats(service: GameService, repo: MockRepository, game_id: UUID, player_id: UUID) -> None:
    rack = rack_of(repo, game_id, player_id)
    for col, letter in enumerate("CATS"):
        service.move_tile(
            MoveTileRequest(
                game_id=game_id,
                player_id=player_id,
                tile_id=rack[letter],
                destination=BoardDestination(row=0, col=col),
            )
        )


# --- SERVICE - CREATE NEW GAME ----
def test_create_a_new_game(service: GameService, mock_repository: MockRepository) -> None:
    response = service.create_game(CreateGameRequest(display_name="Ada"))

    assert len(response.join_code) == 6
    assert set(response.join_code) <= set(JOIN_CODE_ALPHABET)

    stored = mock_repository.get_game(response.game_id)
    assert stored is not None
    assert stored.status == Status.WAITING
    assert stored.creator_id == response.player_id
    assert stored.total_tiles_initial == 100
    assert len(stored.tiles) == 4
    assert len(stored.letter_bag) == 96


def test_join_code_collision_picks_another_code(service: GameService) -> None:
    with patch("src.services.game_service.generate_join_code", return_value="AAAAAA"):
        first = service.create_game(CreateGameRequest(display_name="Ada"))
    with patch(
        "src.services.game_service.generate_join_code", side_effect=["AAAAAA", "BBBBBB"]
    ):
        second = service.create_game(CreateGameRequest(display_name="Bob"))

    assert first.join_code == "AAAAAA"
    assert second.join_code == "BBBBBB"


def test_join_codes_exhausted(service: GameService) -> None:
    with patch("src.services.game_service.generate_join_code", return_value="AAAAAA"):
        service.create_game(CreateGameRequest(display_name="Ada"))
        with pytest.raises(RepositoryError):
            service.create_game(CreateGameRequest(display_name="Bob"))


# --- SERVICE - JOIN / START ----
def test_join_unknown_code(service: GameService) -> None:
    with pytest.raises(NotFoundError):
        service.join_game(JoinGameRequest(join_code="ZZZZZZ", display_name="Bob"))


def test_only_creator_starts(service: GameService, mock_repository: MockRepository) -> None:
    created = service.create_game(CreateGameRequest(display_name="Ada"))
    joined = service.join_game(JoinGameRequest(join_code=created.join_code, display_name="Bob"))

    with pytest.raises(ForbiddenError):
        service.start_game(PlayerActionRequest(game_id=created.game_id, player_id=joined.player_id))

    stored = mock_repository.get_game(created.game_id)
    assert stored.status == Status.WAITING
    assert stored.version == 1


def test_start_deals_everybody(service: GameService, mock_repository: MockRepository) -> None:
    created = service.create_game(CreateGameRequest(display_name="Ada"))
    joined = service.join_game(JoinGameRequest(join_code=created.join_code, display_name="Bob"))
    service.start_game(PlayerActionRequest(game_id=created.game_id, player_id=created.player_id))

    stored = mock_repository.get_game(created.game_id)
    assert stored.status == Status.IN_PROGRESS
    assert len(rack_of(mock_repository, created.game_id, joined.player_id)) == 4
    messages = [message.content for message in mock_repository.get_chat(created.game_id)]
    assert messages == ["Bob joined the game", "Game started! Each player gets 4 tiles."]


# --- SERVICE - GAME STATE ----
def test_state_hides_other_racks(service: GameService, fixed_bag: None) -> None:
    game_id, join_code, ada_id, bob_id = create_and_join(service)

    state = service.get_game_state(GetStateRequest(join_code=join_code, player_id=ada_id))

    ada_view, bob_view = state.players
    assert len(ada_view.rack) == 4
    assert HIDDEN_TILE not in ada_view.rack
    assert bob_view.rack == [HIDDEN_TILE] * 4
    assert {tile.letter for tile in state.tiles} == {"C", "A", "T", "S"}
    assert all(tile.owner_player_id == ada_id for tile in state.tiles)
    assert state.game.tiles_in_bag == 4
    assert state.game.id == game_id


def test_spectator_sees_no_rack(service: GameService, fixed_bag: None) -> None:
    _, join_code, _, _ = create_and_join(service)
    state = service.get_game_state(GetStateRequest(join_code=join_code))
    assert state.tiles == []
    assert all(player.rack == [HIDDEN_TILE] * 4 for player in state.players)


def test_state_of_unknown_game(service: GameService) -> None:
    with pytest.raises(NotFoundError):
        service.get_game_state(GetStateRequest(join_code="ZZZZZZ"))


# --- SERVICE - MOVES ----
def test_move_records_words(
    service: GameService, mock_repository: MockRepository, fixed_bag: None
) -> None:
    game_id, join_code, ada_id, _ = create_and_join(service)
    spell_cats(service, mock_repository, game_id, ada_id)

    state = service.get_game_state(GetStateRequest(join_code=join_code, player_id=ada_id))
    assert [word.word for word in state.completed_words] == ["CA", "CAT", "CATS"]
    assert state.players[0].rack == []
    assert 'Ada completed "CATS"!' in [message.content for message in state.chat_messages]


def test_move_back_to_rack(
    service: GameService, mock_repository: MockRepository, fixed_bag: None
) -> None:
    game_id, _, ada_id, _ = create_and_join(service)
    c_tile = rack_of(mock_repository, game_id, ada_id)["C"]
    request = MoveTileRequest(
        game_id=game_id,
        player_id=ada_id,
        tile_id=c_tile,
        destination=BoardDestination(row=3, col=-2),
    )
    response = service.move_tile(request)
    assert response.new_words == []

    service.move_tile(request.model_copy(update={"destination": RackDestination(slot=2)}))
    stored = mock_repository.get_game(game_id)
    slots = {
        tile.letter: tile.board_col
        for tile in stored.tiles
        if tile.owner_player_id == ada_id and tile.location == Location.RACK
    }
    assert slots == {"A": 1, "C": 2, "T": 3, "S": 4}


def test_move_others_rack_tile(
    service: GameService, mock_repository: MockRepository, fixed_bag: None
) -> None:
    game_id, _, ada_id, bob_id = create_and_join(service)
    with pytest.raises(ForbiddenError):
        service.move_tile(
            MoveTileRequest(
                game_id=game_id,
                player_id=ada_id,
                tile_id=rack_of(mock_repository, game_id, bob_id)["D"],
                destination=BoardDestination(row=0, col=0),
            )
        )


# --- SERVICE - ROUND ----
def test_claim_round(service: GameService, fixed_bag: None) -> None:
    game_id, _, ada_id, bob_id = create_and_join(service)
    first = service.claim_round(PlayerActionRequest(game_id=game_id, player_id=bob_id))
    second = service.claim_round(PlayerActionRequest(game_id=game_id, player_id=ada_id))
    assert first.claimed and first.round_winner_id == bob_id
    assert not second.claimed and second.round_winner_id == bob_id


def test_concurrent_claims_have_one_winner(
    service: GameService, mock_repository: MockRepository
) -> None:
    created = service.create_game(CreateGameRequest(display_name="Ada"))
    player_ids = [created.player_id] + [
        service.join_game(
            JoinGameRequest(join_code=created.join_code, display_name=f"Player {i}")
        ).player_id
        for i in range(5)
    ]
    service.start_game(PlayerActionRequest(game_id=created.game_id, player_id=created.player_id))

    barrier = threading.Barrier(len(player_ids))
    responses = []

    def claim(player_id: UUID) -> None:
        barrier.wait()
        responses.append(
            service.claim_round(PlayerActionRequest(game_id=created.game_id, player_id=player_id))
        )

    threads = [threading.Thread(target=claim, args=(player_id,)) for player_id in player_ids]
    for thread in threads:
        thread.start()
    for thread in threads:
        thread.join()

    winners = [response for response in responses if response.claimed]
    assert len(responses) == len(player_ids)
    assert len(winners) == 1
    assert {response.round_winner_id for response in responses} == {winners[0].round_winner_id}
    assert mock_repository.get_game(created.game_id).current_round_winner_id == winners[0].round_winner_id


# --- SERVICE - MESS IT UP ----
def test_mess_it_up_to_the_end(
    service: GameService, mock_repository: MockRepository, fixed_bag: None
) -> None:
    game_id, join_code, ada_id, bob_id = create_and_join(service)
    spell_cats(service, mock_repository, game_id, ada_id)

    with pytest.raises(NotFoundError):
        service.get_final_stats(FinalStatsRequest(game_id=game_id))

    response = service.mess_it_up(PlayerActionRequest(game_id=game_id, player_id=ada_id))

    assert response.points_awarded == 30
    assert response.new_words == ["CATS"]
    assert response.game_finished

    stats = service.get_final_stats(FinalStatsRequest(game_id=game_id))
    assert [s.player_id for s in stats.stats] == [ada_id, bob_id]
    assert stats.stats[0].total_points == 30

    state = service.get_game_state(GetStateRequest(join_code=join_code, player_id=ada_id))
    assert state.game.status == Status.FINISHED
    assert state.game.winner_id == ada_id
    assert [score.total_points for score in state.scores] == [30, 0]
    senders = {message.sender_type for message in state.chat_messages}
    assert senders == {SenderType.SYSTEM, SenderType.AI}


def test_rejected_mess_it_up_changes_nothing(
    mock_repository: MockRepository, fixed_bag: None
) -> None:
    service = GameService(mock_repository, StubDictionary(invalid={"CATS"}), GameLocks())
    game_id, _, ada_id, _ = create_and_join(service)
    spell_cats(service, mock_repository, game_id, ada_id)
    before = mock_repository.get_game(game_id)

    with pytest.raises(ConflictError) as exc_info:
        service.mess_it_up(PlayerActionRequest(game_id=game_id, player_id=ada_id))

    assert exc_info.value.details == {"invalid_words": ["CATS"]}
    assert mock_repository.get_game(game_id) == before


def test_failing_commentator_does_not_block(
    mock_repository: MockRepository, fixed_bag: None
) -> None:
    commentator = Mock()
    commentator.comment.side_effect = RuntimeError("commentator is down")
    service = GameService(mock_repository, StubDictionary(), GameLocks(), commentator=commentator)
    game_id, _, ada_id, _ = create_and_join(service)
    spell_cats(service, mock_repository, game_id, ada_id)

    response = service.mess_it_up(PlayerActionRequest(game_id=game_id, player_id=ada_id))

    assert response.game_finished
    assert commentator.comment.called
    chat = mock_repository.get_chat(game_id)
    assert all(message.sender_type == SenderType.SYSTEM for message in chat)


# --- SERVICE - STUCK / FINISH ----
def test_stuck(service: GameService, mock_repository: MockRepository, fixed_bag: None) -> None:
    game_id, join_code, ada_id, _ = create_and_join(service)
    response = service.stuck(PlayerActionRequest(game_id=game_id, player_id=ada_id))
    assert response.tiles_drawn == 2

    state = service.get_game_state(GetStateRequest(join_code=join_code, player_id=ada_id))
    assert state.scores[0].total_points == -5
    assert state.scores[0].stuck_penalty == 5
    assert len(state.players[0].rack) == 6


def test_finish_too_early(service: GameService, fixed_bag: None) -> None:
    game_id, _, ada_id, _ = create_and_join(service)
    with pytest.raises(ConflictError):
        service.finish_game(PlayerActionRequest(game_id=game_id, player_id=ada_id))


def test_finish_game(service: GameService, mock_repository: MockRepository) -> None:
    with patch(
        "src.mess.game.LetterBag.scaled",
        side_effect=lambda *args, **kwargs: LetterBag(list("TAC")),
    ):
        created = service.create_game(CreateGameRequest(display_name="Ada"))
    request = PlayerActionRequest(game_id=created.game_id, player_id=created.player_id)
    service.start_game(request)
    rack = rack_of(mock_repository, created.game_id, created.player_id)
    for col, letter in enumerate("CAT"):
        service.move_tile(
            MoveTileRequest(
                game_id=created.game_id,
                player_id=created.player_id,
                tile_id=rack[letter],
                destination=BoardDestination(row=0, col=col),
            )
        )

    response = service.finish_game(request)

    assert response.winner_id == created.player_id
    assert response.stats[0].word_count == 2
    assert mock_repository.get_game(created.game_id).status == Status.FINISHED


# --- SERVICE - CONCURRENT WRITERS ----
def test_stale_write_is_retried(
    service: GameService, mock_repository: MockRepository, fixed_bag: None
) -> None:
    game_id, _, ada_id, _ = create_and_join(service)
    mock_repository.stale_writes = 2
    response = service.stuck(PlayerActionRequest(game_id=game_id, player_id=ada_id))
    assert response.tiles_drawn == 2
    assert len(rack_of(mock_repository, game_id, ada_id)) == 6


def test_too_many_stale_writes(
    service: GameService, mock_repository: MockRepository, fixed_bag: None
) -> None:
    game_id, _, ada_id, _ = create_and_join(service)
    before = mock_repository.get_game(game_id)
    mock_repository.stale_writes = 3

    with pytest.raises(ConflictError):
        service.stuck(PlayerActionRequest(game_id=game_id, player_id=ada_id))

    assert mock_repository.get_game(game_id) == before


def test_unknown_game(service: GameService) -> None:
    with pytest.raises(GameError):
        service.stuck(PlayerActionRequest(game_id=uuid4(), player_id=uuid4()))


def test_unknown_games_leave_no_locks_behind(service: GameService) -> None:
    for _ in range(1000):
        with pytest.raises(NotFoundError):
            service.stuck(PlayerActionRequest(game_id=uuid4(), player_id=uuid4()))
    assert len(service.locks) == 0


def test_finished_game_leaves_no_lock_behind(
    service: GameService, mock_repository: MockRepository, fixed_bag: None
) -> None:
    game_id, join_code, ada_id, _ = create_and_join(service)
    spell_cats(service, mock_repository, game_id, ada_id)
    service.mess_it_up(PlayerActionRequest(game_id=game_id, player_id=ada_id))
    service.get_game_state(GetStateRequest(join_code=join_code, player_id=ada_id))
    assert len(service.locks) == 0


# --- SERVICE - WORD PREVIEW ----
def test_validate_words_uses_preview(service: GameService) -> None:
    response = service.validate_words(ValidateWordsRequest(words=["cat", "xqzv"]))
    assert response.results == {"CAT": True, "XQZV": True}
