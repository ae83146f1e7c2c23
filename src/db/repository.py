"""Protocol repositories (implemented with SQLAlchemy in sql_repository.py, with a dictionary in the tests)"""

from typing import Protocol
from uuid import UUID

from src.core.models import ChatMessageModel, GameModel


class GameRepository(Protocol):
    """Persistence layer orchestration"""

    def get_game(self, game_id: UUID) -> GameModel | None:
        """Get game by ID, if record exists."""
        ...

    def find_game_id(self, join_code: str) -> UUID | None:
        """Resolve a join code to the game ID."""
        ...

    def create_game(self, game: GameModel) -> GameModel:
        """Store a new game (and its join code). Raises RepositoryError if the join code is taken."""
        ...

    def update_game(self, game: GameModel) -> GameModel | None:
        """
        Store the new state of an existing game, if `game.version` still matches the stored version.
        Returns the stored game (with its bumped version), None if the game does not exist.
        Raises StaleGameError if somebody else updated the game in the meantime.
        """
        ...

    def append_chat(self, game_id: UUID, messages: list[ChatMessageModel]) -> None:
        """Add messages to the end of the chat log."""
        ...

    def get_chat(self, game_id: UUID) -> list[ChatMessageModel]:
        """Chat log in the order messages were added."""
        ...


class WordCache(Protocol):
    """Remembers dictionary verdicts (membership of a word never changes during a game)."""

    def get_word(self, word: str) -> bool | None: ...

    def set_word(self, word: str, is_valid: bool) -> None: ...
