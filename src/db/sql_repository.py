"""
Implementation of GameRepository / WordCache on a key-value table using SQLAlchemy

Every game is spread over the key families
`game:{id}`, `game:{id}:players`, `game:{id}:tiles`, `game:{id}:completed_words`, `game:{id}:final_stats`,
`game:{id}:chat` plus the secondary index `joincode:{code}`.
All documents of one update are written in a single transaction.
"""

from typing import Any
from uuid import UUID

from pydantic import TypeAdapter
from sqlalchemy import update
from sqlalchemy.orm import Session

from src.core.exceptions import RepositoryError, StaleGameError
from src.core.models import (
    ChatMessageModel,
    CompletedWordModel,
    GameModel,
    PlayerModel,
    PlayerStatsModel,
    TileModel,
)
from src.db.schema import DBEntry, utc_now

GAME_ADAPTER = TypeAdapter(GameModel)
CHAT_ADAPTER = TypeAdapter(list[ChatMessageModel])

# parts of the GameModel that live under their own key
SUB_DOCUMENTS: dict[str, TypeAdapter[Any]] = {
    "players": TypeAdapter(list[PlayerModel]),
    "tiles": TypeAdapter(list[TileModel]),
    "completed_words": TypeAdapter(list[CompletedWordModel]),
    "final_stats": TypeAdapter(list[PlayerStatsModel] | None),
}


def game_key(game_id: UUID) -> str:
    return f"game:{game_id}"


def join_code_key(join_code: str) -> str:
    return f"joincode:{join_code.upper()}"


def word_key(word: str) -> str:
    return f"valid_word:{word.upper()}"


class SQLGameRepository:
    """Data stored using SQL / methods implemented using SQLAlchemy"""

    def __init__(self, db_session: Session) -> None:
        self.db = db_session

    def get_game(self, game_id: UUID) -> GameModel | None:
        """Get game by ID, if record exists."""
        header = self._fetch(game_key(game_id))
        if header is None:
            return None

        document = dict(header.value)
        for name in SUB_DOCUMENTS:
            entry = self._fetch(f"{game_key(game_id)}:{name}")
            document[name] = entry.value if entry else None
        document["version"] = header.version
        document["players"] = document["players"] or []
        document["tiles"] = document["tiles"] or []
        document["completed_words"] = document["completed_words"] or []
        return GAME_ADAPTER.validate_python(document)

    def find_game_id(self, join_code: str) -> UUID | None:
        """Resolve a join code to the game ID."""
        entry = self._fetch(join_code_key(join_code))
        return UUID(entry.value) if entry else None

    def create_game(self, game: GameModel) -> GameModel:
        """Store a new game (and its join code). Raises RepositoryError if the join code is taken."""
        if self._fetch(join_code_key(game.join_code)) is not None:
            raise RepositoryError(f"Join code {game.join_code} is already in use.")
        if self._fetch(game_key(game.id)) is not None:
            raise RepositoryError(f"Game with {game.id=} already exists.")

        header, documents = self._split(game)
        self.db.add(DBEntry(key=game_key(game.id), value=header, version=0))
        self.db.add(DBEntry(key=join_code_key(game.join_code), value=str(game.id)))
        self.db.add(DBEntry(key=f"{game_key(game.id)}:chat", value=[]))
        for name, value in documents.items():
            self.db.add(DBEntry(key=f"{game_key(game.id)}:{name}", value=value))
        self.db.commit()

        stored = self.get_game(game.id)
        if stored is None:
            raise RepositoryError(f"Game with {game.id=} could not be read back after creation.")
        return stored

    def update_game(self, game: GameModel) -> GameModel | None:
        """
        Compare-and-set on the version of `game:{id}`, then overwrite the sub documents (one transaction).
        """
        if self._fetch(game_key(game.id)) is None:
            return None

        header, documents = self._split(game)
        result = self.db.execute(
            update(DBEntry)
            .where(DBEntry.key == game_key(game.id), DBEntry.version == game.version)
            .values(value=header, version=game.version + 1, updated_at=utc_now())
            .execution_options(synchronize_session=False)
        )
        if result.rowcount == 0:
            self.db.rollback()
            raise StaleGameError(
                f"Game {game.id} was modified by another request (version {game.version} is outdated)."
            )

        for name, value in documents.items():
            self._put(f"{game_key(game.id)}:{name}", value)
        self.db.commit()
        return self.get_game(game.id)

    def append_chat(self, game_id: UUID, messages: list[ChatMessageModel]) -> None:
        """Add messages to the end of the chat log."""
        key = f"{game_key(game_id)}:chat"
        entry = self._fetch(key)
        history = list(entry.value) if entry else []
        history.extend(CHAT_ADAPTER.dump_python(messages, mode="json"))
        self._put(key, history)
        self.db.commit()

    def get_chat(self, game_id: UUID) -> list[ChatMessageModel]:
        """Chat log in the order messages were added."""
        entry = self._fetch(f"{game_key(game_id)}:chat")
        return CHAT_ADAPTER.validate_python(entry.value) if entry else []

    def _fetch(self, key: str) -> DBEntry | None:
        return self.db.get(DBEntry, key, populate_existing=True)

    def _put(self, key: str, value: Any) -> None:
        entry = self._fetch(key)
        if entry is None:
            self.db.add(DBEntry(key=key, value=value))
        else:
            entry.value = value

    def _split(self, game: GameModel) -> tuple[dict[str, Any], dict[str, Any]]:
        """Cut the GameModel into the `game:{id}` header and the documents stored under their own key."""
        document = GAME_ADAPTER.dump_python(game, mode="json")
        document.pop("version")
        documents = {name: document.pop(name) for name in SUB_DOCUMENTS}
        return document, documents


class SQLWordCache:
    """Dictionary verdicts under `valid_word:{WORD}`"""

    def __init__(self, db_session: Session) -> None:
        self.db = db_session

    def get_word(self, word: str) -> bool | None:
        entry = self.db.get(DBEntry, word_key(word))
        return bool(entry.value) if entry else None

    def set_word(self, word: str, is_valid: bool) -> None:
        entry = self.db.get(DBEntry, word_key(word))
        if entry is None:
            self.db.add(DBEntry(key=word_key(word), value=is_valid))
        else:
            entry.value = is_valid
        self.db.commit()
