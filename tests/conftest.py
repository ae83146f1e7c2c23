"""
Pytest will auto-discover / import this file called 'conftest.py'.
This file defines fixtures/variables required for testing multiple layers.
"""

from typing import Callable, Iterator, Optional
from uuid import UUID, uuid4

import pytest
from sqlalchemy import StaticPool, create_engine
from sqlalchemy.orm import Session, sessionmaker

from src.core.models import TileModel
from src.core.shared_types import Location
from src.db.schema import Base
from src.mess.letter_bag import letter_value

# Setup an in-memory SQLite database for testing
DATABASE_URL = "sqlite:///:memory:"
engine = create_engine(
    DATABASE_URL,
    connect_args={"check_same_thread": False},
    poolclass=StaticPool,
)

TestingSessionLocal = sessionmaker(autoflush=False, bind=engine)

TileFactory = Callable[..., TileModel]


@pytest.fixture
def db_session_repo() -> Iterator[Session]:
    """Connection to a test database. Tables are removed at teardown to make unit tests of repository independent of each other."""
    Base.metadata.create_all(bind=engine)
    db = TestingSessionLocal()
    try:
        yield db
    finally:
        db.close()
        Base.metadata.drop_all(bind=engine)


@pytest.fixture
def board_tile() -> TileFactory:
    """Call the inner function with a letter and a cell to get a tile lying on the board."""

    def _create_tile(
        letter: str, row: int, col: int, owner: Optional[UUID] = None
    ) -> TileModel:
        return TileModel(
            id=uuid4(),
            letter=letter,
            value=letter_value(letter),
            location=Location.BOARD,
            owner_player_id=owner,
            board_row=row,
            board_col=col,
            last_moved_by_player_id=owner,
        )

    return _create_tile


@pytest.fixture
def rack_tile() -> TileFactory:
    """Call the inner function with a letter, owner and slot to get a tile sitting on a rack."""

    def _create_tile(letter: str, owner: UUID, slot: int) -> TileModel:
        return TileModel(
            id=uuid4(),
            letter=letter,
            value=letter_value(letter),
            location=Location.RACK,
            owner_player_id=owner,
            board_row=None,
            board_col=slot,
            last_moved_by_player_id=owner,
            dealt_to_player_id=owner,
        )

    return _create_tile
