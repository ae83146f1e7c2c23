"""Database tables / schema"""

from datetime import datetime, timezone
from typing import Any

from sqlalchemy import JSON, String
from sqlalchemy.orm import DeclarativeBase, Mapped, mapped_column


def utc_now() -> datetime:
    return datetime.now(timezone.utc)


class Base(DeclarativeBase):
    pass


class DBEntry(Base):
    """
    One document of the key-value store (ex. `game:{id}`, `game:{id}:tiles`, `joincode:{code}`, `valid_word:{WORD}`).
    `version` is only bumped for `game:{id}`; it is the optimistic concurrency stamp of the whole game.
    """

    __tablename__ = "kv_store"
    key: Mapped[str] = mapped_column(String(255), primary_key=True)
    value: Mapped[Any] = mapped_column(JSON)
    version: Mapped[int] = mapped_column(default=0)
    created_at: Mapped[datetime] = mapped_column(default=utc_now)
    updated_at: Mapped[datetime] = mapped_column(default=utc_now, onupdate=utc_now)
