"""
Exceptions shared by all layers.

Every error the game can report derives from GameError, so the API layer can translate the whole family in one place.
"""

from typing import Any


class GameError(Exception):
    """Top-level exception for anything the game refuses to do."""

    def __init__(self, message: str, details: dict[str, Any] | None = None) -> None:
        super().__init__(message)
        self.message = message
        self.details = details or {}


class ValidationError(GameError):
    """Malformed input (blank name, out of range coordinates, ...)."""


class NotFoundError(GameError):
    """Unknown game, join code, player or tile."""


class ForbiddenError(GameError):
    """The acting player is not allowed to perform this operation."""


class InvalidStateError(GameError):
    """Operation is not legal for the current status of the game."""


class GameFinishedError(InvalidStateError):
    pass


class ConflictError(GameError):
    """The request is well-formed but clashes with the current board / round state."""


class GameFullError(ConflictError):
    pass


class ExternalServiceError(GameError):
    """The dictionary oracle (or another collaborator) failed or timed out."""


class RepositoryError(GameError):
    """Persistence layer could not complete the request."""


class StaleGameError(RepositoryError):
    """Stored game has a newer version than the one being written."""
