"""
Type definitions used across layers
"""

from enum import StrEnum


class Status(StrEnum):
    WAITING = "waiting"
    IN_PROGRESS = "in_progress"
    FINISHED = "finished"


class Location(StrEnum):
    BAG = "bag"
    RACK = "rack"
    BOARD = "board"


class Direction(StrEnum):
    HORIZONTAL = "horizontal"
    VERTICAL = "vertical"


class SenderType(StrEnum):
    PLAYER = "player"
    SYSTEM = "system"
    AI = "ai"


class EventKind(StrEnum):
    PLAYER_JOINED = "player_joined"
    GAME_STARTED = "game_started"
    WORD_COMPLETED = "word_completed"
    SPLIT = "split"
    STUCK = "stuck"
    GAME_FINISHED = "game_finished"
