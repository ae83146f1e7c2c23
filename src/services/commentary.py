"""
AI commentary: a black box `comment(kind, context) -> str`.

The default commentator picks a canned line. Any other implementation (ex. an LLM client) only needs `comment`.
"""

import random
from typing import Any, Optional, Protocol

from src.core.shared_types import EventKind

FALLBACK_COMMENT = "What a game!"

TEMPLATES: dict[EventKind, list[str]] = {
    EventKind.WORD_COMPLETED: [
        '{player_name} just spelled "{word}" like a boss!',
        'Whoa! {player_name} with the big word "{word}"!',
        "{word}? {player_name} is showing off now!",
        'Nice one {player_name}, "{word}" is a keeper!',
        'Look at {player_name} go with "{word}"!',
    ],
    EventKind.SPLIT: [
        "{player_name} hit MESS IT UP! Fresh tiles for everyone!",
        "Boom! {player_name} just split the bag!",
        "{player_name} called it! Time for new letters!",
        "And {player_name} messes it all up! Love it!",
        "Fresh tiles incoming thanks to {player_name}!",
    ],
    EventKind.GAME_FINISHED: [
        "{winner_name} takes the crown! What a game!",
        "Victory goes to {winner_name}! Well played!",
        "{winner_name} dominated that board!",
        "And the winner is... {winner_name}! Congrats!",
    ],
}


class Commentator(Protocol):
    def comment(self, kind: EventKind, context: dict[str, Any]) -> str: ...


class CannedCommentator:
    def __init__(self, rng: Optional[random.Random] = None) -> None:
        self.rng = rng or random.Random()

    def comment(self, kind: EventKind, context: dict[str, Any]) -> str:
        templates = TEMPLATES.get(kind)
        if not templates:
            return FALLBACK_COMMENT
        return self.rng.choice(templates).format(**context)
