"""
Score Calculator

Points are derived, never stored: they follow from the counters on the player and the completed-word history.
"""

from dataclasses import dataclass
from typing import Iterable
from uuid import UUID

from src.core.models import CompletedWordModel, PlayerModel, PlayerStatsModel, TileModel

WORD_POINTS = 5
STUCK_PENALTY = 5
MESS_BONUS = 25

VOWELS = frozenset("AEIOU")


@dataclass
class PlayerScore:
    player_id: UUID
    word_count: int
    total_letters: int
    total_points: int
    stuck_penalty: int
    mess_bonus: int


def total_points(player: PlayerModel) -> int:
    """5 per unique banked word, -5 per stuck, +25 per mess it up."""
    return (
        WORD_POINTS * len(set(player.scored_words))
        - STUCK_PENALTY * player.stuck_penalty_count
        + MESS_BONUS * player.mess_bonus_count
    )


def unique_words(player_id: UUID, history: Iterable[CompletedWordModel]) -> list[str]:
    """Unique word texts the player completed, in the order they were first completed."""
    seen: dict[str, None] = {}
    for record in history:
        if record.player_id == player_id:
            seen.setdefault(record.word.upper(), None)
    return list(seen)


def player_score(player: PlayerModel, history: Iterable[CompletedWordModel]) -> PlayerScore:
    words = unique_words(player.id, history)
    return PlayerScore(
        player_id=player.id,
        word_count=len(words),
        total_letters=sum(len(word) for word in words),
        total_points=total_points(player),
        stuck_penalty=STUCK_PENALTY * player.stuck_penalty_count,
        mess_bonus=MESS_BONUS * player.mess_bonus_count,
    )


def final_statistics(
    players: Iterable[PlayerModel],
    tiles: Iterable[TileModel],
    history: Iterable[CompletedWordModel],
) -> list[PlayerStatsModel]:
    """
    End of game statistics per player (in join order).

    ---
    NOTE vowels/consonants count every tile the player currently holds OR moved last, so tiles that were only
    touched in passing are included as well. This is an approximation, not a tally of tiles the player played.
    """
    tiles = list(tiles)
    history = list(history)
    stats: list[PlayerStatsModel] = []
    for player in players:
        words = unique_words(player.id, history)
        touched = {
            tile.id: tile.letter.upper()
            for tile in tiles
            if player.id in (tile.owner_player_id, tile.last_moved_by_player_id)
        }
        vowels = sum(1 for letter in touched.values() if letter in VOWELS)
        consonants = sum(
            1 for letter in touched.values() if letter.isalpha() and letter not in VOWELS
        )
        stats.append(
            PlayerStatsModel(
                player_id=player.id,
                player_name=player.display_name,
                color=player.color,
                character=player.character,
                total_points=total_points(player),
                word_count=len(words),
                total_letters=sum(len(word) for word in words),
                mess_count=player.mess_bonus_count,
                stuck_count=player.stuck_penalty_count,
                longest_word=max(words, key=len, default=""),
                total_vowels=vowels,
                total_consonants=consonants,
            )
        )
    return stats


def rank_by_points(stats: list[PlayerStatsModel]) -> list[PlayerStatsModel]:
    """Highest total points first (ties keep join order)."""
    return sorted(stats, key=lambda s: -s.total_points)


def rank_by_words(stats: list[PlayerStatsModel]) -> list[PlayerStatsModel]:
    """Most unique words first, then most letters (ties keep join order)."""
    return sorted(stats, key=lambda s: (-s.word_count, -s.total_letters))
