"""Letter distribution and the shared bag of undealt letters"""

import math
import random
from dataclasses import dataclass, field
from typing import Optional, Self

# letter -> (count in a standard bag, point value)
LETTER_DISTRIBUTION: dict[str, tuple[int, int]] = {
    "A": (9, 1),
    "B": (2, 3),
    "C": (2, 3),
    "D": (4, 2),
    "E": (12, 1),
    "F": (2, 4),
    "G": (3, 2),
    "H": (2, 4),
    "I": (9, 1),
    "J": (1, 8),
    "K": (1, 5),
    "L": (4, 1),
    "M": (2, 3),
    "N": (6, 1),
    "O": (8, 1),
    "P": (2, 3),
    "Q": (1, 10),
    "R": (6, 1),
    "S": (4, 1),
    "T": (6, 1),
    "U": (4, 1),
    "V": (2, 4),
    "W": (2, 4),
    "X": (1, 8),
    "Y": (2, 4),
    "Z": (1, 10),
}

STANDARD_TOTAL = sum(count for count, _ in LETTER_DISTRIBUTION.values())
PADDING_VOWELS = ["A", "E", "I", "O"]


def letter_value(letter: str) -> int:
    """Point value of a letter. Unknown letters are worth 1."""
    entry = LETTER_DISTRIBUTION.get(letter.upper())
    return entry[1] if entry else 1


def scaled_counts(target_count: int) -> dict[str, int]:
    """Standard counts scaled by target/standard, rounded half up, every letter at least once."""
    scale = target_count / STANDARD_TOTAL
    return {
        letter: max(1, math.floor(count * scale + 0.5))
        for letter, (count, _) in LETTER_DISTRIBUTION.items()
    }


def create_letter_bag(target_count: int, rng: Optional[random.Random] = None) -> list[str]:
    """
    Scale the standard distribution to exactly `target_count` letters.
    ----

    1. every letter count is scaled by target/standard and rounded (but each letter appears at least once)
    2. excess gets removed at random, a shortfall gets padded with common vowels
    3. the result is shuffled
    """
    rng = rng or random.Random()

    letters: list[str] = []
    for letter, count in scaled_counts(target_count).items():
        letters.extend([letter] * count)

    while len(letters) > target_count:
        letters.pop(rng.randrange(len(letters)))
    while len(letters) < target_count:
        letters.append(rng.choice(PADDING_VOWELS))

    rng.shuffle(letters)
    return letters


@dataclass
class LetterBag:
    """Pre-shuffled letters. Drawing pops from the end."""

    letters: list[str] = field(default_factory=list)

    @classmethod
    def scaled(cls, target_count: int, rng: Optional[random.Random] = None) -> Self:
        return cls(create_letter_bag(target_count, rng))

    def __len__(self) -> int:
        return len(self.letters)

    @property
    def is_empty(self) -> bool:
        return not self.letters

    def draw_one(self) -> str:
        if not self.letters:
            raise IndexError("Cannot draw from an empty bag.")
        return self.letters.pop()

    def draw(self, amount: int) -> list[str]:
        """Draw up to `amount` letters (fewer if the bag runs out)."""
        return [self.draw_one() for _ in range(min(amount, len(self.letters)))]
