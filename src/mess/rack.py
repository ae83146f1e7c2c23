"""
A player's rack: 7 visible slots that behave like a line of people.

Inserting into an occupied slot pushes the occupant (and its direct neighbours) one step to the right.
"""

from typing import Iterable
from uuid import UUID

RACK_SLOTS = 7


def clamp_slot(slot: int) -> int:
    return max(0, min(RACK_SLOTS - 1, slot))


def first_free_slot(occupied: Iterable[int]) -> int:
    """Lowest free slot index. Past the 7 visible slots the rack keeps growing."""
    taken = set(occupied)
    slot = 0
    while slot in taken:
        slot += 1
    return slot


def shift_insert(rack: dict[int, UUID], target: int) -> dict[UUID, int]:
    """
    Make room at `target` and report which tiles have to move where.
    ----

    `rack` maps slot -> tile id for all tiles already on the rack (without the tile being inserted).
    1. if `target` is free, nothing moves
    2. otherwise the contiguous block of occupied slots starting at `target` shifts right by one
    3. a tile pushed past the last visible slot wraps to the first free slot from the left
    """
    target = clamp_slot(target)
    if target not in rack:
        return {}

    block: list[UUID] = []
    slot = target
    while slot < RACK_SLOTS and slot in rack:
        block.append(rack[slot])
        slot += 1

    moves: dict[UUID, int] = {}
    taken = (set(rack.keys()) - set(range(target, target + len(block)))) | {target}
    overflow: list[UUID] = []
    for offset, tile_id in enumerate(block):
        new_slot = target + 1 + offset
        if new_slot < RACK_SLOTS:
            moves[tile_id] = new_slot
            taken.add(new_slot)
        else:
            overflow.append(tile_id)

    for tile_id in overflow:
        new_slot = first_free_slot(taken)
        moves[tile_id] = new_slot
        taken.add(new_slot)

    return moves
