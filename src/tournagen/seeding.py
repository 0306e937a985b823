"""
Slot placement for bracket formats.

Places participants into a power-of-two slot array using one of three
methods: "seeded", "random" or "manual". Empty slots are ``None`` and become
byes in the generated bracket.
"""
import logging
import math
import random
from dataclasses import replace
from typing import List, Optional, Sequence

from .models import Participant, derive_seed

logger = logging.getLogger(__name__)

SEEDING_METHODS = ('random', 'seeded', 'manual')
MINIMUM_BRACKET_SIZE = 2


def next_power_of_two(value: int) -> int:
    """Smallest power of two >= value (1 for value <= 1)."""
    if value <= 1:
        return 1
    return 2 ** math.ceil(math.log2(value))


def build_seed_slot_order(slot_count: int) -> List[int]:
    """
    Generate the standard bracket order of seeds for ``slot_count`` slots.

    Starting from [1, 2], every doubling step follows each seed ``s`` with
    its complement ``new_size + 1 - s``:

    For 8 slots: [1, 8, 4, 5, 2, 7, 3, 6]
    First round: 1v8, 4v5, 2v7, 3v6, and if chalk holds 1 meets 2 in the final.
    """
    if slot_count <= 1:
        return [1]

    order = [1, 2]
    while len(order) < slot_count:
        next_size = len(order) * 2
        expanded = []
        for seed in order:
            expanded.append(seed)
            expanded.append(next_size + 1 - seed)
        order = expanded

    return order[:slot_count]


def sort_by_derived_seed(participants: Sequence[Participant]) -> List[Participant]:
    """Order by derived seed, falling back to list position on equal seeds."""
    indexed = [(derive_seed(p, i), i, p) for i, p in enumerate(participants)]
    indexed.sort(key=lambda entry: (entry[0], entry[1]))
    return [p for _, _, p in indexed]


def reseed(participants: Sequence[Participant]) -> List[Participant]:
    """Return copies with ``seed`` reassigned to list position + 1."""
    return [replace(p, seed=i + 1) for i, p in enumerate(participants)]


def resolve_bracket_size(participant_count: int, requested: Optional[int] = None) -> int:
    base = requested if requested is not None else participant_count
    return max(MINIMUM_BRACKET_SIZE, next_power_of_two(max(base, participant_count)))


def shuffle_participants(participants: Sequence[Participant], random_source) -> List[Participant]:
    """Fisher-Yates shuffle drawing from ``random_source.random()``."""
    result = list(participants)
    for i in range(len(result) - 1, 0, -1):
        j = math.floor(random_source.random() * (i + 1))
        result[i], result[j] = result[j], result[i]
    return result


def _seeded_placement(participants: Sequence[Participant], bracket_size: int) -> List[Optional[Participant]]:
    slots: List[Optional[Participant]] = [None] * bracket_size
    seed_to_slot = {seed: slot for slot, seed in enumerate(build_seed_slot_order(bracket_size))}

    for index, participant in enumerate(sort_by_derived_seed(participants)):
        seed_number = derive_seed(participant, index)
        preferred = seed_to_slot.get(seed_number)

        if preferred is not None and slots[preferred] is None:
            slots[preferred] = participant
            continue

        # Seed collision or seed beyond the bracket: first empty slot wins
        for fallback, occupant in enumerate(slots):
            if occupant is None:
                slots[fallback] = participant
                break

    return slots


def _manual_placement(participants: Sequence[Participant], bracket_size: int,
                      manual_order: Optional[Sequence[str]]) -> List[Optional[Participant]]:
    slots: List[Optional[Participant]] = [None] * bracket_size
    by_id = {p.id: p for p in participants}
    used = set()
    slot_index = 0

    for participant_id in manual_order or []:
        if slot_index >= bracket_size:
            break
        participant = by_id.get(participant_id)
        if participant is None or participant_id in used:
            logger.warning("Skipping manual seed entry %r (unknown or duplicate id)", participant_id)
            continue
        slots[slot_index] = participant
        used.add(participant_id)
        slot_index += 1

    remaining = sort_by_derived_seed([p for p in participants if p.id not in used])
    for participant in remaining:
        if slot_index >= bracket_size:
            break
        slots[slot_index] = participant
        slot_index += 1

    return slots


def apply_seeding(participants: Sequence[Participant], method: str = 'seeded',
                  bracket_size: Optional[int] = None,
                  manual_order: Optional[Sequence[str]] = None,
                  random_source=None) -> List[Optional[Participant]]:
    """
    Place participants into an ordered slot array.

    Args:
        participants: Roster to place (never mutated)
        method: "seeded", "random" or "manual"
        bracket_size: Requested size; forced up to a power of two that fits
            every participant, minimum 2
        manual_order: Participant ids top-to-bottom, for "manual"
        random_source: Object with a ``random()`` method, for "random"

    Returns:
        List of length bracket_size; ``None`` marks an empty slot.
    """
    size = resolve_bracket_size(len(participants), bracket_size)

    if not participants:
        return [None] * size

    if method == 'random':
        rng = random_source if random_source is not None else random.Random()
        slots: List[Optional[Participant]] = [None] * size
        for index, participant in enumerate(shuffle_participants(participants, rng)[:size]):
            slots[index] = participant
        return slots

    if method == 'manual':
        return _manual_placement(participants, size, manual_order)

    return _seeded_placement(participants, size)
