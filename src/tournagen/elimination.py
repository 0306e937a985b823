"""
Single elimination bracket generation.
"""
import copy
import logging
import math
from typing import Callable, List, Optional, Sequence

from .models import BracketMatch, BracketRound, BracketStructure, Participant
from .seeding import apply_seeding, next_power_of_two, MINIMUM_BRACKET_SIZE

logger = logging.getLogger(__name__)

THIRD_PLACE_ID = 'third-place'


def get_round_name(round_number: int, total_rounds: int) -> str:
    """Get the name of a round from its distance to the final."""
    if total_rounds == 1 or round_number == total_rounds:
        return "Final"
    elif round_number == total_rounds - 1:
        return "Semifinals"
    elif round_number == total_rounds - 2:
        return "Quarterfinals"
    else:
        return f"Round {round_number}"


def calculate_bracket_size(num_participants: int, requested='auto') -> int:
    """
    Total slot count: the configured size or the next power of two that fits
    every participant, whichever is larger, never below 2.
    """
    desired = next_power_of_two(num_participants) if requested in (None, 'auto') else int(requested)
    return max(MINIMUM_BRACKET_SIZE, next_power_of_two(desired), next_power_of_two(num_participants))


def calculate_byes(num_participants: int, requested='auto') -> int:
    """Calculate number of empty first-round slots."""
    if num_participants < 2:
        return 0
    return calculate_bracket_size(num_participants, requested) - num_participants


def calculate_total_rounds(total_slots: int) -> int:
    if total_slots < 2:
        return 0
    return math.ceil(math.log2(total_slots))


def build_bracket_rounds(total_slots: int, id_prefix: str = '',
                         round_namer: Callable[[int, int], str] = get_round_name) -> List[BracketRound]:
    """
    Build the empty round/match skeleton for a bracket of ``total_slots``.

    Round r has total_slots / 2^r matches; match i of round r feeds into
    match floor(i/2)+1 of round r+1. The final feeds nothing.
    """
    total_rounds = calculate_total_rounds(total_slots)
    rounds = []

    for round_number in range(1, total_rounds + 1):
        round_id = f"{id_prefix}round-{round_number}"
        num_matches = max(1, total_slots // 2 ** round_number)
        matches = []
        for index in range(num_matches):
            feeds_into = None
            if round_number < total_rounds:
                feeds_into = f"{id_prefix}round-{round_number + 1}-match-{index // 2 + 1}"
            matches.append(BracketMatch(
                id=f"{round_id}-match-{index + 1}",
                round_id=round_id,
                position=index + 1,
                feeds_into=feeds_into,
            ))
        rounds.append(BracketRound(
            id=round_id,
            name=round_namer(round_number, total_rounds),
            round_number=round_number,
            matches=matches,
        ))

    return rounds


def fill_first_round(first_round: BracketRound, slots: Sequence[Optional[Participant]],
                     sources: Optional[Sequence[Optional[str]]] = None) -> None:
    """Assign adjacent slot pairs to first-round matches and resolve byes."""
    for index, match in enumerate(first_round.matches):
        participant1 = slots[index * 2] if index * 2 < len(slots) else None
        participant2 = slots[index * 2 + 1] if index * 2 + 1 < len(slots) else None
        match.participant1 = participant1
        match.participant2 = participant2
        if sources is not None:
            match.source1 = sources[index * 2] if index * 2 < len(sources) else None
            match.source2 = sources[index * 2 + 1] if index * 2 + 1 < len(sources) else None

        if (participant1 is None) != (participant2 is None):
            match.is_bye = True
            match.winner = participant1 if participant1 is not None else participant2
        else:
            match.is_bye = False
            match.winner = None


def propagate_byes(rounds: List[BracketRound]) -> None:
    """
    Carry walkover winners forward one round at a time.

    A match with both slots empty and no live feeders is dead; a match fed by
    one dead match and one decided match is itself a walkover, so chains of
    walkovers resolve all the way through oversized brackets.
    """
    if not rounds:
        return

    dead = {m.id for m in rounds[0].matches if m.participant1 is None and m.participant2 is None}

    for round_index in range(len(rounds) - 1):
        current = rounds[round_index]
        following = rounds[round_index + 1]

        for index, match in enumerate(current.matches):
            if match.winner is None:
                continue
            target = following.matches[index // 2]
            if index % 2 == 0 and target.participant1 is None:
                target.participant1 = match.winner
            elif index % 2 == 1 and target.participant2 is None:
                target.participant2 = match.winner

        for index, target in enumerate(following.matches):
            feeder1 = current.matches[index * 2]
            feeder2 = current.matches[index * 2 + 1]
            dead1, dead2 = feeder1.id in dead, feeder2.id in dead
            if dead1 and dead2:
                dead.add(target.id)
            elif dead1 and feeder2.winner is not None:
                target.is_bye = True
                target.winner = feeder2.winner
            elif dead2 and feeder1.winner is not None:
                target.is_bye = True
                target.winner = feeder1.winner


def build_bracket_from_slots(slots: Sequence[Optional[Participant]], third_place_playoff: bool = False,
                             sources: Optional[Sequence[Optional[str]]] = None,
                             id_prefix: str = '',
                             round_namer: Callable[[int, int], str] = get_round_name) -> BracketStructure:
    """
    Build a fully-linked bracket from an already placed slot array.

    The skeleton is created, first-round slots filled, and byes propagated
    inside this call; the caller only ever sees the finished structure.
    """
    total_slots = len(slots)
    participant_count = sum(1 for s in slots if s is not None)
    if participant_count < 2 or total_slots < 2:
        return BracketStructure()

    rounds = build_bracket_rounds(total_slots, id_prefix, round_namer)
    fill_first_round(rounds[0], slots, sources)
    propagate_byes(rounds)

    third_place_match = None
    if third_place_playoff and len(rounds) >= 2:
        third_place_match = BracketMatch(
            id=f"{id_prefix}{THIRD_PLACE_ID}",
            round_id=f"{id_prefix}{THIRD_PLACE_ID}",
            position=1,
        )

    logger.debug("Built bracket: %d slots, %d rounds, %d byes",
                 total_slots, len(rounds), sum(1 for m in rounds[0].matches if m.is_bye))
    return BracketStructure(rounds=rounds, third_place_match=third_place_match)


def generate_single_elimination_bracket(config, random_source=None) -> BracketStructure:
    """
    Generate a single elimination bracket from a tournament config.

    Args:
        config: TournamentConfig whose options are SingleEliminationOptions
        random_source: Optional RNG for the "random" seeding method

    Returns:
        BracketStructure; empty when fewer than two participants
    """
    participants = config.participants
    options = config.options
    if len(participants) < 2:
        return BracketStructure()

    total_slots = calculate_bracket_size(len(participants), options.bracket_size)
    slots = apply_seeding(
        participants,
        method=options.seeding_method,
        bracket_size=total_slots,
        manual_order=options.manual_seed_order,
        random_source=random_source,
    )
    return build_bracket_from_slots(slots, third_place_playoff=options.third_place_playoff)


def _loser_of(match: BracketMatch, winner: Participant) -> Optional[Participant]:
    if match.participant1 is not None and match.participant1.id == winner.id:
        return match.participant2
    if match.participant2 is not None and match.participant2.id == winner.id:
        return match.participant1
    return None


def advance_winner(structure: BracketStructure, match_id: str, winner: Participant) -> BracketStructure:
    """
    Record a single elimination result and return a new structure.

    The winner is written into the downstream slot picked by the match's
    position parity; semifinal losers fill the third-place match. The input
    structure is left untouched.
    """
    result = copy.deepcopy(structure)
    match = result.find_match(match_id)
    if match is None:
        raise KeyError(f"Match '{match_id}' not found")
    entrants = {p.id for p in (match.participant1, match.participant2) if p is not None}
    if winner.id not in entrants or (len(entrants) < 2 and not match.is_bye):
        raise ValueError(f"{winner.name} is not playing in match '{match_id}'")

    match.winner = winner
    slot = 'participant1' if match.position % 2 == 1 else 'participant2'

    if match.feeds_into:
        target = result.find_match(match.feeds_into)
        if target is not None:
            setattr(target, slot, winner)

    is_semifinal = len(result.rounds) >= 2 and match.round_id == result.rounds[-2].id
    if is_semifinal and result.third_place_match is not None:
        setattr(result.third_place_match, slot, _loser_of(match, winner))

    return result
