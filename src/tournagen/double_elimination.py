"""
Double elimination bracket generation.

In double elimination:
- Participants must lose twice to be eliminated
- Winners Bracket: participants that haven't lost yet
- Losers Bracket: participants that have lost once
- Grand Final: Winners bracket champion vs Losers bracket champion
- Bracket Reset: if the losers bracket champion wins the Grand Final, a final
  match decides the champion
"""
import logging
import math
from typing import Dict, List, Set

from .elimination import build_bracket_from_slots, calculate_bracket_size
from .models import BracketMatch, BracketRound, BracketStructure
from .seeding import apply_seeding

logger = logging.getLogger(__name__)

GRAND_FINAL_ID = 'grand-final'
GRAND_FINAL_RESET_ID = 'grand-final-reset'


def get_losers_round_name(round_index: int, total_losers_rounds: int) -> str:
    """Label for losers round ``round_index`` (0-based): the last two are named, the rest numbered."""
    rounds_from_end = total_losers_rounds - round_index - 1
    if rounds_from_end == 0:
        return "Losers Final"
    elif rounds_from_end == 1:
        return "Losers Semifinal"
    return f"Losers Round {round_index + 1}"


def get_winners_round_name(round_number: int, total_rounds: int) -> str:
    """Get the name for a winners bracket round (1-indexed)."""
    teams_in_round = 2 ** (total_rounds - round_number + 1)
    if teams_in_round == 2:
        return "Winners Final"
    elif teams_in_round == 4:
        return "Winners Semifinal"
    elif teams_in_round == 8:
        return "Winners Quarterfinal"
    else:
        return f"Winners Round of {teams_in_round}"


def calculate_losers_bracket_rounds(bracket_size: int) -> int:
    """
    Losers round count for a winners bracket of ``bracket_size`` slots.

    Every winners round after the first drops its losers into a major round,
    and each major round is preceded by a minor round that halves the field,
    giving 2 * (log2(slots) - 1) rounds that end on a major round.
    """
    if bracket_size < 2:
        return 0
    return 2 * (int(math.log2(bracket_size)) - 1)


def _losers_match_id(round_number: int, index: int) -> str:
    return f"losers-round-{round_number}-match-{index + 1}"


def generate_losers_bracket(bracket_size: int) -> List[BracketRound]:
    """
    Generate the losers bracket skeleton.

    The losers bracket alternates between:
    - Minor rounds (L1, L3, L5...): only losers bracket survivors compete
    - Major rounds (L2, L4, L6...): losers from winners round k drop into
      L(2(k-1)) and face the previous losers round winners

    For an 8-slot bracket:
    - L1 (minor): 4 W1 losers pair off -> 2 matches
    - L2 (major): 2 W2 losers vs 2 L1 winners -> 2 matches
    - L3 (minor): 2 L2 winners pair off -> 1 match
    - L4 (major): W3 loser vs L3 winner -> 1 match (losers champion)
    """
    total_losers_rounds = calculate_losers_bracket_rounds(bracket_size)
    rounds = []
    if total_losers_rounds <= 0:
        return rounds

    num_matches = bracket_size // 4
    for round_index in range(total_losers_rounds):
        round_number = round_index + 1
        is_major_round = round_number % 2 == 0
        if round_number > 1 and not is_major_round:
            num_matches //= 2

        is_last = round_number == total_losers_rounds
        matches = []
        for i in range(num_matches):
            if is_last:
                feeds_into = GRAND_FINAL_ID
            elif is_major_round:
                feeds_into = _losers_match_id(round_number + 1, i // 2)
            else:
                feeds_into = _losers_match_id(round_number + 1, i)
            matches.append(BracketMatch(
                id=_losers_match_id(round_number, i),
                round_id=f"losers-round-{round_number}",
                position=i + 1,
                feeds_into=feeds_into,
            ))

        rounds.append(BracketRound(
            id=f"losers-round-{round_number}",
            name=get_losers_round_name(round_index, total_losers_rounds),
            round_number=round_number,
            matches=matches,
        ))

    return rounds


def matches_without_loser(winners_rounds: List[BracketRound]) -> Set[str]:
    """Ids of winners matches that can never produce a loser: byes, walkovers and empty matches."""
    empty = {m.id for m in winners_rounds[0].matches if m.participant1 is None and m.participant2 is None}
    for current, following in zip(winners_rounds, winners_rounds[1:]):
        for index, target in enumerate(following.matches):
            if current.matches[index * 2].id in empty and current.matches[index * 2 + 1].id in empty:
                empty.add(target.id)
    return empty | {m.id for r in winners_rounds for m in r.matches if m.is_bye}


def link_drop_downs(winners_rounds: List[BracketRound], losers_rounds: List[BracketRound]) -> None:
    """
    Point every winners match that will have a loser at the losers match it
    drops into.

    W1 match i -> L1 match i//2; Wk match i -> L(2(k-1)) match i for k >= 2.
    Without a losers bracket the single winners match drops into the grand final.
    """
    if not losers_rounds:
        for match in winners_rounds[-1].matches:
            match.loser_feeds_into = GRAND_FINAL_ID
        return

    no_loser = matches_without_loser(winners_rounds)
    for winners_round in winners_rounds:
        k = winners_round.round_number
        for i, match in enumerate(winners_round.matches):
            if match.id in no_loser:
                match.loser_feeds_into = None
            elif k == 1:
                match.loser_feeds_into = _losers_match_id(1, i // 2)
            else:
                match.loser_feeds_into = _losers_match_id(2 * (k - 1), i)


def resolve_losers_walkovers(winners_rounds: List[BracketRound], losers_rounds: List[BracketRound]) -> None:
    """
    Flag losers matches that can receive at most one entrant as byes.

    A slot is live when a winners loser drops into it or a live losers match
    feeds it. One live slot makes the match a walkover for whoever arrives;
    none makes it empty, and the slot it feeds downstream is dead as well.
    Must run after ``link_drop_downs``.
    """
    drops = {r.round_number: [m.loser_feeds_into is not None for m in r.matches] for r in winners_rounds}
    live: Dict[str, int] = {}
    for position, losers_round in enumerate(losers_rounds):
        round_number = losers_round.round_number
        previous = losers_rounds[position - 1].matches if position else []
        for i, match in enumerate(losers_round.matches):
            if round_number == 1:
                slots = drops[1][i * 2:i * 2 + 2]
            elif round_number % 2 == 0:
                slots = [drops[round_number // 2 + 1][i], live[previous[i].id] > 0]
            else:
                slots = [live[previous[i * 2].id] > 0, live[previous[i * 2 + 1].id] > 0]
            live[match.id] = sum(slots)
            match.is_bye = live[match.id] < 2

    walkovers = sum(1 for count in live.values() if count == 1)
    if walkovers:
        logger.debug("Losers bracket: %d walkovers, %d empty matches",
                     walkovers, sum(1 for count in live.values() if count == 0))


def generate_double_elimination_bracket(config, random_source=None) -> BracketStructure:
    """
    Generate complete double elimination bracket structure.

    Args:
        config: TournamentConfig whose options are DoubleEliminationOptions
        random_source: Optional RNG for the "random" seeding method

    Returns:
        BracketStructure with winners ``rounds``, ``losers_rounds``,
        ``grand_final`` and, when resets are enabled, ``grand_final_reset``.
    """
    participants = config.participants
    options = config.options
    if len(participants) < 2:
        return BracketStructure()

    bracket_size = calculate_bracket_size(len(participants), options.bracket_size)
    slots = apply_seeding(
        participants,
        method=options.seeding_method,
        bracket_size=bracket_size,
        manual_order=options.manual_seed_order,
        random_source=random_source,
    )
    return build_double_elimination_from_slots(slots, enable_reset=options.enable_reset)


def build_double_elimination_from_slots(slots, enable_reset: bool = True, sources=None) -> BracketStructure:
    winners = build_bracket_from_slots(
        slots,
        sources=sources,
        id_prefix='winners-',
        round_namer=get_winners_round_name,
    )
    if not winners.rounds:
        return BracketStructure()

    bracket_size = len(slots)
    losers_rounds = generate_losers_bracket(bracket_size)
    link_drop_downs(winners.rounds, losers_rounds)
    resolve_losers_walkovers(winners.rounds, losers_rounds)
    winners.rounds[-1].matches[0].feeds_into = GRAND_FINAL_ID

    grand_final = BracketMatch(
        id=GRAND_FINAL_ID,
        round_id=GRAND_FINAL_ID,
        position=1,
        feeds_into=GRAND_FINAL_RESET_ID if enable_reset else None,
    )
    grand_final_reset = None
    if enable_reset:
        grand_final_reset = BracketMatch(
            id=GRAND_FINAL_RESET_ID,
            round_id=GRAND_FINAL_RESET_ID,
            position=1,
        )

    logger.debug("Built double elimination bracket: %d winners rounds, %d losers rounds, reset=%s",
                 len(winners.rounds), len(losers_rounds), enable_reset)
    return BracketStructure(
        rounds=winners.rounds,
        losers_rounds=losers_rounds,
        grand_final=grand_final,
        grand_final_reset=grand_final_reset,
    )
