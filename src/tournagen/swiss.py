"""
Swiss-system pairing.

Participants with equal points are paired against each other, avoiding
rematches where possible. Pairing is greedy front-to-back; only when the
greedy pass would force a rematch is a repeat-free pairing searched for in
the same preference order.
"""
import logging
import math
from typing import FrozenSet, List, Optional, Sequence, Set, Tuple

from .models import Fixture, LeagueStructure, Participant, ScheduleRound
from .standings import ScoringConfig, compute_standings

logger = logging.getLogger(__name__)

# Upper bound on search steps before falling back to the greedy pairing
MAX_SEARCH_STEPS = 20000

Pair = Tuple[Participant, Participant]


def recommended_rounds(participant_count: int) -> int:
    """Rounds needed to separate a single undefeated participant."""
    if participant_count < 2:
        return 0
    return math.ceil(math.log2(participant_count))


def _pair_key(a: Participant, b: Participant) -> FrozenSet[str]:
    return frozenset((a.id, b.id))


def previous_pairings(previous_rounds: Sequence[ScheduleRound]) -> Set[FrozenSet[str]]:
    played = set()
    for schedule_round in previous_rounds:
        for fixture in schedule_round.fixtures:
            if fixture.participant2 is not None:
                played.add(_pair_key(fixture.participant1, fixture.participant2))
    return played


def order_by_score_groups(participants: Sequence[Participant], previous_rounds: Sequence[ScheduleRound],
                          scoring: Optional[ScoringConfig] = None) -> List[Participant]:
    """Score groups from highest to lowest points, incoming order inside each group."""
    fixtures = [f for r in previous_rounds for f in r.fixtures]
    standings = compute_standings(participants, fixtures, scoring)
    points = {e.participant.id: e.points for e in standings.entries}
    indexed = list(enumerate(participants))
    indexed.sort(key=lambda item: (-points[item[1].id], item[0]))
    return [p for _, p in indexed]


def greedy_pairing(ordered: Sequence[Participant],
                   played: Set[FrozenSet[str]]) -> Tuple[List[Pair], Optional[Participant], int]:
    """
    Take the first unpaired participant and pair them with the first later
    participant they have not met; if none exists, with the next unpaired one.

    Returns (pairs, bye participant or None, number of repeated pairings).
    """
    unpaired = list(ordered)
    pairs = []
    repeats = 0
    while len(unpaired) >= 2:
        first = unpaired.pop(0)
        opponent_index = next(
            (i for i, candidate in enumerate(unpaired) if _pair_key(first, candidate) not in played),
            None,
        )
        if opponent_index is None:
            opponent_index = 0
            repeats += 1
        pairs.append((first, unpaired.pop(opponent_index)))

    bye = unpaired[0] if unpaired else None
    return pairs, bye, repeats


def _search(remaining: List[Participant], played: Set[FrozenSet[str]], budget: List[int]) -> Optional[List[Pair]]:
    if not remaining:
        return []
    budget[0] -= 1
    if budget[0] <= 0:
        return None

    first = remaining[0]
    for index in range(1, len(remaining)):
        candidate = remaining[index]
        if _pair_key(first, candidate) in played:
            continue
        rest = remaining[1:index] + remaining[index + 1:]
        sub = _search(rest, played, budget)
        if sub is not None:
            return [(first, candidate)] + sub
    return None


def repeat_free_pairing(ordered: Sequence[Participant], played: Set[FrozenSet[str]],
                        had_bye: Set[str]) -> Optional[Tuple[List[Pair], Optional[Participant]]]:
    """
    Depth-first search for a pairing with no rematches, trying opponents in
    the same order the greedy pass would. With an odd roster the bye goes to
    the lowest-placed participant that makes a repeat-free pairing possible,
    preferring participants without an earlier bye.
    """
    budget = [MAX_SEARCH_STEPS]
    ordered = list(ordered)

    if len(ordered) % 2 == 0:
        pairs = _search(ordered, played, budget)
        return (pairs, None) if pairs is not None else None

    reverse = list(reversed(ordered))
    candidates = [p for p in reverse if p.id not in had_bye] + [p for p in reverse if p.id in had_bye]
    for bye in candidates:
        remaining = [p for p in ordered if p.id != bye.id]
        pairs = _search(remaining, played, budget)
        if pairs is not None:
            return pairs, bye
        if budget[0] <= 0:
            break
    return None


def pair_round(participants: Sequence[Participant], previous_rounds: Sequence[ScheduleRound],
               round_number: int, scoring: Optional[ScoringConfig] = None) -> ScheduleRound:
    """
    Pair the next Swiss round.

    Args:
        participants: Full roster in seed/original order
        previous_rounds: Rounds already played (results drive score groups)
        round_number: 1-based number of the round being paired
        scoring: Points used to form score groups

    Returns:
        ScheduleRound whose fixtures cover every participant once; with an odd
        roster one fixture is a bye (``participant2`` None, ``is_bye`` True).
    """
    ordered = order_by_score_groups(participants, previous_rounds, scoring)
    played = previous_pairings(previous_rounds)
    pairs, bye, repeats = greedy_pairing(ordered, played)

    if repeats:
        had_bye = {f.participant1.id for r in previous_rounds for f in r.fixtures if f.is_bye}
        found = repeat_free_pairing(ordered, played, had_bye)
        if found is not None:
            pairs, bye = found
        else:
            logger.warning("Round %d: %d rematch(es) unavoidable", round_number, repeats)

    round_id = f"round-{round_number}"
    fixtures = [
        Fixture(id=f"{round_id}-fixture-{i + 1}", participant1=a, participant2=b)
        for i, (a, b) in enumerate(pairs)
    ]
    if bye is not None:
        fixtures.append(Fixture(id=f"{round_id}-bye", participant1=bye, participant2=None, is_bye=True))

    logger.debug("Paired Swiss round %d: %d fixtures, bye=%s",
                 round_number, len(pairs), bye.name if bye else None)
    return ScheduleRound(id=round_id, round_number=round_number, fixtures=fixtures)


def generate_swiss_structure(config, previous_rounds: Optional[Sequence[ScheduleRound]] = None) -> LeagueStructure:
    """
    Build a Swiss league: the rounds already played plus the next paired
    round, until the configured number of rounds exists.
    """
    participants = list(config.participants)
    options = config.options
    previous = list(previous_rounds or [])
    fixtures = [f for r in previous for f in r.fixtures]
    standings = compute_standings(participants, fixtures, options.scoring)

    if len(participants) < 2:
        return LeagueStructure(standings=standings)

    total_rounds = options.rounds or recommended_rounds(len(participants))
    rounds = list(previous)
    if len(previous) < total_rounds:
        rounds.append(pair_round(participants, previous, len(previous) + 1, options.scoring))

    return LeagueStructure(rounds=rounds, standings=standings)
