"""
Round robin scheduling using the circle method.
"""
import logging
import string
from typing import List, Optional, Sequence, Tuple

from .models import Fixture, LeagueGroup, LeagueStructure, Participant, ScheduleRound
from .seeding import sort_by_derived_seed
from .standings import compute_standings

logger = logging.getLogger(__name__)

Pairing = Tuple[Participant, Participant]


def circle_pairings(participants: Sequence[Participant]) -> List[List[Pairing]]:
    """
    One full round trip via the circle method.

    With an odd roster a ``None`` rest slot is added; pairings against it are
    dropped, giving that participant a bye for the round. The first player
    stays fixed; after each round the last player moves to index 1.
    """
    players: List[Optional[Participant]] = list(participants)
    if len(players) < 2:
        return []
    if len(players) % 2 == 1:
        players.append(None)

    n = len(players)
    rounds = []
    for _ in range(n - 1):
        pairings = []
        for i in range(n // 2):
            home, away = players[i], players[n - 1 - i]
            if home is not None and away is not None:
                pairings.append((home, away))
        rounds.append(pairings)
        players = [players[0], players[-1]] + players[1:-1]

    return rounds


def schedule_round_robin(participants: Sequence[Participant], rounds: int = 1,
                         swap_home_away: bool = True, id_prefix: str = '') -> List[ScheduleRound]:
    """
    Schedule ``rounds`` repetitions of a full round robin.

    Every repetition after the first replays the single cycle; odd
    repetitions swap home and away when ``swap_home_away`` is set.
    Fixture count is N*(N-1)/2 * rounds.
    """
    cycle = circle_pairings(participants)
    schedule = []
    round_number = 0

    for repetition in range(max(0, rounds)):
        swap = swap_home_away and repetition % 2 == 1
        for pairings in cycle:
            round_number += 1
            round_id = f"{id_prefix}round-{round_number}"
            fixtures = []
            for index, (home, away) in enumerate(pairings):
                if swap:
                    home, away = away, home
                fixtures.append(Fixture(
                    id=f"{round_id}-fixture-{index + 1}",
                    participant1=home,
                    participant2=away,
                ))
            schedule.append(ScheduleRound(id=round_id, round_number=round_number, fixtures=fixtures))

    return schedule


def group_label(index: int) -> str:
    """A, B, ... Z, AA, AB ..."""
    letters = string.ascii_uppercase
    label = ''
    index += 1
    while index > 0:
        index, remainder = divmod(index - 1, 26)
        label = letters[remainder] + label
    return label


def distribute_sequential(participants: Sequence[Participant], group_count: int) -> List[List[Participant]]:
    """Deal participants in seed order: seed 1 to A, seed 2 to B, ..."""
    groups: List[List[Participant]] = [[] for _ in range(max(1, group_count))]
    for index, participant in enumerate(sort_by_derived_seed(participants)):
        groups[index % len(groups)].append(participant)
    return groups


def build_group(index: int, members: List[Participant], legs: int,
                swap_home_away: bool, scoring) -> Tuple[LeagueGroup, List[ScheduleRound]]:
    label = group_label(index)
    group_id = f"group-{label.lower()}"
    group_rounds = schedule_round_robin(members, legs, swap_home_away, id_prefix=f"{group_id}-")
    fixtures = [f for r in group_rounds for f in r.fixtures]
    group = LeagueGroup(
        id=group_id,
        name=f"Group {label}",
        participants=list(members),
        standings=compute_standings(members, fixtures, scoring),
        fixtures=fixtures,
    )
    return group, group_rounds


def merge_group_rounds(per_group_rounds: List[List[ScheduleRound]]) -> List[ScheduleRound]:
    """Top-level round r holds every group's round r fixtures."""
    total = max((len(r) for r in per_group_rounds), default=0)
    merged = []
    for index in range(total):
        fixtures = []
        for group_rounds in per_group_rounds:
            if index < len(group_rounds):
                fixtures.extend(group_rounds[index].fixtures)
        merged.append(ScheduleRound(id=f"round-{index + 1}", round_number=index + 1, fixtures=fixtures))
    return merged


def generate_round_robin_structure(config) -> LeagueStructure:
    """
    Generate a league from a config whose options are RoundRobinOptions.

    With ``group_count`` > 1 each group is scheduled independently and owns
    its standings; top-level standings cover the whole roster.
    """
    participants = list(config.participants)
    options = config.options
    if len(participants) < 2:
        return LeagueStructure(standings=compute_standings(participants, [], options.scoring))

    if options.group_count <= 1:
        schedule = schedule_round_robin(participants, options.rounds, options.swap_home_away)
        fixtures = [f for r in schedule for f in r.fixtures]
        logger.debug("Scheduled round robin: %d participants, %d rounds, %d fixtures",
                     len(participants), len(schedule), len(fixtures))
        return LeagueStructure(
            rounds=schedule,
            standings=compute_standings(participants, fixtures, options.scoring),
        )

    groups = []
    per_group_rounds = []
    for index, members in enumerate(distribute_sequential(participants, options.group_count)):
        group, group_rounds = build_group(index, members, options.rounds, options.swap_home_away, options.scoring)
        groups.append(group)
        per_group_rounds.append(group_rounds)

    rounds = merge_group_rounds(per_group_rounds)
    fixtures = [f for r in rounds for f in r.fixtures]
    logger.debug("Scheduled %d groups, %d fixtures", len(groups), len(fixtures))
    return LeagueStructure(
        rounds=rounds,
        standings=compute_standings(participants, fixtures, options.scoring),
        groups=groups,
    )
