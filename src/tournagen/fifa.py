"""
FIFA-style tournaments: round robin groups feeding a knockout bracket.
"""
import logging
from typing import List, Optional, Sequence, Tuple

from .double_elimination import build_double_elimination_from_slots
from .elimination import build_bracket_from_slots
from .models import BracketStructure, LeagueGroup, LeagueStructure, Participant
from .round_robin import build_group, distribute_sequential, group_label, merge_group_rounds
from .seeding import build_seed_slot_order, next_power_of_two, sort_by_derived_seed
from .standings import compute_standings

logger = logging.getLogger(__name__)

DISTRIBUTION_METHODS = ('snake', 'sequential')
KNOCKOUT_FORMATS = ('single-elimination', 'double-elimination')
KNOCKOUT_SEEDING_RULES = ('cross-group', 'seeded')


def distribute_groups(participants: Sequence[Participant], group_count: int,
                      method: str = 'snake') -> List[List[Participant]]:
    """
    Distribute participants into groups by seed.

    snake:      A B C D D C B A A B ...  (pots balanced both ways)
    sequential: A B C D A B C D ...
    """
    group_count = max(1, group_count)
    if method != 'snake':
        return distribute_sequential(participants, group_count)

    groups: List[List[Participant]] = [[] for _ in range(group_count)]
    for index, participant in enumerate(sort_by_derived_seed(participants)):
        pot, position = divmod(index, group_count)
        target = position if pot % 2 == 0 else group_count - 1 - position
        groups[target].append(participant)
    return groups


def advancing_entries(group: LeagueGroup, advance_per_group: int) -> List[Tuple[Participant, str]]:
    """Top ``advance_per_group`` of a group's standings with "A1"-style labels."""
    label = group.name.replace('Group ', '')
    entries = group.standings.entries[:advance_per_group]
    return [(entry.participant, f"{label}{position}") for position, entry in enumerate(entries, 1)]


def _cross_group_applies(groups: Sequence[LeagueGroup], advance_per_group: int) -> bool:
    count = len(groups) * advance_per_group
    return (advance_per_group == 2 and len(groups) % 2 == 0
            and all(len(g.participants) >= 2 for g in groups)
            and next_power_of_two(count) == count)


def _cross_group_order(groups: Sequence[LeagueGroup]) -> List[Tuple[Participant, str]]:
    """
    Winners meet runners-up of the paired group, with the two winners of a
    group pair sent to opposite halves: A1-B2, C1-D2 | B1-A2, D1-C2.
    """
    top_half, bottom_half = [], []
    for index in range(0, len(groups), 2):
        first = advancing_entries(groups[index], 2)
        second = advancing_entries(groups[index + 1], 2)
        top_half.extend([first[0], second[1]])
        bottom_half.extend([second[0], first[1]])
    return top_half + bottom_half


def _seeded_order(groups: Sequence[LeagueGroup], advance_per_group: int) -> List[Optional[Tuple[Participant, str]]]:
    """
    All group winners get top seeds (group order), then all runners-up,
    and so on; seeds are placed with the standard bracket order.
    """
    per_group = [advancing_entries(g, advance_per_group) for g in groups]
    ranked = []
    for position in range(advance_per_group):
        for entries in per_group:
            if position < len(entries):
                ranked.append(entries[position])

    size = max(2, next_power_of_two(len(ranked)))
    slots: List[Optional[Tuple[Participant, str]]] = [None] * size
    seed_to_slot = {seed: slot for slot, seed in enumerate(build_seed_slot_order(size))}
    for seed, entry in enumerate(ranked, 1):
        slots[seed_to_slot[seed]] = entry
    return slots


def knockout_slots(groups: Sequence[LeagueGroup], advance_per_group: int,
                   rule: str = 'cross-group') -> Tuple[List[Optional[Participant]], List[Optional[str]]]:
    """
    Order the advancing participants into knockout slots.

    Returns (slots, sources) where sources holds the group-position label of
    each slot. The cross-group rule needs an even number of groups sending
    two each into a power-of-two bracket; otherwise seeded placement is used.
    """
    if rule == 'cross-group' and _cross_group_applies(groups, advance_per_group):
        ordered = _cross_group_order(groups)
    else:
        ordered = _seeded_order(groups, advance_per_group)

    slots = [entry[0] if entry else None for entry in ordered]
    sources = [entry[1] if entry else None for entry in ordered]
    return slots, sources


def build_knockout(groups: Sequence[LeagueGroup], options) -> Optional[BracketStructure]:
    slots, sources = knockout_slots(groups, options.advance_per_group, options.knockout_seeding)
    if sum(1 for s in slots if s is not None) < 2:
        return None

    if options.knockout_format == 'double-elimination':
        return build_double_elimination_from_slots(slots, enable_reset=options.enable_reset, sources=sources)
    return build_bracket_from_slots(slots, third_place_playoff=options.third_place_playoff,
                                    sources=sources, id_prefix='knockout-')


def generate_fifa_structure(config) -> LeagueStructure:
    """
    Generate group stage fixtures and standings plus the knockout bracket fed
    by the current group standings.
    """
    participants = list(config.participants)
    options = config.options
    if len(participants) < 2:
        return LeagueStructure(standings=compute_standings(participants, [], options.scoring), groups=[])

    group_count = max(1, min(options.group_count, len(participants) // 2))
    groups = []
    per_group_rounds = []
    for index, members in enumerate(distribute_groups(participants, group_count, options.distribution)):
        group, group_rounds = build_group(index, members, options.legs, True, options.scoring)
        groups.append(group)
        per_group_rounds.append(group_rounds)

    rounds = merge_group_rounds(per_group_rounds)
    fixtures = [f for r in rounds for f in r.fixtures]
    knockout = build_knockout(groups, options)

    logger.debug("FIFA structure: %d groups (%s), %d group fixtures, knockout=%s",
                 len(groups), ', '.join(group_label(i) for i in range(len(groups))),
                 len(fixtures), knockout is not None)
    return LeagueStructure(
        rounds=rounds,
        standings=compute_standings(participants, fixtures, options.scoring),
        groups=groups,
        knockout=knockout,
    )


def refresh_fifa_structure(config, structure: LeagueStructure) -> LeagueStructure:
    """
    Recompute group standings from recorded group results and rebuild the
    knockout bracket from them. Returns a new structure; ``structure`` is
    not modified.
    """
    options = config.options
    groups = []
    for group in structure.groups or []:
        groups.append(LeagueGroup(
            id=group.id,
            name=group.name,
            participants=list(group.participants),
            standings=compute_standings(group.participants, group.fixtures, options.scoring),
            fixtures=list(group.fixtures),
        ))

    fixtures = [f for g in groups for f in g.fixtures]
    return LeagueStructure(
        rounds=list(structure.rounds),
        standings=compute_standings(config.participants, fixtures, options.scoring),
        groups=groups,
        knockout=build_knockout(groups, options) if groups else None,
    )
