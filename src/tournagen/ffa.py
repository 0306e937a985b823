"""
Free-for-all stage generation: lobbies narrowing down to a single final.
"""
import logging
import math
from typing import List, Sequence

from .models import AdvancementRules, Participant, StageMatch, StageStructure, TournamentStage

logger = logging.getLogger(__name__)


def split_into_lobbies(roster: Sequence[Participant], lobby_size: int) -> List[List[Participant]]:
    """
    Split consecutively into the fewest lobbies of at most ``lobby_size``,
    with lobby sizes differing by at most one.
    """
    if not roster:
        return []
    count = math.ceil(len(roster) / lobby_size)
    base, extra = divmod(len(roster), count)
    lobbies = []
    start = 0
    for index in range(count):
        size = base + (1 if index < extra else 0)
        lobbies.append(list(roster[start:start + size]))
        start += size
    return lobbies


def _stage(stage_number: int, name: str, lobbies: List[List[Participant]], advance_count: int) -> TournamentStage:
    stage_id = f"stage-{stage_number}"
    matches = [
        StageMatch(id=f"{stage_id}-match-{i + 1}", match_number=i + 1, participants=lobby)
        for i, lobby in enumerate(lobbies)
    ]
    return TournamentStage(
        id=stage_id,
        name=name,
        stage_number=stage_number,
        matches=matches,
        advancement_rules=AdvancementRules(advance_count=advance_count, advance_method='top-n'),
    )


def generate_stages(participants: Sequence[Participant], lobby_size: int,
                    advance_per_match: int, final_size: int) -> StageStructure:
    """
    Generate successive narrowing stages.

    While the roster is larger than ``final_size`` it is split into lobbies
    and the first ``advance_per_match`` of each lobby (slot order until
    results exist) form the next roster. A last stage holds the remaining
    roster in a single match with one winner. A stage that could not shrink
    the roster ends the narrowing early.
    """
    roster = list(participants)
    if not roster:
        return StageStructure()

    lobby_size = max(1, lobby_size)
    advance_per_match = max(1, advance_per_match)
    final_size = max(1, final_size)

    stages = []
    while len(roster) > final_size:
        lobbies = split_into_lobbies(roster, lobby_size)
        next_roster = [p for lobby in lobbies for p in lobby[:advance_per_match]]
        if len(next_roster) >= len(roster):
            logger.warning("Advancement of %d per lobby cannot narrow %d participants; ending stages",
                           advance_per_match, len(roster))
            break
        stage_number = len(stages) + 1
        stages.append(_stage(stage_number, f"Stage {stage_number}", lobbies, advance_per_match))
        roster = next_roster

    final_number = len(stages) + 1
    stages.append(_stage(final_number, "Final", [roster], 1))

    logger.debug("Generated %d FFA stages for %d participants", len(stages), len(participants))
    return StageStructure(stages=stages)


def generate_ffa_structure(config) -> StageStructure:
    options = config.options
    return generate_stages(config.participants, options.lobby_size,
                           options.advance_per_match, options.final_size)
