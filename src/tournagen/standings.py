"""
Standings aggregation shared by league, Swiss and group formats.

Ranking: points -> configured tiebreaker chain -> original participant order.
"""
import logging
from dataclasses import dataclass, asdict, field
from typing import Dict, Iterable, List, Optional, Sequence, Tuple

from .models import Fixture, Participant, StandingEntry, Standings

logger = logging.getLogger(__name__)

TIEBREAKER_METRICS = ('score_difference', 'score_for', 'head_to_head', 'wins')
DEFAULT_TIEBREAKERS = ('score_difference', 'score_for', 'head_to_head')


@dataclass(frozen=True)
class ScoringConfig:
    """Points awarded per result and the tiebreaker chain applied on equal points."""

    win: float = 3
    draw: float = 1
    loss: float = 0
    # None means a bye is worth the same as a win
    bye: Optional[float] = None
    tiebreakers: Tuple[str, ...] = field(default=DEFAULT_TIEBREAKERS)

    @property
    def bye_points(self) -> float:
        return self.win if self.bye is None else self.bye

    def to_dict(self) -> Dict:
        data = asdict(self)
        data['tiebreakers'] = list(self.tiebreakers)
        return data

    @classmethod
    def from_dict(cls, data: Optional[Dict]) -> "ScoringConfig":
        if not data:
            return cls()
        return cls(
            win=data.get('win', 3),
            draw=data.get('draw', 1),
            loss=data.get('loss', 0),
            bye=data.get('bye'),
            tiebreakers=tuple(data.get('tiebreakers', DEFAULT_TIEBREAKERS)),
        )


DEFAULT_SCORING = ScoringConfig()


def _new_entry(participant: Participant) -> StandingEntry:
    return StandingEntry(
        participant=participant,
        tiebreakers={'score_for': 0, 'score_against': 0, 'score_difference': 0},
    )


def _award(entry: StandingEntry, outcome: str, scored: float, conceded: float, scoring: ScoringConfig) -> None:
    entry.played += 1
    if outcome == 'win':
        entry.wins += 1
        entry.points += scoring.win
    elif outcome == 'draw':
        entry.draws += 1
        entry.points += scoring.draw
    else:
        entry.losses += 1
        entry.points += scoring.loss
    entry.tiebreakers['score_for'] += scored
    entry.tiebreakers['score_against'] += conceded
    entry.tiebreakers['score_difference'] = (
        entry.tiebreakers['score_for'] - entry.tiebreakers['score_against'])


def _outcomes(fixture: Fixture) -> Tuple[str, str]:
    winner = fixture.result.winner
    if winner is None:
        return 'draw', 'draw'
    if winner.id == fixture.participant1.id:
        return 'win', 'loss'
    return 'loss', 'win'


def head_to_head_points(participant_id: str, opponents: Iterable[str],
                        fixtures: Sequence[Fixture], scoring: ScoringConfig = DEFAULT_SCORING) -> float:
    """Points ``participant_id`` earned in completed fixtures against ``opponents``."""
    rivals = set(opponents)
    points = 0
    for fixture in fixtures:
        if fixture.result is None or fixture.participant2 is None:
            continue
        ids = (fixture.participant1.id, fixture.participant2.id)
        if participant_id not in ids:
            continue
        other = ids[1] if ids[0] == participant_id else ids[0]
        if other not in rivals:
            continue
        outcome1, outcome2 = _outcomes(fixture)
        outcome = outcome1 if ids[0] == participant_id else outcome2
        points += {'win': scoring.win, 'draw': scoring.draw, 'loss': scoring.loss}[outcome]
    return points


def _metric(entry: StandingEntry, metric: str, block_ids: List[str],
            fixtures: Sequence[Fixture], scoring: ScoringConfig) -> float:
    if metric == 'head_to_head':
        others = [pid for pid in block_ids if pid != entry.participant.id]
        return head_to_head_points(entry.participant.id, others, fixtures, scoring)
    if metric == 'wins':
        return entry.wins
    return entry.tiebreakers.get(metric, 0)


def rank_entries(entries: List[StandingEntry], fixtures: Sequence[Fixture],
                 scoring: ScoringConfig = DEFAULT_SCORING) -> List[StandingEntry]:
    """
    Sort entries by points, breaking ties inside each equal-points block with
    the configured metric chain. ``entries`` must be in original order so the
    stable sort falls back to it.
    """
    by_points = sorted(entries, key=lambda e: -e.points)
    ranked = []
    i = 0
    while i < len(by_points):
        j = i
        while j < len(by_points) and by_points[j].points == by_points[i].points:
            j += 1
        block = by_points[i:j]
        if len(block) > 1 and scoring.tiebreakers:
            block_ids = [e.participant.id for e in block]
            block.sort(key=lambda e: tuple(
                -_metric(e, metric, block_ids, fixtures, scoring) for metric in scoring.tiebreakers
            ))
        ranked.extend(block)
        i = j
    return ranked


def compute_standings(participants: Sequence[Participant], fixtures: Iterable[Fixture],
                      scoring: Optional[ScoringConfig] = None) -> Standings:
    """
    Compute ranked standings from fixtures.

    Only fixtures with a recorded result (or Swiss byes) count. Every
    participant appears exactly once, played or not; fixtures involving
    unknown participants are ignored.
    """
    scoring = scoring or DEFAULT_SCORING
    fixtures = list(fixtures)
    entries = {p.id: _new_entry(p) for p in participants}

    for fixture in fixtures:
        if fixture.is_bye:
            entry = entries.get(fixture.participant1.id)
            if entry is not None:
                entry.played += 1
                entry.wins += 1
                entry.points += scoring.bye_points
            continue

        if fixture.result is None or fixture.participant2 is None:
            continue
        entry1 = entries.get(fixture.participant1.id)
        entry2 = entries.get(fixture.participant2.id)
        if entry1 is None or entry2 is None:
            continue

        outcome1, outcome2 = _outcomes(fixture)
        _award(entry1, outcome1, fixture.result.score1, fixture.result.score2, scoring)
        _award(entry2, outcome2, fixture.result.score2, fixture.result.score1, scoring)

    ranked = rank_entries(list(entries.values()), fixtures, scoring)
    return Standings(entries=ranked)
