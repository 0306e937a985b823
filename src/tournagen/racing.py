"""
Racing structures: time trials, grand prix, knockout cups and F1 weekends.

Builders produce event/session skeletons whose results list the entrants in
grid order with no points. A result only counts toward standings once it
has been scored (``points`` is not None), see ``assign_points``.
"""
import copy
import logging
import re
from typing import Dict, List, Optional, Sequence, Tuple

from .models import (
    Participant,
    RacingEvent,
    RacingResult,
    RacingSession,
    RacingStandingEntry,
    RacingStandings,
    RacingStructure,
)
from .seeding import sort_by_derived_seed

logger = logging.getLogger(__name__)

SCORING_SESSIONS = ('sprint', 'race')
STATUS_ORDER = {'finished': 0, 'dnf': 1, 'dsq': 2}


def _grid(entrants: Sequence[Participant]) -> List[RacingResult]:
    return [RacingResult(participant=p, position=i + 1) for i, p in enumerate(entrants)]


def _event(number: int, name: str, sessions: List[Tuple[str, Sequence[Participant]]],
           circuit: Optional[str] = None) -> RacingEvent:
    event_id = f"event-{number}"
    return RacingEvent(
        id=event_id,
        name=name,
        circuit=circuit,
        sessions=[
            RacingSession(id=f"{event_id}-{session_type}", type=session_type, results=_grid(entrants))
            for session_type, entrants in sessions
        ],
    )


# --- Result processing ----------------------------------------------------

def classify(results: Sequence[RacingResult]) -> List[RacingResult]:
    """Finishers by position, then DNFs, then DSQs."""
    return sorted(results, key=lambda r: (STATUS_ORDER.get(r.status, 1), r.position))


def rank_time_trial(results: Sequence[RacingResult]) -> List[RacingResult]:
    """
    Rank by ascending time. Finishers without a time follow timed finishers;
    DNF and DSQ come last. Positions are renumbered from 1.
    """
    def key(result):
        timed = result.status == 'finished' and result.time is not None
        return (STATUS_ORDER.get(result.status, 1), 0 if timed else 1,
                result.time if timed else 0, result.position)

    ranked = sorted(results, key=key)
    return [_with_position(r, i + 1) for i, r in enumerate(ranked)]


def _with_position(result: RacingResult, position: int) -> RacingResult:
    return RacingResult(participant=result.participant, position=position, status=result.status,
                        time=result.time, points=result.points)


def time_deltas(results: Sequence[RacingResult]) -> Dict[str, Optional[float]]:
    """Each finisher's time minus the fastest time; None without a finishing time."""
    timed = [r for r in results if r.time is not None and r.status == 'finished']
    fastest = min((r.time for r in timed), default=None)
    deltas: Dict[str, Optional[float]] = {r.participant.id: None for r in results}
    for result in timed:
        deltas[result.participant.id] = result.time - fastest
    return deltas


def assign_points(results: Sequence[RacingResult], points_table: Sequence[float]) -> List[RacingResult]:
    """Score results by finishing position; DNF/DSQ and positions off the table score 0."""
    scored = []
    for result in results:
        points = 0
        if result.status == 'finished' and 1 <= result.position <= len(points_table):
            points = points_table[result.position - 1]
        scored.append(RacingResult(participant=result.participant, position=result.position,
                                   status=result.status, time=result.time, points=points))
    return scored


def score_event(event: RacingEvent, points_table: Sequence[float],
                sprint_points_table: Sequence[float] = ()) -> RacingEvent:
    """Return a copy of ``event`` with race and sprint sessions scored."""
    sessions = []
    for session in event.sessions:
        results = session.results
        if session.type == 'race':
            results = assign_points(results, points_table)
        elif session.type == 'sprint':
            results = assign_points(results, sprint_points_table)
        sessions.append(RacingSession(id=session.id, type=session.type, results=list(results)))
    return RacingEvent(id=event.id, name=event.name, sessions=sessions, circuit=event.circuit)


def grid_from_qualifying(qualifying: Sequence[RacingResult]) -> List[RacingResult]:
    """Starting grid for the race: qualifying classification, unscored."""
    return _grid([r.participant for r in classify(qualifying)])


def knockout_survivors(results: Sequence[RacingResult],
                       eliminate_count: int) -> Tuple[List[Participant], List[Participant]]:
    """Split a race into (survivors, eliminated); the lowest placed go out."""
    ordered = [r.participant for r in classify(results)]
    eliminate_count = max(0, min(eliminate_count, len(ordered) - 1))
    cut = len(ordered) - eliminate_count
    return ordered[:cut], ordered[cut:]


# --- Standings ------------------------------------------------------------

def _team_participant(team: str) -> Participant:
    slug = re.sub(r'[^a-z0-9]+', '-', team.lower()).strip('-') or 'team'
    return Participant(id=f"team-{slug}", name=team)


def _rank(totals: Dict[str, dict], order: List[str]) -> List[RacingStandingEntry]:
    max_position = max((max(t['finishes'], default=0) for t in totals.values()), default=0)

    def countback(pid):
        finishes = totals[pid]['finishes']
        return tuple(-finishes.count(p) for p in range(1, max_position + 1))

    ranked = sorted(order, key=lambda pid: (-totals[pid]['points'], countback(pid), order.index(pid)))
    return [
        RacingStandingEntry(
            participant=totals[pid]['participant'],
            points=totals[pid]['points'],
            wins=totals[pid]['wins'],
            podiums=totals[pid]['podiums'],
            position=index + 1,
        )
        for index, pid in enumerate(ranked)
    ]


def accumulate_standings(events: Sequence[RacingEvent], participants: Sequence[Participant] = (),
                         include_teams: bool = False) -> RacingStandings:
    """
    Accumulate driver (and optionally team) standings across events.

    Scored race and sprint results add points; wins and podiums count race
    sessions only. Ties break on most wins, then most second places and so on,
    then entry order.
    """
    drivers: Dict[str, dict] = {}
    order: List[str] = []

    def entry_for(participant):
        if participant.id not in drivers:
            drivers[participant.id] = {'participant': participant, 'points': 0, 'wins': 0,
                                       'podiums': 0, 'finishes': []}
            order.append(participant.id)
        return drivers[participant.id]

    for participant in sort_by_derived_seed(participants):
        entry_for(participant)

    for event in events:
        for session in event.sessions:
            if session.type not in SCORING_SESSIONS:
                continue
            for result in session.results:
                if result.points is None:
                    continue
                entry = entry_for(result.participant)
                entry['points'] += result.points
                if session.type == 'race' and result.status == 'finished':
                    entry['finishes'].append(result.position)
                    if result.position == 1:
                        entry['wins'] += 1
                    if result.position <= 3:
                        entry['podiums'] += 1

    standings = RacingStandings(drivers=_rank(drivers, order))

    if include_teams:
        teams: Dict[str, dict] = {}
        team_order: List[str] = []
        for pid in order:
            driver = drivers[pid]
            team = driver['participant'].team
            if not team:
                continue
            team_participant = _team_participant(team)
            if team_participant.id not in teams:
                teams[team_participant.id] = {'participant': team_participant, 'points': 0, 'wins': 0,
                                              'podiums': 0, 'finishes': []}
                team_order.append(team_participant.id)
            total = teams[team_participant.id]
            total['points'] += driver['points']
            total['wins'] += driver['wins']
            total['podiums'] += driver['podiums']
            total['finishes'].extend(driver['finishes'])
        standings.teams = _rank(teams, team_order)

    return standings


# --- Builders -------------------------------------------------------------

def build_time_trial(participants: Sequence[Participant], tracks: Sequence[str]) -> RacingStructure:
    """One event per track with a single timed session."""
    entrants = sort_by_derived_seed(participants)
    events = [_event(i + 1, track, [('race', entrants)], circuit=track) for i, track in enumerate(tracks)]
    return RacingStructure(mode='time-trial', events=events)


def build_grand_prix(participants: Sequence[Participant], tracks: Sequence[str]) -> RacingStructure:
    """One race per track; standings accumulate once results are scored."""
    entrants = sort_by_derived_seed(participants)
    events = [_event(i + 1, track, [('race', entrants)], circuit=track) for i, track in enumerate(tracks)]
    return RacingStructure(
        mode='grand-prix',
        events=events,
        standings=accumulate_standings(events, entrants),
    )


def knockout_field_sizes(participant_count: int, eliminate_per_race: int, final_field_size: int) -> List[int]:
    """Expected field size of every race until the final field is reached."""
    if participant_count < 1:
        return []
    eliminate_per_race = max(1, eliminate_per_race)
    final_field_size = max(1, final_field_size)
    sizes = [participant_count]
    while sizes[-1] > final_field_size:
        sizes.append(max(final_field_size, sizes[-1] - eliminate_per_race))
    return sizes


def build_knockout_cup(participants: Sequence[Participant], eliminate_per_race: int,
                       final_field_size: int, tracks: Sequence[str] = ()) -> RacingStructure:
    """
    One race per elimination step. Only the first race knows its field;
    later fields are filled by ``advance_knockout_cup`` as results arrive.
    """
    entrants = sort_by_derived_seed(participants)
    sizes = knockout_field_sizes(len(entrants), eliminate_per_race, final_field_size)
    events = []
    for index, size in enumerate(sizes):
        track = tracks[index % len(tracks)] if tracks else None
        name = "Final" if index == len(sizes) - 1 else f"Race {index + 1}"
        event = _event(index + 1, f"{name} ({size} racers)", [('race', entrants if index == 0 else [])],
                       circuit=track)
        events.append(event)
    logger.debug("Knockout cup: field sizes %s", sizes)
    return RacingStructure(mode='knockout', events=events)


def advance_knockout_cup(structure: RacingStructure, event_index: int, eliminate_count: int,
                         final_field_size: int = 1) -> RacingStructure:
    """
    Fill the field of the event after ``event_index`` with the survivors of
    that event's race. Never cuts below ``final_field_size``, so the fields
    follow ``knockout_field_sizes``. Returns a new structure.
    """
    result = copy.deepcopy(structure)
    if event_index + 1 >= len(result.events):
        return result
    race = result.events[event_index].session('race')
    field = race.results if race else []
    eliminate_count = min(eliminate_count, max(0, len(field) - final_field_size))
    survivors, eliminated = knockout_survivors(field, eliminate_count)
    following = result.events[event_index + 1].session('race')
    if following is not None:
        following.results = _grid(survivors)
    logger.debug("Knockout cup: eliminated %s after event %d",
                 ', '.join(p.name for p in eliminated), event_index + 1)
    return result


def build_f1_grand_prix(participants: Sequence[Participant], circuit: str) -> RacingStructure:
    """Qualifying then race; the race grid follows the qualifying order."""
    entrants = sort_by_derived_seed(participants)
    event = _event(1, f"{circuit} Grand Prix", [('qualifying', entrants), ('race', entrants)], circuit=circuit)
    qualifying = event.session('qualifying')
    event.session('race').results = grid_from_qualifying(qualifying.results)
    return RacingStructure(mode='grand-prix', events=[event], standings=accumulate_standings([event], entrants))


def build_f1_championship(participants: Sequence[Participant], circuits: Sequence[str],
                          sprint_rounds: Sequence[int] = (), team_standings: bool = True) -> RacingStructure:
    """A season of weekends; listed rounds add a sprint between qualifying and the race."""
    entrants = sort_by_derived_seed(participants)
    sprints = set(sprint_rounds)
    events = []
    for index, circuit in enumerate(circuits):
        number = index + 1
        sessions = [('qualifying', entrants)]
        if number in sprints:
            sessions.append(('sprint', entrants))
        sessions.append(('race', entrants))
        events.append(_event(number, f"{circuit} Grand Prix", sessions, circuit=circuit))
    return RacingStructure(
        mode='championship',
        events=events,
        standings=accumulate_standings(events, entrants, include_teams=team_standings),
    )


def score_structure(structure: RacingStructure, participants: Sequence[Participant],
                    points_table: Sequence[float],
                    sprint_points_table: Sequence[float] = ()) -> RacingStructure:
    """
    Score every race and sprint session from its recorded finishing order and
    recompute standings (team standings only where the structure keeps them).
    Returns a new structure.
    """
    events = [score_event(e, points_table, sprint_points_table) for e in structure.events]
    standings = None
    if structure.standings is not None:
        standings = accumulate_standings(events, sort_by_derived_seed(participants),
                                         include_teams=structure.standings.teams is not None)
    return RacingStructure(mode=structure.mode, events=events, standings=standings)


def generate_racing_mk_structure(config) -> RacingStructure:
    options = config.options
    participants = config.participants
    if options.mode == 'time-trial':
        return build_time_trial(participants, options.tracks)
    if options.mode == 'knockout':
        return build_knockout_cup(participants, options.eliminate_per_race,
                                  options.final_field_size, options.tracks)
    return build_grand_prix(participants, options.tracks)


def generate_racing_f1_structure(config) -> RacingStructure:
    options = config.options
    participants = config.participants
    if options.mode == 'championship':
        return build_f1_championship(participants, options.circuits, options.sprint_rounds,
                                     options.team_standings)
    circuit = options.circuits[0] if options.circuits else 'Grand Prix'
    return build_f1_grand_prix(participants, circuit)
