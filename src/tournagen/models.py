"""
Data model for generated tournament structures.

Every type serializes to plain dicts/lists via ``to_dict`` and is rebuilt by
``from_dict``. Participants are embedded by value in the serialized form;
match links (``feeds_into``) are string ids so structures stay acyclic.
"""
from dataclasses import dataclass, field, asdict
from typing import Any, Dict, List, Optional


def _participant_or_none(data: Optional[Dict]) -> Optional["Participant"]:
    return Participant.from_dict(data) if data is not None else None


@dataclass
class Participant:
    id: str
    name: str
    seed: Optional[int] = None
    team: Optional[str] = None
    nationality: Optional[str] = None
    metadata: Optional[Dict[str, Any]] = None

    def to_dict(self) -> Dict[str, Any]:
        return asdict(self)

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "Participant":
        return cls(
            id=data['id'],
            name=data['name'],
            seed=data.get('seed'),
            team=data.get('team'),
            nationality=data.get('nationality'),
            metadata=data.get('metadata'),
        )


def derive_seed(participant: Participant, index: int) -> int:
    """Seed used for placement: explicit ``seed`` or 1-based list position."""
    return participant.seed if participant.seed is not None else index + 1


# --- Brackets -------------------------------------------------------------

@dataclass
class BracketMatch:
    id: str
    round_id: str
    position: int
    participant1: Optional[Participant] = None
    participant2: Optional[Participant] = None
    winner: Optional[Participant] = None
    feeds_into: Optional[str] = None
    loser_feeds_into: Optional[str] = None
    is_bye: bool = False
    source1: Optional[str] = None
    source2: Optional[str] = None

    def to_dict(self) -> Dict[str, Any]:
        return asdict(self)

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "BracketMatch":
        return cls(
            id=data['id'],
            round_id=data['round_id'],
            position=data['position'],
            participant1=_participant_or_none(data.get('participant1')),
            participant2=_participant_or_none(data.get('participant2')),
            winner=_participant_or_none(data.get('winner')),
            feeds_into=data.get('feeds_into'),
            loser_feeds_into=data.get('loser_feeds_into'),
            is_bye=data.get('is_bye', False),
            source1=data.get('source1'),
            source2=data.get('source2'),
        )


@dataclass
class BracketRound:
    id: str
    name: str
    round_number: int
    matches: List[BracketMatch] = field(default_factory=list)

    def to_dict(self) -> Dict[str, Any]:
        return asdict(self)

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "BracketRound":
        return cls(
            id=data['id'],
            name=data['name'],
            round_number=data['round_number'],
            matches=[BracketMatch.from_dict(m) for m in data.get('matches', [])],
        )


@dataclass
class BracketStructure:
    rounds: List[BracketRound] = field(default_factory=list)
    third_place_match: Optional[BracketMatch] = None
    losers_rounds: List[BracketRound] = field(default_factory=list)
    grand_final: Optional[BracketMatch] = None
    grand_final_reset: Optional[BracketMatch] = None
    type: str = 'bracket'

    def all_matches(self) -> List[BracketMatch]:
        """Every match in the structure, winners rounds first."""
        matches = [m for r in self.rounds for m in r.matches]
        matches.extend(m for r in self.losers_rounds for m in r.matches)
        for extra in (self.third_place_match, self.grand_final, self.grand_final_reset):
            if extra is not None:
                matches.append(extra)
        return matches

    def find_match(self, match_id: str) -> Optional[BracketMatch]:
        for match in self.all_matches():
            if match.id == match_id:
                return match
        return None

    def to_dict(self) -> Dict[str, Any]:
        return asdict(self)

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "BracketStructure":
        def optional_match(key):
            value = data.get(key)
            return BracketMatch.from_dict(value) if value is not None else None

        return cls(
            rounds=[BracketRound.from_dict(r) for r in data.get('rounds', [])],
            third_place_match=optional_match('third_place_match'),
            losers_rounds=[BracketRound.from_dict(r) for r in data.get('losers_rounds', [])],
            grand_final=optional_match('grand_final'),
            grand_final_reset=optional_match('grand_final_reset'),
        )


# --- Leagues --------------------------------------------------------------

@dataclass
class FixtureResult:
    score1: float
    score2: float
    winner: Optional[Participant] = None

    def to_dict(self) -> Dict[str, Any]:
        return asdict(self)

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "FixtureResult":
        return cls(
            score1=data['score1'],
            score2=data['score2'],
            winner=_participant_or_none(data.get('winner')),
        )


@dataclass
class Fixture:
    id: str
    participant1: Participant
    participant2: Optional[Participant] = None
    result: Optional[FixtureResult] = None
    is_bye: bool = False

    def involves(self, participant_id: str) -> bool:
        return (self.participant1.id == participant_id
                or (self.participant2 is not None and self.participant2.id == participant_id))

    def to_dict(self) -> Dict[str, Any]:
        return asdict(self)

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "Fixture":
        result = data.get('result')
        return cls(
            id=data['id'],
            participant1=Participant.from_dict(data['participant1']),
            participant2=_participant_or_none(data.get('participant2')),
            result=FixtureResult.from_dict(result) if result is not None else None,
            is_bye=data.get('is_bye', False),
        )


@dataclass
class ScheduleRound:
    id: str
    round_number: int
    fixtures: List[Fixture] = field(default_factory=list)

    def to_dict(self) -> Dict[str, Any]:
        return asdict(self)

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "ScheduleRound":
        return cls(
            id=data['id'],
            round_number=data['round_number'],
            fixtures=[Fixture.from_dict(f) for f in data.get('fixtures', [])],
        )


@dataclass
class StandingEntry:
    participant: Participant
    played: int = 0
    wins: int = 0
    draws: int = 0
    losses: int = 0
    points: float = 0
    tiebreakers: Dict[str, float] = field(default_factory=dict)

    def to_dict(self) -> Dict[str, Any]:
        return asdict(self)

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "StandingEntry":
        return cls(
            participant=Participant.from_dict(data['participant']),
            played=data.get('played', 0),
            wins=data.get('wins', 0),
            draws=data.get('draws', 0),
            losses=data.get('losses', 0),
            points=data.get('points', 0),
            tiebreakers=dict(data.get('tiebreakers') or {}),
        )


@dataclass
class Standings:
    entries: List[StandingEntry] = field(default_factory=list)

    def to_dict(self) -> Dict[str, Any]:
        return asdict(self)

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "Standings":
        return cls(entries=[StandingEntry.from_dict(e) for e in data.get('entries', [])])


@dataclass
class LeagueGroup:
    id: str
    name: str
    participants: List[Participant] = field(default_factory=list)
    standings: Standings = field(default_factory=Standings)
    fixtures: List[Fixture] = field(default_factory=list)

    def to_dict(self) -> Dict[str, Any]:
        return asdict(self)

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "LeagueGroup":
        return cls(
            id=data['id'],
            name=data['name'],
            participants=[Participant.from_dict(p) for p in data.get('participants', [])],
            standings=Standings.from_dict(data.get('standings') or {}),
            fixtures=[Fixture.from_dict(f) for f in data.get('fixtures', [])],
        )


@dataclass
class LeagueStructure:
    rounds: List[ScheduleRound] = field(default_factory=list)
    standings: Standings = field(default_factory=Standings)
    groups: Optional[List[LeagueGroup]] = None
    knockout: Optional[BracketStructure] = None
    type: str = 'league'

    def all_fixtures(self) -> List[Fixture]:
        return [f for r in self.rounds for f in r.fixtures]

    def to_dict(self) -> Dict[str, Any]:
        return asdict(self)

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "LeagueStructure":
        groups = data.get('groups')
        knockout = data.get('knockout')
        return cls(
            rounds=[ScheduleRound.from_dict(r) for r in data.get('rounds', [])],
            standings=Standings.from_dict(data.get('standings') or {}),
            groups=[LeagueGroup.from_dict(g) for g in groups] if groups is not None else None,
            knockout=BracketStructure.from_dict(knockout) if knockout is not None else None,
        )


# --- Free-for-all stages --------------------------------------------------

@dataclass
class StageMatchResult:
    participant: Participant
    placement: int
    advances: bool
    metadata: Optional[Dict[str, Any]] = None

    def to_dict(self) -> Dict[str, Any]:
        return asdict(self)

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "StageMatchResult":
        return cls(
            participant=Participant.from_dict(data['participant']),
            placement=data['placement'],
            advances=data['advances'],
            metadata=data.get('metadata'),
        )


@dataclass
class StageMatch:
    id: str
    match_number: int
    participants: List[Participant] = field(default_factory=list)
    results: Optional[List[StageMatchResult]] = None

    def to_dict(self) -> Dict[str, Any]:
        return asdict(self)

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "StageMatch":
        results = data.get('results')
        return cls(
            id=data['id'],
            match_number=data['match_number'],
            participants=[Participant.from_dict(p) for p in data.get('participants', [])],
            results=[StageMatchResult.from_dict(r) for r in results] if results is not None else None,
        )


@dataclass
class AdvancementRules:
    advance_count: int
    advance_method: str = 'top-n'

    def to_dict(self) -> Dict[str, Any]:
        return asdict(self)

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "AdvancementRules":
        return cls(advance_count=data['advance_count'],
                   advance_method=data.get('advance_method', 'top-n'))


@dataclass
class TournamentStage:
    id: str
    name: str
    stage_number: int
    matches: List[StageMatch]
    advancement_rules: AdvancementRules

    def roster(self) -> List[Participant]:
        return [p for m in self.matches for p in m.participants]

    def to_dict(self) -> Dict[str, Any]:
        return asdict(self)

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "TournamentStage":
        return cls(
            id=data['id'],
            name=data['name'],
            stage_number=data['stage_number'],
            matches=[StageMatch.from_dict(m) for m in data.get('matches', [])],
            advancement_rules=AdvancementRules.from_dict(data['advancement_rules']),
        )


@dataclass
class StageStructure:
    stages: List[TournamentStage] = field(default_factory=list)
    type: str = 'stage'

    def to_dict(self) -> Dict[str, Any]:
        return asdict(self)

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "StageStructure":
        return cls(stages=[TournamentStage.from_dict(s) for s in data.get('stages', [])])


# --- Racing ---------------------------------------------------------------

@dataclass
class RacingResult:
    participant: Participant
    position: int
    status: str = 'finished'
    time: Optional[float] = None
    points: Optional[float] = None

    def to_dict(self) -> Dict[str, Any]:
        return asdict(self)

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "RacingResult":
        return cls(
            participant=Participant.from_dict(data['participant']),
            position=data['position'],
            status=data.get('status', 'finished'),
            time=data.get('time'),
            points=data.get('points'),
        )


@dataclass
class RacingSession:
    id: str
    type: str
    results: List[RacingResult] = field(default_factory=list)

    def to_dict(self) -> Dict[str, Any]:
        return asdict(self)

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "RacingSession":
        return cls(
            id=data['id'],
            type=data['type'],
            results=[RacingResult.from_dict(r) for r in data.get('results', [])],
        )


@dataclass
class RacingEvent:
    id: str
    name: str
    sessions: List[RacingSession] = field(default_factory=list)
    circuit: Optional[str] = None

    def session(self, session_type: str) -> Optional[RacingSession]:
        for session in self.sessions:
            if session.type == session_type:
                return session
        return None

    def to_dict(self) -> Dict[str, Any]:
        return asdict(self)

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "RacingEvent":
        return cls(
            id=data['id'],
            name=data['name'],
            sessions=[RacingSession.from_dict(s) for s in data.get('sessions', [])],
            circuit=data.get('circuit'),
        )


@dataclass
class RacingStandingEntry:
    participant: Participant
    points: float = 0
    wins: int = 0
    podiums: int = 0
    position: int = 0

    def to_dict(self) -> Dict[str, Any]:
        return asdict(self)

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "RacingStandingEntry":
        return cls(
            participant=Participant.from_dict(data['participant']),
            points=data.get('points', 0),
            wins=data.get('wins', 0),
            podiums=data.get('podiums', 0),
            position=data.get('position', 0),
        )


@dataclass
class RacingStandings:
    drivers: List[RacingStandingEntry] = field(default_factory=list)
    teams: Optional[List[RacingStandingEntry]] = None

    def to_dict(self) -> Dict[str, Any]:
        return asdict(self)

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "RacingStandings":
        teams = data.get('teams')
        return cls(
            drivers=[RacingStandingEntry.from_dict(e) for e in data.get('drivers', [])],
            teams=[RacingStandingEntry.from_dict(e) for e in teams] if teams is not None else None,
        )


@dataclass
class RacingStructure:
    mode: str
    events: List[RacingEvent] = field(default_factory=list)
    standings: Optional[RacingStandings] = None
    type: str = 'racing'

    def to_dict(self) -> Dict[str, Any]:
        return asdict(self)

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "RacingStructure":
        standings = data.get('standings')
        return cls(
            mode=data['mode'],
            events=[RacingEvent.from_dict(e) for e in data.get('events', [])],
            standings=RacingStandings.from_dict(standings) if standings is not None else None,
        )


STRUCTURE_TYPES = {
    'bracket': BracketStructure,
    'league': LeagueStructure,
    'stage': StageStructure,
    'racing': RacingStructure,
}


def structure_from_dict(data: Dict[str, Any]):
    """Rebuild a structure from its serialized form, dispatching on ``type``."""
    structure_type = data.get('type')
    if structure_type not in STRUCTURE_TYPES:
        raise ValueError(f"Unknown structure type: {structure_type!r}")
    return STRUCTURE_TYPES[structure_type].from_dict(data)
