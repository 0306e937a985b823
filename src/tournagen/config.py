"""
Tournament configuration types.

One options dataclass per format; ``TournamentConfig.options`` always holds
the class registered for its ``format_type`` in ``OPTIONS_TYPES``.
"""
import logging
from dataclasses import dataclass, asdict, field, fields
from datetime import datetime, timezone
from enum import Enum
from typing import Any, Dict, List, Optional, Union

from .models import Participant
from .standings import ScoringConfig

logger = logging.getLogger(__name__)

BRACKET_SIZES = ('auto', 2, 4, 8, 16, 32, 64, 128)
RACING_MK_MODES = ('time-trial', 'grand-prix', 'knockout')
RACING_F1_MODES = ('grand-prix', 'championship')

DEFAULT_KART_POINTS = [15, 12, 10, 9, 8, 7, 6, 5, 4, 3, 2, 1]
DEFAULT_F1_POINTS = [25, 18, 15, 12, 10, 8, 6, 4, 2, 1]
DEFAULT_F1_SPRINT_POINTS = [8, 7, 6, 5, 4, 3, 2, 1]
DEFAULT_TRACKS = ['Mushroom Cup', 'Flower Cup', 'Star Cup', 'Special Cup']
DEFAULT_CIRCUITS = ['Bahrain', 'Jeddah', 'Melbourne', 'Suzuka']


class FormatType(str, Enum):
    SINGLE_ELIMINATION = 'single-elimination'
    DOUBLE_ELIMINATION = 'double-elimination'
    ROUND_ROBIN = 'round-robin'
    SWISS = 'swiss'
    FREE_FOR_ALL = 'ffa'
    FIFA = 'fifa'
    RACING_MK = 'racing-mk'
    RACING_F1 = 'racing-f1'


class _Options:
    """Shared (de)serialization for options dataclasses."""

    def to_dict(self) -> Dict[str, Any]:
        data = asdict(self)
        if isinstance(getattr(self, 'scoring', None), ScoringConfig):
            data['scoring'] = self.scoring.to_dict()
        return data

    @classmethod
    def from_dict(cls, data: Optional[Dict[str, Any]]):
        data = dict(data or {})
        known = {f.name for f in fields(cls)}
        unknown = sorted(set(data) - known)
        if unknown:
            logger.warning("Ignoring unknown %s keys: %s", cls.__name__, ', '.join(unknown))
        kwargs = {k: v for k, v in data.items() if k in known}
        if 'scoring' in kwargs and not isinstance(kwargs['scoring'], ScoringConfig):
            kwargs['scoring'] = ScoringConfig.from_dict(kwargs['scoring'])
        return cls(**kwargs)


@dataclass
class SingleEliminationOptions(_Options):
    bracket_size: Union[str, int] = 'auto'
    third_place_playoff: bool = False
    seeding_method: str = 'seeded'
    manual_seed_order: Optional[List[str]] = None


@dataclass
class DoubleEliminationOptions(_Options):
    bracket_size: Union[str, int] = 'auto'
    seeding_method: str = 'seeded'
    manual_seed_order: Optional[List[str]] = None
    enable_reset: bool = True


@dataclass
class RoundRobinOptions(_Options):
    rounds: int = 1
    group_count: int = 1
    swap_home_away: bool = True
    scoring: ScoringConfig = field(default_factory=ScoringConfig)


@dataclass
class SwissOptions(_Options):
    # None means ceil(log2(participants))
    rounds: Optional[int] = None
    scoring: ScoringConfig = field(default_factory=ScoringConfig)


@dataclass
class FFAOptions(_Options):
    lobby_size: int = 8
    advance_per_match: int = 4
    final_size: int = 8


@dataclass
class FIFAOptions(_Options):
    group_count: int = 2
    advance_per_group: int = 2
    distribution: str = 'snake'
    legs: int = 1
    knockout_format: str = 'single-elimination'
    knockout_seeding: str = 'cross-group'
    third_place_playoff: bool = True
    enable_reset: bool = True
    scoring: ScoringConfig = field(default_factory=ScoringConfig)


@dataclass
class RacingMarioKartOptions(_Options):
    mode: str = 'grand-prix'
    tracks: List[str] = field(default_factory=lambda: list(DEFAULT_TRACKS))
    points_table: List[float] = field(default_factory=lambda: list(DEFAULT_KART_POINTS))
    eliminate_per_race: int = 1
    final_field_size: int = 2


@dataclass
class RacingF1Options(_Options):
    mode: str = 'grand-prix'
    circuits: List[str] = field(default_factory=lambda: list(DEFAULT_CIRCUITS))
    # 1-based event numbers that run a sprint session
    sprint_rounds: List[int] = field(default_factory=list)
    points_table: List[float] = field(default_factory=lambda: list(DEFAULT_F1_POINTS))
    sprint_points_table: List[float] = field(default_factory=lambda: list(DEFAULT_F1_SPRINT_POINTS))
    team_standings: bool = True


OPTIONS_TYPES = {
    FormatType.SINGLE_ELIMINATION: SingleEliminationOptions,
    FormatType.DOUBLE_ELIMINATION: DoubleEliminationOptions,
    FormatType.ROUND_ROBIN: RoundRobinOptions,
    FormatType.SWISS: SwissOptions,
    FormatType.FREE_FOR_ALL: FFAOptions,
    FormatType.FIFA: FIFAOptions,
    FormatType.RACING_MK: RacingMarioKartOptions,
    FormatType.RACING_F1: RacingF1Options,
}


def utcnow() -> datetime:
    return datetime.now(timezone.utc)


@dataclass
class TournamentConfig:
    id: str
    name: str
    format_type: FormatType
    participants: List[Participant]
    options: Any
    created_at: datetime = field(default_factory=utcnow)
    updated_at: datetime = field(default_factory=utcnow)
    metadata: Optional[Dict[str, Any]] = None

    def to_dict(self) -> Dict[str, Any]:
        return {
            'id': self.id,
            'name': self.name,
            'format_type': FormatType(self.format_type).value,
            'participants': [p.to_dict() for p in self.participants],
            'options': self.options.to_dict(),
            'created_at': self.created_at.isoformat(),
            'updated_at': self.updated_at.isoformat(),
            'metadata': self.metadata,
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "TournamentConfig":
        format_type = FormatType(data['format_type'])
        return cls(
            id=data['id'],
            name=data['name'],
            format_type=format_type,
            participants=[Participant.from_dict(p) for p in data.get('participants', [])],
            options=OPTIONS_TYPES[format_type].from_dict(data.get('options')),
            created_at=datetime.fromisoformat(data['created_at']),
            updated_at=datetime.fromisoformat(data['updated_at']),
            metadata=data.get('metadata'),
        )


@dataclass
class ValidationError:
    field: Optional[str]
    message: str
    code: str

    def __str__(self):
        return f"{self.field}: {self.message}" if self.field else self.message


@dataclass
class ValidationResult:
    valid: bool
    errors: List[ValidationError] = field(default_factory=list)

    @classmethod
    def from_errors(cls, errors: List[ValidationError]) -> "ValidationResult":
        return cls(valid=not errors, errors=list(errors))


def validate_participants(participants: List[Participant], minimum: int) -> List[ValidationError]:
    """Checks shared by every format: roster size and unique ids."""
    errors = []
    if len(participants) < minimum:
        errors.append(ValidationError(
            'participants',
            f"At least {minimum} participants are required (got {len(participants)}).",
            'insufficient-participants',
        ))

    seen = set()
    for participant in participants:
        if participant.id in seen:
            errors.append(ValidationError(
                'participants',
                f"Duplicate participant id '{participant.id}'.",
                'duplicate-participant',
            ))
        seen.add(participant.id)

    return errors


def check_range(value, minimum: int, field_name: str, maximum: Optional[int] = None) -> List[ValidationError]:
    if not isinstance(value, int) or isinstance(value, bool) or value < minimum or (
            maximum is not None and value > maximum):
        bound = f"between {minimum} and {maximum}" if maximum is not None else f"at least {minimum}"
        return [ValidationError(field_name, f"Must be an integer {bound} (got {value!r}).", 'invalid-range')]
    return []


def check_choice(value, choices, field_name: str) -> List[ValidationError]:
    if value not in choices:
        allowed = ', '.join(str(c) for c in choices)
        return [ValidationError(field_name, f"Must be one of {allowed} (got {value!r}).", 'invalid-option')]
    return []
