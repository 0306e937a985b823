"""
Tournament formats and the registry that looks them up by format type.

Each format bundles metadata, a default config factory, config validation
and structure generation. ``FormatRegistry`` is a plain object; build one
with ``create_default_registry()`` at start-up and pass it to whatever needs
it.
"""
import logging
from dataclasses import dataclass, field
from typing import Dict, List, Optional, Sequence, Tuple

from .config import (
    BRACKET_SIZES,
    OPTIONS_TYPES,
    RACING_F1_MODES,
    RACING_MK_MODES,
    FormatType,
    TournamentConfig,
    ValidationError,
    ValidationResult,
    check_choice,
    check_range,
    validate_participants,
)
from .double_elimination import generate_double_elimination_bracket
from .elimination import generate_single_elimination_bracket
from .exceptions import FormatAlreadyRegisteredError, UnknownFormatError
from .ffa import generate_ffa_structure
from .fifa import (
    DISTRIBUTION_METHODS,
    KNOCKOUT_FORMATS,
    KNOCKOUT_SEEDING_RULES,
    generate_fifa_structure,
    refresh_fifa_structure,
)
from .models import LeagueStructure, Participant, RacingStructure
from .racing import (
    advance_knockout_cup,
    generate_racing_f1_structure,
    generate_racing_mk_structure,
    score_structure,
)
from .round_robin import generate_round_robin_structure
from .seeding import SEEDING_METHODS
from .standings import TIEBREAKER_METRICS, ScoringConfig
from .swiss import generate_swiss_structure

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class FormatMetadata:
    type: FormatType
    name: str
    description: str
    min_participants: int = 2
    use_cases: Tuple[str, ...] = field(default_factory=tuple)


class TournamentFormat:
    """Base class for a tournament format. Subclasses set ``metadata``."""

    metadata: FormatMetadata

    @property
    def format_type(self) -> FormatType:
        return self.metadata.type

    @property
    def options_class(self):
        return OPTIONS_TYPES[self.metadata.type]

    def create_default_config(self, participants: Sequence[Participant], **overrides) -> TournamentConfig:
        """
        Config with default options (``overrides`` replace individual option
        values). Participants without a seed get their 1-based list position.
        """
        seeded = [
            Participant(id=p.id, name=p.name, seed=p.seed if p.seed is not None else index + 1,
                        team=p.team, nationality=p.nationality, metadata=p.metadata)
            for index, p in enumerate(participants)
        ]
        return TournamentConfig(
            id=f"{self.format_type.value}-config",
            name=self.metadata.name,
            format_type=self.format_type,
            participants=seeded,
            options=self.options_class.from_dict(overrides),
        )

    def validate_config(self, config: TournamentConfig) -> ValidationResult:
        errors = []
        if FormatType(config.format_type) != self.format_type:
            errors.append(ValidationError(
                'format_type',
                f"Expected '{self.format_type.value}' (got '{FormatType(config.format_type).value}').",
                'invalid-option',
            ))
        if not isinstance(config.options, self.options_class):
            errors.append(ValidationError(
                'options', f"Options must be {self.options_class.__name__}.", 'invalid-option'))
            return ValidationResult.from_errors(errors)

        errors.extend(validate_participants(config.participants, self.metadata.min_participants))
        errors.extend(self.validate_options(config))
        if errors:
            logger.debug("%s config invalid: %s", self.format_type.value, '; '.join(str(e) for e in errors))
        return ValidationResult.from_errors(errors)

    def validate_options(self, config: TournamentConfig) -> List[ValidationError]:
        return []

    def generate_structure(self, config: TournamentConfig):
        raise NotImplementedError


# --- Shared option checks -------------------------------------------------

def _check_seeding(options, participants: Sequence[Participant]) -> List[ValidationError]:
    errors = []
    size = options.bracket_size
    if isinstance(size, bool) or size not in BRACKET_SIZES:
        errors.append(ValidationError(
            'options.bracket_size',
            f"Bracket size must be one of {', '.join(str(s) for s in BRACKET_SIZES)} (got {size!r}).",
            'invalid-bracket-size',
        ))

    errors.extend(check_choice(options.seeding_method, SEEDING_METHODS, 'options.seeding_method'))
    if options.seeding_method != 'manual':
        return errors

    order = list(options.manual_seed_order or [])
    if not order:
        errors.append(ValidationError(
            'options.manual_seed_order', "Manual seeding requires a seed order.", 'manual-order-missing'))
        return errors

    known = {p.id for p in participants}
    unknown = [pid for pid in order if pid not in known]
    if unknown:
        errors.append(ValidationError(
            'options.manual_seed_order',
            f"Unknown participant ids: {', '.join(map(str, unknown))}.",
            'manual-order-unknown',
        ))
    ordered_ids = set(order)
    missing = [p.id for p in participants if p.id not in ordered_ids]
    if missing:
        errors.append(ValidationError(
            'options.manual_seed_order',
            f"Seed order is missing participants: {', '.join(missing)}.",
            'manual-order-missing',
        ))
    return errors


def _check_scoring(scoring: ScoringConfig) -> List[ValidationError]:
    errors = []
    for metric in scoring.tiebreakers:
        errors.extend(check_choice(metric, TIEBREAKER_METRICS, 'options.scoring.tiebreakers'))
    return errors


def _check_points_table(table, field_name: str) -> List[ValidationError]:
    if not table or any(isinstance(p, bool) or not isinstance(p, (int, float)) or p < 0 for p in table):
        return [ValidationError(field_name, "Points table must be a non-empty list of non-negative numbers.",
                                'invalid-option')]
    return []


def _check_names(names, field_name: str, label: str) -> List[ValidationError]:
    if not names:
        return [ValidationError(field_name, f"At least one {label} is required.", 'invalid-range')]
    return []


# --- Formats --------------------------------------------------------------

class SingleEliminationFormat(TournamentFormat):
    metadata = FormatMetadata(
        type=FormatType.SINGLE_ELIMINATION,
        name="Single Elimination",
        description="Knockout bracket that fills byes automatically and shows who advances each round.",
        min_participants=2,
        use_cases=("Best for 4-64 players", "When time is limited", "Playoffs"),
    )

    def __init__(self, random_source=None):
        self.random_source = random_source

    def validate_options(self, config):
        return _check_seeding(config.options, config.participants)

    def generate_structure(self, config):
        return generate_single_elimination_bracket(config, self.random_source)


class DoubleEliminationFormat(TournamentFormat):
    metadata = FormatMetadata(
        type=FormatType.DOUBLE_ELIMINATION,
        name="Double Elimination",
        description="Winners and losers brackets with an optional grand final reset.",
        min_participants=2,
        use_cases=("Fairer competitive play", "LAN events", "Two-loss safety net"),
    )

    def __init__(self, random_source=None):
        self.random_source = random_source

    def validate_options(self, config):
        return _check_seeding(config.options, config.participants)

    def generate_structure(self, config):
        return generate_double_elimination_bracket(config, self.random_source)


class RoundRobinFormat(TournamentFormat):
    metadata = FormatMetadata(
        type=FormatType.ROUND_ROBIN,
        name="Round Robin",
        description="Everyone plays everyone, with generated fixtures and standings.",
        min_participants=3,
        use_cases=("Small leagues", "Group stages", "Balanced schedules"),
    )

    def validate_options(self, config):
        options = config.options
        errors = check_range(options.rounds, 1, 'options.rounds')
        max_groups = max(1, len(config.participants) // 2)
        errors.extend(check_range(options.group_count, 1, 'options.group_count', maximum=max_groups))
        errors.extend(_check_scoring(options.scoring))
        return errors

    def generate_structure(self, config):
        return generate_round_robin_structure(config)


class SwissFormat(TournamentFormat):
    metadata = FormatMetadata(
        type=FormatType.SWISS,
        name="Swiss",
        description="Score-based pairings that avoid rematches and surface the strongest quickly.",
        min_participants=2,
        use_cases=("Large player pools", "4-9 round ladders", "Card games and esports"),
    )

    def validate_options(self, config):
        options = config.options
        errors = []
        if options.rounds is not None:
            errors.extend(check_range(options.rounds, 1, 'options.rounds',
                                      maximum=max(1, len(config.participants) - 1)))
        errors.extend(_check_scoring(options.scoring))
        return errors

    def generate_structure(self, config):
        return generate_swiss_structure(config)

    def advance(self, config, structure: LeagueStructure) -> LeagueStructure:
        """Pair the next round from the results recorded in ``structure``."""
        return generate_swiss_structure(config, structure.rounds)


class FreeForAllFormat(TournamentFormat):
    metadata = FormatMetadata(
        type=FormatType.FREE_FOR_ALL,
        name="Free-for-All",
        description="Multi-participant lobbies narrowing to a final.",
        min_participants=2,
        use_cases=("Battle royale lobbies", "Party games", "Large heats to finals"),
    )

    def validate_options(self, config):
        options = config.options
        errors = check_range(options.lobby_size, 2, 'options.lobby_size')
        errors.extend(check_range(options.final_size, 1, 'options.final_size'))
        if not errors:
            errors.extend(check_range(options.advance_per_match, 1, 'options.advance_per_match',
                                      maximum=options.lobby_size - 1))
        return errors

    def generate_structure(self, config):
        return generate_ffa_structure(config)


class FIFAFormat(TournamentFormat):
    metadata = FormatMetadata(
        type=FormatType.FIFA,
        name="FIFA Style",
        description="Group play feeding a knockout bracket labelled by table position.",
        min_participants=4,
        use_cases=("Football tournaments", "Group-to-bracket flows", "Home/away or single leg"),
    )

    def validate_options(self, config):
        options = config.options
        count = len(config.participants)
        errors = check_range(options.group_count, 1, 'options.group_count', maximum=max(1, count // 2))
        if not errors:
            smallest_group = max(1, count // options.group_count)
            errors.extend(check_range(options.advance_per_group, 1, 'options.advance_per_group',
                                      maximum=smallest_group))
        errors.extend(check_range(options.legs, 1, 'options.legs', maximum=2))
        errors.extend(check_choice(options.distribution, DISTRIBUTION_METHODS, 'options.distribution'))
        errors.extend(check_choice(options.knockout_format, KNOCKOUT_FORMATS, 'options.knockout_format'))
        errors.extend(check_choice(options.knockout_seeding, KNOCKOUT_SEEDING_RULES, 'options.knockout_seeding'))
        errors.extend(_check_scoring(options.scoring))
        return errors

    def generate_structure(self, config):
        return generate_fifa_structure(config)

    def refresh(self, config, structure: LeagueStructure) -> LeagueStructure:
        """Recompute group standings and the knockout bracket from results."""
        return refresh_fifa_structure(config, structure)


class RacingMarioKartFormat(TournamentFormat):
    metadata = FormatMetadata(
        type=FormatType.RACING_MK,
        name="Racing - Kart",
        description="Grand prix, time trials and elimination cups for kart racing.",
        min_participants=2,
        use_cases=("Grand prix nights", "Time trials", "Party-friendly scoring"),
    )

    def validate_options(self, config):
        options = config.options
        errors = check_choice(options.mode, RACING_MK_MODES, 'options.mode')
        errors.extend(_check_names(options.tracks, 'options.tracks', 'track'))
        errors.extend(_check_points_table(options.points_table, 'options.points_table'))
        if options.mode == 'knockout':
            errors.extend(check_range(options.eliminate_per_race, 1, 'options.eliminate_per_race'))
            errors.extend(check_range(options.final_field_size, 1, 'options.final_field_size',
                                      maximum=max(1, len(config.participants) - 1)))
        return errors

    def generate_structure(self, config):
        return generate_racing_mk_structure(config)

    def score(self, config, structure: RacingStructure) -> RacingStructure:
        """Score recorded races with the configured points table."""
        return score_structure(structure, config.participants, config.options.points_table)

    def advance(self, config, structure: RacingStructure, event_index: int) -> RacingStructure:
        """Knockout mode: seed the next race with the survivors of ``event_index``."""
        options = config.options
        return advance_knockout_cup(structure, event_index, options.eliminate_per_race,
                                    options.final_field_size)


class RacingF1Format(TournamentFormat):
    metadata = FormatMetadata(
        type=FormatType.RACING_F1,
        name="Racing - F1",
        description="Qualifying and race weekends, sprints, and driver and team championships.",
        min_participants=2,
        use_cases=("Season leaderboards", "Qualifying + race weekends", "Team and driver points"),
    )

    def validate_options(self, config):
        options = config.options
        errors = check_choice(options.mode, RACING_F1_MODES, 'options.mode')
        errors.extend(_check_names(options.circuits, 'options.circuits', 'circuit'))
        errors.extend(_check_points_table(options.points_table, 'options.points_table'))
        if options.sprint_rounds:
            errors.extend(_check_points_table(options.sprint_points_table, 'options.sprint_points_table'))
            for number in options.sprint_rounds:
                errors.extend(check_range(number, 1, 'options.sprint_rounds',
                                          maximum=max(1, len(options.circuits))))
        return errors

    def generate_structure(self, config):
        return generate_racing_f1_structure(config)

    def score(self, config, structure: RacingStructure) -> RacingStructure:
        """Score recorded races and sprints with the configured points tables."""
        options = config.options
        return score_structure(structure, config.participants, options.points_table,
                               options.sprint_points_table)


# --- Registry -------------------------------------------------------------

class FormatRegistry:
    """Formats keyed by format type."""

    def __init__(self):
        self._formats: Dict[FormatType, TournamentFormat] = {}

    def register(self, tournament_format: TournamentFormat) -> None:
        """
        Register a format.

        Raises:
            FormatAlreadyRegisteredError: If the format type is already taken
        """
        format_type = tournament_format.format_type
        if format_type in self._formats:
            raise FormatAlreadyRegisteredError(format_type.value)
        self._formats[format_type] = tournament_format

    def get(self, format_type) -> Optional[TournamentFormat]:
        """Format for ``format_type`` (enum member or string value), or None."""
        try:
            return self._formats.get(FormatType(format_type))
        except ValueError:
            return None

    def require(self, format_type) -> TournamentFormat:
        """
        Like ``get`` but for callers that cannot continue without the format.

        Raises:
            UnknownFormatError: If nothing is registered for ``format_type``
        """
        tournament_format = self.get(format_type)
        if tournament_format is None:
            value = format_type.value if isinstance(format_type, FormatType) else format_type
            raise UnknownFormatError(value)
        return tournament_format

    def all(self) -> List[TournamentFormat]:
        return list(self._formats.values())

    def __contains__(self, format_type) -> bool:
        return self.get(format_type) is not None

    def __len__(self) -> int:
        return len(self._formats)


DEFAULT_FORMAT_CLASSES = (
    SingleEliminationFormat,
    DoubleEliminationFormat,
    RoundRobinFormat,
    SwissFormat,
    FreeForAllFormat,
    FIFAFormat,
    RacingMarioKartFormat,
    RacingF1Format,
)


def create_default_registry(random_source=None) -> FormatRegistry:
    """
    Registry holding every built-in format. ``random_source`` is handed to
    the elimination formats for the "random" seeding method.
    """
    registry = FormatRegistry()
    for format_class in DEFAULT_FORMAT_CLASSES:
        if format_class in (SingleEliminationFormat, DoubleEliminationFormat):
            registry.register(format_class(random_source=random_source))
        else:
            registry.register(format_class())
    return registry


def generate(registry: FormatRegistry, config: TournamentConfig):
    """Validate ``config`` and generate its structure. Returns (ValidationResult, structure or None)."""
    tournament_format = registry.require(config.format_type)
    result = tournament_format.validate_config(config)
    if not result.valid:
        return result, None
    return result, tournament_format.generate_structure(config)
