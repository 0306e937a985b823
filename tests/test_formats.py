"""
Tests for the format registry, default configs and config validation.
"""
import pytest

from conftest import make_participants
from tournagen.config import FFAOptions, FormatType
from tournagen.exceptions import FormatAlreadyRegisteredError, UnknownFormatError
from tournagen.formats import (
    FormatRegistry,
    RoundRobinFormat,
    SingleEliminationFormat,
    generate,
)
from tournagen.models import Participant
from tournagen.standings import ScoringConfig

STRUCTURE_TYPE_BY_FORMAT = {
    FormatType.SINGLE_ELIMINATION: 'bracket',
    FormatType.DOUBLE_ELIMINATION: 'bracket',
    FormatType.ROUND_ROBIN: 'league',
    FormatType.SWISS: 'league',
    FormatType.FREE_FOR_ALL: 'stage',
    FormatType.FIFA: 'league',
    FormatType.RACING_MK: 'racing',
    FormatType.RACING_F1: 'racing',
}


def error_codes(result):
    return [e.code for e in result.errors]


def validate(registry, format_type, participants, **options):
    tournament_format = registry.require(format_type)
    config = tournament_format.create_default_config(participants, **options)
    return tournament_format.validate_config(config)


class TestRegistry:
    """Tests for FormatRegistry."""

    def test_default_registry_has_every_format(self, registry):
        assert len(registry) == 8
        assert {f.format_type for f in registry.all()} == set(FormatType)

    def test_get_by_enum_or_string(self, registry):
        assert registry.get(FormatType.SWISS) is registry.get('swiss')
        assert registry.get('swiss').metadata.name == "Swiss"

    def test_get_unknown_returns_none(self, registry):
        assert registry.get('chess-arena') is None
        assert 'chess-arena' not in registry

    def test_require_unknown_raises(self):
        with pytest.raises(UnknownFormatError) as excinfo:
            FormatRegistry().require(FormatType.SWISS)
        assert "'swiss'" in str(excinfo.value)

    def test_duplicate_registration_raises(self, registry):
        with pytest.raises(FormatAlreadyRegisteredError):
            registry.register(SingleEliminationFormat())

    def test_registries_are_independent(self):
        first = FormatRegistry()
        first.register(RoundRobinFormat())
        second = FormatRegistry()
        assert FormatType.ROUND_ROBIN in first
        assert FormatType.ROUND_ROBIN not in second

    @pytest.mark.parametrize("format_type", list(FormatType))
    def test_default_config_is_valid_and_generates(self, registry, format_type):
        tournament_format = registry.require(format_type)
        config = tournament_format.create_default_config(make_participants(8))
        result = tournament_format.validate_config(config)
        assert result.valid, [str(e) for e in result.errors]
        structure = tournament_format.generate_structure(config)
        assert structure.type == STRUCTURE_TYPE_BY_FORMAT[format_type]

    def test_generate_helper(self, registry):
        config = registry.require('round-robin').create_default_config(make_participants(2))
        result, structure = generate(registry, config)
        assert not result.valid
        assert structure is None


class TestDefaultConfig:
    """Tests for create_default_config."""

    def test_identity_and_seeds(self):
        players = [Participant(id='a', name='A', seed=5), Participant(id='b', name='B')]
        config = SingleEliminationFormat().create_default_config(players)
        assert config.id == 'single-elimination-config'
        assert config.name == "Single Elimination"
        assert config.format_type == FormatType.SINGLE_ELIMINATION
        assert [p.seed for p in config.participants] == [5, 2]
        assert players[1].seed is None

    def test_overrides(self):
        config = SingleEliminationFormat().create_default_config(make_participants(4), third_place_playoff=True)
        assert config.options.third_place_playoff is True
        assert config.options.bracket_size == 'auto'

    def test_unknown_override_ignored(self, caplog):
        config = RoundRobinFormat().create_default_config(make_participants(4), colour='red')
        assert not hasattr(config.options, 'colour')
        assert 'colour' in caplog.text

    def test_scoring_override(self):
        config = RoundRobinFormat().create_default_config(make_participants(4), scoring={'win': 2})
        assert config.options.scoring == ScoringConfig(win=2)


class TestValidation:
    """Tests for per-format config validation."""

    def test_valid_result_has_no_errors(self, registry):
        result = validate(registry, 'single-elimination', make_participants(4))
        assert result.valid
        assert result.errors == []

    def test_elimination_needs_two(self, registry):
        result = validate(registry, 'single-elimination', make_participants(1))
        assert error_codes(result) == ['insufficient-participants']
        assert result.errors[0].field == 'participants'

    def test_round_robin_needs_three(self, registry):
        assert error_codes(validate(registry, 'round-robin', make_participants(2))) == [
            'insufficient-participants']
        assert validate(registry, 'round-robin', make_participants(3)).valid

    def test_duplicate_ids(self, registry):
        players = [Participant(id='a', name='A'), Participant(id='a', name='Also A')]
        assert 'duplicate-participant' in error_codes(validate(registry, 'swiss', players))

    def test_manual_order_missing(self, registry):
        result = validate(registry, 'single-elimination', make_participants(4), seeding_method='manual')
        assert error_codes(result) == ['manual-order-missing']

    def test_manual_order_incomplete(self, registry):
        result = validate(registry, 'double-elimination', make_participants(4),
                          seeding_method='manual', manual_seed_order=['p1', 'p2'])
        assert error_codes(result) == ['manual-order-missing']
        assert 'p3' in result.errors[0].message

    def test_manual_order_unknown(self, registry):
        result = validate(registry, 'single-elimination', make_participants(2),
                          seeding_method='manual', manual_seed_order=['p1', 'p2', 'ghost'])
        assert error_codes(result) == ['manual-order-unknown']

    def test_bracket_size(self, registry):
        assert error_codes(validate(registry, 'single-elimination', make_participants(4), bracket_size=6)) == [
            'invalid-bracket-size']
        assert validate(registry, 'single-elimination', make_participants(4), bracket_size=16).valid
        assert validate(registry, 'single-elimination', make_participants(9), bracket_size=8).valid

    def test_seeding_method(self, registry):
        result = validate(registry, 'single-elimination', make_participants(4), seeding_method='coin')
        assert error_codes(result) == ['invalid-option']

    def test_round_robin_ranges(self, registry):
        result = validate(registry, 'round-robin', make_participants(8), rounds=0, group_count=5)
        assert error_codes(result) == ['invalid-range', 'invalid-range']

    def test_unknown_tiebreaker(self, registry):
        result = validate(registry, 'round-robin', make_participants(4),
                          scoring={'tiebreakers': ['coin_toss']})
        assert error_codes(result) == ['invalid-option']

    def test_swiss_rounds(self, registry):
        assert error_codes(validate(registry, 'swiss', make_participants(4), rounds=4)) == ['invalid-range']
        assert validate(registry, 'swiss', make_participants(4), rounds=3).valid

    def test_ffa_lobby_size(self, registry):
        assert error_codes(validate(registry, 'ffa', make_participants(8), lobby_size=0)) == ['invalid-range']

    def test_ffa_advance_must_be_below_lobby_size(self, registry):
        result = validate(registry, 'ffa', make_participants(8), lobby_size=4, advance_per_match=4)
        assert error_codes(result) == ['invalid-range']
        assert result.errors[0].field == 'options.advance_per_match'

    def test_fifa_options(self, registry):
        result = validate(registry, 'fifa', make_participants(8), advance_per_group=5, distribution='random')
        assert sorted(error_codes(result)) == ['invalid-option', 'invalid-range']
        assert 'insufficient-participants' in error_codes(validate(registry, 'fifa', make_participants(3)))

    def test_kart_options(self, registry):
        assert error_codes(validate(registry, 'racing-mk', make_participants(4), tracks=[])) == [
            'invalid-range']
        assert error_codes(validate(registry, 'racing-mk', make_participants(4), mode='drift')) == [
            'invalid-option']
        result = validate(registry, 'racing-mk', make_participants(4), mode='knockout', final_field_size=4)
        assert error_codes(result) == ['invalid-range']

    def test_f1_sprint_rounds(self, registry):
        result = validate(registry, 'racing-f1', make_participants(4), sprint_rounds=[2, 9])
        assert error_codes(result) == ['invalid-range']
        assert validate(registry, 'racing-f1', make_participants(4), points_table=[]).errors[0].code == \
            'invalid-option'

    def test_wrong_options_type(self, registry):
        tournament_format = registry.require('swiss')
        config = tournament_format.create_default_config(make_participants(4))
        config.options = FFAOptions()
        assert error_codes(tournament_format.validate_config(config)) == ['invalid-option']

    def test_error_str(self, registry):
        result = validate(registry, 'single-elimination', make_participants(1))
        assert str(result.errors[0]).startswith('participants: ')
