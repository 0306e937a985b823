"""
Unit tests for the structure data model.
"""
import pytest

from conftest import make_participants
from tournagen.models import (
    BracketMatch,
    BracketRound,
    BracketStructure,
    Fixture,
    Participant,
    RacingEvent,
    RacingSession,
    derive_seed,
    structure_from_dict,
)


class TestParticipant:
    """Tests for the Participant model."""

    def test_defaults(self):
        participant = Participant(id='p1', name='Player 1')
        assert participant.seed is None
        assert participant.team is None
        assert participant.to_dict() == {
            'id': 'p1', 'name': 'Player 1', 'seed': None,
            'team': None, 'nationality': None, 'metadata': None,
        }

    def test_from_dict_ignores_missing_optionals(self):
        participant = Participant.from_dict({'id': 'ver', 'name': 'Verstappen', 'team': 'Red Bull'})
        assert participant.team == 'Red Bull'
        assert participant.metadata is None

    def test_derive_seed(self):
        assert derive_seed(Participant(id='a', name='A', seed=9), 0) == 9
        assert derive_seed(Participant(id='b', name='B'), 3) == 4


class TestBracketStructure:
    """Tests for bracket lookups."""

    def test_all_matches_and_find(self):
        p1, p2 = make_participants(2)
        final = BracketMatch(id='round-1-match-1', round_id='round-1', position=0,
                             participant1=p1, participant2=p2)
        third = BracketMatch(id='third-place', round_id='third-place', position=0)
        structure = BracketStructure(
            rounds=[BracketRound(id='round-1', name='Final', round_number=1, matches=[final])],
            third_place_match=third,
        )
        assert [m.id for m in structure.all_matches()] == ['round-1-match-1', 'third-place']
        assert structure.find_match('third-place') is third
        assert structure.find_match('nope') is None

    def test_feeds_into_serialized_as_id(self):
        match = BracketMatch(id='round-1-match-1', round_id='round-1', position=0, feeds_into='round-2-match-1')
        assert match.to_dict()['feeds_into'] == 'round-2-match-1'


class TestStructureFromDict:
    """Tests for type-dispatched structure loading."""

    def test_dispatches_on_type(self):
        assert isinstance(structure_from_dict({'type': 'bracket', 'rounds': []}), BracketStructure)
        assert structure_from_dict({'type': 'stage'}).stages == []

    def test_unknown_type(self):
        with pytest.raises(ValueError):
            structure_from_dict({'type': 'pyramid'})

    def test_missing_required_field(self):
        with pytest.raises(KeyError):
            structure_from_dict({'type': 'racing', 'events': []})


class TestHelpers:
    """Tests for small model helpers."""

    def test_fixture_involves(self):
        p1, p2, p3 = make_participants(3)
        fixture = Fixture(id='f1', participant1=p1, participant2=p2)
        bye = Fixture(id='f2', participant1=p3, is_bye=True)
        assert fixture.involves('p2')
        assert not fixture.involves('p3')
        assert bye.involves('p3')

    def test_event_session_lookup(self):
        event = RacingEvent(id='event-1', name='Monza', sessions=[RacingSession(id='event-1-race', type='race')])
        assert event.session('race').id == 'event-1-race'
        assert event.session('sprint') is None
