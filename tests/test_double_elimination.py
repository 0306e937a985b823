"""
Tests for double elimination bracket functionality.
"""
from collections import Counter

import pytest

from conftest import make_participants
from tournagen.double_elimination import (
    GRAND_FINAL_ID,
    GRAND_FINAL_RESET_ID,
    calculate_losers_bracket_rounds,
    generate_double_elimination_bracket,
    generate_losers_bracket,
    get_losers_round_name,
    get_winners_round_name,
)
from tournagen.formats import DoubleEliminationFormat


def make_config(count, **options):
    return DoubleEliminationFormat().create_default_config(make_participants(count), **options)


class TestRoundNames:
    """Tests for winners and losers round names."""

    def test_losers_final(self):
        """Last round (round_num == total - 1) is Losers Final."""
        assert get_losers_round_name(3, 4) == "Losers Final"
        assert get_losers_round_name(1, 2) == "Losers Final"

    def test_losers_semifinal(self):
        assert get_losers_round_name(2, 4) == "Losers Semifinal"

    def test_losers_numbered_round(self):
        assert get_losers_round_name(0, 6) == "Losers Round 1"
        assert get_losers_round_name(3, 6) == "Losers Round 4"

    def test_winners_names(self):
        assert get_winners_round_name(3, 3) == "Winners Final"
        assert get_winners_round_name(2, 3) == "Winners Semifinal"
        assert get_winners_round_name(1, 3) == "Winners Quarterfinal"
        assert get_winners_round_name(1, 4) == "Winners Round of 16"


class TestLosersBracket:
    """Tests for the losers bracket skeleton."""

    def test_losers_round_count(self):
        assert calculate_losers_bracket_rounds(2) == 0
        assert calculate_losers_bracket_rounds(4) == 2
        assert calculate_losers_bracket_rounds(8) == 4
        assert calculate_losers_bracket_rounds(16) == 6

    def test_match_counts_for_eight(self):
        """Test L1..L4 for 8 slots: 2, 2, 1, 1 matches."""
        rounds = generate_losers_bracket(8)
        assert [len(r.matches) for r in rounds] == [2, 2, 1, 1]
        assert [r.name for r in rounds] == [
            "Losers Round 1", "Losers Round 2", "Losers Semifinal", "Losers Final"]

    def test_match_counts_for_sixteen(self):
        rounds = generate_losers_bracket(16)
        assert [len(r.matches) for r in rounds] == [4, 4, 2, 2, 1, 1]

    def test_losers_links(self):
        """Test minor rounds feed straight across and major rounds pair up."""
        rounds = generate_losers_bracket(8)
        assert rounds[0].matches[1].feeds_into == 'losers-round-2-match-2'
        assert rounds[1].matches[0].feeds_into == 'losers-round-3-match-1'
        assert rounds[1].matches[1].feeds_into == 'losers-round-3-match-1'
        assert rounds[2].matches[0].feeds_into == 'losers-round-4-match-1'
        assert rounds[3].matches[0].feeds_into == GRAND_FINAL_ID


class TestDoubleEliminationGeneration:
    """Tests for generate_double_elimination_bracket."""

    def test_eight_participants(self):
        bracket = generate_double_elimination_bracket(make_config(8))
        assert [r.id for r in bracket.rounds] == ['winners-round-1', 'winners-round-2', 'winners-round-3']
        assert bracket.rounds[-1].name == "Winners Final"
        assert len(bracket.losers_rounds) == 4
        assert bracket.rounds[-1].matches[0].feeds_into == GRAND_FINAL_ID
        assert bracket.grand_final.id == GRAND_FINAL_ID
        assert bracket.grand_final.feeds_into == GRAND_FINAL_RESET_ID
        assert bracket.grand_final_reset.id == GRAND_FINAL_RESET_ID
        assert bracket.third_place_match is None

    def test_drop_down_mapping(self):
        """Test W1 losers pair into L1 and later winners losers drop into major rounds."""
        bracket = generate_double_elimination_bracket(make_config(8))
        winners = bracket.rounds
        assert [m.loser_feeds_into for m in winners[0].matches] == [
            'losers-round-1-match-1', 'losers-round-1-match-1',
            'losers-round-1-match-2', 'losers-round-1-match-2',
        ]
        assert [m.loser_feeds_into for m in winners[1].matches] == [
            'losers-round-2-match-1', 'losers-round-2-match-2']
        assert winners[2].matches[0].loser_feeds_into == 'losers-round-4-match-1'

    @pytest.mark.parametrize("count", [4, 8, 16, 32, 64])
    def test_every_losers_match_has_two_inputs(self, count):
        """Test each losers match of a full bracket is fed by two edges (drops or losers winners)."""
        bracket = generate_double_elimination_bracket(make_config(count))
        inputs = Counter()
        for match in bracket.all_matches():
            if match.loser_feeds_into:
                inputs[match.loser_feeds_into] += 1
            if match.feeds_into and match.feeds_into.startswith('losers-'):
                inputs[match.feeds_into] += 1
        for losers_round in bracket.losers_rounds:
            for match in losers_round.matches:
                assert inputs[match.id] == 2

    @pytest.mark.parametrize("count", [4, 8, 16])
    def test_grand_final_fed_by_both_brackets(self, count):
        bracket = generate_double_elimination_bracket(make_config(count))
        feeders = [m for m in bracket.all_matches() if m.feeds_into == GRAND_FINAL_ID]
        assert len(feeders) == 2
        assert {m.round_id.split('-')[0] for m in feeders} == {'winners', 'losers'}

    def test_every_winners_match_drops_somewhere(self):
        bracket = generate_double_elimination_bracket(make_config(16))
        match_ids = {m.id for m in bracket.all_matches()}
        for winners_round in bracket.rounds:
            for match in winners_round.matches:
                assert match.loser_feeds_into in match_ids

    def test_without_reset(self):
        bracket = generate_double_elimination_bracket(make_config(8, enable_reset=False))
        assert bracket.grand_final_reset is None
        assert bracket.grand_final.feeds_into is None

    def test_two_participants(self):
        """Test a single winners match dropping its loser into the grand final."""
        bracket = generate_double_elimination_bracket(make_config(2))
        assert len(bracket.rounds) == 1
        assert bracket.losers_rounds == []
        assert bracket.rounds[0].matches[0].loser_feeds_into == GRAND_FINAL_ID

    def test_byes_in_winners_bracket(self):
        bracket = generate_double_elimination_bracket(make_config(6))
        byes = [m for m in bracket.rounds[0].matches if m.is_bye]
        assert {m.winner.id for m in byes} == {'p1', 'p2'}

    def test_byes_drop_no_loser(self):
        """Test 5 participants: only W1 match 2 (p4 v p5) has a real first-round loser."""
        bracket = generate_double_elimination_bracket(make_config(5))
        assert [m.loser_feeds_into for m in bracket.rounds[0].matches] == [
            None, 'losers-round-1-match-1', None, None]
        assert [m.loser_feeds_into for m in bracket.rounds[1].matches] == [
            'losers-round-2-match-1', 'losers-round-2-match-2']

    def test_losers_walkovers_and_empty_matches(self):
        """Test 5 participants: losers matches short of two entrants are flagged as byes."""
        bracket = generate_double_elimination_bracket(make_config(5))
        flags = [[m.is_bye for m in r.matches] for r in bracket.losers_rounds]
        assert flags == [[True, True], [False, True], [False], [False]]
        assert all(m.winner is None for r in bracket.losers_rounds for m in r.matches)

    def test_six_participants_walkovers(self):
        bracket = generate_double_elimination_bracket(make_config(6))
        flags = [[m.is_bye for m in r.matches] for r in bracket.losers_rounds]
        assert flags == [[True, True], [False, False], [False], [False]]

    @pytest.mark.parametrize("count", [3, 5, 6, 7, 9, 12, 20])
    def test_no_bye_drops_a_loser(self, count):
        bracket = generate_double_elimination_bracket(make_config(count))
        for winners_round in bracket.rounds:
            for match in winners_round.matches:
                if match.is_bye:
                    assert match.loser_feeds_into is None

    @pytest.mark.parametrize("count", [3, 5, 6, 7, 9, 12, 20])
    def test_live_losers_matches_have_two_inputs(self, count):
        """Test every losers match not flagged as a bye gets exactly two live inputs."""
        bracket = generate_double_elimination_bracket(make_config(count))
        inputs = Counter()
        for match in bracket.all_matches():
            if match.loser_feeds_into:
                inputs[match.loser_feeds_into] += 1
        dead = set()
        for losers_round in bracket.losers_rounds:
            for match in losers_round.matches:
                live = inputs[match.id]
                if live == 0:
                    dead.add(match.id)
                assert match.is_bye == (live < 2)
                if match.feeds_into and match.feeds_into.startswith('losers-') and match.id not in dead:
                    inputs[match.feeds_into] += 1

    def test_degenerate_rosters(self):
        assert generate_double_elimination_bracket(make_config(0)).rounds == []
        assert generate_double_elimination_bracket(make_config(1)).grand_final is None
