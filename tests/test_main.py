"""
Tests for the tournagen command-line entry point.
"""
import json

import pytest

from tournagen.exceptions import ConfigLoadError
from tournagen.export import load_export
from tournagen.main import load_participants, main, parse_participant


@pytest.fixture
def roster_file(tmp_path):
    path = tmp_path / 'participants.yaml'
    path.write_text("- Alice Smith\n- Bob\n- Carol\n- Dan\n", encoding='utf-8')
    return path


def write(tmp_path, name, text):
    path = tmp_path / name
    path.write_text(text, encoding='utf-8')
    return str(path)


class TestLoadParticipants:
    """Tests for participant file parsing."""

    def test_names_list(self, roster_file):
        participants = load_participants(str(roster_file))
        assert [p.id for p in participants] == ['alice-smith', 'bob', 'carol', 'dan']
        assert participants[0].name == 'Alice Smith'

    def test_mapping_with_details(self, tmp_path):
        path = write(tmp_path, 'drivers.yaml', """
participants:
  - {id: ver, name: Verstappen, team: Red Bull, seed: 1}
  - name: Hamilton
    team: Mercedes
""")
        ver, ham = load_participants(path)
        assert (ver.id, ver.team, ver.seed) == ('ver', 'Red Bull', 1)
        assert (ham.id, ham.seed) == ('hamilton', None)

    def test_entry_without_name(self):
        with pytest.raises(ConfigLoadError):
            parse_participant({'id': 'x'}, 0)

    def test_not_a_list(self, tmp_path):
        with pytest.raises(ConfigLoadError):
            load_participants(write(tmp_path, 'bad.yaml', "name: just one\n"))


class TestMain:
    """Tests for main()."""

    def test_prints_export_to_stdout(self, roster_file, capsys):
        assert main([str(roster_file)]) == 0
        payload = json.loads(capsys.readouterr().out)
        assert payload['format'] == 'single-elimination'
        assert payload['structure']['type'] == 'bracket'
        assert len(payload['config']['participants']) == 4

    def test_tournament_file(self, roster_file, tmp_path, capsys):
        settings = write(tmp_path, 'tournament.yaml', """
format: round-robin
name: Club League
options:
  rounds: 2
""")
        assert main([str(roster_file), '--tournament', settings]) == 0
        payload = json.loads(capsys.readouterr().out)
        assert payload['config']['name'] == 'Club League'
        assert payload['config']['options']['rounds'] == 2
        assert len(payload['structure']['rounds']) == 6

    def test_command_line_overrides_file(self, roster_file, tmp_path, capsys):
        settings = write(tmp_path, 'tournament.yaml', "format: round-robin\nname: Club League\n")
        assert main([str(roster_file), '--tournament', settings, '--format', 'swiss', '--name', 'Ladder']) == 0
        payload = json.loads(capsys.readouterr().out)
        assert payload['format'] == 'swiss'
        assert payload['config']['name'] == 'Ladder'

    def test_output_file(self, roster_file, tmp_path, registry, capsys):
        output = tmp_path / 'out' / 'cup.json'
        assert main([str(roster_file), '--output', str(output)]) == 0
        assert 'Export written' in capsys.readouterr().out
        assert load_export(str(output), registry).success

    def test_output_directory(self, roster_file, tmp_path):
        out_dir = tmp_path / 'exports'
        out_dir.mkdir()
        assert main([str(roster_file), '--output', str(out_dir), '--format', 'ffa']) == 0
        written = [p.name for p in out_dir.iterdir() if p.suffix == '.json']
        assert len(written) == 1
        assert written[0].startswith('tournagen-free-for-all-ffa-')

    def test_seeded_random_is_reproducible(self, tmp_path, capsys):
        roster = write(tmp_path, 'roster.yaml', '\n'.join(f"- Player {i}" for i in range(1, 9)))
        settings = write(tmp_path, 'tournament.yaml', "options:\n  seeding_method: random\n")
        structures = []
        for _ in range(2):
            assert main([roster, '--tournament', settings, '--seed', '7']) == 0
            structures.append(json.loads(capsys.readouterr().out)['structure'])
        assert structures[0] == structures[1]

    def test_validation_failure(self, tmp_path, capsys):
        roster = write(tmp_path, 'roster.yaml', "- Alice\n- Bob\n")
        assert main([roster, '--format', 'round-robin']) == 2
        assert '[insufficient-participants]' in capsys.readouterr().err

    def test_missing_participants_file(self, tmp_path, capsys):
        assert main([str(tmp_path / 'missing.yaml')]) == 1
        assert 'Cannot read' in capsys.readouterr().err

    def test_invalid_yaml(self, tmp_path, capsys):
        roster = write(tmp_path, 'roster.yaml', "participants: [unclosed\n")
        assert main([roster]) == 1
        assert 'Invalid YAML' in capsys.readouterr().err

    def test_unknown_format_in_tournament_file(self, roster_file, tmp_path, capsys):
        settings = write(tmp_path, 'tournament.yaml', "format: chess-arena\n")
        assert main([str(roster_file), '--tournament', settings]) == 1
        assert "chess-arena" in capsys.readouterr().err
