#!/usr/bin/env python3
"""
Generate a tournament structure from YAML files and write the JSON export.

Usage:
    tournagen participants.yaml
    tournagen participants.yaml --tournament tournament.yaml --output out.json
    tournagen participants.yaml --format round-robin --verbose

participants.yaml is either a list of names / mappings, or a mapping with a
``participants`` key holding that list. tournament.yaml holds ``format``,
``name`` and ``options`` (option keys of the chosen format).

Exit codes:
    0: Success
    1: Input files could not be loaded
    2: Config failed validation
"""
import argparse
import logging
import os
import random
import sys

import yaml

from .config import FormatType
from .exceptions import ConfigLoadError
from .export import save_export, export_tournament, slugify
from .formats import create_default_registry
from .models import Participant

logger = logging.getLogger(__name__)

PARTICIPANT_KEYS = ('id', 'name', 'seed', 'team', 'nationality', 'metadata')


def _read_yaml(file_path):
    try:
        with open(file_path, 'r', encoding='utf-8') as f:
            return yaml.safe_load(f)
    except OSError as e:
        raise ConfigLoadError(f"Cannot read {file_path}: {e}") from e
    except yaml.YAMLError as e:
        raise ConfigLoadError(f"Invalid YAML in {file_path}: {e}") from e


def parse_participant(entry, index):
    """A name string or a mapping with at least ``name``; ids default to the slugified name."""
    if isinstance(entry, str):
        entry = {'name': entry}
    if not isinstance(entry, dict) or not entry.get('name'):
        raise ConfigLoadError(f"Participant #{index + 1} needs a name.")
    unknown = sorted(set(entry) - set(PARTICIPANT_KEYS))
    if unknown:
        logger.warning("Participant '%s': ignoring keys %s", entry['name'], ', '.join(unknown))
    name = str(entry['name'])
    return Participant(
        id=str(entry.get('id') or slugify(name)),
        name=name,
        seed=entry.get('seed'),
        team=entry.get('team'),
        nationality=entry.get('nationality'),
        metadata=entry.get('metadata'),
    )


def load_participants(file_path):
    data = _read_yaml(file_path)
    if isinstance(data, dict):
        data = data.get('participants')
    if not isinstance(data, list):
        raise ConfigLoadError(f"{file_path} must contain a list of participants.")
    return [parse_participant(entry, index) for index, entry in enumerate(data)]


def load_tournament_settings(file_path):
    if not file_path:
        return {}
    data = _read_yaml(file_path) or {}
    if not isinstance(data, dict):
        raise ConfigLoadError(f"{file_path} must contain a mapping.")
    options = data.get('options') or {}
    if not isinstance(options, dict):
        raise ConfigLoadError(f"{file_path}: 'options' must be a mapping.")
    return data


def build_parser():
    parser = argparse.ArgumentParser(
        description='Generate a tournament bracket, schedule or stage structure'
    )
    parser.add_argument('participants', help='Participants YAML file')
    parser.add_argument('--tournament', help='Tournament YAML file (format, name, options)')
    parser.add_argument(
        '--format',
        choices=[f.value for f in FormatType],
        help='Tournament format (overrides the tournament file; default: single-elimination)'
    )
    parser.add_argument('--name', help='Tournament name (overrides the tournament file)')
    parser.add_argument('--seed', type=int, help='Random seed for the "random" seeding method')
    parser.add_argument('--output', help='Write the export JSON here instead of stdout')
    parser.add_argument('--verbose', '-v', action='store_true', help='Debug logging')
    return parser


def main(argv=None):
    args = build_parser().parse_args(argv)
    logging.basicConfig(
        level=logging.DEBUG if args.verbose else logging.WARNING,
        format='%(asctime)s %(levelname)s %(name)s: %(message)s',
    )

    try:
        participants = load_participants(args.participants)
        settings = load_tournament_settings(args.tournament)
    except ConfigLoadError as e:
        print(f"Error: {e}", file=sys.stderr)
        return 1

    format_value = args.format or settings.get('format') or FormatType.SINGLE_ELIMINATION.value
    try:
        format_type = FormatType(format_value)
    except ValueError:
        print(f"Error: unknown tournament format '{format_value}'", file=sys.stderr)
        return 1

    registry = create_default_registry(random.Random(args.seed) if args.seed is not None else None)
    tournament_format = registry.require(format_type)
    config = tournament_format.create_default_config(participants, **(settings.get('options') or {}))
    name = args.name or settings.get('name')
    if name:
        config.name = str(name)

    validation = tournament_format.validate_config(config)
    if not validation.valid:
        for error in validation.errors:
            print(f"Error: {error} [{error.code}]", file=sys.stderr)
        return 2

    structure = tournament_format.generate_structure(config)
    logger.debug("Generated %s structure for %d participants", format_type.value, len(participants))

    if args.output:
        output_path = args.output
        if os.path.isdir(output_path):
            output_path = os.path.join(output_path, export_tournament(config, structure).filename)
        save_export(output_path, config, structure)
        print(f"Export written: {output_path}")
    else:
        print(export_tournament(config, structure).json)
    return 0


if __name__ == '__main__':
    sys.exit(main())
