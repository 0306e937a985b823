"""
JSON export and import of a tournament config together with its structure.

Payload shape::

    {version, format, generated_at, config, structure, metadata?}

Importing checks the payload shape, looks the format up in a registry and
re-validates the config before rebuilding typed objects.
"""
import json
import logging
import os
import re
from dataclasses import dataclass, field
from datetime import datetime
from typing import Any, Dict, List, Optional

from filelock import FileLock

from .config import FormatType, TournamentConfig, utcnow
from .models import structure_from_dict

logger = logging.getLogger(__name__)

EXPORT_VERSION = '1.0.0'
FILENAME_PREFIX = 'tournagen'
LOCK_TIMEOUT = 10

IMPORT_ERROR_CODES = ('invalid-json', 'invalid-schema', 'unknown-format', 'validation-failed', 'not-found')


@dataclass
class ExportResult:
    payload: Dict[str, Any]
    filename: str
    json: str


@dataclass
class ImportFailure:
    code: str
    message: str
    details: List[str] = field(default_factory=list)


@dataclass
class ImportResult:
    success: bool
    format: Optional[FormatType] = None
    payload: Optional[Dict[str, Any]] = None
    config: Optional[TournamentConfig] = None
    structure: Any = None
    error: Optional[ImportFailure] = None

    @classmethod
    def failure(cls, code: str, message: str, details: Optional[List[str]] = None) -> "ImportResult":
        logger.debug("Import failed (%s): %s", code, message)
        return cls(success=False, error=ImportFailure(code, message, list(details or [])))


def slugify(value: str) -> str:
    slug = re.sub(r'[^a-z0-9]+', '-', (value or '').lower()).strip('-')
    return slug or 'tournament'


def build_filename(name: str, format_type, timestamp: datetime) -> str:
    """tournagen-<name-slug>-<format>-<YYYYMMDD-HHMMSS>.json"""
    format_value = FormatType(format_type).value
    return f"{FILENAME_PREFIX}-{slugify(name)}-{format_value}-{timestamp.strftime('%Y%m%d-%H%M%S')}.json"


def export_tournament(config: TournamentConfig, structure, metadata: Optional[Dict[str, Any]] = None,
                      generated_at: Optional[datetime] = None, version: str = EXPORT_VERSION,
                      filename: Optional[str] = None) -> ExportResult:
    """
    Serialize ``config`` and ``structure`` to a JSON export.

    Raises:
        ValueError: If config or structure is missing
    """
    if config is None:
        raise ValueError("export_tournament requires a tournament config.")
    if structure is None:
        raise ValueError("export_tournament requires a generated structure.")

    timestamp = generated_at or utcnow()
    payload = {
        'version': version,
        'format': FormatType(config.format_type).value,
        'generated_at': timestamp.isoformat(),
        'config': config.to_dict(),
        'structure': structure.to_dict(),
    }
    if metadata:
        payload['metadata'] = metadata

    return ExportResult(
        payload=payload,
        filename=filename or build_filename(config.name, config.format_type, timestamp),
        json=json.dumps(payload, indent=2),
    )


def import_tournament(json_text: str, registry) -> ImportResult:
    """
    Rebuild a config and structure from exported JSON.

    Never raises for bad input; failures come back as an ``ImportResult``
    with ``success`` False and an error code from ``IMPORT_ERROR_CODES``.
    """
    try:
        parsed = json.loads(json_text)
    except (TypeError, ValueError) as e:
        return ImportResult.failure('invalid-json', "The file is not valid JSON.", [str(e)])

    if not isinstance(parsed, dict):
        return ImportResult.failure('invalid-schema', "File must contain an object with tournament data.")

    try:
        format_type = FormatType(parsed.get('format'))
    except (TypeError, ValueError):
        return ImportResult.failure('invalid-schema', "Tournament format is missing or not recognized.")

    config_data = parsed.get('config')
    structure_data = parsed.get('structure')
    if not isinstance(config_data, dict):
        return ImportResult.failure('invalid-schema', "Tournament configuration is missing or malformed.")
    if not isinstance(structure_data, dict):
        return ImportResult.failure('invalid-schema', "Tournament structure is missing or malformed.")
    if not isinstance(structure_data.get('type'), str):
        return ImportResult.failure('invalid-schema', "Tournament structure is missing a type discriminator.")
    if config_data.get('format_type') != format_type.value:
        return ImportResult.failure('invalid-schema', "Configuration format does not match the payload format.")

    tournament_format = registry.get(format_type)
    if tournament_format is None:
        return ImportResult.failure('unknown-format',
                                    f"Tournament format '{format_type.value}' is not available.")

    try:
        config = TournamentConfig.from_dict(config_data)
    except (KeyError, TypeError, ValueError) as e:
        return ImportResult.failure('invalid-schema', "Tournament configuration is missing required fields.",
                                    [str(e)])
    try:
        structure = structure_from_dict(structure_data)
    except (KeyError, TypeError, ValueError) as e:
        return ImportResult.failure('invalid-schema', "Tournament structure is malformed.", [str(e)])

    validation = tournament_format.validate_config(config)
    if not validation.valid:
        return ImportResult.failure('validation-failed', "Imported tournament failed validation.",
                                    [str(error) for error in validation.errors])

    payload = {
        'version': parsed['version'] if isinstance(parsed.get('version'), str) else 'unknown',
        'format': format_type.value,
        'generated_at': parsed['generated_at'] if isinstance(parsed.get('generated_at'), str)
        else utcnow().isoformat(),
        'config': config_data,
        'structure': structure_data,
    }
    if isinstance(parsed.get('metadata'), dict):
        payload['metadata'] = parsed['metadata']

    return ImportResult(success=True, format=format_type, payload=payload, config=config, structure=structure)


def _lock_for(path: str) -> FileLock:
    return FileLock(f"{path}.lock", timeout=LOCK_TIMEOUT)


def save_export(path: str, config: TournamentConfig, structure, **kwargs) -> ExportResult:
    """Export and write to ``path`` under a file lock. Extra kwargs go to ``export_tournament``."""
    result = export_tournament(config, structure, **kwargs)
    directory = os.path.dirname(os.path.abspath(path))
    os.makedirs(directory, exist_ok=True)
    with _lock_for(path):
        with open(path, 'w', encoding='utf-8') as f:
            f.write(result.json)
    logger.info("Saved %s export to %s", result.payload['format'], path)
    return result


def load_export(path: str, registry) -> ImportResult:
    """Read an export written by ``save_export`` and import it."""
    if not os.path.exists(path):
        return ImportResult.failure('not-found', f"No saved tournament found at {path}.")
    with _lock_for(path):
        with open(path, 'r', encoding='utf-8') as f:
            json_text = f.read()
    return import_tournament(json_text, registry)
