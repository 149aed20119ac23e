"""
Backup dump and load.

The backup file is one JSON document holding the full breakdown:
``{feature: {group: [values, ...]}}``. Loading re-applies every rule on top
of the current state; it never clears first.
"""

import json
from pathlib import Path
from typing import Any, Dict

from shared.errors import (
    BackupError,
    BackupNotFoundError,
    MalformedBackupError,
    SerializationError,
    ValidationError,
)
from shared.logging import get_logger
from .rules.names import normalize_feature, validate_group

logger = get_logger("flags.backup")


async def dump(store, path: str) -> int:
    """Write ``store``'s rules to ``path``."""
    rules = await store.breakdown()

    try:
        document = json.dumps(rules, indent=2, sort_keys=True)
    except (TypeError, ValueError) as e:
        raise SerializationError(f"Rules are not JSON serializable: {e}") from e

    try:
        Path(path).write_text(document, encoding="utf-8")
    except OSError as e:
        logger.error("Backup write failed", path=str(path), error=str(e))
        raise BackupError("BACKUP_WRITE_FAILED", f"Cannot write backup file {path}: {e}", {"path": str(path)}) from e

    logger.info("Backup written", path=str(path), features=len(rules))
    return len(rules)


def read_backup(path: str) -> Dict[str, Dict[str, list]]:
    """Read and validate a backup file without applying it."""
    try:
        raw = Path(path).read_text(encoding="utf-8")
    except FileNotFoundError:
        raise BackupNotFoundError(str(path)) from None
    except OSError as e:
        raise BackupError("BACKUP_READ_FAILED", f"Cannot read backup file {path}: {e}", {"path": str(path)}) from e

    try:
        document: Any = json.loads(raw)
    except ValueError as e:
        raise MalformedBackupError(str(path), f"invalid JSON: {e}") from e

    if not isinstance(document, dict):
        raise MalformedBackupError(str(path), "top level must be an object")

    for feature, groups in document.items():
        try:
            normalize_feature(feature)
        except ValidationError as e:
            raise MalformedBackupError(str(path), f"invalid feature name {feature!r}: {e.message}") from e

        if not isinstance(groups, dict):
            raise MalformedBackupError(str(path), f"rules of {feature!r} must be an object")

        for group, values in groups.items():
            try:
                validate_group(group)
            except ValidationError as e:
                raise MalformedBackupError(str(path), f"invalid group name {group!r} in {feature!r}") from e

            if not isinstance(values, list):
                raise MalformedBackupError(str(path), f"values of {feature!r}/{group!r} must be a list")

    return document


async def load(store, path: str) -> int:
    """Apply the rules in ``path`` to ``store``."""
    document = read_backup(path)

    for feature, groups in document.items():
        if not groups:
            await store.add(feature)
            continue

        for group, values in groups.items():
            await store.enable(feature, group, values)

    logger.info("Backup loaded", path=str(path), features=len(document))
    return len(document)
