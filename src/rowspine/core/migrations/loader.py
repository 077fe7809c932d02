"""Load migration definitions from a directory of numbered modules.

Files named ``NNNN_description.py`` are imported in filename order and
their ``migration`` (or ``MIGRATION``) attribute is collected. A file
that fails to import or has no such attribute is skipped with a
warning. Definitions are not validated here;
:class:`~rowspine.core.migrations.runner.MigrationRunner` does that.

A migration file looks like::

    async def up(db):
        db.add_column("users", "email", {"default": ""})

    async def down(db):
        db.remove_column("users", "email")

    migration = {"version": 1, "name": "add_email", "up": up, "down": down}
"""

from __future__ import annotations

import importlib.util
import re
from pathlib import Path
from typing import Any

from rowspine.core.logging import get_logger

logger = get_logger(__name__)

MIGRATION_FILE_PATTERN = re.compile(r"^\d+_.*\.py$")
_ATTRIBUTES = ("migration", "MIGRATION")


def discover_migration_files(directory: Path | str) -> list[Path]:
    """Matching files in ``directory`` sorted by name; empty if it does not exist."""
    path = Path(directory)
    if not path.is_dir():
        return []
    return sorted(
        (p for p in path.iterdir() if p.is_file() and MIGRATION_FILE_PATTERN.match(p.name)),
        key=lambda p: p.name,
    )


def load_migration_file(path: Path) -> Any:
    """Import one migration module and return its definition object."""
    module_name = f"_rowspine_migration_{path.stem}"
    spec = importlib.util.spec_from_file_location(module_name, path)
    if spec is None or spec.loader is None:
        raise ImportError(f"cannot load {path}")
    module = importlib.util.module_from_spec(spec)
    spec.loader.exec_module(module)
    for attr in _ATTRIBUTES:
        definition = getattr(module, attr, None)
        if definition is not None:
            return definition
    raise AttributeError(f"{path.name} defines no 'migration' attribute")


def load_migrations(directory: Path | str) -> list[Any]:
    """Load every migration definition found in ``directory``."""
    definitions: list[Any] = []
    for path in discover_migration_files(directory):
        try:
            definitions.append(load_migration_file(path))
        except Exception as exc:
            logger.warning("migration.load_failed", file=path.name, error=str(exc))
    logger.debug("migration.loaded", directory=str(directory), count=len(definitions))
    return definitions


__all__ = [
    "MIGRATION_FILE_PATTERN",
    "discover_migration_files",
    "load_migration_file",
    "load_migrations",
]
