"""
CLI utility helpers -- consoles, settings and migration output.
"""

from __future__ import annotations

import json
from pathlib import Path
from typing import Any

import typer
from rich.console import Console

from rowspine.core.errors import RowSpineError
from rowspine.core.logging import configure_logging
from rowspine.core.migrations import MigrationStep
from rowspine.core.settings import RowSpineSettings, get_settings

console = Console()
err_console = Console(stderr=True)


def load_settings(*, verbose: bool = False) -> RowSpineSettings:
    """Read settings and configure logging (warnings only unless ``verbose``)."""
    settings = get_settings()
    configure_logging(
        level=settings.log_level if verbose else "WARNING",
        json_format=settings.json_logs,
        cache_loggers=False,
    )
    return settings


def resolve_migrations_dir(directory: Path | None, settings: RowSpineSettings) -> Path:
    """``--dir`` if given, else the configured ``migrations_dir``."""
    return (directory or settings.migrations_dir).resolve()


def print_steps(steps: list[MigrationStep]) -> None:
    for step in steps:
        console.print(f"   [bold][{step.version}][/bold] {step.name}")
        for operation in step.operations:
            console.print(f"       - {operation.describe()}")


def print_json(payload: dict[str, Any]) -> None:
    console.print_json(json.dumps(payload, default=str))


def steps_payload(steps: list[MigrationStep]) -> list[dict[str, Any]]:
    return [
        {
            "version": step.version,
            "name": step.name,
            "operations": [op.describe() for op in step.operations],
        }
        for step in steps
    ]


def fail(error: RowSpineError | Exception) -> None:
    """Print an error and exit with code 1."""
    if isinstance(error, RowSpineError):
        details = error.to_dict()
        err_console.print(
            f"[bold red]Error[/bold red] ({details['error_type']}): {details['message']}"
        )
    else:
        err_console.print(f"[bold red]Error[/bold red]: {error}")
    raise typer.Exit(code=1)


__all__ = [
    "console",
    "err_console",
    "load_settings",
    "resolve_migrations_dir",
    "print_steps",
    "print_json",
    "steps_payload",
    "fail",
]
