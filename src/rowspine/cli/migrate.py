"""
CLI: ``rowspine migrate`` / ``rowspine rollback`` -- migration previews.

Both commands load the numbered migration modules from ``--dir`` (or
``ROWSPINE_MIGRATIONS_DIR``), run them through the dry-run builder and
print the operations each producer would issue.
"""

from __future__ import annotations

import asyncio
from pathlib import Path

import typer

from rowspine.cli.utils import (
    console,
    fail,
    load_settings,
    print_json,
    print_steps,
    resolve_migrations_dir,
    steps_payload,
)
from rowspine.core.errors import RowSpineError
from rowspine.core.migrations import DryRunSchemaBuilder, MigrationRunner, load_migrations


def _runner(directory: Path | None, verbose: bool) -> MigrationRunner:
    settings = load_settings(verbose=verbose)
    migrations_dir = resolve_migrations_dir(directory, settings)
    return MigrationRunner(load_migrations(migrations_dir))


def migrate(
    directory: Path | None = typer.Option(None, "--dir", "-d", help="Migrations directory"),
    to: int | None = typer.Option(None, "--to", "-t", min=0, help="Migrate up to this version"),
    json_out: bool = typer.Option(False, "--json", help="JSON output"),
    verbose: bool = typer.Option(False, "--verbose", "-v", help="Show log output"),
) -> None:
    """Preview pending migrations (ascending version order)."""
    try:
        runner = _runner(directory, verbose)
        result = asyncio.run(runner.apply(DryRunSchemaBuilder(), target_version=to))
    except RowSpineError as exc:
        fail(exc)
        return

    if json_out:
        print_json(
            {
                "applied": steps_payload(result.applied),
                "current_version": result.current_version,
                "skipped": [exc.message for exc in runner.skipped],
            }
        )
        return

    console.print("[PREVIEW] Scanning migrations...", markup=False)
    if not result.applied:
        console.print("No pending migrations.")
        return
    print_steps(result.applied)
    console.print(f"\nCurrent version: {result.current_version}")
    console.print(f"Total: {len(result.applied)} migration(s)")


def rollback(
    directory: Path | None = typer.Option(None, "--dir", "-d", help="Migrations directory"),
    steps: int | None = typer.Option(None, "--steps", "-s", min=1, help="Number of migrations"),
    all_: bool = typer.Option(False, "--all", help="Roll back every migration"),
    json_out: bool = typer.Option(False, "--json", help="JSON output"),
    verbose: bool = typer.Option(False, "--verbose", "-v", help="Show log output"),
) -> None:
    """Preview a rollback of the newest migrations (descending version order)."""
    if all_ and steps is not None:
        console.print("[bold red]Error[/bold red]: use either --steps or --all")
        raise typer.Exit(code=1)
    try:
        runner = _runner(directory, verbose)
        result = asyncio.run(runner.rollback(DryRunSchemaBuilder(), steps=steps, all_=all_))
    except RowSpineError as exc:
        fail(exc)
        return

    if json_out:
        print_json(
            {
                "rolled_back": steps_payload(result.rolled_back),
                "current_version": result.current_version,
                "skipped": [exc.message for exc in runner.skipped],
            }
        )
        return

    console.print("[PREVIEW] Scanning migrations...", markup=False)
    if not result.rolled_back:
        console.print("No migrations to roll back.")
        return
    print_steps(result.rolled_back)
    console.print(f"\nCurrent version: {result.current_version}")
    console.print(f"Total: {len(result.rolled_back)} migration(s) rolled back")
