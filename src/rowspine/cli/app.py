"""
Root Typer application for the row-spine CLI.

Commands preview migrations through the dry-run schema builder; applying
them for real happens inside the application, against live adapters.
"""

from __future__ import annotations

import typer
from typer import Typer

app = Typer(
    name="rowspine",
    help="row-spine -- embeddable row storage with sequential schema migrations.",
    no_args_is_help=True,
    rich_markup_mode="rich",
)


# ── Version callback ─────────────────────────────────────────────────────


def _version_callback(value: bool) -> None:
    if value:
        from importlib.metadata import PackageNotFoundError
        from importlib.metadata import version as pkg_version

        try:
            v = pkg_version("row-spine")
        except PackageNotFoundError:
            from rowspine import __version__ as v
        typer.echo(f"row-spine {v}")
        raise typer.Exit()


@app.callback()
def main(
    version: bool | None = typer.Option(  # noqa: UP007
        None,
        "--version",
        "-V",
        help="Show version and exit.",
        callback=_version_callback,
        is_eager=True,
    ),
) -> None:
    """row-spine CLI -- preview migrations and rollbacks."""


# ── Command registration ─────────────────────────────────────────────────

from rowspine.cli.migrate import migrate, rollback  # noqa: E402

app.command("migrate")(migrate)
app.command("rollback")(rollback)
