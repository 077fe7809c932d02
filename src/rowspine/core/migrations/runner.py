"""Sequential migration runner.

Takes the full, unordered set of migration definitions on every run and
computes the plan from it: ``apply`` walks versions ascending and
``rollback`` walks them descending. There is no applied-migrations
ledger; ``rollback`` treats the highest versions in the set as the
applied ones.

Each ``up``/``down`` producer runs against the injected schema builder
(dry-run recorder or live mutator) and is awaited to completion before
the next one starts.
"""

from __future__ import annotations

import inspect
from collections.abc import Callable, Iterable, Mapping
from dataclasses import dataclass, field
from typing import Any

from rowspine.core.errors import (
    ConfigurationError,
    MigrationDefinitionError,
    MigrationExecutionError,
    ValidationError,
)
from rowspine.core.logging import LogContext, get_logger

from .builders import RecordingSchemaBuilder
from .operations import SchemaOperation

logger = get_logger(__name__)

Producer = Callable[[Any], Any]


@dataclass(frozen=True)
class Migration:
    """A validated migration definition."""

    version: int
    name: str
    up: Producer = field(repr=False, compare=False)
    down: Producer = field(repr=False, compare=False)

    @classmethod
    def from_definition(cls, definition: Any) -> Migration:
        """Validate a definition (mapping, module or any object with the attributes).

        Raises:
            MigrationDefinitionError: a field is missing or has the wrong type.
        """
        if isinstance(definition, Migration):
            return definition

        def read(attr: str) -> Any:
            if isinstance(definition, Mapping):
                return definition.get(attr)
            return getattr(definition, attr, None)

        version, name = read("version"), read("name")
        if isinstance(version, bool) or not isinstance(version, int):
            raise MigrationDefinitionError(
                f"Invalid migration: version must be an integer, got {type(version).__name__}",
                field="version",
                value=version,
                constraint="type:int",
            )
        if version < 1:
            raise MigrationDefinitionError(
                f"Invalid migration: version must be positive, got {version}",
                field="version",
                value=version,
                constraint="min:1",
            )
        if not isinstance(name, str) or not name.strip():
            raise MigrationDefinitionError(
                "Invalid migration: name must be a non-empty string",
                field="name",
                value=name,
                constraint="non-empty",
            ).with_context(version=version)
        for attr in ("up", "down"):
            if not callable(read(attr)):
                raise MigrationDefinitionError(
                    f"Invalid migration: {attr} must be callable",
                    field=attr,
                    constraint="callable",
                ).with_context(version=version)
        return cls(version=version, name=name, up=read("up"), down=read("down"))


@dataclass(frozen=True)
class MigrationStep:
    """One migration visited by a run, with the operations its producer issued."""

    version: int
    name: str
    operations: tuple[SchemaOperation, ...] = ()


@dataclass
class MigrationResult:
    """Outcome of :meth:`MigrationRunner.apply`."""

    applied: list[MigrationStep] = field(default_factory=list)
    current_version: int = 0

    @property
    def operations(self) -> list[SchemaOperation]:
        return [op for step in self.applied for op in step.operations]


@dataclass
class RollbackResult:
    """Outcome of :meth:`MigrationRunner.rollback`."""

    rolled_back: list[MigrationStep] = field(default_factory=list)
    current_version: int = 0

    @property
    def operations(self) -> list[SchemaOperation]:
        return [op for step in self.rolled_back for op in step.operations]


class MigrationRunner:
    """Applies and rolls back migrations in version order.

    Parameters
    ----------
    migrations
        Migration definitions in any order. Malformed ones are skipped with
        a warning and kept in :attr:`skipped`.

    Raises
    ------
    ConfigurationError
        Two valid definitions share a version.

    Example::

        runner = MigrationRunner(load_migrations(settings.migrations_dir))
        result = await runner.apply(DryRunSchemaBuilder(), target_version=3)
        print(result.current_version)
    """

    def __init__(self, migrations: Iterable[Any]) -> None:
        self.skipped: list[MigrationDefinitionError] = []
        by_version: dict[int, Migration] = {}
        for definition in migrations:
            try:
                migration = Migration.from_definition(definition)
            except MigrationDefinitionError as exc:
                self.skipped.append(exc)
                logger.warning("migration.skipped", error=exc.message, **exc.context.to_dict())
                continue
            if migration.version in by_version:
                raise ConfigurationError(
                    f"Duplicate migration version {migration.version}: "
                    f"{by_version[migration.version].name!r} and {migration.name!r}"
                ).with_context(version=migration.version)
            by_version[migration.version] = migration
        self._migrations = list(by_version.values())

    @property
    def migrations(self) -> list[Migration]:
        """Valid migrations, ascending by version."""
        return sorted(self._migrations, key=lambda m: m.version)

    @property
    def versions(self) -> list[int]:
        return [m.version for m in self.migrations]

    def pending_after(self, version: int) -> list[Migration]:
        """Migrations above ``version``, ascending."""
        return [m for m in self.migrations if m.version > version]

    async def apply(self, builder: Any, target_version: int | None = None) -> MigrationResult:
        """Run ``up`` for each migration up to ``target_version`` (all when omitted).

        Raises:
            ValidationError: ``target_version`` is not a non-negative integer.
            MigrationExecutionError: a producer failed; earlier ones stay applied.
        """
        if target_version is not None and (
            isinstance(target_version, bool)
            or not isinstance(target_version, int)
            or target_version < 0
        ):
            raise ValidationError(
                "target_version must be a non-negative integer",
                field="target_version",
                value=target_version,
                constraint="min:0",
            )

        result = MigrationResult()
        async with LogContext(migration_direction="up"):
            for migration in self.migrations:
                if target_version is not None and migration.version > target_version:
                    break
                operations = await self._run(migration, migration.up, builder)
                result.applied.append(MigrationStep(migration.version, migration.name, operations))
                result.current_version = migration.version
                logger.info(
                    "migration.applied",
                    version=migration.version,
                    name=migration.name,
                    operations=len(operations),
                )
        return result

    async def rollback(
        self, builder: Any, steps: int | None = None, all_: bool = False
    ) -> RollbackResult:
        """Run ``down`` for the newest ``steps`` migrations (default 1), or all with ``all_``.

        Without an applied-version ledger the window is simply the highest
        versions in the set.

        Raises:
            ValidationError: ``steps`` is not a positive integer.
            MigrationExecutionError: a producer failed; earlier ones stay rolled back.
        """
        if steps is None:
            steps = 1
        elif isinstance(steps, bool) or not isinstance(steps, int) or steps < 1:
            raise ValidationError(
                "steps must be a positive integer", field="steps", value=steps, constraint="min:1"
            )

        descending = sorted(self._migrations, key=lambda m: m.version, reverse=True)
        window = descending if all_ else descending[:steps]

        result = RollbackResult()
        async with LogContext(migration_direction="down"):
            for migration in window:
                operations = await self._run(migration, migration.down, builder)
                result.rolled_back.append(
                    MigrationStep(migration.version, migration.name, operations)
                )
                logger.info(
                    "migration.rolled_back",
                    version=migration.version,
                    name=migration.name,
                    operations=len(operations),
                )
        remaining = descending[len(window):]
        result.current_version = remaining[0].version if remaining else 0
        return result

    async def _run(
        self, migration: Migration, producer: Producer, builder: Any
    ) -> tuple[SchemaOperation, ...]:
        recorder = RecordingSchemaBuilder(builder)
        try:
            outcome = producer(recorder)
            if inspect.isawaitable(outcome):
                await outcome
            await recorder.flush()
        except Exception as exc:
            recorder.discard()
            logger.error(
                "migration.failed", version=migration.version, name=migration.name, error=str(exc)
            )
            raise MigrationExecutionError(migration.version, migration.name, exc) from exc
        return tuple(recorder.operations)

    def __repr__(self) -> str:
        return f"MigrationRunner(versions={self.versions!r}, skipped={len(self.skipped)})"


__all__ = [
    "Migration",
    "MigrationStep",
    "MigrationResult",
    "RollbackResult",
    "MigrationRunner",
]
