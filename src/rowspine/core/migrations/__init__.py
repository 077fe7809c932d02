"""Sequential schema migrations for row-spine.

Migrations are versioned pairs of ``up``/``down`` producers that issue
column operations against a schema builder. The runner re-sorts the full
set on every run: ascending for ``apply``, descending for ``rollback``.
Whether a run previews or mutates depends only on the builder injected.

Modules
-------
operations   SchemaOperation / ColumnOptions value types
builders     SchemaBuilder protocol, dry-run recorder, live mutator
runner       MigrationRunner with apply() / rollback()
loader       load_migrations() for a directory of numbered modules

Tags:
    row-spine, migrations, schema
"""

from rowspine.core.migrations.builders import (
    DryRunSchemaBuilder,
    LiveSchemaBuilder,
    RecordingSchemaBuilder,
    SchemaBuilder,
)
from rowspine.core.migrations.loader import load_migrations
from rowspine.core.migrations.operations import ColumnOptions, OperationKind, SchemaOperation
from rowspine.core.migrations.runner import (
    Migration,
    MigrationResult,
    MigrationRunner,
    MigrationStep,
    RollbackResult,
)

__all__ = [
    "ColumnOptions",
    "OperationKind",
    "SchemaOperation",
    "SchemaBuilder",
    "DryRunSchemaBuilder",
    "LiveSchemaBuilder",
    "RecordingSchemaBuilder",
    "Migration",
    "MigrationStep",
    "MigrationResult",
    "RollbackResult",
    "MigrationRunner",
    "load_migrations",
]
