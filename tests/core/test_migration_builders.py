"""Tests for schema operations, the dry-run recorder and the live mutator."""

from __future__ import annotations

import textwrap

import pytest

from rowspine.core.adapters import InMemoryAdapter
from rowspine.core.engine import Engine
from rowspine.core.errors import TableNotFoundError
from rowspine.core.migrations import (
    ColumnOptions,
    DryRunSchemaBuilder,
    LiveSchemaBuilder,
    MigrationRunner,
    SchemaBuilder,
    SchemaOperation,
    load_migrations,
)
from rowspine.core.migrations.loader import discover_migration_files


class TestSchemaOperation:
    @pytest.mark.parametrize(
        "operation,text",
        [
            (SchemaOperation.add_column("users", "email"), "addColumn: users.email"),
            (
                SchemaOperation.add_column("users", "score", {"default": 0, "type": "number"}),
                "addColumn: users.score (default: 0)",
            ),
            (
                SchemaOperation.add_column("users", "note", {"default": None}),
                "addColumn: users.note (default: None)",
            ),
            (SchemaOperation.remove_column("users", "age"), "removeColumn: users.age"),
            (
                SchemaOperation.rename_column("users", "name", "full_name"),
                "renameColumn: users.name -> full_name",
            ),
        ],
    )
    def test_describe(self, operation, text):
        assert operation.describe() == text
        assert str(operation) == text

    def test_column_options_coerce(self):
        options = ColumnOptions.coerce({"type": "string"})
        assert options.type == "string"
        assert options.has_default is False


class TestDryRun:
    def test_records_without_side_effects(self):
        builder = DryRunSchemaBuilder()
        assert isinstance(builder, SchemaBuilder)
        builder.add_column("users", "email", {"default": ""})
        builder.rename_column("users", "name", "full_name")
        assert builder.descriptions == [
            "addColumn: users.email (default: )",
            "renameColumn: users.name -> full_name",
        ]


class TestLiveBuilder:
    @pytest.fixture
    def store(self) -> InMemoryAdapter:
        return InMemoryAdapter([{"id": 1, "name": "Alice"}, {"id": 2, "name": "Bob", "email": "b@x"}])

    @pytest.mark.asyncio
    async def test_add_column_fills_default(self, store):
        builder = LiveSchemaBuilder({"users": store})
        await builder.add_column("users", "email", {"default": "none"})
        rows = await store.find_all()
        assert [row["email"] for row in rows] == ["none", "b@x"]

    @pytest.mark.asyncio
    async def test_remove_column(self, store):
        await LiveSchemaBuilder({"users": store}).remove_column("users", "email")
        assert all("email" not in row for row in await store.find_all())

    @pytest.mark.asyncio
    async def test_rename_column(self, store):
        await LiveSchemaBuilder({"users": store}).rename_column("users", "name", "full_name")
        rows = await store.find_all()
        assert rows[0] == {"id": 1, "full_name": "Alice"}

    @pytest.mark.asyncio
    async def test_unknown_table(self, store):
        with pytest.raises(TableNotFoundError):
            await LiveSchemaBuilder({"users": store}).remove_column("posts", "x")

    @pytest.mark.asyncio
    async def test_runner_with_live_builder_from_engine(self):
        schema = {"tables": {"users": {"columns": ["id", "name", "email"]}}}
        engine = Engine(schema, {"users": InMemoryAdapter([{"id": 1, "name": "Alice"}])})

        async def up(db):
            await db.add_column("users", "email", {"default": "unknown"})

        def down(db):
            db.remove_column("users", "email")

        runner = MigrationRunner([{"version": 1, "name": "email", "up": up, "down": down}])
        builder = LiveSchemaBuilder.from_engine(engine)

        await runner.apply(builder)
        assert (await engine.from_("users").find_by_id(1))["email"] == "unknown"

        await runner.rollback(builder)
        assert "email" not in await engine.from_("users").find_by_id(1)


class TestLoader:
    def test_missing_directory(self, tmp_path):
        assert load_migrations(tmp_path / "missing") == []

    def test_loads_numbered_modules_and_skips_broken(self, tmp_path):
        (tmp_path / "0002_second.py").write_text(
            textwrap.dedent(
                """\
                def up(db):
                    db.remove_column("users", "age")

                def down(db):
                    db.add_column("users", "age")

                MIGRATION = {"version": 2, "name": "second", "up": up, "down": down}
                """
            ),
            encoding="utf-8",
        )
        (tmp_path / "0001_first.py").write_text(
            textwrap.dedent(
                """\
                async def up(db):
                    db.add_column("users", "email")

                async def down(db):
                    db.remove_column("users", "email")

                migration = {"version": 1, "name": "first", "up": up, "down": down}
                """
            ),
            encoding="utf-8",
        )
        (tmp_path / "0003_broken.py").write_text("raise RuntimeError('nope')\n", encoding="utf-8")
        (tmp_path / "0004_empty.py").write_text("x = 1\n", encoding="utf-8")
        (tmp_path / "notes.py").write_text("migration = None\n", encoding="utf-8")

        assert [p.name for p in discover_migration_files(tmp_path)] == [
            "0001_first.py",
            "0002_second.py",
            "0003_broken.py",
            "0004_empty.py",
        ]
        definitions = load_migrations(tmp_path)
        assert [d["version"] for d in definitions] == [1, 2]
