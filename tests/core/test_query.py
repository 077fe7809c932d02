"""Tests for QueryBuilder evaluation: filter -> sort -> window."""

from __future__ import annotations

import pytest

from rowspine.core.errors import InvalidOperatorError, NoResultsError, NotFoundError, ValidationError
from rowspine.core.query import Condition, OrderKey, QueryBuilder
from rowspine.core.schema import TableSchema

TABLE = TableSchema(name="people", columns=("id", "name", "age", "city"))

ROWS = [
    {"id": 1, "name": "Alice", "age": 30, "city": "Oslo"},
    {"id": 2, "name": "Bob", "age": 17, "city": "Bergen"},
    {"id": 3, "name": "Carol", "age": 45, "city": "Oslo"},
    {"id": 4, "name": "Dave", "age": 30, "city": None},
    {"id": 5, "name": "alfred", "age": None, "city": "Tromso"},
]


class CountingSource:
    def __init__(self, rows):
        self.rows = rows
        self.calls = 0

    async def __call__(self):
        self.calls += 1
        return [dict(row) for row in self.rows]


@pytest.fixture
def source() -> CountingSource:
    return CountingSource(ROWS)


@pytest.fixture
def query(source) -> QueryBuilder:
    return QueryBuilder(source, TABLE)


def ids(rows):
    return [row["id"] for row in rows]


class TestPredicates:
    @pytest.mark.asyncio
    @pytest.mark.parametrize(
        "operator,value,expected",
        [
            ("=", 30, [1, 4]),
            ("!=", 30, [2, 3, 5]),
            (">", 30, [3]),
            (">=", 30, [1, 3, 4]),
            ("<", 30, [2]),
            ("<=", 30, [1, 2, 4]),
        ],
    )
    async def test_comparison_operators(self, query, operator, value, expected):
        assert ids(await query.where("age", operator, value).exec()) == expected

    @pytest.mark.asyncio
    async def test_predicates_are_anded(self, query):
        rows = await query.where("age", ">=", 18).where_eq("city", "Oslo").exec()
        assert ids(rows) == [1, 3]

    @pytest.mark.asyncio
    async def test_where_not(self, query):
        assert ids(await query.where_not("city", "Oslo").exec()) == [2, 4, 5]

    @pytest.mark.asyncio
    async def test_where_in(self, query):
        assert ids(await query.where_in("id", [5, 1, 9]).exec()) == [1, 5]

    @pytest.mark.asyncio
    @pytest.mark.parametrize(
        "pattern,expected",
        [
            ("Al%", [1]),
            ("%ol", [3]),
            ("%l%", [1, 3, 5]),
            ("Bob", [2]),
            ("bob", []),
            ("%", [1, 2, 3, 4, 5]),
        ],
    )
    async def test_where_like(self, query, pattern, expected):
        assert ids(await query.where_like("name", pattern).exec()) == expected

    @pytest.mark.asyncio
    async def test_like_never_matches_non_strings(self, query):
        assert await query.where_like("city", "%").count() == 4

    def test_unknown_field_rejected(self, query):
        with pytest.raises(ValidationError):
            query.where("salary", ">", 1)

    def test_unknown_operator_rejected(self, query):
        with pytest.raises(InvalidOperatorError, match="Invalid operator"):
            query.where("age", "<>", 1)

    def test_where_in_requires_collection(self, query):
        with pytest.raises(ValidationError):
            query.where_in("name", "Alice")


class TestOrdering:
    @pytest.mark.asyncio
    async def test_ascending_is_non_decreasing_with_none_last(self, query):
        rows = await query.order_by("age").exec()
        assert [row["age"] for row in rows] == [17, 30, 30, 45, None]

    @pytest.mark.asyncio
    async def test_descending_reverses_distinct_keys(self, query):
        asc = await query.clone().order_by("id").exec()
        desc = await query.clone().order_by("id", "desc").exec()
        assert ids(desc) == list(reversed(ids(asc)))

    @pytest.mark.asyncio
    async def test_ties_keep_snapshot_order(self, query):
        rows = await query.where_eq("age", 30).order_by("age", "desc").exec()
        assert ids(rows) == [1, 4]

    @pytest.mark.asyncio
    async def test_later_keys_break_ties(self, query):
        rows = await query.where_eq("age", 30).order_by("age").order_by("name", "desc").exec()
        assert ids(rows) == [4, 1]

    @pytest.mark.asyncio
    async def test_mixed_types_sort_deterministically(self):
        table = TableSchema(name="mixed", columns=("id", "k"))
        rows = [{"id": 1, "k": 3}, {"id": 2, "k": "a"}, {"id": 3, "k": 1}, {"id": 4, "k": None}]
        for snapshot in (rows, list(reversed(rows))):
            query = QueryBuilder(CountingSource(snapshot), table)
            asc = await query.clone().order_by("k").exec()
            desc = await query.clone().order_by("k", "desc").exec()
            assert [row["k"] for row in asc] == [1, 3, "a", None]
            assert [row["k"] for row in desc] == [None, "a", 3, 1]

    def test_invalid_direction(self, query):
        with pytest.raises(ValidationError):
            query.order_by("age", "sideways")


class TestWindow:
    @pytest.mark.asyncio
    async def test_limit_and_offset(self, query):
        rows = await query.order_by("id").offset(1).limit(2).exec()
        assert ids(rows) == [2, 3]

    @pytest.mark.asyncio
    @pytest.mark.parametrize("page,expected", [(1, [1, 2]), (2, [3, 4]), (3, [5]), (4, [])])
    async def test_page(self, query, page, expected):
        assert ids(await query.order_by("id").page(page, 2).exec()) == expected

    @pytest.mark.asyncio
    async def test_count_ignores_window(self, query, source):
        query.limit(1).offset(2)
        assert await query.count() == len(ROWS)
        assert len(await query.exec()) == 1

    def test_invalid_window_values(self, query):
        with pytest.raises(ValidationError):
            query.limit(-1)
        with pytest.raises(ValidationError):
            query.page(0, 10)


class TestTerminals:
    @pytest.mark.asyncio
    async def test_first_and_exists(self, query):
        assert (await query.clone().order_by("age", "desc").first())["id"] == 5
        assert await query.clone().where_eq("city", "Oslo").exists()
        assert await query.clone().where_eq("city", "Paris").first() is None

    @pytest.mark.asyncio
    async def test_first_or_fail(self, query):
        with pytest.raises(NoResultsError, match="No results found") as exc_info:
            await query.where_eq("city", "Paris").first_or_fail()
        assert isinstance(exc_info.value, NotFoundError)

    @pytest.mark.asyncio
    async def test_source_read_on_every_evaluation(self, query, source):
        await query.exec()
        await query.count()
        assert source.calls == 2


class TestCloneAndBuild:
    @pytest.mark.asyncio
    async def test_clone_is_independent(self, query):
        query.where("age", ">=", 18)
        before = await query.exec()
        copy = query.clone().where_eq("city", "Oslo").order_by("id", "desc").limit(1)
        assert ids(await query.exec()) == ids(before)
        assert ids(await copy.exec()) == [3]

    def test_build_exposes_state(self, query):
        options = query.where("age", ">", 1).order_by("name").page(2, 5).build()
        assert options.where == (Condition("age", ">", 1),)
        assert options.order_by == (OrderKey("name", "asc"),)
        assert options.limit == 5
        assert options.offset == 5
