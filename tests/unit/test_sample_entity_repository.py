"""
Unit tests for PostgresSampleEntityRepository cardinality handling.

The pool is mocked so these tests only cover how rows are mapped and how
lookups enforce their expected cardinality; SQL behaviour is covered by the
integration tests.
"""

from datetime import datetime, timezone
from unittest.mock import MagicMock

import pytest

from src.adapters.repository.postgres import INSERT_ENTITY_SQL, PostgresSampleEntityRepository
from src.domain.exceptions import QueryError
from src.domain.ports import SampleEntity

NOW = datetime(2026, 1, 1, tzinfo=timezone.utc)


def make_repository(rows: list[tuple]) -> tuple[PostgresSampleEntityRepository, MagicMock]:
    pool = MagicMock()
    conn = pool.connection.return_value.__enter__.return_value
    cursor = conn.cursor.return_value.__enter__.return_value
    cursor.fetchall.return_value = rows
    return PostgresSampleEntityRepository(pool), cursor


class TestSingle:
    """Tests for exactly-one lookups."""

    def test_single_by_id_returns_entity(self) -> None:
        repository, _ = make_repository([(1, "Ada", NOW)])

        assert repository.single_by_id(1) == SampleEntity(1, "Ada", NOW)

    def test_single_by_id_no_match_raises(self) -> None:
        repository, _ = make_repository([])

        with pytest.raises(QueryError) as exc_info:
            repository.single_by_id(-999)

        error = exc_info.value
        assert error.predicate == "id = %s"
        assert error.params == (-999,)
        assert error.expected == 1
        assert error.actual == 0

    def test_single_by_name_many_matches_raises(self) -> None:
        repository, _ = make_repository([(1, "Dup", NOW), (2, "Dup", NOW)])

        with pytest.raises(QueryError) as exc_info:
            repository.single_by_name("Dup")

        assert exc_info.value.actual == 2

    def test_single_by_null_name_uses_is_null(self) -> None:
        repository, cursor = make_repository([(1, None, NOW)])

        repository.single_by_name(None)

        query, params = cursor.execute.call_args[0]
        assert "name IS NULL" in query
        assert params == ()


class TestOptionalLookups:
    """Tests for lookups where absence is not an error."""

    def test_get_missing_returns_none(self) -> None:
        repository, _ = make_repository([])
        assert repository.get(42) is None

    def test_first_by_name_missing_returns_none(self) -> None:
        repository, _ = make_repository([])
        assert repository.first_by_name("Nobody") is None

    def test_first_on_empty_table_raises(self) -> None:
        repository, _ = make_repository([])

        with pytest.raises(QueryError):
            repository.first()

    def test_list_all_maps_rows(self) -> None:
        repository, _ = make_repository([(1, "Ada", NOW), (2, None, NOW)])

        assert repository.list_all() == [
            SampleEntity(1, "Ada", NOW),
            SampleEntity(2, None, NOW),
        ]


class TestWrites:
    """Tests for inserts."""

    def test_add_returns_persisted_entity(self) -> None:
        repository, cursor = make_repository([])
        cursor.fetchone.return_value = (7, "Ada", NOW)

        entity = repository.add("Ada", NOW)

        assert entity == SampleEntity(7, "Ada", NOW)
        query, params = cursor.execute.call_args[0]
        assert query.startswith(INSERT_ENTITY_SQL)
        assert params == ("Ada", NOW)
