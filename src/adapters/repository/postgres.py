"""
PostgreSQL repository adapter - Reads and writes the sample_entities table.

This module provides the data access the harness tests exercise against a
fixture's instance, using psycopg3 with raw SQL over the fixture's
connection pool.

Cardinality Contract:
--------------------
Lookups come in three flavours, mirroring what callers expect:

1. **get / first_by_name**: zero or one row; absence is returned as None.
2. **first**: at least one row; an empty table raises QueryError.
3. **single_by_id / single_by_name**: exactly one row; zero or several
   matches raise QueryError carrying the predicate, the expected and the
   actual cardinality.

Driver errors (psycopg.Error) are never wrapped here: they propagate
verbatim to the caller.
"""

from datetime import datetime, timezone
from typing import Any

from psycopg_pool import ConnectionPool

from src.domain.exceptions import QueryError
from src.domain.ports import SampleEntity

_COLUMNS = "id, name, created_at"

INSERT_ENTITY_SQL = "INSERT INTO sample_entities (name, created_at) VALUES (%s, %s)"


def _to_entity(row: tuple[Any, ...]) -> SampleEntity:
    return SampleEntity(id=row[0], name=row[1], created_at=row[2])


def _name_predicate(name: str | None) -> tuple[str, tuple[Any, ...]]:
    # NULL never compares equal, so a missing name needs IS NULL
    if name is None:
        return "name IS NULL", ()
    return "name = %s", (name,)


class PostgresSampleEntityRepository:
    """
    Data access for sample entities via psycopg3.

    All SQL uses parameterized queries. Each method borrows one session from
    the pool and commits before returning it.
    """

    def __init__(self, pool: ConnectionPool) -> None:
        """
        Initialize repository with connection pool.

        Args:
            pool: psycopg3 ConnectionPool of the fixture (FixtureState.pool)
        """
        self._pool = pool

    def add(self, name: str | None, created_at: datetime | None = None) -> SampleEntity:
        """
        Insert one entity.

        Args:
            name: Entity name (nullable)
            created_at: Creation timestamp; defaults to now in UTC

        Returns:
            The persisted entity with its generated id
        """
        created_at = created_at or datetime.now(timezone.utc)
        sql = f"{INSERT_ENTITY_SQL} RETURNING {_COLUMNS}"

        with self._pool.connection() as conn, conn.cursor() as cursor:
            cursor.execute(sql, (name, created_at))
            row = cursor.fetchone()
            conn.commit()
        return _to_entity(row)

    def count(self) -> int:
        with self._pool.connection() as conn, conn.cursor() as cursor:
            cursor.execute("SELECT COUNT(*) FROM sample_entities")
            return cursor.fetchone()[0]

    def list_all(self) -> list[SampleEntity]:
        return self._fetch_all(f"SELECT {_COLUMNS} FROM sample_entities ORDER BY id")

    def list_ordered_by_created_at(self) -> list[SampleEntity]:
        return self._fetch_all(
            f"SELECT {_COLUMNS} FROM sample_entities ORDER BY created_at ASC, id ASC"
        )

    def names(self) -> list[str | None]:
        with self._pool.connection() as conn, conn.cursor() as cursor:
            cursor.execute("SELECT name FROM sample_entities ORDER BY id")
            return [row[0] for row in cursor.fetchall()]

    def get(self, entity_id: int) -> SampleEntity | None:
        """Entity with the given id, or None if it does not exist."""
        rows = self._fetch_all(
            f"SELECT {_COLUMNS} FROM sample_entities WHERE id = %s", (entity_id,)
        )
        return rows[0] if rows else None

    def first(self) -> SampleEntity:
        """
        Lowest-id entity.

        Raises:
            QueryError: If the table is empty
        """
        rows = self._fetch_all(f"SELECT {_COLUMNS} FROM sample_entities ORDER BY id LIMIT 1")
        if not rows:
            raise QueryError("TRUE", (), expected=1, actual=0)
        return rows[0]

    def first_by_name(self, name: str | None) -> SampleEntity | None:
        predicate, params = _name_predicate(name)
        rows = self._fetch_all(
            f"SELECT {_COLUMNS} FROM sample_entities WHERE {predicate} ORDER BY id LIMIT 1",
            params,
        )
        return rows[0] if rows else None

    def find_by_name(self, name: str | None) -> list[SampleEntity]:
        predicate, params = _name_predicate(name)
        return self._fetch_all(
            f"SELECT {_COLUMNS} FROM sample_entities WHERE {predicate} ORDER BY id", params
        )

    def single_by_id(self, entity_id: int) -> SampleEntity:
        """
        The one entity with the given id.

        Raises:
            QueryError: If no entity matches
        """
        return self._single("id = %s", (entity_id,))

    def single_by_name(self, name: str | None) -> SampleEntity:
        """
        The one entity with the given name.

        Raises:
            QueryError: If zero or several entities match
        """
        predicate, params = _name_predicate(name)
        return self._single(predicate, params)

    def update_name(self, entity_id: int, name: str | None) -> bool:
        """Rename an entity; returns False if the id does not exist."""
        with self._pool.connection() as conn, conn.cursor() as cursor:
            cursor.execute(
                "UPDATE sample_entities SET name = %s WHERE id = %s", (name, entity_id)
            )
            conn.commit()
            return cursor.rowcount == 1

    def delete(self, entity_id: int) -> bool:
        """Delete an entity; returns False if the id does not exist."""
        with self._pool.connection() as conn, conn.cursor() as cursor:
            cursor.execute("DELETE FROM sample_entities WHERE id = %s", (entity_id,))
            conn.commit()
            return cursor.rowcount == 1

    def _single(self, predicate: str, params: tuple[Any, ...]) -> SampleEntity:
        # LIMIT 2 is enough to tell "exactly one" from "more than one"
        rows = self._fetch_all(
            f"SELECT {_COLUMNS} FROM sample_entities WHERE {predicate} ORDER BY id LIMIT 2",
            params,
        )
        if len(rows) != 1:
            raise QueryError(predicate, params, expected=1, actual=len(rows))
        return rows[0]

    def _fetch_all(self, sql: str, params: tuple[Any, ...] = ()) -> list[SampleEntity]:
        with self._pool.connection() as conn, conn.cursor() as cursor:
            cursor.execute(sql, params)
            return [_to_entity(row) for row in cursor.fetchall()]
