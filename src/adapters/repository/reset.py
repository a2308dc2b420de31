"""
Reset-and-seed coordinator - Truncates and repopulates one fixture's database.

Algorithm (one transaction on a raw session):
1. Discover every base table in the configured schemas
   (information_schema.tables), minus the ignored tables
2. TRUNCATE them all in one statement with CASCADE; only data is removed,
   table definitions are untouched
3. Generate `seed_count` records with the seed generator
4. Insert them in a single executemany batch and commit

Identity sequences are NOT restarted: identifiers handed out to an earlier
generation never reappear, so a stale id can never match a new row.

Concurrency:
Each FixtureState owns one coordinator and therefore one lock. The whole
sequence runs under that lock, so two tests of the same fixture scheduled
concurrently go through reset-and-seed one after the other. Different
fixtures use different instances and never contend.

Failure semantics:
Any failure rolls the transaction back and raises ResetError chained to the
cause. Nothing is retried; the calling test must not proceed.
"""

import logging
import threading
from collections.abc import Callable, Iterable
from contextlib import AbstractContextManager
from typing import Any

from psycopg import sql

from src.domain.exceptions import ResetError
from src.domain.ports import ConnectionHandle, SeedGenerator

from .connection import open_session
from .postgres import INSERT_ENTITY_SQL

logger = logging.getLogger(__name__)

SessionFactory = Callable[[ConnectionHandle], AbstractContextManager[Any]]

_DISCOVER_TABLES_SQL = """
    SELECT table_schema, table_name
    FROM information_schema.tables
    WHERE table_type = 'BASE TABLE'
      AND table_schema = ANY(%s)
    ORDER BY table_schema, table_name
"""


class ResetAndSeedCoordinator:
    """
    Implements ResetCoordinator protocol via psycopg3.

    Uses structural subtyping - no explicit inheritance from Protocol.
    """

    def __init__(
        self,
        seed_generator: SeedGenerator,
        schemas: Iterable[str] = ("public",),
        tables_to_ignore: Iterable[str] = (),
        session_factory: SessionFactory = open_session,
    ) -> None:
        """
        Initialize coordinator.

        Args:
            seed_generator: Producer of SeedRecords
            schemas: Schemas whose tables are truncated
            tables_to_ignore: Table names (bare or schema-qualified) kept intact
            session_factory: Opens a raw session from a handle
        """
        self._seed_generator = seed_generator
        self._schemas = list(schemas)
        self._tables_to_ignore = set(tables_to_ignore)
        self._session_factory = session_factory
        self._lock = threading.Lock()

    def reset_and_seed(self, handle: ConnectionHandle, seed_count: int) -> int:
        """
        Truncate all application tables and insert `seed_count` fresh rows.

        Args:
            handle: Connection handle of the fixture's instance
            seed_count: Number of records to insert (0 leaves the tables empty)

        Returns:
            Number of inserted rows

        Raises:
            ResetError: If discovery, truncation, generation or insertion fails
        """
        if seed_count < 0:
            raise ResetError(f"seed_count must be >= 0, got {seed_count}")

        with self._lock:
            try:
                with self._session_factory(handle) as conn:
                    tables = self._discover_tables(conn)
                    self._truncate(conn, tables)

                    records = list(self._seed_generator.generate(seed_count))
                    if records:
                        with conn.cursor() as cursor:
                            cursor.executemany(
                                INSERT_ENTITY_SQL,
                                [(record.name, record.created_at) for record in records],
                            )
                    # session commits truncate + inserts together on exit
            except Exception as e:
                logger.error(f"Reset-and-seed failed on {handle.database}: {e}")
                raise ResetError(f"Reset-and-seed failed on {handle.database}") from e

            # Logged under the lock so log order is completion order
            logger.info(
                f"Reset {len(tables)} table(s) and seeded {len(records)} row(s) on {handle.database}"
            )
        return len(records)

    def _discover_tables(self, conn: Any) -> list[tuple[str, str]]:
        with conn.cursor() as cursor:
            cursor.execute(_DISCOVER_TABLES_SQL, (self._schemas,))
            rows = cursor.fetchall()

        return [
            (schema, table)
            for schema, table in rows
            if table not in self._tables_to_ignore
            and f"{schema}.{table}" not in self._tables_to_ignore
        ]

    def _truncate(self, conn: Any, tables: list[tuple[str, str]]) -> None:
        if not tables:
            logger.warning(f"No tables to truncate in schemas {self._schemas}")
            return

        statement = sql.SQL("TRUNCATE TABLE {} CASCADE").format(
            sql.SQL(", ").join(sql.Identifier(schema, table) for schema, table in tables)
        )
        conn.execute(statement)
