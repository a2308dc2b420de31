"""
Schema initializer - Ensures the application tables exist on a fresh instance.

Executes the SQL files of the migrations directory in sorted order
(alphabetically by filename). Each file must be idempotent (IF NOT EXISTS),
so running the initializer against an instance that already has the schema
changes nothing. No module-level state is kept, so fixtures on different
instances may initialize concurrently.
"""

import logging
from pathlib import Path

from src.domain.exceptions import SchemaError
from src.domain.ports import ConnectionHandle

from .connection import open_session

logger = logging.getLogger(__name__)

# Structure: src/adapters/repository/schema.py -> migrations/
MIGRATIONS_DIR = Path(__file__).parent.parent.parent.parent / "migrations"


def ensure_schema(handle: ConnectionHandle, migrations_dir: Path | None = None) -> None:
    """
    Create all required tables if absent.

    Args:
        handle: Connection handle of the target instance
        migrations_dir: Directory holding *.sql files (defaults to MIGRATIONS_DIR)

    Raises:
        SchemaError: On any DDL failure or when no migration can be found;
            a fixture never runs against a partial schema
    """
    migrations_dir = migrations_dir or MIGRATIONS_DIR

    if not migrations_dir.exists():
        raise SchemaError(f"Migrations directory not found: {migrations_dir}")

    sql_files = sorted(migrations_dir.glob("*.sql"))
    if not sql_files:
        raise SchemaError(f"No migration files found in {migrations_dir}")

    logger.info(f"Ensuring schema on {handle.database}: {len(sql_files)} migration(s)")

    for sql_file in sql_files:
        logger.debug(f"Executing migration: {sql_file.name}")
        try:
            sql_content = sql_file.read_text()

            with open_session(handle) as conn:
                conn.execute(sql_content)
                # open_session commits when the block exits cleanly
        except Exception as e:
            logger.error(f"Migration failed: {sql_file.name} - {e}")
            raise SchemaError(f"Schema initialization failed: {sql_file.name}") from e

    logger.info(f"Schema ready on {handle.database}")
