"""
Connection factory - Builds connection handles and sessions via psycopg3.

A ConnectionHandle is a pure value: building one validates the descriptor
and renders a libpq conninfo string but never touches the network. Sessions
are opened from the handle either through a per-fixture psycopg_pool
ConnectionPool (opened lazily) or as standalone raw connections.

Diagnostics follow the handle's ConnectionOptions:
- sensitive_data_logging: statement parameter values are logged at DEBUG
- detailed_errors: failing statements log SQLSTATE, message, detail and hint

In both cases the original psycopg error propagates unchanged.
"""

import logging
from collections.abc import Iterator
from contextlib import contextmanager
from functools import lru_cache
from typing import Any

import psycopg
from psycopg.conninfo import make_conninfo
from psycopg_pool import ConnectionPool

from src.domain.exceptions import ConfigurationError
from src.domain.ports import ConnectionHandle, ConnectionOptions, InstanceDescriptor

logger = logging.getLogger(__name__)

_REQUIRED_FIELDS = ("host", "port", "username", "password", "database")


class DiagnosticCursor(psycopg.Cursor):
    """
    psycopg cursor that logs statements according to ConnectionOptions.

    Flags are class attributes; cursor_class_for() derives one subclass per
    options value so the cursor factory stays a plain class.
    """

    sensitive_data_logging = False
    detailed_errors = False

    def execute(self, query: Any, params: Any = None, **kwargs: Any) -> "DiagnosticCursor":
        self._log_statement(query, params)
        try:
            return super().execute(query, params, **kwargs)
        except psycopg.Error as e:
            self._log_failure(query, e)
            raise

    def executemany(self, query: Any, params_seq: Any, **kwargs: Any) -> None:
        if self.sensitive_data_logging:
            params_seq = list(params_seq)
            self._log_statement(query, params_seq)
        else:
            self._log_statement(query, None)
        try:
            super().executemany(query, params_seq, **kwargs)
        except psycopg.Error as e:
            self._log_failure(query, e)
            raise

    def _query_text(self, query: Any) -> str:
        if isinstance(query, (str, bytes)):
            return query.decode() if isinstance(query, bytes) else query
        return query.as_string(self)

    def _log_statement(self, query: Any, params: Any) -> None:
        if not logger.isEnabledFor(logging.DEBUG):
            return
        text = " ".join(self._query_text(query).split())
        if self.sensitive_data_logging and params is not None:
            logger.debug("Executing: %s params=%r", text, params)
        else:
            logger.debug("Executing: %s", text)

    def _log_failure(self, query: Any, error: psycopg.Error) -> None:
        if not self.detailed_errors:
            return
        diag = error.diag
        logger.error(
            "Statement failed: %s | sqlstate=%s message=%s detail=%s hint=%s",
            " ".join(self._query_text(query).split()),
            error.sqlstate,
            diag.message_primary,
            diag.message_detail,
            diag.message_hint,
        )


@lru_cache
def cursor_class_for(options: ConnectionOptions) -> type[DiagnosticCursor]:
    """Cursor class carrying the diagnostic flags of `options`."""
    return type(
        "DiagnosticCursor",
        (DiagnosticCursor,),
        {
            "sensitive_data_logging": options.sensitive_data_logging,
            "detailed_errors": options.detailed_errors,
        },
    )


def build_connection_handle(
    descriptor: InstanceDescriptor, options: ConnectionOptions | None = None
) -> ConnectionHandle:
    """
    Derive reusable connection parameters from an instance descriptor.

    Pure and deterministic: identical inputs give equal handles and no
    connection is opened.

    Args:
        descriptor: Running instance to connect to
        options: Diagnostic flags (defaults to ConnectionOptions())

    Returns:
        Immutable ConnectionHandle

    Raises:
        ConfigurationError: If host, port, credentials or database are missing
    """
    options = options or ConnectionOptions()

    missing = [name for name in _REQUIRED_FIELDS if getattr(descriptor, name, None) in (None, "")]
    if missing:
        raise ConfigurationError(f"Instance descriptor is missing: {', '.join(missing)}")

    port = descriptor.port
    if isinstance(port, bool) or not isinstance(port, int) or not 0 < port < 65536:
        raise ConfigurationError(f"Invalid port in instance descriptor: {port!r}")

    conninfo = make_conninfo(
        host=descriptor.host,
        port=port,
        user=descriptor.username,
        password=descriptor.password,
        dbname=descriptor.database,
        application_name=options.application_name,
        connect_timeout=options.connect_timeout,
    )
    return ConnectionHandle(conninfo=conninfo, database=descriptor.database, options=options)


def create_session_pool(
    handle: ConnectionHandle, min_size: int = 1, max_size: int = 10
) -> ConnectionPool:
    """
    Create the (unopened) session pool for one fixture.

    Args:
        handle: Connection handle of the fixture
        min_size: Minimum connections kept open once the pool is opened
        max_size: Maximum concurrent sessions

    Returns:
        psycopg_pool ConnectionPool created with open=False
    """
    return ConnectionPool(
        conninfo=handle.conninfo,
        min_size=min_size,
        max_size=max_size,
        kwargs={"cursor_factory": cursor_class_for(handle.options)},
        name=f"fixture-{handle.database}",
        open=False,
    )


@contextmanager
def open_session(handle: ConnectionHandle) -> Iterator[psycopg.Connection]:
    """
    Open a standalone raw session outside the fixture's pool.

    The transaction is committed when the block exits normally and rolled
    back on error; the connection is closed in both cases.
    """
    conn = psycopg.connect(handle.conninfo, cursor_factory=cursor_class_for(handle.options))
    with conn:
        yield conn
