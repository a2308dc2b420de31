"""
Domain exceptions - Semantic error types for the test harness.

This module defines harness-specific exceptions that communicate
lifecycle failures without leaking infrastructure details. Adapters
wrap driver/container errors into these types and chain the cause.
"""

from typing import Any


class HarnessError(Exception):
    """Base class for test harness errors."""

    pass


class ProvisioningError(HarnessError):
    """Instance failed to start or become reachable within the timeout."""

    pass


class ConfigurationError(HarnessError):
    """Connection parameters are malformed (missing host, port or credentials)."""

    pass


class SchemaError(HarnessError):
    """DDL failure while initializing the schema of a fresh instance."""

    pass


class ResetError(HarnessError):
    """Truncation or seed insertion failed; the database state is unknown."""

    pass


class FixtureDisposedError(HarnessError):
    """A fixture's instance was accessed after the fixture was disposed."""

    pass


class QueryError(HarnessError):
    """
    A lookup did not return the expected number of rows.

    Carries the failing predicate and both cardinalities so the caller can
    diagnose the failure without knowing the harness internals.
    """

    def __init__(self, predicate: str, params: tuple[Any, ...], expected: int, actual: int) -> None:
        self.predicate = predicate
        self.params = params
        self.expected = expected
        self.actual = actual
        if actual == 0:
            reason = "sequence contains no elements"
        else:
            reason = "sequence contains more than one element"
        super().__init__(
            f"Expected exactly {expected} row(s) where {predicate} {params!r}, "
            f"found {actual}: {reason}"
        )
