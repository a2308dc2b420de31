"""
Port interfaces - Protocol definitions for infrastructure abstraction.

This module defines the value types exchanged between the fixture
lifecycle controller and its collaborators, and the interfaces (ports)
the controller requires from infrastructure. Adapters implement these
protocols.
"""

from collections.abc import Sequence
from contextlib import AbstractContextManager
from dataclasses import dataclass, field
from datetime import datetime
from enum import Enum
from typing import Any, Protocol


class ResetMode(str, Enum):
    """
    How a fixture treats data between its tests.

    - ISOLATED: every test starts from a freshly truncated and seeded database
    - ACCUMULATING: tests observe the cumulative writes of earlier tests
    """

    ISOLATED = "isolated"
    ACCUMULATING = "accumulating"


class FixtureStatus(str, Enum):
    """
    Fixture lifecycle states.

    State Transitions (forward-only):
    - UNINITIALIZED -> PROVISIONING (construction)
    - PROVISIONING -> READY (instance reachable, schema ensured)
    - PROVISIONING -> DISPOSED (provisioning or schema failure)
    - READY -> DISPOSED (fixture teardown)
    """

    UNINITIALIZED = "uninitialized"
    PROVISIONING = "provisioning"
    READY = "ready"
    DISPOSED = "disposed"


class OutcomeStatus(Enum):
    """Result of a harness step at the test boundary."""

    SUCCEEDED = "succeeded"
    SKIPPED = "skipped"
    FAILED = "failed"


@dataclass(frozen=True)
class ProvisionerConfig:
    """Parameters for starting one disposable database instance."""

    image: str
    database: str
    username: str
    password: str = field(repr=False)
    cleanup_on_release: bool = True
    startup_timeout: float = 60.0


@dataclass(frozen=True)
class InstanceDescriptor:
    """Opaque handle to one running database instance."""

    instance_id: str
    host: str
    port: int
    username: str
    password: str = field(repr=False)
    database: str


@dataclass(frozen=True)
class ConnectionOptions:
    """Diagnostic flags applied to every session opened from a handle."""

    sensitive_data_logging: bool = False
    detailed_errors: bool = False
    application_name: str = "db-harness"
    connect_timeout: int = 5


@dataclass(frozen=True)
class ConnectionHandle:
    """
    Reusable connection parameters derived from an InstanceDescriptor.

    Building a handle opens no connection; the first real connection
    happens when a session is opened.
    """

    conninfo: str = field(repr=False)
    database: str
    options: ConnectionOptions


@dataclass(frozen=True)
class SeedRecord:
    """One generated entity value destined for insertion."""

    name: str | None
    created_at: datetime


@dataclass
class SampleEntity:
    """Row of the sample_entities table."""

    id: int
    name: str | None
    created_at: datetime


@dataclass(frozen=True)
class Outcome:
    """
    Explicit success/failure value returned by the harness.

    Lets callers outside any particular test framework inspect the result of
    a step; raise_for_error() converts a failure back into an exception.
    """

    status: OutcomeStatus
    seeded: int = 0
    error: Exception | None = None

    @classmethod
    def succeeded(cls, seeded: int = 0) -> "Outcome":
        return cls(OutcomeStatus.SUCCEEDED, seeded=seeded)

    @classmethod
    def skipped(cls) -> "Outcome":
        return cls(OutcomeStatus.SKIPPED)

    @classmethod
    def failed(cls, error: Exception) -> "Outcome":
        return cls(OutcomeStatus.FAILED, error=error)

    @property
    def ok(self) -> bool:
        return self.status is not OutcomeStatus.FAILED

    def raise_for_error(self) -> "Outcome":
        """Re-raise the captured error, if any; otherwise return self."""
        if self.error is not None:
            raise self.error
        return self


class ContainerProvisioner(Protocol):
    """Port interface for disposable database instances."""

    def acquire(self, config: ProvisionerConfig) -> InstanceDescriptor:
        """
        Start an isolated instance and block until it accepts connections.

        Raises:
            ProvisioningError: If the instance is not reachable in time
        """
        ...

    def release(self, descriptor: InstanceDescriptor) -> None:
        """Stop (and remove) the instance. Releasing twice is a no-op."""
        ...


class SeedGenerator(Protocol):
    """Port interface for synthetic entity values."""

    def generate(self, count: int) -> Sequence[SeedRecord]:
        """Generate `count` valid seed records with recent UTC timestamps."""
        ...


class ResetCoordinator(Protocol):
    """Port interface for the per-fixture reset-and-seed operation."""

    def reset_and_seed(self, handle: ConnectionHandle, seed_count: int) -> int:
        """
        Truncate all application tables and insert `seed_count` fresh rows.

        Returns:
            Number of inserted rows

        Raises:
            ResetError: If truncation or insertion fails
        """
        ...


class SessionPool(Protocol):
    """Port interface for the pool that hands out sessions for one handle."""

    def open(self, wait: bool = False, timeout: float = 30.0) -> None:
        """Start filling the pool; called once, on first session."""
        ...

    def connection(self, timeout: float | None = None) -> AbstractContextManager[Any]:
        """Borrow one session for the duration of a with block."""
        ...

    def close(self, timeout: float = 5.0) -> None:
        """Close every session owned by the pool."""
        ...
