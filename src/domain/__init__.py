"""
Domain layer - Fixture lifecycle logic with zero framework imports.

This package contains the core logic of the ephemeral database test
harness: the fixture state machine, the value types it exchanges with
infrastructure, and its own port interfaces for infrastructure
abstraction.
"""

from .exceptions import (
    ConfigurationError,
    FixtureDisposedError,
    HarnessError,
    ProvisioningError,
    QueryError,
    ResetError,
    SchemaError,
)
from .fixture import FixtureLifecycleController, FixtureState
from .ports import (
    ConnectionHandle,
    ConnectionOptions,
    ContainerProvisioner,
    FixtureStatus,
    InstanceDescriptor,
    Outcome,
    OutcomeStatus,
    ProvisionerConfig,
    ResetCoordinator,
    ResetMode,
    SampleEntity,
    SeedGenerator,
    SeedRecord,
    SessionPool,
)

__all__ = [
    "ConfigurationError",
    "ConnectionHandle",
    "ConnectionOptions",
    "ContainerProvisioner",
    "FixtureDisposedError",
    "FixtureLifecycleController",
    "FixtureState",
    "FixtureStatus",
    "HarnessError",
    "InstanceDescriptor",
    "Outcome",
    "OutcomeStatus",
    "ProvisionerConfig",
    "ProvisioningError",
    "QueryError",
    "ResetCoordinator",
    "ResetError",
    "ResetMode",
    "SampleEntity",
    "SchemaError",
    "SeedGenerator",
    "SeedRecord",
    "SessionPool",
]
