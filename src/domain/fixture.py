"""
Fixture lifecycle controller - Owns one disposable database per test fixture.

Fixture Lifecycle (Forward-Only Transitions)
============================================

States:
- UNINITIALIZED: FixtureState constructed, nothing acquired yet
- PROVISIONING: Instance being started, schema being ensured
- READY: Instance reachable, schema present, tests may run
- DISPOSED: Terminal state, session pool closed and instance released

Valid Transitions:
    UNINITIALIZED -> PROVISIONING   (new_fixture)
    PROVISIONING  -> READY          (instance reachable, schema ensured)
    PROVISIONING  -> DISPOSED       (provisioning or schema failure)
    READY         -> READY          (prepare_test, isolated mode resets and seeds)
    READY         -> DISPOSED       (dispose)

Reset Modes:
- ISOLATED: prepare_test truncates and reseeds before every test
- ACCUMULATING: prepare_test is a no-op, tests see each other's writes

Both modes share the same provisioning and teardown path; only the
prepare_test transition differs.

Note: Fixtures never share instances, so no lock spans fixtures. The only
lock is the reset coordinator's, one per FixtureState.
"""

import logging
import threading
from collections.abc import Callable, Iterator
from contextlib import AbstractContextManager, contextmanager
from dataclasses import dataclass, field
from typing import Any, TypeVar

from .exceptions import FixtureDisposedError, ResetError
from .ports import (
    ConnectionHandle,
    ConnectionOptions,
    ContainerProvisioner,
    FixtureStatus,
    InstanceDescriptor,
    Outcome,
    ProvisionerConfig,
    ResetCoordinator,
    ResetMode,
    SessionPool,
)

logger = logging.getLogger(__name__)

ConnectionFactory = Callable[[InstanceDescriptor, ConnectionOptions], ConnectionHandle]
SchemaInitializer = Callable[[ConnectionHandle], None]
SessionPoolFactory = Callable[[ConnectionHandle], SessionPool]

_T = TypeVar("_T")


@dataclass(eq=False)
class FixtureState:
    """
    One fixture's database: instance, connection handle and session pool.

    Passed explicitly to every test of the fixture. After dispose, every
    accessor raises FixtureDisposedError so the released instance can never
    be reached again.
    """

    mode: ResetMode
    coordinator: ResetCoordinator
    session_pool_factory: SessionPoolFactory
    status: FixtureStatus = FixtureStatus.UNINITIALIZED
    _descriptor: InstanceDescriptor | None = field(default=None, repr=False)
    _handle: ConnectionHandle | None = field(default=None, repr=False)
    _pool: SessionPool | None = field(default=None, repr=False)
    _lock: threading.Lock = field(default_factory=threading.Lock, repr=False)

    def _require_ready(self) -> None:
        if self.status is FixtureStatus.DISPOSED:
            raise FixtureDisposedError("Fixture has been disposed; its instance is released")
        if self.status is not FixtureStatus.READY:
            raise FixtureDisposedError(f"Fixture is not ready (status={self.status.value})")

    def _require(self, value: _T | None) -> _T:
        self._require_ready()
        if value is None:
            raise FixtureDisposedError("Fixture holds no live instance")
        return value

    @property
    def descriptor(self) -> InstanceDescriptor:
        return self._require(self._descriptor)

    @property
    def handle(self) -> ConnectionHandle:
        return self._require(self._handle)

    @property
    def pool(self) -> SessionPool:
        """
        Session pool for this fixture, opened on first use.

        Repositories take the pool; concurrent sessions for read-only work
        need no further coordination.
        """
        with self._lock:
            handle = self._require(self._handle)
            if self._pool is None:
                pool = self.session_pool_factory(handle)
                pool.open()
                self._pool = pool
            return self._pool

    def session(self) -> AbstractContextManager[Any]:
        """Borrow one pooled session for a with block."""
        return self.pool.connection()

    def reset_and_seed(self, seed_count: int) -> int:
        """
        Truncate and reseed this fixture's database, regardless of mode.

        Raises:
            ResetError: If truncation or insertion fails
        """
        return self.coordinator.reset_and_seed(self.handle, seed_count)


@dataclass
class FixtureLifecycleController:
    """
    Creates and disposes FixtureStates.

    Orchestrates the fixture flow: acquire instance, derive connection
    handle, ensure schema, reset-and-seed before isolated tests, and
    deterministic teardown.
    """

    provisioner: ContainerProvisioner
    provisioner_config: ProvisionerConfig
    connection_factory: ConnectionFactory
    schema_initializer: SchemaInitializer
    coordinator_factory: Callable[[], ResetCoordinator]
    session_pool_factory: SessionPoolFactory
    connection_options: ConnectionOptions = field(default_factory=ConnectionOptions)
    default_seed_count: int = 5
    default_mode: ResetMode = ResetMode.ISOLATED

    def new_fixture(self, mode: ResetMode | str | None = None) -> FixtureState:
        """
        Provision a fresh instance and return a READY fixture.

        Args:
            mode: ISOLATED or ACCUMULATING (enum or its string value);
                defaults to default_mode

        Returns:
            FixtureState owning its own instance

        Raises:
            ProvisioningError: If the instance does not become reachable
            ConfigurationError: If the descriptor cannot form a connection handle
            SchemaError: If the schema cannot be created
        """
        state = FixtureState(
            mode=ResetMode(mode or self.default_mode),
            coordinator=self.coordinator_factory(),
            session_pool_factory=self.session_pool_factory,
        )
        state.status = FixtureStatus.PROVISIONING
        logger.info(f"Provisioning {state.mode.value} fixture ({self.provisioner_config.image})")

        try:
            descriptor = self.provisioner.acquire(self.provisioner_config)
        except BaseException:
            state.status = FixtureStatus.DISPOSED
            raise

        try:
            handle = self.connection_factory(descriptor, self.connection_options)
            self.schema_initializer(handle)
        except BaseException:
            # No partial fixtures: give the instance back before surfacing the error
            state.status = FixtureStatus.DISPOSED
            try:
                self.provisioner.release(descriptor)
            except Exception:
                logger.exception(f"Release of instance {descriptor.instance_id} failed")
            raise

        state._descriptor = descriptor
        state._handle = handle
        state.status = FixtureStatus.READY
        logger.info(f"Fixture ready on {descriptor.host}:{descriptor.port}/{descriptor.database}")
        return state

    def prepare_test(self, state: FixtureState, seed_count: int | None = None) -> Outcome:
        """
        Bring the fixture's database into the state a test expects.

        Isolated fixtures are truncated and reseeded; accumulating fixtures
        are left untouched.

        Args:
            state: READY fixture
            seed_count: Rows to seed (defaults to default_seed_count)

        Returns:
            Outcome: succeeded (with seeded count), skipped, or failed with
            the ResetError that aborted the reset

        Raises:
            FixtureDisposedError: If the fixture is not READY
        """
        handle = state.handle
        if state.mode is ResetMode.ACCUMULATING:
            return Outcome.skipped()

        count = self.default_seed_count if seed_count is None else seed_count
        try:
            seeded = state.coordinator.reset_and_seed(handle, count)
        except ResetError as e:
            logger.error(f"Reset-and-seed failed: {e}")
            return Outcome.failed(e)
        return Outcome.succeeded(seeded)

    def dispose(self, state: FixtureState) -> None:
        """
        Close the session pool and release the instance.

        Idempotent: a second call is a no-op. Both resources are visited
        exactly once even if closing the pool fails; the first error is
        re-raised after teardown completed.
        """
        with state._lock:
            if state.status is FixtureStatus.DISPOSED:
                logger.debug("Fixture already disposed")
                return
            pool, descriptor = state._pool, state._descriptor
            state._pool = None
            state._handle = None
            state._descriptor = None
            state.status = FixtureStatus.DISPOSED

        errors: list[Exception] = []

        if pool is not None:
            try:
                pool.close()
            except Exception as e:
                logger.error(f"Closing session pool failed: {e}")
                errors.append(e)

        if descriptor is not None:
            try:
                self.provisioner.release(descriptor)
            except Exception as e:
                logger.error(f"Releasing instance {descriptor.instance_id} failed: {e}")
                errors.append(e)

        logger.info("Fixture disposed")
        if errors:
            raise errors[0]

    @contextmanager
    def fixture(self, mode: ResetMode | str | None = None) -> Iterator[FixtureState]:
        """Scoped fixture: dispose runs on every exit path."""
        state = self.new_fixture(mode)
        try:
            yield state
        finally:
            self.dispose(state)
