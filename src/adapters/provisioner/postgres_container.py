"""
Testcontainers provisioner adapter - Implements ContainerProvisioner protocol.

This module starts one disposable PostgreSQL container per fixture with
testcontainers and blocks until the server accepts a real query.

Lifecycle Guarantees:
--------------------
1. **Bounded startup**: acquire() returns or raises within `startup_timeout`
   seconds of the start request, plus at most one probe connect timeout.
   The container start runs on a worker thread; if it (or the first
   successful `SELECT 1`) overruns the bound, ProvisioningError is raised
   and the container is torn down as soon as the start call returns.

2. **No leaks on cancellation**: any exception raised while starting,
   including KeyboardInterrupt, tears the partially started container down,
   immediately or as soon as the pending start call returns.

3. **Idempotent release**: live containers are tracked by instance id;
   releasing an unknown or already released descriptor is a no-op.

4. **No cross-fixture coordination**: concurrent acquire() calls only share
   the short registry update; each gets its own container.
"""

import logging
import threading
import time
from collections.abc import Callable
from concurrent.futures import Future, ThreadPoolExecutor
from concurrent.futures import TimeoutError as FutureTimeoutError
from typing import Any

import psycopg
from testcontainers.community.postgres import PostgresContainer

from src.domain.exceptions import ProvisioningError
from src.domain.ports import InstanceDescriptor, ProvisionerConfig

logger = logging.getLogger(__name__)

POSTGRES_PORT = 5432


def probe_instance(descriptor: InstanceDescriptor, connect_timeout: int = 2) -> None:
    """Run SELECT 1 against the instance; raises psycopg.Error if unreachable."""
    with psycopg.connect(
        host=descriptor.host,
        port=descriptor.port,
        user=descriptor.username,
        password=descriptor.password,
        dbname=descriptor.database,
        connect_timeout=connect_timeout,
    ) as conn:
        conn.execute("SELECT 1")


class TestcontainersProvisioner:
    """
    Implements ContainerProvisioner protocol via testcontainers.

    Uses structural subtyping - no explicit inheritance from Protocol.
    """

    # Not a test class, despite the name
    __test__ = False

    def __init__(
        self,
        container_factory: Callable[..., Any] = PostgresContainer,
        probe: Callable[[InstanceDescriptor], None] = probe_instance,
        poll_interval: float = 0.5,
    ) -> None:
        """
        Initialize provisioner.

        Args:
            container_factory: Builds an unstarted container (PostgresContainer)
            probe: Raises until the instance accepts connections
            poll_interval: Seconds between readiness probes
        """
        self._container_factory = container_factory
        self._probe = probe
        self._poll_interval = poll_interval
        self._live: dict[str, tuple[Any, bool]] = {}
        self._lock = threading.Lock()

    def acquire(self, config: ProvisionerConfig) -> InstanceDescriptor:
        """
        Start a container and block until it accepts connections.

        Args:
            config: Image, database, credentials, cleanup flag and timeout

        Returns:
            InstanceDescriptor of the running instance

        Raises:
            ProvisioningError: If the container fails to start or is not
                reachable within config.startup_timeout
        """
        container = self._container_factory(
            image=config.image,
            username=config.username,
            password=config.password,
            dbname=config.database,
            driver=None,
        )
        deadline = time.monotonic() + config.startup_timeout
        logger.info(f"Starting container {config.image}")

        starting = self._start_in_background(container)
        try:
            starting.result(timeout=max(deadline - time.monotonic(), 0.0))
            descriptor = InstanceDescriptor(
                instance_id=container.get_wrapped_container().id,
                host=container.get_container_host_ip(),
                port=int(container.get_exposed_port(POSTGRES_PORT)),
                username=config.username,
                password=config.password,
                database=config.database,
            )
            self._wait_until_reachable(descriptor, deadline, config.startup_timeout)
        except FutureTimeoutError as e:
            # start() may still be running; tear down once it returns
            starting.add_done_callback(lambda _: self._discard(container))
            message = f"Container {config.image} did not start within {config.startup_timeout}s"
            logger.error(message)
            raise ProvisioningError(message) from e
        except ProvisioningError:
            self._discard(container)
            raise
        except Exception as e:
            logger.error(f"Container {config.image} failed to start: {e}")
            self._discard(container)
            raise ProvisioningError(f"Failed to start {config.image}") from e
        except BaseException:
            # Cancelled mid-start: still give the container back
            starting.add_done_callback(lambda _: self._discard(container))
            raise

        with self._lock:
            self._live[descriptor.instance_id] = (container, config.cleanup_on_release)

        logger.info(
            f"Instance {descriptor.instance_id[:12]} ready on {descriptor.host}:{descriptor.port}"
        )
        return descriptor

    def release(self, descriptor: InstanceDescriptor) -> None:
        """
        Stop the instance, removing it if cleanup_on_release was set.

        Releasing an already released descriptor is a no-op.
        """
        with self._lock:
            entry = self._live.pop(descriptor.instance_id, None)

        if entry is None:
            logger.debug(f"Instance {descriptor.instance_id[:12]} already released")
            return

        container, cleanup = entry
        self._teardown(container, remove=cleanup)
        logger.info(f"Instance {descriptor.instance_id[:12]} released")

    def live_instances(self) -> list[str]:
        """Ids of instances acquired and not yet released."""
        with self._lock:
            return list(self._live)

    def _start_in_background(self, container: Any) -> Future:
        executor = ThreadPoolExecutor(max_workers=1, thread_name_prefix="container-start")
        try:
            return executor.submit(container.start)
        finally:
            # Do not join: an overrunning start must not block acquire()
            executor.shutdown(wait=False)

    def _wait_until_reachable(
        self, descriptor: InstanceDescriptor, deadline: float, timeout: float
    ) -> None:
        last_error: Exception | None = None
        while True:
            try:
                self._probe(descriptor)
                return
            except psycopg.Error as e:
                last_error = e
            if time.monotonic() >= deadline:
                raise ProvisioningError(
                    f"Instance {descriptor.host}:{descriptor.port} not reachable within {timeout}s"
                ) from last_error
            time.sleep(min(self._poll_interval, max(deadline - time.monotonic(), 0.0)))

    def _teardown(self, container: Any, remove: bool) -> None:
        if remove:
            container.stop()
        else:
            # Keep the stopped container on the host for inspection
            container.get_wrapped_container().stop()

    def _discard(self, container: Any) -> None:
        # Only called while another error is propagating; that error wins
        try:
            self._teardown(container, remove=True)
        except Exception:
            logger.exception("Teardown of partially started container failed")
