"""
Integration tests for fixture provisioning and teardown.

Verifies that parallel fixtures get physically separate instances, that
disposal is idempotent and final, and that the schema initializer can be
re-run safely.
"""

from concurrent.futures import ThreadPoolExecutor

import pytest

from src.adapters.provisioner.postgres_container import probe_instance
from src.adapters.repository.postgres import PostgresSampleEntityRepository
from src.adapters.repository.schema import ensure_schema
from src.domain.exceptions import FixtureDisposedError
from src.domain.fixture import FixtureLifecycleController
from src.domain.ports import FixtureStatus, ResetMode
from src.harness.dependencies import get_provisioner

pytestmark = pytest.mark.integration


class TestParallelFixtures:
    """Fixtures provisioned concurrently never share data."""

    def test_parallel_fixtures_are_isolated(self, controller: FixtureLifecycleController) -> None:
        with ThreadPoolExecutor(max_workers=2) as executor:
            first, second = [
                f.result()
                for f in [
                    executor.submit(controller.new_fixture, ResetMode.ACCUMULATING),
                    executor.submit(controller.new_fixture, ResetMode.ACCUMULATING),
                ]
            ]

        try:
            assert first.descriptor.instance_id != second.descriptor.instance_id

            PostgresSampleEntityRepository(first.pool).add("Only in first")

            assert PostgresSampleEntityRepository(first.pool).count() == 1
            assert PostgresSampleEntityRepository(second.pool).count() == 0
        finally:
            controller.dispose(first)
            controller.dispose(second)


class TestDisposal:
    """Teardown guarantees."""

    def test_dispose_is_idempotent_and_final(self, controller: FixtureLifecycleController) -> None:
        state = controller.new_fixture()
        descriptor = state.descriptor
        PostgresSampleEntityRepository(state.pool).count()

        controller.dispose(state)
        controller.dispose(state)

        assert state.status is FixtureStatus.DISPOSED
        assert descriptor.instance_id not in get_provisioner().live_instances()
        with pytest.raises(FixtureDisposedError):
            _ = state.pool

    def test_instance_unreachable_after_dispose(self, controller: FixtureLifecycleController) -> None:
        with controller.fixture() as state:
            descriptor = state.descriptor
            probe_instance(descriptor)

        with pytest.raises(Exception):
            probe_instance(descriptor, connect_timeout=1)

    def test_fixture_disposed_after_failing_test_body(
        self, controller: FixtureLifecycleController
    ) -> None:
        with pytest.raises(AssertionError), controller.fixture() as state:
            raise AssertionError("test body failed")

        assert state.status is FixtureStatus.DISPOSED


class TestSchema:
    """Schema initialization on a live instance."""

    def test_ensure_schema_is_idempotent(self, controller: FixtureLifecycleController) -> None:
        with controller.fixture(ResetMode.ISOLATED) as state:
            controller.prepare_test(state, seed_count=2).raise_for_error()

            ensure_schema(state.handle)

            assert PostgresSampleEntityRepository(state.pool).count() == 2
