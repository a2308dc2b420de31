"""
Unit tests for harness settings and dependency wiring.

Tests verify environment overrides and that create_controller wires the
adapters from settings without starting anything.
"""

import pytest
from pydantic import ValidationError

from src.adapters.repository.connection import build_connection_handle
from src.adapters.repository.reset import ResetAndSeedCoordinator
from src.adapters.repository.schema import ensure_schema
from src.config.settings import HarnessSettings, get_settings
from src.domain.ports import ResetMode
from src.harness.dependencies import create_controller, get_provisioner


class TestHarnessSettings:
    """Tests for HarnessSettings."""

    def test_defaults(self) -> None:
        settings = HarnessSettings(_env_file=None)

        assert settings.postgres_image == "postgres:16-alpine"
        assert settings.database_name == "test_db"
        assert settings.username == "postgres"
        assert settings.cleanup_on_release is True
        assert settings.reset_schemas == ["public"]
        assert settings.seed_count == 5
        assert settings.reset_mode is ResetMode.ISOLATED

    def test_environment_overrides(self, monkeypatch: pytest.MonkeyPatch) -> None:
        monkeypatch.setenv("HARNESS_SEED_COUNT", "8")
        monkeypatch.setenv("HARNESS_RESET_MODE", "accumulating")
        monkeypatch.setenv("HARNESS_POSTGRES_IMAGE", "postgres:15-alpine")
        monkeypatch.setenv("HARNESS_RESET_SCHEMAS", '["public", "audit"]')

        settings = HarnessSettings(_env_file=None)

        assert settings.seed_count == 8
        assert settings.reset_mode is ResetMode.ACCUMULATING
        assert settings.postgres_image == "postgres:15-alpine"
        assert settings.reset_schemas == ["public", "audit"]

    def test_get_settings_is_cached(self) -> None:
        assert get_settings() is get_settings()

    def test_rejects_negative_seed_count(self) -> None:
        with pytest.raises(ValidationError):
            HarnessSettings(_env_file=None, seed_count=-1)

    def test_rejects_pool_max_below_min(self) -> None:
        with pytest.raises(ValidationError, match="pool_max_size"):
            HarnessSettings(_env_file=None, pool_min_size=5, pool_max_size=2)


class TestCreateController:
    """Tests for create_controller wiring."""

    def test_controller_uses_settings(self) -> None:
        settings = HarnessSettings(
            _env_file=None,
            postgres_image="postgres:15-alpine",
            seed_count=7,
            reset_mode=ResetMode.ACCUMULATING,
            startup_timeout_seconds=12.5,
            cleanup_on_release=False,
            sensitive_data_logging=False,
        )

        controller = create_controller(settings)

        assert controller.provisioner_config.image == "postgres:15-alpine"
        assert controller.provisioner_config.startup_timeout == 12.5
        assert controller.provisioner_config.cleanup_on_release is False
        assert controller.connection_options.sensitive_data_logging is False
        assert controller.default_seed_count == 7
        assert controller.default_mode is ResetMode.ACCUMULATING

    def test_controller_wires_adapters(self) -> None:
        controller = create_controller(HarnessSettings(_env_file=None))

        assert controller.provisioner is get_provisioner()
        assert controller.connection_factory is build_connection_handle
        assert controller.schema_initializer is ensure_schema

    def test_coordinator_per_fixture(self) -> None:
        controller = create_controller(HarnessSettings(_env_file=None))

        first = controller.coordinator_factory()
        second = controller.coordinator_factory()

        assert isinstance(first, ResetAndSeedCoordinator)
        assert first is not second

    def test_coordinators_do_not_share_seed_generator(self) -> None:
        controller = create_controller(HarnessSettings(_env_file=None, seed_random_seed=42))

        first = controller.coordinator_factory()
        second = controller.coordinator_factory()

        assert first._seed_generator is not second._seed_generator

    def test_seeded_fixtures_generate_identical_data(self) -> None:
        """Each fixture replays the seeded stream from its start."""
        controller = create_controller(HarnessSettings(_env_file=None, seed_random_seed=42))
        first = controller.coordinator_factory()
        second = controller.coordinator_factory()

        first_batch = first._seed_generator.generate(3)
        first._seed_generator.generate(3)

        assert [r.name for r in second._seed_generator.generate(3)] == [
            r.name for r in first_batch
        ]

    def test_custom_seed_generator_factory(self) -> None:
        class FixedNames:
            def generate(self, count: int) -> list:
                return []

        controller = create_controller(
            HarnessSettings(_env_file=None), seed_generator_factory=FixedNames
        )

        first = controller.coordinator_factory()._seed_generator
        second = controller.coordinator_factory()._seed_generator

        assert isinstance(first, FixedNames)
        assert first is not second
