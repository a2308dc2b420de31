"""
Harness dependencies - Wiring factories for the fixture lifecycle controller.

This module builds the domain's FixtureLifecycleController from settings,
injecting the testcontainers provisioner, the psycopg connection factory,
the schema initializer, the reset coordinator and the Faker seed generator.
"""

from collections.abc import Callable
from functools import partial

from src.adapters.provisioner.postgres_container import TestcontainersProvisioner
from src.adapters.repository.connection import build_connection_handle, create_session_pool
from src.adapters.repository.reset import ResetAndSeedCoordinator
from src.adapters.repository.schema import ensure_schema
from src.adapters.seed.fake_data import FakerSeedGenerator
from src.config.settings import HarnessSettings, get_settings
from src.domain.fixture import FixtureLifecycleController
from src.domain.ports import ConnectionOptions, ProvisionerConfig, SeedGenerator

# Module-level singleton - one provisioner tracks every container of the process
_provisioner = TestcontainersProvisioner()


def get_provisioner() -> TestcontainersProvisioner:
    """Get the shared container provisioner (singleton)."""
    return _provisioner


def get_provisioner_config(settings: HarnessSettings) -> ProvisionerConfig:
    return ProvisionerConfig(
        image=settings.postgres_image,
        database=settings.database_name,
        username=settings.username,
        password=settings.password,
        cleanup_on_release=settings.cleanup_on_release,
        startup_timeout=settings.startup_timeout_seconds,
    )


def get_connection_options(settings: HarnessSettings) -> ConnectionOptions:
    return ConnectionOptions(
        sensitive_data_logging=settings.sensitive_data_logging,
        detailed_errors=settings.detailed_errors,
    )


def get_seed_generator(settings: HarnessSettings) -> FakerSeedGenerator:
    """Create a Faker seed generator from settings."""
    return FakerSeedGenerator(locale=settings.seed_locale, seed=settings.seed_random_seed)


def create_controller(
    settings: HarnessSettings | None = None,
    seed_generator_factory: Callable[[], SeedGenerator] | None = None,
) -> FixtureLifecycleController:
    """
    Create the fixture lifecycle controller with injected dependencies.

    Args:
        settings: Harness settings (defaults to the cached environment settings)
        seed_generator_factory: Builds a fresh seed generator for each fixture
            (defaults to a Faker generator from settings)

    Returns:
        Controller producing fixtures of either reset mode
    """
    settings = settings or get_settings()
    make_generator = seed_generator_factory or partial(get_seed_generator, settings)

    def coordinator_factory() -> ResetAndSeedCoordinator:
        # Each fixture owns its coordinator and its seed generator
        return ResetAndSeedCoordinator(
            make_generator(),
            schemas=settings.reset_schemas,
            tables_to_ignore=settings.tables_to_ignore,
        )

    return FixtureLifecycleController(
        provisioner=get_provisioner(),
        provisioner_config=get_provisioner_config(settings),
        connection_factory=build_connection_handle,
        schema_initializer=ensure_schema,
        coordinator_factory=coordinator_factory,
        session_pool_factory=partial(
            create_session_pool,
            min_size=settings.pool_min_size,
            max_size=settings.pool_max_size,
        ),
        connection_options=get_connection_options(settings),
        default_seed_count=settings.seed_count,
        default_mode=settings.reset_mode,
    )
