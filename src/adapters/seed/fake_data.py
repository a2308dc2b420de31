"""
Faker seed generator adapter - Implements SeedGenerator protocol.

This module provides a Faker-based implementation of the domain's seed
generator port: human-readable full names and creation timestamps drawn
from the recent past, normalized to UTC.
"""

import logging
from datetime import timezone

from faker import Faker

from src.domain.ports import SeedRecord

logger = logging.getLogger(__name__)


class FakerSeedGenerator:
    """
    Implements SeedGenerator protocol via Faker.

    Uses structural subtyping - no explicit inheritance from Protocol.
    """

    def __init__(self, locale: str = "en_US", seed: int | None = None, recent_days: int = 1) -> None:
        """
        Initialize generator.

        Args:
            locale: Faker locale for generated names
            seed: Fixed seed for reproducible output (None = random)
            recent_days: Timestamps fall within this many days before now
        """
        if recent_days < 1:
            raise ValueError(f"recent_days must be >= 1, got {recent_days}")
        self._fake = Faker(locale)
        if seed is not None:
            self._fake.seed_instance(seed)
        self._recent_days = recent_days

    def generate(self, count: int) -> list[SeedRecord]:
        """
        Generate `count` seed records.

        Args:
            count: Number of records (0 gives an empty list)

        Returns:
            SeedRecords with full names and timezone-aware UTC timestamps
        """
        if count < 0:
            raise ValueError(f"count must be >= 0, got {count}")

        records = [
            SeedRecord(
                name=self._fake.name(),
                created_at=self._fake.date_time_between(
                    start_date=f"-{self._recent_days}d", end_date="now", tzinfo=timezone.utc
                ).astimezone(timezone.utc),
            )
            for _ in range(count)
        ]
        logger.debug("Generated %d seed record(s)", count)
        return records
