"""Repository adapters - Database implementations."""

from .connection import build_connection_handle, create_session_pool, open_session
from .postgres import PostgresSampleEntityRepository
from .reset import ResetAndSeedCoordinator
from .schema import ensure_schema

__all__ = [
    "PostgresSampleEntityRepository",
    "ResetAndSeedCoordinator",
    "build_connection_handle",
    "create_session_pool",
    "ensure_schema",
    "open_session",
]
