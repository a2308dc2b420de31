"""Provisioner adapters - Disposable database instances."""

from .postgres_container import TestcontainersProvisioner, probe_instance

__all__ = ["TestcontainersProvisioner", "probe_instance"]
