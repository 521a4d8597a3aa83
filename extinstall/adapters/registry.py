"""
Backend registry — picks the one package backend active for a run.

Exactly one backend mutates the host per run. ``select("auto")`` asks
each registered backend whether its package manager exists, in
registration order, and returns the first that answers yes.
"""

from __future__ import annotations

import logging
from typing import Any

from extinstall.adapters.base import PackageBackend
from extinstall.core.errors import BackendTransportError

logger = logging.getLogger(__name__)

AUTO = "auto"


class BackendRegistry:
    """Registry of package backends, keyed by name."""

    def __init__(self):
        self._backends: dict[str, PackageBackend] = {}

    def register(self, backend: PackageBackend) -> None:
        """Register a backend. Later registrations of the same name win."""
        name = backend.name
        if name in self._backends:
            logger.warning("Overwriting existing backend: %s", name)
        self._backends[name] = backend
        logger.debug("Registered backend: %s", name)

    def get(self, name: str) -> PackageBackend | None:
        return self._backends.get(name)

    def list_backends(self) -> list[str]:
        return list(self._backends.keys())

    def backend_status(self) -> dict[str, dict[str, Any]]:
        """Availability of every registered backend."""
        return {
            name: {
                "name": name,
                "family": backend.family,
                "available": backend.is_available(),
                "type": backend.__class__.__name__,
            }
            for name, backend in self._backends.items()
        }

    def select(self, name: str = AUTO, require_available: bool = True) -> PackageBackend:
        """Resolve the backend to use for this run.

        Args:
            name: A registered backend name, or ``"auto"``.
            require_available: Fail if the chosen backend's package
                manager is missing (disabled for dry runs).

        Raises:
            BackendTransportError: No such backend, or it is unavailable.
        """
        if name == AUTO:
            for backend in self._backends.values():
                if backend.is_available():
                    logger.info("Selected package backend: %s", backend.name)
                    return backend
            if not require_available and self._backends:
                return next(iter(self._backends.values()))
            raise BackendTransportError(
                "No supported package manager found",
                target=", ".join(self._backends) or "(none registered)",
            )

        backend = self._backends.get(name)
        if backend is None:
            raise BackendTransportError(
                f"Unknown package backend '{name}'",
                target=name,
            )
        if require_available and not backend.is_available():
            raise BackendTransportError(
                f"Package backend '{name}' is not available on this host",
                target=name,
            )
        return backend


def default_registry() -> BackendRegistry:
    """Registry with the built-in backends, Alpine first."""
    from extinstall.adapters.packages.apk import ApkBackend
    from extinstall.adapters.packages.apt import AptBackend

    registry = BackendRegistry()
    registry.register(ApkBackend())
    registry.register(AptBackend())
    return registry
