"""Adapters — package manager backends and the subprocess runner.

Public re-exports for convenient access.
"""

from extinstall.adapters.base import PackageBackend
from extinstall.adapters.mock import RecordingBackend
from extinstall.adapters.registry import BackendRegistry, default_registry

__all__ = [
    "BackendRegistry",
    "PackageBackend",
    "RecordingBackend",
    "default_registry",
]
