"""
Package manager backend — the protocol contract between the Installer
and the host's package manager.

The Installer only talks to the package database through these four
operations, never directly to ``apk`` or ``apt-get``. That is what
lets the whole state machine run against ``RecordingBackend`` in tests.
"""

from __future__ import annotations

from abc import ABC, abstractmethod
from collections.abc import Iterable

from extinstall.core.models.action import Receipt


class PackageBackend(ABC):
    """Abstract base class for all package manager backends.

    Backends perform side effects on the host package database and
    return receipts. They NEVER raise for tool failures; failures are
    captured in the Receipt with ``status="failed"`` and an
    ``error_kind`` of ``"transport"`` (executable missing or crashed)
    or ``"operation"`` (manager ran and reported failure).

    To add a backend:
        1. Subclass PackageBackend
        2. Implement name, family, is_available and the four operations
        3. Register it in ``default_registry()``
    """

    # Packages providing the ELF inspection tool the scanner needs.
    # Installed with the build group, so they leave with it.
    elf_tool_packages: frozenset[str] = frozenset()

    @property
    @abstractmethod
    def name(self) -> str:
        """The backend identifier (e.g. 'apk', 'apt')."""

    @property
    @abstractmethod
    def family(self) -> str:
        """Distro family used to pick registry package names (e.g. 'alpine')."""

    @abstractmethod
    def is_available(self) -> bool:
        """Whether this backend's package manager exists on the host.

        Should be fast and never raise.
        """

    @abstractmethod
    def install(self, packages: Iterable[str]) -> Receipt:
        """Install packages permanently."""

    @abstractmethod
    def install_group(self, label: str, packages: Iterable[str]) -> Receipt:
        """Install packages tagged under a removable group ``label``."""

    @abstractmethod
    def remove_group(self, label: str) -> Receipt:
        """Remove every package tagged under ``label``, and only those."""

    @abstractmethod
    def owning_package(self, file_path: str) -> Receipt:
        """Name the installed package providing ``file_path``.

        On success the package name is in ``receipt.output``.
        A file nobody owns is an ``"operation"`` failure.
        """

    def __repr__(self) -> str:
        return f"<{self.__class__.__name__} name={self.name!r}>"


def sorted_packages(packages: Iterable[str]) -> list[str]:
    """Stable, de-duplicated argument order for package lists."""
    return sorted(set(packages))
