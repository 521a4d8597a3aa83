"""
L3 Detection — Runtime dependency scanner.

Given the files the build steps wrote, finds every shared library they
need at run time (transitively) that the base image did not already
have, and maps each to the installed package that provides it.

Per needed library:
    - in the base-image baseline       → already satisfied, skip
    - found under a scan root          → bundled with the build, no
                                         package needed (still recurse)
    - found and owned by a package     → report the package
    - found but unowned, or not found  → UnresolvedRuntimeDependency
                                         warning, never a failure
"""

from __future__ import annotations

import logging
import os
from collections import deque

from extinstall.adapters.base import PackageBackend
from extinstall.core.errors import BackendTransportError, UnresolvedRuntimeDependency
from extinstall.core.models.plan import RuntimeDependencyReport
from extinstall.core.services.ext_install.detection.elf import ElfInspector, is_elf
from extinstall.core.services.ext_install.detection.filesystem import is_under

logger = logging.getLogger(__name__)


class RuntimeDependencyScanner:
    """Transitive NEEDED-library scan with ownership lookup.

    Args:
        backend: Package backend answering ``owning_package``.
        inspector: Lists the NEEDED entries of one ELF file.
        library_dirs: Dynamic linker search path, in order.
        baseline: Library file names present before the build began.
        bundled_roots: Directories whose libraries ship with the build
            itself (the scan roots).
    """

    def __init__(
        self,
        backend: PackageBackend,
        inspector: ElfInspector,
        library_dirs: list[str],
        baseline: set[str],
        bundled_roots: list[str] | None = None,
    ):
        self._backend = backend
        self._inspector = inspector
        self._library_dirs = list(library_dirs)
        self._baseline = set(baseline)
        self._bundled_roots = list(bundled_roots or [])

    def locate(self, library: str) -> str | None:
        """First file named ``library`` on the search path."""
        for directory in self._library_dirs:
            candidate = os.path.join(directory, library)
            if os.path.exists(candidate):
                return candidate
        return None

    def scan(self, paths: list[str]) -> RuntimeDependencyReport:
        """Scan ``paths`` and return the owning-package report.

        Raises:
            BackendTransportError: The package manager or ELF tool is
                missing or crashed.
        """
        report = RuntimeDependencyReport()
        pending: deque[str] = deque()

        for path in sorted(set(paths)):
            if not is_elf(path):
                continue
            report.scanned.append(path)
            pending.extend(self._inspector.needed(path))

        seen: set[str] = set()
        while pending:
            library = pending.popleft()
            if library in seen:
                continue
            seen.add(library)

            if library in self._baseline:
                logger.debug("%s: provided by base image", library)
                continue

            located = self.locate(library)
            if located is None:
                self._unresolved(report, library, "not found in library search path")
                continue

            if is_under(located, self._bundled_roots):
                logger.debug("%s: bundled at %s", library, located)
                pending.extend(self._inspector.needed(located))
                continue

            receipt = self._backend.owning_package(located)
            if receipt.failed:
                if receipt.error_kind == "transport":
                    raise BackendTransportError(
                        receipt.error or "Ownership query failed",
                        target=located,
                        diagnostic=receipt.diagnostic,
                    )
                self._unresolved(report, library, "no installed package owns it", located)
            else:
                owner = receipt.output.strip()
                logger.debug("%s: owned by %s", library, owner)
                report.add(owner, library)

            pending.extend(self._inspector.needed(located))

        logger.info(
            "Scanned %d file(s): %d runtime package(s), %d unresolved",
            len(report.scanned),
            len(report.packages),
            len(report.unresolved),
        )
        return report

    @staticmethod
    def _unresolved(
        report: RuntimeDependencyReport,
        library: str,
        reason: str,
        path: str | None = None,
    ) -> None:
        warning = UnresolvedRuntimeDependency(library, reason, path)
        report.unresolved.append(warning)
        logger.warning("Unresolved runtime dependency %s", warning)
