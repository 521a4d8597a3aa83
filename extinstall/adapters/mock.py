"""
Recording backend — in-memory package database for tests.

Models apk semantics closely enough to exercise the Installer end to
end without a real package manager:

    - a *world* of explicitly installed packages plus named virtual
      groups; installed = dependency closure of world ∪ group members
    - removing a group drops only packages nothing else still needs
    - each package can *provide* files; they are written to disk when
      the package becomes installed and deleted when it goes away, so
      the scanner's filesystem view stays consistent with the database

Every call is recorded in ``calls`` as ``(operation, args)``.
"""

from __future__ import annotations

import os
from collections.abc import Iterable
from pathlib import Path

from extinstall.adapters.base import PackageBackend, sorted_packages
from extinstall.core.models.action import ErrorKind, Receipt

# Minimal bytes recognised as an ELF image by the scanner
ELF_STUB = b"\x7fELF\x02\x01\x01\x00" + b"\x00" * 8


class RecordingBackend(PackageBackend):
    """Package backend double with apk-style world/virtual-group state."""

    def __init__(
        self,
        base_packages: Iterable[str] = (),
        provides: dict[str, list[str]] | None = None,
        depends: dict[str, list[str]] | None = None,
        *,
        backend_name: str = "recording",
        family: str = "alpine",
        elf_tool_packages: Iterable[str] = (),
        available: bool = True,
        materialize: bool = True,
    ):
        self._name = backend_name
        self._family = family
        self.elf_tool_packages = frozenset(elf_tool_packages)
        self._available = available
        self._materialize = materialize
        self._provides = {pkg: list(paths) for pkg, paths in (provides or {}).items()}
        self._depends = {pkg: list(deps) for pkg, deps in (depends or {}).items()}
        self._base = set(base_packages)

        self._world: set[str] = set()
        self._groups: dict[str, set[str]] = {}
        self._failures: dict[str, Receipt] = {}
        self.calls: list[tuple[str, tuple[str, ...]]] = []
        self.reset()

    # ── PackageBackend ──────────────────────────────────────────

    @property
    def name(self) -> str:
        return self._name

    @property
    def family(self) -> str:
        return self._family

    def is_available(self) -> bool:
        return self._available

    def install(self, packages: Iterable[str]) -> Receipt:
        pkgs = sorted_packages(packages)
        self.calls.append(("install", tuple(pkgs)))
        if "install" in self._failures:
            return self._failures["install"]
        if not pkgs:
            return Receipt.skip("install", reason="no packages")

        added = self._apply(lambda: self._world.update(pkgs))
        return Receipt.success("install", target=" ".join(pkgs), output="\n".join(added))

    def install_group(self, label: str, packages: Iterable[str]) -> Receipt:
        pkgs = sorted_packages(packages)
        self.calls.append(("install_group", (label, *pkgs)))
        if "install_group" in self._failures:
            return self._failures["install_group"]
        if not pkgs:
            return Receipt.skip("install_group", target=label, reason="no packages")

        def _add_group() -> None:
            self._groups[label] = set(pkgs)

        added = self._apply(_add_group)
        return Receipt.success("install_group", target=label, output="\n".join(added))

    def remove_group(self, label: str) -> Receipt:
        self.calls.append(("remove_group", (label,)))
        if "remove_group" in self._failures:
            return self._failures["remove_group"]
        if label not in self._groups:
            return Receipt.failure(
                operation="remove_group",
                target=label,
                error=f"No such package: {label}",
            )

        removed = self._apply(lambda: self._groups.pop(label))
        return Receipt.success("remove_group", target=label, output="\n".join(removed))

    def owning_package(self, file_path: str) -> Receipt:
        self.calls.append(("owning_package", (file_path,)))
        if "owning_package" in self._failures:
            return self._failures["owning_package"]

        wanted = {file_path, os.path.realpath(file_path)}
        for pkg in sorted(self.installed):
            if wanted & set(self._provides.get(pkg, ())):
                return Receipt.success("owning_package", target=file_path, output=pkg)
        return Receipt.failure(
            operation="owning_package",
            target=file_path,
            error=f"No package owns {file_path}",
        )

    # ── Test helpers ────────────────────────────────────────────

    @property
    def installed(self) -> set[str]:
        """Dependency closure of world and every group's members."""
        roots = set(self._world)
        for members in self._groups.values():
            roots |= members
        return self._closure(roots)

    @property
    def groups(self) -> dict[str, set[str]]:
        return {label: set(members) for label, members in self._groups.items()}

    def calls_for(self, operation: str) -> list[tuple[str, ...]]:
        """Arguments of every recorded call to ``operation``."""
        return [args for op, args in self.calls if op == operation]

    def set_failure(
        self,
        operation: str,
        error: str = "Mock failure",
        kind: ErrorKind = "operation",
        diagnostic: str = "",
    ) -> None:
        """Make every later call to ``operation`` fail."""
        self._failures[operation] = Receipt.failure(
            operation=operation,
            target="",
            error=error,
            error_kind=kind,
            diagnostic=diagnostic,
        )

    def reset(self) -> None:
        """Return to the base state: base packages only, no calls, no failures."""
        for pkg in self.installed - self._closure(self._base):
            self._remove_files(pkg)
        self._world = set(self._base)
        self._groups = {}
        self._failures.clear()
        self.calls.clear()
        for pkg in self.installed:
            self._write_files(pkg)

    # ── Internals ───────────────────────────────────────────────

    def _closure(self, roots: set[str]) -> set[str]:
        seen: set[str] = set()
        pending = list(roots)
        while pending:
            pkg = pending.pop()
            if pkg in seen:
                continue
            seen.add(pkg)
            pending.extend(self._depends.get(pkg, ()))
        return seen

    def _apply(self, mutate) -> list[str]:
        """Run a state mutation and sync files; return the changed packages."""
        before = self.installed
        mutate()
        after = self.installed
        for pkg in after - before:
            self._write_files(pkg)
        for pkg in before - after:
            self._remove_files(pkg)
        return sorted(after ^ before)

    def _write_files(self, pkg: str) -> None:
        if not self._materialize:
            return
        for path in self._provides.get(pkg, ()):
            target = Path(path)
            target.parent.mkdir(parents=True, exist_ok=True)
            target.write_bytes(ELF_STUB)

    def _remove_files(self, pkg: str) -> None:
        if not self._materialize:
            return
        for path in self._provides.get(pkg, ()):
            Path(path).unlink(missing_ok=True)
