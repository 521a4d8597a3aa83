"""
Debian ``apt`` backend.

apt has no virtual packages, so a group is emulated. ``install_group``
records which packages were installed before and which ones the install
added (the requested packages plus whatever they pulled in).
``remove_group`` purges exactly those additions, except for packages
still needed by something outside the group: anything installed
explicitly with ``install`` afterwards, or the base image. A package
the base image already had is never removed, and packages that were
already orphaned before the run stay installed.

Only packages dpkg reports as installed count; a package removed with
its configuration files left behind (``rc``) is not installed.

Group state lives in memory for the process lifetime, which is the
lifetime of one install run.
"""

from __future__ import annotations

import logging
import os
import re
import shutil
from collections.abc import Iterable

from extinstall.adapters.base import PackageBackend, sorted_packages
from extinstall.adapters.shell.command import run_command
from extinstall.core.models.action import Receipt

logger = logging.getLogger(__name__)

_APT_ENV = {"DEBIAN_FRONTEND": "noninteractive"}

# dpkg-query expands \t and \n itself
_STATUS_FORMAT = "${db:Status-Abbrev}\\t${Package}\\t${Pre-Depends}, ${Depends}\\t${Provides}\\n"

# libc6 (>= 2.14), libpng16-16:any | libpng12-0 → libc6, libpng16-16, libpng12-0
_RELATION_NAME_RE = re.compile(r"[a-z0-9][a-z0-9+.-]*")

# package → (dependency names, provided virtual names)
PackageTable = dict[str, tuple[set[str], set[str]]]


def _relation_names(field: str) -> set[str]:
    names: set[str] = set()
    for part in re.split(r"[,|]", field):
        match = _RELATION_NAME_RE.match(part.strip())
        if match:
            names.add(match.group(0))
    return names


def parse_dpkg_status(output: str) -> PackageTable:
    """Installed packages from ``dpkg-query -W`` with ``_STATUS_FORMAT``.

    The second status letter is the current state; only ``i``
    (installed) counts, so ``rc`` leftovers are skipped.
    """
    table: PackageTable = {}
    for line in output.splitlines():
        fields = line.split("\t")
        if len(fields) < 2:
            continue
        status, name = fields[0], fields[1].strip()
        if len(status) < 2 or status[1] != "i" or not name:
            continue
        depends = _relation_names(fields[2]) if len(fields) > 2 else set()
        provides = _relation_names(fields[3]) if len(fields) > 3 else set()
        table[name] = (depends, provides)
    return table


def dependency_closure(roots: Iterable[str], table: PackageTable) -> set[str]:
    """Installed packages reachable from ``roots`` through dependencies.

    Alternatives and virtual packages keep every installed candidate.
    """
    provided_by: dict[str, set[str]] = {}
    for name, (_, provides) in table.items():
        for virtual in provides:
            provided_by.setdefault(virtual, set()).add(name)

    seen: set[str] = set()
    pending = [r for r in roots if r in table]
    while pending:
        pkg = pending.pop()
        if pkg in seen:
            continue
        seen.add(pkg)
        for dep in table[pkg][0]:
            for candidate in {dep} | provided_by.get(dep, set()):
                if candidate in table and candidate not in seen:
                    pending.append(candidate)
    return seen


def parse_dpkg_owner(output: str) -> str | None:
    """First owner from ``dpkg-query -S`` output (``pkg[:arch]: /path``)."""
    for line in output.splitlines():
        if ":" not in line:
            continue
        owner = line.split(":", 1)[0].strip()
        # "diversion by foo from: /path" lines are not ownership
        if owner and " " not in owner:
            return owner.split(",", 1)[0].strip()
    return None


class AptBackend(PackageBackend):
    """Package backend for Debian and Ubuntu."""

    elf_tool_packages = frozenset({"binutils"})

    def __init__(self):
        self._updated = False
        self._groups: dict[str, set[str]] = {}    # label → packages the group added
        self._explicit: set[str] = set()

    @property
    def name(self) -> str:
        return "apt"

    @property
    def family(self) -> str:
        return "debian"

    def is_available(self) -> bool:
        return shutil.which("apt-get") is not None and shutil.which("dpkg-query") is not None

    # ── Helpers ─────────────────────────────────────────────────

    def _ensure_updated(self) -> Receipt | None:
        """Refresh the package index once; return the failure if it fails."""
        if self._updated:
            return None
        receipt = run_command(
            ["apt-get", "update"],
            operation="update",
            env_overrides=_APT_ENV,
        )
        if receipt.failed:
            return receipt
        self._updated = True
        return None

    def _apt_install(self, pkgs: list[str], operation: str, target: str) -> Receipt:
        failed_update = self._ensure_updated()
        if failed_update is not None:
            return failed_update
        return run_command(
            ["apt-get", "install", "-y", "--no-install-recommends", *pkgs],
            operation=operation,
            target=target,
            env_overrides=_APT_ENV,
        )

    def package_table(self) -> PackageTable | Receipt:
        """Installed packages with their dependencies, or the failed receipt."""
        receipt = run_command(
            ["dpkg-query", "-W", f"-f={_STATUS_FORMAT}"],
            operation="list_installed",
        )
        if receipt.failed:
            return receipt
        return parse_dpkg_status(receipt.output)

    def installed_packages(self) -> set[str] | Receipt:
        """Currently installed package names, or the failed receipt."""
        table = self.package_table()
        if isinstance(table, Receipt):
            return table
        return set(table)

    # ── Operations ──────────────────────────────────────────────

    def install(self, packages: Iterable[str]) -> Receipt:
        pkgs = sorted_packages(packages)
        if not pkgs:
            return Receipt.skip("install", reason="no packages")
        receipt = self._apt_install(pkgs, "install", " ".join(pkgs))
        if receipt.ok:
            # Explicitly installed now, so no group may purge it
            self._explicit.update(pkgs)
        return receipt

    def install_group(self, label: str, packages: Iterable[str]) -> Receipt:
        pkgs = sorted_packages(packages)
        before = self.installed_packages()
        if isinstance(before, Receipt):
            return before

        members = [p for p in pkgs if p not in before]
        if not members:
            self._groups.setdefault(label, set())
            return Receipt.skip("install_group", target=label, reason="all packages already installed")

        receipt = self._apt_install(members, "install_group", label)
        if receipt.failed:
            return receipt

        after = self.installed_packages()
        if isinstance(after, Receipt):
            return after
        added = (after - before) | set(members)
        self._groups.setdefault(label, set()).update(added)
        receipt.metadata["members"] = members
        receipt.metadata["added"] = sorted(added)
        return receipt

    def remove_group(self, label: str) -> Receipt:
        if label not in self._groups:
            return Receipt.failure(
                operation="remove_group",
                target=label,
                error=f"No package group '{label}' was installed by this run",
            )

        table = self.package_table()
        if isinstance(table, Receipt):
            return table

        added = self._groups[label] & set(table)
        outside = (set(table) - added) | (self._explicit & set(table))
        still_needed = dependency_closure(outside, table)
        purge = sorted(added - still_needed)
        kept = sorted(added & still_needed)
        if kept:
            logger.info("Keeping %s from group %s: still needed", " ".join(kept), label)

        if not purge:
            del self._groups[label]
            return Receipt.skip("remove_group", target=label, reason="nothing to remove")

        receipt = run_command(
            ["apt-get", "purge", "-y", *purge],
            operation="remove_group",
            target=label,
            env_overrides=_APT_ENV,
        )
        if receipt.ok:
            del self._groups[label]
            receipt.metadata["purged"] = purge
        return receipt

    def owning_package(self, file_path: str) -> Receipt:
        candidates = [file_path]
        real = os.path.realpath(file_path)
        if real != file_path:
            candidates.append(real)

        last: Receipt | None = None
        for path in candidates:
            receipt = run_command(
                ["dpkg-query", "-S", path],
                operation="owning_package",
                target=file_path,
            )
            if receipt.failed and receipt.error_kind == "transport":
                return receipt
            if receipt.ok:
                owner = parse_dpkg_owner(receipt.output)
                if owner:
                    return Receipt.success("owning_package", target=file_path, output=owner)
            last = receipt
            logger.debug("dpkg-query found no owner for %s", path)

        return Receipt.failure(
            operation="owning_package",
            target=file_path,
            error=f"No package owns {file_path}",
            diagnostic=last.diagnostic if last else "",
        )
