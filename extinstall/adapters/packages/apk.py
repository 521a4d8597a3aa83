"""
Alpine ``apk`` backend.

Virtual packages give us removable groups for free: ``apk add --virtual
LABEL`` records LABEL as a world entry depending on the listed packages,
and ``apk del LABEL`` drops exactly that entry (plus whatever nothing
else still depends on).
"""

from __future__ import annotations

import re
import shutil
from collections.abc import Iterable

from extinstall.adapters.base import PackageBackend, sorted_packages
from extinstall.adapters.shell.command import run_command
from extinstall.core.models.action import Receipt

_OWNED_BY_RE = re.compile(r"is owned by (\S+)")
# freetype-2.10.4-r1 → freetype
_VERSION_SUFFIX_RE = re.compile(r"^(.+?)-\d[^-]*-r\d+$")


def parse_owner(output: str) -> str | None:
    """Extract the bare package name from ``apk info --who-owns`` output."""
    match = _OWNED_BY_RE.search(output)
    if not match:
        return None
    versioned = match.group(1)
    stripped = _VERSION_SUFFIX_RE.match(versioned)
    return stripped.group(1) if stripped else versioned


class ApkBackend(PackageBackend):
    """Package backend for Alpine Linux."""

    elf_tool_packages = frozenset({"scanelf"})

    def __init__(self, executable: str = "apk"):
        self._apk = executable

    @property
    def name(self) -> str:
        return "apk"

    @property
    def family(self) -> str:
        return "alpine"

    def is_available(self) -> bool:
        return shutil.which(self._apk) is not None

    def install(self, packages: Iterable[str]) -> Receipt:
        pkgs = sorted_packages(packages)
        if not pkgs:
            return Receipt.skip("install", reason="no packages")
        return run_command(
            [self._apk, "add", "--no-cache", *pkgs],
            operation="install",
            target=" ".join(pkgs),
        )

    def install_group(self, label: str, packages: Iterable[str]) -> Receipt:
        pkgs = sorted_packages(packages)
        if not pkgs:
            return Receipt.skip("install_group", target=label, reason="no packages")
        return run_command(
            [self._apk, "add", "--no-cache", "--virtual", label, *pkgs],
            operation="install_group",
            target=label,
        )

    def remove_group(self, label: str) -> Receipt:
        return run_command(
            [self._apk, "del", label],
            operation="remove_group",
            target=label,
        )

    def owning_package(self, file_path: str) -> Receipt:
        receipt = run_command(
            [self._apk, "info", "--who-owns", file_path],
            operation="owning_package",
            target=file_path,
        )
        if receipt.failed:
            return receipt

        owner = parse_owner(receipt.output)
        if owner is None:
            return Receipt.failure(
                operation="owning_package",
                target=file_path,
                error=f"No package owns {file_path}",
                diagnostic=receipt.output,
            )
        return Receipt.success("owning_package", target=file_path, output=owner)
