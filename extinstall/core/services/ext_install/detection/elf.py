"""
L3 Detection — ELF dynamic dependency inspection.

Two inspectors read the ``NEEDED`` entries of one ELF file: ``scanelf``
(pax-utils, the Alpine way) and ``readelf`` (binutils, everywhere
else). ``select_inspector`` picks whichever is installed.
"""

from __future__ import annotations

import logging
import re
import shutil
from typing import Protocol

from extinstall.adapters.shell.command import run_command
from extinstall.core.errors import BackendTransportError, StepError
from extinstall.core.models.action import Receipt

logger = logging.getLogger(__name__)

ELF_MAGIC = b"\x7fELF"

_SCANELF_SPLIT_RE = re.compile(r"[,\s]+")
_READELF_NEEDED_RE = re.compile(r"\(NEEDED\)\s+Shared library: \[([^\]]+)\]")


def is_elf(path: str) -> bool:
    """Whether ``path`` starts with the ELF magic number."""
    try:
        with open(path, "rb") as f:
            return f.read(4) == ELF_MAGIC
    except OSError:
        return False


def parse_scanelf_output(output: str) -> list[str]:
    """``libz.so.1,libc.musl-x86_64.so.1`` → list of names."""
    return [lib for lib in _SCANELF_SPLIT_RE.split(output.strip()) if lib]


def parse_readelf_output(output: str) -> list[str]:
    return _READELF_NEEDED_RE.findall(output)


class ElfInspector(Protocol):
    """Anything that lists the NEEDED libraries of one ELF file."""

    def needed(self, path: str) -> list[str]: ...


def _raise_for(receipt: Receipt, path: str) -> None:
    if receipt.error_kind == "transport":
        raise BackendTransportError(receipt.error or "ELF tool failed", target=path, diagnostic=receipt.diagnostic)
    raise StepError(
        f"Cannot read dynamic dependencies: {receipt.error}",
        target=path,
        diagnostic=receipt.diagnostic,
    )


class ScanelfInspector:
    """``scanelf --needed`` based inspector."""

    tool = "scanelf"

    def needed(self, path: str) -> list[str]:
        receipt = run_command(
            ["scanelf", "--needed", "--nobanner", "--format", "%n#p", path],
            operation="inspect_elf",
            target=path,
        )
        if receipt.failed:
            _raise_for(receipt, path)
        return parse_scanelf_output(receipt.output)


class ReadelfInspector:
    """``readelf -d`` based inspector."""

    tool = "readelf"

    def needed(self, path: str) -> list[str]:
        receipt = run_command(
            ["readelf", "-d", "--wide", path],
            operation="inspect_elf",
            target=path,
        )
        if receipt.failed:
            _raise_for(receipt, path)
        return parse_readelf_output(receipt.output)


def select_inspector() -> ElfInspector:
    """First installed inspector, scanelf preferred.

    Raises:
        BackendTransportError: Neither tool is on PATH.
    """
    for inspector in (ScanelfInspector(), ReadelfInspector()):
        if shutil.which(inspector.tool):
            logger.debug("Using ELF inspector: %s", inspector.tool)
            return inspector
    raise BackendTransportError(
        "No ELF inspection tool found (need scanelf or readelf)",
        target="scanelf, readelf",
    )
