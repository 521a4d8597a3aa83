"""
Test doubles for the install pipeline.

Tests never touch the real package database or the real runtime: each
gets a throwaway filesystem under ``tmp_path`` laid out like a slim
container image, a ``RecordingBackend`` standing in for apk, a builder
that writes fake extension binaries, and an ELF inspector that answers
from a table.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from pathlib import Path

from extinstall.adapters.mock import ELF_STUB
from extinstall.core.config.loader import Settings
from extinstall.core.models.action import Receipt
from extinstall.core.models.plan import PlanStep


@dataclass
class FakeSystem:
    """Paths of a miniature image rooted at ``root``."""

    root: Path

    @property
    def lib(self) -> Path:
        return self.root / "lib"

    @property
    def usr_lib(self) -> Path:
        return self.root / "usr" / "lib"

    @property
    def local(self) -> Path:
        return self.root / "usr" / "local"

    @property
    def local_lib(self) -> Path:
        return self.local / "lib"

    @property
    def ext_dir(self) -> Path:
        return self.local / "lib" / "php" / "extensions" / "no-debug-non-zts"

    @property
    def conf_d(self) -> Path:
        return self.local / "etc" / "php" / "conf.d"

    def settings(self, **overrides) -> Settings:
        values = {
            "scan_roots": [str(self.local)],
            "library_dirs": [str(self.lib), str(self.usr_lib), str(self.local_lib)],
            "php_conf_dir": str(self.conf_d),
            "pecl_tmp_dir": str(self.root / "tmp" / "pear"),
            "jobs": 2,
            "stream_build_output": False,
        }
        values.update(overrides)
        return Settings(**values)


def make_system(root: Path) -> FakeSystem:
    system = FakeSystem(root)
    for d in (system.lib, system.usr_lib, system.local_lib, system.ext_dir, system.conf_d):
        d.mkdir(parents=True, exist_ok=True)
    return system


@dataclass
class FakeBuilder:
    """Writes each extension's ``.so`` (and ini) instead of compiling it."""

    system: FakeSystem
    fail: dict[str, str] = field(default_factory=dict)   # name → failing command
    extra_files: dict[str, list[Path]] = field(default_factory=dict)
    built: list[str] = field(default_factory=list)

    def so_path(self, name: str) -> Path:
        return self.system.ext_dir / f"{name}.so"

    def build(self, step: PlanStep) -> Receipt:
        name = step.descriptor.name
        self.built.append(step.label)
        if name in self.fail:
            return Receipt.failure(
                operation=self.fail[name],
                target=step.label,
                error="exited with code 1",
                error_kind="build",
                diagnostic=f"configure: error: {name} headers not found",
                metadata={"failed_command": self.fail[name]},
            )
        self.so_path(name).write_bytes(ELF_STUB)
        for extra in self.extra_files.get(name, []):
            extra.parent.mkdir(parents=True, exist_ok=True)
            extra.write_bytes(ELF_STUB)
        (self.system.conf_d / f"docker-php-ext-{name}.ini").write_text(f"extension={name}\n")
        return Receipt.success("build", target=step.label)


@dataclass
class FakeInspector:
    """NEEDED entries by file name; unknown files need nothing."""

    needed_by_name: dict[str, list[str]] = field(default_factory=dict)
    inspected: list[str] = field(default_factory=list)

    def needed(self, path: str) -> list[str]:
        self.inspected.append(path)
        return list(self.needed_by_name.get(Path(path).name, []))

