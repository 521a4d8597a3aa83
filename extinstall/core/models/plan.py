"""
Plan and report models — what the Installer executes and what it measures.

``InstallationPlan`` is built once by the planner and never mutated.
``RuntimeDependencyReport`` is filled in by the scanner after every
build step has run.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any

from pydantic import BaseModel, ConfigDict

from extinstall.core.errors import UnresolvedRuntimeDependency
from extinstall.core.models.extension import ExtensionDescriptor, ExtensionRequest


class PlanStep(BaseModel):
    """One extension to build, with its resolved version (PECL only)."""

    model_config = ConfigDict(frozen=True)

    request: ExtensionRequest
    descriptor: ExtensionDescriptor
    version: str | None = None

    @property
    def label(self) -> str:
        if self.version:
            return f"{self.descriptor.kind}:{self.descriptor.name}@{self.version}"
        return f"{self.descriptor.kind}:{self.descriptor.name}"


class InstallationPlan(BaseModel):
    """Ordered build steps plus the de-duplicated build package set."""

    model_config = ConfigDict(frozen=True)

    build_packages: frozenset[str] = frozenset()
    steps: tuple[PlanStep, ...] = ()

    @property
    def runtime_packages(self) -> frozenset[str]:
        """Union of every descriptor's statically-known runtime packages."""
        packages: set[str] = set()
        for step in self.steps:
            packages |= step.descriptor.runtime_packages
        return frozenset(packages)

    def to_dict(self) -> dict[str, Any]:
        return {
            "build_packages": sorted(self.build_packages),
            "runtime_packages": sorted(self.runtime_packages),
            "steps": [
                {
                    "extension": step.label,
                    "procedure": step.descriptor.build_procedure.type,
                    "build_packages": sorted(step.descriptor.build_packages),
                }
                for step in self.steps
            ],
        }


@dataclass
class RuntimeDependencyReport:
    """Owning package → shared libraries it must keep providing at run time."""

    packages: dict[str, set[str]] = field(default_factory=dict)
    unresolved: list[UnresolvedRuntimeDependency] = field(default_factory=list)
    scanned: list[str] = field(default_factory=list)

    @property
    def owning_packages(self) -> set[str]:
        return set(self.packages)

    def add(self, package: str, library: str) -> None:
        self.packages.setdefault(package, set()).add(library)

    def to_dict(self) -> dict[str, Any]:
        return {
            "packages": {pkg: sorted(libs) for pkg, libs in sorted(self.packages.items())},
            "unresolved": [
                {"library": w.library, "reason": w.reason, "path": w.path}
                for w in self.unresolved
            ],
            "scanned": sorted(self.scanned),
        }
