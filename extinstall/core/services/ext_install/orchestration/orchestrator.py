"""
L5 Orchestration — the install state machine.

    PLANNING → INSTALLING_BUILD_DEPS → BUILDING → SCANNING
             → INSTALLING_RUNTIME_DEPS → REMOVING_BUILD_DEPS → DONE

``FAILED`` is reachable from every non-terminal state. Nothing loops,
nothing is retried, and nothing is rolled back: a failed run is meant
to be discarded together with the image layer it was building.

A planning failure never reaches the package manager.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from enum import StrEnum
from typing import Any

from extinstall.adapters.base import PackageBackend
from extinstall.core.config.loader import Settings
from extinstall.core.errors import (
    BackendTransportError,
    BuildProcedureError,
    ExtInstallError,
    PackageOperationError,
    PlanningError,
    StepError,
)
from extinstall.core.models.action import Receipt
from extinstall.core.models.extension import ExtensionRequest
from extinstall.core.models.plan import InstallationPlan, RuntimeDependencyReport
from extinstall.core.services.ext_install.detection.elf import ElfInspector, select_inspector
from extinstall.core.services.ext_install.detection.filesystem import (
    default_library_dirs,
    library_baseline,
    snapshot_tree,
    touched_paths,
)
from extinstall.core.services.ext_install.detection.scanner import RuntimeDependencyScanner
from extinstall.core.services.ext_install.execution.build_procedures import ExtensionBuilder
from extinstall.core.services.ext_install.resolver.planner import plan
from extinstall.core.services.ext_install.resolver.registry import ExtensionRegistry

logger = logging.getLogger(__name__)


class InstallState(StrEnum):
    PLANNING = "planning"
    INSTALLING_BUILD_DEPS = "installing_build_deps"
    BUILDING = "building"
    SCANNING = "scanning"
    INSTALLING_RUNTIME_DEPS = "installing_runtime_deps"
    REMOVING_BUILD_DEPS = "removing_build_deps"
    DONE = "done"
    FAILED = "failed"


@dataclass
class InstallResult:
    """Outcome of one ``Installer.run``."""

    state: InstallState = InstallState.PLANNING
    failed_in: InstallState | None = None
    error: ExtInstallError | None = None
    plan: InstallationPlan | None = None
    report: RuntimeDependencyReport | None = None
    runtime_packages: set[str] = field(default_factory=set)
    transitions: list[InstallState] = field(default_factory=list)

    @property
    def ok(self) -> bool:
        return self.state == InstallState.DONE

    @property
    def exit_code(self) -> int:
        return 0 if self.ok else 1

    def to_dict(self) -> dict[str, Any]:
        error: dict[str, Any] | None = None
        if self.error is not None:
            error = {"type": type(self.error).__name__, "message": str(self.error)}
            if isinstance(self.error, StepError):
                error["target"] = self.error.target
                error["diagnostic"] = self.error.diagnostic
            if isinstance(self.error, PlanningError) and len(self.error.problems) > 1:
                error["problems"] = [str(p) for p in self.error.problems]
        return {
            "ok": self.ok,
            "state": str(self.state),
            "failed_in": str(self.failed_in) if self.failed_in else None,
            "error": error,
            "plan": self.plan.to_dict() if self.plan else None,
            "report": self.report.to_dict() if self.report else None,
            "runtime_packages": sorted(self.runtime_packages),
            "transitions": [str(s) for s in self.transitions],
        }


def _require(receipt: Receipt) -> Receipt:
    """Turn a failed backend receipt into the matching taxonomy error."""
    if not receipt.failed:
        return receipt
    error_cls = BackendTransportError if receipt.error_kind == "transport" else PackageOperationError
    raise error_cls(
        f"{receipt.operation} failed: {receipt.error}",
        target=receipt.target,
        diagnostic=receipt.diagnostic,
    )


class Installer:
    """Drives one batch of extension requests through the state machine.

    Args:
        backend: The active package backend.
        registry: Extension registry for the backend's family.
        settings: Run settings.
        builder: Runs build procedures (default: ``ExtensionBuilder``).
        inspector: ELF inspector (default: picked at scan time, after
            the build group has installed the tools).
    """

    def __init__(
        self,
        backend: PackageBackend,
        registry: ExtensionRegistry,
        settings: Settings,
        *,
        builder: ExtensionBuilder | None = None,
        inspector: ElfInspector | None = None,
    ):
        self._backend = backend
        self._registry = registry
        self._settings = settings
        self._builder = builder or ExtensionBuilder(settings)
        self._inspector = inspector

    def run(self, requests: list[ExtensionRequest]) -> InstallResult:
        """Execute the full install. Never raises ``ExtInstallError``."""
        result = InstallResult()
        try:
            self._run(requests, result)
        except ExtInstallError as e:
            result.failed_in = result.state
            result.error = e
            self._enter(result, InstallState.FAILED)
            logger.error("Install failed while %s: %s", result.failed_in, e)
        return result

    # ── States ──────────────────────────────────────────────────

    def _run(self, requests: list[ExtensionRequest], result: InstallResult) -> None:
        settings = self._settings
        backend = self._backend

        self._enter(result, InstallState.PLANNING)
        result.plan = plan(requests, self._registry)

        # Baseline must predate the build group
        library_dirs = settings.library_dirs or default_library_dirs()
        baseline = library_baseline(library_dirs)

        self._enter(result, InstallState.INSTALLING_BUILD_DEPS)
        group_packages = (
            set(result.plan.build_packages)
            | set(settings.base_build_packages)
            | set(backend.elf_tool_packages)
        )
        group_receipt = _require(backend.install_group(settings.build_group, group_packages))

        self._enter(result, InstallState.BUILDING)
        before = snapshot_tree(settings.scan_roots)
        for step in result.plan.steps:
            receipt = self._builder.build(step)
            if receipt.failed:
                stage = receipt.metadata.get("failed_command", receipt.operation)
                raise BuildProcedureError(
                    f"Building {step.label} failed at '{stage}': {receipt.error}",
                    target=step.label,
                    diagnostic=receipt.diagnostic,
                )

        self._enter(result, InstallState.SCANNING)
        touched = touched_paths(before, snapshot_tree(settings.scan_roots))
        logger.debug("Build touched %d file(s)", len(touched))
        if touched:
            scanner = RuntimeDependencyScanner(
                backend,
                self._inspector or select_inspector(),
                library_dirs,
                baseline,
                bundled_roots=settings.scan_roots,
            )
            result.report = scanner.scan(touched)
        else:
            result.report = RuntimeDependencyReport()

        self._enter(result, InstallState.INSTALLING_RUNTIME_DEPS)
        result.runtime_packages = result.report.owning_packages | set(result.plan.runtime_packages)
        if result.runtime_packages:
            _require(backend.install(result.runtime_packages))
        else:
            logger.info("No runtime packages needed")

        self._enter(result, InstallState.REMOVING_BUILD_DEPS)
        if group_receipt.status == "skipped":
            logger.info("Build group %s was never installed, nothing to remove", settings.build_group)
        else:
            _require(backend.remove_group(settings.build_group))

        self._enter(result, InstallState.DONE)

    @staticmethod
    def _enter(result: InstallResult, state: InstallState) -> None:
        result.state = state
        result.transitions.append(state)
        logger.info("→ %s", state)
