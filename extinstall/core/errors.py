"""
Error taxonomy — every failure the installer can report.

Planning-stage errors (usage, unknown extension, unsupported version)
are always raised before the package manager is touched. Everything
else is fatal for the run and surfaces through the Installer's
``InstallResult``.

``UnresolvedRuntimeDependency`` is a warning category, not an error:
it is recorded in the scan report and logged, never raised.
"""

from __future__ import annotations


class ExtInstallError(Exception):
    """Base class for all ext-install failures."""


class UsageError(ExtInstallError):
    """Malformed or empty extension identifiers.

    ``problems`` holds one message per offending token so the caller
    can print them all at once.
    """

    def __init__(self, problems: list[str]):
        self.problems = list(problems)
        super().__init__("; ".join(self.problems))


# ── Planning ────────────────────────────────────────────────────


class PlanningError(ExtInstallError):
    """One or more requests could not be resolved against the registry.

    Specific planning errors are themselves ``PlanningError`` instances
    whose ``problems`` list contains only themselves; the aggregate form
    carries every problem found in the batch.
    """

    def __init__(self, problems: list[PlanningError] | None = None, message: str = ""):
        self.problems: list[PlanningError] = list(problems) if problems else [self]
        if not message:
            message = "; ".join(str(p) for p in self.problems)
        super().__init__(message)


class UnknownExtension(PlanningError):
    """No registry entry exists for ``(kind, name)``."""

    def __init__(self, kind: str, name: str):
        self.kind = kind
        self.name = name
        super().__init__(message=f"Unknown {kind} extension '{name}'")


class UnsupportedVersion(PlanningError):
    """The requested version falls outside the entry's supported range."""

    def __init__(self, name: str, version: str, reason: str = ""):
        self.name = name
        self.version = version
        self.reason = reason
        message = f"Unsupported version '{version}' for extension '{name}'"
        if reason:
            message += f": {reason}"
        super().__init__(message=message)


class ConflictingRequest(PlanningError):
    """The same extension was requested at two different versions."""

    def __init__(self, name: str, versions: list[str]):
        self.name = name
        self.versions = versions
        super().__init__(
            message=f"Extension '{name}' requested at conflicting versions: {', '.join(versions)}",
        )


# ── Execution ───────────────────────────────────────────────────


class StepError(ExtInstallError):
    """A fatal failure during one step of the install run.

    Args:
        message: Short description of what failed.
        target: Package label, package list, extension or file involved.
        diagnostic: The underlying tool's output, verbatim.
    """

    def __init__(self, message: str, *, target: str = "", diagnostic: str = ""):
        self.target = target
        self.diagnostic = diagnostic
        super().__init__(message)


class BackendTransportError(StepError):
    """The package manager (or a helper tool) is missing or crashed."""


class PackageOperationError(StepError):
    """The package manager ran but reported failure."""


class BuildProcedureError(StepError):
    """An extension's configure/fetch/build/enable command failed."""


class ConfigError(ExtInstallError):
    """Raised when ext-install configuration is invalid or missing."""


class UnresolvedRuntimeDependency(UserWarning):
    """A needed shared library has no owning package and is not in the base image."""

    def __init__(self, library: str, reason: str, path: str | None = None):
        self.library = library
        self.reason = reason
        self.path = path
        super().__init__(f"{library}: {reason}")
