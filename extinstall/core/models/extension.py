"""
Extension models — requests, registry descriptors and build procedures.

A request is what the user asked for (``pecl:xdebug@3.0.4``); a
descriptor is what the registry knows about that extension. Both are
frozen: nothing in a run may mutate registry knowledge.
"""

from __future__ import annotations

from typing import Annotated, Literal

from pydantic import BaseModel, ConfigDict, Field, model_validator

ExtensionKind = Literal["builtin", "pecl"]

# Channel name accepted by ``pecl install NAME-CHANNEL``.
STABLE_CHANNEL = "stable"


class ExtensionRequest(BaseModel):
    """A single parsed ``<kind>:<name>[@<version>]`` identifier.

    ``version`` is only meaningful for PECL requests; ``None`` means
    "use the registry default".
    """

    model_config = ConfigDict(frozen=True)

    kind: ExtensionKind
    name: str
    version: str | None = None

    @property
    def key(self) -> tuple[str, str]:
        """Registry lookup key."""
        return (self.kind, self.name)

    @property
    def identifier(self) -> str:
        """The identifier in command-line form."""
        base = f"{self.kind}:{self.name}"
        return f"{base}@{self.version}" if self.version else base

    def __str__(self) -> str:
        return self.identifier


class VersionConstraint(BaseModel):
    """Supported-version rule for an external extension.

    Types:
        - ``gte``: version >= ``reference``
        - ``exact``: version == ``reference``
        - ``semver_compat``: same major as ``reference``, and >= it
        - ``range``: ``reference`` <= version < ``upper``
    """

    model_config = ConfigDict(frozen=True)

    type: Literal["gte", "exact", "semver_compat", "range"] = "gte"
    reference: str
    upper: str | None = None

    @model_validator(mode="after")
    def _range_needs_upper(self) -> VersionConstraint:
        if self.type == "range" and not self.upper:
            raise ValueError("'range' constraint requires an 'upper' bound")
        return self

    def describe(self) -> str:
        """Human-readable form, e.g. ``>=2.7.0,<3.2.0``."""
        if self.type == "gte":
            return f">={self.reference}"
        if self.type == "exact":
            return f"=={self.reference}"
        if self.type == "semver_compat":
            return f"~={self.reference}"
        return f">={self.reference},<{self.upper}"


# ── Build procedures (tagged variants) ──────────────────────────


class CompileAndEnable(BaseModel):
    """Builtin: optionally configure, then compile from the runtime's source tree and enable."""

    model_config = ConfigDict(frozen=True)

    type: Literal["compile"] = "compile"
    configure_args: tuple[str, ...] = ()


class FetchBuildEnable(BaseModel):
    """External: fetch from PECL at a version, build, install, then enable.

    ``enable=False`` installs the shared object without loading it
    (used for extensions with a heavy runtime cost, such as xdebug).
    """

    model_config = ConfigDict(frozen=True)

    type: Literal["fetch"] = "fetch"
    enable: bool = True


BuildProcedure = Annotated[
    CompileAndEnable | FetchBuildEnable,
    Field(discriminator="type"),
]


class ExtensionDescriptor(BaseModel):
    """Registry entry for one extension, resolved for one distro family."""

    model_config = ConfigDict(frozen=True)

    kind: ExtensionKind
    name: str
    build_packages: frozenset[str] = frozenset()
    runtime_packages: frozenset[str] = frozenset()
    build_procedure: BuildProcedure
    supported_versions: VersionConstraint | None = None
    default_version: str | None = None

    @model_validator(mode="after")
    def _procedure_matches_kind(self) -> ExtensionDescriptor:
        if self.kind == "builtin":
            if not isinstance(self.build_procedure, CompileAndEnable):
                raise ValueError(f"builtin '{self.name}' must use a compile procedure")
            if self.supported_versions or self.default_version:
                raise ValueError(f"builtin '{self.name}' cannot declare versions")
        elif not isinstance(self.build_procedure, FetchBuildEnable):
            raise ValueError(f"pecl '{self.name}' must use a fetch procedure")
        return self

    @property
    def key(self) -> tuple[str, str]:
        return (self.kind, self.name)
