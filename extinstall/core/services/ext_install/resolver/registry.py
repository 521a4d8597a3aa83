"""
L2 Resolver — Extension registry lookups.

Materialises the static tables in ``data.registry_data`` into frozen
``ExtensionDescriptor`` objects for one distro family, once, and
answers lookups against them. No side effects.
"""

from __future__ import annotations

from collections.abc import Mapping
from types import MappingProxyType

from extinstall.core.errors import UnknownExtension, UnsupportedVersion
from extinstall.core.models.extension import (
    STABLE_CHANNEL,
    CompileAndEnable,
    ExtensionDescriptor,
    ExtensionKind,
    FetchBuildEnable,
    VersionConstraint,
)
from extinstall.core.services.ext_install.data.registry_data import (
    BUILTIN_EXTENSIONS,
    PECL_EXTENSIONS,
    SUPPORTED_RUNTIME_VERSIONS,
)
from extinstall.core.services.ext_install.domain.version_constraint import (
    check_version_constraint,
)


def _for_family(field: dict | None, family: str, default=None):
    """Pick a per-family value, falling back to ``_default``."""
    if not field:
        return default
    if family in field:
        return field[family]
    return field.get("_default", default)


def _builtin_descriptor(name: str, entry: dict, family: str) -> ExtensionDescriptor:
    return ExtensionDescriptor(
        kind="builtin",
        name=name,
        build_packages=frozenset(_for_family(entry.get("build_packages"), family, [])),
        runtime_packages=frozenset(_for_family(entry.get("runtime_packages"), family, [])),
        build_procedure=CompileAndEnable(
            configure_args=tuple(_for_family(entry.get("configure_args"), family, [])),
        ),
    )


def _pecl_descriptor(name: str, entry: dict, family: str) -> ExtensionDescriptor:
    constraint = entry.get("supported_versions")
    return ExtensionDescriptor(
        kind="pecl",
        name=name,
        build_packages=frozenset(_for_family(entry.get("build_packages"), family, [])),
        runtime_packages=frozenset(_for_family(entry.get("runtime_packages"), family, [])),
        build_procedure=FetchBuildEnable(enable=entry.get("enable", True)),
        supported_versions=VersionConstraint(**constraint) if constraint else None,
        default_version=entry.get("default_version", STABLE_CHANNEL),
    )


class ExtensionRegistry:
    """Read-only lookup table keyed by ``(kind, name)``.

    Args:
        family: Distro family selecting concrete package names.
        builtin: Builtin table (defaults to the shipped data).
        pecl: PECL table (defaults to the shipped data).
    """

    def __init__(
        self,
        family: str = "alpine",
        builtin: dict[str, dict] | None = None,
        pecl: dict[str, dict] | None = None,
    ):
        self.family = family
        entries: dict[tuple[str, str], ExtensionDescriptor] = {}
        for name, entry in (BUILTIN_EXTENSIONS if builtin is None else builtin).items():
            entries[("builtin", name)] = _builtin_descriptor(name, entry, family)
        for name, entry in (PECL_EXTENSIONS if pecl is None else pecl).items():
            entries[("pecl", name)] = _pecl_descriptor(name, entry, family)
        self._entries: Mapping[tuple[str, str], ExtensionDescriptor] = MappingProxyType(entries)

    @classmethod
    def for_family(cls, family: str) -> ExtensionRegistry:
        """Registry over the shipped tables for ``family``."""
        return cls(family=family)

    def lookup(self, kind: ExtensionKind | str, name: str) -> ExtensionDescriptor:
        """Return the descriptor for ``(kind, name)``.

        Raises:
            UnknownExtension: No such entry.
        """
        descriptor = self._entries.get((kind, name))
        if descriptor is None:
            raise UnknownExtension(kind, name)
        return descriptor

    def resolve_version(
        self,
        name: str,
        requested: str | None = None,
        kind: ExtensionKind = "pecl",
    ) -> str | None:
        """Concrete version to build for ``name``.

        ``None`` (or the stable channel) resolves to the entry's default.
        Builtins have no version and always resolve to ``None``.

        Raises:
            UnknownExtension: No such entry.
            UnsupportedVersion: ``requested`` is outside the supported range.
        """
        descriptor = self.lookup(kind, name)

        if descriptor.kind == "builtin":
            if requested:
                raise UnsupportedVersion(name, requested, "builtin extensions are not versioned")
            return None

        if requested is None or requested == STABLE_CHANNEL:
            return descriptor.default_version or STABLE_CHANNEL

        if descriptor.supported_versions is not None:
            result = check_version_constraint(
                requested,
                descriptor.supported_versions.model_dump(),
            )
            if not result["valid"]:
                raise UnsupportedVersion(
                    name,
                    requested,
                    f"supported versions are {descriptor.supported_versions.describe()}",
                )
        return requested

    def names(self, kind: ExtensionKind) -> list[str]:
        """Sorted extension names of one kind."""
        return sorted(n for k, n in self._entries if k == kind)

    def descriptors(self) -> list[ExtensionDescriptor]:
        return list(self._entries.values())

    @staticmethod
    def supported_runtime_versions() -> tuple[str, ...]:
        """Target runtime versions this build of the tool supports."""
        return SUPPORTED_RUNTIME_VERSIONS

    def __contains__(self, key: tuple[str, str]) -> bool:
        return key in self._entries

    def __len__(self) -> int:
        return len(self._entries)
