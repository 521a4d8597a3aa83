"""
Tests for the extension registry and version constraints.
"""

import pytest

from extinstall.core.errors import UnknownExtension, UnsupportedVersion
from extinstall.core.models.extension import CompileAndEnable, FetchBuildEnable
from extinstall.core.services.ext_install.data.registry_data import (
    BUILTIN_EXTENSIONS,
    PECL_EXTENSIONS,
)
from extinstall.core.services.ext_install.domain.version_constraint import (
    check_version_constraint,
    parse_version,
)
from extinstall.core.services.ext_install.resolver.registry import ExtensionRegistry

# ── Version constraints ──────────────────────────────────────────────


class TestParseVersion:
    def test_full(self):
        assert parse_version("2.7.0") == (2, 7, 0)

    def test_short_pads(self):
        assert parse_version("3.1") == (3, 1, 0)

    @pytest.mark.parametrize("bad", ["", "abc", "1.2.3.4", "1..2"])
    def test_rejects(self, bad):
        with pytest.raises(ValueError):
            parse_version(bad)


class TestCheckVersionConstraint:
    def test_gte(self):
        assert check_version_constraint("2.7.0", {"type": "gte", "reference": "2.7.0"})["valid"]
        assert check_version_constraint("3.0.4", {"type": "gte", "reference": "2.7.0"})["valid"]
        result = check_version_constraint("2.5.5", {"type": "gte", "reference": "2.7.0"})
        assert not result["valid"]
        assert "2.7.0" in result["message"]

    def test_gte_compares_numerically(self):
        assert check_version_constraint("2.10.0", {"type": "gte", "reference": "2.9.0"})["valid"]

    def test_exact(self):
        assert check_version_constraint("3.1.4", {"type": "exact", "reference": "3.1.4"})["valid"]
        assert not check_version_constraint("3.1.5", {"type": "exact", "reference": "3.1.4"})["valid"]

    def test_semver_compat(self):
        c = {"type": "semver_compat", "reference": "3.1.0"}
        assert check_version_constraint("3.2.0", c)["valid"]
        assert not check_version_constraint("3.0.9", c)["valid"]
        assert not check_version_constraint("4.0.0", c)["valid"]

    def test_range_is_half_open(self):
        c = {"type": "range", "reference": "2.7.0", "upper": "3.0.0"}
        assert check_version_constraint("2.7.0", c)["valid"]
        assert check_version_constraint("2.9.8", c)["valid"]
        assert not check_version_constraint("3.0.0", c)["valid"]
        assert not check_version_constraint("2.6.0", c)["valid"]

    def test_unparseable_request_is_invalid(self):
        assert not check_version_constraint("beta", {"type": "gte", "reference": "1.0.0"})["valid"]


# ── Registry ─────────────────────────────────────────────────────────


class TestRegistryData:
    def test_every_entry_builds_a_descriptor(self):
        for family in ("alpine", "debian"):
            registry = ExtensionRegistry.for_family(family)
            assert len(registry) == len(BUILTIN_EXTENSIONS) + len(PECL_EXTENSIONS)

    def test_supported_runtime_versions(self):
        assert ExtensionRegistry.supported_runtime_versions() == ("7.3", "7.4")


class TestLookup:
    def test_builtin_descriptor(self):
        gd = ExtensionRegistry.for_family("alpine").lookup("builtin", "gd")
        assert gd.kind == "builtin"
        assert "freetype-dev" in gd.build_packages
        assert isinstance(gd.build_procedure, CompileAndEnable)
        assert "--with-freetype-dir=/usr/include/" in gd.build_procedure.configure_args

    def test_family_selects_package_names(self):
        gd = ExtensionRegistry.for_family("debian").lookup("builtin", "gd")
        assert "libfreetype6-dev" in gd.build_packages
        assert "freetype-dev" not in gd.build_packages

    def test_missing_family_means_no_packages(self):
        gettext = ExtensionRegistry.for_family("debian").lookup("builtin", "gettext")
        assert gettext.build_packages == frozenset()

    def test_package_free_builtin(self):
        opcache = ExtensionRegistry.for_family("alpine").lookup("builtin", "opcache")
        assert opcache.build_packages == frozenset()
        assert opcache.build_procedure.configure_args == ()

    def test_pecl_descriptor(self):
        xdebug = ExtensionRegistry.for_family("alpine").lookup("pecl", "xdebug")
        assert isinstance(xdebug.build_procedure, FetchBuildEnable)
        assert xdebug.build_procedure.enable is False
        assert xdebug.default_version == "stable"

    def test_unknown(self):
        with pytest.raises(UnknownExtension, match="pecl extension 'gd'"):
            ExtensionRegistry.for_family("alpine").lookup("pecl", "gd")

    def test_descriptors_are_frozen(self):
        gd = ExtensionRegistry.for_family("alpine").lookup("builtin", "gd")
        with pytest.raises(Exception):
            gd.name = "other"

    def test_names(self):
        registry = ExtensionRegistry.for_family("alpine")
        assert registry.names("pecl") == ["imagick", "memcached", "xdebug"]
        assert "gd" in registry.names("builtin")
        assert ("builtin", "gd") in registry


class TestResolveVersion:
    def test_default_is_stable(self):
        registry = ExtensionRegistry.for_family("alpine")
        assert registry.resolve_version("xdebug") == "stable"
        assert registry.resolve_version("xdebug", "stable") == "stable"

    def test_supported_version(self):
        assert ExtensionRegistry.for_family("alpine").resolve_version("xdebug", "3.0.4") == "3.0.4"

    def test_unsupported_version(self):
        with pytest.raises(UnsupportedVersion) as exc:
            ExtensionRegistry.for_family("alpine").resolve_version("xdebug", "2.5.5")
        assert exc.value.version == "2.5.5"
        assert ">=2.7.0" in str(exc.value)

    def test_builtin_has_no_version(self):
        registry = ExtensionRegistry.for_family("alpine")
        assert registry.resolve_version("gd", kind="builtin") is None
        with pytest.raises(UnsupportedVersion):
            registry.resolve_version("gd", "1.0.0", kind="builtin")

    def test_pinned_default(self):
        registry = ExtensionRegistry(builtin={}, pecl={"apcu": {"default_version": "5.1.19"}})
        assert registry.resolve_version("apcu") == "5.1.19"

    def test_no_constraint_accepts_any_version(self):
        registry = ExtensionRegistry(builtin={}, pecl={"apcu": {}})
        assert registry.resolve_version("apcu", "0.0.1") == "0.0.1"
