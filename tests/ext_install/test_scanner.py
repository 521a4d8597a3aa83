"""
Tests for the runtime dependency scanner.
"""

import logging

import pytest

from extinstall.adapters.mock import ELF_STUB, RecordingBackend
from extinstall.core.errors import BackendTransportError
from extinstall.core.services.ext_install.detection.filesystem import library_baseline
from extinstall.core.services.ext_install.detection.scanner import RuntimeDependencyScanner
from tests.fakes import FakeInspector


def write_elf(path):
    path.parent.mkdir(parents=True, exist_ok=True)
    path.write_bytes(ELF_STUB)
    return str(path)


def make_scanner(system, backend, needed, baseline=None):
    library_dirs = [str(system.lib), str(system.usr_lib), str(system.local_lib)]
    return RuntimeDependencyScanner(
        backend,
        FakeInspector(needed),
        library_dirs,
        library_baseline(library_dirs) if baseline is None else baseline,
        bundled_roots=[str(system.local)],
    )


class TestScanner:
    def test_base_image_library_not_reported(self, system):
        # libfoo is present before the build: never a new dependency
        backend = RecordingBackend(
            base_packages=["foo"],
            provides={"foo": [str(system.usr_lib / "libfoo.so")]},
        )
        ext = write_elf(system.ext_dir / "bar.so")
        scanner = make_scanner(system, backend, {"bar.so": ["libfoo.so"]})
        report = scanner.scan([ext])
        assert report.packages == {}
        assert backend.calls_for("owning_package") == []

    def test_new_library_mapped_to_owner(self, system):
        backend = RecordingBackend(provides={"freetype": [str(system.usr_lib / "libfreetype.so.6")]})
        baseline = library_baseline([str(system.usr_lib)])
        backend.install(["freetype"])
        ext = write_elf(system.ext_dir / "gd.so")
        scanner = make_scanner(system, backend, {"gd.so": ["libfreetype.so.6"]}, baseline)
        report = scanner.scan([ext])
        assert report.packages == {"freetype": {"libfreetype.so.6"}}
        assert report.scanned == [ext]

    def test_transitive_dependencies(self, system):
        backend = RecordingBackend(provides={
            "freetype": [str(system.usr_lib / "libfreetype.so.6")],
            "libpng": [str(system.usr_lib / "libpng16.so.16")],
            "libbz2": [str(system.usr_lib / "libbz2.so.1")],
        })
        baseline = library_baseline([str(system.usr_lib)])
        backend.install(["freetype", "libpng", "libbz2"])
        ext = write_elf(system.ext_dir / "gd.so")
        scanner = make_scanner(system, backend, {
            "gd.so": ["libfreetype.so.6"],
            "libfreetype.so.6": ["libpng16.so.16", "libbz2.so.1"],
            "libpng16.so.16": ["libfreetype.so.6"],   # cycles terminate
        }, baseline)
        report = scanner.scan([ext])
        assert report.owning_packages == {"freetype", "libpng", "libbz2"}

    def test_libraries_deduplicated(self, system):
        backend = RecordingBackend(provides={"zlib": [str(system.usr_lib / "libz.so.1")]})
        baseline = library_baseline([str(system.usr_lib)])
        backend.install(["zlib"])
        a = write_elf(system.ext_dir / "a.so")
        b = write_elf(system.ext_dir / "b.so")
        scanner = make_scanner(system, backend, {"a.so": ["libz.so.1"], "b.so": ["libz.so.1"]}, baseline)
        report = scanner.scan([a, b])
        assert report.packages == {"zlib": {"libz.so.1"}}
        assert len(backend.calls_for("owning_package")) == 1

    def test_bundled_library_needs_no_package(self, system):
        backend = RecordingBackend(provides={"libevent": [str(system.usr_lib / "libevent.so.7")]})
        baseline = library_baseline([str(system.usr_lib)])
        backend.install(["libevent"])
        ext = write_elf(system.ext_dir / "memcached.so")
        bundled = write_elf(system.local_lib / "libmemcached.so.11")
        scanner = make_scanner(system, backend, {
            "memcached.so": ["libmemcached.so.11"],
            "libmemcached.so.11": ["libevent.so.7"],
        }, baseline)
        report = scanner.scan([ext, bundled])
        # Bundled lib is skipped, but what it needs is still found
        assert report.packages == {"libevent": {"libevent.so.7"}}
        assert (str(system.local_lib / "libmemcached.so.11"),) not in backend.calls_for("owning_package")

    def test_missing_library_is_warning(self, system, caplog):
        caplog.set_level(logging.WARNING)
        ext = write_elf(system.ext_dir / "imagick.so")
        scanner = make_scanner(system, RecordingBackend(), {"imagick.so": ["libMagickWand-7.Q16HDRI.so.9"]})
        report = scanner.scan([ext])
        assert report.packages == {}
        assert len(report.unresolved) == 1
        assert report.unresolved[0].library == "libMagickWand-7.Q16HDRI.so.9"
        assert "not found" in report.unresolved[0].reason
        assert "Unresolved runtime dependency" in caplog.text

    def test_unowned_library_is_warning(self, system):
        stray = write_elf(system.usr_lib / "libvendored.so.1")
        baseline: set[str] = set()
        ext = write_elf(system.ext_dir / "x.so")
        scanner = make_scanner(system, RecordingBackend(), {"x.so": ["libvendored.so.1"]}, baseline)
        report = scanner.scan([ext])
        assert report.unresolved[0].path == stray
        assert "no installed package" in report.unresolved[0].reason

    def test_non_elf_files_ignored(self, system):
        ini = system.conf_d / "docker-php-ext-gd.ini"
        ini.write_text("extension=gd\n")
        inspector_needed = {"docker-php-ext-gd.ini": ["libnope.so"]}
        scanner = make_scanner(system, RecordingBackend(), inspector_needed)
        report = scanner.scan([str(ini)])
        assert report.scanned == []
        assert report.unresolved == []

    def test_transport_failure_raises(self, system):
        backend = RecordingBackend(provides={"zlib": [str(system.usr_lib / "libz.so.1")]})
        baseline = library_baseline([str(system.usr_lib)])
        backend.install(["zlib"])
        backend.set_failure("owning_package", error="Cannot execute 'apk'", kind="transport")
        ext = write_elf(system.ext_dir / "zip.so")
        scanner = make_scanner(system, backend, {"zip.so": ["libz.so.1"]}, baseline)
        with pytest.raises(BackendTransportError, match="Cannot execute"):
            scanner.scan([ext])

    def test_locate_uses_search_order(self, system):
        write_elf(system.lib / "libdup.so")
        write_elf(system.usr_lib / "libdup.so")
        scanner = make_scanner(system, RecordingBackend(), {})
        assert scanner.locate("libdup.so") == str(system.lib / "libdup.so")
        assert scanner.locate("libabsent.so") is None
