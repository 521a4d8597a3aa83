"""
Tests for filesystem snapshots, the library search path and ELF inspection.
"""

import os
from pathlib import Path
from unittest.mock import patch

import pytest

from extinstall.core.errors import BackendTransportError, StepError
from extinstall.core.models.action import Receipt
from extinstall.core.services.ext_install.detection.elf import (
    ReadelfInspector,
    ScanelfInspector,
    is_elf,
    parse_readelf_output,
    parse_scanelf_output,
    select_inspector,
)
from extinstall.core.services.ext_install.detection.filesystem import (
    default_library_dirs,
    is_under,
    library_baseline,
    snapshot_tree,
    touched_paths,
)

ELF_MODULE = "extinstall.core.services.ext_install.detection.elf"

# ── Snapshots ────────────────────────────────────────────────────────


class TestSnapshots:
    def test_new_file_is_touched(self, tmp_path: Path):
        (tmp_path / "old.so").write_bytes(b"old")
        before = snapshot_tree([str(tmp_path)])
        (tmp_path / "sub").mkdir()
        (tmp_path / "sub" / "new.so").write_bytes(b"new")
        after = snapshot_tree([str(tmp_path)])
        assert touched_paths(before, after) == [str(tmp_path / "sub" / "new.so")]

    def test_modified_file_is_touched(self, tmp_path: Path):
        target = tmp_path / "lib.so"
        target.write_bytes(b"v1")
        before = snapshot_tree([str(tmp_path)])
        target.write_bytes(b"version two")
        after = snapshot_tree([str(tmp_path)])
        assert touched_paths(before, after) == [str(target)]

    def test_unchanged_and_deleted_are_not_touched(self, tmp_path: Path):
        (tmp_path / "keep").write_bytes(b"k")
        (tmp_path / "gone").write_bytes(b"g")
        before = snapshot_tree([str(tmp_path)])
        (tmp_path / "gone").unlink()
        after = snapshot_tree([str(tmp_path)])
        assert touched_paths(before, after) == []

    def test_symlinks_and_missing_roots_skipped(self, tmp_path: Path):
        (tmp_path / "real").write_bytes(b"r")
        os.symlink(tmp_path / "real", tmp_path / "link")
        snap = snapshot_tree([str(tmp_path), str(tmp_path / "absent")])
        assert list(snap) == [str(tmp_path / "real")]

    def test_is_under(self, tmp_path: Path):
        root = tmp_path / "usr" / "local"
        assert is_under(str(root / "lib" / "x.so"), [str(root)])
        assert not is_under(str(tmp_path / "usr" / "localx" / "y.so"), [str(root)])


# ── Library search path ─────────────────────────────────────────────


class TestLibraryDirs:
    def test_standard_dirs_without_config(self, tmp_path: Path):
        dirs = default_library_dirs(
            ld_so_conf=str(tmp_path / "missing.conf"),
            musl_path_glob=str(tmp_path / "ld-musl-*.path"),
        )
        assert dirs == ["/lib", "/usr/lib", "/usr/local/lib"]

    def test_ld_so_conf_with_include(self, tmp_path: Path):
        conf_d = tmp_path / "ld.so.conf.d"
        conf_d.mkdir()
        (conf_d / "x86_64-linux-gnu.conf").write_text(
            "# Multiarch support\n/usr/local/lib/x86_64-linux-gnu\n/lib/x86_64-linux-gnu\n",
        )
        (conf_d / "libc.conf").write_text("/usr/local/lib\n")
        conf = tmp_path / "ld.so.conf"
        conf.write_text("include ld.so.conf.d/*.conf\n/opt/lib  # vendor\n")
        dirs = default_library_dirs(
            ld_so_conf=str(conf),
            musl_path_glob=str(tmp_path / "ld-musl-*.path"),
        )
        # Configured dirs are searched before the standard ones
        assert dirs == [
            "/usr/local/lib",
            "/usr/local/lib/x86_64-linux-gnu",
            "/lib/x86_64-linux-gnu",
            "/opt/lib",
            "/lib",
            "/usr/lib",
        ]

    def test_include_cycle_terminates(self, tmp_path: Path):
        conf = tmp_path / "ld.so.conf"
        conf.write_text(f"include {conf}\n/opt/lib\n")
        dirs = default_library_dirs(ld_so_conf=str(conf), musl_path_glob=str(tmp_path / "none"))
        assert dirs == ["/opt/lib", "/lib", "/usr/lib", "/usr/local/lib"]

    def test_musl_path_file_replaces_defaults(self, tmp_path: Path):
        conf = tmp_path / "ld.so.conf"
        conf.write_text("/opt/lib\n")
        (tmp_path / "ld-musl-x86_64.path").write_text("/usr/local/lib:/lib\n/usr/lib/extra\n")
        dirs = default_library_dirs(
            ld_so_conf=str(conf),
            musl_path_glob=str(tmp_path / "ld-musl-*.path"),
        )
        assert dirs == ["/usr/local/lib", "/lib", "/usr/lib/extra"]

    def test_library_baseline(self, tmp_path: Path):
        (tmp_path / "libz.so.1").write_bytes(b"")
        (tmp_path / "libz.so.1.2.11").write_bytes(b"")
        (tmp_path / "README").write_text("")
        names = library_baseline([str(tmp_path), str(tmp_path / "missing")])
        assert names == {"libz.so.1", "libz.so.1.2.11"}


# ── ELF inspection ──────────────────────────────────────────────────


class TestElfParsing:
    def test_is_elf(self, tmp_path: Path):
        elf = tmp_path / "a.so"
        elf.write_bytes(b"\x7fELF\x02\x01")
        text = tmp_path / "a.ini"
        text.write_text("extension=a\n")
        assert is_elf(str(elf))
        assert not is_elf(str(text))
        assert not is_elf(str(tmp_path / "missing"))

    def test_scanelf_output(self):
        out = "libMagickWand-7.Q16HDRI.so.9,libMagickCore-7.Q16HDRI.so.9,libc.musl-x86_64.so.1\n"
        assert parse_scanelf_output(out) == [
            "libMagickWand-7.Q16HDRI.so.9",
            "libMagickCore-7.Q16HDRI.so.9",
            "libc.musl-x86_64.so.1",
        ]

    def test_scanelf_empty(self):
        assert parse_scanelf_output("  \n") == []

    def test_readelf_output(self):
        out = (
            "Dynamic section at offset 0x2d0e0 contains 27 entries:\n"
            "  Tag        Type                         Name/Value\n"
            " 0x0000000000000001 (NEEDED)             Shared library: [libfreetype.so.6]\n"
            " 0x0000000000000001 (NEEDED)             Shared library: [libc.so.6]\n"
            " 0x000000000000000e (SONAME)             Library soname: [gd.so]\n"
        )
        assert parse_readelf_output(out) == ["libfreetype.so.6", "libc.so.6"]


class TestInspectors:
    def test_scanelf_command(self):
        with patch(f"{ELF_MODULE}.run_command") as run:
            run.return_value = Receipt.success("inspect_elf", output="libz.so.1\n")
            assert ScanelfInspector().needed("/x/zip.so") == ["libz.so.1"]
        cmd = run.call_args.args[0]
        assert cmd == ["scanelf", "--needed", "--nobanner", "--format", "%n#p", "/x/zip.so"]

    def test_readelf_command(self):
        with patch(f"{ELF_MODULE}.run_command") as run:
            run.return_value = Receipt.success("inspect_elf", output="")
            assert ReadelfInspector().needed("/x/zip.so") == []
        assert run.call_args.args[0] == ["readelf", "-d", "--wide", "/x/zip.so"]

    def test_transport_failure(self):
        with patch(f"{ELF_MODULE}.run_command") as run:
            run.return_value = Receipt.failure("inspect_elf", "/x", "Cannot execute 'scanelf'", error_kind="transport")
            with pytest.raises(BackendTransportError):
                ScanelfInspector().needed("/x")

    def test_tool_failure(self):
        with patch(f"{ELF_MODULE}.run_command") as run:
            run.return_value = Receipt.failure("inspect_elf", "/x", "exited with code 1", diagnostic="not an ELF file")
            with pytest.raises(StepError) as exc:
                ReadelfInspector().needed("/x")
        assert exc.value.diagnostic == "not an ELF file"

    def test_select_prefers_scanelf(self):
        with patch(f"{ELF_MODULE}.shutil.which", return_value="/usr/bin/tool"):
            assert isinstance(select_inspector(), ScanelfInspector)

    def test_select_falls_back_to_readelf(self):
        with patch(f"{ELF_MODULE}.shutil.which", side_effect=lambda t: "/usr/bin/readelf" if t == "readelf" else None):
            assert isinstance(select_inspector(), ReadelfInspector)

    def test_select_without_tools(self):
        with patch(f"{ELF_MODULE}.shutil.which", return_value=None):
            with pytest.raises(BackendTransportError, match="scanelf or readelf"):
                select_inspector()
