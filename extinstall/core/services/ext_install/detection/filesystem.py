"""
L3 Detection — Filesystem snapshots and library search path.

Read-only probes. The Installer snapshots the scan roots just before
Building and diffs afterwards to learn which files the build steps
wrote, and records the base image's shared libraries before any
package is installed.
"""

from __future__ import annotations

import glob
import logging
import os
import stat

logger = logging.getLogger(__name__)

# path → (mtime_ns, size)
Snapshot = dict[str, tuple[int, int]]

_STANDARD_LIBRARY_DIRS = ("/lib", "/usr/lib", "/usr/local/lib")


def snapshot_tree(roots: list[str]) -> Snapshot:
    """Record every regular file under ``roots``. Missing roots are skipped."""
    snapshot: Snapshot = {}
    for root in roots:
        if not os.path.isdir(root):
            logger.debug("Scan root %s does not exist, skipping", root)
            continue
        for dirpath, _dirnames, filenames in os.walk(root):
            for filename in filenames:
                path = os.path.join(dirpath, filename)
                try:
                    st = os.lstat(path)
                except OSError:
                    continue
                if stat.S_ISREG(st.st_mode):
                    snapshot[path] = (st.st_mtime_ns, st.st_size)
    return snapshot


def touched_paths(before: Snapshot, after: Snapshot) -> list[str]:
    """Files that are new in ``after`` or whose mtime/size changed."""
    return sorted(
        path for path, signature in after.items()
        if before.get(path) != signature
    )


def is_under(path: str, roots: list[str]) -> bool:
    """Whether ``path`` lies inside any of ``roots``."""
    real = os.path.realpath(path)
    for root in roots:
        root_real = os.path.realpath(root)
        if real == root_real or real.startswith(root_real.rstrip(os.sep) + os.sep):
            return True
    return False


# ── Library search path ─────────────────────────────────────────


def _parse_ld_so_conf(path: str, seen: set[str]) -> list[str]:
    """Directories listed in an ld.so.conf file, following ``include``."""
    real = os.path.realpath(path)
    if real in seen or not os.path.isfile(path):
        return []
    seen.add(real)

    dirs: list[str] = []
    with open(path, encoding="utf-8", errors="replace") as f:
        for raw in f:
            line = raw.split("#", 1)[0].strip()
            if not line:
                continue
            if line.startswith("include"):
                pattern = line[len("include"):].strip()
                if not os.path.isabs(pattern):
                    pattern = os.path.join(os.path.dirname(path), pattern)
                for included in sorted(glob.glob(pattern)):
                    dirs.extend(_parse_ld_so_conf(included, seen))
            else:
                dirs.append(line)
    return dirs


def _parse_musl_path(path: str) -> list[str]:
    """Directories in musl's ``/etc/ld-musl-ARCH.path`` (colon or newline separated)."""
    with open(path, encoding="utf-8", errors="replace") as f:
        content = f.read()
    return [d for d in content.replace(":", "\n").split() if d]


def default_library_dirs(
    ld_so_conf: str = "/etc/ld.so.conf",
    musl_path_glob: str = "/etc/ld-musl-*.path",
) -> list[str]:
    """The dynamic linker's search path, de-duplicated, in search order.

    musl reads only its path file when one exists; otherwise (and on
    glibc) configured directories are searched before the standard ones.
    """
    musl_files = sorted(glob.glob(musl_path_glob))
    dirs: list[str] = []
    if musl_files:
        for musl_file in musl_files:
            dirs.extend(_parse_musl_path(musl_file))
    else:
        dirs.extend(_parse_ld_so_conf(ld_so_conf, set()))
        dirs.extend(_STANDARD_LIBRARY_DIRS)

    result: list[str] = []
    for d in dirs:
        if d not in result:
            result.append(d)
    return result


def library_baseline(library_dirs: list[str]) -> set[str]:
    """File names of shared libraries present in ``library_dirs`` right now."""
    names: set[str] = set()
    for d in library_dirs:
        try:
            entries = os.listdir(d)
        except OSError:
            continue
        names.update(e for e in entries if ".so" in e)
    logger.debug("Library baseline: %d file(s) in %d dir(s)", len(names), len(library_dirs))
    return names
