"""
L3 Detection — read-only probes of the filesystem and ELF binaries.
"""

from extinstall.core.services.ext_install.detection.elf import (  # noqa: F401
    ReadelfInspector,
    ScanelfInspector,
    is_elf,
    select_inspector,
)
from extinstall.core.services.ext_install.detection.filesystem import (  # noqa: F401
    default_library_dirs,
    library_baseline,
    snapshot_tree,
    touched_paths,
)
from extinstall.core.services.ext_install.detection.scanner import (  # noqa: F401
    RuntimeDependencyScanner,
)
