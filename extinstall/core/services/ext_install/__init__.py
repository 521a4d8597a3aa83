"""
Extension installation service — package re-exports.

Each symbol lives in its single-responsibility module inside the
appropriate onion layer (data → domain → resolver → detection →
execution → orchestration)::

    from extinstall.core.services.ext_install import Installer, parse_identifiers
"""

# ── L0: Data ──
from extinstall.core.services.ext_install.data.registry_data import (  # noqa: F401
    SUPPORTED_RUNTIME_VERSIONS,
)

# ── L1: Domain ──
from extinstall.core.services.ext_install.domain.request_parser import (  # noqa: F401
    parse_identifier,
    parse_identifiers,
)

# ── L2: Resolver ──
from extinstall.core.services.ext_install.resolver.planner import plan  # noqa: F401
from extinstall.core.services.ext_install.resolver.registry import (  # noqa: F401
    ExtensionRegistry,
)

# ── L3: Detection ──
from extinstall.core.services.ext_install.detection.scanner import (  # noqa: F401
    RuntimeDependencyScanner,
)

# ── L4: Execution ──
from extinstall.core.services.ext_install.execution.build_procedures import (  # noqa: F401
    ExtensionBuilder,
)

# ── L5: Orchestration ──
from extinstall.core.services.ext_install.orchestration.orchestrator import (  # noqa: F401
    InstallResult,
    Installer,
    InstallState,
)
