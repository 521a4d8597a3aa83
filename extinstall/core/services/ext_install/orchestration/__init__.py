"""
L5 Orchestration — the Installer state machine.
"""

from extinstall.core.services.ext_install.orchestration.orchestrator import (  # noqa: F401
    InstallResult,
    Installer,
    InstallState,
)
