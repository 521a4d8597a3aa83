"""
L4 Execution — extension build procedures.
"""

from extinstall.core.services.ext_install.execution.build_procedures import (  # noqa: F401
    ExtensionBuilder,
)
