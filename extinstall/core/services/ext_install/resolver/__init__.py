"""
L2 Resolver — registry lookups and installation planning.
"""

from extinstall.core.services.ext_install.resolver.planner import plan  # noqa: F401
from extinstall.core.services.ext_install.resolver.registry import (  # noqa: F401
    ExtensionRegistry,
)
