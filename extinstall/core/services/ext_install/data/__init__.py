"""
L0 Data — ``__init__.py`` re-exports all data constants.
"""

from extinstall.core.services.ext_install.data.registry_data import (  # noqa: F401
    BUILTIN_EXTENSIONS,
    PECL_EXTENSIONS,
    SUPPORTED_RUNTIME_VERSIONS,
)
