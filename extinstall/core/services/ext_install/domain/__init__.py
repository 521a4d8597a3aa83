"""
L1 Domain — pure functions, no I/O.
"""

from extinstall.core.services.ext_install.domain.request_parser import (  # noqa: F401
    parse_identifier,
    parse_identifiers,
)
from extinstall.core.services.ext_install.domain.version_constraint import (  # noqa: F401
    check_version_constraint,
    parse_version,
)
