"""
Domain models — Pydantic types for ext-install.

All models are re-exported here for convenient access:

    from extinstall.core.models import ExtensionRequest, InstallationPlan, Receipt
"""

from extinstall.core.models.action import Receipt
from extinstall.core.models.extension import (
    STABLE_CHANNEL,
    BuildProcedure,
    CompileAndEnable,
    ExtensionDescriptor,
    ExtensionKind,
    ExtensionRequest,
    FetchBuildEnable,
    VersionConstraint,
)
from extinstall.core.models.plan import InstallationPlan, PlanStep, RuntimeDependencyReport

__all__ = [
    # extension.py
    "BuildProcedure",
    "CompileAndEnable",
    "ExtensionDescriptor",
    "ExtensionKind",
    "ExtensionRequest",
    "FetchBuildEnable",
    # plan.py
    "InstallationPlan",
    "PlanStep",
    # action.py
    "Receipt",
    "RuntimeDependencyReport",
    "STABLE_CHANNEL",
    "VersionConstraint",
]
