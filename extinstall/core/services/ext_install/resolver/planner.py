"""
L2 Resolver — Dependency aggregation and planning.

Resolves every request against the registry and folds the whole batch
into one ``InstallationPlan``: a single de-duplicated build package set
and build steps in request order.

Validation is batch-atomic. Every request is checked and every problem
is collected; if any remain, nothing is planned and the caller never
reaches the package manager.
"""

from __future__ import annotations

import logging

from extinstall.core.errors import ConflictingRequest, PlanningError
from extinstall.core.models.extension import STABLE_CHANNEL, ExtensionRequest
from extinstall.core.models.plan import InstallationPlan, PlanStep
from extinstall.core.services.ext_install.resolver.registry import ExtensionRegistry

logger = logging.getLogger(__name__)


def plan(
    requests: list[ExtensionRequest],
    registry: ExtensionRegistry,
) -> InstallationPlan:
    """Build the installation plan for a batch of requests.

    Repeated requests for the same extension collapse to the first
    occurrence. Repeats naming a different version (the default channel
    counts as one) are a ``ConflictingRequest``.

    Raises:
        PlanningError: The single problem found, or an aggregate
            ``PlanningError`` whose ``problems`` lists all of them.
    """
    problems: list[PlanningError] = []
    first_seen: dict[tuple[str, str], ExtensionRequest] = {}
    conflicts: dict[tuple[str, str], list[str]] = {}
    steps: list[PlanStep] = []

    for request in requests:
        prior = first_seen.get(request.key)
        if prior is not None:
            if prior.version != request.version:
                versions = conflicts.setdefault(request.key, [prior.version or STABLE_CHANNEL])
                version = request.version or STABLE_CHANNEL
                if version not in versions:
                    versions.append(version)
            else:
                logger.debug("Ignoring repeated request %s", request)
            continue
        first_seen[request.key] = request

        try:
            descriptor = registry.lookup(request.kind, request.name)
            version = registry.resolve_version(request.name, request.version, kind=request.kind)
        except PlanningError as e:
            problems.append(e)
            continue
        steps.append(PlanStep(request=request, descriptor=descriptor, version=version))

    for (_, name), versions in conflicts.items():
        problems.append(ConflictingRequest(name, versions))

    if len(problems) == 1:
        raise problems[0]
    if problems:
        raise PlanningError(problems)

    build_packages: set[str] = set()
    for step in steps:
        build_packages |= step.descriptor.build_packages

    result = InstallationPlan(build_packages=frozenset(build_packages), steps=tuple(steps))
    logger.info(
        "Planned %d extension(s), %d build package(s)",
        len(result.steps),
        len(result.build_packages),
    )
    return result
