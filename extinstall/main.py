"""
ext-install — CLI entrypoints.

Usage:
    ext-install builtin:gd pecl:xdebug@3.0.4
    ext-install --dry-run --json pecl:memcached
    ext-install-versions
    python -m extinstall.main --help

Exit codes: 0 success, 1 planning/build/scan/cleanup failure,
2 usage error (no identifiers, or malformed ones).
"""

from __future__ import annotations

import json
import sys
from typing import Any

import click

from extinstall import __version__
from extinstall.core.errors import ExtInstallError, PlanningError, StepError, UsageError
from extinstall.core.observability.logging_config import setup_logging_from_env


def _emit_json(payload: dict[str, Any]) -> None:
    click.echo(json.dumps(payload, indent=2))


def _report_failure(error: ExtInstallError, failed_in: str | None = None) -> None:
    """Human failure summary on stderr, tool diagnostics verbatim."""
    where = f" while {failed_in.replace('_', ' ')}" if failed_in else ""
    if isinstance(error, PlanningError) and len(error.problems) > 1:
        click.secho(f"❌ {len(error.problems)} problems found{where}:", fg="red", bold=True, err=True)
        for problem in error.problems:
            click.secho(f"   • {problem}", fg="red", err=True)
        return

    click.secho(f"❌ Failed{where}: {error}", fg="red", bold=True, err=True)
    if isinstance(error, StepError):
        if error.target:
            click.echo(f"   Target: {error.target}", err=True)
        if error.diagnostic:
            click.echo("   Diagnostic output:", err=True)
            click.echo(error.diagnostic.rstrip("\n"), err=True)


def _failure_payload(error: ExtInstallError) -> dict[str, Any]:
    payload: dict[str, Any] = {
        "ok": False,
        "error": {"type": type(error).__name__, "message": str(error)},
    }
    if isinstance(error, PlanningError) and len(error.problems) > 1:
        payload["error"]["problems"] = [str(p) for p in error.problems]
    if isinstance(error, StepError):
        payload["error"]["target"] = error.target
        payload["error"]["diagnostic"] = error.diagnostic
    return payload


@click.command()
@click.version_option(version=__version__, prog_name="ext-install")
@click.argument("identifiers", nargs=-1)
@click.option(
    "--config",
    "-c",
    "config_path",
    type=click.Path(dir_okay=False),
    default=None,
    help="Path to a YAML settings file (default: $EXT_INSTALL_CONFIG).",
)
@click.option("--backend", default=None, help="Package backend: auto, apk or apt.")
@click.option("--dry-run", is_flag=True, help="Show the plan without touching the system.")
@click.option("--json-output", "--json", "as_json", is_flag=True, help="Output as JSON.")
@click.option("--verbose", "-v", is_flag=True, help="Log state transitions.")
@click.option("--quiet", "-q", is_flag=True, help="Only log errors.")
@click.option("--debug", is_flag=True, help="Enable debug logging (every command run).")
def cli(
    identifiers: tuple[str, ...],
    config_path: str | None,
    backend: str | None,
    dry_run: bool,
    as_json: bool,
    verbose: bool,
    quiet: bool,
    debug: bool,
) -> None:
    """Install PHP extensions and keep only their run-time dependencies.

    IDENTIFIERS are <kind>:<name>[@<version>], e.g. builtin:gd or
    pecl:xdebug@3.0.4. Kinds: builtin, pecl.
    """
    # ── Logging setup (once, at process start) ──────────────────
    if debug:
        flag_level = "DEBUG"
    elif verbose:
        flag_level = "INFO"
    elif quiet:
        flag_level = "ERROR"
    else:
        flag_level = None
    setup_logging_from_env(flag_level)

    from extinstall.adapters.registry import default_registry
    from extinstall.core.config.loader import load_settings
    from extinstall.core.services.ext_install import (
        ExtensionBuilder,
        ExtensionRegistry,
        Installer,
        parse_identifiers,
        plan,
    )

    try:
        requests = parse_identifiers(list(identifiers))
    except UsageError as e:
        raise click.UsageError("\n".join(e.problems)) from e

    try:
        settings = load_settings(config_path, overrides={"backend": backend})
        active = default_registry().select(settings.backend, require_available=not dry_run)
        registry = ExtensionRegistry.for_family(active.family)

        if dry_run:
            installation_plan = plan(requests, registry)
    except ExtInstallError as e:
        if as_json:
            _emit_json(_failure_payload(e))
        else:
            _report_failure(e)
        sys.exit(1)

    # ── Dry run: plan only ──────────────────────────────────────
    if dry_run:
        builder = ExtensionBuilder(settings)
        if as_json:
            payload = installation_plan.to_dict()
            payload["backend"] = active.name
            payload["build_group"] = settings.build_group
            payload["commands"] = {
                step.label: [cmd for _, cmd in builder.commands_for(step)]
                for step in installation_plan.steps
            }
            _emit_json(payload)
            return

        click.secho(f"\n📋 Plan ({active.name}, {active.family})", fg="cyan", bold=True)
        build = sorted(installation_plan.build_packages) or ["(none)"]
        click.echo(f"   Build packages: {' '.join(build)}")
        if installation_plan.runtime_packages:
            click.echo(f"   Runtime packages: {' '.join(sorted(installation_plan.runtime_packages))}")
        for step in installation_plan.steps:
            click.secho(f"   • {step.label}", fg="white", bold=True)
            for _, cmd in builder.commands_for(step):
                click.echo(f"       $ {' '.join(cmd)}")
        click.echo()
        return

    # ── Install ─────────────────────────────────────────────────
    result = Installer(active, registry, settings).run(requests)

    if as_json:
        _emit_json(result.to_dict())
    elif result.ok:
        names = ", ".join(step.label for step in result.plan.steps)
        click.secho(f"✅ Installed {names}", fg="green", bold=True)
        if result.runtime_packages:
            click.echo(f"   Runtime packages: {' '.join(sorted(result.runtime_packages))}")
        if result.report and result.report.unresolved:
            click.secho(
                f"⚠️  {len(result.report.unresolved)} unresolved runtime dependencies:",
                fg="yellow",
            )
            for warning in result.report.unresolved:
                click.echo(f"     {warning}")
    else:
        assert result.error is not None  # guaranteed when not ok
        _report_failure(result.error, str(result.failed_in) if result.failed_in else None)

    sys.exit(result.exit_code)


@click.command()
@click.option("--tool", is_flag=True, help="Print this tool's version (image-tag tiers) instead.")
def versions(tool: bool) -> None:
    """Print the PHP versions this build supports, one per line."""
    from extinstall.core.services.ext_install import SUPPORTED_RUNTIME_VERSIONS
    from extinstall.core.services.ext_install.domain.version_constraint import parse_version

    if tool:
        major, minor, patch = parse_version(__version__)
        click.echo(f"{major}.{minor}.{patch}")
        click.echo(f"{major}.{minor}")
        click.echo(f"{major}")
        return

    for runtime_version in SUPPORTED_RUNTIME_VERSIONS:
        click.echo(runtime_version)


if __name__ == "__main__":
    cli()
