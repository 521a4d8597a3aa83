"""
L4 Execution — Extension build procedures.

Turns a plan step's build procedure into the runtime's helper commands
and runs them in order:

    compile  → docker-php-ext-configure NAME ARGS…   (only with args)
               docker-php-ext-install -j JOBS NAME
    fetch    → pecl install NAME-VERSION
               docker-php-ext-enable NAME              (unless disabled)
               rm -rf PECL_TMP_DIR

Point of no return: an extension is loadable only once
``docker-php-ext-NAME.ini`` exists in the runtime's ``conf.d``. When any
command of a procedure fails, that file is removed before the failure
is returned, so a half-built extension is never left enabled. An ini
that existed before the step started belongs to the base image and is
left alone. Compiled objects may remain on disk; without the ini they
are unreachable.
"""

from __future__ import annotations

import logging
import shutil
from collections.abc import Callable
from pathlib import Path

from extinstall.adapters.shell.command import run_command
from extinstall.core.config.loader import Settings
from extinstall.core.models.action import Receipt
from extinstall.core.models.extension import CompileAndEnable, FetchBuildEnable
from extinstall.core.models.plan import PlanStep

logger = logging.getLogger(__name__)

Runner = Callable[..., Receipt]


class ExtensionBuilder:
    """Runs build procedures for plan steps.

    Args:
        settings: Supplies ``jobs``, ``php_conf_dir``, ``pecl_tmp_dir``
            and ``stream_build_output``.
        runner: Command runner with the ``run_command`` signature.
    """

    def __init__(self, settings: Settings, runner: Runner = run_command):
        self._settings = settings
        self._run = runner

    def commands_for(self, step: PlanStep) -> list[tuple[str, list[str]]]:
        """``(operation, command)`` pairs for ``step``, in execution order."""
        name = step.descriptor.name
        procedure = step.descriptor.build_procedure

        if isinstance(procedure, CompileAndEnable):
            commands: list[tuple[str, list[str]]] = []
            if procedure.configure_args:
                commands.append(
                    ("configure", ["docker-php-ext-configure", name, *procedure.configure_args]),
                )
            commands.append(
                ("compile", ["docker-php-ext-install", "-j", str(self._settings.jobs), name]),
            )
            return commands

        if isinstance(procedure, FetchBuildEnable):
            commands = [("fetch", ["pecl", "install", f"{name}-{step.version}"])]
            if procedure.enable:
                commands.append(("enable", ["docker-php-ext-enable", name]))
            return commands

        raise TypeError(f"Unsupported build procedure: {procedure!r}")

    def ini_path(self, name: str) -> Path:
        """The file whose presence makes extension ``name`` loadable."""
        return Path(self._settings.php_conf_dir) / f"docker-php-ext-{name}.ini"

    def build(self, step: PlanStep) -> Receipt:
        """Run every command for ``step``; stop at the first failure.

        Returns:
            Success receipt, or the failing command's receipt after the
            extension has been made unreachable.
        """
        logger.info("Building %s", step.label)
        executed: list[str] = []
        # An ini shipped with the base image is not ours to remove
        had_ini = self.ini_path(step.descriptor.name).exists()

        for operation, cmd in self.commands_for(step):
            receipt = self._run(
                cmd,
                operation=operation,
                target=step.label,
                capture=not self._settings.stream_build_output,
                # pecl prompts for optional features; a newline takes the defaults
                stdin_text="\n" if operation == "fetch" else None,
                failure_kind="build",
            )
            if receipt.failed:
                if not had_ini:
                    self._make_unreachable(step.descriptor.name)
                receipt.metadata["failed_command"] = operation
                return receipt
            executed.append(operation)

        if isinstance(step.descriptor.build_procedure, FetchBuildEnable):
            # The pecl download/build cache must not end up in the image layer
            shutil.rmtree(self._settings.pecl_tmp_dir, ignore_errors=True)

        return Receipt.success("build", target=step.label, metadata={"commands": executed})

    def _make_unreachable(self, name: str) -> None:
        ini = self.ini_path(name)
        try:
            ini.unlink()
        except FileNotFoundError:
            return
        logger.warning("Removed %s after failed build of %s", ini, name)
