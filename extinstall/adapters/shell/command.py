"""
Command runner — the SINGLE PLACE where ``subprocess.run`` is called.

Package-manager backends, ELF inspectors and build procedures all go
through ``run_command``. It never raises for process failures: the
outcome is captured in a Receipt, with ``error_kind`` telling a
missing or crashed executable ("transport") apart from a tool that
ran and reported failure ("operation").

No timeout is imposed; the invoked tools enforce their own.
"""

from __future__ import annotations

import logging
import os
import shlex
import subprocess
import time

from extinstall.core.models.action import ErrorKind, Receipt

logger = logging.getLogger(__name__)


def run_command(
    cmd: list[str],
    *,
    operation: str,
    target: str = "",
    capture: bool = True,
    stdin_text: str | None = None,
    env_overrides: dict[str, str] | None = None,
    failure_kind: ErrorKind = "operation",
) -> Receipt:
    """Run one external command and return its Receipt.

    Args:
        cmd: Command list for ``subprocess.run()``.
        operation: Operation name recorded on the receipt.
        target: What the command acts on (label, package list, path).
        capture: Capture stdout/stderr. When False the output streams
            straight to the terminal (long compiles stay visible).
        stdin_text: Text fed to stdin; ``None`` closes stdin.
        env_overrides: Extra environment variables.
        failure_kind: ``error_kind`` for a non-zero exit.

    Returns:
        Success receipt with ``output`` = stdout, or a failure receipt.
    """
    env = None
    if env_overrides:
        env = os.environ.copy()
        env.update(env_overrides)

    logger.debug("Executing: %s", shlex.join(cmd))
    start = time.monotonic()

    try:
        result = subprocess.run(
            cmd,
            capture_output=capture,
            text=True,
            input=stdin_text,
            stdin=subprocess.DEVNULL if stdin_text is None else None,
            env=env,
        )
    except OSError as e:
        return Receipt.failure(
            operation=operation,
            target=target,
            error=f"Cannot execute '{cmd[0]}': {e.strerror or e}",
            error_kind="transport",
            metadata={"command": cmd},
        )

    elapsed_ms = int((time.monotonic() - start) * 1000)
    stdout = result.stdout or ""
    stderr = result.stderr or ""

    if result.returncode == 0:
        return Receipt.success(
            operation=operation,
            target=target,
            output=stdout,
            duration_ms=elapsed_ms,
            metadata={"command": cmd, "return_code": 0},
        )

    if result.returncode < 0:
        # Killed by a signal: the tool crashed rather than reporting failure
        return Receipt.failure(
            operation=operation,
            target=target,
            error=f"'{cmd[0]}' killed by signal {-result.returncode}",
            error_kind="transport",
            diagnostic=stderr,
            duration_ms=elapsed_ms,
            metadata={"command": cmd, "return_code": result.returncode, "stdout": stdout},
        )

    return Receipt.failure(
        operation=operation,
        target=target,
        error=f"'{cmd[0]}' exited with code {result.returncode}",
        error_kind=failure_kind,
        diagnostic=stderr,
        duration_ms=elapsed_ms,
        metadata={"command": cmd, "return_code": result.returncode, "stdout": stdout},
    )
