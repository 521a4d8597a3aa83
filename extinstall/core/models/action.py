"""
Receipt model — the result contract for every external invocation.

Backends and build procedures never raise for process failures; they
return a Receipt. The Installer inspects ``status`` and ``error_kind``
to decide which taxonomy error (if any) ends the run.
"""

from __future__ import annotations

from datetime import UTC, datetime
from typing import Any, Literal

from pydantic import BaseModel, Field


def _now_iso() -> str:
    """Current UTC time as ISO string."""
    return datetime.now(UTC).isoformat()


ErrorKind = Literal["transport", "operation", "build"]


class Receipt(BaseModel):
    """Result of one backend operation or build command.

    ``error_kind`` separates a missing/crashed executable ("transport")
    from a tool that ran and reported failure ("operation", "build").
    Both are failures to the caller; the distinction is for diagnostics.
    """

    operation: str                  # install, install_group, owning_package, build, ...
    target: str = ""                # label, package list, file path or extension
    status: Literal["ok", "skipped", "failed"] = "ok"

    started_at: str = Field(default_factory=_now_iso)
    duration_ms: int = 0

    output: str = ""
    error: str | None = None
    error_kind: ErrorKind | None = None
    diagnostic: str = ""            # underlying tool's stderr, verbatim

    metadata: dict[str, Any] = Field(default_factory=dict)

    @property
    def ok(self) -> bool:
        """Whether the operation succeeded (or had nothing to do)."""
        return self.status != "failed"

    @property
    def failed(self) -> bool:
        return self.status == "failed"

    @classmethod
    def success(
        cls,
        operation: str,
        target: str = "",
        output: str = "",
        **kwargs: Any,
    ) -> Receipt:
        """Create a success receipt."""
        return cls(operation=operation, target=target, status="ok", output=output, **kwargs)

    @classmethod
    def failure(
        cls,
        operation: str,
        target: str,
        error: str,
        error_kind: ErrorKind = "operation",
        **kwargs: Any,
    ) -> Receipt:
        """Create a failure receipt."""
        return cls(
            operation=operation,
            target=target,
            status="failed",
            error=error,
            error_kind=error_kind,
            **kwargs,
        )

    @classmethod
    def skip(
        cls,
        operation: str,
        target: str = "",
        reason: str = "",
        **kwargs: Any,
    ) -> Receipt:
        """Create a skip receipt."""
        return cls(operation=operation, target=target, status="skipped", output=reason, **kwargs)
