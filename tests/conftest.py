"""
Shared test fixtures and configuration.
"""

from __future__ import annotations

from pathlib import Path

import pytest

from extinstall.adapters.mock import RecordingBackend
from extinstall.core.config.loader import Settings
from tests.fakes import FakeSystem, make_system


@pytest.fixture
def project_root() -> Path:
    """Return the project root directory."""
    return Path(__file__).parent.parent


@pytest.fixture
def system(tmp_path: Path) -> FakeSystem:
    """A fresh miniature image."""
    return make_system(tmp_path / "image")


@pytest.fixture
def settings(system: FakeSystem) -> Settings:
    return system.settings()


@pytest.fixture
def backend(system: FakeSystem) -> RecordingBackend:
    """apk-like backend whose base image has musl only."""
    return RecordingBackend(
        base_packages=["musl"],
        provides={"musl": [str(system.lib / "libc.musl-x86_64.so.1")]},
    )
