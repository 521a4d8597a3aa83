"""
Configuration loader — builds runtime ``Settings``.

Sources, lowest precedence first:

    defaults  <  YAML file  <  environment  <  explicit overrides (CLI)

The YAML file is optional: it is read when ``--config`` is given or
``EXT_INSTALL_CONFIG`` is set. The extension registry itself is never
configurable; only how the installer runs is.
"""

from __future__ import annotations

import logging
import os
from collections.abc import Mapping
from pathlib import Path
from typing import Any

import yaml
from pydantic import BaseModel, ConfigDict, Field, ValidationError

from extinstall.core.errors import ConfigError

logger = logging.getLogger(__name__)

# Optional wrapper key: the YAML may be flat or nested under it
CONFIG_SECTION = "ext_install"

ENV_CONFIG = "EXT_INSTALL_CONFIG"
ENV_BACKEND = "EXT_INSTALL_BACKEND"
ENV_JOBS = "EXT_INSTALL_JOBS"
ENV_PHPIZE_DEPS = "PHPIZE_DEPS"
ENV_PHP_INI_DIR = "PHP_INI_DIR"


def _default_jobs() -> int:
    return os.cpu_count() or 1


class Settings(BaseModel):
    """How one install run behaves."""

    model_config = ConfigDict(extra="forbid")

    backend: str = "auto"                                   # auto, apk, apt
    build_group: str = ".ext-install-build-deps"
    base_build_packages: list[str] = Field(default_factory=list)
    scan_roots: list[str] = Field(default_factory=lambda: ["/usr/local"])
    library_dirs: list[str] = Field(default_factory=list)  # empty = ask the linker config
    php_conf_dir: str = "/usr/local/etc/php/conf.d"
    pecl_tmp_dir: str = "/tmp/pear"
    jobs: int = Field(default_factory=_default_jobs, ge=1)
    stream_build_output: bool = True


def _from_environ(environ: Mapping[str, str]) -> dict[str, Any]:
    """Settings fields taken from environment variables."""
    values: dict[str, Any] = {}
    if environ.get(ENV_BACKEND):
        values["backend"] = environ[ENV_BACKEND]
    if environ.get(ENV_JOBS):
        values["jobs"] = environ[ENV_JOBS]
    if environ.get(ENV_PHPIZE_DEPS):
        values["base_build_packages"] = environ[ENV_PHPIZE_DEPS].split()
    if environ.get(ENV_PHP_INI_DIR):
        values["php_conf_dir"] = str(Path(environ[ENV_PHP_INI_DIR]) / "conf.d")
    return values


def _read_yaml(path: Path) -> dict[str, Any]:
    if not path.is_file():
        raise ConfigError(f"Config file not found: {path}")

    logger.debug("Loading settings from %s", path)

    try:
        raw = path.read_text(encoding="utf-8")
    except OSError as e:
        raise ConfigError(f"Cannot read {path}: {e}") from e

    try:
        data = yaml.safe_load(raw)
    except yaml.YAMLError as e:
        raise ConfigError(f"Invalid YAML in {path}: {e}") from e

    if data is None:
        return {}
    if not isinstance(data, dict):
        raise ConfigError(f"Expected a YAML mapping in {path}, got {type(data).__name__}")

    section = data.get(CONFIG_SECTION, data)
    if not isinstance(section, dict):
        raise ConfigError(f"Expected '{CONFIG_SECTION}' to be a mapping in {path}")
    return dict(section)


def load_settings(
    path: Path | str | None = None,
    environ: Mapping[str, str] | None = None,
    overrides: dict[str, Any] | None = None,
) -> Settings:
    """Load and validate settings.

    Args:
        path: Explicit YAML file. If None, ``EXT_INSTALL_CONFIG`` is used
            when set; otherwise no file is read.
        environ: Environment mapping (default: ``os.environ``).
        overrides: Highest-precedence values; ``None`` entries are ignored.

    Raises:
        ConfigError: Missing explicit file, bad YAML, unknown keys or
            invalid values.
    """
    env = os.environ if environ is None else environ

    if path is None and env.get(ENV_CONFIG):
        path = env[ENV_CONFIG]

    values: dict[str, Any] = {}
    if path is not None:
        values.update(_read_yaml(Path(path)))
    values.update(_from_environ(env))
    values.update({k: v for k, v in (overrides or {}).items() if v is not None})

    try:
        settings = Settings.model_validate(values)
    except ValidationError as e:
        raise ConfigError(f"Invalid settings: {e}") from e

    logger.debug("Settings: %s", settings.model_dump())
    return settings
