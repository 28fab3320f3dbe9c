# SPDX-License-Identifier: MIT
"""User settings for sketchbuild.

Settings are layered, highest precedence last:
    1. Built-in defaults
    2. JSON settings file (sketchbuild.json in the working directory, or
       an explicit path)
    3. Environment variables (SKETCHBUILD_HARDWARE_PATH,
       SKETCHBUILD_TOOLS_PATH, SKETCHBUILD_JOBS)
    4. Command-line options (applied by the CLI)

Example sketchbuild.json:
    {
        "hardware_dirs": ["~/Arduino/hardware"],
        "tools_dirs": ["~/Arduino/tools"],
        "jobs": 4
    }
"""

from __future__ import annotations

import json
import logging
import os
from collections.abc import Mapping
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any

from sketchbuild.core.errors import BuildIOError, ConfigurationError

logger = logging.getLogger(__name__)

SETTINGS_FILE = "sketchbuild.json"

ENV_HARDWARE_PATH = "SKETCHBUILD_HARDWARE_PATH"
ENV_TOOLS_PATH = "SKETCHBUILD_TOOLS_PATH"
ENV_JOBS = "SKETCHBUILD_JOBS"


def _split_paths(value: str) -> list[Path]:
    return [Path(p).expanduser() for p in value.split(os.pathsep) if p]


@dataclass
class Settings:
    """Resolved user settings.

    Attributes:
        hardware_dirs: Directories searched for <vendor>/<arch> platforms.
        tools_dirs: Directories searched for <name>/<version> tools.
        jobs: Default number of parallel compile jobs (0 = CPU count).
        build_root: Optional root for build directories.
    """

    hardware_dirs: list[Path] = field(default_factory=list)
    tools_dirs: list[Path] = field(default_factory=list)
    jobs: int = 0
    build_root: Path | None = None

    def update(self, data: Mapping[str, Any], *, source: str = "") -> None:
        """Apply values from a settings mapping."""
        try:
            if "hardware_dirs" in data:
                self.hardware_dirs = [Path(p).expanduser() for p in data["hardware_dirs"]]
            if "tools_dirs" in data:
                self.tools_dirs = [Path(p).expanduser() for p in data["tools_dirs"]]
            if "jobs" in data:
                self.jobs = int(data["jobs"])
            if data.get("build_root"):
                self.build_root = Path(data["build_root"]).expanduser()
        except (TypeError, ValueError) as e:
            raise ConfigurationError(f"invalid settings: {e}", source or None) from e

    def apply_environment(self, environ: Mapping[str, str] | None = None) -> None:
        """Apply SKETCHBUILD_* environment variable overrides."""
        env = os.environ if environ is None else environ
        if env.get(ENV_HARDWARE_PATH):
            self.hardware_dirs = _split_paths(env[ENV_HARDWARE_PATH])
        if env.get(ENV_TOOLS_PATH):
            self.tools_dirs = _split_paths(env[ENV_TOOLS_PATH])
        if env.get(ENV_JOBS):
            try:
                self.jobs = int(env[ENV_JOBS])
            except ValueError as e:
                raise ConfigurationError(f"{ENV_JOBS} must be an integer, got {env[ENV_JOBS]!r}") from e


def load_settings(
    path: Path | str | None = None,
    *,
    environ: Mapping[str, str] | None = None,
) -> Settings:
    """Load settings from a JSON file and the environment.

    Args:
        path: Settings file. Defaults to sketchbuild.json in the working
              directory; a missing default file is not an error.
        environ: Environment mapping (defaults to os.environ).

    Raises:
        ConfigurationError: If the file is not valid JSON or has bad values.
        BuildIOError: If an explicitly given file cannot be read.
    """
    settings = Settings()
    explicit = path is not None
    settings_path = Path(path) if path is not None else Path.cwd() / SETTINGS_FILE

    if settings_path.exists() or explicit:
        try:
            with open(settings_path, encoding="utf-8") as f:
                data = json.load(f)
        except OSError as e:
            raise BuildIOError("reading settings", settings_path, e) from e
        except json.JSONDecodeError as e:
            raise ConfigurationError(f"invalid JSON: {e}", str(settings_path)) from e
        if not isinstance(data, dict):
            raise ConfigurationError("settings must be a JSON object", str(settings_path))
        settings.update(data, source=str(settings_path))
        logger.debug("Loaded settings from %s", settings_path)

    settings.apply_environment(environ)
    return settings
