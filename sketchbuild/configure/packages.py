# SPDX-License-Identifier: MIT
"""Models for the installed hardware packages that contribute property layers.

Each model exposes the PropertyStore layer it contributes to build and
debug configuration:

- PlatformRelease.properties: the platform's platform.txt
- PlatformRelease.runtime_properties(): runtime.platform.path and friends
- Board.properties: the board's section of boards.txt
- ToolRelease.runtime_properties(): runtime.tools.<name>.path, ...
- Programmer.properties: the programmer's section of programmers.txt
"""

from __future__ import annotations

from dataclasses import dataclass, field
from pathlib import Path
from typing import Protocol, runtime_checkable

from sketchbuild.core.errors import InvalidFQBNError
from sketchbuild.core.properties import PropertyStore


@dataclass(frozen=True)
class FQBN:
    """Fully qualified board name: ``vendor:arch:board[:opt=value,...]``."""

    vendor: str
    architecture: str
    board_id: str
    options: tuple[tuple[str, str], ...] = ()

    @classmethod
    def parse(cls, fqbn: str) -> FQBN:
        """Parse a fully qualified board name.

        Raises:
            InvalidFQBNError: If the string is malformed.
        """
        parts = fqbn.split(":")
        if len(parts) < 3 or len(parts) > 4:
            raise InvalidFQBNError(fqbn, "expected vendor:arch:board[:options]")
        vendor, arch, board_id = parts[:3]
        if not vendor or not arch or not board_id:
            raise InvalidFQBNError(fqbn, "empty vendor, architecture or board")

        options: dict[str, str] = {}
        if len(parts) == 4:
            for pair in parts[3].split(","):
                key, sep, value = pair.partition("=")
                if not sep or not key or not value:
                    raise InvalidFQBNError(fqbn, f"invalid config option '{pair}'")
                options[key] = value
        return cls(vendor, arch, board_id, tuple(options.items()))

    @property
    def platform_id(self) -> str:
        return f"{self.vendor}:{self.architecture}"

    def __str__(self) -> str:
        base = f"{self.vendor}:{self.architecture}:{self.board_id}"
        if self.options:
            return base + ":" + ",".join(f"{k}={v}" for k, v in self.options)
        return base


@dataclass
class Programmer:
    """A hardware programmer/debug probe defined by a platform."""

    id: str
    name: str = ""
    properties: PropertyStore = field(default_factory=PropertyStore)


@dataclass
class Board:
    """A board defined in a platform's boards.txt."""

    id: str
    platform_id: str
    properties: PropertyStore = field(default_factory=PropertyStore)

    @property
    def name(self) -> str:
        return self.properties.get("name", self.id)

    def properties_with_options(self, options: dict[str, str]) -> PropertyStore:
        """Return the board layer with menu options applied.

        Each option ``cpu=atmega328`` merges ``menu.cpu.atmega328.*`` over
        the board's own keys.
        """
        result = self.properties.clone()
        for option, value in options.items():
            result.merge(self.properties.subtree(f"menu.{option}.{value}"))
        return result


@dataclass
class PlatformRelease:
    """An installed release of a hardware platform (one vendor/architecture)."""

    vendor: str
    architecture: str
    version: str = ""
    install_dir: Path = field(default_factory=Path)
    properties: PropertyStore = field(default_factory=PropertyStore)
    boards: dict[str, Board] = field(default_factory=dict)
    programmers: dict[str, Programmer] = field(default_factory=dict)

    @property
    def id(self) -> str:
        return f"{self.vendor}:{self.architecture}"

    def runtime_properties(self) -> PropertyStore:
        """Properties describing where this platform is installed."""
        runtime = PropertyStore()
        runtime.set_path("runtime.platform.path", self.install_dir)
        runtime.set_path("runtime.hardware.path", self.install_dir.parent)
        return runtime

    def __str__(self) -> str:
        if self.version:
            return f"{self.id}@{self.version}"
        return self.id


@dataclass(frozen=True)
class ToolRelease:
    """An installed release of a tool (compiler, debugger server, ...)."""

    name: str
    version: str
    install_dir: Path

    def runtime_properties(self) -> PropertyStore:
        runtime = PropertyStore()
        runtime.set_path(f"runtime.tools.{self.name}.path", self.install_dir)
        runtime.set_path(f"runtime.tools.{self.name}-{self.version}.path", self.install_dir)
        return runtime

    def __str__(self) -> str:
        return f"{self.name}@{self.version}"


@dataclass
class BoardResolution:
    """Result of resolving an FQBN against the installed packages.

    Attributes:
        fqbn: The parsed board identifier.
        board: The board definition.
        platform: The platform owning the board.
        board_properties: Board layer with FQBN options applied.
        referenced_platform: Platform referenced through ``build.core``
                             (``vendor:core``), if any.
    """

    fqbn: FQBN
    board: Board
    platform: PlatformRelease
    board_properties: PropertyStore
    referenced_platform: PlatformRelease | None = None


@runtime_checkable
class PackageManager(Protocol):
    """Source of installed platforms, boards, tools and programmers."""

    def resolve_fqbn(self, fqbn: FQBN) -> BoardResolution:
        """Resolve a board identifier to its board and platform layers."""
        ...

    def installed_tools(self) -> list[ToolRelease]:
        """Every installed tool release."""
        ...

    def required_tools(self, board: Board) -> list[ToolRelease]:
        """Tools the board specifically depends on, in dependency order."""
        ...

    def installed_programmers(self) -> list[str]:
        """Identifiers of every programmer of every installed platform."""
        ...
