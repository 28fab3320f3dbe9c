# SPDX-License-Identifier: MIT
"""Layered configuration resolution for build and debug.

The ConfigurationResolver merges every property layer that applies to one
board into a single PropertyStore. Layers are merged in a fixed order,
each later layer replacing the values of earlier ones key by key:

1. referenced platform (the platform named by ``build.core=vendor:core``)
2. owning platform (platform.txt)
3. owning platform runtime properties (runtime.platform.path, ...)
4. board (boards.txt section, FQBN options applied)
5. installed tool releases, sorted by name then version
6. tools required by the board, in dependency order
7. the selected programmer, if one was requested

Request-scoped keys (``build.path``, ``build.project_name``, debug port)
are then set directly, so they take final precedence. A namespace such as
``debug`` can then be extracted and expanded against the full store.
"""

from __future__ import annotations

import logging
import re
from collections.abc import Iterable, Sequence
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any

from sketchbuild.configure.compat import apply_legacy_debug_compat
from sketchbuild.configure.packages import (
    FQBN,
    BoardResolution,
    PackageManager,
    PlatformRelease,
    ToolRelease,
)
from sketchbuild.core.errors import (
    InvalidArgumentError,
    ProgrammerNotFoundError,
    UnsupportedOperationError,
)
from sketchbuild.core.properties import PropertyStore
from sketchbuild.core.sketch import Sketch

logger = logging.getLogger(__name__)

PROJECT_EXTENSION = ".ino"

_DEVICE_PREFIX = "/dev/"


def _version_key(version: str) -> list[tuple[int, Any]]:
    """Natural sort key so that 1.10.0 sorts after 1.9.0."""
    return [(0, int(part)) if part.isdigit() else (1, part) for part in re.split(r"(\d+)", version) if part]


def tool_order(tools: Iterable[ToolRelease]) -> list[ToolRelease]:
    """Deterministic merge order for installed tools: by name, then version.

    When two releases of the same tool are installed, the newer one is
    merged last and therefore wins ``runtime.tools.<name>.path``.
    """
    return sorted(tools, key=lambda t: (t.name, _version_key(t.version)))


@dataclass(frozen=True)
class ResolvedConfiguration:
    """Merged properties for one request plus one expanded namespace.

    Attributes:
        properties: The full merged store.
        namespace: The extracted prefix (e.g. "debug" or "build").
        subtree: Keys under the namespace, prefix stripped, values expanded
                 against the full store.
    """

    properties: PropertyStore
    namespace: str
    subtree: PropertyStore


@dataclass(frozen=True)
class DebugConfig:
    """Everything a debugger front-end needs to start a session."""

    executable: str
    server: str = ""
    server_path: str = ""
    server_configuration: dict[str, str] = field(default_factory=dict)
    toolchain: str = ""
    toolchain_path: str = ""
    toolchain_prefix: str = ""
    toolchain_configuration: dict[str, str] = field(default_factory=dict)

    @classmethod
    def from_properties(cls, debug: PropertyStore) -> DebugConfig:
        """Build the response from an expanded ``debug.*`` subtree."""
        server = debug.get("server")
        toolchain = debug.get("toolchain")
        return cls(
            executable=debug.get("executable"),
            server=server,
            server_path=debug.get(f"server.{server}.path"),
            server_configuration=debug.subtree(f"server.{server}").as_dict(),
            toolchain=toolchain,
            toolchain_path=debug.get("toolchain.path"),
            toolchain_prefix=debug.get("toolchain.prefix"),
            toolchain_configuration=debug.subtree(f"toolchain.{toolchain}").as_dict(),
        )

    def to_dict(self) -> dict[str, Any]:
        return {
            "executable": self.executable,
            "server": self.server,
            "server_path": self.server_path,
            "server_configuration": dict(self.server_configuration),
            "toolchain": self.toolchain,
            "toolchain_path": self.toolchain_path,
            "toolchain_prefix": self.toolchain_prefix,
            "toolchain_configuration": dict(self.toolchain_configuration),
        }


class ConfigurationResolver:
    """Merges the property layers for one board and request.

    A resolver is built per request and is not shared: its output depends
    on the chosen programmer, build path and port.

    Example:
        resolver = ConfigurationResolver.from_package_manager(pm, "arduino:samd:mkr1000")
        config = resolver.resolve_debug(build_path, "Blink")
    """

    def __init__(
        self,
        resolution: BoardResolution,
        *,
        installed_tools: Iterable[ToolRelease] = (),
        required_tools: Sequence[ToolRelease] = (),
        programmer: str = "",
    ) -> None:
        self.resolution = resolution
        self.installed_tools = tool_order(installed_tools)
        self.required_tools = list(required_tools)
        self.programmer = programmer

    @classmethod
    def from_package_manager(
        cls,
        pm: PackageManager,
        fqbn: FQBN | str,
        *,
        programmer: str = "",
    ) -> ConfigurationResolver:
        """Create a resolver with layers supplied by a package manager."""
        if isinstance(fqbn, str):
            fqbn = FQBN.parse(fqbn)
        resolution = pm.resolve_fqbn(fqbn)
        return cls(
            resolution,
            installed_tools=pm.installed_tools(),
            required_tools=pm.required_tools(resolution.board),
            programmer=programmer,
        )

    @property
    def board_id(self) -> str:
        return str(self.resolution.fqbn)

    def merged_properties(self, *, legacy_debug: bool = False) -> PropertyStore:
        """Merge every layer in precedence order.

        Args:
            legacy_debug: Inject the compatibility debug layer for known
                          legacy platform releases (after the board layer).

        Raises:
            ProgrammerNotFoundError: If the requested programmer exists in
                                     neither the owning nor the referenced
                                     platform.
        """
        res = self.resolution
        props = PropertyStore()
        if res.referenced_platform is not None:
            props.merge(res.referenced_platform.properties)
        props.merge(res.platform.properties)
        props.merge(res.platform.runtime_properties())
        props.merge(res.board_properties)

        if legacy_debug:
            apply_legacy_debug_compat(props, res.platform)

        for tool in self.installed_tools:
            props.merge(tool.runtime_properties())
        for tool in self.required_tools:
            logger.info("Tool required for board %s: %s", self.board_id, tool)
            props.merge(tool.runtime_properties())

        if self.programmer:
            props.merge(self._programmer_properties(self.programmer))
        return props

    def _programmer_properties(self, programmer_id: str) -> PropertyStore:
        platforms: list[PlatformRelease] = [self.resolution.platform]
        if self.resolution.referenced_platform is not None:
            platforms.append(self.resolution.referenced_platform)
        for platform in platforms:
            programmer = platform.programmers.get(programmer_id)
            if programmer is not None:
                logger.debug("Using programmer %s from %s", programmer_id, platform)
                return programmer.properties
        raise ProgrammerNotFoundError(programmer_id)

    def _bind_request(
        self,
        props: PropertyStore,
        build_path: Path,
        sketch_name: str,
    ) -> None:
        props.set_path("build.path", build_path)
        props.set("build.project_name", sketch_name + PROJECT_EXTENSION)

    def resolve(
        self,
        namespace: str,
        build_path: Path,
        sketch_name: str,
    ) -> ResolvedConfiguration:
        """Merge all layers, bind the build path, and expand a namespace.

        Args:
            namespace: Prefix to extract (e.g. "build").
            build_path: Directory holding build output.
            sketch_name: Sketch name; the project name is this plus ".ino".
        """
        props = self.merged_properties()
        self._bind_request(props, build_path, sketch_name)
        subtree = props.subtree(namespace).expanded(context=props)
        return ResolvedConfiguration(props, namespace, subtree)

    def resolve_debug_configuration(
        self,
        build_path: Path,
        sketch_name: str,
        port: str = "",
    ) -> ResolvedConfiguration:
        """Resolve the ``debug`` namespace for this board.

        Raises:
            ProgrammerNotFoundError: If the requested programmer is unknown.
            UnsupportedOperationError: If no ``debug.executable`` results.
        """
        props = self.merged_properties(legacy_debug=True)
        self._bind_request(props, build_path, sketch_name)
        if port:
            props.set("debug.port", port)
            if port.startswith(_DEVICE_PREFIX):
                props.set("debug.port.file", port[len(_DEVICE_PREFIX) :])

        debug = props.subtree("debug").expanded(context=props)
        if not debug.contains_key("executable"):
            raise UnsupportedOperationError(
                f"debugging not supported for board {self.board_id}",
                board=self.board_id,
            )
        return ResolvedConfiguration(props, "debug", debug)

    def resolve_debug(self, build_path: Path, sketch_name: str, port: str = "") -> DebugConfig:
        """Resolve the debug configuration response for this board."""
        resolved = self.resolve_debug_configuration(build_path, sketch_name, port)
        return DebugConfig.from_properties(resolved.subtree)


@dataclass(frozen=True)
class DebugConfigRequest:
    """A request for a sketch's debug configuration.

    Attributes:
        sketch_path: Sketch directory or main file.
        fqbn: Board identifier; falls back to the sketch metadata.
        programmer: Optional programmer identifier.
        port: Optional port address.
        import_dir: Directory with the compiled sketch; defaults to the
                    sketch's default build path.
    """

    sketch_path: str
    fqbn: str = ""
    programmer: str = ""
    port: str = ""
    import_dir: str = ""


def get_debug_config(request: DebugConfigRequest, pm: PackageManager) -> DebugConfig:
    """Resolve the debug configuration for a request.

    Raises:
        InvalidArgumentError: If the sketch path or board is missing, or
                              the compiled sketch directory is unusable.
        ProgrammerNotFoundError: If the programmer is unknown.
        UnsupportedOperationError: If the board cannot be debugged.
    """
    if not request.sketch_path:
        raise InvalidArgumentError("missing sketch path")
    sketch = Sketch.load(request.sketch_path)

    fqbn = request.fqbn or sketch.metadata.fqbn
    if not fqbn:
        raise InvalidArgumentError("no Fully Qualified Board Name provided")

    resolver = ConfigurationResolver.from_package_manager(pm, fqbn, programmer=request.programmer)

    import_path = Path(request.import_dir) if request.import_dir else sketch.build_path
    if not import_path.exists():
        raise InvalidArgumentError(f"compiled sketch not found in {import_path}")
    if not import_path.is_dir():
        raise InvalidArgumentError(f"expected compiled sketch in directory {import_path}, but is a file instead")

    port = request.port or sketch.metadata.port
    return resolver.resolve_debug(import_path, sketch.name, port)
