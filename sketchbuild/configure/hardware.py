# SPDX-License-Identifier: MIT
"""Package manager over locally installed hardware and tool directories.

Hardware directories follow the sketchbook layout::

    <hardware>/<vendor>/<arch>/platform.txt
    <hardware>/<vendor>/<arch>/boards.txt
    <hardware>/<vendor>/<arch>/programmers.txt

Tool directories hold one directory per tool release::

    <tools>/<name>/<version>/...

Without a package index there is no explicit tool dependency metadata, so
the tools required by a board are the installed tools its board and
platform properties reference through ``{runtime.tools.<name>...}``
placeholders.
"""

from __future__ import annotations

import logging
import re
from collections.abc import Iterable
from pathlib import Path

from sketchbuild.configure.packages import (
    FQBN,
    Board,
    BoardResolution,
    PlatformRelease,
    Programmer,
    ToolRelease,
)
from sketchbuild.configure.resolver import tool_order
from sketchbuild.core.errors import BoardNotFoundError, PlatformNotFoundError
from sketchbuild.core.properties import PropertyStore
from sketchbuild.core.subst import find_placeholders

logger = logging.getLogger(__name__)

_RUNTIME_TOOL_KEY = re.compile(r"^runtime\.tools\.(.+)\.path$")


def _load_optional(path: Path) -> PropertyStore:
    if path.is_file():
        return PropertyStore.load(path)
    return PropertyStore()


def load_platform(platform_dir: Path, vendor: str, architecture: str) -> PlatformRelease:
    """Load a platform release from its installation directory."""
    properties = _load_optional(platform_dir / "platform.txt")
    release = PlatformRelease(
        vendor=vendor,
        architecture=architecture,
        version=properties.get("version"),
        install_dir=platform_dir,
        properties=properties,
    )

    boards_txt = _load_optional(platform_dir / "boards.txt")
    for board_id in boards_txt.first_level_keys():
        if board_id == "menu":
            continue
        release.boards[board_id] = Board(board_id, release.id, boards_txt.subtree(board_id))

    programmers_txt = _load_optional(platform_dir / "programmers.txt")
    for programmer_id in programmers_txt.first_level_keys():
        props = programmers_txt.subtree(programmer_id)
        release.programmers[programmer_id] = Programmer(programmer_id, props.get("name"), props)

    logger.debug(
        "Loaded platform %s: %d boards, %d programmers",
        release,
        len(release.boards),
        len(release.programmers),
    )
    return release


class HardwarePackageManager:
    """Resolves boards, tools and programmers from local directories.

    Example:
        pm = HardwarePackageManager([Path("~/Arduino/hardware")], [Path("~/tools")])
        resolution = pm.resolve_fqbn(FQBN.parse("arduino:avr:uno"))
    """

    def __init__(
        self,
        hardware_dirs: Iterable[Path] = (),
        tools_dirs: Iterable[Path] = (),
    ) -> None:
        self.platforms: dict[str, PlatformRelease] = {}
        self.tools: list[ToolRelease] = []
        for hardware_dir in hardware_dirs:
            self._scan_hardware(Path(hardware_dir))
        for tools_dir in tools_dirs:
            self._scan_tools(Path(tools_dir))

    def _scan_hardware(self, hardware_dir: Path) -> None:
        if not hardware_dir.is_dir():
            logger.warning("Hardware directory does not exist: %s", hardware_dir)
            return
        for vendor_dir in sorted(p for p in hardware_dir.iterdir() if p.is_dir()):
            for arch_dir in sorted(p for p in vendor_dir.iterdir() if p.is_dir()):
                if not (arch_dir / "boards.txt").is_file() and not (arch_dir / "platform.txt").is_file():
                    continue
                release = load_platform(arch_dir, vendor_dir.name, arch_dir.name)
                shadowed = self.platforms.get(release.id)
                if shadowed is not None:
                    logger.info("Platform %s in %s shadows %s", release.id, arch_dir, shadowed.install_dir)
                self.platforms[release.id] = release

    def _scan_tools(self, tools_dir: Path) -> None:
        if not tools_dir.is_dir():
            logger.warning("Tools directory does not exist: %s", tools_dir)
            return
        for name_dir in sorted(p for p in tools_dir.iterdir() if p.is_dir()):
            for version_dir in sorted(p for p in name_dir.iterdir() if p.is_dir()):
                self.tools.append(ToolRelease(name_dir.name, version_dir.name, version_dir))

    def find_platform(self, platform_id: str) -> PlatformRelease:
        try:
            return self.platforms[platform_id]
        except KeyError:
            raise PlatformNotFoundError(platform_id) from None

    def resolve_fqbn(self, fqbn: FQBN) -> BoardResolution:
        """Resolve an FQBN to its board, platform and board property layer.

        Raises:
            PlatformNotFoundError: If the board's (or referenced) platform
                                   is not installed.
            BoardNotFoundError: If the platform has no such board.
        """
        platform = self.find_platform(fqbn.platform_id)
        board = platform.boards.get(fqbn.board_id)
        if board is None:
            raise BoardNotFoundError(str(fqbn))

        board_properties = board.properties_with_options(dict(fqbn.options))
        board_properties.set("build.fqbn", str(fqbn))
        board_properties.set("build.arch", fqbn.architecture.upper())

        referenced: PlatformRelease | None = None
        core = board_properties.get("build.core")
        if ":" in core:
            ref_vendor, _, core_name = core.partition(":")
            referenced = self.find_platform(f"{ref_vendor}:{fqbn.architecture}")
            board_properties.set("build.core", core_name)
            logger.debug("Board %s uses core '%s' from %s", fqbn, core_name, referenced)

        core_platform = referenced or platform
        if board_properties.get("build.core"):
            board_properties.set_path(
                "build.core.path", core_platform.install_dir / "cores" / board_properties.get("build.core")
            )
        variant = board_properties.get("build.variant")
        if ":" in variant:
            var_vendor, _, variant = variant.partition(":")
            variant_platform = self.find_platform(f"{var_vendor}:{fqbn.architecture}")
            board_properties.set("build.variant", variant)
            board_properties.set_path("build.variant.path", variant_platform.install_dir / "variants" / variant)
        elif variant:
            board_properties.set_path("build.variant.path", platform.install_dir / "variants" / variant)

        return BoardResolution(
            fqbn=fqbn,
            board=board,
            platform=platform,
            board_properties=board_properties,
            referenced_platform=referenced,
        )

    def installed_tools(self) -> list[ToolRelease]:
        return list(self.tools)

    def required_tools(self, board: Board) -> list[ToolRelease]:
        """Return installed tools referenced by the board or its platform.

        Order follows the first reference in board properties, then
        platform properties.
        """
        referenced: list[str] = []
        layers = [board.properties]
        platform = self.platforms.get(board.platform_id)
        if platform is not None:
            layers.append(platform.properties)
        for layer in layers:
            for _, value in layer.items():
                for key in find_placeholders(value):
                    match = _RUNTIME_TOOL_KEY.match(key)
                    if match and match.group(1) not in referenced:
                        referenced.append(match.group(1))

        required: list[ToolRelease] = []
        # Releases of one tool go oldest first so the newest wins runtime.tools.<name>.path
        for ref in referenced:
            for tool in tool_order(self.tools):
                if ref in (tool.name, f"{tool.name}-{tool.version}") and tool not in required:
                    required.append(tool)
        return required

    def installed_programmers(self) -> list[str]:
        ids: set[str] = set()
        for platform in self.platforms.values():
            ids.update(platform.programmers)
        return sorted(ids)
