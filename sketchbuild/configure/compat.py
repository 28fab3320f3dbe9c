# SPDX-License-Identifier: MIT
"""Compatibility layer for platform releases that predate ``debug.*`` keys.

Some platform releases shipped debugging support before their platform.txt
carried a debug configuration. For those releases a fixed property set is
injected when the merged properties lack ``debug.executable``. Add entries
to LEGACY_DEBUG_PROPERTIES to extend the table; remove them once the
affected releases are no longer supported.
"""

from __future__ import annotations

import logging

from sketchbuild.configure.packages import PlatformRelease
from sketchbuild.core.properties import PropertyStore

logger = logging.getLogger(__name__)

_SAMD_DEBUG = {
    "debug.executable": "{build.path}/{build.project_name}.elf",
    "debug.toolchain": "gcc",
    "debug.toolchain.path": "{runtime.tools.arm-none-eabi-gcc-7-2017q4.path}/bin/",
    "debug.toolchain.prefix": "arm-none-eabi-",
    "debug.server": "openocd",
    "debug.server.openocd.path": "{runtime.tools.openocd-0.10.0-arduino7.path}/bin/openocd",
    "debug.server.openocd.scripts_dir": "{runtime.tools.openocd-0.10.0-arduino7.path}/share/openocd/scripts/",
    "debug.server.openocd.script": "{runtime.platform.path}/variants/{build.variant}/{build.openocdscript}",
}

# "vendor:arch@version" -> debug properties
LEGACY_DEBUG_PROPERTIES: dict[str, dict[str, str]] = {
    "arduino:samd@1.8.8": _SAMD_DEBUG,
    "arduino:samd@1.8.9": _SAMD_DEBUG,
}


def legacy_debug_properties(platform: PlatformRelease) -> PropertyStore | None:
    """Return the compatibility debug layer for a platform release, if any."""
    props = LEGACY_DEBUG_PROPERTIES.get(str(platform))
    if props is None:
        return None
    return PropertyStore(props)


def apply_legacy_debug_compat(properties: PropertyStore, platform: PlatformRelease) -> bool:
    """Inject legacy debug properties when the store has no debugger configured.

    Returns:
        True if properties were injected.
    """
    if properties.contains_key("debug.executable"):
        return False
    layer = legacy_debug_properties(platform)
    if layer is None:
        return False
    logger.info("Using built-in debug configuration for %s", platform)
    properties.merge(layer)
    return True
