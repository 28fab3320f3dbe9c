# SPDX-License-Identifier: MIT
"""
Sketchbuild: build configuration and compilation for Arduino-style sketches.

Sketchbuild resolves the layered board, platform, tool and programmer
properties of an installed hardware package into a build or debug
configuration, merges sketch sources into a translation unit, and compiles
the result incrementally on a pool of workers.
"""

from __future__ import annotations

__version__ = "0.1.0"

# Re-export commonly used classes for convenient imports
from sketchbuild.builders.session import SketchBuildSession  # noqa: E402
from sketchbuild.configure.hardware import HardwarePackageManager  # noqa: E402
from sketchbuild.configure.resolver import ConfigurationResolver, DebugConfig  # noqa: E402
from sketchbuild.core.properties import PropertyStore  # noqa: E402
from sketchbuild.core.sketch import Sketch  # noqa: E402

__all__ = [
    "ConfigurationResolver",
    "DebugConfig",
    "HardwarePackageManager",
    "PropertyStore",
    "Sketch",
    "SketchBuildSession",
    "__version__",
]
