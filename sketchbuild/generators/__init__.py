# SPDX-License-Identifier: MIT
"""Output generators for sketchbuild."""

from sketchbuild.generators.compile_commands import CompilationDatabase

__all__ = [
    "CompilationDatabase",
]
