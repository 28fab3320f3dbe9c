# SPDX-License-Identifier: MIT
"""Sketch preparation and the incremental compile pipeline."""

from sketchbuild.builders.compile import FileCompiler, build_sketch, compile_files
from sketchbuild.builders.session import BuildResult, BuildState, SketchBuildSession
from sketchbuild.builders.sketch import SketchSourceMerger, prepare_sketch_build_path

__all__ = [
    "BuildResult",
    "BuildState",
    "FileCompiler",
    "SketchBuildSession",
    "SketchSourceMerger",
    "build_sketch",
    "compile_files",
    "prepare_sketch_build_path",
]
