# SPDX-License-Identifier: MIT
"""A single sketch build, from an empty build directory to object files.

States:
    START -> DIRECTORY_PREPARED -> SOURCES_MERGED -> SOURCES_WRITTEN
          -> COMPILING -> DONE
    COMPILING -> FAILED on the first compile error

Any error before COMPILING also leaves the session FAILED. Object files
from completed compile jobs stay on disk after a failure.
"""

from __future__ import annotations

import logging
from collections.abc import Mapping, Sequence
from dataclasses import dataclass
from enum import Enum
from pathlib import Path

from sketchbuild.builders.compile import CommandRunner, build_sketch
from sketchbuild.builders.progress import ProgressCallback
from sketchbuild.builders.sketch import (
    MergedUnit,
    SketchSourceMerger,
    make_build_path,
    write_merged_unit,
)
from sketchbuild.core.errors import SketchbuildError
from sketchbuild.core.properties import PropertyStore
from sketchbuild.core.sketch import Sketch
from sketchbuild.generators.compile_commands import CompilationDatabase

logger = logging.getLogger(__name__)


class BuildState(Enum):
    START = "start"
    DIRECTORY_PREPARED = "directory_prepared"
    SOURCES_MERGED = "sources_merged"
    SOURCES_WRITTEN = "sources_written"
    COMPILING = "compiling"
    DONE = "done"
    FAILED = "failed"


@dataclass(frozen=True)
class BuildResult:
    """Outcome of a successful build.

    Attributes:
        object_files: Produced object files, in completion order.
        line_offset: Lines injected before the main file in the merged unit.
        merged_source: Path of the merged translation unit.
    """

    object_files: list[Path]
    line_offset: int
    merged_source: Path


class SketchBuildSession:
    """Runs one build of a sketch into a build directory.

    Example:
        session = SketchBuildSession(sketch, build_path, resolved.properties, jobs=4)
        result = session.run()
    """

    def __init__(
        self,
        sketch: Sketch,
        build_path: Path,
        build_properties: PropertyStore,
        *,
        include_folders: Sequence[Path] = (),
        overrides: Mapping[str, str] | None = None,
        jobs: int = 0,
        only_update_compilation_database: bool = False,
        compilation_database: CompilationDatabase | None = None,
        runner: CommandRunner | None = None,
        progress: ProgressCallback | None = None,
    ) -> None:
        self.sketch = sketch
        self.build_path = build_path
        self.build_properties = build_properties
        self.include_folders = list(include_folders)
        self.overrides = dict(overrides or {})
        self.jobs = jobs
        self.only_update_compilation_database = only_update_compilation_database
        self.compilation_database = compilation_database
        self.runner = runner
        self.progress = progress
        self.state = BuildState.START

    def _advance(self, state: BuildState) -> None:
        logger.debug("Build of %s: %s -> %s", self.sketch.name, self.state.value, state.value)
        self.state = state

    def run(self) -> BuildResult:
        """Prepare the build directory and compile the sketch.

        Raises:
            SketchbuildError: The first error; the session is then FAILED.
        """
        if self.state is not BuildState.START:
            raise SketchbuildError(f"build session already ran (state: {self.state.value})")
        try:
            return self._run()
        except SketchbuildError:
            self._advance(BuildState.FAILED)
            raise

    def _run(self) -> BuildResult:
        make_build_path(self.build_path)
        self._advance(BuildState.DIRECTORY_PREPARED)

        merger = SketchSourceMerger(self.sketch, self.overrides)
        unit: MergedUnit = merger.merge()
        self._advance(BuildState.SOURCES_MERGED)

        merged_source = write_merged_unit(self.sketch, self.build_path, unit)
        merger.copy_additional_files(self.build_path)
        self._advance(BuildState.SOURCES_WRITTEN)

        self._advance(BuildState.COMPILING)
        objects = build_sketch(
            self.build_path,
            self.build_properties,
            self.include_folders,
            only_update_compilation_database=self.only_update_compilation_database,
            compilation_database=self.compilation_database,
            jobs=self.jobs,
            runner=self.runner,
            progress=self.progress,
        )
        if self.compilation_database is not None:
            self.compilation_database.save()
        self._advance(BuildState.DONE)
        return BuildResult(objects, unit.line_offset, merged_source)
