# SPDX-License-Identifier: MIT
"""Parallel, incremental compilation of sketch build directories.

Each source file is compiled with the platform recipe for its extension
(``recipe.c.o.pattern``, ``recipe.cpp.o.pattern``, ``recipe.S.o.pattern``),
expanded against the build properties with ``{includes}``,
``{source_file}`` and ``{object_file}`` bound for that file. The object
file sits next to the source's relative location: ``<build>/<rel>.o``.

An object that exists and is not older than its source is skipped.
Compilation runs on a bounded thread pool; the first failure stops new
files from starting, lets running ones finish, and is then raised.
"""

from __future__ import annotations

import logging
import os
import shlex
import subprocess
import threading
from collections.abc import Sequence
from concurrent.futures import ThreadPoolExecutor
from dataclasses import dataclass
from pathlib import Path
from typing import Protocol, runtime_checkable

from sketchbuild.builders.progress import (
    CompilePhase,
    NullCallback,
    ProgressCallback,
    SynchronizedCallback,
)
from sketchbuild.core.errors import (
    BuildIOError,
    CompileError,
    ConfigurationError,
    SketchbuildError,
)
from sketchbuild.core.properties import PropertyStore
from sketchbuild.generators.compile_commands import CompilationDatabase
from sketchbuild.util.cpp import include_flags

logger = logging.getLogger(__name__)

SOURCE_EXTENSIONS = (".c", ".cpp", ".S")

SOURCE_SUBDIR = "src"


def normalize_jobs(jobs: int) -> int:
    """Map a requested job count to a worker count (<= 0 means CPU count)."""
    if jobs > 0:
        return jobs
    return os.cpu_count() or 1


@dataclass(frozen=True)
class CommandResult:
    returncode: int
    stdout: str = ""
    stderr: str = ""


@runtime_checkable
class CommandRunner(Protocol):
    """Runs one compiler invocation."""

    def run(self, args: list[str], cwd: Path) -> CommandResult:
        ...


class SubprocessRunner:
    """Runs compiler invocations as subprocesses, capturing output."""

    def run(self, args: list[str], cwd: Path) -> CommandResult:
        result = subprocess.run(args, cwd=cwd, capture_output=True, encoding="utf-8", errors="replace")
        return CommandResult(result.returncode, result.stdout, result.stderr)


def find_source_files(source_dir: Path, *, recursive: bool = False) -> list[Path]:
    """Return compilable files in source_dir, sorted by path."""
    if not source_dir.is_dir():
        return []
    candidates = source_dir.rglob("*") if recursive else source_dir.iterdir()
    return sorted(p for p in candidates if p.is_file() and p.suffix in SOURCE_EXTENSIONS)


class FileCompiler:
    """Compiles single files with the platform recipes.

    Thread-safe: the shared build properties are only read; per-file
    values are bound on a copy.

    Attributes:
        build_properties: Merged build properties holding the recipes.
        includes: Include flags substituted for ``{includes}``.
        runner: Executes compiler commands.
        compilation_database: Records every processed file, if given.
        only_update_compilation_database: Record commands without compiling.
    """

    def __init__(
        self,
        build_properties: PropertyStore,
        includes: Sequence[str] = (),
        *,
        runner: CommandRunner | None = None,
        compilation_database: CompilationDatabase | None = None,
        only_update_compilation_database: bool = False,
    ) -> None:
        self.build_properties = build_properties
        self.includes = list(includes)
        self.runner = runner or SubprocessRunner()
        self.compilation_database = compilation_database
        self.only_update_compilation_database = only_update_compilation_database

    def command_for(self, source: Path, object_file: Path) -> list[str]:
        """Expand the recipe for source into an argument list.

        Raises:
            ConfigurationError: If the platform has no recipe for the file
                                type or the recipe cannot be tokenized.
        """
        recipe = f"recipe{source.suffix}.o.pattern"
        props = self.build_properties.clone()
        props.set("includes", " ".join(self.includes))
        props.set_path("source_file", source)
        props.set_path("object_file", object_file)

        pattern = props.get(recipe)
        if not pattern:
            raise ConfigurationError(f"recipe not found '{recipe}'", str(source))
        command = props.expand_props_in_string(pattern, location=str(source))
        try:
            return shlex.split(command)
        except ValueError as e:
            raise ConfigurationError(f"invalid command line for '{recipe}': {e}", str(source)) from e

    def is_up_to_date(self, source: Path, object_file: Path) -> bool:
        if not object_file.exists():
            return False
        try:
            return object_file.stat().st_mtime >= source.stat().st_mtime
        except OSError as e:
            raise BuildIOError("checking object file", object_file, e) from e

    def compile(self, source: Path, object_file: Path, cwd: Path) -> CompilePhase:
        """Compile one file (or record it only).

        Raises:
            CompileError: If the compiler fails.
        """
        args = self.command_for(source, object_file)
        if self.compilation_database is not None:
            self.compilation_database.add(source, object_file, args, cwd)

        if self.only_update_compilation_database:
            return CompilePhase.RECORDED
        if self.is_up_to_date(source, object_file):
            logger.debug("Using previously compiled file: %s", object_file)
            return CompilePhase.SKIPPED

        try:
            object_file.parent.mkdir(parents=True, exist_ok=True)
        except OSError as e:
            raise BuildIOError("creating object directory", object_file.parent, e) from e

        logger.info("%s", " ".join(shlex.quote(a) for a in args))
        try:
            result = self.runner.run(args, cwd)
        except OSError as e:
            raise CompileError(source, None, str(e)) from e
        if result.returncode != 0:
            raise CompileError(source, result.returncode, result.stderr + result.stdout)
        if result.stderr:
            logger.info("%s", result.stderr.rstrip())
        return CompilePhase.COMPILED


def compile_files(
    source_dir: Path,
    build_path: Path,
    compiler: FileCompiler,
    *,
    recursive: bool = False,
    jobs: int = 0,
    progress: ProgressCallback | None = None,
) -> list[Path]:
    """Compile every source file in source_dir on a pool of jobs workers.

    Args:
        source_dir: Directory to scan for .c/.cpp/.S files.
        build_path: Root under which object files are placed.
        compiler: The per-file compiler.
        recursive: Also scan subdirectories.
        jobs: Worker count; <= 0 means the number of CPUs.
        progress: Receives one event per file.

    Returns:
        Object files, in completion order (not source order when jobs > 1).

    Raises:
        SketchbuildError: The first per-file failure, after running
                          workers have finished.
    """
    sources = find_source_files(source_dir, recursive=recursive)
    if not sources:
        return []

    sink = SynchronizedCallback(progress or NullCallback())
    total = len(sources)
    objects: list[Path] = []
    errors: list[SketchbuildError] = []
    lock = threading.Lock()
    failed = threading.Event()

    def work(source: Path) -> None:
        if failed.is_set():
            return
        object_file = build_path / (str(source.relative_to(source_dir)) + ".o")
        try:
            phase = compiler.compile(source, object_file, build_path)
        except SketchbuildError as e:
            failed.set()
            with lock:
                errors.append(e)
                done = len(objects)
            sink.on_progress(str(source), CompilePhase.FAILED, done, total, e.message)
            return
        except Exception:
            failed.set()
            raise
        with lock:
            objects.append(object_file)
            done = len(objects)
        sink.on_progress(str(source), phase, done, total, str(object_file))

    workers = min(normalize_jobs(jobs), total)
    logger.debug("Compiling %d files from %s with %d jobs", total, source_dir, workers)
    with ThreadPoolExecutor(max_workers=workers, thread_name_prefix="compile") as executor:
        futures = [executor.submit(work, source) for source in sources]
    for future in futures:
        future.result()

    if errors:
        raise errors[0]
    return objects


def compile_files_recursive(
    source_dir: Path,
    build_path: Path,
    compiler: FileCompiler,
    *,
    jobs: int = 0,
    progress: ProgressCallback | None = None,
) -> list[Path]:
    return compile_files(source_dir, build_path, compiler, recursive=True, jobs=jobs, progress=progress)


def build_sketch(
    sketch_build_path: Path,
    build_properties: PropertyStore,
    include_folders: Sequence[Path] = (),
    *,
    only_update_compilation_database: bool = False,
    compilation_database: CompilationDatabase | None = None,
    jobs: int = 0,
    runner: CommandRunner | None = None,
    progress: ProgressCallback | None = None,
) -> list[Path]:
    """Compile a prepared sketch build directory.

    Compiles the files directly in sketch_build_path, then everything under
    its ``src`` subdirectory if present.

    Returns:
        All object files produced (or that would be produced).
    """
    try:
        sketch_build_path.mkdir(parents=True, exist_ok=True)
    except OSError as e:
        raise BuildIOError("creating sketch build directory", sketch_build_path, e) from e

    compiler = FileCompiler(
        build_properties,
        include_flags(list(include_folders)),
        runner=runner,
        compilation_database=compilation_database,
        only_update_compilation_database=only_update_compilation_database,
    )
    objects = compile_files(sketch_build_path, sketch_build_path, compiler, jobs=jobs, progress=progress)

    src_path = sketch_build_path / SOURCE_SUBDIR
    if src_path.is_dir():
        objects.extend(compile_files_recursive(src_path, src_path, compiler, jobs=jobs, progress=progress))
    return objects
