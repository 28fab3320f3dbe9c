# SPDX-License-Identifier: MIT
"""Sketch source merging and build directory preparation.

The sketch files (main file first, then the other .ino files in order) are
merged into a single translation unit. A ``#line`` directive is emitted
before each file so compiler diagnostics point at the original files, and
``#include <Arduino.h>`` is prepended when the main file lacks it.

Additional files are copied to the build directory with a leading
``#line`` directive. They are written only when their content changed, so
tools that compare modification times do not see spurious changes.
"""

from __future__ import annotations

import logging
import re
from collections.abc import Mapping
from dataclasses import dataclass
from pathlib import Path

from sketchbuild.core.errors import BuildIOError, PathComputationError
from sketchbuild.core.sketch import Sketch
from sketchbuild.util.cpp import line_marker

logger = logging.getLogger(__name__)

UMBRELLA_HEADER = "Arduino.h"
UMBRELLA_INCLUDE = f"#include <{UMBRELLA_HEADER}>\n"

# Compiled once at import; read-only and shared by all builds
INCLUDES_UMBRELLA_HEADER = re.compile(
    r"^\s*#\s*include\s*[<\"]" + re.escape(UMBRELLA_HEADER) + r"[>\"]",
    re.MULTILINE,
)

# Sketch file contents are treated as bytes; undecodable bytes round-trip
_ENCODING = "utf-8"
_ERRORS = "surrogateescape"


@dataclass(frozen=True)
class MergedUnit:
    """A merged sketch translation unit.

    Attributes:
        source: The merged source text.
        line_offset: Lines inserted before the first line of the main file.
    """

    source: str
    line_offset: int


def write_if_different(content: bytes, dest: Path) -> bool:
    """Write content to dest unless dest already holds exactly that content.

    Returns:
        True if the file was written.

    Raises:
        BuildIOError: If reading the existing file or writing fails.
    """
    if dest.exists():
        try:
            existing = dest.read_bytes()
        except OSError as e:
            raise BuildIOError("unable to read contents of the destination item", dest, e) from e
        if existing == content:
            logger.debug("Unchanged, not writing %s", dest)
            return False

    try:
        dest.write_bytes(content)
    except OSError as e:
        raise BuildIOError("unable to write to destination file", dest, e) from e
    logger.debug("Wrote %s", dest)
    return True


class SketchSourceMerger:
    """Merges a sketch's sources and copies its additional files.

    Overrides replace the on-disk content of sketch files. They are keyed
    by the file's path relative to the sketch root, in POSIX form
    (e.g. ``"Blink.ino"`` or ``"src/util.h"``).

    Example:
        merger = SketchSourceMerger(sketch, overrides={"Blink.ino": text})
        unit = merger.merge()
    """

    def __init__(self, sketch: Sketch, overrides: Mapping[str, str] | None = None) -> None:
        self.sketch = sketch
        self.overrides: dict[str, str] = dict(overrides or {})

    def relative_path(self, path: Path) -> str:
        """Return path relative to the sketch root, as an override key.

        Raises:
            PathComputationError: If path is not inside the sketch.
        """
        try:
            return path.relative_to(self.sketch.full_path).as_posix()
        except ValueError:
            raise PathComputationError(path, self.sketch.full_path) from None

    def read_bytes(self, path: Path) -> bytes:
        """Return the override for path, or its on-disk content."""
        key = self.relative_path(path)
        if key in self.overrides:
            return self.overrides[key].encode(_ENCODING, _ERRORS)
        try:
            return path.read_bytes()
        except OSError as e:
            raise BuildIOError("reading file", path, e) from e

    def read_source(self, path: Path) -> str:
        return self.read_bytes(path).decode(_ENCODING, _ERRORS)

    def merge(self) -> MergedUnit:
        """Merge the main file and the other sketch files.

        Returns:
            The merged unit; line_offset counts the lines emitted before
            line 1 of the main file (umbrella include and ``#line``).
        """
        parts: list[str] = []
        line_offset = 0

        main_source = self.read_source(self.sketch.main_file)
        if not INCLUDES_UMBRELLA_HEADER.search(main_source):
            parts.append(UMBRELLA_INCLUDE)
            line_offset += 1

        parts.append(line_marker(self.sketch.main_file))
        parts.append(main_source + "\n")
        line_offset += 1

        for path in self.sketch.other_sketch_files:
            source = self.read_source(path)
            parts.append(line_marker(path))
            parts.append(source + "\n")

        return MergedUnit("".join(parts), line_offset)

    def copy_additional_files(self, build_path: Path) -> list[Path]:
        """Copy additional files under build_path, tagging each with ``#line``.

        Returns:
            The destination files that were actually (re)written.
        """
        written: list[Path] = []
        for path in self.sketch.additional_files:
            rel = self.relative_path(path)
            dest = build_path / rel
            try:
                dest.parent.mkdir(parents=True, exist_ok=True)
            except OSError as e:
                raise BuildIOError("unable to create the folder containing the item", dest.parent, e) from e

            content = line_marker(path).encode(_ENCODING, _ERRORS) + self.read_bytes(path)
            if write_if_different(content, dest):
                written.append(dest)
        return written


def merged_source_path(sketch: Sketch, build_path: Path) -> Path:
    """Path of the merged translation unit: ``<build>/<main file name>.cpp``."""
    return build_path / (sketch.main_file.name + ".cpp")


def make_build_path(build_path: Path) -> None:
    try:
        build_path.mkdir(parents=True, exist_ok=True)
    except OSError as e:
        raise BuildIOError("unable to create a folder to save the sketch", build_path, e) from e


def write_merged_unit(sketch: Sketch, build_path: Path, unit: MergedUnit) -> Path:
    """Write the merged unit unconditionally; it is regenerated every build."""
    dest = merged_source_path(sketch, build_path)
    try:
        dest.write_bytes(unit.source.encode(_ENCODING, _ERRORS))
    except OSError as e:
        raise BuildIOError("unable to write merged sketch", dest, e) from e
    return dest


def prepare_sketch_build_path(
    sketch: Sketch,
    build_path: Path,
    overrides: Mapping[str, str] | None = None,
) -> int:
    """Write the merged sketch and additional files into build_path.

    The merged unit is regenerated and written on every call; additional
    files are written only when changed.

    Returns:
        The line offset of the merged unit.
    """
    make_build_path(build_path)
    merger = SketchSourceMerger(sketch, overrides)
    unit = merger.merge()
    write_merged_unit(sketch, build_path, unit)
    merger.copy_additional_files(build_path)
    return unit.line_offset
