# SPDX-License-Identifier: MIT
"""Sketch model and discovery.

A sketch is a directory named after its main file:

    Blink/
        Blink.ino          main file
        helpers.ino        other sketch files (merged with the main file)
        util.cpp, util.h   additional files (copied to the build directory)
        src/...            additional files, compiled recursively
        sketch.json        optional metadata (default board and port)
"""

from __future__ import annotations

import hashlib
import json
import logging
import tempfile
from dataclasses import dataclass, field
from pathlib import Path

from sketchbuild.core.errors import BuildIOError, InvalidArgumentError

logger = logging.getLogger(__name__)

MAIN_FILE_EXTENSIONS = (".ino", ".pde")

ADDITIONAL_FILE_EXTENSIONS = frozenset(
    {".c", ".cpp", ".cc", ".cxx", ".c++", ".S", ".h", ".hh", ".hpp", ".hxx", ".h++", ".tpp", ".ipp"}
)

METADATA_FILE = "sketch.json"


@dataclass(frozen=True)
class SketchMetadata:
    """Metadata stored alongside a sketch.

    Attributes:
        fqbn: Default board identifier for the sketch, if any.
        port: Default upload/debug port address, if any.
    """

    fqbn: str = ""
    port: str = ""

    @classmethod
    def load(cls, path: Path) -> SketchMetadata:
        """Load sketch.json; a missing file yields empty metadata."""
        if not path.exists():
            return cls()
        try:
            with open(path, encoding="utf-8") as f:
                data = json.load(f)
        except OSError as e:
            raise BuildIOError("reading sketch metadata", path, e) from e
        except json.JSONDecodeError as e:
            raise InvalidArgumentError(f"invalid sketch metadata: {e}", str(path)) from e
        if not isinstance(data, dict):
            raise InvalidArgumentError("sketch metadata must be a JSON object", str(path))
        cpu = data.get("cpu") or {}
        if not isinstance(cpu, dict):
            raise InvalidArgumentError("sketch metadata 'cpu' must be a JSON object", str(path))
        return cls(fqbn=cpu.get("fqbn", ""), port=cpu.get("port", ""))


@dataclass(frozen=True)
class Sketch:
    """A user's sketch.

    Attributes:
        full_path: The sketch root directory.
        main_file: The main sketch file.
        other_sketch_files: Other top-level sketch files, in merge order.
        additional_files: Non-sketch files to copy into the build directory.
        metadata: Default board/port information.
    """

    full_path: Path
    main_file: Path
    other_sketch_files: tuple[Path, ...] = ()
    additional_files: tuple[Path, ...] = ()
    metadata: SketchMetadata = field(default_factory=SketchMetadata)

    @property
    def name(self) -> str:
        return self.full_path.name

    @property
    def build_path(self) -> Path:
        """Default build directory, unique per sketch location."""
        digest = hashlib.md5(str(self.full_path).encode("utf-8")).hexdigest().upper()
        return Path(tempfile.gettempdir()) / f"sketchbuild-sketch-{digest}"

    @classmethod
    def load(cls, path: Path | str) -> Sketch:
        """Discover a sketch from its directory or main file.

        Raises:
            InvalidArgumentError: If the path is not a sketch.
        """
        path = Path(path).absolute()
        if path.is_file():
            path = path.parent
        if not path.is_dir():
            raise InvalidArgumentError("sketch not found", str(path))

        main_file: Path | None = None
        for ext in MAIN_FILE_EXTENSIONS:
            candidate = path / f"{path.name}{ext}"
            if candidate.is_file():
                main_file = candidate
                break
        if main_file is None:
            raise InvalidArgumentError(f"no valid sketch found: missing {path.name}.ino", str(path))

        other_files: list[Path] = []
        additional: list[Path] = []
        for entry in sorted(path.iterdir()):
            if not entry.is_file() or entry == main_file or entry.name.startswith("."):
                continue
            if entry.suffix in MAIN_FILE_EXTENSIONS:
                other_files.append(entry)
            elif entry.suffix in ADDITIONAL_FILE_EXTENSIONS:
                additional.append(entry)

        src_dir = path / "src"
        if src_dir.is_dir():
            for entry in sorted(src_dir.rglob("*")):
                if entry.is_file() and entry.suffix in ADDITIONAL_FILE_EXTENSIONS:
                    additional.append(entry)

        logger.debug(
            "Loaded sketch %s: %d sketch files, %d additional files",
            path,
            1 + len(other_files),
            len(additional),
        )
        return cls(
            full_path=path,
            main_file=main_file,
            other_sketch_files=tuple(other_files),
            additional_files=tuple(additional),
            metadata=SketchMetadata.load(path / METADATA_FILE),
        )
