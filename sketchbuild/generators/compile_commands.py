# SPDX-License-Identifier: MIT
"""compile_commands.json compilation database for IDE integration.

Records every file the compile pipeline compiles (or would compile, in
compilation-database-only mode) so that clangd, clang-tidy and IDEs can
reproduce the compiler invocation.

Format:
    [
        {
            "directory": "/tmp/sketchbuild-sketch-.../",
            "file": "/tmp/sketchbuild-sketch-.../Blink.ino.cpp",
            "arguments": ["avr-g++", "-c", ...],
            "output": "/tmp/sketchbuild-sketch-.../Blink.ino.cpp.o"
        },
        ...
    ]
"""

from __future__ import annotations

import json
import logging
import threading
from pathlib import Path
from typing import Any

from sketchbuild.core.errors import BuildIOError, ConfigurationError

logger = logging.getLogger(__name__)

DATABASE_FILE = "compile_commands.json"


class CompilationDatabase:
    """Thread-safe, in-memory compilation database persisted as JSON.

    Compile workers call add() concurrently. An entry for the same source
    and output replaces the previous one.

    Example:
        db = CompilationDatabase(build_path / "compile_commands.json")
        db.add(source, obj, ["gcc", "-c", str(source), "-o", str(obj)], build_path)
        db.save()
    """

    def __init__(self, path: Path) -> None:
        self.path = Path(path)
        self._entries: dict[tuple[str, str], dict[str, Any]] = {}
        self._lock = threading.Lock()

    @classmethod
    def load(cls, path: Path) -> CompilationDatabase:
        """Load an existing database; a missing file gives an empty one."""
        db = cls(path)
        if not db.path.exists():
            return db
        try:
            with open(db.path, encoding="utf-8") as f:
                data = json.load(f)
        except OSError as e:
            raise BuildIOError("reading compilation database", db.path, e) from e
        except json.JSONDecodeError as e:
            raise ConfigurationError(f"invalid compilation database: {e}", str(db.path)) from e
        if not isinstance(data, list):
            raise ConfigurationError("compilation database must be a JSON array", str(db.path))
        for entry in data:
            if not isinstance(entry, dict):
                raise ConfigurationError("compilation database entries must be JSON objects", str(db.path))
            key = (entry.get("file", ""), entry.get("output", ""))
            db._entries[key] = entry
        return db

    def add(
        self,
        source: Path,
        output: Path,
        arguments: list[str],
        directory: Path | None = None,
    ) -> None:
        """Record the invocation that compiles source into output."""
        entry = {
            "directory": str((directory or source.parent).absolute()),
            "file": str(source),
            "arguments": list(arguments),
            "output": str(output),
        }
        with self._lock:
            self._entries[(entry["file"], entry["output"])] = entry

    @property
    def entries(self) -> list[dict[str, Any]]:
        with self._lock:
            return list(self._entries.values())

    def __len__(self) -> int:
        with self._lock:
            return len(self._entries)

    def save(self) -> None:
        """Write the database to its path."""
        entries = self.entries
        try:
            self.path.parent.mkdir(parents=True, exist_ok=True)
            with open(self.path, "w", encoding="utf-8") as f:
                json.dump(entries, f, indent=2)
                f.write("\n")
        except OSError as e:
            raise BuildIOError("writing compilation database", self.path, e) from e
        logger.info("Wrote %d entries to %s", len(entries), self.path)
