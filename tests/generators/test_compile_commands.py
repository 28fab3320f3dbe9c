# SPDX-License-Identifier: MIT
"""Tests for sketchbuild.generators.compile_commands."""

from __future__ import annotations

import json
import threading
from pathlib import Path

import pytest

from sketchbuild.core.errors import ConfigurationError
from sketchbuild.generators.compile_commands import DATABASE_FILE, CompilationDatabase


class TestCompilationDatabase:
    def test_entry_format(self, tmp_path: Path):
        db = CompilationDatabase(tmp_path / DATABASE_FILE)
        source = tmp_path / "Blink.ino.cpp"
        db.add(source, tmp_path / "Blink.ino.cpp.o", ["g++", "-c", str(source)], tmp_path)

        assert db.entries == [
            {
                "directory": str(tmp_path),
                "file": str(source),
                "arguments": ["g++", "-c", str(source)],
                "output": str(tmp_path / "Blink.ino.cpp.o"),
            }
        ]

    def test_directory_defaults_to_source_parent(self, tmp_path: Path):
        db = CompilationDatabase(tmp_path / DATABASE_FILE)
        db.add(tmp_path / "src" / "a.c", tmp_path / "a.c.o", ["gcc"])
        assert db.entries[0]["directory"] == str(tmp_path / "src")

    def test_same_file_replaced(self, tmp_path: Path):
        db = CompilationDatabase(tmp_path / DATABASE_FILE)
        db.add(tmp_path / "a.c", tmp_path / "a.c.o", ["gcc", "-O0"])
        db.add(tmp_path / "a.c", tmp_path / "a.c.o", ["gcc", "-O2"])
        assert len(db) == 1
        assert db.entries[0]["arguments"] == ["gcc", "-O2"]

    def test_save_and_load(self, tmp_path: Path):
        path = tmp_path / "build" / DATABASE_FILE
        db = CompilationDatabase(path)
        db.add(tmp_path / "a.c", tmp_path / "a.c.o", ["gcc", "-c"])
        db.save()

        text = path.read_text()
        assert text.endswith("]\n")
        assert json.loads(text) == db.entries

        loaded = CompilationDatabase.load(path)
        assert loaded.entries == db.entries

    def test_load_missing(self, tmp_path: Path):
        assert len(CompilationDatabase.load(tmp_path / DATABASE_FILE)) == 0

    def test_load_invalid(self, tmp_path: Path):
        path = tmp_path / DATABASE_FILE
        path.write_text("not json")
        with pytest.raises(ConfigurationError):
            CompilationDatabase.load(path)

    @pytest.mark.parametrize("text", ['{"file": "a.cpp"}', '["a.cpp"]'])
    def test_load_wrong_shape(self, tmp_path: Path, text: str):
        path = tmp_path / DATABASE_FILE
        path.write_text(text)
        with pytest.raises(ConfigurationError):
            CompilationDatabase.load(path)

    def test_concurrent_add(self, tmp_path: Path):
        db = CompilationDatabase(tmp_path / DATABASE_FILE)

        def add_many(start: int) -> None:
            for i in range(start, start + 50):
                db.add(tmp_path / f"f{i}.c", tmp_path / f"f{i}.c.o", ["gcc"])

        threads = [threading.Thread(target=add_many, args=(n * 50,)) for n in range(4)]
        for t in threads:
            t.start()
        for t in threads:
            t.join()
        assert len(db) == 200
