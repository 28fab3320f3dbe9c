# SPDX-License-Identifier: MIT
"""Tests for sketchbuild.builders.sketch."""

from __future__ import annotations

import os
from pathlib import Path

import pytest

from sketchbuild.builders.sketch import (
    UMBRELLA_INCLUDE,
    SketchSourceMerger,
    merged_source_path,
    prepare_sketch_build_path,
    write_if_different,
)
from sketchbuild.core.errors import PathComputationError
from sketchbuild.core.sketch import Sketch


def make_sketch(
    root: Path,
    main: str,
    others: dict[str, str] | None = None,
    extra: dict[str, str] | None = None,
) -> Sketch:
    """Create a sketch on disk; others are .ino files, extra additional files."""
    root.mkdir(parents=True, exist_ok=True)
    main_file = root / f"{root.name}.ino"
    main_file.write_text(main)
    other_files = []
    for name, text in (others or {}).items():
        (root / name).write_text(text)
        other_files.append(root / name)
    additional = []
    for name, text in (extra or {}).items():
        path = root / name
        path.parent.mkdir(parents=True, exist_ok=True)
        path.write_text(text)
        additional.append(path)
    return Sketch(root, main_file, tuple(other_files), tuple(additional))


class TestMerge:
    def test_injects_umbrella_include(self, tmp_path: Path):
        sketch = make_sketch(tmp_path / "Blink", "void setup(){}")
        unit = SketchSourceMerger(sketch).merge()
        assert unit.line_offset == 2
        lines = unit.source.splitlines()
        assert lines[0] == "#include <Arduino.h>"
        assert lines[1] == f'#line 1 "{sketch.main_file}"'
        assert lines[2] == "void setup(){}"

    def test_existing_include_not_duplicated(self, tmp_path: Path):
        sketch = make_sketch(tmp_path / "Blink", '#include "Arduino.h"\nvoid setup(){}\n')
        unit = SketchSourceMerger(sketch).merge()
        assert unit.line_offset == 1
        assert not unit.source.startswith(UMBRELLA_INCLUDE)
        assert unit.source.count("Arduino.h") == 1

    @pytest.mark.parametrize("include", ["#include <Arduino.h>", "  #  include<Arduino.h>", "#include \"Arduino.h\""])
    def test_include_spellings(self, tmp_path: Path, include: str):
        sketch = make_sketch(tmp_path / "Blink", f"// header\n{include}\n")
        assert SketchSourceMerger(sketch).merge().line_offset == 1

    def test_include_in_other_file_does_not_count(self, tmp_path: Path):
        sketch = make_sketch(tmp_path / "Blink", "void setup(){}\n", others={"b.ino": "#include <Arduino.h>\n"})
        assert SketchSourceMerger(sketch).merge().line_offset == 2

    def test_other_files_in_order_with_markers(self, tmp_path: Path):
        sketch = make_sketch(
            tmp_path / "Blink",
            "void setup(){}",
            others={"a.ino": "void a(){}", "b.ino": "void b(){}"},
        )
        source = SketchSourceMerger(sketch).merge().source
        a_marker = f'#line 1 "{sketch.full_path / "a.ino"}"\nvoid a(){{}}\n'
        b_marker = f'#line 1 "{sketch.full_path / "b.ino"}"\nvoid b(){{}}\n'
        assert a_marker in source
        assert b_marker in source
        assert source.index(a_marker) < source.index(b_marker)
        assert source.endswith(b_marker)

    def test_override_replaces_disk_content(self, tmp_path: Path):
        sketch = make_sketch(tmp_path / "Blink", "on disk", others={"a.ino": "also on disk"})
        merger = SketchSourceMerger(sketch, overrides={"Blink.ino": "edited", "a.ino": "edited a"})
        source = merger.merge().source
        assert "on disk" not in source
        assert "edited\n" in source
        assert "edited a\n" in source

    def test_marker_escapes_quotes(self, tmp_path: Path):
        sketch = make_sketch(tmp_path / 'we"ird', "x")
        source = SketchSourceMerger(sketch).merge().source
        assert 'we\\"ird' in source

    def test_relative_path_outside_sketch(self, tmp_path: Path):
        sketch = make_sketch(tmp_path / "Blink", "x")
        with pytest.raises(PathComputationError):
            SketchSourceMerger(sketch).relative_path(tmp_path / "elsewhere.cpp")

    def test_invalid_utf8_round_trips(self, tmp_path: Path):
        sketch = make_sketch(tmp_path / "Blink", "")
        sketch.main_file.write_bytes(b'const char* s = "\xff";\n')
        build = tmp_path / "build"
        prepare_sketch_build_path(sketch, build)
        assert b'"\xff"' in merged_source_path(sketch, build).read_bytes()


class TestWriteIfDifferent:
    def test_writes_new_file(self, tmp_path: Path):
        dest = tmp_path / "out.h"
        assert write_if_different(b"content", dest)
        assert dest.read_bytes() == b"content"

    def test_same_content_not_rewritten(self, tmp_path: Path):
        dest = tmp_path / "out.h"
        write_if_different(b"content", dest)
        os.utime(dest, (1_000_000, 1_000_000))
        assert not write_if_different(b"content", dest)
        assert dest.stat().st_mtime == 1_000_000

    def test_changed_content_rewritten(self, tmp_path: Path):
        dest = tmp_path / "out.h"
        write_if_different(b"old", dest)
        assert write_if_different(b"new", dest)
        assert dest.read_bytes() == b"new"


class TestCopyAdditionalFiles:
    def test_copies_with_marker(self, tmp_path: Path):
        sketch = make_sketch(tmp_path / "Blink", "x", extra={"util.h": "#pragma once\n", "src/lib/a.cpp": "int a;\n"})
        build = tmp_path / "build"
        written = SketchSourceMerger(sketch).copy_additional_files(build)
        assert written == [build / "util.h", build / "src" / "lib" / "a.cpp"]
        assert (build / "util.h").read_text() == f'#line 1 "{sketch.full_path / "util.h"}"\n#pragma once\n'
        assert (build / "src" / "lib" / "a.cpp").read_text().endswith("int a;\n")

    def test_idempotent_then_updates(self, tmp_path: Path):
        sketch = make_sketch(tmp_path / "Blink", "x", extra={"util.h": "v1\n"})
        build = tmp_path / "build"
        merger = SketchSourceMerger(sketch)
        assert merger.copy_additional_files(build) == [build / "util.h"]
        assert merger.copy_additional_files(build) == []

        (sketch.full_path / "util.h").write_text("v2\n")
        assert merger.copy_additional_files(build) == [build / "util.h"]
        assert (build / "util.h").read_text().endswith("v2\n")

    def test_override_applies_to_additional_files(self, tmp_path: Path):
        sketch = make_sketch(tmp_path / "Blink", "x", extra={"src/util.h": "disk\n"})
        build = tmp_path / "build"
        SketchSourceMerger(sketch, overrides={"src/util.h": "edited\n"}).copy_additional_files(build)
        assert (build / "src" / "util.h").read_text().endswith("edited\n")


class TestPrepareSketchBuildPath:
    def test_end_to_end(self, tmp_path: Path):
        sketch = make_sketch(tmp_path / "Sketch", "void setup(){}", extra={"data.txt": "hello"})
        build = tmp_path / "build"

        offset = prepare_sketch_build_path(sketch, build)

        assert offset == 2
        merged = (build / "Sketch.ino.cpp").read_text().splitlines()
        assert merged[0] == "#include <Arduino.h>"
        assert merged[1].startswith("#line 1 ")
        assert merged[1].endswith('Sketch.ino"')
        data = (build / "data.txt").read_text().splitlines()
        assert data[0].startswith("#line 1 ")
        assert data[0].endswith('data.txt"')
        assert data[1] == "hello"

    def test_creates_build_directory(self, tmp_path: Path):
        sketch = make_sketch(tmp_path / "Blink", "x")
        build = tmp_path / "deep" / "build"
        prepare_sketch_build_path(sketch, build)
        assert merged_source_path(sketch, build) == build / "Blink.ino.cpp"
        assert (build / "Blink.ino.cpp").is_file()
