# SPDX-License-Identifier: MIT
"""C/C++ source text helpers.

Used when generating merged sketch sources and compiler include flags.
"""

from __future__ import annotations

from os import PathLike
from pathlib import Path


def quote_string(value: str) -> str:
    """Quote a string as a C string literal, escaping backslashes and quotes."""
    escaped = value.replace("\\", "\\\\").replace('"', '\\"')
    return f'"{escaped}"'


def line_marker(path: str | PathLike[str], line: int = 1) -> str:
    """Return a ``#line`` directive attributing following text to path."""
    return f"#line {line} {quote_string(str(path))}\n"


def wrap_with_hyphen_i(path: str | PathLike[str]) -> str:
    """Return a quoted include flag for a directory: ``"-I<path>"``."""
    return f'"-I{Path(path)}"'


def include_flags(folders: list[Path] | list[str]) -> list[str]:
    return [wrap_with_hyphen_i(folder) for folder in folders]
