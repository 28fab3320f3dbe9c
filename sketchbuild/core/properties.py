# SPDX-License-Identifier: MIT
"""Ordered property store used for every layer of build configuration.

A PropertyStore maps dotted keys to string values:

    store = PropertyStore({"build.mcu": "atmega328p", "build.f_cpu": "16000000L"})
    store.set("compiler.path", "{runtime.tools.avr-gcc.path}/bin/")
    build = store.subtree("build")      # {"mcu": ..., "f_cpu": ...}

Layers are combined with merge(), where the later layer wins for every key
it defines. Values may reference other keys with ``{key}`` placeholders
which are resolved by expand_props_in_string() (see sketchbuild.core.subst).
"""

from __future__ import annotations

import platform
from collections.abc import Iterator, Mapping
from os import PathLike
from pathlib import Path

from sketchbuild.core.errors import BuildIOError, ConfigurationError
from sketchbuild.core.subst import expand

# Suffixes of OS-specific keys in properties files ("key.linux=...")
_OS_SUFFIXES = {
    "Linux": "linux",
    "Darwin": "macosx",
    "Windows": "windows",
}


def current_os_suffix() -> str:
    """Return the properties-file suffix for the running OS."""
    return _OS_SUFFIXES.get(platform.system(), platform.system().lower())


class PropertyStore:
    """Ordered, mutable mapping from dotted keys to string values.

    Insertion order is preserved for iteration but carries no semantic
    weight: two stores with the same key/value pairs compare equal.
    """

    __slots__ = ("_data",)

    def __init__(self, data: Mapping[str, str] | None = None) -> None:
        self._data: dict[str, str] = {}
        if data:
            for key, value in data.items():
                self.set(key, value)

    # Basic mapping operations

    def set(self, key: str, value: str) -> None:
        """Set a key to a string value."""
        self._data[key] = str(value)

    def set_path(self, key: str, path: str | PathLike[str]) -> None:
        """Store the string form of a filesystem path under a key."""
        self._data[key] = str(Path(path))

    def get(self, key: str, default: str = "") -> str:
        """Return the value for key, or default (empty string) if absent."""
        return self._data.get(key, default)

    def contains_key(self, key: str) -> bool:
        return key in self._data

    def remove(self, key: str) -> None:
        self._data.pop(key, None)

    def keys(self) -> list[str]:
        return list(self._data)

    def items(self) -> list[tuple[str, str]]:
        return list(self._data.items())

    def as_dict(self) -> dict[str, str]:
        """Return a plain dict copy of the store."""
        return dict(self._data)

    def __contains__(self, key: object) -> bool:
        return key in self._data

    def __getitem__(self, key: str) -> str:
        return self._data[key]

    def __setitem__(self, key: str, value: str) -> None:
        self.set(key, value)

    def __iter__(self) -> Iterator[str]:
        return iter(self._data)

    def __len__(self) -> int:
        return len(self._data)

    def __eq__(self, other: object) -> bool:
        if isinstance(other, PropertyStore):
            return self._data == other._data
        if isinstance(other, Mapping):
            return self._data == dict(other)
        return NotImplemented

    def __repr__(self) -> str:
        return f"PropertyStore({self._data!r})"

    # Layering

    def merge(self, *others: PropertyStore | Mapping[str, str]) -> PropertyStore:
        """Overwrite or insert every key of each other store, left to right.

        Returns self so merges can be chained.
        """
        for other in others:
            for key, value in other.items():
                self.set(key, value)
        return self

    def clone(self) -> PropertyStore:
        return PropertyStore(self._data)

    def subtree(self, prefix: str) -> PropertyStore:
        """Return the keys under ``prefix.`` with that prefix stripped.

        Does not modify this store.

        Example:
            {"a.b": "1", "a.c": "2", "d": "3"}.subtree("a") -> {"b": "1", "c": "2"}
        """
        head = prefix + "."
        result = PropertyStore()
        for key, value in self._data.items():
            if key.startswith(head):
                result.set(key[len(head) :], value)
        return result

    def first_level_keys(self) -> list[str]:
        """Return the distinct first components of all keys, in order."""
        seen: dict[str, None] = {}
        for key in self._data:
            seen.setdefault(key.split(".", 1)[0], None)
        return list(seen)

    # Expansion

    def expand_props_in_string(self, value: str, *, location: str | None = None) -> str:
        """Expand ``{key}`` placeholders in value using this store.

        Keys missing from the store expand to the empty string. Circular
        references raise CircularReferenceError.
        """
        return expand(value, self._data, location=location)

    def expanded(self, context: PropertyStore | None = None) -> PropertyStore:
        """Return a copy with every value expanded.

        Args:
            context: Store used to resolve placeholders. Defaults to self;
                     pass the full merged store when expanding a subtree.
        """
        lookup = context if context is not None else self
        result = PropertyStore()
        for key, value in self._data.items():
            result.set(key, lookup.expand_props_in_string(value))
        return result

    # Loading

    @classmethod
    def loads(cls, text: str, *, source: str | None = None) -> PropertyStore:
        """Parse properties-file text.

        Lines are ``key=value``; blank lines and lines starting with ``#``
        are ignored. Keys ending in an OS suffix (``.linux``, ``.macosx``,
        ``.windows``) override the plain key on that OS.

        Raises:
            ConfigurationError: On a non-comment line without '='.
        """
        store = cls()
        for lineno, raw in enumerate(text.splitlines(), start=1):
            line = raw.strip()
            if not line or line.startswith("#"):
                continue
            key, sep, value = line.partition("=")
            if not sep:
                where = f"{source}:{lineno}" if source else f"line {lineno}"
                raise ConfigurationError(f"invalid line format, should be 'key=value': {line!r}", where)
            store.set(key.strip(), value.strip())

        suffix = "." + current_os_suffix()
        for key, value in store.items():
            if key.endswith(suffix):
                store.set(key[: -len(suffix)], value)
        return store

    @classmethod
    def load(cls, path: Path | str) -> PropertyStore:
        """Load a properties file such as platform.txt or boards.txt."""
        path = Path(path)
        try:
            text = path.read_text(encoding="utf-8")
        except OSError as e:
            raise BuildIOError("reading properties file", path, e) from e
        return cls.loads(text, source=str(path))
