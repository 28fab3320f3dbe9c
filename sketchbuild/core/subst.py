# SPDX-License-Identifier: MIT
"""Placeholder substitution engine for sketchbuild.

Platform property values reference other properties with ``{key}``
placeholders, e.g.::

    compiler.path={runtime.tools.avr-gcc.path}/bin/
    recipe.c.o.pattern="{compiler.path}{compiler.c.cmd}" {includes} "{source_file}"

Expansion rules:
1. A placeholder is replaced by the fully expanded value of its key.
2. Keys absent from the lookup expand to the empty string.
3. A key that transitively references itself is a configuration error
   (CircularReferenceError), never a silent truncation.
4. Nesting deeper than MAX_EXPANSION_DEPTH raises ExpansionDepthError.

Placeholder keys cannot contain braces or whitespace, so C initializer
lists and similar text in recipe patterns are left untouched.
"""

from __future__ import annotations

import logging
import re
from collections.abc import Mapping

from sketchbuild.core.errors import CircularReferenceError, ExpansionDepthError

logger = logging.getLogger(__name__)

# Match: {key} where key has no braces or whitespace
PLACEHOLDER_PATTERN = re.compile(r"\{([^{}\s]+)\}")

MAX_EXPANSION_DEPTH = 64


def find_placeholders(template: str) -> list[str]:
    """Return the keys referenced by a template, in order of appearance."""
    return PLACEHOLDER_PATTERN.findall(template)


def expand(
    template: str,
    lookup: Mapping[str, str],
    *,
    location: str | None = None,
) -> str:
    """Expand every ``{key}`` placeholder in a template.

    Args:
        template: Text containing placeholders.
        lookup: Mapping providing the value of each key.
        location: Optional context for error messages (e.g. a board id).

    Returns:
        The template with all placeholders substituted.

    Raises:
        CircularReferenceError: If a key's expansion requires itself.
        ExpansionDepthError: If placeholders nest beyond the bound.
    """
    return _expand(template, lookup, (), location)


def _expand(
    template: str,
    lookup: Mapping[str, str],
    expanding: tuple[str, ...],
    location: str | None,
) -> str:
    def replace_match(match: re.Match[str]) -> str:
        key = match.group(1)
        value = _lookup(key, lookup, expanding, location)
        return _expand(value, lookup, expanding + (key,), location)

    # Substitution can compose new placeholders ({a{b}} -> {ax}), so rescan until stable
    for _ in range(MAX_EXPANSION_DEPTH):
        if "{" not in template:
            return template
        result = PLACEHOLDER_PATTERN.sub(replace_match, template)
        if result == template:
            return result
        template = result
    raise ExpansionDepthError(expanding[-1] if expanding else template, MAX_EXPANSION_DEPTH)


def _lookup(
    key: str,
    lookup: Mapping[str, str],
    expanding: tuple[str, ...],
    location: str | None,
) -> str:
    """Look up a key, checking for cycles and the depth bound."""
    if key in expanding:
        start = expanding.index(key)
        raise CircularReferenceError(list(expanding[start:]) + [key], location)
    if len(expanding) >= MAX_EXPANSION_DEPTH:
        raise ExpansionDepthError(expanding[0], MAX_EXPANSION_DEPTH)

    value = lookup.get(key)
    if value is None:
        logger.debug("Property '%s' is not defined, expanding to empty string", key)
        return ""
    return value
