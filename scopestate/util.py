"""Small text and collection helpers."""

from __future__ import annotations

import math
import os
import re
from collections.abc import Iterable, Mapping, Sequence
from typing import Any, TypeVar

T = TypeVar("T")

_ENV_VAR_REFERENCE = re.compile(r"\$\{([^\s]*)\}")


def list_difference(a: Sequence[T], b: Sequence[T]) -> tuple[list[T], list[T]]:
    """Return (elements of ``a`` missing from ``b``, elements of ``b`` missing from ``a``)."""
    missing = [elem for elem in a if elem not in b]
    new = [elem for elem in b if elem not in a]
    return missing, new


def _lines(text: str) -> list[str]:
    """Split into lines on ``\\n``, dropping a final empty line and trailing ``\\r``."""
    if not text:
        return []
    parts = text.split("\n")
    if text.endswith("\n"):
        parts.pop()
    return [part[:-1] if part.endswith("\r") else part for part in parts]


def is_blank(text: str) -> bool:
    """Check whether the text is empty once line breaks and surrounding whitespace are removed."""
    return not text.replace("\n", "").strip()


def trim_lines(text: str) -> str:
    """Strip surrounding whitespace from every line of the text."""
    return "\n".join(line.strip() for line in _lines(text))


def average(values: Iterable[float]) -> float:
    """Arithmetic mean of the values; NaN when there are none."""
    total = 0.0
    count = 0
    for value in values:
        total += value
        count += 1
    if count == 0:
        return math.nan
    return total / count


def replace_env_var_references(text: str) -> str:
    """Replace ``${NAME}`` references with environment variables, or with nothing if unset."""
    return _ENV_VAR_REFERENCE.sub(lambda match: os.environ.get(match.group(1), ""), text)


def unindent(text: str) -> str:
    """Remove leading empty lines and the indentation common to all remaining lines."""
    lines = _lines(text)
    while lines and not lines[0]:
        lines.pop(0)
    if not lines:
        return ""
    indent = min(len(line) - len(line.lstrip(" ")) for line in lines)
    return "\n".join(line[indent:] for line in lines)


def enum_parse(name: str, value: str, options: Mapping[str | tuple[str, ...], Any]) -> Any:
    """Map a case-insensitive string onto one of a fixed set of options.

    Keys of ``options`` are either a single accepted string or a tuple of
    alternatives that all map to the same value. Raises ``ValueError`` listing
    every accepted string when nothing matches.
    """
    wanted = value.lower()
    accepted: list[str] = []
    for key, result in options.items():
        alternatives = (key,) if isinstance(key, str) else tuple(key)
        if wanted in alternatives:
            return result
        accepted.extend(alternatives)
    possible = "".join(f"{option} " for option in accepted)
    raise ValueError(f"Couldn't parse {name}: '{wanted}'. Possible values are {possible}")