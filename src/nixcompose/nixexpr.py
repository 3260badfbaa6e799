# SPDX-License-Identifier: MIT
# Copyright (c) 2025 Blackcat Informatics® Inc.
"""Render Python values as Nix expression literals."""

from __future__ import annotations

import math
import re
from collections.abc import Mapping, Sequence
from pathlib import Path
from typing import Any, Final

_IDENTIFIER: Final[re.Pattern[str]] = re.compile(r"^[A-Za-z_][A-Za-z0-9_'-]*$")
_KEYWORDS: Final[frozenset[str]] = frozenset(
    {"assert", "else", "if", "in", "inherit", "let", "or", "rec", "then", "with"},
)


def quote_string(value: str) -> str:
    """Return ``value`` as a double-quoted Nix string."""

    escaped = (
        value.replace("\\", "\\\\")
        .replace('"', '\\"')
        .replace("${", "\\${")
        .replace("\n", "\\n")
        .replace("\r", "\\r")
        .replace("\t", "\\t")
    )
    return f'"{escaped}"'


def attr_name(name: str) -> str:
    """Return ``name`` bare when it is a plain identifier, quoted otherwise."""

    if _IDENTIFIER.match(name) and name not in _KEYWORDS:
        return name
    return quote_string(name)


def to_nix(value: Any) -> str:
    """Render ``value`` as a Nix literal.

    Supports ``None``, booleans, integers, floats, strings, paths, sequences
    and string-keyed mappings.

    Raises:
        TypeError: If ``value`` has no Nix equivalent.
        ValueError: If ``value`` is an infinite or NaN float.
    """

    if value is None:
        return "null"
    if isinstance(value, bool):
        return "true" if value else "false"
    if isinstance(value, int):
        return repr(value)
    if isinstance(value, float):
        return _float_literal(value)
    if isinstance(value, Path):
        return quote_string(str(value))
    if isinstance(value, str):
        return quote_string(value)
    if isinstance(value, Mapping):
        return attrset(value)
    if isinstance(value, Sequence):
        if not value:
            return "[ ]"
        return "[ " + " ".join(_list_item(item) for item in value) + " ]"
    raise TypeError(f"cannot render {type(value).__name__} as a Nix value")


def attrset(values: Mapping[str, Any]) -> str:
    """Render a mapping as a single-line Nix attribute set."""

    if not values:
        return "{ }"
    body = " ".join(f"{attr_name(str(key))} = {to_nix(item)};" for key, item in values.items())
    return f"{{ {body} }}"


def _list_item(item: Any) -> str:
    rendered = to_nix(item)
    # negative numbers parse as subtraction inside lists
    if rendered.startswith("-"):
        return f"({rendered})"
    return rendered


def _float_literal(value: float) -> str:
    if not math.isfinite(value):
        raise ValueError(f"Nix has no literal for {value!r}")
    mantissa, marker, exponent = repr(value).partition("e")
    # Nix float literals need a fractional part before any exponent
    if "." not in mantissa:
        mantissa += ".0"
    return f"{mantissa}{marker}{exponent}"


__all__ = ["attr_name", "attrset", "quote_string", "to_nix"]
