# SPDX-License-Identifier: MIT
# Copyright (c) 2025 Blackcat Informatics® Inc.
"""Per-environment formatter references."""

from __future__ import annotations

from collections.abc import Mapping
from dataclasses import dataclass, field

from .constants import DEFAULT_FORMATTER
from .models import PackageIndex


@dataclass(frozen=True, slots=True)
class FormatterMapping:
    """Map environment names to the formatter package they use."""

    default: str = DEFAULT_FORMATTER
    overrides: Mapping[str, str] = field(default_factory=dict)

    def reference_for(self, environment: str, index: PackageIndex | None = None) -> str:
        """Return the formatter reference for ``environment``.

        When ``index`` is given the formatter must exist in it and the
        reference is qualified with the package version.

        Raises:
            MissingPackageError: If ``index`` lacks the formatter package.
        """

        name = self.overrides.get(environment, self.default)
        if index is None:
            return name
        package = index.lookup(name)
        return f"{package.name}-{package.version}" if package.version else package.name


__all__ = ["FormatterMapping"]
