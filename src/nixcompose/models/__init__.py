# SPDX-License-Identifier: MIT
# Copyright (c) 2025 Blackcat Informatics® Inc.
"""Immutable data models produced and consumed by the composer."""

from __future__ import annotations

from .evaluation import (
    DEFAULT_ENTRY_POINT,
    PRESETS,
    RELEASE_ATTR_NAMES,
    RELEASE_METADATA,
    EvaluationJob,
    EvaluationOptions,
    PinnedSource,
)
from .packages import PackageDefinition, PackageIndex
from .shell import ShellDescription

__all__ = [
    "DEFAULT_ENTRY_POINT",
    "EvaluationJob",
    "EvaluationOptions",
    "PRESETS",
    "PackageDefinition",
    "PackageIndex",
    "PinnedSource",
    "RELEASE_ATTR_NAMES",
    "RELEASE_METADATA",
    "ShellDescription",
]
