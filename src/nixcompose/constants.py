# SPDX-License-Identifier: MIT
# Copyright (c) 2025 Blackcat Informatics® Inc.
"""Constants shared across the composer, evaluator and harvester."""

from __future__ import annotations

from typing import Final

DEFAULT_SYSTEMS: Final[tuple[str, ...]] = (
    "aarch64-darwin",
    "aarch64-linux",
    "x86_64-darwin",
    "x86_64-linux",
)

DEFAULT_FORMATTER: Final[str] = "alejandra"

PROJECT_CONFIG_FILENAME: Final[str] = "nixcompose.toml"
PYPROJECT_SECTION: Final[str] = "nixcompose"

STORE_PATHS_PER_QUERY: Final[int] = 8
MAX_CONCURRENT_STORE_QUERIES: Final[int] = 8
HARVEST_OUTPUT_FILENAME: Final[str] = "nixpkgs-hashes.csv"

__all__ = [
    "DEFAULT_FORMATTER",
    "DEFAULT_SYSTEMS",
    "HARVEST_OUTPUT_FILENAME",
    "MAX_CONCURRENT_STORE_QUERIES",
    "PROJECT_CONFIG_FILENAME",
    "PYPROJECT_SECTION",
    "STORE_PATHS_PER_QUERY",
]
