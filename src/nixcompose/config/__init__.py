# SPDX-License-Identifier: MIT
# Copyright (c) 2025 Blackcat Informatics® Inc.
"""Project configuration models and loaders."""

from __future__ import annotations

from .models import (
    ConfigError,
    EvaluationConfig,
    FormatterConfig,
    HarvestConfig,
    ProjectConfig,
    RegistryConfig,
    ShellConfig,
)
from .loader import ConfigLoader, PyProjectConfigSource, TomlConfigSource, deep_merge, load_config

__all__ = [
    "ConfigError",
    "ConfigLoader",
    "EvaluationConfig",
    "FormatterConfig",
    "HarvestConfig",
    "ProjectConfig",
    "PyProjectConfigSource",
    "RegistryConfig",
    "ShellConfig",
    "TomlConfigSource",
    "deep_merge",
    "load_config",
]
