# SPDX-License-Identifier: MIT
# Copyright (c) 2025 Blackcat Informatics® Inc.
"""Compose Nix development shells and evaluator jobs from ordered overlays and policies."""

from __future__ import annotations

from .composer import EnvironmentComposer, compose_evaluation_job, compose_shell
from .errors import (
    ConfigurationError,
    EvaluatorError,
    MissingPackageError,
    SourceNotFoundError,
    UnsupportedEnvironmentError,
)
from .formatters import FormatterMapping
from .hashes import HashAlgo, HashFormat, HashParseError, NixHash
from .models import (
    RELEASE_ATTR_NAMES,
    RELEASE_METADATA,
    EvaluationJob,
    EvaluationOptions,
    PackageDefinition,
    PackageIndex,
    PinnedSource,
    ShellDescription,
)
from .overlays import add_packages, apply_overlays, override_package, toolchain_overlay
from .policies import PackagePolicy, ToolchainPolicy
from .registry import PackageRegistry, RegistrySnapshot

__version__ = "0.1.0"

__all__ = [
    "ConfigurationError",
    "EnvironmentComposer",
    "EvaluationJob",
    "EvaluationOptions",
    "EvaluatorError",
    "FormatterMapping",
    "HashAlgo",
    "HashFormat",
    "HashParseError",
    "MissingPackageError",
    "NixHash",
    "PackageDefinition",
    "PackageIndex",
    "PackagePolicy",
    "PackageRegistry",
    "PinnedSource",
    "RELEASE_ATTR_NAMES",
    "RELEASE_METADATA",
    "RegistrySnapshot",
    "ShellDescription",
    "SourceNotFoundError",
    "ToolchainPolicy",
    "UnsupportedEnvironmentError",
    "__version__",
    "add_packages",
    "apply_overlays",
    "compose_evaluation_job",
    "compose_shell",
    "override_package",
    "toolchain_overlay",
]
