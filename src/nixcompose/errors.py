# SPDX-License-Identifier: MIT
# Copyright (c) 2025 Blackcat Informatics® Inc.
"""Exception hierarchy shared by the composer, evaluator and loaders."""

from __future__ import annotations

from collections.abc import Iterable


class UnsupportedEnvironmentError(LookupError):
    """Raised when a system is not part of the enumerated environment set."""

    def __init__(self, environment: str, supported: Iterable[str] = ()) -> None:
        choices = ", ".join(sorted(supported))
        detail = f"; expected one of: {choices}" if choices else ""
        super().__init__(f"unsupported environment '{environment}'{detail}")
        self.environment = environment
        self.supported = tuple(sorted(supported))


class MissingPackageError(LookupError):
    """Raised when a package name is absent from a package index."""

    def __init__(self, name: str, *, environment: str | None = None) -> None:
        where = f" for environment '{environment}'" if environment else ""
        super().__init__(f"package '{name}' is not defined{where}")
        self.name = name
        self.environment = environment


class SourceNotFoundError(LookupError):
    """Raised when a pinned source does not resolve to a readable tree."""


class ConfigurationError(Exception):
    """Raised when the evaluator rejects an evaluation option."""


class EvaluatorError(RuntimeError):
    """Raised when the external evaluator exits unsuccessfully."""

    def __init__(self, message: str, *, returncode: int | None = None, stderr: str | None = None) -> None:
        super().__init__(message)
        self.returncode = returncode
        self.stderr = stderr


__all__ = [
    "ConfigurationError",
    "EvaluatorError",
    "MissingPackageError",
    "SourceNotFoundError",
    "UnsupportedEnvironmentError",
]
