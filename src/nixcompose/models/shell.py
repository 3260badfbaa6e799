# SPDX-License-Identifier: MIT
# Copyright (c) 2025 Blackcat Informatics® Inc.
"""Composed development shell descriptions."""

from __future__ import annotations

from pydantic import BaseModel, ConfigDict

from ..errors import MissingPackageError
from .packages import PackageDefinition


class ShellDescription(BaseModel):
    """Ordered package list and settings for one environment's shell.

    Package order is significant: :meth:`resolve` walks the list front to back,
    so an earlier package shadows later ones providing the same component.
    """

    model_config = ConfigDict(frozen=True)

    environment: str
    packages: tuple[PackageDefinition, ...] = ()
    strict_deps: bool = True
    formatter: str | None = None

    @property
    def package_names(self) -> tuple[str, ...]:
        """Return package names in search order."""

        return tuple(package.name for package in self.packages)

    def resolve(self, component: str) -> PackageDefinition:
        """Return the first package providing ``component``.

        Raises:
            MissingPackageError: If no package in the shell provides it.
        """

        for package in self.packages:
            if component in package.components():
                return package
        raise MissingPackageError(component, environment=self.environment)

    def to_json(self) -> str:
        """Serialise the description to canonical JSON."""

        return self.model_dump_json(indent=2)


__all__ = ["ShellDescription"]
