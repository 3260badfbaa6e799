# SPDX-License-Identifier: MIT
# Copyright (c) 2025 Blackcat Informatics® Inc.
"""Pure package-index transforms applied in a fixed order.

An overlay is any callable taking a :class:`PackageIndex` and returning a new
one. :func:`apply_overlays` folds a sequence of overlays left to right, so a
later overlay sees (and may replace) everything earlier overlays produced.
"""

from __future__ import annotations

import logging
from collections.abc import Callable, Iterable, Mapping, Sequence
from dataclasses import dataclass, field
from functools import reduce
from typing import Any, TypeAlias

from pydantic import BaseModel, ConfigDict, Field

from .models import PackageDefinition, PackageIndex

LOGGER = logging.getLogger(__name__)

Overlay: TypeAlias = Callable[[PackageIndex], PackageIndex]

TOOLCHAIN_SEPARATOR = "."


def apply_overlays(index: PackageIndex, overlays: Sequence[Overlay]) -> PackageIndex:
    """Return ``index`` transformed by each overlay in declaration order."""

    return reduce(_apply_one, overlays, index)


def _apply_one(index: PackageIndex, overlay: Overlay) -> PackageIndex:
    result = overlay(index)
    LOGGER.debug(
        "applied overlay name=%s environment=%s packages=%d",
        getattr(overlay, "name", repr(overlay)),
        index.environment,
        len(result),
    )
    return result


@dataclass(frozen=True, slots=True)
class AddPackages:
    """Overlay adding or replacing whole package definitions."""

    packages: tuple[PackageDefinition, ...]
    name: str = "add-packages"

    def __call__(self, index: PackageIndex) -> PackageIndex:
        return index.with_entries({package.name: package for package in self.packages})


@dataclass(frozen=True, slots=True)
class OverridePackage:
    """Overlay replacing selected fields of an existing package.

    The base package must already exist; a missing base raises
    :class:`~nixcompose.errors.MissingPackageError` instead of creating it.
    """

    target: str
    changes: Mapping[str, Any] = field(default_factory=dict)
    name: str = "override-package"

    def __call__(self, index: PackageIndex) -> PackageIndex:
        base = index.lookup(self.target)
        updated = PackageDefinition.model_validate({**base.model_dump(), **dict(self.changes), "name": base.name})
        return index.with_entries({base.name: updated})


def add_packages(*packages: PackageDefinition, name: str = "add-packages") -> AddPackages:
    """Return an overlay publishing ``packages``."""

    return AddPackages(tuple(packages), name=name)


def override_package(target: str, *, name: str | None = None, **changes: Any) -> OverridePackage:
    """Return an overlay updating fields of the existing ``target`` package."""

    return OverridePackage(target, dict(changes), name=name or f"override-{target}")


class ToolchainRelease(BaseModel):
    """One published toolchain release and the components its profiles ship."""

    model_config = ConfigDict(frozen=True)

    channel: str
    version: str
    profiles: dict[str, tuple[str, ...]] = Field(default_factory=dict)
    extensions: tuple[str, ...] = ()

    def package_name(self, family: str) -> str:
        return TOOLCHAIN_SEPARATOR.join((family, self.channel, self.version))

    def as_definition(self, family: str) -> PackageDefinition:
        return PackageDefinition(
            name=self.package_name(family),
            version=self.version,
            channel=self.channel,
            attributes={
                "family": family,
                "profiles": {profile: list(components) for profile, components in self.profiles.items()},
                "available_extensions": list(self.extensions),
            },
        )


@dataclass(frozen=True, slots=True)
class ToolchainOverlay:
    """Overlay publishing toolchain releases as ``family.channel.version`` entries."""

    family: str
    releases: tuple[ToolchainRelease, ...]
    name: str = "toolchain"

    def __call__(self, index: PackageIndex) -> PackageIndex:
        published = {release.package_name(self.family): release.as_definition(self.family) for release in self.releases}
        return index.with_entries(published)


def toolchain_overlay(family: str, releases: Iterable[ToolchainRelease | Mapping[str, Any]]) -> ToolchainOverlay:
    """Return an overlay publishing ``releases`` under ``family``."""

    parsed = tuple(
        release if isinstance(release, ToolchainRelease) else ToolchainRelease.model_validate(release)
        for release in releases
    )
    return ToolchainOverlay(family, parsed, name=f"{family}-overlay")


__all__ = [
    "AddPackages",
    "Overlay",
    "OverridePackage",
    "ToolchainOverlay",
    "ToolchainRelease",
    "add_packages",
    "apply_overlays",
    "override_package",
    "toolchain_overlay",
]
