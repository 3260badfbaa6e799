# SPDX-License-Identifier: MIT
# Copyright (c) 2025 Blackcat Informatics® Inc.
"""Selection policies choosing concrete package variants from an index."""

from __future__ import annotations

import logging
from collections.abc import Mapping, Sequence
from dataclasses import dataclass
from typing import Any, Final, Protocol, runtime_checkable

from packaging.version import InvalidVersion, Version

from .errors import MissingPackageError
from .models import PackageDefinition, PackageIndex
from .overlays import TOOLCHAIN_SEPARATOR

LOGGER = logging.getLogger(__name__)

LATEST: Final[str] = "latest"
DEFAULT_PROFILE: Final[str] = "minimal"


@runtime_checkable
class SelectionPolicy(Protocol):
    """Rule resolving one logical slot to a concrete package definition."""

    @property
    def slot(self) -> str:
        """Return the primary slot this policy fills."""
        ...

    def claims(self) -> tuple[str, ...]:
        """Return every slot the policy names, primary slot first."""
        ...

    def resolve(self, index: PackageIndex) -> PackageDefinition:
        """Return the selected package from ``index``."""
        ...


@dataclass(frozen=True, slots=True)
class PackagePolicy:
    """Select a package by its index name."""

    name: str
    slot_name: str | None = None

    @property
    def slot(self) -> str:
        return self.slot_name or self.name

    def claims(self) -> tuple[str, ...]:
        return (self.slot,)

    def resolve(self, index: PackageIndex) -> PackageDefinition:
        return index.lookup(self.name)


@dataclass(frozen=True, slots=True)
class ToolchainPolicy:
    """Select a toolchain release, a profile and a set of extensions.

    With ``version="latest"`` the newest release of ``channel`` that ships the
    profile and every requested extension wins; releases missing a component
    are skipped.
    """

    family: str
    channel: str
    version: str = LATEST
    profile: str = DEFAULT_PROFILE
    extensions: tuple[str, ...] = ()
    slot_name: str | None = None

    @property
    def slot(self) -> str:
        return self.slot_name or f"{self.family}-{self.channel}"

    def claims(self) -> tuple[str, ...]:
        return (self.slot, *self.extensions)

    def resolve(self, index: PackageIndex) -> PackageDefinition:
        prefix = TOOLCHAIN_SEPARATOR.join((self.family, self.channel)) + TOOLCHAIN_SEPARATOR
        releases = index.with_prefix(prefix)
        if not releases:
            raise MissingPackageError(prefix.rstrip(TOOLCHAIN_SEPARATOR), environment=index.environment)
        if self.version != LATEST:
            return self._materialise(index.lookup(prefix + self.version), index)
        ordered = sorted(releases.values(), key=lambda package: version_key(package.version), reverse=True)
        for release in ordered:
            if self._missing_components(release) is None:
                return self._materialise(release, index)
        return self._materialise(ordered[0], index)

    def _missing_components(self, release: PackageDefinition) -> str | None:
        profiles = release.attributes.get("profiles", {})
        if self.profile not in profiles:
            return f"{release.name}{TOOLCHAIN_SEPARATOR}{self.profile}"
        available = set(release.attributes.get("available_extensions", ()))
        for extension in self.extensions:
            if extension not in available:
                return f"{release.name}:{extension}"
        return None

    def _materialise(self, release: PackageDefinition, index: PackageIndex) -> PackageDefinition:
        missing = self._missing_components(release)
        if missing is not None:
            raise MissingPackageError(missing, environment=index.environment)
        profiles: Mapping[str, Sequence[str]] = release.attributes["profiles"]
        return PackageDefinition(
            name=TOOLCHAIN_SEPARATOR.join((release.name, self.profile)),
            version=release.version,
            channel=release.channel,
            profile=self.profile,
            extensions=self.extensions,
            provides=tuple(profiles[self.profile]),
            attributes={"family": self.family, "release": release.name},
        )


def version_key(version: str | None) -> tuple[int, Any]:
    """Return a sort key ordering PEP 440 versions above opaque strings."""

    if version is None:
        return (0, "")
    try:
        return (2, Version(version))
    except InvalidVersion:
        return (1, version)


def resolve_policies(index: PackageIndex, policies: Sequence[SelectionPolicy]) -> tuple[PackageDefinition, ...]:
    """Resolve ``policies`` in order, letting later claims on a slot win.

    Policies are settled from last to first and only surviving policies hold
    claims. A package whose primary slot is claimed by a later survivor is
    dropped; a package keeps only the extensions no later survivor claims.
    Surviving packages keep declaration order.
    """

    resolved = [policy.resolve(index) for policy in policies]
    claimed: set[str] = set()
    selected: list[PackageDefinition] = []
    for policy, package in zip(reversed(policies), reversed(resolved)):
        if policy.slot in claimed:
            LOGGER.debug("slot %s superseded by a later policy; dropping %s", policy.slot, package.name)
            continue
        lost = [ext for ext in package.extensions if ext in claimed]
        if lost:
            LOGGER.debug("extensions %s of %s superseded by a later policy", ",".join(lost), package.name)
            package = package.without_extensions(lost)
        claimed.update(policy.claims())
        selected.append(package)
    selected.reverse()
    return tuple(selected)


__all__ = [
    "DEFAULT_PROFILE",
    "LATEST",
    "PackagePolicy",
    "SelectionPolicy",
    "ToolchainPolicy",
    "resolve_policies",
    "version_key",
]
