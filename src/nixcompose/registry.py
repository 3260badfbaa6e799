# SPDX-License-Identifier: MIT
# Copyright (c) 2025 Blackcat Informatics® Inc.
"""Read-only package registries queried by environment name."""

from __future__ import annotations

import json
import logging
import tomllib
from collections.abc import Iterable, Mapping
from pathlib import Path
from typing import Any, Protocol, runtime_checkable

from pydantic import ValidationError

from .config.models import ConfigError
from .constants import DEFAULT_SYSTEMS
from .errors import UnsupportedEnvironmentError
from .models import PackageDefinition, PackageIndex

LOGGER = logging.getLogger(__name__)

SYSTEMS_KEY = "systems"
SHARED_KEY = "shared"


@runtime_checkable
class PackageRegistry(Protocol):
    """Source of per-environment package indexes."""

    def environments(self) -> tuple[str, ...]:
        """Return the supported environment names in a stable order."""
        ...

    def lookup(self, environment: str) -> PackageIndex:
        """Return the package index for ``environment``.

        Raises:
            UnsupportedEnvironmentError: If ``environment`` is not supported.
        """
        ...


class RegistrySnapshot:
    """Immutable in-memory registry built from per-system package tables."""

    def __init__(self, indexes: Mapping[str, PackageIndex]) -> None:
        self._indexes = dict(sorted(indexes.items()))

    @classmethod
    def from_mapping(
        cls,
        data: Mapping[str, Any],
        *,
        systems: Iterable[str] | None = None,
    ) -> RegistrySnapshot:
        """Build a snapshot from a ``{"systems": ..., "shared": ...}`` document.

        Packages under ``shared`` are published to every system; per-system
        entries replace shared ones with the same name. ``systems`` limits or
        extends the enumerated set; systems without a table receive only the
        shared packages.

        Raises:
            ConfigError: If the document is malformed.
        """

        shared_raw = data.get(SHARED_KEY, {})
        systems_raw = data.get(SYSTEMS_KEY, {})
        if not isinstance(shared_raw, Mapping) or not isinstance(systems_raw, Mapping):
            raise ConfigError("registry snapshot 'shared' and 'systems' must be tables")
        names = tuple(systems) if systems is not None else tuple(systems_raw) or DEFAULT_SYSTEMS
        indexes: dict[str, PackageIndex] = {}
        for system in names:
            per_system = systems_raw.get(system, {})
            if not isinstance(per_system, Mapping):
                raise ConfigError(f"registry entry for '{system}' must be a table")
            merged = {**shared_raw, **per_system}
            try:
                indexes[system] = PackageIndex.from_raw(merged, environment=system)
            except ValidationError as exc:
                raise ConfigError(f"invalid package definition for '{system}': {exc}") from exc
        return cls(indexes)

    @classmethod
    def from_packages(
        cls,
        packages: Iterable[PackageDefinition],
        *,
        systems: Iterable[str] = DEFAULT_SYSTEMS,
    ) -> RegistrySnapshot:
        """Publish the same ``packages`` for each of ``systems``."""

        entries = {package.name: package for package in packages}
        return cls({system: PackageIndex(entries, environment=system) for system in systems})

    def environments(self) -> tuple[str, ...]:
        return tuple(self._indexes)

    def lookup(self, environment: str) -> PackageIndex:
        try:
            return self._indexes[environment]
        except KeyError as exc:
            raise UnsupportedEnvironmentError(environment, self._indexes) from exc


def load_registry_snapshot(path: Path, *, systems: Iterable[str] | None = None) -> RegistrySnapshot:
    """Load a registry snapshot from a TOML or JSON document.

    Raises:
        ConfigError: If the file is missing or cannot be parsed.
    """

    if not path.is_file():
        raise ConfigError(f"registry snapshot not found: {path}")
    try:
        if path.suffix == ".json":
            data = json.loads(path.read_text(encoding="utf-8"))
        else:
            with path.open("rb") as handle:
                data = tomllib.load(handle)
    except (json.JSONDecodeError, tomllib.TOMLDecodeError) as exc:
        raise ConfigError(f"failed to parse registry snapshot {path}: {exc}") from exc
    if not isinstance(data, Mapping):
        raise ConfigError(f"registry snapshot {path} must be a table")
    snapshot = RegistrySnapshot.from_mapping(data, systems=systems)
    LOGGER.debug("loaded registry snapshot path=%s systems=%s", path, ",".join(snapshot.environments()))
    return snapshot


__all__ = ["PackageRegistry", "RegistrySnapshot", "load_registry_snapshot"]
