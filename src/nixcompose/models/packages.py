# SPDX-License-Identifier: MIT
# Copyright (c) 2025 Blackcat Informatics® Inc.
"""Package definitions and the immutable per-environment package index."""

from __future__ import annotations

from collections.abc import Iterable, Iterator, Mapping
from types import MappingProxyType
from typing import Any

from pydantic import BaseModel, ConfigDict, Field, field_validator

from ..errors import MissingPackageError


class PackageDefinition(BaseModel):
    """Resolved description of a single package variant."""

    model_config = ConfigDict(frozen=True, extra="forbid")

    name: str
    version: str | None = None
    channel: str | None = None
    profile: str | None = None
    extensions: tuple[str, ...] = ()
    provides: tuple[str, ...] = ()
    unfree: bool = False
    attributes: dict[str, Any] = Field(default_factory=dict)

    @field_validator("extensions", "provides", mode="before")
    @classmethod
    def _coerce_names(cls, value: Any) -> tuple[str, ...]:
        if value is None:
            return ()
        if isinstance(value, str):
            return (value,)
        return tuple(str(item) for item in value)

    def components(self) -> tuple[str, ...]:
        """Return every component name this package makes available.

        The package name comes first, followed by ``provides`` and then the
        enabled extensions, without duplicates.
        """

        seen: dict[str, None] = {self.name: None}
        for item in (*self.provides, *self.extensions):
            seen.setdefault(item, None)
        return tuple(seen)

    def without_extensions(self, names: Iterable[str]) -> PackageDefinition:
        """Return a copy with the ``names`` extensions disabled."""

        dropped = set(names)
        return self.model_copy(update={"extensions": tuple(ext for ext in self.extensions if ext not in dropped)})


class PackageIndex(Mapping[str, PackageDefinition]):
    """Read-only mapping from package name to :class:`PackageDefinition`."""

    __slots__ = ("_entries", "environment")

    def __init__(
        self,
        entries: Mapping[str, PackageDefinition] | None = None,
        *,
        environment: str | None = None,
    ) -> None:
        self._entries: Mapping[str, PackageDefinition] = MappingProxyType(dict(entries or {}))
        self.environment = environment

    @classmethod
    def from_raw(cls, raw: Mapping[str, Mapping[str, Any]], *, environment: str | None = None) -> PackageIndex:
        """Build an index from plain mappings keyed by package name."""

        entries = {
            name: PackageDefinition.model_validate({"name": name, **dict(payload)}) for name, payload in raw.items()
        }
        return cls(entries, environment=environment)

    def __getitem__(self, name: str) -> PackageDefinition:
        return self._entries[name]

    def __iter__(self) -> Iterator[str]:
        return iter(self._entries)

    def __len__(self) -> int:
        return len(self._entries)

    def __repr__(self) -> str:
        return f"PackageIndex(environment={self.environment!r}, packages={len(self)})"

    def lookup(self, name: str) -> PackageDefinition:
        """Return the definition for ``name``.

        Raises:
            MissingPackageError: If ``name`` is not part of the index.
        """

        try:
            return self._entries[name]
        except KeyError as exc:
            raise MissingPackageError(name, environment=self.environment) from exc

    def with_entries(self, updates: Mapping[str, PackageDefinition]) -> PackageIndex:
        """Return a new index where ``updates`` add or replace entries."""

        merged = dict(self._entries)
        merged.update(updates)
        return PackageIndex(merged, environment=self.environment)

    def with_prefix(self, prefix: str) -> dict[str, PackageDefinition]:
        """Return entries whose name starts with ``prefix``, in index order."""

        return {name: package for name, package in self._entries.items() if name.startswith(prefix)}


__all__ = ["PackageDefinition", "PackageIndex"]
