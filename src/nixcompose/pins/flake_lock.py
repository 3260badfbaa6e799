# SPDX-License-Identifier: MIT
# Copyright (c) 2025 Blackcat Informatics® Inc.
"""Typed model of ``flake.lock`` files and input resolution."""

from __future__ import annotations

import json
from collections.abc import Mapping
from pathlib import Path
from typing import Annotated, Any, Literal, TypeAlias

from pydantic import BaseModel, ConfigDict, Field, ValidationError, model_validator
from pydantic.alias_generators import to_camel

from ..config.models import ConfigError
from ..models import PinnedSource
from ..models.evaluation import Fetcher

InputNodeRef: TypeAlias = str | list[str]


class UnknownInputError(LookupError):
    """Raised when an input name or follows path does not resolve to a node."""


class _LockModel(BaseModel):
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True, frozen=True)

    def to_dict(self) -> dict[str, Any]:
        return self.model_dump(by_alias=True, exclude_none=True)


class IndirectRef(_LockModel):
    type: Literal["indirect"] = "indirect"
    id: str
    rev: str | None = None


class TarballRef(_LockModel):
    type: Literal["tarball"] = "tarball"
    url: str


class GitRef(_LockModel):
    type: Literal["git"] = "git"
    url: str
    ref: str | None = None
    rev: str | None = None
    submodules: bool = False

    def to_dict(self) -> dict[str, Any]:
        data = super().to_dict()
        if not self.submodules:
            data.pop("submodules", None)
        return data


class GitHubRef(_LockModel):
    type: Literal["github"] = "github"
    owner: str
    repo: str
    ref: str | None = None
    rev: str | None = None
    dir: str | None = None


FlakeRef: TypeAlias = Annotated[IndirectRef | TarballRef | GitRef | GitHubRef, Field(discriminator="type")]


class LockedInput(_LockModel):
    """A locked reference: the flake reference plus ``lastModified`` and ``narHash``."""

    last_modified: int
    nar_hash: str
    source: FlakeRef

    @model_validator(mode="before")
    @classmethod
    def _split_flattened(cls, data: Any) -> Any:
        if isinstance(data, Mapping) and "source" not in data:
            remainder = dict(data)
            return {
                "lastModified": remainder.pop("lastModified", None),
                "narHash": remainder.pop("narHash", None),
                "source": remainder,
            }
        return data

    def to_dict(self) -> dict[str, Any]:
        return {**self.source.to_dict(), "lastModified": self.last_modified, "narHash": self.nar_hash}


class InputNode(_LockModel):
    flake: bool = True
    inputs: dict[str, InputNodeRef] | None = None
    locked: LockedInput | None = None
    original: FlakeRef | None = None

    def to_dict(self) -> dict[str, Any]:
        data: dict[str, Any] = {}
        if not self.flake:
            data["flake"] = False
        if self.inputs is not None:
            data["inputs"] = dict(self.inputs)
        if self.locked is not None:
            data["locked"] = self.locked.to_dict()
        if self.original is not None:
            data["original"] = self.original.to_dict()
        return data


class FlakeLock(_LockModel):
    """Parsed ``flake.lock`` document."""

    nodes: dict[str, InputNode]
    root: str
    version: int

    @classmethod
    def load(cls, path: Path) -> FlakeLock:
        """Read and validate a lock file.

        Raises:
            ConfigError: If the file is missing or not a valid lock.
        """

        if not path.is_file():
            raise ConfigError(f"flake lock not found: {path}")
        try:
            return cls.model_validate_json(path.read_text(encoding="utf-8"))
        except ValidationError as exc:
            raise ConfigError(f"invalid flake lock {path}: {exc}") from exc

    def to_dict(self) -> dict[str, Any]:
        return {
            "nodes": {name: node.to_dict() for name, node in self.nodes.items()},
            "root": self.root,
            "version": self.version,
        }

    def to_json(self) -> str:
        return json.dumps(self.to_dict(), indent=2) + "\n"

    def node(self, name: str) -> InputNode:
        try:
            return self.nodes[name]
        except KeyError as exc:
            raise UnknownInputError(f"flake lock has no node '{name}'") from exc

    def resolve(self, ref: InputNodeRef) -> str:
        """Return the node name ``ref`` points at.

        A list is a ``follows`` path walked from the root node's inputs.
        """

        if isinstance(ref, str):
            self.node(ref)
            return ref
        current = self.root
        for input_name in ref:
            inputs = self.node(current).inputs or {}
            if input_name not in inputs:
                path = "/".join(ref)
                raise UnknownInputError(f"follows path '{path}' breaks at '{input_name}'")
            current = self.resolve(inputs[input_name])
        return current

    def input_node(self, name: str) -> tuple[str, InputNode]:
        """Return the node a root input ``name`` resolves to."""

        inputs = self.node(self.root).inputs or {}
        if name not in inputs:
            raise UnknownInputError(f"flake has no input '{name}'")
        node_name = self.resolve(inputs[name])
        return node_name, self.nodes[node_name]

    def pinned_source(self, name: str) -> PinnedSource:
        """Return the locked root input ``name`` as a pinned source.

        Raises:
            UnknownInputError: If the input is missing, unlocked or indirect.
            ConfigError: If the locked narHash is not a valid hash.
        """

        node_name, node = self.input_node(name)
        locked = node.locked
        if locked is None:
            raise UnknownInputError(f"flake input '{name}' is not locked")
        source = locked.source
        if isinstance(source, GitHubRef):
            if source.rev is None:
                raise UnknownInputError(f"flake input '{name}' has no locked revision")
            url = f"https://github.com/{source.owner}/{source.repo}/archive/{source.rev}.tar.gz"
            revision: str | None = source.rev
            fetcher: Fetcher = "tarball"
        elif isinstance(source, GitRef):
            url, revision, fetcher = source.url, source.rev, "git"
        elif isinstance(source, TarballRef):
            url, revision, fetcher = source.url, None, "tarball"
        else:
            raise UnknownInputError(f"flake input '{name}' is locked to an indirect reference")
        try:
            return PinnedSource(name=node_name, url=url, revision=revision, hash=locked.nar_hash, fetcher=fetcher)
        except ValidationError as exc:
            raise ConfigError(f"flake input '{name}' has an invalid narHash: {locked.nar_hash!r}") from exc


__all__ = [
    "FlakeLock",
    "FlakeRef",
    "GitHubRef",
    "GitRef",
    "IndirectRef",
    "InputNode",
    "InputNodeRef",
    "LockedInput",
    "TarballRef",
    "UnknownInputError",
]
