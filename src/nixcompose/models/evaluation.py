# SPDX-License-Identifier: MIT
# Copyright (c) 2025 Blackcat Informatics® Inc.
"""Pinned sources, evaluation options and evaluator job descriptions."""

from __future__ import annotations

from collections.abc import Iterator, Mapping
from pathlib import Path
from types import MappingProxyType
from typing import Any, Final, Literal

from pydantic import BaseModel, ConfigDict, field_serializer, field_validator

from ..hashes import HashAlgo, NixHash
from ..nixexpr import attrset, quote_string

ATTR_NAMES_ONLY_OPTION: Final[str] = "attrNamesOnly"
DEFAULT_ENTRY_POINT: Final[str] = "pkgs/top-level/release-outpaths.nix"
EVALUATOR_EXECUTABLE: Final[str] = "nix-eval-jobs"

JobMode = Literal["attr-names", "derivations"]
Fetcher = Literal["tarball", "git"]


class PinnedSource(BaseModel):
    """Content-addressed reference to an external source tree."""

    model_config = ConfigDict(frozen=True, arbitrary_types_allowed=True)

    name: str
    url: str | None = None
    revision: str | None = None
    hash: NixHash | None = None
    path: Path | None = None
    fetcher: Fetcher = "tarball"

    @field_validator("hash", mode="before")
    @classmethod
    def _parse_hash(cls, value: Any) -> NixHash | None:
        if value is None or isinstance(value, NixHash):
            return value
        return NixHash.parse(str(value))

    @field_serializer("hash")
    def _serialise_hash(self, value: NixHash | None) -> str | None:
        return None if value is None else str(value)

    def location(self) -> str:
        """Return the local path when known, otherwise the fetch URL.

        Raises:
            ValueError: If the pin carries neither a path nor a URL.
        """

        if self.path is not None:
            return str(self.path)
        if self.url is not None:
            return self.url
        raise ValueError(f"pinned source '{self.name}' has neither a path nor a url")

    def fetch_expression(self) -> str:
        """Return the Nix expression that fetches this source from its URL.

        Tarball pins use ``builtins.fetchTarball`` with the pinned sha256;
        Git pins use ``builtins.fetchGit`` at the pinned revision.

        Raises:
            ValueError: If the pin has no URL.
        """

        if self.url is None:
            raise ValueError(f"pinned source '{self.name}' has no url to fetch")
        if self.fetcher == "git":
            from ..pins.git import GitInputScheme

            return GitInputScheme(url=self.url, rev=self.revision).fetch_expression()
        request: dict[str, Any] = {"url": self.url}
        if self.hash is not None and self.hash.algo is HashAlgo.SHA256:
            request["sha256"] = str(self.hash)
        return f"builtins.fetchTarball {attrset(request)}"

    def file_expression(self, relative: str) -> str:
        """Return a Nix string naming ``relative`` inside the source tree.

        A local ``path`` is spliced in directly; otherwise the fetcher is
        interpolated so Nix downloads and verifies the pin first.

        Raises:
            ValueError: If the pin carries neither a path nor a URL.
        """

        relative = relative.lstrip("/")
        if self.path is not None:
            return quote_string(f"{str(self.path).rstrip('/')}/{relative}")
        fetched = "${" + self.fetch_expression() + "}"
        return '"' + fetched + quote_string(f"/{relative}")[1:]


class EvaluationOptions(Mapping[str, Any]):
    """Free-form option mapping handed to the evaluated entry point.

    Option names and values are not validated here; the evaluator rejects
    unknown or ill-typed options when it runs.
    """

    __slots__ = ("_values",)

    def __init__(self, values: Mapping[str, Any] | None = None, **extra: Any) -> None:
        merged = dict(values or {})
        merged.update(extra)
        self._values: Mapping[str, Any] = MappingProxyType(merged)

    def __getitem__(self, key: str) -> Any:
        return self._values[key]

    def __iter__(self) -> Iterator[str]:
        return iter(self._values)

    def __len__(self) -> int:
        return len(self._values)

    def __repr__(self) -> str:
        return f"EvaluationOptions({dict(self._values)!r})"

    @property
    def attr_names_only(self) -> bool:
        """Return ``True`` when the entry point enumerates attribute names only."""

        return self._values.get(ATTR_NAMES_ONLY_OPTION) is True

    def merged(self, overrides: Mapping[str, Any]) -> EvaluationOptions:
        """Return new options where ``overrides`` replace existing keys."""

        return EvaluationOptions(self._values, **dict(overrides))

    def as_dict(self) -> dict[str, Any]:
        return dict(self._values)


RELEASE_ATTR_NAMES: Final[EvaluationOptions] = EvaluationOptions(
    checkMeta=False,
    attrNamesOnly=True,
    systems=None,
)

RELEASE_METADATA: Final[EvaluationOptions] = EvaluationOptions(
    {
        "allowUnfree": True,
        "inHydra": True,
        "checkMeta": True,
        "allowAliases": False,
        "__allowFileset": False,
    },
)

PRESETS: Final[Mapping[str, EvaluationOptions]] = MappingProxyType(
    {
        "attr-names": RELEASE_ATTR_NAMES,
        "metadata": RELEASE_METADATA,
    },
)


class EvaluationJob(BaseModel):
    """Everything the evaluator needs to run, and nothing ambient."""

    model_config = ConfigDict(frozen=True, arbitrary_types_allowed=True)

    source: PinnedSource
    options: EvaluationOptions
    entry_point: str = DEFAULT_ENTRY_POINT
    force_recurse: bool = True
    workers: int | None = None

    @field_validator("options", mode="before")
    @classmethod
    def _coerce_options(cls, value: Any) -> EvaluationOptions:
        if isinstance(value, EvaluationOptions):
            return value
        return EvaluationOptions(value)

    @field_serializer("options")
    def _serialise_options(self, value: EvaluationOptions) -> dict[str, Any]:
        return value.as_dict()

    @property
    def mode(self) -> JobMode:
        """Return ``attr-names`` when only identifiers are produced."""

        return "attr-names" if self.options.attr_names_only else "derivations"

    @property
    def expression(self) -> str:
        """Return the Nix expression importing the entry point with options."""

        return f"import {self.source.file_expression(self.entry_point)} {attrset(self.options)}"

    def command(self) -> list[str]:
        """Return the evaluator argument vector for this job."""

        args = [EVALUATOR_EXECUTABLE]
        if self.force_recurse:
            args.append("--force-recurse")
        args.extend(["--expr", self.expression])
        if self.workers is not None:
            args.extend(["--workers", str(self.workers)])
        return args


__all__ = [
    "DEFAULT_ENTRY_POINT",
    "EvaluationJob",
    "EvaluationOptions",
    "Fetcher",
    "JobMode",
    "PRESETS",
    "PinnedSource",
    "RELEASE_ATTR_NAMES",
    "RELEASE_METADATA",
]
