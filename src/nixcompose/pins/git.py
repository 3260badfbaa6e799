# SPDX-License-Identifier: MIT
# Copyright (c) 2025 Blackcat Informatics® Inc.
"""Attribute set accepted by the Nix Git fetcher."""

from __future__ import annotations

from typing import Any, Final

from pydantic import BaseModel, ConfigDict, Field, field_validator
from pydantic.alias_generators import to_camel

from ..models import PinnedSource
from ..nixexpr import attrset

# attributes that describe a fetched result rather than the request
_RESULT_ONLY: Final[frozenset[str]] = frozenset(
    {"lastModified", "revCount", "narHash", "dirtyRev", "dirtyShortRev"},
)


class PublicKey(BaseModel):
    """Commit-signing key accepted when ``verifyCommit`` is set."""

    model_config = ConfigDict(frozen=True)

    type: str = "ssh-ed25519"
    key: str


class GitInputScheme(BaseModel):
    """Git input attributes as understood by ``builtins.fetchGit``."""

    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True, frozen=True)

    url: str
    ref: str | None = None
    rev: str | None = None
    shallow: bool = False
    submodules: bool = False
    lfs: bool = False
    export_ignore: bool = False
    last_modified: int | None = None
    rev_count: int | None = Field(default=None, ge=0)
    nar_hash: str | None = None
    all_refs: bool = False
    name: str | None = None
    dirty_rev: str | None = None
    dirty_short_rev: str | None = None
    verify_commit: bool = False
    keytype: str | None = None
    public_key: PublicKey | None = None
    public_keys: tuple[PublicKey, ...] = ()

    @field_validator("url")
    @classmethod
    def _require_scheme(cls, value: str) -> str:
        if "://" not in value and not value.startswith("/"):
            raise ValueError(f"git url must be absolute or carry a scheme: {value!r}")
        return value

    def to_attrs(self) -> dict[str, Any]:
        """Return the camel-cased attribute set.

        ``false`` flags, unset optional values and an empty key list are
        omitted; ``allRefs`` and ``publicKey`` are always present.
        """

        data: dict[str, Any] = {}
        for field_name, value in self:
            key = to_camel(field_name)
            if key in {"allRefs", "publicKey"}:
                data[key] = value.model_dump() if isinstance(value, PublicKey) else value
                continue
            if value is None or value is False or value == ():
                continue
            if key == "publicKeys":
                value = [item.model_dump() for item in value]
            data[key] = value
        return data

    def fetch_expression(self) -> str:
        """Return a ``builtins.fetchGit`` call for this input."""

        attrs = self.to_attrs()
        request = {key: value for key, value in attrs.items() if key not in _RESULT_ONLY and value is not None}
        return f"builtins.fetchGit {attrset(request)}"

    def as_pinned_source(self) -> PinnedSource:
        name = self.name or self.url.rstrip("/").rsplit("/", 1)[-1]
        return PinnedSource(name=name, url=self.url, revision=self.rev, hash=self.nar_hash, fetcher="git")


__all__ = ["GitInputScheme", "PublicKey"]
