# SPDX-License-Identifier: MIT
# Copyright (c) 2025 Blackcat Informatics® Inc.
"""Read ``npins`` ``sources.json`` files into pinned sources."""

from __future__ import annotations

import json
import logging
from collections.abc import Mapping
from pathlib import Path
from typing import Any, Final

from ..config.models import ConfigError
from ..hashes import HashAlgo, HashParseError, NixHash
from ..models import PinnedSource
from ..models.evaluation import Fetcher

LOGGER = logging.getLogger(__name__)

NPINS_SOURCES_FILENAME: Final[str] = "sources.json"
SUPPORTED_VERSIONS: Final[frozenset[int]] = frozenset({3, 4, 5, 6, 7})


def repository_archive_url(repository: Mapping[str, Any], revision: str) -> str | None:
    """Return the tarball URL for a forge-hosted ``repository`` at ``revision``."""

    kind = repository.get("type")
    if kind == "GitHub":
        return f"https://github.com/{repository['owner']}/{repository['repo']}/archive/{revision}.tar.gz"
    if kind == "GitLab":
        server = str(repository.get("server", "https://gitlab.com/")).rstrip("/")
        return f"{server}/{repository['repo_path']}/-/archive/{revision}.tar.gz"
    if kind == "Forgejo":
        server = str(repository["server"]).rstrip("/")
        return f"{server}/{repository['owner']}/{repository['repo']}/archive/{revision}.tar.gz"
    if kind == "Git":
        return repository.get("url")
    return None


def pin_to_source(name: str, pin: Mapping[str, Any], *, path: Path | None = None) -> PinnedSource:
    """Convert one ``npins`` pin entry to a :class:`PinnedSource`.

    Raises:
        ConfigError: If the pin lacks a usable hash.
    """

    revision = pin.get("revision")
    url = pin.get("url")
    fetcher: Fetcher = "tarball"
    if url is None:
        repository = pin.get("repository")
        if isinstance(repository, Mapping) and revision:
            url = repository_archive_url(repository, str(revision))
            if repository.get("type") == "Git":
                fetcher = "git"
    url = url or pin.get("locked_url")
    raw_hash = pin.get("hash")
    try:
        parsed_hash = NixHash.parse(str(raw_hash), HashAlgo.SHA256) if raw_hash else None
    except HashParseError as exc:
        raise ConfigError(f"pin '{name}' has an invalid hash: {exc}") from exc
    return PinnedSource(name=name, url=url, revision=revision, hash=parsed_hash, path=path, fetcher=fetcher)


def load_npins(path: Path, *, source_paths: Mapping[str, Path] | None = None) -> dict[str, PinnedSource]:
    """Load every pin from an ``npins`` directory or ``sources.json`` file.

    Args:
        path: The ``npins`` directory or its ``sources.json``.
        source_paths: Optional local checkouts keyed by pin name.

    Raises:
        ConfigError: If the file is missing, malformed or of an unknown version.
    """

    sources_file = path / NPINS_SOURCES_FILENAME if path.is_dir() else path
    if not sources_file.is_file():
        raise ConfigError(f"npins sources not found: {sources_file}")
    try:
        document = json.loads(sources_file.read_text(encoding="utf-8"))
    except json.JSONDecodeError as exc:
        raise ConfigError(f"failed to parse {sources_file}: {exc}") from exc
    if not isinstance(document, Mapping) or not isinstance(document.get("pins"), Mapping):
        raise ConfigError(f"{sources_file} does not contain a 'pins' table")
    version = document.get("version")
    if version not in SUPPORTED_VERSIONS:
        raise ConfigError(f"unsupported npins format version {version!r} in {sources_file}")
    overrides = source_paths or {}
    pins = {
        str(name): pin_to_source(str(name), pin, path=overrides.get(str(name)))
        for name, pin in document["pins"].items()
        if isinstance(pin, Mapping)
    }
    LOGGER.debug("loaded npins path=%s pins=%s", sources_file, ",".join(sorted(pins)))
    return pins


__all__ = ["NPINS_SOURCES_FILENAME", "load_npins", "pin_to_source", "repository_archive_url"]
