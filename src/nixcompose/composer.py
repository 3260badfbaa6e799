# SPDX-License-Identifier: MIT
# Copyright (c) 2025 Blackcat Informatics® Inc.
"""Compose development shells and evaluator jobs for named environments."""

from __future__ import annotations

import logging
from collections.abc import Mapping, Sequence
from pathlib import Path
from typing import Any

from .errors import SourceNotFoundError
from .formatters import FormatterMapping
from .models import (
    DEFAULT_ENTRY_POINT,
    EvaluationJob,
    EvaluationOptions,
    PackageIndex,
    PinnedSource,
    ShellDescription,
)
from .overlays import Overlay, apply_overlays
from .policies import SelectionPolicy, resolve_policies
from .registry import PackageRegistry

LOGGER = logging.getLogger(__name__)


class EnvironmentComposer:
    """Merge a registry index, overlays and selection policies into shells.

    The composer holds no mutable state: the registry, overlays and policies
    are fixed at construction, so :meth:`compose_shell` returns equal results
    for equal environment names.
    """

    def __init__(
        self,
        registry: PackageRegistry,
        *,
        overlays: Sequence[Overlay] = (),
        policies: Sequence[SelectionPolicy] = (),
        strict_deps: bool = True,
        formatters: FormatterMapping | None = None,
    ) -> None:
        self._registry = registry
        self._overlays = tuple(overlays)
        self._policies = tuple(policies)
        self._strict_deps = strict_deps
        self._formatters = formatters or FormatterMapping()

    @property
    def environments(self) -> tuple[str, ...]:
        """Return the environments the registry supports."""

        return self._registry.environments()

    def package_index(self, environment: str) -> PackageIndex:
        """Return the registry index for ``environment`` with overlays applied.

        Raises:
            UnsupportedEnvironmentError: If ``environment`` is not supported.
            MissingPackageError: If an overlay references a missing package.
        """

        base = self._registry.lookup(environment)
        return apply_overlays(base, self._overlays)

    def compose_shell(self, environment: str) -> ShellDescription:
        """Return the shell description for ``environment``.

        Raises:
            UnsupportedEnvironmentError: If ``environment`` is not supported.
            MissingPackageError: If an overlay or policy references a missing package.
        """

        index = self.package_index(environment)
        packages = resolve_policies(index, self._policies)
        LOGGER.debug("composed shell environment=%s packages=%s", environment, ",".join(p.name for p in packages))
        return ShellDescription(
            environment=environment,
            packages=packages,
            strict_deps=self._strict_deps,
            formatter=self._formatters.reference_for(environment),
        )

    def compose_shells(self) -> dict[str, ShellDescription]:
        """Return a shell description for every supported environment."""

        return {environment: self.compose_shell(environment) for environment in self.environments}

    def formatter_for(self, environment: str) -> str:
        """Return the formatter reference resolved against the environment's index."""

        return self._formatters.reference_for(environment, self.package_index(environment))


def compose_shell(
    registry: PackageRegistry,
    environment: str,
    *,
    overlays: Sequence[Overlay] = (),
    policies: Sequence[SelectionPolicy] = (),
    strict_deps: bool = True,
) -> ShellDescription:
    """Compose a single shell without keeping a composer around."""

    composer = EnvironmentComposer(registry, overlays=overlays, policies=policies, strict_deps=strict_deps)
    return composer.compose_shell(environment)


def compose_evaluation_job(
    source: PinnedSource,
    options: EvaluationOptions | Mapping[str, Any],
    *,
    entry_point: str = DEFAULT_ENTRY_POINT,
    workers: int | None = None,
    force_recurse: bool = True,
) -> EvaluationJob:
    """Describe an evaluator run of ``entry_point`` inside ``source``.

    Options are carried verbatim; the evaluator validates them when it runs.

    Raises:
        SourceNotFoundError: If the source has a local path that is not a
            readable directory, or no location at all.
    """

    if source.path is not None:
        _ensure_source_tree(source.name, source.path)
    elif source.url is None:
        raise SourceNotFoundError(f"pinned source '{source.name}' has neither a path nor a url")
    job = EvaluationJob(
        source=source,
        options=options if isinstance(options, EvaluationOptions) else EvaluationOptions(options),
        entry_point=entry_point,
        workers=workers,
        force_recurse=force_recurse,
    )
    LOGGER.debug("composed evaluation job source=%s mode=%s", source.name, job.mode)
    return job


def _ensure_source_tree(name: str, path: Path) -> None:
    if not path.is_dir():
        raise SourceNotFoundError(f"pinned source '{name}' does not resolve to a directory: {path}")
    try:
        next(path.iterdir(), None)
    except PermissionError as exc:
        raise SourceNotFoundError(f"pinned source '{name}' is not readable: {path}") from exc


__all__ = ["EnvironmentComposer", "compose_evaluation_job", "compose_shell"]
