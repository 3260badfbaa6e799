# SPDX-License-Identifier: MIT
# Copyright (c) 2025 Blackcat Informatics® Inc.
"""Build composers and evaluation jobs from a loaded :class:`ProjectConfig`."""

from __future__ import annotations

import logging
from collections.abc import Mapping, Sequence
from typing import Any

from .composer import EnvironmentComposer, compose_evaluation_job
from .config.models import (
    ConfigError,
    OverlaySpec,
    OverrideOverlaySpec,
    PackagesOverlaySpec,
    PolicySpec,
    ProjectConfig,
    ToolchainPolicySpec,
)
from .constants import DEFAULT_SYSTEMS
from .errors import SourceNotFoundError
from .formatters import FormatterMapping
from .models import PRESETS, EvaluationJob, EvaluationOptions, PinnedSource
from .overlays import Overlay, OverridePackage, add_packages, toolchain_overlay
from .pins import FlakeLock, load_npins
from .policies import PackagePolicy, SelectionPolicy, ToolchainPolicy
from .registry import RegistrySnapshot, load_registry_snapshot

LOGGER = logging.getLogger(__name__)


def build_overlays(specs: Sequence[OverlaySpec]) -> list[Overlay]:
    """Turn overlay declarations into overlay callables, preserving order."""

    overlays: list[Overlay] = []
    for spec in specs:
        if isinstance(spec, PackagesOverlaySpec):
            overlays.append(add_packages(*spec.packages, name=spec.name))
        elif isinstance(spec, OverrideOverlaySpec):
            overlays.append(OverridePackage(spec.target, dict(spec.changes), name=f"override-{spec.target}"))
        else:
            overlays.append(toolchain_overlay(spec.family, [release.model_dump() for release in spec.releases]))
    return overlays


def build_policies(specs: Sequence[PolicySpec]) -> list[SelectionPolicy]:
    """Turn policy declarations into selection policies, preserving order."""

    policies: list[SelectionPolicy] = []
    for spec in specs:
        if isinstance(spec, ToolchainPolicySpec):
            policies.append(
                ToolchainPolicy(
                    family=spec.family,
                    channel=spec.channel,
                    version=spec.version,
                    profile=spec.profile,
                    extensions=tuple(spec.extensions),
                    slot_name=spec.slot,
                ),
            )
        else:
            policies.append(PackagePolicy(spec.name, slot_name=spec.slot))
    return policies


def build_registry(config: ProjectConfig) -> RegistrySnapshot:
    """Return the configured registry snapshot.

    Without a snapshot file every configured system starts from an empty
    index, so overlays alone define the packages.
    """

    systems = config.shell.systems
    if config.registry.snapshot is not None:
        return load_registry_snapshot(config.registry.snapshot, systems=systems)
    return RegistrySnapshot.from_packages((), systems=systems or DEFAULT_SYSTEMS)


def build_composer(config: ProjectConfig) -> EnvironmentComposer:
    """Return an :class:`EnvironmentComposer` wired from ``config``."""

    return EnvironmentComposer(
        build_registry(config),
        overlays=build_overlays(config.shell.overlays),
        policies=build_policies(config.shell.policies),
        strict_deps=config.shell.strict_deps,
        formatters=FormatterMapping(config.formatter.default, dict(config.formatter.overrides)),
    )


def resolve_pinned_source(config: ProjectConfig, pin: str | None = None) -> PinnedSource:
    """Return the pinned source named ``pin`` (default: ``evaluation.pin``).

    ``npins`` files take precedence over ``flake.lock``. A configured
    ``source_path`` replaces the pin's local path, and on its own describes
    an unpinned local checkout.

    Raises:
        SourceNotFoundError: If no pin source is configured or the pin is absent.
        ConfigError: If a pin file is malformed.
    """

    evaluation = config.evaluation
    name = pin or evaluation.pin
    source: PinnedSource | None = None
    if evaluation.pins is not None:
        pins = load_npins(evaluation.pins)
        if name not in pins:
            raise SourceNotFoundError(f"no pin named '{name}' in {evaluation.pins}")
        source = pins[name]
    elif evaluation.flake_lock is not None:
        try:
            source = FlakeLock.load(evaluation.flake_lock).pinned_source(name)
        except LookupError as exc:
            raise SourceNotFoundError(str(exc)) from exc
    if evaluation.source_path is not None:
        if source is None:
            return PinnedSource(name=name, path=evaluation.source_path)
        return source.model_copy(update={"path": evaluation.source_path})
    if source is None:
        raise SourceNotFoundError(f"no pin source configured for '{name}'")
    return source


def evaluation_options(preset: str | None, overrides: Mapping[str, Any] | None = None) -> EvaluationOptions:
    """Return preset options with ``overrides`` layered on top.

    Raises:
        ConfigError: If ``preset`` is not a known preset name.
    """

    if preset is None:
        base = EvaluationOptions()
    else:
        try:
            base = PRESETS[preset]
        except KeyError as exc:
            known = ", ".join(sorted(PRESETS))
            raise ConfigError(f"unknown evaluation preset '{preset}' (known: {known})") from exc
    return base.merged(overrides or {})


def build_evaluation_job(
    config: ProjectConfig,
    *,
    pin: str | None = None,
    preset: str | None = None,
    options: Mapping[str, Any] | None = None,
) -> EvaluationJob:
    """Compose the evaluation job described by ``config``.

    ``preset`` replaces the configured preset; ``options`` are layered over
    the configured options.
    """

    evaluation = config.evaluation
    source = resolve_pinned_source(config, pin)
    merged_options = evaluation_options(
        preset if preset is not None else evaluation.preset,
        {**evaluation.options, **dict(options or {})},
    )
    LOGGER.debug("building evaluation job pin=%s options=%s", source.name, ",".join(merged_options))
    return compose_evaluation_job(
        source,
        merged_options,
        entry_point=evaluation.entry_point,
        workers=evaluation.workers,
        force_recurse=evaluation.force_recurse,
    )


__all__ = [
    "build_composer",
    "build_evaluation_job",
    "build_overlays",
    "build_policies",
    "build_registry",
    "evaluation_options",
    "resolve_pinned_source",
]
