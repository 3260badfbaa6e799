# SPDX-License-Identifier: MIT
# Copyright (c) 2025 Blackcat Informatics® Inc.
"""Configuration models for nixcompose projects."""

from __future__ import annotations

from collections.abc import Mapping
from pathlib import Path
from typing import Annotated, Any, Literal, TypeAlias

from pydantic import BaseModel, ConfigDict, Field, field_validator

from ..constants import DEFAULT_FORMATTER, HARVEST_OUTPUT_FILENAME, MAX_CONCURRENT_STORE_QUERIES, STORE_PATHS_PER_QUERY
from ..models import DEFAULT_ENTRY_POINT, PackageDefinition


class ConfigError(Exception):
    """Raised when configuration input is invalid."""


class _Section(BaseModel):
    model_config = ConfigDict(extra="forbid", validate_assignment=True)


class ReleaseSpec(_Section):
    """One toolchain release published by a toolchain overlay."""

    channel: str
    version: str
    profiles: dict[str, list[str]] = Field(default_factory=dict)
    extensions: list[str] = Field(default_factory=list)


class ToolchainOverlaySpec(_Section):
    kind: Literal["toolchain"] = "toolchain"
    family: str
    releases: list[ReleaseSpec] = Field(default_factory=list)


class PackagesOverlaySpec(_Section):
    kind: Literal["packages"] = "packages"
    name: str = "add-packages"
    packages: list[PackageDefinition] = Field(default_factory=list)


class OverrideOverlaySpec(_Section):
    kind: Literal["override"] = "override"
    target: str
    changes: dict[str, Any] = Field(default_factory=dict)


OverlaySpec: TypeAlias = Annotated[
    ToolchainOverlaySpec | PackagesOverlaySpec | OverrideOverlaySpec,
    Field(discriminator="kind"),
]


class ToolchainPolicySpec(_Section):
    kind: Literal["toolchain"] = "toolchain"
    family: str
    channel: str
    version: str = "latest"
    profile: str = "minimal"
    extensions: list[str] = Field(default_factory=list)
    slot: str | None = None


class PackagePolicySpec(_Section):
    kind: Literal["package"] = "package"
    name: str
    slot: str | None = None


PolicySpec: TypeAlias = Annotated[ToolchainPolicySpec | PackagePolicySpec, Field(discriminator="kind")]


class RegistryConfig(_Section):
    snapshot: Path | None = None


class ShellConfig(_Section):
    strict_deps: bool = True
    systems: list[str] | None = None
    overlays: list[OverlaySpec] = Field(default_factory=list)
    policies: list[PolicySpec] = Field(default_factory=list)


class FormatterConfig(_Section):
    default: str = DEFAULT_FORMATTER
    overrides: dict[str, str] = Field(default_factory=dict)


class EvaluationConfig(_Section):
    pins: Path | None = None
    flake_lock: Path | None = None
    pin: str = "nixpkgs"
    source_path: Path | None = None
    entry_point: str = DEFAULT_ENTRY_POINT
    preset: str | None = "attr-names"
    options: dict[str, Any] = Field(default_factory=dict)
    workers: int | None = Field(default=None, ge=1)
    force_recurse: bool = True


class HarvestConfig(_Section):
    batch_size: int = Field(default=STORE_PATHS_PER_QUERY, ge=1)
    max_concurrent: int = Field(default=MAX_CONCURRENT_STORE_QUERIES, ge=1)
    output: Path = Path(HARVEST_OUTPUT_FILENAME)


class ProjectConfig(BaseModel):
    """Fully merged project configuration with paths resolved against ``root``."""

    model_config = ConfigDict(extra="forbid", validate_assignment=True)

    root: Path = Field(default_factory=Path.cwd)
    registry: RegistryConfig = Field(default_factory=RegistryConfig)
    shell: ShellConfig = Field(default_factory=ShellConfig)
    formatter: FormatterConfig = Field(default_factory=FormatterConfig)
    evaluation: EvaluationConfig = Field(default_factory=EvaluationConfig)
    harvest: HarvestConfig = Field(default_factory=HarvestConfig)

    @field_validator("root")
    @classmethod
    def _absolute_root(cls, value: Path) -> Path:
        return value.expanduser().resolve()

    def resolve_path(self, value: Path | str) -> Path:
        """Return ``value`` as an absolute path relative to the project root."""

        candidate = Path(value).expanduser()
        if candidate.is_absolute():
            return candidate.resolve()
        return (self.root / candidate).resolve()

    def to_dict(self) -> dict[str, Any]:
        return self.model_dump(mode="json", exclude={"root"})


def section_names() -> tuple[str, ...]:
    """Return the top-level table names a configuration document may carry."""

    return tuple(name for name in ProjectConfig.model_fields if name != "root")


def validate_document(data: Mapping[str, Any], *, root: Path) -> ProjectConfig:
    """Validate a merged configuration document.

    Raises:
        ConfigError: If a section is unknown or a value is invalid.
    """

    unknown = sorted(set(data) - set(section_names()))
    if unknown:
        raise ConfigError(f"unknown configuration section(s): {', '.join(unknown)}")
    try:
        return ProjectConfig.model_validate({**data, "root": root})
    except ValueError as exc:
        raise ConfigError(str(exc)) from exc


__all__ = [
    "ConfigError",
    "EvaluationConfig",
    "FormatterConfig",
    "HarvestConfig",
    "OverlaySpec",
    "OverrideOverlaySpec",
    "PackagePolicySpec",
    "PackagesOverlaySpec",
    "PolicySpec",
    "ProjectConfig",
    "RegistryConfig",
    "ReleaseSpec",
    "ShellConfig",
    "ToolchainOverlaySpec",
    "ToolchainPolicySpec",
    "section_names",
    "validate_document",
]
