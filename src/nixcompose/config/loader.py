# SPDX-License-Identifier: MIT
# Copyright (c) 2025 Blackcat Informatics® Inc.
"""Layered configuration loading from TOML files and ``pyproject.toml``."""

from __future__ import annotations

import logging
import os
import re
import tomllib
from collections.abc import Iterable, Mapping, Sequence
from pathlib import Path
from typing import Any, Final, Protocol

from ..constants import PROJECT_CONFIG_FILENAME, PYPROJECT_SECTION
from .models import ConfigError, ProjectConfig, validate_document

LOGGER = logging.getLogger(__name__)

DEFAULT_INCLUDE_KEY: Final[str] = "include"
PYPROJECT_TOOL_KEY: Final[str] = "tool"
_ENV_VAR_PATTERN: Final[re.Pattern[str]] = re.compile(r"\$(\w+)|\$\{([^}]+)\}")


class ConfigSource(Protocol):
    """A named provider of a raw configuration fragment."""

    name: str

    def load(self) -> Mapping[str, Any]:
        """Return the fragment, or an empty mapping when the source is absent."""
        ...

    def describe(self) -> str:
        """Return a human readable description of the source."""
        ...


class TomlConfigSource:
    """Load configuration data from a TOML document with include support."""

    def __init__(
        self,
        path: Path,
        *,
        name: str | None = None,
        include_key: str = DEFAULT_INCLUDE_KEY,
        env: Mapping[str, str] | None = None,
    ) -> None:
        self._root_path = path
        self.name = name or str(path)
        self._include_key = include_key
        self._env = env if env is not None else os.environ

    def load(self) -> Mapping[str, Any]:
        return self._load(self._root_path, ())

    def _load(self, path: Path, stack: tuple[Path, ...]) -> Mapping[str, Any]:
        if not path.exists():
            return {}
        resolved = path.resolve()
        if resolved in stack:
            include_chain = " -> ".join(str(entry) for entry in (*stack, resolved))
            raise ConfigError(f"Circular include detected: {include_chain}")
        try:
            with resolved.open("rb") as handle:
                data = tomllib.load(handle)
        except tomllib.TOMLDecodeError as exc:
            raise ConfigError(f"Failed to parse {path}: {exc}") from exc
        document: dict[str, Any] = dict(data)
        includes = document.pop(self._include_key, None)
        merged: dict[str, Any] = {}
        for include_path in self._coerce_includes(includes, resolved.parent):
            if not include_path.exists():
                raise ConfigError(f"Included configuration not found: {include_path}")
            merged = deep_merge(merged, self._load(include_path, stack + (resolved,)))
        merged = deep_merge(merged, document)
        return expand_env(merged, self._env)

    def _coerce_includes(self, raw: Any, base_dir: Path) -> Iterable[Path]:
        if raw is None:
            return []
        if isinstance(raw, (str, Path)):
            return [self._resolve_path(Path(raw), base_dir)]
        if isinstance(raw, Sequence):
            return [self._resolve_path(Path(item), base_dir) for item in raw]
        raise ConfigError(f"Unsupported include declaration: {raw!r}")

    @staticmethod
    def _resolve_path(path: Path, base_dir: Path) -> Path:
        return path if path.is_absolute() else (base_dir / path)

    def describe(self) -> str:
        return f"TOML configuration at {self.name}"


class PyProjectConfigSource(TomlConfigSource):
    """Read configuration from ``[tool.nixcompose]`` within ``pyproject.toml``."""

    def __init__(self, path: Path, *, env: Mapping[str, str] | None = None) -> None:
        super().__init__(path, name=str(path), env=env)

    def load(self) -> Mapping[str, Any]:
        data = super().load()
        tool_section = data.get(PYPROJECT_TOOL_KEY)
        if not isinstance(tool_section, Mapping):
            return {}
        section = tool_section.get(PYPROJECT_SECTION)
        if not isinstance(section, Mapping):
            return {}
        return dict(section)

    def describe(self) -> str:
        return f"pyproject.toml ({self.name})"


class ConfigLoader:
    """Merge configuration sources in order; later sources win."""

    def __init__(self, *, project_root: Path, sources: Sequence[ConfigSource]) -> None:
        self._project_root = project_root.resolve()
        self._sources = list(sources)

    @classmethod
    def for_root(
        cls,
        project_root: Path,
        *,
        project_config: Path | None = None,
        env: Mapping[str, str] | None = None,
    ) -> ConfigLoader:
        """Build a loader reading ``pyproject.toml`` then ``nixcompose.toml``."""

        root = project_root.resolve()
        project_file = project_config if project_config is not None else root / PROJECT_CONFIG_FILENAME
        if project_config is not None and not project_config.exists():
            raise ConfigError(f"configuration file not found: {project_config}")
        sources: list[ConfigSource] = []
        pyproject = root / "pyproject.toml"
        if pyproject.exists():
            sources.append(PyProjectConfigSource(pyproject, env=env))
        sources.append(TomlConfigSource(project_file, env=env))
        return cls(project_root=root, sources=sources)

    @property
    def sources(self) -> tuple[ConfigSource, ...]:
        return tuple(self._sources)

    def load(self) -> ProjectConfig:
        """Return the merged and validated configuration.

        Raises:
            ConfigError: If any source is malformed or a value is invalid.
        """

        merged: dict[str, Any] = {}
        for source in self._sources:
            fragment = source.load()
            if not isinstance(fragment, Mapping):
                raise ConfigError(f"{source.describe()} must be a table")
            if fragment:
                LOGGER.debug("merging configuration source=%s", source.describe())
            merged = deep_merge(merged, fragment)
        config = validate_document(merged, root=self._project_root)
        return _resolve_paths(config)


def load_config(project_root: Path, *, project_config: Path | None = None) -> ProjectConfig:
    """Load configuration for ``project_root`` using the default source order."""

    return ConfigLoader.for_root(project_root, project_config=project_config).load()


def deep_merge(base: Mapping[str, Any], override: Mapping[str, Any]) -> dict[str, Any]:
    """Merge nested tables; scalars and arrays in ``override`` replace ``base``."""

    result: dict[str, Any] = dict(base)
    for key, value in override.items():
        if key in result and isinstance(result[key], Mapping) and isinstance(value, Mapping):
            result[key] = deep_merge(result[key], value)
        else:
            result[key] = value
    return result


def expand_env(data: Mapping[str, Any], env: Mapping[str, str]) -> dict[str, Any]:
    """Substitute ``$VAR`` and ``${VAR}`` references in string values."""

    return {key: _expand_env_value(value, env) for key, value in data.items()}


def _expand_env_value(value: Any, env: Mapping[str, str]) -> Any:
    if isinstance(value, str):
        return _ENV_VAR_PATTERN.sub(lambda match: env.get(match.group(1) or match.group(2), match.group(0)), value)
    if isinstance(value, Mapping):
        return {k: _expand_env_value(v, env) for k, v in value.items()}
    if isinstance(value, list):
        return [_expand_env_value(v, env) for v in value]
    return value


def _resolve_paths(config: ProjectConfig) -> ProjectConfig:
    registry = config.registry
    if registry.snapshot is not None:
        registry = registry.model_copy(update={"snapshot": config.resolve_path(registry.snapshot)})
    evaluation = config.evaluation
    updates: dict[str, Path] = {}
    for field_name in ("pins", "flake_lock", "source_path"):
        value = getattr(evaluation, field_name)
        if value is not None:
            updates[field_name] = config.resolve_path(value)
    evaluation = evaluation.model_copy(update=updates)
    harvest = config.harvest.model_copy(update={"output": config.resolve_path(config.harvest.output)})
    return config.model_copy(update={"registry": registry, "evaluation": evaluation, "harvest": harvest})


__all__ = [
    "ConfigLoader",
    "ConfigSource",
    "PyProjectConfigSource",
    "TomlConfigSource",
    "deep_merge",
    "expand_env",
    "load_config",
]
