# SPDX-License-Identifier: MIT
# Copyright (c) 2025 Blackcat Informatics® Inc.
"""Tests for layered configuration loading."""

from __future__ import annotations

from pathlib import Path

import pytest

from nixcompose.config import ConfigError, ConfigLoader, deep_merge, load_config
from nixcompose.config.models import PackagePolicySpec, ToolchainOverlaySpec, ToolchainPolicySpec


def test_load_config_defaults(tmp_path: Path) -> None:
    cfg = load_config(tmp_path)

    assert cfg.root == tmp_path.resolve()
    assert cfg.shell.strict_deps is True
    assert cfg.shell.systems is None
    assert cfg.formatter.default == "alejandra"
    assert cfg.evaluation.pin == "nixpkgs"
    assert cfg.evaluation.preset == "attr-names"
    assert cfg.evaluation.entry_point == "pkgs/top-level/release-outpaths.nix"
    assert cfg.harvest.batch_size == 8
    assert cfg.harvest.max_concurrent == 8
    assert cfg.harvest.output == (tmp_path / "nixpkgs-hashes.csv").resolve()


def test_config_loader_merges_pyproject_and_project_file(tmp_path: Path) -> None:
    (tmp_path / "pyproject.toml").write_text(
        """
[project]
name = "demo"

[tool.nixcompose.harvest]
batch_size = 4
max_concurrent = 2

[tool.nixcompose.formatter.overrides]
aarch64-darwin = "nixfmt"
""".strip(),
        encoding="utf-8",
    )
    (tmp_path / "nixcompose.toml").write_text(
        """
[harvest]
batch_size = 16

[formatter.overrides]
x86_64-linux = "nixpkgs-fmt"
""".strip(),
        encoding="utf-8",
    )

    cfg = load_config(tmp_path)

    assert cfg.harvest.batch_size == 16
    assert cfg.harvest.max_concurrent == 2
    assert cfg.formatter.overrides == {"aarch64-darwin": "nixfmt", "x86_64-linux": "nixpkgs-fmt"}


def test_config_loader_supports_includes_and_env(tmp_path: Path) -> None:
    (tmp_path / "base.toml").write_text(
        """
[formatter]
default = "nixfmt"

[evaluation]
workers = 2
""".strip(),
        encoding="utf-8",
    )
    (tmp_path / "nixcompose.toml").write_text(
        """
include = ["base.toml"]

[registry]
snapshot = "registry.toml"

[evaluation]
pins = "${PINS_DIR}/sources.json"
workers = 6
options = { allowUnfree = true }
""".strip(),
        encoding="utf-8",
    )

    cfg = ConfigLoader.for_root(tmp_path, env={"PINS_DIR": "npins"}).load()

    assert cfg.formatter.default == "nixfmt"
    assert cfg.evaluation.workers == 6
    assert cfg.evaluation.options == {"allowUnfree": True}
    assert cfg.evaluation.pins == (tmp_path / "npins" / "sources.json").resolve()
    assert cfg.registry.snapshot == (tmp_path / "registry.toml").resolve()


def test_config_loader_detects_circular_includes(tmp_path: Path) -> None:
    (tmp_path / "a.toml").write_text('include = "nixcompose.toml"\n', encoding="utf-8")
    (tmp_path / "nixcompose.toml").write_text('include = ["a.toml"]\n', encoding="utf-8")

    with pytest.raises(ConfigError, match="Circular include"):
        load_config(tmp_path)


def test_config_loader_rejects_missing_include(tmp_path: Path) -> None:
    (tmp_path / "nixcompose.toml").write_text('include = ["absent.toml"]\n', encoding="utf-8")

    with pytest.raises(ConfigError, match="not found"):
        load_config(tmp_path)


@pytest.mark.parametrize(
    "document",
    [
        "[lint]\nenabled = true\n",
        "[evaluation]\nworkers = 0\n",
        "[shell]\nstrict_deps = true\nunknown = 1\n",
        "[harvest\n",
    ],
)
def test_config_loader_rejects_invalid_documents(tmp_path: Path, document: str) -> None:
    (tmp_path / "nixcompose.toml").write_text(document, encoding="utf-8")

    with pytest.raises(ConfigError):
        load_config(tmp_path)


def test_explicit_project_config_must_exist(tmp_path: Path) -> None:
    with pytest.raises(ConfigError):
        load_config(tmp_path, project_config=tmp_path / "custom.toml")


def test_shell_overlays_and_policies_are_typed(tmp_path: Path) -> None:
    (tmp_path / "nixcompose.toml").write_text(
        """
[shell]
systems = ["x86_64-linux"]

[[shell.overlays]]
kind = "toolchain"
family = "rust"

[[shell.overlays.releases]]
channel = "stable"
version = "1.81.0"
extensions = ["rust-src"]

[shell.overlays.releases.profiles]
minimal = ["rustc", "cargo"]

[[shell.policies]]
kind = "toolchain"
family = "rust"
channel = "stable"
extensions = ["rust-src"]

[[shell.policies]]
kind = "package"
name = "nil"
slot = "lsp"
""".strip(),
        encoding="utf-8",
    )

    cfg = load_config(tmp_path)

    (overlay,) = cfg.shell.overlays
    assert isinstance(overlay, ToolchainOverlaySpec)
    assert overlay.releases[0].profiles == {"minimal": ["rustc", "cargo"]}
    toolchain, package = cfg.shell.policies
    assert isinstance(toolchain, ToolchainPolicySpec)
    assert toolchain.version == "latest"
    assert isinstance(package, PackagePolicySpec)
    assert package.slot == "lsp"


def test_deep_merge_replaces_scalars_and_merges_tables() -> None:
    base = {"harvest": {"batch_size": 8, "output": "a.csv"}, "shell": {"systems": ["a"]}}
    override = {"harvest": {"batch_size": 4}, "shell": {"systems": ["b"]}}

    assert deep_merge(base, override) == {
        "harvest": {"batch_size": 4, "output": "a.csv"},
        "shell": {"systems": ["b"]},
    }
    assert base["harvest"]["batch_size"] == 8
