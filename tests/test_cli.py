# SPDX-License-Identifier: MIT
# Copyright (c) 2025 Blackcat Informatics® Inc.

"""Tests for the nixcompose command line interface."""

from __future__ import annotations

import importlib
import json
from collections.abc import Sequence
from pathlib import Path
from typing import Any

import pytest
from typer.testing import CliRunner

from nixcompose.cli.app import app, parse_option_assignments
from nixcompose.cli.shared import CLIError
from nixcompose.evaluator import NixEvalJobs
from nixcompose.harvest import DerivationHashes, HarvestedHash, HashHarvester

CLI_MODULE = importlib.import_module("nixcompose.cli.app")

PROJECT_TOML = """
[registry]
snapshot = "registry.toml"

[shell]
systems = ["x86_64-linux", "aarch64-darwin"]

[[shell.policies]]
kind = "package"
name = "nil"

[formatter.overrides]
aarch64-darwin = "nixfmt"

[evaluation]
source_path = "nixpkgs"
workers = 2
"""

REGISTRY_TOML = """
[shared.alejandra]
version = "3.1.0"

[shared.nixfmt]
version = "0.6.0"

[shared.nil]
version = "2023-08-09"
"""


@pytest.fixture
def project(tmp_path: Path, nixpkgs_tree: Path) -> Path:
    (tmp_path / "nixcompose.toml").write_text(PROJECT_TOML, encoding="utf-8")
    (tmp_path / "registry.toml").write_text(REGISTRY_TOML, encoding="utf-8")
    return tmp_path


def _invoke(root: Path, *args: str) -> Any:
    return CliRunner().invoke(app, ["--root", str(root), "--no-emoji", "--no-color", *args])


def test_systems_lists_configured_environments(project: Path) -> None:
    result = _invoke(project, "systems")

    assert result.exit_code == 0
    assert result.output.split() == ["aarch64-darwin", "x86_64-linux"]


def test_shell_json_describes_environment(project: Path) -> None:
    result = _invoke(project, "shell", "x86_64-linux", "--json")

    assert result.exit_code == 0
    payload = json.loads(result.output)
    assert payload["environment"] == "x86_64-linux"
    assert [package["name"] for package in payload["packages"]] == ["nil"]
    assert payload["strict_deps"] is True
    assert payload["formatter"] == "alejandra"


def test_shell_unsupported_environment_exits_with_lookup_status(project: Path) -> None:
    result = _invoke(project, "shell", "riscv64-linux")

    assert result.exit_code == 2
    assert "unsupported environment 'riscv64-linux'" in result.output


def test_formatter_is_resolved_per_system(project: Path) -> None:
    assert _invoke(project, "formatter", "aarch64-darwin").output.strip() == "nixfmt-0.6.0"
    assert _invoke(project, "formatter", "x86_64-linux").output.strip() == "alejandra-3.1.0"


def test_invalid_configuration_exits_with_config_status(tmp_path: Path) -> None:
    (tmp_path / "nixcompose.toml").write_text("[unknown]\n", encoding="utf-8")

    result = _invoke(tmp_path, "systems")

    assert result.exit_code == 3
    assert "unknown configuration section" in result.output


def test_eval_job_prints_evaluator_command(project: Path, nixpkgs_tree: Path) -> None:
    result = _invoke(project, "eval-job", "--preset", "metadata", "--option", "allowUnfree=false")

    assert result.exit_code == 0
    output = result.output.strip()
    assert output.startswith("nix-eval-jobs --force-recurse --expr")
    assert f"{nixpkgs_tree.resolve()}/pkgs/top-level/release-outpaths.nix" in output
    assert "allowUnfree = false;" in output
    assert output.endswith("--workers 2")


def test_eval_job_without_workers_prints_reproducible_command(tmp_path: Path, nixpkgs_tree: Path) -> None:
    (tmp_path / "nixcompose.toml").write_text('[evaluation]\nsource_path = "nixpkgs"\n', encoding="utf-8")

    result = _invoke(tmp_path, "eval-job")

    assert result.exit_code == 0
    assert "--workers" not in result.output
    assert result.output.strip().startswith("nix-eval-jobs --force-recurse --expr")


def test_eval_job_run_lists_attribute_names(project: Path, monkeypatch: pytest.MonkeyPatch) -> None:
    lines = [json.dumps({"attr": "hello"}), json.dumps({"attr": "cowsay"})]

    def runner(args: Sequence[str]) -> Any:
        yield from lines

    monkeypatch.setattr(CLI_MODULE, "NixEvalJobs", lambda: NixEvalJobs(runner=runner))

    result = _invoke(project, "eval-job", "--run")

    assert result.exit_code == 0
    assert result.output.split() == ["hello", "cowsay"]


def test_eval_job_unknown_pin_exits_with_lookup_status(tmp_path: Path) -> None:
    result = _invoke(tmp_path, "eval-job", "--pin", "nixpkgs")

    assert result.exit_code == 2
    assert "no pin source configured" in result.output


def test_harvest_writes_csv(project: Path, monkeypatch: pytest.MonkeyPatch) -> None:
    def runner(args: Sequence[str]) -> Any:
        yield json.dumps({"attr": "hello", "drvPath": "/nix/store/aaa-hello.drv"})

    def collect(batch: list[str]) -> dict[str, DerivationHashes]:
        return {drv: DerivationHashes(env=HarvestedHash("sha256-abc", None)) for drv in batch}

    monkeypatch.setattr(CLI_MODULE, "NixEvalJobs", lambda: NixEvalJobs(runner=runner))
    monkeypatch.setattr(
        CLI_MODULE,
        "HashHarvester",
        lambda evaluator, **kwargs: HashHarvester(evaluator, collector=collect, **kwargs),
    )
    output = project / "out.csv"

    result = _invoke(project, "harvest", "--output", str(output))

    assert result.exit_code == 0
    assert output.read_text(encoding="utf-8") == '"sha256-abc", null\n'
    assert "wrote 1 unique hashes from 1 derivations" in result.output


def test_harvest_rejects_attr_names_preset(project: Path) -> None:
    result = _invoke(project, "harvest", "--preset", "attr-names")

    assert result.exit_code == 3


@pytest.mark.parametrize(
    ("args", "expected"),
    [
        (["--to", "nix32"], "sha256:0mdqa9w1p6cmli6976v4wi0sw9r4p5prkj7lzfd1877wk11c9c73"),
        (["--to", "base16", "--no-prefix"], "e3b0c44298fc1c149afbf4c8996fb92427ae41e4649b934ca495991b7852b855"),
        ([], "sha256-47DEQpj8HBSa+/TImW+5JCeuQeRkm5NMpJWZG3hSuFU="),
    ],
)
def test_hash_convert(tmp_path: Path, args: list[str], expected: str) -> None:
    result = _invoke(
        tmp_path,
        "hash",
        "convert",
        "sha256:e3b0c44298fc1c149afbf4c8996fb92427ae41e4649b934ca495991b7852b855",
        *args,
    )

    assert result.exit_code == 0
    assert result.output.strip() == expected


def test_hash_convert_reports_parse_errors(tmp_path: Path) -> None:
    result = _invoke(tmp_path, "hash", "convert", "e3b0c442")

    assert result.exit_code == 2
    assert "does not specify a type" in result.output


def _write_lock(path: Path, nar_hash: str) -> Path:
    path.write_text(
        json.dumps(
            {
                "nodes": {
                    "nixpkgs": {
                        "locked": {
                            "lastModified": 1717179513,
                            "narHash": nar_hash,
                            "owner": "NixOS",
                            "repo": "nixpkgs",
                            "rev": "abc123",
                            "type": "github",
                        },
                        "original": {"id": "nixpkgs", "type": "indirect"},
                    },
                    "root": {"inputs": {"nixpkgs": "nixpkgs"}},
                },
                "root": "root",
                "version": 7,
            },
        ),
        encoding="utf-8",
    )
    return path


def test_lock_show_input(tmp_path: Path) -> None:
    lock = _write_lock(tmp_path / "flake.lock", "sha256-47DEQpj8HBSa+/TImW+5JCeuQeRkm5NMpJWZG3hSuFU=")

    shown = _invoke(tmp_path, "lock", "show", str(lock), "--input", "nixpkgs")
    assert shown.exit_code == 0
    payload = json.loads(shown.output)
    assert payload["url"] == "https://github.com/NixOS/nixpkgs/archive/abc123.tar.gz"
    assert payload["revision"] == "abc123"

    assert _invoke(tmp_path, "lock", "show", str(lock)).exit_code == 0
    assert _invoke(tmp_path, "lock", "show", str(lock), "--input", "home-manager").exit_code == 2


def test_lock_show_invalid_nar_hash_exits_with_config_status(tmp_path: Path) -> None:
    lock = _write_lock(tmp_path / "flake.lock", "sha256-not-a-hash")

    result = _invoke(tmp_path, "lock", "show", str(lock), "--input", "nixpkgs")

    assert result.exit_code == 3
    assert "invalid narHash" in result.output


def test_missing_evaluator_exits_with_evaluator_status(project: Path, monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.setenv("PATH", str(project / "no-such-bin"))

    result = _invoke(project, "eval-job", "--run")

    assert result.exit_code == 4
    assert "nix-eval-jobs" in result.output
    assert not isinstance(result.exception, FileNotFoundError)


def test_parse_option_assignments() -> None:
    assert parse_option_assignments(["a=true", "b=3", "c=text", "d=[1, 2]", "e=null"]) == {
        "a": True,
        "b": 3,
        "c": "text",
        "d": [1, 2],
        "e": None,
    }
    with pytest.raises(CLIError):
        parse_option_assignments(["novalue"])
    with pytest.raises(CLIError, match="cannot be NaN"):
        parse_option_assignments(["ratio=NaN"])
