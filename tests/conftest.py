# SPDX-License-Identifier: MIT
# Copyright (c) 2025 Blackcat Informatics® Inc.

"""Shared pytest fixtures."""

from __future__ import annotations

from collections.abc import Iterator, Sequence
from pathlib import Path
from typing import Any

import pytest

from nixcompose.constants import DEFAULT_SYSTEMS
from nixcompose.models import PinnedSource
from nixcompose.overlays import ToolchainOverlay, toolchain_overlay
from nixcompose.process_utils import SubprocessExecutionError
from nixcompose.registry import RegistrySnapshot

EMPTY_SHA256_SRI = "sha256-47DEQpj8HBSa+/TImW+5JCeuQeRkm5NMpJWZG3hSuFU="

_MINIMAL = ["rustc", "cargo", "rust-std"]
_DEFAULT = [*_MINIMAL, "rustfmt", "clippy"]

RUST_RELEASES: list[dict[str, Any]] = [
    {
        "channel": "stable",
        "version": "1.80.0",
        "profiles": {"minimal": _MINIMAL, "default": _DEFAULT},
        "extensions": ["rust-src", "rustfmt", "rust-analyzer"],
    },
    {
        "channel": "stable",
        "version": "1.81.0",
        "profiles": {"minimal": _MINIMAL, "default": _DEFAULT},
        "extensions": ["rust-src", "rustfmt", "rust-analyzer"],
    },
    {
        "channel": "stable",
        "version": "1.82.0",
        "profiles": {"minimal": _MINIMAL, "default": _DEFAULT},
        "extensions": ["rust-src", "rustfmt"],
    },
    {
        "channel": "nightly",
        "version": "2025-01-01",
        "profiles": {"minimal": _MINIMAL},
        "extensions": ["rust-src", "rustfmt", "miri"],
    },
]

REGISTRY_DOCUMENT: dict[str, Any] = {
    "shared": {
        "alejandra": {"version": "3.1.0", "provides": ["alejandra"]},
        "nil": {"version": "2023-08-09", "provides": ["nil"]},
        "rustfmt-stable": {"version": "1.81.0", "channel": "stable", "provides": ["rustfmt"]},
        "rustfmt-nightly": {"version": "2025-01-01", "channel": "nightly", "provides": ["rustfmt"]},
    },
    "systems": {
        "x86_64-darwin": {"alejandra": {"version": "3.0.0", "provides": ["alejandra"]}},
    },
}


@pytest.fixture
def registry() -> RegistrySnapshot:
    """Return a registry publishing the shared packages on every default system."""

    return RegistrySnapshot.from_mapping(REGISTRY_DOCUMENT, systems=DEFAULT_SYSTEMS)


@pytest.fixture
def rust_overlay() -> ToolchainOverlay:
    return toolchain_overlay("rust", RUST_RELEASES)


@pytest.fixture
def nixpkgs_tree(tmp_path: Path) -> Path:
    """Return a checkout-shaped directory containing the release entry point."""

    root = tmp_path / "nixpkgs"
    entry = root / "pkgs" / "top-level"
    entry.mkdir(parents=True)
    (entry / "release-outpaths.nix").write_text("{ ... }: { }\n", encoding="utf-8")
    return root


@pytest.fixture
def nixpkgs_source(nixpkgs_tree: Path) -> PinnedSource:
    return PinnedSource(
        name="nixpkgs",
        url="https://github.com/NixOS/nixpkgs/archive/0123abcd.tar.gz",
        revision="0123abcd",
        hash=EMPTY_SHA256_SRI,
        path=nixpkgs_tree,
    )


class FakeLineRunner:
    """Stand-in for ``stream_lines`` that replays canned evaluator output."""

    def __init__(
        self,
        lines: Sequence[str] = (),
        *,
        returncode: int = 0,
        stderr: str = "",
    ) -> None:
        self.lines = list(lines)
        self.returncode = returncode
        self.stderr = stderr
        self.calls: list[list[str]] = []

    def __call__(self, args: Sequence[str]) -> Iterator[str]:
        self.calls.append(list(args))
        yield from self.lines
        if self.returncode != 0:
            raise SubprocessExecutionError(args, self.returncode, None, self.stderr)


@pytest.fixture
def fake_runner_factory() -> type[FakeLineRunner]:
    return FakeLineRunner
