# SPDX-License-Identifier: MIT
# Copyright (c) 2025 Blackcat Informatics® Inc.
"""Pin sources: ``npins`` files, ``flake.lock`` documents and Git inputs."""

from __future__ import annotations

from .flake_lock import (
    FlakeLock,
    GitHubRef,
    GitRef,
    IndirectRef,
    InputNode,
    LockedInput,
    TarballRef,
    UnknownInputError,
)
from .git import GitInputScheme, PublicKey
from .npins import NPINS_SOURCES_FILENAME, load_npins, pin_to_source

__all__ = [
    "FlakeLock",
    "GitHubRef",
    "GitInputScheme",
    "GitRef",
    "IndirectRef",
    "InputNode",
    "LockedInput",
    "NPINS_SOURCES_FILENAME",
    "PublicKey",
    "TarballRef",
    "UnknownInputError",
    "load_npins",
    "pin_to_source",
]
