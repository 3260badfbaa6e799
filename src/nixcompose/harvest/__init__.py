# SPDX-License-Identifier: MIT
# Copyright (c) 2025 Blackcat Informatics® Inc.
"""Harvest fixed-output hashes from an evaluated package set."""

from __future__ import annotations

from .derivations import DerivationHashes, HarvestedHash, collect_hashes, hashes_for_derivation, parse_derivation_show
from .pipeline import HarvestSummary, HashHarvester, batched
from .progress import HarvestProgress, TimingBucket, format_elapsed

__all__ = [
    "DerivationHashes",
    "HarvestProgress",
    "HarvestSummary",
    "HarvestedHash",
    "HashHarvester",
    "TimingBucket",
    "batched",
    "collect_hashes",
    "format_elapsed",
    "hashes_for_derivation",
    "parse_derivation_show",
]
