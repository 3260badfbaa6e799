# SPDX-License-Identifier: MIT
# Copyright (c) 2025 Blackcat Informatics® Inc.
"""Batch derivation paths from the evaluator into concurrent hash queries."""

from __future__ import annotations

import logging
import time
from collections.abc import Callable, Iterable, Iterator
from concurrent.futures import FIRST_COMPLETED, Future, ThreadPoolExecutor, wait
from contextlib import closing
from dataclasses import dataclass
from itertools import islice
from pathlib import Path
from typing import TextIO

from ..constants import MAX_CONCURRENT_STORE_QUERIES, STORE_PATHS_PER_QUERY
from ..evaluator import NixEvalJobs
from ..models import EvaluationJob
from .derivations import DerivationHashes, HarvestedHash, collect_hashes
from .progress import HarvestProgress

LOGGER = logging.getLogger(__name__)

HashCollector = Callable[[list[str]], dict[str, DerivationHashes]]
ProgressCallback = Callable[[HarvestProgress, float], None]


@dataclass(frozen=True, slots=True)
class HarvestSummary:
    """Totals for a finished harvest."""

    output: Path
    derivations: int
    hashes: int
    unique: int
    elapsed: float


def batched(items: Iterable[str], size: int) -> Iterator[list[str]]:
    """Yield consecutive lists of at most ``size`` items."""

    if size < 1:
        raise ValueError("batch size must be at least 1")
    iterator = iter(items)
    while batch := list(islice(iterator, size)):
        yield batch


class HashHarvester:
    """Stream derivations from an evaluation job and record every unique hash.

    At most ``max_concurrent`` ``nix derivation show`` queries run at once.
    Results are written from the calling thread in completion order.
    """

    def __init__(
        self,
        evaluator: NixEvalJobs,
        *,
        collector: HashCollector = collect_hashes,
        batch_size: int = STORE_PATHS_PER_QUERY,
        max_concurrent: int = MAX_CONCURRENT_STORE_QUERIES,
        clock: Callable[[], float] = time.monotonic,
        on_progress: ProgressCallback | None = None,
    ) -> None:
        if max_concurrent < 1:
            raise ValueError("max_concurrent must be at least 1")
        self._evaluator = evaluator
        self._collector = collector
        self._batch_size = batch_size
        self._max_concurrent = max_concurrent
        self._clock = clock
        self._on_progress = on_progress or _log_progress

    def harvest(self, job: EvaluationJob, output: Path) -> HarvestSummary:
        """Evaluate ``job`` and write unique hashes to ``output`` as CSV records.

        Records are written to a ``.partial`` sibling that replaces ``output``
        only once the harvest succeeds; on failure it is removed and the
        evaluator stream is closed.

        Raises:
            EvaluatorError: If the evaluator or a hash query fails.
            ConfigurationError: If the evaluator rejects an option.
        """

        progress = HarvestProgress.started_at(self._clock())
        unique: set[HarvestedHash] = set()
        output.parent.mkdir(parents=True, exist_ok=True)
        partial = output.with_name(f"{output.name}.partial")
        try:
            with closing(self._evaluator.drv_paths(job)) as drv_paths, partial.open(
                "w",
                encoding="utf-8",
            ) as handle, ThreadPoolExecutor(
                max_workers=self._max_concurrent,
                thread_name_prefix="nix-derivation-show",
            ) as pool:
                pending: set[Future[dict[str, DerivationHashes]]] = set()
                try:
                    for batch in batched(drv_paths, self._batch_size):
                        if len(pending) >= self._max_concurrent:
                            pending = self._drain(pending, handle, unique, progress)
                        pending.add(pool.submit(self._collector, batch))
                    while pending:
                        pending = self._drain(pending, handle, unique, progress)
                except BaseException:
                    for future in pending:
                        future.cancel()
                    raise
        except BaseException:
            partial.unlink(missing_ok=True)
            raise
        partial.replace(output)
        elapsed = self._clock() - progress.start
        LOGGER.info("harvest complete output=%s unique=%d elapsed=%.1fs", output, len(unique), elapsed)
        return HarvestSummary(
            output=output,
            derivations=progress.derivations,
            hashes=progress.hashes,
            unique=len(unique),
            elapsed=elapsed,
        )

    def _drain(
        self,
        pending: set[Future[dict[str, DerivationHashes]]],
        handle: TextIO,
        unique: set[HarvestedHash],
        progress: HarvestProgress,
    ) -> set[Future[dict[str, DerivationHashes]]]:
        done, remaining = wait(pending, return_when=FIRST_COMPLETED)
        for future in done:
            derivations = future.result()
            hash_count = 0
            for hashes in derivations.values():
                for harvested in hashes:
                    hash_count += 1
                    if harvested not in unique:
                        unique.add(harvested)
                        handle.write(harvested.to_csv_record())
                        handle.write("\n")
            now = self._clock()
            progress.record(now, derivations=len(derivations), hashes=hash_count, unique=len(unique))
            self._on_progress(progress, now)
        return set(remaining)


def _log_progress(progress: HarvestProgress, now: float) -> None:
    LOGGER.info(progress.progress_line(now))
    LOGGER.info(progress.perf_line())


__all__ = ["HarvestSummary", "HashHarvester", "batched"]
