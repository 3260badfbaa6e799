# SPDX-License-Identifier: MIT
# Copyright (c) 2025 Blackcat Informatics® Inc.
"""Drive ``nix-eval-jobs`` and decode its JSON line stream."""

from __future__ import annotations

import json
import logging
import os
import re
from collections.abc import Callable, Generator, Iterator, Mapping, Sequence
from dataclasses import dataclass, field
from typing import Any, Final

from .errors import ConfigurationError, EvaluatorError
from .models import EvaluationJob
from .process_utils import SubprocessExecutionError, describe_returncode, stream_lines

LOGGER = logging.getLogger(__name__)

LineRunner = Callable[[Sequence[str]], Iterator[str]]

_OPTION_ERROR_PATTERNS: Final[tuple[re.Pattern[str], ...]] = (
    re.compile(r"called with unexpected argument '([^']+)'"),
    re.compile(r"called without required argument '([^']+)'"),
    re.compile(r"unrecognised flag '([^']+)'"),
)


@dataclass(frozen=True, slots=True)
class EvalRecord:
    """One JSON line emitted by ``nix-eval-jobs``."""

    attr: str
    attr_path: tuple[str, ...] = ()
    drv_path: str | None = None
    name: str | None = None
    system: str | None = None
    outputs: Mapping[str, str] = field(default_factory=dict)
    meta: Mapping[str, Any] | None = None
    error: str | None = None

    @classmethod
    def from_json(cls, payload: Mapping[str, Any]) -> EvalRecord:
        attr = str(payload.get("attr", ""))
        attr_path = payload.get("attrPath") or attr.split(".")
        outputs = payload.get("outputs") or {}
        return cls(
            attr=attr,
            attr_path=tuple(str(part) for part in attr_path),
            drv_path=payload.get("drvPath"),
            name=payload.get("name"),
            system=payload.get("system"),
            outputs={str(key): str(value) for key, value in outputs.items()},
            meta=payload.get("meta"),
            error=payload.get("error"),
        )


class NixEvalJobs:
    """Run evaluation jobs through ``nix-eval-jobs``.

    ``runner`` receives the argument vector and yields stdout lines; it must
    raise :class:`~nixcompose.process_utils.SubprocessExecutionError` on a
    non-zero exit.
    """

    def __init__(self, *, runner: LineRunner = stream_lines, default_workers: int | None = None) -> None:
        self._runner = runner
        self._default_workers = default_workers or os.cpu_count() or 1

    def command(self, job: EvaluationJob) -> list[str]:
        """Return the argument vector for ``job``, filling in a worker count."""

        if job.workers is None:
            job = job.model_copy(update={"workers": self._default_workers})
        return job.command()

    def records(self, job: EvaluationJob) -> Iterator[EvalRecord]:
        """Yield every record the evaluator emits for ``job``.

        Raises:
            ConfigurationError: If the evaluator rejects an evaluation option.
            EvaluatorError: If the evaluator fails for any other reason.
        """

        args = self.command(job)
        LOGGER.info("running evaluator source=%s mode=%s", job.source.name, job.mode)
        try:
            for line in self._runner(args):
                if not line.strip():
                    continue
                try:
                    payload = json.loads(line)
                except json.JSONDecodeError:
                    LOGGER.warning("skipping non-JSON evaluator output: %s", line[:200])
                    continue
                yield EvalRecord.from_json(payload)
        except SubprocessExecutionError as exc:
            raise _classify_failure(exc) from exc
        except FileNotFoundError as exc:
            raise EvaluatorError(str(exc)) from exc

    def attr_names(self, job: EvaluationJob) -> Iterator[str]:
        """Yield attribute names only, skipping records that failed to evaluate."""

        for record in self.records(job):
            if record.error is not None:
                LOGGER.warning("evaluation error attr=%s: %s", record.attr, record.error)
                continue
            yield record.attr

    def drv_paths(self, job: EvaluationJob) -> Generator[str, None, None]:
        """Yield derivation paths, skipping records that failed to evaluate."""

        for record in self.records(job):
            if record.drv_path is None:
                if record.error is not None:
                    LOGGER.warning("evaluation error attr=%s: %s", record.attr, record.error)
                continue
            yield record.drv_path

    def run(self, job: EvaluationJob) -> list[str] | list[EvalRecord]:
        """Evaluate ``job`` fully.

        Returns:
            list[str] | list[EvalRecord]: Attribute names for ``attr-names``
            jobs, otherwise the successfully evaluated records.
        """

        if job.mode == "attr-names":
            return list(self.attr_names(job))
        return [record for record in self.records(job) if record.error is None]


def _classify_failure(exc: SubprocessExecutionError) -> Exception:
    stderr = exc.stderr or ""
    for pattern in _OPTION_ERROR_PATTERNS:
        match = pattern.search(stderr)
        if match:
            return ConfigurationError(f"evaluator rejected option '{match.group(1)}'")
    return EvaluatorError(
        f"nix-eval-jobs {describe_returncode(exc.returncode)}",
        returncode=exc.returncode,
        stderr=exc.stderr,
    )


__all__ = ["EvalRecord", "LineRunner", "NixEvalJobs"]
