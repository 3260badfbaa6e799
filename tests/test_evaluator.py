# SPDX-License-Identifier: MIT
# Copyright (c) 2025 Blackcat Informatics® Inc.

"""Tests for the nix-eval-jobs driver and the subprocess helpers."""

from __future__ import annotations

import json
import sys
from typing import Any

import pytest

from nixcompose.composer import compose_evaluation_job
from nixcompose.errors import ConfigurationError, EvaluatorError
from nixcompose.evaluator import EvalRecord, NixEvalJobs
from nixcompose.models import RELEASE_ATTR_NAMES, RELEASE_METADATA, PinnedSource
from nixcompose.process_utils import SubprocessExecutionError, describe_returncode, stream_lines


def _line(**payload: Any) -> str:
    return json.dumps(payload)


def test_attr_names_job_yields_identifiers_only(nixpkgs_source: PinnedSource, fake_runner_factory: Any) -> None:
    runner = fake_runner_factory(
        [
            _line(attr="hello", attrPath=["hello"]),
            "warning: something unrelated",
            _line(attr="python3Packages.numpy", attrPath=["python3Packages", "numpy"]),
            _line(attr="broken", attrPath=["broken"], error="assertion failed"),
        ],
    )
    job = compose_evaluation_job(nixpkgs_source, RELEASE_ATTR_NAMES)

    result = NixEvalJobs(runner=runner, default_workers=2).run(job)

    assert result == ["hello", "python3Packages.numpy"]
    assert all(isinstance(item, str) for item in result)
    assert runner.calls == [["nix-eval-jobs", "--force-recurse", "--expr", job.expression, "--workers", "2"]]


def test_metadata_job_returns_records_with_unfree_packages(
    nixpkgs_source: PinnedSource,
    fake_runner_factory: Any,
) -> None:
    runner = fake_runner_factory(
        [
            _line(
                attr="hello.x86_64-linux",
                attrPath=["hello", "x86_64-linux"],
                drvPath="/nix/store/aaa-hello-2.12.1.drv",
                name="hello-2.12.1",
                system="x86_64-linux",
                outputs={"out": "/nix/store/bbb-hello-2.12.1"},
                meta={"unfree": False},
            ),
            _line(
                attr="steam.x86_64-linux",
                attrPath=["steam", "x86_64-linux"],
                drvPath="/nix/store/ccc-steam.drv",
                name="steam",
                system="x86_64-linux",
                meta={"unfree": True},
            ),
            _line(attr="broken.x86_64-linux", error="evaluation aborted"),
        ],
    )
    job = compose_evaluation_job(nixpkgs_source, RELEASE_METADATA, workers=1)

    records = NixEvalJobs(runner=runner).run(job)

    assert [record.attr for record in records] == ["hello.x86_64-linux", "steam.x86_64-linux"]
    steam = records[1]
    assert isinstance(steam, EvalRecord)
    assert steam.meta == {"unfree": True}
    assert steam.attr_path == ("steam", "x86_64-linux")
    assert records[0].outputs == {"out": "/nix/store/bbb-hello-2.12.1"}


def test_drv_paths_skip_failed_records(nixpkgs_source: PinnedSource, fake_runner_factory: Any) -> None:
    runner = fake_runner_factory(
        [
            _line(attr="a", drvPath="/nix/store/a.drv"),
            _line(attr="b", error="boom"),
            "",
            _line(attr="c", drvPath="/nix/store/c.drv"),
        ],
    )
    job = compose_evaluation_job(nixpkgs_source, RELEASE_METADATA)

    assert list(NixEvalJobs(runner=runner).drv_paths(job)) == ["/nix/store/a.drv", "/nix/store/c.drv"]


def test_rejected_option_surfaces_as_configuration_error(
    nixpkgs_source: PinnedSource,
    fake_runner_factory: Any,
) -> None:
    runner = fake_runner_factory(
        returncode=1,
        stderr="error: function 'anonymous lambda' called with unexpected argument 'notAnOption'\n",
    )
    job = compose_evaluation_job(nixpkgs_source, {"notAnOption": True})

    with pytest.raises(ConfigurationError, match="notAnOption"):
        NixEvalJobs(runner=runner).run(job)


@pytest.mark.parametrize(
    ("returncode", "message"),
    [(1, "exited with code: 1"), (-9, "killed by signal: 9")],
)
def test_evaluator_failure_raises_evaluator_error(
    nixpkgs_source: PinnedSource,
    fake_runner_factory: Any,
    returncode: int,
    message: str,
) -> None:
    runner = fake_runner_factory([_line(attr="a")], returncode=returncode, stderr="error: out of memory")
    job = compose_evaluation_job(nixpkgs_source, RELEASE_ATTR_NAMES)

    with pytest.raises(EvaluatorError) as excinfo:
        NixEvalJobs(runner=runner).run(job)
    assert message in str(excinfo.value)
    assert excinfo.value.returncode == returncode
    assert excinfo.value.stderr == "error: out of memory"


def test_eval_record_derives_attr_path_from_attr() -> None:
    record = EvalRecord.from_json({"attr": "haskellPackages.lens"})

    assert record.attr_path == ("haskellPackages", "lens")
    assert record.drv_path is None
    assert record.outputs == {}


def test_describe_returncode() -> None:
    assert describe_returncode(2) == "exited with code: 2"
    assert describe_returncode(-15) == "killed by signal: 15"


def test_stream_lines_yields_stdout_and_checks_status() -> None:
    script = "import sys; print('one'); print('two'); sys.stderr.write('bad'); sys.exit(3)"
    lines: list[str] = []

    with pytest.raises(SubprocessExecutionError) as excinfo:
        for line in stream_lines([sys.executable, "-c", script]):
            lines.append(line)

    assert lines == ["one", "two"]
    assert excinfo.value.returncode == 3
    assert excinfo.value.stderr == "bad"


def test_stream_lines_kills_child_when_consumer_stops() -> None:
    script = "import itertools\nfor n in itertools.count():\n    print(n, flush=True)"
    lines = stream_lines([sys.executable, "-c", script])

    assert next(lines) == "0"
    lines.close()


def test_stream_lines_rejects_unknown_executable() -> None:
    with pytest.raises(FileNotFoundError):
        list(stream_lines(["nixcompose-definitely-missing-binary"]))


def test_missing_evaluator_executable_raises_evaluator_error(nixpkgs_source: PinnedSource) -> None:
    evaluator = NixEvalJobs(runner=lambda args: stream_lines(["nixcompose-missing-evaluator", *args[1:]]))
    job = compose_evaluation_job(nixpkgs_source, RELEASE_ATTR_NAMES)

    with pytest.raises(EvaluatorError, match="was not found on PATH"):
        evaluator.run(job)
