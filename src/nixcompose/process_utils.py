# SPDX-License-Identifier: MIT
# Copyright (c) 2025 Blackcat Informatics® Inc.
"""Safe wrappers around ``subprocess`` execution."""

from __future__ import annotations

import shutil
import tempfile

# Bandit: commands are argument vectors for Nix tooling; ``shell=True`` is never used.
import subprocess  # nosec B404
from collections.abc import Generator, Mapping, Sequence
from pathlib import Path
from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from subprocess import CompletedProcess as _CompletedProcess  # nosec B404


class SubprocessExecutionError(RuntimeError):
    """Raised when a subprocess exits with a non-zero status while ``check`` is true."""

    def __init__(
        self,
        command: Sequence[str],
        returncode: int,
        stdout: str | None,
        stderr: str | None,
    ) -> None:
        super().__init__(
            f"Command '{command[0]}' {describe_returncode(returncode)}. stderr: {stderr or '<none>'}",
        )
        self.command = tuple(command)
        self.returncode = returncode
        self.stdout = stdout
        self.stderr = stderr


def describe_returncode(returncode: int) -> str:
    """Return a human description of a process exit status.

    Negative return codes follow :mod:`subprocess` and denote the signal that
    terminated the process.
    """

    if returncode < 0:
        return f"killed by signal: {-returncode}"
    return f"exited with code: {returncode}"


def _normalize_args(args: Sequence[str]) -> list[str]:
    if not args:
        msg = "subprocess command requires at least one argument"
        raise ValueError(msg)

    head, *rest = args
    head_path = Path(head)
    if head_path.is_absolute():
        return [str(head_path), *rest]

    resolved = shutil.which(head)
    if resolved is None:
        msg = f"Executable '{head}' was not found on PATH"
        raise FileNotFoundError(msg)
    return [resolved, *rest]


def run_command(
    args: Sequence[str],
    *,
    cwd: Path | None = None,
    env: Mapping[str, str] | None = None,
    check: bool = True,
    capture_output: bool = True,
    timeout: float | None = None,
) -> _CompletedProcess[str]:
    """Execute *args* after resolving the executable on ``PATH``."""

    normalized = _normalize_args(args)
    # Bandit: argument lists are passed directly without shell expansion.
    completed: _CompletedProcess[str] = subprocess.run(  # nosec B603
        normalized,
        cwd=str(cwd) if cwd is not None else None,
        env=dict(env) if env is not None else None,
        check=False,
        capture_output=capture_output,
        text=True,
        timeout=timeout,
        stdin=subprocess.DEVNULL,
    )
    if check and completed.returncode != 0:
        raise SubprocessExecutionError(normalized, completed.returncode, completed.stdout, completed.stderr)
    return completed


def stream_lines(
    args: Sequence[str],
    *,
    cwd: Path | None = None,
    env: Mapping[str, str] | None = None,
) -> Generator[str, None, None]:
    """Yield stdout lines of *args* as they arrive, then check the exit status.

    The child is killed when the consumer stops iterating early.

    Raises:
        SubprocessExecutionError: If the process exits with a non-zero status.
    """

    normalized = _normalize_args(args)
    # stderr is spooled to a file so a chatty child cannot block on a full pipe
    with tempfile.TemporaryFile(mode="w+", encoding="utf-8") as stderr_file:
        # Bandit: argument lists are passed directly without shell expansion.
        process = subprocess.Popen(  # nosec B603
            normalized,
            cwd=str(cwd) if cwd is not None else None,
            env=dict(env) if env is not None else None,
            stdin=subprocess.DEVNULL,
            stdout=subprocess.PIPE,
            stderr=stderr_file,
            text=True,
        )
        finished = False
        try:
            if process.stdout is None:
                raise RuntimeError(f"no stdout pipe for {normalized[0]}")
            for line in process.stdout:
                yield line.rstrip("\n")
            finished = True
        finally:
            if not finished:
                process.kill()
            returncode = process.wait()
            if process.stdout is not None:
                process.stdout.close()
        stderr_file.seek(0)
        stderr = stderr_file.read()
    if returncode != 0:
        raise SubprocessExecutionError(normalized, returncode, None, stderr)


__all__ = ["SubprocessExecutionError", "describe_returncode", "run_command", "stream_lines"]
