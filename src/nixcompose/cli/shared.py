# SPDX-License-Identifier: MIT
# Copyright (c) 2025 Blackcat Informatics® Inc.

"""Shared utilities for CLI commands (logging, errors, exit codes)."""

from __future__ import annotations

import logging
import re
from collections.abc import Iterator
from contextlib import contextmanager
from dataclasses import dataclass
from typing import Final

import typer
from rich.console import Console
from rich.text import Text

from ..config.models import ConfigError
from ..errors import ConfigurationError, EvaluatorError
from ..hashes import HashParseError
from ..logging import fail as core_fail
from ..logging import info as core_info
from ..logging import ok as core_ok
from ..logging import section as core_section
from ..logging import warn as core_warn

EXIT_LOOKUP: Final[int] = 2
EXIT_CONFIG: Final[int] = 3
EXIT_EVALUATOR: Final[int] = 4


class CLIError(RuntimeError):
    """Error raised when a CLI command fails and should exit with a status code."""

    def __init__(self, message: str, *, exit_code: int = 1) -> None:
        """Initialise the error with a message and exit code.

        Args:
            message: Human-readable error message shown to the user.
            exit_code: Exit status associated with the failure.
        """

        super().__init__(message)
        self.exit_code = exit_code


@dataclass(slots=True)
class CLILogger:
    """Adapter around project logging helpers respecting CLI emoji settings."""

    console: Console
    use_emoji: bool
    use_color: bool = True
    debug_enabled: bool = False
    _key_value_re: re.Pattern[str] = re.compile(r"([\w-]+)=(\".*?\"|\S+)")

    def fail(self, message: str) -> None:
        core_fail(message, use_emoji=self.use_emoji, use_color=self.use_color)

    def warn(self, message: str) -> None:
        core_warn(message, use_emoji=self.use_emoji, use_color=self.use_color)

    def ok(self, message: str) -> None:
        core_ok(message, use_emoji=self.use_emoji, use_color=self.use_color)

    def info(self, message: str) -> None:
        core_info(message, use_emoji=self.use_emoji, use_color=self.use_color)

    def section(self, title: str) -> None:
        core_section(title, use_color=self.use_color)

    def echo(self, message: str) -> None:
        """Write ``message`` to stdout using Typer's echo helper."""

        typer.echo(message)

    def debug(self, message: str) -> None:
        """Emit a debug message when debug logging is enabled.

        Args:
            message: Debug payload; ``key=value`` pairs are highlighted.
        """

        if not self.debug_enabled:
            return
        text = Text("[debug] ", style="bold cyan")
        cursor = 0
        for match in self._key_value_re.finditer(message):
            start, end = match.span()
            if start > cursor:
                text.append(message[cursor:start], style="dim")
            key, raw_value = match.group(1), match.group(2)
            text.append(key, style="bold magenta")
            text.append("=", style="dim")
            text.append(raw_value, style="bold blue" if key in {"command", "cmd"} else "bold green")
            cursor = end
        if cursor < len(message):
            text.append(message[cursor:], style="dim")
        self.console.print(text)


def build_cli_logger(*, emoji: bool, debug: bool = False, no_color: bool = False) -> CLILogger:
    """Return a ``CLILogger`` bound to a dedicated Rich console.

    With ``debug`` enabled the library loggers under ``nixcompose`` are routed
    to stderr at ``DEBUG`` level.
    """

    console = Console(no_color=no_color, highlight=False)
    if debug:
        logging.basicConfig(level=logging.WARNING, format="%(levelname)s %(name)s: %(message)s")
        logging.getLogger("nixcompose").setLevel(logging.DEBUG)
    return CLILogger(console=console, use_emoji=emoji, use_color=not no_color, debug_enabled=debug)


def exit_code_for(exc: BaseException) -> int | None:
    """Return the exit status for a library exception, or ``None`` if unmapped."""

    if isinstance(exc, CLIError):
        return exc.exit_code
    if isinstance(exc, (ConfigError, ConfigurationError)):
        return EXIT_CONFIG
    if isinstance(exc, EvaluatorError):
        return EXIT_EVALUATOR
    if isinstance(exc, (LookupError, HashParseError)):
        return EXIT_LOOKUP
    return None


@contextmanager
def handle_cli_errors(logger: CLILogger) -> Iterator[None]:
    """Report library failures through ``logger`` and exit with their status."""

    try:
        yield
    except (CLIError, ConfigError, ConfigurationError, EvaluatorError, LookupError, HashParseError) as exc:
        code = exit_code_for(exc)
        logger.fail(str(exc))
        if isinstance(exc, EvaluatorError) and exc.stderr:
            logger.debug(f"stderr={exc.stderr.strip()!r}")
        raise typer.Exit(code=code if code is not None else 1) from exc


__all__ = [
    "CLIError",
    "CLILogger",
    "EXIT_CONFIG",
    "EXIT_EVALUATOR",
    "EXIT_LOOKUP",
    "build_cli_logger",
    "exit_code_for",
    "handle_cli_errors",
]
