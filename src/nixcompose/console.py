# SPDX-License-Identifier: MIT
# Copyright (c) 2025 Blackcat Informatics® Inc.
"""Rich console provisioning shared by the status helpers and the CLI."""

from __future__ import annotations

import sys
from dataclasses import dataclass
from functools import lru_cache
from typing import Literal

from rich.console import Console


def detect_tty() -> bool:
    """Return ``True`` when stdout appears to be backed by a terminal."""

    try:
        return sys.stdout.isatty()
    except (AttributeError, ValueError):
        return False


@dataclass(frozen=True, slots=True)
class ConsoleStyle:
    """Presentation flags selecting one cached console."""

    color: bool
    emoji: bool
    tty: bool

    @property
    def color_system(self) -> Literal["auto"] | None:
        return "auto" if self.color and self.tty else None

    def build(self) -> Console:
        """Return a console honouring these flags.

        The console writes to whatever ``sys.stdout`` is at print time, so
        captured output (pytest, ``CliRunner``) still sees status lines.
        """

        return Console(
            color_system=self.color_system,
            force_terminal=self.tty,
            no_color=self.color_system is None,
            emoji=self.emoji,
            soft_wrap=True,
        )


class RichConsoleManager:
    """Hand out one console per :class:`ConsoleStyle`."""

    def __init__(self) -> None:
        self._consoles: dict[ConsoleStyle, Console] = {}

    def get(self, *, color: bool, emoji: bool) -> Console:
        style = ConsoleStyle(color=color, emoji=emoji, tty=detect_tty())
        console = self._consoles.get(style)
        if console is None:
            console = self._consoles[style] = style.build()
        return console


@lru_cache(maxsize=1)
def get_console_manager() -> RichConsoleManager:
    """Return the process-wide :class:`RichConsoleManager`."""

    return RichConsoleManager()


__all__ = ["ConsoleStyle", "RichConsoleManager", "detect_tty", "get_console_manager"]
