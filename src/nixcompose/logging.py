# SPDX-License-Identifier: MIT
# Copyright (c) 2025 Blackcat Informatics® Inc.
"""User-facing status lines with optional colour and emoji.

Library diagnostics go through ``logging.getLogger(__name__)``; the helpers
here are for messages addressed to the person running a command.
"""

from __future__ import annotations

from enum import Enum

from rich.rule import Rule
from rich.text import Text

from .console import detect_tty, get_console_manager


class Status(Enum):
    """Kinds of status line, each with its emoji prefix and Rich style."""

    INFO = ("ℹ️ ", "cyan")
    OK = ("✅ ", "green")
    WARN = ("⚠️ ", "yellow")
    FAIL = ("❌ ", "red")

    def __init__(self, symbol: str, style: str) -> None:
        self.symbol = symbol
        self.style = style


def emoji(symbol: str, enable: bool) -> str:
    """Return *symbol* when emoji output is enabled, otherwise blank."""

    return symbol if enable else ""


def status(kind: Status, msg: str, *, use_emoji: bool, use_color: bool | None = None) -> None:
    """Print one status line of ``kind``.

    Args:
        kind: Status kind selecting the prefix and colour.
        msg: Message text.
        use_emoji: Prefix the line with the kind's emoji.
        use_color: Explicit colour flag; ``None`` follows TTY detection.
    """

    color_enabled = detect_tty() if use_color is None else use_color
    text = Text(f"{emoji(kind.symbol, use_emoji)}{msg}")
    if color_enabled:
        text.stylize(kind.style)
    get_console_manager().get(color=color_enabled, emoji=use_emoji).print(text)


def section(title: str, *, use_color: bool) -> None:
    """Print a heading that separates blocks of command output."""

    console = get_console_manager().get(color=use_color, emoji=False)
    if use_color:
        console.print(Rule(title))
    else:
        console.print(f"--- {title} ---")


def info(msg: str, *, use_emoji: bool, use_color: bool | None = None) -> None:
    status(Status.INFO, msg, use_emoji=use_emoji, use_color=use_color)


def ok(msg: str, *, use_emoji: bool, use_color: bool | None = None) -> None:
    status(Status.OK, msg, use_emoji=use_emoji, use_color=use_color)


def warn(msg: str, *, use_emoji: bool, use_color: bool | None = None) -> None:
    status(Status.WARN, msg, use_emoji=use_emoji, use_color=use_color)


def fail(msg: str, *, use_emoji: bool, use_color: bool | None = None) -> None:
    status(Status.FAIL, msg, use_emoji=use_emoji, use_color=use_color)


__all__ = ["Status", "emoji", "fail", "info", "ok", "section", "status", "warn"]
