# SPDX-License-Identifier: MIT
# Copyright (c) 2025 Blackcat Informatics® Inc.
"""Throughput bookkeeping for long-running hash harvests."""

from __future__ import annotations

from dataclasses import dataclass, field


@dataclass(slots=True)
class TimingBucket:
    """Track the average time spent per ``scale`` hashes.

    ``since_mark`` holds the time accumulated since the last multiple of
    ``scale`` was crossed, so :meth:`average_rate` only counts completed marks.
    """

    scale: int
    last_total: int = 0
    last_update: float = 0.0
    since_start: float = 0.0
    since_mark: float = 0.0

    def __post_init__(self) -> None:
        if self.scale <= 0 or self.scale % 1000:
            raise ValueError("scale must be a positive multiple of 1000")

    @classmethod
    def started_at(cls, scale: int, start: float) -> TimingBucket:
        return cls(scale=scale, last_update=start)

    @property
    def marks_passed(self) -> int:
        return self.last_total // self.scale

    def update(self, now: float, current_total: int) -> None:
        """Record that ``current_total`` hashes were seen by time ``now``."""

        if current_total < self.last_total or now < self.last_update:
            raise ValueError("timing updates must be monotonic")
        delta = current_total - self.last_total
        elapsed = now - self.last_update
        self.last_update = now
        self.since_start += elapsed

        last_mark = self.marks_passed
        self.last_total = current_total
        if self.marks_passed > last_mark:
            progress = current_total % self.scale
            complete = delta - progress
            attributed = elapsed * complete / delta
            self.since_mark = elapsed - attributed
        else:
            self.since_mark += elapsed

    def average_rate(self) -> float | None:
        """Return seconds per ``scale`` hashes over completed marks only."""

        marks = self.marks_passed
        if marks == 0:
            return None
        return (self.since_start - self.since_mark) / marks

    def average_rate_predictive(self) -> float | None:
        """Return seconds per ``scale`` hashes extrapolated from all progress."""

        if self.last_total == 0:
            return None
        return self.since_start * self.scale / self.last_total

    def render(self, *, predictive: bool = False, width: int = 0, precision: int = 2) -> str:
        thousands = self.scale // 1000
        rate = self.average_rate_predictive() if predictive else self.average_rate()
        text = f"--/{thousands}k" if rate is None else f"{rate:.{precision}f}s/{thousands}k"
        return text.rjust(width)


def format_elapsed(seconds: float) -> str:
    """Render a duration like ``1m 5s`` or ``3s 120ms``.

    Durations of a minute or more drop sub-second precision.
    """

    total_ms = int(seconds) * 1000 if seconds >= 60 else int(seconds * 1000)
    if total_ms == 0:
        return "0s"
    days, remainder = divmod(total_ms, 86_400_000)
    hours, remainder = divmod(remainder, 3_600_000)
    minutes, remainder = divmod(remainder, 60_000)
    secs, millis = divmod(remainder, 1000)
    parts: list[str] = []
    if days:
        parts.append(f"{days}day" if days == 1 else f"{days}days")
    for value, unit in ((hours, "h"), (minutes, "m"), (secs, "s"), (millis, "ms")):
        if value:
            parts.append(f"{value}{unit}")
    return " ".join(parts)


@dataclass(slots=True)
class HarvestProgress:
    """Running totals reported after each harvested batch."""

    start: float
    derivations: int = 0
    hashes: int = 0
    unique: int = 0
    buckets: list[TimingBucket] = field(default_factory=list)

    @classmethod
    def started_at(cls, start: float) -> HarvestProgress:
        buckets = [TimingBucket.started_at(scale, start) for scale in (1_000, 10_000, 100_000)]
        return cls(start=start, buckets=buckets)

    def record(self, now: float, *, derivations: int, hashes: int, unique: int) -> None:
        self.derivations += derivations
        self.hashes += hashes
        self.unique = unique
        for bucket in self.buckets:
            bucket.update(now, self.hashes)

    def progress_line(self, now: float) -> str:
        return (
            f"[progress] drvs: {self.derivations}, hashes: {self.hashes} (unique: {self.unique}), "
            f"elapsed: {format_elapsed(now - self.start)}"
        )

    def perf_line(self) -> str:
        small, medium, large = self.buckets
        return (
            f"[perf (s/hash)] {small.render(width=9)}, {medium.render(width=10)}, "
            f"{large.render(predictive=True, width=12)}"
        )


__all__ = ["HarvestProgress", "TimingBucket", "format_elapsed"]
