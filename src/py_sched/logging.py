"""Simulation event log.

Every entry is stamped with the simulated tick and the component that
wrote it (``kernel`` or a policy name).  Nothing here reads the wall
clock, so two runs of the same workload produce the same log.
"""

from dataclasses import dataclass
from enum import IntEnum


class LogLevel(IntEnum):
    """Entry severity; higher is more severe."""

    DEBUG = 0
    INFO = 1
    WARNING = 2
    ERROR = 3


@dataclass(frozen=True)
class LogEntry:
    """One event: what happened, who reported it, and on which tick."""

    level: LogLevel
    message: str
    source: str
    tick: int = 0

    def __str__(self) -> str:
        """Format as ``[LEVEL] t=tick source: message``."""
        return f"[{self.level.name}] t={self.tick} {self.source}: {self.message}"


class Logger:
    """Event log shared by a kernel and its policy."""

    def __init__(self) -> None:
        """Create an empty log."""
        self._entries: list[LogEntry] = []

    @property
    def entries(self) -> list[LogEntry]:
        """Return a copy of every entry, oldest first."""
        return list(self._entries)

    def log(self, level: LogLevel, message: str, *, source: str, tick: int = 0) -> None:
        """Record *message* from *source* at *tick*."""
        self._entries.append(LogEntry(level=level, message=message, source=source, tick=tick))

    def filter(
        self,
        *,
        min_level: LogLevel | None = None,
        source: str | None = None,
        since: int | None = None,
    ) -> list[LogEntry]:
        """Select entries; every criterion given must match.

        Args:
            min_level: Lowest severity to keep.
            source: Keep only entries written by this component.
            since: Keep only entries stamped at or after this tick.

        """
        return [
            e
            for e in self._entries
            if (min_level is None or e.level >= min_level)
            and (source is None or e.source == source)
            and (since is None or e.tick >= since)
        ]

    def tail(self, count: int) -> list[LogEntry]:
        """Return the newest *count* entries."""
        return self._entries[-count:] if count > 0 else []

    def clear(self) -> None:
        """Forget every entry."""
        self._entries.clear()

    def __len__(self) -> int:
        """Return the number of entries."""
        return len(self._entries)
