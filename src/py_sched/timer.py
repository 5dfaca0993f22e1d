"""Hashed timing wheel — O(1) timeouts for blocked processes.

When a process starts an I/O segment it must sleep for a number of
ticks.  Keeping every sleeper in a sorted list would cost O(log n) per
insert; a **timing wheel** does it in O(1) instead.

Picture a clock face with ``wheel_size`` slots (buckets).  A cursor
moves one slot per tick.  A timeout due in ``d`` ticks is dropped into
the slot the cursor will point at in ``d`` ticks, together with a
**round** counter: how many times the cursor must still land on that
slot before the timeout fires.  Timeouts longer than one revolution
simply carry a larger round.

Only the bucket the cursor lands on has its rounds decremented — the
other buckets are untouched.  An entry is due when its round reaches
zero *and* the cursor is on its bucket.

Design choices:
    - **deque per bucket** — insertion order is preserved, so entries
      due on the same tick expire FIFO.
    - **Past or zero deadlines** land in the current bucket with round
      zero, i.e. they are due immediately.
"""

from __future__ import annotations

from collections import deque
from dataclasses import dataclass
from typing import Generic, TypeVar

T = TypeVar("T")

DEFAULT_WHEEL_SIZE = 8
DEFAULT_RESOLUTION = 1


@dataclass
class WheelTimeout(Generic[T]):
    """One pending timeout: the waiting item and its remaining rounds."""

    item: T
    rounds: int


class TimingWheel(Generic[T]):
    """A fixed-size circular array of timeout buckets.

    ``current_tick`` advances by ``resolution`` on every ``tick()``;
    each tick moves the cursor exactly one bucket.
    """

    def __init__(
        self,
        *,
        wheel_size: int = DEFAULT_WHEEL_SIZE,
        resolution: int = DEFAULT_RESOLUTION,
    ) -> None:
        """Create an empty wheel.

        Args:
            wheel_size: Number of buckets on the wheel.
            resolution: Ticks covered by one bucket.

        Raises:
            ValueError: If either argument is not positive.

        """
        if wheel_size <= 0:
            msg = f"Wheel size must be positive, got {wheel_size}"
            raise ValueError(msg)
        if resolution <= 0:
            msg = f"Resolution must be positive, got {resolution}"
            raise ValueError(msg)
        self._wheel_size = wheel_size
        self._resolution = resolution
        self._buckets: list[deque[WheelTimeout[T]]] = [deque() for _ in range(wheel_size)]
        self._current_tick = 0

    @property
    def wheel_size(self) -> int:
        """Return the number of buckets."""
        return self._wheel_size

    @property
    def resolution(self) -> int:
        """Return the ticks covered by one bucket."""
        return self._resolution

    @property
    def current_tick(self) -> int:
        """Return the cursor position in ticks."""
        return self._current_tick

    @property
    def cursor(self) -> int:
        """Return the index of the bucket the cursor points at."""
        return (self._current_tick // self._resolution) % self._wheel_size

    @property
    def pending(self) -> int:
        """Return the number of timeouts not yet expired."""
        return sum(len(bucket) for bucket in self._buckets)

    def empty(self) -> bool:
        """Return True if no timeouts are pending."""
        return all(not bucket for bucket in self._buckets)

    def add_timeout(self, item: T, deadline: int) -> None:
        """Schedule *item* to become due ``deadline`` ticks from now.

        Args:
            item: The waiting entity (typically a PID).
            deadline: Relative ticks until expiry.  Values <= 0 are
                due immediately.

        """
        # Ceiling division: a partial bucket still needs a full slot.
        slots = max(0, -(-deadline // self._resolution))
        rounds = -(-slots // self._wheel_size)
        bucket = (self.cursor + slots) % self._wheel_size
        self._buckets[bucket].append(WheelTimeout(item=item, rounds=rounds))

    def tick(self) -> None:
        """Advance the cursor one bucket and count down that bucket's rounds."""
        self._current_tick += self._resolution
        for timeout in self._buckets[self.cursor]:
            if timeout.rounds > 0:
                timeout.rounds -= 1

    def expire_timeout(self) -> T | None:
        """Pop and return one due item from the current bucket, or None.

        Call repeatedly to drain every item due on this tick.
        """
        bucket = self._buckets[self.cursor]
        for i, timeout in enumerate(bucket):
            if timeout.rounds <= 0:
                del bucket[i]
                return timeout.item
        return None
