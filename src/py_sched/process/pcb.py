"""Process and Process Control Block (PCB).

A simulated process is an ordered queue of **task segments**, each
either CPU-bound or I/O-bound.  The front segment is the one currently
active.  Every tick the process spends on the CPU consumes one tick of
that segment (a *burst*).

The PCB also carries the timing statistics the reporter reads after
the run: arrival, response, completion and turnaround.

State machine::

    NEW → RUNNABLE ⇄ RUNNING → TERMINATED
             ↑          ↓
             └─ WAITING ┘

Every transition method enforces its source state; an illegal
transition means a scheduling policy is broken, so it raises
InvariantViolationError rather than limping on.
"""

from __future__ import annotations

from collections import deque
from dataclasses import dataclass
from enum import StrEnum
from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from collections.abc import Iterable

DEFAULT_PRIORITY = 1


class InvariantViolationError(RuntimeError):
    """Raise when the simulation reaches a state that should be impossible."""


@dataclass
class Task:
    """A task segment with a mutable remaining-duration counter."""

    remaining: int

    @property
    def exhausted(self) -> bool:
        """Return True once every tick of the segment is consumed."""
        return self.remaining <= 0


@dataclass
class CpuBound(Task):
    """A segment that needs the CPU for ``remaining`` ticks."""


@dataclass
class IoBound(Task):
    """A segment that blocks on I/O for ``remaining`` ticks."""


class ProcessState(StrEnum):
    """Lifecycle states of a simulated process.

    - NEW: built by the workload, not yet admitted.
    - RUNNABLE: known to the policy, waiting for the CPU.
    - RUNNING: occupying the single logical processor.
    - WAITING: blocked on a timeout in the timing wheel.
    - TERMINATED: all work consumed; statistics are final.
    """

    NEW = "new"
    RUNNABLE = "runnable"
    RUNNING = "running"
    WAITING = "waiting"
    TERMINATED = "terminated"


class Process:
    """A simulated job (the Process Control Block).

    Processes never choose their own PID; the kernel assigns one on
    admission.  Total burst time is the sum of all segment durations
    and grows when segments are appended.
    """

    def __init__(
        self,
        *,
        name: str | None = None,
        tasks: Iterable[Task] = (),
        priority: int = DEFAULT_PRIORITY,
        arrival_tick: int = 0,
    ) -> None:
        """Create a process in the NEW state.

        Args:
            name: Optional human-readable label.
            tasks: Initial segments, front first.
            priority: Weight used by ticket-based policies.
            arrival_tick: Tick the process arrives; the kernel
                overwrites it with the admission tick.

        """
        self._pid: int | None = None
        self._name = name
        self._state = ProcessState.NEW
        self._priority = priority
        self._tasks: deque[Task] = deque()
        self._burst_time = 0
        self._time_have_burst = 0
        self._arrival_tick = arrival_tick
        self._response_time: int | None = None
        self._completion_tick: int | None = None
        self._turnaround_time: int | None = None
        for task in tasks:
            self.append_task(task)

    @property
    def pid(self) -> int | None:
        """Return the kernel-assigned PID, or None before admission."""
        return self._pid

    @property
    def name(self) -> str:
        """Return the process name (defaults to ``proc<pid>``)."""
        if self._name is not None:
            return self._name
        return f"proc{self._pid}" if self._pid is not None else "proc"

    @property
    def state(self) -> ProcessState:
        """Return the current state."""
        return self._state

    @property
    def priority(self) -> int:
        """Return the scheduling weight."""
        return self._priority

    @property
    def tasks(self) -> list[Task]:
        """Return a snapshot of the remaining segments, front first."""
        return list(self._tasks)

    @property
    def active_task(self) -> Task | None:
        """Return the front segment, or None if the queue is empty."""
        return self._tasks[0] if self._tasks else None

    @property
    def burst_time(self) -> int:
        """Return the total work: sum of all segment durations."""
        return self._burst_time

    @property
    def time_have_burst(self) -> int:
        """Return the ticks of work already consumed."""
        return self._time_have_burst

    @property
    def remaining_time(self) -> int:
        """Return the ticks of work still to consume."""
        return self._burst_time - self._time_have_burst

    @property
    def arrival_tick(self) -> int:
        """Return the tick the process arrived."""
        return self._arrival_tick

    @property
    def response_time(self) -> int | None:
        """Return ticks between arrival and first burst, once known."""
        return self._response_time

    @property
    def completion_tick(self) -> int | None:
        """Return the tick the process terminated, once known."""
        return self._completion_tick

    @property
    def turnaround_time(self) -> int | None:
        """Return completion minus arrival, once known."""
        return self._turnaround_time

    @property
    def complete(self) -> bool:
        """Return True once the process has terminated."""
        return self._state is ProcessState.TERMINATED

    def append_task(self, task: Task) -> None:
        """Append a segment to the back of the queue.

        Raises:
            InvariantViolationError: If the process already terminated.
            ValueError: If the segment has no ticks left.

        """
        if self._state is ProcessState.TERMINATED:
            msg = f"Cannot append task: process {self._pid} is terminated"
            raise InvariantViolationError(msg)
        if task.remaining <= 0:
            msg = f"Task length must be positive, got {task.remaining}"
            raise ValueError(msg)
        self._tasks.append(task)
        self._burst_time += task.remaining

    # -- Kernel-only mutation --------------------------------------------------

    def _transition(self, action: str, expected: ProcessState, target: ProcessState) -> None:
        if self._state is not expected:
            msg = f"Cannot {action}: process {self._pid} is {self._state}, expected {expected}"
            raise InvariantViolationError(msg)
        self._state = target

    def admit(self, *, pid: int, tick: int) -> None:
        """Transition NEW → RUNNABLE, taking the PID and arrival tick."""
        self._transition("admit", ProcessState.NEW, ProcessState.RUNNABLE)
        self._pid = pid
        self._arrival_tick = tick

    def dispatch(self) -> None:
        """Transition RUNNABLE → RUNNING."""
        self._transition("dispatch", ProcessState.RUNNABLE, ProcessState.RUNNING)

    def preempt(self) -> None:
        """Transition RUNNING → RUNNABLE."""
        self._transition("preempt", ProcessState.RUNNING, ProcessState.RUNNABLE)

    def wait(self) -> None:
        """Transition RUNNING → WAITING."""
        self._transition("wait", ProcessState.RUNNING, ProcessState.WAITING)

    def wake(self) -> None:
        """Transition WAITING → RUNNABLE."""
        self._transition("wake", ProcessState.WAITING, ProcessState.RUNNABLE)

    def set_complete(self, tick: int) -> None:
        """Terminate and freeze completion statistics (idempotent)."""
        if self._state is ProcessState.TERMINATED:
            return
        self._state = ProcessState.TERMINATED
        self._completion_tick = tick
        self._turnaround_time = tick - self._arrival_tick

    def burst(self, tick: int) -> Task | None:
        """Consume one tick of the active segment.

        Args:
            tick: The current clock value.

        Returns:
            The active segment after consumption (possibly exhausted),
            or None when this tick finished the process.

        Raises:
            InvariantViolationError: If the process is not running or
                has no segment left to burst.

        """
        if self._state is not ProcessState.RUNNING:
            msg = f"Cannot burst: process {self._pid} is {self._state} at tick {tick}"
            raise InvariantViolationError(msg)
        if not self._tasks:
            msg = f"Cannot burst: process {self._pid} has no task segment at tick {tick}"
            raise InvariantViolationError(msg)

        if self._time_have_burst == 0 and self._response_time is None:
            self._response_time = tick - self._arrival_tick - 1
        self._time_have_burst += 1

        if self._time_have_burst >= self._burst_time:
            self.set_complete(tick)
            return None

        task = self._tasks[0]
        task.remaining -= 1
        return task

    def bump_to_next(self) -> Task | None:
        """Pop the active segment, crediting whatever it had left.

        Returns:
            The popped segment, or None if the queue was empty.

        """
        if not self._tasks:
            return None
        task = self._tasks.popleft()
        self._time_have_burst = min(self._burst_time, self._time_have_burst + max(task.remaining, 0))
        return task

    def __repr__(self) -> str:
        """Return a debug-friendly representation."""
        return f"Process(pid={self._pid}, name={self.name!r}, state={self._state})"
