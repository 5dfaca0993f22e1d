"""CPU scheduling policies — who runs next, and for how long.

Every policy plugs into the kernel through three hooks:

- ``on_ready(kernel, pid)`` — a process became runnable (admitted or
  woken); put it in the policy's ready structure.
- ``dispatch(kernel)`` — pick the next process and ``switch_to`` it,
  or switch to None when nothing is ready.
- ``on_burst(kernel, pid)`` — called after the running process burst
  a tick and is still on the CPU; preemptive policies decide here.

The per-tick algorithm itself (``advance``) is shared by all policies
and lives in BasePolicy:

1. Drain the timing wheel, calling ``on_ready`` for each woken PID.
2. If a process is running, burst it one tick and react:
   - CPU segment continues → ``on_cpu_burst`` (no-op by default);
     an exhausted CPU segment is popped so the next segment starts.
   - I/O segment → pop it; block for what is left of it, or complete
     the process if that was its last work; then dispatch.
   - Work finished → complete, then dispatch.
   Afterwards ``on_burst`` runs if the process still holds the CPU.
3. If no process is running, dispatch.

Six policies ship out of the box:

- **FCFSPolicy**: FIFO by readiness; never preempts.
- **SJFPolicy**: shortest total burst first; never preempts.
- **STCFPolicy**: shortest remaining time first; preempts whenever a
  ready process has strictly less work left than the running one.
- **RoundRobinPolicy**: FIFO with a fixed quantum.
- **MLFQPolicy**: three levels; quanta for levels 0 and 1, level 2
  runs until it blocks or higher levels have work.
- **LotteryPolicy**: proportional share; the winner is re-drawn on
  every tick, weighted by ``priority × ticket_multiplier``.

Policies keep only PIDs.  Process state is read through
``kernel.get_process`` and changed only through kernel calls.
"""

from __future__ import annotations

import heapq
from collections import deque
from itertools import count
from random import Random
from typing import TYPE_CHECKING, Protocol

from py_sched.logging import LogLevel
from py_sched.process.pcb import CpuBound, IoBound, ProcessState

if TYPE_CHECKING:
    from collections.abc import Callable

    from py_sched.kernel import Kernel

DEFAULT_QUANTUM = 2
DEFAULT_MLFQ_QUANTUMS = (2, 4)
MLFQ_LEVELS = 3
DEFAULT_TICKET_MULTIPLIER = 100


class SchedulingPolicy(Protocol):
    """Interface the kernel drives once per tick."""

    name: str

    def on_ready(self, kernel: Kernel, pid: int) -> None:
        """Admit *pid* into the policy's ready structure."""
        ...  # pragma: no cover

    def dispatch(self, kernel: Kernel) -> None:
        """Select the next process and switch to it (or to None)."""
        ...  # pragma: no cover

    def on_burst(self, kernel: Kernel, pid: int) -> None:
        """React to *pid* having burst one tick while still running."""
        ...  # pragma: no cover

    def advance(self, kernel: Kernel) -> None:
        """Run the shared per-tick algorithm."""
        ...  # pragma: no cover


class BasePolicy:
    """Shared tick-advance algorithm; subclasses supply the hooks."""

    name = "base"

    def on_ready(self, kernel: Kernel, pid: int) -> None:
        """Admit *pid* into the ready structure."""
        raise NotImplementedError

    def dispatch(self, kernel: Kernel) -> None:
        """Select the next process and switch to it."""
        raise NotImplementedError

    def on_burst(self, kernel: Kernel, pid: int) -> None:
        """Preemption check; non-preemptive by default."""

    def on_cpu_burst(self, kernel: Kernel, pid: int) -> None:
        """React to a CPU segment that keeps running; no-op by default."""

    def advance(self, kernel: Kernel) -> None:
        """Advance the simulation by one tick on behalf of the kernel."""
        while (pid := kernel.expired_timeout()) is not None:
            self.on_ready(kernel, pid)

        current = kernel.running_pid
        if current is None:
            self.dispatch(kernel)
            return

        match kernel.burst(current):
            case None:
                kernel.complete(current)
                if kernel.is_running(current):
                    self.dispatch(kernel)
            case IoBound():
                self._start_io(kernel, current)
            case CpuBound() as task:
                if task.exhausted:
                    kernel.bump_to_next(current)
                self.on_cpu_burst(kernel, current)

        if kernel.is_running(current):
            process = kernel.get_process(current)
            if process is not None and process.state is ProcessState.RUNNING:
                self.on_burst(kernel, current)

    def _start_io(self, kernel: Kernel, pid: int) -> None:
        """Turn the I/O segment just issued into a wait (or a completion)."""
        segment = kernel.bump_to_next(pid)
        process = kernel.get_process(pid)
        if process is None or segment is None:
            return
        if process.remaining_time <= 0:
            kernel.complete(pid)
        elif segment.remaining > 0:
            kernel.await_timeout(pid, segment.remaining)
        else:
            # The I/O finished within the issuing tick.
            return
        self.dispatch(kernel)

    @staticmethod
    def _is_ready(kernel: Kernel, pid: int) -> bool:
        """Return True if *pid* may be dispatched (runnable, or requeued while running)."""
        process = kernel.get_process(pid)
        if process is None:
            return False
        if process.state is ProcessState.RUNNING:
            return kernel.is_running(pid)
        return process.state is ProcessState.RUNNABLE

    def _log(self, kernel: Kernel, message: str) -> None:
        kernel.log(LogLevel.DEBUG, message, source=self.name)


class FCFSPolicy(BasePolicy):
    """First Come, First Served — a plain FIFO of ready PIDs."""

    name = "fcfs"

    def __init__(self) -> None:
        """Create an FCFS policy with an empty queue."""
        self._queue: deque[int] = deque()

    @property
    def ready(self) -> list[int]:
        """Return a snapshot of the ready queue."""
        return list(self._queue)

    def on_ready(self, kernel: Kernel, pid: int) -> None:
        """Append *pid* to the back of the queue."""
        self._queue.append(pid)

    def dispatch(self, kernel: Kernel) -> None:
        """Switch to the oldest ready PID, or go idle."""
        while self._queue:
            pid = self._queue.popleft()
            if self._is_ready(kernel, pid):
                kernel.switch_to(pid)
                return
        kernel.switch_to(None)


class _HeapPolicy(BasePolicy):
    """Min-heap of ready PIDs; ties broken by readiness order."""

    def __init__(self) -> None:
        self._heap: list[tuple[int, int, int]] = []
        self._seq = count()

    @property
    def ready(self) -> list[int]:
        """Return ready PIDs in selection order."""
        return [pid for _, _, pid in sorted(self._heap)]

    def key(self, kernel: Kernel, pid: int) -> int:
        """Return the ordering key for *pid* (smaller runs first)."""
        raise NotImplementedError

    def on_ready(self, kernel: Kernel, pid: int) -> None:
        """Push *pid* keyed by ``key``."""
        heapq.heappush(self._heap, (self.key(kernel, pid), next(self._seq), pid))

    def dispatch(self, kernel: Kernel) -> None:
        """Switch to the ready PID with the smallest key, or go idle."""
        while self._heap:
            _, _, pid = heapq.heappop(self._heap)
            if self._is_ready(kernel, pid):
                kernel.switch_to(pid)
                return
        kernel.switch_to(None)


class SJFPolicy(_HeapPolicy):
    """Shortest Job First — ordered by total burst time, non-preemptive."""

    name = "sjf"

    def key(self, kernel: Kernel, pid: int) -> int:
        """Order by total burst time."""
        process = kernel.get_process(pid)
        return process.burst_time if process is not None else 0


class STCFPolicy(_HeapPolicy):
    """Shortest Time-to-Completion First — preemptive SJF.

    Keys are remaining time.  A ready process's remaining time cannot
    change while it waits, so heap keys never go stale.
    """

    name = "stcf"

    def key(self, kernel: Kernel, pid: int) -> int:
        """Order by remaining time."""
        process = kernel.get_process(pid)
        return process.remaining_time if process is not None else 0

    def on_burst(self, kernel: Kernel, pid: int) -> None:
        """Preempt *pid* if a ready process has strictly less work left."""
        running = kernel.get_process(pid)
        while self._heap and not self._is_ready(kernel, self._heap[0][2]):
            heapq.heappop(self._heap)
        if running is None or not self._heap:
            return
        best_remaining, _, best_pid = self._heap[0]
        if best_remaining >= running.remaining_time:
            return
        heapq.heappop(self._heap)
        self.on_ready(kernel, pid)
        kernel.switch_to(best_pid)
        self._log(kernel, f"pid {best_pid} ({best_remaining} left) preempts pid {pid}")


class RoundRobinPolicy(BasePolicy):
    """Round Robin — FIFO order, preempted after ``quantum`` ticks."""

    name = "rr"

    def __init__(self, *, quantum: int = DEFAULT_QUANTUM) -> None:
        """Create a Round Robin policy.

        Args:
            quantum: Ticks a process may run before it is requeued.

        Raises:
            ValueError: If the quantum is not positive.

        """
        if quantum <= 0:
            msg = f"Quantum must be positive, got {quantum}"
            raise ValueError(msg)
        self._quantum = quantum
        self._queue: deque[int] = deque()
        self._used: dict[int, int] = {}

    @property
    def quantum(self) -> int:
        """Return the time quantum (ticks per slice)."""
        return self._quantum

    @property
    def ready(self) -> list[int]:
        """Return a snapshot of the ready queue."""
        return list(self._queue)

    def used_slice(self, pid: int) -> int:
        """Return ticks *pid* has run in its current slice."""
        return self._used.get(pid, 0)

    def on_ready(self, kernel: Kernel, pid: int) -> None:
        """Append *pid* to the back of the queue."""
        self._queue.append(pid)

    def dispatch(self, kernel: Kernel) -> None:
        """Switch to the front of the queue with a fresh slice."""
        while self._queue:
            pid = self._queue.popleft()
            if self._is_ready(kernel, pid):
                self._used[pid] = 0
                kernel.switch_to(pid)
                return
        kernel.switch_to(None)

    def on_burst(self, kernel: Kernel, pid: int) -> None:
        """Requeue *pid* at the tail once its quantum is used up."""
        self._used[pid] = self._used.get(pid, 0) + 1
        if self._used[pid] < self._quantum:
            return
        self._used[pid] = 0
        self._queue.append(pid)
        self._log(kernel, f"pid {pid} quantum expired")
        self.dispatch(kernel)


class MLFQPolicy(BasePolicy):
    """Multilevel Feedback Queue with three levels (0 = highest).

    Every process enters (and re-enters after a wait) at level 0.
    Using up a level's quantum demotes it one level.  Level 2 has no
    quantum: it runs until it blocks, unless a higher level has ready
    work, in which case it goes back to the tail of level 2.
    """

    name = "mlfq"

    def __init__(self, *, quantums: tuple[int, int] = DEFAULT_MLFQ_QUANTUMS) -> None:
        """Create an MLFQ policy.

        Args:
            quantums: Slice lengths for levels 0 and 1.

        Raises:
            ValueError: If not exactly two positive quanta are given.

        """
        if len(quantums) != MLFQ_LEVELS - 1 or any(q <= 0 for q in quantums):
            msg = f"MLFQ needs {MLFQ_LEVELS - 1} positive quanta, got {quantums}"
            raise ValueError(msg)
        self._quantums = tuple(quantums)
        self._queues: list[deque[int]] = [deque() for _ in range(MLFQ_LEVELS)]
        self._levels: dict[int, int] = {}
        self._used: dict[int, int] = {}

    @property
    def quantums(self) -> tuple[int, ...]:
        """Return the quanta for levels 0 and 1."""
        return self._quantums

    def level(self, pid: int) -> int:
        """Return the current level of *pid* (0 if unknown)."""
        return self._levels.get(pid, 0)

    def ready_at(self, level: int) -> list[int]:
        """Return a snapshot of the ready PIDs at *level*."""
        return list(self._queues[level])

    def on_ready(self, kernel: Kernel, pid: int) -> None:
        """Queue *pid* at level 0 with a fresh slice."""
        self._levels[pid] = 0
        self._used[pid] = 0
        self._queues[0].append(pid)

    def dispatch(self, kernel: Kernel) -> None:
        """Switch to the front of the highest non-empty level."""
        for queue in self._queues:
            while queue:
                pid = queue.popleft()
                if self._is_ready(kernel, pid):
                    kernel.switch_to(pid)
                    return
        kernel.switch_to(None)

    def _higher_ready(self, level: int) -> bool:
        return any(self._queues[i] for i in range(level))

    def on_burst(self, kernel: Kernel, pid: int) -> None:
        """Demote on quantum expiry; yield to higher levels with work."""
        level = self.level(pid)
        self._used[pid] = self._used.get(pid, 0) + 1
        if level < MLFQ_LEVELS - 1 and self._used[pid] >= self._quantums[level]:
            self._levels[pid] = level + 1
            self._used[pid] = 0
            self._queues[level + 1].append(pid)
            self._log(kernel, f"pid {pid} demoted to level {level + 1}")
            self.dispatch(kernel)
        elif self._higher_ready(level):
            self._queues[level].append(pid)
            self._log(kernel, f"pid {pid} at level {level} yields to higher level")
            self.dispatch(kernel)


class LotteryPolicy(BasePolicy):
    """Lottery (fair-share) scheduling with a re-draw on every tick.

    Each runnable process holds ``priority × ticket_multiplier`` tickets.
    A uniform draw in ``[1, total]`` picks the winner by walking the
    holders and subtracting their tickets.  Unlike quantum-based
    policies the draw is repeated every tick the CPU is busy, so the
    running process can lose the CPU after any single tick.
    """

    name = "lottery"

    def __init__(
        self,
        *,
        ticket_multiplier: int = DEFAULT_TICKET_MULTIPLIER,
        seed: int | None = None,
    ) -> None:
        """Create a lottery policy.

        Args:
            ticket_multiplier: Tickets granted per unit of priority.
            seed: Seed for the draw, for reproducible runs.

        Raises:
            ValueError: If the multiplier is negative.

        """
        if ticket_multiplier < 0:
            msg = f"Ticket multiplier must not be negative, got {ticket_multiplier}"
            raise ValueError(msg)
        self._multiplier = ticket_multiplier
        self._rng = Random(seed)
        self._holders: dict[int, int] = {}

    @property
    def ticket_multiplier(self) -> int:
        """Return the tickets granted per unit of priority."""
        return self._multiplier

    def tickets(self, pid: int) -> int:
        """Return the tickets held by *pid* (0 if not a holder)."""
        return self._holders.get(pid, 0)

    def on_ready(self, kernel: Kernel, pid: int) -> None:
        """Give *pid* tickets in proportion to its priority."""
        process = kernel.get_process(pid)
        weight = process.priority if process is not None else 0
        self._holders[pid] = max(0, weight * self._multiplier)

    def _prune(self, kernel: Kernel) -> None:
        """Forget holders that blocked, terminated or left the table."""
        for pid in list(self._holders):
            process = kernel.get_process(pid)
            if process is None or process.state not in (
                ProcessState.RUNNABLE,
                ProcessState.RUNNING,
            ):
                del self._holders[pid]

    def draw(self, kernel: Kernel) -> int | None:
        """Hold one lottery among live holders and return the winner."""
        self._prune(kernel)
        total = sum(self._holders.values())
        if total <= 0:
            return None
        winning = self._rng.randint(1, total)
        cumulative = 0
        for pid, tickets in self._holders.items():
            cumulative += tickets
            if cumulative >= winning:
                return pid
        return None  # pragma: no cover

    def dispatch(self, kernel: Kernel) -> None:
        """Switch to the lottery winner, or go idle when no tickets remain."""
        kernel.switch_to(self.draw(kernel))

    def on_burst(self, kernel: Kernel, pid: int) -> None:
        """Re-draw after every tick the running process bursts."""
        winner = self.draw(kernel)
        if winner != pid:
            self._log(kernel, f"pid {winner} wins the draw over pid {pid}")
        kernel.switch_to(winner)


POLICIES: dict[str, Callable[..., BasePolicy]] = {
    FCFSPolicy.name: FCFSPolicy,
    SJFPolicy.name: SJFPolicy,
    STCFPolicy.name: STCFPolicy,
    RoundRobinPolicy.name: RoundRobinPolicy,
    MLFQPolicy.name: MLFQPolicy,
    LotteryPolicy.name: LotteryPolicy,
}


def create_policy(name: str, **params: object) -> BasePolicy:
    """Build a policy from its registry name.

    Args:
        name: One of ``POLICIES`` (case-insensitive).
        **params: Keyword arguments for the policy constructor.

    Raises:
        ValueError: If the name is unknown or the parameters are invalid.

    """
    factory = POLICIES.get(name.lower())
    if factory is None:
        msg = f"Unknown policy {name!r} (choose from {', '.join(POLICIES)})"
        raise ValueError(msg)
    try:
        return factory(**params)
    except TypeError as e:
        msg = f"Invalid parameters for {name}: {e}"
        raise ValueError(msg) from None
