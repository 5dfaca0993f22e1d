"""The kernel — clock-driven simulation driver.

The kernel owns everything with identity in the simulation:

- the **process table** (PID → Process), an arena keyed by dense PIDs;
- the **running pointer** to the process on the single logical CPU;
- the **clock**, a tick counter advanced only by ``tick()``;
- the **timing wheel** holding blocked processes until they are due.

Scheduling decisions belong to a pluggable policy (strategy pattern),
injected once at construction.  Policies hold PIDs, never processes,
and change process state only through the kernel's mutation API:
``switch_to``, ``burst``, ``bump_to_next``, ``await_timeout``,
``expired_timeout`` and ``complete``.

Each tick:
    1. Offer the idle CPU to processes admitted between ticks.
    2. Advance the clock; admit arrivals scheduled up to the new tick.
    3. Advance the timing wheel.
    4. Delegate to the policy's ``advance`` (expiry → burst → dispatch).
    5. Compact terminated processes out of the table.

Terminated processes are kept, in completion order, in ``finished`` so
they can still be reported on after the run; their PIDs become free
for reuse.
"""

from __future__ import annotations

import heapq
from collections import defaultdict
from itertools import count
from typing import TYPE_CHECKING

from py_sched.logging import Logger, LogLevel
from py_sched.process.pcb import InvariantViolationError, Process, ProcessState, Task
from py_sched.timer import DEFAULT_RESOLUTION, DEFAULT_WHEEL_SIZE, TimingWheel

if TYPE_CHECKING:
    from py_sched.process.scheduler import SchedulingPolicy

DEFAULT_INTERVAL = 1
DEFAULT_MAX_PROCESSES = 1 << 10


class CapacityExceededError(RuntimeError):
    """Raise when admitting a process would exceed the live-process ceiling."""


class Kernel:
    """The simulation driver for one logical processor."""

    def __init__(
        self,
        policy: SchedulingPolicy,
        *,
        interval: int = DEFAULT_INTERVAL,
        max_processes: int = DEFAULT_MAX_PROCESSES,
        wheel_size: int = DEFAULT_WHEEL_SIZE,
        wheel_resolution: int = DEFAULT_RESOLUTION,
        logger: Logger | None = None,
    ) -> None:
        """Create a kernel at tick 0 with an empty process table.

        Args:
            policy: The scheduling strategy, exclusively owned.
            interval: Clock increment per tick.
            max_processes: Ceiling on live (not yet compacted) processes.
            wheel_size: Number of buckets on the timing wheel.
            wheel_resolution: Ticks covered by one wheel bucket.
            logger: Event log to write to (a fresh one by default).

        Raises:
            ValueError: If interval or max_processes is not positive.

        """
        if interval <= 0:
            msg = f"Interval must be positive, got {interval}"
            raise ValueError(msg)
        if max_processes <= 0:
            msg = f"max_processes must be positive, got {max_processes}"
            raise ValueError(msg)
        self._policy = policy
        self._interval = interval
        self._max_processes = max_processes
        self._clock = 0
        self._waiting_list: TimingWheel[int] = TimingWheel(
            wheel_size=wheel_size, resolution=wheel_resolution
        )
        self._processes: dict[int, Process] = {}
        self._running_pid: int | None = None
        self._logger = logger if logger is not None else Logger()

        # PID allocation: monotonic counter plus PIDs freed by compaction.
        self._next_pid = count(start=1)
        self._free_pids: list[int] = []

        # Arrivals scheduled for a future tick: tick → processes.
        self._arrivals: defaultdict[int, list[Process]] = defaultdict(list)

        self._finished: list[Process] = []
        self._context_switches = 0

    # -- Accessors -------------------------------------------------------------

    @property
    def policy(self) -> SchedulingPolicy:
        """Return the scheduling policy."""
        return self._policy

    @property
    def clock(self) -> int:
        """Return the current tick."""
        return self._clock

    @property
    def interval(self) -> int:
        """Return the clock increment per tick."""
        return self._interval

    @property
    def max_processes(self) -> int:
        """Return the live-process ceiling."""
        return self._max_processes

    @property
    def logger(self) -> Logger:
        """Return the simulation event log."""
        return self._logger

    @property
    def waiting_list(self) -> TimingWheel[int]:
        """Return the timing wheel of blocked PIDs."""
        return self._waiting_list

    @property
    def processes(self) -> dict[int, Process]:
        """Return a snapshot of the live process table."""
        return dict(self._processes)

    @property
    def finished(self) -> list[Process]:
        """Return compacted (terminated) processes in completion order."""
        return list(self._finished)

    @property
    def running_pid(self) -> int | None:
        """Return the PID on the CPU, or None when idle."""
        return self._running_pid

    @property
    def context_switches(self) -> int:
        """Return how many times the CPU changed hands."""
        return self._context_switches

    @property
    def pending_arrivals(self) -> int:
        """Return the number of processes scheduled to arrive later."""
        return sum(len(procs) for procs in self._arrivals.values())

    def running_process(self) -> Process | None:
        """Return the process on the CPU, or None when idle."""
        if self._running_pid is None:
            return None
        return self._processes.get(self._running_pid)

    def get_process(self, pid: int) -> Process | None:
        """Return the live process with *pid*, or None if unknown or retired."""
        return self._processes.get(pid)

    def is_running(self, pid: int) -> bool:
        """Return True if *pid* currently owns the CPU."""
        return self._running_pid == pid

    def log(self, level: LogLevel, message: str, *, source: str = "kernel") -> None:
        """Write an entry stamped with the current tick."""
        self._logger.log(level, message, source=source, tick=self._clock)

    # -- Admission -------------------------------------------------------------

    def admit(self, process: Process) -> int:
        """Admit *process* now: assign a PID and hand it to the policy.

        Returns:
            The newly assigned PID.

        Raises:
            CapacityExceededError: If the live-process ceiling is reached.

        """
        if len(self._processes) >= self._max_processes:
            msg = (
                f"Cannot admit {process.name!r} at tick {self._clock}: "
                f"{self._max_processes} processes already live"
            )
            self.log(LogLevel.ERROR, msg)
            raise CapacityExceededError(msg)
        pid = self._generate_pid()
        process.admit(pid=pid, tick=self._clock)
        self._processes[pid] = process
        self.log(LogLevel.INFO, f"admitted pid {pid} ({process.name}), burst {process.burst_time}")
        self._policy.on_ready(self, pid)
        return pid

    def admit_at(self, process: Process, tick: int) -> None:
        """Schedule *process* to be admitted at the start of *tick*.

        Arrivals at or before the current tick are admitted immediately.
        """
        if tick <= self._clock:
            self.admit(process)
            return
        self._arrivals[tick].append(process)

    def _generate_pid(self) -> int:
        if self._free_pids:
            return heapq.heappop(self._free_pids)
        return next(self._next_pid)

    # -- Mutation API used by policies ----------------------------------------

    def switch_to(self, pid: int | None) -> None:
        """Give the CPU to *pid*, or leave it idle when *pid* is None.

        A previous process that is still RUNNING is preempted back to
        RUNNABLE; one that already blocked or terminated is left alone.

        Raises:
            InvariantViolationError: If *pid* is not a live process.

        """
        previous = self._running_pid
        if pid is not None and pid not in self._processes:
            msg = f"Cannot switch to unknown process {pid} at tick {self._clock}"
            self.log(LogLevel.ERROR, msg)
            raise InvariantViolationError(msg)
        if previous is not None and previous != pid:
            prev_proc = self._processes.get(previous)
            if prev_proc is not None and prev_proc.state is ProcessState.RUNNING:
                prev_proc.preempt()
        self._running_pid = pid
        if pid is None:
            return
        process = self._processes[pid]
        if process.state is not ProcessState.RUNNING:
            process.dispatch()
        if previous != pid:
            self._context_switches += 1
            self.log(LogLevel.DEBUG, f"switch {previous} -> {pid}")

    def burst(self, pid: int) -> Task | None:
        """Burst *pid* for one tick; see ``Process.burst``."""
        process = self._require(pid, "burst")
        try:
            return process.burst(self._clock)
        except InvariantViolationError as e:
            self.log(LogLevel.ERROR, str(e))
            raise

    def bump_to_next(self, pid: int) -> Task | None:
        """Pop *pid*'s active segment; see ``Process.bump_to_next``."""
        return self._require(pid, "bump").bump_to_next()

    def await_timeout(self, pid: int, duration: int) -> None:
        """Block *pid* for *duration* ticks in the timing wheel."""
        process = self._require(pid, "block")
        process.wait()
        self._waiting_list.add_timeout(pid, duration)
        self.log(LogLevel.DEBUG, f"pid {pid} blocked for {duration} ticks")

    def expired_timeout(self) -> int | None:
        """Pop one PID whose wait is over, wake it, and return it.

        Returns None once nothing further is due this tick.  Stale
        entries for processes no longer waiting are skipped.
        """
        while (pid := self._waiting_list.expire_timeout()) is not None:
            process = self._processes.get(pid)
            if process is None or process.state is not ProcessState.WAITING:
                continue
            process.wake()
            self.log(LogLevel.DEBUG, f"pid {pid} woke up")
            return pid
        return None

    def complete(self, pid: int) -> None:
        """Terminate *pid* at the current tick (idempotent, no-op if unknown)."""
        process = self._processes.get(pid)
        if process is not None:
            process.set_complete(self._clock)

    def _require(self, pid: int, action: str) -> Process:
        process = self._processes.get(pid)
        if process is None:
            msg = f"Cannot {action}: unknown process {pid} at tick {self._clock}"
            self.log(LogLevel.ERROR, msg)
            raise InvariantViolationError(msg)
        return process

    # -- Driver loop -----------------------------------------------------------

    def tick(self) -> None:
        """Advance the simulation by one tick.

        Raises:
            CapacityExceededError: If a scheduled arrival cannot be admitted.
            InvariantViolationError: If the policy corrupts process state.

        """
        if self._running_pid is None and self._processes:
            self._policy.dispatch(self)

        self._clock += self._interval
        for due in sorted(t for t in self._arrivals if t <= self._clock):
            # Leave arrivals not yet admitted pending if admission fails.
            pending = self._arrivals[due]
            while pending:
                self.admit(pending[0])
                pending.pop(0)
            del self._arrivals[due]
        self._waiting_list.tick()

        self._policy.advance(self)
        self._compact()

    def step(self) -> None:
        """Run exactly one tick unless the simulation is complete."""
        if not self.is_completed():
            self.tick()

    def run(self, *, max_ticks: int | None = None) -> int:
        """Tick until every process completes (or *max_ticks* elapse).

        Returns:
            The number of ticks executed.

        """
        ticks = 0
        while not self.is_completed():
            if max_ticks is not None and ticks >= max_ticks:
                self.log(LogLevel.WARNING, f"stopped after {ticks} ticks with work remaining")
                break
            self.tick()
            ticks += 1
        return ticks

    def is_completed(self) -> bool:
        """Return True when no live or scheduled process has work left."""
        if self._arrivals:
            return False
        return all(p.complete for p in self._processes.values())

    def _compact(self) -> None:
        """Move terminated processes to ``finished`` and free their PIDs."""
        retired = [pid for pid, p in self._processes.items() if p.complete]
        for pid in retired:
            process = self._processes.pop(pid)
            self._finished.append(process)
            heapq.heappush(self._free_pids, pid)
            self.log(
                LogLevel.INFO,
                f"pid {pid} completed at tick {process.completion_tick}, "
                f"turnaround {process.turnaround_time}",
            )
            if self._running_pid == pid:
                self._running_pid = None

    def purge_finished(self) -> int:
        """Drop retained terminated processes once they have been reported.

        Returns:
            Number of processes purged.

        """
        purged = len(self._finished)
        self._finished.clear()
        return purged

    # -- Metrics ---------------------------------------------------------------

    def perf_metrics(self) -> dict[str, float | int]:
        """Aggregate timing statistics over finished processes."""
        done = [p for p in self._finished if p.turnaround_time is not None]
        completed = len(done)
        total_turnaround = sum(p.turnaround_time or 0 for p in done)
        total_response = sum(p.response_time or 0 for p in done)
        total_wait = sum(max(0, (p.turnaround_time or 0) - p.burst_time) for p in done)
        return {
            "ticks": self._clock,
            "context_switches": self._context_switches,
            "total_completed": completed,
            "avg_turnaround_time": total_turnaround / completed if completed else 0.0,
            "avg_response_time": total_response / completed if completed else 0.0,
            "avg_wait_time": total_wait / completed if completed else 0.0,
            "throughput": completed / self._clock if self._clock else 0.0,
        }
