"""The shell — command interpreter for driving a simulation by hand.

The shell reads a command string, splits it into a command name and
arguments, dispatches to the matching handler, and returns a string.

Design choices:
    - **Returns strings, not prints.**  This keeps the shell fully
      testable; the REPL and the web front end decide how to display.
    - **Command dispatch via a dict.**  Adding a command means writing
      a method and adding one dict entry.
    - **Simulation errors become ``Error: ...`` output.**  A capacity
      or invariant failure aborts the command, not the shell.
"""

from collections.abc import Callable
from typing import TypeAlias

from py_sched.kernel import CapacityExceededError, Kernel
from py_sched.logging import LogLevel
from py_sched.process.pcb import InvariantViolationError
from py_sched.report import format_report, report_kernel
from py_sched.workload import build_process

_Handler: TypeAlias = Callable[[list[str]], str]

_OPTIONS = {"--priority": "priority", "--at": "arrival", "--name": "name"}


class Shell:
    """Command interpreter attached to one kernel."""

    EXIT_SENTINEL = "__EXIT__"

    def __init__(self, *, kernel: Kernel) -> None:
        """Create a shell that drives *kernel*."""
        self._kernel = kernel
        self._commands: dict[str, _Handler] = {
            "help": self._cmd_help,
            "admit": self._cmd_admit,
            "step": self._cmd_step,
            "run": self._cmd_run,
            "ps": self._cmd_ps,
            "report": self._cmd_report,
            "log": self._cmd_log,
            "policy": self._cmd_policy,
            "clock": self._cmd_clock,
            "exit": self._cmd_exit,
        }

    @property
    def kernel(self) -> Kernel:
        """Return the kernel this shell drives."""
        return self._kernel

    def execute(self, command: str) -> str:
        """Parse and execute a single command line."""
        parts = command.strip().split()
        if not parts:
            return ""
        name, args = parts[0], parts[1:]
        handler = self._commands.get(name)
        if handler is None:
            return f"Unknown command: {name}"
        try:
            return handler(args)
        except (CapacityExceededError, InvariantViolationError, ValueError) as e:
            return f"Error: {e}"

    # -- Command handlers ------------------------------------------------

    def _cmd_help(self, _args: list[str]) -> str:
        """List available commands."""
        return "Available commands: " + ", ".join(sorted(self._commands))

    def _cmd_admit(self, args: list[str]) -> str:
        """Admit a process: ``admit cpu:5 io:3 cpu:2 [--priority N] [--at T] [--name X]``."""
        spec: dict[str, str] = {}
        tasks: list[str] = []
        it = iter(args)
        for token in it:
            key = _OPTIONS.get(token)
            if key is None:
                tasks.append(token)
                continue
            value = next(it, None)
            if value is None:
                return f"Usage: {token} needs a value"
            spec[key] = value
        if not tasks:
            return "Usage: admit <kind:length>... [--priority N] [--at T] [--name X]"

        process = build_process({**spec, "tasks": " ".join(tasks)})
        if process.arrival_tick > self._kernel.clock:
            self._kernel.admit_at(process, process.arrival_tick)
            return f"Scheduled {process.name} for tick {process.arrival_tick}"
        pid = self._kernel.admit(process)
        return f"Admitted {process.name} as pid {pid} (burst {process.burst_time})"

    def _cmd_step(self, args: list[str]) -> str:
        """Advance N ticks (default 1)."""
        count = int(args[0]) if args else 1
        for _ in range(count):
            self._kernel.step()
        running = self._kernel.running_pid
        return f"tick {self._kernel.clock}, running: {running if running is not None else 'idle'}"

    def _cmd_run(self, args: list[str]) -> str:
        """Run to completion, or for at most N ticks."""
        max_ticks = int(args[0]) if args else None
        ticks = self._kernel.run(max_ticks=max_ticks)
        status = "completed" if self._kernel.is_completed() else "stopped"
        return f"{status} after {ticks} ticks (clock {self._kernel.clock})"

    def _cmd_ps(self, _args: list[str]) -> str:
        """Show live processes."""
        lines = ["PID    STATE       PRIO  DONE/BURST  NAME"]
        lines.extend(
            f"{pid:<6} {p.state!s:<11} {p.priority:<5} "
            f"{f'{p.time_have_burst}/{p.burst_time}':<11} {p.name}"
            for pid, p in sorted(self._kernel.processes.items())
        )
        return "\n".join(lines)

    def _cmd_report(self, _args: list[str]) -> str:
        """Show timing statistics for finished processes."""
        reports, summary = report_kernel(self._kernel)
        return format_report(reports, summary)

    def _cmd_log(self, args: list[str]) -> str:
        """Show the event log, optionally from a minimum level."""
        min_level = None
        if args:
            try:
                min_level = LogLevel[args[0].upper()]
            except KeyError:
                return f"Unknown log level: {args[0]}"
        return "\n".join(str(e) for e in self._kernel.logger.filter(min_level=min_level))

    def _cmd_policy(self, _args: list[str]) -> str:
        """Show the active scheduling policy."""
        return f"Policy: {self._kernel.policy.name}"

    def _cmd_clock(self, _args: list[str]) -> str:
        """Show the current tick."""
        return f"tick {self._kernel.clock}"

    def _cmd_exit(self, _args: list[str]) -> str:
        """Signal the REPL to stop."""
        return self.EXIT_SENTINEL
