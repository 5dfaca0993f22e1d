"""Tests for the shell module.

The shell is the command interpreter — it parses user input, dispatches
to built-in commands, and returns string output.  Every command drives
the kernel it was created with.
"""

from py_sched.kernel import Kernel
from py_sched.process import FCFSPolicy, LotteryPolicy, RoundRobinPolicy
from py_sched.shell import Shell


def _shell(**kwargs: int) -> tuple[Kernel, Shell]:
    """Create an FCFS kernel and a shell driving it."""
    kernel = Kernel(FCFSPolicy(), **kwargs)
    return kernel, Shell(kernel=kernel)


class TestShellExecute:
    """Verify command parsing and dispatch."""

    def test_empty_command_returns_empty(self) -> None:
        """An empty command should produce no output."""
        _kernel, shell = _shell()
        assert shell.execute("") == ""
        assert shell.execute("   ") == ""

    def test_unknown_command_returns_error(self) -> None:
        """An unknown command should name itself in the error."""
        _kernel, shell = _shell()
        assert shell.execute("foobar") == "Unknown command: foobar"

    def test_help_lists_commands(self) -> None:
        """Help should list every command."""
        _kernel, shell = _shell()
        result = shell.execute("help")
        for name in ("admit", "step", "run", "ps", "report", "log", "exit"):
            assert name in result

    def test_exit_returns_sentinel(self) -> None:
        """The exit command should return the EXIT sentinel."""
        _kernel, shell = _shell()
        assert shell.execute("exit") == Shell.EXIT_SENTINEL


class TestAdmitCommand:
    """Verify admitting processes from the command line."""

    def test_admit_with_options(self) -> None:
        """Segments and options build and admit a process."""
        kernel, shell = _shell()
        result = shell.execute("admit cpu:3 io:2 cpu:1 --priority 2 --name editor")
        assert result == "Admitted editor as pid 1 (burst 6)"
        process = kernel.get_process(1)
        assert process is not None
        assert process.priority == 2

    def test_admit_later_is_scheduled(self) -> None:
        """A future arrival is scheduled rather than admitted."""
        kernel, shell = _shell()
        assert shell.execute("admit cpu:2 --at 5 --name later") == "Scheduled later for tick 5"
        assert kernel.pending_arrivals == 1

    def test_admit_without_tasks_shows_usage(self) -> None:
        """At least one segment is required."""
        _kernel, shell = _shell()
        assert shell.execute("admit").startswith("Usage: admit")

    def test_option_without_value(self) -> None:
        """A trailing option without a value is reported."""
        _kernel, shell = _shell()
        assert shell.execute("admit cpu:2 --priority") == "Usage: --priority needs a value"

    def test_bad_segment_is_an_error(self) -> None:
        """Malformed segments surface as an error line."""
        _kernel, shell = _shell()
        result = shell.execute("admit disk:3")
        assert result.startswith("Error:")
        assert "disk" in result

    def test_capacity_error_is_reported(self) -> None:
        """Admitting past the ceiling aborts the command, not the shell."""
        _kernel, shell = _shell(max_processes=1)
        shell.execute("admit cpu:1")
        result = shell.execute("admit cpu:1 --name extra")
        assert result.startswith("Error: Cannot admit 'extra'")


class TestDriverCommands:
    """Verify step, run and clock."""

    def test_step(self) -> None:
        """step advances one tick and reports the running PID."""
        _kernel, shell = _shell()
        shell.execute("admit cpu:3")
        assert shell.execute("step") == "tick 1, running: 1"

    def test_step_many_stops_at_completion(self) -> None:
        """Stepping past completion leaves the clock where it finished."""
        _kernel, shell = _shell()
        shell.execute("admit cpu:3")
        assert shell.execute("step 10") == "tick 3, running: idle"

    def test_step_bad_count(self) -> None:
        """A non-numeric count is an error."""
        _kernel, shell = _shell()
        assert shell.execute("step many").startswith("Error:")

    def test_run_to_completion(self) -> None:
        """run reports how many ticks it took."""
        _kernel, shell = _shell()
        shell.execute("admit cpu:2")
        shell.execute("admit cpu:1")
        assert shell.execute("run") == "completed after 3 ticks (clock 3)"
        assert shell.execute("clock") == "tick 3"

    def test_bounded_run(self) -> None:
        """run N stops early when work remains."""
        kernel = Kernel(LotteryPolicy(seed=0))
        shell = Shell(kernel=kernel)
        shell.execute("admit cpu:2 --priority 0")
        assert shell.execute("run 2") == "stopped after 2 ticks (clock 2)"


class TestInspectionCommands:
    """Verify ps, report, log and policy."""

    def test_ps(self) -> None:
        """ps lists live processes with state and progress."""
        _kernel, shell = _shell()
        shell.execute("admit cpu:3 --name alpha")
        shell.execute("step")
        lines = shell.execute("ps").splitlines()
        assert lines[0].startswith("PID")
        assert "running" in lines[1]
        assert "1/3" in lines[1]
        assert "alpha" in lines[1]

    def test_report(self) -> None:
        """report shows finished processes and averages."""
        _kernel, shell = _shell()
        shell.execute("admit cpu:2 --name alpha")
        shell.execute("run")
        result = shell.execute("report")
        assert "alpha" in result
        assert "avg turnaround 2.00" in result

    def test_log_with_level(self) -> None:
        """log LEVEL filters the event log."""
        _kernel, shell = _shell()
        shell.execute("admit cpu:1")
        shell.execute("run")
        result = shell.execute("log info")
        assert "[INFO] t=0 kernel: admitted pid 1" in result
        assert "[DEBUG]" not in result

    def test_log_unknown_level(self) -> None:
        """An unknown level is reported."""
        _kernel, shell = _shell()
        assert shell.execute("log loud") == "Unknown log level: loud"

    def test_policy(self) -> None:
        """policy names the active policy."""
        shell = Shell(kernel=Kernel(RoundRobinPolicy()))
        assert shell.execute("policy") == "Policy: rr"
