"""Interactive REPL — drive a simulation from the terminal.

Usage::

    py-sched [policy] [key=value ...]

e.g. ``py-sched rr quantum=3`` or ``py-sched lottery seed=7``.
"""

import sys

from py_sched.kernel import Kernel
from py_sched.process.scheduler import create_policy
from py_sched.shell import Shell

PROMPT = "sched $ "


def parse_policy_args(argv: list[str]) -> tuple[str, dict[str, object]]:
    """Split ``[policy] [key=value ...]`` into a name and integer params.

    Raises:
        ValueError: If a parameter is not ``key=int``.

    """
    name = argv[0] if argv else "fcfs"
    params: dict[str, object] = {}
    for arg in argv[1:]:
        key, sep, value = arg.partition("=")
        if not sep:
            msg = f"Expected key=value, got {arg!r}"
            raise ValueError(msg)
        if "," in value:
            params[key] = tuple(int(v) for v in value.split(","))
        else:
            params[key] = int(value)
    return name, params


def run(argv: list[str] | None = None) -> None:
    """Create a kernel and run the interactive loop until exit or EOF."""
    try:
        name, params = parse_policy_args(sys.argv[1:] if argv is None else argv)
        policy = create_policy(name, **params)
    except ValueError as e:
        print(f"Error: {e}")  # noqa: T201
        return

    shell = Shell(kernel=Kernel(policy))
    print(f"py-sched ({policy.name}). Type 'help' for commands.")  # noqa: T201

    try:
        while True:
            try:
                command = input(PROMPT)
            except EOFError:
                # Ctrl+D
                print()  # noqa: T201
                break

            result = shell.execute(command)
            if result == Shell.EXIT_SENTINEL:
                break
            if result:
                print(result)  # noqa: T201

    except KeyboardInterrupt:
        print("\nInterrupted.")  # noqa: T201
