"""Workload builder — turn descriptions into processes and admit them.

Workloads are plain data so they can come from a shell command, a JSON
request body, or a seeded random generator::

    {"name": "editor", "priority": 2, "arrival": 3,
     "tasks": [["cpu", 4], ["io", 6], ["cpu", 2]]}

Segments may also be written as ``"cpu:4"`` strings, and a whole task
list as ``"cpu:4 io:6 cpu:2"``.
"""

from __future__ import annotations

from random import Random
from typing import TYPE_CHECKING, Any

from py_sched.process.pcb import DEFAULT_PRIORITY, CpuBound, IoBound, Process, Task

if TYPE_CHECKING:
    from collections.abc import Iterable, Mapping

    from py_sched.kernel import Kernel

_TASK_KINDS: dict[str, type[Task]] = {"cpu": CpuBound, "io": IoBound}


def parse_task(raw: Any) -> Task:
    """Parse one segment from ``"cpu:5"``, ``["io", 3]`` or a Task.

    Raises:
        ValueError: If the kind is unknown or the length is not a
            positive integer.

    """
    if isinstance(raw, Task):
        return raw
    if isinstance(raw, str):
        kind, sep, length = raw.partition(":")
        if not sep:
            msg = f"Malformed task {raw!r}, expected kind:length"
            raise ValueError(msg)
    elif isinstance(raw, (list, tuple)) and len(raw) == 2:  # noqa: PLR2004
        kind, length = raw
    else:
        msg = f"Malformed task {raw!r}"
        raise ValueError(msg)

    factory = _TASK_KINDS.get(str(kind).strip().lower())
    if factory is None:
        msg = f"Unknown task kind {kind!r} (expected cpu or io)"
        raise ValueError(msg)
    try:
        ticks = int(length)
    except (TypeError, ValueError):
        msg = f"Task length must be an integer, got {length!r}"
        raise ValueError(msg) from None
    if ticks <= 0:
        msg = f"Task length must be positive, got {ticks}"
        raise ValueError(msg)
    return factory(ticks)


def parse_tasks(text: str) -> list[Task]:
    """Parse a whitespace-separated list like ``"cpu:5 io:3 cpu:2"``."""
    return [parse_task(token) for token in text.split()]


def build_process(spec: Mapping[str, Any]) -> Process:
    """Build a NEW process from a mapping description.

    Raises:
        ValueError: If the description is malformed.

    """
    raw_tasks = spec.get("tasks")
    if isinstance(raw_tasks, str):
        tasks = parse_tasks(raw_tasks)
    elif isinstance(raw_tasks, (list, tuple)):
        tasks = [parse_task(t) for t in raw_tasks]
    else:
        msg = "Process description needs a 'tasks' list"
        raise ValueError(msg)
    if not tasks:
        msg = "Process description needs at least one task"
        raise ValueError(msg)

    priority = int(spec.get("priority", DEFAULT_PRIORITY))
    if priority < 0:
        msg = f"Priority must not be negative, got {priority}"
        raise ValueError(msg)
    arrival = int(spec.get("arrival", 0))
    if arrival < 0:
        msg = f"Arrival must not be negative, got {arrival}"
        raise ValueError(msg)
    name = spec.get("name")
    return Process(
        name=str(name) if name is not None else None,
        tasks=tasks,
        priority=priority,
        arrival_tick=arrival,
    )


def load_workload(kernel: Kernel, specs: Iterable[Mapping[str, Any]]) -> list[Process]:
    """Build every process and admit (or schedule) it on *kernel*.

    Processes are admitted in description order; those arriving after
    the current tick are handed to ``Kernel.admit_at``.

    Returns:
        The built processes, in description order.

    """
    processes: list[Process] = []
    for spec in specs:
        process = build_process(spec)
        kernel.admit_at(process, process.arrival_tick)
        processes.append(process)
    return processes


def random_workload(
    count: int,
    *,
    seed: int | None = None,
    max_segments: int = 3,
    max_length: int = 8,
    max_arrival: int = 0,
    max_priority: int = 3,
) -> list[dict[str, Any]]:
    """Generate a reproducible workload of alternating CPU / I/O segments.

    Every process starts and ends with a CPU segment, so it always has
    ``2k + 1`` segments for some ``k < max_segments``.

    Args:
        count: Number of processes.
        seed: Random seed.
        max_segments: Upper bound on CPU segments per process.
        max_length: Upper bound on a segment's length.
        max_arrival: Latest arrival tick.
        max_priority: Upper bound on priority (lower bound 1).

    Returns:
        Process descriptions suitable for ``load_workload``.

    """
    if count < 0 or max_segments < 1 or max_length < 1 or max_priority < 1:
        msg = "count must be >= 0 and the other bounds >= 1"
        raise ValueError(msg)
    rng = Random(seed)
    specs: list[dict[str, Any]] = []
    for i in range(count):
        cpu_segments = rng.randint(1, max_segments)
        tasks: list[list[Any]] = []
        for j in range(cpu_segments):
            if j:
                tasks.append(["io", rng.randint(1, max_length)])
            tasks.append(["cpu", rng.randint(1, max_length)])
        specs.append(
            {
                "name": f"P{i}",
                "priority": rng.randint(1, max_priority),
                "arrival": rng.randint(0, max_arrival) if max_arrival > 0 else 0,
                "tasks": tasks,
            }
        )
    return specs
