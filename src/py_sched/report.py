"""Reporter — per-process timing statistics after a run.

The kernel keeps terminated processes in ``Kernel.finished`` until
``purge_finished`` is called, so a report can be built once the run is
over.  Waiting time is derived: the part of the turnaround not spent
bursting or blocked on I/O.
"""

from __future__ import annotations

from dataclasses import asdict, dataclass
from statistics import mean
from typing import TYPE_CHECKING, Any

if TYPE_CHECKING:
    from collections.abc import Iterable, Sequence

    from py_sched.kernel import Kernel
    from py_sched.process.pcb import Process


@dataclass(frozen=True)
class ProcessReport:
    """Final statistics for one terminated process."""

    pid: int
    name: str
    priority: int
    arrival: int
    response: int
    completion: int
    turnaround: int
    burst: int
    ready_wait: int

    def as_dict(self) -> dict[str, Any]:
        """Return the report as a JSON-friendly dict."""
        return asdict(self)


@dataclass(frozen=True)
class Summary:
    """Averages over a set of process reports."""

    count: int
    avg_response: float
    avg_turnaround: float
    avg_wait: float
    throughput: float
    context_switches: int = 0

    def as_dict(self) -> dict[str, Any]:
        """Return the summary as a JSON-friendly dict."""
        return asdict(self)


def build_report(processes: Iterable[Process]) -> list[ProcessReport]:
    """Build reports for every terminated process, ordered by PID.

    Processes that have not terminated are skipped.
    """
    reports: list[ProcessReport] = []
    for p in processes:
        if p.pid is None or p.completion_tick is None or p.turnaround_time is None:
            continue
        reports.append(
            ProcessReport(
                pid=p.pid,
                name=p.name,
                priority=p.priority,
                arrival=p.arrival_tick,
                response=p.response_time if p.response_time is not None else 0,
                completion=p.completion_tick,
                turnaround=p.turnaround_time,
                burst=p.burst_time,
                ready_wait=max(0, p.turnaround_time - p.burst_time),
            )
        )
    return sorted(reports, key=lambda r: (r.pid, r.completion))


def summarise(
    reports: Sequence[ProcessReport],
    *,
    total_ticks: int,
    context_switches: int = 0,
) -> Summary:
    """Average the reports; throughput is completions per tick."""
    if not reports:
        return Summary(0, 0.0, 0.0, 0.0, 0.0, context_switches)
    return Summary(
        count=len(reports),
        avg_response=mean(r.response for r in reports),
        avg_turnaround=mean(r.turnaround for r in reports),
        avg_wait=mean(r.ready_wait for r in reports),
        throughput=len(reports) / total_ticks if total_ticks else 0.0,
        context_switches=context_switches,
    )


def report_kernel(kernel: Kernel) -> tuple[list[ProcessReport], Summary]:
    """Build the reports and summary for everything *kernel* has finished."""
    reports = build_report(kernel.finished)
    summary = summarise(
        reports,
        total_ticks=kernel.clock,
        context_switches=kernel.context_switches,
    )
    return reports, summary


def format_report(reports: Sequence[ProcessReport], summary: Summary) -> str:
    """Render reports and summary as a fixed-width text table."""
    lines = ["PID    NAME         ARRIVE  RESP  DONE  TURN  BURST  WAIT"]
    lines.extend(
        f"{r.pid:<6} {r.name:<12} {r.arrival:>6} {r.response:>5} {r.completion:>5} "
        f"{r.turnaround:>5} {r.burst:>6} {r.ready_wait:>5}"
        for r in reports
    )
    lines.append(
        f"avg response {summary.avg_response:.2f}  "
        f"avg turnaround {summary.avg_turnaround:.2f}  "
        f"avg wait {summary.avg_wait:.2f}  "
        f"throughput {summary.throughput:.3f}  "
        f"switches {summary.context_switches}"
    )
    return "\n".join(lines)
