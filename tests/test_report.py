"""Tests for the post-run reporter."""

import pytest

from py_sched.kernel import Kernel
from py_sched.process import CpuBound, IoBound, Process, SJFPolicy
from py_sched.report import ProcessReport, build_report, format_report, report_kernel, summarise


def _sjf_run() -> Kernel:
    """Run the two-job SJF scenario to completion."""
    kernel = Kernel(SJFPolicy())
    kernel.admit(Process(name="long", tasks=[CpuBound(5)]))
    kernel.admit(Process(name="short", tasks=[CpuBound(2)]))
    kernel.run()
    return kernel


class TestBuildReport:
    """Verify per-process reports."""

    def test_reports_ordered_by_pid(self) -> None:
        """Reports follow PID order, not completion order."""
        reports = build_report(_sjf_run().finished)
        assert [r.name for r in reports] == ["long", "short"]
        long_job, short_job = reports
        assert (long_job.completion, long_job.turnaround, long_job.response) == (7, 7, 2)
        assert (short_job.completion, short_job.turnaround, short_job.response) == (2, 2, 0)
        assert long_job.ready_wait == 2
        assert short_job.ready_wait == 0

    def test_unfinished_processes_skipped(self) -> None:
        """Processes that have not terminated are left out."""
        kernel = Kernel(SJFPolicy())
        kernel.admit(Process(tasks=[CpuBound(3)]))
        kernel.step()
        assert build_report(kernel.processes.values()) == []

    def test_io_time_is_not_waiting(self) -> None:
        """Time blocked on I/O counts as burst, not ready-queue wait."""
        kernel = Kernel(SJFPolicy())
        kernel.admit(Process(tasks=[CpuBound(1), IoBound(3), CpuBound(1)]))
        kernel.run()
        (report,) = build_report(kernel.finished)
        assert report.turnaround == report.burst
        assert report.ready_wait == 0

    def test_as_dict(self) -> None:
        """Reports convert to plain dicts."""
        (report, _) = build_report(_sjf_run().finished)
        data = report.as_dict()
        assert data["name"] == "long"
        assert data["turnaround"] == 7


class TestSummary:
    """Verify averages."""

    def test_summary_averages(self) -> None:
        """Averages and throughput over the SJF scenario."""
        reports, summary = report_kernel(_sjf_run())
        assert summary.count == len(reports) == 2
        assert summary.avg_turnaround == pytest.approx(4.5)
        assert summary.avg_response == pytest.approx(1.0)
        assert summary.avg_wait == pytest.approx(1.0)
        assert summary.throughput == pytest.approx(2 / 7)
        assert summary.context_switches == 2

    def test_empty_summary(self) -> None:
        """No reports give a zeroed summary."""
        summary = summarise([], total_ticks=0)
        assert summary.count == 0
        assert summary.throughput == 0.0

    def test_single_report(self) -> None:
        """One report averages to itself."""
        report = ProcessReport(
            pid=1,
            name="a",
            priority=1,
            arrival=0,
            response=1,
            completion=4,
            turnaround=4,
            burst=3,
            ready_wait=1,
        )
        summary = summarise([report], total_ticks=4)
        assert summary.avg_turnaround == 4
        assert summary.throughput == pytest.approx(0.25)


class TestFormatReport:
    """Verify the text table."""

    def test_table_has_header_rows_and_summary(self) -> None:
        """One header, one row per process, one summary line."""
        text = format_report(*report_kernel(_sjf_run()))
        lines = text.splitlines()
        assert lines[0].startswith("PID")
        assert "short" in lines[2]
        assert lines[-1].startswith("avg response 1.00")
        assert len(lines) == 4
