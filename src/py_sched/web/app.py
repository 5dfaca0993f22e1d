"""Flask application factory for the py-sched web API.

The ``create_app`` function builds a kernel with the chosen policy,
attaches a shell, and returns a Flask app with three endpoints:

- ``POST /api/execute`` — execute a shell command and return JSON.
- ``GET /api/status`` — return the clock and the live process table.
- ``POST /api/simulate`` — run a whole workload on a fresh kernel and
  return the per-process report and summary.
"""

from __future__ import annotations

from typing import Any

from flask import Flask, Response, jsonify, request

from py_sched.kernel import CapacityExceededError, Kernel
from py_sched.process.pcb import InvariantViolationError
from py_sched.process.scheduler import create_policy
from py_sched.report import report_kernel
from py_sched.shell import Shell
from py_sched.workload import load_workload

_HTTP_BAD_REQUEST = 400
DEFAULT_MAX_TICKS = 100_000


def _simulate(data: dict[str, Any]) -> dict[str, Any]:
    """Run the workload described by *data* to completion."""
    params = data.get("params") or {}
    if not isinstance(params, dict):
        msg = "'params' must be an object"
        raise ValueError(msg)
    policy = create_policy(str(data.get("policy", "fcfs")), **params)
    kernel = Kernel(policy)
    processes = data.get("processes")
    if not isinstance(processes, list) or not processes:
        msg = "'processes' must be a non-empty list"
        raise ValueError(msg)
    load_workload(kernel, processes)
    ticks = kernel.run(max_ticks=int(data.get("max_ticks", DEFAULT_MAX_TICKS)))
    reports, summary = report_kernel(kernel)
    return {
        "policy": policy.name,
        "ticks": ticks,
        "completed": kernel.is_completed(),
        "processes": [r.as_dict() for r in reports],
        "summary": summary.as_dict(),
    }


def create_app(policy: str = "fcfs", **params: object) -> Flask:
    """Create and configure the Flask application.

    Args:
        policy: Policy name for the interactive kernel.
        **params: Parameters for that policy.

    Returns:
        A configured Flask application ready to serve.

    """
    kernel = Kernel(create_policy(policy, **params))
    shell = Shell(kernel=kernel)

    app = Flask(__name__)

    @app.route("/api/execute", methods=["POST"])
    def execute() -> tuple[Response, int] | Response:  # pyright: ignore[reportUnusedFunction]
        """Execute a shell command and return JSON output.

        Expects JSON body: ``{"command": "..."}``

        Returns:
            JSON with ``output`` and ``halted`` fields.

        """
        data = request.get_json(silent=True)
        if data is None or "command" not in data:
            return jsonify({"error": "Missing 'command' field"}), _HTTP_BAD_REQUEST

        result = shell.execute(str(data["command"]))
        if result == Shell.EXIT_SENTINEL:
            return jsonify({"output": "Session closed.", "halted": True})
        return jsonify({"output": result, "halted": False})

    @app.route("/api/status")
    def status() -> Response:  # pyright: ignore[reportUnusedFunction]
        """Return the clock and the live process table."""
        return jsonify(
            {
                "policy": kernel.policy.name,
                "clock": kernel.clock,
                "running": kernel.running_pid,
                "completed": kernel.is_completed(),
                "processes": [
                    {
                        "pid": pid,
                        "name": p.name,
                        "state": str(p.state),
                        "burst": p.burst_time,
                        "done": p.time_have_burst,
                    }
                    for pid, p in sorted(kernel.processes.items())
                ],
            }
        )

    @app.route("/api/simulate", methods=["POST"])
    def simulate() -> tuple[Response, int] | Response:  # pyright: ignore[reportUnusedFunction]
        """Run a workload on a fresh kernel and return its report.

        Expects JSON body: ``{"policy": "rr", "params": {"quantum": 2},
        "processes": [{"tasks": [["cpu", 3]]}]}``
        """
        data = request.get_json(silent=True)
        if not isinstance(data, dict):
            return jsonify({"error": "Expected a JSON object"}), _HTTP_BAD_REQUEST
        try:
            return jsonify(_simulate(data))
        except (CapacityExceededError, InvariantViolationError, ValueError, TypeError) as e:
            return jsonify({"error": str(e)}), _HTTP_BAD_REQUEST

    return app


def main() -> None:
    """Run the web API development server.

    This is the ``py-sched-web`` console entry point.
    """
    app = create_app()
    app.run(debug=True, port=8080)
