"""JSON web API for py-sched.

This package provides a Flask application that exposes the simulation
shell and a batch ``simulate`` endpoint over HTTP.  It is an
**optional** extra — install with::

    pip install py-sched[web]

The ``create_app`` factory in ``app.py`` serves three endpoints:

- ``POST /api/execute`` — execute a shell command and return JSON.
- ``GET /api/status`` — clock and live process table.
- ``POST /api/simulate`` — run a workload and return its report.
"""
