"""Process subsystem — PCB, task segments, and scheduling policies.

Re-exports public symbols so callers can write::

    from py_sched.process import Process, CpuBound, RoundRobinPolicy
"""

from py_sched.process.pcb import (
    CpuBound,
    InvariantViolationError,
    IoBound,
    Process,
    ProcessState,
    Task,
)
from py_sched.process.scheduler import (
    POLICIES,
    BasePolicy,
    FCFSPolicy,
    LotteryPolicy,
    MLFQPolicy,
    RoundRobinPolicy,
    SchedulingPolicy,
    SJFPolicy,
    STCFPolicy,
    create_policy,
)

__all__ = [
    "POLICIES",
    "BasePolicy",
    "CpuBound",
    "FCFSPolicy",
    "InvariantViolationError",
    "IoBound",
    "LotteryPolicy",
    "MLFQPolicy",
    "Process",
    "ProcessState",
    "RoundRobinPolicy",
    "SJFPolicy",
    "STCFPolicy",
    "SchedulingPolicy",
    "Task",
    "create_policy",
]
