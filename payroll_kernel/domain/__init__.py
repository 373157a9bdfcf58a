"""
Pure domain layer.

Immutable value objects with NO dependencies on the ORM, the database or
I/O.  Time is only read through an injected ``Clock``.
"""

from payroll_kernel.domain.clock import Clock, DeterministicClock, SystemClock
from payroll_kernel.domain.workflow import Transition, Workflow

__all__ = [
    "Clock",
    "DeterministicClock",
    "SystemClock",
    "Transition",
    "Workflow",
]
