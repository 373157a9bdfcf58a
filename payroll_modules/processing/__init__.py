"""
Payroll Processing Module (``payroll_modules.processing``).

Responsibility
--------------
Per-period payroll for one employee at a time: attendance validation and
the payable-days factor, the payroll edit session (pro-ration plus
entered amounts), entry persistence and its status lifecycle, structure
assignment history and debounced draft auto-save.

Architecture position
---------------------
**Modules layer** -- builds on ``payroll_modules.structures`` for the
component model, the resolver and totals.  The services in
``service.py`` own persistence and are imported from there directly.
"""

from payroll_modules.processing.attendance import (
    AttendanceRecordSource,
    AttendanceValidator,
    RecordAttendanceValidator,
    calculate_payable_days,
)
from payroll_modules.processing.drafts import DraftAutoSaver, DraftWriter
from payroll_modules.processing.models import (
    AttendanceRecord,
    AttendanceSummary,
    LeaveRecord,
    PayableDay,
    PayrollDraft,
    PayrollEntry,
    PayrollStatus,
    PayrollSubmission,
    PeriodValidation,
    StructureAssignment,
    ValidationWarning,
)
from payroll_modules.processing.session import PayrollEditSession
from payroll_modules.processing.workflows import PAYROLL_ENTRY_WORKFLOW

__all__ = [
    "AttendanceRecord",
    "AttendanceRecordSource",
    "AttendanceSummary",
    "AttendanceValidator",
    "DraftAutoSaver",
    "DraftWriter",
    "LeaveRecord",
    "PAYROLL_ENTRY_WORKFLOW",
    "PayableDay",
    "PayrollDraft",
    "PayrollEditSession",
    "PayrollEntry",
    "PayrollStatus",
    "PayrollSubmission",
    "PeriodValidation",
    "RecordAttendanceValidator",
    "StructureAssignment",
    "ValidationWarning",
    "calculate_payable_days",
]
