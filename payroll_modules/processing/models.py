"""
Payroll Processing Domain Models (``payroll_modules.processing.models``).

Responsibility
--------------
Frozen dataclass value objects for per-period payroll processing: payroll
entries and their lifecycle status, the attendance validation result that
drives pro-ration, structure assignments and auto-saved drafts.

Architecture position
---------------------
**Modules layer** -- pure data definitions with ZERO I/O.  Consumed by
``attendance.py``, ``session.py``, ``drafts.py`` and ``service.py``.

Invariants enforced
-------------------
* All models are ``frozen=True``.
* All monetary fields and day counts use ``Decimal`` -- NEVER ``float``.
* ``payable_days_factor`` is within [0, 1].
"""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import date, datetime
from decimal import Decimal
from enum import Enum
from typing import Any
from uuid import UUID

from payroll_kernel.db.types import ZERO, to_decimal
from payroll_modules.structures.models import SalaryComponent


class PayrollStatus(Enum):
    """Payroll entry lifecycle; moves forward only."""
    DRAFT = "Draft"
    PENDING = "Pending"
    APPROVED = "Approved"
    PAID = "Paid"


@dataclass(frozen=True)
class AttendanceRecord:
    """One attendance log line: ``status`` is Present, Late, Half Day or Absent."""
    day: date
    status: str


@dataclass(frozen=True)
class LeaveRecord:
    """A leave request overlapping the period, approved or not."""
    start_date: date
    end_date: date
    status: str
    leave_type_name: str = ""
    is_paid: bool = False
    total_days: Decimal = Decimal("1")
    is_half_day_start: bool = False
    is_half_day_end: bool = False

    @property
    def is_approved(self) -> bool:
        return self.status == "Approved"

    @property
    def is_loss_of_pay(self) -> bool:
        name = self.leave_type_name.upper()
        return "LOP" in name or "LOSS OF PAY" in name

    def covers(self, day: date) -> bool:
        return self.start_date <= day <= self.end_date


@dataclass(frozen=True)
class PayableDay:
    """How one calendar day of the period counts towards pay."""
    day: date
    pay_factor: Decimal
    is_working_day: bool = True
    is_holiday: bool = False
    is_weekly_off: bool = False
    is_leave: bool = False
    is_paid_leave: bool = False
    is_present: bool = False
    leave_type: str | None = None
    attendance_status: str | None = None


@dataclass(frozen=True)
class AttendanceSummary:
    """Attendance figures stored alongside a payroll entry."""
    total_working_days: int = 0
    total_present_days: Decimal = ZERO
    total_absent_days: int = 0
    total_leave_days: Decimal = ZERO
    total_paid_leave_days: Decimal = ZERO
    payable_days_factor: Decimal = Decimal("1")

    def to_dict(self) -> dict[str, Any]:
        return {
            "total_working_days": self.total_working_days,
            "total_present_days": str(self.total_present_days),
            "total_absent_days": self.total_absent_days,
            "total_leave_days": str(self.total_leave_days),
            "total_paid_leave_days": str(self.total_paid_leave_days),
            "payable_days_factor": str(self.payable_days_factor),
        }

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> AttendanceSummary:
        return cls(
            total_working_days=int(data.get("total_working_days", 0)),
            total_present_days=to_decimal(data.get("total_present_days", ZERO)),
            total_absent_days=int(data.get("total_absent_days", 0)),
            total_leave_days=to_decimal(data.get("total_leave_days", ZERO)),
            total_paid_leave_days=to_decimal(data.get("total_paid_leave_days", ZERO)),
            payable_days_factor=to_decimal(data.get("payable_days_factor", "1")),
        )


@dataclass(frozen=True)
class PeriodValidation:
    """
    Result of validating one employee's attendance for a payroll period.

    ``validation_errors`` and ``validation_warnings`` are user-facing
    strings and are surfaced as-is.
    """
    total_calendar_days: int
    total_working_days: int = 0
    total_weekly_off_days: int = 0
    total_holidays: int = 0
    total_present_days: Decimal = ZERO
    total_absent_days: int = 0
    total_leave_days: Decimal = ZERO
    total_paid_leave_days: Decimal = ZERO
    total_unpaid_leave_days: Decimal = ZERO
    total_payable_days: Decimal = ZERO
    payable_days_factor: Decimal = ZERO
    payable_days_breakdown: tuple[PayableDay, ...] = ()
    validation_errors: tuple[str, ...] = ()
    validation_warnings: tuple[str, ...] = ()

    @property
    def has_errors(self) -> bool:
        return bool(self.validation_errors)

    def to_summary(self) -> AttendanceSummary:
        return AttendanceSummary(
            total_working_days=self.total_working_days,
            total_present_days=self.total_present_days,
            total_absent_days=self.total_absent_days,
            total_leave_days=self.total_leave_days,
            total_paid_leave_days=self.total_paid_leave_days,
            payable_days_factor=self.payable_days_factor,
        )


@dataclass(frozen=True)
class ValidationWarning:
    """Non-fatal notice shown to the user; never blocks submission."""
    message: str
    employee_id: UUID | None = None


@dataclass(frozen=True)
class PayrollSubmission:
    """What the caller submits for one employee and period."""
    employee_id: UUID
    period_start: date
    period_end: date
    components: tuple[SalaryComponent, ...]
    structure_id: UUID | None = None
    employee_code: str | None = None
    attendance_summary: AttendanceSummary | None = None
    status: PayrollStatus = PayrollStatus.DRAFT


@dataclass(frozen=True)
class PayrollEntry:
    """A persisted payroll entry for one employee and period."""
    id: UUID
    employee_id: UUID
    period_start: date
    period_end: date
    earnings: tuple[SalaryComponent, ...] = ()
    deductions: tuple[SalaryComponent, ...] = ()
    gross: Decimal = ZERO
    total_deductions: Decimal = ZERO
    net_pay: Decimal = ZERO
    status: PayrollStatus = PayrollStatus.DRAFT
    payment_date: datetime | None = None
    structure_id: UUID | None = None
    employee_code: str | None = None
    attendance_summary: AttendanceSummary | None = None

    @property
    def components(self) -> tuple[SalaryComponent, ...]:
        return self.earnings + self.deductions


@dataclass(frozen=True)
class StructureAssignment:
    """An employee's salary structure from ``effective_from``; open while ``effective_to`` is None."""
    id: UUID
    employee_id: UUID
    structure_id: UUID
    effective_from: date
    effective_to: date | None = None

    @property
    def is_open(self) -> bool:
        return self.effective_to is None


@dataclass(frozen=True)
class PayrollDraft:
    """Entered amounts for one employee's editable components, keyed by name."""
    employee_id: UUID
    structure_id: UUID
    period_start: date
    period_end: date
    component_values: dict[str, Decimal] = field(default_factory=dict)
