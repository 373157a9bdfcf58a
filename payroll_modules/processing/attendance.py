"""
Attendance Validation (``payroll_modules.processing.attendance``).

Responsibility
--------------
Turns an employee's attendance logs, leave requests, weekly offs and
holidays for a period into a ``PeriodValidation``: per-day pay factors,
totals, the payable-days factor used for pro-ration, and the user-facing
errors and warnings.

Architecture position
---------------------
**Modules layer** -- ``calculate_payable_days`` is a pure function.
``RecordAttendanceValidator`` wraps it around an ``AttendanceRecordSource``
(the attendance and leave store, outside this package) and implements
the ``AttendanceValidator`` protocol the payroll edit session consumes.

Invariants enforced
-------------------
* Weekly offs and holidays are paid (factor 1).
* On a working day, leave takes precedence over attendance.  Unapproved
  leave and loss-of-pay leave are unpaid; approved paid leave is paid;
  approved unpaid leave is unpaid.  Half days count 0.5.
* Attendance status Present or Late = 1, Half Day = 0.5, anything else
  is an absence (0).  A working day with neither a record nor leave
  counts as present.
* factor = payable days / calendar days when the period has working
  days, else 0.

Failure modes
-------------
* A failing record fetch is reported in ``validation_errors``
  ("Failed to fetch ...") and the factor stays 0; nothing is raised.
"""

from __future__ import annotations

from collections.abc import Iterable, Sequence
from datetime import date, timedelta
from decimal import Decimal
from typing import Protocol
from uuid import UUID

from payroll_kernel.db.types import ZERO
from payroll_kernel.exceptions import PersistenceError
from payroll_kernel.logging_config import get_logger
from payroll_modules.processing.models import (
    AttendanceRecord,
    LeaveRecord,
    PayableDay,
    PeriodValidation,
)

logger = get_logger("modules.processing.attendance")

ONE = Decimal("1")
HALF = Decimal("0.5")

PRESENT_STATUSES = {"Present": ONE, "Late": ONE, "Half Day": HALF}


class AttendanceValidator(Protocol):
    """Produces the payable-days factor for an employee and period."""

    def validate_payroll_period(
        self, employee_id: UUID, start: date, end: date,
    ) -> PeriodValidation: ...


class AttendanceRecordSource(Protocol):
    """Read access to the attendance and leave store."""

    def attendance_records(
        self, employee_id: UUID, start: date, end: date,
    ) -> Sequence[AttendanceRecord]: ...

    def leave_records(
        self, employee_id: UUID, start: date, end: date,
    ) -> Sequence[LeaveRecord]: ...

    def weekly_offs(self, start: date, end: date) -> Sequence[date]: ...

    def holidays(self, start: date, end: date) -> Sequence[date]: ...


def _leave_fraction(leave: LeaveRecord, day: date) -> Decimal:
    """Portion of ``day`` taken as leave (1 or 0.5)."""
    total = leave.total_days or ONE
    multi_day = leave.start_date != leave.end_date
    if total == HALF and not multi_day:
        return HALF
    if multi_day and total % 1 != 0:
        if day == leave.start_date and leave.is_half_day_start:
            return HALF
        if day == leave.end_date and leave.is_half_day_end:
            return HALF
    return ONE


def calculate_payable_days(
    start: date,
    end: date,
    attendance: Sequence[AttendanceRecord] = (),
    leaves: Sequence[LeaveRecord] = (),
    weekly_offs: Iterable[date] = (),
    holidays: Iterable[date] = (),
) -> PeriodValidation:
    """
    Compute payable days and the payable-days factor for one period.

    Preconditions:
        - ``start <= end``.
    Postconditions:
        - One ``PayableDay`` per calendar day in [start, end].
        - ``payable_days_factor`` within [0, 1].
    """
    calendar_days = (end - start).days + 1
    off_days = set(weekly_offs)
    holiday_days = set(holidays)
    attendance_by_day = {record.day: record for record in attendance}

    working = weekly_off_count = holiday_count = absent = 0
    present = leave_days = paid_leave = unpaid_leave = ZERO
    breakdown: list[PayableDay] = []

    day = start
    while day <= end:
        is_off = day in off_days
        is_holiday = day in holiday_days

        if is_holiday:
            holiday_count += 1
            breakdown.append(PayableDay(
                day=day, pay_factor=ONE, is_working_day=False,
                is_holiday=True, is_weekly_off=is_off,
            ))
        elif is_off:
            weekly_off_count += 1
            breakdown.append(PayableDay(
                day=day, pay_factor=ONE, is_working_day=False, is_weekly_off=True,
            ))
        else:
            working += 1
            leave = next((lv for lv in leaves if lv.covers(day)), None)
            record = attendance_by_day.get(day)

            if leave is not None:
                fraction = _leave_fraction(leave, day)
                leave_days += fraction
                paid = leave.is_approved and not leave.is_loss_of_pay and leave.is_paid
                if paid:
                    paid_leave += fraction
                    factor = ONE
                else:
                    unpaid_leave += fraction
                    factor = ONE - fraction
                breakdown.append(PayableDay(
                    day=day, pay_factor=factor, is_leave=True, is_paid_leave=paid,
                    leave_type=leave.leave_type_name or "LOP",
                ))
            elif record is not None:
                factor = PRESENT_STATUSES.get(record.status, ZERO)
                if factor == ZERO:
                    absent += 1
                present += factor
                breakdown.append(PayableDay(
                    day=day, pay_factor=factor, is_present=record.status != "Absent",
                    attendance_status=record.status,
                ))
            else:
                present += ONE
                breakdown.append(PayableDay(
                    day=day, pay_factor=ONE, is_present=True, attendance_status="Present",
                ))
        day += timedelta(days=1)

    payable = sum((d.pay_factor for d in breakdown), ZERO)
    factor = payable / Decimal(calendar_days) if working > 0 else ZERO

    warnings = []
    if working == 0:
        warnings.append("No working days in the selected period")
    if absent > 0:
        warnings.append(f"Employee has {absent} absent days")
    if not attendance:
        warnings.append("No attendance records found for the period")

    return PeriodValidation(
        total_calendar_days=calendar_days,
        total_working_days=working,
        total_weekly_off_days=weekly_off_count,
        total_holidays=holiday_count,
        total_present_days=present,
        total_absent_days=absent,
        total_leave_days=leave_days,
        total_paid_leave_days=paid_leave,
        total_unpaid_leave_days=unpaid_leave,
        total_payable_days=payable,
        payable_days_factor=factor,
        payable_days_breakdown=tuple(breakdown),
        validation_warnings=tuple(warnings),
    )


class RecordAttendanceValidator:
    """``AttendanceValidator`` backed by an ``AttendanceRecordSource``."""

    def __init__(self, source: AttendanceRecordSource):
        self._source = source

    def validate_payroll_period(
        self, employee_id: UUID, start: date, end: date,
    ) -> PeriodValidation:
        fetches = (
            ("attendance records", lambda: self._source.attendance_records(employee_id, start, end)),
            ("leave records", lambda: self._source.leave_records(employee_id, start, end)),
            ("weekly off list", lambda: self._source.weekly_offs(start, end)),
            ("holidays", lambda: self._source.holidays(start, end)),
        )
        fetched = []
        for label, fetch in fetches:
            try:
                fetched.append(fetch())
            except PersistenceError as exc:
                logger.warning(
                    "attendance_fetch_failed",
                    extra={"employee_id": str(employee_id), "source": label, "detail": exc.detail},
                )
                return PeriodValidation(
                    total_calendar_days=(end - start).days + 1,
                    validation_errors=(f"Failed to fetch {label}: {exc.detail}",),
                )

        attendance, leaves, weekly_offs, holidays = fetched
        result = calculate_payable_days(
            start, end,
            attendance=attendance,
            leaves=leaves,
            weekly_offs=weekly_offs,
            holidays=holidays,
        )
        logger.info(
            "payroll_period_validated",
            extra={
                "employee_id": str(employee_id),
                "period_start": start,
                "period_end": end,
                "payable_days_factor": result.payable_days_factor,
                "warnings": len(result.validation_warnings),
            },
        )
        return result
