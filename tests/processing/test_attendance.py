"""
Tests for payable-days calculation and attendance validation.

Validates:
- Weekly offs and holidays are paid
- Leave precedence, paid / unpaid / loss-of-pay, half days
- Attendance statuses and absence counting
- Factor = payable / calendar days; 0 with no working days
- Fetch failures become validation errors
"""

from datetime import date, timedelta
from decimal import Decimal

import pytest

from payroll_kernel.exceptions import PersistenceError
from payroll_modules.processing.attendance import (
    RecordAttendanceValidator,
    calculate_payable_days,
)
from payroll_modules.processing.models import AttendanceRecord, LeaveRecord

START = date(2024, 6, 1)
END = date(2024, 6, 10)


def _days(start, count):
    return [start + timedelta(days=i) for i in range(count)]


class TestCalculatePayableDays:

    def test_full_attendance(self):
        records = [AttendanceRecord(d, "Present") for d in _days(START, 10)]
        result = calculate_payable_days(START, END, attendance=records)
        assert result.total_calendar_days == 10
        assert result.total_working_days == 10
        assert result.total_payable_days == Decimal("10")
        assert result.payable_days_factor == Decimal("1")
        assert result.validation_warnings == ()
        assert len(result.payable_days_breakdown) == 10

    def test_absences_reduce_factor(self):
        records = [AttendanceRecord(d, "Present") for d in _days(START, 8)]
        records += [AttendanceRecord(date(2024, 6, 9), "Absent"), AttendanceRecord(END, "Absent")]
        result = calculate_payable_days(START, END, attendance=records)
        assert result.total_absent_days == 2
        assert result.payable_days_factor == Decimal("0.8")
        assert "Employee has 2 absent days" in result.validation_warnings

    def test_half_day_and_late(self):
        records = [
            AttendanceRecord(START, "Half Day"),
            AttendanceRecord(START + timedelta(days=1), "Late"),
        ]
        result = calculate_payable_days(START, START + timedelta(days=1), attendance=records)
        assert result.total_present_days == Decimal("1.5")
        assert result.payable_days_factor == Decimal("0.75")

    def test_missing_record_counts_as_present(self):
        result = calculate_payable_days(START, END)
        assert result.payable_days_factor == Decimal("1")
        assert "No attendance records found for the period" in result.validation_warnings

    def test_weekly_offs_and_holidays_paid(self):
        records = [AttendanceRecord(d, "Absent") for d in _days(START, 10)]
        offs = [date(2024, 6, 2), date(2024, 6, 9)]
        holidays = [date(2024, 6, 5)]
        result = calculate_payable_days(
            START, END, attendance=records, weekly_offs=offs, holidays=holidays,
        )
        assert result.total_weekly_off_days == 2
        assert result.total_holidays == 1
        assert result.total_working_days == 7
        assert result.total_payable_days == Decimal("3")
        assert result.payable_days_factor == Decimal("0.3")

    def test_no_working_days(self):
        offs = _days(START, 3)
        result = calculate_payable_days(START, START + timedelta(days=2), weekly_offs=offs)
        assert result.payable_days_factor == Decimal("0")
        assert "No working days in the selected period" in result.validation_warnings

    def test_approved_paid_leave_is_paid(self):
        leave = LeaveRecord(START, START, "Approved", "Casual Leave", is_paid=True)
        result = calculate_payable_days(START, START, leaves=[leave])
        assert result.total_paid_leave_days == Decimal("1")
        assert result.payable_days_factor == Decimal("1")
        assert result.payable_days_breakdown[0].is_paid_leave

    def test_unapproved_leave_is_unpaid(self):
        leave = LeaveRecord(START, START, "Pending", "Casual Leave", is_paid=True)
        result = calculate_payable_days(START, START, leaves=[leave])
        assert result.total_unpaid_leave_days == Decimal("1")
        assert result.payable_days_factor == Decimal("0")

    def test_loss_of_pay_leave_is_unpaid(self):
        leave = LeaveRecord(START, START, "Approved", "Loss of Pay", is_paid=True)
        result = calculate_payable_days(START, START, leaves=[leave])
        assert result.payable_days_factor == Decimal("0")

    def test_leave_overrides_attendance(self):
        leave = LeaveRecord(START, START, "Approved", "LOP")
        result = calculate_payable_days(
            START, START, attendance=[AttendanceRecord(START, "Present")], leaves=[leave],
        )
        assert result.payable_days_breakdown[0].is_leave
        assert result.payable_days_factor == Decimal("0")

    def test_unpaid_half_day_leave(self):
        leave = LeaveRecord(START, START, "Approved", "LOP", total_days=Decimal("0.5"))
        result = calculate_payable_days(START, START, leaves=[leave])
        assert result.total_leave_days == Decimal("0.5")
        assert result.payable_days_factor == Decimal("0.5")

    def test_multi_day_leave_with_half_start(self):
        leave = LeaveRecord(
            START, START + timedelta(days=1), "Approved", "LOP",
            total_days=Decimal("1.5"), is_half_day_start=True,
        )
        result = calculate_payable_days(START, START + timedelta(days=1), leaves=[leave])
        assert [d.pay_factor for d in result.payable_days_breakdown] == [
            Decimal("0.5"), Decimal("0"),
        ]

    @pytest.mark.parametrize("status", ["Present", "Absent", "Half Day"])
    def test_factor_within_bounds(self, status):
        records = [AttendanceRecord(d, status) for d in _days(START, 10)]
        factor = calculate_payable_days(START, END, attendance=records).payable_days_factor
        assert Decimal("0") <= factor <= Decimal("1")

    def test_to_summary(self):
        records = [AttendanceRecord(d, "Present") for d in _days(START, 10)]
        summary = calculate_payable_days(START, END, attendance=records).to_summary()
        assert summary.total_working_days == 10
        assert summary.payable_days_factor == Decimal("1")


class _Source:

    def __init__(self, records=(), leaves=(), failing=None):
        self._records = records
        self._leaves = leaves
        self._failing = failing

    def _check(self, name):
        if self._failing == name:
            raise PersistenceError(name, "connection refused")

    def attendance_records(self, employee_id, start, end):
        self._check("attendance")
        return self._records

    def leave_records(self, employee_id, start, end):
        self._check("leaves")
        return self._leaves

    def weekly_offs(self, start, end):
        self._check("weekly_offs")
        return ()

    def holidays(self, start, end):
        self._check("holidays")
        return ()


class TestRecordAttendanceValidator:

    def test_validates_from_source(self, employee_id):
        records = [AttendanceRecord(d, "Present") for d in _days(START, 10)]
        result = RecordAttendanceValidator(_Source(records)).validate_payroll_period(
            employee_id, START, END,
        )
        assert result.payable_days_factor == Decimal("1")
        assert not result.has_errors

    @pytest.mark.parametrize("failing,label", [
        ("attendance", "attendance records"),
        ("leaves", "leave records"),
        ("weekly_offs", "weekly off list"),
        ("holidays", "holidays"),
    ])
    def test_fetch_failure_is_validation_error(self, employee_id, failing, label):
        result = RecordAttendanceValidator(_Source(failing=failing)).validate_payroll_period(
            employee_id, START, END,
        )
        assert result.validation_errors == (f"Failed to fetch {label}: connection refused",)
        assert result.payable_days_factor == Decimal("0")
