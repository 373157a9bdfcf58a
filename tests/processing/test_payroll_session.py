"""
Tests for PayrollEditSession.

Validates:
- Pro-ration starts from structure amounts on every period selection
- Entered amounts replace the structure amount and are pro-rated with it
- Enter-later amounts prefilled from the previous entry
- Only editable / enter-later value components accept amounts
- Validator errors block submission; warnings do not
- Closed session ignores a late submit result
"""

from datetime import date
from decimal import Decimal
from uuid import uuid4

import pytest

from conftest import earning, percentage
from payroll_kernel.exceptions import ComponentNotEditableError, ComponentNotFoundError
from payroll_modules.processing.models import PayrollDraft, PayrollEntry, PeriodValidation
from payroll_modules.processing.session import PayrollEditSession
from payroll_modules.structures.models import ComponentType, Editability, SalaryStructure

START = date(2024, 6, 1)
END = date(2024, 6, 30)


class _StubValidator:
    """Returns canned validations, one per call."""

    def __init__(self, *validations):
        self._validations = list(validations)
        self.calls = []

    def validate_payroll_period(self, employee_id, start, end):
        self.calls.append((employee_id, start, end))
        if len(self._validations) > 1:
            return self._validations.pop(0)
        return self._validations[0]


def _validation(factor, errors=(), warnings=()):
    return PeriodValidation(
        total_calendar_days=30,
        total_working_days=22,
        payable_days_factor=Decimal(factor),
        validation_errors=tuple(errors),
        validation_warnings=tuple(warnings),
    )


@pytest.fixture
def structure():
    return SalaryStructure(
        id=uuid4(),
        name="Staff",
        components=(
            earning("E1", "Basic", "1000"),
            earning("E2", "Overtime", None, editability=Editability.ENTER_LATER, order=1),
            earning("E3", "Bonus", "200", editability=Editability.EDITABLE, order=2),
            percentage("D4", "PF", "10", ["Basic"], ComponentType.DEDUCTION, order=3),
        ),
    )


def _session(structure, *validations, assigned=None):
    validator = _StubValidator(*(validations or (_validation("1"),)))
    return PayrollEditSession(
        uuid4(), structure, validator, assigned_structure_id=assigned,
    )


def _amount(session, name):
    return next(c.amount for c in session.components if c.name == name)


class TestProration:

    def test_period_selection_prorates(self, structure):
        session = _session(structure, _validation("0.8"))
        session.select_period(START, END)
        assert _amount(session, "Basic") == Decimal("800.00")
        assert _amount(session, "PF") == Decimal("80.00")
        assert session.can_submit

    def test_reselecting_does_not_compound(self, structure):
        session = _session(structure, _validation("0.5"), _validation("0.8"))
        session.select_period(START, END)
        session.select_period(START, END)
        assert _amount(session, "Basic") == Decimal("800.00")

    def test_zero_factor_is_an_error(self, structure):
        session = _session(structure, _validation("0"))
        session.select_period(START, END)
        assert not session.can_submit
        assert session.errors
        assert _amount(session, "Basic") == Decimal("1000.00")

    def test_validator_errors_block_submission(self, structure):
        session = _session(
            structure, _validation("0", errors=["Failed to fetch holidays: timeout"]),
        )
        session.select_period(START, END)
        assert session.errors == ("Failed to fetch holidays: timeout",)
        assert not session.can_submit

    def test_warnings_do_not_block(self, structure):
        session = _session(structure, _validation("0.9", warnings=["Employee has 3 absent days"]))
        session.select_period(START, END)
        assert session.can_submit
        assert [w.message for w in session.warnings] == ["Employee has 3 absent days"]
        assert session.warnings[0].employee_id == session.employee_id


class TestEnteredAmounts:

    def test_enter_later_amount(self, structure):
        session = _session(structure)
        session.select_period(START, END)
        result = session.set_amount("overtime", Decimal("300"))
        assert result.is_success
        assert session.totals.gross == Decimal("1500.00")
        assert session.entered_values == {"Overtime": Decimal("300")}

    def test_entered_amount_is_prorated(self, structure):
        session = _session(structure, _validation("0.5"))
        session.set_amount("Bonus", Decimal("400"))
        session.select_period(START, END)
        assert _amount(session, "Basic") == Decimal("500.00")
        assert _amount(session, "Bonus") == Decimal("200.00")

    def test_amount_entered_after_period_is_prorated(self, structure):
        session = _session(structure, _validation("0.8"))
        session.select_period(START, END)
        session.set_amount("Overtime", Decimal("1000"))
        assert _amount(session, "Basic") == Decimal("800.00")
        assert _amount(session, "Overtime") == Decimal("800.00")
        assert session.entered_values == {"Overtime": Decimal("1000")}
        assert session.totals.gross == Decimal("1760.00")

    def test_fixed_component_rejected(self, structure):
        session = _session(structure)
        result = session.set_amount("Basic", Decimal("1"))
        assert isinstance(result.error, ComponentNotEditableError)
        assert result.focus_key == "E1"
        assert _amount(session, "Basic") == Decimal("1000.00")

    def test_unknown_component_rejected(self, structure):
        result = _session(structure).set_amount("Commission", Decimal("1"))
        assert isinstance(result.error, ComponentNotFoundError)

    def test_clearing_an_amount_restores_structure_value(self, structure):
        session = _session(structure)
        session.set_amount("Bonus", Decimal("999"))
        session.set_amount("Bonus", None)
        assert _amount(session, "Bonus") == Decimal("200.00")

    def test_apply_draft(self, structure):
        session = _session(structure)
        session.apply_draft(PayrollDraft(
            employee_id=session.employee_id,
            structure_id=structure.id,
            period_start=START,
            period_end=END,
            component_values={"Overtime": Decimal("50"), "Basic": Decimal("1"), "Gone": Decimal("5")},
        ))
        assert session.entered_values == {"Overtime": Decimal("50")}

    def test_prefill_from_previous_entry(self, structure):
        session = _session(structure)
        previous = PayrollEntry(
            id=uuid4(), employee_id=session.employee_id,
            period_start=date(2024, 5, 1), period_end=date(2024, 5, 31),
            earnings=(
                earning("E1", "Basic", "1000"),
                earning("E2", "OVERTIME", "250", editability=Editability.ENTER_LATER),
                earning("E3", "Bonus", "300", editability=Editability.EDITABLE),
                earning("E4", "Night Shift", "90", editability=Editability.ENTER_LATER),
            ),
        )
        filled = session.prefill_from_entry(previous)
        assert filled == ("Overtime",)
        assert session.entered_values == {"Overtime": Decimal("250")}
        assert _amount(session, "Bonus") == Decimal("200.00")

    def test_prefill_keeps_values_already_entered(self, structure):
        session = _session(structure)
        session.set_amount("Overtime", Decimal("40"))
        previous = PayrollEntry(
            id=uuid4(), employee_id=session.employee_id,
            period_start=date(2024, 5, 1), period_end=date(2024, 5, 31),
            earnings=(earning("E2", "Overtime", "250", editability=Editability.ENTER_LATER),),
        )
        assert session.prefill_from_entry(previous) == ()
        assert _amount(session, "Overtime") == Decimal("40.00")

    def test_change_structure_discards_entered_amounts(self, structure):
        session = _session(structure, _validation("0.5"))
        session.select_period(START, END)
        session.set_amount("Bonus", Decimal("400"))
        other = SalaryStructure(id=uuid4(), name="Other", components=(earning("E1", "Basic", "2000"),))
        session.change_structure(other)
        assert session.entered_values == {}
        assert _amount(session, "Basic") == Decimal("1000.00")


class TestSubmission:

    def test_to_submission(self, structure):
        session = _session(structure, _validation("1"))
        session.select_period(START, END)
        submission = session.to_submission()
        assert submission.period_start == START
        assert submission.structure_id == structure.id
        assert submission.attendance_summary.payable_days_factor == Decimal("1")
        assert len(submission.components) == 4

    def test_submission_requires_period(self, structure):
        with pytest.raises(ValueError):
            _session(structure).to_submission()

    def test_structure_changed(self, structure):
        assert _session(structure, assigned=uuid4()).structure_changed
        assert not _session(structure, assigned=structure.id).structure_changed

    def test_submit_result_applied(self, structure):
        session = _session(structure, assigned=uuid4())
        entry = PayrollEntry(
            id=uuid4(), employee_id=session.employee_id,
            period_start=START, period_end=END, structure_id=structure.id,
        )
        assert session.apply_submit_result(entry)
        assert session.entry_id == entry.id
        assert not session.structure_changed

    def test_submit_result_ignored_after_close(self, structure):
        session = _session(structure)
        session.close()
        entry = PayrollEntry(
            id=uuid4(), employee_id=session.employee_id, period_start=START, period_end=END,
        )
        assert not session.apply_submit_result(entry)
        assert session.entry_id is None
