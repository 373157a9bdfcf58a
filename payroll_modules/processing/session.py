"""
Payroll Edit Session (``payroll_modules.processing.session``).

Responsibility
--------------
Holds one employee's payroll entry while it is being prepared: the
structure's components, the attendance pro-ration for the selected
period, amounts entered for editable components, and the validator's
errors and warnings.

Architecture position
---------------------
**Modules layer** -- stateful, free of I/O apart from the injected
``AttendanceValidator``.  ``PayrollEntryService.submit_entry`` persists
``to_submission()``.

Invariants enforced
-------------------
* Pro-ration always starts from the structure's own amounts, so
  selecting a new period never compounds an earlier factor.
* Entered amounts replace the structure amount before pro-ration, so
  they are scaled by the payable-days factor like any other value.
* Only value components that are ``editable`` or ``enter_later`` accept
  an entered amount.
* Validator errors and warnings are kept verbatim.
* ``apply_submit_result`` is a no-op once the session has been closed.
"""

from __future__ import annotations

from dataclasses import replace
from datetime import date
from decimal import Decimal
from uuid import UUID, uuid4

from payroll_kernel.db.types import to_decimal
from payroll_kernel.exceptions import (
    AttendanceError,
    ComponentError,
    ComponentNotEditableError,
    ComponentNotFoundError,
)
from payroll_kernel.logging_config import LogContext, get_logger
from payroll_modules.processing.attendance import AttendanceValidator
from payroll_modules.processing.models import (
    PayrollDraft,
    PayrollEntry,
    PayrollSubmission,
    PeriodValidation,
    ValidationWarning,
)
from payroll_modules.structures.components import find_by_name_in
from payroll_modules.structures.config import SalaryConfig
from payroll_modules.structures.helpers import (
    adjust_for_attendance,
    check_payable_factor,
    resolve_amounts,
    summarize,
)
from payroll_modules.structures.models import (
    Editability,
    MutationResult,
    PayrollTotals,
    SalaryComponent,
    SalaryStructure,
    ValueCalculation,
)

logger = get_logger("modules.processing.session")

Components = tuple[SalaryComponent, ...]


class PayrollEditSession:
    """
    Editing state for one employee's payroll entry.

    Args:
        employee_id: The employee being paid.
        structure: Salary structure the entry is computed from.
        validator: Attendance validator consulted on period selection.
        assigned_structure_id: The employee's currently assigned
            structure, used to detect a structure change.
    """

    def __init__(
        self,
        employee_id: UUID,
        structure: SalaryStructure,
        validator: AttendanceValidator,
        config: SalaryConfig | None = None,
        assigned_structure_id: UUID | None = None,
    ):
        self.session_id = str(uuid4())
        self.employee_id = employee_id
        self.entry_id: UUID | None = None
        self.period_start: date | None = None
        self.period_end: date | None = None

        self._validator = validator
        self._config = config or SalaryConfig()
        self._assigned_structure_id = assigned_structure_id
        self._active = True
        self._validation: PeriodValidation | None = None
        self._errors: tuple[str, ...] = ()
        self._overrides: dict[str, Decimal] = {}
        self._factor = Decimal("1")

        self._load_structure(structure)
        logger.info(
            "payroll_edit_session_opened",
            extra={
                "session_id": self.session_id,
                "employee_id": str(employee_id),
                "structure_id": str(structure.id) if structure.id else None,
            },
        )

    # -- state ------------------------------------------------------------

    @property
    def components(self) -> Components:
        return self._components

    @property
    def totals(self) -> PayrollTotals:
        return summarize(self._components)

    @property
    def validation(self) -> PeriodValidation | None:
        return self._validation

    @property
    def errors(self) -> tuple[str, ...]:
        return self._errors

    @property
    def warnings(self) -> tuple[ValidationWarning, ...]:
        if self._validation is None:
            return ()
        return tuple(
            ValidationWarning(message=m, employee_id=self.employee_id)
            for m in self._validation.validation_warnings
        )

    @property
    def can_submit(self) -> bool:
        """A period is selected and the validator reported no errors."""
        return self.period_start is not None and not self._errors

    @property
    def structure_changed(self) -> bool:
        return self.structure_id is not None and self.structure_id != self._assigned_structure_id

    @property
    def entered_values(self) -> dict[str, Decimal]:
        """Amounts entered for editable components, by component name."""
        return dict(self._overrides)

    @property
    def active(self) -> bool:
        return self._active

    # -- operations -------------------------------------------------------

    def change_structure(self, structure: SalaryStructure) -> None:
        """Switch to another structure; entered amounts are discarded."""
        self._overrides.clear()
        self._load_structure(structure)
        if self.period_start is not None:
            self.select_period(self.period_start, self.period_end)

    def select_period(self, start: date, end: date) -> PeriodValidation:
        """
        Validate attendance for [start, end] and re-apply pro-ration.

        A zero factor is recorded as an error and the structure amounts
        are left unscaled.
        """
        LogContext.set(session_id=self.session_id, employee_id=str(self.employee_id))
        self.period_start = start
        self.period_end = end
        validation = self._validator.validate_payroll_period(self.employee_id, start, end)
        self._validation = validation
        errors = list(validation.validation_errors)

        self._factor = Decimal("1")
        if not errors:
            try:
                self._factor = check_payable_factor(
                    validation.payable_days_factor, str(self.employee_id)
                )
            except AttendanceError as exc:
                errors.append(str(exc))

        self._errors = tuple(errors)
        self._recompute()
        logger.info(
            "payroll_period_selected",
            extra={
                "employee_id": str(self.employee_id),
                "period_start": start,
                "period_end": end,
                "payable_days_factor": self._factor,
                "errors": len(self._errors),
            },
        )
        return validation

    def set_amount(self, name: str, amount: Decimal | str | None) -> MutationResult:
        """Enter the amount of an editable or enter-later value component."""
        try:
            component = self._find(name)
            if not component.accepts_payroll_override or component.is_percentage:
                raise ComponentNotEditableError(component.key, component.name)
        except ComponentError as exc:
            logger.warning(
                "payroll_amount_rejected",
                extra={"component_name": name, "error_code": exc.code},
            )
            return MutationResult(
                components=self._components, error=exc, focus_key=getattr(exc, "key", None)
            )

        key = component.name
        if amount is None:
            self._overrides.pop(key, None)
        else:
            self._overrides[key] = to_decimal(amount)
        self._recompute()
        updated = next(c for c in self._components if c.key == component.key)
        return MutationResult(components=self._components, focus_key=component.key, component=updated)

    def apply_draft(self, draft: PayrollDraft) -> None:
        """Restore amounts from an auto-saved draft; unknown names are ignored."""
        for name, amount in draft.component_values.items():
            result = self.set_amount(name, amount)
            if not result.is_success:
                logger.debug("draft_value_skipped", extra={"component_name": name})

    def prefill_from_entry(self, entry: PayrollEntry) -> tuple[str, ...]:
        """
        Carry enter-later amounts over from the employee's previous entry.

        Used when no draft exists.  Only components that were enter-later
        in ``entry`` are copied, and only onto components of the current
        structure that accept an amount; values already entered in this
        session are kept.  Returns the names that were filled.
        """
        filled: list[str] = []
        for component in entry.components:
            if component.editability is not Editability.ENTER_LATER or component.amount is None:
                continue
            if find_by_name_in(self._overrides, component.name):
                continue
            result = self.set_amount(component.name, component.amount)
            if result.is_success:
                filled.append(result.component.name)
        logger.info(
            "payroll_prefilled_from_entry",
            extra={"entry_id": str(entry.id), "filled": filled},
        )
        return tuple(filled)

    def to_submission(self) -> PayrollSubmission:
        if self.period_start is None or self.period_end is None:
            raise ValueError("Select a payroll period before submitting")
        return PayrollSubmission(
            employee_id=self.employee_id,
            period_start=self.period_start,
            period_end=self.period_end,
            components=self._components,
            structure_id=self.structure_id,
            attendance_summary=self._validation.to_summary() if self._validation else None,
        )

    # -- lifecycle --------------------------------------------------------

    def close(self) -> None:
        self._active = False
        logger.info("payroll_edit_session_closed", extra={"session_id": self.session_id})

    def apply_submit_result(self, entry: PayrollEntry) -> bool:
        """Record the saved entry unless the session was closed meanwhile."""
        if not self._active:
            logger.info("submit_result_discarded", extra={"session_id": self.session_id})
            return False
        self.entry_id = entry.id
        self._assigned_structure_id = entry.structure_id
        return True

    # -- internals --------------------------------------------------------

    def _load_structure(self, structure: SalaryStructure) -> None:
        self.structure_id = structure.id
        self._base = resolve_amounts(structure.components, self._config.amount_decimal_places)
        self._recompute()

    def _find(self, name: str) -> SalaryComponent:
        wanted = name.strip().casefold()
        for component in self._base:
            if component.name.strip().casefold() == wanted:
                return component
        raise ComponentNotFoundError(name)

    def _recompute(self) -> None:
        places = self._config.amount_decimal_places
        entered = tuple(
            replace(c, calculation=ValueCalculation(amount=self._overrides[c.name]))
            if c.name in self._overrides else c
            for c in self._base
        )
        if self._factor == Decimal("1"):
            self._components = resolve_amounts(entered, places)
        else:
            self._components = adjust_for_attendance(
                entered, self._factor, places, employee_id=str(self.employee_id)
            )
