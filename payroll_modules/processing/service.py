"""
Payroll Processing Service (``payroll_modules.processing.service``).

Responsibility
--------------
Persists per-period payroll work: payroll entries (upsert by employee and
period, status lifecycle, deletion), the employee's salary structure
assignment history, and auto-saved drafts.

Architecture position
---------------------
**Modules layer** -- thin glue between the pure processing models and
the ORM models in ``orm.py``.  Three services, one per record family:

* ``PayrollEntryService`` -- entries and their status workflow.
* ``StructureAssignmentService`` -- which structure an employee is on.
* ``PayrollDraftService`` -- the ``DraftWriter`` behind ``DraftAutoSaver``.

Invariants enforced
-------------------
* Every public method first resolves the tenant context; every query is
  filtered by ``tenant_id``.
* Each public method owns the transaction boundary (``commit`` on
  success, ``rollback`` on failure).
* Submitting an entry for an (employee, period_start, period_end) that
  already exists updates that record; the local cache is kept in step.
* Status moves forward only; the move to Paid stamps ``payment_date``
  from the injected clock.
* Reassignment is best-effort on the closing side: a failure to close the
  prior assignment is logged, the new assignment and the entry are still
  written.  A failure to open the new assignment aborts the submission.

Failure modes
-------------
* No authenticated user -> ``AuthenticationError``; no tenant ->
  ``TenantResolutionError``.
* Unknown entry id -> ``RecordNotFoundError``.
* Backwards or same-state status change -> ``InvalidStatusTransitionError``.
* Database failure -> session rolled back, ``PersistenceError`` raised.
"""

from __future__ import annotations

from collections.abc import Sequence
from dataclasses import replace
from datetime import date
from uuid import UUID, uuid4

from sqlalchemy import select
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from payroll_kernel.context import ResolvedContext, TenantContext, require_tenant
from payroll_kernel.domain.clock import Clock, SystemClock
from payroll_kernel.exceptions import InvalidStatusTransitionError, RecordNotFoundError
from payroll_kernel.logging_config import LogContext, get_logger
from payroll_modules._service_helpers import commit_or_rollback
from payroll_modules.processing.models import (
    PayrollDraft,
    PayrollEntry,
    PayrollStatus,
    PayrollSubmission,
    StructureAssignment,
)
from payroll_modules.processing.orm import (
    PayrollDraftModel,
    PayrollEntryModel,
    StructureAssignmentModel,
)
from payroll_modules.processing.workflows import PAYROLL_ENTRY_WORKFLOW
from payroll_modules.structures.config import SalaryConfig
from payroll_modules.structures.helpers import resolve_amounts, summarize
from payroll_modules.structures.models import ComponentType, SalaryComponent

logger = get_logger("modules.processing.service")


# =============================================================================
# Structure assignments
# =============================================================================


class StructureAssignmentService:
    """
    Reads and writes employee salary structure assignments.

    Contract
    --------
    * At most one assignment is opened per call; the prior open assignment
      is closed on a best-effort basis.
    """

    def __init__(self, session: Session, context: TenantContext | None):
        self._session = session
        self._context = context

    def _tenant(self) -> ResolvedContext:
        return require_tenant(self._context)

    def active_assignment(self, employee_id: UUID) -> StructureAssignment | None:
        ctx = self._tenant()
        with commit_or_rollback(self._session, "active_assignment"):
            model = self._active_model(ctx, employee_id)
            return model.to_dto() if model else None

    def history(self, employee_id: UUID) -> list[StructureAssignment]:
        ctx = self._tenant()
        with commit_or_rollback(self._session, "assignment_history"):
            models = self._session.scalars(
                select(StructureAssignmentModel)
                .where(
                    StructureAssignmentModel.tenant_id == ctx.tenant_id,
                    StructureAssignmentModel.employee_id == employee_id,
                )
                .order_by(
                    StructureAssignmentModel.effective_from,
                    StructureAssignmentModel.created_at,
                )
            )
            return [m.to_dto() for m in models]

    def assign(
        self,
        employee_id: UUID,
        structure_id: UUID,
        effective_from: date,
    ) -> StructureAssignment | None:
        """
        Put the employee on ``structure_id`` from ``effective_from``.

        Returns the new assignment, or None when the employee's active
        assignment is already ``structure_id``.

        Raises:
            PersistenceError: the new assignment could not be written.
        """
        ctx = self._tenant()
        LogContext.set(employee_id=str(employee_id))
        with commit_or_rollback(
            self._session, "assign_structure",
            employee_id=str(employee_id), structure_id=str(structure_id),
        ):
            active = self._active_model(ctx, employee_id)
            if active is not None and active.structure_id == structure_id:
                return None

            if active is not None:
                self._close_best_effort(ctx, active, effective_from)
            assignment = self._open(ctx, employee_id, structure_id, effective_from)

        logger.info(
            "structure_assigned",
            extra={
                "employee_id": str(employee_id),
                "structure_id": str(structure_id),
                "effective_from": effective_from,
            },
        )
        return assignment

    def _close_best_effort(
        self,
        ctx: ResolvedContext,
        model: StructureAssignmentModel,
        effective_to: date,
    ) -> None:
        assignment_id = str(model.id)
        try:
            with self._session.begin_nested():
                self._close(ctx, model, effective_to)
        except SQLAlchemyError as exc:
            logger.warning(
                "assignment_close_failed",
                extra={
                    "assignment_id": assignment_id,
                    "detail": str(exc),
                },
            )

    def _close(
        self,
        ctx: ResolvedContext,
        model: StructureAssignmentModel,
        effective_to: date,
    ) -> None:
        model.effective_to = effective_to
        model.updated_by_id = ctx.user_id
        self._session.flush()

    def _open(
        self,
        ctx: ResolvedContext,
        employee_id: UUID,
        structure_id: UUID,
        effective_from: date,
    ) -> StructureAssignment:
        model = StructureAssignmentModel(
            tenant_id=ctx.tenant_id,
            employee_id=employee_id,
            structure_id=structure_id,
            effective_from=effective_from,
            effective_to=None,
            created_by_id=ctx.user_id,
        )
        self._session.add(model)
        self._session.flush()
        return model.to_dto()

    def _active_model(
        self, ctx: ResolvedContext, employee_id: UUID,
    ) -> StructureAssignmentModel | None:
        return self._session.scalars(
            select(StructureAssignmentModel)
            .where(
                StructureAssignmentModel.tenant_id == ctx.tenant_id,
                StructureAssignmentModel.employee_id == employee_id,
                StructureAssignmentModel.effective_to.is_(None),
            )
            .order_by(
                StructureAssignmentModel.effective_from.desc(),
                StructureAssignmentModel.created_at.desc(),
            )
        ).first()


# =============================================================================
# Payroll entries
# =============================================================================


class PayrollEntryService:
    """
    Reads and writes payroll entries for one tenant.

    Contract
    --------
    * ``submit_entry`` is an upsert on (employee, period_start, period_end).
    * ``cached_entries`` mirrors every entry this service has read or
      written, replaced by id.

    Non-goals
    ---------
    * Does NOT validate attendance (see ``PayrollEditSession``).
    """

    def __init__(
        self,
        session: Session,
        context: TenantContext | None,
        clock: Clock | None = None,
        assignments: StructureAssignmentService | None = None,
        config: SalaryConfig | None = None,
    ):
        self._session = session
        self._context = context
        self._clock = clock or SystemClock()
        self._assignments = assignments or StructureAssignmentService(session, context)
        self._config = config or SalaryConfig()
        self._cache: dict[UUID, PayrollEntry] = {}

    def _tenant(self) -> ResolvedContext:
        return require_tenant(self._context)

    @property
    def cached_entries(self) -> tuple[PayrollEntry, ...]:
        return tuple(self._cache.values())

    # =========================================================================
    # Submit / update
    # =========================================================================

    def submit_entry(self, submission: PayrollSubmission) -> PayrollEntry:
        """
        Save one employee's payroll for a period.

        If the submission's structure differs from the employee's active
        assignment, the assignment is moved first (effective from
        ``period_start``).

        Raises:
            PersistenceError: the entry, or the new assignment, could not
                be written.
        """
        ctx = self._tenant()
        LogContext.set(employee_id=str(submission.employee_id))

        if submission.structure_id is not None:
            self._assignments.assign(
                submission.employee_id, submission.structure_id, submission.period_start,
            )

        draft = self._build_entry(uuid4(), submission.components, submission)
        with commit_or_rollback(
            self._session, "submit_entry", employee_id=str(submission.employee_id),
        ):
            model = self._session.scalars(
                select(PayrollEntryModel).where(
                    PayrollEntryModel.tenant_id == ctx.tenant_id,
                    PayrollEntryModel.employee_id == submission.employee_id,
                    PayrollEntryModel.period_start == submission.period_start,
                    PayrollEntryModel.period_end == submission.period_end,
                )
            ).first()

            if model is None:
                model = PayrollEntryModel.from_dto(draft, ctx.tenant_id, ctx.user_id)
                self._session.add(model)
                action = "inserted"
            else:
                # Resubmission replaces the figures; status only moves
                # through transition_status.
                model.apply(
                    replace(
                        draft,
                        id=model.id,
                        status=PayrollStatus(model.status),
                        payment_date=model.payment_date,
                    ),
                    ctx.user_id,
                )
                action = "updated"
            self._session.flush()
            entry = model.to_dto()

        self._cache[entry.id] = entry
        logger.info(
            "payroll_entry_submitted",
            extra={
                "entry_id": str(entry.id),
                "action": action,
                "employee_id": str(entry.employee_id),
                "net_pay": entry.net_pay,
            },
        )
        return entry

    def update_entry(
        self,
        entry_id: UUID,
        components: Sequence[SalaryComponent],
    ) -> PayrollEntry:
        """Replace an entry's components and totals; status is unchanged."""
        ctx = self._tenant()
        with commit_or_rollback(self._session, "update_entry", entry_id=str(entry_id)):
            model = self._load(ctx, entry_id)
            current = model.to_dto()
            updated = self._build_entry(current.id, components, current)
            model.apply(
                replace(updated, status=current.status, payment_date=current.payment_date),
                ctx.user_id,
            )
            self._session.flush()
            entry = model.to_dto()
        self._cache[entry.id] = entry
        logger.info("payroll_entry_updated", extra={"entry_id": str(entry_id)})
        return entry

    # =========================================================================
    # Status lifecycle
    # =========================================================================

    def transition_status(self, entry_id: UUID, to_status: PayrollStatus) -> PayrollEntry:
        """
        Move an entry forward through Draft -> Pending -> Approved -> Paid.

        Raises:
            InvalidStatusTransitionError: backwards or same-state move.
        """
        ctx = self._tenant()
        with commit_or_rollback(
            self._session, "transition_status",
            entry_id=str(entry_id), to_status=to_status.value,
        ):
            model = self._load(ctx, entry_id)
            transition = PAYROLL_ENTRY_WORKFLOW.find_transition(model.status, to_status.value)
            if transition is None:
                logger.warning(
                    "payroll_status_transition_rejected",
                    extra={
                        "entry_id": str(entry_id),
                        "from_status": model.status,
                        "to_status": to_status.value,
                    },
                )
                raise InvalidStatusTransitionError(str(entry_id), model.status, to_status.value)

            from_status = model.status
            model.status = to_status.value
            if transition.stamps_payment_date:
                model.payment_date = self._clock.now()
            model.updated_by_id = ctx.user_id
            self._session.flush()
            entry = model.to_dto()

        self._cache[entry.id] = entry
        logger.info(
            "payroll_status_changed",
            extra={
                "entry_id": str(entry_id),
                "from_status": from_status,
                "to_status": to_status.value,
                "action": transition.action,
            },
        )
        return entry

    # =========================================================================
    # Reads / delete
    # =========================================================================

    def get_entry(self, entry_id: UUID) -> PayrollEntry:
        ctx = self._tenant()
        with commit_or_rollback(self._session, "get_entry", entry_id=str(entry_id)):
            entry = self._load(ctx, entry_id).to_dto()
        self._cache[entry.id] = entry
        return entry

    def list_entries(
        self,
        period_start: date | None = None,
        period_end: date | None = None,
        status: PayrollStatus | None = None,
    ) -> list[PayrollEntry]:
        ctx = self._tenant()
        with commit_or_rollback(self._session, "list_entries"):
            stmt = (
                select(PayrollEntryModel)
                .where(PayrollEntryModel.tenant_id == ctx.tenant_id)
                .order_by(PayrollEntryModel.period_start, PayrollEntryModel.employee_id)
            )
            if period_start is not None:
                stmt = stmt.where(PayrollEntryModel.period_start >= period_start)
            if period_end is not None:
                stmt = stmt.where(PayrollEntryModel.period_end <= period_end)
            if status is not None:
                stmt = stmt.where(PayrollEntryModel.status == status.value)
            entries = [m.to_dto() for m in self._session.scalars(stmt)]
        for entry in entries:
            self._cache[entry.id] = entry
        return entries

    def latest_entry(
        self,
        employee_id: UUID,
        before: date | None = None,
    ) -> PayrollEntry | None:
        """
        The employee's entry with the latest ``period_start``.

        ``before`` limits the search to periods starting earlier than that
        date.  Returns None when the employee has no entry yet.
        """
        ctx = self._tenant()
        with commit_or_rollback(
            self._session, "latest_entry", employee_id=str(employee_id),
        ):
            stmt = (
                select(PayrollEntryModel)
                .where(
                    PayrollEntryModel.tenant_id == ctx.tenant_id,
                    PayrollEntryModel.employee_id == employee_id,
                )
                .order_by(PayrollEntryModel.period_start.desc())
                .limit(1)
            )
            if before is not None:
                stmt = stmt.where(PayrollEntryModel.period_start < before)
            model = self._session.scalars(stmt).first()
            entry = model.to_dto() if model is not None else None
        if entry is not None:
            self._cache[entry.id] = entry
        return entry

    def delete_entry(self, entry_id: UUID) -> None:
        """Delete an entry at any status."""
        ctx = self._tenant()
        with commit_or_rollback(self._session, "delete_entry", entry_id=str(entry_id)):
            self._session.delete(self._load(ctx, entry_id))
        self._cache.pop(entry_id, None)
        logger.info("payroll_entry_deleted", extra={"entry_id": str(entry_id)})

    # =========================================================================
    # Internals
    # =========================================================================

    def _build_entry(self, entry_id: UUID, components, source) -> PayrollEntry:
        resolved = resolve_amounts(components, self._config.amount_decimal_places)
        totals = summarize(resolved)
        return PayrollEntry(
            id=entry_id,
            employee_id=source.employee_id,
            employee_code=source.employee_code,
            structure_id=source.structure_id,
            period_start=source.period_start,
            period_end=source.period_end,
            earnings=tuple(c for c in resolved if c.component_type is ComponentType.EARNING),
            deductions=tuple(c for c in resolved if c.component_type is ComponentType.DEDUCTION),
            gross=totals.gross,
            total_deductions=totals.deductions,
            net_pay=totals.net,
            status=source.status,
            attendance_summary=source.attendance_summary,
        )

    def _load(self, ctx: ResolvedContext, entry_id: UUID) -> PayrollEntryModel:
        model = self._session.scalars(
            select(PayrollEntryModel).where(
                PayrollEntryModel.id == entry_id,
                PayrollEntryModel.tenant_id == ctx.tenant_id,
            )
        ).first()
        if model is None:
            raise RecordNotFoundError("payroll_entry", str(entry_id))
        return model


# =============================================================================
# Drafts
# =============================================================================


class PayrollDraftService:
    """Upserts auto-saved payroll drafts; implements ``DraftWriter``."""

    def __init__(self, session: Session, context: TenantContext | None):
        self._session = session
        self._context = context

    def _tenant(self) -> ResolvedContext:
        return require_tenant(self._context)

    def save_draft(self, draft: PayrollDraft) -> PayrollDraft:
        ctx = self._tenant()
        values = {name: str(amount) for name, amount in draft.component_values.items()}
        with commit_or_rollback(
            self._session, "save_draft", employee_id=str(draft.employee_id),
        ):
            model = self._find(
                ctx, draft.employee_id, draft.structure_id, draft.period_start, draft.period_end,
            )
            if model is None:
                model = PayrollDraftModel(
                    tenant_id=ctx.tenant_id,
                    employee_id=draft.employee_id,
                    structure_id=draft.structure_id,
                    period_start=draft.period_start,
                    period_end=draft.period_end,
                    component_values=values,
                    created_by_id=ctx.user_id,
                )
                self._session.add(model)
            else:
                model.component_values = values
                model.updated_by_id = ctx.user_id
            self._session.flush()
            saved = model.to_dto()
        logger.debug(
            "payroll_draft_saved",
            extra={"employee_id": str(draft.employee_id), "values": len(values)},
        )
        return saved

    def load_draft(
        self,
        employee_id: UUID,
        structure_id: UUID,
        period_start: date,
        period_end: date,
    ) -> PayrollDraft | None:
        ctx = self._tenant()
        with commit_or_rollback(self._session, "load_draft", employee_id=str(employee_id)):
            model = self._find(ctx, employee_id, structure_id, period_start, period_end)
            return model.to_dto() if model else None

    def delete_draft(
        self,
        employee_id: UUID,
        structure_id: UUID,
        period_start: date,
        period_end: date,
    ) -> bool:
        ctx = self._tenant()
        with commit_or_rollback(self._session, "delete_draft", employee_id=str(employee_id)):
            model = self._find(ctx, employee_id, structure_id, period_start, period_end)
            if model is None:
                return False
            self._session.delete(model)
        return True

    def _find(
        self,
        ctx: ResolvedContext,
        employee_id: UUID,
        structure_id: UUID,
        period_start: date,
        period_end: date,
    ) -> PayrollDraftModel | None:
        return self._session.scalars(
            select(PayrollDraftModel).where(
                PayrollDraftModel.tenant_id == ctx.tenant_id,
                PayrollDraftModel.employee_id == employee_id,
                PayrollDraftModel.structure_id == structure_id,
                PayrollDraftModel.period_start == period_start,
                PayrollDraftModel.period_end == period_end,
            )
        ).first()
