"""
Payroll Processing ORM Persistence Models (``payroll_modules.processing.orm``).

Responsibility:
    SQLAlchemy ORM models that persist the frozen dataclass DTOs defined in
    ``payroll_modules.processing.models``: payroll entries, salary
    structure assignments and auto-saved payroll drafts.

Architecture position:
    **Modules layer** -- persistence companions to the pure DTO models.
    Inherits from ``TrackedBase`` (kernel DB base).

Invariants enforced:
    - All monetary fields use Decimal (maps to Numeric(38,9)) -- NEVER float.
    - At most one payroll entry per (tenant, employee, period_start,
      period_end) -- uq_payroll_entry_period.
    - At most one draft per (tenant, employee, structure, period_start,
      period_end) -- uq_payroll_draft_period.
    - Component lines and attendance summaries are stored as JSON with
      amounts as strings.
"""

from datetime import date, datetime
from decimal import Decimal
from uuid import UUID

from sqlalchemy import JSON, Date, DateTime, ForeignKey, Index, String, UniqueConstraint
from sqlalchemy.orm import Mapped, mapped_column

from payroll_kernel.db.base import TrackedBase

# ---------------------------------------------------------------------------
# PayrollEntryModel
# ---------------------------------------------------------------------------


class PayrollEntryModel(TrackedBase):
    """
    ORM model for ``PayrollEntry`` -- one employee's pay for one period.

    Contract:
        Status follows ``PAYROLL_ENTRY_WORKFLOW`` (Draft -> Pending ->
        Approved -> Paid).  ``payment_date`` is set on the move to Paid.
    """

    __tablename__ = "payroll_entries"

    tenant_id: Mapped[UUID] = mapped_column(nullable=False)
    employee_id: Mapped[UUID] = mapped_column(nullable=False)
    employee_code: Mapped[str | None] = mapped_column(String(50), nullable=True)
    structure_id: Mapped[UUID | None] = mapped_column(
        ForeignKey("payroll_salary_structures.id", ondelete="SET NULL"), nullable=True,
    )
    period_start: Mapped[date] = mapped_column(Date, nullable=False)
    period_end: Mapped[date] = mapped_column(Date, nullable=False)
    salary_components: Mapped[list] = mapped_column(JSON, nullable=False, default=list)
    deduction_components: Mapped[list] = mapped_column(JSON, nullable=False, default=list)
    gross_amount: Mapped[Decimal] = mapped_column(default=Decimal("0"), nullable=False)
    total_deductions: Mapped[Decimal] = mapped_column(default=Decimal("0"), nullable=False)
    net_amount: Mapped[Decimal] = mapped_column(default=Decimal("0"), nullable=False)
    status: Mapped[str] = mapped_column(String(50), nullable=False, default="Draft")
    payment_date: Mapped[datetime | None] = mapped_column(DateTime(timezone=True), nullable=True)
    attendance_summary: Mapped[dict | None] = mapped_column(JSON, nullable=True)

    __table_args__ = (
        UniqueConstraint(
            "tenant_id", "employee_id", "period_start", "period_end",
            name="uq_payroll_entry_period",
        ),
        Index("idx_payroll_entry_tenant_status", "tenant_id", "status"),
        Index("idx_payroll_entry_employee", "tenant_id", "employee_id"),
    )

    def to_dto(self):
        from payroll_modules.processing.models import (
            AttendanceSummary,
            PayrollEntry,
            PayrollStatus,
        )
        from payroll_modules.structures.models import SalaryComponent
        return PayrollEntry(
            id=self.id,
            employee_id=self.employee_id,
            employee_code=self.employee_code,
            structure_id=self.structure_id,
            period_start=self.period_start,
            period_end=self.period_end,
            earnings=tuple(SalaryComponent.from_dict(c) for c in self.salary_components or ()),
            deductions=tuple(SalaryComponent.from_dict(c) for c in self.deduction_components or ()),
            gross=self.gross_amount,
            total_deductions=self.total_deductions,
            net_pay=self.net_amount,
            status=PayrollStatus(self.status),
            payment_date=self.payment_date,
            attendance_summary=(
                AttendanceSummary.from_dict(self.attendance_summary)
                if self.attendance_summary else None
            ),
        )

    def apply(self, dto, updated_by_id: UUID) -> None:
        """Overwrite every value column from ``dto`` (last write wins)."""
        self.employee_code = dto.employee_code
        self.structure_id = dto.structure_id
        self.salary_components = [c.to_dict() for c in dto.earnings]
        self.deduction_components = [c.to_dict() for c in dto.deductions]
        self.gross_amount = dto.gross
        self.total_deductions = dto.total_deductions
        self.net_amount = dto.net_pay
        self.status = dto.status.value
        self.payment_date = dto.payment_date
        self.attendance_summary = (
            dto.attendance_summary.to_dict() if dto.attendance_summary else None
        )
        self.updated_by_id = updated_by_id

    @classmethod
    def from_dto(cls, dto, tenant_id: UUID, created_by_id: UUID) -> "PayrollEntryModel":
        model = cls(
            id=dto.id,
            tenant_id=tenant_id,
            employee_id=dto.employee_id,
            period_start=dto.period_start,
            period_end=dto.period_end,
            created_by_id=created_by_id,
        )
        model.apply(dto, updated_by_id=None)
        return model

    def __repr__(self) -> str:
        return (
            f"<PayrollEntryModel employee={self.employee_id} "
            f"{self.period_start}..{self.period_end} status={self.status}>"
        )


# ---------------------------------------------------------------------------
# StructureAssignmentModel
# ---------------------------------------------------------------------------


class StructureAssignmentModel(TrackedBase):
    """
    ORM model for ``StructureAssignment`` -- which structure an employee is on.

    Contract:
        The open assignment has ``effective_to`` NULL.
    """

    __tablename__ = "payroll_structure_assignments"

    tenant_id: Mapped[UUID] = mapped_column(nullable=False)
    employee_id: Mapped[UUID] = mapped_column(nullable=False)
    structure_id: Mapped[UUID] = mapped_column(
        ForeignKey("payroll_salary_structures.id"), nullable=False,
    )
    effective_from: Mapped[date] = mapped_column(Date, nullable=False)
    effective_to: Mapped[date | None] = mapped_column(Date, nullable=True)

    __table_args__ = (
        Index("idx_payroll_assignment_employee", "tenant_id", "employee_id", "effective_to"),
    )

    def to_dto(self):
        from payroll_modules.processing.models import StructureAssignment
        return StructureAssignment(
            id=self.id,
            employee_id=self.employee_id,
            structure_id=self.structure_id,
            effective_from=self.effective_from,
            effective_to=self.effective_to,
        )

    def __repr__(self) -> str:
        return (
            f"<StructureAssignmentModel employee={self.employee_id} "
            f"structure={self.structure_id} {self.effective_from}..{self.effective_to}>"
        )


# ---------------------------------------------------------------------------
# PayrollDraftModel
# ---------------------------------------------------------------------------


class PayrollDraftModel(TrackedBase):
    """ORM model for ``PayrollDraft`` -- auto-saved editable amounts."""

    __tablename__ = "payroll_drafts"

    tenant_id: Mapped[UUID] = mapped_column(nullable=False)
    employee_id: Mapped[UUID] = mapped_column(nullable=False)
    structure_id: Mapped[UUID] = mapped_column(
        ForeignKey("payroll_salary_structures.id", ondelete="CASCADE"), nullable=False,
    )
    period_start: Mapped[date] = mapped_column(Date, nullable=False)
    period_end: Mapped[date] = mapped_column(Date, nullable=False)
    component_values: Mapped[dict] = mapped_column(JSON, nullable=False, default=dict)

    __table_args__ = (
        UniqueConstraint(
            "tenant_id", "employee_id", "structure_id", "period_start", "period_end",
            name="uq_payroll_draft_period",
        ),
    )

    def to_dto(self):
        from payroll_modules.processing.models import PayrollDraft
        return PayrollDraft(
            employee_id=self.employee_id,
            structure_id=self.structure_id,
            period_start=self.period_start,
            period_end=self.period_end,
            component_values={
                name: Decimal(value) for name, value in (self.component_values or {}).items()
            },
        )

    def __repr__(self) -> str:
        return (
            f"<PayrollDraftModel employee={self.employee_id} "
            f"{self.period_start}..{self.period_end}>"
        )
