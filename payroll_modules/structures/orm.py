"""
Salary Structure ORM Persistence Models (``payroll_modules.structures.orm``).

Responsibility:
    SQLAlchemy ORM models that persist the frozen dataclass DTOs defined in
    ``payroll_modules.structures.models`` and the tenant statutory policy
    from ``payroll_modules.structures.statutory``.  Each ORM class mirrors a
    DTO and provides ``to_dto()`` / ``from_dto()`` conversion.

Architecture position:
    **Modules layer** -- persistence companions to the pure DTO models.
    Inherits from ``TrackedBase`` (kernel DB base) which provides:
    id (UUID PK, auto-generated), created_at, updated_at,
    created_by_id (NOT NULL UUID), updated_by_id (nullable UUID).

Invariants enforced:
    - All monetary fields use Decimal (maps to Numeric(38,9)) -- NEVER float.
    - Enum fields stored as String(50) containing the enum .value string.
    - Every row carries ``tenant_id``; services filter on it.
    - Structure components are owned by their structure (delete-orphan);
      an update replaces them wholesale.
    - Component keys are session-local and not persisted; ``to_dto()``
      derives them from ``display_order``.
"""

from decimal import Decimal
from uuid import UUID

from sqlalchemy import JSON, Boolean, ForeignKey, Index, String, Text, UniqueConstraint
from sqlalchemy.orm import Mapped, mapped_column, relationship

from payroll_kernel.db.base import TrackedBase

# ---------------------------------------------------------------------------
# SalaryStructureModel
# ---------------------------------------------------------------------------


class SalaryStructureModel(TrackedBase):
    """
    ORM model for ``SalaryStructure`` -- a reusable component template.

    Contract:
        ``components`` is ordered by ``display_order`` and is replaced as a
        whole when the structure is updated.
    """

    __tablename__ = "payroll_salary_structures"

    tenant_id: Mapped[UUID] = mapped_column(nullable=False)
    name: Mapped[str] = mapped_column(String(200), nullable=False)
    description: Mapped[str | None] = mapped_column(Text, nullable=True)
    is_active: Mapped[bool] = mapped_column(Boolean, default=True, nullable=False)

    components: Mapped[list["SalaryStructureComponentModel"]] = relationship(
        "SalaryStructureComponentModel",
        back_populates="structure",
        cascade="all, delete-orphan",
        order_by="SalaryStructureComponentModel.display_order",
        lazy="select",
    )

    __table_args__ = (
        Index("idx_payroll_structure_tenant", "tenant_id"),
        Index("idx_payroll_structure_active", "tenant_id", "is_active"),
    )

    def to_header(self):
        from payroll_modules.structures.models import SalaryStructureHeader
        return SalaryStructureHeader(
            id=self.id,
            name=self.name,
            description=self.description,
            is_active=self.is_active,
        )

    def to_dto(self):
        from payroll_modules.structures.models import SalaryStructure
        return SalaryStructure(
            id=self.id,
            name=self.name,
            description=self.description,
            is_active=self.is_active,
            components=tuple(c.to_dto() for c in self.components),
        )

    @classmethod
    def from_dto(cls, dto, tenant_id: UUID, created_by_id: UUID) -> "SalaryStructureModel":
        model = cls(
            tenant_id=tenant_id,
            name=dto.name,
            description=dto.description,
            is_active=dto.is_active,
            created_by_id=created_by_id,
        )
        if dto.id is not None:
            model.id = dto.id
        model.components = [
            SalaryStructureComponentModel.from_dto(c, created_by_id, display_order=i)
            for i, c in enumerate(dto.components)
        ]
        return model

    def __repr__(self) -> str:
        return f"<SalaryStructureModel {self.name} active={self.is_active}>"


# ---------------------------------------------------------------------------
# SalaryStructureComponentModel
# ---------------------------------------------------------------------------


class SalaryStructureComponentModel(TrackedBase):
    """
    ORM model for ``SalaryComponent`` as a line of a structure.

    Guarantees:
        - ``amount`` holds the entered amount for value components and the
          resolved amount for percentage components.
        - ``reference_components`` is a JSON list of component names.
    """

    __tablename__ = "payroll_salary_structure_components"

    structure_id: Mapped[UUID] = mapped_column(
        ForeignKey("payroll_salary_structures.id", ondelete="CASCADE"), nullable=False,
    )
    component_id: Mapped[UUID | None] = mapped_column(
        ForeignKey("payroll_components.id"), nullable=True,
    )
    name: Mapped[str] = mapped_column(String(200), nullable=False)
    component_type: Mapped[str] = mapped_column(String(50), nullable=False)
    calculation_type: Mapped[str] = mapped_column(String(50), nullable=False, default="value")
    editability: Mapped[str] = mapped_column(String(50), nullable=False, default="fixed")
    amount: Mapped[Decimal | None] = mapped_column(nullable=True)
    percentage_value: Mapped[Decimal | None] = mapped_column(nullable=True)
    reference_components: Mapped[list] = mapped_column(JSON, nullable=False, default=list)
    is_statutory: Mapped[bool] = mapped_column(Boolean, default=False, nullable=False)
    is_taxable: Mapped[bool] = mapped_column(Boolean, default=False, nullable=False)
    display_order: Mapped[int] = mapped_column(nullable=False, default=0)
    description: Mapped[str | None] = mapped_column(Text, nullable=True)

    structure: Mapped["SalaryStructureModel"] = relationship(
        "SalaryStructureModel", back_populates="components",
    )

    __table_args__ = (
        Index("idx_payroll_structure_component_structure", "structure_id", "display_order"),
    )

    def to_dto(self):
        from payroll_modules.structures.models import ComponentType, SalaryComponent
        if self.is_statutory:
            prefix = "SD"
        elif self.component_type == ComponentType.EARNING.value:
            prefix = "E"
        else:
            prefix = "D"
        return SalaryComponent.from_dict({
            "key": f"{prefix}{self.display_order + 1}",
            "name": self.name,
            "component_type": self.component_type,
            "calculation_type": self.calculation_type,
            "editability": self.editability,
            "amount": self.amount,
            "percentage_value": self.percentage_value,
            "reference_components": list(self.reference_components or ()),
            "is_statutory": self.is_statutory,
            "is_taxable": self.is_taxable,
            "display_order": self.display_order,
            "component_id": self.component_id,
            "description": self.description,
        })

    @classmethod
    def from_dto(
        cls, dto, created_by_id: UUID, display_order: int | None = None,
    ) -> "SalaryStructureComponentModel":
        return cls(
            component_id=dto.component_id,
            name=dto.name,
            component_type=dto.component_type.value,
            calculation_type=dto.calculation_type.value,
            editability=dto.editability.value,
            amount=dto.amount,
            percentage_value=dto.percentage_value,
            reference_components=list(dto.reference_components),
            is_statutory=dto.is_statutory,
            is_taxable=dto.is_taxable,
            display_order=dto.display_order if display_order is None else display_order,
            description=dto.description,
            created_by_id=created_by_id,
        )

    def __repr__(self) -> str:
        return (
            f"<SalaryStructureComponentModel {self.name} "
            f"({self.component_type}/{self.calculation_type})>"
        )


# ---------------------------------------------------------------------------
# PayrollComponentModel
# ---------------------------------------------------------------------------


class PayrollComponentModel(TrackedBase):
    """
    ORM model for a tenant payroll-component record.

    Contract:
        A record linked to a statutory configuration supplies the tenant's
        display name for that statutory element.
    """

    __tablename__ = "payroll_components"

    tenant_id: Mapped[UUID] = mapped_column(nullable=False)
    name: Mapped[str] = mapped_column(String(200), nullable=False)
    component_type: Mapped[str] = mapped_column(String(50), nullable=False)
    statutory_configuration_id: Mapped[UUID | None] = mapped_column(
        ForeignKey("payroll_statutory_configurations.id"), nullable=True,
    )
    is_active: Mapped[bool] = mapped_column(Boolean, default=True, nullable=False)

    __table_args__ = (
        Index("idx_payroll_component_tenant", "tenant_id"),
        Index("idx_payroll_component_statutory", "tenant_id", "statutory_configuration_id"),
    )

    def to_linked(self):
        from payroll_modules.structures.statutory import LinkedPayrollComponent
        return LinkedPayrollComponent(id=self.id, name=self.name)

    def __repr__(self) -> str:
        return f"<PayrollComponentModel {self.name} ({self.component_type})>"


# ---------------------------------------------------------------------------
# CompanyStatutorySettingsModel
# ---------------------------------------------------------------------------


class CompanyStatutorySettingsModel(TrackedBase):
    """ORM model for ``CompanyStatutorySettings`` -- one row per tenant."""

    __tablename__ = "payroll_company_statutory_settings"

    tenant_id: Mapped[UUID] = mapped_column(nullable=False)
    provident_fund: Mapped[bool] = mapped_column(Boolean, default=False, nullable=False)
    employee_state_insurance: Mapped[bool] = mapped_column(Boolean, default=False, nullable=False)
    professional_tax: Mapped[bool] = mapped_column(Boolean, default=False, nullable=False)
    tax_deducted_at_source: Mapped[bool] = mapped_column(Boolean, default=False, nullable=False)

    __table_args__ = (
        UniqueConstraint("tenant_id", name="uq_payroll_statutory_settings_tenant"),
    )

    def to_dto(self):
        from payroll_modules.structures.statutory import CompanyStatutorySettings
        return CompanyStatutorySettings(
            provident_fund=self.provident_fund,
            employee_state_insurance=self.employee_state_insurance,
            professional_tax=self.professional_tax,
            tax_deducted_at_source=self.tax_deducted_at_source,
        )

    @classmethod
    def from_dto(cls, dto, tenant_id: UUID, created_by_id: UUID) -> "CompanyStatutorySettingsModel":
        return cls(
            tenant_id=tenant_id,
            provident_fund=dto.provident_fund,
            employee_state_insurance=dto.employee_state_insurance,
            professional_tax=dto.professional_tax,
            tax_deducted_at_source=dto.tax_deducted_at_source,
            created_by_id=created_by_id,
        )


# ---------------------------------------------------------------------------
# StatutoryConfigurationModel
# ---------------------------------------------------------------------------


class StatutoryConfigurationModel(TrackedBase):
    """ORM model for ``StatutoryConfiguration`` -- one statutory element's policy."""

    __tablename__ = "payroll_statutory_configurations"

    tenant_id: Mapped[UUID] = mapped_column(nullable=False)
    statutory_element: Mapped[str] = mapped_column(String(50), nullable=False)
    calculation_method: Mapped[str] = mapped_column(String(50), nullable=False)
    application_type: Mapped[str] = mapped_column(String(50), nullable=False)
    global_value: Mapped[Decimal | None] = mapped_column(nullable=True)
    is_active: Mapped[bool] = mapped_column(Boolean, default=True, nullable=False)

    __table_args__ = (
        Index("idx_payroll_statutory_config_tenant", "tenant_id", "statutory_element"),
    )

    def to_dto(self):
        from payroll_modules.structures.models import CalculationType
        from payroll_modules.structures.statutory import (
            ApplicationType,
            StatutoryConfiguration,
            StatutoryElement,
        )
        return StatutoryConfiguration(
            id=self.id,
            element=StatutoryElement(self.statutory_element),
            calculation_method=CalculationType(self.calculation_method),
            application_type=ApplicationType(self.application_type),
            global_value=self.global_value,
            is_active=self.is_active,
        )

    @classmethod
    def from_dto(cls, dto, tenant_id: UUID, created_by_id: UUID) -> "StatutoryConfigurationModel":
        return cls(
            id=dto.id,
            tenant_id=tenant_id,
            statutory_element=dto.element.value,
            calculation_method=dto.calculation_method.value,
            application_type=dto.application_type.value,
            global_value=dto.global_value,
            is_active=dto.is_active,
            created_by_id=created_by_id,
        )

    def __repr__(self) -> str:
        return (
            f"<StatutoryConfigurationModel {self.statutory_element} "
            f"({self.application_type}) active={self.is_active}>"
        )
