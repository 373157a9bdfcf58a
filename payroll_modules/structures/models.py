"""
Salary Structure Domain Models (``payroll_modules.structures.models``).

Responsibility
--------------
Frozen dataclass value objects for the nouns of a salary structure: the
component line items (earnings and deductions), their calculation inputs,
the structure aggregate, and the result objects returned by mutations and
totals.

Architecture position
---------------------
**Modules layer** -- pure data definitions with ZERO I/O.  Consumed by the
component helpers, the amount resolver, the edit session and the ORM
companions in ``orm.py``.

Invariants enforced
-------------------
* All models are ``frozen=True``; mutations return new instances.
* All monetary fields use ``Decimal`` -- NEVER ``float``.
* A component's calculation is a tagged union: ``ValueCalculation`` holds
  an entered amount, ``PercentageCalculation`` holds a rate plus the
  names it is computed against.  Editability is orthogonal to both.
* Percentage rates are within [0, 100].
"""

from __future__ import annotations

from dataclasses import dataclass, field
from decimal import Decimal
from enum import Enum
from typing import Any
from uuid import UUID

from payroll_kernel.db.types import HUNDRED, ZERO, to_decimal
from payroll_kernel.exceptions import ComponentError, InvalidPercentageError


class ComponentType(Enum):
    """Earnings add to gross pay, deductions subtract."""
    EARNING = "earning"
    DEDUCTION = "deduction"


class CalculationType(Enum):
    VALUE = "value"
    PERCENTAGE = "percentage"


class Editability(Enum):
    """When a component's amount may be changed.

    FIXED is set at structure definition only, EDITABLE may be overridden
    during payroll processing, ENTER_LATER has no amount until payroll
    processing supplies one.
    """
    FIXED = "fixed"
    EDITABLE = "editable"
    ENTER_LATER = "enter_later"


@dataclass(frozen=True)
class ValueCalculation:
    """Amount entered directly.  ``None`` means not supplied yet."""
    amount: Decimal | None = None

    @property
    def calculation_type(self) -> CalculationType:
        return CalculationType.VALUE


@dataclass(frozen=True)
class PercentageCalculation:
    """``rate`` percent of the summed resolved amounts of ``references``."""
    rate: Decimal | None = None
    references: tuple[str, ...] = ()
    resolved_amount: Decimal | None = None

    @property
    def calculation_type(self) -> CalculationType:
        return CalculationType.PERCENTAGE


Calculation = ValueCalculation | PercentageCalculation


@dataclass(frozen=True)
class SalaryComponent:
    """
    One line item in a salary structure or payroll entry.

    ``key`` is unique within one edit session and stable across edits; it
    is not a database identity.  ``name`` is the handle other components
    use to reference this one.
    """
    key: str
    name: str
    component_type: ComponentType
    calculation: Calculation = field(default_factory=ValueCalculation)
    editability: Editability = Editability.FIXED
    is_statutory: bool = False
    is_taxable: bool = False
    display_order: int = 0
    component_id: UUID | None = None
    description: str | None = None

    def __post_init__(self):
        rate = self.percentage_value
        if rate is not None and not (ZERO <= rate <= HUNDRED):
            raise InvalidPercentageError(self.key, str(rate))

    @property
    def calculation_type(self) -> CalculationType:
        return self.calculation.calculation_type

    @property
    def is_percentage(self) -> bool:
        return isinstance(self.calculation, PercentageCalculation)

    @property
    def amount(self) -> Decimal | None:
        """Entered amount for value components, resolved amount for percentages."""
        if isinstance(self.calculation, PercentageCalculation):
            return self.calculation.resolved_amount
        return self.calculation.amount

    @property
    def effective_amount(self) -> Decimal:
        return self.amount if self.amount is not None else ZERO

    @property
    def percentage_value(self) -> Decimal | None:
        if isinstance(self.calculation, PercentageCalculation):
            return self.calculation.rate
        return None

    @property
    def reference_components(self) -> tuple[str, ...]:
        if isinstance(self.calculation, PercentageCalculation):
            return self.calculation.references
        return ()

    @property
    def accepts_payroll_override(self) -> bool:
        """Whether payroll processing may supply this component's amount."""
        return self.editability in (Editability.EDITABLE, Editability.ENTER_LATER)

    def to_dict(self) -> dict[str, Any]:
        """JSON-safe representation used by the ORM layer (amounts as strings)."""
        amount = self.amount
        rate = self.percentage_value
        return {
            "key": self.key,
            "name": self.name,
            "component_type": self.component_type.value,
            "calculation_type": self.calculation_type.value,
            "editability": self.editability.value,
            "amount": str(amount) if amount is not None else None,
            "percentage_value": str(rate) if rate is not None else None,
            "reference_components": list(self.reference_components),
            "is_statutory": self.is_statutory,
            "is_taxable": self.is_taxable,
            "display_order": self.display_order,
            "component_id": str(self.component_id) if self.component_id else None,
            "description": self.description,
        }

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> SalaryComponent:
        calculation_type = CalculationType(data.get("calculation_type", "value"))
        amount = to_decimal(data.get("amount"))
        calculation: Calculation
        if calculation_type is CalculationType.PERCENTAGE:
            calculation = PercentageCalculation(
                rate=to_decimal(data.get("percentage_value")),
                references=tuple(data.get("reference_components") or ()),
                resolved_amount=amount,
            )
        else:
            calculation = ValueCalculation(amount=amount)
        component_id = data.get("component_id")
        return cls(
            key=data["key"],
            name=data["name"],
            component_type=ComponentType(data["component_type"]),
            calculation=calculation,
            editability=Editability(data.get("editability", "fixed")),
            is_statutory=bool(data.get("is_statutory", False)),
            is_taxable=bool(data.get("is_taxable", False)),
            display_order=int(data.get("display_order", 0)),
            component_id=UUID(str(component_id)) if component_id else None,
            description=data.get("description"),
        )


@dataclass(frozen=True)
class SalaryStructureHeader:
    """Listing row for a structure (no components)."""
    id: UUID
    name: str
    description: str | None = None
    is_active: bool = True


@dataclass(frozen=True)
class SalaryStructure:
    """A named, reusable template of salary components."""
    name: str
    components: tuple[SalaryComponent, ...] = ()
    id: UUID | None = None
    description: str | None = None
    is_active: bool = True

    @property
    def earnings(self) -> tuple[SalaryComponent, ...]:
        return tuple(c for c in self.components if c.component_type is ComponentType.EARNING)

    @property
    def deductions(self) -> tuple[SalaryComponent, ...]:
        return tuple(c for c in self.components if c.component_type is ComponentType.DEDUCTION)


@dataclass(frozen=True)
class PayrollTotals:
    """Gross earnings, total deductions and net pay of one component list."""
    gross: Decimal
    deductions: Decimal
    net: Decimal


@dataclass(frozen=True)
class MutationResult:
    """
    Outcome of one edit-session mutation.

    On failure ``components`` is the unchanged list, ``error`` carries the
    typed reason and ``focus_key`` names the component the caller should
    direct attention to.
    """
    components: tuple[SalaryComponent, ...]
    error: ComponentError | None = None
    focus_key: str | None = None
    component: SalaryComponent | None = None

    @property
    def is_success(self) -> bool:
        return self.error is None


class StructureSaveStatus(Enum):
    SAVED = "saved"
    MISSING_STATUTORY = "missing_statutory"


@dataclass(frozen=True)
class StructureSaveResult:
    """
    Outcome of saving a structure.

    A save blocked by missing statutory deductions is a result, not an
    exception: ``missing_statutory`` lists the names the user must add.
    """
    status: StructureSaveStatus
    structure: SalaryStructure | None = None
    missing_statutory: tuple[str, ...] = ()

    @property
    def is_success(self) -> bool:
        return self.status is StructureSaveStatus.SAVED

    @classmethod
    def saved(cls, structure: SalaryStructure) -> StructureSaveResult:
        return cls(status=StructureSaveStatus.SAVED, structure=structure)

    @classmethod
    def blocked(cls, missing: tuple[str, ...]) -> StructureSaveResult:
        return cls(status=StructureSaveStatus.MISSING_STATUTORY, missing_statutory=missing)
