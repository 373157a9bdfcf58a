"""
Statutory Enforcement (``payroll_modules.structures.statutory``).

Responsibility
--------------
Derive the mandatory statutory-deduction components from tenant
configuration, and check a component list for completeness before a
structure or payroll entry is saved.

Architecture position
---------------------
**Modules layer** -- pure functions plus the value objects describing
tenant statutory policy.  The policy itself is loaded by
``SalaryStructureService`` from the database, or from a YAML file with
``load_statutory_policy`` (tests, local tooling).

Invariants enforced
-------------------
* Elements are visited in a fixed order: provident fund, employee state
  insurance, professional tax, tax deducted at source.
* ``same_to_all`` -> editability ``fixed`` with the global value
  pre-filled; ``vary_employeewise`` -> ``enter_later`` seeded at 0.
* Derived components are deductions, statutory, not taxable, with no
  references.
* A completeness check lists every missing required name; an incomplete
  list blocks the save.

Failure modes
-------------
* Element enabled but no active configuration -> element skipped.
* Missing YAML file -> ``FileNotFoundError`` propagates.
* Malformed YAML -> ``yaml.YAMLError`` propagates.
* Unknown element / method / application type -> ``ValueError``.
"""

from __future__ import annotations

from collections.abc import Iterable, Sequence
from dataclasses import dataclass, field
from decimal import Decimal
from enum import Enum
from pathlib import Path
from typing import Any
from uuid import UUID

import yaml

from payroll_kernel.db.types import ZERO, to_decimal
from payroll_kernel.exceptions import MissingStatutoryError
from payroll_kernel.logging_config import get_logger
from payroll_modules.structures.config import SalaryConfig
from payroll_modules.structures.models import (
    CalculationType,
    ComponentType,
    Editability,
    PercentageCalculation,
    SalaryComponent,
    ValueCalculation,
)

logger = get_logger("modules.structures.statutory")


class StatutoryElement(Enum):
    PROVIDENT_FUND = "provident_fund"
    EMPLOYEE_STATE_INSURANCE = "employee_state_insurance"
    PROFESSIONAL_TAX = "professional_tax"
    TAX_DEDUCTED_AT_SOURCE = "tax_deducted_at_source"


STATUTORY_ELEMENTS: tuple[StatutoryElement, ...] = tuple(StatutoryElement)


class ApplicationType(Enum):
    """How a statutory element's amount is set across employees."""
    SAME_TO_ALL = "same_to_all"
    VARY_EMPLOYEEWISE = "vary_employeewise"


@dataclass(frozen=True)
class CompanyStatutorySettings:
    """Per-tenant switches: which statutory elements apply."""
    provident_fund: bool = False
    employee_state_insurance: bool = False
    professional_tax: bool = False
    tax_deducted_at_source: bool = False

    def is_enabled(self, element: StatutoryElement) -> bool:
        return bool(getattr(self, element.value))


@dataclass(frozen=True)
class StatutoryConfiguration:
    """Tenant configuration for one statutory element."""
    id: UUID
    element: StatutoryElement
    calculation_method: CalculationType
    application_type: ApplicationType
    global_value: Decimal | None = None
    is_active: bool = True


@dataclass(frozen=True)
class LinkedPayrollComponent:
    """Payroll-component record carrying the tenant's name for an element."""
    id: UUID
    name: str


@dataclass(frozen=True)
class StatutoryPolicy:
    """
    Everything needed to derive statutory deductions for one tenant.

    ``linked_components`` maps a configuration id to the payroll component
    linked to it.
    """
    settings: CompanyStatutorySettings
    configurations: tuple[StatutoryConfiguration, ...] = ()
    linked_components: dict[UUID, LinkedPayrollComponent] = field(default_factory=dict)

    def active_configuration(
        self, element: StatutoryElement,
    ) -> StatutoryConfiguration | None:
        for configuration in self.configurations:
            if configuration.element is element and configuration.is_active:
                return configuration
        return None

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> StatutoryPolicy:
        """Parse the mapping produced by a YAML policy file."""
        raw_settings = data.get("settings") or {}
        unknown = set(raw_settings) - {e.value for e in StatutoryElement}
        if unknown:
            raise ValueError(f"Unknown statutory elements: {sorted(unknown)}")
        settings = CompanyStatutorySettings(
            **{name: bool(enabled) for name, enabled in raw_settings.items()}
        )

        configurations = []
        linked: dict[UUID, LinkedPayrollComponent] = {}
        for raw in data.get("configurations") or ():
            configuration = StatutoryConfiguration(
                id=UUID(str(raw["id"])),
                element=StatutoryElement(raw["element"]),
                calculation_method=CalculationType(raw["calculation_method"]),
                application_type=ApplicationType(raw["application_type"]),
                global_value=to_decimal(raw.get("global_value")),
                is_active=bool(raw.get("is_active", True)),
            )
            configurations.append(configuration)
            component = raw.get("component")
            if component:
                linked[configuration.id] = LinkedPayrollComponent(
                    id=UUID(str(component["id"])),
                    name=component["name"],
                )

        return cls(
            settings=settings,
            configurations=tuple(configurations),
            linked_components=linked,
        )


def load_statutory_policy(path: Path | str) -> StatutoryPolicy:
    """
    Load a tenant statutory policy from a YAML file.

    Raises:
        FileNotFoundError: if the file does not exist.
        yaml.YAMLError: if the file contains invalid YAML.
    """
    with open(path) as f:
        data = yaml.safe_load(f) or {}
    policy = StatutoryPolicy.from_dict(data)
    logger.info(
        "statutory_policy_loaded",
        extra={"path": str(path), "configurations": len(policy.configurations)},
    )
    return policy


def derive_statutory_deductions(
    policy: StatutoryPolicy,
    config: SalaryConfig | None = None,
) -> tuple[SalaryComponent, ...]:
    """
    One deduction per enabled element with an active configuration.

    Keys are ``SD1``, ``SD2``... in element order; an edit session re-keys
    them from its own counter when they are added to a structure.
    """
    config = config or SalaryConfig()
    derived: list[SalaryComponent] = []

    for element in STATUTORY_ELEMENTS:
        if not policy.settings.is_enabled(element):
            continue
        configuration = policy.active_configuration(element)
        if configuration is None:
            logger.debug(
                "statutory_element_unconfigured",
                extra={"element": element.value},
            )
            continue

        linked = policy.linked_components.get(configuration.id)
        name = linked.name if linked else config.statutory_display_name(element.value)

        if configuration.application_type is ApplicationType.SAME_TO_ALL:
            editability = Editability.FIXED
            value = configuration.global_value
        else:
            editability = Editability.ENTER_LATER
            value = ZERO

        if configuration.calculation_method is CalculationType.PERCENTAGE:
            calculation = PercentageCalculation(rate=value)
        else:
            calculation = ValueCalculation(amount=value)

        derived.append(
            SalaryComponent(
                key=f"SD{len(derived) + 1}",
                name=name,
                component_type=ComponentType.DEDUCTION,
                calculation=calculation,
                editability=editability,
                is_statutory=True,
                is_taxable=False,
                display_order=len(derived),
                component_id=linked.id if linked else None,
                description=f"Statutory {name}",
            )
        )

    logger.info(
        "statutory_deductions_derived",
        extra={"names": [c.name for c in derived]},
    )
    return tuple(derived)


@dataclass(frozen=True)
class StatutoryCheck:
    """Result of a completeness check: the required names not present."""
    missing: tuple[str, ...] = ()

    @property
    def is_complete(self) -> bool:
        return not self.missing

    def to_error(self) -> MissingStatutoryError | None:
        if self.is_complete:
            return None
        return MissingStatutoryError(self.missing)


def statutory_names_present(components: Iterable[SalaryComponent]) -> set[str]:
    """Normalized names of the statutory deductions in ``components``."""
    return {
        c.name.strip().casefold()
        for c in components
        if c.is_statutory and c.component_type is ComponentType.DEDUCTION
    }


def validate_statutory_completeness(
    components: Sequence[SalaryComponent],
    required: Iterable[SalaryComponent | str],
) -> StatutoryCheck:
    """
    List every required statutory name absent from ``components``.

    Only statutory deductions count; an earning or an ordinary deduction
    carrying the same name does not satisfy the requirement.  Names are
    compared case-insensitively; order follows ``required``.
    """
    present = statutory_names_present(components)
    missing: list[str] = []
    seen: set[str] = set()
    for item in required:
        name = item if isinstance(item, str) else item.name
        normalized = name.strip().casefold()
        if normalized not in present and normalized not in seen:
            seen.add(normalized)
            missing.append(name)

    if missing:
        logger.info("statutory_deductions_missing", extra={"missing": missing})
    return StatutoryCheck(missing=tuple(missing))
