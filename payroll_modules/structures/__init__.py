"""
Salary Structures Module (``payroll_modules.structures``).

Responsibility
--------------
Salary-component calculation core: the component model and its
mutations, the amount resolver, attendance pro-ration, statutory
enforcement, totals, the structure edit session and structure
persistence.

Architecture position
---------------------
**Modules layer** -- pure models and helpers, plus
``SalaryStructureService`` which owns persistence for structures and the
tenant statutory policy.

Invariants enforced
-------------------
* Component names are unique case-insensitively within one structure.
* Percentages reference only earlier components; resolution is one pass.
* A structure missing a required statutory deduction is never saved.

Failure modes
-------------
* Component errors come back as a failed ``MutationResult``.
* Missing statutory deductions come back as a blocked
  ``StructureSaveResult``.
"""

from payroll_modules.structures.config import SalaryConfig
from payroll_modules.structures.helpers import (
    adjust_for_attendance,
    amounts_changed,
    net_pay,
    resolve_amounts,
    summarize,
    total_for,
)
from payroll_modules.structures.models import (
    CalculationType,
    ComponentType,
    Editability,
    MutationResult,
    PayrollTotals,
    PercentageCalculation,
    SalaryComponent,
    SalaryStructure,
    SalaryStructureHeader,
    StructureSaveResult,
    StructureSaveStatus,
    ValueCalculation,
)
from payroll_modules.structures.session import StructureEditSession
from payroll_modules.structures.statutory import (
    ApplicationType,
    CompanyStatutorySettings,
    StatutoryCheck,
    StatutoryConfiguration,
    StatutoryElement,
    StatutoryPolicy,
    derive_statutory_deductions,
    load_statutory_policy,
    validate_statutory_completeness,
)

__all__ = [
    "ApplicationType",
    "CalculationType",
    "CompanyStatutorySettings",
    "ComponentType",
    "Editability",
    "MutationResult",
    "PayrollTotals",
    "PercentageCalculation",
    "SalaryComponent",
    "SalaryConfig",
    "SalaryStructure",
    "SalaryStructureHeader",
    "StatutoryCheck",
    "StatutoryConfiguration",
    "StatutoryElement",
    "StatutoryPolicy",
    "StructureEditSession",
    "StructureSaveResult",
    "StructureSaveStatus",
    "ValueCalculation",
    "adjust_for_attendance",
    "amounts_changed",
    "derive_statutory_deductions",
    "load_statutory_policy",
    "net_pay",
    "resolve_amounts",
    "summarize",
    "total_for",
    "validate_statutory_completeness",
]
