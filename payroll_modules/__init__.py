"""
Payroll Modules.

Thin orchestration layers over the payroll kernel.
Each module contains:
- Domain models (the nouns)
- Pure helpers (the calculations)
- Workflows (state machines)
- Configuration schemas (policy and settings)
- ORM companions and a service facade

Modules:
- Structures: Salary components, amount resolution, statutory deductions
- Processing: Payroll entries, attendance pro-ration, drafts, assignments
"""

from payroll_modules import processing, structures

__all__ = [
    "processing",
    "structures",
]
