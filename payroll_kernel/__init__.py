"""
Payroll Kernel

Cross-cutting infrastructure for the salary-component calculation core:
- Structured JSON logging with request-scoped context
- Typed exceptions with machine-readable codes
- Tenant / authentication context
- Injectable clock and workflow value objects
- SQLAlchemy base classes, engine and money rounding
"""

__version__ = "0.1.0"
