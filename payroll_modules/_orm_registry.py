"""
Module ORM Registry (``payroll_modules._orm_registry``).

Responsibility
--------------
Ensure all module-level SQLAlchemy ORM models are imported so that
``Base.metadata`` contains their table definitions before
``payroll_kernel.db.engine.create_tables()`` runs.

Architecture position
---------------------
**Modules layer** -- utility.  Imported lazily by the kernel engine.
"""


def import_all_orm_models() -> None:
    """Import every ``payroll_modules.*.orm`` module (idempotent)."""
    import payroll_modules.structures.orm  # noqa: F401
    import payroll_modules.processing.orm  # noqa: F401
