"""
Salary Structure Service (``payroll_modules.structures.service``).

Responsibility
--------------
Persists salary structures and reads the tenant statutory policy:
fetch structures by tenant, fetch one structure with its components
resolved, insert or update a structure (components replaced wholesale),
delete a structure, and derive the tenant's required statutory
deductions.

Architecture position
---------------------
**Modules layer** -- thin glue between the pure structure helpers and the
ORM models in ``orm.py``.  ``SalaryStructureService`` is the sole public
entry point for structure persistence.

Invariants enforced
-------------------
* Every public method first resolves the tenant context; every query is
  filtered by ``tenant_id``.
* Each public method owns the transaction boundary (``commit`` on
  success, ``rollback`` on failure).
* A structure missing a required statutory deduction is never written;
  the save returns ``StructureSaveResult`` with the missing names.

Failure modes
-------------
* No authenticated user -> ``AuthenticationError``; no tenant ->
  ``TenantResolutionError``.
* Unknown structure id -> ``RecordNotFoundError``.
* Database failure -> session rolled back, ``PersistenceError`` raised.

Usage::

    service = SalaryStructureService(session, TenantContext(user_id, tenant_id))
    edit = service.open_session()
    edit.add_component(ComponentType.EARNING)
    ...
    result = service.save_session(edit)
"""

from __future__ import annotations

from collections.abc import Sequence
from uuid import UUID

from sqlalchemy import select
from sqlalchemy.orm import Session

from payroll_kernel.context import ResolvedContext, TenantContext, require_tenant
from payroll_kernel.exceptions import RecordNotFoundError
from payroll_kernel.logging_config import get_logger
from payroll_modules._service_helpers import commit_or_rollback
from payroll_modules.structures.config import SalaryConfig
from payroll_modules.structures.helpers import resolve_amounts
from payroll_modules.structures.models import (
    ComponentType,
    SalaryComponent,
    SalaryStructure,
    SalaryStructureHeader,
    StructureSaveResult,
)
from payroll_modules.structures.orm import (
    CompanyStatutorySettingsModel,
    PayrollComponentModel,
    SalaryStructureComponentModel,
    SalaryStructureModel,
    StatutoryConfigurationModel,
)
from payroll_modules.structures.session import StructureEditSession
from payroll_modules.structures.statutory import (
    CompanyStatutorySettings,
    StatutoryPolicy,
    derive_statutory_deductions,
    validate_statutory_completeness,
)

logger = get_logger("modules.structures.service")


class SalaryStructureService:
    """
    Reads and writes salary structures for one tenant.

    Contract
    --------
    * ``save_structure`` returns ``StructureSaveResult``; callers inspect
      ``result.is_success``.
    * Reads return frozen DTOs with amounts already resolved.

    Non-goals
    ---------
    * Does NOT assign structures to employees (see
      ``payroll_modules.processing.service.StructureAssignmentService``).
    """

    def __init__(
        self,
        session: Session,
        context: TenantContext | None,
        config: SalaryConfig | None = None,
    ):
        self._session = session
        self._context = context
        self._config = config or SalaryConfig()

    def _tenant(self) -> ResolvedContext:
        return require_tenant(self._context)

    # =========================================================================
    # Reads
    # =========================================================================

    def list_structures(self, active_only: bool = False) -> list[SalaryStructureHeader]:
        ctx = self._tenant()
        with commit_or_rollback(self._session, "list_structures"):
            stmt = (
                select(SalaryStructureModel)
                .where(SalaryStructureModel.tenant_id == ctx.tenant_id)
                .order_by(SalaryStructureModel.name)
            )
            if active_only:
                stmt = stmt.where(SalaryStructureModel.is_active.is_(True))
            headers = [m.to_header() for m in self._session.scalars(stmt)]
        logger.debug("structures_listed", extra={"count": len(headers)})
        return headers

    def get_structure(self, structure_id: UUID) -> SalaryStructure:
        """Fetch one structure with every component amount resolved."""
        ctx = self._tenant()
        with commit_or_rollback(self._session, "get_structure", structure_id=str(structure_id)):
            model = self._load(ctx, structure_id)
            structure = model.to_dto()
        return SalaryStructure(
            id=structure.id,
            name=structure.name,
            description=structure.description,
            is_active=structure.is_active,
            components=resolve_amounts(
                structure.components, self._config.amount_decimal_places
            ),
        )

    def fetch_statutory_policy(self) -> StatutoryPolicy:
        ctx = self._tenant()
        with commit_or_rollback(self._session, "fetch_statutory_policy"):
            settings_model = self._session.scalars(
                select(CompanyStatutorySettingsModel)
                .where(CompanyStatutorySettingsModel.tenant_id == ctx.tenant_id)
            ).first()
            configurations = tuple(
                m.to_dto() for m in self._session.scalars(
                    select(StatutoryConfigurationModel)
                    .where(StatutoryConfigurationModel.tenant_id == ctx.tenant_id)
                )
            )
            linked = {
                m.statutory_configuration_id: m.to_linked()
                for m in self._session.scalars(
                    select(PayrollComponentModel).where(
                        PayrollComponentModel.tenant_id == ctx.tenant_id,
                        PayrollComponentModel.statutory_configuration_id.is_not(None),
                        PayrollComponentModel.component_type == ComponentType.DEDUCTION.value,
                    )
                )
            }
        settings = settings_model.to_dto() if settings_model else CompanyStatutorySettings()
        return StatutoryPolicy(
            settings=settings,
            configurations=configurations,
            linked_components=linked,
        )

    def required_statutory_deductions(self) -> tuple[SalaryComponent, ...]:
        return derive_statutory_deductions(self.fetch_statutory_policy(), self._config)

    def open_session(self, structure_id: UUID | None = None) -> StructureEditSession:
        """Start editing a new structure, or an existing one by id."""
        structure = self.get_structure(structure_id) if structure_id else None
        return StructureEditSession(
            config=self._config,
            structure=structure,
            required_statutory=self.required_statutory_deductions(),
        )

    # =========================================================================
    # Writes
    # =========================================================================

    def save_structure(
        self,
        structure: SalaryStructure,
        required_statutory: Sequence[SalaryComponent | str] | None = None,
    ) -> StructureSaveResult:
        """
        Insert or update a structure.

        On update the stored component rows are replaced wholesale by
        ``structure.components``.  ``required_statutory`` defaults to the
        tenant's derived statutory deductions.
        """
        ctx = self._tenant()
        if required_statutory is None:
            required_statutory = self.required_statutory_deductions()

        check = validate_statutory_completeness(structure.components, required_statutory)
        if not check.is_complete:
            logger.warning(
                "structure_save_blocked",
                extra={"structure_name": structure.name, "missing": list(check.missing)},
            )
            return StructureSaveResult.blocked(check.missing)

        components = resolve_amounts(structure.components, self._config.amount_decimal_places)
        resolved = SalaryStructure(
            id=structure.id,
            name=structure.name,
            description=structure.description,
            is_active=structure.is_active,
            components=components,
        )

        with commit_or_rollback(self._session, "save_structure", structure_name=structure.name):
            model = None
            if structure.id is not None:
                model = self._session.scalars(
                    select(SalaryStructureModel).where(
                        SalaryStructureModel.id == structure.id,
                        SalaryStructureModel.tenant_id == ctx.tenant_id,
                    )
                ).first()

            if model is None:
                model = SalaryStructureModel.from_dto(resolved, ctx.tenant_id, ctx.user_id)
                self._session.add(model)
                action = "inserted"
            else:
                model.name = resolved.name
                model.description = resolved.description
                model.is_active = resolved.is_active
                model.updated_by_id = ctx.user_id
                model.components = [
                    SalaryStructureComponentModel.from_dto(c, ctx.user_id, display_order=i)
                    for i, c in enumerate(components)
                ]
                action = "updated"
            self._session.flush()
            saved = model.to_dto()

        logger.info(
            "structure_saved",
            extra={
                "structure_id": str(saved.id),
                "action": action,
                "components": len(saved.components),
            },
        )
        return StructureSaveResult.saved(saved)

    def save_session(self, edit_session: StructureEditSession) -> StructureSaveResult:
        """Save the session's structure and apply the result if it is still open."""
        result = self.save_structure(
            edit_session.to_structure(),
            required_statutory=edit_session.required_statutory,
        )
        edit_session.apply_save_result(result)
        return result

    def delete_structure(self, structure_id: UUID) -> None:
        ctx = self._tenant()
        with commit_or_rollback(self._session, "delete_structure", structure_id=str(structure_id)):
            model = self._load(ctx, structure_id)
            self._session.delete(model)
        logger.info("structure_deleted", extra={"structure_id": str(structure_id)})

    def save_statutory_policy(self, policy: StatutoryPolicy) -> None:
        """
        Replace the tenant's statutory settings and configurations.

        Linked payroll components are created for every entry of
        ``policy.linked_components``.
        """
        ctx = self._tenant()
        with commit_or_rollback(self._session, "save_statutory_policy"):
            for model_cls in (
                PayrollComponentModel,
                StatutoryConfigurationModel,
                CompanyStatutorySettingsModel,
            ):
                for existing in self._session.scalars(
                    select(model_cls).where(model_cls.tenant_id == ctx.tenant_id)
                ):
                    self._session.delete(existing)
            self._session.flush()

            self._session.add(
                CompanyStatutorySettingsModel.from_dto(policy.settings, ctx.tenant_id, ctx.user_id)
            )
            for configuration in policy.configurations:
                self._session.add(
                    StatutoryConfigurationModel.from_dto(configuration, ctx.tenant_id, ctx.user_id)
                )
            self._session.flush()
            for configuration_id, linked in policy.linked_components.items():
                self._session.add(
                    PayrollComponentModel(
                        id=linked.id,
                        tenant_id=ctx.tenant_id,
                        name=linked.name,
                        component_type=ComponentType.DEDUCTION.value,
                        statutory_configuration_id=configuration_id,
                        created_by_id=ctx.user_id,
                    )
                )
        logger.info(
            "statutory_policy_saved",
            extra={"configurations": len(policy.configurations)},
        )

    # =========================================================================
    # Internals
    # =========================================================================

    def _load(self, ctx: ResolvedContext, structure_id: UUID) -> SalaryStructureModel:
        model = self._session.scalars(
            select(SalaryStructureModel).where(
                SalaryStructureModel.id == structure_id,
                SalaryStructureModel.tenant_id == ctx.tenant_id,
            )
        ).first()
        if model is None:
            raise RecordNotFoundError("salary_structure", str(structure_id))
        return model
