"""
Structure Edit Session (``payroll_modules.structures.session``).

Responsibility
--------------
Owns the in-memory component list of one salary structure while it is
being defined or edited.  Every mutation is followed by amount resolution
in the same call, so callers never observe stale totals.

Architecture position
---------------------
**Modules layer** -- stateful, but free of I/O.  ``SalaryStructureService``
loads structures into a session and persists ``to_structure()``.

Invariants enforced
-------------------
* The key counter belongs to the session: one increment per created
  component, shared by earnings, deductions and statutory deductions,
  never reused after removal.
* Component errors never escape a mutation; they come back as a failed
  ``MutationResult`` and the component list is unchanged.
* A statutory deduction removed from the list becomes available again.
* Only statutory deductions count towards the required statutory list;
  an ordinary component cannot be renamed to one of its names.
* ``apply_save_result`` is a no-op once the session has been closed.
"""

from __future__ import annotations

from collections.abc import Callable, Sequence
from dataclasses import replace
from decimal import Decimal
from uuid import UUID, uuid4

from payroll_kernel.exceptions import (
    ComponentError,
    ComponentNotFoundError,
    DuplicateComponentNameError,
    IncompleteComponentError,
)
from payroll_kernel.logging_config import LogContext, get_logger
from payroll_modules.structures import components as ops
from payroll_modules.structures.config import SalaryConfig
from payroll_modules.structures.helpers import resolve_amounts, summarize
from payroll_modules.structures.models import (
    CalculationType,
    ComponentType,
    Editability,
    MutationResult,
    PayrollTotals,
    SalaryComponent,
    SalaryStructure,
    StructureSaveResult,
)
from payroll_modules.structures.statutory import (
    StatutoryCheck,
    statutory_names_present,
    validate_statutory_completeness,
)

logger = get_logger("modules.structures.session")

Components = tuple[SalaryComponent, ...]


class StructureEditSession:
    """
    Editing state for one salary structure.

    Args:
        config: Engine configuration (rounding, rename policy, chaining).
        structure: Existing structure to edit; ``None`` starts a new one.
        required_statutory: Statutory deductions the tenant requires, as
            produced by ``derive_statutory_deductions``.
    """

    def __init__(
        self,
        config: SalaryConfig | None = None,
        structure: SalaryStructure | None = None,
        required_statutory: Sequence[SalaryComponent] = (),
    ):
        self.session_id = str(uuid4())
        self._config = config or SalaryConfig()
        self._counter = 0
        self._active = True
        self._required_statutory: Components = tuple(required_statutory)

        self.structure_id: UUID | None = None
        self.name = ""
        self.description: str | None = None
        self.is_active = True
        self._components: Components = ()

        if structure is not None:
            self.structure_id = structure.id
            self.name = structure.name
            self.description = structure.description
            self.is_active = structure.is_active
            self._components = self._resolve(
                tuple(replace(c, key=self._next_key(c)) for c in structure.components)
            )

        logger.info(
            "structure_edit_session_opened",
            extra={
                "session_id": self.session_id,
                "structure_id": str(self.structure_id) if self.structure_id else None,
                "components": len(self._components),
            },
        )

    # -- state ------------------------------------------------------------

    @property
    def components(self) -> Components:
        return self._components

    @property
    def earnings(self) -> Components:
        return tuple(c for c in self._components if c.component_type is ComponentType.EARNING)

    @property
    def deductions(self) -> Components:
        return tuple(c for c in self._components if c.component_type is ComponentType.DEDUCTION)

    @property
    def active(self) -> bool:
        """False once ``close()`` has been called."""
        return self._active

    @property
    def totals(self) -> PayrollTotals:
        return summarize(self._components)

    @property
    def available_statutory(self) -> Components:
        """Required statutory deductions not yet in the structure."""
        present = statutory_names_present(self._components)
        return tuple(
            s for s in self._required_statutory
            if s.name.strip().casefold() not in present
        )

    @property
    def required_statutory(self) -> Components:
        return self._required_statutory

    @property
    def reserved_names(self) -> tuple[str, ...]:
        """Names only a statutory deduction may carry."""
        return tuple(s.name for s in self._required_statutory)

    def set_required_statutory(self, required: Sequence[SalaryComponent]) -> None:
        self._required_statutory = tuple(required)

    def check_statutory(self) -> StatutoryCheck:
        return validate_statutory_completeness(self._components, self._required_statutory)

    def to_structure(self) -> SalaryStructure:
        return SalaryStructure(
            id=self.structure_id,
            name=self.name,
            description=self.description,
            is_active=self.is_active,
            components=self._components,
        )

    def update_details(
        self,
        name: str | None = None,
        description: str | None = None,
        is_active: bool | None = None,
    ) -> None:
        if name is not None:
            self.name = name
        if description is not None:
            self.description = description
        if is_active is not None:
            self.is_active = is_active

    # -- mutations --------------------------------------------------------

    def add_component(self, component_type: ComponentType) -> MutationResult:
        """Append a fresh, unnamed component of ``component_type``."""
        display_order = len(self._components)

        def _add(current: Components) -> Components:
            for existing in current:
                if not existing.name.strip():
                    raise IncompleteComponentError(existing.key)
            key = self._next_key_for(component_type)
            return ops.add_component(
                current, ops.create_component(component_type, key, display_order)
            )

        result = self._mutate("add_component", None, _add)
        if result.is_success:
            added = result.components[-1]
            return replace(result, component=added, focus_key=added.key)
        return result

    def add_statutory(self, name: str) -> MutationResult:
        """Add one of ``available_statutory`` by name."""

        def _add(current: Components) -> Components:
            template = next(
                (s for s in self.available_statutory
                 if s.name.strip().casefold() == name.strip().casefold()),
                None,
            )
            if template is None:
                raise ComponentNotFoundError(name)
            owner = ops.find_by_name(current, template.name)
            if owner is not None:
                raise DuplicateComponentNameError(template.name, template.key, owner.key)
            key = f"{ops.STATUTORY_KEY_PREFIX}{self._increment()}"
            return (*current, replace(template, key=key, display_order=len(current)))

        result = self._mutate("add_statutory", None, _add)
        if result.is_success:
            added = result.components[-1]
            return replace(result, component=added, focus_key=added.key)
        return result

    def rename(self, key: str, new_name: str) -> MutationResult:
        return self._mutate(
            "rename",
            key,
            lambda current: ops.rename_component(
                current, key, new_name, self._config.rename_policy,
                reserved_names=self.reserved_names,
            ),
        )

    def change_calculation_type(
        self, key: str, calculation_type: CalculationType,
    ) -> MutationResult:
        return self._mutate(
            "change_calculation_type",
            key,
            lambda current: ops.change_calculation_type(current, key, calculation_type),
        )

    def change_editability(self, key: str, editability: Editability) -> MutationResult:
        return self._mutate(
            "change_editability",
            key,
            lambda current: ops.change_editability(current, key, editability),
        )

    def set_amount(self, key: str, amount: Decimal | None) -> MutationResult:
        return self._mutate(
            "set_amount", key, lambda current: ops.set_amount(current, key, amount)
        )

    def set_percentage(
        self,
        key: str,
        rate: Decimal | None,
        references: Sequence[str] = (),
    ) -> MutationResult:
        return self._mutate(
            "set_percentage",
            key,
            lambda current: ops.set_percentage(
                current, key, rate, references,
                allow_chained=self._config.allow_chained_percentages,
            ),
        )

    def set_taxable(self, key: str, is_taxable: bool) -> MutationResult:
        def _set(current: Components) -> Components:
            index = ops.find_index(current, key)
            return tuple(
                replace(c, is_taxable=is_taxable) if i == index else c
                for i, c in enumerate(current)
            )

        return self._mutate("set_taxable", key, _set)

    def remove(self, key: str) -> MutationResult:
        result = self._mutate(
            "remove", key, lambda current: ops.remove_component(current, key)
        )
        return replace(result, focus_key=None) if result.is_success else result

    # -- lifecycle --------------------------------------------------------

    def close(self) -> None:
        self._active = False
        logger.info("structure_edit_session_closed", extra={"session_id": self.session_id})

    def apply_save_result(self, result: StructureSaveResult) -> bool:
        """
        Apply a completed save to this session.

        Returns False (and changes nothing) when the session was closed
        while the save was in flight.
        """
        if not self._active:
            logger.info(
                "save_result_discarded",
                extra={"session_id": self.session_id},
            )
            return False
        if result.is_success and result.structure is not None:
            self.structure_id = result.structure.id
        return True

    # -- internals --------------------------------------------------------

    def _mutate(
        self,
        action: str,
        key: str | None,
        operation: Callable[[Components], Components],
    ) -> MutationResult:
        LogContext.set(session_id=self.session_id)
        try:
            updated = operation(self._components)
        except ComponentError as exc:
            focus = getattr(exc, "conflicting_key", None) or getattr(exc, "key", None) or key
            logger.warning(
                "component_mutation_rejected",
                extra={
                    "action": action,
                    "key": key,
                    "error_code": exc.code,
                    "detail": str(exc),
                },
            )
            return MutationResult(components=self._components, error=exc, focus_key=focus)

        self._components = self._resolve(updated)
        component = next((c for c in self._components if c.key == key), None)
        logger.debug(
            "component_mutation_applied",
            extra={"action": action, "key": key, "components": len(self._components)},
        )
        return MutationResult(components=self._components, focus_key=key, component=component)

    def _resolve(self, components: Components) -> Components:
        return resolve_amounts(components, self._config.amount_decimal_places)

    def _increment(self) -> int:
        self._counter += 1
        return self._counter

    def _next_key_for(self, component_type: ComponentType) -> str:
        return f"{ops.KEY_PREFIXES[component_type]}{self._increment()}"

    def _next_key(self, component: SalaryComponent) -> str:
        if component.is_statutory:
            return f"{ops.STATUTORY_KEY_PREFIX}{self._increment()}"
        return self._next_key_for(component.component_type)
