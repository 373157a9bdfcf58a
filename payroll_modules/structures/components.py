"""
Component Model Operations (``payroll_modules.structures.components``).

Responsibility
--------------
Pure constructors and mutations over an ordered tuple of
``SalaryComponent``: create, rename, switch calculation type or
editability, set amounts and percentage inputs, remove.  Every function
returns a NEW tuple; the input is never modified.

Architecture position
---------------------
**Modules layer** -- pure helpers.  No I/O, no clock, no session.  The
edit session calls these and re-runs the amount resolver after each one.

Invariants enforced
-------------------
* Names are unique case-insensitively over the combined earnings and
  deductions; a collision raises ``DuplicateComponentNameError`` carrying
  the key of the component that owns the name.
* An earning or ordinary deduction may not take the name of a required
  statutory deduction (``ReservedComponentNameError``).
* A percentage component may only reference components positioned before
  it (no forward or self references).
* Switching percentage -> value clears rate and references; value ->
  percentage clears the amount.
* Calculation type, editability and name of a statutory deduction are
  tenant policy and cannot change; its amount (or rate) only changes when
  its editability is ``editable``.

Failure modes
-------------
* Unknown key -> ``ComponentNotFoundError``.
* Validation failures raise typed ``ComponentError`` subclasses; the edit
  session converts them into a failed ``MutationResult``.
"""

from __future__ import annotations

from collections.abc import Iterable, Sequence
from dataclasses import replace
from decimal import Decimal

from payroll_kernel.db.types import HUNDRED, ZERO
from payroll_kernel.exceptions import (
    ComponentNotFoundError,
    DuplicateComponentNameError,
    IncompleteComponentError,
    InvalidPercentageError,
    InvalidReferenceError,
    ReservedComponentNameError,
    StatutoryComponentLockedError,
)
from payroll_kernel.logging_config import get_logger
from payroll_modules.structures.models import (
    CalculationType,
    ComponentType,
    Editability,
    PercentageCalculation,
    SalaryComponent,
    ValueCalculation,
)

logger = get_logger("modules.structures.components")

KEY_PREFIXES = {
    ComponentType.EARNING: "E",
    ComponentType.DEDUCTION: "D",
}
STATUTORY_KEY_PREFIX = "SD"


def normalize_name(name: str) -> str:
    return name.strip().casefold()


def find_index(components: Sequence[SalaryComponent], key: str) -> int:
    for i, component in enumerate(components):
        if component.key == key:
            return i
    raise ComponentNotFoundError(key)


def find_by_name(
    components: Iterable[SalaryComponent],
    name: str,
    exclude_key: str | None = None,
) -> SalaryComponent | None:
    """Case-insensitive name lookup, optionally ignoring one component."""
    wanted = normalize_name(name)
    for component in components:
        if component.key != exclude_key and normalize_name(component.name) == wanted:
            return component
    return None


def create_component(
    component_type: ComponentType,
    key: str,
    display_order: int = 0,
) -> SalaryComponent:
    """
    Fresh component: empty name, value calculation, fixed editability.

    Earnings default to taxable.  The caller owns the key counter.
    """
    return SalaryComponent(
        key=key,
        name="",
        component_type=component_type,
        calculation=ValueCalculation(),
        editability=Editability.FIXED,
        is_taxable=component_type is ComponentType.EARNING,
        display_order=display_order,
    )


def check_reserved_name(
    component: SalaryComponent,
    name: str,
    reserved_names: Iterable[str],
) -> None:
    """Only a statutory deduction may carry a required statutory name."""
    if component.is_statutory or not name.strip():
        return
    if find_by_name_in(reserved_names, name):
        logger.info(
            "component_name_reserved",
            extra={"key": component.key, "new_name": name},
        )
        raise ReservedComponentNameError(component.key, name)


def add_component(
    components: Sequence[SalaryComponent],
    component: SalaryComponent,
    reserved_names: Iterable[str] = (),
) -> tuple[SalaryComponent, ...]:
    """
    Append a component.

    Raises:
        IncompleteComponentError: another component still has an empty name.
        DuplicateComponentNameError: ``component`` is named and the name is taken.
        ReservedComponentNameError: an ordinary component named after a
            required statutory deduction.
    """
    for existing in components:
        if not existing.name.strip():
            raise IncompleteComponentError(existing.key)
    if component.name.strip():
        owner = find_by_name(components, component.name)
        if owner is not None:
            raise DuplicateComponentNameError(component.name, component.key, owner.key)
        check_reserved_name(component, component.name, reserved_names)
    return (*components, replace(component, display_order=len(components)))


def rename_component(
    components: Sequence[SalaryComponent],
    key: str,
    new_name: str,
    rename_policy: str = "cascade",
    reserved_names: Iterable[str] = (),
) -> tuple[SalaryComponent, ...]:
    """
    Rename one component.

    With the ``cascade`` policy every reference to the old name is rewritten
    to the new one; with ``restrict`` renaming a referenced component is
    rejected.  ``reserved_names`` are the required statutory deduction names
    of the tenant; no ordinary component may take one of them.

    Raises:
        DuplicateComponentNameError: ``new_name`` collides with another component.
        ReservedComponentNameError: ``new_name`` is a reserved statutory name.
        StatutoryComponentLockedError: the component is a statutory deduction.
    """
    index = find_index(components, key)
    target = components[index]
    if target.is_statutory:
        raise StatutoryComponentLockedError(key, target.name, "name")

    owner = find_by_name(components, new_name, exclude_key=key)
    if owner is not None:
        logger.info(
            "component_rename_rejected",
            extra={"key": key, "new_name": new_name, "conflicting_key": owner.key},
        )
        raise DuplicateComponentNameError(new_name, key, owner.key)
    check_reserved_name(target, new_name, reserved_names)

    old_name = target.name
    referrers = [
        c for c in components
        if old_name.strip() and find_by_name_in(c.reference_components, old_name)
    ]
    if referrers and rename_policy == "restrict":
        raise InvalidReferenceError(
            referrers[0].key, old_name, "component is referenced and cannot be renamed"
        )

    result: list[SalaryComponent] = []
    for i, component in enumerate(components):
        if i == index:
            component = replace(component, name=new_name)
        elif component in referrers:
            calc = component.calculation
            component = replace(
                component,
                calculation=replace(
                    calc,
                    references=tuple(
                        new_name if normalize_name(ref) == normalize_name(old_name) else ref
                        for ref in calc.references
                    ),
                ),
            )
        result.append(component)

    if referrers:
        logger.debug(
            "component_rename_cascaded",
            extra={"key": key, "old_name": old_name, "new_name": new_name,
                   "referrers": [c.key for c in referrers]},
        )
    return tuple(result)


def find_by_name_in(names: Iterable[str], name: str) -> bool:
    wanted = normalize_name(name)
    return any(normalize_name(n) == wanted for n in names)


def change_calculation_type(
    components: Sequence[SalaryComponent],
    key: str,
    calculation_type: CalculationType,
) -> tuple[SalaryComponent, ...]:
    """Switch between value and percentage, clearing the other mode's inputs."""
    index = find_index(components, key)
    target = components[index]
    if target.calculation_type is calculation_type:
        return tuple(components)
    if target.is_statutory:
        raise StatutoryComponentLockedError(key, target.name, "calculation type")

    if calculation_type is CalculationType.PERCENTAGE:
        calculation = PercentageCalculation()
    else:
        calculation = ValueCalculation()
    return _replace_at(components, index, replace(target, calculation=calculation))


def change_editability(
    components: Sequence[SalaryComponent],
    key: str,
    editability: Editability,
) -> tuple[SalaryComponent, ...]:
    index = find_index(components, key)
    target = components[index]
    if target.editability is editability:
        return tuple(components)
    if target.is_statutory:
        raise StatutoryComponentLockedError(key, target.name, "editability")
    return _replace_at(components, index, replace(target, editability=editability))


def set_amount(
    components: Sequence[SalaryComponent],
    key: str,
    amount: Decimal | None,
) -> tuple[SalaryComponent, ...]:
    """
    Enter the amount of a value component.

    Raises:
        InvalidReferenceError: the component is percentage-based.
        StatutoryComponentLockedError: statutory and not ``editable``.
    """
    index = find_index(components, key)
    target = components[index]
    if target.is_percentage:
        raise InvalidReferenceError(key, target.name, "percentage components have no direct amount")
    if target.is_statutory and target.editability is not Editability.EDITABLE:
        raise StatutoryComponentLockedError(key, target.name, "amount")
    return _replace_at(
        components, index, replace(target, calculation=ValueCalculation(amount=amount))
    )


def set_percentage(
    components: Sequence[SalaryComponent],
    key: str,
    rate: Decimal | None,
    references: Sequence[str],
    allow_chained: bool = True,
) -> tuple[SalaryComponent, ...]:
    """
    Set the rate and reference list of a percentage component.

    Raises:
        InvalidPercentageError: rate outside [0, 100].
        InvalidReferenceError: unknown, self, forward or (when chaining is
            disabled) percentage-typed reference.
        StatutoryComponentLockedError: changing the rate of a statutory
            deduction that is not ``editable``.
    """
    index = find_index(components, key)
    target = components[index]
    if not target.is_percentage:
        raise InvalidReferenceError(key, target.name, "value components have no references")
    if rate is not None and not (ZERO <= rate <= HUNDRED):
        raise InvalidPercentageError(key, str(rate))
    if (
        target.is_statutory
        and target.editability is not Editability.EDITABLE
        and rate != target.percentage_value
    ):
        raise StatutoryComponentLockedError(key, target.name, "percentage")

    resolved_refs: list[str] = []
    for ref in references:
        referenced = find_by_name(components, ref)
        if referenced is None:
            raise InvalidReferenceError(key, ref, "no component with this name")
        if referenced.key == key:
            raise InvalidReferenceError(key, ref, "a component cannot reference itself")
        if find_index(components, referenced.key) > index:
            raise InvalidReferenceError(key, ref, "only earlier components can be referenced")
        if referenced.is_percentage and not allow_chained:
            raise InvalidReferenceError(key, ref, "chained percentages are disabled")
        if not find_by_name_in(resolved_refs, referenced.name):
            resolved_refs.append(referenced.name)

    calculation = PercentageCalculation(rate=rate, references=tuple(resolved_refs))
    return _replace_at(components, index, replace(target, calculation=calculation))


def remove_component(
    components: Sequence[SalaryComponent],
    key: str,
) -> tuple[SalaryComponent, ...]:
    """
    Remove one component and renumber display order.

    References held by other components are kept; an unresolvable reference
    contributes 0 when amounts are resolved.
    """
    index = find_index(components, key)
    remaining = [c for i, c in enumerate(components) if i != index]
    return tuple(replace(c, display_order=i) for i, c in enumerate(remaining))


def _replace_at(
    components: Sequence[SalaryComponent],
    index: int,
    component: SalaryComponent,
) -> tuple[SalaryComponent, ...]:
    return tuple(component if i == index else c for i, c in enumerate(components))
