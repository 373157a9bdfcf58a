"""
Salary Structure Helpers (``payroll_modules.structures.helpers``).

Responsibility
--------------
Pure calculation functions over a component list: the amount resolver,
the attendance pro-ration adjuster and the gross/deduction/net totals.

Architecture position
---------------------
**Modules layer** -- pure helper functions.  No I/O, no session, no
clock, no database access.  Called by the edit sessions, the services
and the tests.

Invariants enforced
-------------------
* All numeric inputs and outputs use ``Decimal`` -- NEVER ``float``.
* Resolution is a single left-to-right pass: a percentage component sees
  only components positioned before it.  Intermediate sums are unrounded;
  every resolved amount is rounded to 2 decimal places after the pass.
* Value inputs are quantized before the pass, so
  ``resolve_amounts(resolve_amounts(x)) == resolve_amounts(x)``.
* Pro-ration always scales the amounts it is given; callers pass the
  structure's original amounts, never a previously pro-rated list.

Failure modes
-------------
* Unknown or forward reference -> contributes ``Decimal("0")``.
* Percentage without rate or references -> resolves to ``Decimal("0")``.
* Pro-ration factor of 0 -> ``ZeroPayableDaysError``; outside [0, 1] ->
  ``InvalidPayableFactorError``.
"""

from __future__ import annotations

from collections.abc import Sequence
from dataclasses import replace
from decimal import Decimal

from payroll_kernel.db.types import (
    AMOUNT_DECIMAL_PLACES,
    HUNDRED,
    ZERO,
    round_money,
    to_decimal,
)
from payroll_kernel.exceptions import InvalidPayableFactorError, ZeroPayableDaysError
from payroll_kernel.logging_config import get_logger
from payroll_modules.structures.models import (
    ComponentType,
    PayrollTotals,
    PercentageCalculation,
    SalaryComponent,
    ValueCalculation,
)

logger = get_logger("modules.structures.helpers")

ONE = Decimal("1")


def resolve_amounts(
    components: Sequence[SalaryComponent],
    decimal_places: int = AMOUNT_DECIMAL_PLACES,
) -> tuple[SalaryComponent, ...]:
    """
    Compute every component's amount from its current inputs.

    Preconditions:
        - ``components`` is the combined earnings + deductions list in
          resolution order.
    Postconditions:
        - Value components keep their entered amount (quantized); ``None``
          stays ``None``.
        - Percentage components carry ``resolved_amount`` =
          sum(references) * rate / 100, rounded to ``decimal_places``.
    """
    # name (casefolded) -> unrounded effective amount seen so far
    seen: dict[str, Decimal] = {}
    unrounded: list[Decimal | None] = []

    for component in components:
        calc = component.calculation
        if isinstance(calc, ValueCalculation):
            amount = (
                round_money(calc.amount, decimal_places)
                if calc.amount is not None else None
            )
            effective = amount if amount is not None else ZERO
            unrounded.append(amount)
        else:
            effective = _percentage_of(component, calc, seen)
            unrounded.append(effective)
        seen[component.name.strip().casefold()] = effective

    resolved: list[SalaryComponent] = []
    for component, amount in zip(components, unrounded):
        calc = component.calculation
        if isinstance(calc, ValueCalculation):
            component = replace(component, calculation=ValueCalculation(amount=amount))
        else:
            rounded = round_money(amount, decimal_places)
            component = replace(component, calculation=replace(calc, resolved_amount=rounded))
        resolved.append(component)
    return tuple(resolved)


def _percentage_of(
    component: SalaryComponent,
    calc: PercentageCalculation,
    seen: dict[str, Decimal],
) -> Decimal:
    if calc.rate is None or not calc.references:
        return ZERO
    base = ZERO
    for ref in calc.references:
        value = seen.get(ref.strip().casefold())
        if value is None:
            logger.debug(
                "unresolved_reference",
                extra={"key": component.key, "reference": ref},
            )
            continue
        base += value
    return base * calc.rate / HUNDRED


def amounts_changed(
    before: Sequence[SalaryComponent],
    after: Sequence[SalaryComponent],
    decimal_places: int = AMOUNT_DECIMAL_PLACES,
) -> bool:
    """True when any component's amount differs at ``decimal_places``."""
    if len(before) != len(after):
        return True
    for old, new in zip(before, after):
        if old.key != new.key:
            return True
        if (old.amount is None) != (new.amount is None):
            return True
        if old.amount is not None and (
            round_money(old.amount, decimal_places)
            != round_money(new.amount, decimal_places)
        ):
            return True
    return False


def check_payable_factor(
    factor: Decimal | str,
    employee_id: str | None = None,
) -> Decimal:
    """
    Return ``factor`` as a Decimal if it can be used for pro-ration.

    Raises:
        InvalidPayableFactorError: factor outside [0, 1].
        ZeroPayableDaysError: factor is exactly 0.
    """
    factor = to_decimal(factor)
    if factor < ZERO or factor > ONE:
        raise InvalidPayableFactorError(str(factor))
    if factor == ZERO:
        logger.warning("zero_payable_days", extra={"employee_id": employee_id})
        raise ZeroPayableDaysError(employee_id)
    return factor


def adjust_for_attendance(
    components: Sequence[SalaryComponent],
    factor: Decimal | str,
    decimal_places: int = AMOUNT_DECIMAL_PLACES,
    employee_id: str | None = None,
) -> tuple[SalaryComponent, ...]:
    """
    Pro-rate value components by the payable-days factor.

    Every value component with a defined amount becomes
    ``round2(amount * factor)``; percentages are then recomputed by the
    resolver so they see the scaled base.

    Raises:
        InvalidPayableFactorError: factor outside [0, 1].
        ZeroPayableDaysError: factor is exactly 0.
    """
    factor = check_payable_factor(factor, employee_id)
    if factor == ONE:
        return resolve_amounts(components, decimal_places)

    scaled = []
    for component in components:
        calc = component.calculation
        if isinstance(calc, ValueCalculation) and calc.amount is not None:
            component = replace(
                component,
                calculation=ValueCalculation(
                    amount=round_money(calc.amount * factor, decimal_places)
                ),
            )
        scaled.append(component)

    logger.info(
        "attendance_proration_applied",
        extra={"employee_id": employee_id, "factor": factor, "components": len(scaled)},
    )
    return resolve_amounts(scaled, decimal_places)


def total_for(
    components: Sequence[SalaryComponent],
    component_type: ComponentType,
) -> Decimal:
    """Sum of resolved amounts of one component type."""
    total = sum(
        (c.effective_amount for c in components if c.component_type is component_type),
        ZERO,
    )
    return round_money(total)


def net_pay(components: Sequence[SalaryComponent]) -> Decimal:
    return total_for(components, ComponentType.EARNING) - total_for(
        components, ComponentType.DEDUCTION
    )


def summarize(components: Sequence[SalaryComponent]) -> PayrollTotals:
    gross = total_for(components, ComponentType.EARNING)
    deductions = total_for(components, ComponentType.DEDUCTION)
    return PayrollTotals(gross=gross, deductions=deductions, net=gross - deductions)
