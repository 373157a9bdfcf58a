"""Payroll Processing Workflows.

State machine for payroll entries: Draft -> Pending -> Approved -> Paid.
Entries move forward only; any forward jump is allowed and every
transition into Paid stamps the payment date.
"""

from payroll_kernel.domain.workflow import Transition, Workflow
from payroll_kernel.logging_config import get_logger
from payroll_modules.processing.models import PayrollStatus

logger = get_logger("modules.processing.workflows")

_ORDER = (
    PayrollStatus.DRAFT,
    PayrollStatus.PENDING,
    PayrollStatus.APPROVED,
    PayrollStatus.PAID,
)

_ACTIONS = {
    PayrollStatus.PENDING: "submit",
    PayrollStatus.APPROVED: "approve",
    PayrollStatus.PAID: "pay",
}


def _forward_transitions() -> tuple[Transition, ...]:
    transitions = []
    for i, source in enumerate(_ORDER):
        for target in _ORDER[i + 1:]:
            transitions.append(
                Transition(
                    source.value,
                    target.value,
                    action=_ACTIONS[target],
                    stamps_payment_date=target is PayrollStatus.PAID,
                )
            )
    return tuple(transitions)


PAYROLL_ENTRY_WORKFLOW = Workflow(
    name="payroll_entry",
    description="Payroll entry lifecycle (forward only)",
    initial_state=PayrollStatus.DRAFT.value,
    states=tuple(s.value for s in _ORDER),
    transitions=_forward_transitions(),
    terminal_states=(PayrollStatus.PAID.value,),
)

logger.info(
    "payroll_entry_workflow_defined",
    extra={
        "states": list(PAYROLL_ENTRY_WORKFLOW.states),
        "transitions": len(PAYROLL_ENTRY_WORKFLOW.transitions),
    },
)
