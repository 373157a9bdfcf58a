"""
Typed Exception Hierarchy for the Payroll Core.

Every error has a typed class (catch by type, not by message), a ``code``
class attribute (machine-readable, API-safe) and structured attributes
carrying the data a caller needs to react.

===============================================================================
EXCEPTION HIERARCHY
===============================================================================

    PayrollError (base)
    |
    +-- AccessError
    |   +-- AuthenticationError
    |   +-- TenantResolutionError
    |
    +-- ComponentError
    |   +-- ComponentNotFoundError
    |   +-- DuplicateComponentNameError
    |   +-- IncompleteComponentError
    |   +-- InvalidReferenceError
    |   +-- InvalidPercentageError
    |   +-- StatutoryComponentLockedError
    |   +-- ComponentNotEditableError
    |   +-- ReservedComponentNameError
    |
    +-- StatutoryError
    |   +-- MissingStatutoryError
    |
    +-- AttendanceError
    |   +-- InvalidPayableFactorError
    |   +-- ZeroPayableDaysError
    |
    +-- PersistenceError
    |   +-- RecordNotFoundError
    |
    +-- WorkflowError
        +-- InvalidStatusTransitionError

===============================================================================
ERROR CODES - QUICK REFERENCE
===============================================================================

Category    | Code                         | When Raised
------------|------------------------------|-----------------------------------------
Access      | AUTHENTICATION_REQUIRED      | No authenticated user in context
            | TENANT_NOT_RESOLVED          | Authenticated, but no tenant
------------|------------------------------|-----------------------------------------
Component   | COMPONENT_NOT_FOUND          | Key does not exist in the list
            | DUPLICATE_COMPONENT_NAME     | Name already used (case-insensitive)
            | INCOMPLETE_COMPONENT         | Adding while another name is empty
            | INVALID_REFERENCE            | Unknown, forward or self reference
            | INVALID_PERCENTAGE           | Rate outside [0, 100]
            | STATUTORY_COMPONENT_LOCKED   | Changing tenant policy per structure
            | COMPONENT_NOT_EDITABLE       | Payroll override of a fixed component
            | RESERVED_COMPONENT_NAME      | Ordinary component takes a statutory name
------------|------------------------------|-----------------------------------------
Statutory   | MISSING_STATUTORY            | Save without required deductions
------------|------------------------------|-----------------------------------------
Attendance  | INVALID_PAYABLE_FACTOR       | Factor outside [0, 1]
            | ZERO_PAYABLE_DAYS            | Factor is exactly 0
------------|------------------------------|-----------------------------------------
Persistence | PERSISTENCE_ERROR            | Failing external write or read
            | RECORD_NOT_FOUND             | Keyed read found nothing
------------|------------------------------|-----------------------------------------
Workflow    | INVALID_STATUS_TRANSITION    | Backwards or unknown status change

Component and statutory errors are recovered where the mutation or save
happens (see ``StructureEditSession``); they are never raised past the
core boundary.  Access and persistence errors propagate to the caller.
"""


class PayrollError(Exception):
    """
    Base exception for all payroll core errors.

    All subclasses carry a ``code`` class attribute for machine-readable
    identification.
    """

    code: str = "PAYROLL_ERROR"


# Access


class AccessError(PayrollError):
    """Base exception for authentication / tenant resolution failures."""

    code: str = "ACCESS_ERROR"


class AuthenticationError(AccessError):
    """No valid session: every operation fails fast."""

    code: str = "AUTHENTICATION_REQUIRED"

    def __init__(self, message: str = "User is not authenticated"):
        super().__init__(message)


class TenantResolutionError(AccessError):
    """Authenticated user without a tenant context."""

    code: str = "TENANT_NOT_RESOLVED"

    def __init__(self, user_id: str | None = None):
        self.user_id = user_id
        super().__init__(f"No tenant context for user {user_id}")


# Component model


class ComponentError(PayrollError):
    """Base exception for salary-component mutations."""

    code: str = "COMPONENT_ERROR"


class ComponentNotFoundError(ComponentError):
    code: str = "COMPONENT_NOT_FOUND"

    def __init__(self, key: str):
        self.key = key
        super().__init__(f"Component not found: {key}")


class DuplicateComponentNameError(ComponentError):
    """
    Name collides (case-insensitively) with another component.

    ``conflicting_key`` identifies the component that already owns the
    name so the caller can direct attention to it.
    """

    code: str = "DUPLICATE_COMPONENT_NAME"

    def __init__(self, name: str, key: str, conflicting_key: str):
        self.name = name
        self.key = key
        self.conflicting_key = conflicting_key
        super().__init__(
            f"Component name '{name}' already used by {conflicting_key}"
        )


class IncompleteComponentError(ComponentError):
    """A new component was requested while another still has no name."""

    code: str = "INCOMPLETE_COMPONENT"

    def __init__(self, key: str):
        self.key = key
        super().__init__(f"Component {key} needs a name before adding another")


class InvalidReferenceError(ComponentError):
    code: str = "INVALID_REFERENCE"

    def __init__(self, key: str, reference: str, reason: str):
        self.key = key
        self.reference = reference
        self.reason = reason
        super().__init__(f"Component {key} cannot reference '{reference}': {reason}")


class InvalidPercentageError(ComponentError):
    code: str = "INVALID_PERCENTAGE"

    def __init__(self, key: str, rate: str):
        self.key = key
        self.rate = rate
        super().__init__(f"Percentage for {key} must be within [0, 100], got {rate}")


class StatutoryComponentLockedError(ComponentError):
    """Calculation type / editability of a statutory deduction is tenant policy."""

    code: str = "STATUTORY_COMPONENT_LOCKED"

    def __init__(self, key: str, name: str, attribute: str):
        self.key = key
        self.name = name
        self.attribute = attribute
        super().__init__(f"Statutory component '{name}' has a locked {attribute}")


class ComponentNotEditableError(ComponentError):
    """Payroll processing may only supply amounts for editable or enter-later components."""

    code: str = "COMPONENT_NOT_EDITABLE"

    def __init__(self, key: str, name: str):
        self.key = key
        self.name = name
        super().__init__(f"Component '{name}' cannot be changed during payroll processing")


class ReservedComponentNameError(ComponentError):
    """
    An ordinary component was given the name of a required statutory
    deduction.  The name stays free for the statutory component itself.
    """

    code: str = "RESERVED_COMPONENT_NAME"

    def __init__(self, key: str, name: str):
        self.key = key
        self.name = name
        super().__init__(f"Component name '{name}' is reserved for a statutory deduction")


# Statutory enforcement


class StatutoryError(PayrollError):
    code: str = "STATUTORY_ERROR"


class MissingStatutoryError(StatutoryError):
    """Save blocked: required statutory deductions are absent."""

    code: str = "MISSING_STATUTORY"

    def __init__(self, missing_names: tuple[str, ...]):
        self.missing_names = missing_names
        super().__init__(
            "Missing required statutory deductions: " + ", ".join(missing_names)
        )


# Attendance


class AttendanceError(PayrollError):
    code: str = "ATTENDANCE_ERROR"


class InvalidPayableFactorError(AttendanceError):
    code: str = "INVALID_PAYABLE_FACTOR"

    def __init__(self, factor: str):
        self.factor = factor
        super().__init__(f"Payable days factor must be within [0, 1], got {factor}")


class ZeroPayableDaysError(AttendanceError):
    """A zero factor is a validation error, never a silent zero salary."""

    code: str = "ZERO_PAYABLE_DAYS"

    def __init__(self, employee_id: str | None = None):
        self.employee_id = employee_id
        super().__init__(f"No payable days in period for employee {employee_id}")


# Persistence


class PersistenceError(PayrollError):
    """A failing external write or read; the operation was aborted."""

    code: str = "PERSISTENCE_ERROR"

    def __init__(self, operation: str, detail: str):
        self.operation = operation
        self.detail = detail
        super().__init__(f"{operation} failed: {detail}")


class RecordNotFoundError(PersistenceError):
    code: str = "RECORD_NOT_FOUND"

    def __init__(self, record_type: str, record_id: str):
        self.record_type = record_type
        self.record_id = record_id
        super().__init__(f"load_{record_type}", f"{record_type} {record_id} not found")


# Workflow


class WorkflowError(PayrollError):
    code: str = "WORKFLOW_ERROR"


class InvalidStatusTransitionError(WorkflowError):
    code: str = "INVALID_STATUS_TRANSITION"

    def __init__(self, entity_id: str, from_status: str, to_status: str):
        self.entity_id = entity_id
        self.from_status = from_status
        self.to_status = to_status
        super().__init__(
            f"Cannot move {entity_id} from {from_status} to {to_status}"
        )
