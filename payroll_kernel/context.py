"""
Tenant / authentication context (``payroll_kernel.context``).

Responsibility:
    Carries the authenticated ``user_id`` and resolved ``tenant_id`` into
    every core operation.  Every persistence call is scoped by tenant, so
    a missing tenant is a fatal precondition.

Failure modes:
    - ``AuthenticationError`` when there is no context or no user.
    - ``TenantResolutionError`` when the user has no tenant.
"""

from __future__ import annotations

from dataclasses import dataclass
from uuid import UUID

from payroll_kernel.exceptions import AuthenticationError, TenantResolutionError
from payroll_kernel.logging_config import LogContext, get_logger

logger = get_logger("context")


@dataclass(frozen=True)
class TenantContext:
    """Authenticated user plus the tenant every operation is scoped to."""
    user_id: UUID | None
    tenant_id: UUID | None

    @property
    def is_authenticated(self) -> bool:
        return self.user_id is not None


@dataclass(frozen=True)
class ResolvedContext:
    """A context that passed ``require_tenant``: both ids are present."""
    user_id: UUID
    tenant_id: UUID


def require_tenant(context: TenantContext | None) -> ResolvedContext:
    """
    Validate the context before any core operation.

    Postconditions:
        Returns a ``ResolvedContext`` and binds tenant/user into
        ``LogContext`` for subsequent log lines.

    Raises:
        AuthenticationError: no context or no authenticated user.
        TenantResolutionError: authenticated but no tenant.
    """
    if context is None or not context.is_authenticated:
        logger.warning("authentication_missing")
        raise AuthenticationError()
    if context.tenant_id is None:
        logger.warning(
            "tenant_context_missing",
            extra={"user_id": str(context.user_id)},
        )
        raise TenantResolutionError(str(context.user_id))

    LogContext.set(tenant_id=str(context.tenant_id), user_id=str(context.user_id))
    return ResolvedContext(user_id=context.user_id, tenant_id=context.tenant_id)
