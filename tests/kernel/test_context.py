"""Tests for tenant context resolution (payroll_kernel/context.py)."""

from uuid import uuid4

import pytest

from payroll_kernel.context import TenantContext, require_tenant
from payroll_kernel.exceptions import AuthenticationError, TenantResolutionError
from payroll_kernel.logging_config import LogContext


class TestRequireTenant:

    def test_resolves_ids(self, tenant_context):
        resolved = require_tenant(tenant_context)
        assert resolved.tenant_id == tenant_context.tenant_id
        assert resolved.user_id == tenant_context.user_id

    def test_binds_log_context(self, tenant_context):
        require_tenant(tenant_context)
        ctx = LogContext.get_all()
        assert ctx["tenant_id"] == str(tenant_context.tenant_id)
        assert ctx["user_id"] == str(tenant_context.user_id)

    def test_missing_context(self):
        with pytest.raises(AuthenticationError) as exc_info:
            require_tenant(None)
        assert exc_info.value.code == "AUTHENTICATION_REQUIRED"

    def test_missing_user(self):
        with pytest.raises(AuthenticationError):
            require_tenant(TenantContext(user_id=None, tenant_id=uuid4()))

    def test_missing_tenant(self, captured_logs):
        user_id = uuid4()
        with pytest.raises(TenantResolutionError) as exc_info:
            require_tenant(TenantContext(user_id=user_id, tenant_id=None))
        assert exc_info.value.user_id == str(user_id)
        assert any(r["message"] == "tenant_context_missing" for r in captured_logs())

    def test_failure_leaves_log_context_untouched(self):
        with pytest.raises(TenantResolutionError):
            require_tenant(TenantContext(user_id=uuid4(), tenant_id=None))
        assert "tenant_id" not in LogContext.get_all()
