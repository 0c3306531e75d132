"""Unit tests for the request context."""

import asyncio
from uuid import uuid4

import pytest

from patissio.core.context import (
    RequestContext,
    create_context,
    get_current_context,
    get_current_context_or_none,
    request_context,
)
from patissio.core.exceptions import ContextNotSetError


class TestRequestContext:
    """Tests for RequestContext creation and binding."""

    def test_create_context_generates_ids(self):
        ctx = create_context(client_ip="203.0.113.7")

        assert ctx.request_id is not None
        assert ctx.correlation_id is not None
        assert ctx.request_id != ctx.correlation_id
        assert ctx.client_ip == "203.0.113.7"
        assert ctx.user_id is None
        assert ctx.support_mode is False

    def test_create_context_keeps_correlation_id(self):
        correlation_id = uuid4()

        ctx = create_context(correlation_id=correlation_id)

        assert ctx.correlation_id == correlation_id

    def test_bind_user_and_tenant(self):
        ctx = create_context()
        user_id, tenant_id = uuid4(), uuid4()

        ctx.bind_user(user_id, "superadmin")
        ctx.bind_tenant(tenant_id, "maboulangerie", support_mode=True)

        assert ctx.user_role == "superadmin"
        assert ctx.tenant_id == tenant_id
        assert ctx.to_log_dict() == {
            "request_id": str(ctx.request_id),
            "correlation_id": str(ctx.correlation_id),
            "user_id": str(user_id),
            "tenant": "maboulangerie",
            "support_mode": True,
        }

    def test_log_dict_omits_unset_fields(self):
        ctx = RequestContext()

        assert set(ctx.to_log_dict()) == {"request_id", "correlation_id"}


class TestContextVariable:
    """Tests for setting and reading the current context."""

    def test_no_context(self):
        assert get_current_context_or_none() is None
        with pytest.raises(ContextNotSetError):
            get_current_context()

    def test_request_context_restores_previous(self):
        outer, inner = create_context(), create_context()

        with request_context(outer):
            with request_context(inner):
                assert get_current_context() is inner
            assert get_current_context() is outer
        assert get_current_context_or_none() is None

    @pytest.mark.asyncio
    async def test_tasks_see_their_own_context(self):
        """Concurrent requests do not leak context into each other."""

        async def handle(slug: str) -> str | None:
            ctx = create_context()
            with request_context(ctx):
                ctx.bind_tenant(uuid4(), slug)
                await asyncio.sleep(0)
                return get_current_context().tenant_slug

        results = await asyncio.gather(handle("maboulangerie"), handle("chez-lea"))

        assert results == ["maboulangerie", "chez-lea"]
