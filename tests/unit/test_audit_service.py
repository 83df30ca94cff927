"""
Unit tests for api/services/audit_service.py
"""

import uuid

import pytest
import structlog

from api.models.audit_log import AuditLog
from api.services.audit_service import _compute_changed_fields, create_audit_log


def test_changed_fields_diff():
    before = {"status": "RFQ_PENDING", "priority": "High"}
    after = {"status": "BIDDING_OPEN", "priority": "High", "rfq_id": "r1"}
    assert _compute_changed_fields(before, after) == ["rfq_id", "status"]


def test_changed_fields_none_without_both_states():
    assert _compute_changed_fields(None, {"a": 1}) is None
    assert _compute_changed_fields({"a": 1}, {"a": 1}) is None


@pytest.mark.asyncio
async def test_create_audit_log_records_actor_and_request_id(store, buyer):
    entity_id = uuid.uuid4()
    structlog.contextvars.bind_contextvars(request_id="req-123")
    try:
        audit = await create_audit_log(
            store, buyer, "STATUS_CHANGED", "MATERIAL_REQUEST", str(entity_id),
            before_state={"status": "BIDDING_OPEN"},
            after_state={"status": "NEGOTIATION"},
        )
    finally:
        structlog.contextvars.clear_contextvars()

    assert store.rows[AuditLog] == [audit]
    assert audit.entity_id == entity_id
    assert audit.actor_id == "user-buyer"
    assert audit.actor_email == "buyer@makemyoffice.com"
    assert audit.changed_fields == ["status"]
    assert audit.request_id == "req-123"
    assert audit.created_at is not None


@pytest.mark.asyncio
async def test_create_audit_log_requires_uuid_entity(store, buyer):
    with pytest.raises(ValueError):
        await create_audit_log(store, buyer, "X", "MATERIAL_REQUEST", "not-a-uuid")
    assert store.rows[AuditLog] == []
