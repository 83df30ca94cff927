"""Audit logging service: records entity state changes."""

from typing import Optional
from datetime import datetime

import structlog

from api.models.audit_log import AuditLog
from api.services.store import ProcurementStore, as_uuid

logger = structlog.get_logger()


def _compute_changed_fields(
    before: Optional[dict], after: Optional[dict]
) -> Optional[list[str]]:
    """Diff two state dicts and return list of changed field names."""
    if not before or not after:
        return None
    changed = []
    all_keys = set(before.keys()) | set(after.keys())
    for key in sorted(all_keys):
        if before.get(key) != after.get(key):
            changed.append(key)
    return changed or None


async def create_audit_log(
    store: ProcurementStore,
    actor: Optional[dict],
    action: str,
    entity_type: str,
    entity_id,
    before_state: Optional[dict] = None,
    after_state: Optional[dict] = None,
) -> AuditLog:
    """
    Create an audit log entry.

    Flushes through the store; the caller owns the transaction.
    """
    entity_uuid = as_uuid(entity_id)
    if entity_uuid is None:
        raise ValueError("entity_id must be a valid UUID")

    changed_fields = _compute_changed_fields(before_state, after_state)
    request_id = structlog.contextvars.get_contextvars().get("request_id")

    audit = AuditLog(
        actor_id=actor["user_id"] if actor else None,
        actor_email=actor.get("email") if actor else None,
        action=action,
        entity_type=entity_type,
        entity_id=entity_uuid,
        before_state=before_state,
        after_state=after_state,
        changed_fields=changed_fields,
        request_id=request_id,
        created_at=datetime.utcnow(),
    )
    await store.add(audit)

    logger.info(
        "audit_log_created",
        action=action,
        entity_type=entity_type,
        entity_id=str(entity_uuid),
        actor_id=audit.actor_id,
    )
    return audit
