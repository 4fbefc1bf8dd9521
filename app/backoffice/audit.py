import json
from collections.abc import Iterable, Mapping
from typing import Any

from flask import g, has_request_context, request
from sqlalchemy.orm import Session

from app.backoffice.models import AuditEvent
from app.backoffice.modules.admins.models import Admin


def field_changes(before: Mapping[str, Any], after: Mapping[str, Any], keys: Iterable[str]) -> dict[str, Any]:
    """``{key: {"old": .., "new": ..}}`` for the keys whose value differs."""
    return {k: {"old": before.get(k), "new": after.get(k)} for k in keys if before.get(k) != after.get(k)}


def record_event(
    s: Session,
    *,
    actor: Admin | None,
    action: str,
    entity_type: str | None = None,
    entity_id: str | None = None,
    reason: str | None = None,
    metadata: dict[str, Any] | None = None,
) -> AuditEvent:
    """
    Append an audit row for an admin action. The caller commits it together
    with the change it describes; outside a request there is no id or IP.
    """
    in_request = has_request_context()
    ev = AuditEvent(
        request_id=getattr(g, "request_id", None) if in_request else None,
        client_ip=request.remote_addr if in_request else None,
        actor_admin_id=actor.id if actor else None,
        actor_username=actor.username if actor else None,
        action=action,
        entity_type=entity_type,
        entity_id=entity_id,
        reason=reason,
        metadata_json=json.dumps(metadata, sort_keys=True) if metadata else None,
    )
    s.add(ev)
    return ev
