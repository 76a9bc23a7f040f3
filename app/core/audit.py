import uuid
from typing import Any, Dict, Optional
from sqlmodel import Session

from app.db.schema import AuditLogEntry, AuditAction


def _jsonable(value: Any) -> Any:
    if isinstance(value, dict):
        return {key: _jsonable(item) for key, item in value.items()}
    if isinstance(value, (list, tuple, set)):
        return [_jsonable(item) for item in value]
    if isinstance(value, uuid.UUID):
        return str(value)
    if hasattr(value, "value"):
        return value.value
    if hasattr(value, "isoformat"):
        return value.isoformat()
    return value


def record_audit(
    session: Session,
    actor: str,
    entity_type: str,
    entity_id: uuid.UUID,
    action: AuditAction,
    changes: Optional[Dict[str, Any]] = None,
) -> AuditLogEntry:
    """
    Stages an audit row in the caller's session.
    It commits (or rolls back) together with the change it describes.
    """
    entry = AuditLogEntry(
        actor=actor,
        entity_type=entity_type,
        entity_id=entity_id,
        action=action,
        changes=_jsonable(changes or {}),
    )
    session.add(entry)
    return entry
