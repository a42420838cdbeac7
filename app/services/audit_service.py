"""
Audit logging service
"""
from typing import Any, Dict, Optional
from sqlalchemy.orm import Session
from app.models.audit_log import AuditLog
from app.utils.datetime_utils import now_utc
from app.utils.json_serializer import to_json_safe


def log_audit(
    db: Session,
    actor_id: Optional[int],
    action: str,
    entity_type: str,
    entity_id: Optional[int] = None,
    meta: Optional[Dict[str, Any]] = None
) -> AuditLog:
    """
    Add an audit log entry to the current transaction
    
    The entry is flushed, not committed: it lands together with the change
    it describes, or not at all.
    
    Args:
        db: Database session
        actor_id: ID of the user performing the action (None for system actions)
        action: Action type (e.g. "PTO_OVERRIDE_APPROVE", "PTO_AUTO_REJECT")
        entity_type: Type of entity (e.g. "pto_requests", "employees")
        entity_id: ID of the affected entity (optional)
        meta: Additional metadata as dictionary (optional)
    
    Returns:
        Created AuditLog instance
    """
    audit_log = AuditLog(
        actor_id=actor_id,
        action=action,
        entity_type=entity_type,
        entity_id=entity_id,
        meta_json=to_json_safe(meta) if meta is not None else None,
        created_at=now_utc()
    )
    db.add(audit_log)
    db.flush()
    return audit_log
