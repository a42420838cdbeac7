"""
Audit log model
"""
from sqlalchemy import Column, Integer, String, DateTime, JSON
from app.db.base import Base


class AuditLog(Base):
    __tablename__ = "audit_logs"

    id = Column(Integer, primary_key=True, index=True)
    # Nullable: system-initiated actions (auto-reject, reconciliation) have no actor
    actor_id = Column(Integer, nullable=True, index=True)
    action = Column(String, nullable=False)  # e.g. "PTO_OVERRIDE_APPROVE", "PTO_APPROVALS_TRANSFER"
    entity_type = Column(String, nullable=False)  # e.g. "pto_requests", "employees"
    entity_id = Column(Integer, nullable=True)
    meta_json = Column(JSON, nullable=True)
    created_at = Column(DateTime(timezone=True), nullable=False)
