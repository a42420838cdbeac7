"""
PTO models: types, requests, approvals and balances
"""
from sqlalchemy import (
    Column,
    Integer,
    Date,
    DateTime,
    ForeignKey,
    String,
    Text,
    Numeric,
    Enum as SQLEnum,
    Boolean,
    JSON,
    UniqueConstraint,
    Index,
    CheckConstraint,
)
from sqlalchemy.orm import relationship
from sqlalchemy.sql import text
import enum
from app.db.base import Base


class PtoRequestStatus(str, enum.Enum):
    PENDING = "pending"
    APPROVED = "approved"
    DENIED = "denied"
    CANCELLED = "cancelled"
    WITHDRAWN = "withdrawn"


class ApprovalStatus(str, enum.Enum):
    PENDING = "pending"
    APPROVED = "approved"
    DENIED = "denied"


class OverrideStatus(str, enum.Enum):
    NONE = "none"
    REQUESTED = "requested"
    APPROVED = "approved"
    DENIED = "denied"


# Requests that occupy a slot in a limited blackout
ACTIVE_REQUEST_STATUSES = (PtoRequestStatus.PENDING, PtoRequestStatus.APPROVED)


class PtoType(Base):
    __tablename__ = "pto_types"

    id = Column(Integer, primary_key=True, index=True)
    name = Column(String(255), nullable=False)
    code = Column(String(20), nullable=True, unique=True)
    multi_level_approval = Column(Boolean, nullable=False, default=False)
    disable_hierarchy_approval = Column(Boolean, nullable=False, default=False)
    specific_approvers = Column(JSON, nullable=True)  # ordered list of employee ids
    uses_balance = Column(Boolean, nullable=False, default=True)
    is_active = Column(Boolean, nullable=False, default=True)
    created_at = Column(DateTime(timezone=True), server_default=text("CURRENT_TIMESTAMP"), nullable=False)


class PtoRequest(Base):
    __tablename__ = "pto_requests"

    id = Column(Integer, primary_key=True, index=True)
    request_number = Column(String(64), nullable=True, unique=True)
    user_id = Column(Integer, ForeignKey("employees.id"), nullable=False, index=True)
    pto_type_id = Column(Integer, ForeignKey("pto_types.id"), nullable=False, index=True)
    start_date = Column(Date, nullable=False)
    end_date = Column(Date, nullable=False)
    total_days = Column(Numeric(5, 2), nullable=False)
    reason = Column(Text, nullable=True)
    status = Column(SQLEnum(PtoRequestStatus), nullable=False, default=PtoRequestStatus.PENDING)
    denial_reason = Column(Text, nullable=True)
    approved_at = Column(DateTime(timezone=True), nullable=True)
    denied_at = Column(DateTime(timezone=True), nullable=True)

    # Blackout verdict snapshot
    blackout_conflicts = Column(JSON, nullable=True)
    blackout_warnings = Column(JSON, nullable=True)
    has_blackout_conflicts = Column(Boolean, nullable=False, default=False)
    has_blackout_warnings = Column(Boolean, nullable=False, default=False)
    blackout_warnings_acknowledged = Column(Boolean, nullable=False, default=False)
    blackout_acknowledged_by_id = Column(Integer, ForeignKey("employees.id"), nullable=True)
    blackout_acknowledged_at = Column(DateTime(timezone=True), nullable=True)

    # Emergency override sub-state
    override_status = Column(SQLEnum(OverrideStatus), nullable=False, default=OverrideStatus.NONE)
    override_reason = Column(Text, nullable=True)
    override_decided_by_id = Column(Integer, ForeignKey("employees.id"), nullable=True)
    override_decided_at = Column(DateTime(timezone=True), nullable=True)

    created_at = Column(DateTime(timezone=True), server_default=text("CURRENT_TIMESTAMP"), nullable=False)
    updated_at = Column(
        DateTime(timezone=True),
        server_default=text("CURRENT_TIMESTAMP"),
        onupdate=text("CURRENT_TIMESTAMP"),
        nullable=False,
    )

    # Relationships
    user = relationship("Employee", foreign_keys=[user_id], back_populates="pto_requests")
    pto_type = relationship("PtoType")
    approvals = relationship(
        "PtoApproval",
        back_populates="pto_request",
        cascade="all, delete-orphan",
        order_by="PtoApproval.sequence",
    )

    __table_args__ = (
        Index("ix_pto_requests_user_dates", "user_id", "start_date", "end_date"),
        CheckConstraint("start_date <= end_date", name="check_pto_start_le_end"),
    )

    @property
    def has_pending_override(self) -> bool:
        return self.override_status == OverrideStatus.REQUESTED


class PtoApproval(Base):
    __tablename__ = "pto_approvals"

    id = Column(Integer, primary_key=True, index=True)
    pto_request_id = Column(Integer, ForeignKey("pto_requests.id"), nullable=False, index=True)
    approver_id = Column(Integer, ForeignKey("employees.id"), nullable=False, index=True)
    status = Column(SQLEnum(ApprovalStatus), nullable=False, default=ApprovalStatus.PENDING)
    level = Column(Integer, nullable=False, default=1)
    sequence = Column(Integer, nullable=False, default=1)
    is_required = Column(Boolean, nullable=False, default=True)
    comments = Column(Text, nullable=True)
    responded_at = Column(DateTime(timezone=True), nullable=True)
    created_at = Column(DateTime(timezone=True), server_default=text("CURRENT_TIMESTAMP"), nullable=False)

    # Relationships
    pto_request = relationship("PtoRequest", back_populates="approvals")
    approver = relationship("Employee", foreign_keys=[approver_id])

    __table_args__ = (
        CheckConstraint("level > 0", name="check_pto_approval_level_positive"),
        CheckConstraint("sequence > 0", name="check_pto_approval_sequence_positive"),
    )


class PtoBalance(Base):
    """
    Per-user balance for a PTO type. Only pending_balance (the hold placed
    at submission) is maintained by the approval engine.
    """
    __tablename__ = "pto_balances"

    id = Column(Integer, primary_key=True, index=True)
    user_id = Column(Integer, ForeignKey("employees.id"), nullable=False, index=True)
    pto_type_id = Column(Integer, ForeignKey("pto_types.id"), nullable=False, index=True)
    balance = Column(Numeric(6, 2), nullable=False, default=0)
    pending_balance = Column(Numeric(6, 2), nullable=False, default=0)
    used_balance = Column(Numeric(6, 2), nullable=False, default=0)

    user = relationship("Employee")
    pto_type = relationship("PtoType")

    __table_args__ = (
        UniqueConstraint("user_id", "pto_type_id", name="uq_pto_balances_user_type"),
    )
