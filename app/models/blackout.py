"""
Blackout period model
"""
from sqlalchemy import Column, Integer, Date, DateTime, String, Text, Boolean, JSON, ForeignKey
from sqlalchemy.orm import relationship
from sqlalchemy.sql import text
import enum
from app.db.base import Base


class RestrictionType(str, enum.Enum):
    FULL_BLOCK = "full_block"
    LIMIT_REQUESTS = "limit_requests"
    WARNING_ONLY = "warning_only"


class PtoBlackout(Base):
    __tablename__ = "pto_blackouts"

    id = Column(Integer, primary_key=True, index=True)
    name = Column(String(255), nullable=False)
    description = Column(Text, nullable=True)

    # Fixed range (is_recurring = False)
    start_date = Column(Date, nullable=True)
    end_date = Column(Date, nullable=True)

    # Scope
    is_company_wide = Column(Boolean, nullable=False, default=False)
    position_id = Column(Integer, ForeignKey("positions.id"), nullable=True)
    department_ids = Column(JSON, nullable=True)
    user_ids = Column(JSON, nullable=True)
    pto_type_ids = Column(JSON, nullable=True)  # empty / null = every type

    # Behaviour
    # Stored as plain text; unknown values are evaluated as full_block
    restriction_type = Column(String(30), nullable=False, default=RestrictionType.FULL_BLOCK.value)
    max_requests_allowed = Column(Integer, nullable=True)
    is_holiday = Column(Boolean, nullable=False, default=False)
    is_strict = Column(Boolean, nullable=False, default=False)
    allow_emergency_override = Column(Boolean, nullable=False, default=False)
    is_active = Column(Boolean, nullable=False, default=True)

    # Recurrence (is_recurring = True); weekdays 0 = Sunday ... 6 = Saturday
    is_recurring = Column(Boolean, nullable=False, default=False)
    recurring_days = Column(JSON, nullable=True)
    recurring_start_date = Column(Date, nullable=True)
    recurring_end_date = Column(Date, nullable=True)

    created_at = Column(DateTime(timezone=True), server_default=text("CURRENT_TIMESTAMP"), nullable=False)
    updated_at = Column(
        DateTime(timezone=True),
        server_default=text("CURRENT_TIMESTAMP"),
        onupdate=text("CURRENT_TIMESTAMP"),
        nullable=False,
    )

    position = relationship("Position")
