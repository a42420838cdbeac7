"""
Database models
"""
from app.models.department import Department, Position
from app.models.employee import Employee, Role, employee_departments
from app.models.audit_log import AuditLog
from app.models.holiday import Holiday
from app.models.pto import (
    PtoType,
    PtoRequest,
    PtoApproval,
    PtoBalance,
    PtoRequestStatus,
    ApprovalStatus,
    OverrideStatus,
    ACTIVE_REQUEST_STATUSES,
)
from app.models.blackout import PtoBlackout, RestrictionType

__all__ = [
    "Department",
    "Position",
    "Employee",
    "Role",
    "employee_departments",
    "AuditLog",
    "Holiday",
    "PtoType",
    "PtoRequest",
    "PtoApproval",
    "PtoBalance",
    "PtoRequestStatus",
    "ApprovalStatus",
    "OverrideStatus",
    "ACTIVE_REQUEST_STATUSES",
    "PtoBlackout",
    "RestrictionType",
]
