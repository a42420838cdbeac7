"""
PTO request and approval schemas
"""
from datetime import date, datetime
from decimal import Decimal
from typing import Any, Dict, List, Optional
from pydantic import BaseModel, ConfigDict, Field, model_validator
from app.models.pto import PtoRequestStatus, ApprovalStatus, OverrideStatus
from app.schemas.blackout import BlackoutVerdict
from app.schemas.employee import EmployeeOut


class PtoRequestCreate(BaseModel):
    """Schema for submitting a PTO request"""
    pto_type_id: int = Field(..., description="PTO type")
    start_date: date = Field(..., description="First day off (inclusive)")
    end_date: date = Field(..., description="Last day off (inclusive)")
    total_days: Optional[Decimal] = Field(None, ge=Decimal("0.5"), description="Defaults to full days; weekend days strictly inside the range are not counted")
    reason: Optional[str] = None
    is_emergency_override: bool = Field(False, description="Flag the request as an emergency")
    acknowledge_warnings: bool = Field(False, description="Acknowledge blackout warnings at submission")

    @model_validator(mode="after")
    def check_dates(self) -> "PtoRequestCreate":
        if self.start_date > self.end_date:
            raise ValueError("start_date must be on or before end_date")
        return self


class ApprovalActionRequest(BaseModel):
    comments: Optional[str] = Field(None, max_length=1000)


class DenyActionRequest(BaseModel):
    comments: str = Field(..., min_length=1, max_length=1000)


class OverrideDecisionRequest(BaseModel):
    approved: bool
    reason: Optional[str] = Field(None, max_length=1000)


class OverrideDecisionResult(BaseModel):
    success: bool
    message: str


class PtoApprovalOut(BaseModel):
    id: int
    pto_request_id: int
    approver_id: int
    status: ApprovalStatus
    level: int
    sequence: int
    is_required: bool
    comments: Optional[str] = None
    responded_at: Optional[datetime] = None

    model_config = ConfigDict(from_attributes=True)


class PtoRequestOut(BaseModel):
    id: int
    request_number: Optional[str] = None
    user_id: int
    user: Optional[EmployeeOut] = None
    pto_type_id: int
    start_date: date
    end_date: date
    total_days: Decimal
    reason: Optional[str] = None
    status: PtoRequestStatus
    denial_reason: Optional[str] = None
    approved_at: Optional[datetime] = None
    denied_at: Optional[datetime] = None
    blackout_conflicts: Optional[List[Dict[str, Any]]] = None
    blackout_warnings: Optional[List[Dict[str, Any]]] = None
    has_blackout_conflicts: bool
    has_blackout_warnings: bool
    blackout_warnings_acknowledged: bool
    override_status: OverrideStatus
    override_reason: Optional[str] = None
    approvals: List[PtoApprovalOut] = Field(default_factory=list)

    model_config = ConfigDict(from_attributes=True)


class PtoSubmitResponse(BaseModel):
    request: PtoRequestOut
    verdict: BlackoutVerdict
    message: str
