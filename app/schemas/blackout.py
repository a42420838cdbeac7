"""
Blackout schemas: catalog input/output and the evaluation verdict
"""
from datetime import date, datetime
from typing import Annotated, List, Literal, Optional, Union
from pydantic import BaseModel, ConfigDict, Field, computed_field, model_validator
from app.models.blackout import RestrictionType


class RestrictionDetails(BaseModel):
    """Structured payload describing why a blackout produced a finding"""
    type: str
    period: Optional[str] = None
    recurring_days: Optional[str] = None
    conflicting_dates: Optional[str] = None
    strict: Optional[bool] = None
    override_allowed: Optional[bool] = None
    requires_approval: Optional[bool] = None
    override_reason_required: Optional[bool] = None
    remaining_slots: Optional[int] = None
    will_consume_slot: Optional[bool] = None
    requires_justification: Optional[bool] = None


class _BlackoutFinding(BaseModel):
    blackout_id: int
    blackout_name: str
    restriction_type: str
    message: str
    can_override: bool = False
    is_strict: bool = False
    conflicting_days: Optional[List[str]] = None
    current_count: Optional[int] = None
    max_allowed: Optional[int] = None
    restriction_details: RestrictionDetails


class BlackoutConflict(_BlackoutFinding):
    """A blackout that blocks submission"""
    type: Literal["conflict"] = "conflict"


class BlackoutWarning(_BlackoutFinding):
    """A blackout that allows submission but must be acknowledged"""
    type: Literal["warning"] = "warning"


BlackoutFinding = Annotated[Union[BlackoutConflict, BlackoutWarning], Field(discriminator="type")]


class BlackoutVerdict(BaseModel):
    """Result of evaluating a date range against the blackout catalog"""
    conflicts: List[BlackoutConflict] = Field(default_factory=list)
    warnings: List[BlackoutWarning] = Field(default_factory=list)
    is_emergency: bool = False

    @computed_field
    @property
    def has_conflicts(self) -> bool:
        return len(self.conflicts) > 0

    @computed_field
    @property
    def has_warnings(self) -> bool:
        return len(self.warnings) > 0

    @computed_field
    @property
    def can_submit(self) -> bool:
        return not self.conflicts

    @computed_field
    @property
    def requires_acknowledgment(self) -> bool:
        return len(self.warnings) > 0

    @computed_field
    @property
    def requires_override(self) -> bool:
        return len(self.conflicts) > 0 and self.is_emergency


class BlackoutStatusSummary(BaseModel):
    has_conflicts: bool
    has_warnings: bool
    warnings_acknowledged: bool
    has_emergency_override: bool
    override_approved: bool
    conflicts_summary: List[str]
    warnings_summary: List[str]
    can_proceed: bool


class ApprovalRecommendation(BaseModel):
    action: Literal["review", "careful_review", "likely_deny"] = "review"
    priority: Literal["normal", "high", "urgent"] = "normal"
    reasoning: List[str] = Field(default_factory=list)
    considerations: List[str] = Field(default_factory=list)


class BlackoutPreviewRequest(BaseModel):
    pto_type_id: int
    start_date: date
    end_date: date
    is_emergency: bool = False

    @model_validator(mode="after")
    def check_dates(self) -> "BlackoutPreviewRequest":
        if self.start_date > self.end_date:
            raise ValueError("start_date must be on or before end_date")
        return self


class BlackoutCreate(BaseModel):
    """Schema for creating a blackout period"""
    name: str = Field(..., min_length=1, max_length=255)
    description: Optional[str] = None
    start_date: Optional[date] = None
    end_date: Optional[date] = None
    is_company_wide: bool = False
    position_id: Optional[int] = None
    department_ids: List[int] = Field(default_factory=list)
    user_ids: List[int] = Field(default_factory=list)
    pto_type_ids: List[int] = Field(default_factory=list)
    restriction_type: RestrictionType = RestrictionType.FULL_BLOCK
    max_requests_allowed: Optional[int] = Field(None, ge=0)
    is_holiday: bool = False
    is_strict: bool = False
    allow_emergency_override: bool = False
    is_active: bool = True
    is_recurring: bool = False
    recurring_days: List[int] = Field(default_factory=list, description="Weekdays, 0 = Sunday ... 6 = Saturday")
    recurring_start_date: Optional[date] = None
    recurring_end_date: Optional[date] = None


class BlackoutOut(BaseModel):
    id: int
    name: str
    description: Optional[str] = None
    start_date: Optional[date] = None
    end_date: Optional[date] = None
    formatted_date_range: Optional[str] = None
    is_company_wide: bool
    position_id: Optional[int] = None
    department_ids: Optional[List[int]] = None
    user_ids: Optional[List[int]] = None
    pto_type_ids: Optional[List[int]] = None
    restriction_type: str
    max_requests_allowed: Optional[int] = None
    is_holiday: bool
    is_strict: bool
    allow_emergency_override: bool
    is_active: bool
    is_recurring: bool
    recurring_days: Optional[List[int]] = None
    recurring_start_date: Optional[date] = None
    recurring_end_date: Optional[date] = None
    created_at: Optional[datetime] = None

    model_config = ConfigDict(from_attributes=True)
