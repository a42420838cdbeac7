"""
PTO request endpoints
"""
from typing import List, Optional
from fastapi import APIRouter, Depends, HTTPException, Query, status
from sqlalchemy.orm import Session
from app.core.deps import get_db, get_current_user, require_roles
from app.models.employee import Employee, Role
from app.models.pto import PtoApproval, PtoRequest, PtoRequestStatus
from app.schemas.blackout import (
    ApprovalRecommendation,
    BlackoutPreviewRequest,
    BlackoutStatusSummary,
    BlackoutVerdict,
)
from app.schemas.pto import (
    ApprovalActionRequest,
    DenyActionRequest,
    OverrideDecisionRequest,
    OverrideDecisionResult,
    PtoRequestCreate,
    PtoRequestOut,
    PtoSubmitResponse,
)
from app.services.approval_chain_service import approve_as_approver, deny_as_approver
from app.services.blackout_service import (
    acknowledge_warnings,
    auto_reject_for_blackout,
    get_approval_recommendation,
    get_blackout_status_summary,
    validate_pto_request,
)
from app.services.emergency_override_service import decide_override
from app.services.org_directory_service import get_employee
from app.services.pto_request_service import (
    get_pto_request,
    get_pto_type,
    get_user_pto_requests,
    submission_message,
    submit_pto_request,
)

router = APIRouter()


def _ensure_can_view(db: Session, pto_request: PtoRequest, current_user: Employee) -> None:
    if current_user.role in (Role.HR, Role.ADMIN) or pto_request.user_id == current_user.id:
        return
    is_approver = db.query(PtoApproval.id).filter(
        PtoApproval.pto_request_id == pto_request.id,
        PtoApproval.approver_id == current_user.id
    ).first()
    if not is_approver:
        raise HTTPException(
            status_code=status.HTTP_403_FORBIDDEN,
            detail="You are not allowed to view this PTO request"
        )


@router.post("", response_model=PtoSubmitResponse, status_code=201)
async def submit_pto_request_endpoint(
    request_data: PtoRequestCreate,
    db: Session = Depends(get_db),
    current_user: Employee = Depends(get_current_user)
):
    """
    Submit a PTO request for the current user
    
    - Blackout conflicts reject the submission (422) unless is_emergency_override is set
    - Emergency submissions with conflicts wait for an override decision
    - Warnings can be acknowledged in the same call with acknowledge_warnings
    """
    pto_request, verdict = submit_pto_request(db, current_user, request_data)
    return PtoSubmitResponse(
        request=PtoRequestOut.model_validate(pto_request),
        verdict=verdict,
        message=submission_message(pto_request)
    )


@router.post("/preview-blackouts", response_model=BlackoutVerdict)
async def preview_blackouts_endpoint(
    preview: BlackoutPreviewRequest,
    user_id: Optional[int] = Query(None, description="Employee to preview for (HR only)"),
    db: Session = Depends(get_db),
    current_user: Employee = Depends(get_current_user)
):
    """
    Evaluate a date range without creating a request
    
    HR can preview on behalf of another employee with user_id.
    """
    user = current_user
    if user_id is not None and user_id != current_user.id:
        if current_user.role not in (Role.HR, Role.ADMIN):
            raise HTTPException(
                status_code=status.HTTP_403_FORBIDDEN,
                detail="Only HR can preview blackouts for another employee"
            )
        user = get_employee(db, user_id)
    get_pto_type(db, preview.pto_type_id)
    return validate_pto_request(
        db,
        user,
        preview.start_date,
        preview.end_date,
        preview.pto_type_id,
        is_emergency=preview.is_emergency
    )


@router.get("/my", response_model=List[PtoRequestOut])
async def list_my_pto_requests_endpoint(
    status_filter: Optional[PtoRequestStatus] = Query(None, alias="status", description="Filter by status"),
    db: Session = Depends(get_db),
    current_user: Employee = Depends(get_current_user)
):
    """Current user's PTO requests, newest first"""
    return get_user_pto_requests(db, current_user.id, status_filter)


@router.get("/{pto_request_id}", response_model=PtoRequestOut)
async def get_pto_request_endpoint(
    pto_request_id: int,
    db: Session = Depends(get_db),
    current_user: Employee = Depends(get_current_user)
):
    pto_request = get_pto_request(db, pto_request_id)
    _ensure_can_view(db, pto_request, current_user)
    return pto_request


@router.get("/{pto_request_id}/blackout-status", response_model=BlackoutStatusSummary)
async def blackout_status_endpoint(
    pto_request_id: int,
    db: Session = Depends(get_db),
    current_user: Employee = Depends(get_current_user)
):
    pto_request = get_pto_request(db, pto_request_id)
    _ensure_can_view(db, pto_request, current_user)
    return get_blackout_status_summary(pto_request)


@router.get("/{pto_request_id}/recommendation", response_model=ApprovalRecommendation)
async def recommendation_endpoint(
    pto_request_id: int,
    db: Session = Depends(get_db),
    current_user: Employee = Depends(require_roles(Role.MANAGER, Role.HR))
):
    """Review guidance for approvers based on the request's blackout situation"""
    pto_request = get_pto_request(db, pto_request_id)
    _ensure_can_view(db, pto_request, current_user)
    return get_approval_recommendation(db, pto_request)


@router.post("/{pto_request_id}/acknowledge-warnings")
async def acknowledge_warnings_endpoint(
    pto_request_id: int,
    db: Session = Depends(get_db),
    current_user: Employee = Depends(get_current_user)
):
    pto_request = get_pto_request(db, pto_request_id)
    if pto_request.user_id != current_user.id:
        raise HTTPException(
            status_code=status.HTTP_403_FORBIDDEN,
            detail="Only the requester can acknowledge blackout warnings"
        )
    acknowledged = acknowledge_warnings(db, pto_request, current_user)
    return {"acknowledged": acknowledged}


@router.post("/{pto_request_id}/override-decision", response_model=OverrideDecisionResult)
async def override_decision_endpoint(
    pto_request_id: int,
    decision: OverrideDecisionRequest,
    db: Session = Depends(get_db),
    current_user: Employee = Depends(require_roles(Role.HR))
):
    """
    Approve or deny an emergency override (HR / ADMIN)
    
    Returns 422 when the request has no override pending.
    """
    pto_request = get_pto_request(db, pto_request_id)
    result = decide_override(db, pto_request, current_user, decision.approved, decision.reason)
    if not result.success:
        raise HTTPException(
            status_code=status.HTTP_422_UNPROCESSABLE_ENTITY,
            detail=result.message
        )
    return result


@router.post("/{pto_request_id}/approve", response_model=PtoRequestOut)
async def approve_endpoint(
    pto_request_id: int,
    approval_data: ApprovalActionRequest,
    db: Session = Depends(get_db),
    current_user: Employee = Depends(get_current_user)
):
    """
    Approve as the current approver
    
    Only pending approvals at the request's current level can be acted on.
    The request is approved once every approval is resolved.
    """
    pto_request = get_pto_request(db, pto_request_id)
    return approve_as_approver(db, pto_request, current_user, approval_data.comments)


@router.post("/{pto_request_id}/deny", response_model=PtoRequestOut)
async def deny_endpoint(
    pto_request_id: int,
    deny_data: DenyActionRequest,
    db: Session = Depends(get_db),
    current_user: Employee = Depends(get_current_user)
):
    pto_request = get_pto_request(db, pto_request_id)
    return deny_as_approver(db, pto_request, current_user, deny_data.comments)


@router.post("/{pto_request_id}/auto-reject", response_model=PtoRequestOut)
async def auto_reject_endpoint(
    pto_request_id: int,
    db: Session = Depends(get_db),
    current_user: Employee = Depends(require_roles(Role.HR))
):
    """Deny the request if it still conflicts with blackout periods"""
    pto_request = get_pto_request(db, pto_request_id)
    auto_reject_for_blackout(db, pto_request)
    db.refresh(pto_request)
    return pto_request
