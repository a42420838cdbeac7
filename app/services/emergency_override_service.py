"""
Emergency override decisions on blackout-conflicting PTO requests.

Override sub-state: NONE -> REQUESTED -> APPROVED | DENIED. The move to
REQUESTED happens in blackout_service.validate_and_store.
"""
import logging
from typing import Optional

from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from app.core.config import settings
from app.core.exceptions import TransientStoreError
from app.models.employee import Employee
from app.models.pto import OverrideStatus, PtoRequest, PtoRequestStatus
from app.schemas.pto import OverrideDecisionResult
from app.services.audit_service import log_audit
from app.services.pto_balance_service import place_pending_hold, release_pending_hold
from app.utils.datetime_utils import now_utc

logger = logging.getLogger(__name__)

BLACKOUT_DENIAL_MARKERS = ("blackout", "restricted period")


def was_denied_for_blackout(pto_request: PtoRequest) -> bool:
    if pto_request.status != PtoRequestStatus.DENIED or not pto_request.denial_reason:
        return False
    reason = pto_request.denial_reason.lower()
    return any(marker in reason for marker in BLACKOUT_DENIAL_MARKERS)


def decide_override(
    db: Session,
    pto_request: PtoRequest,
    approver: Employee,
    approved: bool,
    reason: Optional[str] = None
) -> OverrideDecisionResult:
    """
    Approve or deny a requested emergency override
    
    Approving re-opens a request that was denied because of a blackout so it
    goes back through the normal approval flow, placing its balance hold
    again. Denying rejects the request and releases the hold if the request
    was still pending.
    
    Args:
        db: Database session
        pto_request: Request carrying the override
        approver: Employee deciding the override
        approved: True to approve, False to deny
        reason: Denial reason (a configured default is used when omitted)
    
    Returns:
        OverrideDecisionResult; success is False when no override was requested
    """
    if pto_request.override_status != OverrideStatus.REQUESTED:
        logger.info(
            "override decision ignored, none requested: pto_request_id=%s override_status=%s",
            pto_request.id, pto_request.override_status,
        )
        return OverrideDecisionResult(
            success=False,
            message="No emergency override requested for this PTO request."
        )
    
    before_status = pto_request.status
    uses_balance = bool(pto_request.pto_type and pto_request.pto_type.uses_balance)
    try:
        pto_request.override_decided_by_id = approver.id
        pto_request.override_decided_at = now_utc()
        
        if approved:
            pto_request.override_status = OverrideStatus.APPROVED
            if was_denied_for_blackout(pto_request):
                pto_request.status = PtoRequestStatus.PENDING
                pto_request.denied_at = None
                pto_request.denial_reason = None
                # the denial released the hold
                if uses_balance:
                    place_pending_hold(db, pto_request)
            message = "Emergency override approved. PTO request can now proceed through normal approval process."
        else:
            pto_request.override_status = OverrideStatus.DENIED
            pto_request.override_reason = None
            pto_request.status = PtoRequestStatus.DENIED
            pto_request.denied_at = now_utc()
            pto_request.denial_reason = reason or settings.DEFAULT_OVERRIDE_DENIAL_REASON
            if uses_balance and before_status == PtoRequestStatus.PENDING:
                release_pending_hold(db, pto_request)
            message = "Emergency override denied. PTO request has been rejected."
        
        log_audit(
            db=db,
            actor_id=approver.id,
            action="PTO_OVERRIDE_APPROVE" if approved else "PTO_OVERRIDE_DENY",
            entity_type="pto_requests",
            entity_id=pto_request.id,
            meta={
                "before_status": before_status,
                "after_status": pto_request.status,
                "reason": reason,
            }
        )
        db.commit()
    except SQLAlchemyError as e:
        db.rollback()
        logger.error(
            "override decision failed: pto_request_id=%s approver_id=%s error=%s",
            pto_request.id, approver.id, e,
        )
        raise TransientStoreError(
            "Failed to record override decision",
            details={"pto_request_id": pto_request.id}
        ) from e
    
    logger.info(
        "override decided: pto_request_id=%s approver_id=%s approved=%s before=%s after=%s",
        pto_request.id, approver.id, approved, before_status.value, pto_request.status.value,
    )
    return OverrideDecisionResult(success=True, message=message)
