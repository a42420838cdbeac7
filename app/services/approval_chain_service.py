"""
Approval chain service - builds the approver list for a PTO request and
applies approver decisions level by level
"""
import logging
from typing import List, Optional, Tuple
from sqlalchemy import func
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session
from app.core.config import settings
from app.core.exceptions import (
    ApprovalNotAllowedError,
    ConfigurationError,
    InvalidStateError,
    TransientStoreError,
)
from app.models.employee import Employee
from app.models.pto import (
    ApprovalStatus,
    PtoApproval,
    PtoRequest,
    PtoRequestStatus,
    PtoType,
)
from app.services.audit_service import log_audit
from app.services.org_directory_service import find_first_active_with_role
from app.services.pto_balance_service import consume_pending_hold, release_pending_hold
from app.utils.datetime_utils import now_utc

logger = logging.getLogger(__name__)

# (approver_id, level, sequence)
ChainEntry = Tuple[int, int, int]


def resolve_fallback_approver(db: Session) -> int:
    """
    Approver used when nobody else can approve a request

    PTO_FALLBACK_APPROVER_ID wins when set; otherwise the lowest-id active
    employee holding PTO_FALLBACK_APPROVER_ROLE.

    Raises:
        ConfigurationError: If no fallback approver can be found
    """
    if settings.PTO_FALLBACK_APPROVER_ID is not None:
        return settings.PTO_FALLBACK_APPROVER_ID

    employee = find_first_active_with_role(db, settings.PTO_FALLBACK_APPROVER_ROLE)
    if employee is None:
        raise ConfigurationError(
            "No fallback approver available",
            details={"role": settings.PTO_FALLBACK_APPROVER_ROLE}
        )
    return employee.id


def build_chain(
    db: Session,
    pto_type: PtoType,
    requesting_user: Employee
) -> List[ChainEntry]:
    """
    Ordered, deduplicated approver list for a request

    Single-level types go to the requester's manager. Multi-level types go to
    the manager (unless hierarchy approval is disabled) followed by the
    configured specific approvers in order. The requester never approves
    their own request; an empty list falls back to a single fallback approver.
    Every entry is level 1 with sequence 1..n.
    """
    candidates: List[int] = []
    manager_id = requesting_user.reporting_manager_id

    if not pto_type.multi_level_approval:
        if manager_id:
            candidates.append(manager_id)
    else:
        if manager_id and not pto_type.disable_hierarchy_approval:
            candidates.append(manager_id)
        for approver_id in pto_type.specific_approvers or []:
            candidates.append(int(approver_id))

    approver_ids: List[int] = []
    for approver_id in candidates:
        if approver_id == requesting_user.id or approver_id in approver_ids:
            continue
        approver_ids.append(approver_id)

    if not approver_ids:
        approver_ids.append(resolve_fallback_approver(db))

    return [(approver_id, 1, sequence) for sequence, approver_id in enumerate(approver_ids, start=1)]


def create_approval_chain(db: Session, pto_request: PtoRequest) -> List[PtoApproval]:
    """
    Persist the approval chain for a freshly created request

    The rows are flushed, not committed: the caller owns the transaction.

    Raises:
        ConfigurationError: If the request has no PTO type or requesting user
        TransientStoreError: If the approval rows cannot be written
    """
    if pto_request.pto_type is None or pto_request.user is None:
        raise ConfigurationError(
            "PTO request is missing its PTO type or requesting user",
            details={"pto_request_id": pto_request.id}
        )

    chain = build_chain(db, pto_request.pto_type, pto_request.user)
    approvals = []
    try:
        for approver_id, level, sequence in chain:
            approval = PtoApproval(
                pto_request_id=pto_request.id,
                approver_id=approver_id,
                status=ApprovalStatus.PENDING,
                level=level,
                sequence=sequence,
                is_required=True,
            )
            db.add(approval)
            approvals.append(approval)
        db.flush()
    except SQLAlchemyError as e:
        logger.error(
            "approval chain creation failed: pto_request_id=%s user_id=%s error=%s",
            pto_request.id, pto_request.user_id, e,
        )
        raise TransientStoreError(
            "Failed to create approval chain",
            details={"pto_request_id": pto_request.id}
        ) from e

    logger.info(
        "approval chain built: pto_request_id=%s user_id=%s approvers=%s",
        pto_request.id, pto_request.user_id, [entry[0] for entry in chain],
    )
    return approvals


def current_approval_level(db: Session, pto_request_id: int) -> Optional[int]:
    """Lowest level that still has pending approvals, None when all are resolved"""
    return db.query(func.min(PtoApproval.level)).filter(
        PtoApproval.pto_request_id == pto_request_id,
        PtoApproval.status == ApprovalStatus.PENDING
    ).scalar()


def _get_actionable_approval(db: Session, pto_request: PtoRequest, approver: Employee) -> PtoApproval:
    if pto_request.status != PtoRequestStatus.PENDING:
        raise InvalidStateError(
            f"Cannot act on PTO request with status {pto_request.status.value}"
        )
    if pto_request.has_pending_override:
        raise InvalidStateError("PTO request is awaiting an emergency override decision")

    level = current_approval_level(db, pto_request.id)
    approval = None
    if level is not None:
        approval = db.query(PtoApproval).filter(
            PtoApproval.pto_request_id == pto_request.id,
            PtoApproval.approver_id == approver.id,
            PtoApproval.status == ApprovalStatus.PENDING,
            PtoApproval.level == level
        ).order_by(PtoApproval.sequence).first()

    if approval is None:
        raise ApprovalNotAllowedError(
            "You have no pending approval at the current level of this request"
        )
    return approval


def approve_as_approver(
    db: Session,
    pto_request: PtoRequest,
    approver: Employee,
    comments: Optional[str] = None
) -> PtoRequest:
    """
    Approve the approver's pending row at the current level

    The request itself becomes approved once no pending rows remain; its
    pending balance hold is then moved to used.

    Raises:
        InvalidStateError: If the request is no longer pending or awaits an override decision
        ApprovalNotAllowedError: If the approver has nothing to act on right now
    """
    approval = _get_actionable_approval(db, pto_request, approver)
    try:
        approval.status = ApprovalStatus.APPROVED
        approval.comments = comments
        approval.responded_at = now_utc()
        db.flush()

        remaining = db.query(PtoApproval).filter(
            PtoApproval.pto_request_id == pto_request.id,
            PtoApproval.status == ApprovalStatus.PENDING
        ).count()

        if remaining == 0:
            pto_request.status = PtoRequestStatus.APPROVED
            pto_request.approved_at = now_utc()
            if pto_request.pto_type and pto_request.pto_type.uses_balance:
                consume_pending_hold(db, pto_request)

        log_audit(
            db=db,
            actor_id=approver.id,
            action="PTO_APPROVAL_APPROVE",
            entity_type="pto_requests",
            entity_id=pto_request.id,
            meta={
                "approval_id": approval.id,
                "level": approval.level,
                "remaining": remaining,
                "comments": comments,
            }
        )
        db.commit()
    except SQLAlchemyError as e:
        db.rollback()
        logger.error(
            "approval failed: pto_request_id=%s approver_id=%s error=%s",
            pto_request.id, approver.id, e,
        )
        raise TransientStoreError(
            "Failed to record approval",
            details={"pto_request_id": pto_request.id}
        ) from e

    db.refresh(pto_request)
    logger.info(
        "pto approval recorded: pto_request_id=%s approver_id=%s level=%s remaining=%s status=%s",
        pto_request.id, approver.id, approval.level, remaining, pto_request.status.value,
    )
    return pto_request


def deny_as_approver(
    db: Session,
    pto_request: PtoRequest,
    approver: Employee,
    comments: str
) -> PtoRequest:
    """
    Deny the request. One denial stops the chain and releases the balance hold.

    Raises:
        InvalidStateError: If the request is no longer pending or awaits an override decision
        ApprovalNotAllowedError: If the approver has nothing to act on right now
    """
    approval = _get_actionable_approval(db, pto_request, approver)
    try:
        approval.status = ApprovalStatus.DENIED
        approval.comments = comments
        approval.responded_at = now_utc()

        pto_request.status = PtoRequestStatus.DENIED
        pto_request.denied_at = now_utc()
        pto_request.denial_reason = comments
        if pto_request.pto_type and pto_request.pto_type.uses_balance:
            release_pending_hold(db, pto_request)

        log_audit(
            db=db,
            actor_id=approver.id,
            action="PTO_APPROVAL_DENY",
            entity_type="pto_requests",
            entity_id=pto_request.id,
            meta={"approval_id": approval.id, "level": approval.level, "comments": comments}
        )
        db.commit()
    except SQLAlchemyError as e:
        db.rollback()
        logger.error(
            "denial failed: pto_request_id=%s approver_id=%s error=%s",
            pto_request.id, approver.id, e,
        )
        raise TransientStoreError(
            "Failed to record denial",
            details={"pto_request_id": pto_request.id}
        ) from e

    db.refresh(pto_request)
    logger.info(
        "pto request denied: pto_request_id=%s approver_id=%s level=%s",
        pto_request.id, approver.id, approval.level,
    )
    return pto_request
