"""
Hierarchy transfer service - keeps in-flight approval chains pointed at the
right manager when reporting lines change
"""
import logging
from typing import Dict, Optional, Tuple
from sqlalchemy import func
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session
from fastapi import HTTPException, status
from app.core.exceptions import TransientStoreError
from app.models.employee import Employee
from app.models.pto import ApprovalStatus, PtoApproval, PtoRequest, PtoRequestStatus
from app.schemas.hierarchy import PendingApprovalsSummary
from app.services.audit_service import log_audit
from app.services.org_directory_service import (
    get_direct_report_ids,
    get_employee,
    would_create_cycle,
)

logger = logging.getLogger(__name__)


def on_manager_changed(
    db: Session,
    user: Employee,
    old_manager_id: Optional[int],
    new_manager_id: Optional[int]
) -> Dict[str, int]:
    """
    Re-point pending approvals after a manager change

    Runs for the user and for each of their direct reports, one transaction
    per user. With an old manager, that manager's pending rows move to the
    new manager in place, or are dropped when the new manager already has
    a pending row there. Without one, the new manager is appended as a new
    level. Either way every pending request ends up with an approval row for
    the new manager, and no approver gets two pending rows on one request.

    Args:
        db: Database session
        user: Employee whose manager changed
        old_manager_id: Previous manager (None for a first assignment)
        new_manager_id: New manager (None makes this a no-op)

    Returns:
        {"transferred": number of approval rows moved, dropped or created}

    Raises:
        TransientStoreError: If a user's transaction fails (earlier users stay committed)
    """
    if not new_manager_id:
        return {"transferred": 0}

    user_ids = [user.id] + get_direct_report_ids(db, user.id, active_only=False)
    transferred = 0
    for user_id in user_ids:
        transferred += _reconcile_user(db, user_id, old_manager_id, new_manager_id)

    logger.info(
        "approvals reconciled: user_id=%s old_manager_id=%s new_manager_id=%s users=%s transferred=%s",
        user.id, old_manager_id, new_manager_id, len(user_ids), transferred,
    )
    return {"transferred": transferred}


def _reconcile_user(
    db: Session,
    user_id: int,
    old_manager_id: Optional[int],
    new_manager_id: int
) -> int:
    try:
        pending_requests = db.query(PtoRequest).filter(
            PtoRequest.user_id == user_id,
            PtoRequest.status == PtoRequestStatus.PENDING
        ).order_by(PtoRequest.id).all()

        count = 0
        for pto_request in pending_requests:
            # never make someone approve their own request
            if pto_request.user_id == new_manager_id:
                continue

            already_pending = _has_approval(db, pto_request.id, new_manager_id, pending_only=True)
            if old_manager_id:
                old_rows = db.query(PtoApproval).filter(
                    PtoApproval.pto_request_id == pto_request.id,
                    PtoApproval.approver_id == old_manager_id,
                    PtoApproval.status == ApprovalStatus.PENDING
                )
                if already_pending:
                    # the new manager already gates this request
                    count += old_rows.delete(synchronize_session="fetch")
                else:
                    count += old_rows.update({PtoApproval.approver_id: new_manager_id}, synchronize_session="fetch")
            elif not already_pending:
                _append_approval(db, pto_request.id, new_manager_id)
                count += 1

            if not _has_approval(db, pto_request.id, new_manager_id, pending_only=False):
                _append_approval(db, pto_request.id, new_manager_id)

        db.commit()
    except SQLAlchemyError as e:
        db.rollback()
        logger.error(
            "approval reconciliation failed: user_id=%s old_manager_id=%s new_manager_id=%s error=%s",
            user_id, old_manager_id, new_manager_id, e,
        )
        raise TransientStoreError(
            "Failed to transfer pending approvals",
            details={"user_id": user_id}
        ) from e

    return count


def _has_approval(db: Session, pto_request_id: int, approver_id: int, pending_only: bool) -> bool:
    query = db.query(PtoApproval.id).filter(
        PtoApproval.pto_request_id == pto_request_id,
        PtoApproval.approver_id == approver_id
    )
    if pending_only:
        query = query.filter(PtoApproval.status == ApprovalStatus.PENDING)
    return query.first() is not None


def _next_slot(db: Session, pto_request_id: int) -> Tuple[int, int]:
    """(level, sequence) for an approval appended after the existing chain"""
    max_level, max_sequence = db.query(
        func.max(PtoApproval.level),
        func.max(PtoApproval.sequence)
    ).filter(PtoApproval.pto_request_id == pto_request_id).one()
    level = max(1, (max_level or 0) + 1)
    # sequence stays unique within the request
    sequence = max(level, (max_sequence or 0) + 1)
    return level, sequence


def _append_approval(db: Session, pto_request_id: int, approver_id: int) -> PtoApproval:
    level, sequence = _next_slot(db, pto_request_id)
    approval = PtoApproval(
        pto_request_id=pto_request_id,
        approver_id=approver_id,
        status=ApprovalStatus.PENDING,
        level=level,
        sequence=sequence,
        is_required=True,
    )
    db.add(approval)
    db.flush()
    return approval


def transfer_all_pending_approvals(
    db: Session,
    from_user_id: int,
    to_user_id: int,
    actor_id: Optional[int] = None
) -> Dict[str, int]:
    """
    Hand every pending approval of one approver to another, whoever owns the request

    Used for position and role changes. Rows are moved as-is, without checking
    whether to_user_id already holds a pending row on the same request.
    """
    try:
        updated = db.query(PtoApproval).filter(
            PtoApproval.approver_id == from_user_id,
            PtoApproval.status == ApprovalStatus.PENDING
        ).update({PtoApproval.approver_id: to_user_id}, synchronize_session="fetch")

        log_audit(
            db=db,
            actor_id=actor_id,
            action="PTO_APPROVALS_TRANSFER",
            entity_type="employees",
            entity_id=from_user_id,
            meta={"from_user_id": from_user_id, "to_user_id": to_user_id, "transferred": updated}
        )
        db.commit()
    except SQLAlchemyError as e:
        db.rollback()
        logger.error(
            "approval transfer failed: from_user_id=%s to_user_id=%s error=%s",
            from_user_id, to_user_id, e,
        )
        raise TransientStoreError(
            "Failed to transfer pending approvals",
            details={"from_user_id": from_user_id, "to_user_id": to_user_id}
        ) from e

    logger.info(
        "pending approvals transferred: from_user_id=%s to_user_id=%s transferred=%s",
        from_user_id, to_user_id, updated,
    )
    return {"transferred": updated}


def get_pending_approvals_summary(db: Session, user: Employee) -> PendingApprovalsSummary:
    affected_users = [user.id] + get_direct_report_ids(db, user.id, active_only=False)

    rows = db.query(PtoApproval.pto_request_id).join(
        PtoRequest, PtoApproval.pto_request_id == PtoRequest.id
    ).filter(
        PtoRequest.user_id.in_(affected_users),
        PtoRequest.status == PtoRequestStatus.PENDING,
        PtoApproval.status == ApprovalStatus.PENDING
    ).all()

    return PendingApprovalsSummary(
        total_pending_approvals=len(rows),
        affected_requests=len({pto_request_id for (pto_request_id,) in rows}),
        affected_users=affected_users,
    )


def change_reporting_manager(
    db: Session,
    employee_id: int,
    new_manager_id: Optional[int],
    actor_id: Optional[int] = None
) -> Dict[str, int]:
    """
    Assign a new reporting manager and reconcile pending approvals

    Raises:
        HTTPException: 404 if an employee is missing, 400 for self-assignment,
            an inactive manager or a reporting cycle
    """
    employee = get_employee(db, employee_id)

    if new_manager_id is not None:
        if new_manager_id == employee.id:
            raise HTTPException(
                status_code=status.HTTP_400_BAD_REQUEST,
                detail="An employee cannot report to themselves"
            )
        manager = get_employee(db, new_manager_id)
        if not manager.active:
            raise HTTPException(
                status_code=status.HTTP_400_BAD_REQUEST,
                detail=f"Manager {new_manager_id} is not active"
            )
        if would_create_cycle(db, employee.id, new_manager_id):
            raise HTTPException(
                status_code=status.HTTP_400_BAD_REQUEST,
                detail="Assigning this manager would create a reporting cycle"
            )

    old_manager_id = employee.reporting_manager_id
    try:
        employee.reporting_manager_id = new_manager_id
        log_audit(
            db=db,
            actor_id=actor_id,
            action="EMPLOYEE_MANAGER_CHANGE",
            entity_type="employees",
            entity_id=employee.id,
            meta={"old_manager_id": old_manager_id, "new_manager_id": new_manager_id}
        )
        db.commit()
    except SQLAlchemyError as e:
        db.rollback()
        logger.error(
            "manager change failed: employee_id=%s new_manager_id=%s error=%s",
            employee.id, new_manager_id, e,
        )
        raise TransientStoreError(
            "Failed to change reporting manager",
            details={"employee_id": employee.id}
        ) from e

    logger.info(
        "reporting manager changed: employee_id=%s old_manager_id=%s new_manager_id=%s",
        employee.id, old_manager_id, new_manager_id,
    )
    return on_manager_changed(db, employee, old_manager_id, new_manager_id)
