"""
PTO request service - submission and lookup
"""
import logging
from datetime import date
from decimal import Decimal
from typing import Optional, Tuple
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session
from fastapi import HTTPException, status
from app.core.exceptions import AppException, BlackoutConflictError, TransientStoreError
from app.models.employee import Employee
from app.models.pto import PtoRequest, PtoRequestStatus, PtoType
from app.schemas.blackout import BlackoutVerdict
from app.schemas.pto import PtoRequestCreate
from app.services.approval_chain_service import create_approval_chain
from app.services.blackout_service import acknowledge_warnings, validate_and_store
from app.services.pto_balance_service import place_pending_hold
from app.utils.datetime_utils import iter_days

logger = logging.getLogger(__name__)


def calculate_total_days(start_date: date, end_date: date) -> Decimal:
    """
    Full-day count for a range: first and last day always count, weekend days
    in between do not.
    """
    if start_date == end_date:
        return Decimal("1")
    between = sum(
        1 for day in iter_days(start_date, end_date)
        if start_date < day < end_date and day.weekday() < 5
    )
    return Decimal(2 + between)


def get_pto_request(db: Session, pto_request_id: int) -> PtoRequest:
    """
    Raises:
        HTTPException: 404 if the request does not exist
    """
    pto_request = db.query(PtoRequest).filter(PtoRequest.id == pto_request_id).first()
    if not pto_request:
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND,
            detail=f"PTO request with id {pto_request_id} not found"
        )
    return pto_request


def get_pto_type(db: Session, pto_type_id: int) -> PtoType:
    pto_type = db.query(PtoType).filter(PtoType.id == pto_type_id).first()
    if not pto_type:
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND,
            detail=f"PTO type with id {pto_type_id} not found"
        )
    if not pto_type.is_active:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail=f"PTO type {pto_type.name} is not active"
        )
    return pto_type


def submit_pto_request(
    db: Session,
    user: Employee,
    data: PtoRequestCreate
) -> Tuple[PtoRequest, BlackoutVerdict]:
    """
    Submit a PTO request
    
    Creation, blackout verdict, approval chain and balance hold land in one
    transaction. A request with blackout conflicts is only accepted when it is
    flagged as an emergency; it then waits for an override decision.
    
    Args:
        db: Database session
        user: Requesting employee
        data: Submission payload
    
    Returns:
        (created PtoRequest, BlackoutVerdict)
    
    Raises:
        HTTPException: 404/400 for an unknown or inactive PTO type
        BlackoutConflictError: If conflicts exist and no emergency was flagged
        ConfigurationError: If no approver can be resolved
        TransientStoreError: If the store fails
    """
    pto_type = get_pto_type(db, data.pto_type_id)
    total_days = data.total_days if data.total_days is not None else calculate_total_days(data.start_date, data.end_date)
    
    try:
        pto_request = PtoRequest(
            user=user,
            pto_type=pto_type,
            start_date=data.start_date,
            end_date=data.end_date,
            total_days=total_days,
            reason=data.reason,
            status=PtoRequestStatus.PENDING,
        )
        db.add(pto_request)
        db.flush()
        pto_request.request_number = f"PTO-{user.id}-{pto_request.id:06d}"
        
        verdict = validate_and_store(
            db,
            pto_request,
            is_emergency=data.is_emergency_override,
            override_reason=data.reason
        )
        
        if verdict.has_conflicts and not data.is_emergency_override:
            logger.info(
                "pto submission rejected for blackout conflicts: user_id=%s blackouts=%s",
                user.id, [c.blackout_id for c in verdict.conflicts],
            )
            raise BlackoutConflictError([c.model_dump(mode="json") for c in verdict.conflicts])
        
        create_approval_chain(db, pto_request)
        
        if pto_type.uses_balance:
            place_pending_hold(db, pto_request)
        
        if data.acknowledge_warnings and verdict.has_warnings:
            # commits the whole submission
            acknowledge_warnings(db, pto_request, user)
        else:
            db.commit()
    except AppException:
        db.rollback()
        raise
    except SQLAlchemyError as e:
        db.rollback()
        logger.error("pto submission failed: user_id=%s error=%s", user.id, e)
        raise TransientStoreError(
            "Failed to submit PTO request",
            details={"user_id": user.id}
        ) from e
    
    db.refresh(pto_request)
    logger.info(
        "pto request submitted: pto_request_id=%s user_id=%s days=%s emergency=%s override_status=%s",
        pto_request.id, user.id, total_days, data.is_emergency_override, pto_request.override_status.value,
    )
    return pto_request, verdict


def submission_message(pto_request: PtoRequest) -> str:
    message = "PTO request submitted successfully."
    if pto_request.has_blackout_conflicts:
        message += " Emergency override applied due to blackout conflicts."
    elif pto_request.has_blackout_warnings:
        message += " Note: Request has blackout period warnings."
    return message


def get_user_pto_requests(db: Session, user_id: int, status_filter: Optional[PtoRequestStatus] = None):
    query = db.query(PtoRequest).filter(PtoRequest.user_id == user_id)
    if status_filter:
        query = query.filter(PtoRequest.status == status_filter)
    return query.order_by(PtoRequest.created_at.desc(), PtoRequest.id.desc()).all()
