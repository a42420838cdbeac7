"""
Blackout period endpoints
"""
from datetime import date
from typing import List, Optional
from fastapi import APIRouter, Depends, HTTPException, Query, status
from sqlalchemy.orm import Session
from app.core.deps import get_db, get_current_user, require_roles
from app.models.blackout import PtoBlackout
from app.models.employee import Employee, Role
from app.schemas.blackout import BlackoutCreate, BlackoutOut
from app.services.blackout_catalog_service import (
    create_blackout,
    format_date_range,
    get_blackout,
    get_blackouts_for_user,
    list_blackouts,
)

router = APIRouter()


def _to_out(blackout: PtoBlackout) -> BlackoutOut:
    out = BlackoutOut.model_validate(blackout)
    out.formatted_date_range = format_date_range(blackout)
    return out


@router.post("", response_model=BlackoutOut, status_code=201)
async def create_blackout_endpoint(
    blackout_data: BlackoutCreate,
    db: Session = Depends(get_db),
    current_user: Employee = Depends(require_roles(Role.HR))
):
    """
    Create a blackout period (HR / ADMIN)
    
    - Fixed blackouts need start_date and end_date
    - Recurring blackouts need recurring_days (0 = Sunday ... 6 = Saturday)
    - limit_requests blackouts need max_requests_allowed
    """
    return _to_out(create_blackout(db, blackout_data))


@router.get("", response_model=List[BlackoutOut])
async def list_blackouts_endpoint(
    active_only: bool = Query(False, description="Only active blackouts"),
    db: Session = Depends(get_db),
    current_user: Employee = Depends(get_current_user)
):
    return [_to_out(b) for b in list_blackouts(db, active_only=active_only)]


@router.get("/me", response_model=List[BlackoutOut])
async def my_blackouts_endpoint(
    from_date: Optional[date] = Query(None, alias="from", description="Start date filter (YYYY-MM-DD)"),
    to_date: Optional[date] = Query(None, alias="to", description="End date filter (YYYY-MM-DD)"),
    db: Session = Depends(get_db),
    current_user: Employee = Depends(get_current_user)
):
    """Active blackouts that apply to the current user"""
    if (from_date is None) != (to_date is None):
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail="from and to must be given together"
        )
    if from_date and to_date and from_date > to_date:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail="from must be on or before to"
        )
    return [_to_out(b) for b in get_blackouts_for_user(db, current_user, from_date, to_date)]


@router.get("/{blackout_id}", response_model=BlackoutOut)
async def get_blackout_endpoint(
    blackout_id: int,
    db: Session = Depends(get_db),
    current_user: Employee = Depends(get_current_user)
):
    blackout = get_blackout(db, blackout_id)
    if not blackout:
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND,
            detail=f"Blackout with id {blackout_id} not found"
        )
    return _to_out(blackout)
