"""
Blackout catalog - definitions of restricted periods and the queries used
to pick candidate blackouts for a date range
"""
import logging
from datetime import date
from typing import List, Optional
from sqlalchemy.orm import Session
from fastapi import HTTPException, status
from app.models.blackout import PtoBlackout, RestrictionType
from app.models.employee import Employee
from app.schemas.blackout import BlackoutCreate
from app.utils.datetime_utils import (
    WEEKDAY_NAMES,
    format_long_date,
    iter_days,
    sunday_based_weekday,
)

logger = logging.getLogger(__name__)


def create_blackout(db: Session, data: BlackoutCreate) -> PtoBlackout:
    """
    Create a blackout period
    
    A fixed blackout needs start_date <= end_date. A recurring blackout needs
    a non-empty weekday set (0 = Sunday ... 6 = Saturday); its fixed range is
    ignored. limit_requests blackouts need max_requests_allowed.
    
    Raises:
        HTTPException: 400 if the definition is inconsistent
    """
    if data.is_recurring:
        if not data.recurring_days:
            raise HTTPException(
                status_code=status.HTTP_400_BAD_REQUEST,
                detail="Recurring blackouts need at least one weekday in recurring_days"
            )
        invalid = [d for d in data.recurring_days if d not in WEEKDAY_NAMES]
        if invalid:
            raise HTTPException(
                status_code=status.HTTP_400_BAD_REQUEST,
                detail=f"recurring_days must be between 0 (Sunday) and 6 (Saturday), got {invalid}"
            )
        if (
            data.recurring_start_date and data.recurring_end_date
            and data.recurring_start_date > data.recurring_end_date
        ):
            raise HTTPException(
                status_code=status.HTTP_400_BAD_REQUEST,
                detail="recurring_start_date must be on or before recurring_end_date"
            )
    else:
        if data.start_date is None or data.end_date is None:
            raise HTTPException(
                status_code=status.HTTP_400_BAD_REQUEST,
                detail="start_date and end_date are required for non-recurring blackouts"
            )
        if data.start_date > data.end_date:
            raise HTTPException(
                status_code=status.HTTP_400_BAD_REQUEST,
                detail="start_date must be on or before end_date"
            )
    
    if data.restriction_type == RestrictionType.LIMIT_REQUESTS and data.max_requests_allowed is None:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail="max_requests_allowed is required for limit_requests blackouts"
        )
    
    if not data.is_company_wide and not (data.position_id or data.department_ids or data.user_ids):
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail="A blackout must be company-wide or target a position, departments or users"
        )
    
    blackout = PtoBlackout(
        name=data.name,
        description=data.description,
        start_date=None if data.is_recurring else data.start_date,
        end_date=None if data.is_recurring else data.end_date,
        is_company_wide=data.is_company_wide,
        position_id=data.position_id,
        department_ids=data.department_ids or None,
        user_ids=data.user_ids or None,
        pto_type_ids=data.pto_type_ids or None,
        restriction_type=data.restriction_type.value,
        max_requests_allowed=data.max_requests_allowed,
        is_holiday=data.is_holiday,
        is_strict=data.is_strict,
        allow_emergency_override=data.allow_emergency_override,
        is_active=data.is_active,
        is_recurring=data.is_recurring,
        recurring_days=sorted(set(data.recurring_days)) if data.is_recurring else None,
        recurring_start_date=data.recurring_start_date if data.is_recurring else None,
        recurring_end_date=data.recurring_end_date if data.is_recurring else None,
    )
    db.add(blackout)
    db.commit()
    db.refresh(blackout)
    
    logger.info(
        "blackout created: blackout_id=%s restriction=%s recurring=%s",
        blackout.id, blackout.restriction_type, blackout.is_recurring,
    )
    return blackout


def get_blackout(db: Session, blackout_id: int) -> Optional[PtoBlackout]:
    return db.query(PtoBlackout).filter(PtoBlackout.id == blackout_id).first()


def list_blackouts(db: Session, active_only: bool = False) -> List[PtoBlackout]:
    query = db.query(PtoBlackout)
    if active_only:
        query = query.filter(PtoBlackout.is_active == True)
    return query.order_by(PtoBlackout.id).all()


def get_active_overlapping(db: Session, start_date: date, end_date: date) -> List[PtoBlackout]:
    """Active fixed-range blackouts overlapping [start_date, end_date], in catalog order"""
    return db.query(PtoBlackout).filter(
        PtoBlackout.is_active == True,
        PtoBlackout.is_recurring == False,
        PtoBlackout.start_date <= end_date,
        PtoBlackout.end_date >= start_date
    ).order_by(PtoBlackout.id).all()


def get_active_recurring(db: Session, start_date: date, end_date: date) -> List[PtoBlackout]:
    """Active recurring blackouts whose pattern hits a day in [start_date, end_date]"""
    candidates = db.query(PtoBlackout).filter(
        PtoBlackout.is_active == True,
        PtoBlackout.is_recurring == True
    ).order_by(PtoBlackout.id).all()
    return [b for b in candidates if overlaps_recurring_days(b, start_date, end_date)]


def overlaps_recurring_days(blackout: PtoBlackout, start_date: date, end_date: date) -> bool:
    if not blackout.is_recurring or not blackout.recurring_days:
        return False
    if blackout.recurring_start_date and end_date < blackout.recurring_start_date:
        return False
    if blackout.recurring_end_date and start_date > blackout.recurring_end_date:
        return False
    return any(conflicts_with_date(blackout, day) for day in iter_days(start_date, end_date))


def conflicts_with_date(blackout: PtoBlackout, day: date) -> bool:
    """True if a single day falls under the blackout"""
    if not blackout.is_recurring:
        return blackout.start_date <= day <= blackout.end_date
    if blackout.recurring_start_date and day < blackout.recurring_start_date:
        return False
    if blackout.recurring_end_date and day > blackout.recurring_end_date:
        return False
    return sunday_based_weekday(day) in (blackout.recurring_days or [])


def recurring_day_names(blackout: PtoBlackout) -> List[str]:
    if not blackout.is_recurring or not blackout.recurring_days:
        return []
    return [WEEKDAY_NAMES[d] for d in blackout.recurring_days if d in WEEKDAY_NAMES]


def format_date_range(blackout: PtoBlackout) -> str:
    """Human readable period, e.g. 'Dec 20, 2027 - Jan 02, 2028' or 'Every Friday'"""
    if blackout.is_recurring:
        day_str = ", ".join(recurring_day_names(blackout))
        effective = ""
        if blackout.recurring_start_date or blackout.recurring_end_date:
            start = format_long_date(blackout.recurring_start_date) if blackout.recurring_start_date else "Beginning"
            end = format_long_date(blackout.recurring_end_date) if blackout.recurring_end_date else "Ongoing"
            effective = f" (Effective: {start} - {end})"
        return f"Every {day_str}{effective}"
    
    if blackout.start_date == blackout.end_date:
        return format_long_date(blackout.start_date)
    return f"{format_long_date(blackout.start_date)} - {format_long_date(blackout.end_date)}"


def blackout_applies_to_user(blackout: PtoBlackout, user: Employee) -> bool:
    """Scope match: company-wide, listed user, matching position or shared department"""
    if blackout.is_company_wide:
        return True
    if blackout.user_ids and user.id in blackout.user_ids:
        return True
    if blackout.position_id and user.position_id == blackout.position_id:
        return True
    if blackout.department_ids:
        if set(blackout.department_ids) & set(user.department_ids):
            return True
    return False


def pto_type_is_restricted(blackout: PtoBlackout, pto_type_id: int) -> bool:
    if not blackout.pto_type_ids:
        return True
    return pto_type_id in blackout.pto_type_ids


def get_blackouts_for_user(
    db: Session,
    user: Employee,
    start_date: Optional[date] = None,
    end_date: Optional[date] = None
) -> List[PtoBlackout]:
    """Active blackouts in scope for a user, optionally limited to a date range"""
    if start_date and end_date:
        blackouts = get_active_overlapping(db, start_date, end_date) + get_active_recurring(db, start_date, end_date)
    else:
        blackouts = list_blackouts(db, active_only=True)
    return [b for b in blackouts if blackout_applies_to_user(b, user)]
