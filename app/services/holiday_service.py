"""
Holiday calendar lookups
"""
from datetime import date
from sqlalchemy.orm import Session
from app.models.holiday import Holiday


def range_overlaps_holiday(db: Session, start_date: date, end_date: date) -> bool:
    """True if any active holiday falls inside the requested range"""
    return db.query(Holiday.id).filter(
        Holiday.active == True,
        Holiday.date >= start_date,
        Holiday.date <= end_date
    ).first() is not None
