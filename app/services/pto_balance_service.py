"""
PTO balance holds.

- On submit: total_days is added to pending_balance (the hold).
- On final approval: the hold moves from pending to used.
- On denial / auto-reject: the hold is released, never below zero.
"""
import logging
from decimal import Decimal
from typing import Optional

from sqlalchemy.orm import Session

from app.models.pto import PtoBalance, PtoRequest

logger = logging.getLogger(__name__)


def get_or_create_balance(db: Session, user_id: int, pto_type_id: int) -> PtoBalance:
    balance = (
        db.query(PtoBalance)
        .filter(PtoBalance.user_id == user_id, PtoBalance.pto_type_id == pto_type_id)
        .first()
    )
    if balance is None:
        balance = PtoBalance(
            user_id=user_id,
            pto_type_id=pto_type_id,
            balance=Decimal("0"),
            pending_balance=Decimal("0"),
            used_balance=Decimal("0"),
        )
        db.add(balance)
        db.flush()
    return balance


def _find_balance(db: Session, pto_request: PtoRequest) -> Optional[PtoBalance]:
    return (
        db.query(PtoBalance)
        .filter(
            PtoBalance.user_id == pto_request.user_id,
            PtoBalance.pto_type_id == pto_request.pto_type_id,
        )
        .first()
    )


def place_pending_hold(db: Session, pto_request: PtoRequest) -> PtoBalance:
    balance = get_or_create_balance(db, pto_request.user_id, pto_request.pto_type_id)
    days = Decimal(str(pto_request.total_days))
    balance.pending_balance = Decimal(str(balance.pending_balance or 0)) + days
    db.flush()
    logger.info(
        "pending hold placed: pto_request_id=%s user_id=%s days=%s",
        pto_request.id, pto_request.user_id, days,
    )
    return balance


def release_pending_hold(db: Session, pto_request: PtoRequest) -> Optional[PtoBalance]:
    balance = _find_balance(db, pto_request)
    if balance is None:
        return None
    days = Decimal(str(pto_request.total_days))
    pending = Decimal(str(balance.pending_balance or 0))
    balance.pending_balance = max(Decimal("0"), pending - days)
    db.flush()
    logger.info(
        "pending hold released: pto_request_id=%s user_id=%s days=%s",
        pto_request.id, pto_request.user_id, days,
    )
    return balance


def consume_pending_hold(db: Session, pto_request: PtoRequest) -> Optional[PtoBalance]:
    """Move an approved request's hold from pending to used"""
    balance = _find_balance(db, pto_request)
    if balance is None:
        return None
    days = Decimal(str(pto_request.total_days))
    pending = Decimal(str(balance.pending_balance or 0))
    balance.pending_balance = max(Decimal("0"), pending - days)
    balance.used_balance = Decimal(str(balance.used_balance or 0)) + days
    db.flush()
    return balance
