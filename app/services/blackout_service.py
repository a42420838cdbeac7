"""
Blackout evaluation service - checks a PTO date range against the blackout
catalog and records the verdict on the request
"""
import logging
from datetime import date
from typing import List, Optional
from sqlalchemy import or_
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session
from app.core.config import settings
from app.core.exceptions import ConfigurationError, TransientStoreError
from app.models.blackout import PtoBlackout, RestrictionType
from app.models.department import Department
from app.models.employee import Employee
from app.models.pto import (
    ACTIVE_REQUEST_STATUSES,
    OverrideStatus,
    PtoRequest,
    PtoRequestStatus,
)
from app.schemas.blackout import (
    ApprovalRecommendation,
    BlackoutConflict,
    BlackoutFinding,
    BlackoutStatusSummary,
    BlackoutVerdict,
    BlackoutWarning,
    RestrictionDetails,
)
from app.services.audit_service import log_audit
from app.services.blackout_catalog_service import (
    blackout_applies_to_user,
    conflicts_with_date,
    format_date_range,
    get_active_overlapping,
    get_active_recurring,
    pto_type_is_restricted,
    recurring_day_names,
)
from app.services.holiday_service import range_overlaps_holiday
from app.services.pto_balance_service import release_pending_hold
from app.utils.datetime_utils import format_day, iter_days, now_utc, sunday_based_weekday

logger = logging.getLogger(__name__)

# a blackout that does not apply contributes no finding (None)
Finding = Optional[BlackoutFinding]


def validate_pto_request(
    db: Session,
    user: Employee,
    start_date: date,
    end_date: date,
    pto_type_id: int,
    is_emergency: bool = False,
    exclude_request_id: Optional[int] = None
) -> BlackoutVerdict:
    """
    Evaluate a date range against every active blackout

    Candidates are the fixed-range blackouts overlapping the range followed by
    the recurring blackouts hitting at least one day of it, each group in
    catalog order. Every applicable blackout contributes at most one finding.

    Args:
        db: Database session
        user: Requesting employee
        start_date: First day of the request (inclusive)
        end_date: Last day of the request (inclusive)
        pto_type_id: Requested PTO type
        is_emergency: Requester flagged the request as an emergency
        exclude_request_id: Request being evaluated, left out of limit counts

    Returns:
        BlackoutVerdict with conflicts and warnings in candidate order
    """
    try:
        candidates = get_active_overlapping(db, start_date, end_date) + get_active_recurring(db, start_date, end_date)
        holiday_overlap = None

        conflicts: List[BlackoutConflict] = []
        warnings: List[BlackoutWarning] = []

        for blackout in candidates:
            if not blackout_applies_to_user(blackout, user):
                continue
            if not pto_type_is_restricted(blackout, pto_type_id):
                continue
            if blackout.is_holiday:
                if holiday_overlap is None:
                    holiday_overlap = range_overlaps_holiday(db, start_date, end_date)
                if holiday_overlap:
                    continue

            if blackout.is_recurring:
                finding = _evaluate_recurring(db, blackout, start_date, end_date, is_emergency, exclude_request_id)
            else:
                finding = _evaluate_fixed(db, blackout, is_emergency, exclude_request_id)

            if isinstance(finding, BlackoutConflict):
                conflicts.append(finding)
            elif isinstance(finding, BlackoutWarning):
                warnings.append(finding)
    except SQLAlchemyError as e:
        logger.error(
            "blackout evaluation failed: user_id=%s start=%s end=%s error=%s",
            user.id, start_date, end_date, e,
        )
        raise TransientStoreError(
            "Failed to evaluate blackout periods",
            details={"user_id": user.id}
        ) from e

    return BlackoutVerdict(conflicts=conflicts, warnings=warnings, is_emergency=is_emergency)


def _evaluate_fixed(
    db: Session,
    blackout: PtoBlackout,
    is_emergency: bool,
    exclude_request_id: Optional[int]
) -> Finding:
    restriction = blackout.restriction_type
    if restriction == RestrictionType.LIMIT_REQUESTS.value:
        return _fixed_limit(db, blackout, exclude_request_id)
    if restriction == RestrictionType.WARNING_ONLY.value:
        period = format_date_range(blackout)
        return BlackoutWarning(
            **_base_fields(blackout),
            message=f"Note: Your request falls during a restricted period: {blackout.name} ({period})",
            restriction_details=RestrictionDetails(
                type="advisory_only",
                period=period,
                requires_justification=True,
            ),
        )
    # full_block, and anything unrecognised
    return _full_block(blackout, is_emergency)


def _full_block(blackout: PtoBlackout, is_emergency: bool) -> Finding:
    period = format_date_range(blackout)
    if is_emergency and blackout.allow_emergency_override:
        return BlackoutWarning(
            **_base_fields(blackout),
            message=f"Emergency override applied for blackout period: {blackout.name}",
            can_override=True,
            restriction_details=RestrictionDetails(
                type="emergency_override",
                period=period,
                requires_approval=True,
                override_reason_required=True,
            ),
        )
    return BlackoutConflict(
        **_base_fields(blackout),
        message=f"PTO requests are blocked during: {blackout.name} ({period})",
        can_override=blackout.allow_emergency_override,
        restriction_details=RestrictionDetails(
            type="full_block",
            period=period,
            strict=blackout.is_strict,
            override_allowed=blackout.allow_emergency_override,
        ),
    )


def _fixed_limit(db: Session, blackout: PtoBlackout, exclude_request_id: Optional[int]) -> Finding:
    _lock_blackout(db, blackout)

    query = db.query(PtoRequest).filter(
        PtoRequest.status.in_(ACTIVE_REQUEST_STATUSES),
        PtoRequest.start_date <= blackout.end_date,
        PtoRequest.end_date >= blackout.start_date
    )
    if exclude_request_id is not None:
        query = query.filter(PtoRequest.id != exclude_request_id)
    if blackout.pto_type_ids:
        query = query.filter(PtoRequest.pto_type_id.in_(blackout.pto_type_ids))
    if not blackout.is_company_wide:
        scope = []
        if blackout.user_ids:
            scope.append(PtoRequest.user_id.in_(blackout.user_ids))
        if blackout.position_id:
            scope.append(PtoRequest.user.has(Employee.position_id == blackout.position_id))
        if blackout.department_ids:
            scope.append(PtoRequest.user.has(
                Employee.departments.any(Department.id.in_(blackout.department_ids))
            ))
        if scope:
            query = query.filter(or_(*scope))

    existing = query.count()
    max_allowed = blackout.max_requests_allowed or 0
    period = format_date_range(blackout)

    if existing >= max_allowed:
        return BlackoutConflict(
            **_base_fields(blackout),
            message=(
                f"Maximum number of PTO requests ({max_allowed}) already reached "
                f"for blackout period: {blackout.name}"
            ),
            can_override=blackout.allow_emergency_override,
            current_count=existing,
            max_allowed=max_allowed,
            restriction_details=RestrictionDetails(
                type="limit_exceeded",
                period=period,
                remaining_slots=0,
            ),
        )
    return BlackoutWarning(
        **_base_fields(blackout),
        message=f"Limited PTO requests during: {blackout.name}. {existing}/{max_allowed} requests used.",
        current_count=existing,
        max_allowed=max_allowed,
        restriction_details=RestrictionDetails(
            type="limited_availability",
            period=period,
            # this request takes one of the free slots
            remaining_slots=max_allowed - existing - 1,
            will_consume_slot=True,
        ),
    )


def _evaluate_recurring(
    db: Session,
    blackout: PtoBlackout,
    start_date: date,
    end_date: date,
    is_emergency: bool,
    exclude_request_id: Optional[int]
) -> Finding:
    conflicting_days = [format_day(day) for day in iter_days(start_date, end_date) if conflicts_with_date(blackout, day)]
    if not conflicting_days:
        return None

    days_list = ", ".join(conflicting_days)
    day_names = ", ".join(recurring_day_names(blackout))
    restriction = blackout.restriction_type

    if restriction == RestrictionType.FULL_BLOCK.value:
        if is_emergency and blackout.allow_emergency_override:
            return BlackoutWarning(
                **_base_fields(blackout),
                message=f"Emergency override applied for recurring blackout on {days_list} ({blackout.name})",
                can_override=True,
                conflicting_days=conflicting_days,
                restriction_details=RestrictionDetails(
                    type="recurring_emergency_override",
                    recurring_days=day_names,
                    conflicting_dates=days_list,
                    requires_approval=True,
                ),
            )
        return BlackoutConflict(
            **_base_fields(blackout),
            message=f"PTO requests are blocked on {day_names}. Your request includes: {days_list} ({blackout.name})",
            can_override=blackout.allow_emergency_override,
            conflicting_days=conflicting_days,
            restriction_details=RestrictionDetails(
                type="recurring_full_block",
                recurring_days=day_names,
                conflicting_dates=days_list,
                strict=blackout.is_strict,
                override_allowed=blackout.allow_emergency_override,
            ),
        )

    if restriction == RestrictionType.LIMIT_REQUESTS.value:
        return _recurring_limit(db, blackout, conflicting_days, days_list, day_names, exclude_request_id)

    if restriction == RestrictionType.WARNING_ONLY.value:
        return BlackoutWarning(
            **_base_fields(blackout),
            message=(
                f"Note: Your request includes {day_names} which are restricted for {blackout.name}. "
                f"Affected dates: {days_list}"
            ),
            conflicting_days=conflicting_days,
            restriction_details=RestrictionDetails(
                type="recurring_advisory",
                recurring_days=day_names,
                conflicting_dates=days_list,
                requires_justification=True,
            ),
        )

    return _full_block(blackout, is_emergency)


def _recurring_limit(
    db: Session,
    blackout: PtoBlackout,
    conflicting_days: List[str],
    days_list: str,
    day_names: str,
    exclude_request_id: Optional[int]
) -> Finding:
    """
    Slots on a recurring blackout are counted from requests whose first or
    last day falls on one of the restricted weekdays.
    """
    _lock_blackout(db, blackout)

    query = db.query(PtoRequest.start_date, PtoRequest.end_date).filter(
        PtoRequest.status.in_(ACTIVE_REQUEST_STATUSES)
    )
    if exclude_request_id is not None:
        query = query.filter(PtoRequest.id != exclude_request_id)
    if blackout.pto_type_ids:
        query = query.filter(PtoRequest.pto_type_id.in_(blackout.pto_type_ids))

    weekdays = set(blackout.recurring_days or [])
    existing = sum(
        1 for start, end in query.all()
        if sunday_based_weekday(start) in weekdays or sunday_based_weekday(end) in weekdays
    )
    max_allowed = blackout.max_requests_allowed or 0

    if existing >= max_allowed:
        return BlackoutConflict(
            **_base_fields(blackout),
            message=f"Maximum requests ({max_allowed}) reached for {day_names}. Your request affects: {days_list}",
            can_override=blackout.allow_emergency_override,
            conflicting_days=conflicting_days,
            current_count=existing,
            max_allowed=max_allowed,
            restriction_details=RestrictionDetails(
                type="recurring_limit_exceeded",
                recurring_days=day_names,
                conflicting_dates=days_list,
                remaining_slots=0,
            ),
        )
    return BlackoutWarning(
        **_base_fields(blackout),
        message=(
            f"Limited requests on {day_names}. {existing}/{max_allowed} used. "
            f"Your request affects: {days_list}"
        ),
        conflicting_days=conflicting_days,
        current_count=existing,
        max_allowed=max_allowed,
        restriction_details=RestrictionDetails(
            type="recurring_limited_availability",
            recurring_days=day_names,
            conflicting_dates=days_list,
            remaining_slots=max_allowed - existing - 1,
            will_consume_slot=True,
        ),
    )


def _lock_blackout(db: Session, blackout: PtoBlackout) -> None:
    # Serializes count-and-decide per blackout; a no-op on SQLite
    if settings.BLACKOUT_LIMIT_LOCKING:
        db.query(PtoBlackout.id).filter(PtoBlackout.id == blackout.id).with_for_update().first()


def _base_fields(blackout: PtoBlackout) -> dict:
    return {
        "blackout_id": blackout.id,
        "blackout_name": blackout.name,
        "restriction_type": blackout.restriction_type,
        "is_strict": bool(blackout.is_strict),
    }


def validate_and_store(
    db: Session,
    pto_request: PtoRequest,
    is_emergency: bool = False,
    override_reason: Optional[str] = None
) -> BlackoutVerdict:
    """
    Evaluate a stored request and snapshot the verdict onto it

    An emergency request with conflicts moves its override state to
    REQUESTED. The session is flushed, not committed.

    Raises:
        ConfigurationError: If the request has no owning user or PTO type
        TransientStoreError: If the blackout or request stores fail
    """
    user = pto_request.user
    if user is None or pto_request.pto_type_id is None:
        raise ConfigurationError(
            "PTO request is missing its requesting user or PTO type",
            details={"pto_request_id": pto_request.id}
        )

    verdict = validate_pto_request(
        db,
        user,
        pto_request.start_date,
        pto_request.end_date,
        pto_request.pto_type_id,
        is_emergency=is_emergency,
        exclude_request_id=pto_request.id
    )

    pto_request.blackout_conflicts = [c.model_dump(mode="json") for c in verdict.conflicts]
    pto_request.blackout_warnings = [w.model_dump(mode="json") for w in verdict.warnings]
    pto_request.has_blackout_conflicts = verdict.has_conflicts
    pto_request.has_blackout_warnings = verdict.has_warnings
    pto_request.blackout_warnings_acknowledged = False
    pto_request.blackout_acknowledged_by_id = None
    pto_request.blackout_acknowledged_at = None

    if is_emergency and verdict.has_conflicts:
        pto_request.override_status = OverrideStatus.REQUESTED
        pto_request.override_reason = override_reason or "Emergency PTO request with blackout conflicts"

    try:
        db.flush()
    except SQLAlchemyError as e:
        logger.error("storing blackout verdict failed: pto_request_id=%s error=%s", pto_request.id, e)
        raise TransientStoreError(
            "Failed to store blackout verdict",
            details={"pto_request_id": pto_request.id}
        ) from e

    logger.info(
        "blackout verdict stored: pto_request_id=%s user_id=%s conflicts=%s warnings=%s emergency=%s",
        pto_request.id, user.id, len(verdict.conflicts), len(verdict.warnings), is_emergency,
    )
    return verdict


def acknowledge_warnings(db: Session, pto_request: PtoRequest, acting_user: Employee) -> bool:
    """
    Record that the requester has read the blackout warnings

    A request without warnings has nothing to acknowledge and is accepted as-is.
    """
    if not pto_request.has_blackout_warnings:
        return True

    pto_request.blackout_warnings_acknowledged = True
    pto_request.blackout_acknowledged_by_id = acting_user.id
    pto_request.blackout_acknowledged_at = now_utc()
    db.commit()

    logger.info(
        "blackout warnings acknowledged: pto_request_id=%s user_id=%s",
        pto_request.id, acting_user.id,
    )
    return True


def auto_reject_for_blackout(db: Session, pto_request: PtoRequest) -> bool:
    """
    Deny a request that still conflicts with blackout periods

    The request is re-evaluated without the emergency flag. On conflicts it is
    denied with the conflict messages as the reason and its pending balance
    hold is released.

    Returns:
        True if the request was rejected
    """
    verdict = validate_pto_request(
        db,
        pto_request.user,
        pto_request.start_date,
        pto_request.end_date,
        pto_request.pto_type_id,
        exclude_request_id=pto_request.id
    )
    if not verdict.has_conflicts:
        return False

    messages = "\n".join(c.message for c in verdict.conflicts)
    try:
        pto_request.status = PtoRequestStatus.DENIED
        pto_request.denied_at = now_utc()
        pto_request.denial_reason = f"Automatically rejected due to blackout period conflicts:\n{messages}"

        if pto_request.pto_type and pto_request.pto_type.uses_balance:
            release_pending_hold(db, pto_request)

        log_audit(
            db,
            actor_id=None,
            action="PTO_AUTO_REJECT",
            entity_type="pto_requests",
            entity_id=pto_request.id,
            meta={"conflicts": [c.blackout_id for c in verdict.conflicts]}
        )
        db.commit()
    except SQLAlchemyError as e:
        db.rollback()
        logger.error("auto-reject failed: pto_request_id=%s error=%s", pto_request.id, e)
        raise TransientStoreError(
            "Failed to auto-reject PTO request",
            details={"pto_request_id": pto_request.id}
        ) from e

    logger.info(
        "pto request auto-rejected: pto_request_id=%s user_id=%s conflicts=%s",
        pto_request.id, pto_request.user_id, len(verdict.conflicts),
    )
    return True


def can_request_proceed(pto_request: PtoRequest) -> bool:
    has_conflicts = bool(pto_request.has_blackout_conflicts)
    has_warnings = bool(pto_request.has_blackout_warnings)

    if not has_conflicts and not has_warnings:
        return True
    if has_warnings and not has_conflicts:
        return bool(pto_request.blackout_warnings_acknowledged)
    return pto_request.override_status == OverrideStatus.APPROVED


def get_blackout_status_summary(pto_request: PtoRequest) -> BlackoutStatusSummary:
    return BlackoutStatusSummary(
        has_conflicts=bool(pto_request.has_blackout_conflicts),
        has_warnings=bool(pto_request.has_blackout_warnings),
        warnings_acknowledged=bool(pto_request.blackout_warnings_acknowledged),
        has_emergency_override=pto_request.override_status != OverrideStatus.NONE,
        override_approved=pto_request.override_status == OverrideStatus.APPROVED,
        conflicts_summary=[c.get("message", "") for c in (pto_request.blackout_conflicts or [])],
        warnings_summary=[w.get("message", "") for w in (pto_request.blackout_warnings or [])],
        can_proceed=can_request_proceed(pto_request),
    )


def get_approval_recommendation(db: Session, pto_request: PtoRequest) -> ApprovalRecommendation:
    """
    Review guidance for an approver, from a fresh non-emergency evaluation
    """
    verdict = validate_pto_request(
        db,
        pto_request.user,
        pto_request.start_date,
        pto_request.end_date,
        pto_request.pto_type_id,
        exclude_request_id=pto_request.id
    )
    recommendation = ApprovalRecommendation()

    if verdict.has_conflicts:
        recommendation.action = "careful_review"
        recommendation.priority = "high"
        recommendation.reasoning.append("Request conflicts with blackout periods")

        for conflict in verdict.conflicts:
            if conflict.is_strict:
                recommendation.action = "likely_deny"
                recommendation.priority = "urgent"
                recommendation.reasoning.append(f"Conflicts with strict blackout: {conflict.blackout_name}")
            if not conflict.can_override:
                recommendation.considerations.append(f"No override permitted for: {conflict.blackout_name}")

    for warning in verdict.warnings:
        if warning.restriction_details.will_consume_slot:
            recommendation.considerations.append(f"Will consume limited slot for: {warning.blackout_name}")
        if warning.restriction_details.requires_justification:
            recommendation.considerations.append(f"Business justification required for: {warning.blackout_name}")

    return recommendation
