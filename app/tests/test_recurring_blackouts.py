"""
Tests for recurring (weekday-based) blackouts
"""
from datetime import date
from app.models.pto import PtoRequestStatus
from app.services.blackout_catalog_service import (
    conflicts_with_date,
    format_date_range,
    get_active_recurring,
    recurring_day_names,
)
from app.services.blackout_service import validate_pto_request
from app.utils.datetime_utils import sunday_based_weekday

FRIDAY = 5


def test_weekday_numbering_starts_on_sunday():
    assert sunday_based_weekday(date(2027, 1, 3)) == 0  # Sunday
    assert sunday_based_weekday(date(2027, 1, 15)) == FRIDAY
    assert sunday_based_weekday(date(2027, 1, 16)) == 6  # Saturday


def test_five_day_request_spanning_one_friday(db, employee, pto_type, make_blackout):
    make_blackout(name="Friday Coverage", is_recurring=True, recurring_days=[FRIDAY])

    # Mon Jan 11 - Fri Jan 15
    verdict = validate_pto_request(db, employee, date(2027, 1, 11), date(2027, 1, 15), pto_type.id)

    assert len(verdict.conflicts) == 1
    conflict = verdict.conflicts[0]
    assert conflict.conflicting_days == ["Friday, Jan 15"]
    assert conflict.message == (
        "PTO requests are blocked on Friday. Your request includes: Friday, Jan 15 (Friday Coverage)"
    )
    assert conflict.restriction_details.type == "recurring_full_block"
    assert conflict.restriction_details.recurring_days == "Friday"
    assert conflict.restriction_details.conflicting_dates == "Friday, Jan 15"


def test_request_without_restricted_weekday_is_clear(db, employee, pto_type, make_blackout):
    make_blackout(is_recurring=True, recurring_days=[FRIDAY])

    # Mon Jan 11 - Thu Jan 14
    verdict = validate_pto_request(db, employee, date(2027, 1, 11), date(2027, 1, 14), pto_type.id)

    assert verdict.conflicts == []
    assert verdict.warnings == []


def test_every_matching_day_is_listed(db, employee, pto_type, make_blackout):
    make_blackout(is_recurring=True, recurring_days=[1, FRIDAY], restriction_type="warning_only", name="Standups")

    # Fri Jan 1 - Mon Jan 11
    verdict = validate_pto_request(db, employee, date(2027, 1, 1), date(2027, 1, 11), pto_type.id)

    warning = verdict.warnings[0]
    assert warning.conflicting_days == ["Friday, Jan 01", "Monday, Jan 04", "Friday, Jan 08", "Monday, Jan 11"]
    assert warning.restriction_details.type == "recurring_advisory"
    assert warning.message.startswith("Note: Your request includes Monday, Friday which are restricted for Standups.")


def test_recurring_emergency_override_warning(db, employee, pto_type, make_blackout):
    make_blackout(name="Friday Coverage", is_recurring=True, recurring_days=[FRIDAY], allow_emergency_override=True)

    verdict = validate_pto_request(db, employee, date(2027, 1, 15), date(2027, 1, 15), pto_type.id, is_emergency=True)

    assert verdict.conflicts == []
    warning = verdict.warnings[0]
    assert warning.message == "Emergency override applied for recurring blackout on Friday, Jan 15 (Friday Coverage)"
    assert warning.restriction_details.type == "recurring_emergency_override"


def test_effective_window_limits_recurring_blackout(db, employee, pto_type, make_blackout):
    blackout = make_blackout(
        is_recurring=True,
        recurring_days=[FRIDAY],
        recurring_start_date=date(2027, 2, 1),
        recurring_end_date=date(2027, 2, 28),
    )

    assert get_active_recurring(db, date(2027, 1, 11), date(2027, 1, 15)) == []
    assert get_active_recurring(db, date(2027, 2, 1), date(2027, 2, 5)) == [blackout]
    assert conflicts_with_date(blackout, date(2027, 1, 15)) is False
    assert conflicts_with_date(blackout, date(2027, 2, 5)) is True
    assert validate_pto_request(db, employee, date(2027, 1, 11), date(2027, 1, 15), pto_type.id).conflicts == []


def test_recurring_limit_counts_requests_starting_or_ending_on_weekday(
    db, make_employee, manager, pto_type, make_blackout, make_request
):
    make_blackout(name="Friday Cap", is_recurring=True, recurring_days=[FRIDAY],
                  restriction_type="limit_requests", max_requests_allowed=2)
    colleague = make_employee("EMP201", manager=manager)
    requester = make_employee("EMP202", manager=manager)
    # ends on a Friday: counted
    make_request(colleague, pto_type, date(2027, 3, 1), date(2027, 3, 5))
    # spans a Friday but starts Thursday and ends Monday: not counted
    make_request(colleague, pto_type, date(2027, 3, 11), date(2027, 3, 15))
    # denied: not counted
    make_request(colleague, pto_type, date(2027, 3, 19), date(2027, 3, 19), status=PtoRequestStatus.DENIED)

    verdict = validate_pto_request(db, requester, date(2027, 1, 15), date(2027, 1, 15), pto_type.id)

    warning = verdict.warnings[0]
    assert warning.current_count == 1
    assert warning.restriction_details.type == "recurring_limited_availability"
    assert warning.restriction_details.remaining_slots == 0
    assert warning.message == "Limited requests on Friday. 1/2 used. Your request affects: Friday, Jan 15"

    make_request(colleague, pto_type, date(2027, 4, 2), date(2027, 4, 2))
    verdict = validate_pto_request(db, requester, date(2027, 1, 15), date(2027, 1, 15), pto_type.id)

    conflict = verdict.conflicts[0]
    assert conflict.restriction_details.type == "recurring_limit_exceeded"
    assert conflict.message == "Maximum requests (2) reached for Friday. Your request affects: Friday, Jan 15"


def test_format_recurring_date_range(make_blackout):
    ongoing = make_blackout(is_recurring=True, recurring_days=[FRIDAY])
    windowed = make_blackout(
        is_recurring=True,
        recurring_days=[1, 3],
        recurring_start_date=date(2027, 1, 1),
    )

    assert format_date_range(ongoing) == "Every Friday"
    assert format_date_range(windowed) == "Every Monday, Wednesday (Effective: Jan 01, 2027 - Ongoing)"
    assert recurring_day_names(windowed) == ["Monday", "Wednesday"]
