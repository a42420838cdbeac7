"""
API tests for PTO submission, override decisions, blackouts and hierarchy endpoints
"""
from datetime import date
from app.core.security import create_access_token
from app.models.pto import PtoApproval, PtoBalance, PtoRequest, PtoRequestStatus

PTO_URL = "/api/v1/pto-requests"


def _payload(pto_type, start, end, **extra):
    payload = {
        "pto_type_id": pto_type.id,
        "start_date": start.isoformat(),
        "end_date": end.isoformat(),
    }
    payload.update(extra)
    return payload


def test_submit_creates_chain_and_hold(client, db, auth_headers, employee, manager, pto_type):
    # Mon Mar 1 - Fri Mar 5
    response = client.post(
        PTO_URL,
        json=_payload(pto_type, date(2027, 3, 1), date(2027, 3, 5), reason="Family trip"),
        headers=auth_headers(employee),
    )

    assert response.status_code == 201
    data = response.json()
    request_id = data["request"]["id"]
    assert data["message"] == "PTO request submitted successfully."
    assert data["request"]["status"] == "pending"
    assert data["request"]["request_number"] == f"PTO-{employee.id}-{request_id:06d}"
    assert [a["approver_id"] for a in data["request"]["approvals"]] == [manager.id]
    assert data["verdict"]["can_submit"] is True

    balance = db.query(PtoBalance).filter(PtoBalance.user_id == employee.id).one()
    assert float(balance.pending_balance) == 5.0


def test_submit_skips_weekends_inside_range(client, db, auth_headers, employee, pto_type):
    # Fri Mar 5 - Mon Mar 8
    response = client.post(
        PTO_URL,
        json=_payload(pto_type, date(2027, 3, 5), date(2027, 3, 8)),
        headers=auth_headers(employee),
    )

    assert response.status_code == 201
    assert float(response.json()["request"]["total_days"]) == 2.0


def test_submit_with_conflict_is_rejected_and_not_stored(
    client, db, auth_headers, employee, pto_type, make_blackout
):
    make_blackout(start_date=date(2027, 12, 20), end_date=date(2027, 12, 31))

    response = client.post(
        PTO_URL,
        json=_payload(pto_type, date(2027, 12, 21), date(2027, 12, 22)),
        headers=auth_headers(employee),
    )

    assert response.status_code == 422
    body = response.json()
    assert body["error_code"] == "BLACKOUT_CONFLICT"
    assert body["details"]["conflicts"][0]["blackout_name"] == "Year End Freeze"
    assert db.query(PtoRequest).count() == 0
    assert db.query(PtoApproval).count() == 0


def test_emergency_submission_then_override_decision(
    client, db, auth_headers, employee, hr_user, pto_type, make_blackout
):
    make_blackout(start_date=date(2027, 12, 20), end_date=date(2027, 12, 31))

    response = client.post(
        PTO_URL,
        json=_payload(
            pto_type, date(2027, 12, 21), date(2027, 12, 22),
            is_emergency_override=True, reason="Family emergency",
        ),
        headers=auth_headers(employee),
    )

    assert response.status_code == 201
    data = response.json()
    request_id = data["request"]["id"]
    assert data["request"]["override_status"] == "requested"
    assert data["request"]["override_reason"] == "Family emergency"
    assert data["message"].endswith("Emergency override applied due to blackout conflicts.")

    forbidden = client.post(
        f"{PTO_URL}/{request_id}/override-decision",
        json={"approved": True},
        headers=auth_headers(employee),
    )
    assert forbidden.status_code == 403

    decided = client.post(
        f"{PTO_URL}/{request_id}/override-decision",
        json={"approved": True},
        headers=auth_headers(hr_user),
    )
    assert decided.status_code == 200
    assert decided.json()["success"] is True

    again = client.post(
        f"{PTO_URL}/{request_id}/override-decision",
        json={"approved": False},
        headers=auth_headers(hr_user),
    )
    assert again.status_code == 422

    status_response = client.get(f"{PTO_URL}/{request_id}/blackout-status", headers=auth_headers(employee))
    assert status_response.json()["override_approved"] is True
    assert status_response.json()["can_proceed"] is True


def test_submit_acknowledging_warnings(client, auth_headers, employee, pto_type, make_blackout):
    make_blackout(name="Audit Week", restriction_type="warning_only",
                  start_date=date(2027, 3, 10), end_date=date(2027, 3, 10))

    response = client.post(
        PTO_URL,
        json=_payload(pto_type, date(2027, 3, 10), date(2027, 3, 10), acknowledge_warnings=True),
        headers=auth_headers(employee),
    )

    assert response.status_code == 201
    data = response.json()
    assert data["request"]["has_blackout_warnings"] is True
    assert data["request"]["blackout_warnings_acknowledged"] is True
    assert data["message"].endswith("Note: Request has blackout period warnings.")


def test_manager_approves_and_stranger_cannot(
    client, auth_headers, make_employee, employee, manager, pto_type
):
    submitted = client.post(
        PTO_URL,
        json=_payload(pto_type, date(2027, 3, 1), date(2027, 3, 1)),
        headers=auth_headers(employee),
    ).json()
    request_id = submitted["request"]["id"]
    stranger = make_employee("EMP500")

    denied = client.post(f"{PTO_URL}/{request_id}/approve", json={}, headers=auth_headers(stranger))
    assert denied.status_code == 403
    assert denied.json()["error_code"] == "APPROVAL_NOT_ALLOWED"

    hidden = client.get(f"{PTO_URL}/{request_id}", headers=auth_headers(stranger))
    assert hidden.status_code == 403

    approved = client.post(
        f"{PTO_URL}/{request_id}/approve",
        json={"comments": "Enjoy"},
        headers=auth_headers(manager),
    )
    assert approved.status_code == 200
    assert approved.json()["status"] == "approved"
    assert approved.json()["approvals"][0]["comments"] == "Enjoy"

    replay = client.post(f"{PTO_URL}/{request_id}/approve", json={}, headers=auth_headers(manager))
    assert replay.status_code == 409


def test_deny_requires_comments(client, auth_headers, employee, manager, pto_type):
    submitted = client.post(
        PTO_URL,
        json=_payload(pto_type, date(2027, 3, 1), date(2027, 3, 1)),
        headers=auth_headers(employee),
    ).json()
    request_id = submitted["request"]["id"]

    missing = client.post(f"{PTO_URL}/{request_id}/deny", json={}, headers=auth_headers(manager))
    assert missing.status_code == 422

    denied = client.post(
        f"{PTO_URL}/{request_id}/deny",
        json={"comments": "Release week"},
        headers=auth_headers(manager),
    )
    assert denied.status_code == 200
    assert denied.json()["status"] == "denied"
    assert denied.json()["denial_reason"] == "Release week"


def test_preview_blackouts(client, auth_headers, employee, manager, hr_user, pto_type, make_blackout):
    make_blackout(name="Audit Week", restriction_type="warning_only",
                  start_date=date(2027, 3, 10), end_date=date(2027, 3, 10))
    preview = {"pto_type_id": pto_type.id, "start_date": "2027-03-08", "end_date": "2027-03-12"}

    own = client.post(f"{PTO_URL}/preview-blackouts", json=preview, headers=auth_headers(employee))
    assert own.status_code == 200
    assert own.json()["can_submit"] is True
    assert own.json()["requires_acknowledgment"] is True
    assert own.json()["warnings"][0]["type"] == "warning"

    other = client.post(
        f"{PTO_URL}/preview-blackouts",
        params={"user_id": manager.id},
        json=preview,
        headers=auth_headers(employee),
    )
    assert other.status_code == 403

    on_behalf = client.post(
        f"{PTO_URL}/preview-blackouts",
        params={"user_id": employee.id},
        json=preview,
        headers=auth_headers(hr_user),
    )
    assert on_behalf.status_code == 200

    assert client.post(f"{PTO_URL}/preview-blackouts", json=preview).status_code in (401, 403)


def test_create_and_list_blackouts(client, auth_headers, employee, hr_user):
    body = {
        "name": "Friday Coverage",
        "is_company_wide": True,
        "is_recurring": True,
        "recurring_days": [5],
    }

    forbidden = client.post("/api/v1/blackouts", json=body, headers=auth_headers(employee))
    assert forbidden.status_code == 403

    created = client.post("/api/v1/blackouts", json=body, headers=auth_headers(hr_user))
    assert created.status_code == 201
    assert created.json()["formatted_date_range"] == "Every Friday"
    assert created.json()["restriction_type"] == "full_block"

    invalid = client.post(
        "/api/v1/blackouts",
        json={"name": "Broken", "is_recurring": True, "recurring_days": [7]},
        headers=auth_headers(hr_user),
    )
    assert invalid.status_code == 400

    listed = client.get("/api/v1/blackouts", headers=auth_headers(employee))
    assert [b["name"] for b in listed.json()] == ["Friday Coverage"]

    mine = client.get(
        "/api/v1/blackouts/me",
        params={"from": "2027-01-11", "to": "2027-01-15"},
        headers=auth_headers(employee),
    )
    assert [b["name"] for b in mine.json()] == ["Friday Coverage"]

    missing = client.get("/api/v1/blackouts/999", headers=auth_headers(employee))
    assert missing.status_code == 404


def test_change_manager_endpoint(client, db, auth_headers, make_employee, employee, manager, hr_user, pto_type):
    new_manager = make_employee("MGR700", role="MANAGER")
    client.post(
        PTO_URL,
        json=_payload(pto_type, date(2027, 3, 1), date(2027, 3, 1)),
        headers=auth_headers(employee),
    )

    summary = client.get(
        f"/api/v1/hierarchy/employees/{employee.id}/pending-approvals",
        headers=auth_headers(hr_user),
    )
    assert summary.json() == {
        "total_pending_approvals": 1,
        "affected_requests": 1,
        "affected_users": [employee.id],
    }

    forbidden = client.put(
        f"/api/v1/hierarchy/employees/{employee.id}/manager",
        json={"new_manager_id": new_manager.id},
        headers=auth_headers(employee),
    )
    assert forbidden.status_code == 403

    changed = client.put(
        f"/api/v1/hierarchy/employees/{employee.id}/manager",
        json={"new_manager_id": new_manager.id},
        headers=auth_headers(hr_user),
    )
    assert changed.status_code == 200
    assert changed.json() == {"transferred": 1}
    approver_ids = [a.approver_id for a in db.query(PtoApproval).all()]
    assert approver_ids == [new_manager.id]


def test_transfer_approvals_endpoint_rejects_same_user(client, auth_headers, hr_user, manager):
    response = client.post(
        "/api/v1/hierarchy/transfer-approvals",
        json={"from_user_id": manager.id, "to_user_id": manager.id},
        headers=auth_headers(hr_user),
    )

    assert response.status_code == 422


def test_list_my_requests(client, auth_headers, employee, manager, pto_type, make_request):
    make_request(employee, pto_type, date(2027, 3, 1), date(2027, 3, 1))
    make_request(employee, pto_type, date(2027, 4, 1), date(2027, 4, 1), status=PtoRequestStatus.DENIED)
    make_request(manager, pto_type, date(2027, 3, 1), date(2027, 3, 1))

    everything = client.get(f"{PTO_URL}/my", headers=auth_headers(employee))
    assert everything.status_code == 200
    assert len(everything.json()) == 2
    assert all(r["user_id"] == employee.id for r in everything.json())

    denied = client.get(f"{PTO_URL}/my", params={"status": "denied"}, headers=auth_headers(employee))
    assert [r["start_date"] for r in denied.json()] == ["2027-04-01"]


def test_token_must_resolve_to_active_employee(client, auth_headers, make_employee):
    bad_token = client.get(f"{PTO_URL}/my", headers={"Authorization": "Bearer not-a-jwt"})
    assert bad_token.status_code == 401

    departed = make_employee("EMP600", active=False)
    inactive = client.get(f"{PTO_URL}/my", headers=auth_headers(departed))
    assert inactive.status_code == 403

    unknown = client.get(
        f"{PTO_URL}/my",
        headers={"Authorization": f"Bearer {create_access_token({'sub': '99999'})}"},
    )
    assert unknown.status_code == 401
