"""Intake endpoints: status codes, envelopes and the review workflow over HTTP."""

import pytest

BASE = "/api/v1/intakes"

VALID_BODY = {
    "service_type": "erp_ecommerce",
    "company_name": "Corner Shop",
    "segment": "Retail",
    "objectives": "Sell online and sync stock with the physical store.",
}


@pytest.mark.asyncio
async def test_anonymous_request_is_rejected(test_client):
    resp = await test_client.get(f"{BASE}/")
    assert resp.status_code == 401
    detail = resp.json()["detail"]
    assert detail["success"] is False
    assert detail["message"] == "Authentication required"


@pytest.mark.asyncio
async def test_invalid_jwt_is_rejected(test_client):
    resp = await test_client.get(
        f"{BASE}/", headers={"Authorization": "Bearer not-a-jwt"}
    )
    assert resp.status_code == 401
    assert resp.json()["detail"]["message"] == "Invalid JWT"


@pytest.mark.asyncio
async def test_client_creates_and_submits(
    test_client, client_user, admin_user, bearer_headers, gateway
):
    headers = bearer_headers(client_user.user_id)

    resp = await test_client.post(
        f"{BASE}/", json={**VALID_BODY, "submit": True}, headers=headers
    )

    assert resp.status_code == 201
    body = resp.json()
    assert body["status"] == "submitted"
    assert body["service_type"] == "erp_ecommerce"
    assert body["user_id"] == str(client_user.user_id)
    assert gateway.events() == ["new_intake"]


@pytest.mark.asyncio
async def test_draft_then_submit(test_client, client_user, bearer_headers):
    headers = bearer_headers(client_user.user_id)

    created = await test_client.post(
        f"{BASE}/", json={"company_name": "Corner Shop"}, headers=headers
    )
    assert created.status_code == 201
    intake_id = created.json()["intake_id"]

    incomplete = await test_client.post(f"{BASE}/{intake_id}/submit", headers=headers)
    assert incomplete.status_code == 422
    assert incomplete.json()["detail"]["errors"]


@pytest.mark.asyncio
async def test_incomplete_submission_lists_errors(
    test_client, client_user, bearer_headers
):
    resp = await test_client.post(
        f"{BASE}/",
        json={"company_name": "X", "submit": True},
        headers=bearer_headers(client_user.user_id),
    )
    assert resp.status_code == 422
    detail = resp.json()["detail"]
    assert detail["message"] == "Intake is incomplete"
    assert "service_type is required" in detail["errors"]


@pytest.mark.asyncio
async def test_list_is_scoped_and_includes_stats(
    test_client, db_session, client_user, admin_user, user_factory, intake_factory,
    bearer_headers,
):
    other = await user_factory()
    await intake_factory(client_user.user_id, company_name="Mine")
    await intake_factory(other.user_id, company_name="Theirs")
    await db_session.commit()

    own = await test_client.get(f"{BASE}/", headers=bearer_headers(client_user.user_id))
    assert own.status_code == 200
    assert [i["company_name"] for i in own.json()["intakes"]] == ["Mine"]
    assert own.json()["stats"]["total"] == 1

    staff = await test_client.get(
        f"{BASE}/", params={"search": "theirs"}, headers=bearer_headers(admin_user.user_id)
    )
    assert [i["company_name"] for i in staff.json()["intakes"]] == ["Theirs"]
    assert staff.json()["stats"]["total"] == 2


@pytest.mark.asyncio
async def test_other_clients_intake_is_not_found(
    test_client, db_session, user_factory, intake_factory, bearer_headers
):
    owner = await user_factory()
    stranger = await user_factory()
    intake = await intake_factory(owner.user_id)
    await db_session.commit()

    resp = await test_client.get(
        f"{BASE}/{intake.intake_id}", headers=bearer_headers(stranger.user_id)
    )
    assert resp.status_code == 404


@pytest.mark.asyncio
async def test_approval_workflow(
    test_client, db_session, client_user, admin_user, intake_factory, bearer_headers,
    gateway,
):
    intake = await intake_factory(client_user.user_id)
    await db_session.commit()
    intake_id = str(intake.intake_id)
    staff = bearer_headers(admin_user.user_id)

    analyzed = await test_client.post(f"{BASE}/{intake_id}/analyze", headers=staff)
    assert analyzed.status_code == 200
    assert analyzed.json()["status"] == "under_review"

    approved = await test_client.post(f"{BASE}/{intake_id}/approve", headers=staff)
    assert approved.status_code == 201
    project = approved.json()
    assert project["intake_id"] == intake_id
    assert project["progress"] == 0
    assert [m["name"] for m in project["milestones"]] == [
        "Planning",
        "Development",
        "Testing",
        "Delivery",
    ]
    assert "intake_approved" in gateway.events()

    again = await test_client.post(f"{BASE}/{intake_id}/approve", headers=staff)
    assert again.status_code == 409

    detail = await test_client.get(f"{BASE}/{intake_id}", headers=staff)
    assert detail.json()["status"] == "approved"
    assert detail.json()["project_id"] == project["project_id"]


@pytest.mark.asyncio
async def test_client_cannot_approve(
    test_client, db_session, client_user, intake_factory, bearer_headers
):
    intake = await intake_factory(client_user.user_id)
    await db_session.commit()

    resp = await test_client.post(
        f"{BASE}/{intake.intake_id}/approve",
        headers=bearer_headers(client_user.user_id),
    )
    assert resp.status_code == 403
    assert resp.json()["detail"]["message"] == "Staff role required"


@pytest.mark.asyncio
@pytest.mark.parametrize(
    "reason,expected_status",
    [("x" * 5, 422), ("x" * 501, 422), ("x" * 50, 200)],
)
async def test_reject_reason_length(
    test_client, db_session, client_user, admin_user, intake_factory, bearer_headers,
    reason, expected_status,
):
    intake = await intake_factory(client_user.user_id)
    await db_session.commit()

    resp = await test_client.post(
        f"{BASE}/{intake.intake_id}/reject",
        json={"reason": reason},
        headers=bearer_headers(admin_user.user_id),
    )
    assert resp.status_code == expected_status
    if expected_status == 200:
        assert resp.json()["status"] == "rejected"
        assert resp.json()["rejection_reason"] == reason


@pytest.mark.asyncio
async def test_generic_update_refuses_decisions(
    test_client, db_session, client_user, admin_user, intake_factory, bearer_headers
):
    intake = await intake_factory(client_user.user_id)
    await db_session.commit()

    resp = await test_client.patch(
        f"{BASE}/{intake.intake_id}/status",
        json={"status": "approved"},
        headers=bearer_headers(admin_user.user_id),
    )
    assert resp.status_code == 409
    assert "submitted -> approved" in resp.json()["detail"]["message"]


@pytest.mark.asyncio
async def test_draft_edited_then_submitted(
    test_client, client_user, admin_user, bearer_headers, gateway
):
    headers = bearer_headers(client_user.user_id)
    created = await test_client.post(
        f"{BASE}/", json={"company_name": "Corner Shop"}, headers=headers
    )
    intake_id = created.json()["intake_id"]

    saved = await test_client.patch(
        f"{BASE}/{intake_id}",
        json={
            "service_type": "erp_ecommerce",
            "segment": "Retail",
            "objectives": "Sell online and sync stock with the physical store.",
        },
        headers=headers,
    )
    assert saved.status_code == 200
    assert saved.json()["status"] == "draft"
    assert saved.json()["company_name"] == "Corner Shop"
    assert saved.json()["segment"] == "Retail"

    submitted = await test_client.post(f"{BASE}/{intake_id}/submit", headers=headers)
    assert submitted.status_code == 200
    assert submitted.json()["status"] == "submitted"
    assert gateway.events() == ["new_intake"]


@pytest.mark.asyncio
async def test_draft_edit_errors(
    test_client, db_session, client_user, user_factory, intake_factory, bearer_headers
):
    stranger = await user_factory()
    draft = await intake_factory(client_user.user_id, status="draft")
    submitted = await intake_factory(client_user.user_id)
    await db_session.commit()
    draft_id, submitted_id = draft.intake_id, submitted.intake_id

    anonymous = await test_client.patch(f"{BASE}/{draft_id}", json={"budget": "1k"})
    assert anonymous.status_code == 401

    foreign = await test_client.patch(
        f"{BASE}/{draft_id}",
        json={"budget": "1k"},
        headers=bearer_headers(stranger.user_id),
    )
    assert foreign.status_code == 403

    locked = await test_client.patch(
        f"{BASE}/{submitted_id}",
        json={"budget": "1k"},
        headers=bearer_headers(client_user.user_id),
    )
    assert locked.status_code == 409
    assert locked.json()["detail"]["message"] == "Only draft intakes can be edited"

    bad_type = await test_client.patch(
        f"{BASE}/{draft_id}",
        json={"service_type": "spaceship"},
        headers=bearer_headers(client_user.user_id),
    )
    assert bad_type.status_code == 422
