"""Project endpoints: listing, status changes, milestone toggles and dashboard stats."""

import pytest

BASE = "/api/v1/projects"


@pytest.mark.asyncio
async def test_list_projects_for_client(
    test_client, db_session, client_user, user_factory, project_factory, bearer_headers
):
    other = await user_factory()
    await project_factory(client_user.user_id, name="Mine", status="active")
    await project_factory(other.user_id, name="Theirs")
    await db_session.commit()

    resp = await test_client.get(f"{BASE}/", headers=bearer_headers(client_user.user_id))

    assert resp.status_code == 200
    body = resp.json()
    assert [p["name"] for p in body["projects"]] == ["Mine"]
    assert len(body["projects"][0]["milestones"]) == 4
    assert body["stats"]["total"] == 1
    assert body["stats"]["active"] == 1


@pytest.mark.asyncio
async def test_status_change_and_illegal_transition(
    test_client, db_session, client_user, admin_user, project_factory, bearer_headers,
    gateway,
):
    project = await project_factory(client_user.user_id, status="active")
    await db_session.commit()
    url = f"{BASE}/{project.project_id}/status"
    staff = bearer_headers(admin_user.user_id)

    completed = await test_client.patch(url, json={"status": "completed"}, headers=staff)
    assert completed.status_code == 200
    assert completed.json()["status"] == "completed"
    assert completed.json()["completed_at"] is not None
    assert gateway.events() == ["project_completed"]

    reopened = await test_client.patch(url, json={"status": "active"}, headers=staff)
    assert reopened.status_code == 409

    unknown = await test_client.patch(url, json={"status": "done"}, headers=staff)
    assert unknown.status_code == 422


@pytest.mark.asyncio
async def test_client_cannot_change_status(
    test_client, db_session, client_user, project_factory, bearer_headers
):
    project = await project_factory(client_user.user_id, status="active")
    await db_session.commit()

    resp = await test_client.patch(
        f"{BASE}/{project.project_id}/status",
        json={"status": "paused"},
        headers=bearer_headers(client_user.user_id),
    )
    assert resp.status_code == 403


@pytest.mark.asyncio
async def test_toggle_milestone(
    test_client, db_session, client_user, admin_user, project_factory, bearer_headers
):
    project = await project_factory(client_user.user_id)
    await db_session.commit()
    project_id = str(project.project_id)
    milestone_id = str(project.milestones[0].milestone_id)
    staff = bearer_headers(admin_user.user_id)

    resp = await test_client.patch(
        f"{BASE}/milestones/{milestone_id}", json={"completed": True}, headers=staff
    )

    assert resp.status_code == 200
    assert resp.json() == {
        "milestone_id": milestone_id,
        "project_id": project_id,
        "completed": True,
        "progress": 25,
    }

    detail = await test_client.get(f"{BASE}/{project_id}", headers=staff)
    assert detail.json()["progress"] == 25
    assert detail.json()["milestones"][0]["completed"] is True


@pytest.mark.asyncio
async def test_dashboard_stats(
    test_client, db_session, client_user, admin_user, project_factory, bearer_headers
):
    await project_factory(client_user.user_id, status="active")
    await db_session.commit()

    staff = await test_client.get(
        f"{BASE}/stats", headers=bearer_headers(admin_user.user_id)
    )
    assert staff.status_code == 200
    assert staff.json()["total"] == 1
    assert staff.json()["active"] == 1

    client = await test_client.get(
        f"{BASE}/stats", headers=bearer_headers(client_user.user_id)
    )
    assert client.status_code == 403


@pytest.mark.asyncio
async def test_unknown_project(test_client, admin_user, bearer_headers):
    resp = await test_client.get(
        f"{BASE}/00000000-0000-0000-0000-000000000000",
        headers=bearer_headers(admin_user.user_id),
    )
    assert resp.status_code == 404
    assert resp.json()["detail"]["message"] == "Project not found"
