"""
Tests for projects: date validation, visibility, CRUD, archiving and members.
"""

from __future__ import annotations

from datetime import date

import pytest
from httpx import AsyncClient
from pydantic import ValidationError

from taskboard_shared.schemas.projects import (
    ProjectCreate,
    ProjectUpdate,
    progress_percentage,
    validate_date_range,
)


# ---------------------------------------------------------------------------
# Unit tests: schema rules
# ---------------------------------------------------------------------------


class TestDateRange:
    def test_open_ranges_are_valid(self):
        assert validate_date_range(None, None) == (True, "")
        assert validate_date_range(date(2024, 1, 1), None) == (True, "")

    def test_same_day_is_valid(self):
        assert validate_date_range(date(2024, 1, 1), date(2024, 1, 1))[0]

    def test_end_before_start_is_invalid(self):
        ok, msg = validate_date_range(date(2024, 2, 1), date(2024, 1, 1))
        assert not ok
        assert "end date" in msg

    def test_create_rejects_inverted_dates(self):
        with pytest.raises(ValidationError):
            ProjectCreate(title="x", start_date=date(2024, 2, 1), end_date=date(2024, 1, 1))

    def test_update_rejects_inverted_dates(self):
        with pytest.raises(ValidationError):
            ProjectUpdate(start_date=date(2024, 2, 1), end_date=date(2024, 1, 1))


class TestProgress:
    def test_no_tasks(self):
        assert progress_percentage(0, 0) == 0

    def test_rounds_to_two_places(self):
        assert progress_percentage(3, 1) == 33.33

    def test_all_done(self):
        assert progress_percentage(4, 4) == 100


# ---------------------------------------------------------------------------
# Integration tests: endpoints
# ---------------------------------------------------------------------------


async def _create(client: AsyncClient, headers, **body) -> dict:
    resp = await client.post("/api/v1/projects", json={"title": "Website", **body}, headers=headers)
    assert resp.status_code == 201, resp.text
    return resp.json()["data"]


class TestProjectEndpoints:
    @pytest.mark.asyncio
    async def test_create_adds_creator_and_manager_as_members(self, client: AsyncClient, world):
        project = await _create(
            client, world.admin.headers, manager_id=str(world.manager.user.id)
        )
        assert project["status"] == "planning"
        assert project["visibility"] == "public"
        assert project["manager"]["id"] == str(world.manager.user.id)
        member_ids = {m["id"] for m in project["members"]}
        assert member_ids == {str(world.admin.user.id), str(world.manager.user.id)}
        assert project["tasks_count"] == 0
        assert project["progress_percentage"] == 0

    @pytest.mark.asyncio
    async def test_member_cannot_create(self, client: AsyncClient, world):
        resp = await client.post(
            "/api/v1/projects", json={"title": "Nope"}, headers=world.member.headers
        )
        assert resp.status_code == 403
        assert resp.json()["error"]["code"] == "FORBIDDEN"

    @pytest.mark.asyncio
    async def test_create_validates_dates(self, client: AsyncClient, world):
        resp = await client.post(
            "/api/v1/projects",
            json={"title": "x", "start_date": "2024-02-01", "end_date": "2024-01-01"},
            headers=world.manager.headers,
        )
        assert resp.status_code == 422
        assert resp.json()["error"]["code"] == "VALIDATION_ERROR"

    @pytest.mark.asyncio
    async def test_private_project_hidden_from_non_members(self, client: AsyncClient, world):
        project = await _create(client, world.manager.headers, visibility="private")
        await _create(client, world.manager.headers, title="Open")

        resp = await client.get("/api/v1/projects", headers=world.member.headers)
        titles = [p["title"] for p in resp.json()["data"]]
        assert titles == ["Open"]

        resp = await client.get(f"/api/v1/projects/{project['id']}", headers=world.member.headers)
        assert resp.status_code == 404

    @pytest.mark.asyncio
    async def test_private_project_visible_to_members(self, client: AsyncClient, world):
        project = await _create(client, world.manager.headers, visibility="private")
        resp = await client.post(
            f"/api/v1/projects/{project['id']}/members",
            json={"user_id": str(world.member.user.id)},
            headers=world.manager.headers,
        )
        assert resp.status_code == 201

        resp = await client.get(f"/api/v1/projects/{project['id']}", headers=world.member.headers)
        assert resp.status_code == 200

    @pytest.mark.asyncio
    async def test_other_org_gets_not_found(self, client: AsyncClient, world):
        project = await _create(client, world.manager.headers)
        resp = await client.get(
            f"/api/v1/projects/{project['id']}", headers=world.outsider.headers
        )
        assert resp.status_code == 404

    @pytest.mark.asyncio
    async def test_list_filters_sorting_and_pagination(self, client: AsyncClient, world):
        for title in ("Charlie", "Alpha", "Bravo"):
            await _create(client, world.manager.headers, title=title, status="active")
        await _create(client, world.manager.headers, title="Delta")

        resp = await client.get(
            "/api/v1/projects",
            params={"status": "active", "sort_by": "title", "sort_direction": "asc", "per_page": 2},
            headers=world.member.headers,
        )
        body = resp.json()
        assert [p["title"] for p in body["data"]] == ["Alpha", "Bravo"]
        assert body["meta"] == {"page": 1, "per_page": 2, "total": 3, "total_pages": 2}

        resp = await client.get(
            "/api/v1/projects", params={"search": "elt"}, headers=world.member.headers
        )
        assert [p["title"] for p in resp.json()["data"]] == ["Delta"]

    @pytest.mark.asyncio
    async def test_update(self, client: AsyncClient, world):
        project = await _create(client, world.manager.headers)
        resp = await client.put(
            f"/api/v1/projects/{project['id']}",
            json={"title": "Website v2", "status": "active"},
            headers=world.manager.headers,
        )
        assert resp.status_code == 200
        data = resp.json()["data"]
        assert data["title"] == "Website v2"
        assert data["status"] == "active"

    @pytest.mark.asyncio
    async def test_update_rejects_end_before_existing_start(self, client: AsyncClient, world):
        project = await _create(client, world.manager.headers, start_date="2024-03-01")
        resp = await client.put(
            f"/api/v1/projects/{project['id']}",
            json={"end_date": "2024-02-01"},
            headers=world.manager.headers,
        )
        assert resp.status_code == 422
        assert "end_date" in resp.json()["error"]["details"]

    @pytest.mark.asyncio
    async def test_update_ignores_null_for_required_fields(self, client: AsyncClient, world):
        project = await _create(
            client, world.manager.headers, description="Old copy", start_date="2024-03-01"
        )
        resp = await client.put(
            f"/api/v1/projects/{project['id']}",
            json={
                "title": None,
                "status": None,
                "visibility": None,
                "description": None,
                "start_date": None,
            },
            headers=world.manager.headers,
        )
        assert resp.status_code == 200, resp.text
        data = resp.json()["data"]
        assert data["title"] == "Website"
        assert data["status"] == project["status"]
        assert data["visibility"] == project["visibility"]
        assert data["description"] is None
        assert data["start_date"] is None

    @pytest.mark.asyncio
    async def test_archive_and_restore(self, client: AsyncClient, world):
        project = await _create(client, world.manager.headers)
        url = f"/api/v1/projects/{project['id']}"

        resp = await client.delete(url, headers=world.manager.headers)
        assert resp.status_code == 200
        assert (await client.get(url, headers=world.manager.headers)).status_code == 404

        resp = await client.get(
            "/api/v1/projects", params={"include_archived": True}, headers=world.manager.headers
        )
        assert resp.json()["data"][0]["deleted_at"] is not None

        resp = await client.post(f"{url}/restore", headers=world.manager.headers)
        assert resp.status_code == 200
        assert resp.json()["data"]["deleted_at"] is None

        # restoring a live project is not found
        resp = await client.post(f"{url}/restore", headers=world.manager.headers)
        assert resp.status_code == 404

    @pytest.mark.asyncio
    async def test_task_counts_and_progress(self, client: AsyncClient, world):
        project = await _create(client, world.manager.headers)
        tasks_url = f"/api/v1/projects/{project['id']}/tasks"
        for title, status in (("a", "done"), ("b", "todo"), ("c", "todo")):
            resp = await client.post(
                tasks_url, json={"title": title, "status": status}, headers=world.manager.headers
            )
            assert resp.status_code == 201

        resp = await client.get(f"/api/v1/projects/{project['id']}", headers=world.member.headers)
        data = resp.json()["data"]
        assert data["tasks_count"] == 3
        assert data["completed_tasks_count"] == 1
        assert data["progress_percentage"] == 33.33


class TestProjectMembers:
    @pytest.mark.asyncio
    async def test_add_member_notifies_user(self, client: AsyncClient, world):
        project = await _create(client, world.manager.headers)
        resp = await client.post(
            f"/api/v1/projects/{project['id']}/members",
            json={"user_id": str(world.member.user.id)},
            headers=world.manager.headers,
        )
        assert str(world.member.user.id) in {m["id"] for m in resp.json()["data"]}

        resp = await client.get("/api/v1/notifications", headers=world.member.headers)
        notification = resp.json()["data"][0]
        assert notification["type"] == "project_invite"
        assert notification["message"] == "You have been added to project: Website"

    @pytest.mark.asyncio
    async def test_add_existing_member(self, client: AsyncClient, world):
        project = await _create(client, world.manager.headers)
        resp = await client.post(
            f"/api/v1/projects/{project['id']}/members",
            json={"user_id": str(world.manager.user.id)},
            headers=world.manager.headers,
        )
        assert resp.status_code == 400
        assert resp.json()["error"]["code"] == "ALREADY_MEMBER"

    @pytest.mark.asyncio
    async def test_add_user_from_other_org(self, client: AsyncClient, world):
        project = await _create(client, world.manager.headers)
        resp = await client.post(
            f"/api/v1/projects/{project['id']}/members",
            json={"user_id": str(world.outsider.user.id)},
            headers=world.manager.headers,
        )
        assert resp.status_code == 400
        assert resp.json()["error"]["code"] == "INVALID_USER"

    @pytest.mark.asyncio
    async def test_cannot_remove_manager(self, client: AsyncClient, world):
        project = await _create(client, world.manager.headers)
        resp = await client.delete(
            f"/api/v1/projects/{project['id']}/members/{world.manager.user.id}",
            headers=world.admin.headers,
        )
        assert resp.status_code == 400
        assert resp.json()["error"]["code"] == "CANNOT_REMOVE_MANAGER"

    @pytest.mark.asyncio
    async def test_remove_member(self, client: AsyncClient, world):
        project = await _create(client, world.manager.headers)
        members_url = f"/api/v1/projects/{project['id']}/members"
        await client.post(
            members_url, json={"user_id": str(world.member.user.id)}, headers=world.manager.headers
        )

        resp = await client.delete(
            f"{members_url}/{world.member.user.id}", headers=world.manager.headers
        )
        assert resp.status_code == 200
        assert str(world.member.user.id) not in {m["id"] for m in resp.json()["data"]}

        resp = await client.delete(
            f"{members_url}/{world.member.user.id}", headers=world.manager.headers
        )
        assert resp.status_code == 404

    @pytest.mark.asyncio
    async def test_list_members(self, client: AsyncClient, world):
        project = await _create(client, world.manager.headers)
        resp = await client.get(
            f"/api/v1/projects/{project['id']}/members", headers=world.member.headers
        )
        assert [m["name"] for m in resp.json()["data"]] == ["Pat Manager"]
