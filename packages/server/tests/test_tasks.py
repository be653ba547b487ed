"""
Integration tests for Task endpoints.

Tests cover:
- Task CRUD, defaults and position allocation
- Role gating and project visibility
- Assignment and status-change notifications
- Archiving, restoring and my-tasks
- Dependency endpoints and their error envelopes
"""

from __future__ import annotations

import uuid
from datetime import datetime, timedelta, timezone

import pytest
from httpx import AsyncClient

from app.models.base import utcnow
from app.models.task import Task
from taskboard_shared.schemas.common import TaskPriority, TaskStatus
from taskboard_shared.schemas.tasks import TaskCreate, TaskUpdate


# ---------------------------------------------------------------------------
# Unit tests: schemas and derived flags
# ---------------------------------------------------------------------------


class TestTaskSchemas:
    def test_create_defaults(self):
        task = TaskCreate(title="Write docs")
        assert task.priority == TaskPriority.MEDIUM
        assert task.status == TaskStatus.TODO
        assert task.due_date_timezone == "UTC"
        assert task.position is None

    def test_description_limit(self):
        with pytest.raises(ValueError):
            TaskCreate(title="x", description="a" * 5001)

    def test_update_is_partial(self):
        update = TaskUpdate(status=TaskStatus.REVIEW)
        assert update.model_dump(exclude_unset=True) == {"status": TaskStatus.REVIEW}


class TestTaskFlags:
    def test_overdue_when_past_due_and_open(self):
        task = Task(project_id=uuid.uuid4(), title="x", due_date=utcnow() - timedelta(days=1))
        assert task.is_overdue

    def test_done_and_blocked_are_never_overdue(self):
        past = utcnow() - timedelta(days=1)
        for status in ("done", "blocked"):
            task = Task(project_id=uuid.uuid4(), title="x", status=status, due_date=past)
            assert not task.is_overdue

    def test_no_due_date_is_not_overdue(self):
        assert not Task(project_id=uuid.uuid4(), title="x").is_overdue


# ---------------------------------------------------------------------------
# Integration tests: endpoints
# ---------------------------------------------------------------------------


@pytest.fixture
async def project(client: AsyncClient, world) -> dict:
    resp = await client.post(
        "/api/v1/projects", json={"title": "Roadmap"}, headers=world.manager.headers
    )
    return resp.json()["data"]


def _tasks_url(project: dict) -> str:
    return f"/api/v1/projects/{project['id']}/tasks"


async def _create_task(client: AsyncClient, project: dict, headers, **body) -> dict:
    resp = await client.post(_tasks_url(project), json={"title": "Task", **body}, headers=headers)
    assert resp.status_code == 201, resp.text
    return resp.json()["data"]


class TestTaskCrud:
    @pytest.mark.asyncio
    async def test_create_defaults_and_positions(self, client: AsyncClient, world, project):
        first = await _create_task(client, project, world.manager.headers)
        second = await _create_task(client, project, world.manager.headers)

        assert first["priority"] == "medium"
        assert first["status"] == "todo"
        assert first["created_by"] == str(world.manager.user.id)
        assert second["position"] == first["position"] + 1

    @pytest.mark.asyncio
    async def test_member_cannot_create(self, client: AsyncClient, world, project):
        resp = await client.post(
            _tasks_url(project), json={"title": "x"}, headers=world.member.headers
        )
        assert resp.status_code == 403

    @pytest.mark.asyncio
    async def test_assignee_must_belong_to_org(self, client: AsyncClient, world, project):
        resp = await client.post(
            _tasks_url(project),
            json={"title": "x", "assignee_id": str(world.outsider.user.id)},
            headers=world.manager.headers,
        )
        assert resp.status_code == 400
        assert resp.json()["error"]["code"] == "INVALID_USER"

    @pytest.mark.asyncio
    async def test_get_includes_dependencies_and_comment_count(
        self, client: AsyncClient, world, project
    ):
        task = await _create_task(client, project, world.manager.headers)
        resp = await client.get(f"{_tasks_url(project)}/{task['id']}", headers=world.member.headers)
        data = resp.json()["data"]
        assert data["dependencies"] == []
        assert data["has_uncompleted_dependencies"] is False
        assert data["comments_count"] == 0

    @pytest.mark.asyncio
    async def test_member_can_update(self, client: AsyncClient, world, project):
        task = await _create_task(client, project, world.manager.headers, description="old")
        resp = await client.put(
            f"{_tasks_url(project)}/{task['id']}",
            json={"status": "in_progress", "description": None},
            headers=world.member.headers,
        )
        assert resp.status_code == 200
        data = resp.json()["data"]
        assert data["status"] == "in_progress"
        assert data["description"] is None
        assert data["title"] == "Task"
        assert data["updated_by"] == str(world.member.user.id)

    @pytest.mark.asyncio
    async def test_list_filters_and_sorting(self, client: AsyncClient, world, project):
        headers = world.manager.headers
        await _create_task(client, project, headers, title="Low", priority="low")
        await _create_task(client, project, headers, title="High", priority="high")
        await _create_task(client, project, headers, title="Done", status="done")

        resp = await client.get(
            _tasks_url(project), params={"status": "todo"}, headers=world.member.headers
        )
        assert [t["title"] for t in resp.json()["data"]] == ["Low", "High"]

        resp = await client.get(
            _tasks_url(project),
            params={"sort_by": "title", "sort_direction": "desc"},
            headers=world.member.headers,
        )
        assert [t["title"] for t in resp.json()["data"]] == ["Low", "High", "Done"]

        resp = await client.get(
            _tasks_url(project), params={"search": "hig"}, headers=world.member.headers
        )
        assert [t["title"] for t in resp.json()["data"]] == ["High"]

    @pytest.mark.asyncio
    async def test_due_date_range_filter(self, client: AsyncClient, world, project):
        soon = datetime.now(timezone.utc) + timedelta(days=1)
        later = datetime.now(timezone.utc) + timedelta(days=30)
        headers = world.manager.headers
        await _create_task(client, project, headers, title="Soon", due_date=soon.isoformat())
        await _create_task(client, project, headers, title="Later", due_date=later.isoformat())

        resp = await client.get(
            _tasks_url(project),
            params={"due_date_to": (soon + timedelta(days=1)).isoformat()},
            headers=headers,
        )
        assert [t["title"] for t in resp.json()["data"]] == ["Soon"]

    @pytest.mark.asyncio
    async def test_archive_and_restore(self, client: AsyncClient, world, project):
        task = await _create_task(client, project, world.manager.headers)
        url = f"{_tasks_url(project)}/{task['id']}"

        assert (await client.delete(url, headers=world.manager.headers)).status_code == 200
        assert (await client.get(url, headers=world.manager.headers)).status_code == 404
        resp = await client.get(_tasks_url(project), headers=world.manager.headers)
        assert resp.json()["data"] == []

        resp = await client.post(f"{url}/restore", headers=world.manager.headers)
        assert resp.status_code == 200
        assert resp.json()["data"]["deleted_at"] is None

        resp = await client.post(f"{url}/restore", headers=world.manager.headers)
        assert resp.status_code == 404

    @pytest.mark.asyncio
    async def test_member_cannot_archive(self, client: AsyncClient, world, project):
        task = await _create_task(client, project, world.manager.headers)
        resp = await client.delete(
            f"{_tasks_url(project)}/{task['id']}", headers=world.member.headers
        )
        assert resp.status_code == 403

    @pytest.mark.asyncio
    async def test_unknown_task_is_not_found(self, client: AsyncClient, world, project):
        resp = await client.get(
            f"{_tasks_url(project)}/{uuid.uuid4()}", headers=world.manager.headers
        )
        assert resp.status_code == 404
        assert resp.json() == {
            "success": False,
            "error": {"code": "NOT_FOUND", "message": "Task not found"},
        }


class TestTaskNotifications:
    async def _notifications(self, client: AsyncClient, member) -> list[dict]:
        resp = await client.get("/api/v1/notifications", headers=member.headers)
        return resp.json()["data"]

    @pytest.mark.asyncio
    async def test_assignment_on_create_notifies_assignee(
        self, client: AsyncClient, world, project
    ):
        await _create_task(
            client, project, world.manager.headers,
            title="Ship it", assignee_id=str(world.member.user.id),
        )
        notifications = await self._notifications(client, world.member)
        assert [n["type"] for n in notifications] == ["task_assigned"]
        assert notifications[0]["message"] == "You have been assigned to task: Ship it"

    @pytest.mark.asyncio
    async def test_self_assignment_does_not_notify(self, client: AsyncClient, world, project):
        await _create_task(
            client, project, world.manager.headers, assignee_id=str(world.manager.user.id)
        )
        assert await self._notifications(client, world.manager) == []

    @pytest.mark.asyncio
    async def test_status_change_notifies_assignee(self, client: AsyncClient, world, project):
        task = await _create_task(
            client, project, world.manager.headers, assignee_id=str(world.member.user.id)
        )
        await client.put(
            f"{_tasks_url(project)}/{task['id']}",
            json={"status": "review"},
            headers=world.manager.headers,
        )
        types = [n["type"] for n in await self._notifications(client, world.member)]
        assert types.count("task_status_changed") == 1

    @pytest.mark.asyncio
    async def test_own_status_change_does_not_notify(self, client: AsyncClient, world, project):
        task = await _create_task(
            client, project, world.manager.headers, assignee_id=str(world.member.user.id)
        )
        await client.put(
            f"{_tasks_url(project)}/{task['id']}",
            json={"status": "review"},
            headers=world.member.headers,
        )
        types = [n["type"] for n in await self._notifications(client, world.member)]
        assert "task_status_changed" not in types

    @pytest.mark.asyncio
    async def test_reassignment_notifies_new_assignee(self, client: AsyncClient, world, project):
        task = await _create_task(client, project, world.manager.headers)
        await client.put(
            f"{_tasks_url(project)}/{task['id']}",
            json={"assignee_id": str(world.other_member.user.id)},
            headers=world.manager.headers,
        )
        notifications = await self._notifications(client, world.other_member)
        assert [n["type"] for n in notifications] == ["task_assigned"]

    @pytest.mark.asyncio
    async def test_taking_a_task_yourself_does_not_notify(
        self, client: AsyncClient, world, project
    ):
        task = await _create_task(client, project, world.manager.headers)
        resp = await client.put(
            f"{_tasks_url(project)}/{task['id']}",
            json={"assignee_id": str(world.member.user.id)},
            headers=world.member.headers,
        )
        assert resp.json()["data"]["assignee_id"] == str(world.member.user.id)
        assert await self._notifications(client, world.member) == []


class TestMyTasks:
    @pytest.mark.asyncio
    async def test_lists_assigned_tasks_by_due_date(self, client: AsyncClient, world, project):
        headers = world.manager.headers
        assignee = str(world.member.user.id)
        now = datetime.now(timezone.utc)
        await _create_task(
            client, project, headers, title="Later", assignee_id=assignee,
            due_date=(now + timedelta(days=5)).isoformat(),
        )
        await _create_task(
            client, project, headers, title="Sooner", assignee_id=assignee,
            due_date=(now + timedelta(days=1)).isoformat(),
        )
        await _create_task(client, project, headers, title="Someone else's")

        resp = await client.get("/api/v1/my-tasks", headers=world.member.headers)
        body = resp.json()
        assert [t["title"] for t in body["data"]] == ["Sooner", "Later"]
        assert body["meta"]["total"] == 2

    @pytest.mark.asyncio
    async def test_excludes_archived_tasks(self, client: AsyncClient, world, project):
        task = await _create_task(
            client, project, world.manager.headers, assignee_id=str(world.member.user.id)
        )
        await client.delete(f"{_tasks_url(project)}/{task['id']}", headers=world.manager.headers)

        resp = await client.get("/api/v1/my-tasks", headers=world.member.headers)
        assert resp.json()["data"] == []


class TestDependencyEndpoints:
    @pytest.mark.asyncio
    async def test_add_list_and_remove(self, client: AsyncClient, world, project):
        headers = world.manager.headers
        a = await _create_task(client, project, headers, title="A")
        b = await _create_task(client, project, headers, title="B")
        deps_url = f"{_tasks_url(project)}/{a['id']}/dependencies"

        resp = await client.post(deps_url, json={"depends_on_task_id": b["id"]}, headers=headers)
        assert resp.status_code == 201
        assert [d["id"] for d in resp.json()["data"]["dependencies"]] == [b["id"]]

        resp = await client.get(deps_url, headers=world.member.headers)
        assert [t["title"] for t in resp.json()["data"]] == ["B"]

        resp = await client.delete(f"{deps_url}/{b['id']}", headers=headers)
        assert resp.status_code == 200
        assert resp.json()["data"]["dependencies"] == []

        # removing again is a no-op
        resp = await client.delete(f"{deps_url}/{b['id']}", headers=headers)
        assert resp.status_code == 200

    @pytest.mark.asyncio
    async def test_error_codes(self, client: AsyncClient, world, project):
        headers = world.manager.headers
        a = await _create_task(client, project, headers)
        b = await _create_task(client, project, headers)
        a_deps = f"{_tasks_url(project)}/{a['id']}/dependencies"
        b_deps = f"{_tasks_url(project)}/{b['id']}/dependencies"

        resp = await client.post(a_deps, json={"depends_on_task_id": a["id"]}, headers=headers)
        assert resp.status_code == 400
        assert resp.json()["error"] == {
            "code": "INVALID_DEPENDENCY",
            "message": "A task cannot depend on itself",
        }

        await client.post(a_deps, json={"depends_on_task_id": b["id"]}, headers=headers)
        resp = await client.post(a_deps, json={"depends_on_task_id": b["id"]}, headers=headers)
        assert resp.json()["error"]["code"] == "ALREADY_EXISTS"

        resp = await client.post(b_deps, json={"depends_on_task_id": a["id"]}, headers=headers)
        assert resp.status_code == 400
        assert resp.json()["error"] == {
            "code": "CIRCULAR_DEPENDENCY",
            "message": "This would create a circular dependency",
        }

        resp = await client.post(
            a_deps, json={"depends_on_task_id": str(uuid.uuid4())}, headers=headers
        )
        assert resp.status_code == 404

    @pytest.mark.asyncio
    async def test_member_cannot_add(self, client: AsyncClient, world, project):
        a = await _create_task(client, project, world.manager.headers)
        b = await _create_task(client, project, world.manager.headers)
        resp = await client.post(
            f"{_tasks_url(project)}/{a['id']}/dependencies",
            json={"depends_on_task_id": b["id"]},
            headers=world.member.headers,
        )
        assert resp.status_code == 403
