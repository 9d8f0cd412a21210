"""
Tests for the epic and task routes, including drag-and-drop reorders.
"""

import pytest
import pytest_asyncio


@pytest_asyncio.fixture
async def project(client, register_user) -> dict:
    await register_user(client, "ada@example.com", "Ada")
    response = await client.post("/api/projects", json={"name": "Rocket"})
    return response.json()


async def create_epic(ac, project_id, name="Launch") -> dict:
    response = await ac.post(f"/api/projects/{project_id}/epics", json={"name": name})
    assert response.status_code == 201, response.text
    return response.json()


async def create_tasks(ac, epic_id, *descriptions) -> list[dict]:
    tasks = []
    for description in descriptions:
        response = await ac.post(f"/api/epics/{epic_id}/tasks", json={"description": description})
        assert response.status_code == 201, response.text
        tasks.append(response.json())
    return tasks


async def board(ac, epic_id) -> dict[str, list[str]]:
    """Descriptions per column, in position order."""
    tasks = (await ac.get(f"/api/epics/{epic_id}/tasks")).json()["tasks"]
    columns = {"backlog": [], "in_progress": [], "done": []}
    for task in sorted(tasks, key=lambda t: (t["status"], t["position"])):
        columns[task["status"]].append(task["description"])
    for status in columns:
        positions = sorted(t["position"] for t in tasks if t["status"] == status)
        assert positions == list(range(len(positions))), status
    return columns


class TestEpics:
    """Epic CRUD."""

    @pytest.mark.asyncio
    async def test_create_and_list(self, client, project):
        await create_epic(client, project["id"], "Launch")
        await create_epic(client, project["id"], "Landing")

        epics = (await client.get(f"/api/projects/{project['id']}/epics")).json()["epics"]

        assert [e["name"] for e in epics] == ["Launch", "Landing"]

    @pytest.mark.asyncio
    async def test_update(self, client, project):
        epic = await create_epic(client, project["id"])

        response = await client.patch(f"/api/epics/{epic['id']}", json={"name": "Liftoff"})

        assert response.status_code == 200
        assert response.json()["name"] == "Liftoff"

    @pytest.mark.asyncio
    async def test_delete_removes_tasks(self, client, project):
        epic = await create_epic(client, project["id"])
        await create_tasks(client, epic["id"], "a", "b")

        assert (await client.delete(f"/api/epics/{epic['id']}")).status_code == 204
        assert (await client.get(f"/api/epics/{epic['id']}/tasks")).status_code == 404

    @pytest.mark.asyncio
    async def test_non_member_cannot_touch_epics(self, client, other_client, project, register_user):
        epic = await create_epic(client, project["id"])
        await register_user(other_client, "bob@example.com", "Bob")

        assert (await other_client.get(f"/api/projects/{project['id']}/epics")).status_code == 403
        assert (await other_client.patch(f"/api/epics/{epic['id']}", json={"name": "x"})).status_code == 403
        assert (await other_client.get(f"/api/epics/{epic['id']}/tasks")).status_code == 403


class TestCreateAndList:
    """Task creation appends to the backlog."""

    @pytest.mark.asyncio
    async def test_tasks_append_in_order(self, client, project):
        epic = await create_epic(client, project["id"])

        tasks = await create_tasks(client, epic["id"], "first", "second", "third")

        assert [t["position"] for t in tasks] == [0, 1, 2]
        assert all(t["status"] == "backlog" for t in tasks)
        assert (await board(client, epic["id"]))["backlog"] == ["first", "second", "third"]

    @pytest.mark.asyncio
    async def test_description_limits(self, client, project):
        epic = await create_epic(client, project["id"])

        empty = await client.post(f"/api/epics/{epic['id']}/tasks", json={"description": "   "})
        too_long = await client.post(f"/api/epics/{epic['id']}/tasks", json={"description": "x" * 151})

        assert empty.status_code == 422
        assert too_long.status_code == 422

    @pytest.mark.asyncio
    async def test_unknown_epic(self, client, project):
        response = await client.post("/api/epics/9999/tasks", json={"description": "lost"})

        assert response.status_code == 404


class TestUpdateTask:
    """PATCH /api/tasks/{id}"""

    @pytest.mark.asyncio
    async def test_status_change_appends_to_target(self, client, project):
        epic = await create_epic(client, project["id"])
        a, b, c = await create_tasks(client, epic["id"], "a", "b", "c")
        await client.patch(f"/api/tasks/{a['id']}", json={"status": "done"})

        response = await client.patch(f"/api/tasks/{c['id']}", json={"status": "done"})

        assert response.status_code == 200
        assert response.json()["position"] == 1
        assert await board(client, epic["id"]) == {"backlog": ["b"], "in_progress": [], "done": ["a", "c"]}

    @pytest.mark.asyncio
    async def test_position_only_reorders_within_column(self, client, project):
        epic = await create_epic(client, project["id"])
        tasks = await create_tasks(client, epic["id"], "a", "b", "c")

        await client.patch(f"/api/tasks/{tasks[2]['id']}", json={"position": 0})

        assert (await board(client, epic["id"]))["backlog"] == ["c", "a", "b"]

    @pytest.mark.asyncio
    async def test_description_edit_records_editor(self, client, project):
        epic = await create_epic(client, project["id"])
        (task,) = await create_tasks(client, epic["id"], "typo")

        response = await client.patch(f"/api/tasks/{task['id']}", json={"description": "fixed"})

        body = response.json()
        assert body["description"] == "fixed"
        assert body["last_edited_by_user_id"] == task["creator_user_id"]
        assert body["position"] == 0

    @pytest.mark.asyncio
    async def test_description_and_move_together(self, client, project):
        epic = await create_epic(client, project["id"])
        a, b = await create_tasks(client, epic["id"], "a", "b")

        response = await client.patch(
            f"/api/tasks/{b['id']}", json={"description": "b2", "status": "in_progress"}
        )

        body = response.json()
        assert body["description"] == "b2"
        assert body["status"] == "in_progress"
        assert body["position"] == 0
        assert await board(client, epic["id"]) == {"backlog": ["a"], "in_progress": ["b2"], "done": []}

    @pytest.mark.asyncio
    async def test_invalid_status_and_position(self, client, project):
        epic = await create_epic(client, project["id"])
        (task,) = await create_tasks(client, epic["id"], "a")

        bad_status = await client.patch(f"/api/tasks/{task['id']}", json={"status": "archived"})
        bad_position = await client.patch(f"/api/tasks/{task['id']}", json={"position": -1})

        assert bad_status.status_code == 422
        assert bad_position.status_code == 422
        assert bad_position.json()["details"][0]["loc"][-1] == "position"

    @pytest.mark.asyncio
    async def test_unknown_task(self, client, project):
        response = await client.patch("/api/tasks/9999", json={"status": "done"})

        assert response.status_code == 404
        assert response.json()["error"] == "not_found"


class TestReorderRoute:
    """PATCH /api/tasks/{id}/position"""

    @pytest.mark.asyncio
    async def test_drag_into_middle_of_other_column(self, client, project):
        epic = await create_epic(client, project["id"])
        tasks = await create_tasks(client, epic["id"], "a", "b", "c", "d")
        for task in tasks[:3]:
            await client.patch(f"/api/tasks/{task['id']}", json={"status": "in_progress"})

        response = await client.patch(
            f"/api/tasks/{tasks[3]['id']}/position",
            json={"epic_id": epic["id"], "status": "in_progress", "position": 1},
        )

        assert response.status_code == 200
        assert response.json()["position"] == 1
        assert await board(client, epic["id"]) == {
            "backlog": [],
            "in_progress": ["a", "d", "b", "c"],
            "done": [],
        }

    @pytest.mark.asyncio
    async def test_drag_to_another_epic(self, client, project):
        launch = await create_epic(client, project["id"], "Launch")
        landing = await create_epic(client, project["id"], "Landing")
        a, b = await create_tasks(client, launch["id"], "a", "b")
        await create_tasks(client, landing["id"], "x")

        response = await client.patch(
            f"/api/tasks/{a['id']}/position",
            json={"epic_id": landing["id"], "status": "backlog", "position": 0},
        )

        assert response.json()["epic_id"] == landing["id"]
        assert (await board(client, launch["id"]))["backlog"] == ["b"]
        assert (await board(client, landing["id"]))["backlog"] == ["a", "x"]

    @pytest.mark.asyncio
    async def test_cross_epic_disabled(self, client, project, isolated_settings):
        launch = await create_epic(client, project["id"], "Launch")
        landing = await create_epic(client, project["id"], "Landing")
        (a,) = await create_tasks(client, launch["id"], "a")
        isolated_settings.allow_cross_epic_moves = False

        response = await client.patch(
            f"/api/tasks/{a['id']}/position",
            json={"epic_id": landing["id"], "status": "backlog", "position": 0},
        )

        assert response.status_code == 400
        assert response.json()["error"] == "cross_epic_move_disabled"

    @pytest.mark.asyncio
    async def test_drag_into_another_project(self, client, project):
        epic = await create_epic(client, project["id"])
        (a,) = await create_tasks(client, epic["id"], "a")
        other = (await client.post("/api/projects", json={"name": "Other"})).json()
        foreign = await create_epic(client, other["id"])

        response = await client.patch(
            f"/api/tasks/{a['id']}/position",
            json={"epic_id": foreign["id"], "status": "backlog", "position": 0},
        )

        assert response.status_code == 400
        assert response.json()["error"] == "cross_project_move"

    @pytest.mark.asyncio
    async def test_missing_fields(self, client, project):
        epic = await create_epic(client, project["id"])
        (a,) = await create_tasks(client, epic["id"], "a")

        response = await client.patch(f"/api/tasks/{a['id']}/position", json={"status": "done"})

        assert response.status_code == 422


class TestDeleteTask:
    @pytest.mark.asyncio
    async def test_delete_closes_gap(self, client, project):
        epic = await create_epic(client, project["id"])
        tasks = await create_tasks(client, epic["id"], "a", "b", "c")

        response = await client.delete(f"/api/tasks/{tasks[0]['id']}")

        assert response.status_code == 204
        assert (await board(client, epic["id"]))["backlog"] == ["b", "c"]

    @pytest.mark.asyncio
    async def test_delete_unknown(self, client, project):
        assert (await client.delete("/api/tasks/9999")).status_code == 404
