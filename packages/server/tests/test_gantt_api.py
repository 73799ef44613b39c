"""Integration tests for the tasks and gantt routers."""
import pytest
from httpx import AsyncClient

from conftest import ms


async def link(client: AsyncClient, source, target, type="FS"):
    response = await client.post(
        f"/v1/tasks/{target['id']}/dependencies",
        json={"source": source["id"], "type": type},
    )
    assert response.status_code == 201, response.text
    return response.json()


@pytest.mark.asyncio
async def test_create_and_get_task(client: AsyncClient, make_task):
    task = await make_task("Design", 0, 4)

    assert task["id"].startswith("task_")
    assert task["start_date"] == ms(0)
    assert task["due_date"] == ms(4)
    assert task["status"] == "todo"

    response = await client.get(f"/v1/tasks/{task['id']}")
    assert response.status_code == 200
    assert response.json()["title"] == "Design"


@pytest.mark.asyncio
async def test_create_task_with_inverted_dates(client: AsyncClient):
    response = await client.post("/v1/tasks", json={
        "workspaceId": "ws_1",
        "projectId": "proj_1",
        "title": "Backwards",
        "startDate": "2024-01-05T00:00:00Z",
        "dueDate": "2024-01-01T00:00:00Z",
    })

    assert response.status_code == 400
    assert response.json()["type"] == "InvalidTimelineError"


@pytest.mark.asyncio
async def test_get_task_not_found(client: AsyncClient):
    response = await client.get("/v1/tasks/task_missing")
    assert response.status_code == 404


@pytest.mark.asyncio
async def test_update_timeline_shifts_dependent(client: AsyncClient):
    async def create(title, start, due):
        response = await client.post("/v1/tasks", json={
            "workspaceId": "ws_1",
            "projectId": "proj_1",
            "title": title,
            "startDate": start,
            "dueDate": due,
        })
        return response.json()

    a = await create("A", "2024-03-01T00:00:00Z", "2024-03-10T00:00:00Z")
    b = await create("B", "2024-03-05T00:00:00Z", "2024-03-12T00:00:00Z")
    await link(client, a, b)

    response = await client.post(
        f"/v1/gantt/tasks/{a['id']}/update-timeline",
        json={"dueDate": "2024-03-15T00:00:00Z"},
    )

    assert response.status_code == 200
    data = response.json()
    assert data["cascade"]["updated"] == 1
    mutation = data["cascade"]["mutations"][0]
    assert mutation["task_id"] == b["id"]
    assert mutation["source_task_id"] == a["id"]

    b_after = (await client.get(f"/v1/tasks/{b['id']}")).json()
    assert b_after["start_date"] == 1710460800000  # 2024-03-15
    assert b_after["due_date"] == 1711065600000  # 2024-03-22


@pytest.mark.asyncio
async def test_update_timeline_cascades_down_chain(client: AsyncClient, make_task):
    a = await make_task("A", 0, 4)
    b = await make_task("B", 4, 8)
    c = await make_task("C", 8, 10)
    await link(client, a, b)
    await link(client, b, c)

    response = await client.post(
        f"/v1/gantt/tasks/{a['id']}/update-timeline",
        json={"dueDate": "2024-01-08T00:00:00Z"},
    )

    assert response.status_code == 200
    assert [m["task_id"] for m in response.json()["cascade"]["mutations"]] == [b["id"], c["id"]]
    b_after = (await client.get(f"/v1/tasks/{b['id']}")).json()
    c_after = (await client.get(f"/v1/tasks/{c['id']}")).json()
    assert (b_after["start_date"], b_after["due_date"]) == (ms(7), ms(11))
    assert (c_after["start_date"], c_after["due_date"]) == (ms(11), ms(13))


@pytest.mark.asyncio
async def test_update_timeline_rejects_inverted_dates(client: AsyncClient, make_task):
    a = await make_task("A", 0, 4)

    response = await client.post(
        f"/v1/gantt/tasks/{a['id']}/update-timeline",
        json={"startDate": "2024-01-09T00:00:00Z"},
    )

    assert response.status_code == 400
    assert response.json()["type"] == "InvalidTimelineError"
    unchanged = (await client.get(f"/v1/tasks/{a['id']}")).json()
    assert unchanged["start_date"] == ms(0)


@pytest.mark.asyncio
async def test_update_timeline_requires_a_date(client: AsyncClient, make_task):
    a = await make_task("A", 0, 4)
    response = await client.post(f"/v1/gantt/tasks/{a['id']}/update-timeline", json={})
    assert response.status_code == 422


@pytest.mark.asyncio
async def test_update_timeline_null_clears_date(client: AsyncClient, make_task):
    a = await make_task("A", 0, 4)

    response = await client.post(
        f"/v1/gantt/tasks/{a['id']}/update-timeline", json={"startDate": None}
    )

    assert response.status_code == 200
    task = response.json()["task"]
    assert task["start_date"] is None
    assert task["due_date"] == ms(4)


@pytest.mark.asyncio
async def test_milestone_update_moves_whole_point(client: AsyncClient, make_task):
    m = await make_task("Launch", 3, 3, milestone=True)

    response = await client.post(
        f"/v1/gantt/tasks/{m['id']}/update-timeline",
        json={"dueDate": "2024-01-06T00:00:00Z"},
    )

    assert response.status_code == 200
    task = response.json()["task"]
    assert task["start_date"] == task["due_date"] == ms(5)


@pytest.mark.asyncio
async def test_toggle_milestone(client: AsyncClient):
    response = await client.post("/v1/tasks", json={
        "workspaceId": "ws_1",
        "projectId": "proj_1",
        "title": "Review",
        "startDate": "2024-03-01T00:00:00Z",
        "dueDate": "2024-03-10T00:00:00Z",
    })
    task = response.json()

    response = await client.post(
        f"/v1/gantt/tasks/{task['id']}/toggle-milestone", json={"enable": True}
    )

    assert response.status_code == 200
    toggled = response.json()["task"]
    assert toggled["is_milestone"] is True
    assert toggled["start_date"] == toggled["due_date"] == 1709251200000  # 2024-03-01

    # No body flips it back; dates stay collapsed.
    response = await client.post(f"/v1/gantt/tasks/{task['id']}/toggle-milestone")
    assert response.json()["task"]["is_milestone"] is False
    assert response.json()["task"]["due_date"] == 1709251200000


@pytest.mark.asyncio
async def test_validate_reports_violations(client: AsyncClient, make_task):
    a = await make_task("Design", 0, 5)
    b = await make_task("Build", 3, 8)
    await link(client, a, b)

    response = await client.get(f"/v1/gantt/tasks/{b['id']}/validate")

    assert response.status_code == 200
    assert response.json() == {
        "task_id": b["id"],
        "valid": False,
        "errors": ['Task cannot start before predecessor "Design" finishes (FS dependency)'],
    }


@pytest.mark.asyncio
async def test_gantt_data(client: AsyncClient, make_task):
    a = await make_task("A", 0, 2)
    b = await make_task("B", 2, 3.5)
    await make_task("Elsewhere", 0, 1, project_id="proj_2")
    await link(client, a, b)
    await client.patch(f"/v1/tasks/{a['id']}", json={"status": "done"})

    response = await client.get("/v1/gantt/projects/proj_1")

    assert response.status_code == 200
    rows = {row["id"]: row for row in response.json()}
    assert set(rows) == {a["id"], b["id"]}
    assert rows[a["id"]]["progress"] == 100
    assert rows[a["id"]]["duration"] == 2
    assert rows[b["id"]]["duration"] == 2
    assert rows[b["id"]]["dependencies"] == [{"depends_on": a["id"], "type": "FS"}]
    assert rows[b["id"]]["progress"] == 0


@pytest.mark.asyncio
async def test_list_tasks_by_project(client: AsyncClient, make_task):
    await make_task("A", 0, 1)
    await make_task("B", 1, 2, project_id="proj_2")

    response = await client.get("/v1/tasks", params={"projectId": "proj_1"})

    assert [t["title"] for t in response.json()] == ["A"]
