from __future__ import annotations

from datetime import date, timedelta

import pytest

from precast_erp.core.errors import NotFoundError, ValidationFailedError
from precast_erp.schemas.projects import BudgetUpdate, ProjectCreate, TaskCreate, TaskUpdate
from precast_erp.services.projects import ProjectService


@pytest.fixture
async def project(session):
    return await ProjectService(session).create_project(ProjectCreate(name="Parking deck", budget=1000))


async def test_progress_follows_tasks(session, project):
    service = ProjectService(session)
    await service.add_task(project.id, TaskCreate(title="Shop drawings"))
    project = await service.add_task(project.id, TaskCreate(title="Casting", status="completed"))
    assert project.progress == 50

    first = project.tasks[0]["id"]
    project = await service.update_task(project.id, first, TaskUpdate(status="completed"))
    assert project.progress == 100
    assert project.tasks[0]["title"] == "Shop drawings"

    project = await service.delete_task(project.id, first)
    assert len(project.tasks) == 1

    with pytest.raises(NotFoundError, match="Task not found"):
        await service.update_task(project.id, "nope", TaskUpdate(title="x"))
    with pytest.raises(ValidationFailedError, match="Invalid task status"):
        await service.add_task(project.id, TaskCreate(title="x", status="someday"))


async def test_progress_override(session, project):
    service = ProjectService(session)
    project = await service.update_progress(project.id, 40)
    assert project.progress == 40
    project = await service.update_progress(project.id)
    assert project.progress == 0


async def test_team_members_are_unique(session, project):
    service = ProjectService(session)
    await service.add_team_member(project.id, "u1")
    project = await service.add_team_member(project.id, "u1")
    assert project.team_members == ["u1"]
    project = await service.remove_team_member(project.id, "u1")
    assert project.team_members == []


async def test_analytics(session):
    service = ProjectService(session)
    today = date.today()
    project = await service.create_project(
        ProjectCreate(
            name="Bridge beams",
            budget=1000,
            start_date=today - timedelta(days=10),
            end_date=today - timedelta(days=1),
        )
    )
    await service.add_task(project.id, TaskCreate(title="Pour", status="blocked"))
    await service.update_budget(project.id, BudgetUpdate(actual_cost=1200))

    analytics = await service.get_analytics(project.id)
    assert analytics.budget_variance == -200
    assert analytics.is_over_budget is True
    assert analytics.is_delayed is True
    assert analytics.task_counts["blocked"] == 1
    assert analytics.total_tasks == 1
    assert analytics.timeline_variance == 111


async def test_project_validation(session):
    with pytest.raises(ValidationFailedError, match="Invalid project priority"):
        await ProjectService(session).create_project(ProjectCreate(name="x", priority="asap"))


async def test_project_routes(client):
    resp = await client.post("/projects", json={"name": "Stadium", "budget": 500})
    assert resp.status_code == 201
    project_id = resp.json()["id"]

    resp = await client.post(f"/projects/{project_id}/tasks", json={"title": "Risers", "status": "completed"})
    assert resp.status_code == 201
    assert resp.json()["progress"] == 100

    resp = await client.post(f"/projects/{project_id}/team", json={"user_id": "pm1"})
    assert resp.json()["team_members"] == ["pm1"]

    resp = await client.get(f"/projects/{project_id}/analytics")
    assert resp.status_code == 200
    assert resp.json()["budget_variance"] == 500

    resp = await client.patch(f"/projects/{project_id}", json={"status": "paused"})
    assert resp.status_code == 400


async def test_generate_report(session, project):
    service = ProjectService(session)
    await service.add_task(project.id, TaskCreate(title="Shop drawings", assignee="dk"))
    await service.add_task(project.id, TaskCreate(title="Casting", status="completed"))
    await service.update_budget(project.id, BudgetUpdate(actual_cost=1200))

    summary = await service.generate_report(project.id)
    values = dict(zip(summary["field"], summary["value"]))
    assert values["name"] == "Parking deck"
    assert values["tasks"] == 2
    assert values["completed_tasks"] == 1
    assert values["progress"] == 50
    assert values["budget_variance"] == -200
    assert values["over_budget"] is True

    tasks = await service.generate_report(project.id, "tasks")
    assert list(tasks.columns) == ["title", "status", "assignee", "due_date"]
    assert list(tasks["title"]) == ["Shop drawings", "Casting"]
    assert list(tasks["assignee"]) == ["dk", ""]

    budget = await service.generate_report(project.id, "budget")
    assert list(budget["field"]) == ["budget", "actual_cost", "budget_variance", "over_budget"]

    with pytest.raises(ValidationFailedError, match="Unsupported report type: gantt"):
        await service.generate_report(project.id, "gantt")


async def test_project_report_route(client):
    resp = await client.post("/projects", json={"name": "Bridge beams", "budget": 500})
    project_id = resp.json()["id"]

    resp = await client.get(f"/projects/{project_id}/reports/summary")
    assert resp.status_code == 200
    assert resp.headers["content-type"].startswith("text/csv")
    assert resp.text.startswith("field,value")
    assert "Bridge beams" in resp.text

    resp = await client.get(f"/projects/{project_id}/reports/budget", params={"format": "pdf"})
    assert resp.status_code == 200
    assert resp.content.startswith(b"%PDF")

    resp = await client.get("/projects/00000000-0000-0000-0000-000000000001/reports/summary")
    assert resp.status_code == 404
