"""Pytest fixtures shared by the capacity_forecast tests."""

from __future__ import annotations

import json
from datetime import date
from pathlib import Path

import pytest

from capacity_forecast.models import CONTINUOUS, PLANNED, Project, Task, User

# Monday; March 2025 has 21 business days, all of them from the 3rd onward.
TODAY = date(2025, 3, 3)


@pytest.fixture
def today() -> date:
    return TODAY


@pytest.fixture
def planned_project() -> Project:
    return Project(id="p1", name="Portal", project_type=PLANNED, start_date=date(2025, 1, 6))


@pytest.fixture
def continuous_project() -> Project:
    return Project(id="p2", name="Support", project_type=CONTINUOUS)


@pytest.fixture
def alice() -> User:
    return User(id="u1", name="Alice", daily_available_hours=8, tower="Dev")


@pytest.fixture
def bob() -> User:
    return User(id="u2", name="Bob", daily_available_hours=8, tower="Dev")


def make_task(task_id: str, developer_id: str = "u1", project_id: str = "p1", **kwargs) -> Task:
    return Task(id=task_id, project_id=project_id, developer_id=developer_id, **kwargs)


@pytest.fixture
def snapshot_dir(tmp_path: Path) -> Path:
    root = tmp_path / "snapshot"
    root.mkdir()
    (root / "users.json").write_text(
        json.dumps(
            [
                {"id": "u1", "name": "Alice", "dailyAvailableHours": 8, "torre": "Dev"},
                {"id": "u2", "name": "Bob", "daily_available_hours": 8, "tower": "Dev"},
                {"id": "u3", "name": "Carol", "torre": "N/A"},
            ]
        )
    )
    (root / "tasks.json").write_text(
        json.dumps(
            [
                {
                    "id": "t1",
                    "projectId": "p1",
                    "title": "Checkout",
                    "status": "In Progress",
                    "developerId": "u1",
                    "collaboratorIds": ["u2"],
                    "estimatedHours": 40,
                    "scheduledStart": "2025-03-03",
                    "estimatedDelivery": "2025-03-14",
                },
                {
                    "id": "t2",
                    "project_id": "p1",
                    "status": "Done",
                    "developer_id": "u1",
                    "estimated_hours": 16,
                },
            ]
        )
    )
    (root / "projects.csv").write_text(
        "id,name,project_type,start_date,estimated_delivery,active\n"
        "p1,Portal,planned,2025-01-06,2025-06-30,true\n"
        "p2,Support,continuous,,,\n"
    )
    (root / "project_members.csv").write_text("project_id,user_id,allocation_percentage\np1,u1,100\np1,u2,\n")
    (root / "timesheets.csv").write_text("task_id,user_id,date,total_hours\nt1,u1,2025-02-28,4\n")
    (root / "holidays.csv").write_text("date,end_date,name\n2025-04-18,,Good Friday\n")
    (root / "allocations.csv").write_text("task_id,user_id,reserved_hours\nt1,u1,24\nt1,u2,16\n")
    (root / "config.json").write_text(json.dumps({"today": "2025-03-03", "logging_level": "WARNING"}))
    return root
