import json
from datetime import date

import pytest

from capacity_forecast.io_utils import (
    load_config,
    load_holidays,
    load_projects,
    load_snapshot,
    load_tasks,
    load_timesheets,
    load_users,
)
from capacity_forecast.models import CONTINUOUS, PLANNED, ForecastConfig


def test_load_snapshot_reads_every_table(snapshot_dir):
    snapshot = load_snapshot(snapshot_dir)

    assert [user.id for user in snapshot.users] == ["u1", "u2", "u3"]
    assert snapshot.user("u1").tower == "Dev"
    assert snapshot.user("u3").daily_available_hours == 8
    assert not snapshot.user("u3").is_operational()

    t1 = snapshot.task("t1")
    assert t1.collaborator_ids == frozenset({"u2"})
    assert t1.scheduled_start == date(2025, 3, 3)
    assert t1.estimated_hours == 40
    assert snapshot.task("t2").is_closed

    assert [(p.id, p.project_type) for p in snapshot.projects] == [("p1", PLANNED), ("p2", CONTINUOUS)]
    assert snapshot.projects[1].start_date is None
    assert snapshot.projects[1].is_active
    assert [member.allocation_percentage for member in snapshot.project_members] == [100.0, 100.0]
    assert snapshot.timesheets[0].total_hours == 4
    assert snapshot.holidays[0].date == date(2025, 4, 18)
    assert snapshot.holidays[0].end_date is None
    assert {(a.user_id, a.reserved_hours) for a in snapshot.allocations} == {("u1", 24.0), ("u2", 16.0)}


def test_load_snapshot_optional_tables(snapshot_dir):
    for name in ("projects.csv", "project_members.csv", "timesheets.csv", "holidays.csv", "allocations.csv"):
        (snapshot_dir / name).unlink()
    snapshot = load_snapshot(snapshot_dir)
    assert snapshot.projects == ()
    assert snapshot.allocations == ()


def test_load_snapshot_requires_users(snapshot_dir):
    (snapshot_dir / "users.json").unlink()
    with pytest.raises(ValueError, match="users.json"):
        load_snapshot(snapshot_dir)


def test_load_snapshot_missing_directory(tmp_path):
    with pytest.raises(ValueError, match="not found"):
        load_snapshot(tmp_path / "nowhere")


def test_load_users_default_hours_from_config(tmp_path):
    path = tmp_path / "users.json"
    path.write_text(json.dumps([{"id": 7, "name": "Zed"}]))
    (user,) = load_users(path, default_daily_hours=6)
    assert user.id == "7"
    assert user.daily_cap == 6


def test_load_users_rejects_negative_hours(tmp_path):
    path = tmp_path / "users.json"
    path.write_text(json.dumps([{"id": "u1", "dailyAvailableHours": -1}]))
    with pytest.raises(ValueError, match="daily_available_hours"):
        load_users(path)


def test_load_tasks_rejects_non_array(tmp_path):
    path = tmp_path / "tasks.json"
    path.write_text(json.dumps({"id": "t1"}))
    with pytest.raises(ValueError, match="JSON array"):
        load_tasks(path)


def test_load_tasks_semicolon_collaborators(tmp_path):
    path = tmp_path / "tasks.json"
    path.write_text(json.dumps([{"id": "t1", "project_id": "p1", "collaborator_ids": "u2; u3"}]))
    (task,) = load_tasks(path)
    assert task.collaborator_ids == frozenset({"u2", "u3"})
    assert task.developer_id is None


def test_load_projects_rejects_unknown_type(tmp_path):
    path = tmp_path / "projects.csv"
    path.write_text("id,name,project_type\np1,Portal,retainer\n")
    with pytest.raises(ValueError, match="project_type"):
        load_projects(path)


def test_load_projects_requires_columns(tmp_path):
    path = tmp_path / "projects.csv"
    path.write_text("id,title\np1,Portal\n")
    with pytest.raises(ValueError, match="missing required columns: name"):
        load_projects(path)


def test_load_timesheets_rejects_negative_hours(tmp_path):
    path = tmp_path / "timesheets.csv"
    path.write_text("task_id,user_id,date,total_hours\nt1,u1,2025-03-03,-2\n")
    with pytest.raises(ValueError, match="negative"):
        load_timesheets(path)


def test_load_timesheets_rejects_bad_date(tmp_path):
    path = tmp_path / "timesheets.csv"
    path.write_text("task_id,user_id,date,total_hours\nt1,u1,yesterday,2\n")
    with pytest.raises(ValueError, match="invalid date"):
        load_timesheets(path)


def test_load_holidays_interval(tmp_path):
    path = tmp_path / "holidays.csv"
    path.write_text("date,end_date\n2025-12-24,2025-12-26\n")
    (holiday,) = load_holidays(path)
    assert holiday.covers(date(2025, 12, 25))
    assert not holiday.covers(date(2025, 12, 27))


def test_load_holidays_rejects_reversed_interval(tmp_path):
    path = tmp_path / "holidays.csv"
    path.write_text("date,end_date\n2025-12-26,2025-12-24\n")
    with pytest.raises(ValueError, match="earlier"):
        load_holidays(path)


def test_load_config_defaults(tmp_path):
    path = tmp_path / "config.json"
    path.write_text("{}")
    assert load_config(path) == ForecastConfig()


def test_load_config_values(tmp_path):
    path = tmp_path / "config.json"
    path.write_text(json.dumps({"today": "2025-03-03", "trend_months": 6, "what_if_hours": 120}))
    cfg = load_config(path)
    assert cfg.resolve_today() == date(2025, 3, 3)
    assert cfg.trend_months == 6
    assert cfg.what_if_hours == 120


@pytest.mark.parametrize(
    "payload, message",
    [
        ({"today": "soon"}, "today"),
        ({"default_daily_hours": 0}, "default_daily_hours"),
        ({"trend_months": 0}, "trend_months"),
        ({"what_if_hours": -5}, "what_if_hours"),
    ],
)
def test_load_config_validation(tmp_path, payload, message):
    path = tmp_path / "config.json"
    path.write_text(json.dumps(payload))
    with pytest.raises(ValueError, match=message):
        load_config(path)
