from __future__ import annotations

import json
from dataclasses import dataclass
from datetime import date
from pathlib import Path
from typing import Dict, FrozenSet, Iterable, List, Optional, Sequence, Tuple

import pandas as pd
from dateutil import parser as dateparser

from .models import (
    DEFAULT_DAILY_HOURS,
    PROJECT_TYPES,
    ForecastConfig,
    Holiday,
    Project,
    ProjectMember,
    Task,
    TaskMemberAllocation,
    TimesheetEntry,
    User,
)

USERS_FILE = "users.json"
TASKS_FILE = "tasks.json"
PROJECTS_FILE = "projects.csv"
MEMBERS_FILE = "project_members.csv"
TIMESHEETS_FILE = "timesheets.csv"
HOLIDAYS_FILE = "holidays.csv"
ALLOCATIONS_FILE = "allocations.csv"

_PROJECT_REQUIRED_COLUMNS = {"id", "name"}
_MEMBER_REQUIRED_COLUMNS = {"project_id", "user_id"}
_TIMESHEET_REQUIRED_COLUMNS = {"task_id", "user_id", "date", "total_hours"}
_HOLIDAY_REQUIRED_COLUMNS = {"date"}
_ALLOCATION_REQUIRED_COLUMNS = {"task_id", "user_id", "reserved_hours"}


@dataclass(frozen=True)
class Snapshot:
    """Consistent read of every record the engine consumes."""

    users: Tuple[User, ...] = ()
    projects: Tuple[Project, ...] = ()
    project_members: Tuple[ProjectMember, ...] = ()
    tasks: Tuple[Task, ...] = ()
    timesheets: Tuple[TimesheetEntry, ...] = ()
    holidays: Tuple[Holiday, ...] = ()
    allocations: Tuple[TaskMemberAllocation, ...] = ()

    def user(self, user_id: str) -> Optional[User]:
        return next((user for user in self.users if user.id == user_id), None)

    def task(self, task_id: str) -> Optional[Task]:
        return next((task for task in self.tasks if task.id == task_id), None)


def path_name(path: str | Path) -> str:
    return Path(path).name


def _require_columns(df: pd.DataFrame, required: Iterable[str], source: str) -> None:
    missing = [col for col in sorted(required) if col not in df.columns]
    if missing:
        raise ValueError(f"{source} missing required columns: {', '.join(missing)}")


def _read_table(path: Path, required: Iterable[str]) -> pd.DataFrame:
    df = pd.read_csv(path, dtype=str, keep_default_na=False)
    _require_columns(df, required, path.name)
    return df


def _numeric_column(df: pd.DataFrame, col: str, source: str, default: float = 0.0) -> None:
    if col not in df.columns:
        df[col] = default
        return
    values = df[col].replace("", default)
    try:
        df[col] = pd.to_numeric(values).astype(float)
    except ValueError as exc:
        raise ValueError(f"invalid numeric value in {source} column '{col}'") from exc
    if (df[col] < 0).any():
        raise ValueError(f"{source} column '{col}' contains negative values")


def _parse_bool(value: object) -> bool:
    if isinstance(value, bool):
        return value
    if value is None or (isinstance(value, float) and pd.isna(value)):
        raise ValueError("boolean column contains missing values")
    if isinstance(value, (int, float)):
        return bool(value)
    if isinstance(value, str):
        lowered = value.strip().lower()
        if lowered in {"true", "t", "1", "yes", "y"}:
            return True
        if lowered in {"false", "f", "0", "no", "n"}:
            return False
    raise ValueError(f"cannot interpret boolean value '{value}'")


def _parse_optional_bool(value: object, default: bool = True) -> bool:
    if value is None or (isinstance(value, str) and value.strip() == ""):
        return default
    return _parse_bool(value)


def _parse_optional_date(value: object, field_name: str) -> Optional[date]:
    if value is None or (isinstance(value, float) and pd.isna(value)):
        return None
    if isinstance(value, str) and value.strip() == "":
        return None
    try:
        return dateparser.isoparse(str(value)).date()
    except (ValueError, TypeError) as exc:
        raise ValueError(f"invalid date in '{field_name}': {value}") from exc


def _parse_id_list(value: object, field_name: str) -> FrozenSet[str]:
    if value is None:
        return frozenset()
    if isinstance(value, str):
        return frozenset(part.strip() for part in value.split(";") if part.strip())
    if isinstance(value, Sequence):
        return frozenset(str(item).strip() for item in value if str(item).strip())
    raise ValueError(f"unsupported value for '{field_name}': {value!r}")


def _pick(entry: Dict[str, object], *keys: str) -> object:
    for key in keys:
        if key in entry and entry[key] is not None:
            return entry[key]
    return None


def _load_json_array(path: Path) -> List[Dict[str, object]]:
    data = json.loads(Path(path).read_text())
    if not isinstance(data, list):
        raise ValueError(f"{Path(path).name} must be a JSON array")
    for entry in data:
        if not isinstance(entry, dict):
            raise ValueError(f"{Path(path).name} entries must be objects")
    return data


def load_users(path: str | Path, default_daily_hours: float = DEFAULT_DAILY_HOURS) -> List[User]:
    users: List[User] = []
    for entry in _load_json_array(Path(path)):
        user_id = _pick(entry, "id")
        if user_id is None or str(user_id).strip() == "":
            raise ValueError("user id is required")
        daily = _pick(entry, "daily_available_hours", "dailyAvailableHours")
        if daily is not None and (not isinstance(daily, (int, float)) or daily < 0):
            raise ValueError(f"daily_available_hours must be a non-negative number for user {user_id}")
        tower = _pick(entry, "tower", "torre")
        users.append(
            User(
                id=str(user_id),
                name=str(entry.get("name") or user_id),
                daily_available_hours=float(daily) if daily else default_daily_hours,
                tower=str(tower) if tower is not None else None,
                active=_parse_optional_bool(entry.get("active"), default=True),
            )
        )
    return users


def load_tasks(path: str | Path) -> List[Task]:
    tasks: List[Task] = []
    for entry in _load_json_array(Path(path)):
        task_id = _pick(entry, "id")
        project_id = _pick(entry, "project_id", "projectId")
        if task_id is None or project_id is None:
            raise ValueError("tasks require 'id' and 'project_id'")
        hours = _pick(entry, "estimated_hours", "estimatedHours") or 0
        if not isinstance(hours, (int, float)) or hours < 0:
            raise ValueError(f"estimated_hours must be a non-negative number for task {task_id}")
        developer = _pick(entry, "developer_id", "developerId")
        tasks.append(
            Task(
                id=str(task_id),
                project_id=str(project_id),
                title=str(entry.get("title") or ""),
                status=str(entry.get("status") or "Todo"),
                developer_id=str(developer) if developer not in (None, "") else None,
                collaborator_ids=_parse_id_list(
                    _pick(entry, "collaborator_ids", "collaboratorIds"), "collaborator_ids"
                ),
                estimated_hours=float(hours),
                scheduled_start=_parse_optional_date(
                    _pick(entry, "scheduled_start", "scheduledStart"), "scheduled_start"
                ),
                actual_start=_parse_optional_date(_pick(entry, "actual_start", "actualStart"), "actual_start"),
                estimated_delivery=_parse_optional_date(
                    _pick(entry, "estimated_delivery", "estimatedDelivery"), "estimated_delivery"
                ),
                actual_delivery=_parse_optional_date(
                    _pick(entry, "actual_delivery", "actualDelivery"), "actual_delivery"
                ),
                progress=float(entry.get("progress") or 0),
                deleted=_parse_optional_bool(entry.get("deleted"), default=False),
            )
        )
    return tasks


def load_projects(path: str | Path) -> List[Project]:
    df = _read_table(Path(path), _PROJECT_REQUIRED_COLUMNS)
    if "project_type" not in df.columns:
        df["project_type"] = ""
    projects: List[Project] = []
    for row in df.to_dict("records"):
        project_type = row["project_type"].strip().lower() or PROJECT_TYPES[0]
        if project_type not in PROJECT_TYPES:
            raise ValueError(f"unsupported project_type '{project_type}' for project {row['id']}")
        projects.append(
            Project(
                id=row["id"],
                name=row["name"],
                project_type=project_type,
                start_date=_parse_optional_date(row.get("start_date"), "start_date"),
                estimated_delivery=_parse_optional_date(row.get("estimated_delivery"), "estimated_delivery"),
                active=_parse_optional_bool(row.get("active"), default=True),
            )
        )
    return projects


def load_project_members(path: str | Path) -> List[ProjectMember]:
    df = _read_table(Path(path), _MEMBER_REQUIRED_COLUMNS)
    _numeric_column(df, "allocation_percentage", path_name(path), default=100.0)
    return [
        ProjectMember(row.project_id, row.user_id, float(row.allocation_percentage))
        for row in df.itertuples(index=False)
    ]


def load_timesheets(path: str | Path) -> List[TimesheetEntry]:
    df = _read_table(Path(path), _TIMESHEET_REQUIRED_COLUMNS)
    _numeric_column(df, "total_hours", path_name(path))
    entries: List[TimesheetEntry] = []
    for row in df.itertuples(index=False):
        day = _parse_optional_date(row.date, "date")
        if day is None:
            raise ValueError(f"timesheet entry for task {row.task_id} has no date")
        entries.append(TimesheetEntry(row.task_id, row.user_id, day, float(row.total_hours)))
    return entries


def load_holidays(path: str | Path) -> List[Holiday]:
    df = _read_table(Path(path), _HOLIDAY_REQUIRED_COLUMNS)
    holidays: List[Holiday] = []
    for row in df.to_dict("records"):
        start = _parse_optional_date(row["date"], "date")
        if start is None:
            raise ValueError("holiday rows require a date")
        end = _parse_optional_date(row.get("end_date"), "end_date")
        if end is not None and end < start:
            raise ValueError(f"holiday end_date {end} is earlier than date {start}")
        holidays.append(Holiday(date=start, end_date=end, name=str(row.get("name") or "")))
    return holidays


def load_allocations(path: str | Path) -> List[TaskMemberAllocation]:
    df = _read_table(Path(path), _ALLOCATION_REQUIRED_COLUMNS)
    _numeric_column(df, "reserved_hours", path_name(path))
    return [
        TaskMemberAllocation(row.task_id, row.user_id, float(row.reserved_hours))
        for row in df.itertuples(index=False)
    ]


def load_snapshot(directory: str | Path, config: Optional[ForecastConfig] = None) -> Snapshot:
    root = Path(directory)
    if not root.is_dir():
        raise ValueError(f"snapshot directory not found: {root}")
    for required in (USERS_FILE, TASKS_FILE):
        if not (root / required).is_file():
            raise ValueError(f"snapshot directory missing {required}")
    default_hours = config.default_daily_hours if config else DEFAULT_DAILY_HOURS

    def _optional(name: str, loader) -> Tuple:
        path = root / name
        return tuple(loader(path)) if path.is_file() else ()

    return Snapshot(
        users=tuple(load_users(root / USERS_FILE, default_hours)),
        projects=_optional(PROJECTS_FILE, load_projects),
        project_members=_optional(MEMBERS_FILE, load_project_members),
        tasks=tuple(load_tasks(root / TASKS_FILE)),
        timesheets=_optional(TIMESHEETS_FILE, load_timesheets),
        holidays=_optional(HOLIDAYS_FILE, load_holidays),
        allocations=_optional(ALLOCATIONS_FILE, load_allocations),
    )


def load_config(path: str | Path) -> ForecastConfig:
    data = json.loads(Path(path).read_text())
    if not isinstance(data, dict):
        raise ValueError("config must be a JSON object")
    today_raw = data.get("today")
    if today_raw is None:
        today = None
    else:
        try:
            today = dateparser.isoparse(today_raw).date()
        except (ValueError, TypeError) as exc:
            raise ValueError("today must be null or an ISO date string") from exc

    default_daily_hours = data.get("default_daily_hours", DEFAULT_DAILY_HOURS)
    if not isinstance(default_daily_hours, (int, float)) or default_daily_hours <= 0:
        raise ValueError("default_daily_hours must be a positive number")

    trend_months = data.get("trend_months", 4)
    if not isinstance(trend_months, int) or trend_months <= 0:
        raise ValueError("trend_months must be a positive integer")

    what_if_hours = data.get("what_if_hours", 0)
    if not isinstance(what_if_hours, (int, float)) or what_if_hours < 0:
        raise ValueError("what_if_hours must be a non-negative number")

    logging_level = data.get("logging_level", "INFO")
    if not isinstance(logging_level, str):
        raise ValueError("logging_level must be a string")

    return ForecastConfig(
        today=today,
        default_daily_hours=float(default_daily_hours),
        trend_months=trend_months,
        what_if_hours=float(what_if_hours),
        logging_level=logging_level,
    )


def ensure_directory(path: str | Path) -> Path:
    target = Path(path)
    target.mkdir(parents=True, exist_ok=True)
    return target


def write_csv(df: pd.DataFrame, path: str | Path) -> None:
    Path(path).parent.mkdir(parents=True, exist_ok=True)
    df.to_csv(path, index=False)
