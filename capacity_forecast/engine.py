from __future__ import annotations

import logging
import math
from collections import defaultdict
from datetime import date
from typing import Dict, List, Optional, Sequence, Tuple

from .commitment import CommitmentStrategy, continuous_commitment
from .effort import remaining_effort
from .models import (
    CONTINUOUS,
    DEFAULT_DAILY_HOURS,
    HIGH_OCCUPANCY_THRESHOLD,
    PLANNED,
    STATUS_AVAILABLE,
    STATUS_HIGH,
    STATUS_OVERLOADED,
    DayAllocation,
    Forecast,
    Holiday,
    MonthlyAvailability,
    Project,
    ProjectLoad,
    ProjectMember,
    Task,
    TaskMemberAllocation,
    TimesheetEntry,
    User,
)
from .workdays import (
    add_business_days,
    is_business_day,
    iter_days,
    month_bounds,
    month_key,
    working_days_in_range,
)

logger = logging.getLogger(__name__)

# Floor on realistic daily capacity; keeps saturated forecasts finite.
MIN_REALISTIC_CAPACITY = 0.1


def _round2(value: float) -> float:
    return round(value, 2)


def _projects_by_id(projects: Sequence[Project]) -> Dict[str, Project]:
    return {project.id: project for project in projects}


def occupancy_status(rate: float) -> str:
    if rate > 1:
        return STATUS_OVERLOADED
    if rate >= HIGH_OCCUPANCY_THRESHOLD:
        return STATUS_HIGH
    return STATUS_AVAILABLE


def _forecast_from_remaining(
    remaining: float,
    daily_cap: float,
    commitment: float,
    today: date,
    holidays: Sequence[Holiday],
) -> Forecast:
    cap = daily_cap if daily_cap > 0 else MIN_REALISTIC_CAPACITY
    ideal_days = math.ceil(remaining / cap)
    realistic_cap = max(MIN_REALISTIC_CAPACITY, daily_cap - commitment)
    realistic_days = math.ceil(remaining / realistic_cap)
    return Forecast(
        ideal=add_business_days(today, ideal_days, holidays),
        realistic=add_business_days(today, realistic_days, holidays),
        is_saturated=commitment >= daily_cap,
    )


def _task_day_window(task: Task, project: Project) -> Tuple[Optional[date], Optional[date]]:
    start = task.scheduled_start or task.actual_start or project.start_date
    return start, task.estimated_delivery


def simulate_daily_allocation(
    user_id: str,
    start: date,
    end: date,
    projects: Sequence[Project],
    tasks: Sequence[Task],
    project_members: Sequence[ProjectMember],
    timesheets: Sequence[TimesheetEntry],
    holidays: Sequence[Holiday],
    daily_cap: float,
    *,
    commitment: Optional[CommitmentStrategy] = None,
) -> List[DayAllocation]:
    """Day-by-day split of ``daily_cap`` into planned, continuous and buffer hours."""
    project_map = _projects_by_id(projects)
    windows: List[Tuple[date, date]] = []
    for task in tasks:
        if task.is_closed or not task.involves(user_id):
            continue
        project = project_map.get(task.project_id)
        if project is None or not project.is_planned:
            continue
        task_start, task_end = _task_day_window(task, project)
        if task_start is None or task_end is None:
            logger.debug("task %s has no resolvable window; not placed on any day", task.id)
            continue
        windows.append((task_start, task_end))

    days: List[DayAllocation] = []
    for day in iter_days(start, end):
        if not is_business_day(day, holidays):
            days.append(DayAllocation(day, False, 0.0, 0.0, 0.0, 0.0))
            continue
        reserved = continuous_commitment(
            user_id, projects, project_members, daily_cap, day, strategy=commitment
        )
        has_planned = any(window_start <= day <= window_end for window_start, window_end in windows)
        if has_planned:
            planned = max(0.0, daily_cap - reserved)
            buffer = 0.0
        else:
            planned = 0.0
            buffer = max(0.0, daily_cap - reserved)
        days.append(
            DayAllocation(
                day=day,
                is_working_day=True,
                planned_hours=_round2(planned),
                continuous_hours=_round2(reserved),
                buffer_hours=_round2(buffer),
                total_occupancy=_round2(planned + reserved),
            )
        )
    return days


def forecast_task(
    task: Task,
    projects: Sequence[Project],
    tasks: Sequence[Task],
    project_members: Sequence[ProjectMember],
    timesheets: Sequence[TimesheetEntry],
    holidays: Sequence[Holiday],
    daily_cap: float,
    allocations: Sequence[TaskMemberAllocation] = (),
    *,
    today: Optional[date] = None,
    commitment: Optional[CommitmentStrategy] = None,
) -> Forecast:
    """Ideal and realistic delivery dates for the remaining work on one task.

    Tasks without an owner, or outside a planned project, keep their own
    estimated delivery as both dates.
    """
    project = _projects_by_id(projects).get(task.project_id)
    if not task.developer_id or project is None or not project.is_planned:
        return Forecast(ideal=task.estimated_delivery, realistic=task.estimated_delivery)

    remaining = remaining_effort(task, task.developer_id, allocations, timesheets)
    if remaining <= 0:
        delivered = task.actual_delivery or task.estimated_delivery
        return Forecast(ideal=delivered, realistic=delivered)

    today = today or date.today()
    reserved = continuous_commitment(
        task.developer_id, projects, project_members, daily_cap, today, strategy=commitment
    )
    forecast = _forecast_from_remaining(remaining, daily_cap, reserved, today, holidays)
    if forecast.is_saturated:
        logger.debug("developer %s saturated by continuous commitment", task.developer_id)
    return forecast


def monthly_availability(
    user: User,
    month_str: str,
    projects: Sequence[Project],
    project_members: Sequence[ProjectMember],
    timesheets: Sequence[TimesheetEntry],
    tasks: Sequence[Task],
    holidays: Sequence[Holiday],
    allocations: Sequence[TaskMemberAllocation] = (),
    *,
    today: Optional[date] = None,
) -> MonthlyAvailability:
    """Capacity versus remaining committed hours for one user over one month.

    In the current month only the stretch from today onward is counted. Each
    open task spreads its remaining effort evenly over the business days of its
    active window; overdue work is collapsed onto today.
    """
    today = today or date.today()
    month_start, month_end = month_bounds(month_str)
    start = today if month_key(today) == month_str else month_start
    end = month_end

    capacity = user.daily_cap * working_days_in_range(start, end, holidays)
    project_map = _projects_by_id(projects)
    totals = {PLANNED: 0.0, CONTINUOUS: 0.0}
    per_project: Dict[str, Dict[str, float]] = {PLANNED: defaultdict(float), CONTINUOUS: defaultdict(float)}

    for task in tasks:
        if task.is_closed or not task.involves(user.id):
            continue
        remaining = remaining_effort(task, user.id, allocations, timesheets)
        if remaining <= 0:
            continue
        project = project_map.get(task.project_id)
        task_start = (
            task.scheduled_start
            or task.actual_start
            or (project.start_date if project else None)
            or month_start
        )
        task_end = task.estimated_delivery or (project.estimated_delivery if project else None) or month_end

        window_start = max(task_start, today)
        window_end = max(task_end, today)
        remaining_task_days = max(1, working_days_in_range(window_start, window_end, holidays))
        hours_per_day = remaining / remaining_task_days

        overlap_days = working_days_in_range(max(window_start, start), min(window_end, end), holidays)
        contribution = hours_per_day * overlap_days
        if contribution <= 0:
            continue
        kind = CONTINUOUS if project is not None and project.project_type == CONTINUOUS else PLANNED
        totals[kind] += contribution
        per_project[kind][task.project_id] += contribution

    total_occupancy = totals[PLANNED] + totals[CONTINUOUS]
    rate = total_occupancy / capacity if capacity > 0 else 0.0
    balance = capacity - total_occupancy

    breakdown: Dict[str, List[ProjectLoad]] = {}
    for kind, loads in per_project.items():
        breakdown[kind] = [
            ProjectLoad(
                project_id=project_id,
                project_name=project_map[project_id].name if project_id in project_map else project_id,
                hours=_round2(hours),
            )
            for project_id, hours in sorted(loads.items(), key=lambda item: -item[1])
        ]

    return MonthlyAvailability(
        capacity=_round2(capacity),
        planned_hours=_round2(totals[PLANNED]),
        continuous_hours=_round2(totals[CONTINUOUS]),
        total_occupancy=_round2(total_occupancy),
        occupancy_rate=_round2(rate),
        balance=_round2(balance),
        status=occupancy_status(rate),
        allocated=_round2(total_occupancy),
        available=_round2(balance),
        breakdown=breakdown,
    )


def individual_release_date(
    user: User,
    projects: Sequence[Project],
    project_members: Sequence[ProjectMember],
    timesheets: Sequence[TimesheetEntry],
    tasks: Sequence[Task],
    holidays: Sequence[Holiday],
    allocations: Sequence[TaskMemberAllocation] = (),
    *,
    today: Optional[date] = None,
    commitment: Optional[CommitmentStrategy] = None,
) -> Optional[Forecast]:
    """Date on which the user's whole open backlog would be cleared, or None."""
    project_map = _projects_by_id(projects)
    backlog = [
        task
        for task in tasks
        if task.involves(user.id)
        and not task.is_closed
        and task.project_id in project_map
        and project_map[task.project_id].is_active
    ]
    if not backlog:
        return None
    total = sum(remaining_effort(task, user.id, allocations, timesheets) for task in backlog)
    if total <= 0:
        return None

    today = today or date.today()
    daily_cap = user.daily_cap
    reserved = continuous_commitment(user.id, projects, project_members, daily_cap, today, strategy=commitment)
    return _forecast_from_remaining(total, daily_cap, reserved, today, holidays)


def project_deadline(
    start: Optional[date],
    sold_hours: float,
    team: Sequence[User],
    holidays: Sequence[Holiday] = (),
) -> Optional[date]:
    """Delivery date for ``sold_hours`` burned by the whole team from ``start``."""
    if start is None or sold_hours <= 0 or not team:
        return None
    team_capacity = sum(float(member.daily_available_hours or DEFAULT_DAILY_HOURS) for member in team)
    if team_capacity <= 0:
        return None
    return add_business_days(start, math.ceil(sold_hours / team_capacity), holidays)
