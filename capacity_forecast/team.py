"""Roster-wide aggregates: saturation trend, elasticity and what-if impact."""

from __future__ import annotations

from datetime import date
from typing import List, Optional, Sequence

from dateutil.relativedelta import relativedelta

from .commitment import CommitmentStrategy
from .engine import individual_release_date, monthly_availability
from .models import (
    PLANNED,
    Holiday,
    ImpactRow,
    MonthlyAvailability,
    Project,
    ProjectMember,
    Task,
    TaskMemberAllocation,
    TimesheetEntry,
    TrendPoint,
    User,
)
from .workdays import month_key

WHAT_IF_PROJECT_ID = "__what_if__"


def operational_users(users: Sequence[User]) -> List[User]:
    return [user for user in users if user.is_operational()]


def upcoming_months(today: date, count: int) -> List[str]:
    first = date(today.year, today.month, 1)
    return [month_key(first + relativedelta(months=offset)) for offset in range(count)]


def _exact_rate(availability: MonthlyAvailability) -> float:
    # occupancy_rate is rounded for display; 0.996 must not count as saturated
    if availability.capacity <= 0:
        return 0.0
    return availability.total_occupancy / availability.capacity


def saturation_trend(
    users: Sequence[User],
    projects: Sequence[Project],
    project_members: Sequence[ProjectMember],
    tasks: Sequence[Task],
    timesheets: Sequence[TimesheetEntry],
    holidays: Sequence[Holiday],
    allocations: Sequence[TaskMemberAllocation] = (),
    *,
    today: Optional[date] = None,
    months: int = 4,
) -> List[TrendPoint]:
    """Share of saturated collaborators and mean load, current month onward.

    Both values are percentages; a collaborator counts as saturated at 100 %
    occupancy or more.
    """
    today = today or date.today()
    roster = operational_users(users)
    trend: List[TrendPoint] = []
    for month in upcoming_months(today, months):
        rates: List[float] = []
        for user in roster:
            availability = monthly_availability(
                user, month, projects, project_members, timesheets, tasks, holidays, allocations, today=today
            )
            rates.append(_exact_rate(availability))
        if not rates:
            trend.append(TrendPoint(month=month, saturation_rate=0.0, avg_load=0.0))
            continue
        saturated = sum(1 for rate in rates if rate >= 1.0)
        trend.append(
            TrendPoint(
                month=month,
                saturation_rate=round(saturated / len(rates) * 100, 2),
                avg_load=round(sum(rates) / len(rates) * 100, 2),
            )
        )
    return trend


def team_elasticity(
    users: Sequence[User],
    month_str: str,
    projects: Sequence[Project],
    project_members: Sequence[ProjectMember],
    tasks: Sequence[Task],
    timesheets: Sequence[TimesheetEntry],
    holidays: Sequence[Holiday],
    allocations: Sequence[TaskMemberAllocation] = (),
    *,
    today: Optional[date] = None,
) -> float:
    """Percentage of team capacity still free; overloaded users add nothing."""
    total_free = 0.0
    total_capacity = 0.0
    for user in operational_users(users):
        availability = monthly_availability(
            user, month_str, projects, project_members, timesheets, tasks, holidays, allocations, today=today
        )
        total_free += max(0.0, availability.available)
        total_capacity += availability.capacity
    if total_capacity <= 0:
        return 0.0
    return round(total_free / total_capacity * 100, 2)


def simulate_new_project_impact(
    hours: float,
    users: Sequence[User],
    projects: Sequence[Project],
    project_members: Sequence[ProjectMember],
    tasks: Sequence[Task],
    timesheets: Sequence[TimesheetEntry],
    holidays: Sequence[Holiday],
    allocations: Sequence[TaskMemberAllocation] = (),
    *,
    today: Optional[date] = None,
    commitment: Optional[CommitmentStrategy] = None,
) -> List[ImpactRow]:
    """Release-date displacement per collaborator if ``hours`` of new work land on them.

    Collaborators without a current backlog have no baseline and are left out.
    Rows are ordered by the new release date, latest first.
    """
    today = today or date.today()
    sandbox = Project(id=WHAT_IF_PROJECT_ID, name="What-if", project_type=PLANNED, active=True)
    what_if_projects = list(projects) + [sandbox]
    rows: List[ImpactRow] = []
    for user in operational_users(users):
        before = individual_release_date(
            user, projects, project_members, timesheets, tasks, holidays, allocations,
            today=today, commitment=commitment,
        )
        if before is None:
            continue
        synthetic = Task(
            id=f"{WHAT_IF_PROJECT_ID}:{user.id}",
            project_id=WHAT_IF_PROJECT_ID,
            title="What-if",
            status="Todo",
            developer_id=user.id,
            estimated_hours=hours,
        )
        after = individual_release_date(
            user, what_if_projects, project_members, timesheets, list(tasks) + [synthetic], holidays, allocations,
            today=today, commitment=commitment,
        )
        after_date = after.realistic if after else before.realistic
        after_saturated = bool(after and after.is_saturated)
        rows.append(
            ImpactRow(
                user_id=user.id,
                name=user.name,
                release_date_before=before.realistic,
                release_date_after=after_date,
                is_new_saturated=after_saturated and not before.is_saturated,
            )
        )
    rows.sort(key=lambda row: row.release_date_after or date.min, reverse=True)
    return rows
