from __future__ import annotations

from typing import Dict, List, Sequence

from .models import (
    AllocationSource,
    MemberAllocation,
    ResolvedAllocation,
    Task,
    TaskMemberAllocation,
    TimesheetEntry,
    User,
)


def _explicit_rows(task_id: str, allocations: Sequence[TaskMemberAllocation]) -> List[TaskMemberAllocation]:
    return [row for row in allocations if row.task_id == task_id and row.reserved_hours > 0]


def resolve_allocation(
    task: Task,
    user_id: str,
    allocations: Sequence[TaskMemberAllocation] = (),
) -> ResolvedAllocation:
    """Hours of ``task`` attributed to ``user_id``.

    An explicit reservation for the user wins. When nobody on the task has a
    reservation, the estimate is split evenly across owner and collaborators.
    Otherwise the user has no share of the task.
    """
    explicit = _explicit_rows(task.id, allocations)
    for row in explicit:
        if row.user_id == user_id:
            return ResolvedAllocation(float(row.reserved_hours), AllocationSource.EXPLICIT)
    if not explicit:
        members = task.member_ids()
        share = float(task.estimated_hours or 0.0) / max(1, len(members))
        return ResolvedAllocation(share, AllocationSource.EVEN_SPLIT)
    return ResolvedAllocation(0.0, AllocationSource.NONE)


def logged_hours(task_id: str, user_id: str, timesheets: Sequence[TimesheetEntry] = ()) -> float:
    return sum(
        float(entry.total_hours or 0.0)
        for entry in timesheets
        if entry.task_id == task_id and entry.user_id == user_id
    )


def remaining_effort(
    task: Task,
    user_id: str,
    allocations: Sequence[TaskMemberAllocation] = (),
    timesheets: Sequence[TimesheetEntry] = (),
) -> float:
    if task.is_closed:
        return 0.0
    allocated = resolve_allocation(task, user_id, allocations).hours
    return max(0.0, allocated - logged_hours(task.id, user_id, timesheets))


def member_allocations(
    task: Task,
    users: Sequence[User],
    tasks: Sequence[Task],
    allocations: Sequence[TaskMemberAllocation] = (),
    timesheets: Sequence[TimesheetEntry] = (),
) -> List[MemberAllocation]:
    """Per-member reservation summary for one task, owner first."""
    names: Dict[str, str] = {user.id: user.name for user in users}
    ordered: List[str] = []
    if task.developer_id:
        ordered.append(task.developer_id)
    ordered.extend(sorted(task.collaborator_ids - {task.developer_id}))
    summary: List[MemberAllocation] = []
    for user_id in ordered:
        resolved = resolve_allocation(task, user_id, allocations)
        logged = logged_hours(task.id, user_id, timesheets)
        elsewhere = sum(
            resolve_allocation(other, user_id, allocations).hours
            for other in tasks
            if other.id != task.id and not other.is_closed and other.involves(user_id)
        )
        summary.append(
            MemberAllocation(
                user_id=user_id,
                name=names.get(user_id, user_id),
                reserved_hours=round(resolved.hours, 2),
                source=resolved.source,
                logged_hours=round(logged, 2),
                remaining_hours=round(remaining_effort(task, user_id, allocations, timesheets), 2),
                reserved_in_other_tasks=round(elsewhere, 2),
            )
        )
    return summary
