from datetime import date

from capacity_forecast.effort import logged_hours, member_allocations, remaining_effort, resolve_allocation
from capacity_forecast.models import AllocationSource, TaskMemberAllocation, TimesheetEntry, User
from conftest import make_task


def test_even_split_without_explicit_allocations():
    task = make_task("t1", estimated_hours=10, collaborator_ids=frozenset({"u2"}))
    for user_id in ("u1", "u2"):
        resolved = resolve_allocation(task, user_id, [])
        assert resolved.hours == 5
        assert resolved.source is AllocationSource.EVEN_SPLIT


def test_explicit_allocation_zeroes_other_members():
    task = make_task("t1", estimated_hours=10, collaborator_ids=frozenset({"u2"}))
    allocations = [TaskMemberAllocation("t1", "u1", 8)]
    assert resolve_allocation(task, "u1", allocations).hours == 8
    other = resolve_allocation(task, "u2", allocations)
    assert other.hours == 0
    assert other.source is AllocationSource.NONE


def test_zero_reservation_is_not_explicit():
    task = make_task("t1", estimated_hours=10, collaborator_ids=frozenset({"u2"}))
    allocations = [TaskMemberAllocation("t1", "u1", 0)]
    assert resolve_allocation(task, "u2", allocations).source is AllocationSource.EVEN_SPLIT


def test_allocations_on_other_tasks_are_ignored():
    task = make_task("t1", estimated_hours=10)
    allocations = [TaskMemberAllocation("t9", "u1", 3)]
    assert resolve_allocation(task, "u1", allocations).hours == 10


def test_owner_listed_as_collaborator_counted_once():
    task = make_task("t1", estimated_hours=10, collaborator_ids=frozenset({"u1", "u2"}))
    assert resolve_allocation(task, "u1", []).hours == 5


def test_logged_hours_filters_by_task_and_user():
    entries = [
        TimesheetEntry("t1", "u1", date(2025, 3, 3), 3),
        TimesheetEntry("t1", "u1", date(2025, 3, 4), 2.5),
        TimesheetEntry("t1", "u2", date(2025, 3, 4), 7),
        TimesheetEntry("t2", "u1", date(2025, 3, 4), 7),
    ]
    assert logged_hours("t1", "u1", entries) == 5.5


def test_remaining_effort_never_negative():
    task = make_task("t1", estimated_hours=10)
    entries = [TimesheetEntry("t1", "u1", date(2025, 3, 3), 14)]
    assert remaining_effort(task, "u1", [], entries) == 0


def test_remaining_effort_subtracts_logged_hours():
    task = make_task("t1", estimated_hours=10)
    entries = [TimesheetEntry("t1", "u1", date(2025, 3, 3), 4)]
    assert remaining_effort(task, "u1", [], entries) == 6


def test_closed_tasks_have_no_remaining_effort():
    assert remaining_effort(make_task("t1", estimated_hours=10, status="Done"), "u1") == 0
    assert remaining_effort(make_task("t1", estimated_hours=10, status="Cancelled"), "u1") == 0
    assert remaining_effort(make_task("t1", estimated_hours=10, deleted=True), "u1") == 0


def test_member_allocations_summary():
    task = make_task("t1", estimated_hours=20, collaborator_ids=frozenset({"u2"}))
    other = make_task("t2", developer_id="u2", estimated_hours=6)
    finished = make_task("t3", developer_id="u2", estimated_hours=50, status="Done")
    users = [User("u1", "Alice"), User("u2", "Bob")]
    allocations = [TaskMemberAllocation("t1", "u1", 8)]
    entries = [TimesheetEntry("t1", "u1", date(2025, 3, 3), 9)]

    summary = member_allocations(task, users, [task, other, finished], allocations, entries)

    assert [member.user_id for member in summary] == ["u1", "u2"]
    owner, collaborator = summary
    assert owner.reserved_hours == 8
    assert owner.source is AllocationSource.EXPLICIT
    assert owner.logged_hours == 9
    assert owner.remaining_hours == 0
    assert owner.exceeded
    assert collaborator.reserved_hours == 0
    assert collaborator.reserved_in_other_tasks == 6
    assert not collaborator.exceeded
    assert collaborator.to_dict()["source"] == "none"
