from __future__ import annotations

from dataclasses import asdict, dataclass, field
from datetime import date
from enum import Enum
from typing import Dict, FrozenSet, List, Optional


MONTH_FMT = "%Y-%m"

DEFAULT_DAILY_HOURS = 8.0
NON_OPERATIONAL_TOWER = "N/A"

PLANNED = "planned"
CONTINUOUS = "continuous"
PROJECT_TYPES = (PLANNED, CONTINUOUS)

CLOSED_STATUSES = frozenset({"Done", "Cancelled"})

STATUS_AVAILABLE = "Disponível"
STATUS_HIGH = "Alto"
STATUS_OVERLOADED = "Sobrecarregado"
HIGH_OCCUPANCY_THRESHOLD = 0.85


def _isoformat(value: Optional[date]) -> Optional[str]:
    return value.isoformat() if value else None


@dataclass(frozen=True)
class User:
    """Collaborator with a daily hour budget."""

    id: str
    name: str
    daily_available_hours: Optional[float] = DEFAULT_DAILY_HOURS
    tower: Optional[str] = None
    active: Optional[bool] = True

    @property
    def daily_cap(self) -> float:
        # 0 and None both fall back to the default budget
        return float(self.daily_available_hours or DEFAULT_DAILY_HOURS)

    def is_operational(self) -> bool:
        return self.active is not False and self.tower != NON_OPERATIONAL_TOWER


@dataclass(frozen=True)
class Project:
    id: str
    name: str
    project_type: str = PLANNED
    start_date: Optional[date] = None
    estimated_delivery: Optional[date] = None
    active: Optional[bool] = True

    @property
    def is_planned(self) -> bool:
        return self.project_type == PLANNED

    @property
    def is_active(self) -> bool:
        return self.active is not False


@dataclass(frozen=True)
class ProjectMember:
    project_id: str
    user_id: str
    allocation_percentage: float = 100.0


@dataclass(frozen=True)
class Task:
    """Unit of planned work owned by a developer, optionally shared with collaborators."""

    id: str
    project_id: str
    title: str = ""
    status: str = "Todo"
    developer_id: Optional[str] = None
    collaborator_ids: FrozenSet[str] = frozenset()
    estimated_hours: float = 0.0
    scheduled_start: Optional[date] = None
    actual_start: Optional[date] = None
    estimated_delivery: Optional[date] = None
    actual_delivery: Optional[date] = None
    progress: float = 0.0
    deleted: bool = False

    @property
    def is_closed(self) -> bool:
        return self.deleted or self.status in CLOSED_STATUSES

    def member_ids(self) -> FrozenSet[str]:
        members = set(self.collaborator_ids)
        if self.developer_id:
            members.add(self.developer_id)
        return frozenset(members)

    def involves(self, user_id: str) -> bool:
        return self.developer_id == user_id or user_id in self.collaborator_ids


@dataclass(frozen=True)
class TimesheetEntry:
    task_id: str
    user_id: str
    date: date
    total_hours: float


@dataclass(frozen=True)
class Holiday:
    date: date
    end_date: Optional[date] = None
    name: str = ""

    def covers(self, day: date) -> bool:
        return self.date <= day <= (self.end_date or self.date)


@dataclass(frozen=True)
class TaskMemberAllocation:
    task_id: str
    user_id: str
    reserved_hours: float


class AllocationSource(str, Enum):
    EXPLICIT = "explicit"
    EVEN_SPLIT = "even_split"
    NONE = "none"


@dataclass(frozen=True)
class ResolvedAllocation:
    hours: float
    source: AllocationSource


@dataclass(frozen=True)
class DayAllocation:
    day: date
    is_working_day: bool
    planned_hours: float
    continuous_hours: float
    buffer_hours: float
    total_occupancy: float

    def to_dict(self) -> Dict[str, object]:
        payload = asdict(self)
        payload["day"] = self.day.isoformat()
        return payload


@dataclass(frozen=True)
class Forecast:
    """Ideal (full focus) and realistic (net of continuous commitment) completion dates."""

    ideal: Optional[date]
    realistic: Optional[date]
    is_saturated: Optional[bool] = None

    def to_dict(self) -> Dict[str, object]:
        return {
            "ideal": _isoformat(self.ideal),
            "realistic": _isoformat(self.realistic),
            "is_saturated": self.is_saturated,
        }


@dataclass(frozen=True)
class ProjectLoad:
    project_id: str
    project_name: str
    hours: float


@dataclass(frozen=True)
class MonthlyAvailability:
    capacity: float
    planned_hours: float
    continuous_hours: float
    total_occupancy: float
    occupancy_rate: float
    balance: float
    status: str
    allocated: float
    available: float
    breakdown: Dict[str, List[ProjectLoad]] = field(default_factory=dict)

    def to_dict(self) -> Dict[str, object]:
        return asdict(self)


@dataclass(frozen=True)
class TrendPoint:
    month: str
    saturation_rate: float
    avg_load: float

    def to_dict(self) -> Dict[str, object]:
        return asdict(self)


@dataclass(frozen=True)
class ImpactRow:
    user_id: str
    name: str
    release_date_before: Optional[date]
    release_date_after: Optional[date]
    is_new_saturated: bool

    def to_dict(self) -> Dict[str, object]:
        return {
            "user_id": self.user_id,
            "name": self.name,
            "release_date_before": _isoformat(self.release_date_before),
            "release_date_after": _isoformat(self.release_date_after),
            "is_new_saturated": self.is_new_saturated,
        }


@dataclass(frozen=True)
class MemberAllocation:
    user_id: str
    name: str
    reserved_hours: float
    source: AllocationSource
    logged_hours: float
    remaining_hours: float
    reserved_in_other_tasks: float

    @property
    def exceeded(self) -> bool:
        return self.reserved_hours > 0 and self.logged_hours > self.reserved_hours

    def to_dict(self) -> Dict[str, object]:
        payload = asdict(self)
        payload["source"] = self.source.value
        payload["exceeded"] = self.exceeded
        return payload


@dataclass(frozen=True)
class ForecastConfig:
    today: Optional[date] = None
    default_daily_hours: float = DEFAULT_DAILY_HOURS
    trend_months: int = 4
    what_if_hours: float = 0.0
    logging_level: str = "INFO"

    def resolve_today(self) -> date:
        return self.today or date.today()
