from __future__ import annotations

from datetime import date
from typing import Dict, List, Optional, Sequence

import pandas as pd

from .engine import individual_release_date, monthly_availability
from .io_utils import Snapshot
from .team import operational_users, saturation_trend, simulate_new_project_impact

AVAILABILITY_COLUMNS = [
    "user_id",
    "name",
    "month",
    "capacity",
    "planned_hours",
    "continuous_hours",
    "total_occupancy",
    "occupancy_rate",
    "balance",
    "status",
]
RELEASE_COLUMNS = ["user_id", "name", "ideal", "realistic", "is_saturated"]
TREND_COLUMNS = ["month", "saturation_rate", "avg_load"]
IMPACT_COLUMNS = ["user_id", "name", "release_date_before", "release_date_after", "is_new_saturated"]


def availability_frame(snapshot: Snapshot, months: Sequence[str], *, today: Optional[date] = None) -> pd.DataFrame:
    rows: List[Dict[str, object]] = []
    for user in operational_users(snapshot.users):
        for month in months:
            result = monthly_availability(
                user,
                month,
                snapshot.projects,
                snapshot.project_members,
                snapshot.timesheets,
                snapshot.tasks,
                snapshot.holidays,
                snapshot.allocations,
                today=today,
            )
            rows.append(
                {
                    "user_id": user.id,
                    "name": user.name,
                    "month": month,
                    "capacity": result.capacity,
                    "planned_hours": result.planned_hours,
                    "continuous_hours": result.continuous_hours,
                    "total_occupancy": result.total_occupancy,
                    "occupancy_rate": result.occupancy_rate,
                    "balance": result.balance,
                    "status": result.status,
                }
            )
    return pd.DataFrame(rows, columns=AVAILABILITY_COLUMNS)


def release_frame(snapshot: Snapshot, *, today: Optional[date] = None) -> pd.DataFrame:
    rows: List[Dict[str, object]] = []
    for user in operational_users(snapshot.users):
        forecast = individual_release_date(
            user,
            snapshot.projects,
            snapshot.project_members,
            snapshot.timesheets,
            snapshot.tasks,
            snapshot.holidays,
            snapshot.allocations,
            today=today,
        )
        if forecast is None:
            continue
        rows.append({"user_id": user.id, "name": user.name, **forecast.to_dict()})
    return pd.DataFrame(rows, columns=RELEASE_COLUMNS)


def trend_frame(snapshot: Snapshot, months: int = 4, *, today: Optional[date] = None) -> pd.DataFrame:
    points = saturation_trend(
        snapshot.users,
        snapshot.projects,
        snapshot.project_members,
        snapshot.tasks,
        snapshot.timesheets,
        snapshot.holidays,
        snapshot.allocations,
        today=today,
        months=months,
    )
    return pd.DataFrame([point.to_dict() for point in points], columns=TREND_COLUMNS)


def impact_frame(snapshot: Snapshot, hours: float, *, today: Optional[date] = None) -> pd.DataFrame:
    rows = simulate_new_project_impact(
        hours,
        snapshot.users,
        snapshot.projects,
        snapshot.project_members,
        snapshot.tasks,
        snapshot.timesheets,
        snapshot.holidays,
        snapshot.allocations,
        today=today,
    )
    return pd.DataFrame([row.to_dict() for row in rows], columns=IMPACT_COLUMNS)
