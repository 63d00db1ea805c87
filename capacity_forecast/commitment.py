from __future__ import annotations

from abc import ABC, abstractmethod
from datetime import date
from typing import Optional, Sequence

from .models import Project, ProjectMember


class CommitmentStrategy(ABC):
    """Hours per day structurally reserved for a user by continuous projects.

    Callers treat the result as opaque: any non-negative value up to (or past)
    the daily cap is valid and is simply subtracted from planned capacity.
    """

    @abstractmethod
    def __call__(
        self,
        user_id: str,
        projects: Sequence[Project],
        project_members: Sequence[ProjectMember],
        daily_cap: float,
        day: Optional[date] = None,
    ) -> float:
        ...


class NoContinuousCommitment(CommitmentStrategy):
    """Membership no longer reserves hours; explicit task allocations do."""

    def __call__(
        self,
        user_id: str,
        projects: Sequence[Project],
        project_members: Sequence[ProjectMember],
        daily_cap: float,
        day: Optional[date] = None,
    ) -> float:
        return 0.0


DEFAULT_COMMITMENT: CommitmentStrategy = NoContinuousCommitment()


def continuous_commitment(
    user_id: str,
    projects: Sequence[Project],
    project_members: Sequence[ProjectMember],
    daily_cap: float,
    day: Optional[date] = None,
    *,
    strategy: Optional[CommitmentStrategy] = None,
) -> float:
    return (strategy or DEFAULT_COMMITMENT)(user_id, projects, project_members, daily_cap, day)
