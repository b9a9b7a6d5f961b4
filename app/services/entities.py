"""
In-memory domain types for the goal engine (plain dataclasses, no ORM, no Pydantic).

The persisted wire shape is camelCase (`energyLevel`, `totalDays`, ...) so blobs
written by earlier app versions load unchanged; `to_wire()` produces it.
"""
from __future__ import annotations

import enum
from dataclasses import dataclass, field, replace
from typing import Optional


class Phase(str, enum.Enum):
    morning = "morning"
    afternoon = "afternoon"
    evening = "evening"
    completed = "completed"


PHASE_ORDER: dict[Phase, int] = {
    Phase.morning: 0,
    Phase.afternoon: 1,
    Phase.evening: 2,
    Phase.completed: 3,
}


class GoalStatus(str, enum.Enum):
    active = "active"
    completed = "completed"
    abandoned = "abandoned"


DEFAULT_TOTAL_DAYS = 21
DEFAULT_BASE_TARGET = 4.0
UNTITLED_GOAL = "Untitled Goal"


@dataclass(frozen=True)
class DailyLog:
    """One calibration record for one calendar day."""
    date: str
    phase: Phase
    energy_level: float
    base_target: float
    actual_done: float

    def to_wire(self) -> dict:
        return {
            "date": self.date,
            "phase": self.phase.value,
            "energyLevel": self.energy_level,
            "baseTarget": self.base_target,
            "actualDone": self.actual_done,
        }


@dataclass(frozen=True)
class DailyRecord:
    """Compact per-day view: clamped energy and clamped progress."""
    date: str
    energy: float
    progress: float

    def to_wire(self) -> dict:
        return {"date": self.date, "energy": self.energy, "progress": self.progress}


@dataclass(frozen=True)
class Goal:
    id: str
    title: str
    start_date: str
    total_days: int
    history: tuple[DailyLog, ...] = field(default_factory=tuple)
    status: GoalStatus = GoalStatus.active

    def with_changes(self, **changes) -> "Goal":
        return replace(self, **changes)

    def to_wire(self) -> dict:
        return {
            "id": self.id,
            "title": self.title,
            "startDate": self.start_date,
            "totalDays": self.total_days,
            "history": [log.to_wire() for log in self.history],
            "status": self.status.value,
        }


@dataclass
class StoreState:
    """Everything the store persists."""
    active_goal: Optional[Goal] = None
    archived_goals: list[Goal] = field(default_factory=list)
    records: list[DailyRecord] = field(default_factory=list)
    stability_score: float = 0.0

    def to_wire(self) -> dict:
        return {
            "activeGoal": self.active_goal.to_wire() if self.active_goal else None,
            "archivedGoals": [g.to_wire() for g in self.archived_goals],
            "records": [r.to_wire() for r in self.records],
            "stabilityScore": self.stability_score,
        }
