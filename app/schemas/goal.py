"""
Goal request / response schemas.

GET    /goal           → GoalStateResponse
POST   /goal           → CreateGoalRequest  → GoalResponse
PATCH  /goal           → UpdateGoalRequest  → GoalResponse
POST   /goal/logs      → DailyLogRequest    → LogCommitResponse
POST   /goal/records   → DailyRecordRequest → LogCommitResponse
POST   /goal/complete  → GoalResponse
POST   /goal/abandon   → GoalResponse
"""
from __future__ import annotations

import datetime as dt
from typing import Annotated, Optional

from pydantic import BaseModel, ConfigDict, Field

from app.services.entities import GoalStatus, Phase


# ---------------------------------------------------------------------------
# Requests
# ---------------------------------------------------------------------------

class CreateGoalRequest(BaseModel):
    # Blank titles are rejected by the engine, not here, so the client gets
    # the EMPTY_TITLE code rather than a generic validation error.
    title: Annotated[str, Field(
        max_length=200,
        description="Goal title. Leading/trailing whitespace is stripped.",
        examples=["Write 500 words"],
    )]
    total_days: Optional[int] = Field(
        default=None,
        description="Target duration in days. Defaults to 21; values below 1 become 1.",
        examples=[21],
    )
    start_date: Optional[dt.date] = Field(
        default=None,
        description="Day counting begins. Defaults to today (local).",
        examples=["2026-02-20"],
    )


class UpdateGoalRequest(BaseModel):
    title: Optional[str] = Field(
        default=None,
        max_length=200,
        description="New title. Blank keeps the current one.",
    )
    total_days: Optional[int] = Field(
        default=None,
        description="New duration. Values below 1 keep the current one.",
    )


class DailyLogRequest(BaseModel):
    model_config = ConfigDict(use_enum_values=True)

    phase: Phase = Field(description="Checkpoint that produced this entry.")
    energy_level: float = Field(
        description="Self-reported energy, clamped to 0–100.",
        examples=[65],
    )
    base_target: float = Field(
        default=4.0,
        description="Nominal output target before energy adjustment.",
        examples=[4],
    )
    actual_done: float = Field(
        description="Output actually achieved, clamped to >= 0.",
        examples=[3.5],
    )
    date: Optional[dt.date] = Field(
        default=None,
        description="Day the log belongs to. Defaults to today (local).",
    )


class DailyRecordRequest(BaseModel):
    energy: float = Field(description="Energy 0–100.", examples=[70])
    progress: float = Field(description="Progress percentage 0–100.", examples=[80])


# ---------------------------------------------------------------------------
# Responses
# ---------------------------------------------------------------------------

class DailyLogResponse(BaseModel):
    date: str
    phase: Phase
    energy_level: float
    base_target: float
    actual_done: float
    progress: float = Field(description="Energy-adjusted progress, uncapped.")


class DailyRecordResponse(BaseModel):
    date: str
    energy: float
    progress: float


class GoalResponse(BaseModel):
    id: str
    title: str
    start_date: str
    total_days: int
    status: GoalStatus
    history: list[DailyLogResponse]
    completion: float = Field(description="Goal completion 0–100 under the configured policy.")


class GoalStateResponse(BaseModel):
    """Everything a client needs to render the current goal."""
    has_hydrated: bool = Field(
        description="False until persisted state has loaded; render nothing goal-dependent before.",
    )
    active_goal: Optional[GoalResponse]
    archived_goals: list[GoalResponse]
    records: list[DailyRecordResponse]
    stability_score: float
    days_active: int = Field(description="1-indexed day count of the active goal; 0 without one.")
    current_phase: Phase = Field(description="Next checkpoint to fill in today.")
    today_log: Optional[DailyLogResponse]
    completion_policy: str


class LogCommitResponse(BaseModel):
    goal: Optional[GoalResponse]
    stability_score: float
    auto_completed: bool = Field(
        default=False,
        description="True when this log pushed completion to 100% and the goal was archived.",
    )
