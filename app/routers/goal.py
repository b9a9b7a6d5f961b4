"""
Goal router.

GET    /goal            - state snapshot (hydration flag, active goal, archive, derived values)
POST   /goal            - create the active goal
PATCH  /goal            - edit title / duration of the active goal
POST   /goal/logs       - upsert a daily calibration log
POST   /goal/records    - quick settlement (energy + progress % for today)
POST   /goal/complete   - archive the active goal as completed
POST   /goal/abandon    - archive the active goal as abandoned
DELETE /goal/store      - wipe all goals (nothing is archived)
"""
from __future__ import annotations

from typing import Optional

from fastapi import APIRouter, Depends
from starlette import status

from app.core.errors import error_from_result
from app.routers.deps import get_goal_store, get_hydrated_store
from app.schemas.goal import (
    CreateGoalRequest,
    DailyLogRequest,
    DailyLogResponse,
    DailyRecordRequest,
    DailyRecordResponse,
    GoalResponse,
    GoalStateResponse,
    LogCommitResponse,
    UpdateGoalRequest,
)
from app.services.entities import DailyLog, DailyRecord, Goal
from app.services.goal_store import GoalStore, MutationResult
from app.services.scoring import calculate_progress

router = APIRouter(prefix="/goal", tags=["goal"])


# ---------------------------------------------------------------------------
# Serialization helpers
# ---------------------------------------------------------------------------

def _log_to_response(log: DailyLog) -> DailyLogResponse:
    return DailyLogResponse(
        date=log.date,
        phase=log.phase,
        energy_level=log.energy_level,
        base_target=log.base_target,
        actual_done=log.actual_done,
        progress=calculate_progress(log.energy_level, log.actual_done, log.base_target),
    )


def _record_to_response(record: DailyRecord) -> DailyRecordResponse:
    return DailyRecordResponse(date=record.date, energy=record.energy, progress=record.progress)


def _goal_to_response(goal: Goal, store: GoalStore) -> GoalResponse:
    return GoalResponse(
        id=goal.id,
        title=goal.title,
        start_date=goal.start_date,
        total_days=goal.total_days,
        status=goal.status,
        history=[_log_to_response(log) for log in goal.history],
        completion=store.goal_completion(goal),
    )


def _optional_goal(goal: Optional[Goal], store: GoalStore) -> Optional[GoalResponse]:
    return _goal_to_response(goal, store) if goal else None


def _unwrap(result: MutationResult) -> Goal:
    if not result.ok:
        raise error_from_result(result)
    return result.goal


# ---------------------------------------------------------------------------
# GET /goal
# ---------------------------------------------------------------------------

@router.get(
    "",
    response_model=GoalStateResponse,
    summary="Current goal state",
    responses={200: {"description": "Hydration flag, active goal, archive and derived metrics."}},
)
def goal_state(store: GoalStore = Depends(get_goal_store)):
    """
    Return the full engine state. Check `has_hydrated` before rendering
    anything goal-dependent: until it is true, `active_goal` being null does
    not mean there is no goal.
    """
    state = store.snapshot()
    today = store.today_log()
    return GoalStateResponse(
        has_hydrated=store.has_hydrated,
        active_goal=_optional_goal(state.active_goal, store),
        archived_goals=[_goal_to_response(g, store) for g in state.archived_goals],
        records=[_record_to_response(r) for r in state.records],
        stability_score=state.stability_score,
        days_active=store.days_active(),
        current_phase=store.current_phase(),
        today_log=_log_to_response(today) if today else None,
        completion_policy=store.completion_policy.value,
    )


# ---------------------------------------------------------------------------
# POST / PATCH /goal
# ---------------------------------------------------------------------------

@router.post(
    "",
    response_model=GoalResponse,
    status_code=status.HTTP_201_CREATED,
    summary="Create the active goal",
    responses={
        201: {"description": "Goal created."},
        409: {"description": "A goal is already active (`GOAL_ALREADY_ACTIVE`)."},
        422: {"description": "Title is blank (`EMPTY_TITLE`)."},
    },
)
def create_goal(payload: CreateGoalRequest, store: GoalStore = Depends(get_hydrated_store)):
    """Only one goal can be active; complete or abandon it before creating another."""
    result = store.create_goal(
        title=payload.title,
        total_days=payload.total_days,
        start_date=payload.start_date.isoformat() if payload.start_date else None,
    )
    return _goal_to_response(_unwrap(result), store)


@router.patch(
    "",
    response_model=GoalResponse,
    summary="Edit the active goal",
    responses={404: {"description": "No active goal (`NO_ACTIVE_GOAL`)."}},
)
def update_goal(payload: UpdateGoalRequest, store: GoalStore = Depends(get_hydrated_store)):
    """Blank titles and durations below 1 keep the current values."""
    result = store.update_goal(title=payload.title, total_days=payload.total_days)
    return _goal_to_response(_unwrap(result), store)


# ---------------------------------------------------------------------------
# POST /goal/logs, /goal/records
# ---------------------------------------------------------------------------

@router.post(
    "/logs",
    response_model=LogCommitResponse,
    summary="Upsert a daily calibration log",
    responses={
        404: {"description": "No active goal (`NO_ACTIVE_GOAL`)."},
        422: {"description": "Date outside [start_date, today] (`DATE_OUT_OF_RANGE`)."},
    },
)
def add_daily_log(payload: DailyLogRequest, store: GoalStore = Depends(get_hydrated_store)):
    """
    One log per day: a second log for the same date replaces the first.
    Energy is clamped to 0–100, targets and output to >= 0.
    The stability score is recomputed on every commit.
    """
    result = store.add_daily_log(
        phase=payload.phase,
        energy_level=payload.energy_level,
        base_target=payload.base_target,
        actual_done=payload.actual_done,
        date=payload.date.isoformat() if payload.date else None,
    )
    goal = _unwrap(result)
    return LogCommitResponse(
        goal=_goal_to_response(goal, store),
        stability_score=store.stability_score,
        auto_completed=result.auto_completed,
    )


@router.post(
    "/records",
    response_model=LogCommitResponse,
    summary="Quick settlement for today",
    responses={422: {"description": "Active goal starts after today (`DATE_OUT_OF_RANGE`)."}},
)
def add_record(payload: DailyRecordRequest, store: GoalStore = Depends(get_hydrated_store)):
    """
    Store today's energy/progress pair. With an active goal it is also folded
    in as an evening log (progress converted to hours on a 6-hour scale).
    """
    result = store.add_record(energy=payload.energy, progress=payload.progress)
    goal = _unwrap(result)
    return LogCommitResponse(
        goal=_optional_goal(goal, store),
        stability_score=store.stability_score,
        auto_completed=result.auto_completed,
    )


# ---------------------------------------------------------------------------
# Archive transitions
# ---------------------------------------------------------------------------

@router.post(
    "/complete",
    response_model=GoalResponse,
    summary="Archive the active goal as completed",
    responses={404: {"description": "No active goal (`NO_ACTIVE_GOAL`)."}},
)
def complete_goal(store: GoalStore = Depends(get_hydrated_store)):
    return _goal_to_response(_unwrap(store.complete_active_goal()), store)


@router.post(
    "/abandon",
    response_model=GoalResponse,
    summary="Archive the active goal as abandoned",
    responses={404: {"description": "No active goal (`NO_ACTIVE_GOAL`)."}},
)
def abandon_goal(store: GoalStore = Depends(get_hydrated_store)):
    return _goal_to_response(_unwrap(store.abandon_active_goal()), store)


@router.delete(
    "/store",
    status_code=status.HTTP_204_NO_CONTENT,
    summary="Wipe all goal state",
)
def clear_store(store: GoalStore = Depends(get_hydrated_store)):
    """Discards the active goal and the whole archive. Nothing is archived."""
    store.clear_store()
