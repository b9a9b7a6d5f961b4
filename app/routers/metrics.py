"""
Metrics router: scoring endpoints.

GET /metrics/progress   - energy-adjusted progress for arbitrary inputs (pure)
GET /metrics/stability  - stability score and completion of the active goal
"""
from __future__ import annotations

import sys

from fastapi import APIRouter, Depends, Query

from app.routers.deps import get_hydrated_store
from app.schemas.metrics import ProgressResponse, StabilityResponse
from app.services.goal_store import GoalStore
from app.services.scoring import (
    MIN_BASE_TARGET,
    STABILITY_WINDOW,
    calculate_progress,
    clamp,
    round2,
)

router = APIRouter(prefix="/metrics", tags=["metrics"])


# ---------------------------------------------------------------------------
# GET /metrics/progress
# ---------------------------------------------------------------------------

@router.get(
    "/progress",
    response_model=ProgressResponse,
    summary="Energy-adjusted progress calculator",
    responses={200: {"description": "Progress percentage for the given inputs."}},
)
def progress(
    energy_level: float = Query(description="Energy 0–100 (clamped).", examples=[50]),
    actual_done: float = Query(description="Output achieved (>= 0).", examples=[4]),
    base_target: float = Query(default=4.0, description="Nominal target.", examples=[4]),
):
    """
    ### Rule
    `adjusted_target = base_target * (energy/100 + 0.5)`

    Low energy lowers the bar (50% of baseline at 0), high energy raises it
    (150% at 100). The result is not capped at 100.
    """
    safe_target = max(MIN_BASE_TARGET, base_target)
    adjusted = min(safe_target * (clamp(energy_level, 0, 100) / 100 + 0.5), sys.float_info.max)
    return ProgressResponse(
        energy_level=energy_level,
        actual_done=actual_done,
        base_target=base_target,
        adjusted_target=round2(adjusted),
        progress=calculate_progress(energy_level, actual_done, base_target),
    )


# ---------------------------------------------------------------------------
# GET /metrics/stability
# ---------------------------------------------------------------------------

@router.get(
    "/stability",
    response_model=StabilityResponse,
    summary="Stability score of the active goal",
    responses={503: {"description": "Persisted state still loading (`STORE_NOT_HYDRATED`)."}},
)
def stability(store: GoalStore = Depends(get_hydrated_store)):
    """
    Weighted consistency over the last 7 logs. Logs within 2 days of the
    latest one count double. Returns zeros when no goal is active.
    """
    goal = store.active_goal
    return StabilityResponse(
        goal_id=goal.id if goal else None,
        stability_score=store.stability_score,
        completion=store.goal_completion(),
        completion_policy=store.completion_policy.value,
        window_size=min(len(goal.history), STABILITY_WINDOW) if goal else 0,
    )
