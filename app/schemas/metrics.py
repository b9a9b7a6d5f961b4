"""
Metrics schemas.

GET /metrics/progress  → ProgressResponse
GET /metrics/stability → StabilityResponse
"""
from typing import Optional
from pydantic import BaseModel, Field


class ProgressResponse(BaseModel):
    energy_level: float
    actual_done: float
    base_target: float
    adjusted_target: float = Field(
        description="base_target * (energy/100 + 0.5): 50% of baseline at 0 energy, 150% at 100.",
    )
    progress: float = Field(description="actual_done / adjusted_target * 100, uncapped.", examples=[100.0])


class StabilityResponse(BaseModel):
    goal_id: Optional[str] = Field(description="Active goal, or null when none.")
    stability_score: float = Field(description="7-sample weighted consistency score, 0–100.")
    completion: float = Field(description="Goal completion, 0–100.")
    completion_policy: str
    window_size: int = Field(description="Number of logs considered (at most 7).")
