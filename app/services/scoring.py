"""
Scoring: pure functions over goals and daily logs.

Progress (one day)
------------------
  adjusted_target = base_target * (energy / 100 + 0.5)
  progress        = actual_done / adjusted_target * 100

At 0 energy the bar is 50% of the baseline, at 100 energy it is 150%.
Progress is NOT capped; callers clamp when they need a [0, 100] value.

Goal completion
---------------
Two policies, chosen explicitly (never mixed):
  history_average - mean of clamped daily progress over logged days
  days_required   - sum of clamped daily credit (progress / 100) / total_days

Stability (7-sample window)
---------------------------
  weight      = 2 if the entry is within 2 days of the latest entry, else 1
  alignment   = 100 - |energy - completion|
  sample      = 0.45 * completion + 0.20 * energy + 0.35 * alignment
  penalty     = -15 when energy - completion > 40   (hollow enthusiasm)
  bonus       = +5  when completion - energy > 20   (quiet resilience)
  stability   = weighted mean of samples, clamped to [0, 100]

The constants above are part of the contract; changing any of them changes
every stored score.

All results are rounded half-up to 2 decimals on the exact float value.
"""
from __future__ import annotations

import enum
import math
import sys
from decimal import Context, Decimal, ROUND_HALF_UP
from typing import Sequence

from app.services.clock import days_between
from app.services.entities import DailyLog, DailyRecord, Goal

# Keeps adjusted_target strictly positive
MIN_BASE_TARGET = 0.0001

# Quick-settlement scale: 100% progress == 6 hours of output
MAX_PROGRESS_HOURS = 6

# Wide enough for any finite float: 309 integer digits plus 2 decimals
_ROUNDING = Context(prec=400, rounding=ROUND_HALF_UP)

STABILITY_WINDOW = 7
_RECENT_DAYS = 2
_RECENT_WEIGHT = 2
_OLDER_WEIGHT = 1

_W_COMPLETION = 0.45
_W_ENERGY = 0.2
_W_ALIGNMENT = 0.35

_ENERGY_LEAD_LIMIT = 40
_ENERGY_LEAD_PENALTY = 15
_COMPLETION_LEAD_LIMIT = 20
_COMPLETION_LEAD_BONUS = 5


class CompletionPolicy(str, enum.Enum):
    HISTORY_AVERAGE = "history_average"
    DAYS_REQUIRED = "days_required"


# ---------------------------------------------------------------------------
# Helpers
# ---------------------------------------------------------------------------

def clamp(value: float, lo: float, hi: float) -> float:
    return min(hi, max(lo, value))


def round2(value: float) -> float:
    """Half-up to 2 decimals, computed on the exact binary value."""
    if not math.isfinite(value):
        return value
    return float(Decimal(value).quantize(Decimal("0.01"), context=_ROUNDING))


def _finite(value, default: float = 0.0) -> float:
    try:
        number = float(value)
    except (TypeError, ValueError):
        return default
    return number if math.isfinite(number) else default


# ---------------------------------------------------------------------------
# Per-day progress
# ---------------------------------------------------------------------------

def calculate_progress(energy_level: float, actual_done: float, base_target: float) -> float:
    """Energy-adjusted completion percentage for one day. Not capped."""
    safe_energy = clamp(_finite(energy_level), 0, 100)
    safe_done = max(0.0, _finite(actual_done))
    safe_target = max(MIN_BASE_TARGET, _finite(base_target, MIN_BASE_TARGET))

    adjusted_target = safe_target * (safe_energy / 100 + 0.5)
    percentage = (safe_done / adjusted_target) * 100
    if math.isinf(percentage):
        percentage = sys.float_info.max

    return round2(percentage)


def log_progress(log: DailyLog) -> float:
    """Progress for a log, clamped to [0, 100]."""
    return clamp(calculate_progress(log.energy_level, log.actual_done, log.base_target), 0, 100)


def to_daily_record(log: DailyLog) -> DailyRecord:
    return DailyRecord(
        date=log.date,
        energy=clamp(_finite(log.energy_level), 0, 100),
        progress=round2(log_progress(log)),
    )


def progress_to_hours(progress: float) -> float:
    """Convert a progress percentage to hours of output on the 6-hour scale."""
    return round2(clamp(_finite(progress), 0, 100) / 100 * MAX_PROGRESS_HOURS)


# ---------------------------------------------------------------------------
# Goal completion
# ---------------------------------------------------------------------------

def calculate_goal_completion(
    goal: Goal,
    policy: CompletionPolicy = CompletionPolicy.HISTORY_AVERAGE,
) -> float:
    history = goal.history
    if policy == CompletionPolicy.DAYS_REQUIRED:
        credited_days = sum(log_progress(log) / 100 for log in history)
        completion = credited_days / max(1, goal.total_days) * 100
    else:
        if not history:
            return 0.0
        completion = sum(log_progress(log) for log in history) / len(history)

    return round2(clamp(completion, 0, 100))


# ---------------------------------------------------------------------------
# Stability
# ---------------------------------------------------------------------------

def _sample_score(log: DailyLog) -> float:
    energy = clamp(_finite(log.energy_level), 0, 100)
    completion = log_progress(log)
    alignment = 100 - abs(energy - completion)

    score = completion * _W_COMPLETION + energy * _W_ENERGY + alignment * _W_ALIGNMENT

    if energy - completion > _ENERGY_LEAD_LIMIT:
        score -= _ENERGY_LEAD_PENALTY
    if completion - energy > _COMPLETION_LEAD_LIMIT:
        score += _COMPLETION_LEAD_BONUS

    return score


def _weight(log: DailyLog, latest_date: str) -> int:
    days_from_latest = days_between(log.date, latest_date)
    if days_from_latest is not None and days_from_latest <= _RECENT_DAYS:
        return _RECENT_WEIGHT
    return _OLDER_WEIGHT


def calculate_stability(logs: Sequence[DailyLog]) -> float:
    """7-sample weighted consistency score in [0, 100]; 0 for no logs."""
    if not logs:
        return 0.0

    window = list(logs)[-STABILITY_WINDOW:]
    latest_date = window[-1].date

    weighted_sum = 0.0
    weight_sum = 0
    for log in window:
        weight = _weight(log, latest_date)
        weighted_sum += _sample_score(log) * weight
        weight_sum += weight

    if weight_sum == 0:
        return 0.0

    return round2(clamp(weighted_sum / weight_sum, 0, 100))

