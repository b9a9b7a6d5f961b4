"""
Persisted-state migration.

Turns a raw snapshot payload of any known (or unknown) schema version into the
current `StoreState`. Total by construction: malformed input is never raised,
only dropped or defaulted field by field.

Known schema versions
---------------------
  LEGACY  (0-3) - no version tag or an old one. Goals may carry the duration as
                  `daysRequired`; `records` and `archivedGoals` may be absent.
  CURRENT (4)   - `{activeGoal, archivedGoals, records, stabilityScore}` with
                  `totalDays`.

Versions above CURRENT are parsed with the current parser.

Rules shared by every version
-----------------------------
  * non-dict payload                → empty state
  * goal: bad id                    → fresh id
          blank title               → "Untitled Goal"
          bad startDate             → today
          totalDays / daysRequired  → int >= 1, default 21
          unknown status            → active
  * log:  unknown phase             → log dropped
          other fields              → clamped / defaulted
          duplicate dates           → last one in input order wins
  * stabilityScore finite number    → clamped to [0, 100] and trusted
                   anything else    → recomputed from the active history
                   no active goal   → 0
"""
from __future__ import annotations

import enum
import logging
import math
import uuid
from typing import Any, Callable, Optional

from app.services.clock import is_day_key, today_key
from app.services.entities import (
    DEFAULT_TOTAL_DAYS,
    UNTITLED_GOAL,
    DailyLog,
    DailyRecord,
    Goal,
    GoalStatus,
    Phase,
    StoreState,
)
from app.services.history import records_from_history, upsert_log, upsert_record
from app.services.scoring import calculate_stability, clamp, round2

logger = logging.getLogger(__name__)


class SchemaVersion(enum.IntEnum):
    LEGACY = 3
    CURRENT = 4


STORE_VERSION = int(SchemaVersion.CURRENT)


# ---------------------------------------------------------------------------
# Field coercion
# ---------------------------------------------------------------------------

def _number(value: Any) -> Optional[float]:
    """Finite float or None. Booleans are not numbers here."""
    if isinstance(value, bool) or value is None:
        return None
    try:
        number = float(value)
    except (TypeError, ValueError):
        return None
    return number if math.isfinite(number) else None


def _number_or_zero(value: Any) -> float:
    number = _number(value)
    return 0.0 if number is None else number


def new_goal_id() -> str:
    return uuid.uuid4().hex


def normalize_total_days(value: Any, default: int = DEFAULT_TOTAL_DAYS) -> int:
    number = _number(value)
    if number is None:
        return default
    return max(1, math.floor(number))


def _parse_phase(value: Any) -> Optional[Phase]:
    try:
        return Phase(value)
    except (ValueError, TypeError):
        return None


def _parse_status(value: Any) -> GoalStatus:
    try:
        return GoalStatus(value)
    except (ValueError, TypeError):
        return GoalStatus.active


# ---------------------------------------------------------------------------
# Entity parsers
# ---------------------------------------------------------------------------

def normalize_log(raw: Any) -> Optional[DailyLog]:
    if not isinstance(raw, dict):
        return None
    phase = _parse_phase(raw.get("phase"))
    if phase is None:
        return None
    return DailyLog(
        date=raw["date"] if is_day_key(raw.get("date")) else today_key(),
        phase=phase,
        energy_level=clamp(_number_or_zero(raw.get("energyLevel")), 0, 100),
        base_target=max(0.0, _number_or_zero(raw.get("baseTarget"))),
        actual_done=max(0.0, _number_or_zero(raw.get("actualDone"))),
    )


def normalize_record(raw: Any) -> Optional[DailyRecord]:
    if not isinstance(raw, dict):
        return None
    return DailyRecord(
        date=raw["date"] if is_day_key(raw.get("date")) else today_key(),
        energy=clamp(_number_or_zero(raw.get("energy")), 0, 100),
        progress=round2(clamp(_number_or_zero(raw.get("progress")), 0, 100)),
    )


def _normalize_history(raw_history: Any) -> tuple[DailyLog, ...]:
    if not isinstance(raw_history, list):
        return ()
    history: list[DailyLog] = []
    dropped = 0
    for raw in raw_history:
        log = normalize_log(raw)
        if log is None:
            dropped += 1
            continue
        history = upsert_log(history, log)
    if dropped:
        logger.warning("Dropped %d malformed log entries during migration", dropped)
    return tuple(history)


def normalize_goal(raw: Any, *, legacy: bool = False) -> Optional[Goal]:
    if not isinstance(raw, dict):
        return None

    goal_id = raw.get("id")
    if not isinstance(goal_id, str) or not goal_id.strip():
        goal_id = new_goal_id()

    title = raw.get("title")
    if not isinstance(title, str) or not title.strip():
        title = UNTITLED_GOAL

    start_date = raw.get("startDate")
    if not is_day_key(start_date):
        start_date = today_key()

    # Current field wins; older versions only wrote daysRequired
    raw_days = raw.get("totalDays")
    if raw_days is None or (legacy and _number(raw_days) is None):
        raw_days = raw.get("daysRequired")

    return Goal(
        id=goal_id,
        title=title,
        start_date=start_date,
        total_days=normalize_total_days(raw_days),
        history=_normalize_history(raw.get("history")),
        status=_parse_status(raw.get("status")),
    )


# ---------------------------------------------------------------------------
# Version parsers
# ---------------------------------------------------------------------------

def _place_goals(
    active: Optional[Goal],
    archived: list[Goal],
) -> tuple[Optional[Goal], list[Goal]]:
    """
    Keep the single-active invariant: a finished goal found in the active slot
    moves to the front of the archive, and an "active" goal found in the
    archive is archived as abandoned.
    """
    fixed_archive = []
    for goal in archived:
        if goal.status == GoalStatus.active:
            logger.warning("Archived goal %s marked active; archiving as abandoned", goal.id)
            goal = goal.with_changes(status=GoalStatus.abandoned)
        fixed_archive.append(goal)

    if active is not None and active.status != GoalStatus.active:
        logger.warning("Goal %s in active slot has status %s; archiving", active.id, active.status.value)
        fixed_archive.insert(0, active)
        active = None

    return active, fixed_archive


def _parse_goals(raw: Any, *, legacy: bool) -> list[Goal]:
    if not isinstance(raw, list):
        return []
    goals = []
    for item in raw:
        goal = normalize_goal(item, legacy=legacy)
        if goal is not None:
            goals.append(goal)
    return goals


def _parse_records(raw: Any, active: Optional[Goal]) -> list[DailyRecord]:
    if not isinstance(raw, list):
        return records_from_history(active.history) if active else []
    records: list[DailyRecord] = []
    for item in raw:
        record = normalize_record(item)
        if record is not None:
            records = upsert_record(records, record)
    return records


def _parse_stability(raw: Any, active: Optional[Goal]) -> float:
    if active is None:
        return 0.0
    score = _number(raw)
    if score is not None:
        return clamp(score, 0, 100)
    return calculate_stability(active.history)


def _parse_state(payload: dict, *, legacy: bool) -> StoreState:
    active = normalize_goal(payload.get("activeGoal"), legacy=legacy)
    archived = _parse_goals(payload.get("archivedGoals"), legacy=legacy)
    active, archived = _place_goals(active, archived)

    return StoreState(
        active_goal=active,
        archived_goals=archived,
        records=_parse_records(payload.get("records"), active),
        stability_score=_parse_stability(payload.get("stabilityScore"), active),
    )


def _parse_legacy(payload: dict) -> StoreState:
    return _parse_state(payload, legacy=True)


def _parse_current(payload: dict) -> StoreState:
    return _parse_state(payload, legacy=False)


_PARSERS: dict[SchemaVersion, Callable[[dict], StoreState]] = {
    SchemaVersion.LEGACY: _parse_legacy,
    SchemaVersion.CURRENT: _parse_current,
}


def resolve_version(version: Any) -> SchemaVersion:
    number = _number(version)
    if number is None or number < SchemaVersion.CURRENT:
        return SchemaVersion.LEGACY
    return SchemaVersion.CURRENT


# ---------------------------------------------------------------------------
# Public
# ---------------------------------------------------------------------------

def migrate_state(payload: Any, version: Any = STORE_VERSION) -> StoreState:
    """Normalize a persisted payload of the given schema version. Never raises."""
    if not isinstance(payload, dict):
        if payload is not None:
            logger.warning("Persisted state is %s, not an object; starting empty", type(payload).__name__)
        return StoreState()

    schema = resolve_version(version)
    state = _PARSERS[schema](payload)
    logger.debug(
        "Migrated snapshot from schema %s (active=%s, archived=%d)",
        version, state.active_goal is not None, len(state.archived_goals),
    )
    return state
