"""
Goal lifecycle state.

`GoalStore` owns the whole engine state (at most one active goal, the archive,
the per-day records and the current stability score) and is the only writer.
The application creates one instance at startup, calls `load()` once, and hands
it to request handlers; nothing here is module-level.

Mutations
---------
  create_goal          - new active goal (fails if one is active or title blank)
  add_daily_log        - upsert today's (or a given day's) calibration log
  add_record           - quick settlement: energy + progress % for today
  update_goal          - edit title / duration in place
  complete_active_goal - archive as completed
  abandon_active_goal  - archive as abandoned
  clear_store          - wipe everything, nothing archived

Every mutation builds the next state, saves it, and only then installs it, all
under one lock: readers never see a half-applied change and a failed save
leaves memory untouched. Validation failures come back as `MutationResult`
values, never as exceptions.
"""
from __future__ import annotations

import logging
import math
import threading
from dataclasses import dataclass, replace
from typing import Optional, Union

from app.services.clock import days_active, is_day_key, today_key
from app.services.entities import (
    DEFAULT_BASE_TARGET,
    DEFAULT_TOTAL_DAYS,
    DailyLog,
    DailyRecord,
    Goal,
    GoalStatus,
    Phase,
    StoreState,
)
from app.services.history import current_phase, today_log, upsert_log, upsert_record
from app.services.migration import migrate_state, new_goal_id, normalize_total_days
from app.services.persistence import SnapshotRepository
from app.services.scoring import (
    CompletionPolicy,
    calculate_goal_completion,
    calculate_stability,
    clamp,
    progress_to_hours,
    round2,
    to_daily_record,
)

logger = logging.getLogger(__name__)


class ResultCode:
    EMPTY_TITLE = "EMPTY_TITLE"
    GOAL_ALREADY_ACTIVE = "GOAL_ALREADY_ACTIVE"
    NO_ACTIVE_GOAL = "NO_ACTIVE_GOAL"
    INVALID_PHASE = "INVALID_PHASE"
    DATE_OUT_OF_RANGE = "DATE_OUT_OF_RANGE"


_REASONS = {
    ResultCode.EMPTY_TITLE: "Goal title cannot be empty.",
    ResultCode.GOAL_ALREADY_ACTIVE: "There is already an active goal. Complete or abandon it first.",
    ResultCode.NO_ACTIVE_GOAL: "There is no active goal.",
    ResultCode.INVALID_PHASE: "Phase must be one of morning, afternoon, evening, completed.",
    ResultCode.DATE_OUT_OF_RANGE: "Log date must fall between the goal start date and today.",
}


@dataclass
class MutationResult:
    ok: bool
    code: Optional[str] = None
    reason: Optional[str] = None
    goal: Optional[Goal] = None
    auto_completed: bool = False

    @classmethod
    def success(cls, goal: Optional[Goal] = None, auto_completed: bool = False) -> "MutationResult":
        return cls(ok=True, goal=goal, auto_completed=auto_completed)

    @classmethod
    def failure(cls, code: str) -> "MutationResult":
        return cls(ok=False, code=code, reason=_REASONS[code])


def _finite(value) -> Optional[float]:
    if value is None or isinstance(value, bool):
        return None
    try:
        number = float(value)
    except (TypeError, ValueError):
        return None
    return number if math.isfinite(number) else None


class GoalStore:
    def __init__(
        self,
        repository: SnapshotRepository,
        *,
        completion_policy: Union[CompletionPolicy, str] = CompletionPolicy.HISTORY_AVERAGE,
        auto_complete: bool = False,
        default_total_days: int = DEFAULT_TOTAL_DAYS,
    ):
        self._repository = repository
        self.completion_policy = CompletionPolicy(completion_policy)
        self.auto_complete = auto_complete
        self.default_total_days = max(1, int(default_total_days))
        self._state = StoreState()
        self._lock = threading.RLock()
        self.has_hydrated = False

    # ------------------------------------------------------------------
    # Read accessors
    # ------------------------------------------------------------------

    @property
    def active_goal(self) -> Optional[Goal]:
        return self._state.active_goal

    @property
    def archived_goals(self) -> list[Goal]:
        return list(self._state.archived_goals)

    @property
    def records(self) -> list[DailyRecord]:
        return list(self._state.records)

    @property
    def stability_score(self) -> float:
        return self._state.stability_score

    def snapshot(self) -> StoreState:
        """A consistent copy of the whole state."""
        with self._lock:
            state = self._state
            return StoreState(
                active_goal=state.active_goal,
                archived_goals=list(state.archived_goals),
                records=list(state.records),
                stability_score=state.stability_score,
            )

    def goal_completion(self, goal: Optional[Goal] = None) -> float:
        goal = goal or self.active_goal
        if goal is None:
            return 0.0
        return calculate_goal_completion(goal, self.completion_policy)

    def days_active(self, today: Optional[str] = None) -> int:
        goal = self.active_goal
        if goal is None:
            return 0
        return days_active(goal.start_date, today)

    def today_log(self, day: Optional[str] = None) -> Optional[DailyLog]:
        return today_log(self.active_goal, day)

    def current_phase(self, day: Optional[str] = None) -> Phase:
        return current_phase(self.active_goal, day)

    # ------------------------------------------------------------------
    # Lifecycle
    # ------------------------------------------------------------------

    def load(self) -> None:
        """Read and migrate the persisted snapshot, then mark the store hydrated."""
        with self._lock:
            raw = self._repository.load()
            self._state = migrate_state(raw.payload, raw.schema_version)
            self.has_hydrated = True
            logger.info(
                "Goal store hydrated (schema=%s, active_goal=%s, archived=%d)",
                raw.schema_version,
                self._state.active_goal.id if self._state.active_goal else None,
                len(self._state.archived_goals),
            )

    def save(self) -> None:
        with self._lock:
            self._repository.save(self._state)

    def _commit(self, next_state: StoreState) -> None:
        self._repository.save(next_state)
        self._state = next_state

    # ------------------------------------------------------------------
    # Mutations
    # ------------------------------------------------------------------

    def create_goal(
        self,
        title: str,
        total_days=None,
        start_date: Optional[str] = None,
    ) -> MutationResult:
        trimmed = title.strip() if isinstance(title, str) else ""
        if not trimmed:
            return MutationResult.failure(ResultCode.EMPTY_TITLE)

        with self._lock:
            if self._state.active_goal is not None:
                return MutationResult.failure(ResultCode.GOAL_ALREADY_ACTIVE)

            # Future or unparseable start dates begin today
            today = today_key()
            start = start_date if is_day_key(start_date) and start_date <= today else today
            goal = Goal(
                id=new_goal_id(),
                title=trimmed,
                start_date=start,
                total_days=normalize_total_days(total_days, self.default_total_days),
                history=(),
                status=GoalStatus.active,
            )
            self._commit(replace(
                self._state,
                active_goal=goal,
                records=[],
                stability_score=0.0,
            ))

        logger.info("Goal %s created: %r, %d days from %s", goal.id, goal.title, goal.total_days, goal.start_date)
        return MutationResult.success(goal)

    def add_daily_log(
        self,
        phase: Union[Phase, str],
        energy_level: float,
        base_target: float,
        actual_done: float,
        date: Optional[str] = None,
    ) -> MutationResult:
        try:
            phase = Phase(phase)
        except (ValueError, TypeError):
            return MutationResult.failure(ResultCode.INVALID_PHASE)

        with self._lock:
            goal = self._state.active_goal
            if goal is None:
                return MutationResult.failure(ResultCode.NO_ACTIVE_GOAL)

            day = date if date is not None else today_key()
            if not is_day_key(day) or not (goal.start_date <= day <= today_key()):
                return MutationResult.failure(ResultCode.DATE_OUT_OF_RANGE)

            log = DailyLog(
                date=day,
                phase=phase,
                energy_level=clamp(_finite(energy_level) or 0.0, 0, 100),
                base_target=max(0.0, _finite(base_target) or 0.0),
                actual_done=max(0.0, _finite(actual_done) or 0.0),
            )
            updated = goal.with_changes(history=tuple(upsert_log(goal.history, log)))
            logger.debug("Goal %s: upserted %s log for %s", goal.id, phase.value, day)

            if self._should_auto_complete(updated):
                return self._complete_automatically(updated)

            self._commit(replace(
                self._state,
                active_goal=updated,
                records=upsert_record(self._state.records, to_daily_record(log)),
                stability_score=calculate_stability(updated.history),
            ))
        return MutationResult.success(updated)

    def add_record(self, energy: float, progress: float) -> MutationResult:
        """
        Quick settlement for today: store the energy/progress pair and, when a
        goal is active, fold it into the goal as an evening log on the
        4-hour baseline.
        """
        day = today_key()
        safe_energy = clamp(_finite(energy) or 0.0, 0, 100)
        safe_progress = round2(clamp(_finite(progress) or 0.0, 0, 100))
        record = DailyRecord(date=day, energy=safe_energy, progress=safe_progress)

        with self._lock:
            records = upsert_record(self._state.records, record)
            goal = self._state.active_goal
            if goal is None:
                self._commit(replace(self._state, records=records))
                return MutationResult.success()
            if day < goal.start_date:
                return MutationResult.failure(ResultCode.DATE_OUT_OF_RANGE)

            log = DailyLog(
                date=day,
                phase=Phase.evening,
                energy_level=safe_energy,
                base_target=DEFAULT_BASE_TARGET,
                actual_done=progress_to_hours(safe_progress),
            )
            updated = goal.with_changes(history=tuple(upsert_log(goal.history, log)))
            if self._should_auto_complete(updated):
                return self._complete_automatically(updated)

            self._commit(replace(
                self._state,
                active_goal=updated,
                records=records,
                stability_score=calculate_stability(updated.history),
            ))
        return MutationResult.success(updated)

    def update_goal(self, title: Optional[str] = None, total_days=None) -> MutationResult:
        with self._lock:
            goal = self._state.active_goal
            if goal is None:
                return MutationResult.failure(ResultCode.NO_ACTIVE_GOAL)

            next_title = title.strip() if isinstance(title, str) and title.strip() else goal.title
            days = _finite(total_days)
            next_days = math.floor(days) if days is not None and days >= 1 else goal.total_days

            updated = goal.with_changes(title=next_title, total_days=next_days)
            self._commit(replace(self._state, active_goal=updated))

        logger.info("Goal %s updated: %r, %d days", updated.id, updated.title, updated.total_days)
        return MutationResult.success(updated)

    def complete_active_goal(self) -> MutationResult:
        return self._finish(GoalStatus.completed)

    def abandon_active_goal(self) -> MutationResult:
        return self._finish(GoalStatus.abandoned)

    def clear_store(self) -> MutationResult:
        with self._lock:
            self._commit(StoreState())
        logger.info("Goal store cleared")
        return MutationResult.success()

    # ------------------------------------------------------------------
    # Internals
    # ------------------------------------------------------------------

    def _should_auto_complete(self, goal: Goal) -> bool:
        return self.auto_complete and self.goal_completion(goal) >= 100

    def _complete_automatically(self, goal: Goal) -> MutationResult:
        self._commit(self._archive(self._state, goal, GoalStatus.completed))
        logger.info("Goal %s reached 100%% and was completed automatically", goal.id)
        return MutationResult.success(goal.with_changes(status=GoalStatus.completed), auto_completed=True)

    @staticmethod
    def _archive(state: StoreState, goal: Goal, status: GoalStatus) -> StoreState:
        return StoreState(
            active_goal=None,
            archived_goals=[goal.with_changes(status=status), *state.archived_goals],
            records=[],
            stability_score=0.0,
        )

    def _finish(self, status: GoalStatus) -> MutationResult:
        with self._lock:
            goal = self._state.active_goal
            if goal is None:
                return MutationResult.failure(ResultCode.NO_ACTIVE_GOAL)
            self._commit(self._archive(self._state, goal, status))

        logger.info("Goal %s %s", goal.id, status.value)
        return MutationResult.success(goal.with_changes(status=status))
