"""
Daily log history: upsert-by-date merging and today's checkpoint lookup.

A goal's history holds exactly one log per date, sorted ascending. Day keys
are ISO strings, so lexicographic order is date order.
"""
from __future__ import annotations

from typing import Iterable, Optional, Sequence

from app.services.clock import today_key
from app.services.entities import PHASE_ORDER, DailyLog, DailyRecord, Goal, Phase
from app.services.scoring import to_daily_record


def upsert_log(history: Iterable[DailyLog], incoming: DailyLog) -> list[DailyLog]:
    """
    Replace the log with the same date, or append. Returns a new sorted list.
    Idempotent: upserting the same log twice equals upserting it once.
    """
    merged = [log for log in history if log.date != incoming.date]
    merged.append(incoming)
    merged.sort(key=lambda log: log.date)
    return merged


def upsert_record(records: Iterable[DailyRecord], incoming: DailyRecord) -> list[DailyRecord]:
    merged = [r for r in records if r.date != incoming.date]
    merged.append(incoming)
    merged.sort(key=lambda r: r.date)
    return merged


def records_from_history(history: Sequence[DailyLog]) -> list[DailyRecord]:
    records: list[DailyRecord] = []
    for log in history:
        records = upsert_record(records, to_daily_record(log))
    return records


def today_log(goal: Optional[Goal], day: Optional[str] = None) -> Optional[DailyLog]:
    """The log for `day` (default today), latest phase first when several match."""
    if goal is None:
        return None
    target = day or today_key()
    logs = [log for log in goal.history if log.date == target]
    if not logs:
        return None
    return max(logs, key=lambda log: PHASE_ORDER[log.phase])


_NEXT_PHASE = {
    Phase.morning: Phase.afternoon,
    Phase.afternoon: Phase.evening,
    Phase.evening: Phase.completed,
    Phase.completed: Phase.completed,
}


def current_phase(goal: Optional[Goal], day: Optional[str] = None) -> Phase:
    """Next checkpoint to fill in today: morning until something is logged."""
    log = today_log(goal, day)
    if log is None:
        return Phase.morning
    return _NEXT_PHASE[log.phase]
