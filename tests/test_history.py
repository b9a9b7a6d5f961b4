"""
Tests for upsert-by-date merging and today's checkpoint lookup.
"""
from app.services.entities import DailyLog, DailyRecord, Goal, Phase
from app.services.history import (
    current_phase,
    records_from_history,
    today_log,
    upsert_log,
    upsert_record,
)


def make_log(day: str, phase: Phase = Phase.evening, energy: float = 50, done: float = 2) -> DailyLog:
    return DailyLog(date=day, phase=phase, energy_level=energy, base_target=4, actual_done=done)


def make_goal(history) -> Goal:
    return Goal(id="g1", title="Test", start_date="2024-01-01", total_days=21, history=tuple(history))


class TestUpsertLog:
    def test_append_new_date(self):
        result = upsert_log([make_log("2024-01-01")], make_log("2024-01-02"))
        assert [log.date for log in result] == ["2024-01-01", "2024-01-02"]

    def test_replace_same_date(self):
        history = [make_log("2024-01-01", energy=10)]
        result = upsert_log(history, make_log("2024-01-01", energy=90))
        assert len(result) == 1
        assert result[0].energy_level == 90

    def test_sorted_ascending(self):
        history = [make_log("2024-01-03"), make_log("2024-01-10")]
        result = upsert_log(history, make_log("2024-01-05"))
        assert [log.date for log in result] == ["2024-01-03", "2024-01-05", "2024-01-10"]

    def test_idempotent(self):
        history = [make_log("2024-01-01"), make_log("2024-01-03")]
        incoming = make_log("2024-01-02", energy=77)
        once = upsert_log(history, incoming)
        assert upsert_log(once, incoming) == once

    def test_dates_stay_unique(self):
        history = []
        for day in ["2024-01-02", "2024-01-01", "2024-01-02", "2024-01-01", "2024-01-03"]:
            history = upsert_log(history, make_log(day))
        dates = [log.date for log in history]
        assert len(dates) == len(set(dates)) == 3

    def test_does_not_mutate_input(self):
        history = [make_log("2024-01-01")]
        upsert_log(history, make_log("2024-01-02"))
        assert len(history) == 1


class TestRecords:
    def test_upsert_record_replaces_by_date(self):
        records = [DailyRecord(date="2024-01-01", energy=10, progress=10)]
        result = upsert_record(records, DailyRecord(date="2024-01-01", energy=80, progress=60))
        assert result == [DailyRecord(date="2024-01-01", energy=80, progress=60)]

    def test_records_from_history(self):
        records = records_from_history([make_log("2024-01-01", done=4), make_log("2024-01-02", done=2)])
        assert [(r.date, r.progress) for r in records] == [("2024-01-01", 100.0), ("2024-01-02", 50.0)]


class TestTodayLogAndPhase:
    def test_no_goal(self):
        assert today_log(None, "2024-01-01") is None
        assert current_phase(None, "2024-01-01") == Phase.morning

    def test_nothing_logged_today_starts_in_morning(self):
        goal = make_goal([make_log("2023-12-31")])
        assert today_log(goal, "2024-01-01") is None
        assert current_phase(goal, "2024-01-01") == Phase.morning

    def test_phase_advances(self):
        expected = {
            Phase.morning: Phase.afternoon,
            Phase.afternoon: Phase.evening,
            Phase.evening: Phase.completed,
            Phase.completed: Phase.completed,
        }
        for logged, following in expected.items():
            goal = make_goal([make_log("2024-01-01", phase=logged)])
            assert current_phase(goal, "2024-01-01") == following

    def test_latest_phase_wins_when_several_match(self):
        goal = make_goal([
            make_log("2024-01-01", phase=Phase.evening),
            make_log("2024-01-01", phase=Phase.morning),
        ])
        assert today_log(goal, "2024-01-01").phase == Phase.evening
