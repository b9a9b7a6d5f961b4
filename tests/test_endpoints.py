"""
HTTP tests for the goal and metrics routers.

Covers:
- GET /goal state before and after creating a goal
- POST /goal: 201, 409 on a second goal, 422 on a blank title
- POST /goal/logs: upsert, clamping, date range, validation envelope
- POST /goal/records quick settlement
- PATCH /goal, /goal/complete, /goal/abandon, DELETE /goal/store
- /metrics/progress and /metrics/stability
- 503 STORE_NOT_HYDRATED while the snapshot is loading
"""
from datetime import date, timedelta

import pytest

from app.main import app
from app.services.clock import today_key


def days_ago(n: int) -> str:
    return (date.today() - timedelta(days=n)).isoformat()


def create(client, title="Write 500 words", **extra):
    return client.post("/goal", json={"title": title, **extra})


def log(client, **fields):
    payload = {"phase": "evening", "energy_level": 50, "base_target": 4, "actual_done": 4}
    payload.update(fields)
    return client.post("/goal/logs", json=payload)


# ---------------------------------------------------------------------------
# GET /goal
# ---------------------------------------------------------------------------

class TestGoalState:
    def test_empty_state(self, client):
        r = client.get("/goal")
        assert r.status_code == 200
        body = r.json()
        assert body["has_hydrated"] is True
        assert body["active_goal"] is None
        assert body["archived_goals"] == []
        assert body["records"] == []
        assert body["stability_score"] == 0
        assert body["days_active"] == 0
        assert body["current_phase"] == "morning"
        assert body["today_log"] is None
        assert body["completion_policy"] == "history_average"

    def test_state_with_goal(self, client):
        create(client, start_date=days_ago(2))
        log(client, phase="afternoon")
        body = client.get("/goal").json()
        assert body["active_goal"]["title"] == "Write 500 words"
        assert body["days_active"] == 3
        assert body["today_log"]["phase"] == "afternoon"
        assert body["current_phase"] == "evening"
        assert len(body["records"]) == 1

    def test_state_readable_before_hydration(self, client):
        store = app.state.goal_store
        store.has_hydrated = False
        try:
            r = client.get("/goal")
            assert r.status_code == 200
            assert r.json()["has_hydrated"] is False
        finally:
            store.has_hydrated = True


# ---------------------------------------------------------------------------
# POST / PATCH /goal
# ---------------------------------------------------------------------------

class TestCreateGoal:
    def test_created(self, client):
        r = create(client, "  Read  ", total_days=30)
        assert r.status_code == 201
        body = r.json()
        assert body["title"] == "Read"
        assert body["total_days"] == 30
        assert body["start_date"] == today_key()
        assert body["status"] == "active"
        assert body["history"] == []
        assert body["completion"] == 0

    def test_default_duration(self, client):
        assert create(client).json()["total_days"] == 21

    def test_duration_floored_at_one(self, client):
        assert create(client, total_days=0).json()["total_days"] == 1

    def test_second_goal_conflicts(self, client):
        first = create(client, "First").json()
        r = create(client, "Second")
        assert r.status_code == 409
        assert r.json()["code"] == "GOAL_ALREADY_ACTIVE"
        assert client.get("/goal").json()["active_goal"]["id"] == first["id"]

    def test_blank_title(self, client):
        r = create(client, "   ")
        assert r.status_code == 422
        assert r.json()["code"] == "EMPTY_TITLE"

    def test_missing_title_is_validation_error(self, client):
        r = client.post("/goal", json={"total_days": 5})
        assert r.status_code == 422
        body = r.json()
        assert body["code"] == "VALIDATION_ERROR"
        assert body["details"]["errors"][0]["field"] == "title"


class TestUpdateGoal:
    def test_update(self, client):
        create(client, "Old", total_days=21)
        r = client.patch("/goal", json={"title": "New", "total_days": 45})
        assert r.status_code == 200
        assert (r.json()["title"], r.json()["total_days"]) == ("New", 45)

    def test_invalid_values_keep_current(self, client):
        create(client, "Keep", total_days=21)
        body = client.patch("/goal", json={"title": " ", "total_days": 0}).json()
        assert (body["title"], body["total_days"]) == ("Keep", 21)

    def test_no_active_goal(self, client):
        r = client.patch("/goal", json={"title": "x"})
        assert r.status_code == 404
        assert r.json()["code"] == "NO_ACTIVE_GOAL"


# ---------------------------------------------------------------------------
# POST /goal/logs, /goal/records
# ---------------------------------------------------------------------------

class TestDailyLogs:
    def test_log_commits_and_scores(self, client):
        create(client)
        r = log(client)
        assert r.status_code == 200
        body = r.json()
        history = body["goal"]["history"]
        assert len(history) == 1
        assert history[0]["progress"] == 100.0
        assert body["goal"]["completion"] == 100.0
        assert body["stability_score"] > 0
        assert body["auto_completed"] is False

    def test_same_day_replaces(self, client):
        create(client)
        log(client, phase="morning", energy_level=20)
        body = log(client, phase="evening", energy_level=80).json()
        history = body["goal"]["history"]
        assert len(history) == 1
        assert history[0]["phase"] == "evening"
        assert history[0]["energy_level"] == 80

    def test_values_clamped(self, client):
        create(client)
        entry = log(client, energy_level=140, actual_done=-2).json()["goal"]["history"][0]
        assert entry["energy_level"] == 100
        assert entry["actual_done"] == 0

    def test_backfill_within_range(self, client):
        create(client, start_date=days_ago(3))
        log(client, date=days_ago(1))
        log(client, date=days_ago(3))
        dates = [e["date"] for e in client.get("/goal").json()["active_goal"]["history"]]
        assert dates == [days_ago(3), days_ago(1)]

    def test_date_before_start(self, client):
        create(client)
        r = log(client, date=days_ago(1))
        assert r.status_code == 422
        assert r.json()["code"] == "DATE_OUT_OF_RANGE"

    def test_huge_output_is_accepted(self, client):
        create(client)
        r = log(client, actual_done=1e25)
        assert r.status_code == 200
        assert r.json()["goal"]["completion"] == 100.0
        assert client.get("/goal").status_code == 200

    def test_no_active_goal(self, client):
        r = log(client)
        assert r.status_code == 404
        assert r.json()["code"] == "NO_ACTIVE_GOAL"

    def test_unknown_phase_is_validation_error(self, client):
        create(client)
        r = log(client, phase="midnight")
        assert r.status_code == 422
        assert r.json()["code"] == "VALIDATION_ERROR"

    def test_malformed_date_is_validation_error(self, client):
        create(client)
        r = log(client, date="2024-13-40")
        assert r.status_code == 422
        assert r.json()["code"] == "VALIDATION_ERROR"


class TestRecords:
    def test_record_can_complete_goal(self, client):
        store = app.state.goal_store
        store.auto_complete = True
        try:
            create(client)
            body = client.post("/goal/records", json={"energy": 50, "progress": 100}).json()
        finally:
            store.auto_complete = False
        assert body["auto_completed"] is True
        assert body["goal"]["status"] == "completed"
        assert client.get("/goal").json()["active_goal"] is None

    def test_record_without_goal(self, client):
        r = client.post("/goal/records", json={"energy": 70, "progress": 80})
        assert r.status_code == 200
        assert r.json()["goal"] is None
        records = client.get("/goal").json()["records"]
        assert records == [{"date": today_key(), "energy": 70, "progress": 80}]

    def test_record_with_goal_adds_evening_log(self, client):
        create(client)
        body = client.post("/goal/records", json={"energy": 50, "progress": 50}).json()
        entry = body["goal"]["history"][0]
        assert entry["phase"] == "evening"
        assert entry["actual_done"] == 3.0
        assert entry["base_target"] == 4


# ---------------------------------------------------------------------------
# Archive transitions
# ---------------------------------------------------------------------------

class TestTransitions:
    def test_complete(self, client):
        create(client, "Done")
        log(client)
        r = client.post("/goal/complete")
        assert r.status_code == 200
        assert r.json()["status"] == "completed"

        body = client.get("/goal").json()
        assert body["active_goal"] is None
        assert body["archived_goals"][0]["title"] == "Done"
        assert body["stability_score"] == 0

    def test_abandon_then_create_again(self, client):
        create(client, "First")
        assert client.post("/goal/abandon").json()["status"] == "abandoned"
        assert create(client, "Second").status_code == 201
        body = client.get("/goal").json()
        assert body["active_goal"]["title"] == "Second"
        assert [g["status"] for g in body["archived_goals"]] == ["abandoned"]

    @pytest.mark.parametrize("path", ["/goal/complete", "/goal/abandon"])
    def test_without_active_goal(self, client, path):
        r = client.post(path)
        assert r.status_code == 404
        assert r.json()["code"] == "NO_ACTIVE_GOAL"

    def test_clear_store(self, client):
        create(client)
        client.post("/goal/complete")
        create(client)
        r = client.delete("/goal/store")
        assert r.status_code == 204
        body = client.get("/goal").json()
        assert body["active_goal"] is None
        assert body["archived_goals"] == []


# ---------------------------------------------------------------------------
# Metrics
# ---------------------------------------------------------------------------

class TestMetrics:
    def test_progress_huge_inputs_stay_finite(self, client):
        r = client.get("/metrics/progress", params={"energy_level": 50, "actual_done": 1e25, "base_target": 4})
        assert r.status_code == 200
        assert r.json()["progress"] == (1e25 / 4.0) * 100

    @pytest.mark.parametrize("energy,done,adjusted,expected", [
        (50, 4, 4.0, 100.0),
        (0, 2, 2.0, 100.0),
        (100, 6, 6.0, 100.0),
        (100, 12, 6.0, 200.0),
    ])
    def test_progress(self, client, energy, done, adjusted, expected):
        r = client.get("/metrics/progress", params={"energy_level": energy, "actual_done": done, "base_target": 4})
        assert r.status_code == 200
        body = r.json()
        assert body["adjusted_target"] == adjusted
        assert body["progress"] == expected

    def test_progress_zero_target_is_finite(self, client):
        body = client.get("/metrics/progress", params={"energy_level": 50, "actual_done": 0, "base_target": 0}).json()
        assert body["progress"] == 0

    def test_progress_requires_inputs(self, client):
        r = client.get("/metrics/progress")
        assert r.status_code == 422
        assert r.json()["code"] == "VALIDATION_ERROR"

    def test_stability_without_goal(self, client):
        body = client.get("/metrics/stability").json()
        assert body["goal_id"] is None
        assert body["stability_score"] == 0
        assert body["window_size"] == 0

    def test_stability_with_goal(self, client):
        goal = create(client, start_date=days_ago(1)).json()
        log(client, date=days_ago(1), energy_level=90, actual_done=0)
        body = client.get("/metrics/stability").json()
        assert body["goal_id"] == goal["id"]
        assert body["stability_score"] == 6.5
        assert body["completion"] == 0
        assert body["window_size"] == 1


# ---------------------------------------------------------------------------
# Hydration guard and health
# ---------------------------------------------------------------------------

class TestHydrationGuard:
    @pytest.mark.parametrize("method,path", [
        ("post", "/goal/complete"),
        ("post", "/goal/abandon"),
        ("get", "/metrics/stability"),
        ("delete", "/goal/store"),
    ])
    def test_mutations_wait_for_hydration(self, client, method, path):
        store = app.state.goal_store
        store.has_hydrated = False
        try:
            r = getattr(client, method)(path)
            assert r.status_code == 503
            assert r.json()["code"] == "STORE_NOT_HYDRATED"
        finally:
            store.has_hydrated = True


class TestHealth:
    def test_health(self, client):
        r = client.get("/health")
        assert r.status_code == 200
        body = r.json()
        assert body["status"] == "ok"
        assert body["db"] == "ok"
        assert body["hydrated"] is True
