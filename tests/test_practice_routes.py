"""Tests for api/routes/practice.py — HTTP surface of the practice analytics engine.

Uses the ``api_client`` fixture from conftest, which overrides the engine
singleton with an initialized engine on a fixed clock and manual scheduler.
"""

from __future__ import annotations

from collections.abc import Iterator

import pytest
from conftest import FROZEN_NOW, FixedClock, ManualScheduler
from fastapi.testclient import TestClient

from api.deps import get_engine, load_analytics_config
from api.main import app
from core.practice_analytics.engine import PracticeAnalyticsEngine


@pytest.fixture()
def idle_client() -> Iterator[TestClient]:
    """Client whose engine was never initialized."""
    engine = PracticeAnalyticsEngine(clock=FixedClock(), scheduler=ManualScheduler())
    app.dependency_overrides[get_engine] = lambda: engine
    with TestClient(app) as c:
        yield c
    app.dependency_overrides.clear()


def _track(client: TestClient, controller_type: str, **parameters) -> dict:
    resp = client.post(
        "/practice/interactions",
        json={"controller_type": controller_type, "parameters": parameters},
    )
    assert resp.status_code == 200, resp.text
    return resp.json()


class TestHealthAndMetrics:
    def test_health(self, api_client: TestClient) -> None:
        resp = api_client.get("/health")
        assert resp.status_code == 200
        assert resp.json() == {"status": "ok"}

    def test_metrics_exposition(self, api_client: TestClient) -> None:
        resp = api_client.get("/metrics")
        assert resp.status_code == 200
        assert "practice_sessions_total" in resp.text


class TestSessionEndpoints:
    def test_start_session_defaults(self, api_client: TestClient) -> None:
        resp = api_client.post("/practice/sessions/start", json={})
        assert resp.status_code == 200
        data = resp.json()
        assert data["session_id"].startswith("session_")
        assert data["start_time"] == FROZEN_NOW.isoformat()
        assert data["end_time"] is None
        assert data["context"]["session_type"] == "practice"
        assert data["context"]["time_of_day"] == "evening"
        assert data["context"]["goals"] == ["improve_technique"]

    def test_start_session_with_context(self, api_client: TestClient) -> None:
        resp = api_client.post(
            "/practice/sessions/start",
            json={"session_type": "lesson", "focus_area": "tempo", "goals": ["96 bpm clean"]},
        )
        assert resp.status_code == 200
        assert resp.json()["context"]["focus_area"] == "tempo"
        assert api_client.get("/practice/context").json()["active"] is True

    def test_invalid_literal_rejected_by_schema(self, api_client: TestClient) -> None:
        resp = api_client.post("/practice/sessions/start", json={"difficulty": "virtuoso"})
        assert resp.status_code == 422

    def test_end_session_returns_sealed(self, api_client: TestClient) -> None:
        api_client.post("/practice/sessions/start", json={})
        _track(api_client, "playback", action="play")
        api_client.engine.clock.advance(minutes=20)

        resp = api_client.post("/practice/sessions/end")
        assert resp.status_code == 200
        session = resp.json()["session"]
        assert session["duration_minutes"] == pytest.approx(20.0)
        assert session["interaction_count"] == 1
        assert session["interactions"][0]["action"] == "play"
        context = api_client.get("/practice/context").json()
        assert context["active"] is False
        assert context["context"]["focus_area"] == "general"

    def test_end_without_session(self, api_client: TestClient) -> None:
        assert api_client.post("/practice/sessions/end").json() == {"session": None}

    def test_list_sessions(self, api_client: TestClient) -> None:
        for _ in range(3):
            api_client.post("/practice/sessions/start", json={})
            api_client.post("/practice/sessions/end")
        data = api_client.get("/practice/sessions", params={"limit": 2}).json()
        assert data["count"] == 2
        assert "interactions" not in data["sessions"][0]

    def test_list_sessions_rejects_bad_limit(self, api_client: TestClient) -> None:
        assert api_client.get("/practice/sessions", params={"limit": 0}).status_code == 422


class TestInteractionEndpoint:
    def test_recorded_into_open_session(self, api_client: TestClient) -> None:
        api_client.post("/practice/sessions/start", json={})
        data = _track(api_client, "tempo", action="setTempo", target_bpm=96)
        assert data["recorded"] is True
        assert data["interaction"]["parameters"]["target_bpm"] == 96.0
        assert data["interaction"]["performance"]["accuracy"] == 80.0

    def test_without_session_not_recorded(self, api_client: TestClient) -> None:
        data = _track(api_client, "playback", action="play")
        assert data["recorded"] is False

    def test_unknown_controller(self, api_client: TestClient) -> None:
        resp = api_client.post("/practice/interactions", json={"controller_type": "mixer"})
        assert resp.status_code == 422
        assert "controller_type" in resp.json()["detail"]

    def test_invalid_value(self, api_client: TestClient) -> None:
        api_client.post("/practice/sessions/start", json={})
        resp = api_client.post(
            "/practice/interactions",
            json={"controller_type": "tempo", "parameters": {"target_bpm": -10}},
        )
        assert resp.status_code == 422


class TestAnalyticsEndpoints:
    def test_patterns_after_tempo_run(self, api_client: TestClient) -> None:
        api_client.post("/practice/sessions/start", json={})
        for n in range(10):
            api_client.engine.clock.advance(seconds=30)
            _track(api_client, "tempo", action="setTempo", target_bpm=100 + 10 * n)

        data = api_client.get("/practice/patterns").json()
        assert data["count"] == 1
        pattern = data["patterns"][0]
        assert pattern["pattern_type"] == "tempo_progression"
        assert pattern["characteristics"]["preferred_style"] == "step"

    def test_progress_on_empty_history(self, api_client: TestClient) -> None:
        data = api_client.get("/practice/progress").json()
        assert data["overall_progress"] == 0.0
        assert data["skill_areas"] == []
        assert data["days_to_next_milestone"] == 999

    def test_insights_and_suggestions(self, api_client: TestClient) -> None:
        api_client.post("/practice/sessions/start", json={})
        _track(api_client, "synchronization", action="align")
        api_client.engine.clock.advance(minutes=10)
        api_client.post("/practice/sessions/end")

        resp = api_client.post("/practice/insights")
        assert resp.status_code == 200
        insights = resp.json()
        assert insights["session_summary"]["total_sessions"] == 1
        assert insights["session_summary"]["last_session_start"] == FROZEN_NOW.isoformat()
        assert len(insights["progress"]["skill_areas"]) == 5

        suggestions = api_client.get("/practice/suggestions").json()
        assert suggestions["count"] == len(insights["suggestions"])

    def test_insights_failure_is_500(self, api_client: TestClient, monkeypatch: pytest.MonkeyPatch) -> None:
        def boom():
            raise ArithmeticError("bad window")

        monkeypatch.setattr(api_client.engine, "_build_insights", boom)
        resp = api_client.post("/practice/insights")
        assert resp.status_code == 500
        assert "bad window" in resp.json()["detail"]

    def test_automation_defaults(self, api_client: TestClient) -> None:
        data = api_client.post("/practice/automation").json()
        assert data["tempo_progression"]["start_bpm"] == 80.0
        assert data["transposition_sequence"]["key_sequence"] == ["C", "G", "D", "A", "E"]
        assert data["adaptive_settings"]["learning_style"] == "mixed"

    def test_record_achievement(self, api_client: TestClient) -> None:
        api_client.post("/practice/sessions/start", json={})
        resp = api_client.post(
            "/practice/achievements",
            json={"achievement_type": "mastery", "title": "Clean at 120", "value": 120, "rarity": "rare"},
        )
        assert resp.status_code == 200
        data = resp.json()
        assert data["earned_at"] == FROZEN_NOW.isoformat()
        assert data["rarity"] == "rare"

        sealed = api_client.post("/practice/sessions/end").json()["session"]
        assert [a["title"] for a in sealed["achievements"]] == ["Clean at 120"]

    def test_empty_achievement_title_rejected(self, api_client: TestClient) -> None:
        resp = api_client.post("/practice/achievements", json={"achievement_type": "streak", "title": ""})
        assert resp.status_code == 422

    def test_blank_achievement_title_rejected(self, api_client: TestClient) -> None:
        resp = api_client.post("/practice/achievements", json={"achievement_type": "streak", "title": "   "})
        assert resp.status_code == 422
        assert "title" in resp.json()["detail"]


class TestEngineNotReady:
    def test_start_session_conflict(self, idle_client: TestClient) -> None:
        assert idle_client.post("/practice/sessions/start", json={}).status_code == 409

    def test_end_session_conflict(self, idle_client: TestClient) -> None:
        assert idle_client.post("/practice/sessions/end").status_code == 409

    def test_interaction_conflict(self, idle_client: TestClient) -> None:
        resp = idle_client.post("/practice/interactions", json={"controller_type": "tempo"})
        assert resp.status_code == 409

    def test_insights_conflict(self, idle_client: TestClient) -> None:
        assert idle_client.post("/practice/insights").status_code == 409


class TestLoadAnalyticsConfig:
    def test_environment_overrides(self, monkeypatch: pytest.MonkeyPatch) -> None:
        monkeypatch.setenv("PRACTICE_SESSION_HISTORY_CAP", "25")
        monkeypatch.setenv("PRACTICE_INSIGHT_DELAY_SECONDS", "0.25")
        config = load_analytics_config()
        assert config.session_history_cap == 25
        assert config.insight_delay_seconds == 0.25

    def test_blank_values_use_defaults(self, monkeypatch: pytest.MonkeyPatch) -> None:
        monkeypatch.setenv("PRACTICE_SKILL_HISTORY_CAP", " ")
        assert load_analytics_config().skill_history_cap == 20

    def test_invalid_value_raises(self, monkeypatch: pytest.MonkeyPatch) -> None:
        monkeypatch.setenv("PRACTICE_PREFERENCE_CONFIDENCE", "150")
        with pytest.raises(ValueError, match="preference_confidence_threshold"):
            load_analytics_config()
