import random

from crowdsafe import storage
from crowdsafe.analysis_service import main as function_main
from crowdsafe.analysis_service.analyzer import RandomScenarioAnalyzer, scenario_result


class FixedAnalyzer:
    def __init__(self, index):
        self.index = index
        self.seen = []

    def analyze(self, video_reference):
        self.seen.append(video_reference)
        return scenario_result(self.index)


def test_health(function_client):
    resp = function_client.get("/health")
    assert resp.status_code == 200
    assert resp.json()["status"] == "ok"


def test_analyze_video_by_path_persists_row(function_client):
    analyzer = FixedAnalyzer(2)
    function_main.app.dependency_overrides[function_main.get_analyzer] = lambda: analyzer

    resp = function_client.post("/analyze-video", json={"videoPath": "public/1700000000000-crowd.mp4"})
    assert resp.status_code == 200
    body = resp.json()
    assert body["totalPeople"] == 280
    assert body["crowdLevel"] == "Critical"
    assert [a["time"] for a in body["alerts"]] == ["00:05", "00:28", "00:45", "01:12"]
    assert analyzer.seen == ["public/1700000000000-crowd.mp4"]

    rows = storage.list_analyses()
    assert len(rows) == 1
    assert rows[0]["file_path"] == "public/1700000000000-crowd.mp4"
    assert rows[0]["video_url"] is None
    assert rows[0]["user_id"] is None
    assert rows[0]["crowd_level"] == "Critical"


def test_analyze_video_by_url(function_client):
    function_main.app.dependency_overrides[function_main.get_analyzer] = \
        lambda: RandomScenarioAnalyzer(rng=random.Random(1))

    resp = function_client.post("/analyze-video", json={"videoUrl": "https://youtube.com/watch?v=x"})
    assert resp.status_code == 200
    assert resp.json()["crowdLevel"] in {"Safe", "Warning", "Critical"}
    assert storage.list_analyses()[0]["video_url"] == "https://youtube.com/watch?v=x"


def test_empty_body_is_accepted(function_client):
    resp = function_client.post("/analyze-video", json={})
    assert resp.status_code == 200
    row = storage.list_analyses()[0]
    assert row["file_path"] is None and row["video_url"] is None


def test_failed_insert_returns_error_not_result(function_client, monkeypatch):
    def boom(*args, **kwargs):
        raise RuntimeError("connection refused")

    monkeypatch.setattr(storage, "save_analysis", boom)
    resp = function_client.post("/analyze-video", json={"videoPath": "public/x.mp4"})
    assert resp.status_code == 500
    assert resp.json() == {"error": "Failed to save analysis"}


def test_cors_preflight_is_open(function_client):
    resp = function_client.options(
        "/analyze-video",
        headers={"Origin": "https://crowdsafe.example", "Access-Control-Request-Method": "POST"},
    )
    assert resp.status_code == 200
    assert resp.headers["access-control-allow-origin"] == "*"


def test_wrongly_typed_body_is_rendered_as_error(function_client):
    resp = function_client.post("/analyze-video", json={"videoPath": 123})
    assert resp.status_code == 422
    assert set(resp.json()) == {"error"}
    assert storage.list_analyses() == []


def test_invalid_json_is_rendered_as_error(function_client):
    resp = function_client.post(
        "/analyze-video", content=b"not json", headers={"content-type": "application/json"}
    )
    assert resp.status_code == 422
    assert isinstance(resp.json()["error"], str)
    assert storage.list_analyses() == []
