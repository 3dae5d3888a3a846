from fastapi.testclient import TestClient

from tempest.api.main import app

SNAPSHOT_FIELDS = {
    "isRunning",
    "totalRequests",
    "successRequests",
    "failedRequests",
    "currentRps",
    "errors",
    "startTime",
    "elapsed",
    "lastResponseCode",
    "recentLogs",
}


def test_start_requires_target_url():
    with TestClient(app) as client:
        resp = client.post("/api/test/start", json={"maxRps": 5})
        assert resp.status_code == 400
        assert resp.json()["detail"] == "Target URL is required"
        assert client.get("/api/test/status").json()["isRunning"] is False


def test_start_status_stop_cycle():
    with TestClient(app) as client:
        resp = client.post(
            "/api/test/start",
            json={
                "targetUrl": "http://127.0.0.1:1/",
                "startRps": 1,
                "maxRps": 2,
                "duration": 30,
                "workerCount": 1,
                "attackPattern": "ramp-up",
                "securityOptions": {"randomHeaders": True},
            },
        )
        assert resp.status_code == 200
        assert resp.json()["message"] == "Load test started"
        assert resp.json()["config"]["targetUrl"] == "http://127.0.0.1:1/"

        status = client.get("/api/test/status").json()
        assert set(status) == SNAPSHOT_FIELDS
        assert status["isRunning"] is True

        assert client.post("/api/test/stop").json() == {"message": "Load test stopped"}
        assert client.post("/api/test/stop").status_code == 200
        assert client.get("/api/test/status").json()["isRunning"] is False


def test_self_test_target():
    with TestClient(app) as client:
        body = client.get("/api/target").json()
        assert body["message"] == "Target Hit"
        assert isinstance(body["timestamp"], int)
