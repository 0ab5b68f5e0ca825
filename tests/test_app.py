import pytest
from fastapi.testclient import TestClient

from hbmon.actuator import RestartOutcome
from hbmon.app import create_app


@pytest.fixture
def client(settings, registry, actuator, clock):
    app = create_app(settings, registry=registry, actuator=actuator, clock=clock)
    with TestClient(app) as c:
        yield c


def _hb(name="svc-a", host="localhost", port=8081):
    return {"serviceName": name, "host": host, "port": port}


def test_register_then_list(client):
    r = client.post("/monitor/register", json=_hb())
    assert r.status_code == 200
    assert r.json() == {"message": "Service registered successfully", "serviceName": "svc-a", "status": "HEALTHY"}

    body = client.get("/monitor/services").json()
    assert body["totalServices"] == 1
    rec = body["services"]["svc-a"]
    assert rec["status"] == "HEALTHY"
    assert rec["port"] == 8081
    assert rec["serviceName"] == "svc-a"
    assert rec["lastHeartbeat"].endswith("Z")
    assert set(rec) >= {"serviceName", "host", "port", "status", "lastHeartbeat", "lastStatusChange", "heartbeatCount"}


def test_heartbeat_auto_registers(client):
    r = client.post("/monitor/heartbeat", json=_hb("svc-b"))
    assert r.status_code == 200
    body = r.json()
    assert body["status"] == "HEALTHY"
    assert body["timestamp"].endswith("Z")
    assert client.get("/monitor/services/svc-b").json()["serviceName"] == "svc-b"


def test_unknown_service_404(client):
    assert client.get("/monitor/services/ghost").status_code == 404


def test_invalid_body_is_rejected(client):
    assert client.post("/monitor/heartbeat", json={"host": "x"}).status_code == 422
    assert client.post("/monitor/heartbeat", json=_hb(port=70000)).status_code == 422
    assert client.post("/monitor/heartbeat", json=_hb(name="")).status_code == 422


def test_health_summary_counts_add_up(client, clock):
    client.post("/monitor/register", json=_hb("svc-a"))
    client.post("/monitor/register", json=_hb("svc-b"))
    clock.advance(10)
    client.post("/monitor/heartbeat", json=_hb("svc-b"))
    clock.advance(6)

    report = client.post("/monitor/sweep").json()
    assert report["failed"] == ["svc-a"]
    assert report["outcomes"]["svc-a"]["verifiedRunning"] is True

    h = client.get("/monitor/health").json()
    assert h["status"] == "running"
    assert (h["totalServices"], h["healthyCount"], h["deadCount"]) == (2, 1, 1)
    assert h["healthyCount"] + h["deadCount"] == h["totalServices"]


def test_heartbeat_after_death_recovers(client, clock, actuator):
    actuator.outcome = RestartOutcome(started=False, verified_running=False, message="container not found")
    client.post("/monitor/register", json=_hb())
    clock.advance(16)
    client.post("/monitor/sweep")
    assert client.get("/monitor/services/svc-a").json()["status"] == "DEAD"

    clock.advance(4)
    r = client.post("/monitor/heartbeat", json=_hb())
    assert r.json()["status"] == "HEALTHY"
    rec = client.get("/monitor/services/svc-a").json()
    assert rec["lastStatusChangeAt"] == clock.now

    messages = [e["message"] for e in client.get("/monitor/events").json()]
    assert "Service recovered" in messages
    assert any(m.startswith("Restart failed") for m in messages)


def test_manual_actions_do_not_change_status(client, actuator):
    client.post("/monitor/register", json=_hb())

    r = client.post("/monitor/services/svc-a/restart")
    assert r.json() == {"serviceName": "svc-a", "action": "restart", "success": True, "detail": "running"}
    assert client.post("/monitor/services/svc-a/start").json()["success"] is True
    assert client.post("/monitor/services/svc-a/stop").json()["success"] is False
    assert client.get("/monitor/services/svc-a/container").json() == {"serviceName": "svc-a", "container": "running"}

    assert ("restart", "svc-a") in actuator.calls
    assert client.get("/monitor/services/svc-a").json()["status"] == "HEALTHY"


def test_events_limit(client):
    for i in range(5):
        client.post("/monitor/register", json=_hb(f"svc-{i}"))
    events = client.get("/monitor/events", params={"limit": 2}).json()
    assert len(events) == 2
    assert events[0]["service_name"] == "svc-4"


def test_repeat_registration_logs_once(client):
    for _ in range(3):
        assert client.post("/monitor/register", json=_hb()).status_code == 200

    registered = [e for e in client.get("/monitor/events").json() if e["message"].startswith("Service registered")]
    assert len(registered) == 1
