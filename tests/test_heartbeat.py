import json
import threading

import httpx

from hbmon.heartbeat import HeartbeatSender, send_heartbeat


def _client(handler):
    return httpx.Client(transport=httpx.MockTransport(handler))


def test_send_heartbeat_posts_payload():
    seen = {}

    def handler(request):
        seen["url"] = str(request.url)
        seen["body"] = json.loads(request.content)
        return httpx.Response(200, json={"status": "HEALTHY"})

    with _client(handler) as c:
        ok, msg = send_heartbeat("http://monitor:8080/", "svc-a", "localhost", 8081, client=c)

    assert ok is True
    assert msg == "HEALTHY"
    assert seen["url"] == "http://monitor:8080/monitor/heartbeat"
    assert seen["body"] == {"serviceName": "svc-a", "host": "localhost", "port": 8081}


def test_send_heartbeat_http_error_status():
    with _client(lambda r: httpx.Response(503)) as c:
        ok, msg = send_heartbeat("http://monitor", "svc-a", "localhost", 1, client=c)
    assert (ok, msg) == (False, "HTTP 503")


def test_send_heartbeat_connection_error():
    def handler(request):
        raise httpx.ConnectError("refused", request=request)

    with _client(handler) as c:
        ok, msg = send_heartbeat("http://monitor", "svc-a", "localhost", 1, client=c)
    assert ok is False
    assert "ConnectError" in msg


def test_sender_beat_uses_given_client():
    calls = []

    def handler(request):
        calls.append(request)
        return httpx.Response(200, json={"status": "HEALTHY"})

    sender = HeartbeatSender("http://monitor", "svc-a", "localhost", 8081, interval_s=1)
    with _client(handler) as c:
        assert sender.beat(c) is True
        assert sender.beat(c) is True
    assert [r.url.path for r in calls] == ["/monitor/register", "/monitor/heartbeat"]


def test_sender_keeps_registering_until_accepted():
    calls = []

    def handler(request):
        calls.append(request.url.path)
        if len(calls) == 1:
            return httpx.Response(503)
        return httpx.Response(200, json={"status": "HEALTHY"})

    sender = HeartbeatSender("http://monitor", "svc-a", "localhost", 8081)
    with _client(handler) as c:
        assert sender.beat(c) is False
        assert sender.beat(c) is True
        assert sender.beat(c) is True
    assert calls == ["/monitor/register", "/monitor/register", "/monitor/heartbeat"]


def test_sender_thread_registers_then_heartbeats():
    calls = []
    two_beats = threading.Event()

    def handler(request):
        calls.append(request.url.path)
        if len(calls) >= 2:
            two_beats.set()
        return httpx.Response(200, json={"status": "HEALTHY"})

    sender = HeartbeatSender(
        "http://monitor", "svc-a", "localhost", 8081, interval_s=0.1, client_factory=lambda: _client(handler)
    )
    sender.start()
    try:
        assert two_beats.wait(5)
    finally:
        sender.stop()
    assert calls[:2] == ["/monitor/register", "/monitor/heartbeat"]
