def test_metrics_snapshot_counts_requests(client):
    client.get("/api/v1/health/live")
    r = client.get("/api/v1/metrics/snapshot")
    assert r.status_code == 200
    body = r.json()
    assert isinstance(body["requests"], dict)
    assert body["requests_total"] >= 1
    assert body["counters"].get("health_live", 0) >= 1


def test_trigger_counters(client):
    client.post("/api/v1/trigger/evaluate", json={"source": "push", "branch": "dev"})
    counters = client.get("/api/v1/metrics/snapshot").json()["counters"]
    assert counters.get("trigger_require_manual_trigger", 0) >= 1


def test_prometheus_export(client):
    client.post("/api/v1/trigger/evaluate", json={"source": "merge_request_event", "branch": "x"})
    r = client.get("/metrics")
    assert r.status_code == 200
    assert "copilot_http_requests_total" in r.text
    assert "copilot_trigger_decisions_total" in r.text
