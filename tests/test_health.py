def test_live(client):
    r = client.get("/api/v1/health/live")
    assert r.status_code == 200
    assert r.json() == {"status": "alive"}


def test_ready_in_dev(client):
    r = client.get("/api/v1/health/ready")
    assert r.status_code == 200, r.text
    assert r.json()["status"] == "ready"


def test_ready_in_prod_requires_docker_credentials(client, monkeypatch):
    monkeypatch.setenv("COPILOT_ENV", "prod")
    monkeypatch.delenv("DOCKER_USERNAME", raising=False)
    monkeypatch.delenv("DOCKER_PASSWORD", raising=False)
    r = client.get("/api/v1/health/ready")
    assert r.status_code == 503
    assert "missing_env:DOCKER_PASSWORD" in r.json()["problems"]


def test_ready_in_prod_with_credentials(client, monkeypatch):
    monkeypatch.setenv("COPILOT_ENV", "prod")
    monkeypatch.setenv("DOCKER_USERNAME", "acme")
    monkeypatch.setenv("DOCKER_PASSWORD", "dckr_pat_abcdefghijklmnop")
    r = client.get("/api/v1/health/ready")
    assert r.status_code == 200
