from fastapi.testclient import TestClient

from app.api.main import app
from app.api import deps


def test_unknown_path_has_no_traceback():
    c = TestClient(app)
    r = c.get("/api/v1/does/not/exist")
    assert r.status_code == 404
    assert "Traceback" not in r.text


def test_unhandled_error_is_shaped(monkeypatch):
    def boom():
        raise RuntimeError("secret detail dckr_pat_x")

    app.dependency_overrides[deps.current_pipeline] = boom
    try:
        c = TestClient(app, raise_server_exceptions=False)
        r = c.get("/api/v1/pipeline", headers={"X-Request-Id": "rid-boom"})
    finally:
        app.dependency_overrides.clear()

    assert r.status_code == 500
    body = r.json()
    assert body["detail"] == "Internal Server Error"
    assert body["request_id"] == "rid-boom"
    assert "dckr_pat_x" not in r.text
    assert "Traceback" not in r.text
