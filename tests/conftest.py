import os
from pathlib import Path

import pytest
from fastapi.testclient import TestClient

from app.api.main import app


@pytest.fixture(scope="session", autouse=True)
def _force_test_env():
    # Make runtime behave deterministically in tests
    os.environ.setdefault("COPILOT_ENV", "dev")


@pytest.fixture(autouse=True)
def _isolated_workspace(tmp_path: Path, monkeypatch):
    # Runs, audit log and pipeline overrides never leak between tests
    monkeypatch.setenv("COPILOT_WORKSPACE", str(tmp_path / "workspace"))
    monkeypatch.setenv("COPILOT_AUDIT_PATH", str(tmp_path / "audit.log"))
    monkeypatch.delenv("COPILOT_PIPELINE_FILE", raising=False)
    monkeypatch.delenv("COPILOT_DEFAULT_BRANCH", raising=False)
    monkeypatch.delenv("DOCKER_IMAGE", raising=False)
    return tmp_path / "workspace"


@pytest.fixture()
def client():
    return TestClient(app)


@pytest.fixture()
def good_variables():
    return {
        "DOCKER_USERNAME": "acme",
        "DOCKER_PASSWORD": "dckr_pat_abcdefghijklmnop",
        "DOCKER_IMAGE": "acme/java-app",
    }


@pytest.fixture()
def good_flags():
    return {
        "DOCKER_USERNAME": {"masked": True, "protected": True},
        "DOCKER_PASSWORD": {"masked": True, "protected": True},
    }


SHA = "0123456789abcdef0123456789abcdef01234567"


@pytest.fixture()
def sha():
    return SHA
