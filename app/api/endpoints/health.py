from __future__ import annotations

import os
import tempfile
from pathlib import Path

from fastapi import APIRouter
from starlette.responses import JSONResponse

from app.api.deps import workspace_root
from app.core.observability.metrics import inc_named
from app.core.pipeline.loader import load_pipeline

router = APIRouter()


@router.get("/api/v1/health/live")
def liveness():
    inc_named("health_live")
    return {"status": "alive"}


@router.get("/api/v1/health/ready")
def readiness():
    """
    Readiness reflects ability to serve traffic: the pipeline definition loads
    and the workspace is writable. In prod, Docker Hub credentials must be present.
    """
    inc_named("health_ready")

    env = (os.getenv("COPILOT_ENV") or "dev").strip().lower()
    problems: list[str] = []

    try:
        load_pipeline()
    except ValueError as e:
        problems.append(f"pipeline_invalid:{type(e).__name__}")

    if env == "prod":
        for env_key in ("DOCKER_USERNAME", "DOCKER_PASSWORD"):
            if not (os.getenv(env_key) or "").strip():
                problems.append(f"missing_env:{env_key}")

    ws: Path = workspace_root()
    try:
        ws.mkdir(parents=True, exist_ok=True)
        with tempfile.NamedTemporaryFile(dir=str(ws), prefix=".ready_", delete=True) as f:
            f.write(b"ok")
    except OSError:
        problems.append("workspace_not_writable")

    if problems:
        return JSONResponse(
            status_code=503,
            content={"status": "not_ready", "problems": problems},
        )

    return {"status": "ready"}
