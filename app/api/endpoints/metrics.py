from fastapi import APIRouter

from app.api.observability.metrics import snapshot_requests
from app.core.observability.metrics import snapshot_named

router = APIRouter()


@router.get("/api/v1/metrics/snapshot")
def metrics_snapshot():
    req = snapshot_requests()
    body = {"requests": req, "counters": snapshot_named()}
    if "requests_total" in req:
        body["requests_total"] = req["requests_total"]
    return body
