from __future__ import annotations

import re
from collections import Counter
from typing import Dict

from prometheus_client import Counter as PromCounter, Histogram

# In-process request counters backing /api/v1/metrics/snapshot
_REQUESTS = Counter()


def normalize_path(path: str) -> str:
    """Reduce high-cardinality paths for metrics labels."""
    p = path or "/"
    # run ids
    p = re.sub(r"^(/api/v1/runs)/[^/]+", r"\1/:run_id", p)
    # ints
    p = re.sub(r"/\d+", "/:id", p)
    return p


HTTP_REQUESTS_TOTAL = PromCounter(
    "copilot_http_requests_total",
    "Total HTTP requests",
    ["method", "path", "status"],
)

HTTP_REQUEST_DURATION_SECONDS = Histogram(
    "copilot_http_request_duration_seconds",
    "HTTP request duration in seconds",
    ["method", "path"],
)


def inc_http(method: str, path: str, status: int) -> None:
    m = (method or "UNKNOWN").upper()
    p = normalize_path(path)
    _REQUESTS["requests_total"] += 1
    _REQUESTS[f"requests_{m}"] += 1
    _REQUESTS[f"path_{p}|{status}"] += 1
    HTTP_REQUESTS_TOTAL.labels(method=m, path=p, status=str(status)).inc()


def snapshot_requests() -> Dict[str, int]:
    return dict(_REQUESTS)


def reset_requests() -> None:
    _REQUESTS.clear()
