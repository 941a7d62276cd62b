from __future__ import annotations

import logging
import os
from typing import Any, Dict, Optional

from .base import StageBackend

log = logging.getLogger("copilot.runs")

_FAIL_SUFFIX = ":fail"


class LocalBackend(StageBackend):
    """Simulated backend: never executes job scripts.

    Jobs succeed immediately unless config["simulate_failure"] is true, in which
    case the outcome is encoded in backend_ref so status() stays stateless.
    """

    name = "local"

    def submit(self, job_name: str, config: Dict[str, Any]) -> Dict[str, Any]:
        pid = os.getpid()
        fail = bool(config.get("simulate_failure"))
        ref = f"{pid}:{job_name}" + (_FAIL_SUFFIX if fail else "")
        log.info("simulating job=%s image=%s", job_name, config.get("image"))
        return {"backend_ref": ref, "meta": {"pid": pid, "simulated": True}}

    def status(self, job_name: str, *, backend_ref: Optional[str] = None) -> Dict[str, Any]:
        if (backend_ref or "").endswith(_FAIL_SUFFIX):
            return {"state": "FAILED", "exit_code": 1, "simulated": True}
        return {"state": "SUCCESS", "exit_code": 0, "simulated": True}

    def cancel(self, job_name: str, *, backend_ref: Optional[str] = None) -> None:
        return None
