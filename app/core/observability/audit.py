import json
import logging
import logging.handlers
import os
import time
from pathlib import Path
from typing import Any, Dict, Optional


DEFAULT_AUDIT_PATH = Path(".copilot") / "audit.log"

# 10MB max per file, 5 backups
_MAX_BYTES = 10 * 1024 * 1024
_BACKUP_COUNT = 5

_handler_cache: Dict[str, logging.Handler] = {}


def _now_ms() -> int:
    return int(time.time() * 1000)


def default_audit_path() -> Path:
    p = (os.getenv("COPILOT_AUDIT_PATH") or "").strip()
    return Path(p) if p else DEFAULT_AUDIT_PATH


def _get_rotating_handler(audit_path: Path) -> logging.Handler:
    key = str(audit_path.resolve())
    if key not in _handler_cache:
        audit_path.parent.mkdir(parents=True, exist_ok=True)
        h = logging.handlers.RotatingFileHandler(
            str(audit_path),
            maxBytes=_MAX_BYTES,
            backupCount=_BACKUP_COUNT,
            encoding="utf-8",
        )
        h.setFormatter(logging.Formatter("%(message)s"))
        _handler_cache[key] = h
    return _handler_cache[key]


def audit_event(
    event_type: str,
    run_id: Optional[str],
    status: Optional[str],
    *,
    stage: Optional[str] = None,
    request_id: Optional[str] = None,
    extra: Optional[Dict[str, Any]] = None,
    audit_path: Optional[Path] = None,
) -> None:
    """Append one JSON line describing a pipeline run event. Callers must not pass secrets in extra."""
    record: Dict[str, Any] = {
        "ts_ms": _now_ms(),
        "type": event_type,
        "run_id": run_id,
        "status": status,
        "stage": stage,
        "request_id": request_id,
    }
    if extra:
        record["extra"] = extra

    line = json.dumps(record, separators=(",", ":"), ensure_ascii=False)

    handler = _get_rotating_handler(audit_path or default_audit_path())
    log_record = logging.LogRecord(
        name="copilot.audit",
        level=logging.INFO,
        pathname="",
        lineno=0,
        msg=line,
        args=(),
        exc_info=None,
    )
    handler.emit(log_record)
