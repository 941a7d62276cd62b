from __future__ import annotations

import json
import logging
import os
import re
from pathlib import Path
from typing import Any, Dict, List, Optional

from app.core.observability.audit import audit_event, default_audit_path

from .models import PipelineRun, RunEvent, RunStatus, StageStatus, _utc_now_iso
from .state_machine import ensure_stage_transition, ensure_transition

log = logging.getLogger("copilot.runs")

_RUN_ID = re.compile(r"^[A-Za-z0-9_-]{1,64}$")


def _runs_dir(workspace_dir: Path) -> Path:
    d = workspace_dir / ".copilot" / "pipelines"
    d.mkdir(parents=True, exist_ok=True)
    return d


def _run_path(workspace_dir: Path, run_id: str) -> Path:
    if not _RUN_ID.match(run_id or ""):
        raise ValueError(f"invalid run_id: {run_id!r}")
    return _runs_dir(workspace_dir) / f"{run_id}.json"


class RunRegistry:
    """File-backed pipeline run registry.

    Path: <workspace>/.copilot/pipelines/{run_id}.json
    Every status change is appended to the run's events and to the audit log:
    audit_path if given, else COPILOT_AUDIT_PATH, else <workspace>/.copilot/audit.log.
    """

    def __init__(self, *, workspace_dir: Path, audit_path: Optional[Path] = None):
        self.workspace_dir = workspace_dir
        if audit_path is not None:
            self.audit_path = Path(audit_path)
        elif (os.getenv("COPILOT_AUDIT_PATH") or "").strip():
            self.audit_path = default_audit_path()
        else:
            self.audit_path = workspace_dir / ".copilot" / "audit.log"

    def get(self, run_id: str) -> Optional[PipelineRun]:
        if not _RUN_ID.match(run_id or ""):
            return None
        p = _run_path(self.workspace_dir, run_id)
        if not p.exists():
            return None
        obj = json.loads(p.read_text(encoding="utf-8"))
        return PipelineRun.from_dict(obj)

    def require(self, run_id: str) -> PipelineRun:
        run = self.get(run_id)
        if run is None:
            raise FileNotFoundError(f"pipeline run not found: run_id={run_id}")
        return run

    def upsert(self, run: PipelineRun) -> None:
        p = _run_path(self.workspace_dir, run.run_id)
        p.write_text(json.dumps(run.to_dict(), indent=2, sort_keys=True), encoding="utf-8")

    def list_ids(self) -> List[str]:
        return sorted(p.stem for p in _runs_dir(self.workspace_dir).glob("*.json"))

    def create(self, run: PipelineRun) -> PipelineRun:
        if _run_path(self.workspace_dir, run.run_id).exists():
            raise ValueError(f"pipeline run already exists: {run.run_id}")
        run.events.append(RunEvent(ts=run.created_ts, status=run.status, message="created"))
        self.upsert(run)
        self._audit("run_created", run, extra={"source": run.source, "branch": run.branch, "decision": run.decision})
        return run

    def transition(
        self,
        run: PipelineRun,
        dst: RunStatus,
        *,
        message: str = "",
        data: Optional[Dict[str, Any]] = None,
    ) -> PipelineRun:
        ensure_transition(run.status, dst)
        if run.status == dst:
            return run

        now = _utc_now_iso()
        run.status = dst
        run.updated_ts = now
        run.events.append(RunEvent(ts=now, status=dst, message=message, data=data or {}))
        self.upsert(run)

        log.info("run transition run_id=%s status=%s message=%s", run.run_id, dst.value, message)
        self._audit("run_status", run, extra={"message": message} if message else None)
        return run

    def transition_stage(
        self,
        run: PipelineRun,
        stage_name: str,
        dst: StageStatus,
        *,
        message: str = "",
        data: Optional[Dict[str, Any]] = None,
    ) -> PipelineRun:
        stage = run.stage(stage_name)
        if stage is None:
            raise ValueError(f"unknown stage: {stage_name}")
        ensure_stage_transition(stage.status, dst)
        if stage.status == dst:
            return run

        now = _utc_now_iso()
        stage.status = dst
        if dst == StageStatus.RUNNING:
            stage.started_ts = now
        elif stage.started_ts is not None:
            stage.finished_ts = now

        run.updated_ts = now
        run.events.append(
            RunEvent(
                ts=now,
                status=run.status,
                stage=stage_name,
                message=message or f"stage {dst.value.lower()}",
                data=data or {},
            )
        )
        self.upsert(run)

        log.info("stage transition run_id=%s stage=%s status=%s", run.run_id, stage_name, dst.value)
        self._audit("stage_status", run, stage=stage_name, extra={"stage_status": dst.value})
        return run

    def history(self, run_id: str) -> List[Dict[str, Any]]:
        run = self.get(run_id)
        if run is None:
            return []
        return [e.to_dict() for e in run.events]

    def _audit(self, event_type: str, run: PipelineRun, *, stage: Optional[str] = None, extra=None) -> None:
        audit_event(
            event_type,
            run.run_id,
            run.status.value,
            stage=stage,
            request_id=run.request_id,
            extra=extra,
            audit_path=self.audit_path,
        )
