from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime, timezone
from enum import Enum
from typing import Any, Dict, List, Optional


def _utc_now_iso() -> str:
    return datetime.now(timezone.utc).isoformat().replace("+00:00", "Z")


class RunStatus(str, Enum):
    CREATED = "CREATED"
    MANUAL = "MANUAL"
    PENDING = "PENDING"
    RUNNING = "RUNNING"
    SUCCESS = "SUCCESS"
    FAILED = "FAILED"
    CANCELED = "CANCELED"
    BLOCKED = "BLOCKED"


class StageStatus(str, Enum):
    PENDING = "PENDING"
    RUNNING = "RUNNING"
    SUCCESS = "SUCCESS"
    FAILED = "FAILED"
    SKIPPED = "SKIPPED"
    CANCELED = "CANCELED"


@dataclass
class RunEvent:
    ts: str
    status: RunStatus
    message: str = ""
    stage: Optional[str] = None
    data: Dict[str, Any] = field(default_factory=dict)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "ts": self.ts,
            "status": self.status.value,
            "message": self.message,
            "stage": self.stage,
            "data": self.data,
        }

    @staticmethod
    def from_dict(d: Dict[str, Any]) -> "RunEvent":
        return RunEvent(
            ts=d["ts"],
            status=RunStatus(d["status"]),
            message=d.get("message", ""),
            stage=d.get("stage"),
            data=d.get("data", {}) or {},
        )


@dataclass
class StageRecord:
    name: str
    job: str
    image: str
    status: StageStatus = StageStatus.PENDING

    backend_ref: Optional[str] = None
    started_ts: Optional[str] = None
    finished_ts: Optional[str] = None
    backend_meta: Dict[str, Any] = field(default_factory=dict)
    last_error: Optional[str] = None

    def to_dict(self) -> Dict[str, Any]:
        return {
            "name": self.name,
            "job": self.job,
            "image": self.image,
            "status": self.status.value,
            "backend_ref": self.backend_ref,
            "started_ts": self.started_ts,
            "finished_ts": self.finished_ts,
            "backend_meta": self.backend_meta or {},
            "last_error": self.last_error,
        }

    @staticmethod
    def from_dict(d: Dict[str, Any]) -> "StageRecord":
        return StageRecord(
            name=d["name"],
            job=d.get("job") or d["name"],
            image=d.get("image", ""),
            status=StageStatus(d.get("status", StageStatus.PENDING.value)),
            backend_ref=d.get("backend_ref"),
            started_ts=d.get("started_ts"),
            finished_ts=d.get("finished_ts"),
            backend_meta=d.get("backend_meta") or {},
            last_error=d.get("last_error"),
        )


@dataclass
class PipelineRun:
    run_id: str
    pipeline: str
    source: str
    branch: str
    commit_sha: str
    ref_slug: str
    decision: str
    rule: str
    status: RunStatus
    created_ts: str
    updated_ts: str

    image: Optional[str] = None
    backend: str = "local"
    request_id: Optional[str] = None
    finished_ts: Optional[str] = None

    stages: List[StageRecord] = field(default_factory=list)
    image_tags: List[str] = field(default_factory=list)
    policy_results: List[Dict[str, Any]] = field(default_factory=list)
    # Backend options (e.g. simulated failures for the local backend). Never holds secrets.
    config: Dict[str, Any] = field(default_factory=dict)

    last_error: Optional[str] = None
    events: List[RunEvent] = field(default_factory=list)

    def stage(self, name: str) -> Optional[StageRecord]:
        for s in self.stages:
            if s.name == name:
                return s
        return None

    def to_dict(self) -> Dict[str, Any]:
        return {
            "run_id": self.run_id,
            "pipeline": self.pipeline,
            "source": self.source,
            "branch": self.branch,
            "commit_sha": self.commit_sha,
            "ref_slug": self.ref_slug,
            "decision": self.decision,
            "rule": self.rule,
            "status": self.status.value,
            "created_ts": self.created_ts,
            "updated_ts": self.updated_ts,
            "image": self.image,
            "backend": self.backend,
            "request_id": self.request_id,
            "finished_ts": self.finished_ts,
            "stages": [s.to_dict() for s in self.stages],
            "image_tags": list(self.image_tags),
            "policy_results": list(self.policy_results),
            "config": self.config or {},
            "last_error": self.last_error,
            "events": [e.to_dict() for e in self.events],
        }

    @staticmethod
    def from_dict(d: Dict[str, Any]) -> "PipelineRun":
        return PipelineRun(
            run_id=d["run_id"],
            pipeline=d.get("pipeline", ""),
            source=d["source"],
            branch=d.get("branch", ""),
            commit_sha=d["commit_sha"],
            ref_slug=d.get("ref_slug", ""),
            decision=d["decision"],
            rule=d.get("rule", ""),
            status=RunStatus(d["status"]),
            created_ts=d.get("created_ts") or _utc_now_iso(),
            updated_ts=d.get("updated_ts") or _utc_now_iso(),
            image=d.get("image"),
            backend=d.get("backend") or "local",
            request_id=d.get("request_id"),
            finished_ts=d.get("finished_ts"),
            stages=[StageRecord.from_dict(s) for s in d.get("stages", []) or []],
            image_tags=list(d.get("image_tags") or []),
            policy_results=list(d.get("policy_results") or []),
            config=d.get("config") or {},
            last_error=d.get("last_error"),
            events=[RunEvent.from_dict(e) for e in d.get("events", []) or []],
        )
