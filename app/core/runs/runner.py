from __future__ import annotations

import logging
import time
import uuid
from typing import Any, Dict, List, Optional

from app.core.credentials import DEFAULT_CREDENTIAL_ENGINE, context_from_env
from app.core.credentials.checks import IMAGE_VAR, SECRET_VARS
from app.core.images.reference import image_tags, normalize_commit_sha, parse_image
from app.core.observability.metrics import record_run_terminal, record_stage, record_trigger
from app.core.pipeline.loader import ref_slug
from app.core.pipeline.models import JobSpec, PipelineDefinition, TriggerDecision
from app.core.pipeline.workflow_rules import TriggerEvaluator
from app.core.policy.engine import PolicyEngine

from .backends import BACKENDS
from .models import PipelineRun, RunStatus, StageRecord, StageStatus, _utc_now_iso
from .registry import RunRegistry
from .state_machine import ensure_can_start, is_terminal

log = logging.getLogger("copilot.runs")


class PipelineRunner:
    """Pipeline run orchestrator.

    - create(): evaluates the workflow trigger, checks credentials, and parks
      the run in MANUAL or PENDING (BLOCKED if a credential check fails)
    - play(): MANUAL -> PENDING
    - advance(): polls the running stage and starts the next one; stages run
      strictly in order and a failure skips everything after it
    - cancel(): best-effort cancel of the running stage, run -> CANCELED
    """

    def __init__(
        self,
        registry: RunRegistry,
        pipeline: PipelineDefinition,
        *,
        evaluator: Optional[TriggerEvaluator] = None,
        credential_engine: Optional[PolicyEngine] = None,
    ):
        self.registry = registry
        self.pipeline = pipeline
        self.evaluator = evaluator or TriggerEvaluator(default_branch=pipeline.default_branch)
        self.credential_engine = credential_engine or DEFAULT_CREDENTIAL_ENGINE

    # ------------------------------------------------------------
    # Creation / manual play
    # ------------------------------------------------------------
    def _job_by_stage(self) -> Dict[str, JobSpec]:
        out: Dict[str, JobSpec] = {}
        for stage in self.pipeline.stages:
            jobs = self.pipeline.jobs_for_stage(stage)
            if len(jobs) > 1:
                raise ValueError(f"stage {stage} has {len(jobs)} jobs; runs support one job per stage")
            if jobs:
                out[stage] = jobs[0]
        return out

    def _stage_records(self) -> List[StageRecord]:
        records: List[StageRecord] = []
        for stage, job in self._job_by_stage().items():
            records.append(
                StageRecord(
                    name=stage,
                    job=job.name,
                    image=job.image,
                    status=StageStatus.PENDING if job.enabled else StageStatus.SKIPPED,
                )
            )
        return records

    def create(
        self,
        *,
        source: Optional[str],
        branch: Optional[str],
        commit_sha: str,
        variables: Optional[Dict[str, str]] = None,
        variable_flags: Optional[Dict[str, Dict[str, Any]]] = None,
        backend: str = "local",
        config: Optional[Dict[str, Any]] = None,
        check_credentials: bool = True,
        request_id: Optional[str] = None,
    ) -> Dict[str, Any]:
        if backend not in BACKENDS:
            raise ValueError(f"Unsupported backend: {backend}")

        sha = normalize_commit_sha(commit_sha)
        evaluation = self.evaluator.evaluate(source, branch)
        record_trigger(evaluation.decision.value, evaluation.rule)

        given = dict(variables or {})
        image = (given.get(IMAGE_VAR) or self.pipeline.variables.get(IMAGE_VAR) or "").strip()
        if not check_credentials:
            # with checks on, a missing or bad image blocks the run as IMAGE_INVALID
            if not image:
                raise ValueError("DOCKER_IMAGE is not set")
            parse_image(image)

        now = _utc_now_iso()
        run = PipelineRun(
            run_id=uuid.uuid4().hex[:12],
            pipeline=self.pipeline.name,
            source=evaluation.source.value,
            branch=evaluation.branch,
            commit_sha=sha,
            ref_slug=ref_slug(evaluation.branch),
            decision=evaluation.decision.value,
            rule=evaluation.rule,
            status=RunStatus.CREATED,
            created_ts=now,
            updated_ts=now,
            image=image or None,
            backend=backend,
            request_id=request_id,
            stages=self._stage_records(),
            config=dict(config or {}),
        )
        self.registry.create(run)

        if check_credentials:
            checked = {**given, IMAGE_VAR: image}
            if backend == "docker":
                # docker stages receive the secrets from this process environment
                env_vars = context_from_env()["variables"]
                checked.update({k: env_vars[k] for k in SECRET_VARS})
            ctx = {"variables": checked, "flags": variable_flags or {}}
            results = self.credential_engine.evaluate(ctx)
            run.policy_results = [r.to_dict() for r in results]
            if PolicyEngine.is_blocking(results):
                codes = sorted({r.code for r in results if r.status.value == "FAIL"})
                run.last_error = "credential checks failed: " + ",".join(codes)
                self.registry.transition(run, RunStatus.BLOCKED, message="blocked by credential checks", data={"codes": codes})
                record_run_terminal(RunStatus.BLOCKED.value)
                return run.to_dict()

        if evaluation.decision == TriggerDecision.RUN_AUTOMATICALLY:
            self.registry.transition(run, RunStatus.PENDING, message=f"automatic ({evaluation.rule})")
        else:
            self.registry.transition(run, RunStatus.MANUAL, message=f"waiting for manual trigger ({evaluation.rule})")
        return run.to_dict()

    def play(self, run_id: str) -> Dict[str, Any]:
        run = self.registry.require(run_id)
        if run.status != RunStatus.MANUAL:
            if is_terminal(run.status):
                raise ValueError(f"run {run_id} is {run.status.value}; cannot play")
            return run.to_dict()
        self.registry.transition(run, RunStatus.PENDING, message="manually triggered")
        return run.to_dict()

    # ------------------------------------------------------------
    # Stage execution
    # ------------------------------------------------------------
    def _ci_variables(self, run: PipelineRun) -> Dict[str, str]:
        out = {k: v for k, v in self.pipeline.variables.items() if k not in SECRET_VARS}
        if run.image:
            out[IMAGE_VAR] = run.image
        out.update(
            {
                "CI_COMMIT_SHA": run.commit_sha,
                "CI_COMMIT_SHORT_SHA": run.commit_sha[:8],
                "CI_COMMIT_BRANCH": run.branch,
                "CI_COMMIT_REF_SLUG": run.ref_slug,
                "CI_PIPELINE_SOURCE": run.source,
                "CI_PIPELINE_ID": run.run_id,
                "CI_DEFAULT_BRANCH": self.pipeline.default_branch,
                "CI_PROJECT_DIR": "/builds/project",
            }
        )
        return out

    def _stage_config(self, run: PipelineRun, job: JobSpec) -> Dict[str, Any]:
        fail_stages = run.config.get("fail_stages") or []
        variables = self._ci_variables(run)
        variables.update(job.variables)
        return {
            "image": job.image,
            "script": list(job.before_script) + list(job.script),
            "variables": variables,
            "passthrough": list(SECRET_VARS),
            "docker_socket": bool(job.services),
            "workdir": run.config.get("workdir"),
            "simulate_failure": job.stage in fail_stages,
        }

    def _backend_job_name(self, run: PipelineRun, stage: StageRecord) -> str:
        return f"{run.run_id}-{stage.name}"

    def _start_stage(self, run: PipelineRun, stage: StageRecord) -> None:
        ensure_can_start(run.stages, stage.name)
        job = self._job_by_stage()[stage.name]
        backend = BACKENDS[run.backend]

        try:
            out = backend.submit(self._backend_job_name(run, stage), self._stage_config(run, job))
        except (RuntimeError, ValueError, OSError) as e:
            log.warning("stage submit failed run_id=%s stage=%s err=%s", run.run_id, stage.name, e)
            stage.last_error = str(e)
            self.registry.transition_stage(run, stage.name, StageStatus.RUNNING, message="submitting")
            self._finish_stage(run, stage, StageStatus.FAILED, message="submit failed")
            return

        stage.backend_ref = out.get("backend_ref")
        stage.backend_meta = out.get("meta") or {}
        self.registry.transition_stage(
            run,
            stage.name,
            StageStatus.RUNNING,
            message=f"running (backend={run.backend})",
            data={"backend_ref": stage.backend_ref},
        )

    def _finish_stage(self, run: PipelineRun, stage: StageRecord, status: StageStatus, *, message: str = "") -> None:
        self.registry.transition_stage(run, stage.name, status, message=message)
        record_stage(stage.name, status.value)
        if status == StageStatus.FAILED:
            self._fail_run(run, stage)

    def _fail_run(self, run: PipelineRun, failed: StageRecord) -> None:
        for s in run.stages:
            if s.status == StageStatus.PENDING:
                self.registry.transition_stage(run, s.name, StageStatus.SKIPPED, message=f"skipped ({failed.name} failed)")
        run.last_error = failed.last_error or f"stage {failed.name} failed"
        run.finished_ts = _utc_now_iso()
        self.registry.transition(run, RunStatus.FAILED, message=f"stage {failed.name} failed")
        record_run_terminal(RunStatus.FAILED.value)

    def _succeed_run(self, run: PipelineRun) -> None:
        run.image_tags = image_tags(run.image or "", run.commit_sha)
        run.finished_ts = _utc_now_iso()
        self.registry.transition(run, RunStatus.SUCCESS, message="all stages passed", data={"image_tags": run.image_tags})
        record_run_terminal(RunStatus.SUCCESS.value)

    def advance(self, run_id: str) -> Dict[str, Any]:
        run = self.registry.require(run_id)

        if is_terminal(run.status) or run.status in (RunStatus.CREATED, RunStatus.MANUAL):
            return run.to_dict()

        if run.status == RunStatus.PENDING:
            self.registry.transition(run, RunStatus.RUNNING, message="started")

        current = next((s for s in run.stages if s.status == StageStatus.RUNNING), None)
        if current is not None:
            backend = BACKENDS[run.backend]
            st = backend.status(self._backend_job_name(run, current), backend_ref=current.backend_ref)
            state = (st.get("state") or "").upper().strip()

            if state == StageStatus.SUCCESS.value:
                current.backend_meta = {**(current.backend_meta or {}), "final_status": st}
                self._finish_stage(run, current, StageStatus.SUCCESS, message="stage passed")
            elif state == StageStatus.FAILED.value:
                current.backend_meta = {**(current.backend_meta or {}), "final_status": st}
                current.last_error = st.get("reason") or f"exit_code={st.get('exit_code')}"
                self._finish_stage(run, current, StageStatus.FAILED, message="stage failed")
                return run.to_dict()
            else:
                # still running (or unknown): keep diagnostics and wait
                current.backend_meta = {**(current.backend_meta or {}), "last_status": st}
                self.registry.upsert(run)
                return run.to_dict()

        nxt = next((s for s in run.stages if s.status == StageStatus.PENDING), None)
        if nxt is None:
            self._succeed_run(run)
        else:
            self._start_stage(run, nxt)
        return run.to_dict()

    def run_to_completion(self, run_id: str, *, poll_interval: float = 0.0, max_steps: Optional[int] = None) -> Dict[str, Any]:
        run = self.registry.require(run_id)
        limit = max_steps if max_steps is not None else 4 * (len(run.stages) + 1)

        out = run.to_dict()
        for _ in range(limit):
            status = RunStatus(out["status"])
            if is_terminal(status) or status in (RunStatus.CREATED, RunStatus.MANUAL):
                break
            out = self.advance(run_id)
            if poll_interval:
                time.sleep(poll_interval)
        return out

    def cancel(self, run_id: str) -> Dict[str, Any]:
        run = self.registry.require(run_id)
        if is_terminal(run.status):
            return run.to_dict()

        backend = BACKENDS[run.backend]
        for s in run.stages:
            if s.status == StageStatus.RUNNING:
                try:
                    backend.cancel(self._backend_job_name(run, s), backend_ref=s.backend_ref)
                except (RuntimeError, OSError) as e:
                    s.last_error = str(e)
                self.registry.transition_stage(run, s.name, StageStatus.CANCELED, message="canceled")
            elif s.status == StageStatus.PENDING:
                self.registry.transition_stage(run, s.name, StageStatus.CANCELED, message="canceled")

        run.finished_ts = _utc_now_iso()
        self.registry.transition(run, RunStatus.CANCELED, message="canceled")
        record_run_terminal(RunStatus.CANCELED.value)
        return run.to_dict()
