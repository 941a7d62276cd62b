from __future__ import annotations

from typing import Any, Dict, List

import yaml

from .loader import SECRET_VARIABLES
from .models import JobSpec, PipelineDefinition, TriggerDecision

TRIGGER_VARIABLE = "PIPELINE_TRIGGER"

_DECISION_VALUE = {
    TriggerDecision.RUN_AUTOMATICALLY: "automatic",
    TriggerDecision.REQUIRE_MANUAL_TRIGGER: "manual",
}


def _workflow_block(pipeline: PipelineDefinition) -> Dict[str, Any]:
    rules: List[Dict[str, Any]] = []
    for r in pipeline.workflow_rules:
        rule: Dict[str, Any] = {}
        if r.condition:
            rule["if"] = r.condition
        rule["variables"] = {TRIGGER_VARIABLE: _DECISION_VALUE[r.decision]}
        rules.append(rule)
    return {"rules": rules}


def _job_block(job: JobSpec, *, gate_manual: bool) -> Dict[str, Any]:
    out: Dict[str, Any] = {"stage": job.stage, "image": job.image}
    if job.services:
        out["services"] = list(job.services)
    if job.variables:
        out["variables"] = dict(job.variables)
    if job.cache is not None:
        out["cache"] = {"key": job.cache.key, "paths": list(job.cache.paths)}
    if job.before_script:
        out["before_script"] = list(job.before_script)
    out["script"] = list(job.script)
    if job.artifacts is not None:
        art: Dict[str, Any] = {}
        if job.artifacts.paths:
            art["paths"] = list(job.artifacts.paths)
        if job.artifacts.junit:
            art["reports"] = {"junit": list(job.artifacts.junit)}
        if job.artifacts.expire_in:
            art["expire_in"] = job.artifacts.expire_in
        out["artifacts"] = art
    if gate_manual:
        # Later stages follow the first one, so gating it holds the whole pipeline.
        out["rules"] = [
            {"if": f'${TRIGGER_VARIABLE} == "manual"', "when": "manual"},
            {"when": "on_success"},
        ]
    return out


def _dump(obj: Any) -> str:
    return yaml.safe_dump(obj, sort_keys=False, default_flow_style=False, width=1000)


def _commented(text: str) -> str:
    return "\n".join(f"# {line}" if line else "#" for line in text.rstrip("\n").splitlines()) + "\n"


def render_gitlab_ci(pipeline: PipelineDefinition) -> str:
    """Render the pipeline as .gitlab-ci.yml text.

    Disabled jobs are emitted as a commented block so they can be switched on
    by uncommenting. Secret variables are never written.
    """
    variables = {k: v for k, v in pipeline.variables.items() if k not in SECRET_VARIABLES}

    header = {
        "stages": list(pipeline.stages),
        "variables": variables,
        "workflow": _workflow_block(pipeline),
    }

    parts: List[str] = [
        f"# Generated by ci-pipeline-copilot for {pipeline.name}\n",
        "# DOCKER_USERNAME and DOCKER_PASSWORD must be set as masked, protected CI/CD variables.\n",
        "\n",
        _dump(header),
    ]

    first_stage = pipeline.enabled_stages()[0] if pipeline.enabled_stages() else None
    for job in pipeline.jobs:
        gate = job.enabled and job.stage == first_stage
        block = _dump({job.name: _job_block(job, gate_manual=gate)})
        parts.append("\n")
        if job.enabled:
            parts.append(block)
        else:
            parts.append(f"# {job.name} is disabled; uncomment to enable.\n")
            parts.append(_commented(block))

    return "".join(parts)


def render_pipeline_dict(pipeline: PipelineDefinition) -> Dict[str, Any]:
    """Parsed form of render_gitlab_ci() (disabled jobs are absent)."""
    return yaml.safe_load(render_gitlab_ci(pipeline)) or {}
