from __future__ import annotations

from enum import Enum
from typing import Dict, List, Optional

from pydantic import BaseModel, Field, model_validator


class PipelineSource(str, Enum):
    MERGE_REQUEST_EVENT = "merge_request_event"
    PUSH = "push"
    OTHER = "other"

    @classmethod
    def normalize(cls, value: Optional[str]) -> "PipelineSource":
        v = (value or "").strip().lower()
        for member in cls:
            if member.value == v:
                return member
        return cls.OTHER


class TriggerDecision(str, Enum):
    RUN_AUTOMATICALLY = "RUN_AUTOMATICALLY"
    REQUIRE_MANUAL_TRIGGER = "REQUIRE_MANUAL_TRIGGER"


class StageName(str, Enum):
    BUILD = "build"
    TEST = "test"
    PACKAGE = "package"
    DOCKER = "docker"
    DEPLOY = "deploy"


DEFAULT_STAGE_ORDER: List[str] = [s.value for s in StageName]


class CacheSpec(BaseModel):
    key: str = "$CI_COMMIT_REF_SLUG"
    paths: List[str] = Field(default_factory=list)


class ArtifactSpec(BaseModel):
    paths: List[str] = Field(default_factory=list)
    expire_in: Optional[str] = None
    junit: List[str] = Field(default_factory=list)


class JobSpec(BaseModel):
    name: str
    stage: str
    image: str
    script: List[str]

    services: List[str] = Field(default_factory=list)
    before_script: List[str] = Field(default_factory=list)
    cache: Optional[CacheSpec] = None
    artifacts: Optional[ArtifactSpec] = None
    variables: Dict[str, str] = Field(default_factory=dict)

    # Disabled jobs stay declared but never run (rendered commented out).
    enabled: bool = True
    description: Optional[str] = None


class WorkflowRuleSpec(BaseModel):
    name: str
    condition: Optional[str] = None
    decision: TriggerDecision


class PipelineDefinition(BaseModel):
    name: str
    default_branch: str = "main"
    stages: List[str] = Field(default_factory=lambda: list(DEFAULT_STAGE_ORDER))
    variables: Dict[str, str] = Field(default_factory=dict)
    jobs: List[JobSpec] = Field(default_factory=list)
    workflow_rules: List[WorkflowRuleSpec] = Field(default_factory=list)

    @model_validator(mode="after")
    def _check_jobs(self) -> "PipelineDefinition":
        seen = set()
        for job in self.jobs:
            if job.name in seen:
                raise ValueError(f"duplicate job name: {job.name}")
            seen.add(job.name)
            if job.stage not in self.stages:
                raise ValueError(f"job {job.name} uses undeclared stage: {job.stage}")
        return self

    def jobs_for_stage(self, stage: str) -> List[JobSpec]:
        return [j for j in self.jobs if j.stage == stage]

    def enabled_stages(self) -> List[str]:
        return [s for s in self.stages if any(j.enabled for j in self.jobs_for_stage(s))]
