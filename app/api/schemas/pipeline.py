from __future__ import annotations

from typing import Any, Dict, List, Optional

from pydantic import BaseModel, Field


class TriggerEvaluateRequest(BaseModel):
    source: str = Field(description="CI_PIPELINE_SOURCE, e.g. merge_request_event or push")
    branch: str = ""
    default_branch: Optional[str] = None


class TriggerEvaluateResponse(BaseModel):
    decision: str
    rule: str
    source: str
    branch: str


class ImageTagsRequest(BaseModel):
    image: Optional[str] = None
    commit_sha: str


class BuildxPlanRequest(BaseModel):
    image: Optional[str] = None
    commit_sha: str
    platforms: List[str] = Field(default_factory=list)


class ManifestCheckRequest(BaseModel):
    manifest: Dict[str, Any]
    platforms: List[str] = Field(default_factory=list)


class VariableFlags(BaseModel):
    masked: bool = False
    protected: bool = False


class CredentialCheckRequest(BaseModel):
    variables: Dict[str, str] = Field(default_factory=dict)
    flags: Dict[str, VariableFlags] = Field(default_factory=dict)


class CreateRunRequest(BaseModel):
    source: str
    branch: str = ""
    commit_sha: str

    variables: Dict[str, str] = Field(default_factory=dict)
    flags: Dict[str, VariableFlags] = Field(default_factory=dict)
    backend: str = "local"
    check_credentials: bool = True

    # local backend only: stages that should fail
    fail_stages: List[str] = Field(default_factory=list)
    # advance until terminal before responding
    run_to_completion: bool = False
