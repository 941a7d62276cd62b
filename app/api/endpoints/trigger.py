from __future__ import annotations

from fastapi import APIRouter, Depends

from app.api.deps import current_pipeline
from app.api.schemas.pipeline import TriggerEvaluateRequest, TriggerEvaluateResponse
from app.core.observability.metrics import record_trigger
from app.core.pipeline.models import PipelineDefinition
from app.core.pipeline.workflow_rules import TriggerEvaluator

router = APIRouter(prefix="/api/v1/trigger", tags=["trigger"])


@router.post("/evaluate", response_model=TriggerEvaluateResponse)
def evaluate(req: TriggerEvaluateRequest, pipeline: PipelineDefinition = Depends(current_pipeline)):
    default_branch = (req.default_branch or pipeline.default_branch).strip() or pipeline.default_branch
    ev = TriggerEvaluator(default_branch=default_branch).evaluate(req.source, req.branch)
    record_trigger(ev.decision.value, ev.rule)
    return ev.to_dict()


@router.get("/rules")
def list_rules(pipeline: PipelineDefinition = Depends(current_pipeline)):
    return {
        "default_branch": pipeline.default_branch,
        "rules": [r.model_dump(mode="json") for r in pipeline.workflow_rules],
    }
