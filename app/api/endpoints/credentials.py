from __future__ import annotations

import logging

from fastapi import APIRouter, Depends

from app.api.deps import current_pipeline
from app.api.schemas.pipeline import CredentialCheckRequest
from app.core.credentials import DEFAULT_CREDENTIAL_ENGINE
from app.core.credentials.checks import IMAGE_VAR
from app.core.pipeline.models import PipelineDefinition
from app.core.policy.engine import PolicyEngine

router = APIRouter(prefix="/api/v1/credentials", tags=["credentials"])

log = logging.getLogger("copilot.credentials")


@router.post("/check")
def check(req: CredentialCheckRequest, pipeline: PipelineDefinition = Depends(current_pipeline)):
    variables = dict(req.variables)
    variables.setdefault(IMAGE_VAR, pipeline.variables.get(IMAGE_VAR, ""))
    ctx = {
        "variables": variables,
        "flags": {k: v.model_dump() for k, v in req.flags.items()},
    }
    results = DEFAULT_CREDENTIAL_ENGINE.evaluate(ctx)
    summary = PolicyEngine.summarize(results)
    log.info("credential check status=%s codes=%s", summary["status"], [r.code for r in results])
    return summary
