from __future__ import annotations

from fastapi import APIRouter, Depends, HTTPException
from fastapi.responses import PlainTextResponse

from app.api.deps import current_pipeline
from app.core.images.commands import local_commands
from app.core.pipeline.models import PipelineDefinition
from app.core.pipeline.renderer import render_gitlab_ci

router = APIRouter(prefix="/api/v1/pipeline", tags=["pipeline"])


@router.get("")
def get_pipeline(pipeline: PipelineDefinition = Depends(current_pipeline)):
    body = pipeline.model_dump(mode="json")
    body["enabled_stages"] = pipeline.enabled_stages()
    return body


@router.get("/gitlab-ci", response_class=PlainTextResponse)
def get_gitlab_ci(pipeline: PipelineDefinition = Depends(current_pipeline)):
    return PlainTextResponse(render_gitlab_ci(pipeline), media_type="text/yaml")


@router.get("/commands")
def get_commands(
    image: str | None = None,
    port: int = 8080,
    pipeline: PipelineDefinition = Depends(current_pipeline),
):
    target = image or pipeline.variables.get("DOCKER_IMAGE", "")
    try:
        return {"image": target, "commands": local_commands(target, port=port)}
    except ValueError as e:
        raise HTTPException(status_code=400, detail=str(e))
