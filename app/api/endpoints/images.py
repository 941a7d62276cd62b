from __future__ import annotations

from fastapi import APIRouter, Depends, HTTPException

from app.api.deps import current_pipeline
from app.api.schemas.pipeline import BuildxPlanRequest, ImageTagsRequest, ManifestCheckRequest
from app.core.images.platforms import buildx_commands, check_manifest
from app.core.images.reference import image_tags
from app.core.pipeline.models import PipelineDefinition

router = APIRouter(prefix="/api/v1/images", tags=["images"])


def _image(requested: str | None, pipeline: PipelineDefinition) -> str:
    return (requested or pipeline.variables.get("DOCKER_IMAGE") or "").strip()


@router.post("/tags")
def tags(req: ImageTagsRequest, pipeline: PipelineDefinition = Depends(current_pipeline)):
    image = _image(req.image, pipeline)
    try:
        return {"image": image, "tags": image_tags(image, req.commit_sha)}
    except ValueError as e:
        raise HTTPException(status_code=400, detail=str(e))


@router.post("/buildx-plan")
def buildx_plan(req: BuildxPlanRequest, pipeline: PipelineDefinition = Depends(current_pipeline)):
    image = _image(req.image, pipeline)
    try:
        cmds = buildx_commands(image, req.commit_sha, req.platforms or None)
    except ValueError as e:
        raise HTTPException(status_code=400, detail=str(e))
    return {"image": image, "commands": cmds}


@router.post("/manifest/check")
def manifest_check(req: ManifestCheckRequest):
    try:
        return check_manifest(req.manifest, req.platforms or None).to_dict()
    except ValueError as e:
        raise HTTPException(status_code=400, detail=str(e))
