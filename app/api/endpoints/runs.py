from __future__ import annotations

from fastapi import APIRouter, Depends, HTTPException, Request

from app.api.deps import pipeline_runner, run_registry
from app.api.schemas.pipeline import CreateRunRequest
from app.core.runs.registry import RunRegistry
from app.core.runs.runner import PipelineRunner

router = APIRouter(prefix="/api/v1/runs", tags=["runs"])


def _not_found(run_id: str) -> HTTPException:
    return HTTPException(status_code=404, detail=f"run_not_found: {run_id}")


@router.post("")
def create_run(req: CreateRunRequest, request: Request, runner: PipelineRunner = Depends(pipeline_runner)):
    config = {}
    if req.fail_stages:
        config["fail_stages"] = list(req.fail_stages)
    try:
        out = runner.create(
            source=req.source,
            branch=req.branch,
            commit_sha=req.commit_sha,
            variables=req.variables,
            variable_flags={k: v.model_dump() for k, v in req.flags.items()},
            backend=req.backend,
            config=config,
            check_credentials=req.check_credentials,
            request_id=getattr(request.state, "request_id", None),
        )
        if req.run_to_completion:
            out = runner.run_to_completion(out["run_id"])
    except ValueError as e:
        raise HTTPException(status_code=400, detail=str(e))
    return out


@router.get("")
def list_runs(registry: RunRegistry = Depends(run_registry)):
    return {"runs": registry.list_ids()}


@router.get("/{run_id}")
def get_run(run_id: str, registry: RunRegistry = Depends(run_registry)):
    run = registry.get(run_id)
    if run is None:
        raise _not_found(run_id)
    return run.to_dict()


@router.get("/{run_id}/history")
def get_history(run_id: str, registry: RunRegistry = Depends(run_registry)):
    if registry.get(run_id) is None:
        raise _not_found(run_id)
    return {"run_id": run_id, "events": registry.history(run_id)}


def _lifecycle(run_id: str, fn):
    try:
        return fn(run_id)
    except FileNotFoundError:
        raise _not_found(run_id)
    except ValueError as e:
        raise HTTPException(status_code=409, detail=str(e))


@router.post("/{run_id}/play")
def play_run(run_id: str, runner: PipelineRunner = Depends(pipeline_runner)):
    return _lifecycle(run_id, runner.play)


@router.post("/{run_id}/advance")
def advance_run(run_id: str, runner: PipelineRunner = Depends(pipeline_runner)):
    return _lifecycle(run_id, runner.advance)


@router.post("/{run_id}/run")
def run_until_done(run_id: str, runner: PipelineRunner = Depends(pipeline_runner)):
    return _lifecycle(run_id, runner.run_to_completion)


@router.post("/{run_id}/cancel")
def cancel_run(run_id: str, runner: PipelineRunner = Depends(pipeline_runner)):
    return _lifecycle(run_id, runner.cancel)
