from __future__ import annotations

import os
from pathlib import Path

from app.core.pipeline.loader import load_pipeline
from app.core.pipeline.models import PipelineDefinition
from app.core.runs.registry import RunRegistry
from app.core.runs.runner import PipelineRunner


def workspace_root() -> Path:
    return Path((os.getenv("COPILOT_WORKSPACE") or "workspace").strip())


def current_pipeline() -> PipelineDefinition:
    # Re-read per request so COPILOT_PIPELINE_FILE edits apply without restart.
    return load_pipeline()


def run_registry() -> RunRegistry:
    return RunRegistry(workspace_dir=workspace_root())


def pipeline_runner() -> PipelineRunner:
    return PipelineRunner(run_registry(), current_pipeline())
