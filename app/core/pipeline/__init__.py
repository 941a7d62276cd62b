from .models import (
    JobSpec,
    PipelineDefinition,
    PipelineSource,
    StageName,
    TriggerDecision,
)
from .workflow_rules import TriggerEvaluator, evaluate_trigger
from .loader import load_pipeline, ref_slug
from .renderer import render_gitlab_ci

__all__ = [
    "JobSpec",
    "PipelineDefinition",
    "PipelineSource",
    "StageName",
    "TriggerDecision",
    "TriggerEvaluator",
    "evaluate_trigger",
    "load_pipeline",
    "ref_slug",
    "render_gitlab_ci",
]
