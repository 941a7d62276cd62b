from .models import PipelineRun, RunStatus, StageRecord, StageStatus
from .registry import RunRegistry
from .runner import PipelineRunner

__all__ = [
    "PipelineRun",
    "PipelineRunner",
    "RunRegistry",
    "RunStatus",
    "StageRecord",
    "StageStatus",
]
