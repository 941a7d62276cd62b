from __future__ import annotations

from typing import Dict, List, Set, Tuple

from .models import RunStatus, StageRecord, StageStatus


_RUN_ALLOWED: Set[Tuple[RunStatus, RunStatus]] = {
    (RunStatus.CREATED, RunStatus.MANUAL),
    (RunStatus.CREATED, RunStatus.PENDING),
    (RunStatus.CREATED, RunStatus.BLOCKED),
    (RunStatus.MANUAL, RunStatus.PENDING),
    (RunStatus.PENDING, RunStatus.RUNNING),

    # cancel from any active status
    (RunStatus.MANUAL, RunStatus.CANCELED),
    (RunStatus.PENDING, RunStatus.CANCELED),
    (RunStatus.RUNNING, RunStatus.CANCELED),

    (RunStatus.RUNNING, RunStatus.SUCCESS),
    (RunStatus.RUNNING, RunStatus.FAILED),
}

_RUN_TERMINAL: Set[RunStatus] = {
    RunStatus.SUCCESS,
    RunStatus.FAILED,
    RunStatus.CANCELED,
    RunStatus.BLOCKED,
}

_STAGE_ALLOWED: Set[Tuple[StageStatus, StageStatus]] = {
    (StageStatus.PENDING, StageStatus.RUNNING),
    (StageStatus.PENDING, StageStatus.SKIPPED),
    (StageStatus.PENDING, StageStatus.CANCELED),
    (StageStatus.RUNNING, StageStatus.SUCCESS),
    (StageStatus.RUNNING, StageStatus.FAILED),
    (StageStatus.RUNNING, StageStatus.CANCELED),
}

_STAGE_TERMINAL: Set[StageStatus] = {
    StageStatus.SUCCESS,
    StageStatus.FAILED,
    StageStatus.SKIPPED,
    StageStatus.CANCELED,
}


def is_terminal(status: RunStatus) -> bool:
    return status in _RUN_TERMINAL


def is_stage_terminal(status: StageStatus) -> bool:
    return status in _STAGE_TERMINAL


def can_transition(src: RunStatus, dst: RunStatus) -> bool:
    if src == dst:
        return True
    if src in _RUN_TERMINAL:
        return False
    return (src, dst) in _RUN_ALLOWED


def ensure_transition(src: RunStatus, dst: RunStatus) -> None:
    if not can_transition(src, dst):
        raise ValueError(f"Illegal transition: {src.value} -> {dst.value}")


def ensure_stage_transition(src: StageStatus, dst: StageStatus) -> None:
    if src == dst:
        return
    if (src, dst) not in _STAGE_ALLOWED:
        raise ValueError(f"Illegal stage transition: {src.value} -> {dst.value}")


def ensure_can_start(stages: List[StageRecord], name: str) -> None:
    """A stage starts only once every earlier stage succeeded or was skipped as disabled."""
    for s in stages:
        if s.name == name:
            return
        if s.status not in (StageStatus.SUCCESS, StageStatus.SKIPPED):
            raise ValueError(f"stage {name} cannot start: {s.name} is {s.status.value}")
    raise ValueError(f"unknown stage: {name}")


def allowed_next(src: RunStatus) -> Dict[str, bool]:
    out: Dict[str, bool] = {}
    for a, b in _RUN_ALLOWED:
        if a == src:
            out[b.value] = True
    return out
