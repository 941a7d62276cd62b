import pytest

from app.core.runs.models import RunStatus, StageRecord, StageStatus
from app.core.runs.state_machine import (
    allowed_next,
    can_transition,
    ensure_can_start,
    ensure_stage_transition,
    ensure_transition,
    is_terminal,
)


def test_manual_run_needs_play_before_running():
    assert not can_transition(RunStatus.MANUAL, RunStatus.RUNNING)
    assert can_transition(RunStatus.MANUAL, RunStatus.PENDING)


def test_terminal_statuses_are_final():
    for st in (RunStatus.SUCCESS, RunStatus.FAILED, RunStatus.CANCELED, RunStatus.BLOCKED):
        assert is_terminal(st)
        assert not can_transition(st, RunStatus.RUNNING)


def test_illegal_transition_raises():
    with pytest.raises(ValueError):
        ensure_transition(RunStatus.CREATED, RunStatus.SUCCESS)


def test_allowed_next_from_created():
    assert set(allowed_next(RunStatus.CREATED)) == {"MANUAL", "PENDING", "BLOCKED"}


def test_stage_cannot_skip_running():
    with pytest.raises(ValueError):
        ensure_stage_transition(StageStatus.PENDING, StageStatus.SUCCESS)


def _stages(*statuses):
    names = ["build", "test", "package", "docker", "deploy"]
    return [StageRecord(name=n, job=n, image="img", status=s) for n, s in zip(names, statuses)]


def test_stage_starts_only_after_prior_success():
    stages = _stages(StageStatus.SUCCESS, StageStatus.PENDING, StageStatus.PENDING)
    ensure_can_start(stages, "test")
    with pytest.raises(ValueError):
        ensure_can_start(stages, "package")


def test_stage_blocked_by_failed_predecessor():
    stages = _stages(StageStatus.FAILED, StageStatus.PENDING)
    with pytest.raises(ValueError):
        ensure_can_start(stages, "test")


def test_disabled_stage_does_not_block_later_ones():
    stages = _stages(StageStatus.SUCCESS, StageStatus.SKIPPED, StageStatus.PENDING)
    ensure_can_start(stages, "package")
