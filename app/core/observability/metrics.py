from __future__ import annotations

from collections import Counter
from typing import Dict

from prometheus_client import Counter as PromCounter

# Named counters (custom)
_NAMED = Counter()

TRIGGER_DECISIONS_TOTAL = PromCounter(
    "copilot_trigger_decisions_total",
    "Workflow trigger decisions",
    ["decision", "rule"],
)

PIPELINE_RUNS_TOTAL = PromCounter(
    "copilot_pipeline_runs_total",
    "Pipeline runs by terminal status",
    ["status"],
)

STAGE_RESULTS_TOTAL = PromCounter(
    "copilot_stage_results_total",
    "Stage outcomes",
    ["stage", "status"],
)


def reset_metrics() -> None:
    """
    Test helper: clears in-process counters to avoid cross-test leakage.
    Prometheus collectors are process-global and are left alone.
    """
    _NAMED.clear()


def inc_named(name: str, value: int = 1) -> None:
    if not name:
        return
    _NAMED[name] += int(value)


def record_trigger(decision: str, rule: str) -> None:
    inc_named(f"trigger_{decision.lower()}")
    TRIGGER_DECISIONS_TOTAL.labels(decision=decision, rule=rule).inc()


def record_run_terminal(status: str) -> None:
    inc_named(f"runs_{status.lower()}")
    PIPELINE_RUNS_TOTAL.labels(status=status).inc()


def record_stage(stage: str, status: str) -> None:
    inc_named(f"stage_{stage}_{status.lower()}")
    STAGE_RESULTS_TOTAL.labels(stage=stage, status=status).inc()


def snapshot_named() -> Dict[str, int]:
    return dict(_NAMED)
