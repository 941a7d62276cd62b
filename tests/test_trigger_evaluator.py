import pytest

from app.core.pipeline.models import PipelineSource, TriggerDecision
from app.core.pipeline.workflow_rules import (
    TriggerEvaluator,
    WorkflowRule,
    default_rules,
    evaluate_trigger,
)


@pytest.mark.parametrize("branch", ["main", "feature/login", "", "release-1.0"])
def test_merge_request_runs_automatically_on_any_branch(branch):
    assert evaluate_trigger("merge_request_event", branch) == TriggerDecision.RUN_AUTOMATICALLY


def test_push_to_main_runs_automatically():
    assert evaluate_trigger("push", "main") == TriggerDecision.RUN_AUTOMATICALLY


@pytest.mark.parametrize("branch", ["develop", "feature/x", "Main", "main-backup", ""])
def test_push_to_other_branch_requires_manual(branch):
    assert evaluate_trigger("push", branch) == TriggerDecision.REQUIRE_MANUAL_TRIGGER


@pytest.mark.parametrize("source", ["web", "schedule", "api", "trigger", "", None, "nonsense"])
def test_other_sources_require_manual_even_on_main(source):
    assert evaluate_trigger(source, "main") == TriggerDecision.REQUIRE_MANUAL_TRIGGER


def test_evaluation_reports_matching_rule():
    ev = TriggerEvaluator().evaluate("merge_request_event", "main")
    assert ev.rule == "merge_request"

    ev = TriggerEvaluator().evaluate("push", "main")
    assert ev.rule == "push_default_branch"

    ev = TriggerEvaluator().evaluate("push", "dev")
    assert ev.rule == "fallback_manual"
    assert ev.to_dict()["decision"] == "REQUIRE_MANUAL_TRIGGER"


def test_unknown_source_normalizes_to_other():
    ev = TriggerEvaluator().evaluate("Pipeline", "main")
    assert ev.source == PipelineSource.OTHER


def test_source_is_case_insensitive():
    assert evaluate_trigger("PUSH", "main") == TriggerDecision.RUN_AUTOMATICALLY


def test_custom_default_branch():
    assert evaluate_trigger("push", "master", default_branch="master") == TriggerDecision.RUN_AUTOMATICALLY
    assert evaluate_trigger("push", "main", default_branch="master") == TriggerDecision.REQUIRE_MANUAL_TRIGGER


def test_first_match_wins():
    always_manual = WorkflowRule(
        name="freeze",
        predicate=lambda ctx: True,
        decision=TriggerDecision.REQUIRE_MANUAL_TRIGGER,
    )
    ev = TriggerEvaluator(rules=[always_manual] + default_rules()).evaluate("merge_request_event", "main")
    assert ev.decision == TriggerDecision.REQUIRE_MANUAL_TRIGGER
    assert ev.rule == "freeze"


def test_rule_list_without_catch_all_is_still_total():
    ev = TriggerEvaluator(rules=default_rules()[:1]).evaluate("push", "main")
    assert ev.decision == TriggerDecision.REQUIRE_MANUAL_TRIGGER
    assert ev.rule == "implicit_manual"
