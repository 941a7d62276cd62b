from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Callable, List, Optional

from .models import PipelineSource, TriggerDecision, WorkflowRuleSpec

log = logging.getLogger("copilot.pipeline")


@dataclass(frozen=True)
class TriggerContext:
    source: PipelineSource
    branch: str
    default_branch: str = "main"


@dataclass(frozen=True)
class TriggerEvaluation:
    decision: TriggerDecision
    rule: str
    source: PipelineSource
    branch: str

    def to_dict(self) -> dict:
        return {
            "decision": self.decision.value,
            "rule": self.rule,
            "source": self.source.value,
            "branch": self.branch,
        }


RulePredicate = Callable[[TriggerContext], bool]


@dataclass(frozen=True)
class WorkflowRule:
    name: str
    predicate: RulePredicate
    decision: TriggerDecision
    # GitLab `if:` expression this rule is rendered as; None for the fallback.
    condition: Optional[str] = None


def _is_merge_request(ctx: TriggerContext) -> bool:
    return ctx.source == PipelineSource.MERGE_REQUEST_EVENT


def _is_push_to_default_branch(ctx: TriggerContext) -> bool:
    return ctx.source == PipelineSource.PUSH and ctx.branch == ctx.default_branch


def _always(_ctx: TriggerContext) -> bool:
    return True


def default_rules(default_branch: str = "main") -> List[WorkflowRule]:
    return [
        WorkflowRule(
            name="merge_request",
            predicate=_is_merge_request,
            decision=TriggerDecision.RUN_AUTOMATICALLY,
            condition='$CI_PIPELINE_SOURCE == "merge_request_event"',
        ),
        WorkflowRule(
            name="push_default_branch",
            predicate=_is_push_to_default_branch,
            decision=TriggerDecision.RUN_AUTOMATICALLY,
            condition=f'$CI_PIPELINE_SOURCE == "push" && $CI_COMMIT_BRANCH == "{default_branch}"',
        ),
        WorkflowRule(
            name="fallback_manual",
            predicate=_always,
            decision=TriggerDecision.REQUIRE_MANUAL_TRIGGER,
        ),
    ]


def rule_specs(rules: List[WorkflowRule]) -> List[WorkflowRuleSpec]:
    return [WorkflowRuleSpec(name=r.name, condition=r.condition, decision=r.decision) for r in rules]


class TriggerEvaluator:
    """First-match workflow rule evaluation.

    The rule list always ends with a catch-all, so evaluate() is total: every
    (source, branch) pair maps to exactly one decision.
    """

    def __init__(self, rules: Optional[List[WorkflowRule]] = None, *, default_branch: str = "main"):
        self.default_branch = default_branch
        self._rules = rules if rules is not None else default_rules(default_branch)

    @property
    def rules(self) -> List[WorkflowRule]:
        return list(self._rules)

    def evaluate(self, source: Optional[str], branch: Optional[str]) -> TriggerEvaluation:
        src = source if isinstance(source, PipelineSource) else PipelineSource.normalize(source)
        br = (branch or "").strip()
        ctx = TriggerContext(source=src, branch=br, default_branch=self.default_branch)

        for rule in self._rules:
            if rule.predicate(ctx):
                log.debug("workflow rule matched rule=%s source=%s branch=%s", rule.name, src.value, br)
                return TriggerEvaluation(decision=rule.decision, rule=rule.name, source=src, branch=br)

        # Custom rule lists without a catch-all still get a decision.
        return TriggerEvaluation(
            decision=TriggerDecision.REQUIRE_MANUAL_TRIGGER,
            rule="implicit_manual",
            source=src,
            branch=br,
        )


def evaluate_trigger(source: Optional[str], branch: Optional[str], *, default_branch: str = "main") -> TriggerDecision:
    return TriggerEvaluator(default_branch=default_branch).evaluate(source, branch).decision
