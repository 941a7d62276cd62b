from __future__ import annotations

from typing import Any, Callable, Dict, List, Optional, Union

from .models import PolicyResult, PolicyStatus


PolicyFn = Callable[[Dict[str, Any]], Union[None, PolicyResult, List[PolicyResult]]]


class PolicyEngine:
    def __init__(self, policies: List[PolicyFn]):
        self._policies = policies

    def evaluate(self, context: Dict[str, Any]) -> List[PolicyResult]:
        results: List[PolicyResult] = []
        for fn in self._policies:
            r = fn(context)
            if r is None:
                continue
            if isinstance(r, list):
                results.extend(r)
            else:
                results.append(r)
        return results

    @staticmethod
    def is_blocking(results: List[PolicyResult]) -> bool:
        return any(r.status == PolicyStatus.FAIL for r in results)

    @staticmethod
    def overall(results: List[PolicyResult]) -> PolicyStatus:
        if any(r.status == PolicyStatus.FAIL for r in results):
            return PolicyStatus.FAIL
        if any(r.status == PolicyStatus.WARN for r in results):
            return PolicyStatus.WARN
        return PolicyStatus.PASS

    @classmethod
    def summarize(cls, results: List[PolicyResult]) -> Dict[str, Any]:
        return {
            "status": cls.overall(results).value,
            "blocking": cls.is_blocking(results),
            "results": [r.to_dict() for r in results],
        }
