from __future__ import annotations

from abc import ABC, abstractmethod
from typing import Any, Dict, Optional


class StageBackend(ABC):
    name: str

    @abstractmethod
    def submit(self, job_name: str, config: Dict[str, Any]) -> Dict[str, Any]:
        """Start one stage job.

        config carries the job image, script lines and non-secret variables.
        Returns {"backend_ref": "<stable ref to poll/cancel>", "meta": {...}}.
        """

    @abstractmethod
    def status(self, job_name: str, *, backend_ref: Optional[str] = None) -> Dict[str, Any]:
        """Return a dict: {"state": "RUNNING|SUCCESS|FAILED", ...}"""

    @abstractmethod
    def cancel(self, job_name: str, *, backend_ref: Optional[str] = None) -> None:
        """Best-effort cancel/terminate."""
