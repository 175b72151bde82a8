"""
PipelineStep — base class for the validation steps.

A step reads what earlier steps left on the ValidationContext, adds its own
result to it, and returns a StepResult for the execution log.  Timing,
deadlines, logging and error wrapping belong to the engine.
"""

from __future__ import annotations

from abc import ABC, abstractmethod
from datetime import datetime
from typing import Any

from docguard.core.constants import StepStatus
from docguard.db.models.base import utcnow
from docguard.pipeline.context import StepResult, ValidationContext


def elapsed_ms(started_at: datetime, finished_at: datetime) -> int:
    return int((finished_at - started_at).total_seconds() * 1000)


class PipelineStep(ABC):
    """
    Subclasses set `name` and `description` and implement `execute`.

    `timeout` is the deadline the engine enforces (None: the step bounds
    itself).  With `commit_after` the engine commits as soon as the step
    succeeds, so its writes survive a failure further down the flow.
    """

    name: str = "unnamed_step"
    description: str = "No description"
    timeout: float | None = None
    commit_after: bool = False

    @abstractmethod
    async def execute(self, ctx: ValidationContext) -> StepResult:
        """Raise a PipelineError subclass on failure."""

    def _now(self) -> datetime:
        return utcnow()

    def _success(self, started_at: datetime, metadata: dict[str, Any] | None = None) -> StepResult:
        finished_at = self._now()
        return StepResult(
            step_name=self.name,
            status=StepStatus.COMPLETED,
            started_at=started_at,
            completed_at=finished_at,
            duration_ms=elapsed_ms(started_at, finished_at),
            metadata=metadata or {},
        )
