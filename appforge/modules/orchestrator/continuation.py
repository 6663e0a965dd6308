"""
Continuation Policy - what to do when a backend turn ends with no tool calls.

The decision only inspects run state (plan, pending paths, budget), never
which backend is active, so both backend profiles get the same guarantees.
"""

from typing import Optional, List
from enum import Enum
from dataclasses import dataclass, field

from appforge.modules.orchestrator.prompts import (
    build_continuation_prompt,
    build_plan_retry_prompt,
)


class ContinuationAction(str, Enum):
    CONTINUE = "continue"
    RETRY_PLAN = "retry_plan"
    AUTO_COMPLETE = "auto_complete"
    STOP = "stop"


@dataclass
class ContinuationDecision:
    action: ContinuationAction
    message: Optional[str] = None
    pending: List[str] = field(default_factory=list)
    reason: Optional[str] = None


class ContinuationPolicy:
    def __init__(self, batch_size: int = 3, max_plan_retries: int = 1):
        self.batch_size = batch_size
        self.max_plan_retries = max_plan_retries
        self.plan_retries = 0
        self.continuations = 0

    def decide(
        self,
        has_plan: bool,
        pending: List[str],
        files_written: int,
        remaining_iterations: int,
    ) -> ContinuationDecision:
        if has_plan:
            if pending:
                self.continuations += 1
                return ContinuationDecision(
                    action=ContinuationAction.CONTINUE,
                    message=build_continuation_prompt(pending, self.batch_size),
                    pending=list(pending),
                )
            return ContinuationDecision(action=ContinuationAction.AUTO_COMPLETE)

        if self.plan_retries < self.max_plan_retries and remaining_iterations > 0:
            self.plan_retries += 1
            return ContinuationDecision(
                action=ContinuationAction.RETRY_PLAN,
                message=build_plan_retry_prompt(),
            )

        if files_written > 0:
            return ContinuationDecision(
                action=ContinuationAction.AUTO_COMPLETE,
                reason="No plan was created; nothing gates completion",
            )

        return ContinuationDecision(
            action=ContinuationAction.STOP,
            reason="Backend stopped without producing a plan",
        )
