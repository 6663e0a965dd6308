"""
Agent orchestration: the run loop, plan contract, phase machine, budget,
continuation policy and the typed event stream.
"""

from appforge.modules.orchestrator.state_machine import (
    AgentPhase,
    PhaseStateMachine,
    PHASE_TRANSITIONS,
    TOOL_PHASES,
    phase_for_tool,
)
from appforge.modules.orchestrator.event_bus import AgentEvent, AgentEventType, EventLog
from appforge.modules.orchestrator.plan_contract import Plan, FileRecord, FileStatus, PlanContract
from appforge.modules.orchestrator.snapshot import RunSnapshot, apply_event, fold_events
from appforge.modules.orchestrator.budget import BudgetGuard
from appforge.modules.orchestrator.continuation import (
    ContinuationPolicy,
    ContinuationAction,
    ContinuationDecision,
)
from appforge.modules.orchestrator.run_state import (
    AgentConfig,
    AgentMode,
    AgentResult,
    TokenUsage,
    RunContext,
)
from appforge.modules.orchestrator.agent_orchestrator import AgentOrchestrator, AgentRun

__all__ = [
    "AgentPhase",
    "PhaseStateMachine",
    "PHASE_TRANSITIONS",
    "TOOL_PHASES",
    "phase_for_tool",
    "AgentEvent",
    "AgentEventType",
    "EventLog",
    "Plan",
    "FileRecord",
    "FileStatus",
    "PlanContract",
    "RunSnapshot",
    "apply_event",
    "fold_events",
    "BudgetGuard",
    "ContinuationPolicy",
    "ContinuationAction",
    "ContinuationDecision",
    "AgentConfig",
    "AgentMode",
    "AgentResult",
    "TokenUsage",
    "RunContext",
    "AgentOrchestrator",
    "AgentRun",
]
