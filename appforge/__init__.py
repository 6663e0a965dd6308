"""
AppForge - autonomous multi-file app builder driven by LLM tool calls.

Usage:
    from appforge import AgentOrchestrator, create_provider

    orchestrator = AgentOrchestrator(create_provider("claude"))
    run = orchestrator.run("A todo app with categories")
    async for event in run:
        print(event.to_sse())
    print(run.result.success)
"""

__version__ = "1.0.0"

from appforge.modules.orchestrator import (
    AgentOrchestrator,
    AgentRun,
    AgentConfig,
    AgentMode,
    AgentPhase,
    AgentEvent,
    AgentEventType,
    AgentResult,
)
from appforge.modules.providers import create_provider, ProviderAdapter
from appforge.modules.tools import InMemoryToolExecutor, ToolExecutor, ToolResult

__all__ = [
    "AgentOrchestrator",
    "AgentRun",
    "AgentConfig",
    "AgentMode",
    "AgentPhase",
    "AgentEvent",
    "AgentEventType",
    "AgentResult",
    "create_provider",
    "ProviderAdapter",
    "InMemoryToolExecutor",
    "ToolExecutor",
    "ToolResult",
]
