"""
Agent tools - the versioned tool surface, input schemas and executors
"""

from appforge.modules.tools.definitions import (
    AGENT_TOOLS,
    TOOLS_VERSION,
    BUILD_MODE_TOOLS,
    PLAN_MODE_TOOLS,
    ToolName,
    get_tool_definitions,
    is_known_tool,
)
from appforge.modules.tools.schemas import ToolResult, CreatePlanInput, normalize_path
from appforge.modules.tools.executor import ToolExecutor, execute_tool
from appforge.modules.tools.memory_executor import InMemoryToolExecutor

__all__ = [
    "AGENT_TOOLS",
    "TOOLS_VERSION",
    "BUILD_MODE_TOOLS",
    "PLAN_MODE_TOOLS",
    "ToolName",
    "get_tool_definitions",
    "is_known_tool",
    "ToolResult",
    "CreatePlanInput",
    "normalize_path",
    "ToolExecutor",
    "execute_tool",
    "InMemoryToolExecutor",
]
