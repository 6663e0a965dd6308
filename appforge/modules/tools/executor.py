"""
Tool Executor interface.

A ToolExecutor owns the virtual project contents of one run and is the source
of truth for file bytes. Every operation returns a ToolResult; implementations
may also raise ToolExecutionError, which `execute_tool` converts into a failed
result so that no tool failure ever halts the agent loop.
"""

from abc import ABC, abstractmethod
from typing import Dict, Any, List, Optional

from pydantic import ValidationError

from appforge.core.exceptions import ToolExecutionError
from appforge.core.logging_config import logger
from appforge.modules.tools.schemas import (
    TOOL_INPUT_MODELS,
    ToolResult,
    CreatePlanInput,
)


class ToolExecutor(ABC):
    """The 11 operations the orchestrator delegates to"""

    @abstractmethod
    async def create_plan(self, plan: CreatePlanInput) -> ToolResult:
        ...

    @abstractmethod
    async def write_file(self, path: str, content: str) -> ToolResult:
        """Create or overwrite a file"""

    @abstractmethod
    async def patch_file(self, path: str, find: str, replace: str) -> ToolResult:
        """Replace `find` in an existing file; fails if the path or text is missing"""

    @abstractmethod
    async def search_files(self, query: str, path_prefix: Optional[str] = None) -> ToolResult:
        ...

    @abstractmethod
    async def verify_project(self, checks: List[str]) -> ToolResult:
        ...

    @abstractmethod
    async def delete_file(self, path: str) -> ToolResult:
        """Delete a file; a missing file is a no-op"""

    @abstractmethod
    async def read_file(self, path: str) -> ToolResult:
        ...

    @abstractmethod
    async def list_files(self, directory: Optional[str] = None) -> ToolResult:
        ...

    @abstractmethod
    async def run_test(self, check_type: str) -> ToolResult:
        ...

    @abstractmethod
    async def fix_error(self, file_path: str, error_message: str, fix_description: str) -> ToolResult:
        """Return the current file content for inspection; fails if the file is absent"""

    @abstractmethod
    async def complete(self, summary: str, files_created: List[str],
                       next_steps: Optional[List[str]] = None) -> ToolResult:
        ...

    def snapshot(self) -> Dict[str, str]:
        """Current project files (path -> content). Optional for remote executors."""
        return {}


def _format_validation_error(tool_name: str, error: ValidationError) -> str:
    problems = []
    for item in error.errors():
        location = ".".join(str(part) for part in item.get("loc", ())) or "input"
        problems.append(f"{location}: {item.get('msg', 'invalid')}")
    return f"Invalid input for {tool_name}: " + "; ".join(problems)


async def execute_tool(executor: ToolExecutor, tool_name: str, tool_input: Dict[str, Any]) -> ToolResult:
    """
    Validate a backend tool call and run it against the executor.

    Never raises for tool-level problems: validation errors, ToolExecutionError
    and unexpected executor exceptions all become failed ToolResults.
    """
    model = TOOL_INPUT_MODELS.get(tool_name)
    if model is None:
        return ToolResult.fail(f"Unknown tool: {tool_name}")

    try:
        params = model.model_validate(tool_input or {})
    except ValidationError as e:
        return ToolResult.fail(_format_validation_error(tool_name, e))

    try:
        if tool_name == "create_plan":
            return await executor.create_plan(params)
        elif tool_name == "write_file":
            return await executor.write_file(params.path, params.content)
        elif tool_name == "patch_file":
            return await executor.patch_file(params.path, params.find, params.replace)
        elif tool_name == "search_files":
            return await executor.search_files(params.query, params.path_prefix)
        elif tool_name == "verify_project":
            return await executor.verify_project(list(params.checks))
        elif tool_name == "delete_file":
            return await executor.delete_file(params.path)
        elif tool_name == "read_file":
            return await executor.read_file(params.path)
        elif tool_name == "list_files":
            return await executor.list_files(params.directory)
        elif tool_name == "run_test":
            return await executor.run_test(params.check_type)
        elif tool_name == "fix_error":
            return await executor.fix_error(params.file_path, params.error_message, params.fix_description)
        else:
            return await executor.complete(params.summary, list(params.files_created), params.next_steps)

    except ToolExecutionError as e:
        return ToolResult.fail(e.message, **e.details)
    except Exception as e:
        logger.warning(f"[ToolExecutor] {tool_name} raised {type(e).__name__}: {e}")
        return ToolResult.fail(f"{tool_name} failed: {e}")
