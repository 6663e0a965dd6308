"""
In-memory Tool Executor

Default executor used by the CLI and the test-suite. Keeps the project as a
dict of path -> content seeded from the caller's existing files.
"""

from typing import Dict, List, Optional, Any

from appforge.core.config import settings
from appforge.core.logging_config import logger
from appforge.modules.tools.checks import run_checks, resolve_check
from appforge.modules.tools.executor import ToolExecutor
from appforge.modules.tools.schemas import ToolResult, CreatePlanInput, normalize_path

SEARCH_OUTPUT_LINES = 50
SNIPPET_LENGTH = 180


class InMemoryToolExecutor(ToolExecutor):
    """ToolExecutor backed by a plain dictionary"""

    def __init__(
        self,
        files: Optional[Dict[str, str]] = None,
        fix_error_content_cap: Optional[int] = None,
        search_max_matches: Optional[int] = None,
    ):
        self.files: Dict[str, str] = {
            normalize_path(path): content for path, content in (files or {}).items()
        }
        self.fix_error_content_cap = fix_error_content_cap or settings.FIX_ERROR_CONTENT_CAP
        self.search_max_matches = search_max_matches or settings.SEARCH_MAX_MATCHES
        self.plans: List[CreatePlanInput] = []

    def snapshot(self) -> Dict[str, str]:
        return dict(self.files)

    # ==================== Planning ====================

    async def create_plan(self, plan: CreatePlanInput) -> ToolResult:
        self.plans.append(plan)
        return ToolResult.ok(
            f"Plan created for {plan.app_name} ({plan.app_type}) with {len(plan.file_tree)} files"
        )

    # ==================== File Operations ====================

    async def write_file(self, path: str, content: str) -> ToolResult:
        self.files[path] = content
        return ToolResult.ok(f"File written: {path}")

    async def patch_file(self, path: str, find: str, replace: str) -> ToolResult:
        current = self.files.get(path)
        if current is None:
            return ToolResult.fail(f"Cannot patch missing file: {path}")

        if find not in current:
            return ToolResult.fail(f"Patch target not found in {path}")

        updated = current.replace(find, replace, 1)
        self.files[path] = updated
        return ToolResult.ok(f"Patched {path}", path=path, content=updated)

    async def delete_file(self, path: str) -> ToolResult:
        self.files.pop(path, None)
        return ToolResult.ok(f"File deleted: {path}")

    async def read_file(self, path: str) -> ToolResult:
        if path not in self.files:
            return ToolResult.fail(f"File not found: {path}")
        return ToolResult.ok(self.files[path])

    async def list_files(self, directory: Optional[str] = None) -> ToolResult:
        paths = [p for p in self.files if not directory or p.startswith(directory)]
        return ToolResult.ok("\n".join(paths), files=paths)

    async def search_files(self, query: str, path_prefix: Optional[str] = None) -> ToolResult:
        matches: List[Dict[str, Any]] = []

        for path, content in self.files.items():
            if path_prefix and not path.startswith(path_prefix):
                continue
            for line_number, line in enumerate(content.split("\n"), start=1):
                if query in line:
                    matches.append({
                        "path": path,
                        "line": line_number,
                        "snippet": line.strip()[:SNIPPET_LENGTH],
                    })

        if not matches:
            return ToolResult.ok("No matches found", matches=[])

        output = "\n".join(
            f"{m['path']}:{m['line']} {m['snippet']}" for m in matches[:SEARCH_OUTPUT_LINES]
        )
        return ToolResult.ok(output, matches=matches[:self.search_max_matches])

    # ==================== Verification ====================

    async def verify_project(self, checks: List[str]) -> ToolResult:
        return run_checks(self.files, checks)

    async def run_test(self, check_type: str) -> ToolResult:
        return run_checks(self.files, [resolve_check(check_type)])

    async def fix_error(self, file_path: str, error_message: str, fix_description: str) -> ToolResult:
        content = self.files.get(file_path)
        if content is None:
            return ToolResult.fail(f"Cannot fix error: file not found: {file_path}")

        cap = self.fix_error_content_cap
        line_count = len(content.split("\n"))
        lines = [
            f"Error in {file_path}: {error_message}",
            f"Planned fix: {fix_description}",
            f"Current file content ({line_count} lines):",
            "---",
            content[:cap],
            "... (truncated)" if len(content) > cap else "",
            "---",
            "Use patch_file or write_file to apply the fix.",
        ]
        logger.debug(f"[InMemoryToolExecutor] fix_error requested for {file_path}")
        return ToolResult.ok("\n".join(line for line in lines if line))

    async def complete(self, summary: str, files_created: List[str],
                       next_steps: Optional[List[str]] = None) -> ToolResult:
        return ToolResult.ok(
            summary or "Build complete",
            summary=summary,
            filesCreated=files_created,
            nextSteps=next_steps,
        )
