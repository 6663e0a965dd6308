"""
Tool input schemas and the uniform tool result.

Inputs are validated with pydantic before they reach a ToolExecutor, so a
malformed call from the backend becomes an ordinary failed ToolResult.
"""
from dataclasses import dataclass, field
from typing import Optional, Dict, Any, List, Literal

from pydantic import BaseModel, Field, ConfigDict, field_validator


CheckName = Literal["typecheck", "lint", "build"]


def normalize_path(path: str) -> str:
    """Normalise a project-relative path: trim, forward slashes, no leading ./ or /"""
    cleaned = path.strip().replace("\\", "/")
    while cleaned.startswith("./"):
        cleaned = cleaned[2:]
    return cleaned.lstrip("/")


class ToolInput(BaseModel):
    """Base for all tool inputs - unknown keys from the backend are ignored"""
    model_config = ConfigDict(extra="ignore")


class PathInput(ToolInput):
    path: str = Field(..., min_length=1, description="File path relative to project root")

    @field_validator("path")
    @classmethod
    def _normalize(cls, v: str) -> str:
        normalized = normalize_path(v)
        if not normalized:
            raise ValueError("path must not be empty")
        return normalized


# ==================== Planning ====================

class CreatePlanInput(ToolInput):
    app_name: str = Field(..., min_length=1)
    app_type: str = Field(..., min_length=1)
    features: List[str] = Field(default_factory=list)
    screens: List[str] = Field(default_factory=list)
    file_tree: List[str] = Field(..., min_length=1)
    dependencies: List[str] = Field(default_factory=list)
    plan_steps: List[str] = Field(default_factory=list)

    @field_validator("file_tree")
    @classmethod
    def _dedupe_file_tree(cls, v: List[str]) -> List[str]:
        seen = set()
        ordered = []
        for raw in v:
            path = normalize_path(raw)
            if path and path not in seen:
                seen.add(path)
                ordered.append(path)
        if not ordered:
            raise ValueError("file_tree must declare at least one path")
        return ordered


# ==================== File Operations ====================

class WriteFileInput(PathInput):
    content: str


class PatchFileInput(PathInput):
    find: str = Field(..., min_length=1)
    replace: str


class DeleteFileInput(PathInput):
    pass


class ReadFileInput(PathInput):
    pass


class ListFilesInput(ToolInput):
    directory: Optional[str] = None

    @field_validator("directory")
    @classmethod
    def _normalize(cls, v: Optional[str]) -> Optional[str]:
        return normalize_path(v) if v else None


class SearchFilesInput(ToolInput):
    query: str = Field(..., min_length=1)
    path_prefix: Optional[str] = None

    @field_validator("path_prefix")
    @classmethod
    def _normalize(cls, v: Optional[str]) -> Optional[str]:
        return normalize_path(v) if v else None


# ==================== Verification ====================

class VerifyProjectInput(ToolInput):
    checks: List[CheckName] = Field(default_factory=lambda: ["typecheck", "lint", "build"])


class RunTestInput(ToolInput):
    check_type: Literal["typecheck", "lint", "build", "typescript", "runtime"] = "typecheck"


class FixErrorInput(ToolInput):
    file_path: str = Field(..., min_length=1)
    error_message: str
    fix_description: str = ""

    @field_validator("file_path")
    @classmethod
    def _normalize(cls, v: str) -> str:
        return normalize_path(v)


class CompleteInput(ToolInput):
    summary: str = ""
    files_created: List[str] = Field(default_factory=list)
    next_steps: Optional[List[str]] = None


TOOL_INPUT_MODELS: Dict[str, type] = {
    "create_plan": CreatePlanInput,
    "write_file": WriteFileInput,
    "patch_file": PatchFileInput,
    "search_files": SearchFilesInput,
    "verify_project": VerifyProjectInput,
    "delete_file": DeleteFileInput,
    "read_file": ReadFileInput,
    "list_files": ListFilesInput,
    "run_test": RunTestInput,
    "fix_error": FixErrorInput,
    "complete": CompleteInput,
}


@dataclass
class ToolResult:
    """Result of a tool execution, forwarded to the backend as-is"""
    success: bool
    output: Optional[str] = None
    error: Optional[str] = None
    data: Dict[str, Any] = field(default_factory=dict)

    @classmethod
    def ok(cls, output: str, **data: Any) -> "ToolResult":
        return cls(success=True, output=output, data=dict(data))

    @classmethod
    def fail(cls, error: str, **data: Any) -> "ToolResult":
        return cls(success=False, error=error, data=dict(data))

    def to_dict(self, include_data: bool = True) -> Dict[str, Any]:
        result: Dict[str, Any] = {"success": self.success}
        if self.output is not None:
            result["output"] = self.output
        if self.error is not None:
            result["error"] = self.error
        if include_data and self.data:
            result["data"] = self.data
        return result

    def to_message(self) -> str:
        """Text form sent back to the backend"""
        if self.success:
            return self.output or "Success"
        return f"Error: {self.error or 'Unknown error'}"
