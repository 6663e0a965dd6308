"""
Agent Tool Definitions

The fixed, versioned tool surface offered to LLM backends. Definitions use
the Anthropic tool_use shape (name / description / input_schema); adapters
for other backends translate them.
"""

from enum import Enum
from typing import Dict, List, Any, Iterable


TOOLS_VERSION = "2024.2"


class ToolName(str, Enum):
    """Names of the 11 agent tools"""
    CREATE_PLAN = "create_plan"
    WRITE_FILE = "write_file"
    PATCH_FILE = "patch_file"
    SEARCH_FILES = "search_files"
    VERIFY_PROJECT = "verify_project"
    DELETE_FILE = "delete_file"
    READ_FILE = "read_file"
    LIST_FILES = "list_files"
    RUN_TEST = "run_test"
    FIX_ERROR = "fix_error"
    COMPLETE = "complete"


# =========================================================================
# TOOL DEFINITIONS
# =========================================================================

CREATE_PLAN_TOOL = {
    "name": "create_plan",
    "description": """Create the build plan for the app. Call this FIRST, exactly once.
The file_tree is a contract: the build cannot finish until every listed file
has been written. List every file the app needs, in generation order.""",
    "input_schema": {
        "type": "object",
        "properties": {
            "app_name": {"type": "string", "description": "Descriptive name for the app"},
            "app_type": {
                "type": "string",
                "description": "Category (todo, fitness, shop, chat, dashboard, social, media, ...)"
            },
            "features": {"type": "array", "items": {"type": "string"}, "description": "Features to implement"},
            "screens": {"type": "array", "items": {"type": "string"}, "description": "Screens/routes"},
            "file_tree": {
                "type": "array",
                "items": {"type": "string"},
                "description": "COMPLETE list of file paths to generate (e.g. app/_layout.tsx)"
            },
            "dependencies": {"type": "array", "items": {"type": "string"}, "description": "Extra npm packages"},
            "plan_steps": {"type": "array", "items": {"type": "string"}, "description": "Ordered build steps"}
        },
        "required": ["app_name", "app_type", "features", "screens", "file_tree"]
    }
}

WRITE_FILE_TOOL = {
    "name": "write_file",
    "description": """Write or create a file in the project. Always provide COMPLETE file
content with all imports and exports. Overwrites the file if it exists.""",
    "input_schema": {
        "type": "object",
        "properties": {
            "path": {
                "type": "string",
                "description": "File path relative to project root (e.g. app/_layout.tsx, components/Button.tsx)"
            },
            "content": {"type": "string", "description": "Complete file content including all imports and exports"}
        },
        "required": ["path", "content"]
    }
}

PATCH_FILE_TOOL = {
    "name": "patch_file",
    "description": """Replace the first occurrence of an exact string in an existing file.
Prefer this over write_file for small targeted changes. Fails if the file does
not exist or the find string is not present.""",
    "input_schema": {
        "type": "object",
        "properties": {
            "path": {"type": "string", "description": "File path relative to project root"},
            "find": {"type": "string", "description": "Exact text to find (must match exactly)"},
            "replace": {"type": "string", "description": "Replacement text"}
        },
        "required": ["path", "find", "replace"]
    }
}

SEARCH_FILES_TOOL = {
    "name": "search_files",
    "description": """Search project files for a literal string. Returns path:line snippet
matches. Use before risky refactors.""",
    "input_schema": {
        "type": "object",
        "properties": {
            "query": {"type": "string", "description": "Literal text to search for"},
            "path_prefix": {"type": "string", "description": "Only search paths starting with this prefix"}
        },
        "required": ["query"]
    }
}

VERIFY_PROJECT_TOOL = {
    "name": "verify_project",
    "description": "Run project checks (typecheck, lint, build) and report errors and warnings.",
    "input_schema": {
        "type": "object",
        "properties": {
            "checks": {
                "type": "array",
                "items": {"type": "string", "enum": ["typecheck", "lint", "build"]},
                "description": "Checks to run"
            }
        },
        "required": ["checks"]
    }
}

DELETE_FILE_TOOL = {
    "name": "delete_file",
    "description": "Delete a file from the project. Deleting a missing file is a no-op.",
    "input_schema": {
        "type": "object",
        "properties": {
            "path": {"type": "string", "description": "File path relative to project root"}
        },
        "required": ["path"]
    }
}

READ_FILE_TOOL = {
    "name": "read_file",
    "description": "Read the current content of a project file.",
    "input_schema": {
        "type": "object",
        "properties": {
            "path": {"type": "string", "description": "File path relative to project root"}
        },
        "required": ["path"]
    }
}

LIST_FILES_TOOL = {
    "name": "list_files",
    "description": "List project files, optionally limited to a directory prefix.",
    "input_schema": {
        "type": "object",
        "properties": {
            "directory": {"type": "string", "description": "Directory prefix (e.g. components/)"}
        }
    }
}

RUN_TEST_TOOL = {
    "name": "run_test",
    "description": "Run a single check against the project (typescript, lint, build, runtime).",
    "input_schema": {
        "type": "object",
        "properties": {
            "check_type": {
                "type": "string",
                "enum": ["typecheck", "lint", "build", "typescript", "runtime"],
                "description": "Which check to run"
            }
        },
        "required": ["check_type"]
    }
}

FIX_ERROR_TOOL = {
    "name": "fix_error",
    "description": """Start fixing an error in a file. Returns the current file content so
the fix can be applied precisely with patch_file or write_file.""",
    "input_schema": {
        "type": "object",
        "properties": {
            "file_path": {"type": "string", "description": "File containing the error"},
            "error_message": {"type": "string", "description": "The error being fixed"},
            "fix_description": {"type": "string", "description": "How you intend to fix it"}
        },
        "required": ["file_path", "error_message", "fix_description"]
    }
}

COMPLETE_TOOL = {
    "name": "complete",
    "description": """Finish the build. Only succeeds when every file in the plan has been
written; otherwise the missing files are returned and you must write them.""",
    "input_schema": {
        "type": "object",
        "properties": {
            "summary": {"type": "string", "description": "Summary of what was built"},
            "files_created": {"type": "array", "items": {"type": "string"}, "description": "Files created"},
            "next_steps": {"type": "array", "items": {"type": "string"}, "description": "Optional follow-ups"}
        },
        "required": ["summary", "files_created"]
    }
}


AGENT_TOOLS: List[Dict[str, Any]] = [
    CREATE_PLAN_TOOL,
    WRITE_FILE_TOOL,
    PATCH_FILE_TOOL,
    SEARCH_FILES_TOOL,
    VERIFY_PROJECT_TOOL,
    DELETE_FILE_TOOL,
    READ_FILE_TOOL,
    LIST_FILES_TOOL,
    RUN_TEST_TOOL,
    FIX_ERROR_TOOL,
    COMPLETE_TOOL,
]

TOOLS_BY_NAME: Dict[str, Dict[str, Any]] = {tool["name"]: tool for tool in AGENT_TOOLS}

# Plan mode may inspect the project and plan, nothing else
PLAN_MODE_TOOLS = frozenset({
    ToolName.CREATE_PLAN.value,
    ToolName.SEARCH_FILES.value,
    ToolName.READ_FILE.value,
    ToolName.LIST_FILES.value,
})

BUILD_MODE_TOOLS = frozenset(TOOLS_BY_NAME)


def get_tool_definitions(names: Iterable[str]) -> List[Dict[str, Any]]:
    """Definitions for the given names, in canonical order"""
    wanted = set(names)
    return [tool for tool in AGENT_TOOLS if tool["name"] in wanted]


def is_known_tool(name: str) -> bool:
    return name in TOOLS_BY_NAME
