"""
Heuristic project checks used by verify_project and run_test.

These are fast text-level checks for React Native / Expo projects, not a real
compiler: they catch the mistakes LLM backends make most often (missing hook
imports, web tags in native components, files without exports).
"""

import re
from typing import Dict, List, Iterable

from appforge.modules.tools.schemas import ToolResult

CHECK_ALIASES = {
    "typescript": "typecheck",
    "runtime": "build",
}

WEB_TAGS = ("<div", "<span", "<p>", "<a ")

_TODO_RE = re.compile(r"TODO|FIXME")
_JSX_RETURN_RE = re.compile(r"\breturn\s*\(")


def resolve_check(check_type: str) -> str:
    """Map run_test check names onto verify_project check names"""
    return CHECK_ALIASES.get(check_type, check_type)


def _has_react_import(content: str) -> bool:
    return "from 'react'" in content or 'from "react"' in content


def run_checks(files: Dict[str, str], checks: Iterable[str]) -> ToolResult:
    """Run the requested checks over every file; fails when any error is found"""
    checks = list(checks)
    errors: List[str] = []
    warnings: List[str] = []

    for path, content in files.items():
        is_tsx = path.endswith(".tsx")

        if "typecheck" in checks:
            if ("useState" in content or "useEffect" in content) and not _has_react_import(content):
                errors.append(f"{path}: missing React import for hooks")
            if is_tsx and "export default" in content and "any" in content:
                warnings.append(f"{path}: contains any type in exported component")

        if "lint" in checks:
            if _TODO_RE.search(content):
                warnings.append(f"{path}: contains TODO/FIXME markers")
            if is_tsx and any(tag in content for tag in WEB_TAGS):
                errors.append(
                    f"{path}: uses web HTML tags (div, span, p, a) which are invalid in "
                    "React Native code. Use View, Text, etc."
                )

        if "build" in checks:
            if (is_tsx or path.endswith(".ts")) and "export" not in content:
                warnings.append(f"{path}: file has no export")
            if is_tsx and not _JSX_RETURN_RE.search(content) and "export default function" not in content:
                warnings.append(f"{path}: component may not return JSX")

    if errors:
        return ToolResult.fail("\n".join(errors), errors=errors, warnings=warnings, checks=checks)

    return ToolResult.ok(f"{', '.join(checks)} checks passed", warnings=warnings, checks=checks)
