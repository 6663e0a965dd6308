"""
Unit Tests for project checks, tool schemas and tool definitions
"""
import pytest
from pydantic import ValidationError

from appforge.modules.tools import InMemoryToolExecutor, execute_tool
from appforge.modules.tools.checks import run_checks, resolve_check
from appforge.modules.tools.definitions import (
    AGENT_TOOLS,
    BUILD_MODE_TOOLS,
    PLAN_MODE_TOOLS,
    ToolName,
    get_tool_definitions,
    is_known_tool,
)
from appforge.modules.tools.schemas import CreatePlanInput, VerifyProjectInput, normalize_path


class TestRunChecks:
    """Tests for the heuristic verify/run_test checks"""

    def test_missing_react_import_is_error(self):
        """Test hooks without a react import fail typecheck"""
        files = {"Counter.tsx": "export default function C() { const [a] = useState(0); return (<View />); }"}
        result = run_checks(files, ["typecheck"])

        assert result.success is False
        assert "Counter.tsx: missing React import for hooks" in result.data["errors"]

    def test_react_import_satisfies_typecheck(self):
        """Test hooks with a react import pass"""
        files = {"Counter.tsx": "import { useState } from 'react';\nexport default function C() { return (<View />); }"}
        assert run_checks(files, ["typecheck"]).success

    def test_web_tags_fail_lint(self):
        """Test web HTML tags are rejected in native components"""
        files = {"Card.tsx": "export default function Card() { return (<div>hi</div>); }"}
        result = run_checks(files, ["lint"])

        assert result.success is False
        assert "web HTML tags" in result.error

    def test_warnings_do_not_fail(self):
        """Test TODO markers and missing exports are warnings only"""
        files = {"util.ts": "// TODO: implement\nconst x = 1;"}
        result = run_checks(files, ["lint", "build"])

        assert result.success
        assert result.output == "lint, build checks passed"
        assert "util.ts: contains TODO/FIXME markers" in result.data["warnings"]
        assert "util.ts: file has no export" in result.data["warnings"]

    def test_check_aliases(self):
        """Test run_test check names map onto verify checks"""
        assert resolve_check("typescript") == "typecheck"
        assert resolve_check("runtime") == "build"
        assert resolve_check("lint") == "lint"

    @pytest.mark.asyncio
    async def test_run_test_through_executor(self):
        """Test run_test uses the aliased check"""
        executor = InMemoryToolExecutor({"a.ts": "const a = 1;"})
        result = await execute_tool(executor, "run_test", {"check_type": "runtime"})

        assert result.success
        assert result.data["checks"] == ["build"]

    @pytest.mark.asyncio
    async def test_verify_project_defaults_to_all_checks(self):
        """Test verify_project without checks runs all three"""
        executor = InMemoryToolExecutor()
        result = await execute_tool(executor, "verify_project", {})

        assert result.data["checks"] == ["typecheck", "lint", "build"]


class TestSchemas:
    """Tests for tool input models"""

    def test_normalize_path(self):
        """Test path normalisation"""
        assert normalize_path("  ./app/index.tsx ") == "app/index.tsx"
        assert normalize_path("/src\\a.ts") == "src/a.ts"
        assert normalize_path("././x") == "x"

    def test_file_tree_is_deduplicated_in_order(self):
        """Test duplicate and empty plan paths are dropped"""
        plan = CreatePlanInput(
            app_name="A",
            app_type="utility",
            file_tree=["b.ts", "./a.ts", "b.ts", "  ", "a.ts"],
        )
        assert plan.file_tree == ["b.ts", "a.ts"]

    def test_empty_file_tree_rejected(self):
        """Test a plan must declare at least one path"""
        with pytest.raises(ValidationError):
            CreatePlanInput(app_name="A", app_type="utility", file_tree=[])
        with pytest.raises(ValidationError):
            CreatePlanInput(app_name="A", app_type="utility", file_tree=[" "])

    def test_unknown_check_rejected(self):
        """Test verify_project only accepts known checks"""
        with pytest.raises(ValidationError):
            VerifyProjectInput(checks=["deploy"])

    def test_extra_keys_ignored(self):
        """Test unknown keys from the backend are ignored"""
        plan = CreatePlanInput(app_name="A", app_type="b", file_tree=["x"], colour="blue")
        assert not hasattr(plan, "colour")


class TestDefinitions:
    """Tests for the versioned tool surface"""

    def test_eleven_tools(self):
        """Test the full tool set"""
        assert len(AGENT_TOOLS) == 11
        assert BUILD_MODE_TOOLS == frozenset(t.value for t in ToolName)

    def test_plan_mode_tools(self):
        """Test plan mode only exposes read-only tools and create_plan"""
        assert PLAN_MODE_TOOLS == {"create_plan", "search_files", "read_file", "list_files"}

    def test_definitions_follow_canonical_order(self):
        """Test get_tool_definitions keeps a stable order regardless of input order"""
        names = [t["name"] for t in get_tool_definitions(["complete", "write_file", "create_plan"])]
        assert names == ["create_plan", "write_file", "complete"]

    def test_every_definition_has_schema(self):
        """Test each definition is a complete Anthropic tool dict"""
        for tool in AGENT_TOOLS:
            assert set(tool) >= {"name", "description", "input_schema"}
            assert tool["input_schema"]["type"] == "object"

    def test_is_known_tool(self):
        assert is_known_tool("patch_file")
        assert not is_known_tool("shell")
