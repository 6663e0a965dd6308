"""
Unit Tests for the command line interface
"""
import io
import json

import pytest
from rich.console import Console

from appforge.cli.main import create_parser, load_existing_files, run_agent, write_output
from appforge.cli.renderer import EventRenderer
from appforge.modules.orchestrator import AgentEventType, EventLog, FileRecord

from mocks.scripted_provider import ScriptedProvider, call, plan_call, turn, write_call


class TestParser:
    """Tests for argument parsing"""

    def test_defaults(self):
        args = create_parser().parse_args(["a todo app"])

        assert args.prompt == "a todo app"
        assert args.provider == "claude"
        assert args.mode == "build"
        assert args.max_iterations is None
        assert args.json is False

    def test_options(self):
        args = create_parser().parse_args([
            "shop", "--provider", "gemini", "--mode", "plan", "--max-iterations", "5", "--json"
        ])

        assert args.provider == "gemini"
        assert args.mode == "plan"
        assert args.max_iterations == 5
        assert args.json is True

    def test_rejects_unknown_provider(self):
        with pytest.raises(SystemExit):
            create_parser().parse_args(["x", "--provider", "llama"])


class TestProjectFiles:
    """Tests for loading and writing project directories"""

    def test_load_skips_node_modules(self, tmp_path):
        (tmp_path / "app").mkdir()
        (tmp_path / "app" / "index.tsx").write_text("export default 1;")
        (tmp_path / "node_modules" / "react").mkdir(parents=True)
        (tmp_path / "node_modules" / "react" / "index.js").write_text("x")

        assert load_existing_files(str(tmp_path)) == {"app/index.tsx": "export default 1;"}
        assert load_existing_files(None) == {}

    def test_write_output(self, tmp_path):
        count = write_output(str(tmp_path), [FileRecord("app/(tabs)/index.tsx", "hello")])

        assert count == 1
        assert (tmp_path / "app" / "(tabs)" / "index.tsx").read_text() == "hello"


class TestEventRenderer:
    """Tests for terminal rendering"""

    def test_renders_file_and_error_events(self):
        console = Console(file=io.StringIO(), width=120)
        renderer = EventRenderer(console)
        log = EventLog("run-1")

        renderer.render_event(log.append(AgentEventType.FILE_CREATED, {"path": "a.ts", "content": "", "language": "typescript"}))
        renderer.render_event(log.append(AgentEventType.ERROR, {"error": "Iteration limit reached (3)", "code": "BUDGET_EXHAUSTED"}))

        output = console.file.getvalue()
        assert "Created: a.ts" in output
        assert "Iteration limit reached (3)" in output


class TestRunAgent:
    """Tests for the CLI run driver"""

    @pytest.mark.asyncio
    async def test_json_stream_and_output(self, tmp_path, monkeypatch, capsys):
        """Test --json prints SSE lines and --output writes the files"""
        provider = ScriptedProvider([
            turn(plan_call(["App.tsx"]), write_call("App.tsx"), call("complete", summary="done", files_created=["App.tsx"])),
        ])
        monkeypatch.setattr("appforge.modules.providers.create_provider", lambda name: provider)

        args = create_parser().parse_args(["todo", "--json", "--output", str(tmp_path)])
        exit_code = await run_agent(args)

        lines = [line for line in capsys.readouterr().out.split("\n\n") if line.startswith("data: ")]
        payloads = [json.loads(line[len("data: "):]) for line in lines]

        assert exit_code == 0
        assert payloads[0]["type"] == "run_start"
        assert payloads[-1]["type"] == "summary"
        assert payloads[-1]["files"] == ["App.tsx"]
        assert (tmp_path / "App.tsx").exists()

    @pytest.mark.asyncio
    async def test_existing_directory_is_readable(self, tmp_path, monkeypatch, capsys):
        """Test files loaded with --existing are part of the run's project"""
        (tmp_path / "App.tsx").write_text("export default function App() {}\n")
        provider = ScriptedProvider([
            turn(plan_call(["App.tsx"]), call("read_file", path="App.tsx"),
                 write_call("App.tsx"), call("complete", summary="done", files_created=["App.tsx"])),
        ])
        monkeypatch.setattr("appforge.modules.providers.create_provider", lambda name: provider)

        args = create_parser().parse_args(["tweak", "--json", "--existing", str(tmp_path)])
        exit_code = await run_agent(args)

        lines = [line for line in capsys.readouterr().out.split("\n\n") if line.startswith("data: ")]
        payloads = [json.loads(line[len("data: "):]) for line in lines]
        read = next(p for p in payloads if p["type"] == "tool_result" and p["tool"] == "read_file")

        assert exit_code == 0
        assert read["result"] == {"success": True, "output": "export default function App() {}\n"}
