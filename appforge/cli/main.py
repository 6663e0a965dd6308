#!/usr/bin/env python3
"""
AppForge CLI - Main Entry Point

Usage:
    appforge "a todo app with categories"              # Build with Claude
    appforge "fitness tracker" --provider gemini       # Build with Gemini
    appforge "chat app" --mode plan                    # Plan only
    appforge "shop" --output ./my-shop                 # Write files to disk
    appforge "notes app" --json                        # Stream SSE-style JSON lines
"""

import argparse
import asyncio
import json
import sys
from pathlib import Path
from typing import Dict, Optional

from dotenv import load_dotenv


def create_parser() -> argparse.ArgumentParser:
    """Create argument parser for CLI"""
    parser = argparse.ArgumentParser(
        prog="appforge",
        description="AppForge - build complete Expo apps from a prompt with an autonomous LLM agent",
        formatter_class=argparse.RawDescriptionHelpFormatter,
    )
    parser.add_argument("prompt", help="Describe the app to build")
    parser.add_argument(
        "--provider", "-p",
        choices=["claude", "gemini"],
        default="claude",
        help="LLM backend (default: claude)"
    )
    parser.add_argument(
        "--mode", "-m",
        choices=["build", "plan"],
        default="build",
        help="build: plan and write all files; plan: only produce a plan"
    )
    parser.add_argument("--max-iterations", type=int, default=None, help="Override AGENT_MAX_ITERATIONS")
    parser.add_argument("--max-backend-calls", type=int, default=None, help="Override AGENT_MAX_BACKEND_CALLS")
    parser.add_argument("--existing", "-e", default=None, help="Directory of existing project files to start from")
    parser.add_argument("--output", "-o", default=None, help="Write produced files under this directory")
    parser.add_argument("--json", action="store_true", help="Print events as SSE-style JSON lines")
    parser.add_argument("--verbose", "-v", action="store_true", help="Show every tool call")
    return parser


def load_existing_files(directory: Optional[str]) -> Dict[str, str]:
    if not directory:
        return {}
    root = Path(directory)
    files: Dict[str, str] = {}
    for path in sorted(root.rglob("*")):
        if path.is_file() and "node_modules" not in path.parts and ".git" not in path.parts:
            try:
                files[path.relative_to(root).as_posix()] = path.read_text(encoding="utf-8")
            except UnicodeDecodeError:
                continue
    return files


def write_output(directory: str, files) -> int:
    root = Path(directory)
    for record in files:
        target = root / record.path
        target.parent.mkdir(parents=True, exist_ok=True)
        target.write_text(record.content, encoding="utf-8")
    return len(files)


async def run_agent(args) -> int:
    from rich.console import Console

    from appforge.modules.orchestrator import AgentOrchestrator, AgentConfig, AgentMode
    from appforge.modules.providers import create_provider
    from appforge.cli.renderer import EventRenderer

    console = Console(stderr=args.json)
    renderer = EventRenderer(console, verbose=args.verbose)

    existing = load_existing_files(args.existing)
    provider = create_provider(args.provider)
    config = AgentConfig.from_settings(
        max_iterations=args.max_iterations,
        max_backend_calls=args.max_backend_calls,
    )
    orchestrator = AgentOrchestrator(provider, config=config)
    run = orchestrator.run(args.prompt, existing_files=existing, mode=AgentMode(args.mode))

    async for event in run:
        if args.json:
            sys.stdout.write(event.to_sse())
            sys.stdout.flush()
        else:
            renderer.render_event(event)

    result = run.result
    if args.json:
        sys.stdout.write(f"data: {json.dumps({'type': 'summary', **renderer.render_summary_json(result)})}\n\n")
    else:
        renderer.render_result(result)

    if args.output and result.files:
        count = write_output(args.output, result.files)
        console.print(f"[green]Wrote {count} files to {args.output}[/green]")

    return 0 if result.success else 1


def main():
    """Main entry point"""
    load_dotenv()
    parser = create_parser()
    args = parser.parse_args()

    from appforge.core.exceptions import ProviderConfigurationError

    try:
        sys.exit(asyncio.run(run_agent(args)))
    except ProviderConfigurationError as e:
        print(f"\n❌ {e.message}", file=sys.stderr)
        sys.exit(2)
    except KeyboardInterrupt:
        print("\n\nCancelled.", file=sys.stderr)
        sys.exit(130)


if __name__ == "__main__":
    main()
