"""
Rich rendering of an agent run's event stream.
"""

from typing import Dict, Any, Optional

from rich.console import Console
from rich.panel import Panel
from rich.table import Table

from appforge.modules.orchestrator.event_bus import AgentEvent, AgentEventType
from appforge.modules.orchestrator.run_state import AgentResult


PHASE_STYLES = {
    "planning": "cyan",
    "coding": "yellow",
    "testing": "magenta",
    "debugging": "red",
    "complete": "green",
    "error": "bold red",
}


class EventRenderer:
    """Renders AgentEvents to the terminal"""

    def __init__(self, console: Console, verbose: bool = False):
        self.console = console
        self.verbose = verbose

    def render_event(self, event: AgentEvent):
        handler = {
            AgentEventType.RUN_START: self._run_start,
            AgentEventType.PHASE_CHANGE: self._phase_change,
            AgentEventType.ITERATION: self._iteration,
            AgentEventType.PLAN_CREATED: self._plan_created,
            AgentEventType.PLAN_PROGRESS: self._plan_progress,
            AgentEventType.TOOL_CALL: self._tool_call,
            AgentEventType.TOOL_RESULT: self._tool_result,
            AgentEventType.TEXT_DELTA: self._text_delta,
            AgentEventType.FILE_CREATED: self._file_event,
            AgentEventType.FILE_UPDATED: self._file_event,
            AgentEventType.ERROR: self._error,
            AgentEventType.COMPLETE: self._complete,
        }.get(event.type)

        if handler:
            handler(event)

    def _run_start(self, event: AgentEvent):
        self.console.print(
            f"[bold cyan]▶ Run {event.run_id}[/bold cyan] "
            f"[dim]({event.get('mode', 'build')} mode, {event.get('provider', '?')})[/dim]"
        )

    def _phase_change(self, event: AgentEvent):
        phase = event["phase"]
        style = PHASE_STYLES.get(phase, "white")
        self.console.print(f"[{style}]● Phase: {phase}[/{style}]")

    def _iteration(self, event: AgentEvent):
        self.console.print(f"[dim]── Iteration {event['iteration']} ──[/dim]")

    def _plan_created(self, event: AgentEvent):
        plan = event["plan"]
        table = Table(
            title=f"📋 {plan['appName']} ({plan['appType']})",
            show_header=True,
            header_style="bold cyan"
        )
        table.add_column("#", style="dim", width=4)
        table.add_column("File", style="white")

        for i, path in enumerate(plan["fileTree"], 1):
            table.add_row(str(i), path)

        self.console.print(table)

    def _plan_progress(self, event: AgentEvent):
        self.console.print(
            f"  [dim]({event['completedFiles']}/{event['totalFiles']})[/dim] {event['currentFile']}"
        )

    def _tool_call(self, event: AgentEvent):
        if not self.verbose:
            return
        self.console.print(f"[bold magenta]⚡ {event['tool']}[/bold magenta]")
        for key, value in (event.get("input") or {}).items():
            display_value = str(value)[:50] + "..." if len(str(value)) > 50 else str(value)
            self.console.print(f"  [dim]{key}:[/dim] {display_value}")

    def _tool_result(self, event: AgentEvent):
        result = event["result"]
        if result.get("success"):
            if self.verbose:
                self.console.print(f"  [green]✓ {(result.get('output') or 'Success')[:120]}[/green]")
        else:
            self.console.print(f"  [red]✗ {event['tool']}: {result.get('error', 'Failed')}[/red]")

    def _text_delta(self, event: AgentEvent):
        message = event.get("message") or ""
        if message.strip():
            self.console.print(f"[white]{message.strip()}[/white]")

    def _file_event(self, event: AgentEvent):
        if event.type == AgentEventType.FILE_CREATED:
            self.console.print(f"  [green]+[/green] Created: [cyan]{event['path']}[/cyan]")
        else:
            self.console.print(f"  [yellow]~[/yellow] Updated: [cyan]{event['path']}[/cyan]")

    def _error(self, event: AgentEvent):
        self.render_error(event["error"], event.get("code"))

    def _complete(self, event: AgentEvent):
        self.console.print(f"[green]✅ {event.get('summary') or 'Complete'}[/green]")

    def render_error(self, message: str, details: Optional[str] = None):
        """Render an error message"""
        error_panel = Panel(
            f"[bold red]{message}[/bold red]" +
            (f"\n\n[dim]{details}[/dim]" if details else ""),
            title="[red]Error[/red]",
            border_style="red"
        )
        self.console.print(error_panel)

    def render_result(self, result: AgentResult):
        """Render the final run summary"""
        table = Table(show_header=False, box=None)
        table.add_column("Metric", style="dim")
        table.add_column("Value", justify="right")

        status = "[green]success[/green]" if result.success else "[red]failed[/red]"
        table.add_row("Result", status)
        table.add_row("Phase", result.phase.value)
        table.add_row("Files", str(len(result.files)))
        table.add_row("Iterations", str(result.iterations))
        table.add_row("Backend calls", str(result.backend_calls))
        table.add_row("Input tokens", str(result.usage.input_tokens))
        table.add_row("Output tokens", str(result.usage.output_tokens))
        if result.error:
            table.add_row("Error", f"[red]{result.error}[/red]")

        self.console.print(Panel(table, title="Run summary", border_style="green" if result.success else "red"))

    def render_summary_json(self, result: AgentResult) -> Dict[str, Any]:
        summary = result.to_dict()
        summary["files"] = [f["path"] for f in summary["files"]]
        return summary
