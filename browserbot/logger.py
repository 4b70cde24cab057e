"""
Console output and run logs for BrowserBot.

Handles rich console output for a run and optional JSONL step logging.
"""

import json
import re
from datetime import datetime
from pathlib import Path
from typing import Any, Optional

from rich.console import Console
from rich.panel import Panel
from rich.table import Table
from rich.text import Text

from .types import StreamEvent, TaskResult, TextFragment, ToolEnded, ToolStarted, Verdict


def slugify(text: str, max_length: int = 30) -> str:
    """Convert text to a filesystem-safe slug."""
    slug = re.sub(r'[^\w\s-]', '', text.lower())
    slug = re.sub(r'[-\s]+', '_', slug).strip('_')
    return slug[:max_length]


def redact_arguments(tool: str, arguments: dict[str, Any]) -> dict[str, Any]:
    """Redact typed text for password fields."""
    if tool != "browser_type":
        return arguments
    if "password" in str(arguments.get("element", "")).lower():
        redacted = dict(arguments)
        redacted["text"] = "[REDACTED]"
        return redacted
    return arguments


class RunLogger:
    """Renders the progress of a single agent run."""

    def __init__(
        self,
        task: str,
        enable_console: bool = True,
        runs_dir: Optional[Path] = None,
    ):
        """Initialize the run logger.

        Args:
            task: The task being executed (used for directory naming)
            enable_console: Whether to print to console
            runs_dir: Parent directory for the JSONL step log (None disables it)
        """
        self.task = task
        self.console = Console() if enable_console else None
        self._streaming = False

        self.run_dir: Optional[Path] = None
        self.steps_file: Optional[Path] = None
        if runs_dir is not None:
            timestamp = datetime.now().strftime("%Y%m%d_%H%M%S")
            self.run_dir = runs_dir / f"{timestamp}_{slugify(task)}"
            self.run_dir.mkdir(parents=True, exist_ok=True)
            self.steps_file = self.run_dir / "steps.jsonl"
            self.steps_file.touch()

    def log_step(
        self,
        step: int,
        response_text: str,
        tools_invoked: tuple[str, ...] = (),
        verdict: Optional[Verdict] = None,
        error: Optional[str] = None,
    ) -> None:
        """Append one iteration to the JSONL step log."""
        if self.steps_file is None:
            return

        step_data = {
            "step": step,
            "timestamp": datetime.now().isoformat(),
            "response": response_text,
            "tools_invoked": list(tools_invoked),
            "is_complete": verdict.is_complete if verdict else False,
            "is_failed": verdict.is_failed if verdict else False,
            "observation": verdict.observation if verdict else None,
            "reasoning": verdict.reasoning if verdict else None,
            "action": verdict.action if verdict else None,
            "error": error,
        }

        with open(self.steps_file, "a") as f:
            f.write(json.dumps(step_data) + "\n")

    def print_header(self, model_name: str, max_steps: int) -> None:
        """Print the run header to console."""
        if not self.console:
            return

        self.console.print()
        self.console.print(Panel(
            f"[bold cyan]Task:[/bold cyan] {self.task}\n"
            f"[dim]Model:[/dim] {model_name}   [dim]Max steps:[/dim] {max_steps}",
            title="BrowserBot",
            border_style="cyan",
        ))
        self.console.print()

    def print_iteration(self, step: int, summary: str) -> None:
        """Print the banner that starts an iteration."""
        if not self.console:
            return
        self._end_stream()
        self.console.rule(f"[bold]Iteration {step}[/bold] [dim]{summary}[/dim]")

    def handle_event(self, event: StreamEvent) -> None:
        """Render one stream event as it arrives."""
        if not self.console:
            return

        if isinstance(event, TextFragment):
            self.console.print(event.text, end="", markup=False, highlight=False, soft_wrap=True)
            self._streaming = True
        elif isinstance(event, ToolStarted):
            self._end_stream()
            args = redact_arguments(event.tool, event.arguments)
            args_str = ", ".join(f"{k}={v!r}" for k, v in args.items())
            line = Text("  → ", style="dim")
            line.append(event.tool, style="bold cyan")
            if args_str:
                line.append(f"({args_str})", style="dim")
            self.console.print(line)
        elif isinstance(event, ToolEnded):
            self._end_stream()
            if event.success:
                self.console.print(f"  [green]✓[/green] {event.tool}")
            else:
                self.console.print(f"  [red]✗[/red] {event.tool}: {event.error}")

    def print_verdict(self, verdict: Verdict) -> None:
        """Print the structured sections of a response and any terminal verdict."""
        if not self.console:
            return
        self._end_stream()
        for label, text in (
            ("Observation", verdict.observation),
            ("Reasoning", verdict.reasoning),
            ("Action", verdict.action),
        ):
            if text:
                line = Text(f"  {label}: ", style="dim")
                line.append(text)
                self.console.print(line)
        if verdict.is_failed:
            self.console.print("[bold red]Model declared the task failed[/bold red]")
        elif verdict.is_complete:
            self.console.print("[bold green]Model declared the task complete[/bold green]")

    def print_error(self, error: str) -> None:
        """Print an error message to console."""
        if not self.console:
            return
        self._end_stream()
        self.console.print(f"  [bold red]Error:[/bold red] {error}")

    def print_notice(self, message: str) -> None:
        if not self.console:
            return
        self._end_stream()
        self.console.print(f"[yellow]{message}[/yellow]")

    def print_final_answer(self, answer: str, success: bool) -> None:
        """Print the final response in a panel."""
        if not self.console:
            return
        self._end_stream()
        self.console.print()
        self.console.print(Panel(
            answer,
            title="Final Response",
            border_style="green" if success else "red",
        ))

    def print_summary(self, result: TaskResult) -> None:
        """Print the run summary to console."""
        if not self.console:
            return
        self._end_stream()

        table = Table(title="Run Summary", show_header=False)
        table.add_column("Property", style="dim")
        table.add_column("Value")

        status = "[green]success[/green]" if result.success else "[red]stopped[/red]"
        table.add_row("Status", status)
        table.add_row("Message", result.message)
        table.add_row("Exit Reason", result.exit_reason.value)
        table.add_row("Steps Taken", str(result.steps_taken))
        if result.execution_time_ms is not None:
            table.add_row("Duration", f"{result.execution_time_ms / 1000:.1f}s")
        if self.steps_file is not None:
            table.add_row("Steps Log", str(self.steps_file))

        self.console.print()
        self.console.print(table)

    def _end_stream(self) -> None:
        if self._streaming and self.console:
            self.console.print()
        self._streaming = False
