"""
Progress formatting utilities for XMaint CLI
"""

from typing import Optional
from rich.console import Console

from ..maintenance.workflow import StepOutcome, StepResult


class ProgressFormatter:
    """Step progress and timing formatting utilities"""

    def __init__(self, console: Optional[Console] = None):
        self.console = console or Console()

    @staticmethod
    def format_outcome(outcome: StepOutcome) -> str:
        """Format a step outcome with color coding"""
        if outcome == StepOutcome.COMPLETED:
            return "[green]✓ completed[/green]"
        elif outcome == StepOutcome.SKIPPED:
            return "[dim]↷ skipped[/dim]"
        elif outcome == StepOutcome.WARNING:
            return "[yellow]⚠ warning[/yellow]"
        else:
            return "[red]✗ aborted[/red]"

    @staticmethod
    def format_elapsed(seconds: float) -> str:
        """Format a wait duration in human readable format"""
        if seconds <= 0:
            return "-"
        if seconds < 60:
            return f"{seconds:.0f}s"
        elif seconds < 3600:
            return f"{seconds / 60:.1f}m"
        else:
            return f"{seconds / 3600:.1f}h"

    @staticmethod
    def format_latency(latency_ms: Optional[float]) -> str:
        """Format node latency with color coding"""
        if latency_ms is None:
            return "[dim]-[/dim]"
        if latency_ms > 500:
            return f"[red]{latency_ms:.0f}ms[/red]"
        elif latency_ms > 100:
            return f"[yellow]{latency_ms:.0f}ms[/yellow]"
        return f"[green]{latency_ms:.0f}ms[/green]"

    def print_step_result(self, result: StepResult):
        """Print one step result as it happens"""
        timing = ""
        if result.attempts:
            timing = f" [dim]({result.attempts} probe(s), {self.format_elapsed(result.elapsed)} waited)[/dim]"
        self.console.print(
            f"[dim]Step {result.position}[/dim] [bold]{result.label}[/bold]: "
            f"{self.format_outcome(result.outcome)} - {result.message}{timing}"
        )
