"""
Console formatting utilities for XMaint CLI
"""

from rich.console import Console
from rich.panel import Panel
from typing import Optional

from ..models import ComponentStatus, MacroState, MaintenanceStatus


class ConsoleFormatter:
    """Centralized console formatting utilities"""

    def __init__(self, console: Optional[Console] = None):
        self.console = console or Console()

    @staticmethod
    def format_macro_state(state: Optional[MacroState]) -> str:
        """Format a macro-state with color coding"""
        if state is None:
            return "[red]● Unreachable[/red]"
        if state == MacroState.CONNECTED:
            return "[green]● Connected[/green]"
        elif state == MacroState.MAINTENANCE:
            return "[blue]● Maintenance[/blue]"
        else:
            return "[yellow]● Transitioning[/yellow]"

    @staticmethod
    def format_component_state(state: ComponentStatus) -> str:
        color = {
            ComponentStatus.ACTIVE: "green",
            ComponentStatus.DRAINING: "yellow",
            ComponentStatus.INACTIVE: "blue",
        }.get(state, "white")
        return f"[{color}]{state.value}[/{color}]"

    def print_status(self, status: MaintenanceStatus, title: Optional[str] = None):
        """Print a node's maintenance status as a panel"""
        lines = [
            f"[bold]State:[/bold] {self.format_macro_state(status.macro_state)}",
            f"[bold]Active components:[/bold] {status.total_active_components}",
        ]
        for capability, state in (status.components or {}).items():
            lines.append(f"[bold]{capability.value}:[/bold] {self.format_component_state(state)}")
        self.console.print(Panel("\n".join(lines), title=title or status.node, border_style="blue"))

    def print_error(self, message: str, details: Optional[str] = None):
        """Print formatted error message"""
        self.console.print(f"[red]❌ {message}[/red]")
        if details:
            self.console.print(f"[dim]{details}[/dim]")

    def print_success(self, message: str):
        """Print formatted success message"""
        self.console.print(f"[green]✅ {message}[/green]")

    def print_warning(self, message: str):
        """Print formatted warning message"""
        self.console.print(f"[yellow]⚠️  {message}[/yellow]")
