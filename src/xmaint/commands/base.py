"""
Base Command class for XMaint CLI commands

This module provides the BaseCommand class that encapsulates common functionality
shared across all command handlers, including error handling, formatting, logging
setup and client management.
"""

import sys
from abc import ABC, abstractmethod
from contextlib import contextmanager
from typing import Optional, Any, Dict

from loguru import logger
from rich.console import Console
from rich.panel import Panel

from ..client import FleetClient
from ..config import MaintenanceSettings
from ..exceptions import (
    ConvergenceTimeoutError, FleetAPIError, NoEligibleTargetError,
    PreconditionError, StepDeclinedError, UnreachableError,
)
from ..formatting import ConsoleFormatter, RichTableFormatter, ProgressFormatter


# Process exit codes shared by all commands
EXIT_OK = 0
EXIT_ERROR = 1
EXIT_ABORTED = 2
EXIT_WARNINGS = 3


def setup_console_logging(console: Console, verbose: bool = False) -> None:
    """Route loguru output through the rich console"""
    logger.remove()
    logger.add(
        lambda msg: console.print(msg, end="", markup=False, highlight=False),
        format="{time:HH:mm:ss.SSS} | {level} | {message}",
        level="DEBUG" if verbose else "INFO",
    )


@contextmanager
def json_logging_mode():
    """Context manager for JSON logging mode

    Drops the configured loguru handlers so only a serialized stderr sink is
    active inside the block. The JSON sink is removed again on exit; commands
    run once per process so the console sink is not reinstalled.
    """
    logger.remove()
    handler_id = logger.add(
        sys.stderr,
        format="{time:YYYY-MM-DDTHH:mm:ss.SSSZ} | {level} | {message}",
        serialize=True,
        level="INFO"
    )

    try:
        yield
    finally:
        logger.remove(handler_id)


class BaseCommand(ABC):
    """
    Abstract base class for all XMaint commands.

    Provides common functionality including:
    - Error handling and user-friendly error messages
    - Consistent output formatting
    - Fleet client and settings management
    """

    def __init__(self, client: FleetClient, settings: Optional[MaintenanceSettings] = None,
                 console: Optional[Console] = None):
        """
        Initialize the base command.

        Args:
            client: Fleet API client providing all capability stores
            settings: Polling and retry settings (defaults from environment)
            console: Rich console for output
        """
        self.client = client
        self.settings = settings or MaintenanceSettings.from_env()
        self.console = console or Console()
        self.formatter = ConsoleFormatter(self.console)
        self.table_formatter = RichTableFormatter(self.console)
        self.progress_formatter = ProgressFormatter(self.console)

    @abstractmethod
    def execute(self, **kwargs) -> int:
        """
        Execute the command with the given parameters.

        Returns:
            Process exit code
        """
        pass

    def handle_error(self, error: Exception, context: str) -> int:
        """
        Handle errors with consistent formatting.

        Args:
            error: The exception that occurred
            context: Context description for the error

        Returns:
            Exit code matching the error class
        """
        error_msg = str(error)

        if isinstance(error, UnreachableError):
            self.console.print("[red]❌ Node Unreachable[/red]")
            self.console.print(f"[dim]{context}[/dim]")
            self.console.print(f"Error: {error_msg}")
            self.console.print("\n[yellow]💡 Troubleshooting tips:[/yellow]")
            self.console.print("• Check FLEET_API_URL in your .env file")
            self.console.print("• Verify the node is powered on and reachable from the gateway")
            self.console.print("• Test connection with: xmaint test-connection")
            return EXIT_ERROR

        if isinstance(error, NoEligibleTargetError):
            self.console.print("[red]❌ No eligible redirect target[/red]")
            self.console.print(f"[dim]{context}[/dim]")
            self.console.print(f"Error: {error_msg}")
            self.console.print("\n[yellow]💡 Bring another node out of maintenance before draining this one[/yellow]")
            return EXIT_ABORTED

        if isinstance(error, (ConvergenceTimeoutError, StepDeclinedError)):
            self.console.print(f"[red]❌ Aborted while {context}[/red]")
            self.console.print(f"Error: {error_msg}")
            self.console.print("[yellow]💡 Re-run the same command to resume; completed steps are skipped[/yellow]")
            return EXIT_ABORTED

        if isinstance(error, PreconditionError):
            self.console.print(f"[red]❌ {error_msg}[/red]")
            return EXIT_ERROR

        if isinstance(error, FleetAPIError):
            self.console.print("[red]❌ Fleet API Error[/red]")
            self.console.print(f"[dim]{context}[/dim]")
            self.console.print(f"Error: {error_msg}")
            return EXIT_ERROR

        self.console.print(f"[red]❌ Error in {context}[/red]")
        self.console.print(f"Error: {error_msg}")
        return EXIT_ERROR

    def print_header(self, title: str, subtitle: Optional[str] = None) -> None:
        """
        Print a consistent header for command output.

        Args:
            title: Main title for the command
            subtitle: Optional subtitle with additional context
        """
        self.console.print(Panel.fit(f"[bold blue]{title}[/bold blue]"))
        if subtitle:
            self.console.print(f"[dim]{subtitle}[/dim]")
        self.console.print()

    def confirm_action(self, message: str, default: bool = False) -> bool:
        """
        Prompt user for confirmation of an action.

        Args:
            message: Message to display to user
            default: Default value if user just presses enter

        Returns:
            True if user confirms, False otherwise
        """
        suffix = " [Y/n]" if default else " [y/N]"
        response = input(f"{message}{suffix}: ").strip().lower()

        if not response:
            return default

        return response in ('y', 'yes', 'true', '1')

    def print_summary(self, title: str, stats: Dict[str, Any]) -> None:
        """
        Print a summary panel with key statistics.

        Args:
            title: Title for the summary panel
            stats: Dictionary of statistics to display
        """
        lines = []
        for key, value in stats.items():
            formatted_key = key.replace('_', ' ').title()
            lines.append(f"[bold]{formatted_key}:[/bold] {value}")

        content = "\n".join(lines)
        panel = Panel(content, title=title, border_style="blue")
        self.console.print(panel)
