"""
Table formatting utilities for XMaint CLI
"""

from typing import List, Optional
from rich.table import Table
from rich.console import Console
from rich import box

from ..maintenance.workflow import WorkflowReport
from ..models import FleetSnapshot, NodeInfo
from .console import ConsoleFormatter
from .progress import ProgressFormatter


class RichTableFormatter:
    """Rich table formatting utilities for XMaint CLI"""

    def __init__(self, console: Optional[Console] = None):
        self.console = console or Console()

    @staticmethod
    def create_fleet_table(snapshot: FleetSnapshot, title: Optional[str] = None) -> Table:
        """Create the fleet-wide maintenance status table"""
        title = title or f"Fleet Status ({snapshot.taken_at:%H:%M:%S}, cycle {snapshot.cycle})"
        table = Table(title=title, box=box.ROUNDED)

        table.add_column("Node", style="cyan", no_wrap=True)
        table.add_column("Zone", style="yellow")
        table.add_column("DAG", style="dim")
        table.add_column("State", justify="left")
        table.add_column("Active", justify="right")
        table.add_column("Queue", justify="right")
        table.add_column("Mounted", justify="right")
        table.add_column("Latency", justify="right")

        for row in snapshot.rows:
            node = row.node
            name = f"{node.name} [dim](test)[/dim]" if node.is_test_host else node.name

            if row.status is None:
                state_str = ConsoleFormatter.format_macro_state(None)
                active_str = "-"
            else:
                state_str = ConsoleFormatter.format_macro_state(row.status.macro_state)
                active_str = str(row.status.total_active_components)

            # Queue depth: anything still queued on a node in maintenance is stranded
            if row.queue_depth is None:
                queue_str = "-"
            elif row.queue_depth > 0 and row.status is not None and row.status.in_maintenance:
                queue_str = f"[red]{row.queue_depth:,}[/red]"
            else:
                queue_str = f"{row.queue_depth:,}"

            mounted_str = str(row.mounted_copies) if row.mounted_copies is not None else "-"

            table.add_row(
                name,
                node.zone,
                node.dag or "—",
                state_str,
                active_str,
                queue_str,
                mounted_str,
                ProgressFormatter.format_latency(node.latency_ms),
            )

        return table

    @staticmethod
    def create_report_table(report: WorkflowReport, title: Optional[str] = None) -> Table:
        """Create a summary table of a workflow run"""
        title = title or f"{report.direction.value.capitalize()} maintenance: {report.node}"
        table = Table(title=title, box=box.ROUNDED)

        table.add_column("Step", justify="right", style="dim")
        table.add_column("Action", style="cyan")
        table.add_column("Outcome")
        table.add_column("Waited", justify="right")
        table.add_column("Details")

        for result in report.results:
            table.add_row(
                result.position,
                result.label,
                ProgressFormatter.format_outcome(result.outcome),
                ProgressFormatter.format_elapsed(result.elapsed),
                result.message,
            )

        return table

    @staticmethod
    def create_candidates_table(candidates: List[NodeInfo], source: NodeInfo,
                                selected: Optional[str] = None) -> Table:
        """Create a table of redirect candidates in planning order"""
        table = Table(title=f"Redirect candidates for {source.name}", box=box.ROUNDED)

        table.add_column("#", justify="right", style="dim")
        table.add_column("Node", style="cyan")
        table.add_column("Zone", style="yellow")
        table.add_column("Locality")
        table.add_column("Selected", justify="center")

        for position, candidate in enumerate(candidates, 1):
            locality = "[green]same zone[/green]" if candidate.zone == source.zone else "[dim]remote[/dim]"
            marker = "[green]✓[/green]" if candidate.name == selected else ""
            table.add_row(str(position), candidate.name, candidate.zone, locality, marker)

        return table
