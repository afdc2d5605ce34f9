"""
Monitoring commands for XMaint CLI

Read-only views: a single node's maintenance status and a periodically
refreshed fleet-wide table.
"""

import threading
from typing import Optional

import click

from ..exceptions import XMaintError
from ..maintenance import FleetWatcher, StatusAggregator
from ..models import FleetSnapshot
from .base import BaseCommand, EXIT_ERROR, EXIT_OK


class StatusCommand(BaseCommand):
    """Show the maintenance status of one node"""

    def execute(self, node: str) -> int:
        try:
            info = self.client.topology.get_node(node)
            if info is None:
                self.formatter.print_error(f"Node '{node}' is not part of the managed fleet")
                return EXIT_ERROR

            status = StatusAggregator(self.client.components).get_status(info.name)
            shape = f"DAG {info.dag}" if info.is_dag_member else "standalone"
            self.formatter.print_status(status, title=f"{info.name} ({info.zone}, {shape})")
            return EXIT_OK
        except XMaintError as e:
            return self.handle_error(e, f"reading status of {node}")


class WatchCommand(BaseCommand):
    """Continuously display the maintenance state of every node"""

    def __init__(self, *args, **kwargs):
        super().__init__(*args, **kwargs)
        self.stop_event = threading.Event()

    def print_snapshot(self, snapshot: FleetSnapshot, interval: float, once: bool):
        self.console.print(self.table_formatter.create_fleet_table(snapshot))

        counts = snapshot.count_by_state()
        parts = [f"{state}: {count}" for state, count in counts.items() if count or state != 'Unreachable']
        self.console.print(f"[dim]{' | '.join(parts)}[/dim]")

        for row in snapshot.rows:
            if row.error:
                self.console.print(f"[red]  • {row.node.name}: {row.error}[/red]")

        if not once:
            self.console.print(f"\n[dim]━━━ Next update in {interval:g}s ━━━[/dim]\n")

    def execute(self, interval: Optional[float] = None, once: bool = False) -> int:
        interval = interval if interval is not None else self.settings.watch_interval
        watcher = FleetWatcher.from_client(self.client, max_workers=self.settings.watch_workers)

        self.print_header("Fleet Maintenance Watch",
                          None if once else f"Refreshing every {interval:g}s - press Ctrl+C to stop")
        try:
            for snapshot in watcher.watch(interval, stop_event=self.stop_event,
                                          max_cycles=1 if once else None):
                self.print_snapshot(snapshot, interval, once)
        except KeyboardInterrupt:
            self.stop_event.set()
            self.console.print("\n[yellow]Monitoring stopped by user[/yellow]")
        except XMaintError as e:
            return self.handle_error(e, "watching fleet status")
        return EXIT_OK


def create_monitoring_commands(main_cli):
    """Register monitoring commands with the main CLI"""

    @main_cli.command()
    @click.argument('node')
    @click.pass_context
    def status(ctx, node: str):
        """Show the maintenance state of NODE

        Reports the macro-state (Connected / Maintenance / Transitioning), the
        state of each tracked component and the number of active components.
        """
        command = StatusCommand(ctx.obj['client'], ctx.obj['settings'])
        ctx.exit(command.execute(node))

    @main_cli.command()
    @click.option('--interval', '-i', type=float,
                  help='Refresh interval in seconds (default: XMAINT_WATCH_INTERVAL or 30)')
    @click.option('--once', is_flag=True, help='Take a single snapshot and exit')
    @click.pass_context
    def watch(ctx, interval: Optional[float], once: bool):
        """Continuously display the maintenance state of every node

        Nodes are read in parallel; a node that cannot be reached is listed
        as Unreachable instead of stopping the view. Read-only.
        """
        command = WatchCommand(ctx.obj['client'], ctx.obj['settings'])
        ctx.exit(command.execute(interval, once))
