"""
Command line interface for XMaint - mail fleet node maintenance tool
"""

import sys
from typing import Optional

import click
from rich.console import Console

from .client import FleetClient
from .commands import create_maintenance_commands, create_monitoring_commands
from .commands.base import setup_console_logging
from .config import MaintenanceSettings


console = Console()


@click.group()
@click.version_option()
@click.option('--verbose', '-v', is_flag=True, help='Show debug logging (every convergence probe)')
@click.pass_context
def main(ctx, verbose: bool):
    """XMaint - Mail Fleet Node Maintenance Tool

    Takes mail server nodes into and out of maintenance safely: drains
    transport, redirects queued messages, suspends cluster membership and
    relocates database copies, and reverses all of it on the way back.
    """
    ctx.ensure_object(dict)
    setup_console_logging(console, verbose)

    try:
        ctx.obj['settings'] = MaintenanceSettings.from_env()
    except ValueError as e:
        console.print(f"[red]Invalid configuration: {e}[/red]")
        sys.exit(1)

    # test-connection builds and reports on its own client
    if ctx.invoked_subcommand == 'test-connection':
        return

    # Test connection on startup
    try:
        client = FleetClient()
        if not client.test_connection():
            console.print("[red]Error: Could not connect to the fleet API[/red]")
            console.print("Please check your FLEET_API_URL in .env file")
            sys.exit(1)
        ctx.obj['client'] = client
    except ValueError as e:
        console.print(f"[red]Error connecting to the fleet API: {e}[/red]")
        sys.exit(1)


@main.command()
@click.option('--api-url', help='Override FLEET_API_URL from .env')
@click.pass_context
def test_connection(ctx, api_url: Optional[str]):
    """Test connection to the fleet API and list the managed nodes"""
    try:
        client = FleetClient(api_url) if api_url else FleetClient()

        if client.test_connection():
            console.print("[green]✓ Connection successful![/green]")

            nodes = client.topology.list_nodes()
            console.print(f"Managing {len(nodes)} nodes:")
            for node in nodes:
                shape = f"DAG {node.dag}" if node.is_dag_member else "standalone"
                test = " [dim](test host)[/dim]" if node.is_test_host else ""
                console.print(f"  • {node.name} (zone: {node.zone}, {shape}){test}")
        else:
            console.print("[red]✗ Connection failed[/red]")
            sys.exit(1)

    except Exception as e:
        console.print(f"[red]✗ Connection error: {e}[/red]")
        sys.exit(1)


create_maintenance_commands(main)
create_monitoring_commands(main)


if __name__ == '__main__':
    main()
