"""
Maintenance commands for XMaint CLI

- enter-maintenance: drain a node and take it out of service
- exit-maintenance: return a node to service
- plan-targets: show where a node's queues would be redirected (read-only)
"""

from contextlib import nullcontext
from typing import Callable, Optional

import click

from ..exceptions import NoEligibleTargetError, XMaintError
from ..maintenance import MaintenanceWorkflow, OSAction, WorkflowReport
from ..maintenance.queue_drain import QueueDrainPlanner
from ..maintenance.status import StatusAggregator
from .base import BaseCommand, EXIT_ERROR, EXIT_OK, EXIT_WARNINGS, json_logging_mode


class WorkflowCommand(BaseCommand):
    """Shared plumbing for the enter/exit maintenance commands"""

    def build_workflow(self, assume_yes: bool) -> MaintenanceWorkflow:
        confirm: Callable[[str], bool] = (lambda message: True) if assume_yes else self.confirm_action
        return MaintenanceWorkflow.from_client(
            self.client,
            settings=self.settings,
            confirm=confirm,
            reporter=self.progress_formatter.print_step_result,
        )

    def finish(self, report: Optional[WorkflowReport]) -> int:
        """Print the run summary and map it to an exit code"""
        if report is None:
            return EXIT_OK
        self.console.print()
        self.console.print(self.table_formatter.create_report_table(report))
        if report.final_status is not None:
            self.formatter.print_status(report.final_status, title=f"{report.node} final status")
        self.print_summary("Run Summary", {
            'steps': report.total_steps,
            'completed': len(report.results) - len(report.skipped) - len(report.warnings),
            'skipped': len(report.skipped),
            'warnings': len(report.warnings),
        })
        if report.warnings:
            self.formatter.print_warning(
                f"{len(report.warnings)} step(s) completed with warnings; "
                "re-run the command once the cause is resolved"
            )
            return EXIT_WARNINGS
        return EXIT_OK

    def run_workflow(self, context: str, log_format: str, call: Callable[[], WorkflowReport]) -> int:
        log_context = json_logging_mode() if log_format == "json" else nullcontext()
        with log_context:
            try:
                report = call()
            except XMaintError as e:
                if e.report is not None and e.report.results:
                    self.console.print()
                    self.console.print(self.table_formatter.create_report_table(e.report))
                return self.handle_error(e, context)
        return self.finish(report)


class EnterMaintenanceCommand(WorkflowCommand):
    """Drain a node and put it into maintenance"""

    def execute(self, node: str, confirm_each_step: bool = False, os_action: str = "none",
                assume_yes: bool = False, log_format: str = "console") -> int:
        action = OSAction(os_action)
        self.print_header(f"Enter Maintenance: {node}",
                          f"OS action: {action.value} | confirm each step: {'yes' if confirm_each_step else 'no'}")
        workflow = self.build_workflow(assume_yes)
        return self.run_workflow(
            f"entering maintenance on {node}", log_format,
            lambda: workflow.enter_maintenance(node, confirm_each_step=confirm_each_step, os_action=action),
        )


class ExitMaintenanceCommand(WorkflowCommand):
    """Return a node from maintenance to service"""

    def execute(self, node: str, confirm_each_step: bool = False, rebalance: bool = False,
                assume_yes: bool = False, log_format: str = "console") -> int:
        self.print_header(f"Exit Maintenance: {node}",
                          f"Fleet rebalance: {'yes' if rebalance else 'no'} | "
                          f"confirm each step: {'yes' if confirm_each_step else 'no'}")
        workflow = self.build_workflow(assume_yes)
        return self.run_workflow(
            f"exiting maintenance on {node}", log_format,
            lambda: workflow.exit_maintenance(node, confirm_each_step=confirm_each_step, rebalance_fleet=rebalance),
        )


class PlanTargetsCommand(BaseCommand):
    """Show the ordered redirect candidates for a node without changing anything"""

    def execute(self, node: str) -> int:
        try:
            source = self.client.topology.get_node(node)
            if source is None:
                self.formatter.print_error(f"Node '{node}' is not part of the managed fleet")
                return EXIT_ERROR

            planner = QueueDrainPlanner(StatusAggregator(self.client.components))
            candidates = planner.plan_targets(source, self.client.topology)
            try:
                target = planner.select_eligible_target(source.name, candidates)
            except NoEligibleTargetError as e:
                self.console.print(self.table_formatter.create_candidates_table(candidates, source))
                return self.handle_error(e, f"planning redirect targets for {node}")

            self.console.print(self.table_formatter.create_candidates_table(candidates, source, target.name))
            self.formatter.print_success(f"Queued messages on {source.name} would be redirected to {target.name}")
            return EXIT_OK
        except XMaintError as e:
            return self.handle_error(e, f"planning redirect targets for {node}")


def create_maintenance_commands(main_cli):
    """Register maintenance commands with the main CLI"""

    @main_cli.command()
    @click.argument('node')
    @click.option('--confirm-each-step', is_flag=True, help='Ask for confirmation before every state-changing step')
    @click.option('--os-action', type=click.Choice(['none', 'reboot', 'shutdown']), default='none',
                  help='OS action once the node is confirmed in maintenance (default: none)')
    @click.option('--yes', '-y', 'assume_yes', is_flag=True, help='Answer yes to every confirmation prompt')
    @click.option('--poll-interval', type=float, help='Seconds between convergence probes (overrides XMAINT_POLL_INTERVAL)')
    @click.option('--log-format', type=click.Choice(['console', 'json']), default='console',
                  help='Logging format for automation environments')
    @click.pass_context
    def enter_maintenance(ctx, node: str, confirm_each_step: bool, os_action: str, assume_yes: bool,
                          poll_interval: Optional[float], log_format: str):
        """Drain NODE and put it into maintenance

        Steps (DAG-only steps are skipped for standalone nodes):
        • Drain transport
        • Redirect queued messages to the nearest healthy node
        • Suspend cluster membership (DAG)
        • Relocate active database copies (DAG)
        • Set components inactive
        • Confirm maintenance and optionally reboot/shut down

        Every step is skipped if the node is already past it, so the command
        can be re-run safely after a warning or an abort.

        Examples:
            xmaint enter-maintenance mbx-a-01
            xmaint enter-maintenance mbx-a-01 --os-action reboot
            xmaint enter-maintenance mbx-a-01 --confirm-each-step
        """
        settings = ctx.obj['settings'].with_overrides(poll_interval=poll_interval)
        command = EnterMaintenanceCommand(ctx.obj['client'], settings)
        ctx.exit(command.execute(node, confirm_each_step, os_action, assume_yes, log_format))

    @main_cli.command()
    @click.argument('node')
    @click.option('--confirm-each-step', is_flag=True, help='Ask for confirmation before every state-changing step')
    @click.option('--rebalance/--no-rebalance', default=False,
                  help='Start a fleet-wide database rebalance once the node is connected (default: no)')
    @click.option('--yes', '-y', 'assume_yes', is_flag=True, help='Answer yes to every confirmation prompt')
    @click.option('--poll-interval', type=float, help='Seconds between convergence probes (overrides XMAINT_POLL_INTERVAL)')
    @click.option('--log-format', type=click.Choice(['console', 'json']), default='console',
                  help='Logging format for automation environments')
    @click.pass_context
    def exit_maintenance(ctx, node: str, confirm_each_step: bool, rebalance: bool, assume_yes: bool,
                         poll_interval: Optional[float], log_format: str):
        """Return NODE from maintenance to service

        Steps (DAG-only steps are skipped for standalone nodes):
        • Set components active
        • Resume cluster membership (DAG)
        • Enable automatic database activation (DAG)
        • Rebalance and mount the node's preferred database copies
        • Confirm connected (and optionally start a fleet-wide rebalance)

        Examples:
            xmaint exit-maintenance mbx-a-01
            xmaint exit-maintenance mbx-a-01 --rebalance
        """
        settings = ctx.obj['settings'].with_overrides(poll_interval=poll_interval)
        command = ExitMaintenanceCommand(ctx.obj['client'], settings)
        ctx.exit(command.execute(node, confirm_each_step, rebalance, assume_yes, log_format))

    @main_cli.command()
    @click.argument('node')
    @click.pass_context
    def plan_targets(ctx, node: str):
        """Show where NODE's queued messages would be redirected

        Candidates in the node's own zone come first (shuffled), followed by the
        other zones. Nodes in maintenance and test hosts are never selected.
        Nothing is changed.
        """
        command = PlanTargetsCommand(ctx.obj['client'], ctx.obj['settings'])
        ctx.exit(command.execute(node))
